import os
from pathlib import Path

from dotenv import dotenv_values


def read_env_var(name: str, env_path: str | Path = ".env") -> str:
    value = os.environ.get(name)
    source = "environment"

    if value is None:
        path = Path(env_path)
        if not path.exists():
            raise KeyError(f"{name} not found in environment and {path} does not exist")
        value = dotenv_values(path).get(name)
        source = str(path)
        if value is None:
            raise KeyError(f"{name} not found in environment or {path}")

    value = value.strip().strip("'\"")
    if not value:
        raise ValueError(f"{name} is empty in {source}")
    return value


def read_env_var_optional(
    name: str, default: str | None = None, env_path: str | Path = ".env"
) -> str | None:
    try:
        return read_env_var(name, env_path=env_path)
    except (KeyError, ValueError):
        return default
