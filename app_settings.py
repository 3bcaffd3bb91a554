import logging
from dataclasses import dataclass
from typing import Callable

from integrations.ai import LLMConfig
from integrations.ai.config import GEMINI_OPENAI_BASE_URL
from integrations.telegram_bot import TelegramConfig


logger = logging.getLogger(__name__)


EnvReader = Callable[[str], str]
EnvOptionalReader = Callable[[str, str | None], str | None]


@dataclass(slots=True)
class DatabaseConfig:
    url: str


@dataclass(slots=True)
class AppSettings:
    telegram: TelegramConfig
    database: DatabaseConfig
    llm: LLMConfig
    timezone: str | None = None
    log_level: str = "INFO"


def _read_int_optional(
    read_env_var_optional: EnvOptionalReader,
    name: str,
    default: int,
) -> int:
    raw_value = read_env_var_optional(name, str(default))
    try:
        return int(raw_value or str(default))
    except ValueError:
        logger.warning("%s is invalid, using default=%s", name, default)
        return default


def load_app_settings(
    read_env_var: EnvReader,
    read_env_var_optional: EnvOptionalReader,
) -> AppSettings:
    bot_token = read_env_var("BOT_TOKEN")
    database_url = read_env_var("DATABASE_URL")

    llm_api_key = read_env_var_optional("GOOGLE_API_KEY", None) or read_env_var_optional(
        "LLM_API_KEY", None
    )
    if not llm_api_key:
        logger.warning("GOOGLE_API_KEY (or LLM_API_KEY) is not configured")

    telegram = TelegramConfig(
        bot_token=bot_token,
        webhook_secret=read_env_var_optional("WEBHOOK_SECRET", None),
    )
    llm = LLMConfig(
        api_key=llm_api_key,
        model=read_env_var_optional("LLM_MODEL", "gemini-2.0-flash") or "gemini-2.0-flash",
        base_url=(
            read_env_var_optional("LLM_BASE_URL", GEMINI_OPENAI_BASE_URL)
            or GEMINI_OPENAI_BASE_URL
        ),
        max_output_tokens=_read_int_optional(
            read_env_var_optional,
            "LLM_MAX_OUTPUT_TOKENS",
            10000,
        ),
        timeout_seconds=_read_int_optional(
            read_env_var_optional,
            "LLM_TIMEOUT_SECONDS",
            120,
        ),
    )
    return AppSettings(
        telegram=telegram,
        database=DatabaseConfig(url=database_url),
        llm=llm,
        timezone=read_env_var_optional("BOT_TIMEZONE", None),
        log_level=(read_env_var_optional("LOG_LEVEL", "INFO") or "INFO").upper(),
    )
