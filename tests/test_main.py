import importlib
import sys

import pytest


@pytest.fixture
def main_module(tmp_path, monkeypatch):
    for name in ("GOOGLE_API_KEY", "LLM_API_KEY", "WEBHOOK_SECRET", "BOT_TIMEZONE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BOT_TOKEN", "123456:TEST-token")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'main.db'}")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delitem(sys.modules, "main", raising=False)

    module = importlib.import_module("main")
    yield module
    if module._loop is not None:
        module._loop.close()
    sys.modules.pop("main", None)


def test_import_does_not_create_event_loop(main_module):
    assert main_module._loop is None


def test_handler_reuses_one_loop(main_module):
    first = main_module.handler({"body": "not json"}, None)
    loop = main_module._loop
    second = main_module.handler({"body": "not json"}, None)

    assert first["statusCode"] == 400
    assert second["statusCode"] == 400
    assert loop is not None
    assert main_module._loop is loop
