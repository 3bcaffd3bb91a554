from datetime import datetime
from types import SimpleNamespace

import pytest

from db import EventStore, UserStore, create_db_engine, ensure_tables
from integrations.ai import SynthesisResult
from integrations.telegram_bot import TelegramBotApp, TelegramConfig


TEST_TOKEN = "123456:TEST-token"


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class DummyMessage:
    def __init__(self, text=None, user_id=42, first_name="Ada", last_name="Lovelace",
                 username="ada", is_bot=False, with_sender=True):
        self.text = text
        self.content_type = "text" if text is not None else "sticker"
        self.chat = SimpleNamespace(id=user_id)
        self.from_user = (
            SimpleNamespace(
                id=user_id,
                first_name=first_name,
                last_name=last_name,
                username=username,
                is_bot=is_bot,
            )
            if with_sender
            else None
        )
        self.sent = []

    async def answer(self, text, **kwargs):
        self.sent.append(text)


class FakePostService:
    def __init__(self, result=None):
        self.result = result or SynthesisResult(
            text="**Great day!** &quot;Shipped&quot; #work",
            prompt_tokens=12,
            completion_tokens=30,
        )
        self.calls = []

    def synthesize(self, events):
        self.calls.append(list(events))
        return self.result


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 15, 14, 30, 0))


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'chronicle.db'}")
    ensure_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def user_store(engine, clock):
    return UserStore(engine, clock=clock)


@pytest.fixture
def event_store(engine, clock):
    return EventStore(engine, clock=clock)


@pytest.fixture
def post_service():
    return FakePostService()


@pytest.fixture
def bot_app(user_store, event_store, post_service, clock):
    return TelegramBotApp(
        TelegramConfig(bot_token=TEST_TOKEN),
        user_store=user_store,
        event_store=event_store,
        post_service=post_service,
        clock=clock,
    )
