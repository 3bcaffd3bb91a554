"""Composition root: settings -> engine, stores, synthesizer -> bot app."""

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from app_settings import AppSettings, load_app_settings
from config import read_env_var, read_env_var_optional
from db import Clock, EventStore, UserStore, create_db_engine, ensure_tables
from integrations.ai import build_post_synthesizer
from integrations.telegram_bot import TelegramBotApp


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def make_clock(timezone: str | None) -> Clock:
    """Server-local wall clock, or the wall clock of an IANA zone when given."""
    if not timezone:
        return datetime.now

    zone = ZoneInfo(timezone)

    def now() -> datetime:
        return datetime.now(zone).replace(tzinfo=None)

    return now


def build_telegram_app(app_settings: AppSettings) -> TelegramBotApp:
    clock = make_clock(app_settings.timezone)
    engine = create_db_engine(app_settings.database.url)
    try:
        ensure_tables(engine)
    except SQLAlchemyError:
        logger.exception("Cannot connect to the database, exiting")
        raise SystemExit(1)
    logger.info("Connected to DB")

    return TelegramBotApp(
        app_settings.telegram,
        user_store=UserStore(engine, clock=clock),
        event_store=EventStore(engine, clock=clock),
        post_service=build_post_synthesizer(app_settings.llm),
        clock=clock,
    )


def build_from_env() -> tuple[AppSettings, TelegramBotApp]:
    app_settings = load_app_settings(read_env_var, read_env_var_optional)
    setup_logging(app_settings.log_level)
    return app_settings, build_telegram_app(app_settings)
