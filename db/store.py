import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from .schema import events, users


logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]


@dataclass(slots=True, frozen=True)
class TelegramProfile:
    tg_id: str
    first_name: str
    last_name: str | None = None
    is_bot: bool = False
    username: str | None = None


def day_window(now: datetime) -> tuple[datetime, datetime]:
    """Return the inclusive [00:00:00.000, 23:59:59.999] bounds of now's day."""
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = now.replace(hour=23, minute=59, second=59, microsecond=999000)
    return start, end


class UserStore:
    def __init__(self, engine: Engine, clock: Clock = datetime.now) -> None:
        self.engine = engine
        self.clock = clock

    def get(self, tg_id: str) -> dict[str, Any] | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(users).where(users.c.tg_id == str(tg_id))
            ).mappings().first()
        return dict(row) if row else None

    def get_or_create(self, profile: TelegramProfile) -> tuple[dict[str, Any], bool]:
        """Insert the user if absent, otherwise return the stored record untouched.

        Returns (record, created). When the Telegram handle is still stored on
        another account, the new user is created without it.
        """
        existing = self.get(profile.tg_id)
        if existing is not None:
            return existing, False

        username = _clean_str(profile.username)
        now = self.clock()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(users).values(
                        tg_id=str(profile.tg_id),
                        first_name=profile.first_name,
                        last_name=profile.last_name,
                        is_bot=bool(profile.is_bot),
                        username=username,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            existing = self.get(profile.tg_id)
            if existing is not None:
                # Lost a race against a concurrent /start for the same tg_id.
                logger.info("User tg_id=%s was created concurrently", profile.tg_id)
                return existing, False
            if username is None:
                raise
            logger.warning(
                "Username %s already belongs to another user, storing tg_id=%s without it",
                username,
                profile.tg_id,
            )
            return self.get_or_create(replace(profile, username=None))

        created = self.get(profile.tg_id)
        if created is None:
            raise RuntimeError(f"User tg_id={profile.tg_id} missing after insert")
        logger.info("User created: tg_id=%s", profile.tg_id)
        return created, True

    def add_token_usage(
        self,
        tg_id: str,
        *,
        prompt_tokens: int,
        completion_tokens: int,
    ) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(
                update(users)
                .where(users.c.tg_id == str(tg_id))
                .values(
                    prompt_tokens=func.coalesce(users.c.prompt_tokens, 0) + int(prompt_tokens),
                    completion_tokens=func.coalesce(users.c.completion_tokens, 0)
                    + int(completion_tokens),
                    updated_at=self.clock(),
                )
            )
        return result.rowcount > 0


class EventStore:
    def __init__(self, engine: Engine, clock: Clock = datetime.now) -> None:
        self.engine = engine
        self.clock = clock

    def add(self, tg_id: str, text: str) -> int:
        # Millisecond precision, matching the end of day_window.
        now = _to_millis(self.clock())
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(events).values(
                    text=text,
                    tg_id=str(tg_id),
                    created_at=now,
                    updated_at=now,
                )
            )
        event_id = int(result.inserted_primary_key[0])
        logger.debug("Event stored: id=%s tg_id=%s", event_id, tg_id)
        return event_id

    def list_between(
        self,
        tg_id: str,
        start: datetime,
        end: datetime,
    ) -> list[dict[str, Any]]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(events)
                .where(
                    events.c.tg_id == str(tg_id),
                    events.c.created_at >= start,
                    events.c.created_at <= end,
                )
                .order_by(events.c.created_at.asc(), events.c.id.asc())
            ).mappings().all()
        return [dict(row) for row in rows]

    def list_for_day(self, tg_id: str, day: datetime | None = None) -> list[dict[str, Any]]:
        start, end = day_window(day or self.clock())
        return self.list_between(tg_id, start, end)


def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    text_value = str(value).strip()
    return text_value or None


def _to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond // 1000 * 1000)
