from dataclasses import dataclass


@dataclass(slots=True)
class TelegramConfig:
    bot_token: str
    webhook_secret: str | None = None
