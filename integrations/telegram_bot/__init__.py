from .app import TelegramBotApp
from .config import TelegramConfig

__all__ = ["TelegramBotApp", "TelegramConfig"]
