import asyncio
import base64
import hmac
import json
import logging
import signal
from typing import Protocol, Sequence

from aiogram import Bot, Dispatcher, F
from aiogram.exceptions import TelegramConflictError
from aiogram.filters import Command, CommandStart
from aiogram.types import Message, Update

from db import Clock, EventStore, TelegramProfile, UserStore, day_window
from formatting import split_message, to_chat_text
from integrations.ai import SynthesisResult

from .config import TelegramConfig


logger = logging.getLogger(__name__)


WELCOME_TEXT = (
    "👋 Welcome to DailyChronicleBot! {first_name},\n\n"
    "🌟 Hey! I'm thrilled to welcome you to DailyChronicleBot – your personal day "
    "companion right here on Telegram. 🚀\n\n"
    "📝 Let's embark on a journey together where keeping track of your daily "
    "activities is as easy as having a conversation. Just chat with me, and I'll "
    "help you record your adventures, achievements, and everything in between.\n\n"
    "✨ At the end of the day, I'll weave your day's events into a beautifully "
    "crafted social media post, making sure your moments worth sharing shine bright.\n"
    "🎉"
)
GENERIC_ERROR_TEXT = "There is something wrong please try again later."
STORE_ERROR_TEXT = "Something went wrong in server."
NO_EVENTS_TEXT = "No event for the day. Keep adding events to generate."
NOTED_TEXT = (
    "Noted 👍, Keep texting me your thoughts. To generate the posts. "
    "simply enter the command:  /generate"
)
LLM_NOT_CONFIGURED_TEXT = "Post generation is not configured. Add GOOGLE_API_KEY to .env"
TEXT_ONLY_TEXT = "I currently support text messages only."
WEBHOOK_ERROR_TEXT = "This endpoint is meant for bot and telegram communication"
FORBIDDEN_TEXT = "Invalid webhook secret token"

SECRET_TOKEN_HEADER = "X-Telegram-Bot-Api-Secret-Token"


class PostService(Protocol):
    def synthesize(self, events: Sequence[str]) -> SynthesisResult:
        ...


class TelegramBotApp:
    def __init__(
        self,
        config: TelegramConfig,
        user_store: UserStore,
        event_store: EventStore,
        post_service: PostService | None = None,
        clock: Clock | None = None,
        bot: Bot | None = None,
    ) -> None:
        self.config = config
        self.user_store = user_store
        self.event_store = event_store
        self.post_service = post_service
        self.clock = clock or event_store.clock
        self.bot = bot or Bot(token=config.bot_token)
        self.dp = Dispatcher()
        self.shutdown_requested = asyncio.Event()
        self._register_handlers()

    def _register_handlers(self) -> None:
        self.dp.message.register(self.handle_start, CommandStart())
        self.dp.message.register(self.handle_generate, Command("generate"))
        self.dp.message.register(self.handle_text, F.text)
        self.dp.message.register(self.handle_unsupported)

    async def handle_start(self, message: Message) -> None:
        sender = message.from_user
        if sender is None:
            return

        profile = TelegramProfile(
            tg_id=str(sender.id),
            first_name=sender.first_name,
            last_name=sender.last_name,
            is_bot=sender.is_bot,
            username=sender.username,
        )
        try:
            await asyncio.to_thread(self.user_store.get_or_create, profile)
        except Exception:
            logger.exception("Failed to store user tg_id=%s", profile.tg_id)
            await self._reply(message, GENERIC_ERROR_TEXT)
            return

        await self._reply(message, WELCOME_TEXT.format(first_name=sender.first_name))

    async def handle_generate(self, message: Message) -> None:
        sender = message.from_user
        if sender is None:
            return
        tg_id = str(sender.id)

        start, end = day_window(self.clock())
        try:
            day_events = await asyncio.to_thread(
                self.event_store.list_between, tg_id, start, end
            )
        except Exception:
            logger.exception("Failed to load events for tg_id=%s", tg_id)
            await self._reply(message, GENERIC_ERROR_TEXT)
            return

        if not day_events:
            await self._reply(message, NO_EVENTS_TEXT)
            return

        if self.post_service is None:
            await self._reply(message, LLM_NOT_CONFIGURED_TEXT)
            return

        logger.info("Generating post: tg_id=%s events=%s", tg_id, len(day_events))
        result = await asyncio.to_thread(
            self.post_service.synthesize,
            [event["text"] for event in day_events],
        )
        if not result.ok:
            logger.warning("Post generation failed for tg_id=%s: %s", tg_id, result.error)
            await self._reply(message, GENERIC_ERROR_TEXT)
            return

        await self._reply(message, to_chat_text(result.text or ""))

        try:
            await asyncio.to_thread(
                self.user_store.add_token_usage,
                tg_id,
                prompt_tokens=result.prompt_tokens,
                completion_tokens=result.completion_tokens,
            )
        except Exception:
            logger.exception("Failed to record token usage for tg_id=%s (ignored)", tg_id)

    async def handle_text(self, message: Message) -> None:
        sender = message.from_user
        if sender is None or not message.text:
            return

        try:
            await asyncio.to_thread(self.event_store.add, str(sender.id), message.text)
        except Exception:
            logger.exception("Failed to store event for tg_id=%s", sender.id)
            await self._reply(message, STORE_ERROR_TEXT)
            return

        await self._reply(message, NOTED_TEXT)

    async def handle_unsupported(self, message: Message) -> None:
        logger.info(
            "Unsupported message: chat_id=%s type=%s",
            message.chat.id,
            message.content_type,
        )
        await self._reply(message, TEXT_ONLY_TEXT)

    async def _reply(self, message: Message, text: str) -> None:
        for chunk in split_message(text or "(empty)"):
            await message.answer(chunk)

    async def process_webhook_body(self, body: str | bytes | None) -> tuple[int, str]:
        try:
            update_data = json.loads(body or "")
            update = Update.model_validate(update_data, context={"bot": self.bot})
            await self.dp.feed_update(self.bot, update)
        except Exception:
            logger.exception("Error in webhook handler")
            return 400, WEBHOOK_ERROR_TEXT
        return 200, ""

    def is_secret_token_valid(self, received: str | None) -> bool:
        expected = self.config.webhook_secret
        if not expected:
            return True
        return hmac.compare_digest((received or "").encode("utf-8"), expected.encode("utf-8"))

    async def webhook_handler(self, event: dict, context) -> dict:
        del context
        headers = {str(k).lower(): v for k, v in (event.get("headers") or {}).items()}
        if not self.is_secret_token_valid(headers.get(SECRET_TOKEN_HEADER.lower())):
            logger.warning("Webhook call rejected: missing or wrong secret token")
            return {"statusCode": 403, "body": FORBIDDEN_TEXT}

        body = event.get("body")
        if body and event.get("isBase64Encoded"):
            try:
                body = base64.b64decode(body)
            except ValueError:
                logger.exception("Webhook body is not valid base64")
                return {"statusCode": 400, "body": WEBHOOK_ERROR_TEXT}

        status_code, response_body = await self.process_webhook_body(body)
        return {"statusCode": status_code, "body": response_body}

    def request_shutdown(self, signame: str | None = None) -> None:
        logger.info("Shutdown requested (%s)", signame or "manual")
        self.shutdown_requested.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
            except (NotImplementedError, RuntimeError):
                logger.warning("Cannot install handler for %s on this platform", sig.name)

    async def run_polling(self) -> None:
        # If webhook was configured in another deployment, polling may fail or conflict.
        await self.bot.delete_webhook(drop_pending_updates=False)
        self._install_signal_handlers()
        logger.info("Bot started")
        polling_task = asyncio.create_task(
            self.dp.start_polling(self.bot, handle_signals=False)
        )
        shutdown_task = asyncio.create_task(self.shutdown_requested.wait())

        done, pending = await asyncio.wait(
            {polling_task, shutdown_task},
            return_when=asyncio.FIRST_COMPLETED,
        )

        if shutdown_task in done and not polling_task.done():
            logger.info("Stopping polling")
            try:
                await self.dp.stop_polling()
            except RuntimeError:
                logger.info("Polling is already stopping")

        for task in pending:
            if task is not polling_task:
                task.cancel()
        await asyncio.gather(
            *(task for task in pending if task is not polling_task),
            return_exceptions=True,
        )
        try:
            await polling_task
        except asyncio.CancelledError:
            logger.info("Bot polling task cancelled")
            raise
        except TelegramConflictError:
            logger.error(
                "Polling conflict: another bot instance is already using getUpdates "
                "for this BOT_TOKEN. Stop the other instance or disable webhook/polling there."
            )
            raise
        finally:
            await self.bot.session.close()
