import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from integrations.telegram_bot import TelegramBotApp
from integrations.telegram_bot.app import FORBIDDEN_TEXT, SECRET_TOKEN_HEADER


logger = logging.getLogger(__name__)


def create_app(telegram_app: TelegramBotApp) -> FastAPI:
    app = FastAPI(title="Telegram Webhook", version="0.1.0")
    app.state.telegram_app = telegram_app

    @app.post("/webhook")
    async def receive_webhook(request: Request) -> PlainTextResponse:
        if not telegram_app.is_secret_token_valid(request.headers.get(SECRET_TOKEN_HEADER)):
            raise HTTPException(status_code=403, detail=FORBIDDEN_TEXT)

        raw_body = await request.body()
        status_code, body = await telegram_app.process_webhook_body(raw_body)
        logger.debug("Webhook processed: status=%s", status_code)
        return PlainTextResponse(body, status_code=status_code)

    return app


def build_app_from_env() -> FastAPI:
    from bootstrap import build_from_env

    _, telegram_app = build_from_env()
    return create_app(telegram_app)
