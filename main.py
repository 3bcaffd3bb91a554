import asyncio

from bootstrap import build_from_env


app_settings, telegram_app = build_from_env()

# Lambda reuses the process between invocations; the bot's HTTP session is
# bound to the loop it was created on, so keep one loop for its lifetime.
_loop: asyncio.AbstractEventLoop | None = None


def _get_loop() -> asyncio.AbstractEventLoop:
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop


def handler(event: dict, context):
    return _get_loop().run_until_complete(telegram_app.webhook_handler(event, context))


async def main():
    await telegram_app.run_polling()


if __name__ == "__main__":
    asyncio.run(main())
