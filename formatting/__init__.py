from .plaintext import (
    TELEGRAM_MAX_MESSAGE_LEN,
    decode_html_entities,
    markdown_to_plain,
    split_message,
    to_chat_text,
    utf16_len,
)

__all__ = [
    "TELEGRAM_MAX_MESSAGE_LEN",
    "decode_html_entities",
    "markdown_to_plain",
    "split_message",
    "to_chat_text",
    "utf16_len",
]
