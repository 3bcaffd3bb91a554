"""Markdown to chat-ready plain text.

Model output is markdown. Telegram gets it as a plain message, so markup is
stripped while the visible text stays as written. Checkbox items such as
``- [ ] call mom`` are kept verbatim (no task-list plugin), and source HTML
entities are passed through so that only the narrow set in
``decode_html_entities`` gets decoded.
"""

import re

from markdown_it import MarkdownIt
from markdown_it.token import Token


TELEGRAM_MAX_MESSAGE_LEN = 4000  # Telegram limit is 4096 UTF-16 code units

_HTML_ENTITIES = (
    ("&quot;", '"'),
    ("&#39;", "'"),
)

# text_join would fold entity tokens into decoded text
_md = MarkdownIt("commonmark").enable(["table", "strikethrough"]).disable("text_join")


def markdown_to_plain(markdown_text: str) -> str:
    tokens = _md.parse(markdown_text or "")
    out: list[str] = []

    for token in tokens:
        kind = token.type
        if kind == "inline":
            out.append(_render_inline(token.children or []))
        elif kind == "paragraph_close":
            out.append("\n" if token.hidden else "\n\n")
        elif kind == "heading_close":
            out.append("\n\n")
        elif kind == "list_item_open" and token.info:
            # ordered list: info holds the item number, markup the delimiter
            out.append(f"{token.info}{token.markup} ")
        elif kind in ("bullet_list_close", "ordered_list_close"):
            out.append("\n")
        elif kind in ("fence", "code_block"):
            out.append(token.content.rstrip("\n") + "\n\n")
        elif kind == "html_block":
            out.append(token.content)
        elif kind == "hr":
            out.append("\n")
        elif kind in ("th_close", "td_close"):
            out.append(" ")
        elif kind == "tr_close":
            out.append("\n")
        elif kind == "table_close":
            out.append("\n")

    text = "".join(out)
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _render_inline(children: list[Token]) -> str:
    parts: list[str] = []
    for child in children:
        kind = child.type
        if kind in ("text", "code_inline", "html_inline"):
            parts.append(child.content)
        elif kind == "text_special":
            # entities stay encoded, backslash escapes resolve to the literal char
            parts.append(child.markup if child.info == "entity" else child.content)
        elif kind in ("softbreak", "hardbreak"):
            parts.append("\n")
        elif kind == "image":
            parts.append(child.content)
    return "".join(parts)


def decode_html_entities(text: str) -> str:
    for entity, char in _HTML_ENTITIES:
        text = text.replace(entity, char)
    return text


def to_chat_text(markdown_text: str) -> str:
    return decode_html_entities(markdown_to_plain(markdown_text))


def utf16_len(text: str) -> int:
    """Length in UTF-16 code units, which is how Telegram counts message size."""
    return len(text.encode("utf-16-le")) // 2


def _fitting_prefix(text: str, max_len: int) -> int:
    units = 0
    for index, char in enumerate(text):
        units += 2 if ord(char) > 0xFFFF else 1
        if units > max_len:
            return index
    return len(text)


def split_message(text: str, max_len: int = TELEGRAM_MAX_MESSAGE_LEN) -> list[str]:
    """Split long messages into chunks at newline boundaries."""
    if utf16_len(text) <= max_len:
        return [text]

    chunks = []
    while utf16_len(text) > max_len:
        limit = max(_fitting_prefix(text, max_len), 1)
        split_at = text.rfind("\n", 0, limit)
        if split_at <= 0:
            split_at = limit
        chunks.append(text[:split_at])
        text = text[split_at:].lstrip("\n")
    if text:
        chunks.append(text)
    return chunks
