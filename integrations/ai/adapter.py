import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import requests


logger = logging.getLogger(__name__)


POST_INSTRUCTION = (
    "Now Act in the role of a senior content creator. Your task? Write captivating "
    "posts for LinkedIn use all the above information and write a single post with "
    "all above information. Each post should be brimming with creativity, utilizing "
    "stickers, hashtags, and engaging content to captivate your audience's attention. "
    "Dive deep into the art of storytelling, infusing each word with purpose and "
    "flair from the above information."
)
ASSISTANT_ACK = "yes, i can."
FOLLOW_UP = "Then please generate it more engaging?"


class LLMUserFacingError(Exception):
    pass


@dataclass(slots=True)
class SynthesisResult:
    text: str | None = None
    error: str | None = None
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text)


def build_messages(events: Sequence[str]) -> list[dict[str, Any]]:
    """Seed a two-turn conversation: the events plus the instruction, a canned
    assistant acknowledgement, then the final request."""
    parts: list[dict[str, str]] = [{"type": "text", "text": text} for text in events]
    parts.append({"type": "text", "text": POST_INSTRUCTION})
    return [
        {"role": "user", "content": parts},
        {"role": "assistant", "content": ASSISTANT_ACK},
        {"role": "user", "content": FOLLOW_UP},
    ]


class PostSynthesizer:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai",
        max_output_tokens: int = 10000,
        timeout_seconds: int = 120,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_output_tokens = max(1, max_output_tokens)
        self.timeout_seconds = max(5, timeout_seconds)
        self._session = session or requests.Session()

    def synthesize(self, events: Sequence[str]) -> SynthesisResult:
        events = [str(text) for text in events]
        if not events:
            raise ValueError("events must not be empty")

        try:
            data = self._call_model(build_messages(events))
            text = _parse_content(data)
        except LLMUserFacingError as exc:
            logger.warning("LLM user-facing error: %s", exc)
            return SynthesisResult(error=str(exc))
        except Exception as exc:
            logger.exception("LLM request failed (events=%s)", len(events))
            return SynthesisResult(error=f"LLM request failed: {exc}")

        if not text:
            logger.warning("LLM returned an empty post")
            return SynthesisResult(error="Empty response from model")

        usage = data.get("usage") or {}
        return SynthesisResult(
            text=text,
            prompt_tokens=_as_int(usage.get("prompt_tokens")),
            completion_tokens=_as_int(usage.get("completion_tokens")),
        )

    def _call_model(self, messages: list[dict[str, Any]]) -> dict[str, Any]:
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_output_tokens,
        }

        url = f"{self.base_url}/chat/completions"
        try:
            response = self._session.post(
                url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout_seconds,
            )
        except requests.Timeout as exc:
            logger.error("LLM timeout: %s", exc)
            raise LLMUserFacingError(
                "The model took too long to answer. Please try again."
            ) from exc
        except requests.RequestException as exc:
            logger.error("LLM network error: %s", exc)
            raise LLMUserFacingError(
                "No connection to the model API."
            ) from exc

        if response.status_code >= 400:
            body = response.text or ""
            logger.error("LLM HTTP error %s: %s", response.status_code, body[:500])
            api_code = None
            try:
                error_payload = response.json()
                error_data = error_payload.get("error") if isinstance(error_payload, dict) else None
                if isinstance(error_data, dict):
                    api_code = error_data.get("code") or error_data.get("status")
            except ValueError:
                pass

            if response.status_code in (401, 403):
                raise LLMUserFacingError(
                    "Model API rejected the key or has no access to the model."
                )
            if response.status_code == 429 and api_code in (
                "insufficient_quota",
                "RESOURCE_EXHAUSTED",
            ):
                raise LLMUserFacingError("Model API quota is exhausted.")
            if response.status_code == 429:
                raise LLMUserFacingError(
                    "Model API is rate limiting requests. Please try again later."
                )
            if 500 <= response.status_code < 600:
                raise LLMUserFacingError(
                    "Model API is temporarily unavailable. Please try again later."
                )
            raise RuntimeError(f"LLM HTTP error {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise RuntimeError(
                f"LLM returned non-JSON response (HTTP {response.status_code})"
            ) from exc
        if not isinstance(data, dict):
            raise RuntimeError("Unexpected LLM response format")
        return data


def _parse_content(data: dict[str, Any]) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        logger.error("Unexpected LLM response format: %r", data)
        raise RuntimeError("Unexpected LLM response format") from exc

    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                parts.append(str(item.get("text", "")))
        content = "\n".join(part for part in parts if part)

    return str(content or "").strip()


def _as_int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0
