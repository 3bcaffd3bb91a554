from dataclasses import dataclass


GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai"


@dataclass(slots=True)
class LLMConfig:
    api_key: str | None
    model: str = "gemini-2.0-flash"
    base_url: str = GEMINI_OPENAI_BASE_URL
    max_output_tokens: int = 10000
    timeout_seconds: int = 120
