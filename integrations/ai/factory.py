import logging

from .adapter import PostSynthesizer
from .config import LLMConfig


logger = logging.getLogger(__name__)


def build_post_synthesizer(config: LLMConfig) -> PostSynthesizer | None:
    if not config.api_key:
        logger.warning("LLM API key is not configured, /generate is disabled")
        return None

    return PostSynthesizer(
        api_key=config.api_key,
        model=config.model,
        base_url=config.base_url,
        max_output_tokens=config.max_output_tokens,
        timeout_seconds=config.timeout_seconds,
    )
