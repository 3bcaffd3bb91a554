from .adapter import LLMUserFacingError, PostSynthesizer, SynthesisResult, build_messages
from .config import LLMConfig
from .factory import build_post_synthesizer

__all__ = [
    "LLMConfig",
    "LLMUserFacingError",
    "PostSynthesizer",
    "SynthesisResult",
    "build_messages",
    "build_post_synthesizer",
]
