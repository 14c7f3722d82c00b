"""
say_serif.l0_core
Foundational value objects and the debug log sink.

Public API:
- now_s, Outcome, SpeechRequest, ActiveSpeech, SpeechResult
- configure_debug_logging
"""

from .events import (  # noqa: F401
    now_s, Outcome,
    SpeechRequest, ActiveSpeech, SpeechResult,
)
from .debug_log import configure_debug_logging  # noqa: F401

__all__ = [
    "now_s", "Outcome",
    "SpeechRequest", "ActiveSpeech", "SpeechResult",
    "configure_debug_logging",
]
