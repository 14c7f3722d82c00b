from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from subprocess import Popen


class Outcome(str, Enum):
    STARTED = "started"
    EMPTY_TEXT = "empty_text"
    INVALID_SPEED = "invalid_speed"
    ALREADY_RUNNING = "already_running"
    BUSY = "busy"
    DEDUPED = "deduped"
    ENGINE_NOT_FOUND = "engine_not_found"
    ENGINE_NOT_EXECUTABLE = "engine_not_executable"
    STOPPED = "stopped"
    NOTHING_TO_STOP = "nothing_to_stop"


def now_s() -> float:
    """Wall-clock seconds; used for dedupe bookkeeping (second resolution is enough)."""
    return time.time()


@dataclass(frozen=True, slots=True)
class SpeechRequest:
    """
    Ephemeral speech request, built after sanitizing the caller's text.

    Fields:
      - text: speakable plain text (Markdown already removed, never empty)
      - speed: multiplier on the engine's nominal rate
      - fingerprint: dedupe / identity key derived from (text, speed)
    """
    text: str
    speed: float
    fingerprint: str


@dataclass(frozen=True, slots=True)
class ActiveSpeech:
    """
    The one rendering process currently allowed to run.

    Owned by SpeechManager and only replaced or cleared under its lock.
    `process` is compared by identity when a watcher clears the slot.
    """
    process: Popen
    fingerprint: str
    started_at: float

    @property
    def pid(self) -> int:
        return self.process.pid


@dataclass(frozen=True, slots=True)
class SpeechResult:
    """
    Typed outcome of a speak/stop call.

    `message` is the short human-readable string handed back to callers;
    `outcome` lets in-process callers branch without parsing text.
    """
    outcome: Outcome
    message: str

    def __str__(self) -> str:
        return self.message
