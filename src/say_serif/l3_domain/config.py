from __future__ import annotations
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any
import json

import yaml


@dataclass(frozen=True, slots=True)
class SpeechConfig:
    """
    Immutable tuning for the speech controller.

    Fields
    ------
    engine : str
        Rendering command resolved on PATH (macOS ``say`` by default).
    rate_flag : str
        Flag that introduces the engine's rate argument.
    default_speed, min_speed, max_speed : float
        Accepted speed multipliers; the default passes no rate flag.
    base_rate : int
        Engine rate (words per minute) at speed 1.0.
    rate_floor, rate_ceiling : int
        Clamp for the translated rate.
    concurrency_limit : int
        Simultaneous utterances. Only 1 is supported; voices must not overlap.
    dedupe_window_s : float
        An identical request inside this window is dropped.
    hard_timeout_s : float
        Safety valve for a wedged engine process.
    poll_interval_s, grace_period_s : float
        Watcher liveness poll and TERM -> KILL grace.
    """
    engine: str = "say"
    rate_flag: str = "-r"
    default_speed: float = 1.0
    min_speed: float = 0.25
    max_speed: float = 4.0
    base_rate: int = 175
    rate_floor: int = 80
    rate_ceiling: int = 600
    concurrency_limit: int = 1
    dedupe_window_s: float = 30.0
    hard_timeout_s: float = 300.0
    poll_interval_s: float = 0.1
    grace_period_s: float = 0.2

    def __post_init__(self) -> None:
        if not self.engine or not self.engine.strip():
            raise ValueError("engine must be a non-empty command name")
        if not (0 < self.min_speed <= self.default_speed <= self.max_speed):
            raise ValueError("speeds must satisfy 0 < min_speed <= default_speed <= max_speed")
        if self.base_rate <= 0:
            raise ValueError("base_rate must be positive")
        if not (0 < self.rate_floor <= self.rate_ceiling):
            raise ValueError("rate bounds must satisfy 0 < rate_floor <= rate_ceiling")
        if self.concurrency_limit != 1:
            raise ValueError("concurrency_limit must be 1 (single active utterance)")
        if self.dedupe_window_s < 0:
            raise ValueError("dedupe_window_s must be >= 0")
        if self.hard_timeout_s <= 0 or self.poll_interval_s <= 0:
            raise ValueError("hard_timeout_s and poll_interval_s must be positive")
        if self.grace_period_s < 0:
            raise ValueError("grace_period_s must be >= 0")

    def with_overrides(self, **overrides: Any) -> "SpeechConfig":
        """Copy with the given fields replaced; ``None`` values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


_FIELD_NAMES = frozenset(f.name for f in fields(SpeechConfig))


def load_config(path: str | Path) -> SpeechConfig:
    """
    Load a SpeechConfig from a YAML or JSON file. Omitted keys keep defaults.

    Supported shapes:
      YAML:
        engine: say
        dedupe_window_s: 10
        hard_timeout_s: 120

      JSON:
        {"engine": "espeak", "rate_flag": "-s", "base_rate": 160}

    Raises FileNotFoundError / ValueError on bad input.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yml", ".yaml"}:
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"{p}: top level must be a mapping")

    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        raise ValueError(f"{p}: unknown keys {', '.join(unknown)}")

    return SpeechConfig(**data)
