"""
rate.py
=======
Speed multiplier -> engine rate argument, and engine command construction.

macOS `say` takes words-per-minute via `-r`; 175 wpm is its nominal rate.
At the default speed no rate flag is passed so the engine keeps its own
(user-configured) voice rate.
"""

from __future__ import annotations

import math
from typing import Optional

DEFAULT_BASE_RATE = 175
DEFAULT_RATE_FLOOR = 80
DEFAULT_RATE_CEILING = 600


def rate_for_speed(speed: float, *,
                   default_speed: float = 1.0,
                   base_rate: int = DEFAULT_BASE_RATE,
                   floor: int = DEFAULT_RATE_FLOOR,
                   ceiling: int = DEFAULT_RATE_CEILING) -> Optional[int]:
    """
    Return the engine rate for ``speed``, or None to use the engine default.

    Rounds half up (262.5 -> 263), then clamps to [floor, ceiling].

    Example:
        >>> rate_for_speed(1.5)
        263
        >>> rate_for_speed(1.0) is None
        True
    """
    if speed == default_speed:
        return None
    rate = math.floor(base_rate * speed + 0.5)
    return max(floor, min(ceiling, rate))


def build_engine_command(text: str, rate: Optional[int], *,
                         engine: str = "say", rate_flag: str = "-r") -> list[str]:
    """Positional argv for the engine: ``[engine, (rate_flag, rate), text]``."""
    cmd = [engine]
    if rate is not None:
        cmd += [rate_flag, str(rate)]
    cmd.append(text)
    return cmd
