from __future__ import annotations

import hashlib

DIGEST_CHARS = 16
SPEED_DECIMALS = 3


def fingerprint(clean_text: str, speed: float) -> str:
    """
    Stable identity of a (text, speed) pair, e.g. ``"1.000:185f8db32271fe25"``.

    Speed is fixed to three decimals so float noise (1.0 vs 1.0000000001)
    maps to the same key. A truncated SHA-256 is plenty here; a collision
    only makes dedupe a little more aggressive.
    """
    digest = hashlib.sha256(clean_text.encode("utf-8")).hexdigest()[:DIGEST_CHARS]
    return f"{speed:.{SPEED_DECIMALS}f}:{digest}"
