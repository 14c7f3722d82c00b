from __future__ import annotations

MIN_RETENTION_S = 60.0


class RecentRequestCache:
    """
    Time-windowed map: fingerprint -> last accepted timestamp (seconds).

    Responsibilities
    ---------------
    • Answer "was this request accepted within the dedupe window?".
    • Forget entries older than max(2 * window, 60s) on prune().

    Threading
    ---------
    Not synchronized. The owning SpeechManager calls every method while
    holding its lock.
    """

    def __init__(self, dedupe_window_s: float) -> None:
        if dedupe_window_s < 0:
            raise ValueError("dedupe_window_s must be >= 0")
        self._window = float(dedupe_window_s)
        self._seen: dict[str, float] = {}

    @property
    def window(self) -> float:
        return self._window

    def remember(self, key: str, now: float) -> None:
        self._seen[key] = now

    def last_seen(self, key: str) -> float | None:
        return self._seen.get(key)

    def is_recent(self, key: str, now: float) -> bool:
        """True if ``key`` was remembered less than one window before ``now``."""
        last = self._seen.get(key)
        return last is not None and (now - last) < self._window

    def prune(self, now: float) -> int:
        """Drop stale entries; returns how many were removed."""
        cutoff = now - max(self._window * 2, MIN_RETENTION_S)
        stale = [k for k, ts in self._seen.items() if ts < cutoff]
        for k in stale:
            del self._seen[k]
        return len(stale)

    def clear(self) -> None:
        self._seen.clear()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, key: object) -> bool:
        return key in self._seen
