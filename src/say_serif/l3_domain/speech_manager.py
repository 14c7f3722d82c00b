"""
speech_manager.py
=================
Single-flight speech controller.

This class wraps:
- L2 markdown / fingerprint / recent_cache / rate to turn caller text into
  an engine command and a dedupe key.
- L1 ProcessSupervisor to launch, watch and terminate the engine process.

Design:
- One lock guards the active slot and the recent-request cache.
- Contention never queues: callers get "busy", "already running" or
  "deduped" back immediately.
- Expected conditions come back as outcome messages, not exceptions.

Usage:
    from say_serif.l3_domain.speech_manager import SpeechManager

    mgr = SpeechManager()
    print(mgr.speak("**Hello** world"))   # Speech started (...)
    print(mgr.stop())                     # Stopped speech (1).
"""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import Callable, Optional

from say_serif.l0_core.events import (
    ActiveSpeech, Outcome, SpeechRequest, SpeechResult, now_s,
)
from say_serif.l1_drivers.process_supervisor import (
    EngineNotFound, EnginePermissionDenied, ProcessSupervisor,
)
from say_serif.l2_speech.fingerprint import fingerprint
from say_serif.l2_speech.markdown import strip_markdown
from say_serif.l2_speech.rate import build_engine_command, rate_for_speed
from say_serif.l2_speech.recent_cache import RecentRequestCache
from say_serif.l3_domain.config import SpeechConfig

log = logging.getLogger(__name__)

MSG_EMPTY_TEXT = "Text is empty."
MSG_SPEED_NOT_POSITIVE = "Invalid speed (must be a positive number)."
MSG_ALREADY_RUNNING = "Speech already running."
MSG_DEDUPED = "Speech request deduped."
MSG_ENGINE_NOT_FOUND = "Speech engine command not found."
MSG_ENGINE_NOT_EXECUTABLE = "Speech engine is not executable."
MSG_STOPPED = "Stopped speech (1)."
MSG_NOTHING_TO_STOP = "Nothing to stop (no active speech)."
MSG_IDLE = "Idle."


def format_speed(speed: float) -> str:
    return str(float(round(speed, 3)))


class SpeechManager:
    """
    Decides whether a speech request may run and tracks the one that does.

    Responsibilities
    ---------------
    • Sanitize text, validate speed, fingerprint the request.
    • Under the lock: reject while another utterance is active, drop
      duplicates inside the dedupe window, otherwise launch the engine and
      install the ActiveSpeech record.
    • stop(): clear the slot under the lock, terminate outside it.

    Threading
    ---------
    speak/stop may be called from any thread. Watcher threads (one per
    engine process) report back through ``_on_process_exit``, which takes
    the same lock and clears the slot only if it still holds their process.
    """

    def __init__(self,
                 config: Optional[SpeechConfig] = None,
                 supervisor: Optional[ProcessSupervisor] = None,
                 clock: Callable[[], float] = now_s,
                 logger: Optional[logging.Logger] = None) -> None:
        self._cfg = config or SpeechConfig()
        self._log = logger or log  # injectable debug sink, shared with the supervisor
        self._supervisor = supervisor or ProcessSupervisor(
            hard_timeout=self._cfg.hard_timeout_s,
            poll_interval=self._cfg.poll_interval_s,
            grace_period=self._cfg.grace_period_s,
            logger=self._log,
        )
        self._clock = clock

        self._lock = threading.Lock()
        self._active: Optional[ActiveSpeech] = None
        self._recent = RecentRequestCache(self._cfg.dedupe_window_s)

    @property
    def config(self) -> SpeechConfig:
        return self._cfg

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    def speak(self, text: object, speed: object = None) -> str:
        """Request speech; returns a short outcome message."""
        return self.request(text, speed).message

    def stop(self) -> str:
        """Stop the active speech, if any; returns a short outcome message."""
        return self.cancel().message

    def request(self, text: object, speed: object = None) -> SpeechResult:
        """
        Typed variant of speak().

        Steps:
        1. Strip Markdown; empty text is rejected.
        2. Validate speed (``None`` means the configured default).
        3. Fingerprint; prune the recent cache.
        4. Atomically: already running / busy / deduped, or remember the
           fingerprint, launch the engine and install ActiveSpeech.
        """
        clean = strip_markdown(text)
        if not clean:
            return self._result(Outcome.EMPTY_TEXT, MSG_EMPTY_TEXT)

        if speed is None:
            speed = self._cfg.default_speed
        invalid = self._validate_speed(speed)
        if invalid is not None:
            return invalid

        speed_f = float(speed)  # type: ignore[arg-type]
        req = SpeechRequest(text=clean, speed=speed_f, fingerprint=fingerprint(clean, speed_f))
        now = self._clock()

        with self._lock:
            self._recent.prune(now)

            active = self._active
            if active is not None:
                if active.fingerprint == req.fingerprint:
                    return self._result(Outcome.ALREADY_RUNNING, MSG_ALREADY_RUNNING)
                return self._result(
                    Outcome.BUSY,
                    f"Speech busy (concurrency limit {self._cfg.concurrency_limit}).",
                )

            if self._recent.is_recent(req.fingerprint, now):
                return self._result(Outcome.DEDUPED, MSG_DEDUPED)
            self._recent.remember(req.fingerprint, now)

            try:
                proc = self._supervisor.launch(self._command_for(req), self._on_process_exit)
            except EngineNotFound as e:
                self._debug("launch failed: %s", e)
                return self._result(Outcome.ENGINE_NOT_FOUND, MSG_ENGINE_NOT_FOUND)
            except EnginePermissionDenied as e:
                self._debug("launch failed: %s", e)
                return self._result(Outcome.ENGINE_NOT_EXECUTABLE, MSG_ENGINE_NOT_EXECUTABLE)

            self._active = ActiveSpeech(process=proc, fingerprint=req.fingerprint, started_at=now)

        return self._result(Outcome.STARTED, self._started_message(speed_f))

    def cancel(self) -> SpeechResult:
        """
        Typed variant of stop().

        The slot is cleared before the process is signalled, so a racing
        watcher finds nothing to clear and new requests are not told
        "busy" while termination is still in progress.
        """
        with self._lock:
            active = self._active
            if active is None:
                return self._result(Outcome.NOTHING_TO_STOP, MSG_NOTHING_TO_STOP)
            self._active = None

        self._supervisor.terminate(active.process)
        return self._result(Outcome.STOPPED, MSG_STOPPED)

    def active(self) -> Optional[ActiveSpeech]:
        """Snapshot of the active slot (immutable record or None)."""
        with self._lock:
            return self._active

    def status(self) -> str:
        with self._lock:
            active = self._active
        if active is None:
            return MSG_IDLE
        elapsed = max(0.0, self._clock() - active.started_at)
        return f"Speaking (pid={active.pid}, elapsed={elapsed:.1f}s)."

    def shutdown(self, timeout: float = 1.0) -> None:
        """Stop any active speech and wait (bounded) for watchers to exit."""
        self.cancel()
        self._supervisor.join_watchers(timeout=timeout)

    def __enter__(self) -> "SpeechManager":
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    def _on_process_exit(self, proc: subprocess.Popen) -> None:
        """Watcher callback: compare-and-clear under the lock."""
        with self._lock:
            if self._active is not None and self._active.process is proc:
                self._active = None
                self._debug("pid=%s finished; slot cleared", proc.pid)

    def _validate_speed(self, speed: object) -> Optional[SpeechResult]:
        if isinstance(speed, bool) or not isinstance(speed, (int, float)) or not speed > 0:
            return self._result(Outcome.INVALID_SPEED, MSG_SPEED_NOT_POSITIVE)
        if speed < self._cfg.min_speed or speed > self._cfg.max_speed:
            return self._result(
                Outcome.INVALID_SPEED,
                f"Invalid speed (supported range: {self._cfg.min_speed}..{self._cfg.max_speed}).",
            )
        return None

    def _command_for(self, req: SpeechRequest) -> list[str]:
        cfg = self._cfg
        rate = rate_for_speed(
            req.speed,
            default_speed=cfg.default_speed,
            base_rate=cfg.base_rate,
            floor=cfg.rate_floor,
            ceiling=cfg.rate_ceiling,
        )
        return build_engine_command(req.text, rate, engine=cfg.engine, rate_flag=cfg.rate_flag)

    def _started_message(self, speed: float) -> str:
        cfg = self._cfg
        return (
            f"Speech started (engine={cfg.engine}, mode=async, speed={format_speed(speed)}x, "
            f"hard_timeout={float(cfg.hard_timeout_s)}s, dedupe={float(cfg.dedupe_window_s)}s, "
            f"concurrency={cfg.concurrency_limit})"
        )

    def _debug(self, msg: str, *args: object) -> None:
        try:
            self._log.debug(msg, *args)
        except Exception:
            # a broken debug sink must not fail the request
            pass

    def _result(self, outcome: Outcome, message: str) -> SpeechResult:
        self._debug("%s: %s", outcome.value, message)
        return SpeechResult(outcome=outcome, message=message)
