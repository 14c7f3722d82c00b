from __future__ import annotations

from typing import Callable, Optional, Sequence
import subprocess
import threading
import logging
import time

DEFAULT_HARD_TIMEOUT = 300.0
DEFAULT_POLL_INTERVAL = 0.1
DEFAULT_GRACE_PERIOD = 0.2

Spawn = Callable[[Sequence[str]], subprocess.Popen]
ExitCallback = Callable[[subprocess.Popen], None]

log = logging.getLogger(__name__)


class EngineError(Exception):
    """The rendering command could not be started."""


class EngineNotFound(EngineError):
    """The rendering command is not installed or not on PATH."""


class EnginePermissionDenied(EngineError):
    """The rendering command exists but is not executable."""


def spawn_detached_output(command: Sequence[str]) -> subprocess.Popen:
    """Start ``command`` with every standard stream connected to the null device."""
    return subprocess.Popen(
        list(command),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )


class ProcessSupervisor:
    """
    Launches the external speech engine and watches each child process.

    Current capabilities:
    - Spawn the engine with output discarded; map spawn failures to EngineError.
    - One daemon watcher thread per child: waits for natural exit or, past
      the hard timeout, escalates TERM -> KILL and reaps the child.
    - Terminate a child on request (idempotent).

    The supervisor never owns the caller's bookkeeping. Each watcher calls
    the ``on_exit`` callback handed to ``launch`` exactly once as its final
    act, and the owner decides what to clear.
    """

    def __init__(self,
                 hard_timeout: float = DEFAULT_HARD_TIMEOUT,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 grace_period: float = DEFAULT_GRACE_PERIOD,
                 spawn: Optional[Spawn] = None,
                 logger: Optional[logging.Logger] = None) -> None:
        if hard_timeout <= 0 or poll_interval <= 0 or grace_period < 0:
            raise ValueError("timeouts must be positive")
        self._hard_timeout = hard_timeout
        self._poll_interval = poll_interval
        self._grace_period = grace_period
        self._spawn: Spawn = spawn or spawn_detached_output
        self._log = logger or log

        self._watchers: set[threading.Thread] = set()
        self._watchers_lock = threading.Lock()

    @property
    def hard_timeout(self) -> float:
        return self._hard_timeout

    @property
    def grace_period(self) -> float:
        return self._grace_period

    def launch(self, command: Sequence[str], on_exit: ExitCallback) -> subprocess.Popen:
        """
        Start ``command`` and register a background watcher for it.

        Returns immediately with the child's Popen handle; the watcher runs
        on its own daemon thread and invokes ``on_exit(proc)`` once the
        child has exited or been force-terminated.

        Raises:
            EngineNotFound: the executable could not be resolved.
            EnginePermissionDenied: the executable is not runnable.
            OSError: any other spawn failure (unexpected; propagated).
        """
        try:
            proc = self._spawn(command)
        except FileNotFoundError as e:
            raise EngineNotFound(f"{command[0]}: {e}") from e
        except PermissionError as e:
            raise EnginePermissionDenied(f"{command[0]}: {e}") from e

        self._note(logging.DEBUG, "spawned pid=%s cmd=%s", proc.pid, command[0])
        watcher = threading.Thread(
            target=self._watch,
            args=(proc, on_exit),
            name=f"say-watcher-{proc.pid}",
            daemon=True,
        )
        with self._watchers_lock:
            self._watchers.add(watcher)
        watcher.start()
        return proc

    def terminate(self, proc: subprocess.Popen) -> None:
        """
        Graceful-then-forceful termination: TERM, wait the grace period, KILL.

        Safe to call on a child that already exited; a vanished process is
        not an error. Does not reap beyond the grace wait: the watcher owns
        the final wait().
        """
        try:
            proc.terminate()
            try:
                proc.wait(timeout=self._grace_period)
                return
            except subprocess.TimeoutExpired:
                pass
            proc.kill()
            self._note(logging.DEBUG, "pid=%s killed after %.2fs grace", proc.pid, self._grace_period)
        except ProcessLookupError:
            pass

    def watcher_count(self) -> int:
        """Number of watcher threads still running."""
        with self._watchers_lock:
            return sum(1 for t in self._watchers if t.is_alive())

    def join_watchers(self, timeout: float = 1.0) -> None:
        """Wait (bounded) for all running watchers to finish."""
        deadline = time.monotonic() + timeout
        with self._watchers_lock:
            watchers = list(self._watchers)
        for t in watchers:
            if t is threading.current_thread():
                continue
            t.join(timeout=max(0.0, deadline - time.monotonic()))

    def _watch(self, proc: subprocess.Popen, on_exit: ExitCallback) -> None:
        """
        Watcher thread body; one per launched child.

        Polls liveness every poll interval. Past the hard timeout the child
        is terminated and reaped. ``on_exit`` always runs last, even if
        polling raised, so the owner's slot can never stay stuck.
        """
        started = time.monotonic()
        try:
            while proc.poll() is None:
                if time.monotonic() - started >= self._hard_timeout:
                    self._note(logging.WARNING, "pid=%s exceeded hard timeout %.1fs; terminating",
                               proc.pid, self._hard_timeout)
                    self.terminate(proc)
                    proc.wait()
                    break
                time.sleep(self._poll_interval)
            self._note(logging.DEBUG, "pid=%s exited rc=%s", proc.pid, proc.returncode)
        except Exception:
            self._note(logging.ERROR, "watcher for pid=%s failed", proc.pid, exc_info=True)
        finally:
            try:
                on_exit(proc)
            except Exception:
                self._note(logging.ERROR, "exit callback for pid=%s failed", proc.pid, exc_info=True)
            with self._watchers_lock:
                self._watchers.discard(threading.current_thread())

    def _note(self, level: int, msg: str, *args: object, exc_info: bool = False) -> None:
        try:
            self._log.log(level, msg, *args, exc_info=exc_info)
        except Exception:
            # diagnostics must never break a launch or a watcher
            pass
