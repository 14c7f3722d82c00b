from __future__ import annotations

import itertools
import subprocess
import threading
import time
from typing import Callable

import pytest

from say_serif.l1_drivers.process_supervisor import ProcessSupervisor
from say_serif.l3_domain.config import SpeechConfig
from say_serif.l3_domain.speech_manager import SpeechManager

_pids = itertools.count(40_000)


class FakeProcess:
    """Popen stand-in: exits when told to, records the signals it receives."""

    def __init__(self, args, exit_on_term: bool = True) -> None:
        self.args = list(args)
        self.pid = next(_pids)
        self.returncode = None
        self.signals: list[str] = []
        self.exit_on_term = exit_on_term
        self._exited = threading.Event()

    def poll(self):
        return self.returncode

    def finish(self, rc: int = 0) -> None:
        if self.returncode is None:
            self.returncode = rc
        self._exited.set()

    def wait(self, timeout=None):
        if not self._exited.wait(timeout):
            raise subprocess.TimeoutExpired(self.args, timeout)
        return self.returncode

    def terminate(self) -> None:
        self.signals.append("TERM")
        if self.exit_on_term:
            self.finish(-15)

    def kill(self) -> None:
        self.signals.append("KILL")
        self.finish(-9)


class FakeSpawner:
    """Replaces subprocess.Popen for the supervisor; records every command."""

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.processes: list[FakeProcess] = []
        self.error: Exception | None = None
        self.exit_on_term = True

    def __call__(self, command):
        if self.error is not None:
            raise self.error
        self.commands.append(list(command))
        proc = FakeProcess(command, exit_on_term=self.exit_on_term)
        self.processes.append(proc)
        return proc


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture
def make_manager(spawner, clock):
    """Build SpeechManagers wired to the fake spawner/clock with fast watcher timings."""
    created: list[SpeechManager] = []

    def _make(**overrides) -> SpeechManager:
        overrides.setdefault("poll_interval_s", 0.01)
        overrides.setdefault("grace_period_s", 0.05)
        cfg = SpeechConfig(**overrides)
        sup = ProcessSupervisor(
            hard_timeout=cfg.hard_timeout_s,
            poll_interval=cfg.poll_interval_s,
            grace_period=cfg.grace_period_s,
            spawn=spawner,
        )
        mgr = SpeechManager(config=cfg, supervisor=sup, clock=clock)
        created.append(mgr)
        return mgr

    yield _make

    for proc in spawner.processes:
        proc.finish(0)
    for mgr in created:
        mgr.shutdown(timeout=1.0)
