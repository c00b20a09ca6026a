import importlib.util
import sys
import builtins
from pathlib import Path

import pytest

from linemon.lines import Pull


def load_module():
    script = Path(__file__).resolve().parents[1] / "line-monitor.py"
    spec = importlib.util.spec_from_file_location("line_monitor", script)
    mod = importlib.util.module_from_spec(spec)
    sys.modules["line_monitor"] = mod
    assert spec.loader is not None
    spec.loader.exec_module(mod)
    return mod

# Expose helper for tests without explicit imports.
builtins.load_module = load_module


class CapturingLogger:
    """Minimal logger that matches the monitor's .emit(event, **fields) contract."""
    def __init__(self):
        self.events = []

    def emit(self, event: str, **fields):
        self.events.append((event, fields))

    def names(self):
        return [e for e, _ in self.events]


class FakeHardware:
    """Pin capability stub: records every call, reads levels from a dict."""
    def __init__(self, levels=None):
        self.levels = dict(levels or {})
        self.calls = []
        self.configured = {}
        self.shut_down = False

    def configure(self, pin, mode, pull=Pull.NONE):
        self.calls.append(("configure", pin, mode, pull))
        self.configured[pin] = (mode, pull)

    def read(self, pin):
        self.calls.append(("read", pin))
        return self.levels.get(pin, False)

    def write(self, pin, level):
        self.calls.append(("write", pin, level))
        self.levels[pin] = level

    def shutdown(self):
        self.shut_down = True


class FakeClock:
    """Deterministic clock: sleep() advances time instantly.

    ``on_sleep`` (if set) is called with the clock after each sleep, which lets a
    test script line changes between ticks.
    """
    def __init__(self, start=1000.0):
        self.t = start
        self.sleeps = []
        self.on_sleep = None

    def now(self):
        return self.t

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.t += seconds
        if self.on_sleep is not None:
            self.on_sleep(self)


class RecordingStream:
    def __init__(self):
        self.chunks = []
        self.flushes = 0

    def write(self, data: bytes):
        self.chunks.append(bytes(data))
        return len(data)

    def flush(self):
        self.flushes += 1

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)


@pytest.fixture
def logger():
    return CapturingLogger()


@pytest.fixture
def fake_hw():
    return FakeHardware()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stream():
    return RecordingStream()
