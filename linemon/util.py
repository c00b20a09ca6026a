from __future__ import annotations

import time


def now_s() -> float:
    """Monotonic clock in seconds."""
    return time.monotonic()


class SystemClock:
    """Wall-clock time source for the sampling loop.

    Tests substitute an object with the same ``now()``/``sleep()`` pair to run
    the loop without real delays."""
    def now(self) -> float:
        return now_s()

    def sleep(self, seconds: float):
        if seconds > 0:
            time.sleep(seconds)
