from __future__ import annotations

import sys

from .config import MonitorConfig
from .encoder import encode, is_active
from .lines import sensing
from .monitor import LineMonitor
from .util import SystemClock


class _NullSink:
    """Sink that drops bytes; doctor mode never writes to stdout."""
    bytes_written = 0

    def write(self, state: int):
        pass


class _NullLogger:
    def emit(self, event: str, **fields):
        pass


def run_doctor(hw, mc: MonitorConfig, seconds: float, out=None, clock=None) -> int:
    """Report wiring and live line levels on ``out`` (stderr by default).

    Drives the power rail and configures inputs exactly as the monitor does,
    then samples at the configured interval for ``seconds``. A full report is
    printed on every state change and at least every 0.5 s otherwise.
    Returns the number of state changes observed.
    """
    out = out if out is not None else sys.stderr
    clock = clock if clock is not None else SystemClock()
    lines = sensing(mc.bindings)

    print("Doctor Mode (safe):", file=out)
    print("  - No bytes are written to stdout.", file=out)
    print("  - Toggle each input to see it change.", file=out)
    print("  Ctrl+C to exit.", file=out)
    print(file=out)
    for b in mc.bindings:
        if b.senses:
            print(f"  bit{b.bit_position}: {b.label} pin={b.pin} role={b.role.value} "
                  f"pull={b.pull.value} polarity={b.polarity.value}", file=out)
        else:
            print(f"  rail: {b.label} pin={b.pin} (driven high)", file=out)
    print(f"  interval={mc.interval_s * 1000.0:g}ms factory={mc.pin_factory}", file=out)
    print(file=out)

    mon = LineMonitor(hw, mc.bindings, _NullSink(), _NullLogger(), mc.interval_s, clock=clock)
    mon.start()

    last_state = None
    last_print = None
    changes = 0
    t0 = clock.now()
    try:
        while clock.now() - t0 < seconds:
            raw = [(b, hw.read(b.pin)) for b in lines]
            state = encode((b.bit_position, level, b.polarity) for b, level in raw)
            now = clock.now()
            changed = last_state is not None and state != last_state
            if changed:
                changes += 1
            if changed or last_print is None or now - last_print >= 0.5:
                detail = " ".join(
                    f"{b.label}=raw:{int(level)}/active:{int(is_active(level, b.polarity))}"
                    for b, level in raw
                )
                marker = "CHANGE" if changed else "state"
                print(f"  {marker} 0x{state:02x} {detail}", file=out, flush=True)
                last_print = now
            last_state = state
            clock.sleep(mc.interval_s)
    except KeyboardInterrupt:
        pass

    print(file=out)
    if changes == 0:
        print("  WARN: no transitions observed (check wiring/pull/polarity).", file=out)
    else:
        print(f"  OK: transitions observed ({changes}).", file=out)
    print("Doctor complete.", file=out)
    return changes
