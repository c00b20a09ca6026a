from __future__ import annotations

from typing import Optional, Sequence

from .encoder import describe, encode
from .filter import ChangeFilter
from .gpio import Mode
from .lines import LineBinding, Pull, Role, power_sources, sensing
from .logging import JsonLogger
from .output import ByteSink
from .state import EmissionHistory, PHASE_INITIALIZING, PHASE_RUNNING, PHASE_TERMINATED
from .util import SystemClock


class LineMonitor:
    """Polling sampler for a fixed set of digital lines.

    Each tick reads every sensing line, packs the levels into one byte, passes it
    through the change filter, and writes it to the sink when it changed. Lines
    that change within the same tick are reported as one combined byte.

    The monitor borrows the hardware handle; it never creates or releases it."""
    def __init__(
        self,
        hw,
        bindings: Sequence[LineBinding],
        sink: ByteSink,
        logger: JsonLogger,
        interval_s: float,
        clock=None,
        emit_every_tick: bool = False,
        verbose: bool = False,
    ):
        """
        Initialize the monitor.

        ``bindings`` must already be validated (see lines.validate_bindings).
        Construction is side-effect free; hardware is touched by start().
        """
        if interval_s <= 0:
            raise ValueError(f"sample interval must be positive, got {interval_s!r}")
        self.hw = hw
        self.bindings = tuple(bindings)
        self.sink = sink
        self.logger = logger
        self.interval_s = float(interval_s)
        self.clock = clock if clock is not None else SystemClock()
        self.verbose = bool(verbose)

        self._sensing = sensing(self.bindings)
        self._power = power_sources(self.bindings)

        self.state = EmissionHistory()
        self.filter = ChangeFilter(self.state, emit_every_tick=emit_every_tick)

    # ---------------- Startup ----------------

    def activate_power_rail(self):
        """Drive every power-source line high, once, before sampling begins.

        The rail is never re-asserted; it stays driven for the process lifetime.
        """
        for b in self._power:
            self.hw.configure(b.pin, Mode.OUTPUT, Pull.NONE)
            self.hw.write(b.pin, True)
        if self._power:
            self.logger.emit("power_rail", pins=",".join(b.label for b in self._power))
        elif any(b.role is Role.POWERED_INPUT for b in self._sensing):
            self.logger.emit(
                "powered_input_without_rail",
                lines=",".join(b.label for b in self._sensing if b.role is Role.POWERED_INPUT),
            )

    def configure_inputs(self):
        for b in self._sensing:
            self.hw.configure(b.pin, Mode.INPUT, b.pull)

    def start(self):
        """Power the rail and configure inputs. Moves the monitor to running."""
        self.activate_power_rail()
        self.configure_inputs()
        self.state.phase = PHASE_RUNNING

    # ---------------- Sampling ----------------

    def sample(self) -> int:
        """Read every sensing line and return the packed state."""
        return encode((b.bit_position, self.hw.read(b.pin), b.polarity) for b in self._sensing)

    def tick(self) -> Optional[int]:
        """One sampling step. Returns the emitted byte, or None if unchanged."""
        self.state.ticks += 1
        emitted = self.filter.accept(self.sample())
        if emitted is None:
            return None
        self.sink.write(emitted)
        if self.verbose:
            self.logger.emit(
                "state",
                value=f"0x{emitted:02x}",
                lines=describe(emitted, self._sensing),
                tick=self.state.ticks,
            )
        return emitted

    def run(self, stop=None, max_ticks: Optional[int] = None):
        """Sample until ``stop`` is set or ``max_ticks`` ticks have run.

        Sleeps are scheduled against deadlines so the cadence does not drift
        with the time spent reading; a tick that overruns resyncs instead of
        bursting to catch up. Without ``stop`` or ``max_ticks`` the loop only
        ends by an exception (e.g. OutputFailure) or process termination.
        """
        if self.state.phase == PHASE_INITIALIZING:
            self.start()
        try:
            deadline = self.clock.now()
            while stop is None or not stop.is_set():
                if max_ticks is not None and self.state.ticks >= max_ticks:
                    break
                self.tick()
                if max_ticks is not None and self.state.ticks >= max_ticks:
                    break
                deadline += self.interval_s
                delay = deadline - self.clock.now()
                if delay < 0:
                    deadline = self.clock.now()
                    delay = 0.0
                self.clock.sleep(delay)
        finally:
            self.state.phase = PHASE_TERMINATED
