from __future__ import annotations

from typing import Optional

from .state import EmissionHistory


class ChangeFilter:
    """Debounce-by-difference gate in front of the output sink.

    A sample passes only when it differs from the last emitted value; repeated
    samples of a stable line produce no output. With ``emit_every_tick`` every
    sample passes (the behaviour of the original leak-sensor utility).
    """
    def __init__(self, history: EmissionHistory, emit_every_tick: bool = False):
        self.history = history
        self.emit_every_tick = bool(emit_every_tick)

    def accept(self, new_state: int) -> Optional[int]:
        """Return ``new_state`` and record it if it should be emitted, else None."""
        self.history.last_sample = new_state
        if not self.emit_every_tick and new_state == self.history.last_emitted:
            return None
        self.history.last_emitted = new_state
        self.history.emissions += 1
        return new_state

