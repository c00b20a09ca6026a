from __future__ import annotations

from typing import Iterable, Sequence, Tuple

from .lines import LineBinding, Polarity

Reading = Tuple[int, bool, Polarity]


def is_active(raw_level: bool, polarity: Polarity) -> bool:
    """Normalize an electrical level to its logical meaning."""
    return bool(raw_level) if polarity is Polarity.ACTIVE_HIGH else not raw_level


def encode(readings: Iterable[Reading]) -> int:
    """Pack ``(bit_position, raw_level, polarity)`` readings into one byte.

    Bit ``n`` is set iff the reading at position ``n`` is active after polarity
    normalization; every other bit stays 0. Pure: no state, no hardware.
    """
    state = 0
    for bit, raw, polarity in readings:
        if is_active(raw, polarity):
            state |= 1 << bit
    return state


def describe(state: int, bindings: Sequence[LineBinding]) -> str:
    """Human-readable ``name=0/1`` rendering of a packed state for logs."""
    return " ".join(
        f"{b.label}={(state >> b.bit_position) & 1}"
        for b in bindings
        if b.senses
    )
