from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

PHASE_INITIALIZING = "initializing"
PHASE_RUNNING = "running"
PHASE_TERMINATED = "terminated"


@dataclass
class EmissionHistory:
    """Runtime state owned by a single LineMonitor.

    ``last_emitted`` starts unset (None), which compares unequal to every
    valid byte, so the first sample is always emitted regardless of how many
    bits the configuration uses."""
    last_emitted: Optional[int] = None
    phase: str = PHASE_INITIALIZING

    ticks: int = 0
    emissions: int = 0
    last_sample: Optional[int] = None
