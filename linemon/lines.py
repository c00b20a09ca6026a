from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple, Union

from .constants import MAX_SENSE_LINES

PinSpec = Union[int, str]


class ConfigError(ValueError):
    """Raised for invalid presets, line specs, or binding layouts."""


class Role(str, enum.Enum):
    INPUT = "input"
    POWERED_INPUT = "powered_input"
    POWER_SOURCE = "power_source"


class Pull(str, enum.Enum):
    NONE = "none"
    UP = "up"
    DOWN = "down"


class Polarity(str, enum.Enum):
    ACTIVE_HIGH = "active_high"
    ACTIVE_LOW = "active_low"


# Spellings used by the various GPIO libraries for the same settings.
_ALIASES = {
    "off": "none",
    "floating": "none",
    "pull_up": "up",
    "pull_down": "down",
    "high": "active_high",
    "low": "active_low",
}


def _parse_enum(kind, value, what: str):
    if isinstance(value, kind):
        return value
    text = str(value).strip().lower().replace("-", "_")
    text = _ALIASES.get(text, text)
    try:
        return kind(text)
    except ValueError:
        choices = ", ".join(m.value for m in kind)
        raise ConfigError(f"invalid {what} {value!r} (expected one of: {choices})") from None


@dataclass(frozen=True)
class LineBinding:
    """One hardware line and how it maps into the output byte.

    Sensing lines (``input`` / ``powered_input``) own a bit position; a
    ``power_source`` line is driven high at startup and owns no bit.
    """
    pin: PinSpec
    role: Role = Role.INPUT
    pull: Pull = Pull.NONE
    polarity: Polarity = Polarity.ACTIVE_HIGH
    bit_position: Optional[int] = None
    name: str = ""

    @property
    def senses(self) -> bool:
        return self.role is not Role.POWER_SOURCE

    @property
    def label(self) -> str:
        return self.name or str(self.pin)

    def to_dict(self) -> dict:
        d = {
            "pin": self.pin,
            "role": self.role.value,
            "pull": self.pull.value,
            "polarity": self.polarity.value,
        }
        if self.bit_position is not None:
            d["bit"] = self.bit_position
        if self.name:
            d["name"] = self.name
        return d


def _coerce_pin(value) -> PinSpec:
    if isinstance(value, bool):
        raise ConfigError(f"invalid pin {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        raise ConfigError("empty pin")
    return int(text) if text.isdigit() else text


def binding_from_dict(d: dict) -> LineBinding:
    """Build a LineBinding from a TOML ``[[lines]]`` table."""
    if "pin" not in d:
        raise ConfigError(f"line is missing 'pin': {d!r}")
    bit = d.get("bit", d.get("bit_position"))
    if bit is not None and (isinstance(bit, bool) or not isinstance(bit, int)):
        raise ConfigError(f"invalid bit {bit!r} for pin {d['pin']!r}")
    return LineBinding(
        pin=_coerce_pin(d["pin"]),
        role=_parse_enum(Role, d.get("role", Role.INPUT), "role"),
        pull=_parse_enum(Pull, d.get("pull", Pull.NONE), "pull"),
        polarity=_parse_enum(Polarity, d.get("polarity", Polarity.ACTIVE_HIGH), "polarity"),
        bit_position=bit,
        name=str(d.get("name", "")),
    )


def parse_line_spec(spec: str) -> LineBinding:
    """Parse a ``PIN[:ROLE[:PULL[:POLARITY[:NAME]]]]`` command-line line spec.

    ``J8:16`` style pin names contain a colon themselves, so a leading ``J8``
    header token is folded back into the pin.
    """
    parts = [p.strip() for p in spec.split(":")]
    if len(parts) > 1 and parts[0].upper().startswith("J") and parts[1].isdigit():
        parts = [f"{parts[0]}:{parts[1]}"] + parts[2:]
    if not parts[0]:
        raise ConfigError(f"invalid line spec {spec!r}")
    if len(parts) > 5:
        raise ConfigError(f"too many fields in line spec {spec!r}")
    fields = {"pin": parts[0]}
    for key, val in zip(("role", "pull", "polarity", "name"), parts[1:]):
        if val:
            fields[key] = val
    return binding_from_dict(fields)


def sensing(bindings: Iterable[LineBinding]) -> List[LineBinding]:
    """Sensing bindings ordered by bit position."""
    return sorted((b for b in bindings if b.senses), key=lambda b: b.bit_position)


def power_sources(bindings: Iterable[LineBinding]) -> List[LineBinding]:
    return [b for b in bindings if b.role is Role.POWER_SOURCE]


def validate_bindings(bindings: Iterable[LineBinding]) -> Tuple[LineBinding, ...]:
    """Assign missing bit positions and check the layout invariants.

    Sensing lines without an explicit bit take the next free position in
    declaration order. Returns the completed, immutable binding tuple.
    """
    bindings = list(bindings)
    seen_pins = set()
    for b in bindings:
        key = str(b.pin).upper()
        if key in seen_pins:
            raise ConfigError(f"pin {b.pin!r} is bound more than once")
        seen_pins.add(key)
        if not b.senses and b.bit_position is not None:
            raise ConfigError(f"power source {b.label!r} cannot own a bit position")

    explicit = [b.bit_position for b in bindings if b.senses and b.bit_position is not None]
    if len(explicit) != len(set(explicit)):
        raise ConfigError(f"duplicate bit positions: {sorted(explicit)}")

    taken = set(explicit)
    next_bit = 0
    completed = []
    for b in bindings:
        if b.senses and b.bit_position is None:
            while next_bit in taken:
                next_bit += 1
            b = replace(b, bit_position=next_bit)
            taken.add(next_bit)
        completed.append(b)

    width = len(taken)
    if width == 0:
        raise ConfigError("at least one input line is required")
    if width > MAX_SENSE_LINES:
        raise ConfigError(f"{width} input lines do not fit in one byte (max {MAX_SENSE_LINES})")
    if taken != set(range(width)):
        raise ConfigError(f"bit positions must be contiguous from 0, got {sorted(taken)}")
    return tuple(completed)
