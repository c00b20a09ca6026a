from __future__ import annotations


# ---------------- Hardware access ----------------
#
# All pin I/O goes through a gpiozero pin factory held by an explicit
# HardwareContext. The factory is created once at startup and released on every
# exit path (the context is a context manager). Unit tests can use gpiozero's
# MockFactory ("mock") or any object exposing configure/read/write/shutdown.

import enum
import importlib
from typing import Dict, Tuple

from .lines import ConfigError, PinSpec, Pull

# Force lgpio backend by default (Pi 5 / Debian Trixie+).
DEFAULT_PIN_FACTORY = "lgpio"

PIN_FACTORIES = {
    "lgpio": ("gpiozero.pins.lgpio", "LGPIOFactory"),
    "rpigpio": ("gpiozero.pins.rpigpio", "RPiGPIOFactory"),
    "pigpio": ("gpiozero.pins.pigpio", "PiGPIOFactory"),
    "native": ("gpiozero.pins.native", "NativeFactory"),
    "mock": ("gpiozero.pins.mock", "MockFactory"),
}

_GPIOZERO_PULL = {
    Pull.NONE: "floating",
    Pull.UP: "up",
    Pull.DOWN: "down",
}


class HardwareUnavailable(RuntimeError):
    """GPIO access could not be set up (missing privilege, device, or library)."""


class Mode(str, enum.Enum):
    INPUT = "input"
    OUTPUT = "output"


def create_pin_factory(name: str):
    """Instantiate the gpiozero pin factory registered under ``name``."""
    try:
        module_name, class_name = PIN_FACTORIES[name]
    except KeyError:
        raise HardwareUnavailable(
            f"unknown pin factory {name!r} (expected one of: {', '.join(sorted(PIN_FACTORIES))})"
        ) from None
    try:
        factory_cls = getattr(importlib.import_module(module_name), class_name)
        return factory_cls()
    except Exception as e:
        raise HardwareUnavailable(f"{name} pin factory initialization failure: {e}") from e


class HardwareContext:
    """Process-wide handle on the GPIO hardware.

    Provides the pin capability used by the monitor: ``configure`` a line as
    input (with a pull) or output, ``read`` its raw level, ``write`` a level.
    Reads and writes are direct; there is no debouncing or filtering here.
    """
    def __init__(self, factory, factory_name: str = ""):
        self.factory = factory
        self.factory_name = factory_name
        self._pins: Dict[PinSpec, object] = {}
        self._config: Dict[PinSpec, Tuple[Mode, Pull]] = {}
        self._closed = False

    @classmethod
    def initialize(cls, pin_factory: str = DEFAULT_PIN_FACTORY) -> "HardwareContext":
        """Create the context. Raises HardwareUnavailable on any failure."""
        return cls(create_pin_factory(pin_factory), factory_name=pin_factory)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False

    def pin(self, spec: PinSpec):
        """Return the gpiozero Pin for ``spec``, claiming it on first use.

        Two specs naming the same physical pin (``GPIO24`` and ``BOARD18``)
        raise ConfigError: a pin may be bound only once.
        """
        if self._closed:
            raise HardwareUnavailable("hardware context is shut down")
        p = self._pins.get(spec)
        if p is None:
            try:
                p = self.factory.pin(spec)
            except Exception as e:
                raise HardwareUnavailable(f"cannot claim pin {spec!r}: {e}") from e
            for other, q in self._pins.items():
                if q is p:
                    raise ConfigError(f"pin {spec!r} is the same pin as {other!r}")
            self._pins[spec] = p
        return p

    def configure(self, spec: PinSpec, mode: Mode, pull: Pull = Pull.NONE):
        """Set a pin's function and pull resistor. Repeat calls are no-ops."""
        if self._config.get(spec) == (mode, pull):
            return
        p = self.pin(spec)
        try:
            p.function = mode.value
            # Pull resistors only apply to inputs.
            if mode is Mode.INPUT:
                p.pull = _GPIOZERO_PULL[pull]
        except Exception as e:
            raise HardwareUnavailable(f"cannot configure pin {spec!r} as {mode.value}: {e}") from e
        self._config[spec] = (mode, pull)

    def read(self, spec: PinSpec) -> bool:
        return bool(self._pins[spec].state)

    def write(self, spec: PinSpec, level: bool):
        self._pins[spec].state = bool(level)

    def shutdown(self):
        """Release all claimed pins and the pin factory. Safe to call twice.

        Every pin and the factory are closed even if one close fails; the first
        failure is re-raised as HardwareUnavailable afterwards.
        """
        if self._closed:
            return
        self._closed = True
        first_error = None
        try:
            for spec, p in self._pins.items():
                try:
                    p.close()
                except Exception as e:
                    if first_error is None:
                        first_error = (spec, e)
        finally:
            self._pins.clear()
            self._config.clear()
            close = getattr(self.factory, "close", None)
            if close is not None:
                close()
        if first_error is not None:
            spec, e = first_error
            raise HardwareUnavailable(f"cannot release pin {spec!r}: {e}") from e
