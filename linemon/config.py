from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib

from .gpio import DEFAULT_PIN_FACTORY, PIN_FACTORIES
from .lines import (
    ConfigError,
    LineBinding,
    Polarity,
    Pull,
    Role,
    binding_from_dict,
    parse_line_spec,
    validate_bindings,
)

DEFAULT_INTERVAL_MS = 100.0
DEFAULT_DOCTOR_SECONDS = 30.0


def get_bool_env(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    val = val.lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


# ---------------- Deployment presets ----------------
#
# Pins use physical header numbering (BOARDnn), matching how the sensors are
# wired. Pull and polarity differ between deployments on purpose: they follow
# what each sensor is physically tied to, not a common default.

@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    interval_ms: float
    bindings: Tuple[LineBinding, ...]


PRESETS: Dict[str, Preset] = {
    p.name: p
    for p in (
        Preset(
            name="buttons",
            description="bit0 = button A pressed, bit1 = button B pressed (active-low wiring)",
            interval_ms=10,
            bindings=(
                LineBinding("BOARD16", Role.INPUT, Pull.NONE, Polarity.ACTIVE_LOW, 0, "button_a"),
                LineBinding("BOARD18", Role.INPUT, Pull.NONE, Polarity.ACTIVE_LOW, 1, "button_b"),
            ),
        ),
        Preset(
            name="dryer",
            description="bit0 = dryer vibration sensor level (other side to 3.3V, pin 17)",
            interval_ms=250,
            bindings=(
                LineBinding("BOARD18", Role.INPUT, Pull.DOWN, Polarity.ACTIVE_HIGH, 0, "dryer"),
            ),
        ),
        Preset(
            name="leak",
            description="bit0 = leak sensor level (sensor connected to the 3.3V rail)",
            interval_ms=100,
            bindings=(
                LineBinding("BOARD18", Role.INPUT, Pull.DOWN, Polarity.ACTIVE_HIGH, 0, "leak"),
            ),
        ),
        Preset(
            name="leak-dual",
            description="bit0 = sensor 1 active, bit1 = sensor 2 active (powered from BOARD11/BOARD13)",
            interval_ms=100,
            bindings=(
                LineBinding("BOARD11", Role.POWER_SOURCE, Pull.NONE, Polarity.ACTIVE_HIGH, None, "rail_1"),
                LineBinding("BOARD13", Role.POWER_SOURCE, Pull.NONE, Polarity.ACTIVE_HIGH, None, "rail_2"),
                LineBinding("BOARD16", Role.POWERED_INPUT, Pull.DOWN, Polarity.ACTIVE_HIGH, 0, "leak_1"),
                LineBinding("BOARD18", Role.POWERED_INPUT, Pull.DOWN, Polarity.ACTIVE_HIGH, 1, "leak_2"),
            ),
        ),
    )
}


def get_preset(name: str) -> Preset:
    try:
        return PRESETS[name]
    except KeyError:
        raise ConfigError(f"unknown preset {name!r} (expected one of: {', '.join(PRESETS)})") from None


# ---------------- TOML configuration ----------------

def load_toml_config(path: str) -> dict:
    """Load TOML configuration from path."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML in {path}: {e}") from e


def _get_cfg(cfg: dict, section: str, key: str, default=None):
    sec = cfg.get(section, {})
    if not isinstance(sec, dict):
        return default
    return sec.get(key, default)


def _get_bool_cfg(cfg: dict, section: str, key: str):
    val = _get_cfg(cfg, section, key)
    if val is not None and not isinstance(val, bool):
        raise ConfigError(f"[{section}] {key} must be true or false, got {val!r}")
    return val


def config_defaults_from(cfg: dict) -> dict:
    """Map TOML config onto argparse destinations (None where unset)."""
    lines = cfg.get("lines")
    if lines is not None and not (isinstance(lines, list) and all(isinstance(x, dict) for x in lines)):
        raise ConfigError("'lines' must be an array of tables ([[lines]])")
    return {
        "preset": _get_cfg(cfg, "monitor", "preset"),
        "interval_ms": _get_cfg(cfg, "monitor", "interval_ms"),
        "emit_every_tick": _get_bool_cfg(cfg, "monitor", "emit_every_tick"),
        "pin_factory": _get_cfg(cfg, "monitor", "pin_factory"),
        "json": _get_bool_cfg(cfg, "logging", "json"),
        "verbose": _get_bool_cfg(cfg, "logging", "verbose"),
        "no_banner": _get_bool_cfg(cfg, "logging", "no_banner"),
        "doctor_seconds": _get_cfg(cfg, "doctor", "seconds"),
        "config_lines": lines,
    }


def builtin_defaults() -> dict:
    return {
        "emit_every_tick": False,
        "pin_factory": os.getenv("LINEMON_PIN_FACTORY") or DEFAULT_PIN_FACTORY,
        "json": get_bool_env("LINEMON_JSON", False),
        "verbose": False,
        "no_banner": False,
        "doctor_seconds": DEFAULT_DOCTOR_SECONDS,
    }


def apply_config(args, cfg: Optional[dict] = None):
    """Fill unset CLI values from the TOML config, then from built-in defaults.

    CLI arguments always take precedence; only attributes still None are filled.
    A preset given on the command line is remembered as ``cli_preset`` so it
    outranks ``[[lines]]`` from the config file.
    """
    if not hasattr(args, "cli_preset"):
        args.cli_preset = getattr(args, "preset", None)
    layers = []
    if cfg:
        layers.append(config_defaults_from(cfg))
    layers.append(builtin_defaults())
    for layer in layers:
        for k, v in layer.items():
            if getattr(args, k, None) is None and v is not None:
                setattr(args, k, v)
    return args


# ---------------- Resolved monitor configuration ----------------

@dataclass(frozen=True)
class MonitorConfig:
    bindings: Tuple[LineBinding, ...]
    interval_s: float
    emit_every_tick: bool = False
    pin_factory: str = DEFAULT_PIN_FACTORY
    preset: Optional[str] = None


def resolve_monitor_config(args) -> MonitorConfig:
    """Build the validated MonitorConfig from merged arguments.

    Lines come from ``--line`` if given, else a ``--preset`` given on the
    command line, else ``[[lines]]`` in the config file, else the preset named
    in the config file. ``interval_ms`` (CLI, then config) overrides the
    preset's interval.
    """
    preset_name = getattr(args, "preset", None)
    preset = get_preset(preset_name) if preset_name else None

    line_specs = getattr(args, "line_specs", None) or []
    config_lines = getattr(args, "config_lines", None) or []
    if line_specs:
        bindings = [parse_line_spec(s) for s in line_specs]
    elif preset is not None and getattr(args, "cli_preset", None):
        bindings = list(preset.bindings)
    elif config_lines:
        bindings = [binding_from_dict(d) for d in config_lines]
    elif preset is not None:
        bindings = list(preset.bindings)
    else:
        raise ConfigError("no lines configured: use --preset, --line, or [[lines]] in --config")

    interval_ms = getattr(args, "interval_ms", None)
    if interval_ms is None:
        interval_ms = preset.interval_ms if preset is not None else DEFAULT_INTERVAL_MS
    try:
        interval_ms = float(interval_ms)
    except (TypeError, ValueError):
        raise ConfigError(f"invalid interval_ms {interval_ms!r}") from None
    if interval_ms <= 0:
        raise ConfigError(f"interval_ms must be positive, got {interval_ms:g}")

    pin_factory = getattr(args, "pin_factory", None) or DEFAULT_PIN_FACTORY
    if pin_factory not in PIN_FACTORIES:
        raise ConfigError(f"unknown pin factory {pin_factory!r} (expected one of: {', '.join(sorted(PIN_FACTORIES))})")

    return MonitorConfig(
        bindings=validate_bindings(bindings),
        interval_s=interval_ms / 1000.0,
        emit_every_tick=bool(getattr(args, "emit_every_tick", False)),
        pin_factory=pin_factory,
        preset=preset_name,
    )


def resolved_config_dict(mc: MonitorConfig, args) -> dict:
    """Resolved configuration in the same shape as the TOML file."""
    return {
        "monitor": {
            "preset": mc.preset,
            "interval_ms": round(mc.interval_s * 1000.0, 3),
            "emit_every_tick": mc.emit_every_tick,
            "pin_factory": mc.pin_factory,
        },
        "logging": {
            "json": bool(getattr(args, "json", False)),
            "verbose": bool(getattr(args, "verbose", False)),
            "no_banner": bool(getattr(args, "no_banner", False)),
        },
        "lines": [b.to_dict() for b in mc.bindings],
    }
