#!/usr/bin/env python3
#
# Digital line monitor
#
# Polls a small set of GPIO lines (buttons, a dryer vibration sensor, leak
# sensors), packs their levels into one byte and writes that byte to stdout
# whenever it changes, for consumption by an external automation process.
#
# Diagnostics and log events go to stderr; stdout carries only state bytes.
#

from __future__ import annotations

from linemon import cli
from linemon.cli import build_arg_parser, main
from linemon.config import PRESETS, apply_config, resolve_monitor_config
from linemon.encoder import encode
from linemon.gpio import HardwareContext, HardwareUnavailable
from linemon.lines import LineBinding, Polarity, Pull, Role
from linemon.logging import JsonLogger
from linemon.monitor import LineMonitor
from linemon.output import ByteSink, OutputFailure
from linemon.state import EmissionHistory

__all__ = [
    "ByteSink",
    "EmissionHistory",
    "HardwareContext",
    "HardwareUnavailable",
    "JsonLogger",
    "LineBinding",
    "LineMonitor",
    "OutputFailure",
    "PRESETS",
    "Polarity",
    "Pull",
    "Role",
    "apply_config",
    "build_arg_parser",
    "cli",
    "encode",
    "main",
    "resolve_monitor_config",
]


if __name__ == "__main__":
    raise SystemExit(main())
