from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from argparse import RawDescriptionHelpFormatter

from .config import (
    PRESETS,
    apply_config,
    load_toml_config,
    resolve_monitor_config,
    resolved_config_dict,
)
from .constants import (
    EXIT_CONFIG_ERROR,
    EXIT_HARDWARE_UNAVAILABLE,
    EXIT_OK,
    EXIT_OUTPUT_FAILURE,
    USAGE_EXAMPLES,
    VERSION,
)
from .doctor import run_doctor
from .gpio import PIN_FACTORIES, HardwareContext, HardwareUnavailable
from .lines import ConfigError
from .logging import JsonLogger
from .monitor import LineMonitor
from .output import ByteSink, OutputFailure


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {text!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def build_arg_parser():
    """Construct the CLI argument parser.

    Every option defaults to None so values from a TOML config (and then the
    built-in defaults) can be backfilled after parsing; see config.apply_config.
    """
    ap = argparse.ArgumentParser(
        prog="line-monitor",
        description="Poll digital GPIO lines and write one byte to stdout per state change.",
        epilog=USAGE_EXAMPLES,
        formatter_class=RawDescriptionHelpFormatter,
    )
    ap.add_argument("--config", help="Path to a TOML config file. CLI args override config values.")
    ap.add_argument("--preset", choices=sorted(PRESETS), help="Built-in deployment layout.")
    ap.add_argument("--line", dest="line_specs", action="append", metavar="SPEC",
                    help="Input/rail line as PIN[:ROLE[:PULL[:POLARITY[:NAME]]]] "
                         "(repeatable; bits are assigned in order). Overrides preset/config lines.")
    ap.add_argument("--interval-ms", type=float, help="Sampling interval in milliseconds.")
    ap.add_argument("--pin-factory", choices=sorted(PIN_FACTORIES),
                    help="gpiozero pin factory backend (default: lgpio, or $LINEMON_PIN_FACTORY).")
    tick_group = ap.add_mutually_exclusive_group()
    tick_group.add_argument("--every-tick", dest="emit_every_tick", action="store_true", default=None,
                            help="Write a byte on every sample, not only on changes.")
    tick_group.add_argument("--change-only", dest="emit_every_tick", action="store_false",
                            help="Write a byte only when the state changes (default).")
    ap.add_argument("--max-ticks", type=_positive_int, help="Stop after N samples (default: run until signalled).")

    ap.add_argument("--verbose", dest="verbose", action="store_true", default=None,
                    help="Log every emitted state on stderr.")
    ap.add_argument("--no-verbose", dest="verbose", action="store_false", help="Disable verbose logging.")
    json_group = ap.add_mutually_exclusive_group()
    json_group.add_argument("--json", dest="json", action="store_true", default=None,
                            help="Emit JSON log events.")
    json_group.add_argument("--no-json", dest="json", action="store_false", help="Disable JSON log output.")
    ap.add_argument("--no-banner", dest="no_banner", action="store_true", default=None,
                    help="Disable the startup banner.")
    ap.add_argument("--banner", dest="no_banner", action="store_false", help="Enable the startup banner.")

    ap.add_argument("--doctor", action="store_true", help="Report live line levels on stderr and exit.")
    ap.add_argument("--doctor-seconds", type=float, help="How long --doctor samples (default: 30).")
    ap.add_argument("--print-config", action="store_true", help="Print the resolved configuration and exit.")
    ap.add_argument("--list-presets", action="store_true", help="List built-in presets and exit.")
    ap.add_argument("--version", action="store_true", help="Print version and exit.")
    return ap


def _install_stop_handlers(stop: threading.Event) -> dict:
    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, lambda *_: stop.set())
    return previous


def _restore_handlers(previous: dict):
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def main(argv=None, out=None, clock=None):
    """CLI entry point. Resolves configuration, claims the GPIO lines and samples.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).
        out: Binary stream for the state bytes (defaults to unbuffered stdout).
        clock: Optional clock for the sampling loop (tests).

    Returns:
        The process exit status.
    """
    ap = build_arg_parser()
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        ap.print_help()
        return EXIT_OK

    args = ap.parse_args(argv)

    if args.version:
        print(VERSION)
        return EXIT_OK

    if args.list_presets:
        for name, p in PRESETS.items():
            print(f"{name:10s} {p.interval_ms:g}ms  {p.description}")
        return EXIT_OK

    try:
        cfg = load_toml_config(args.config) if args.config else None
        apply_config(args, cfg)
        mc = resolve_monitor_config(args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    # Print resolved configuration and exit (does not touch GPIO).
    if args.print_config:
        print(json.dumps(resolved_config_dict(mc, args), indent=2, sort_keys=True))
        return EXIT_OK

    try:
        hw = HardwareContext.initialize(mc.pin_factory)
    except HardwareUnavailable as e:
        print(f"ERROR: hardware initialization failure: {e}", file=sys.stderr)
        return EXIT_HARDWARE_UNAVAILABLE

    logger = JsonLogger(enable_json=bool(args.json))
    try:
        with hw:
            if args.doctor:
                run_doctor(hw, mc, seconds=args.doctor_seconds, clock=clock)
                return EXIT_OK

            sink = ByteSink(out)
            mon = LineMonitor(
                hw,
                mc.bindings,
                sink,
                logger,
                interval_s=mc.interval_s,
                clock=clock,
                emit_every_tick=mc.emit_every_tick,
                verbose=bool(args.verbose),
            )

            if not args.no_banner:
                print(f"line-monitor {VERSION}", file=sys.stderr)
                # Structured startup event for log scraping
                logger.emit(
                    "startup",
                    version=VERSION,
                    preset=mc.preset,
                    pin_factory=mc.pin_factory,
                    interval_ms=round(mc.interval_s * 1000.0, 3),
                    emit_every_tick=mc.emit_every_tick,
                    lines=",".join(f"{b.label}@{b.pin}" for b in mc.bindings),
                )

            stop = threading.Event()
            previous = _install_stop_handlers(stop)
            try:
                mon.run(stop=stop, max_ticks=args.max_ticks)
            finally:
                _restore_handlers(previous)
    except ConfigError as e:
        # Aliased pins are only detectable once the factory resolves them.
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except HardwareUnavailable as e:
        print(f"ERROR: hardware initialization failure: {e}", file=sys.stderr)
        return EXIT_HARDWARE_UNAVAILABLE
    except OutputFailure as e:
        logger.emit("output_failure", error=str(e))
        return EXIT_OUTPUT_FAILURE

    logger.emit("stopped", ticks=mon.state.ticks, emissions=mon.state.emissions)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
