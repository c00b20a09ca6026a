from __future__ import annotations

VERSION = "1.0.0"

EXIT_OK = 0
EXIT_HARDWARE_UNAVAILABLE = 1
EXIT_CONFIG_ERROR = 2
EXIT_OUTPUT_FAILURE = 3

# Widest state that still fits in one output byte.
MAX_SENSE_LINES = 8


USAGE_EXAMPLES = """\
Usage examples:
  # Two-button monitor (BOARD16 = bit0, BOARD18 = bit1, active-low)
  python line-monitor.py --preset buttons

  # Dryer vibration sensor, sampled every 250 ms
  python line-monitor.py --preset dryer

  # Dual leak sensors powered from two output pins used as a rail
  python line-monitor.py --preset leak-dual --verbose --json

  # Ad-hoc lines (PIN[:ROLE[:PULL[:POLARITY[:NAME]]]])
  python line-monitor.py --line BOARD16:input:up:active_low:door --interval-ms 50

  # Wiring check (reports levels on stderr, writes nothing to stdout)
  python line-monitor.py --preset leak-dual --doctor
"""
