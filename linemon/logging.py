from __future__ import annotations

import json
import sys
import time

class JsonLogger:
    """Minimal structured logger.

    Emits single-line events for lifecycle and state transitions (startup, power
    rail, emitted states) so logs are easy to grep and machine-parse. Output
    goes to stderr by default: stdout carries the raw byte stream."""
    def __init__(self, enable_json: bool, stream=None):
        """Create a logger.

        Args:
            enable_json: Emit JSON objects instead of ``[ts] event k=v`` lines.
            stream: A file-like object (defaults to stderr) used for event output.
        """
        self.enable_json = enable_json
        self.stream = stream

    def emit(self, event: str, **fields):
        """Emit an event with a name and optional key/value fields."""
        stream = self.stream if self.stream is not None else sys.stderr
        t = time.time()
        ms = int((t - int(t)) * 1000)
        ts_iso = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(t)) + f'.{ms:03d}'
        if self.enable_json:
            payload = {"ts": t, "ts_iso": ts_iso, "event": event, **fields}
            print(json.dumps(payload, sort_keys=True), file=stream, flush=True)
        else:
            msg = f"[{ts_iso}] {event}"
            if fields:
                msg += " " + " ".join(f"{k}={v}" for k, v in fields.items())
            print(msg, file=stream, flush=True)
