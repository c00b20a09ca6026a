from __future__ import annotations

import sys


class OutputFailure(OSError):
    """The downstream reader can no longer accept bytes (e.g. broken pipe)."""


def open_stdout_unbuffered():
    """Binary, unbuffered handle on stdout's file descriptor.

    ``closefd=False`` leaves fd 1 open for the interpreter at exit.
    """
    return open(sys.stdout.fileno(), "wb", buffering=0, closefd=False)


class ByteSink:
    """Writes exactly one raw byte per accepted state change.

    No delimiter and no framing: the reader sees a bare byte stream. Each
    write is flushed immediately."""
    def __init__(self, stream=None):
        self._stream = stream if stream is not None else open_stdout_unbuffered()
        self.bytes_written = 0

    def write(self, state: int):
        if not 0 <= state <= 0xFF:
            raise ValueError(f"state {state!r} does not fit in one byte")
        try:
            self._stream.write(bytes((state,)))
            flush = getattr(self._stream, "flush", None)
            if flush is not None:
                flush()
        except OSError as e:
            raise OutputFailure(e.errno, f"output write failed: {e}") from e
        self.bytes_written += 1
