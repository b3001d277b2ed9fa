"""Logging setup for terminal output."""

from __future__ import annotations

import logging

from tailout.logging.formatters import StreamFormatter


class StreamRoutingFilter(logging.Filter):
    """Let a record through only if it belongs on the given stream.

    Records below WARNING go to stdout, WARNING and above to stderr.

    Parameters
    ----------
    stream : str
        Either ``"stdout"`` or ``"stderr"``
    """

    def __init__(self, stream: str) -> None:
        super().__init__()
        if stream not in ("stdout", "stderr"):
            raise ValueError(f"unknown stream: {stream}")
        self.stream = stream

    def filter(self, record: logging.LogRecord) -> bool:
        """Return True if the record should be emitted on this stream."""
        if self.stream == "stdout":
            return record.levelno < logging.WARNING
        return record.levelno >= logging.WARNING


__all__ = ["StreamFormatter", "StreamRoutingFilter"]
