"""Core tailout functionality."""

from __future__ import annotations

from tailout.core.signals import CancellationToken, setup_signal_handlers
from tailout.core.waiter import poll_until

__all__ = [
    "CancellationToken",
    "setup_signal_handlers",
    "poll_until",
]
