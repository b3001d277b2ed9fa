"""Cancellation token and signal handling for blocking operations."""

from __future__ import annotations

import logging
import signal
import threading
import types

from tailout.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe, one-shot cancellation flag shared by every blocking call.

    A single token is created per invocation and threaded through the
    provisioning and installation waits. Once cancelled it stays cancelled.
    """

    def __init__(self) -> None:
        """Initialize an uncancelled token."""
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        """Return True once cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Mark the token as cancelled and wake any waiter."""
        self._event.set()

    def wait(self, seconds: float) -> bool:
        """Sleep for up to ``seconds``, returning early when cancelled.

        Parameters
        ----------
        seconds : float
            Maximum time to sleep

        Returns
        -------
        bool
            True if the token was cancelled during or before the wait
        """
        return self._event.wait(timeout=max(seconds, 0.0))

    def raise_if_cancelled(self, operation: str = "operation") -> None:
        """Raise OperationCancelledError if the token has fired.

        Parameters
        ----------
        operation : str
            Description used in the error message

        Raises
        ------
        OperationCancelledError
            If the token is cancelled
        """
        if self.cancelled:
            raise OperationCancelledError(f"{operation} cancelled")


def setup_signal_handlers(token: CancellationToken) -> None:
    """Cancel ``token`` on SIGINT or SIGTERM.

    The first signal only cancels the token so the running wait can unwind
    with a clean error. A second SIGINT restores Python's default behaviour
    and raises KeyboardInterrupt.

    Parameters
    ----------
    token : CancellationToken
        Token shared with the running command
    """

    def sigint_handler(signum: int, frame: types.FrameType | None) -> None:
        """Handle SIGINT (Ctrl+C) signal."""
        if token.cancelled:
            raise KeyboardInterrupt
        logger.warning("Cancelling, press Ctrl+C again to force quit...")
        token.cancel()

    def sigterm_handler(signum: int, frame: types.FrameType | None) -> None:
        """Handle SIGTERM signal."""
        token.cancel()

    signal.signal(signal.SIGINT, sigint_handler)
    signal.signal(signal.SIGTERM, sigterm_handler)
