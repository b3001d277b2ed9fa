"""Bounded polling loop used for every blocking wait."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from tailout.core.signals import CancellationToken
from tailout.exceptions import OperationCancelledError, WaitTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def poll_until(
    check: Callable[[], T | None],
    *,
    operation: str,
    timeout: float,
    interval: float,
    token: CancellationToken,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], bool] | None = None,
) -> T:
    """Call ``check`` until it returns a value other than None.

    The token is checked before every attempt and the pause between
    attempts is interruptible, so cancellation is observed within one poll.

    Parameters
    ----------
    check : Callable[[], T | None]
        Probe returning the final value, or None to keep waiting. Exceptions
        propagate unchanged.
    operation : str
        Description used in log and error messages
    timeout : float
        Total budget in seconds
    interval : float
        Pause between attempts in seconds
    token : CancellationToken
        Cancellation token of the current invocation
    clock : Callable[[], float]
        Monotonic clock, injectable for tests
    sleep : Callable[[float], bool] | None
        Interruptible sleep returning True when cancelled. Defaults to
        ``token.wait``.

    Returns
    -------
    T
        First non-None value returned by ``check``

    Raises
    ------
    OperationCancelledError
        If the token fires before ``check`` succeeds
    WaitTimeoutError
        If the deadline passes before ``check`` succeeds
    """
    pause = sleep or token.wait
    deadline = clock() + timeout
    attempt = 0

    while True:
        if token.cancelled:
            raise OperationCancelledError(f"waiting for {operation} cancelled")

        attempt += 1
        result = check()
        if result is not None:
            logger.debug("%s ready after %d attempt(s)", operation, attempt)
            return result

        remaining = deadline - clock()
        if remaining <= 0:
            raise WaitTimeoutError(operation, timeout)

        if pause(min(interval, remaining)):
            raise OperationCancelledError(f"waiting for {operation} cancelled")
