"""Tests for the bounded poll loop and cancellation token."""

import signal
import threading

import pytest

from tailout.core.signals import CancellationToken, setup_signal_handlers
from tailout.core.waiter import poll_until
from tailout.exceptions import OperationCancelledError, WaitTimeoutError


def test_poll_until_returns_first_non_none_value(token, clock):
    """Test that polling stops as soon as the check yields a value."""
    results = iter([None, None, "ready"])

    value = poll_until(
        lambda: next(results),
        operation="thing",
        timeout=60,
        interval=5,
        token=token,
        clock=clock,
        sleep=clock.advance,
    )

    assert value == "ready"
    assert clock.now == 10


def test_poll_until_times_out_after_budget(token, clock):
    """Test that an exhausted budget raises WaitTimeoutError."""
    calls = []

    def check():
        calls.append(clock.now)
        return None

    with pytest.raises(WaitTimeoutError) as exc_info:
        poll_until(
            check,
            operation="instance i-1 to be running",
            timeout=30,
            interval=15,
            token=token,
            clock=clock,
            sleep=clock.advance,
        )

    assert calls == [0, 15, 30]
    assert exc_info.value.operation == "instance i-1 to be running"
    assert isinstance(exc_info.value, TimeoutError)


def test_poll_until_never_sleeps_past_deadline(token, clock):
    """Test that the last pause is shortened to the remaining budget."""
    pauses = []

    def sleep(seconds):
        pauses.append(seconds)
        return clock.advance(seconds)

    with pytest.raises(WaitTimeoutError):
        poll_until(
            lambda: None,
            operation="thing",
            timeout=20,
            interval=15,
            token=token,
            clock=clock,
            sleep=sleep,
        )

    assert pauses == [15, 5]


def test_poll_until_raises_when_cancelled_before_first_attempt(token, clock):
    """Test that a cancelled token prevents any check."""
    token.cancel()
    calls = []

    with pytest.raises(OperationCancelledError):
        poll_until(
            lambda: calls.append(1),
            operation="thing",
            timeout=60,
            interval=5,
            token=token,
            clock=clock,
            sleep=clock.advance,
        )

    assert calls == []


def test_poll_until_raises_when_sleep_is_interrupted(token, clock):
    """Test that cancellation during the pause is not mistaken for a timeout."""

    def sleep(seconds):
        token.cancel()
        return True

    with pytest.raises(OperationCancelledError):
        poll_until(
            lambda: None,
            operation="thing",
            timeout=60,
            interval=5,
            token=token,
            clock=clock,
            sleep=sleep,
        )


def test_poll_until_propagates_check_errors(token, clock):
    """Test that service errors raised by the check are not swallowed."""

    def check():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        poll_until(
            check,
            operation="thing",
            timeout=60,
            interval=5,
            token=token,
            clock=clock,
            sleep=clock.advance,
        )


def test_cancellation_token_wakes_waiter_from_other_thread():
    """Test that cancel() interrupts a wait in progress."""
    token = CancellationToken()
    timer = threading.Timer(0.05, token.cancel)
    timer.start()

    try:
        assert token.wait(10) is True
    finally:
        timer.cancel()

    assert token.cancelled


def test_cancellation_token_wait_returns_false_on_timeout():
    """Test that an uncancelled wait returns False."""
    assert CancellationToken().wait(0.01) is False


def test_signal_handlers_cancel_token_then_force_quit():
    """Test that the first SIGINT cancels and the second interrupts."""
    token = CancellationToken()
    original_int = signal.getsignal(signal.SIGINT)
    original_term = signal.getsignal(signal.SIGTERM)

    try:
        setup_signal_handlers(token)
        handler = signal.getsignal(signal.SIGINT)

        handler(signal.SIGINT, None)
        assert token.cancelled

        with pytest.raises(KeyboardInterrupt):
            handler(signal.SIGINT, None)
    finally:
        signal.signal(signal.SIGINT, original_int)
        signal.signal(signal.SIGTERM, original_term)


def test_sigterm_cancels_token():
    """Test that SIGTERM only cancels the token."""
    token = CancellationToken()
    original_int = signal.getsignal(signal.SIGINT)
    original_term = signal.getsignal(signal.SIGTERM)

    try:
        setup_signal_handlers(token)
        signal.getsignal(signal.SIGTERM)(signal.SIGTERM, None)
        assert token.cancelled
    finally:
        signal.signal(signal.SIGINT, original_int)
        signal.signal(signal.SIGTERM, original_term)
