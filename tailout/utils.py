"""Utility functions for tailout."""

import logging
import re
from datetime import datetime, timedelta, timezone

from tailout.exceptions import ConfigurationError

_DURATION_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``2h``, ``90m`` or ``1h30m``.

    Accepts the unit suffixes ns, us, ms, s, m and h, and any sequence of
    number/unit pairs. A bare ``0`` is accepted as zero.

    Parameters
    ----------
    value : str
        Duration string

    Returns
    -------
    timedelta
        Parsed duration

    Raises
    ------
    ConfigurationError
        If the string is empty, negative or malformed
    """
    text = str(value).strip()

    if text == "0":
        return timedelta(0)

    if not text or text.startswith("-"):
        raise ConfigurationError(f"failed to parse duration: invalid duration '{value}'")

    text = text.lstrip("+")
    total_ns = 0.0
    position = 0

    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total_ns += float(match.group(1)) * _DURATION_UNIT_NANOSECONDS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ConfigurationError(f"failed to parse duration: invalid duration '{value}'")

    return timedelta(microseconds=total_ns / 1_000)


def duration_minutes(value: str) -> int:
    """Return the whole number of minutes in a duration string.

    Parameters
    ----------
    value : str
        Duration string understood by parse_duration

    Returns
    -------
    int
        Whole minutes, at least 1

    Raises
    ------
    ConfigurationError
        If the duration is malformed or shorter than one minute
    """
    minutes = int(parse_duration(value).total_seconds() // 60)
    if minutes < 1:
        raise ConfigurationError("duration must be at least 1 minute")
    return minutes


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp from the Tailscale API.

    Parameters
    ----------
    value : str | None
        Timestamp such as ``2024-05-01T12:00:00Z``

    Returns
    -------
    datetime | None
        Timezone-aware datetime, or None for empty or unparseable input
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    # fromisoformat accepts at most microsecond precision
    text = re.sub(r"(\.\d{6})\d+", r"\1", text)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logging.debug("Ignoring unparseable timestamp %r", value)
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed


def redact_secret(secret: str, visible: int = 12) -> str:
    """Return a log-safe prefix of a secret.

    Parameters
    ----------
    secret : str
        Secret value such as an auth key
    visible : int
        Number of leading characters to keep

    Returns
    -------
    str
        Prefix followed by asterisks, or only asterisks for short secrets
    """
    if len(secret) <= visible * 2:
        return "****"
    return f"{secret[:visible]}****"

