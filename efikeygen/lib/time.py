"""
Validity window utilities.

Certificates carry whole-second timestamps, so every value produced here
is truncated to the second. The clock is injectable so that repeated runs
can produce identical bytes.
"""

import datetime
from typing import Callable, Tuple

from efikeygen.lib.constants import DEFAULT_VALIDITY_DAYS
from efikeygen.lib.errors import ConfigurationError

Clock = Callable[[], datetime.datetime]

# UTCTime cannot represent dates from 2050 onwards (RFC 5280, 4.1.2.5)
UTC_TIME_CUTOFF_YEAR = 2050


def utc_now() -> datetime.datetime:
    """Return the current time in UTC."""
    return datetime.datetime.now(datetime.timezone.utc)


def validity_window(
    now: datetime.datetime, days: int = DEFAULT_VALIDITY_DAYS
) -> Tuple[datetime.datetime, datetime.datetime]:
    """
    Compute the validity window of a new certificate.

    Args:
        now: Start of the window; naive datetimes are taken as UTC
        days: Length of the window in days

    Returns:
        Tuple of (not_before, not_after)

    Raises:
        ConfigurationError: If days is not positive or the window ends past
            the largest representable date
    """
    if days <= 0:
        raise ConfigurationError(
            f"validity period must be a positive number of days, got {days}"
        )

    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)

    not_before = now.astimezone(datetime.timezone.utc).replace(microsecond=0)
    try:
        not_after = not_before + datetime.timedelta(days=days)
    except OverflowError as e:
        raise ConfigurationError(
            f"validity period of {days} days ends past the year 9999"
        ) from e

    return not_before, not_after


def uses_utc_time(value: datetime.datetime) -> bool:
    """Return True if value must be encoded as UTCTime rather than GeneralizedTime."""
    return value.year < UTC_TIME_CUTOFF_YEAR
