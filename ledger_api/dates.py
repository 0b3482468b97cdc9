"""
Canonical date handling.

Every timestamp stored or compared by the ledger is a UTC ISO-8601 string in
one fixed shape: YYYY-MM-DDTHH:mm:ss.sssZ (e.g. "2025-01-15T00:00:00.000Z").
Because the shape is fixed-width, zero-padded and always UTC, plain string
comparison orders timestamps chronologically. Database range queries and
series ordering rely on that; no timezone arithmetic happens after a value
has been canonicalised.
"""

import calendar
import re
from datetime import datetime, timezone
from typing import NamedTuple

from dateutil import tz
from dateutil.parser import isoparse

from ledger_api.exceptions import InvalidDateFormatError

DATE_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")

_PARSE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class MonthRange(NamedTuple):
    """First and last canonical instants of a period (both inclusive)."""
    start: str
    end: str


def is_canonical(value: object) -> bool:
    return isinstance(value, str) and DATE_REGEX.match(value) is not None


def format_canonical(moment: datetime) -> str:
    """Render a datetime as a canonical string. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    millis = moment.microsecond // 1000
    # %Y is not zero-padded below year 1000 on every platform
    return f"{moment.year:04d}-{moment:%m-%dT%H:%M:%S}.{millis:03d}Z"


def from_canonical_utc(value: str) -> datetime:
    """
    Parse a canonical string into an aware UTC datetime.

    Raises:
        InvalidDateFormatError: If the string is not canonical or names an
            impossible instant (e.g. month 13).
    """
    if not is_canonical(value):
        raise InvalidDateFormatError()
    try:
        parsed = datetime.strptime(value, _PARSE_FORMAT)
    except ValueError:
        raise InvalidDateFormatError(f"Invalid calendar date: {value}")
    return parsed.replace(tzinfo=timezone.utc)


def to_canonical_utc(value: str | datetime) -> str:
    """
    Convert a canonical string or a datetime to a canonical string.

    Strings are validated, not interpreted: anything that is not already in
    the canonical shape is rejected. The function is idempotent.
    """
    if isinstance(value, datetime):
        return format_canonical(value)
    if isinstance(value, str):
        return format_canonical(from_canonical_utc(value))
    raise InvalidDateFormatError()


def now() -> str:
    """The current instant as a canonical string."""
    return format_canonical(datetime.now(timezone.utc))


def month_range(year: int, month: int) -> MonthRange:
    """
    Return the first and last canonical instants of a calendar month.

    month_range(2025, 2) -> ("2025-02-01T00:00:00.000Z", "2025-02-28T23:59:59.999Z")
    """
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise InvalidDateFormatError(f"Invalid month: {year}-{month}")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999000, tzinfo=timezone.utc)
    return MonthRange(format_canonical(start), format_canonical(end))


def year_range(year: int) -> MonthRange:
    """First instant of January 1st to the last instant of December 31st."""
    return MonthRange(month_range(year, 1).start, month_range(year, 12).end)


def local_to_utc(value: str, tz_name: str) -> str:
    """
    Interpret a local wall-clock ISO string in an IANA zone as canonical UTC.

    Front ends send what the user picked on their calendar; converting it is
    the caller's job, this helper only does the arithmetic. An offset already
    present in the string wins over tz_name.

        local_to_utc("2025-01-15T09:30:00", "Europe/Madrid") -> "2025-01-15T08:30:00.000Z"
    """
    zone = tz.gettz(tz_name)
    if zone is None:
        raise InvalidDateFormatError(f"Unknown time zone: {tz_name}")
    try:
        parsed = isoparse(value)
    except (ValueError, OverflowError):
        raise InvalidDateFormatError(f"Unparsable local date: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return format_canonical(parsed)
