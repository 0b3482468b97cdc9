"""
Recurrence expansion — turns (start, end, periodicity) into occurrence dates.

Occurrence k is computed from the start date, not from occurrence k-1:

    weekly   start + 7k days
    monthly  start + k calendar months
    yearly   start + k calendar years

Anchoring on the start keeps the original day of month whenever the target
month has it and clamps to the month's last day otherwise, without drifting:

    Jan 31 -> Feb 28 -> Mar 31 -> Apr 30      (stepping would give Mar 28)
    Feb 29 2024 -> Feb 28 2025 -> ... -> Feb 29 2028

No occurrence ever rolls over into the following month. The time of day of
the start is kept on every occurrence.
"""

import enum
from datetime import timedelta

from dateutil.relativedelta import relativedelta

from ledger_api.dates import format_canonical, from_canonical_utc
from ledger_api.exceptions import InvalidRecurrenceTypeError


class RecurrenceType(str, enum.Enum):
    """Supported periodicities. Inherits from str so it serializes as-is."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _offset(periodicity: RecurrenceType, k: int) -> timedelta | relativedelta:
    if periodicity is RecurrenceType.WEEKLY:
        return timedelta(weeks=k)
    if periodicity is RecurrenceType.MONTHLY:
        return relativedelta(months=k)
    return relativedelta(years=k)


def parse_recurrence_type(value: object) -> RecurrenceType:
    """
    Raises:
        InvalidRecurrenceTypeError: For anything but weekly/monthly/yearly.
    """
    try:
        return RecurrenceType(value)
    except ValueError:
        raise InvalidRecurrenceTypeError(value)


def generate_occurrences(
    start: str,
    end: str,
    periodicity: RecurrenceType | str,
) -> list[str]:
    """
    Expand a recurrence into canonical occurrence dates.

    Args:
        start: Canonical timestamp of the first occurrence.
        end: Canonical timestamp; occurrences after it are not generated.
        periodicity: weekly, monthly or yearly.

    Returns:
        Strictly ascending canonical timestamps. The first is `start`, all are
        <= `end`. Empty only when start > end.

    Raises:
        InvalidDateFormatError: If start or end is not canonical.
        InvalidRecurrenceTypeError: If periodicity is not supported.
    """
    periodicity = parse_recurrence_type(periodicity)
    anchor = from_canonical_utc(start)
    limit = from_canonical_utc(end)

    occurrences: list[str] = []
    k = 0
    current = anchor
    while current <= limit:
        occurrences.append(format_canonical(current))
        k += 1
        try:
            current = anchor + _offset(periodicity, k)
        except (OverflowError, ValueError):
            # Past year 9999, so past any end date
            break

    return occurrences
