"""
Month periods and money rounding.

Months cross every boundary of the engine as literal ``YYYY-MM`` strings.
Malformed input fails fast with InvalidArgumentError and is never coerced.

Money is carried as Decimal at full precision internally; round2 is applied
only when producing output.
"""

import calendar
import re
from datetime import MAXYEAR, MINYEAR, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from finsight.errors import InvalidArgumentError


MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")
# Snapshots are keyed by month and use the stricter form
SNAPSHOT_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# The range end of a December is January of the next year, which must
# still be a valid datetime
LAST_YEAR = MAXYEAR - 1

TWO_PLACES = Decimal("0.01")

Number = Union[Decimal, int, float]


def utcnow() -> datetime:
    """Naive UTC now; all stored datetimes are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalise an aware datetime to naive UTC, leave naive ones alone."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Optional[Number]) -> Decimal:
    """
    Round a monetary value to 2 decimal places, half away from zero.

    None and NaN round to zero.
    """
    amount = to_decimal(value)
    if amount.is_nan():
        return Decimal("0.00")
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def parse_month(month: Optional[str], strict: bool = False) -> tuple[int, int]:
    """
    Validate a ``YYYY-MM`` string and return (year, month).

    Args:
        month: The month string
        strict: Use the snapshot pattern, which also rejects months
                outside 01-12 at the regex level

    Raises:
        InvalidArgumentError: If the string is missing or malformed
    """
    if not month or not isinstance(month, str):
        raise InvalidArgumentError(
            "month", "Please provide month parameter in YYYY-MM format"
        )

    pattern = SNAPSHOT_MONTH_PATTERN if strict else MONTH_PATTERN
    if not pattern.match(month):
        raise InvalidArgumentError("month", "Invalid month format. Use YYYY-MM")

    year, month_number = int(month[:4]), int(month[5:7])
    if not 1 <= month_number <= 12 or not MINYEAR <= year <= LAST_YEAR:
        raise InvalidArgumentError("month", f"Month out of range: {month}")

    return year, month_number


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_of(value: datetime) -> str:
    return format_month(value.year, value.month)


def month_range(month: str) -> tuple[datetime, datetime]:
    """
    Half-open range [start of month, start of next month).
    """
    year, month_number = parse_month(month)
    start = datetime(year, month_number, 1)
    if month_number == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month_number + 1, 1)
    return start, end


def previous_month(month: str) -> Optional[str]:
    """The calendar month before ``month``, or None before year 1."""
    year, month_number = parse_month(month)
    if month_number == 1:
        if year == MINYEAR:
            return None
        return format_month(year - 1, 12)
    return format_month(year, month_number - 1)


def days_in_month(month: str) -> int:
    """Calendar days in the month, not elapsed days."""
    year, month_number = parse_month(month)
    return calendar.monthrange(year, month_number)[1]
