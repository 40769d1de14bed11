"""Date arithmetic for recurring meeting series."""
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol

from groupmeet.core.errors import ValidationError

MAX_OCCURRENCES = 52


class RecurrenceType(str, Enum):
    NONE = "none"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


_FIXED_STEPS = {
    RecurrenceType.WEEKLY: timedelta(days=7),
    RecurrenceType.BIWEEKLY: timedelta(days=14),
}


class Dated(Protocol):
    date: datetime
    series_index: int | None


def add_months(start: datetime, months: int) -> datetime:
    """
    Advance ``start`` by whole calendar months.

    The day-of-month is carried over as a day offset from the first of the
    target month, so a day that does not exist there spills into the next
    month (31 Jan + 1 month -> 2 Mar, or 3 Mar outside leap years). Time of
    day and tzinfo are preserved.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    first_of_month = start.replace(year=year, month=month, day=1)
    return first_of_month + timedelta(days=start.day - 1)


def generate_occurrence_dates(
    start: datetime, recurrence: RecurrenceType | str, count: int
) -> list[datetime]:
    """
    Expand a meeting definition into the ordered start dates of its occurrences.

    ``none`` always yields ``[start]`` whatever ``count`` says. Other types
    require ``1 <= count <= 52``:

        weekly:   start + i * 7 days
        biweekly: start + i * 14 days
        monthly:  start advanced by i calendar months
    """
    try:
        recurrence = RecurrenceType(recurrence)
    except ValueError:
        raise ValidationError(f"Unknown recurrence type: {recurrence!r}") from None

    if recurrence is RecurrenceType.NONE:
        return [start]

    if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= MAX_OCCURRENCES:
        raise ValidationError(
            f"Number of occurrences must be between 1 and {MAX_OCCURRENCES}"
        )

    if recurrence is RecurrenceType.MONTHLY:
        return [add_months(start, i) for i in range(count)]

    step = _FIXED_STEPS[recurrence]
    return [start + i * step for i in range(count)]


def infer_interval(first: Dated, second: Dated) -> timedelta:
    """
    Recover one recurrence interval from two adjacent occurrences.

    The original recurrence type is not stored, so the distance between
    neighbouring occurrences is the only record of it.
    """
    if (
        first.series_index is not None
        and second.series_index is not None
        and second.series_index - first.series_index != 1
    ):
        raise ValidationError(
            f"Occurrences {first.series_index} and {second.series_index} are not adjacent"
        )
    return second.date - first.date


def infer_interval_ms(first: Dated, second: Dated) -> int:
    return int(infer_interval(first, second) / timedelta(milliseconds=1))
