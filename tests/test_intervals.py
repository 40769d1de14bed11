"""Tests for occurrence date generation and interval inference."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest

from groupmeet.core.errors import ValidationError
from groupmeet.series.intervals import (
    RecurrenceType,
    add_months,
    generate_occurrence_dates,
    infer_interval,
    infer_interval_ms,
)

START = datetime(2024, 1, 15, 19, 0, tzinfo=UTC)


@dataclass
class Occurrence:
    date: datetime
    series_index: int | None


class TestGenerateOccurrenceDates:
    """Tests for generate_occurrence_dates."""

    def test_none_ignores_count(self):
        """A non-recurring meeting has exactly one date whatever the count."""
        assert generate_occurrence_dates(START, RecurrenceType.NONE, 10) == [START]
        assert generate_occurrence_dates(START, "none", 0) == [START]

    def test_weekly(self):
        """Weekly dates are seven days apart."""
        dates = generate_occurrence_dates(START, "weekly", 4)
        assert dates == [
            datetime(2024, 1, 15, 19, 0, tzinfo=UTC),
            datetime(2024, 1, 22, 19, 0, tzinfo=UTC),
            datetime(2024, 1, 29, 19, 0, tzinfo=UTC),
            datetime(2024, 2, 5, 19, 0, tzinfo=UTC),
        ]

    def test_biweekly(self):
        """Biweekly dates are fourteen days apart."""
        dates = generate_occurrence_dates(START, "biweekly", 3)
        assert [d - START for d in dates] == [
            timedelta(0),
            timedelta(days=14),
            timedelta(days=28),
        ]

    def test_monthly_keeps_day_of_month(self):
        """Monthly dates keep the day of month and time of day."""
        dates = generate_occurrence_dates(START, "monthly", 3)
        assert dates == [
            datetime(2024, 1, 15, 19, 0, tzinfo=UTC),
            datetime(2024, 2, 15, 19, 0, tzinfo=UTC),
            datetime(2024, 3, 15, 19, 0, tzinfo=UTC),
        ]

    def test_monthly_crosses_year(self):
        """Monthly dates roll over into the next year."""
        start = datetime(2024, 11, 10, 9, 0, tzinfo=UTC)
        dates = generate_occurrence_dates(start, "monthly", 3)
        assert dates[-1] == datetime(2025, 1, 10, 9, 0, tzinfo=UTC)

    def test_monthly_short_month_spills_over(self):
        """A day missing from the target month spills into the next month."""
        start = datetime(2023, 1, 31, 12, 0, tzinfo=UTC)
        dates = generate_occurrence_dates(start, "monthly", 2)
        assert dates[1] == datetime(2023, 3, 3, 12, 0, tzinfo=UTC)

    def test_monthly_short_month_leap_year(self):
        """In a leap year, 31 January plus one month lands on 2 March."""
        assert add_months(datetime(2024, 1, 31, tzinfo=UTC), 1) == datetime(2024, 3, 2, tzinfo=UTC)

    def test_single_occurrence_series(self):
        """A count of one yields just the start date."""
        assert generate_occurrence_dates(START, "weekly", 1) == [START]

    def test_maximum_count(self):
        """52 occurrences are allowed."""
        assert len(generate_occurrence_dates(START, "weekly", 52)) == 52

    @pytest.mark.parametrize("count", [0, -1, 53, 2.5, True, "4"])
    def test_count_out_of_range(self, count):
        """Counts outside 1..52 or non-integers are rejected."""
        with pytest.raises(ValidationError) as exc:
            generate_occurrence_dates(START, "weekly", count)
        assert exc.value.message == "Number of occurrences must be between 1 and 52"

    def test_unknown_recurrence(self):
        """An unknown recurrence type is a validation error."""
        with pytest.raises(ValidationError):
            generate_occurrence_dates(START, "daily", 3)

    def test_dates_strictly_increase(self):
        """Every recurrence yields strictly increasing dates."""
        for recurrence in ("weekly", "biweekly", "monthly"):
            dates = generate_occurrence_dates(datetime(2024, 1, 31, tzinfo=UTC), recurrence, 12)
            assert all(a < b for a, b in zip(dates, dates[1:]))


class TestInferInterval:
    """Tests for infer_interval."""

    def test_adjacent_occurrences(self):
        """The interval is the distance between neighbouring dates."""
        first = Occurrence(START, 1)
        second = Occurrence(START + timedelta(days=7), 2)
        assert infer_interval(first, second) == timedelta(days=7)
        assert infer_interval_ms(first, second) == 7 * 24 * 60 * 60 * 1000

    def test_non_adjacent_occurrences(self):
        """Occurrences that are not neighbours cannot define the interval."""
        with pytest.raises(ValidationError):
            infer_interval(Occurrence(START, 1), Occurrence(START + timedelta(days=14), 3))
