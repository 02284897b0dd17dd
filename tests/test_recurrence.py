"""
Test espansione eventi ricorrenti
"""
import pytest
from datetime import date, datetime, timedelta, timezone

from sportclub.errors import ValidationFailure
from sportclub.events.recurrence import (
    Frequency,
    RecurrenceLimitExceeded,
    RecurrenceRule,
    expand_occurrences,
    parse_boundary,
)


START = datetime(2024, 1, 1, 18, 0)
END = datetime(2024, 1, 1, 19, 30)


class TestParseBoundary:
    """Lettura data di fine ricorrenza"""

    def test_date_only(self):
        assert parse_boundary("2024-01-15") == date(2024, 1, 15)

    def test_datetime_with_z(self):
        assert parse_boundary("2024-01-15T18:00:00Z") == datetime(2024, 1, 15, 18, 0, tzinfo=timezone.utc)

    def test_empty(self):
        assert parse_boundary(None) is None
        assert parse_boundary("") is None

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_boundary("not-a-date")


class TestExpandOccurrences:
    """Sequenza delle occorrenze"""

    def test_weekly_inclusive_end(self):
        """Settimanale dal 1 al 15 gennaio: 1, 8 e 15 gennaio"""
        rule = RecurrenceRule(frequency=Frequency.weekly)
        occurrences = expand_occurrences(START, END, rule, date(2024, 1, 15))

        assert [s.date() for s, _ in occurrences] == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]

    def test_duration_is_preserved(self):
        rule = RecurrenceRule(frequency=Frequency.daily, interval=2)
        occurrences = expand_occurrences(START, END, rule, date(2024, 1, 9))

        assert len(occurrences) == 5
        assert all(e - s == timedelta(hours=1, minutes=30) for s, e in occurrences)

    def test_no_end_date_gives_single_occurrence(self):
        rule = RecurrenceRule(frequency=Frequency.weekly)
        assert expand_occurrences(START, END, rule, None) == [(START, END)]

    def test_end_before_start_gives_nothing(self):
        rule = RecurrenceRule(frequency=Frequency.daily)
        assert expand_occurrences(START, END, rule, date(2023, 12, 31)) == []

    def test_datetime_bound_is_exact(self):
        rule = RecurrenceRule(frequency=Frequency.weekly)
        occurrences = expand_occurrences(START, END, rule, datetime(2024, 1, 15, 17, 59))
        assert len(occurrences) == 2

    def test_aware_start_with_date_only_bound(self):
        start = datetime(2024, 1, 1, 18, 0, tzinfo=timezone.utc)
        rule = RecurrenceRule(frequency=Frequency.weekly)
        occurrences = expand_occurrences(start, start + timedelta(hours=1), rule, parse_boundary("2024-01-15"))
        assert len(occurrences) == 3

    def test_monthly_clamps_without_drift(self):
        """31 gen → 29 feb → 31 mar → 30 apr"""
        start = datetime(2024, 1, 31, 10, 0)
        rule = RecurrenceRule(frequency=Frequency.monthly)
        occurrences = expand_occurrences(start, start + timedelta(hours=1), rule, date(2024, 4, 30))

        assert [s.date() for s, _ in occurrences] == [
            date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)
        ]

    def test_interval_is_respected(self):
        rule = RecurrenceRule(frequency=Frequency.weekly, interval=2)
        occurrences = expand_occurrences(START, END, rule, date(2024, 1, 31))
        assert [s.day for s, _ in occurrences] == [1, 15, 29]

    def test_cap_raises(self):
        rule = RecurrenceRule(frequency=Frequency.daily)
        with pytest.raises(RecurrenceLimitExceeded):
            expand_occurrences(START, END, rule, date(2030, 1, 1), max_occurrences=366)

    def test_cap_is_a_validation_failure(self):
        assert issubclass(RecurrenceLimitExceeded, ValidationFailure)

    def test_exactly_at_cap_is_allowed(self):
        rule = RecurrenceRule(frequency=Frequency.daily)
        occurrences = expand_occurrences(START, END, rule, date(2024, 1, 10), max_occurrences=10)
        assert len(occurrences) == 10

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            RecurrenceRule(frequency=Frequency.daily, interval=0)
