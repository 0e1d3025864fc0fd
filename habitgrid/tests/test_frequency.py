"""Frequency rule engine: due-ness per date, config validation, labels."""

from datetime import date, timedelta

import pytest

pytestmark = pytest.mark.unit

from habitgrid.domains.habits.errors import HabitValidationError
from habitgrid.domains.habits.frequency import (
    SpecificDaysConfig,
    WeeklyCountConfig,
    describe_frequency,
    due_days,
    filter_due,
    is_due,
    normalize_frequency,
    parse_frequency_config,
    weekday_index,
)

MON_WED_FRI = {"frequency": "custom", "frequency_config": {"type": "specific_days", "days": [1, 3, 5]}}


def _span(start: date, days: int):
    return [start + timedelta(days=offset) for offset in range(days)]


class TestWeekdayIndex:
    def test_sunday_is_zero(self):
        assert weekday_index(date(2026, 10, 18)) == 0  # Sunday
        assert weekday_index(date(2026, 10, 19)) == 1  # Monday
        assert weekday_index(date(2026, 10, 24)) == 6  # Saturday


class TestIsDue:
    def test_daily_is_due_every_date(self):
        habit = {"frequency": "daily", "frequency_config": None}
        assert all(is_due(habit, day) for day in _span(date(2024, 1, 1), 400))

    def test_weekly_count_is_due_every_date(self):
        habit = {"frequency": "custom", "frequency_config": {"type": "weekly_count", "count": 3}}
        assert all(is_due(habit, day) for day in _span(date(2026, 1, 1), 60))

    def test_specific_days_due_only_on_listed_weekdays(self):
        week = _span(date(2026, 10, 19), 7)  # Monday..Sunday
        assert due_days(MON_WED_FRI, week) == [True, False, True, False, True, False, False]

    @pytest.mark.parametrize(
        "day, expected",
        [
            (date(2024, 2, 28), True),  # Wednesday
            (date(2024, 2, 29), False),  # leap day, Thursday
            (date(2024, 3, 1), True),  # Friday, month boundary
            (date(2025, 12, 31), True),  # Wednesday, year boundary
            (date(2026, 1, 1), False),  # Thursday
        ],
    )
    def test_specific_days_across_calendar_boundaries(self, day, expected):
        assert is_due(MON_WED_FRI, day) is expected

    def test_sunday_only(self):
        habit = {"frequency": "custom", "frequency_config": {"type": "specific_days", "days": [0]}}
        assert is_due(habit, date(2026, 10, 25)) is True
        assert is_due(habit, date(2026, 10, 26)) is False

    @pytest.mark.parametrize(
        "config",
        [
            None,
            {},
            {"type": "monthly", "days": [1]},
            {"type": "specific_days"},
            {"type": "specific_days", "days": "135"},
            {"type": "specific_days", "days": []},
            {"type": "weekly_count", "count": 0},
            "weekly",
        ],
    )
    def test_custom_with_malformed_config_fails_closed(self, config):
        habit = {"frequency": "custom", "frequency_config": config}
        assert is_due(habit, date(2026, 10, 19)) is False

    def test_unknown_frequency_is_never_due(self):
        assert is_due({"frequency": "hourly"}, date(2026, 10, 19)) is False

    def test_accepts_objects_with_attributes(self):
        class Row:
            frequency = "custom"
            frequency_config = {"type": "specific_days", "days": [2]}

        assert is_due(Row(), date(2026, 10, 20)) is True  # Tuesday
        assert is_due(Row(), date(2026, 10, 21)) is False

    def test_filter_due_keeps_order(self):
        daily = {"id": 1, "frequency": "daily"}
        tuesdays = {"id": 2, "frequency": "custom", "frequency_config": {"type": "specific_days", "days": [2]}}
        mwf = {"id": 3, **MON_WED_FRI}
        assert [h["id"] for h in filter_due([daily, tuesdays, mwf], date(2026, 10, 19))] == [1, 3]


class TestNormalizeFrequency:
    def test_daily_defaults(self):
        assert normalize_frequency(None, None) == ("daily", None)
        assert normalize_frequency(" Daily ", None) == ("daily", None)

    def test_daily_rejects_config(self):
        with pytest.raises(HabitValidationError):
            normalize_frequency("daily", {"type": "weekly_count", "count": 2})

    def test_custom_requires_config(self):
        with pytest.raises(HabitValidationError):
            normalize_frequency("custom", None)

    def test_custom_days_are_sorted_and_deduplicated(self):
        assert normalize_frequency("custom", {"type": "specific_days", "days": [5, 1, 3, 1]}) == (
            "custom",
            {"type": "specific_days", "days": [1, 3, 5]},
        )

    def test_invalid_config_carries_details(self):
        with pytest.raises(HabitValidationError) as excinfo:
            normalize_frequency("custom", {"type": "weekly_count", "count": 9})
        assert str(excinfo.value) == "validation_error"
        assert excinfo.value.details

    def test_extra_keys_rejected(self):
        with pytest.raises(HabitValidationError):
            normalize_frequency("custom", {"type": "weekly_count", "count": 2, "days": [1]})

    def test_unknown_frequency_rejected(self):
        with pytest.raises(HabitValidationError):
            normalize_frequency("monthly", None)

    def test_accepts_typed_config(self):
        assert normalize_frequency("custom", WeeklyCountConfig(type="weekly_count", count=4)) == (
            "custom",
            {"type": "weekly_count", "count": 4},
        )


class TestParseAndDescribe:
    def test_parse_returns_typed_variant(self):
        parsed = parse_frequency_config({"type": "specific_days", "days": [6, 0]})
        assert isinstance(parsed, SpecificDaysConfig)
        assert parsed.days == [0, 6]

    def test_parse_malformed_returns_none(self):
        assert parse_frequency_config({"type": "nope"}) is None

    @pytest.mark.parametrize(
        "habit, label",
        [
            ({"frequency": "daily"}, "Every day"),
            ({"frequency": "custom", "frequency_config": {"type": "weekly_count", "count": 3}}, "3x per week"),
            (MON_WED_FRI, "3 days per week"),
            ({"frequency": "custom", "frequency_config": {"type": "specific_days", "days": [4]}}, "1 day per week"),
            ({"frequency": "custom", "frequency_config": None}, "Not scheduled"),
        ],
    )
    def test_describe_frequency(self, habit, label):
        assert describe_frequency(habit) == label
