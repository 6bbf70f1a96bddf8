"""Unit tests for period keys and calendar arithmetic."""

from datetime import datetime, timezone

import pytest

from flowdesk.scheduling.periods import (
    add_period,
    hour_key,
    iso_week_key,
    iso_week_number,
    normalize_period_key,
    parse_hour_key,
    period_key,
    visible_range,
)


class TestHourKey:
    def test_zero_padded(self):
        assert hour_key(datetime(2024, 3, 5, 7, 42, 13)) == "2024-03-05T07:00:00"

    def test_round_trip_recovers_truncated_hour(self):
        value = datetime(2024, 11, 30, 23, 59, 59, 999000)
        assert parse_hour_key(hour_key(value)) == datetime(2024, 11, 30, 23)

    def test_reads_wall_clock_fields_of_aware_values(self):
        value = datetime(2024, 6, 1, 22, 30, tzinfo=timezone.utc)
        assert hour_key(value) == "2024-06-01T22:00:00"

    def test_keys_sort_chronologically(self):
        values = [
            datetime(2024, 1, 10, 9),
            datetime(2023, 12, 31, 23),
            datetime(2024, 1, 9, 15),
        ]
        keys = [hour_key(v) for v in values]
        assert sorted(keys) == [hour_key(v) for v in sorted(values)]

    @pytest.mark.parametrize("key", ["2024-01-01", "garbage", "2024-13-01T10:00:00"])
    def test_parse_rejects_invalid(self, key):
        with pytest.raises(ValueError):
            parse_hour_key(key)


class TestIsoWeek:
    def test_week_containing_jan_4_is_week_1(self):
        assert iso_week_number(datetime(2024, 1, 4)) == 1

    def test_early_january_can_belong_to_previous_year(self):
        # Jan 1 2021 is a Friday
        assert iso_week_number(datetime(2021, 1, 1)) == 53
        assert iso_week_key(datetime(2021, 1, 1)) == "2020-W53"

    def test_late_december_can_belong_to_next_year(self):
        assert iso_week_key(datetime(2024, 12, 30)) == "2025-W01"


class TestPeriodKey:
    @pytest.mark.parametrize(
        "scale,expected",
        [
            ("hour", "2024-07-15T14:00:00"),
            ("day", "2024-07-15T00:00:00"),
            ("week", "2024-W29"),
            ("month", "2024-07"),
            ("year", "2024"),
        ],
    )
    def test_formats(self, scale, expected):
        assert period_key(datetime(2024, 7, 15, 14, 25), scale) == expected

    def test_unknown_scale(self):
        with pytest.raises(ValueError):
            period_key(datetime(2024, 7, 15), "fortnight")


class TestVisibleRange:
    def test_day(self):
        window = visible_range(datetime(2024, 5, 8, 13, 30), "day")
        assert window.start == datetime(2024, 5, 8)
        assert window.end == datetime(2024, 5, 8, 23, 59, 59, 999000)

    def test_week_runs_sunday_to_saturday(self):
        # Wednesday
        window = visible_range(datetime(2024, 5, 8, 13, 30), "week")
        assert window.start == datetime(2024, 5, 5)
        assert window.start.weekday() == 6
        assert window.end == datetime(2024, 5, 11, 23, 59, 59, 999000)

    def test_week_anchored_on_sunday_starts_that_day(self):
        window = visible_range(datetime(2024, 5, 5, 0, 0), "week")
        assert window.start == datetime(2024, 5, 5)

    def test_month_padded_to_full_weeks(self):
        # May 2024 starts on a Wednesday and ends on a Friday
        window = visible_range(datetime(2024, 5, 20), "month")
        assert window.start == datetime(2024, 4, 28)
        assert window.end == datetime(2024, 6, 1, 23, 59, 59, 999000)

    def test_year(self):
        window = visible_range(datetime(2024, 5, 20, 10), "year")
        assert window.start == datetime(2024, 1, 1)
        assert window.end == datetime(2024, 12, 31, 23, 59, 59, 999000)

    def test_hour(self):
        window = visible_range(datetime(2024, 5, 20, 10, 45), "hour")
        assert window.start == datetime(2024, 5, 20, 10)
        assert window.end == datetime(2024, 5, 20, 10, 59, 59, 999000)


class TestAddPeriod:
    def test_hour_crosses_midnight(self):
        assert add_period(datetime(2024, 5, 20, 23), 2, "hour") == datetime(2024, 5, 21, 1)

    def test_week(self):
        assert add_period(datetime(2024, 5, 20), 1, "week") == datetime(2024, 5, 27)

    def test_month_clamps_to_end_of_month(self):
        assert add_period(datetime(2024, 1, 31), 1, "month") == datetime(2024, 2, 29)
        assert add_period(datetime(2023, 1, 31), 1, "month") == datetime(2023, 2, 28)

    def test_year_from_leap_day(self):
        assert add_period(datetime(2024, 2, 29), 1, "year") == datetime(2025, 2, 28)

    def test_negative_amount(self):
        assert add_period(datetime(2024, 3, 1), -1, "day") == datetime(2024, 2, 29)


class TestNormalizePeriodKey:
    def test_truncates_hour_keys(self):
        assert normalize_period_key("2024-05-20T10:45:00", "hour") == "2024-05-20T10:00:00"

    def test_day_keys_share_hour_format(self):
        assert normalize_period_key("2024-05-20T00:00:00", "day") == "2024-05-20T00:00:00"

    def test_day_keys_truncate_to_midnight(self):
        assert normalize_period_key("2024-05-20T14:30:00", "day") == "2024-05-20T00:00:00"

    @pytest.mark.parametrize(
        "key,scale", [("2024-W07", "week"), ("2024-12", "month"), ("2024", "year")]
    )
    def test_accepts_valid_keys(self, key, scale):
        assert normalize_period_key(key, scale) == key

    @pytest.mark.parametrize(
        "key,scale",
        [("2024-W54", "week"), ("2024-13", "month"), ("24", "year"), ("2024", "day")],
    )
    def test_rejects_invalid_keys(self, key, scale):
        with pytest.raises(ValueError):
            normalize_period_key(key, scale)
