"""Calendar window tests in the fixed UTC+3 business timezone."""

from datetime import date, datetime, timedelta, timezone

import pytest

from pharmacy_dashboard.config import BUSINESS_TZ
from pharmacy_dashboard.timeranges import (
    END_OF_DAY,
    DateRange,
    business_now,
    business_today,
    current_month_range,
    format_week_display,
    month_range,
    week_range,
    year_range,
)


class TestMonthRange:

    @pytest.mark.parametrize("key, last_day", [
        ("2024-02", 29),
        ("2023-02", 28),
        ("2024-04", 30),
        ("2024-03", 31),
    ])
    def test_month_lengths(self, key, last_day):
        window = month_range(key)
        assert window.range.start.day == 1
        assert window.range.end.day == last_day

    def test_bounds_are_inclusive_business_time(self):
        window = month_range("2024-03")
        assert window.range.start == datetime(2024, 3, 1, 0, 0, tzinfo=BUSINESS_TZ)
        assert window.range.end == datetime(2024, 3, 31, 23, 59, 59, 999000, tzinfo=BUSINESS_TZ)
        assert window.month_name == "March"
        assert window.year == 2024
        assert window.month_key == "2024-03"

    def test_single_digit_month(self):
        assert month_range("2024-3").month == 3

    @pytest.mark.parametrize("key", [None, "", "March", "2024-13", "2024-00", "24-03", "0000-05"])
    def test_invalid_tokens_return_none(self, key):
        assert month_range(key) is None

    def test_custom_offset(self):
        window = month_range("2024-03", offset_hours=0)
        assert window.range.start.utcoffset() == timedelta(0)


class TestCurrentMonth:

    def test_naive_now_is_utc(self):
        # 22:00 UTC on 31 March is already 1 April in business time
        window = current_month_range(datetime(2024, 3, 31, 22, 0))
        assert window.month == 4
        assert window.month_name == "April"

    def test_business_now_converts(self):
        moment = business_now(datetime(2024, 3, 3, 9, 0, tzinfo=timezone.utc))
        assert moment.hour == 12
        assert moment.utcoffset() == timedelta(hours=3)

    def test_business_today_rolls_over_before_utc(self):
        # 22:00 UTC on 2 March is already 3 March in business time
        assert business_today(datetime(2024, 3, 2, 22, 0, tzinfo=timezone.utc)) == date(2024, 3, 3)
        assert business_today(datetime(2024, 3, 2, 22, 0, tzinfo=timezone.utc), offset_hours=0) == date(2024, 3, 2)

    @pytest.mark.parametrize("now, month, last_day", [
        (datetime(2023, 2, 10, tzinfo=timezone.utc), 2, 28),
        (datetime(2024, 2, 10, tzinfo=timezone.utc), 2, 29),
        (datetime(2024, 4, 10, tzinfo=timezone.utc), 4, 30),
        (datetime(2024, 3, 10, tzinfo=timezone.utc), 3, 31),
        # 21:30 UTC on 29 February is 00:30 on 1 March
        (datetime(2024, 2, 29, 21, 30, tzinfo=timezone.utc), 3, 31),
    ])
    def test_month_lengths(self, now, month, last_day):
        window = current_month_range(now)
        assert window.month == month
        assert window.range.start == datetime(now.year, month, 1, tzinfo=BUSINESS_TZ)
        assert window.range.end.day == last_day
        assert window.range.end.time() == END_OF_DAY


class TestYearRange:

    def test_bounds(self):
        window = year_range(2024)
        assert window.start == datetime(2024, 1, 1, tzinfo=BUSINESS_TZ)
        assert window.end == datetime(2024, 12, 31, 23, 59, 59, 999000, tzinfo=BUSINESS_TZ)
        assert window.start_date == "2024-01-01"
        assert window.end_date == "2024-12-31"

    def test_accepts_string_year(self):
        assert year_range("2023").start.year == 2023


class TestWeekRange:

    def test_sunday_belongs_to_previous_monday(self):
        week = week_range("2024-03-03")
        assert week.start.date() == date(2024, 2, 26)
        assert week.end.date() == date(2024, 3, 3)
        assert week.end.time() == END_OF_DAY

    def test_monday_starts_its_own_week(self):
        week = week_range(date(2024, 2, 26))
        assert week.start.date() == date(2024, 2, 26)

    def test_missing_anchor_uses_now(self):
        week = week_range(None, now=datetime(2024, 3, 6, 12, tzinfo=timezone.utc))
        assert week.start.date() == date(2024, 3, 4)
        assert week.end.date() == date(2024, 3, 10)

    def test_malformed_anchor_falls_back_to_now(self):
        week = week_range("not-a-date", now=datetime(2024, 3, 6, 12, tzinfo=timezone.utc))
        assert week.start.date() == date(2024, 3, 4)

    def test_week_spanning_years(self):
        week = week_range("2025-01-01")
        assert week.start.date() == date(2024, 12, 30)
        assert week.end.date() == date(2025, 1, 5)


class TestDateRange:

    def test_start_after_end_rejected(self):
        with pytest.raises(ValueError):
            DateRange(
                start=datetime(2024, 3, 2, tzinfo=BUSINESS_TZ),
                end=datetime(2024, 3, 1, tzinfo=BUSINESS_TZ),
            )

    def test_from_calendar_requires_year_or_anchor(self):
        with pytest.raises(ValueError):
            DateRange.from_calendar()

    def test_contains_converts_to_business_time(self):
        window = month_range("2024-03").range
        # 21:30 UTC on 29 Feb is 00:30 on 1 March in business time
        assert window.contains("2024-02-29T21:30:00Z")
        assert not window.contains("2024-02-29T20:59:00Z")
        assert window.contains("2024-03-31 23:59:59")
        assert not window.contains("garbage")


class TestFormatWeekDisplay:

    def test_spanning_months(self):
        assert format_week_display(week_range("2024-03-03")) == "Feb 26 - Mar 3, 2024"

    def test_spanning_years_uses_end_year(self):
        assert format_week_display(week_range("2025-01-01")) == "Dec 30 - Jan 5, 2025"
