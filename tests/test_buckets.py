"""Weekly and yearly sales bucketing."""

from datetime import datetime, timezone

import pytest

from pharmacy_dashboard.buckets import bucket_weekly, bucket_yearly, label_series
from pharmacy_dashboard.config import BUSINESS_TZ, MONTH_LABELS, WEEKDAY_LABELS
from pharmacy_dashboard.models import SaleRecord


class TestBucketWeekly:

    def test_wednesday_lands_in_slot_two(self):
        records = [{"total_amount": 100, "sealed_date": "2024-02-28T10:00:00+03:00"}]
        assert bucket_weekly(records) == [0.0, 0.0, 100.0, 0.0, 0.0, 0.0, 0.0]

    def test_sunday_is_last_slot(self):
        records = [SaleRecord(amount=40.0, occurred_at=datetime(2024, 3, 3, 9, tzinfo=BUSINESS_TZ))]
        assert bucket_weekly(records)[6] == 40.0

    def test_slot_uses_business_day(self):
        # 22:30 UTC Tuesday is 01:30 Wednesday in business time
        records = [{"amount": 5, "occurred_at": "2024-02-27T22:30:00Z"}]
        assert bucket_weekly(records)[2] == 5.0

    def test_same_weekday_accumulates(self):
        records = [
            SaleRecord(10.0, datetime(2024, 2, 26, 9, tzinfo=BUSINESS_TZ)),
            SaleRecord(15.5, datetime(2024, 2, 26, 18, tzinfo=BUSINESS_TZ)),
        ]
        assert bucket_weekly(records)[0] == 25.5

    def test_order_independent(self):
        records = [
            {"total_amount": 0.1, "sealed_date": "2024-02-26T09:00:00+03:00"},
            {"total_amount": 0.2, "sealed_date": "2024-02-26T10:00:00+03:00"},
            {"total_amount": 0.3, "sealed_date": "2024-02-26T11:00:00+03:00"},
            {"total_amount": 7, "sealed_date": "2024-02-29T11:00:00+03:00"},
        ]
        assert bucket_weekly(records) == bucket_weekly(list(reversed(records)))

    def test_empty_input(self):
        assert bucket_weekly([]) == [0.0] * 7
        assert bucket_weekly(None) == [0.0] * 7

    def test_bad_amount_counts_as_zero(self):
        records = [
            {"total_amount": "abc", "sealed_date": "2024-02-26T09:00:00+03:00"},
            {"total_amount": 3, "sealed_date": "2024-02-26T10:00:00+03:00"},
        ]
        assert bucket_weekly(records)[0] == 3.0

    def test_records_without_date_are_skipped(self):
        records = [
            {"total_amount": 50},
            {"total_amount": 60, "sealed_date": "not a date"},
            SaleRecord(amount=70.0, occurred_at=None),
        ]
        assert bucket_weekly(records) == [0.0] * 7


class TestBucketYearly:

    def test_month_slots(self):
        records = [
            {"total_amount": 10.5, "sealed_date": "2024-01-15T11:00:00+03:00"},
            {"total_amount": 45, "sealed_date": "2024-02-20T11:00:00+03:00"},
            {"total_amount": 1, "sealed_date": "2024-12-31T23:59:59+03:00"},
        ]
        totals = bucket_yearly(records)
        assert len(totals) == 12
        assert totals[0] == 10.5
        assert totals[1] == 45.0
        assert totals[11] == 1.0

    def test_month_boundary_in_business_time(self):
        # 21:30 UTC on 31 January is 00:30 on 1 February
        records = [{"total_amount": 9, "sealed_date": datetime(2024, 1, 31, 21, 30, tzinfo=timezone.utc)}]
        assert bucket_yearly(records)[1] == 9.0

    def test_custom_offset(self):
        records = [{"total_amount": 9, "sealed_date": "2024-01-31T21:30:00Z"}]
        assert bucket_yearly(records, offset_hours=0)[0] == 9.0

    def test_order_independent(self):
        records = [
            {"total_amount": 0.1, "sealed_date": "2024-01-05T09:00:00+03:00"},
            {"total_amount": 0.2, "sealed_date": "2024-01-20T10:00:00+03:00"},
            {"total_amount": 0.3, "sealed_date": "2024-01-31T23:00:00+03:00"},
            {"total_amount": 12, "sealed_date": "2024-06-15T11:00:00+03:00"},
            {"total_amount": 4.5, "sealed_date": "2024-06-01T00:00:00+03:00"},
        ]
        shuffled = [records[i] for i in (3, 0, 4, 2, 1)]
        expected = bucket_yearly(records)
        assert bucket_yearly(shuffled) == expected
        assert bucket_yearly(list(reversed(records))) == expected
        assert expected[5] == 16.5


class TestLabelSeries:

    def test_pairs_labels(self):
        series = label_series([1.0] * 7, WEEKDAY_LABELS)
        assert series[0] == ("Mon", 1.0)
        assert series[-1] == ("Sun", 1.0)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            label_series([0.0] * 7, MONTH_LABELS)
