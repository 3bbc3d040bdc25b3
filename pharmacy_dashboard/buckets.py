"""
Sales bucketing: fold dated sale amounts into fixed-length series.

Slots are chosen from the sale's business-time calendar field only, so the
result never depends on record order. Per-slot totals use ``math.fsum``
to keep that true for floats as well.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Callable

import pandas as pd

from .config import BUSINESS_UTC_OFFSET_HOURS
from .timeranges import business_tz
from .utils import coerce_number, normalise_instant, pick

logger = logging.getLogger(__name__)

WEEK_SLOTS = 7
YEAR_SLOTS = 12


def _read(record: Any) -> tuple[Any, Any]:
    if isinstance(record, Mapping):
        return pick(record, "sale_amount"), pick(record, "sale_date")
    return getattr(record, "amount", None), getattr(record, "occurred_at", None)


def _bucket(
    records: Iterable[Any] | None,
    n_slots: int,
    slot_of: Callable[[datetime], int],
    offset_hours: float,
) -> list[float]:
    tz = business_tz(offset_hours)
    rows = []
    skipped = 0

    for record in records or []:
        raw_amount, raw_date = _read(record)
        moment = normalise_instant(raw_date, tz)
        if moment is None:
            skipped += 1
            continue
        rows.append({"slot": slot_of(moment), "amount": coerce_number(raw_amount)})

    if skipped:
        logger.warning("Skipped %d sale record(s) without a readable date", skipped)

    if not rows:
        return [0.0] * n_slots

    df = pd.DataFrame(rows)
    totals = (
        df.groupby("slot")["amount"]
        .agg(math.fsum)
        .reindex(range(n_slots), fill_value=0.0)
    )
    return [float(v) for v in totals]


def bucket_weekly(
    records: Iterable[Any] | None,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> list[float]:
    """Daily totals for one week, Monday at index 0 through Sunday at 6."""
    return _bucket(records, WEEK_SLOTS, lambda moment: moment.weekday(), offset_hours)


def bucket_yearly(
    records: Iterable[Any] | None,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> list[float]:
    """Monthly totals for one year, January at index 0."""
    return _bucket(records, YEAR_SLOTS, lambda moment: moment.month - 1, offset_hours)


def label_series(values: list[float], labels: list[str]) -> tuple[tuple[str, float], ...]:
    """Pair each slot with its display label."""
    if len(values) != len(labels):
        raise ValueError(f"Expected {len(labels)} slots, got {len(values)}")
    return tuple(zip(labels, values))
