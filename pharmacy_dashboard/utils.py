"""
Shared utilities for collaborator payloads: instant normalisation, numeric
coercion, field-alias lookup, header detection.
"""

import logging
import math
import re
from collections.abc import Mapping
from datetime import date, datetime, tzinfo
from typing import Any

import pandas as pd

from .config import BUSINESS_TZ, FIELD_ALIASES

logger = logging.getLogger(__name__)


def normalise_instant(val: Any, tz: tzinfo = BUSINESS_TZ) -> datetime | None:
    """Convert a payload date value to an aware datetime in `tz`.

    Aware values are converted, naive values are read as wall-clock time in
    `tz`, plain dates become midnight. Numbers are Excel serial days
    (1899-12-30 epoch). Returns None for unparseable values.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        if not math.isfinite(val):
            return None
        try:
            ts = pd.Timestamp("1899-12-30") + pd.Timedelta(days=float(val))
        except (ValueError, OverflowError):
            logger.warning("Could not convert serial number %s to date", val)
            return None
    elif isinstance(val, (datetime, date)):
        ts = pd.Timestamp(val)
    else:
        try:
            ts = pd.Timestamp(str(val).strip())
        except (ValueError, TypeError, OverflowError):
            logger.warning("Could not parse date value: %s", val)
            return None

    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        ts = ts.tz_localize(tz)
    else:
        ts = ts.tz_convert(tz)
    return ts.to_pydatetime()


def safe_float(val: Any) -> float | None:
    """Float value of a payload or cell value, or None when it is not numeric.

    Strings may carry surrounding spaces or a trailing "%"; formula strings
    such as "=SUM(B2:B9)" are not numbers.
    """
    if val is None:
        return None
    if isinstance(val, str):
        text = val.strip().removesuffix("%").strip()
        if not text or text.startswith("="):
            return None
        val = text
    try:
        return float(val)
    except (ValueError, TypeError):
        return None


def coerce_number(val: Any) -> float:
    """`Number(x) || 0`: any missing, non-numeric or non-finite value is 0."""
    num = safe_float(val)
    if num is None or not math.isfinite(num):
        return 0.0
    return num


def pick(record: Any, field: str, default: Any = None) -> Any:
    """Return the first non-null value among the aliases of `field`."""
    if not isinstance(record, Mapping):
        return default
    for key in FIELD_ALIASES.get(field, [field]):
        value = record.get(key)
        if value is not None:
            return value
    return default


def nested_name(record: Any, key: str, name_key: str = "name") -> str | None:
    """Read `record[key][name_key]`, tolerating flat string values."""
    if not isinstance(record, Mapping):
        return None
    value = record.get(key)
    if isinstance(value, Mapping):
        value = value.get(name_key)
    if value is None:
        return None
    return str(value).strip() or None


def to_snake_case(name: Any) -> str:
    """Header cell or sheet name as a lookup key.

    "Sealed Date", "SealedDate" and "sealed_date" all become "sealed_date".
    """
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", str(name).strip())
    return "_".join(re.findall(r"[a-z0-9]+", text.lower()))


def find_header_row(sheet, signature: set[str], max_rows: int = 20) -> int | None:
    """1-based index of the first row naming at least two `signature` columns.

    Rows above the table (titles, export notes) are skipped. Returns None
    when no such row appears within `max_rows`.
    """
    for row_idx in range(1, min(max_rows, sheet.max_row) + 1):
        labels = {to_snake_case(cell.value) for cell in sheet[row_idx] if cell.value is not None}
        if len(labels & signature) >= 2:
            return row_idx
    return None
