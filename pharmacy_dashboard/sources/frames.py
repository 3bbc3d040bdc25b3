"""
In-process collaborator answering every dashboard query from pandas tables.

The filters mirror the pharmacy API: sales by ``sealed_date`` inside the
window, expiry alerts within EXPIRY_ALERT_DAYS, low stock at or below
LOW_STOCK_THRESHOLD, winning products by share of units sold.

Expected tables
---------------
medicines : medicine_name, batch_number, brand_name, quantity, expire_date,
            dosage_form, category, supplier
sales : medicine_name, quantity, total_amount, sealed_date
objectives : objective_id, title
key_results : objective_id, title, start_value, target_value, progress, weight
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pandas as pd

from ..config import (
    BUSINESS_UTC_OFFSET_HOURS,
    EXPIRY_ALERT_DAYS,
    LOW_STOCK_THRESHOLD,
    WINNING_PRODUCTS_LIMIT,
)
from ..timeranges import DateRange, business_tz
from ..transforms import rank_winning_products
from ..utils import normalise_instant
from .base import DashboardSource

logger = logging.getLogger(__name__)

MEDICINE_COLUMNS = [
    "medicine_name", "batch_number", "brand_name", "quantity", "expire_date",
    "dosage_form", "category", "supplier",
]
SALES_COLUMNS = ["medicine_name", "quantity", "total_amount", "sealed_date"]
OBJECTIVE_COLUMNS = ["objective_id", "title"]
KEY_RESULT_COLUMNS = ["objective_id", "title", "start_value", "target_value", "progress", "weight"]


def _with_columns(df: pd.DataFrame | None, columns: list[str]) -> pd.DataFrame:
    df = pd.DataFrame(columns=columns) if df is None else df.copy()
    for col in columns:
        if col not in df.columns:
            df[col] = None
    return df.reset_index(drop=True)


def _clean(value: Any) -> Any:
    """NaN/NaT become None so payloads stay JSON-like."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    return value


class FrameSource(DashboardSource):
    """Dashboard queries over in-memory pandas tables."""

    def __init__(
        self,
        medicines: pd.DataFrame | None = None,
        sales: pd.DataFrame | None = None,
        objectives: pd.DataFrame | None = None,
        key_results: pd.DataFrame | None = None,
        clock: Callable[[], datetime] | None = None,
        offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
        low_stock_threshold: float = LOW_STOCK_THRESHOLD,
        expiry_alert_days: int = EXPIRY_ALERT_DAYS,
    ):
        self.tz = business_tz(offset_hours)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.low_stock_threshold = low_stock_threshold
        self.expiry_alert_days = expiry_alert_days

        self.medicines = _with_columns(medicines, MEDICINE_COLUMNS)
        self.sales = _with_columns(sales, SALES_COLUMNS)
        self.objectives = _with_columns(objectives, OBJECTIVE_COLUMNS)
        self.key_results = _with_columns(key_results, KEY_RESULT_COLUMNS)

        self.medicines["expire_date"] = self._to_business_time(self.medicines["expire_date"])
        self.sales["sealed_date"] = self._to_business_time(self.sales["sealed_date"])
        self.medicines["quantity"] = pd.to_numeric(self.medicines["quantity"], errors="coerce")

        logger.info(
            "FrameSource ready: %d medicines, %d sales, %d objectives, %d key results",
            len(self.medicines), len(self.sales), len(self.objectives), len(self.key_results),
        )

    def _to_business_time(self, column: pd.Series) -> pd.Series:
        instants = column.map(lambda v: normalise_instant(_clean(v), self.tz))
        return pd.to_datetime(instants, utc=True).dt.tz_convert(self.tz)

    def _now(self) -> pd.Timestamp:
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return pd.Timestamp(now).tz_convert(self.tz)

    def _medicine_payload(self, rows: pd.DataFrame) -> list[dict]:
        payload = []
        for _, row in rows.iterrows():
            payload.append({
                "medicine_name": _clean(row["medicine_name"]),
                "batch_number": _clean(row["batch_number"]),
                "brand_name": _clean(row["brand_name"]),
                "quantity": _clean(row["quantity"]),
                "expire_date": _clean(row["expire_date"]),
                "dosage_form": {"name": _clean(row["dosage_form"])},
                "category": {"name": _clean(row["category"])},
                "supplier": {"supplier_name": _clean(row["supplier"])},
            })
        return payload

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def query_sales(self, window: DateRange) -> dict:
        sealed = self.sales["sealed_date"]
        in_window = self.sales[(sealed >= window.start) & (sealed <= window.end)]
        in_window = in_window.sort_values("sealed_date", ascending=False)

        amounts = pd.to_numeric(in_window["total_amount"], errors="coerce").fillna(0)
        quantities = pd.to_numeric(in_window["quantity"], errors="coerce").fillna(0)

        sales = [
            {col: _clean(row[col]) for col in SALES_COLUMNS}
            for _, row in in_window.iterrows()
        ]
        logger.debug("Sales %s..%s: %d rows", window.start_date, window.end_date, len(sales))
        return {
            "summary": {
                "salesCount": len(sales),
                "totalSales": round(float(amounts.sum()), 2),
                "totalQuantity": float(quantities.sum()),
                "startDate": window.start_date,
                "endDate": window.end_date,
            },
            "sales": sales,
        }

    async def query_expiring_soon(self) -> list[dict]:
        now = self._now()
        horizon = now + timedelta(days=self.expiry_alert_days)
        expiry = self.medicines["expire_date"]
        return self._medicine_payload(self.medicines[(expiry >= now) & (expiry <= horizon)])

    async def query_expired(self) -> dict:
        expiry = self.medicines["expire_date"]
        return {"medicines": self._medicine_payload(self.medicines[expiry < self._now()])}

    async def query_low_stock(self) -> list[dict]:
        quantity = self.medicines["quantity"]
        return self._medicine_payload(self.medicines[quantity <= self.low_stock_threshold])

    async def query_medicine_report(self) -> dict:
        return {
            "generatedAt": self._now().isoformat(),
            "winningProducts": rank_winning_products(
                self.medicines, self.sales, WINNING_PRODUCTS_LIMIT
            ),
        }

    async def query_objectives(self) -> list[dict]:
        objectives = []
        for _, obj in self.objectives.iterrows():
            krs = self.key_results[self.key_results["objective_id"] == obj["objective_id"]]
            objectives.append({
                "id": _clean(obj["objective_id"]),
                "title": _clean(obj["title"]),
                "KeyResults": [
                    {col: _clean(kr[col]) for col in KEY_RESULT_COLUMNS if col != "objective_id"}
                    for _, kr in krs.iterrows()
                ],
            })
        return objectives
