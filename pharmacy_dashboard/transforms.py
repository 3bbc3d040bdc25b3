"""
Data transforms: turn raw collaborator payloads into read-only records,
and derive report tables from pandas frames.

Payloads that do not have the expected shape are logged and read as empty
results rather than failing the cycle.
"""

import logging
from collections.abc import Mapping
from datetime import tzinfo
from typing import Any

import pandas as pd

from .config import BUSINESS_TZ, WINNING_PRODUCTS_LIMIT
from .models import (
    KeyResult,
    MedicineRef,
    Objective,
    SaleRecord,
    SalesReport,
    WinningProduct,
)
from .utils import coerce_number, nested_name, normalise_instant, pick

logger = logging.getLogger(__name__)


def _as_list(payload: Any, list_field: str, what: str) -> list:
    """Accept a bare list or a mapping wrapping one under `list_field`."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        items = pick(payload, list_field)
        if isinstance(items, list):
            return items
    logger.warning("Unexpected %s payload (%s), treating as empty", what, type(payload).__name__)
    return []


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

def build_sale_record(item: Any, tz: tzinfo = BUSINESS_TZ) -> SaleRecord:
    """Naive sale dates are read as wall-clock time in `tz`."""
    if not isinstance(item, Mapping):
        return SaleRecord(amount=0.0, occurred_at=None)
    return SaleRecord(
        amount=coerce_number(pick(item, "sale_amount")),
        occurred_at=normalise_instant(pick(item, "sale_date"), tz),
    )


def build_sales_report(payload: Any, tz: tzinfo = BUSINESS_TZ) -> SalesReport:
    """Normalise a sales query result.

    Accepts ``{"summary": {"totalSales": ...}, "sales": [...]}`` as well as
    the flat ``{"totalSales": ..., "records": [...]}`` form.
    """
    if not isinstance(payload, Mapping):
        logger.warning("Unexpected sales payload (%s), treating as empty", type(payload).__name__)
        return SalesReport()

    summary = payload.get("summary")
    if not isinstance(summary, Mapping):
        summary = payload

    items = _as_list(payload, "sales_list", "sales list")
    records = tuple(build_sale_record(item, tz) for item in items)
    return SalesReport(
        total_sales=coerce_number(pick(summary, "total_sales")),
        records=records,
    )


# ---------------------------------------------------------------------------
# Medicines
# ---------------------------------------------------------------------------

def build_medicine_ref(item: Mapping, tz: tzinfo = BUSINESS_TZ) -> MedicineRef:
    return MedicineRef(
        medicine_name=_text(pick(item, "medicine_name")) or "N/A",
        batch_number=_text(item.get("batch_number")),
        brand_name=_text(item.get("brand_name")),
        dosage_form=nested_name(item, "dosage_form"),
        category=nested_name(item, "category"),
        supplier=nested_name(item, "supplier", "supplier_name"),
        expire_date=normalise_instant(pick(item, "expire_date"), tz),
    )


def build_medicine_refs(payload: Any, tz: tzinfo = BUSINESS_TZ) -> tuple[MedicineRef, ...]:
    items = _as_list(payload, "medicine_list", "medicine")
    refs = [build_medicine_ref(item, tz) for item in items if isinstance(item, Mapping)]
    if len(refs) != len(items):
        logger.warning("Dropped %d malformed medicine entries", len(items) - len(refs))
    return tuple(refs)


def sort_by_expiry(refs: tuple[MedicineRef, ...]) -> tuple[MedicineRef, ...]:
    """Most recently expired first; undated entries last."""
    dated = [r for r in refs if r.expire_date is not None]
    undated = [r for r in refs if r.expire_date is None]
    dated.sort(key=lambda r: r.expire_date, reverse=True)
    return tuple(dated + undated)


def build_winning_products(
    payload: Any,
    limit: int = WINNING_PRODUCTS_LIMIT,
) -> tuple[WinningProduct, ...]:
    """Read the medicine report's best sellers, at most `limit` of them."""
    items = _as_list(payload, "winning_products", "winning products")

    products = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        products.append(WinningProduct(
            medicine_name=_text(pick(item, "medicine_name")) or "N/A",
            total_sales=coerce_number(pick(item, "total_sales")),
            sales_percent=coerce_number(pick(item, "sales_percent")),
        ))
    return tuple(products[:limit])


def rank_winning_products(
    medicines: pd.DataFrame,
    sales: pd.DataFrame,
    limit: int = WINNING_PRODUCTS_LIMIT,
) -> list[dict]:
    """Rank medicines by their share of all units sold.

    Parameters
    ----------
    medicines : one row per medicine with a 'medicine_name' column.
    sales : one row per sale with 'medicine_name' and 'quantity' columns.

    Returns
    -------
    Report rows shaped like the medicine report API:
        {"medicine_name", "totalSales", "salesPercent"}
    with salesPercent formatted to two decimals.
    """
    if medicines.empty:
        return []

    names = medicines["medicine_name"].astype(str).drop_duplicates()
    if sales.empty:
        sold = pd.Series(0.0, index=names)
    else:
        quantities = pd.to_numeric(sales["quantity"], errors="coerce").fillna(0)
        sold = (
            quantities.groupby(sales["medicine_name"].astype(str)).sum()
            .reindex(names, fill_value=0.0)
        )

    total = sold.sum()
    percent = (sold / total * 100) if total > 0 else sold * 0.0

    report = pd.DataFrame({"totalSales": sold, "salesPercent": percent})
    report = report.sort_values("salesPercent", ascending=False, kind="mergesort").head(limit)

    return [
        {
            "medicine_name": name,
            "totalSales": float(row["totalSales"]),
            "salesPercent": f"{row['salesPercent']:.2f}",
        }
        for name, row in report.iterrows()
    ]


# ---------------------------------------------------------------------------
# OKR
# ---------------------------------------------------------------------------

def build_key_result(item: Mapping) -> KeyResult:
    return KeyResult(
        start_value=coerce_number(pick(item, "kr_start")),
        target_value=coerce_number(pick(item, "kr_target")),
        current_value=coerce_number(pick(item, "kr_current")),
        weight=coerce_number(pick(item, "kr_weight")),
        title=_text(item.get("title")),
    )


def build_objectives(payload: Any) -> tuple[Objective, ...]:
    objectives = []
    for item in _as_list(payload, "objective_list", "objectives"):
        if not isinstance(item, Mapping):
            continue
        krs = pick(item, "key_results", [])
        if not isinstance(krs, list):
            logger.warning("Objective '%s' has malformed key results", item.get("title"))
            krs = []
        objectives.append(Objective(
            key_results=tuple(build_key_result(kr) for kr in krs if isinstance(kr, Mapping)),
            title=_text(item.get("title")),
        ))
    return tuple(objectives)

