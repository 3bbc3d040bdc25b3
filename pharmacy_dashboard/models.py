"""
Read-only records exchanged between the collaborators, the pure
calculators, and the dashboard caller.

Every instance is built fresh per aggregation cycle and never mutated.
"""

from dataclasses import asdict, dataclass
from datetime import datetime

from .timeranges import DateRange


@dataclass(frozen=True)
class SaleRecord:
    amount: float
    occurred_at: datetime | None


@dataclass(frozen=True)
class SalesReport:
    """One sales query result: the API's summary total plus its records."""

    total_sales: float = 0.0
    records: tuple[SaleRecord, ...] = ()


@dataclass(frozen=True)
class MedicineRef:
    medicine_name: str
    batch_number: str | None = None
    brand_name: str | None = None
    dosage_form: str | None = None
    category: str | None = None
    supplier: str | None = None
    expire_date: datetime | None = None


@dataclass(frozen=True)
class WinningProduct:
    medicine_name: str
    total_sales: float
    sales_percent: float


@dataclass(frozen=True)
class KeyResult:
    start_value: float = 0.0
    target_value: float = 0.0
    current_value: float = 0.0
    weight: float = 1.0
    title: str | None = None


@dataclass(frozen=True)
class Objective:
    key_results: tuple[KeyResult, ...] = ()
    title: str | None = None


@dataclass(frozen=True)
class CycleTrigger:
    """What the caller asked for.

    reference_month : "YYYY-MM" token overriding the current month/year.
    selected_week : any date inside the week to chart; defaults to now.
    """

    reference_month: str | None = None
    selected_week: str | None = None
    reason: str = "manual"


@dataclass(frozen=True)
class DashboardSnapshot:
    total_sales_year: float
    total_sales_month: float
    weekly_series: tuple[tuple[str, float], ...]
    yearly_series: tuple[tuple[str, float], ...]
    expiring_count: int
    low_stock_count: int
    expired_list: tuple[MedicineRef, ...]
    winning_products: tuple[WinningProduct, ...]
    okr_progress: float
    month_name: str
    year: int
    week_display: str
    month_range: DateRange
    week_range: DateRange
    okr_enabled: bool
    generated_at: datetime
    cycle_id: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
