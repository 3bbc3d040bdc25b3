"""
Dashboard aggregation: sequence the collaborator queries for one cycle and
assemble a single immutable snapshot.

These are the entry points for the Streamlit front end and the CLI.
`DashboardAggregator.run_cycle` either publishes a complete
`DashboardSnapshot` or raises `CollaboratorFailure` and leaves the previous
snapshot in place.
"""

import asyncio
import dataclasses
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from .buckets import bucket_weekly, bucket_yearly, label_series
from .config import (
    BUSINESS_UTC_OFFSET_HOURS,
    MONTH_LABELS,
    PRIVILEGED_ROLE,
    REFRESH_INTERVAL_SECONDS,
    WEEKDAY_LABELS,
)
from .exceptions import CollaboratorFailure
from .models import (
    CycleTrigger,
    DashboardSnapshot,
    MedicineRef,
    SalesReport,
    WinningProduct,
)
from .okr import overall_progress
from .sources.base import DashboardSource
from .timeranges import (
    DateRange,
    MonthWindow,
    business_now,
    business_tz,
    current_month_range,
    format_week_display,
    month_range,
    week_range,
    year_range,
)
from .transforms import (
    build_medicine_refs,
    build_objectives,
    build_sales_report,
    build_winning_products,
    sort_by_expiry,
)

logger = logging.getLogger(__name__)

# Query name -> what the failure message says could not be fetched
_QUERY_SUBJECTS = {
    "month_sales": "sales data",
    "year_sales": "total sales data",
    "expiring_soon": "expiration alerts",
    "expired": "expired medicines",
    "low_stock": "low stock medicines",
    "medicine_report": "medicine report",
    "objectives": "OKR data",
    "week_sales": "weekly sales data",
}


class CycleState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def build_snapshot(
    month: MonthWindow,
    week: DateRange,
    month_sales: SalesReport,
    year_sales: SalesReport,
    week_sales: SalesReport,
    expiring: tuple[MedicineRef, ...],
    expired: tuple[MedicineRef, ...],
    low_stock: tuple[MedicineRef, ...],
    winning_products: tuple[WinningProduct, ...],
    okr_progress: float,
    okr_enabled: bool,
    generated_at: datetime,
    cycle_id: int = 0,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> DashboardSnapshot:
    """Assemble one snapshot from already-normalised query results.

    The yearly series is bucketed from the year sales records, the weekly
    series from the week sales records.
    """
    weekly = bucket_weekly(week_sales.records, offset_hours)
    yearly = bucket_yearly(year_sales.records, offset_hours)

    return DashboardSnapshot(
        total_sales_year=year_sales.total_sales,
        total_sales_month=month_sales.total_sales,
        weekly_series=label_series(weekly, WEEKDAY_LABELS),
        yearly_series=label_series(yearly, MONTH_LABELS),
        expiring_count=len(expiring),
        low_stock_count=len(low_stock),
        expired_list=sort_by_expiry(expired),
        winning_products=winning_products,
        okr_progress=okr_progress if okr_enabled else 0.0,
        month_name=month.month_name,
        year=month.year,
        week_display=format_week_display(week),
        month_range=month.range,
        week_range=week,
        okr_enabled=okr_enabled,
        generated_at=generated_at,
        cycle_id=cycle_id,
    )


class DashboardAggregator:
    """Runs aggregation cycles against one source for one dashboard consumer.

    Holds no state besides the latest cycle id, the last trigger, and the
    last published snapshot. When cycles overlap the most recently started
    one wins; older ones drop their results on arrival.
    """

    def __init__(
        self,
        source: DashboardSource,
        role: str | None = None,
        offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
        clock: Callable[[], datetime] | None = None,
    ):
        self.source = source
        self.role = role
        self.offset_hours = offset_hours
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self._cycle_id = 0
        self._state = CycleState.IDLE
        self._snapshot: DashboardSnapshot | None = None
        self._last_error: CollaboratorFailure | None = None
        self._last_trigger: CycleTrigger | None = None

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def snapshot(self) -> DashboardSnapshot | None:
        return self._snapshot

    @property
    def last_error(self) -> CollaboratorFailure | None:
        return self._last_error

    @property
    def last_trigger(self) -> CycleTrigger | None:
        return self._last_trigger

    @property
    def okr_enabled(self) -> bool:
        return self.role == PRIVILEGED_ROLE

    def _set_state(self, state: CycleState) -> None:
        if state is not self._state:
            logger.debug("State %s -> %s", self._state.value, state.value)
            self._state = state

    def _is_superseded(self, cycle_id: int) -> bool:
        if cycle_id != self._cycle_id:
            logger.info("Cycle %d superseded by %d, dropping its outcome", cycle_id, self._cycle_id)
            return True
        return False

    def _fail(self, cycle_id: int, failure: CollaboratorFailure) -> None:
        self._set_state(CycleState.FAILED)
        self._last_error = failure
        logger.error("Cycle %d failed: %s", cycle_id, failure)

    async def _query(self, name: str, call: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        try:
            return await call(*args)
        except Exception as exc:
            logger.error("Query '%s' failed: %s", name, exc)
            raise CollaboratorFailure(name, f"Unable to fetch {_QUERY_SUBJECTS[name]}") from exc

    async def _aggregate(self, trigger: CycleTrigger, cycle_id: int) -> DashboardSnapshot:
        offset = self.offset_hours
        tz = business_tz(offset)
        now = business_now(self.clock(), offset)

        # Month and year follow "now" unless a month is chosen; the week
        # follows the selected date.
        month = month_range(trigger.reference_month, offset) or current_month_range(now, offset)
        year = year_range(month.year, offset)
        week = week_range(trigger.selected_week, now=now, offset_hours=offset)

        source = self.source
        month_sales = build_sales_report(
            await self._query("month_sales", source.query_sales, month.range), tz
        )
        year_sales = build_sales_report(
            await self._query("year_sales", source.query_sales, year), tz
        )
        expiring = build_medicine_refs(
            await self._query("expiring_soon", source.query_expiring_soon), tz
        )
        expired = build_medicine_refs(await self._query("expired", source.query_expired), tz)
        low_stock = build_medicine_refs(await self._query("low_stock", source.query_low_stock), tz)
        winning = build_winning_products(
            await self._query("medicine_report", source.query_medicine_report)
        )

        okr_progress = 0.0
        if self.okr_enabled:
            objectives = build_objectives(await self._query("objectives", source.query_objectives))
            okr_progress = overall_progress(objectives)
        else:
            logger.debug("Role %r is not %r, skipping OKR query", self.role, PRIVILEGED_ROLE)

        week_sales = build_sales_report(await self._query("week_sales", source.query_sales, week), tz)

        return build_snapshot(
            month=month,
            week=week,
            month_sales=month_sales,
            year_sales=year_sales,
            week_sales=week_sales,
            expiring=expiring,
            expired=expired,
            low_stock=low_stock,
            winning_products=winning,
            okr_progress=okr_progress,
            okr_enabled=self.okr_enabled,
            generated_at=now,
            cycle_id=cycle_id,
            offset_hours=offset,
        )

    async def run_cycle(self, trigger: CycleTrigger | None = None) -> DashboardSnapshot | None:
        """Run one aggregation cycle and publish its snapshot.

        Returns the published snapshot, or None when a newer cycle started
        while this one was loading. Raises CollaboratorFailure when any
        query fails, or when the results cannot be assembled into a snapshot;
        the previously published snapshot is kept. Every cycle that is not
        superseded ends in READY or FAILED, and the next trigger passes back
        through IDLE.
        """
        trigger = trigger or CycleTrigger()
        self._cycle_id += 1
        cycle_id = self._cycle_id
        self._last_trigger = trigger
        if self._state in (CycleState.READY, CycleState.FAILED):
            self._set_state(CycleState.IDLE)
        self._set_state(CycleState.LOADING)
        logger.info("Cycle %d started (%s)", cycle_id, trigger.reason)

        try:
            snapshot = await self._aggregate(trigger, cycle_id)
        except CollaboratorFailure as exc:
            if self._is_superseded(cycle_id):
                return None
            self._fail(cycle_id, exc)
            raise
        except Exception as exc:
            if self._is_superseded(cycle_id):
                return None
            logger.exception("Cycle %d could not assemble a snapshot", cycle_id)
            failure = CollaboratorFailure("snapshot", "Unable to build dashboard data")
            self._fail(cycle_id, failure)
            raise failure from exc

        if self._is_superseded(cycle_id):
            return None

        self._snapshot = snapshot
        self._last_error = None
        self._set_state(CycleState.READY)
        logger.info(
            "Cycle %d published: month %.2f, year %.2f, OKR %.1f%%",
            cycle_id, snapshot.total_sales_month, snapshot.total_sales_year, snapshot.okr_progress,
        )
        return snapshot

    async def retry(self) -> DashboardSnapshot | None:
        """Re-run the last trigger."""
        trigger = self._last_trigger or CycleTrigger()
        return await self.run_cycle(dataclasses.replace(trigger, reason="retry"))


async def run_periodic(
    aggregator: DashboardAggregator,
    interval: float = REFRESH_INTERVAL_SECONDS,
    trigger_fn: Callable[[], CycleTrigger] | None = None,
    max_cycles: int | None = None,
) -> None:
    """Refresh the aggregator on a fixed cadence.

    Each cycle is awaited before the next sleep, so scheduled cycles never
    overlap. A failed cycle is logged and the loop continues with the
    previous snapshot still published.
    """
    completed = 0
    while max_cycles is None or completed < max_cycles:
        if trigger_fn is not None:
            trigger = trigger_fn()
        else:
            trigger = aggregator.last_trigger or CycleTrigger()
        trigger = dataclasses.replace(trigger, reason="timer")

        try:
            await aggregator.run_cycle(trigger)
        except CollaboratorFailure as exc:
            logger.warning("Scheduled refresh failed, keeping previous snapshot: %s", exc)

        completed += 1
        if max_cycles is not None and completed >= max_cycles:
            break
        await asyncio.sleep(interval)


def get_dashboard_overview(snapshot: DashboardSnapshot | None) -> dict:
    """Plain dict for the top-level dashboard cards.

    Returns
    -------
    {
        "period": "March 2024",
        "week": "Feb 26 - Mar 3, 2024",
        "sales": {"year": ..., "month": ...},
        "inventory": {"expiring": ..., "low_stock": ..., "expired": ...},
        "okr": {"progress": ..., "enabled": True},
        "top_product": "Amoxicillin 500mg" | None,
    }
    """
    if snapshot is None:
        return {
            "period": None,
            "week": None,
            "sales": {"year": 0.0, "month": 0.0},
            "inventory": {"expiring": 0, "low_stock": 0, "expired": 0},
            "okr": {"progress": 0.0, "enabled": False},
            "top_product": None,
        }

    top = snapshot.winning_products[0].medicine_name if snapshot.winning_products else None
    return {
        "period": f"{snapshot.month_name} {snapshot.year}",
        "week": snapshot.week_display,
        "sales": {
            "year": round(snapshot.total_sales_year, 2),
            "month": round(snapshot.total_sales_month, 2),
        },
        "inventory": {
            "expiring": snapshot.expiring_count,
            "low_stock": snapshot.low_stock_count,
            "expired": len(snapshot.expired_list),
        },
        "okr": {
            "progress": round(snapshot.okr_progress, 1),
            "enabled": snapshot.okr_enabled,
        },
        "top_product": top,
    }
