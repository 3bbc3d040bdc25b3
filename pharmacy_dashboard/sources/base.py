"""Read-only query interface the dashboard aggregator depends on."""

from abc import ABC, abstractmethod
from typing import Any

from ..timeranges import DateRange


class DashboardSource(ABC):
    """Async queries returning the raw JSON-like payloads of the pharmacy API.

    Implementations may block internally; they are expected to move that
    work off the event loop themselves.
    """

    @abstractmethod
    async def query_sales(self, window: DateRange) -> Any:
        """``{"summary": {"totalSales": ...}, "sales": [...]}`` for the window."""

    @abstractmethod
    async def query_expiring_soon(self) -> Any:
        """Medicines expiring within the alert horizon."""

    @abstractmethod
    async def query_expired(self) -> Any:
        """``{"medicines": [...]}`` already past their expiry date."""

    @abstractmethod
    async def query_low_stock(self) -> Any:
        """Medicines at or below the low-stock threshold."""

    @abstractmethod
    async def query_medicine_report(self) -> Any:
        """``{"winningProducts": [...]}`` plus any other report fields."""

    @abstractmethod
    async def query_objectives(self) -> Any:
        """Objectives with their nested ``KeyResults``."""
