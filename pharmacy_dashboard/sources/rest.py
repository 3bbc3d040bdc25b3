"""
HTTP collaborator for the pharmacy REST API.

Endpoints (relative to API_BASE_URL):
    GET /sales/report?start_date=&end_date=
    GET /medicines/expire/alerts
    GET /medicines/expire
    GET /medicines/low-stock
    GET /medicines/report
    GET /okr/objectives

Requests are blocking urllib3 calls moved to a worker thread. Timeouts and
transport retries are handled here; the aggregator never retries. Error
statuses raise SourceRequestError; a body that is not JSON is logged and
read as an empty payload.
"""

import asyncio
import json
import logging
from typing import Any

import urllib3

from ..config import API_BASE_URL, API_RETRIES, API_TIMEOUT_SECONDS, API_TOKEN
from ..exceptions import SourceRequestError
from ..timeranges import DateRange
from .base import DashboardSource

logger = logging.getLogger(__name__)


class RestSource(DashboardSource):
    """Dashboard queries against the pharmacy API."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: str | None = API_TOKEN,
        timeout: float = API_TIMEOUT_SECONDS,
        retries: int = API_RETRIES,
        http: urllib3.PoolManager | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.http = http or urllib3.PoolManager(
            timeout=urllib3.Timeout(total=timeout),
            retries=urllib3.Retry(total=retries, backoff_factor=0.5, status_forcelist=[502, 503, 504]),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        else:
            logger.warning("No API token configured; requests are unauthenticated")
        return headers

    def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        response = self.http.request("GET", url, fields=params, headers=self._headers())

        if not 200 <= response.status < 300:
            detail = response.data.decode("utf-8", errors="replace")[:200] if response.data else None
            logger.error("GET %s failed with HTTP %s", url, response.status)
            raise SourceRequestError(url, response.status, detail)

        if not response.data:
            return None
        try:
            return json.loads(response.data.decode("utf-8"))
        except ValueError:
            logger.warning("GET %s returned a body that is not JSON, treating as empty", url)
            return None

    async def _fetch(self, path: str, params: dict[str, str] | None = None) -> Any:
        return await asyncio.to_thread(self._get, path, params)

    async def query_sales(self, window: DateRange) -> Any:
        return await self._fetch(
            "/sales/report",
            {"start_date": window.start_date, "end_date": window.end_date},
        )

    async def query_expiring_soon(self) -> Any:
        return await self._fetch("/medicines/expire/alerts")

    async def query_expired(self) -> Any:
        return await self._fetch("/medicines/expire")

    async def query_low_stock(self) -> Any:
        return await self._fetch("/medicines/low-stock")

    async def query_medicine_report(self) -> Any:
        return await self._fetch("/medicines/report")

    async def query_objectives(self) -> Any:
        return await self._fetch("/okr/objectives")
