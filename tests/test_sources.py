"""Frame, workbook and REST collaborators."""

import asyncio
import json
from types import SimpleNamespace

import openpyxl
import pytest

from pharmacy_dashboard.exceptions import SourceRequestError
from pharmacy_dashboard.sources import (
    FrameSource,
    RestSource,
    load_workbook_source,
    load_workbook_tables,
    write_workbook,
)
from pharmacy_dashboard.timeranges import month_range, week_range, year_range


class TestFrameSource:

    def test_month_sales(self, frame_source):
        payload = asyncio.run(frame_source.query_sales(month_range("2024-03").range))
        assert payload["summary"]["totalSales"] == 10.0
        assert payload["summary"]["salesCount"] == 1
        assert payload["summary"]["startDate"] == "2024-03-01"
        assert payload["summary"]["endDate"] == "2024-03-31"
        assert payload["sales"][0]["medicine_name"] == "Paracetamol 500mg"

    def test_year_sales_excludes_previous_year(self, frame_source):
        payload = asyncio.run(frame_source.query_sales(year_range(2024)))
        assert payload["summary"]["totalSales"] == 65.5
        assert payload["summary"]["salesCount"] == 4

    def test_sales_newest_first(self, frame_source):
        payload = asyncio.run(frame_source.query_sales(week_range("2024-03-03")))
        dates = [row["sealed_date"] for row in payload["sales"]]
        assert dates == sorted(dates, reverse=True)
        assert len(dates) == 3

    def test_expiring_soon(self, frame_source):
        payload = asyncio.run(frame_source.query_expiring_soon())
        assert [m["medicine_name"] for m in payload] == ["Paracetamol 500mg"]

    def test_expired(self, frame_source):
        payload = asyncio.run(frame_source.query_expired())
        names = {m["medicine_name"] for m in payload["medicines"]}
        assert names == {"Amoxicillin 500mg", "Metformin 850mg"}
        first = payload["medicines"][0]
        assert first["dosage_form"] == {"name": "Capsule"}
        assert first["supplier"] == {"supplier_name": "Ethio Pharma"}

    def test_low_stock(self, frame_source):
        payload = asyncio.run(frame_source.query_low_stock())
        assert {m["medicine_name"] for m in payload} == {"Amoxicillin 500mg", "Ibuprofen 400mg"}

    def test_medicine_report(self, frame_source):
        payload = asyncio.run(frame_source.query_medicine_report())
        assert payload["winningProducts"][0]["medicine_name"] == "Paracetamol 500mg"
        assert "generatedAt" in payload

    def test_objectives_nest_key_results(self, frame_source):
        payload = asyncio.run(frame_source.query_objectives())
        assert [o["id"] for o in payload] == ["O1", "O2"]
        assert len(payload[1]["KeyResults"]) == 2
        assert payload[1]["KeyResults"][1]["weight"] == 3

    def test_empty_tables(self, now):
        source = FrameSource(clock=lambda: now)
        sales = asyncio.run(source.query_sales(month_range("2024-03").range))
        assert sales["summary"]["totalSales"] == 0.0
        assert sales["sales"] == []
        assert asyncio.run(source.query_expired()) == {"medicines": []}
        assert asyncio.run(source.query_objectives()) == []


class TestWorkbook:

    def test_round_trip(self, tables, now, tmp_path):
        path = tmp_path / "pharmacy_export.xlsx"
        write_workbook(tables, str(path))

        loaded = load_workbook_tables(str(path))
        assert set(loaded) == {"medicines", "sales", "objectives", "key_results"}
        assert len(loaded["medicines"]) == 4
        assert len(loaded["sales"]) == 5
        assert list(loaded["objectives"]["objective_id"]) == ["O1", "O2"]

        source = load_workbook_source(str(path), clock=lambda: now)
        payload = asyncio.run(source.query_sales(month_range("2024-03").range))
        assert payload["summary"]["totalSales"] == 10.0
        assert len(asyncio.run(source.query_expired())["medicines"]) == 2

    def test_title_rows_and_missing_sheets(self, tmp_path):
        path = tmp_path / "partial.xlsx"
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Sales"
        ws.append(["Pharmacy sales export"])
        ws.append([])
        ws.append(["Medicine Name", "Quantity", "Total Amount", "Sealed Date"])
        ws.append(["Paracetamol 500mg", 2, 4.0, "2024-03-01 10:00"])
        ws.append([])
        ws.append(["Totals", 2, 4.0, None])
        wb.save(path)

        loaded = load_workbook_tables(str(path))
        assert len(loaded["sales"]) == 1
        assert loaded["sales"].iloc[0]["total_amount"] == 4.0
        assert loaded["medicines"].empty

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_workbook_tables(str(tmp_path / "nope.xlsx"))


class FakeHttp:
    """Stands in for urllib3.PoolManager; records each request."""

    def __init__(self, status=200, body=None, raw=None):
        self.status = status
        self.body = body
        self.raw = raw
        self.calls = []

    def request(self, method, url, fields=None, headers=None):
        self.calls.append({"method": method, "url": url, "fields": fields, "headers": headers})
        if self.raw is not None:
            return SimpleNamespace(status=self.status, data=self.raw)
        data = json.dumps(self.body).encode("utf-8") if self.body is not None else b""
        return SimpleNamespace(status=self.status, data=data)


class TestRestSource:

    def test_sales_query_sends_window(self):
        http = FakeHttp(body={"summary": {"totalSales": 12}, "sales": []})
        source = RestSource(base_url="http://pharmacy.test/api/", token="secret", http=http)

        payload = asyncio.run(source.query_sales(month_range("2024-02").range))

        assert payload["summary"]["totalSales"] == 12
        call = http.calls[0]
        assert call["method"] == "GET"
        assert call["url"] == "http://pharmacy.test/api/sales/report"
        assert call["fields"] == {"start_date": "2024-02-01", "end_date": "2024-02-29"}
        assert call["headers"]["Authorization"] == "Bearer secret"

    @pytest.mark.parametrize("method, path", [
        ("query_expiring_soon", "/medicines/expire/alerts"),
        ("query_expired", "/medicines/expire"),
        ("query_low_stock", "/medicines/low-stock"),
        ("query_medicine_report", "/medicines/report"),
        ("query_objectives", "/okr/objectives"),
    ])
    def test_endpoints(self, method, path):
        http = FakeHttp(body=[])
        source = RestSource(base_url="http://pharmacy.test/api", token=None, http=http)
        assert asyncio.run(getattr(source, method)()) == []
        assert http.calls[0]["url"] == f"http://pharmacy.test/api{path}"
        assert "Authorization" not in http.calls[0]["headers"]

    def test_error_status_raises(self):
        http = FakeHttp(status=500, body={"message": "boom"})
        source = RestSource(base_url="http://pharmacy.test/api", http=http)
        with pytest.raises(SourceRequestError) as excinfo:
            asyncio.run(source.query_expired())
        assert excinfo.value.status == 500
        assert "boom" in str(excinfo.value)

    def test_empty_body(self):
        source = RestSource(base_url="http://pharmacy.test/api", http=FakeHttp(status=204))
        assert asyncio.run(source.query_low_stock()) is None

    def test_body_that_is_not_json_reads_as_empty(self):
        http = FakeHttp(raw=b"<html>gateway page</html>")
        source = RestSource(base_url="http://pharmacy.test/api", http=http)
        assert asyncio.run(source.query_expired()) is None
