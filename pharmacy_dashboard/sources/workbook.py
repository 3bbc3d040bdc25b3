"""
Loader for an exported pharmacy workbook.

Sheets: Medicines, Sales, Objectives, KeyResults.

Each sheet holds one table. The header row is located by scanning for the
signature columns in config.WORKBOOK_SHEETS, so title rows above the table
are tolerated. Header cells are snake-cased before matching.
"""

import logging
from datetime import datetime
from typing import Callable

import openpyxl
import pandas as pd

from ..config import BUSINESS_UTC_OFFSET_HOURS, WORKBOOK_SHEETS
from ..utils import find_header_row, to_snake_case
from .frames import FrameSource

logger = logging.getLogger(__name__)


def _read_table(ws, signature: set[str]) -> pd.DataFrame:
    """Read the table under the detected header row until the first blank row."""
    header_row = find_header_row(ws, signature)
    if header_row is None:
        logger.warning("No header matching %s found in sheet '%s'", sorted(signature), ws.title)
        return pd.DataFrame()

    headers = [
        to_snake_case(cell.value) if cell.value is not None else None
        for cell in ws[header_row]
    ]

    rows = []
    for values in ws.iter_rows(min_row=header_row + 1, values_only=True):
        if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
            break
        rows.append({
            name: value
            for name, value in zip(headers, values)
            if name is not None
        })

    return pd.DataFrame(rows, columns=[h for h in headers if h is not None])


def load_workbook_tables(path: str) -> dict[str, pd.DataFrame]:
    """Load every known sheet from the workbook.

    Returns a dict keyed by snake-cased sheet name ("medicines", "sales",
    "objectives", "key_results"). Missing sheets map to empty frames.
    """
    try:
        wb = openpyxl.load_workbook(path, data_only=True, read_only=False)
    except Exception:
        logger.exception("Failed to open pharmacy workbook: %s", path)
        raise

    tables = {}
    for sheet_name, signature in WORKBOOK_SHEETS.items():
        key = to_snake_case(sheet_name)
        if sheet_name not in wb.sheetnames:
            logger.warning("Sheet '%s' not found in %s", sheet_name, path)
            tables[key] = pd.DataFrame()
            continue
        tables[key] = _read_table(wb[sheet_name], signature)
        logger.info("Loaded %d rows from sheet '%s'", len(tables[key]), sheet_name)

    wb.close()
    return tables


def load_workbook_source(
    path: str,
    clock: Callable[[], datetime] | None = None,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> FrameSource:
    """Build a FrameSource from an exported workbook."""
    tables = load_workbook_tables(path)
    return FrameSource(
        medicines=tables["medicines"],
        sales=tables["sales"],
        objectives=tables["objectives"],
        key_results=tables["key_results"],
        clock=clock,
        offset_hours=offset_hours,
    )


def write_workbook(tables: dict[str, pd.DataFrame], path: str) -> None:
    """Write tables to a workbook in the layout `load_workbook_tables` reads."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for sheet_name in WORKBOOK_SHEETS:
        ws = wb.create_sheet(sheet_name)
        df = tables.get(to_snake_case(sheet_name), pd.DataFrame())
        ws.append(list(df.columns))
        for row in df.itertuples(index=False):
            ws.append([_cell_value(v) for v in row])
    wb.save(path)
    logger.info("Wrote pharmacy workbook %s", path)


def _cell_value(value):
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, pd.Timestamp):
        # openpyxl cannot store timezone-aware datetimes
        return value.tz_localize(None).to_pydatetime() if value.tzinfo else value.to_pydatetime()
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    if hasattr(value, "item"):
        return value.item()
    return value
