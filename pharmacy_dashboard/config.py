"""
Configuration: business timezone, thresholds, payload field aliases, paths.

FIELD_ALIASES maps each canonical field name to the payload keys the sales,
medicine, and OKR APIs have used for it over time.
"""

import os
from datetime import timedelta, timezone
from pathlib import Path

# ---------------------------------------------------------------------------
# File paths and environment overrides
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent

SAMPLE_WORKBOOK_FILE = DATA_DIR / "pharmacy_export.xlsx"

API_BASE_URL = os.getenv("PHARMACY_API_URL", "http://localhost:8080/api")
API_TOKEN = os.getenv("PHARMACY_API_TOKEN")
DEFAULT_ROLE = os.getenv("PHARMACY_ROLE", "MANAGER")

# ---------------------------------------------------------------------------
# Business calendar
# ---------------------------------------------------------------------------
# Fixed UTC+3, no DST. Every window boundary is computed in this offset.
BUSINESS_UTC_OFFSET_HOURS = 3
BUSINESS_TZ = timezone(timedelta(hours=BUSINESS_UTC_OFFSET_HOURS))

CURRENCY = "ETB"

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_LABELS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

# ---------------------------------------------------------------------------
# Dashboard behaviour
# ---------------------------------------------------------------------------
PRIVILEGED_ROLE = "MANAGER"
REFRESH_INTERVAL_SECONDS = 5 * 60

LOW_STOCK_THRESHOLD = 10
EXPIRY_ALERT_DAYS = 30
WINNING_PRODUCTS_LIMIT = 5

# HTTP collaborator
API_TIMEOUT_SECONDS = 10.0
API_RETRIES = 2

# ---------------------------------------------------------------------------
# Payload field aliases
# ---------------------------------------------------------------------------
# canonical name -> keys tried in order
FIELD_ALIASES: dict[str, list[str]] = {
    "sale_amount": ["total_amount", "amount", "totalAmount"],
    "sale_date": ["sealed_date", "occurred_at", "occurredAt", "date"],
    "total_sales": ["totalSales", "total_sales"],
    "sales_list": ["sales", "records"],
    "medicine_list": ["medicines", "data"],
    "objective_list": ["objectives", "data"],
    "winning_products": ["winningProducts", "winning_products"],
    "key_results": ["KeyResults", "keyResults", "key_results"],
    "kr_start": ["start_value", "startValue"],
    "kr_target": ["target_value", "targetValue"],
    "kr_current": ["progress", "current_value", "currentValue"],
    "kr_weight": ["weight"],
    "medicine_name": ["medicine_name", "medicineName", "name"],
    "expire_date": ["expire_date", "expireDate", "expiry"],
    "sales_percent": ["salesPercent", "sales_percent"],
}

# Sheets expected in an exported pharmacy workbook and the header cells
# used to locate each table.
WORKBOOK_SHEETS: dict[str, set[str]] = {
    "Medicines": {"medicine_name", "batch_number", "quantity", "expire_date"},
    "Sales": {"medicine_name", "quantity", "total_amount", "sealed_date"},
    "Objectives": {"objective_id", "title"},
    "KeyResults": {"objective_id", "start_value", "target_value", "progress"},
}
