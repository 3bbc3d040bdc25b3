"""Shared fixtures: a small pharmacy data set pinned to Sunday 2024-03-03."""

from datetime import datetime, timezone

import pandas as pd
import pytest

from pharmacy_dashboard.config import BUSINESS_TZ
from pharmacy_dashboard.sources import FrameSource


def biz(*args) -> datetime:
    """Business-time (UTC+3) datetime."""
    return datetime(*args, tzinfo=BUSINESS_TZ)


@pytest.fixture
def now():
    # 12:00 business time, Sunday 3 March 2024
    return datetime(2024, 3, 3, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def tables():
    medicines = pd.DataFrame([
        {"medicine_name": "Amoxicillin 500mg", "batch_number": "B001", "brand_name": "Amoxil",
         "quantity": 5, "expire_date": biz(2024, 2, 22, 12), "dosage_form": "Capsule",
         "category": "Antibiotic", "supplier": "Ethio Pharma"},
        {"medicine_name": "Paracetamol 500mg", "batch_number": "B002", "brand_name": "Panadol",
         "quantity": 100, "expire_date": biz(2024, 3, 13, 12), "dosage_form": "Tablet",
         "category": "Analgesic", "supplier": "Addis Med Supply"},
        {"medicine_name": "Ibuprofen 400mg", "batch_number": "B003", "brand_name": "Brufen",
         "quantity": 8, "expire_date": biz(2024, 9, 20, 12), "dosage_form": "Tablet",
         "category": "Analgesic", "supplier": "Addis Med Supply"},
        {"medicine_name": "Metformin 850mg", "batch_number": "B004", "brand_name": "Glucophage",
         "quantity": 50, "expire_date": biz(2024, 1, 23, 12), "dosage_form": "Tablet",
         "category": "Antidiabetic", "supplier": "EPSA"},
    ])
    sales = pd.DataFrame([
        {"medicine_name": "Amoxicillin 500mg", "quantity": 2, "total_amount": 25.0,
         "sealed_date": biz(2024, 2, 26, 10)},
        {"medicine_name": "Paracetamol 500mg", "quantity": 10, "total_amount": 20.0,
         "sealed_date": biz(2024, 2, 28, 15)},
        {"medicine_name": "Paracetamol 500mg", "quantity": 5, "total_amount": 10.0,
         "sealed_date": biz(2024, 3, 3, 9)},
        {"medicine_name": "Ibuprofen 400mg", "quantity": 3, "total_amount": 10.5,
         "sealed_date": biz(2024, 1, 15, 11)},
        {"medicine_name": "Metformin 850mg", "quantity": 1, "total_amount": 4.0,
         "sealed_date": biz(2023, 12, 31, 23, 30)},
    ])
    objectives = pd.DataFrame([
        {"objective_id": "O1", "title": "Grow monthly revenue"},
        {"objective_id": "O2", "title": "Cut expiry write-offs"},
    ])
    key_results = pd.DataFrame([
        {"objective_id": "O1", "title": "Monthly sales", "start_value": 0,
         "target_value": 100, "progress": 50, "weight": 1},
        {"objective_id": "O2", "title": "Batches rotated", "start_value": 0,
         "target_value": 10, "progress": 10, "weight": 1},
        {"objective_id": "O2", "title": "Write-offs reduced", "start_value": 0,
         "target_value": 10, "progress": 0, "weight": 3},
    ])
    return {
        "medicines": medicines,
        "sales": sales,
        "objectives": objectives,
        "key_results": key_results,
    }


@pytest.fixture
def frame_source(tables, now):
    return FrameSource(
        medicines=tables["medicines"],
        sales=tables["sales"],
        objectives=tables["objectives"],
        key_results=tables["key_results"],
        clock=lambda: now,
    )
