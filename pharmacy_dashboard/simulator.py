"""
Simulated data generator for the pharmacy dashboard.

Generates a plausible medicine catalogue, just over a year of sales, and a set of
objectives with key results. All values are synthetic.
"""

from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from .config import LOW_STOCK_THRESHOLD
from .sources.frames import FrameSource
from .timeranges import business_now

# ---------------------------------------------------------------------------
# Catalogue: name, brand, dosage form, category, supplier, unit price (ETB)
# ---------------------------------------------------------------------------
_MEDICINES = [
    ("Amoxicillin 500mg", "Amoxil", "Capsule", "Antibiotic", "Ethio Pharma", 12.5),
    ("Paracetamol 500mg", "Panadol", "Tablet", "Analgesic", "Addis Med Supply", 2.0),
    ("Ibuprofen 400mg", "Brufen", "Tablet", "Analgesic", "Addis Med Supply", 3.5),
    ("Metformin 850mg", "Glucophage", "Tablet", "Antidiabetic", "EPSA", 4.0),
    ("Amlodipine 5mg", "Norvasc", "Tablet", "Antihypertensive", "EPSA", 5.5),
    ("Omeprazole 20mg", "Losec", "Capsule", "Antacid", "Ethio Pharma", 6.0),
    ("Ciprofloxacin 500mg", "Cipro", "Tablet", "Antibiotic", "Cadila Ethiopia", 9.0),
    ("Salbutamol Inhaler", "Ventolin", "Inhaler", "Respiratory", "Cadila Ethiopia", 180.0),
    ("ORS Sachet", "Oralyte", "Powder", "Rehydration", "EPSA", 8.0),
    ("Cough Syrup 100ml", "Benylin", "Syrup", "Respiratory", "Addis Med Supply", 95.0),
    ("Vitamin C 1000mg", "Redoxon", "Effervescent", "Supplement", "Ethio Pharma", 7.5),
    ("Artemether/Lumefantrine", "Coartem", "Tablet", "Antimalarial", "EPSA", 45.0),
    ("Ceftriaxone 1g", "Rocephin", "Injection", "Antibiotic", "Cadila Ethiopia", 120.0),
    ("Insulin Glargine", "Lantus", "Injection", "Antidiabetic", "Ethio Pharma", 850.0),
    ("Loratadine 10mg", "Claritin", "Tablet", "Antihistamine", "Addis Med Supply", 4.5),
]

_OBJECTIVES = [
    ("O1", "Grow monthly revenue", [
        ("Monthly sales (k ETB)", 200, 350, 290, 2),
        ("New repeat customers", 0, 120, 75, 1),
    ]),
    ("O2", "Cut expiry write-offs", [
        ("Expired stock value reduced (%)", 0, 50, 20, 3),
        ("Batches rotated FEFO (%)", 40, 100, 88, 1),
    ]),
    ("O3", "Keep shelves stocked", [
        ("Items above reorder level (%)", 70, 98, 91, 1),
        ("Supplier lead time cut (days)", 0, 5, 6, 1),
    ]),
]


def generate_medicines(
    now: datetime,
    rng: np.random.Generator,
) -> pd.DataFrame:
    """Catalogue with a spread of stock levels and expiry dates.

    Roughly a fifth of the lines are low on stock, a few are already
    expired, and a few expire within the alert window.
    """
    rows = []
    for i, (name, brand, form, category, supplier, price) in enumerate(_MEDICINES):
        if i % 5 == 0:
            quantity = int(rng.integers(0, LOW_STOCK_THRESHOLD + 1))
        else:
            quantity = int(rng.integers(LOW_STOCK_THRESHOLD + 5, 400))

        if i % 6 == 0:
            days_to_expiry = -int(rng.integers(5, 120))
        elif i % 4 == 1:
            days_to_expiry = int(rng.integers(1, 30))
        else:
            days_to_expiry = int(rng.integers(60, 720))

        rows.append({
            "medicine_name": name,
            "batch_number": f"B{2400 + i:05d}",
            "brand_name": brand,
            "quantity": quantity,
            "unit_price": price,
            "expire_date": (now + timedelta(days=days_to_expiry)).replace(microsecond=0),
            "dosage_form": form,
            "category": category,
            "supplier": supplier,
        })

    return pd.DataFrame(rows)


def generate_sales(
    medicines: pd.DataFrame,
    now: datetime,
    rng: np.random.Generator,
    days: int = 400,
) -> pd.DataFrame:
    """Daily sales going back `days` days, busier on weekdays."""
    rows = []
    start = (now - timedelta(days=days)).replace(hour=0, minute=0, second=0, microsecond=0)
    prices = medicines["unit_price"].to_numpy()
    names = medicines["medicine_name"].to_numpy()

    for offset in range(days + 1):
        day = start + timedelta(days=offset)
        if day > now:
            break
        is_weekend = day.weekday() >= 5
        n_sales = int(rng.poisson(6 if is_weekend else 14))

        for _ in range(n_sales):
            idx = int(rng.integers(0, len(names)))
            quantity = int(rng.integers(1, 6))
            sealed = day + timedelta(minutes=int(rng.integers(8 * 60, 21 * 60)))
            if sealed > now:
                continue
            rows.append({
                "medicine_name": names[idx],
                "quantity": quantity,
                "total_amount": round(float(prices[idx]) * quantity, 2),
                "sealed_date": sealed,
            })

    return pd.DataFrame(rows, columns=["medicine_name", "quantity", "total_amount", "sealed_date"])


def generate_objectives() -> tuple[pd.DataFrame, pd.DataFrame]:
    """Objective and key result tables."""
    objective_rows = []
    kr_rows = []
    for objective_id, title, key_results in _OBJECTIVES:
        objective_rows.append({"objective_id": objective_id, "title": title})
        for kr_title, start, target, progress, weight in key_results:
            kr_rows.append({
                "objective_id": objective_id,
                "title": kr_title,
                "start_value": start,
                "target_value": target,
                "progress": progress,
                "weight": weight,
            })
    return pd.DataFrame(objective_rows), pd.DataFrame(kr_rows)


def generate_tables(now: datetime | None = None, seed: int = 42) -> dict[str, pd.DataFrame]:
    """All simulated tables keyed the way the workbook loader names them."""
    rng = np.random.default_rng(seed)
    now = business_now(now)

    medicines = generate_medicines(now, rng)
    sales = generate_sales(medicines, now, rng)
    objectives, key_results = generate_objectives()
    return {
        "medicines": medicines,
        "sales": sales,
        "objectives": objectives,
        "key_results": key_results,
    }


def build_simulated_source(now: datetime | None = None, seed: int = 42) -> FrameSource:
    """FrameSource over simulated tables, with its clock pinned to `now` when given."""
    tables = generate_tables(now, seed)
    clock = (lambda: now) if now is not None else None
    return FrameSource(
        medicines=tables["medicines"],
        sales=tables["sales"],
        objectives=tables["objectives"],
        key_results=tables["key_results"],
        clock=clock,
    )
