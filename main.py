"""
Pharmacy dashboard: end-to-end aggregation run.

Runs one dashboard cycle (or a few timed cycles) against simulated data, an
exported workbook, or the live API, and prints the snapshot.

Usage:
    python main.py
    python main.py --workbook pharmacy_export.xlsx --month 2024-03 --week 2024-03-03
    python main.py --api --role PHARMACIST
    python main.py --export pharmacy_export.xlsx
    python main.py --watch 3 --interval 10
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from pharmacy_dashboard.config import CURRENCY, DEFAULT_ROLE, REFRESH_INTERVAL_SECONDS
from pharmacy_dashboard.dashboard import (
    DashboardAggregator,
    get_dashboard_overview,
    run_periodic,
)
from pharmacy_dashboard.exceptions import CollaboratorFailure
from pharmacy_dashboard.models import CycleTrigger
from pharmacy_dashboard.simulator import build_simulated_source, generate_tables
from pharmacy_dashboard.sources import RestSource, load_workbook_source, write_workbook

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run pharmacy dashboard aggregation cycles.")
    feed = parser.add_mutually_exclusive_group()
    feed.add_argument("--workbook", help="Exported pharmacy workbook (.xlsx)")
    feed.add_argument("--api", action="store_true", help="Query the pharmacy REST API")
    parser.add_argument("--role", default=DEFAULT_ROLE, help="Caller role (OKR needs MANAGER)")
    parser.add_argument("--month", help="Month to report, YYYY-MM (default: current month)")
    parser.add_argument("--week", help="Any date in the week to chart (default: today)")
    parser.add_argument("--export", help="Write simulated data to this workbook and exit")
    parser.add_argument("--watch", type=int, default=0, help="Run this many timed cycles")
    parser.add_argument("--interval", type=float, default=REFRESH_INTERVAL_SECONDS,
                        help="Seconds between timed cycles")
    return parser.parse_args(argv)


def print_snapshot(snapshot) -> None:
    overview = get_dashboard_overview(snapshot)

    print(f"\nPeriod: {overview['period']}   Week: {overview['week']}")
    print(f"  Total sales (year)  : {overview['sales']['year']:>14,.2f} {CURRENCY}")
    print(f"  Total sales (month) : {overview['sales']['month']:>14,.2f} {CURRENCY}")
    print(f"  Expiring soon       : {overview['inventory']['expiring']}")
    print(f"  Low stock           : {overview['inventory']['low_stock']}")
    print(f"  Expired             : {overview['inventory']['expired']}")
    if overview["okr"]["enabled"]:
        print(f"  OKR progress        : {overview['okr']['progress']:.1f}%")
    else:
        print("  OKR progress        : managers only")

    print("\nWeekly sales:")
    for label, total in snapshot.weekly_series:
        print(f"  {label}  {total:>12,.2f}")

    print("\nMonthly sales:")
    for label, total in snapshot.yearly_series:
        print(f"  {label}  {total:>12,.2f}")

    print("\nWinning products:")
    if not snapshot.winning_products:
        print("  (none)")
    for rank, product in enumerate(snapshot.winning_products, start=1):
        print(f"  {rank}. {product.medicine_name:<28s} {product.total_sales:>8,.0f}  {product.sales_percent:5.2f}%")

    print("\nExpired medicines:")
    if not snapshot.expired_list:
        print("  (none)")
    for med in snapshot.expired_list:
        expiry = med.expire_date.strftime("%b %d, %Y") if med.expire_date else "N/A"
        print(f"  {med.medicine_name:<28s} batch {med.batch_number or 'N/A':<8s} expired {expiry}")


async def run(args: argparse.Namespace) -> int:
    if args.workbook:
        source = load_workbook_source(args.workbook)
    elif args.api:
        source = RestSource()
    else:
        source = build_simulated_source()

    aggregator = DashboardAggregator(source, role=args.role)
    trigger = CycleTrigger(reference_month=args.month, selected_week=args.week, reason="startup")

    if args.watch > 0:
        await run_periodic(
            aggregator,
            interval=args.interval,
            trigger_fn=lambda: trigger,
            max_cycles=args.watch,
        )
        if aggregator.snapshot is None:
            print(f"No snapshot published: {aggregator.last_error}")
            return 1
        print_snapshot(aggregator.snapshot)
        return 0

    try:
        snapshot = await aggregator.run_cycle(trigger)
    except CollaboratorFailure as exc:
        print(f"\nFailed to load dashboard data: {exc}. Please try again later.")
        return 1

    print_snapshot(snapshot)
    return 0


def main() -> None:
    """Run the dashboard aggregation and print the snapshot."""
    args = parse_args()

    print("=" * 70)
    print("  PHARMACY DASHBOARD | Sales, Stock & OKR Snapshot")
    print("=" * 70)

    if args.export:
        tables = generate_tables()
        write_workbook(tables, args.export)
        print(f"\nSimulated data written to {args.export}")
        return

    code = asyncio.run(run(args))

    print("\n" + "=" * 70)
    print("  Run complete." if code == 0 else "  Run failed.")
    print("=" * 70)
    sys.exit(code)


if __name__ == "__main__":
    main()
