"""
Pharmacy Dashboard: sales, stock and OKR aggregation engine

Builds the dashboard snapshot a pharmacy manager sees: yearly and monthly
sales totals, a weekly and a yearly sales series, expiry and low-stock
counts, best sellers, and weighted OKR progress. Calendar windows are
always computed in the fixed UTC+3 business timezone.

To swap the data feed:
    Implement sources.base.DashboardSource. FrameSource answers from pandas
    tables (simulated or loaded from an exported workbook); RestSource
    queries the pharmacy REST API. The aggregator only sees raw payloads,
    which transforms normalises.

To connect to Streamlit:
    Keep one dashboard.DashboardAggregator per session, await run_cycle()
    on every date change, and render get_dashboard_overview(snapshot).

To change thresholds or the business offset:
    Edit config (LOW_STOCK_THRESHOLD, EXPIRY_ALERT_DAYS,
    BUSINESS_UTC_OFFSET_HOURS) or pass offset_hours explicitly.
"""
