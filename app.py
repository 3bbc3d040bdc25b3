"""
Pharmacy Dashboard: interactive front end

Run with:  streamlit run app.py
"""

import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent))

from pharmacy_dashboard.config import (
    CURRENCY,
    DEFAULT_ROLE,
    PRIVILEGED_ROLE,
    REFRESH_INTERVAL_SECONDS,
    SAMPLE_WORKBOOK_FILE,
)
from pharmacy_dashboard.dashboard import DashboardAggregator, get_dashboard_overview
from pharmacy_dashboard.exceptions import CollaboratorFailure
from pharmacy_dashboard.models import CycleTrigger
from pharmacy_dashboard.simulator import build_simulated_source
from pharmacy_dashboard.sources import RestSource, load_workbook_source
from pharmacy_dashboard.timeranges import business_today

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Pharmacy Dashboard",
    page_icon="💊",
    layout="wide",
    initial_sidebar_state="expanded",
)

CARD_COLORS = {
    "sales": "#3B82F6",
    "month": "#10B981",
    "expiring": "#F59E0B",
    "low_stock": "#EF4444",
}


# ---------------------------------------------------------------------------
# Session state: one aggregator per session and feed
# ---------------------------------------------------------------------------
def make_source(feed: str):
    if feed == "Workbook" and SAMPLE_WORKBOOK_FILE.exists():
        return load_workbook_source(str(SAMPLE_WORKBOOK_FILE))
    if feed == "API":
        return RestSource()
    return build_simulated_source()


st.sidebar.title("Pharmacy Dashboard")
st.sidebar.markdown("Sales, stock and OKR overview")
st.sidebar.divider()

feed = st.sidebar.radio("Data feed", ["Simulated", "Workbook", "API"])
if feed == "Workbook" and not SAMPLE_WORKBOOK_FILE.exists():
    st.sidebar.warning(
        f"{SAMPLE_WORKBOOK_FILE.name} not found, showing simulated data. "
        f"Create it with `python main.py --export {SAMPLE_WORKBOOK_FILE.name}`."
    )
role = st.sidebar.selectbox(
    "Role",
    [PRIVILEGED_ROLE, "PHARMACIST", "CASHIER"],
    index=0 if DEFAULT_ROLE == PRIVILEGED_ROLE else 1,
)

if st.session_state.get("feed_role") != (feed, role):
    st.session_state["feed_role"] = (feed, role)
    st.session_state["aggregator"] = DashboardAggregator(make_source(feed), role=role)
    st.session_state["trigger"] = None

aggregator: DashboardAggregator = st.session_state["aggregator"]

# Business (UTC+3) date, not the host's local date
today = business_today()

use_month = st.sidebar.checkbox("Pick a month", value=False)
month_key = None
if use_month:
    picked = st.sidebar.date_input("Any day in the month", value=today, key="month_day")
    month_key = f"{picked.year}-{picked.month:02d}"

week_day = st.sidebar.date_input("Any day in the week", value=today, key="week_day")

st.sidebar.divider()
st.sidebar.caption(f"Auto-refresh every {REFRESH_INTERVAL_SECONDS // 60} minutes. Times in UTC+3.")

trigger = CycleTrigger(
    reference_month=month_key,
    selected_week=week_day.isoformat() if week_day else None,
    reason="filter",
)


def run_cycle(next_trigger: CycleTrigger | None = None, retry: bool = False) -> None:
    try:
        if retry:
            asyncio.run(aggregator.retry())
        else:
            asyncio.run(aggregator.run_cycle(next_trigger))
    except CollaboratorFailure as exc:
        # aggregator.last_error carries the message; the old snapshot stays
        logger.warning("Dashboard refresh failed: %s", exc)


if st.session_state.get("trigger") != trigger:
    st.session_state["trigger"] = trigger
    run_cycle(trigger)
    st.session_state["fresh"] = True


# ---------------------------------------------------------------------------
# Helper: metric card
# ---------------------------------------------------------------------------
def metric_card(label: str, value: str, color: str, caption: str = ""):
    st.markdown(
        f"""
        <div style="background: linear-gradient(135deg, {color}22, {color}11);
                    border-left: 4px solid {color};
                    border-radius: 8px; padding: 16px; margin-bottom: 8px;">
            <div style="font-size: 13px; color: #888; font-weight: 600; text-transform: uppercase;">{label}</div>
            <div style="font-size: 28px; font-weight: 700; color: #222; margin: 4px 0;">{value}</div>
            <div style="font-size: 13px; color: #666;">{caption}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def okr_gauge(value: float) -> go.Figure:
    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=value,
        number={"suffix": "%", "valueformat": ".1f"},
        gauge={
            "axis": {"range": [0, 100]},
            "bar": {"color": "#10B981"},
            "steps": [
                {"range": [0, 40], "color": "#FEE2E2"},
                {"range": [40, 70], "color": "#FEF3C7"},
                {"range": [70, 100], "color": "#D1FAE5"},
            ],
        },
    ))
    fig.update_layout(height=260, margin=dict(l=20, r=20, t=20, b=10))
    return fig


# ===========================================================================
# Dashboard body, refreshed on a timer
# ===========================================================================
@st.fragment(run_every=REFRESH_INTERVAL_SECONDS)
def dashboard_body():
    # A render right after a filter or retry cycle reuses its result; timer
    # runs refresh with the same filters.
    if not st.session_state.get("fresh"):
        run_cycle(dataclasses.replace(st.session_state["trigger"], reason="timer"))
    st.session_state["fresh"] = False

    if aggregator.last_error is not None:
        st.error(f"Failed to load dashboard data: {aggregator.last_error}. Please try again later.")
        if st.button("Retry"):
            run_cycle(retry=True)
            st.session_state["fresh"] = True
            st.rerun()

    snapshot = aggregator.snapshot
    if snapshot is None:
        st.info("No dashboard data yet.")
        return

    overview = get_dashboard_overview(snapshot)
    st.title("Dashboard")
    st.caption(f"Period: **{overview['period']}**  |  Week: **{overview['week']}**")

    cols = st.columns(4)
    with cols[0]:
        metric_card("Total Sales (year)", f"{overview['sales']['year']:,.2f} {CURRENCY}",
                    CARD_COLORS["sales"], str(snapshot.year))
    with cols[1]:
        metric_card("Monthly Sales", f"{overview['sales']['month']:,.2f} {CURRENCY}",
                    CARD_COLORS["month"], snapshot.month_name)
    with cols[2]:
        metric_card("Expiring Soon", str(overview["inventory"]["expiring"]),
                    CARD_COLORS["expiring"], "within 30 days")
    with cols[3]:
        metric_card("Low Stock", str(overview["inventory"]["low_stock"]),
                    CARD_COLORS["low_stock"], "items at or below threshold")

    st.divider()

    col1, col2 = st.columns(2)
    with col1:
        labels, totals = zip(*snapshot.weekly_series)
        fig = go.Figure(go.Bar(x=list(labels), y=list(totals), marker_color="#3B82F6"))
        fig.update_layout(
            title=f"Weekly Sales ({snapshot.week_display})",
            xaxis_title="Day of Week",
            yaxis_title=f"Sales ({CURRENCY})",
            height=350,
            plot_bgcolor="rgba(0,0,0,0)",
        )
        st.plotly_chart(fig, use_container_width=True)

    with col2:
        labels, totals = zip(*snapshot.yearly_series)
        fig = go.Figure(go.Scatter(
            x=list(labels), y=list(totals),
            mode="lines+markers",
            line=dict(color="#3B82F6", width=2),
            marker=dict(size=8),
        ))
        fig.update_layout(
            title=f"Monthly Sales ({snapshot.year})",
            xaxis_title="Month",
            yaxis_title=f"Sales ({CURRENCY})",
            height=350,
            plot_bgcolor="rgba(0,0,0,0)",
        )
        st.plotly_chart(fig, use_container_width=True)

    col1, col2 = st.columns([3, 2])
    with col1:
        st.subheader("Winning Products")
        if snapshot.winning_products:
            st.dataframe(
                pd.DataFrame([
                    {
                        "No.": i,
                        "Medicine": p.medicine_name,
                        "Units sold": p.total_sales,
                        "Share": f"{p.sales_percent:.2f}%",
                    }
                    for i, p in enumerate(snapshot.winning_products, start=1)
                ]),
                use_container_width=True,
                hide_index=True,
            )
        else:
            st.info("No winning products available.")

    with col2:
        st.subheader("OKR Progress")
        st.plotly_chart(okr_gauge(snapshot.okr_progress), use_container_width=True)
        if not snapshot.okr_enabled:
            st.caption("OKR tracking available for managers only")

    st.subheader("Expired Medicines")
    if snapshot.expired_list:
        st.dataframe(
            pd.DataFrame([
                {
                    "Medicine": m.medicine_name,
                    "Batch": m.batch_number,
                    "Brand": m.brand_name,
                    "Dosage form": m.dosage_form,
                    "Category": m.category,
                    "Supplier": m.supplier,
                    "Expired on": m.expire_date.strftime("%b %d, %Y") if m.expire_date else "N/A",
                }
                for m in snapshot.expired_list
            ]),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.info("No expired medicines found.")


dashboard_body()
