"""
Retail Sales Forecast Dashboard

A Streamlit dashboard for historical sales, 28-day forecasts and insights.
Run with: streamlit run app.py
"""

import logging
import os
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import streamlit as st
import pandas as pd
import plotly.graph_objects as go

from clients.m5_client import M5DataLoader, filter_items, filter_options
from core.analysis import Volatility
from core.reconciliation import AggregationScope

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("FORECAST_DATA_DIR", "data"))
MAX_PRODUCTS_SHOWN = 100

# Page config
st.set_page_config(
    page_title="Retail Sales Forecast Dashboard",
    page_icon="📈",
    layout="wide",
)

st.title("📈 Retail Sales Forecasting & Decision Intelligence")
st.caption("Demand forecasts and inventory insights per product")


@st.cache_resource
def get_loader() -> M5DataLoader:
    """One loader (and its cache) per server process."""
    return M5DataLoader(DATA_DIR)


loader = get_loader()

try:
    with st.spinner("Loading data..."):
        items = loader.load_item_master()
except FileNotFoundError as e:
    logger.error("Could not load item master: %s", e)
    st.error(str(e))
    st.stop()

# --- Filter Sidebar ---
st.sidebar.header("Filters")


def select(label: str, choices: list[str], key: str) -> str:
    value = st.sidebar.selectbox(label, [""] + list(choices), key=key, format_func=lambda v: v or "All")
    return value or ""


state = select("State", filter_options(items)["state"], "state")
store = select("Store", filter_options(items, state=state)["store"], "store")
category = select(
    "Category", filter_options(items, state=state, store=store)["category"], "category"
)
department = select(
    "Department",
    filter_options(items, state=state, store=store, category=category)["department"],
    "department",
)
item_choice = select(
    "Item",
    filter_options(
        items, state=state, store=store, category=category, department=department
    )["item"],
    "item",
)

scope_label = st.sidebar.radio(
    "Aggregation", ["All stores", "Selected store only"], index=0
)
scope = AggregationScope.STORE if scope_label == "Selected store only" else AggregationScope.ALL_STORES

# --- Product Selection ---
filtered = filter_items(
    items,
    state=state,
    store=store,
    category=category,
    department=department,
    item=item_choice,
)

st.header("Product Selection")
if len(filtered) == 0:
    st.info("No products found. Try adjusting your filters.")
    st.stop()

st.caption(f"Found {len(filtered):,} product{'s' if len(filtered) != 1 else ''}")
if len(filtered) > MAX_PRODUCTS_SHOWN:
    st.caption(
        f"Showing first {MAX_PRODUCTS_SHOWN} of {len(filtered):,} products. "
        "Use filters to narrow your search."
    )

choices = filtered.head(MAX_PRODUCTS_SHOWN)
labels = {
    row["id"]: f"{row['item_id']} · {row['store_id']} · {row['cat_id']} · {row['state_id']}"
    for _, row in choices.iterrows()
}
selected_id = st.selectbox("Product", list(labels), format_func=labels.get)

st.divider()

# --- Product Detail ---
try:
    view = loader.load_product_view(selected_id, scope=scope)
except FileNotFoundError as e:
    logger.error("Could not load product data: %s", e)
    st.error(str(e))
    st.stop()

if view is None:
    st.warning("Product not found")
    st.stop()

if view.years:
    year = st.selectbox("Year", view.years, index=len(view.years) - 1)
    if year != view.year:
        view = loader.load_product_view(selected_id, year=year, scope=scope)

st.subheader("Product Summary")
summary_cols = st.columns(5)
for col, (label, key) in zip(
    summary_cols,
    [
        ("Item ID", "item_id"),
        ("State", "state_id"),
        ("Store", "store_id"),
        ("Category", "cat_id"),
        ("Department", "dept_id"),
    ],
):
    col.metric(label, view.item.get(key, ""))

# --- KPI Row ---
metrics = view.key_metrics
col1, col2, col3 = st.columns(3)

with col1:
    st.metric("Total Sales (90 Days)", f"{metrics['total_sales']:,.0f}")

with col2:
    st.metric("Average Daily Sales", f"{metrics['avg_daily_sales']:,.2f}")

with col3:
    growth = metrics["forecast_growth_pct"]
    st.metric(
        "Forecasted Growth",
        f"{growth:+.1f}%",
        delta="Next 28 days vs recent",
        delta_color="normal" if growth >= 0 else "inverse",
    )

# --- Recent Performance ---
st.subheader("Recent Performance (Last 90 Days)")
if len(view.recent_sales) > 0:
    fig_recent = go.Figure(
        data=[
            go.Scatter(
                x=pd.to_datetime(view.recent_sales["date"]),
                y=view.recent_sales["sales"],
                mode="lines",
                line=dict(color="#3498db", width=2),
                name="Daily Sales",
            )
        ]
    )
    fig_recent.update_layout(
        height=400,
        margin=dict(t=20, b=20, l=20, r=20),
        yaxis_title="Units",
    )
    st.plotly_chart(fig_recent, use_container_width=True)
else:
    st.info("No recent sales data available")

# --- Historical Analysis ---
st.subheader(f"Historical Analysis ({view.year})" if view.year else "Historical Analysis")
if len(view.yearly_sales) > 0:
    fig_monthly = go.Figure(
        data=[
            go.Bar(
                x=view.yearly_sales["month"],
                y=view.yearly_sales["sales"],
                marker_color="#8b5cf6",
                name="Monthly Sales",
            )
        ]
    )
    fig_monthly.update_layout(
        title=f"Monthly Sales for {view.year}",
        height=400,
        margin=dict(t=40, b=20, l=20, r=20),
        yaxis_title="Units",
    )
    st.plotly_chart(fig_monthly, use_container_width=True)
else:
    st.info("No data available for selected year")

# --- Forecast ---
left_col, right_col = st.columns([2, 1])
points = view.forecast.points

with left_col:
    st.subheader("28-Day Forecast Analysis")
    if view.forecast.available:
        fig_forecast = go.Figure()
        dates = pd.to_datetime(points["date"])
        if "upper_bound" in points.columns and "lower_bound" in points.columns:
            fig_forecast.add_trace(
                go.Scatter(
                    x=dates,
                    y=points["upper_bound"],
                    mode="lines",
                    line=dict(width=0),
                    showlegend=False,
                    hoverinfo="skip",
                )
            )
            fig_forecast.add_trace(
                go.Scatter(
                    x=dates,
                    y=points["lower_bound"],
                    mode="lines",
                    line=dict(width=0),
                    fill="tonexty",
                    fillcolor="rgba(46, 204, 113, 0.2)",
                    name="Confidence Interval",
                )
            )
        fig_forecast.add_trace(
            go.Scatter(
                x=dates,
                y=points["forecast"],
                mode="lines+markers",
                line=dict(color="#2ecc71", width=2),
                name="Forecast",
            )
        )
        fig_forecast.update_layout(
            height=400,
            margin=dict(t=20, b=20, l=20, r=20),
            yaxis_title="Units",
        )
        st.plotly_chart(fig_forecast, use_container_width=True)
        st.caption(
            f"Matched via {view.forecast.match_type.value.replace('_', ' ')}: "
            f"{len(view.forecast.matched_ids)} forecast row(s)"
        )
    else:
        st.info("No forecast available for this product")

with right_col:
    st.subheader("Forecast Summary")
    summary = view.forecast_summary
    if summary["forecast_days"] > 0:
        st.metric("Average Daily Forecast", f"{summary['average_daily_forecast']:.2f}")
        st.metric("Peak Daily Demand", f"{summary['peak_daily_demand']:.2f}")
        badge = {
            Volatility.STABLE: "🟢",
            Volatility.MODERATE: "🟡",
            Volatility.HIGH: "🔴",
        }[summary["volatility"]]
        st.markdown(f"**Demand Volatility:** {badge} {summary['volatility'].label}")
        st.caption("Based on peak-to-average ratio")
        st.caption(f"Total forecast days: {summary['forecast_days']}")
    else:
        st.info("No forecast data available")

    forecast_file = DATA_DIR / "forecast_with_confidence.csv"
    if forecast_file.exists():
        st.download_button(
            "⬇️ Download full forecast (CSV)",
            data=forecast_file.read_bytes(),
            file_name=forecast_file.name,
            mime="text/csv",
        )

st.divider()

# --- Model Performance ---
st.subheader("🤖 Model Performance (28-Day RMSE)")
performance = loader.load_model_performance()
if performance:
    perf_cols = st.columns(len(performance))
    best = min(performance, key=performance.get)
    for col, (model, rmse) in zip(perf_cols, performance.items()):
        col.metric(model, f"{rmse:.2f}", delta="Lowest RMSE" if model == best else None)
else:
    st.info("Model performance not available")

st.divider()

# --- Business Insights ---
st.subheader("💡 Business Insights")
icons = {"positive": "🟢", "negative": "🔴", "warning": "🟠", "neutral": "🔵"}
for insight in view.insights:
    st.markdown(f"{icons[insight.severity]} {insight.text}")

# --- Data Quality ---
with st.expander("📋 View Data Quality Reports"):
    for report in loader.quality_reports.values():
        st.markdown(f"**{report.source_name}** ({report.total_rows:,} rows)")
        if report.issues:
            for issue in report.issues[:5]:
                icon = "🔴" if issue.severity == "critical" else "🟡" if issue.severity == "warning" else "🔵"
                st.markdown(f"{icon} {issue.column}: {issue.description}")
        else:
            st.markdown("✅ No issues found")

# --- Footer ---
st.divider()
st.caption(
    "Built with Streamlit | "
    f"Items: {len(items):,} | "
    f"Scope: {'all stores' if scope == AggregationScope.ALL_STORES else 'single store'}"
)
