"""
Data loader for the M5-style retail forecast export.

THIS FILE CONTAINS DATASET-SPECIFIC LOGIC:
- File names and column layouts of the exported CSVs
- Numeric coercion of quantities, years and months (done once, here)
- Item-master filters for the state/store/category/department sidebar

Expected files in the data directory:
- item_master.csv            id, item_id, dept_id, cat_id, store_id, state_id
- submission.csv             id, F1..F28 (optionally F{i}_lower / F{i}_upper)
- calendar.csv               date, d, year, month
- historical_90_days.csv     id, date, sales
- historical_monthly.csv     id, year, month, sales
- model_evaluation_28day.csv Model, MAE_28, RMSE_28 (optional)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable
import logging

import pandas as pd

# Handle both package and direct imports
try:
    from ..core.analysis import compute_key_metrics, summarize_forecast
    from ..core.insights import Insight, InsightConfig, generate_insight_report
    from ..core.parsers import coerce_quantities, coerce_years
    from ..core.quality import DataQualityChecker, DataQualityReport
    from ..core.reconciliation import (
        AggregationScope,
        ForecastMatch,
        calendar_last_date,
        forecast_value_columns,
        match_forecast,
        reconcile_monthly,
        reconcile_sales,
    )
    from ..core.windows import (
        RECENT_WINDOW_DAYS,
        available_years,
        last_n_days,
        year_month_aggregate,
    )
except ImportError:
    from core.analysis import compute_key_metrics, summarize_forecast
    from core.insights import Insight, InsightConfig, generate_insight_report
    from core.parsers import coerce_quantities, coerce_years
    from core.quality import DataQualityChecker, DataQualityReport
    from core.reconciliation import (
        AggregationScope,
        ForecastMatch,
        calendar_last_date,
        forecast_value_columns,
        match_forecast,
        reconcile_monthly,
        reconcile_sales,
    )
    from core.windows import (
        RECENT_WINDOW_DAYS,
        available_years,
        last_n_days,
        year_month_aggregate,
    )

logger = logging.getLogger(__name__)

ITEM_MASTER_COLUMNS = ["id", "item_id", "dept_id", "cat_id", "store_id", "state_id"]
FILTER_FIELDS = {
    "state": "state_id",
    "store": "store_id",
    "category": "cat_id",
    "department": "dept_id",
    "item": "item_id",
}


class DataCache:
    """
    Explicit cache for loaded frames.

    Owned by the loader and injected where needed. Entries live until
    invalidated or cleared (in practice: until the process restarts).
    """

    def __init__(self):
        self._store: dict[str, Any] = {}

    def get_or_load(self, key: str, load: Callable[[], Any]) -> Any:
        if key not in self._store:
            self._store[key] = load()
        return self._store[key]

    def invalidate(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)


@dataclass
class ProductView:
    """Everything the product page shows for one item."""

    item: dict
    scope: AggregationScope
    recent_sales: pd.DataFrame
    forecast: ForecastMatch
    monthly: pd.DataFrame
    year: int | None
    yearly_sales: pd.DataFrame
    insights: list[Insight]
    key_metrics: dict
    forecast_summary: dict
    years: list[int] = field(default_factory=list)


def filter_items(
    items: pd.DataFrame,
    state: str | None = None,
    store: str | None = None,
    category: str | None = None,
    department: str | None = None,
    item: str | None = None,
) -> pd.DataFrame:
    """Item-master rows matching every filter that is set."""
    selected = {
        "state": state,
        "store": store,
        "category": category,
        "department": department,
        "item": item,
    }
    mask = pd.Series(True, index=items.index)
    for name, value in selected.items():
        if value:
            mask &= items[FILTER_FIELDS[name]] == value
    return items[mask]


def filter_options(
    items: pd.DataFrame,
    state: str | None = None,
    store: str | None = None,
    category: str | None = None,
    department: str | None = None,
) -> dict[str, list[str]]:
    """
    Cascading dropdown options.

    Each level only offers values that exist under the levels above it:
    state -> store -> category -> department -> item.
    """
    options = {"state": sorted(items["state_id"].dropna().unique())}

    filtered = items
    if state:
        filtered = filtered[filtered["state_id"] == state]
    options["store"] = sorted(filtered["store_id"].dropna().unique())

    if store:
        filtered = filtered[filtered["store_id"] == store]
    options["category"] = sorted(filtered["cat_id"].dropna().unique())

    if category:
        filtered = filtered[filtered["cat_id"] == category]
    options["department"] = sorted(filtered["dept_id"].dropna().unique())

    if department:
        filtered = filtered[filtered["dept_id"] == department]
    options["item"] = sorted(filtered["item_id"].dropna().unique())

    return options


class M5DataLoader:
    """
    Loads and coerces the dashboard's CSV exports.

    Dataset quirks handled:
    - Ids carry store/state and an evaluation-set tag; kept as strings
    - Sales can arrive blank or as text; coerced to float here, once
    - Year/month were exported as floats ("2011.0")
    - The model evaluation file is optional
    """

    def __init__(self, data_dir: Path | str, cache: DataCache | None = None):
        self.data_dir = Path(data_dir)
        self.cache = cache or DataCache()
        self.quality_reports: dict[str, DataQualityReport] = {}

    def _read(self, filename: str) -> pd.DataFrame:
        path = self.data_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Required data file not found: {path}")
        df = pd.read_csv(path, dtype={"id": str})
        logger.info("Loaded %s (%d rows)", filename, len(df))
        return df

    def _coerce_sales(self, df: pd.DataFrame, source: str) -> pd.DataFrame:
        result = coerce_quantities(df["sales"])
        if result.coerced_count:
            logger.warning(
                "%s: %d sales values were missing or non-numeric and set to 0",
                source,
                result.coerced_count,
            )
        df["sales"] = result.values
        return df

    def load_item_master(self) -> pd.DataFrame:
        def load():
            df = self._read("item_master.csv")
            for col in ITEM_MASTER_COLUMNS:
                if col in df.columns:
                    df[col] = df[col].where(df[col].isna(), df[col].astype(str).str.strip())
            self.quality_reports["item_master"] = (
                DataQualityChecker("Item Master")
                .check_required_columns(ITEM_MASTER_COLUMNS)
                .check_identifiers("id")
                .check_duplicates(["id"])
                .run(df)
            )
            return df

        return self.cache.get_or_load("item_master", load)

    def load_forecasts(self) -> pd.DataFrame:
        def load():
            df = self._read("submission.csv")
            self.quality_reports["forecast"] = (
                DataQualityChecker("Forecast")
                .check_required_columns(["id"] + forecast_value_columns())
                .check_identifiers("id")
                .check_duplicates(["id"])
                .run(df)
            )
            df["id"] = df["id"].astype(str).str.strip()
            numeric_cols = [c for c in df.columns if c.startswith("F")]
            for col in numeric_cols:
                df[col] = coerce_quantities(df[col]).values
            return df

        return self.cache.get_or_load("forecast", load)

    def load_calendar(self) -> pd.DataFrame:
        def load():
            df = self._read("calendar.csv")
            df["date"] = df["date"].astype(str).str.strip()
            if "year" in df.columns:
                df["year"] = coerce_years(df["year"])
            if "month" in df.columns:
                df["month"] = coerce_years(df["month"])
            keep = [c for c in ["date", "d", "year", "month"] if c in df.columns]
            return df[keep]

        return self.cache.get_or_load("calendar", load)

    def load_historical_90_days(self) -> pd.DataFrame:
        def load():
            df = self._read("historical_90_days.csv")
            self.quality_reports["historical_90_days"] = (
                DataQualityChecker("Daily Sales (90 days)")
                .check_required_columns(["id", "date", "sales"])
                .check_numeric("sales")
                .check_negative("sales")
                .check_identifiers("id")
                .check_duplicates(["id", "date"])
                .run(df)
            )
            df["id"] = df["id"].astype(str).str.strip()
            df["date"] = df["date"].astype(str).str.strip()
            return self._coerce_sales(df, "historical_90_days")

        return self.cache.get_or_load("historical_90_days", load)

    def load_historical_monthly(self) -> pd.DataFrame:
        def load():
            df = self._read("historical_monthly.csv")
            self.quality_reports["historical_monthly"] = (
                DataQualityChecker("Monthly Sales")
                .check_required_columns(["id", "year", "month", "sales"])
                .check_numeric("sales")
                .check_identifiers("id")
                .run(df)
            )
            df["id"] = df["id"].astype(str).str.strip()
            df["year"] = coerce_years(df["year"])
            df["month"] = coerce_years(df["month"])
            return self._coerce_sales(df, "historical_monthly")

        return self.cache.get_or_load("historical_monthly", load)

    def load_model_performance(self) -> dict[str, float]:
        """RMSE per model name; rows with a non-numeric RMSE are dropped."""

        def load():
            path = self.data_dir / "model_evaluation_28day.csv"
            if not path.exists():
                logger.warning("Model evaluation file not found: %s", path)
                return {}
            df = pd.read_csv(path)
            if "Model" not in df.columns or "RMSE_28" not in df.columns:
                logger.warning("Model evaluation file has unexpected columns")
                return {}
            rmse = pd.to_numeric(df["RMSE_28"], errors="coerce")
            valid = df["Model"].notna() & rmse.notna()
            return dict(zip(df.loc[valid, "Model"].astype(str), rmse[valid].astype(float)))

        return self.cache.get_or_load("model_performance", load)

    def filtered_items(self, **filters) -> pd.DataFrame:
        return filter_items(self.load_item_master(), **filters)

    def find_item(self, item_id: str) -> dict | None:
        """Item-master row by item_id (e.g. FOODS_1_019) or full id."""
        items = self.load_item_master()
        key = str(item_id).strip()
        found = items[items["item_id"] == key]
        if len(found) == 0:
            found = items[items["id"] == key]
        if len(found) == 0:
            return None
        return found.iloc[0].to_dict()

    def load_product_view(
        self,
        item_id: str,
        year: int | None = None,
        scope: AggregationScope = AggregationScope.ALL_STORES,
        config: InsightConfig | None = None,
    ) -> ProductView | None:
        """
        Run the engine for one product.

        Returns None when the item isn't in the item master.
        """
        item = self.find_item(item_id)
        if item is None:
            logger.info("Product %s not found in item master", item_id)
            return None

        full_id = item["id"]
        recent = last_n_days(
            reconcile_sales(self.load_historical_90_days(), full_id, scope=scope),
            RECENT_WINDOW_DAYS,
        )
        forecast = match_forecast(
            self.load_forecasts(),
            full_id,
            calendar_last_date(self.load_calendar()),
            scope=scope,
        )
        monthly = reconcile_monthly(self.load_historical_monthly(), full_id, scope=scope)
        years = available_years(monthly)
        if year is None and years:
            year = years[-1]
        yearly = (
            year_month_aggregate(monthly, year)
            if year is not None
            else pd.DataFrame(columns=["month", "sales"])
        )

        insights = generate_insight_report(
            recent,
            forecast.points,
            yearly if len(yearly) > 0 else None,
            scope=scope,
            config=config,
        )

        return ProductView(
            item=item,
            scope=scope,
            recent_sales=recent,
            forecast=forecast,
            monthly=monthly,
            year=year,
            yearly_sales=yearly,
            insights=insights,
            key_metrics=compute_key_metrics(recent, forecast.points),
            forecast_summary=summarize_forecast(forecast.points),
            years=years,
        )
