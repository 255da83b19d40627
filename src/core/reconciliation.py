"""
Reconciliation of store-level rows into a single per-product series.

Sales and forecasts are exported per store ("FOODS_1_019_CA_1_evaluation"),
while the dashboard looks at a product. Rows are matched on the base id and
same-day contributions from different stores are summed.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
import logging

import pandas as pd

from .parsers import coerce_quantities, coerce_years, normalize, parse_iso_date

logger = logging.getLogger(__name__)

FORECAST_HORIZON = 28

SALES_COLUMNS = ["date", "sales"]
FORECAST_COLUMNS = ["day", "date", "forecast"]
MONTHLY_COLUMNS = ["year", "month", "sales"]


class AggregationScope(Enum):
    """Which store-level rows make up the product view."""

    STORE = "store"  # Only the fully-qualified id that was asked for
    ALL_STORES = "all_stores"  # Every row sharing the base id


class MatchType(Enum):
    """How a forecast row was located."""

    EXACT_ID = "exact_id"  # Matched on the fully-qualified id
    BASE_ID = "base_id"  # First row with the same base id
    ALL_STORES = "all_stores"  # Summed every row with the same base id
    UNMATCHED = "unmatched"  # No forecast available


@dataclass(frozen=True)
class ForecastMatch:
    """Result of looking up forecast rows for one product."""

    target_id: str
    match_type: MatchType
    matched_ids: tuple[str, ...]
    points: pd.DataFrame

    @property
    def available(self) -> bool:
        return self.match_type != MatchType.UNMATCHED and len(self.points) > 0


def forecast_value_columns(horizon: int = FORECAST_HORIZON) -> list[str]:
    return [f"F{i}" for i in range(1, horizon + 1)]


def _select_rows(
    df: pd.DataFrame,
    target_id: str,
    scope: AggregationScope,
    id_col: str,
) -> pd.DataFrame:
    ids = df[id_col].astype(str).str.strip()
    if scope == AggregationScope.STORE:
        return df[ids == str(target_id).strip()]
    base = normalize(target_id)
    return df[ids.map(normalize) == base]


def reconcile_sales(
    records: pd.DataFrame,
    target_base_id: str,
    scope: AggregationScope = AggregationScope.ALL_STORES,
    id_col: str = "id",
    date_col: str = "date",
    qty_col: str = "sales",
) -> pd.DataFrame:
    """
    Build the reconciled daily series for one product.

    Accepts a full or base id. Quantities are coerced (invalid -> 0) and
    summed per date across stores, never averaged.

    Returns DataFrame with:
    - date (ISO string, strictly increasing)
    - sales (float)
    """
    if records is None or len(records) == 0 or not target_base_id:
        return pd.DataFrame(columns=SALES_COLUMNS)

    matched = _select_rows(records, target_base_id, scope, id_col)
    if len(matched) == 0:
        logger.debug("No sales rows for %s (%s)", target_base_id, scope.value)
        return pd.DataFrame(columns=SALES_COLUMNS)

    quantities = coerce_quantities(matched[qty_col])
    frame = pd.DataFrame(
        {
            "date": matched[date_col].astype(str).str.strip().str[:10],
            "sales": quantities.values,
        }
    )

    # ISO strings sort chronologically
    series = (
        frame.groupby("date", sort=True)["sales"]
        .sum()
        .reset_index()
        .sort_values("date", kind="mergesort")
        .reset_index(drop=True)
    )
    return series[SALES_COLUMNS]


def reconcile_monthly(
    records: pd.DataFrame,
    target_base_id: str,
    scope: AggregationScope = AggregationScope.ALL_STORES,
    id_col: str = "id",
    qty_col: str = "sales",
) -> pd.DataFrame:
    """
    Sum pre-aggregated monthly history rows per (year, month) across stores.

    Year and month fields are truncated toward zero ("2011.0" -> 2011);
    rows whose year or month can't be read are dropped.
    """
    if records is None or len(records) == 0 or not target_base_id:
        return pd.DataFrame(columns=MONTHLY_COLUMNS)

    matched = _select_rows(records, target_base_id, scope, id_col)
    frame = pd.DataFrame(
        {
            "year": coerce_years(matched["year"]),
            "month": coerce_years(matched["month"]),
            "sales": coerce_quantities(matched[qty_col]).values,
        }
    ).dropna(subset=["year", "month"])

    if len(frame) == 0:
        return pd.DataFrame(columns=MONTHLY_COLUMNS)

    monthly = (
        frame.groupby(["year", "month"], sort=True)["sales"]
        .sum()
        .reset_index()
    )
    monthly["year"] = monthly["year"].astype(int)
    monthly["month"] = monthly["month"].astype(int)
    return monthly[MONTHLY_COLUMNS]


def calendar_last_date(calendar: pd.DataFrame, date_col: str = "date") -> date | None:
    """Last chronological calendar date; forecast offset 0."""
    if calendar is None or len(calendar) == 0:
        return None
    dates = [parse_iso_date(d) for d in calendar[date_col]]
    dates = [d for d in dates if d is not None]
    return max(dates) if dates else None


def _forecast_points(
    values: pd.Series,
    last_date: date,
    horizon: int,
    lower: pd.Series | None = None,
    upper: pd.Series | None = None,
) -> pd.DataFrame:
    days = list(range(1, horizon + 1))
    points = pd.DataFrame(
        {
            "day": days,
            "date": [(last_date + timedelta(days=i)).isoformat() for i in days],
            "forecast": [float(v) for v in values],
        }
    )
    if lower is not None and upper is not None:
        points["lower_bound"] = [float(v) for v in lower]
        points["upper_bound"] = [float(v) for v in upper]
    return points


def _bound_columns(df: pd.DataFrame, suffix: str, horizon: int) -> list[str] | None:
    cols = [f"F{i}_{suffix}" for i in range(1, horizon + 1)]
    if all(c in df.columns for c in cols):
        return cols
    return None


def match_forecast(
    rows: pd.DataFrame,
    target_id: str,
    calendar_last_date: date | str | None,
    scope: AggregationScope = AggregationScope.STORE,
    id_col: str = "id",
    horizon: int = FORECAST_HORIZON,
) -> ForecastMatch:
    """
    Locate forecast rows for a product and anchor them to calendar dates.

    Lookup precedence for a single store:
    1. Exact fully-qualified id
    2. First row whose base id matches

    For all stores every row sharing the base id is summed per day offset.
    """
    empty = ForecastMatch(
        target_id=str(target_id),
        match_type=MatchType.UNMATCHED,
        matched_ids=(),
        points=pd.DataFrame(columns=FORECAST_COLUMNS),
    )

    last_date = parse_iso_date(calendar_last_date)
    if rows is None or len(rows) == 0 or not target_id or last_date is None:
        return empty

    value_cols = forecast_value_columns(horizon)
    missing = [c for c in value_cols if c not in rows.columns]
    if missing:
        logger.warning("Forecast rows missing columns: %s", ", ".join(missing[:5]))
        return empty

    ids = rows[id_col].astype(str).str.strip()
    target = str(target_id).strip()
    base = normalize(target)

    if scope == AggregationScope.ALL_STORES:
        matched = rows[ids.map(normalize) == base]
        match_type = MatchType.ALL_STORES
    else:
        matched = rows[ids == target].head(1)
        match_type = MatchType.EXACT_ID
        if len(matched) == 0:
            matched = rows[ids.map(normalize) == base].head(1)
            match_type = MatchType.BASE_ID

    if len(matched) == 0:
        logger.debug("No forecast row for %s", target)
        return empty

    def summed(cols: list[str]) -> pd.Series:
        block = matched[cols].apply(lambda col: coerce_quantities(col).values)
        return block.sum(axis=0)

    lower_cols = _bound_columns(rows, "lower", horizon)
    upper_cols = _bound_columns(rows, "upper", horizon)
    points = _forecast_points(
        summed(value_cols),
        last_date,
        horizon,
        lower=summed(lower_cols) if lower_cols and upper_cols else None,
        upper=summed(upper_cols) if lower_cols and upper_cols else None,
    )

    logger.debug(
        "Forecast for %s matched %d row(s) via %s",
        target,
        len(matched),
        match_type.value,
    )
    return ForecastMatch(
        target_id=target,
        match_type=match_type,
        matched_ids=tuple(matched[id_col].astype(str)),
        points=points,
    )


def reconcile_forecast(
    rows: pd.DataFrame,
    target_base_id: str,
    calendar_last_date: date | str | None,
    scope: AggregationScope = AggregationScope.STORE,
    id_col: str = "id",
) -> pd.DataFrame:
    """
    Forecast points for a product: DataFrame of day (1..28), date, forecast.

    An empty frame means "forecast unavailable", which is a normal state.
    """
    return match_forecast(
        rows, target_base_id, calendar_last_date, scope=scope, id_col=id_col
    ).points
