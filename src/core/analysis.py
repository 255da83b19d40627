"""
Demand statistics over a sales or forecast window.

Computes:
- Mean / population variance / standard deviation
- Coefficient of variation and peak-to-average ratio (two volatility measures)
- First-half vs second-half trend delta
- Forecast delta vs the last 28 actual days
- KPI tiles and the forecast summary panel
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np
import pandas as pd

from .windows import BASELINE_WINDOW_DAYS

GROWTH_CLAMP_PCT = 200.0


class Volatility(Enum):
    """Volatility badge. Exactly three cases."""

    STABLE = "stable"
    MODERATE = "moderate"
    HIGH = "high"

    @property
    def label(self) -> str:
        return self.value.title()


def _values(v: Sequence[float] | pd.Series | np.ndarray) -> np.ndarray:
    """Finite float array; NaN/inf/non-numeric become 0."""
    arr = pd.to_numeric(pd.Series(list(v), dtype=object), errors="coerce").to_numpy(dtype=float)
    return np.where(np.isfinite(arr), arr, 0.0)


def mean(v) -> float:
    arr = _values(v)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def population_variance(v) -> float:
    arr = _values(v)
    if arr.size == 0:
        return 0.0
    return float(np.mean((arr - arr.mean()) ** 2))


def std_dev(v) -> float:
    return float(np.sqrt(population_variance(v)))


def coefficient_of_variation(v) -> float:
    """std / mean * 100, or 0 when the mean isn't positive."""
    m = mean(v)
    if m <= 0:
        return 0.0
    return std_dev(v) / m * 100


def peak_to_average(v) -> float:
    """max / mean, or 0 when the mean isn't positive."""
    arr = _values(v)
    if arr.size == 0:
        return 0.0
    m = float(arr.mean())
    if m <= 0:
        return 0.0
    return float(arr.max()) / m


def trend_delta(v) -> float:
    """
    avg(second half) - avg(first half), split at floor(len / 2).

    The first half is the smaller one when the length is odd.
    """
    arr = _values(v)
    if arr.size < 2:
        return 0.0
    mid = arr.size // 2
    return float(arr[mid:].mean() - arr[:mid].mean())


def forecast_delta(actual, forecast, baseline_days: int = BASELINE_WINDOW_DAYS) -> float:
    """avg(forecast) - avg(last 28 actual days), in units/day."""
    actual_arr = _values(actual)
    forecast_arr = _values(forecast)
    if actual_arr.size == 0 or forecast_arr.size == 0:
        return 0.0
    return float(forecast_arr.mean() - actual_arr[-baseline_days:].mean())


@dataclass(frozen=True)
class GrowthPercent:
    """Forecast growth vs baseline, clamped to a sane range."""

    value: float
    raw_value: float
    clamped: bool


def forecast_growth_percent(
    actual,
    forecast,
    baseline_days: int = BASELINE_WINDOW_DAYS,
    min_baseline: float = 0.0,
    clamp_pct: float = GROWTH_CLAMP_PCT,
) -> GrowthPercent | None:
    """
    Percentage change of the forecast average over the baseline average.

    Returns None when the baseline average is not above min_baseline
    (a near-zero baseline would magnify any change into thousands of %).
    Values beyond +/-clamp_pct are clamped and flagged.
    """
    actual_arr = _values(actual)
    forecast_arr = _values(forecast)
    if actual_arr.size == 0 or forecast_arr.size == 0:
        return None

    baseline = float(actual_arr[-baseline_days:].mean())
    if baseline <= 0 or baseline < min_baseline:
        return None

    raw = (float(forecast_arr.mean()) - baseline) / baseline * 100
    clamped = float(np.clip(raw, -clamp_pct, clamp_pct))
    return GrowthPercent(value=clamped, raw_value=raw, clamped=clamped != raw)


def classify_cv_ratio(ratio: float) -> Volatility:
    """
    Badge from a coefficient of variation given as a 0..1 ratio.

    < 0.3 stable, < 0.7 moderate, else high.
    """
    if ratio is None or not np.isfinite(ratio) or ratio < 0.3:
        return Volatility.STABLE
    if ratio < 0.7:
        return Volatility.MODERATE
    return Volatility.HIGH


def classify_peak_ratio(ratio: float) -> Volatility:
    """
    Badge from a peak-to-average ratio.

    < 2 stable, < 5 moderate, else high. A ratio of 0 (mean not positive)
    is stable.
    """
    if ratio is None or not np.isfinite(ratio) or ratio < 2:
        return Volatility.STABLE
    if ratio < 5:
        return Volatility.MODERATE
    return Volatility.HIGH


def sales_volatility(v) -> Volatility:
    """CV badge for an actual-sales window."""
    return classify_cv_ratio(coefficient_of_variation(v) / 100)


def summarize_forecast(forecast: pd.DataFrame, value_col: str = "forecast") -> dict:
    """
    Numbers for the forecast summary panel.

    Volatility here is peak-to-average based, not the CV badge.
    """
    if forecast is None or len(forecast) == 0:
        return {
            "average_daily_forecast": 0.0,
            "peak_daily_demand": 0.0,
            "peak_to_average": 0.0,
            "volatility": Volatility.STABLE,
            "forecast_days": 0,
        }

    values = _values(forecast[value_col])
    ratio = peak_to_average(values)
    return {
        "average_daily_forecast": float(values.mean()),
        "peak_daily_demand": float(values.max()),
        "peak_to_average": ratio,
        "volatility": classify_peak_ratio(ratio),
        "forecast_days": int(values.size),
    }


def compute_key_metrics(
    recent: pd.DataFrame,
    forecast: pd.DataFrame,
    sales_col: str = "sales",
    forecast_col: str = "forecast",
) -> dict:
    """KPI tiles for the product page."""
    sales = _values(recent[sales_col]) if recent is not None and len(recent) else np.array([])
    fc = _values(forecast[forecast_col]) if forecast is not None and len(forecast) else np.array([])

    growth = forecast_growth_percent(sales, fc, clamp_pct=float("inf"))

    return {
        "total_sales": float(sales.sum()),
        "avg_daily_sales": float(sales.mean()) if sales.size else 0.0,
        "last_28_avg": float(sales[-BASELINE_WINDOW_DAYS:].mean()) if sales.size else 0.0,
        "forecast_total": float(fc.sum()),
        "forecast_avg": float(fc.mean()) if fc.size else 0.0,
        "forecast_growth_pct": growth.value if growth else 0.0,
        "sales_volatility": sales_volatility(sales),
    }
