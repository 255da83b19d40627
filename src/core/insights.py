"""
Rule-based insight generation.

Uses Pydantic models so every insight carries a category and severity
alongside its text, and the output can be processed programmatically.

Rules are deterministic thresholds over pre-computed statistics, evaluated
in a fixed order. Each rule adds at most one insight:

1. Forecast delta (next 28 days vs last 28 actual days)
2. Recent trend (second half vs first half of the recent window)
3. Volatility (coefficient of variation)
4. Seasonality peak month
5. Q4 concentration
6. Fallback when nothing else fired
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Literal
import logging

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from .analysis import (
    coefficient_of_variation,
    forecast_delta,
    forecast_growth_percent,
    trend_delta,
)
from .parsers import coerce_quantities, coerce_quantity
from .reconciliation import AggregationScope
from .windows import MONTH_NAMES

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No data available for insights."
INSUFFICIENT_SIGNAL_MESSAGE = (
    "Not enough signal in the available sales history to generate insights yet."
)
Q4_MONTHS = ("Oct", "Nov", "Dec")


class ForecastDeltaMode(Enum):
    """Which phrasing the forecast-delta rule uses."""

    UNITS = "units"  # Absolute units/day
    PERCENT = "percent"  # Percentage vs baseline, clamped


class Insight(BaseModel):
    """A single business insight shown on the product page."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Human-readable insight")
    category: Literal["forecast", "trend", "volatility", "seasonality", "fallback"]
    severity: Literal["positive", "negative", "neutral", "warning"] = "neutral"


@dataclass(frozen=True)
class InsightConfig:
    """
    Thresholds for every rule.

    forecast_delta_modes picks exactly one forecast-delta phrasing per
    aggregation scope. In percent mode a baseline below
    forecast_pct_min_baseline gets a percent-style message with no number.
    """

    min_days_forecast: int = 28
    min_days_trend: int = 30
    min_months_seasonality: int = 6
    min_months_q4: int = 1

    forecast_units_threshold: float = 0.5
    forecast_pct_threshold: float = 5.0
    forecast_pct_clamp: float = 200.0
    # Below this baseline (units/day) a percentage is meaningless
    forecast_pct_min_baseline: float = 1.0

    trend_units_threshold: float = 0.5

    high_volatility_cv_pct: float = 50.0
    low_volatility_cv_pct: float = 20.0

    seasonality_peak_ratio: float = 1.5
    q4_share_threshold: float = 0.3

    forecast_delta_modes: dict[AggregationScope, ForecastDeltaMode] = field(
        default_factory=lambda: {
            AggregationScope.ALL_STORES: ForecastDeltaMode.UNITS,
            AggregationScope.STORE: ForecastDeltaMode.PERCENT,
        }
    )

    def forecast_mode(self, scope: AggregationScope) -> ForecastDeltaMode:
        return self.forecast_delta_modes.get(scope, ForecastDeltaMode.UNITS)


def _series_values(data, col: str) -> list[float]:
    if data is None:
        return []
    if isinstance(data, pd.DataFrame):
        if col not in data.columns:
            return []
        return list(data[col])
    return list(data)


def _monthly_pairs(yearly) -> list[tuple[str, float]]:
    """
    Accepts a [month, sales] frame, (month, sales) pairs or dicts.

    Missing or non-numeric sales count as 0.
    """
    if yearly is None:
        return []
    if isinstance(yearly, pd.DataFrame):
        if len(yearly) == 0:
            return []
        sales = coerce_quantities(yearly["sales"]).values
        return list(zip(yearly["month"].astype(str), sales))

    pairs = []
    for row in yearly:
        if isinstance(row, dict):
            pairs.append((str(row.get("month", "")), coerce_quantity(row.get("sales"))))
        else:
            month, sales = row
            pairs.append((str(month), coerce_quantity(sales)))
    return pairs


def _month_label(month: str) -> str:
    """'Dec' -> 'December'; anything unknown is shown as-is."""
    return MONTH_NAMES.get(month[:3].title(), month) if month else month


class InsightRuleEngine:
    """
    Evaluates the ordered insight rules against one product's data.

    Stateless apart from its config: the same inputs always produce the same
    insights in the same order.

    Usage:
        engine = InsightRuleEngine()
        insights = engine.generate(recent_sales, forecast, yearly)
    """

    def __init__(self, config: InsightConfig | None = None):
        self.config = config or InsightConfig()

    def generate(
        self,
        recent_sales,
        forecast,
        yearly=None,
        scope: AggregationScope = AggregationScope.ALL_STORES,
    ) -> list[Insight]:
        """Run every rule in order; never returns an empty list."""
        actual = _series_values(recent_sales, "sales")
        predicted = _series_values(forecast, "forecast")
        months = _monthly_pairs(yearly)

        rules: list[tuple[str, Callable[[], Insight | None]]] = [
            ("forecast", lambda: self._forecast_rule(actual, predicted, scope)),
            ("trend", lambda: self._trend_rule(actual)),
            ("volatility", lambda: self._volatility_rule(actual)),
            ("seasonality", lambda: self._seasonality_rule(months)),
            ("q4", lambda: self._q4_rule(months)),
        ]

        insights = []
        for name, rule in rules:
            insight = rule()
            if insight is None:
                logger.debug("Insight rule %s skipped", name)
                continue
            insights.append(insight)

        if not insights:
            has_data = bool(actual or predicted or months)
            insights.append(
                Insight(
                    text=INSUFFICIENT_SIGNAL_MESSAGE if has_data else NO_DATA_MESSAGE,
                    category="fallback",
                )
            )

        return insights

    def _forecast_rule(
        self,
        actual: list[float],
        predicted: list[float],
        scope: AggregationScope,
    ) -> Insight | None:
        cfg = self.config
        if len(actual) < cfg.min_days_forecast or len(predicted) == 0:
            return None

        if cfg.forecast_mode(scope) == ForecastDeltaMode.PERCENT:
            growth = forecast_growth_percent(
                actual,
                predicted,
                min_baseline=cfg.forecast_pct_min_baseline,
                clamp_pct=cfg.forecast_pct_clamp,
            )
            if growth is None:
                logger.debug("Baseline too small for a percentage change")
                return self._forecast_low_baseline_insight(forecast_delta(actual, predicted))
            return self._forecast_percent_insight(growth.value, growth.clamped)

        return self._forecast_units_insight(forecast_delta(actual, predicted))

    def _forecast_units_insight(self, delta: float) -> Insight:
        threshold = self.config.forecast_units_threshold
        if delta > threshold:
            return Insight(
                text=(
                    f"Sales are projected to increase by {delta:.1f} units/day over "
                    "the next 28 days, indicating strong growth potential."
                ),
                category="forecast",
                severity="positive",
            )
        if delta < -threshold:
            return Insight(
                text=(
                    f"Demand is projected to soften by {abs(delta):.1f} units/day over "
                    "the next 28 days, suggesting lower demand ahead."
                ),
                category="forecast",
                severity="negative",
            )
        return Insight(
            text=(
                "Sales are projected to remain relatively stable over the next "
                f"28 days ({delta:+.1f} units/day)."
            ),
            category="forecast",
        )

    def _forecast_percent_insight(self, pct: float, clamped: bool) -> Insight:
        threshold = self.config.forecast_pct_threshold
        caveat = ""
        if clamped:
            caveat = (
                f" The change exceeds ±{self.config.forecast_pct_clamp:.0f}% and was "
                "capped; recent sales may be incomplete, so treat it with caution."
            )

        if pct > threshold:
            text = (
                f"Sales are projected to increase by {pct:.1f}% over the next 28 days, "
                "indicating strong growth potential."
            )
            severity = "positive"
        elif pct < -threshold:
            text = (
                f"Sales are projected to decrease by {abs(pct):.1f}% over the next "
                "28 days, suggesting lower demand ahead."
            )
            severity = "negative"
        else:
            text = (
                "Sales are projected to remain relatively stable over the next 28 days "
                f"with a {pct:+.1f}% change."
            )
            severity = "neutral"

        return Insight(
            text=text + caveat,
            category="forecast",
            severity="warning" if clamped else severity,
        )

    def _forecast_low_baseline_insight(self, delta: float) -> Insight:
        # Percent phrasing without a number: no percentage is meaningful here
        if delta > 0:
            return Insight(
                text=(
                    "Sales are projected to increase over the next 28 days from a very "
                    "low recent baseline, too low to express the change as a percentage."
                ),
                category="forecast",
                severity="warning",
            )
        return Insight(
            text=(
                "Sales are projected to remain low over the next 28 days; recent "
                "volume is too small for a meaningful percentage change."
            ),
            category="forecast",
        )

    def _trend_rule(self, actual: list[float]) -> Insight | None:
        if len(actual) < self.config.min_days_trend:
            return None

        delta = trend_delta(actual)
        threshold = self.config.trend_units_threshold
        if delta > threshold:
            return Insight(
                text="Recent trend shows increasing demand, indicating positive momentum.",
                category="trend",
                severity="positive",
            )
        if delta < -threshold:
            return Insight(
                text="Recent trend shows decreasing demand, indicating a downward trajectory.",
                category="trend",
                severity="negative",
            )
        return Insight(
            text="Recent trend shows stable demand with consistent performance.",
            category="trend",
        )

    def _volatility_rule(self, actual: list[float]) -> Insight | None:
        if len(actual) < self.config.min_days_trend:
            return None

        cv = coefficient_of_variation(actual)
        if cv > self.config.high_volatility_cv_pct:
            return Insight(
                text="Sales show high volatility, indicating unpredictable demand patterns.",
                category="volatility",
                severity="warning",
            )
        if cv < self.config.low_volatility_cv_pct:
            return Insight(
                text="Sales show low volatility, indicating stable and predictable demand.",
                category="volatility",
                severity="positive",
            )
        return None

    def _seasonality_rule(self, months: list[tuple[str, float]]) -> Insight | None:
        if len(months) < self.config.min_months_seasonality:
            return None

        # First occurrence wins on ties
        peak_month, peak = max(months, key=lambda m: m[1])
        _, low = min(months, key=lambda m: m[1])
        if peak > low * self.config.seasonality_peak_ratio:
            return Insight(
                text=(
                    f"Demand peaks during {_month_label(peak_month)}, "
                    "indicating strong seasonal behavior."
                ),
                category="seasonality",
            )
        return None

    def _q4_rule(self, months: list[tuple[str, float]]) -> Insight | None:
        if len(months) < self.config.min_months_q4:
            return None

        total = sum(sales for _, sales in months)
        if total <= 0:
            return None

        q4 = sum(sales for month, sales in months if month[:3].title() in Q4_MONTHS)
        if q4 / total > self.config.q4_share_threshold:
            return Insight(
                text=(
                    "Demand peaks during Q4 (October-December), indicating strong "
                    "seasonal behavior related to holiday shopping."
                ),
                category="seasonality",
            )
        return None


def generate_insight_report(
    recent_sales,
    forecast,
    yearly=None,
    scope: AggregationScope = AggregationScope.ALL_STORES,
    config: InsightConfig | None = None,
) -> list[Insight]:
    """Structured insights (text, category, severity) in rule order."""
    return InsightRuleEngine(config).generate(recent_sales, forecast, yearly, scope)


def generate_insights(
    recent_sales,
    forecast,
    yearly=None,
    scope: AggregationScope = AggregationScope.ALL_STORES,
    config: InsightConfig | None = None,
) -> list[str]:
    """Insight strings in rule order. Never empty."""
    return [
        insight.text
        for insight in generate_insight_report(recent_sales, forecast, yearly, scope, config)
    ]

