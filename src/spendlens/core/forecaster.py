"""Trend analysis and forward projection of daily spend.

Fits an ordinary least-squares line to a daily series (value on integer time
index), projects it forward, and brackets every point with a confidence band
derived from the residual standard deviation. The band is constant across
history and widens linearly over the projection horizon, reaching 1.5x its
historical half-width on the last projected day.

The forecaster is a pure computation: it receives the series and produces
forecast objects without touching any data source.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import timedelta

import structlog

from spendlens.core.models import (
    ForecastPoint,
    MonthlyProjection,
    SavingsScenarioPoint,
    SeriesPoint,
    TrendAnalysis,
    TrendDirection,
    round_money,
)

logger = structlog.get_logger(__name__)

# Slope (as % of the series mean per day) beyond which a trend is directional
TREND_THRESHOLD_PCT: float = 1.0

# Half-width growth across the full projection horizon
HORIZON_WIDENING: float = 0.5


def z_score_for(confidence_level: float) -> float:
    """Two-sided z-score for the supported confidence levels.

    0.95 -> 1.96, 0.90 -> 1.645, anything else -> 1.28 (80 %).
    """
    if math.isclose(confidence_level, 0.95):
        return 1.96
    if math.isclose(confidence_level, 0.90):
        return 1.645
    return 1.28


class CostForecaster:
    """Linear trend forecaster for daily spend series.

    Args:
        default_horizon_days: Projection length used when none is given.
        default_confidence_level: Confidence level used when none is given.
    """

    def __init__(
        self,
        default_horizon_days: int = 30,
        default_confidence_level: float = 0.95,
    ) -> None:
        self._default_horizon = default_horizon_days
        self._default_confidence = default_confidence_level

    def analyze_trend(self, series: Sequence[SeriesPoint]) -> TrendAnalysis:
        """Classify the direction and volatility of a daily series.

        The trend is "increasing"/"decreasing" when the regression slope,
        expressed as a percent of the series mean, is beyond +/-1 %, and
        "stable" otherwise. Volatility is the coefficient of variation
        (population standard deviation / mean, as a percent).

        Args:
            series: Daily observations, oldest first.

        Returns:
            TrendAnalysis for the series (all zeros and "stable" when empty).
        """
        values = [point.value for point in series]
        slope, intercept, r_squared = self._linear_regression(values)

        n = len(values)
        average = sum(values) / n if n else 0.0
        variance = sum((v - average) ** 2 for v in values) / n if n else 0.0
        std_dev = math.sqrt(variance)
        volatility = std_dev / average * 100.0 if average > 0 else 0.0

        slope_pct = slope / average * 100.0 if average > 0 else 0.0
        trend: TrendDirection
        if slope_pct > TREND_THRESHOLD_PCT:
            trend = "increasing"
        elif slope_pct < -TREND_THRESHOLD_PCT:
            trend = "decreasing"
        else:
            trend = "stable"

        logger.debug(
            "trend_analyzed",
            data_points=n,
            slope=round(slope, 4),
            trend=trend,
            volatility=round(volatility, 2),
        )

        return TrendAnalysis(
            slope=slope,
            intercept=intercept,
            r_squared=r_squared,
            trend=trend,
            average_daily=average,
            volatility=volatility,
        )

    def generate_forecast(
        self,
        history: Sequence[SeriesPoint],
        horizon_days: int | None = None,
        confidence_level: float | None = None,
    ) -> list[ForecastPoint]:
        """Fit the history and project it forward with a confidence band.

        Args:
            history: Daily observations, oldest first. Gaps are allowed; the
                regression uses position in the sequence, not calendar distance.
            horizon_days: Days to project past the last observation.
            confidence_level: 0.95, 0.90, or anything else for 80 %.

        Returns:
            One fitted point per observation followed by horizon_days projected
            points. Empty when the history is empty (there is no anchor date).
        """
        horizon = self._default_horizon if horizon_days is None else horizon_days
        level = self._default_confidence if confidence_level is None else confidence_level

        if not history:
            logger.info("forecast_skipped_empty_history", horizon_days=horizon)
            return []

        values = [point.value for point in history]
        slope, intercept, _ = self._linear_regression(values)
        half_width = z_score_for(level) * self._residual_std_dev(values, slope, intercept)

        points: list[ForecastPoint] = []
        for index, observation in enumerate(history):
            fitted = max(0.0, intercept + slope * index)
            points.append(
                ForecastPoint(
                    date=observation.date,
                    actual=observation.value,
                    forecast=fitted,
                    upper_bound=fitted + half_width,
                    lower_bound=max(0.0, fitted - half_width),
                    is_projection=False,
                )
            )

        last_date = history[-1].date
        last_index = len(history) - 1
        for step in range(1, horizon + 1):
            projected = max(0.0, intercept + slope * (last_index + step))
            width = half_width * (1.0 + (step / horizon) * HORIZON_WIDENING)
            points.append(
                ForecastPoint(
                    date=last_date + timedelta(days=step),
                    actual=None,
                    forecast=projected,
                    upper_bound=projected + width,
                    lower_bound=max(0.0, projected - width),
                    is_projection=True,
                )
            )

        logger.info(
            "forecast_generated",
            data_points=len(history),
            horizon_days=horizon,
            confidence_level=level,
            slope=round(slope, 4),
        )
        return points

    @staticmethod
    def project_monthly_totals(
        forecast: Sequence[ForecastPoint],
        months: int = 3,
    ) -> list[MonthlyProjection]:
        """Sum projected points by calendar month.

        Historical (fitted) points are ignored. Months appear in the order
        they are first seen and the result is truncated to ``months``. Totals
        are rounded to cents half away from zero.
        """
        buckets: dict[str, list[float]] = {}
        for point in forecast:
            if not point.is_projection:
                continue
            bucket = buckets.setdefault(point.date.strftime("%Y-%m"), [0.0, 0.0, 0.0])
            bucket[0] += point.forecast
            bucket[1] += point.upper_bound
            bucket[2] += point.lower_bound

        return [
            MonthlyProjection(
                month=month,
                projected=float(round_money(projected)),
                upper=float(round_money(upper)),
                lower=float(round_money(lower)),
            )
            for month, (projected, upper, lower) in buckets.items()
        ][: max(months, 0)]

    @staticmethod
    def savings_scenario(
        current_monthly: float,
        reduction_pct: float,
        months: int = 12,
    ) -> list[SavingsScenarioPoint]:
        """Month-by-month effect of cutting spend by a fixed percentage."""
        saved_per_month = current_monthly * reduction_pct / 100.0
        return [
            SavingsScenarioPoint(
                month=month,
                baseline=current_monthly,
                optimized=current_monthly - saved_per_month,
                cumulative_savings=saved_per_month * month,
            )
            for month in range(1, months + 1)
        ]

    @staticmethod
    def _linear_regression(values: Sequence[float]) -> tuple[float, float, float]:
        """Compute OLS slope, intercept and R-squared against index 0..n-1.

        Fewer than two points give slope 0 and the single value (or 0) as
        intercept.

        Returns:
            Tuple of (slope, intercept, r_squared).
        """
        n = len(values)
        if n < 2:
            return 0.0, values[0] if values else 0.0, 0.0

        x_values = range(n)
        sum_x = sum(x_values)
        sum_y = sum(values)
        sum_xy = sum(x * y for x, y in zip(x_values, values))
        sum_x2 = sum(x * x for x in x_values)

        denom = n * sum_x2 - sum_x ** 2
        if denom == 0:
            return 0.0, sum_y / n, 0.0

        slope = (n * sum_xy - sum_x * sum_y) / denom
        intercept = (sum_y - slope * sum_x) / n

        y_mean = sum_y / n
        ss_tot = sum((y - y_mean) ** 2 for y in values)
        ss_res = sum((y - (intercept + slope * x)) ** 2 for x, y in zip(x_values, values))

        r_squared = 1.0 - (ss_res / ss_tot) if ss_tot > 0 else 0.0
        return slope, intercept, max(0.0, min(1.0, r_squared))

    @staticmethod
    def _residual_std_dev(values: Sequence[float], slope: float, intercept: float) -> float:
        """Standard deviation of regression residuals with n-2 degrees of freedom.

        Returns 0 when fewer than three points are available.
        """
        n = len(values)
        if n < 3:
            return 0.0

        residuals = [y - (intercept + slope * x) for x, y in enumerate(values)]
        mean_residual = sum(residuals) / n
        variance = sum((r - mean_residual) ** 2 for r in residuals) / (n - 2)
        return math.sqrt(variance)


__all__ = ["CostForecaster", "z_score_for"]
