"""Tests for CostForecaster.

Covers:
  - OLS regression on a perfect line and degenerate inputs
  - Residual standard deviation with n-2 degrees of freedom
  - Trend classification and volatility
  - Forecast bounds ordering and non-negativity
  - Widening uncertainty over the projection horizon
  - z-score selection by confidence level
  - Monthly roll-up of projected points only
  - Savings scenario arithmetic
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from spendlens.core.forecaster import CostForecaster, z_score_for
from spendlens.core.models import ForecastPoint, SeriesPoint

START = date(2026, 2, 1)


def _series(values: list[float], start: date = START) -> list[SeriesPoint]:
    return [SeriesPoint(date=start + timedelta(days=i), value=v) for i, v in enumerate(values)]


@pytest.fixture
def forecaster() -> CostForecaster:
    return CostForecaster(default_horizon_days=10, default_confidence_level=0.95)


@pytest.fixture
def noisy_series() -> list[SeriesPoint]:
    return _series([100, 112, 95, 130, 118, 104, 140, 126, 119, 150, 133, 141])


class TestLinearRegression:
    def test_perfect_line(self) -> None:
        slope, intercept, r_squared = CostForecaster._linear_regression([10, 12, 14, 16])
        assert slope == pytest.approx(2.0)
        assert intercept == pytest.approx(10.0)
        assert r_squared == pytest.approx(1.0)

    def test_single_point(self) -> None:
        assert CostForecaster._linear_regression([42.0]) == (0.0, 42.0, 0.0)

    def test_empty(self) -> None:
        assert CostForecaster._linear_regression([]) == (0.0, 0.0, 0.0)

    def test_flat_series_r_squared_zero(self) -> None:
        slope, intercept, r_squared = CostForecaster._linear_regression([5.0, 5.0, 5.0])
        assert slope == pytest.approx(0.0)
        assert intercept == pytest.approx(5.0)
        assert r_squared == 0.0

    def test_residual_std_dev_needs_three_points(self) -> None:
        assert CostForecaster._residual_std_dev([1.0, 9.0], 8.0, 1.0) == 0.0

    def test_residual_std_dev_uses_n_minus_two(self) -> None:
        # Residuals against y = 0: [1, -1, 1, -1]; variance = 4 / (4 - 2)
        std = CostForecaster._residual_std_dev([1.0, -1.0, 1.0, -1.0], 0.0, 0.0)
        assert std == pytest.approx(2.0 ** 0.5)


class TestAnalyzeTrend:
    def test_flat_series_is_stable(self, forecaster: CostForecaster) -> None:
        result = forecaster.analyze_trend(_series([100.0] * 10))
        assert result.trend == "stable"
        assert result.volatility == 0.0
        assert result.average_daily == pytest.approx(100.0)

    def test_increasing(self, forecaster: CostForecaster) -> None:
        result = forecaster.analyze_trend(_series([100, 110, 120, 130, 140]))
        assert result.trend == "increasing"
        assert result.slope == pytest.approx(10.0)

    def test_decreasing(self, forecaster: CostForecaster) -> None:
        assert forecaster.analyze_trend(_series([140, 130, 120, 110, 100])).trend == "decreasing"

    def test_small_slope_is_stable(self, forecaster: CostForecaster) -> None:
        # Slope 0.5 on a mean of ~100 is 0.5 % per day
        assert forecaster.analyze_trend(_series([100, 100.5, 101, 101.5])).trend == "stable"

    def test_volatility_is_population_cv(self, forecaster: CostForecaster) -> None:
        result = forecaster.analyze_trend(_series([50.0, 150.0]))
        assert result.volatility == pytest.approx(50.0)

    def test_empty_series(self, forecaster: CostForecaster) -> None:
        result = forecaster.analyze_trend([])
        assert (result.slope, result.volatility, result.trend) == (0.0, 0.0, "stable")


class TestGenerateForecast:
    def test_shape(self, forecaster: CostForecaster, noisy_series: list[SeriesPoint]) -> None:
        points = forecaster.generate_forecast(noisy_series, horizon_days=7)

        assert len(points) == len(noisy_series) + 7
        history, projection = points[: len(noisy_series)], points[len(noisy_series):]
        assert all(not p.is_projection and p.actual is not None for p in history)
        assert all(p.is_projection and p.actual is None for p in projection)
        assert projection[0].date == noisy_series[-1].date + timedelta(days=1)
        assert projection[-1].date == noisy_series[-1].date + timedelta(days=7)

    def test_bounds_are_ordered_and_non_negative(
        self, forecaster: CostForecaster, noisy_series: list[SeriesPoint]
    ) -> None:
        for point in forecaster.generate_forecast(noisy_series, horizon_days=30):
            assert 0 <= point.lower_bound <= point.forecast <= point.upper_bound

    def test_steep_decline_clamps_at_zero(self, forecaster: CostForecaster) -> None:
        points = forecaster.generate_forecast(_series([90, 60, 45, 20, 10]), horizon_days=10)
        assert points[-1].forecast == 0.0
        for point in points:
            assert point.lower_bound >= 0
            assert point.lower_bound <= point.forecast <= point.upper_bound

    def test_widening_uncertainty(self, forecaster: CostForecaster, noisy_series: list[SeriesPoint]) -> None:
        points = forecaster.generate_forecast(noisy_series, horizon_days=20)
        widths = [p.upper_bound - p.forecast for p in points if p.is_projection]
        assert widths == sorted(widths)
        history_width = points[0].upper_bound - points[0].forecast
        assert widths[-1] == pytest.approx(history_width * 1.5)

    def test_history_band_is_constant(self, forecaster: CostForecaster, noisy_series: list[SeriesPoint]) -> None:
        points = forecaster.generate_forecast(noisy_series, horizon_days=5)
        widths = {round(p.upper_bound - p.forecast, 9) for p in points if not p.is_projection}
        assert len(widths) == 1

    def test_confidence_level_scales_band(self, forecaster: CostForecaster, noisy_series: list[SeriesPoint]) -> None:
        wide = forecaster.generate_forecast(noisy_series, 1, 0.95)[0]
        narrow = forecaster.generate_forecast(noisy_series, 1, 0.80)[0]
        ratio = (wide.upper_bound - wide.forecast) / (narrow.upper_bound - narrow.forecast)
        assert ratio == pytest.approx(1.96 / 1.28)

    def test_defaults_from_constructor(self, forecaster: CostForecaster, noisy_series: list[SeriesPoint]) -> None:
        assert len(forecaster.generate_forecast(noisy_series)) == len(noisy_series) + 10

    def test_empty_history(self, forecaster: CostForecaster) -> None:
        assert forecaster.generate_forecast([], horizon_days=5) == []

    def test_single_point_projects_flat(self, forecaster: CostForecaster) -> None:
        points = forecaster.generate_forecast(_series([75.0]), horizon_days=3)
        assert [p.forecast for p in points] == [75.0] * 4
        assert all(p.upper_bound == p.lower_bound == 75.0 for p in points)


class TestZScore:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [(0.95, 1.96), (0.90, 1.645), (0.80, 1.28), (0.99, 1.28)],
    )
    def test_levels(self, level: float, expected: float) -> None:
        assert z_score_for(level) == expected


class TestMonthlyProjection:
    def test_sums_projected_points_by_month(self, forecaster: CostForecaster) -> None:
        history = _series([100.0] * 5, start=date(2026, 1, 23))  # ends 2026-01-27
        points = forecaster.generate_forecast(history, horizon_days=40)
        months = CostForecaster.project_monthly_totals(points, months=3)

        assert [m.month for m in months] == ["2026-01", "2026-02", "2026-03"]
        assert months[0].projected == pytest.approx(400.0)  # Jan 28-31
        assert months[1].projected == pytest.approx(2800.0)  # all of February
        assert months[2].projected == pytest.approx(800.0)  # Mar 1-8

    def test_truncates_to_requested_months(self, forecaster: CostForecaster) -> None:
        points = forecaster.generate_forecast(_series([100.0] * 5), horizon_days=90)
        assert len(CostForecaster.project_monthly_totals(points, months=2)) == 2

    def test_ignores_history(self, forecaster: CostForecaster) -> None:
        points = forecaster.generate_forecast(_series([100.0] * 5), horizon_days=0)
        assert CostForecaster.project_monthly_totals(points) == []

    def test_totals_round_half_away_from_zero(self) -> None:
        point = ForecastPoint(
            date=date(2026, 3, 1),
            actual=None,
            forecast=0.125,
            upper_bound=2.675,
            lower_bound=0.0,
            is_projection=True,
        )
        month = CostForecaster.project_monthly_totals([point])[0]
        assert (month.projected, month.upper, month.lower) == (0.13, 2.68, 0.0)


class TestSavingsScenario:
    def test_cumulative_savings(self) -> None:
        points = CostForecaster.savings_scenario(10_000.0, 20.0, months=3)
        assert [p.month for p in points] == [1, 2, 3]
        assert points[0].optimized == pytest.approx(8_000.0)
        assert points[-1].cumulative_savings == pytest.approx(6_000.0)
        assert all(p.baseline == 10_000.0 for p in points)
