"""FastAPI router for the SpendLens cost analytics API.

All routes are thin: they validate inputs, call CostAnalyticsService, return
typed Pydantic response models. No business logic belongs here.

Endpoints (under /api/v1/analytics):
  GET  /totals                         Month-to-date vs last month
  GET  /services                       Service names for filters
  GET  /breakdown/{dimension}          Spend by service | team | environment | date
  GET  /trend                          Daily spend series
  GET  /cost-drivers                   Per-service window-over-window change
  GET  /unallocated                    Untagged spend vs total
  GET  /unit-metrics                   Cost per user / per 1K requests
  GET  /anomalies                      Detected spend spikes
  POST /anomalies/{id}/acknowledge     Acknowledge an anomaly
  POST /anomalies/{id}/dismiss         Dismiss an anomaly
  GET  /forecast                       Fitted and projected daily spend
  GET  /forecast/trend                 Trend direction and volatility
  GET  /forecast/monthly               Projected spend per month
  GET  /forecast/savings               What-if savings scenario
  GET  /rightsizing                    Fleet sizing decisions
  GET  /rightsizing/{instance_class}   Ad-hoc sizing decision
  GET  /recommendations                Cost-saving recommendations
  PUT  /recommendations/{id}/status    Record a recommendation decision
  GET  /budgets                        Team budgets
  POST /budgets/alerts/check           Evaluate budgets and send alerts
  GET  /profiles                       Demo profiles
  PUT  /profiles/{id}                  Switch demo profile
  POST /reset                          Regenerate data and clear statuses

Common query params: days (lookback window), service ("all" or a service
name), as_of (window end date, defaults to today).
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request

from spendlens.api.schemas import (
    AlertDispatchResponse,
    AnomalyResponse,
    BreakdownEntryResponse,
    BudgetAlertCheckRequest,
    CostDriverResponse,
    CostUnitMetricsResponse,
    DailyTotalResponse,
    DemoProfileResponse,
    ForecastPointResponse,
    MonthlyProjectionResponse,
    PeriodTotalsResponse,
    ProfileListResponse,
    RecommendationResponse,
    RecommendationStatusUpdateRequest,
    ResourceRecommendationResponse,
    RightsizingFleetResponse,
    RightsizingResultResponse,
    SavingsScenarioPointResponse,
    TeamBudgetResponse,
    TrendAnalysisResponse,
    UnallocatedSpendResponse,
)
from spendlens.core.models import BudgetAlertRule
from spendlens.core.services import BudgetAlertService, CostAnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])

Days = Annotated[int | None, Query(ge=1, le=365, description="Lookback window in days")]
ServiceFilter = Annotated[str, Query(alias="service", description='Service name, or "all"')]
AsOf = Annotated[date | None, Query(description="Window end date (defaults to today)")]


def _get_analytics(request: Request) -> CostAnalyticsService:
    return request.app.state.analytics


def _get_budget_alerts(request: Request) -> BudgetAlertService:
    return request.app.state.budget_alerts


Analytics = Annotated[CostAnalyticsService, Depends(_get_analytics)]


# ---------------------------------------------------------------------------
# Aggregations
# ---------------------------------------------------------------------------


@router.get("/totals", response_model=PeriodTotalsResponse, summary="Month-to-date totals")
async def get_totals(service: Analytics, as_of: AsOf = None) -> PeriodTotalsResponse:
    """Month-to-date spend against the whole previous calendar month."""
    return PeriodTotalsResponse.model_validate(service.totals(as_of))


@router.get("/services", response_model=list[str], summary="List services")
async def list_services(service: Analytics) -> list[str]:
    return service.services()


@router.get(
    "/breakdown/{dimension}",
    response_model=list[BreakdownEntryResponse],
    summary="Spend breakdown by dimension",
)
async def get_breakdown(
    dimension: Literal["service", "team", "environment", "date"],
    service: Analytics,
    days: Days = None,
    service_name: ServiceFilter = "all",
    as_of: AsOf = None,
) -> list[BreakdownEntryResponse]:
    """Spend per value of a dimension, largest first.

    Untagged spend appears under the "Unallocated" team.
    """
    entries = service.breakdown(dimension, days, service_name, as_of)
    return [BreakdownEntryResponse.model_validate(e) for e in entries]


@router.get("/trend", response_model=list[DailyTotalResponse], summary="Daily spend trend")
async def get_trend(
    service: Analytics,
    days: Days = None,
    service_name: ServiceFilter = "all",
    as_of: AsOf = None,
) -> list[DailyTotalResponse]:
    return [DailyTotalResponse.model_validate(d) for d in service.trend(days, service_name, as_of)]


@router.get("/cost-drivers", response_model=list[CostDriverResponse], summary="Top cost drivers")
async def get_cost_drivers(service: Analytics, days: Days = None, as_of: AsOf = None) -> list[CostDriverResponse]:
    """Per-service spend compared with the preceding window of equal length."""
    return [CostDriverResponse.model_validate(d) for d in service.cost_drivers(days, as_of)]


@router.get("/unallocated", response_model=UnallocatedSpendResponse, summary="Unallocated spend")
async def get_unallocated(service: Analytics, days: Days = None, as_of: AsOf = None) -> UnallocatedSpendResponse:
    return UnallocatedSpendResponse.model_validate(service.unallocated(days, as_of))


@router.get("/unit-metrics", response_model=CostUnitMetricsResponse, summary="Unit economics")
async def get_unit_metrics(service: Analytics, days: Days = None, as_of: AsOf = None) -> CostUnitMetricsResponse:
    return CostUnitMetricsResponse.model_validate(service.unit_metrics(days, as_of))


# ---------------------------------------------------------------------------
# Anomalies
# ---------------------------------------------------------------------------


@router.get("/anomalies", response_model=list[AnomalyResponse], summary="Detected anomalies")
async def list_anomalies(service: Analytics) -> list[AnomalyResponse]:
    """Most recent spend spikes; dismissed anomalies are excluded."""
    return [AnomalyResponse.model_validate(a) for a in service.anomalies()]


@router.post("/anomalies/{anomaly_id}/acknowledge", response_model=AnomalyResponse, summary="Acknowledge anomaly")
async def acknowledge_anomaly(anomaly_id: str, service: Analytics) -> AnomalyResponse:
    return AnomalyResponse.model_validate(service.acknowledge_anomaly(anomaly_id))


@router.post("/anomalies/{anomaly_id}/dismiss", response_model=AnomalyResponse, summary="Dismiss anomaly")
async def dismiss_anomaly(anomaly_id: str, service: Analytics) -> AnomalyResponse:
    return AnomalyResponse.model_validate(service.dismiss_anomaly(anomaly_id))


# ---------------------------------------------------------------------------
# Forecasting
# ---------------------------------------------------------------------------


@router.get("/forecast", response_model=list[ForecastPointResponse], summary="Spend forecast")
async def get_forecast(
    service: Analytics,
    days: Days = None,
    service_name: ServiceFilter = "all",
    horizon_days: Annotated[int | None, Query(ge=1, le=365)] = None,
    confidence_level: Annotated[float | None, Query(gt=0, lt=1)] = None,
    as_of: AsOf = None,
) -> list[ForecastPointResponse]:
    """Fitted history followed by projected days with a widening confidence band."""
    points = service.forecast(days, service_name, horizon_days, confidence_level, as_of)
    return [ForecastPointResponse.model_validate(p) for p in points]


@router.get("/forecast/trend", response_model=TrendAnalysisResponse, summary="Trend analysis")
async def get_forecast_trend(
    service: Analytics,
    days: Days = None,
    service_name: ServiceFilter = "all",
    as_of: AsOf = None,
) -> TrendAnalysisResponse:
    return TrendAnalysisResponse.model_validate(service.trend_analysis(days, service_name, as_of))


@router.get("/forecast/monthly", response_model=list[MonthlyProjectionResponse], summary="Monthly projection")
async def get_monthly_projection(
    service: Analytics,
    days: Days = None,
    service_name: ServiceFilter = "all",
    horizon_days: Annotated[int | None, Query(ge=1, le=365)] = None,
    months: Annotated[int, Query(ge=1, le=12)] = 3,
    as_of: AsOf = None,
) -> list[MonthlyProjectionResponse]:
    projections = service.monthly_projection(days, service_name, horizon_days, months, as_of)
    return [MonthlyProjectionResponse.model_validate(p) for p in projections]


@router.get("/forecast/savings", response_model=list[SavingsScenarioPointResponse], summary="Savings scenario")
async def get_savings_scenario(
    service: Analytics,
    reduction_pct: Annotated[float, Query(ge=0, le=100, description="Percent reduction of monthly spend")] = 15.0,
    months: Annotated[int, Query(ge=1, le=36)] = 12,
    as_of: AsOf = None,
) -> list[SavingsScenarioPointResponse]:
    """Baseline vs optimized spend if the last 30 days were cut by reduction_pct."""
    points = service.savings_scenario(reduction_pct, months, as_of)
    return [SavingsScenarioPointResponse.model_validate(p) for p in points]


# ---------------------------------------------------------------------------
# Rightsizing and recommendations
# ---------------------------------------------------------------------------


@router.get("/rightsizing", response_model=RightsizingFleetResponse, summary="Fleet rightsizing")
async def get_rightsizing(service: Analytics) -> RightsizingFleetResponse:
    """Sizing decision for every EC2 and RDS resource, with fleet totals."""
    resources = service.rightsizing()
    summary = service.rightsizing_summary()
    return RightsizingFleetResponse(
        resource_count=summary.resource_count,
        counts=summary.counts,
        monthly_savings=float(summary.monthly_savings),
        upsize_cost_increase=float(summary.upsize_cost_increase),
        resources=[ResourceRecommendationResponse.model_validate(r) for r in resources],
    )


@router.get(
    "/rightsizing/{instance_class}",
    response_model=RightsizingResultResponse,
    summary="Analyze one instance",
)
async def analyze_instance(
    instance_class: str,
    service: Analytics,
    cpu_avg: Annotated[float, Query(ge=0, le=100)],
    cpu_max: Annotated[float, Query(ge=0, le=100)],
    memory_avg: Annotated[float, Query(ge=0, le=100)],
    memory_max: Annotated[float, Query(ge=0, le=100)],
    is_rds: Annotated[bool | None, Query(description="Catalog to use; inferred from the class when omitted")] = None,
) -> RightsizingResultResponse:
    result = service.analyze_instance(instance_class, cpu_avg, cpu_max, memory_avg, memory_max, is_rds)
    return RightsizingResultResponse.model_validate(result)


@router.get("/recommendations", response_model=list[RecommendationResponse], summary="List recommendations")
async def list_recommendations(service: Analytics) -> list[RecommendationResponse]:
    return [RecommendationResponse.model_validate(r) for r in service.recommendations()]


@router.put(
    "/recommendations/{recommendation_id}/status",
    response_model=RecommendationResponse,
    summary="Update recommendation status",
)
async def update_recommendation_status(
    recommendation_id: str,
    request: RecommendationStatusUpdateRequest,
    service: Analytics,
) -> RecommendationResponse:
    """Record accept / ignore / defer on a recommendation."""
    updated = service.set_recommendation_status(recommendation_id, request.status)
    return RecommendationResponse.model_validate(updated)


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------


@router.get("/budgets", response_model=list[TeamBudgetResponse], summary="Team budgets")
async def list_team_budgets(service: Analytics, days: Days = None, as_of: AsOf = None) -> list[TeamBudgetResponse]:
    return [TeamBudgetResponse.model_validate(b) for b in service.team_budgets(days, as_of)]


@router.post(
    "/budgets/alerts/check",
    response_model=list[AlertDispatchResponse],
    summary="Evaluate budgets and send alerts",
)
async def check_budget_alerts(
    alerts: Annotated[BudgetAlertService, Depends(_get_budget_alerts)],
    request: BudgetAlertCheckRequest | None = None,
    days: Days = None,
    as_of: AsOf = None,
) -> list[AlertDispatchResponse]:
    """Evaluate the given alert rules, or every team budget when none are given.

    Each triggered alert is handed to the notification sender; the response
    reports whether delivery succeeded.
    """
    if request is not None and request.rules:
        rules = [
            BudgetAlertRule(
                alert_name=r.alert_name,
                recipient_email=r.recipient_email,
                budget_amount=Decimal(str(r.budget_amount)),
                threshold_pct=r.threshold_pct,
                period_type=r.period_type,
                filter_team=r.filter_team,
                filter_service=r.filter_service,
                filter_environment=r.filter_environment,
            )
            for r in request.rules
        ]
        dispatches = await alerts.check_rules(rules, as_of)
    else:
        dispatches = await alerts.check_team_budgets(days, as_of)
    return [AlertDispatchResponse.model_validate(d) for d in dispatches]


# ---------------------------------------------------------------------------
# Profiles and reset
# ---------------------------------------------------------------------------


@router.get("/profiles", response_model=ProfileListResponse, summary="List demo profiles")
async def list_profiles(service: Analytics) -> ProfileListResponse:
    return ProfileListResponse(
        active=service.profile,
        profiles=[DemoProfileResponse.model_validate(p) for p in service.profiles()],
    )


@router.put("/profiles/{profile_id}", response_model=DemoProfileResponse, summary="Switch demo profile")
async def switch_profile(profile_id: str, service: Analytics) -> DemoProfileResponse:
    """Switch the demo data set; clears all anomaly and recommendation statuses."""
    return DemoProfileResponse.model_validate(service.set_profile(profile_id))


@router.post("/reset", status_code=204, summary="Reset analytics state")
async def reset(service: Analytics) -> None:
    """Regenerate demo data and clear all user-set statuses."""
    service.reset()
