"""Pydantic request and response schemas for the SpendLens analytics API.

All API inputs and outputs are typed Pydantic models, never raw dicts.
Monetary amounts are serialized as floats rounded by the engine.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from spendlens.core.models import (
    AlertStatus,
    AnomalyStatus,
    Confidence,
    PeriodType,
    RecommendationStatus,
    RightsizingAction,
    TrendDirection,
)


# ---------------------------------------------------------------------------
# Aggregations
# ---------------------------------------------------------------------------


class PeriodTotalsResponse(BaseModel):
    """Month-to-date spend against the previous calendar month."""

    this_month: float
    last_month: float
    change_pct: float

    model_config = {"from_attributes": True}


class BreakdownEntryResponse(BaseModel):
    name: str
    value: float

    model_config = {"from_attributes": True}


class DailyTotalResponse(BaseModel):
    date: date
    total: float

    model_config = {"from_attributes": True}


class CostDriverResponse(BaseModel):
    """Per-service spend in the current window against the preceding one."""

    service: str
    current_cost: float
    previous_cost: float
    change_pct: float

    model_config = {"from_attributes": True}


class UnallocatedSpendResponse(BaseModel):
    amount: float
    total: float

    model_config = {"from_attributes": True}


class CostUnitMetricsResponse(BaseModel):
    """Unit economics for a lookback window."""

    total_cost: float
    estimated_users: int
    cost_per_user: float
    total_requests: float
    cost_per_thousand_requests: float

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Anomalies
# ---------------------------------------------------------------------------


class AnomalyResponse(BaseModel):
    """A detected daily spend spike for one service."""

    id: str
    service: str
    detected_date: date
    baseline_spend: float
    actual_spend: float
    percent_increase: float
    description: str
    status: AnomalyStatus

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Forecasting
# ---------------------------------------------------------------------------


class ForecastPointResponse(BaseModel):
    date: date
    actual: float | None
    forecast: float
    upper_bound: float
    lower_bound: float
    is_projection: bool

    model_config = {"from_attributes": True}


class TrendAnalysisResponse(BaseModel):
    """Direction and stability of the daily spend series."""

    slope: float
    intercept: float
    r_squared: float
    trend: TrendDirection
    average_daily: float
    volatility: float

    model_config = {"from_attributes": True}


class MonthlyProjectionResponse(BaseModel):
    month: str
    projected: float
    upper: float
    lower: float

    model_config = {"from_attributes": True}


class SavingsScenarioPointResponse(BaseModel):
    month: int
    baseline: float
    optimized: float
    cumulative_savings: float

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Rightsizing and recommendations
# ---------------------------------------------------------------------------


class RightsizingResultResponse(BaseModel):
    """Sizing decision for one instance."""

    recommendation: RightsizingAction
    current_class: str
    suggested_class: str | None
    current_cost: float
    projected_cost: float
    savings: float
    confidence: Confidence
    reason: str

    model_config = {"from_attributes": True}


class UtilizationSampleResponse(BaseModel):
    resource_id: str
    resource_type: Literal["EC2", "RDS"]
    instance_class: str
    cpu_avg: float
    cpu_max: float
    memory_avg: float
    memory_max: float
    monthly_cost: float
    region: str
    team: str | None
    environment: str | None

    model_config = {"from_attributes": True}


class ResourceRecommendationResponse(BaseModel):
    sample: UtilizationSampleResponse
    result: RightsizingResultResponse

    model_config = {"from_attributes": True}


class RightsizingFleetResponse(BaseModel):
    """Sizing decisions for the whole fleet plus their totals."""

    resource_count: int
    counts: dict[str, int]
    monthly_savings: float
    upsize_cost_increase: float
    resources: list[ResourceRecommendationResponse]


class RecommendationResponse(BaseModel):
    """A catalogued cost-saving opportunity and its user-set status."""

    id: str
    category: str
    title: str
    description: str
    current_cost: float
    projected_savings: float
    confidence: Confidence
    service: str
    action_type: str
    resource_id: str
    effort: Literal["low", "medium", "high"]
    risk: Literal["low", "medium", "high"]
    evidence: list[str]
    status: RecommendationStatus

    model_config = {"from_attributes": True}


class RecommendationStatusUpdateRequest(BaseModel):
    """Request body for PUT /recommendations/{id}/status."""

    status: RecommendationStatus


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------


class ServiceCostResponse(BaseModel):
    name: str
    cost: float

    model_config = {"from_attributes": True}


class TeamBudgetResponse(BaseModel):
    """A team's spend against its allocated monthly budget."""

    team: str
    monthly_budget: float
    current_spend: float
    previous_spend: float
    budget_owner: str
    alert_threshold: float
    top_services: list[ServiceCostResponse]

    model_config = {"from_attributes": True}


class BudgetAlertRuleRequest(BaseModel):
    """A user-configured spend alert to evaluate."""

    alert_name: str = Field(..., min_length=1)
    recipient_email: str = Field(..., min_length=3)
    budget_amount: float = Field(..., ge=0)
    threshold_pct: float = Field(default=80.0, gt=0, le=100)
    period_type: PeriodType = "monthly"
    filter_team: str | None = None
    filter_service: str | None = None
    filter_environment: str | None = None


class BudgetAlertCheckRequest(BaseModel):
    """Request body for POST /budgets/alerts/check.

    With no rules, every team budget is checked against its own threshold.
    """

    rules: list[BudgetAlertRuleRequest] = Field(default_factory=list)


class NotificationPayloadResponse(BaseModel):
    alert_name: str
    recipient_email: str
    threshold: float
    current_amount: float
    period_type: PeriodType
    status: AlertStatus
    filter_team: str | None
    filter_service: str | None
    filter_environment: str | None

    model_config = {"from_attributes": True}


class AlertDispatchResponse(BaseModel):
    payload: NotificationPayloadResponse
    delivered: bool

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class DemoProfileResponse(BaseModel):
    id: str
    name: str
    description: str

    model_config = {"from_attributes": True}


class ProfileListResponse(BaseModel):
    """Available demo profiles and the active one (None for non-demo sources)."""

    active: str | None
    profiles: list[DemoProfileResponse]
