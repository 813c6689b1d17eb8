"""Value objects for the SpendLens cost analytics engine.

All engine inputs and outputs are frozen dataclasses. Monetary amounts are
DECIMAL so that window sums are exact and rounding happens exactly once, at
the boundary of each computation. Forecast series are floats because they
are statistical estimates rather than ledger amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

Environment = Literal["production", "staging", "development"]
AnomalyStatus = Literal["new", "acknowledged", "dismissed"]
RecommendationStatus = Literal["pending", "accepted", "ignored", "deferred"]
Confidence = Literal["low", "medium", "high"]
RightsizingAction = Literal["downsize", "upsize", "optimal", "terminate"]
InstanceCategory = Literal["general", "compute", "memory", "storage"]
TrendDirection = Literal["increasing", "decreasing", "stable"]
AlertStatus = Literal["exceeded", "warning"]
PeriodType = Literal["daily", "weekly", "monthly"]

UNALLOCATED_TEAM = "Unallocated"

_CENT = Decimal("0.01")
_TENTH = Decimal("0.1")


def round_money(value: Decimal | float) -> Decimal:
    """Round a monetary amount to cents, half away from zero."""
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def round_percent(value: Decimal | float) -> Decimal:
    """Round a percentage to one decimal place, half away from zero."""
    return Decimal(str(value)).quantize(_TENTH, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Billing input
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BillingRecord:
    """One charge line for a service over one day.

    Attributes:
        service: Service name from the provider catalogue (e.g. "EC2").
        cost: Non-negative charge in the local currency unit.
        usage_date: Calendar day the charge applies to.
        team: Owning team tag (None = unallocated).
        environment: production | staging | development.
        project: Project tag (None = untagged).
        region: Provider region.
        usage_quantity: Metered quantity for the line.
        usage_unit: Unit of usage_quantity (hours, GB, requests, units).
    """

    service: str
    cost: Decimal
    usage_date: date
    team: str | None
    environment: Environment
    project: str | None
    region: str
    usage_quantity: float
    usage_unit: str


# ---------------------------------------------------------------------------
# Aggregator outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BreakdownEntry:
    """Total spend for one value of a grouping dimension."""

    name: str
    value: Decimal


@dataclass(frozen=True)
class DailyTotal:
    """Total spend for one calendar day."""

    date: date
    total: Decimal


@dataclass(frozen=True)
class CostDriver:
    """Per-service spend in the current window against the preceding window.

    Attributes:
        service: Service name.
        current_cost: Spend in the current window.
        previous_cost: Spend in the equal-length window immediately before it.
        change_pct: Percent change (0 when previous_cost is 0).
    """

    service: str
    current_cost: Decimal
    previous_cost: Decimal
    change_pct: Decimal


@dataclass(frozen=True)
class UnallocatedSpend:
    """Spend carrying neither a team nor a project tag, against the window total."""

    amount: Decimal
    total: Decimal


@dataclass(frozen=True)
class CostUnitMetrics:
    """Unit economics for a window.

    Attributes:
        total_cost: Window spend.
        estimated_users: Heuristic active-user count (floor(total_cost / 15)).
        cost_per_user: total_cost / estimated_users (0 when no users).
        total_requests: Sum of usage_quantity for lines metered in requests.
        cost_per_thousand_requests: total_cost / total_requests * 1000
            (0 when no requests).
    """

    total_cost: Decimal
    estimated_users: int
    cost_per_user: Decimal
    total_requests: float
    cost_per_thousand_requests: Decimal


@dataclass(frozen=True)
class PeriodTotals:
    """Month-to-date spend against the whole previous calendar month."""

    this_month: Decimal
    last_month: Decimal
    change_pct: Decimal


# ---------------------------------------------------------------------------
# Anomalies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Anomaly:
    """A day on which a service's spend spiked above its rolling baseline.

    The id is derived from (service, detected_date) so re-running detection
    over the same records yields the same identity. Only ``status`` changes
    after creation, and only through acknowledge/dismiss actions.
    """

    id: str
    service: str
    detected_date: date
    baseline_spend: Decimal
    actual_spend: Decimal
    percent_increase: Decimal
    description: str
    status: AnomalyStatus = "new"


# ---------------------------------------------------------------------------
# Forecasting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SeriesPoint:
    """One observation of a daily series."""

    date: date
    value: float


@dataclass(frozen=True)
class ForecastPoint:
    """A fitted or projected value with its confidence band.

    Historical points carry ``actual``; projected points do not.
    Invariant: 0 <= lower_bound <= forecast <= upper_bound.
    """

    date: date
    actual: float | None
    forecast: float
    upper_bound: float
    lower_bound: float
    is_projection: bool


@dataclass(frozen=True)
class TrendAnalysis:
    """Direction and stability of a daily series."""

    slope: float
    intercept: float
    r_squared: float
    trend: TrendDirection
    average_daily: float
    volatility: float


@dataclass(frozen=True)
class MonthlyProjection:
    """Projected spend summed over one calendar month (YYYY-MM)."""

    month: str
    projected: float
    upper: float
    lower: float


@dataclass(frozen=True)
class SavingsScenarioPoint:
    """Baseline vs optimized monthly spend for a what-if reduction."""

    month: int
    baseline: float
    optimized: float
    cumulative_savings: float


# ---------------------------------------------------------------------------
# Rightsizing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InstanceSpec:
    """Sizing and price attributes of an instance class."""

    vcpu: int
    memory_gb: float
    hourly_rate: Decimal
    monthly_rate: Decimal
    category: InstanceCategory


@dataclass(frozen=True)
class UtilizationSample:
    """Observed utilization of one compute or database resource.

    All percentages are in [0, 100].
    """

    resource_id: str
    resource_type: Literal["EC2", "RDS"]
    instance_class: str
    cpu_avg: float
    cpu_max: float
    memory_avg: float
    memory_max: float
    monthly_cost: Decimal
    region: str = ""
    team: str | None = None
    environment: str | None = None


@dataclass(frozen=True)
class RightsizingResult:
    """Sizing decision for one resource.

    ``savings`` is current_cost - projected_cost and is negative for upsize.
    """

    recommendation: RightsizingAction
    current_class: str
    suggested_class: str | None
    current_cost: Decimal
    projected_cost: Decimal
    savings: Decimal
    confidence: Confidence
    reason: str


@dataclass(frozen=True)
class ResourceRecommendation:
    """A utilization sample paired with the advisor's decision for it."""

    sample: UtilizationSample
    result: RightsizingResult


@dataclass(frozen=True)
class Recommendation:
    """A cost-saving opportunity supplied by the data source."""

    id: str
    category: str
    title: str
    description: str
    current_cost: Decimal
    projected_savings: Decimal
    confidence: Confidence
    service: str
    action_type: str
    resource_id: str
    effort: Literal["low", "medium", "high"]
    risk: Literal["low", "medium", "high"]
    evidence: tuple[str, ...] = ()
    status: RecommendationStatus = "pending"


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServiceCost:
    """Spend on one service, used in a team's top-services list."""

    name: str
    cost: Decimal


@dataclass(frozen=True)
class TeamBudget:
    """A team's realized spend against its allocated budget.

    Attributes:
        team: Team name.
        monthly_budget: Allocated budget, rounded to the nearest hundred.
        current_spend: Spend in the current window.
        previous_spend: Spend in the preceding equal-length window.
        budget_owner: Email of the budget owner.
        alert_threshold: Percentage of budget (0, 100] that triggers a warning.
        top_services: Up to five services by spend in the current window.
    """

    team: str
    monthly_budget: Decimal
    current_spend: Decimal
    previous_spend: Decimal
    budget_owner: str
    alert_threshold: float
    top_services: tuple[ServiceCost, ...] = ()


@dataclass(frozen=True)
class TeamBudgetPolicy:
    """Budget allocation policy for one team."""

    multiplier: Decimal = Decimal("1")
    owner_email: str | None = None


@dataclass(frozen=True)
class BudgetAlertRule:
    """A user-configured spend alert.

    Attributes:
        alert_name: Display name of the alert.
        recipient_email: Where the delivery collaborator sends the alert.
        budget_amount: Spend limit for one period.
        threshold_pct: Percentage of budget_amount that triggers a warning.
        period_type: daily | weekly | monthly.
        filter_team: Only count spend for this team.
        filter_service: Only count spend for this service.
        filter_environment: Only count spend for this environment.
    """

    alert_name: str
    recipient_email: str
    budget_amount: Decimal
    threshold_pct: float = 80.0
    period_type: PeriodType = "monthly"
    filter_team: str | None = None
    filter_service: str | None = None
    filter_environment: str | None = None


@dataclass(frozen=True)
class NotificationPayload:
    """Budget alert handed to the delivery collaborator.

    ``threshold`` is the spend level that was crossed (the full budget for
    ``exceeded``, budget * threshold_pct / 100 for ``warning``).
    """

    alert_name: str
    recipient_email: str
    threshold: Decimal
    current_amount: Decimal
    period_type: PeriodType
    status: AlertStatus
    filter_team: str | None = None
    filter_service: str | None = None
    filter_environment: str | None = None


# ---------------------------------------------------------------------------
# Data source profiles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DemoProfile:
    """A named synthetic workload shape offered by the demo data source."""

    id: str
    name: str
    description: str
