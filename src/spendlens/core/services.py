"""Business logic services for the SpendLens cost analytics engine.

Services depend on the collaborator interfaces in core/interfaces.py and
receive them via constructor injection. No framework code (FastAPI, httpx)
belongs here.

Key invariants:
- CostAnalyticsService: every query re-reads the data source and recomputes
  its result; the only retained state is the user-set status maps.
- BudgetAlertService: evaluates team budgets and alert rules and hands every
  triggered payload to the notification sender.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

import structlog

from spendlens.core import aggregator, rightsizing
from spendlens.core.anomaly_detector import CostAnomalyDetector, apply_status
from spendlens.core.budget_tracker import evaluate_alert_rule, evaluate_team_budget, team_budgets
from spendlens.core.forecaster import CostForecaster
from spendlens.core.interfaces import BillingDataSource, NotificationSender, StatusStore
from spendlens.core.models import (
    Anomaly,
    AnomalyStatus,
    BillingRecord,
    BreakdownEntry,
    BudgetAlertRule,
    CostDriver,
    CostUnitMetrics,
    DailyTotal,
    DemoProfile,
    ForecastPoint,
    MonthlyProjection,
    NotificationPayload,
    PeriodTotals,
    Recommendation,
    RecommendationStatus,
    ResourceRecommendation,
    RightsizingResult,
    SavingsScenarioPoint,
    TeamBudget,
    TeamBudgetPolicy,
    TrendAnalysis,
    UnallocatedSpend,
)
from spendlens.errors import NotFoundError, SpendLensError
from spendlens.settings import Settings

logger = structlog.get_logger(__name__)

ANOMALY_STATUSES = ("new", "acknowledged", "dismissed")
RECOMMENDATION_STATUSES = ("pending", "accepted", "ignored", "deferred")

SourceFactory = Callable[[str], BillingDataSource]


def budget_policies(settings: Settings) -> tuple[dict[str, TeamBudgetPolicy], TeamBudgetPolicy]:
    """Build per-team budget policies and the fallback policy from settings."""
    teams = set(settings.team_budget_multipliers) | set(settings.team_budget_owners)
    default_multiplier = Decimal(str(settings.default_budget_multiplier))
    policies = {
        team: TeamBudgetPolicy(
            multiplier=Decimal(str(settings.team_budget_multipliers[team]))
            if team in settings.team_budget_multipliers
            else default_multiplier,
            owner_email=settings.team_budget_owners.get(team),
        )
        for team in teams
    }
    return policies, TeamBudgetPolicy(multiplier=default_multiplier)


class CostAnalyticsService:
    """Façade over the analytics engine for one billing data source.

    Holds the active data source and the anomaly and recommendation status
    stores. Every query loads records from the source and runs the pure
    engine functions over them.

    Args:
        source: The active billing data source.
        settings: Engine thresholds, query defaults and budget policy.
        anomaly_statuses: Store for user-set anomaly statuses.
        recommendation_statuses: Store for user-set recommendation statuses.
        source_factory: Builds a source for a demo profile id; required for
            set_profile() and reset().
        profiles: Profiles offered by source_factory.
        profile: Id of the profile the initial source was built for.
    """

    def __init__(
        self,
        source: BillingDataSource,
        settings: Settings,
        anomaly_statuses: StatusStore,
        recommendation_statuses: StatusStore,
        source_factory: SourceFactory | None = None,
        profiles: Sequence[DemoProfile] = (),
        profile: str | None = None,
    ) -> None:
        self._source = source
        self._settings = settings
        self._anomaly_statuses = anomaly_statuses
        self._recommendation_statuses = recommendation_statuses
        self._source_factory = source_factory
        self._profiles = tuple(profiles)
        self._profile = profile
        self._detector = CostAnomalyDetector(
            min_increase_pct=settings.anomaly_min_increase_pct,
            min_spend=settings.anomaly_min_spend,
            window_days=settings.anomaly_window_days,
            scan_limit=settings.anomaly_scan_limit,
            max_results=settings.anomaly_max_results,
        )
        self._forecaster = CostForecaster(
            default_horizon_days=settings.default_forecast_days,
            default_confidence_level=settings.default_confidence_level,
        )
        self._policies, self._default_policy = budget_policies(settings)

    def _records(self) -> list[BillingRecord]:
        return self._source.load_records()

    def _days(self, days: int | None) -> int:
        return self._settings.default_lookback_days if days is None else days

    # ------------------------------------------------------------------
    # Aggregations
    # ------------------------------------------------------------------

    def totals(self, today: date | None = None) -> PeriodTotals:
        """Month-to-date spend against the previous calendar month."""
        return aggregator.period_totals(self._records(), today)

    def services(self) -> list[str]:
        """Service names present in the data, for filter pickers."""
        return aggregator.available_services(self._records())

    def breakdown(
        self,
        dimension: str,
        days: int | None = None,
        service: str | None = aggregator.ALL_SERVICES,
        today: date | None = None,
    ) -> list[BreakdownEntry]:
        """Spend grouped by service, team or environment."""
        return aggregator.breakdown(self._records(), dimension, self._days(days), service, today)

    def trend(
        self,
        days: int | None = None,
        service: str | None = aggregator.ALL_SERVICES,
        today: date | None = None,
    ) -> list[DailyTotal]:
        return aggregator.daily_trend(self._records(), self._days(days), service, today)

    def cost_drivers(self, days: int | None = None, today: date | None = None) -> list[CostDriver]:
        return aggregator.top_cost_drivers(self._records(), self._days(days), today)

    def unallocated(self, days: int | None = None, today: date | None = None) -> UnallocatedSpend:
        return aggregator.unallocated_spend(self._records(), self._days(days), today)

    def unit_metrics(self, days: int | None = None, today: date | None = None) -> CostUnitMetrics:
        return aggregator.cost_unit_metrics(self._records(), self._days(days), today)

    # ------------------------------------------------------------------
    # Anomalies
    # ------------------------------------------------------------------

    def anomalies(self) -> list[Anomaly]:
        """Detected anomalies with user statuses applied; dismissed ones are hidden."""
        return apply_status(self._detector.detect(self._records()), self._anomaly_statuses.get)

    def acknowledge_anomaly(self, anomaly_id: str) -> Anomaly:
        """Mark an anomaly as acknowledged.

        Raises:
            NotFoundError: If no detected anomaly has this id.
        """
        return self._set_anomaly_status(anomaly_id, "acknowledged")

    def dismiss_anomaly(self, anomaly_id: str) -> Anomaly:
        """Dismiss an anomaly so it no longer appears in anomalies().

        Raises:
            NotFoundError: If no detected anomaly has this id.
        """
        return self._set_anomaly_status(anomaly_id, "dismissed")

    def _set_anomaly_status(self, anomaly_id: str, status: AnomalyStatus) -> Anomaly:
        for anomaly in self._detector.detect(self._records()):
            if anomaly.id == anomaly_id:
                self._anomaly_statuses.set(anomaly_id, status)
                return replace(anomaly, status=status)
        raise NotFoundError("anomaly", anomaly_id)

    # ------------------------------------------------------------------
    # Forecasting
    # ------------------------------------------------------------------

    def forecast(
        self,
        days: int | None = None,
        service: str | None = aggregator.ALL_SERVICES,
        horizon_days: int | None = None,
        confidence_level: float | None = None,
        today: date | None = None,
    ) -> list[ForecastPoint]:
        """Fit the window's daily trend and project it forward."""
        history = aggregator.daily_series(self._records(), self._days(days), service, today)
        return self._forecaster.generate_forecast(history, horizon_days, confidence_level)

    def trend_analysis(
        self,
        days: int | None = None,
        service: str | None = aggregator.ALL_SERVICES,
        today: date | None = None,
    ) -> TrendAnalysis:
        history = aggregator.daily_series(self._records(), self._days(days), service, today)
        return self._forecaster.analyze_trend(history)

    def monthly_projection(
        self,
        days: int | None = None,
        service: str | None = aggregator.ALL_SERVICES,
        horizon_days: int | None = None,
        months: int = 3,
        today: date | None = None,
    ) -> list[MonthlyProjection]:
        """Projected spend per calendar month over the forecast horizon."""
        points = self.forecast(days, service, horizon_days, None, today)
        return self._forecaster.project_monthly_totals(points, months)

    def savings_scenario(
        self,
        reduction_pct: float,
        months: int = 12,
        today: date | None = None,
    ) -> list[SavingsScenarioPoint]:
        """What-if savings of a fixed reduction applied to the last 30 days of spend."""
        current = sum(
            (entry.value for entry in aggregator.service_breakdown(self._records(), 30, aggregator.ALL_SERVICES, today)),
            Decimal("0"),
        )
        return self._forecaster.savings_scenario(float(current), reduction_pct, months)

    # ------------------------------------------------------------------
    # Rightsizing and recommendations
    # ------------------------------------------------------------------

    def rightsizing(self) -> list[ResourceRecommendation]:
        """Sizing decision for every resource the source reports utilization for."""
        return [rightsizing.analyze_sample(sample) for sample in self._source.load_utilization()]

    def rightsizing_summary(self) -> rightsizing.RightsizingSummary:
        return rightsizing.summarize(self.rightsizing())

    def analyze_instance(
        self,
        instance_class: str,
        cpu_avg: float,
        cpu_max: float,
        memory_avg: float,
        memory_max: float,
        is_rds: bool | None = None,
    ) -> RightsizingResult:
        """Ad-hoc sizing decision for an instance class and utilization profile."""
        return rightsizing.analyze_rightsizing(instance_class, cpu_avg, cpu_max, memory_avg, memory_max, is_rds)

    def recommendations(self) -> list[Recommendation]:
        """Catalogued recommendations with user statuses applied."""
        merged: list[Recommendation] = []
        for rec in self._source.load_recommendations():
            status = self._recommendation_statuses.get(rec.id)
            merged.append(replace(rec, status=status) if status else rec)
        return merged

    def set_recommendation_status(self, recommendation_id: str, status: RecommendationStatus) -> Recommendation:
        """Record a user decision on a recommendation.

        Raises:
            NotFoundError: If no recommendation has this id.
            ValueError: If the status is not a recommendation status.
        """
        for rec in self._source.load_recommendations():
            if rec.id == recommendation_id:
                self._recommendation_statuses.set(recommendation_id, status)
                return replace(rec, status=status)
        raise NotFoundError("recommendation", recommendation_id)

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def team_budgets(self, days: int | None = None, today: date | None = None) -> list[TeamBudget]:
        """Spend against budget for every tagged team."""
        return team_budgets(
            self._records(),
            days=self._days(days),
            policies=self._policies,
            default_policy=self._default_policy,
            owner_domain=self._settings.budget_owner_domain,
            alert_threshold=self._settings.default_alert_threshold_pct,
            today=today,
        )

    def records(self) -> list[BillingRecord]:
        """All billing records of the active source."""
        return self._records()

    # ------------------------------------------------------------------
    # Profiles and reset
    # ------------------------------------------------------------------

    @property
    def profile(self) -> str | None:
        return self._profile

    def profiles(self) -> list[DemoProfile]:
        return list(self._profiles)

    def set_profile(self, profile_id: str) -> DemoProfile:
        """Switch to another demo profile and clear all user statuses.

        Raises:
            NotFoundError: If the profile id is unknown.
            SpendLensError: If the active source does not support profiles.
        """
        selected = next((p for p in self._profiles if p.id == profile_id), None)
        if selected is None:
            raise NotFoundError("profile", profile_id)
        self._switch_source(profile_id)
        logger.info("profile_switched", profile=profile_id)
        return selected

    def reset(self) -> None:
        """Regenerate the active profile's data and clear all user statuses."""
        if self._source_factory is not None and self._profile is not None:
            self._switch_source(self._profile)
        else:
            self._clear_statuses()
        logger.info("analytics_reset", profile=self._profile)

    def _switch_source(self, profile_id: str) -> None:
        if self._source_factory is None:
            raise SpendLensError("The active billing data source does not support demo profiles")
        self._source = self._source_factory(profile_id)
        self._profile = profile_id
        self._clear_statuses()

    def _clear_statuses(self) -> None:
        self._anomaly_statuses.clear()
        self._recommendation_statuses.clear()


@dataclass(frozen=True)
class AlertDispatch:
    """A triggered budget alert and whether the sender delivered it."""

    payload: NotificationPayload
    delivered: bool


class BudgetAlertService:
    """Evaluate budgets and hand triggered alerts to the notification sender.

    Args:
        analytics: Source of team budgets and billing records.
        sender: Transport for alert payloads.
    """

    def __init__(self, analytics: CostAnalyticsService, sender: NotificationSender) -> None:
        self._analytics = analytics
        self._sender = sender

    async def check_team_budgets(
        self,
        days: int | None = None,
        today: date | None = None,
    ) -> list[AlertDispatch]:
        """Evaluate every team budget and notify each team over its threshold.

        Args:
            days: Lookback window for team spend.
            today: Window end date.

        Returns:
            One AlertDispatch per team with a warning or exceeded status.
        """
        payloads = [
            payload
            for payload in (evaluate_team_budget(budget) for budget in self._analytics.team_budgets(days, today))
            if payload is not None
        ]
        return await self._dispatch(payloads)

    async def check_rules(
        self,
        rules: Iterable[BudgetAlertRule],
        today: date | None = None,
    ) -> list[AlertDispatch]:
        """Evaluate configured alert rules against recent spend and notify."""
        records = self._analytics.records()
        payloads = [
            payload
            for payload in (evaluate_alert_rule(records, rule, today) for rule in rules)
            if payload is not None
        ]
        return await self._dispatch(payloads)

    async def _dispatch(self, payloads: list[NotificationPayload]) -> list[AlertDispatch]:
        dispatches = [AlertDispatch(payload=p, delivered=await self._sender.send(p)) for p in payloads]
        logger.info(
            "budget_alerts_dispatched",
            triggered=len(dispatches),
            delivered=sum(1 for d in dispatches if d.delivered),
        )
        return dispatches


__all__ = [
    "ANOMALY_STATUSES",
    "RECOMMENDATION_STATUSES",
    "AlertDispatch",
    "BudgetAlertService",
    "CostAnalyticsService",
    "budget_policies",
]
