"""Team budget tracking and budget-alert classification.

Key invariants:
  - current_spend covers the lookback window ``[today - days, today]``;
    previous_spend covers the equal-length window just before it.
  - monthly_budget = round(current_spend * multiplier / 100) * 100, a coarse
    round-number allocation rather than a precise one.
  - The "Unallocated" bucket is never listed as a team.
  - Alert status is "exceeded" when spend >= budget, "warning" when spend >=
    budget * threshold / 100; a non-positive budget never alerts.
  - Delivery of alert payloads is the notification sender's concern.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

import structlog

from spendlens.core.aggregator import window_start
from spendlens.core.models import (
    UNALLOCATED_TEAM,
    AlertStatus,
    BillingRecord,
    BudgetAlertRule,
    NotificationPayload,
    PeriodType,
    ServiceCost,
    TeamBudget,
    TeamBudgetPolicy,
    round_money,
)

logger = structlog.get_logger(__name__)

PERIOD_DAYS: dict[str, int] = {"daily": 1, "weekly": 7, "monthly": 30}
TOP_SERVICES_LIMIT = 5

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class _TeamSpend:
    __slots__ = ("current", "previous", "services")

    def __init__(self) -> None:
        self.current = _ZERO
        self.previous = _ZERO
        self.services: dict[str, Decimal] = {}


def round_budget(current_spend: Decimal, multiplier: Decimal) -> Decimal:
    """Budget allocation rounded to the nearest hundred."""
    hundreds = (current_spend * multiplier / _HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return hundreds * _HUNDRED


def team_budgets(
    records: Iterable[BillingRecord],
    days: int = 30,
    policies: Mapping[str, TeamBudgetPolicy] | None = None,
    default_policy: TeamBudgetPolicy | None = None,
    owner_domain: str = "company.com",
    alert_threshold: float = 80.0,
    today: date | None = None,
) -> list[TeamBudget]:
    """Compute spend against budget for every tagged team.

    Args:
        records: All billing records.
        days: Lookback window length.
        policies: Per-team multiplier and owner overrides.
        default_policy: Policy for teams absent from ``policies``.
        owner_domain: Mail domain for teams without a configured owner.
        alert_threshold: Warning threshold percentage stamped on each budget.
        today: Window end date.

    Returns:
        TeamBudget per team seen in either window, sorted by current spend
        descending.
    """
    policies = policies or {}
    default_policy = default_policy or TeamBudgetPolicy()
    end = today or date.today()
    cutoff = window_start(days, end)
    previous_cutoff = cutoff - timedelta(days=days)

    spend: dict[str, _TeamSpend] = {}
    for record in records:
        team = record.team or UNALLOCATED_TEAM
        if cutoff <= record.usage_date <= end:
            bucket = spend.setdefault(team, _TeamSpend())
            bucket.current += record.cost
            bucket.services[record.service] = bucket.services.get(record.service, _ZERO) + record.cost
        elif previous_cutoff <= record.usage_date < cutoff:
            spend.setdefault(team, _TeamSpend()).previous += record.cost

    budgets: list[TeamBudget] = []
    for team, bucket in spend.items():
        if team == UNALLOCATED_TEAM:
            continue
        policy = policies.get(team, default_policy)
        services = sorted(
            (ServiceCost(name=name, cost=round_money(cost)) for name, cost in bucket.services.items()),
            key=lambda item: item.cost,
            reverse=True,
        )
        budgets.append(
            TeamBudget(
                team=team,
                monthly_budget=round_budget(bucket.current, policy.multiplier),
                current_spend=round_money(bucket.current),
                previous_spend=round_money(bucket.previous),
                budget_owner=policy.owner_email or f"{team.lower()}@{owner_domain}",
                alert_threshold=alert_threshold,
                top_services=tuple(services[:TOP_SERVICES_LIMIT]),
            )
        )

    budgets.sort(key=lambda budget: budget.current_spend, reverse=True)
    logger.debug("team_budgets_computed", teams=len(budgets), days=days)
    return budgets


def classify_spend(current: Decimal, budget: Decimal, threshold_pct: float) -> AlertStatus | None:
    """Classify spend against a budget.

    Returns:
        "exceeded", "warning", or None when spend is under the threshold or
        the budget is not positive.
    """
    if budget <= 0:
        return None
    if current >= budget:
        return "exceeded"
    if current >= budget * Decimal(str(threshold_pct)) / _HUNDRED:
        return "warning"
    return None


def _crossed_level(status: AlertStatus, budget: Decimal, threshold_pct: float) -> Decimal:
    if status == "exceeded":
        return round_money(budget)
    return round_money(budget * Decimal(str(threshold_pct)) / _HUNDRED)


def evaluate_team_budget(
    budget: TeamBudget,
    alert_name: str | None = None,
    period_type: PeriodType = "monthly",
) -> NotificationPayload | None:
    """Build the alert payload for a team budget, or None when no alert is due."""
    status = classify_spend(budget.current_spend, budget.monthly_budget, budget.alert_threshold)
    if status is None:
        return None

    payload = NotificationPayload(
        alert_name=alert_name or f"{budget.team} monthly budget",
        recipient_email=budget.budget_owner,
        threshold=_crossed_level(status, budget.monthly_budget, budget.alert_threshold),
        current_amount=budget.current_spend,
        period_type=period_type,
        status=status,
        filter_team=budget.team,
    )
    logger.info(
        "team_budget_alert_raised",
        team=budget.team,
        status=status,
        current_spend=str(budget.current_spend),
        monthly_budget=str(budget.monthly_budget),
    )
    return payload


def period_spend(
    records: Iterable[BillingRecord],
    rule: BudgetAlertRule,
    today: date | None = None,
) -> Decimal:
    """Spend matching a rule's filters over its period.

    The period ends today and spans PERIOD_DAYS[rule.period_type] calendar
    days, today included.
    """
    end = today or date.today()
    start = end - timedelta(days=PERIOD_DAYS[rule.period_type] - 1)
    total = _ZERO
    for record in records:
        if not start <= record.usage_date <= end:
            continue
        if rule.filter_team is not None and (record.team or UNALLOCATED_TEAM) != rule.filter_team:
            continue
        if rule.filter_service is not None and record.service != rule.filter_service:
            continue
        if rule.filter_environment is not None and record.environment != rule.filter_environment:
            continue
        total += record.cost
    return round_money(total)


def evaluate_alert_rule(
    records: Iterable[BillingRecord],
    rule: BudgetAlertRule,
    today: date | None = None,
) -> NotificationPayload | None:
    """Check a configured alert rule against recent spend.

    Returns:
        The payload for the delivery collaborator, or None when spend is
        below the rule's warning threshold.
    """
    current = period_spend(records, rule, today)
    status = classify_spend(current, rule.budget_amount, rule.threshold_pct)
    if status is None:
        logger.debug("budget_alert_rule_clear", alert_name=rule.alert_name, current_amount=str(current))
        return None

    logger.info(
        "budget_alert_rule_triggered",
        alert_name=rule.alert_name,
        status=status,
        current_amount=str(current),
        budget_amount=str(rule.budget_amount),
    )
    return NotificationPayload(
        alert_name=rule.alert_name,
        recipient_email=rule.recipient_email,
        threshold=_crossed_level(status, rule.budget_amount, rule.threshold_pct),
        current_amount=current,
        period_type=rule.period_type,
        status=status,
        filter_team=rule.filter_team,
        filter_service=rule.filter_service,
        filter_environment=rule.filter_environment,
    )


__all__ = [
    "PERIOD_DAYS",
    "classify_spend",
    "evaluate_alert_rule",
    "evaluate_team_budget",
    "period_spend",
    "round_budget",
    "team_budgets",
]
