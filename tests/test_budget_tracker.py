"""Tests for team budgets and budget alert evaluation.

Covers:
  - Budgets round to the nearest hundred using the team multiplier
  - Unallocated spend is never listed as a team
  - Owner fallback, top services and sort order
  - classify_spend thresholds and non-positive budgets
  - Team budget and alert rule payloads
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import TODAY, make_record
from spendlens.core.budget_tracker import (
    classify_spend,
    evaluate_alert_rule,
    evaluate_team_budget,
    period_spend,
    round_budget,
    team_budgets,
)
from spendlens.core.models import BudgetAlertRule, TeamBudget, TeamBudgetPolicy


@pytest.fixture
def team_records() -> list:
    return [
        make_record(service="EC2", cost="1234.56", team="Engineering"),
        make_record(service="S3", cost="300", team="Engineering", usage_date=TODAY - timedelta(days=5)),
        make_record(service="RDS", cost="800", team="Data"),
        make_record(service="EC2", cost="900", team="Engineering", usage_date=TODAY - timedelta(days=40)),
        make_record(service="EC2", cost="5000", team=None, project=None),
    ]


class TestTeamBudgets:
    def test_round_budget(self) -> None:
        assert round_budget(Decimal("1534.56"), Decimal("1.1")) == Decimal("1700")
        assert round_budget(Decimal("250"), Decimal("1")) == Decimal("300")
        assert round_budget(Decimal("0"), Decimal("1.5")) == Decimal("0")

    def test_budgets_per_team(self, team_records: list) -> None:
        policies = {"Engineering": TeamBudgetPolicy(Decimal("1.1"), "eng-lead@company.com")}
        budgets = team_budgets(team_records, days=30, policies=policies, today=TODAY)

        assert [b.team for b in budgets] == ["Engineering", "Data"]
        eng = budgets[0]
        assert eng.current_spend == Decimal("1534.56")
        assert eng.previous_spend == Decimal("900.00")
        assert eng.monthly_budget == Decimal("1700")
        assert eng.budget_owner == "eng-lead@company.com"
        assert eng.alert_threshold == 80.0
        assert [s.name for s in eng.top_services] == ["EC2", "S3"]

    def test_unallocated_never_listed(self, team_records: list) -> None:
        budgets = team_budgets(team_records, today=TODAY)
        assert "Unallocated" not in {b.team for b in budgets}

    def test_owner_falls_back_to_domain(self, team_records: list) -> None:
        budgets = team_budgets(team_records, owner_domain="example.org", today=TODAY)
        data = next(b for b in budgets if b.team == "Data")
        assert data.budget_owner == "data@example.org"
        assert data.monthly_budget == Decimal("800")

    def test_top_services_capped_at_five(self) -> None:
        records = [
            make_record(service=name, cost=cost, team="Platform")
            for name, cost in [("EC2", 60), ("S3", 50), ("RDS", 40), ("EKS", 30), ("EBS", 20), ("Route53", 10)]
        ]
        budget = team_budgets(records, today=TODAY)[0]
        assert [s.name for s in budget.top_services] == ["EC2", "S3", "RDS", "EKS", "EBS"]


class TestClassifySpend:
    @pytest.mark.parametrize(
        ("current", "budget", "expected"),
        [
            ("1000", "1000", "exceeded"),
            ("1200", "1000", "exceeded"),
            ("800", "1000", "warning"),
            ("799.99", "1000", None),
            ("50", "0", None),
        ],
    )
    def test_thresholds(self, current: str, budget: str, expected: str | None) -> None:
        assert classify_spend(Decimal(current), Decimal(budget), 80.0) == expected


class TestAlertPayloads:
    def test_team_budget_warning(self) -> None:
        budget = TeamBudget(
            team="Data",
            monthly_budget=Decimal("1000"),
            current_spend=Decimal("850"),
            previous_spend=Decimal("700"),
            budget_owner="data-lead@company.com",
            alert_threshold=80.0,
        )
        payload = evaluate_team_budget(budget)

        assert payload is not None
        assert payload.status == "warning"
        assert payload.threshold == Decimal("800.00")
        assert payload.current_amount == Decimal("850")
        assert payload.recipient_email == "data-lead@company.com"
        assert payload.filter_team == "Data"
        assert payload.alert_name == "Data monthly budget"

    def test_team_budget_under_threshold(self) -> None:
        budget = TeamBudget("ML", Decimal("1000"), Decimal("100"), Decimal("0"), "ml@company.com", 80.0)
        assert evaluate_team_budget(budget) is None

    def test_alert_rule_with_filters(self) -> None:
        records = [
            make_record(service="EC2", cost=300, team="Data", environment="production"),
            make_record(service="EC2", cost=400, team="Data", environment="production",
                        usage_date=TODAY - timedelta(days=6)),
            make_record(service="EC2", cost=999, team="Data", environment="production",
                        usage_date=TODAY - timedelta(days=7)),
            make_record(service="S3", cost=999, team="Data", environment="production"),
            make_record(service="EC2", cost=999, team="ML", environment="production"),
        ]
        rule = BudgetAlertRule(
            alert_name="Data EC2 weekly",
            recipient_email="data-lead@company.com",
            budget_amount=Decimal("600"),
            period_type="weekly",
            filter_team="Data",
            filter_service="EC2",
            filter_environment="production",
        )

        assert period_spend(records, rule, TODAY) == Decimal("700.00")
        payload = evaluate_alert_rule(records, rule, TODAY)
        assert payload is not None
        assert payload.status == "exceeded"
        assert payload.threshold == Decimal("600.00")
        assert payload.period_type == "weekly"
        assert payload.filter_service == "EC2"

    def test_alert_rule_unallocated_team_filter(self) -> None:
        records = [make_record(cost=100, team=None, project=None)]
        rule = BudgetAlertRule("Untagged", "finance@company.com", Decimal("100"), filter_team="Unallocated")
        payload = evaluate_alert_rule(records, rule, TODAY)
        assert payload is not None and payload.status == "exceeded"

    def test_alert_rule_clear(self) -> None:
        rule = BudgetAlertRule("Daily", "ops@company.com", Decimal("1000"), period_type="daily")
        assert evaluate_alert_rule([make_record(cost=10)], rule, TODAY) is None
