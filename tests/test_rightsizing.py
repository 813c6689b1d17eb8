"""Tests for the rightsizing advisor and the instance catalog.

Covers:
  - Terminate / downsize / upsize / optimal decisions and their confidence
  - Fall-through when no smaller or larger class exists
  - Unknown classes degrade to low-confidence optimal
  - Determinism of identical inputs
  - Neighbour lookup prefers the same family and stops at extremes
  - analyze_sample() and summarize() over a fleet
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from spendlens.core import instance_catalog
from spendlens.core.models import UtilizationSample
from spendlens.core.rightsizing import RULES, analyze_rightsizing, analyze_sample, summarize


def _sample(
    instance_class: str,
    cpu_avg: float,
    cpu_max: float,
    memory_avg: float,
    memory_max: float,
    resource_type: str = "EC2",
    monthly_cost: str = "50",
) -> UtilizationSample:
    return UtilizationSample(
        resource_id=f"res-{instance_class}",
        resource_type=resource_type,  # type: ignore[arg-type]
        instance_class=instance_class,
        cpu_avg=cpu_avg,
        cpu_max=cpu_max,
        memory_avg=memory_avg,
        memory_max=memory_max,
        monthly_cost=Decimal(monthly_cost),
    )


class TestInstanceCatalog:
    def test_smaller_prefers_same_family(self) -> None:
        assert instance_catalog.smaller_instance("m6i.xlarge") == "m6i.large"

    def test_smaller_falls_back_to_adjacent(self) -> None:
        # No cheaper m6i class; c6i.large is the next cheaper entry overall
        assert instance_catalog.smaller_instance("m6i.large") == "c6i.large"

    def test_larger_prefers_same_family(self) -> None:
        assert instance_catalog.larger_instance("t3.large") == "t3.xlarge"

    def test_extremes_return_none(self) -> None:
        assert instance_catalog.smaller_instance("t3.micro") is None
        assert instance_catalog.larger_instance("m6i.8xlarge") is None
        assert instance_catalog.smaller_instance("db.t3.micro", is_rds=True) is None

    def test_unknown_class_returns_none(self) -> None:
        assert instance_catalog.smaller_instance("x9z.huge") is None
        assert instance_catalog.lookup("x9z.huge") is None

    def test_rds_catalog_is_separate(self) -> None:
        assert instance_catalog.is_rds_class("db.r6g.large")
        assert instance_catalog.lookup("db.r6g.large").monthly_rate == Decimal("140.16")
        assert instance_catalog.lookup("m6i.large", is_rds=True) is None
        assert instance_catalog.smaller_instance("db.r6g.large", is_rds=True) == "db.m6g.large"


class TestAnalyzeRightsizing:
    def test_idle_instance_is_terminated(self) -> None:
        result = analyze_rightsizing("m6i.large", cpu_avg=1, cpu_max=5, memory_avg=2, memory_max=4)

        assert result.recommendation == "terminate"
        assert result.savings == Decimal("70.08")
        assert result.projected_cost == Decimal("0")
        assert result.confidence == "high"
        assert result.reason == "Instance appears to be idle (CPU: 1%, Memory: 2%)"

    def test_terminate_requires_low_peak(self) -> None:
        result = analyze_rightsizing("m6i.xlarge", cpu_avg=1, cpu_max=12, memory_avg=2, memory_max=4)
        assert result.recommendation == "downsize"

    def test_downsize_high_confidence(self) -> None:
        result = analyze_rightsizing("m6i.xlarge", cpu_avg=10, cpu_max=40, memory_avg=20, memory_max=30)

        assert result.recommendation == "downsize"
        assert result.suggested_class == "m6i.large"
        assert result.current_cost == Decimal("140.16")
        assert result.projected_cost == Decimal("70.08")
        assert result.savings == Decimal("70.08")
        assert result.confidence == "high"
        assert result.reason == "Low utilization (CPU: 10%, Memory: 20%)"

    def test_downsize_medium_confidence(self) -> None:
        result = analyze_rightsizing("m6i.xlarge", cpu_avg=20, cpu_max=40, memory_avg=20, memory_max=30)
        assert result.confidence == "medium"

    def test_upsize(self) -> None:
        result = analyze_rightsizing("m6i.large", cpu_avg=70, cpu_max=97, memory_avg=60, memory_max=80)

        assert result.recommendation == "upsize"
        assert result.suggested_class == "m6i.xlarge"
        assert result.savings == Decimal("-70.08")
        assert result.savings == result.current_cost - result.projected_cost
        assert result.confidence == "high"
        assert result.reason == "High utilization (CPU max: 97%, Memory max: 80%)"

    def test_upsize_medium_confidence_on_memory(self) -> None:
        result = analyze_rightsizing("r6i.large", cpu_avg=50, cpu_max=70, memory_avg=80, memory_max=92)
        assert result.recommendation == "upsize"
        assert result.confidence == "medium"

    def test_downsize_without_smaller_class_falls_through_to_optimal(self) -> None:
        result = analyze_rightsizing("t3.micro", cpu_avg=10, cpu_max=30, memory_avg=20, memory_max=30)

        assert result.recommendation == "optimal"
        assert result.savings == Decimal("0")
        assert result.confidence == "high"

    def test_upsize_without_larger_class_falls_through(self) -> None:
        result = analyze_rightsizing("m6i.8xlarge", cpu_avg=80, cpu_max=99, memory_avg=80, memory_max=99)
        assert result.recommendation == "optimal"

    def test_optimal(self) -> None:
        result = analyze_rightsizing("c6i.xlarge", cpu_avg=50, cpu_max=70, memory_avg=55, memory_max=75)

        assert result.recommendation == "optimal"
        assert result.current_cost == result.projected_cost == Decimal("124.10")
        assert result.reason == "Instance is appropriately sized"

    def test_unknown_class(self) -> None:
        result = analyze_rightsizing("x9z.huge", cpu_avg=1, cpu_max=2, memory_avg=1, memory_max=2)

        assert result.recommendation == "optimal"
        assert result.confidence == "low"
        assert "Unknown instance type" in result.reason

    def test_rds_class_inferred(self) -> None:
        result = analyze_rightsizing("db.r6g.xlarge", cpu_avg=10, cpu_max=30, memory_avg=20, memory_max=40)
        assert result.suggested_class == "db.m6g.xlarge"

    @pytest.mark.parametrize(
        "utilization",
        [(1, 5, 2, 4), (10, 40, 20, 30), (70, 97, 60, 80), (50, 70, 55, 75)],
    )
    def test_deterministic(self, utilization: tuple[float, float, float, float]) -> None:
        assert analyze_rightsizing("m6i.xlarge", *utilization) == analyze_rightsizing("m6i.xlarge", *utilization)

    def test_rule_order(self) -> None:
        assert [rule.name for rule in RULES] == ["terminate", "downsize", "upsize"]


class TestFleet:
    def test_analyze_sample_uses_catalog(self) -> None:
        item = analyze_sample(_sample("db.t3.large", 10, 30, 20, 40, resource_type="RDS"))
        assert item.result.recommendation == "downsize"
        assert item.result.suggested_class == "db.t3.medium"

    def test_analyze_sample_unknown_class_keeps_sample_cost(self) -> None:
        item = analyze_sample(_sample("legacy.box", 50, 60, 50, 60, monthly_cost="88.00"))
        assert item.result.confidence == "low"
        assert item.result.current_cost == Decimal("88.00")
        assert item.result.savings == Decimal("0")

    def test_summarize(self) -> None:
        fleet = [
            analyze_sample(_sample("m6i.large", 1, 5, 2, 4)),
            analyze_sample(_sample("m6i.xlarge", 10, 40, 20, 30)),
            analyze_sample(_sample("m6i.large", 70, 97, 60, 80)),
            analyze_sample(_sample("c6i.xlarge", 50, 70, 55, 75)),
        ]
        summary = summarize(fleet)

        assert summary.resource_count == 4
        assert summary.counts == {"terminate": 1, "downsize": 1, "upsize": 1, "optimal": 1}
        assert summary.monthly_savings == Decimal("140.16")
        assert summary.upsize_cost_increase == Decimal("70.08")
