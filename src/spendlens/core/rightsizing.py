"""Right-sizing advisor for compute and database instances.

Maps a utilization sample to exactly one decision using an ordered rule
chain. Rules are evaluated in sequence and the first one that both matches
and produces a result wins; a rule that matches but cannot act (no smaller
or larger class exists) falls through to the next rule. The chain is:

    1. terminate  cpu_avg < 2 and memory_avg < 5 and cpu_max < 10
    2. downsize   cpu_avg < 30 and memory_avg < 40 and cpu_max < 60
    3. upsize     cpu_max > 85 or memory_max > 90
    4. optimal    everything else

Unknown instance classes are reported as optimal with low confidence rather
than raising.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from decimal import Decimal

import structlog

from spendlens.core import instance_catalog
from spendlens.core.models import (
    InstanceSpec,
    ResourceRecommendation,
    RightsizingAction,
    RightsizingResult,
    UtilizationSample,
)

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0")


@dataclass(frozen=True)
class _Observation:
    instance_class: str
    spec: InstanceSpec
    is_rds: bool
    cpu_avg: float
    cpu_max: float
    memory_avg: float
    memory_max: float


@dataclass(frozen=True)
class RightsizingRule:
    """One step of the decision chain.

    Attributes:
        name: Decision this rule produces.
        matches: Utilization predicate.
        decide: Builds the result, or returns None to fall through.
    """

    name: RightsizingAction
    matches: Callable[[_Observation], bool]
    decide: Callable[[_Observation], RightsizingResult | None]


@dataclass(frozen=True)
class RightsizingSummary:
    """Totals across a fleet of sizing decisions.

    Attributes:
        resource_count: Number of resources analysed.
        counts: Number of resources per decision.
        monthly_savings: Sum of positive savings (terminate + downsize).
        upsize_cost_increase: Extra monthly cost of recommended upsizes.
    """

    resource_count: int
    counts: dict[str, int]
    monthly_savings: Decimal
    upsize_cost_increase: Decimal


def _pct(value: float) -> str:
    return f"{value:g}%"


def _terminate(obs: _Observation) -> RightsizingResult:
    return RightsizingResult(
        recommendation="terminate",
        current_class=obs.instance_class,
        suggested_class=None,
        current_cost=obs.spec.monthly_rate,
        projected_cost=_ZERO,
        savings=obs.spec.monthly_rate,
        confidence="high",
        reason=f"Instance appears to be idle (CPU: {_pct(obs.cpu_avg)}, Memory: {_pct(obs.memory_avg)})",
    )


def _resize(obs: _Observation, target: str | None, action: RightsizingAction) -> RightsizingResult | None:
    if target is None:
        return None
    target_spec = instance_catalog.catalog_for(obs.is_rds)[target]
    if action == "downsize":
        confidence = "high" if obs.cpu_avg < 15 else "medium"
        reason = f"Low utilization (CPU: {_pct(obs.cpu_avg)}, Memory: {_pct(obs.memory_avg)})"
    else:
        confidence = "high" if obs.cpu_max > 95 or obs.memory_max > 95 else "medium"
        reason = f"High utilization (CPU max: {_pct(obs.cpu_max)}, Memory max: {_pct(obs.memory_max)})"
    return RightsizingResult(
        recommendation=action,
        current_class=obs.instance_class,
        suggested_class=target,
        current_cost=obs.spec.monthly_rate,
        projected_cost=target_spec.monthly_rate,
        savings=obs.spec.monthly_rate - target_spec.monthly_rate,
        confidence=confidence,  # type: ignore[arg-type]
        reason=reason,
    )


def _downsize(obs: _Observation) -> RightsizingResult | None:
    return _resize(obs, instance_catalog.smaller_instance(obs.instance_class, obs.is_rds), "downsize")


def _upsize(obs: _Observation) -> RightsizingResult | None:
    return _resize(obs, instance_catalog.larger_instance(obs.instance_class, obs.is_rds), "upsize")


RULES: tuple[RightsizingRule, ...] = (
    RightsizingRule(
        name="terminate",
        matches=lambda o: o.cpu_avg < 2 and o.memory_avg < 5 and o.cpu_max < 10,
        decide=_terminate,
    ),
    RightsizingRule(
        name="downsize",
        matches=lambda o: o.cpu_avg < 30 and o.memory_avg < 40 and o.cpu_max < 60,
        decide=_downsize,
    ),
    RightsizingRule(
        name="upsize",
        matches=lambda o: o.cpu_max > 85 or o.memory_max > 90,
        decide=_upsize,
    ),
)


def analyze_rightsizing(
    instance_class: str,
    cpu_avg: float,
    cpu_max: float,
    memory_avg: float,
    memory_max: float,
    is_rds: bool | None = None,
) -> RightsizingResult:
    """Decide how one instance should be resized.

    Args:
        instance_class: Catalog class name, e.g. "m6i.large".
        cpu_avg: Average CPU utilization percent.
        cpu_max: Peak CPU utilization percent.
        memory_avg: Average memory utilization percent.
        memory_max: Peak memory utilization percent.
        is_rds: Catalog to use; inferred from the class name when None.

    Returns:
        Exactly one RightsizingResult. Identical inputs always give an
        identical result.
    """
    rds = instance_catalog.is_rds_class(instance_class) if is_rds is None else is_rds
    spec = instance_catalog.lookup(instance_class, rds)
    if spec is None:
        return RightsizingResult(
            recommendation="optimal",
            current_class=instance_class,
            suggested_class=None,
            current_cost=_ZERO,
            projected_cost=_ZERO,
            savings=_ZERO,
            confidence="low",
            reason="Unknown instance type",
        )

    obs = _Observation(
        instance_class=instance_class,
        spec=spec,
        is_rds=rds,
        cpu_avg=cpu_avg,
        cpu_max=cpu_max,
        memory_avg=memory_avg,
        memory_max=memory_max,
    )
    for rule in RULES:
        if rule.matches(obs):
            result = rule.decide(obs)
            if result is not None:
                return result

    return RightsizingResult(
        recommendation="optimal",
        current_class=instance_class,
        suggested_class=None,
        current_cost=spec.monthly_rate,
        projected_cost=spec.monthly_rate,
        savings=_ZERO,
        confidence="high",
        reason="Instance is appropriately sized",
    )


def analyze_sample(sample: UtilizationSample) -> ResourceRecommendation:
    """Run the advisor on a utilization sample.

    Unknown classes report the sample's own monthly cost as both current and
    projected cost so that fleet totals stay meaningful.
    """
    is_rds = sample.resource_type == "RDS"
    result = analyze_rightsizing(
        sample.instance_class,
        sample.cpu_avg,
        sample.cpu_max,
        sample.memory_avg,
        sample.memory_max,
        is_rds=is_rds,
    )
    if instance_catalog.lookup(sample.instance_class, is_rds) is None:
        logger.warning(
            "rightsizing_unknown_instance_class",
            resource_id=sample.resource_id,
            instance_class=sample.instance_class,
        )
        result = replace(result, current_cost=sample.monthly_cost, projected_cost=sample.monthly_cost)
    return ResourceRecommendation(sample=sample, result=result)


def summarize(recommendations: Iterable[ResourceRecommendation]) -> RightsizingSummary:
    """Count decisions and total their monthly cost impact."""
    counts = {"terminate": 0, "downsize": 0, "upsize": 0, "optimal": 0}
    savings = _ZERO
    increase = _ZERO
    total = 0
    for item in recommendations:
        total += 1
        counts[item.result.recommendation] += 1
        if item.result.savings > 0:
            savings += item.result.savings
        elif item.result.savings < 0:
            increase -= item.result.savings
    return RightsizingSummary(
        resource_count=total,
        counts=counts,
        monthly_savings=savings,
        upsize_cost_increase=increase,
    )


__all__ = [
    "RULES",
    "RightsizingRule",
    "RightsizingSummary",
    "analyze_rightsizing",
    "analyze_sample",
    "summarize",
]
