"""Static EC2 and RDS instance-class catalog.

Shared by the rightsizing advisor and the synthetic billing generator so that
generated utilization samples always reference classes the advisor knows.
Monthly rates assume 730 hours per month, on-demand pricing in us-east-1.
"""

from __future__ import annotations

from decimal import Decimal

from spendlens.core.models import InstanceSpec


def _spec(vcpu: int, memory_gb: float, hourly: str, monthly: str, category: str) -> InstanceSpec:
    return InstanceSpec(
        vcpu=vcpu,
        memory_gb=memory_gb,
        hourly_rate=Decimal(hourly),
        monthly_rate=Decimal(monthly),
        category=category,  # type: ignore[arg-type]
    )


EC2_INSTANCES: dict[str, InstanceSpec] = {
    # T3 burstable
    "t3.micro": _spec(2, 1, "0.0104", "7.59", "general"),
    "t3.small": _spec(2, 2, "0.0208", "15.18", "general"),
    "t3.medium": _spec(2, 4, "0.0416", "30.37", "general"),
    "t3.large": _spec(2, 8, "0.0832", "60.74", "general"),
    "t3.xlarge": _spec(4, 16, "0.1664", "121.47", "general"),
    "t3.2xlarge": _spec(8, 32, "0.3328", "242.94", "general"),
    # M6i general purpose
    "m6i.large": _spec(2, 8, "0.096", "70.08", "general"),
    "m6i.xlarge": _spec(4, 16, "0.192", "140.16", "general"),
    "m6i.2xlarge": _spec(8, 32, "0.384", "280.32", "general"),
    "m6i.4xlarge": _spec(16, 64, "0.768", "560.64", "general"),
    "m6i.8xlarge": _spec(32, 128, "1.536", "1121.28", "general"),
    # C6i compute optimized
    "c6i.large": _spec(2, 4, "0.085", "62.05", "compute"),
    "c6i.xlarge": _spec(4, 8, "0.170", "124.10", "compute"),
    "c6i.2xlarge": _spec(8, 16, "0.340", "248.20", "compute"),
    "c6i.4xlarge": _spec(16, 32, "0.680", "496.40", "compute"),
    # R6i memory optimized
    "r6i.large": _spec(2, 16, "0.126", "91.98", "memory"),
    "r6i.xlarge": _spec(4, 32, "0.252", "183.96", "memory"),
    "r6i.2xlarge": _spec(8, 64, "0.504", "367.92", "memory"),
    "r6i.4xlarge": _spec(16, 128, "1.008", "735.84", "memory"),
}

RDS_INSTANCES: dict[str, InstanceSpec] = {
    "db.t3.micro": _spec(2, 1, "0.017", "12.41", "general"),
    "db.t3.small": _spec(2, 2, "0.034", "24.82", "general"),
    "db.t3.medium": _spec(2, 4, "0.068", "49.64", "general"),
    "db.t3.large": _spec(2, 8, "0.136", "99.28", "general"),
    "db.m6g.large": _spec(2, 8, "0.154", "112.42", "general"),
    "db.m6g.xlarge": _spec(4, 16, "0.308", "224.84", "general"),
    "db.m6g.2xlarge": _spec(8, 32, "0.616", "449.68", "general"),
    "db.m6g.4xlarge": _spec(16, 64, "1.232", "899.36", "general"),
    "db.r6g.large": _spec(2, 16, "0.192", "140.16", "memory"),
    "db.r6g.xlarge": _spec(4, 32, "0.384", "280.32", "memory"),
    "db.r6g.2xlarge": _spec(8, 64, "0.768", "560.64", "memory"),
    "db.r6g.4xlarge": _spec(16, 128, "1.536", "1121.28", "memory"),
}


def is_rds_class(instance_class: str) -> bool:
    """Return True when the class belongs to the RDS catalog."""
    return instance_class in RDS_INSTANCES or instance_class.startswith("db.")


def catalog_for(is_rds: bool) -> dict[str, InstanceSpec]:
    """Return the EC2 or RDS catalog."""
    return RDS_INSTANCES if is_rds else EC2_INSTANCES


def lookup(instance_class: str, is_rds: bool | None = None) -> InstanceSpec | None:
    """Find the spec for an instance class, or None when it is not catalogued.

    Args:
        instance_class: Class name such as "m6i.large" or "db.r6g.xlarge".
        is_rds: Catalog to search (inferred from the class name when None).
    """
    if is_rds is None:
        is_rds = is_rds_class(instance_class)
    return catalog_for(is_rds).get(instance_class)


def _family(instance_class: str) -> str:
    return instance_class.split(".", 1)[0]


def _sorted_by_rate(is_rds: bool) -> list[str]:
    catalog = catalog_for(is_rds)
    # sorted() is stable, so equal rates keep catalog order
    return sorted(catalog, key=lambda name: catalog[name].monthly_rate)


def smaller_instance(instance_class: str, is_rds: bool = False) -> str | None:
    """Next cheaper class, preferring the same family.

    Walks down the rate-sorted catalog looking for a class in the same family
    (text before the first "."); falls back to the adjacent cheaper class.
    Returns None for unknown classes and for the cheapest class.
    """
    ordered = _sorted_by_rate(is_rds)
    if instance_class not in ordered:
        return None
    index = ordered.index(instance_class)
    if index == 0:
        return None

    family = _family(instance_class)
    for candidate in reversed(ordered[:index]):
        if _family(candidate) == family:
            return candidate
    return ordered[index - 1]


def larger_instance(instance_class: str, is_rds: bool = False) -> str | None:
    """Next more expensive class, preferring the same family.

    Mirror image of smaller_instance. Returns None for unknown classes and
    for the most expensive class.
    """
    ordered = _sorted_by_rate(is_rds)
    if instance_class not in ordered:
        return None
    index = ordered.index(instance_class)
    if index >= len(ordered) - 1:
        return None

    family = _family(instance_class)
    for candidate in ordered[index + 1:]:
        if _family(candidate) == family:
            return candidate
    return ordered[index + 1]


__all__ = [
    "EC2_INSTANCES",
    "RDS_INSTANCES",
    "catalog_for",
    "is_rds_class",
    "larger_instance",
    "lookup",
    "smaller_instance",
]
