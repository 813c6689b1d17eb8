"""Synthetic billing data for demonstrations and local development.

Generates a lookback window of daily charge lines for twelve cloud services
across five teams, with a weekend dip, a slow growth trend, an environment
cost multiplier and roughly 10% untagged lines. Three demo profiles weight
the service mix differently. Utilization samples are drawn from the shared
instance catalog so that every generated class is known to the rightsizing
advisor.

Pass ``seed`` for a reproducible data set.
"""

from __future__ import annotations

import random
import string
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

import structlog

from spendlens.core import instance_catalog
from spendlens.core.models import (
    BillingRecord,
    DemoProfile,
    Recommendation,
    UtilizationSample,
    round_money,
)
from spendlens.errors import NotFoundError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ServiceProfile:
    """Baseline daily cost and volatility of one cloud service."""

    name: str
    category: str
    base_daily: float
    variance: float


SERVICES: tuple[ServiceProfile, ...] = (
    ServiceProfile("EC2", "Compute", 450, 0.15),
    ServiceProfile("S3", "Storage", 120, 0.1),
    ServiceProfile("RDS", "Database", 280, 0.08),
    ServiceProfile("Lambda", "Compute", 85, 0.25),
    ServiceProfile("CloudWatch", "Monitoring", 45, 0.12),
    ServiceProfile("CloudFront", "Networking", 95, 0.2),
    ServiceProfile("DynamoDB", "Database", 65, 0.18),
    ServiceProfile("EBS", "Storage", 78, 0.05),
    ServiceProfile("EKS", "Containers", 180, 0.1),
    ServiceProfile("ElastiCache", "Database", 110, 0.08),
    ServiceProfile("Route53", "Networking", 12, 0.05),
    ServiceProfile("API Gateway", "Networking", 35, 0.3),
)

TEAMS = ("Engineering", "Data", "Platform", "DevOps", "ML")
ENVIRONMENTS = ("production", "staging", "development")
REGIONS = ("us-east-1", "us-west-2", "eu-west-1", "ap-southeast-1")

ENVIRONMENT_FACTORS = {"production": 2.5, "staging": 0.8, "development": 0.3}
WEEKEND_FACTOR = 0.7
DAILY_GROWTH = 0.001
UNTAGGED_RATE = 0.1

USAGE_UNITS = {"Compute": "hours", "Storage": "GB", "Networking": "requests"}

DEMO_PROFILES: tuple[DemoProfile, ...] = (
    DemoProfile("startup-saas", "Startup SaaS", "Lambda-heavy, moderate spend"),
    DemoProfile("ecommerce", "E-commerce Platform", "High S3/CloudFront, seasonal spikes"),
    DemoProfile("ml-heavy", "ML Workload", "GPU instances, high compute variance"),
)

SERVICE_WEIGHTS: dict[str, dict[str, float]] = {
    "startup-saas": {
        "Lambda": 2.0, "EC2": 0.8, "S3": 1.2, "RDS": 1.0,
        "DynamoDB": 1.5, "CloudFront": 0.8, "EKS": 1.2, "ElastiCache": 0.9,
    },
    "ecommerce": {
        "Lambda": 0.8, "EC2": 1.5, "S3": 2.0, "RDS": 1.3,
        "DynamoDB": 0.7, "CloudFront": 2.5, "EKS": 1.0, "ElastiCache": 1.5,
    },
    "ml-heavy": {
        "Lambda": 0.5, "EC2": 3.0, "S3": 1.8, "RDS": 0.8,
        "DynamoDB": 0.5, "CloudFront": 0.4, "EKS": 2.0, "ElastiCache": 0.6,
    },
}

# Fleet size per profile: (EC2 count, RDS count)
FLEET_SIZES = {"startup-saas": (10, 4), "ecommerce": (14, 6), "ml-heavy": (18, 4)}

EC2_SAMPLE_CLASSES = (
    "t3.micro", "t3.small", "t3.medium", "t3.large", "t3.xlarge",
    "m6i.large", "m6i.xlarge", "m6i.2xlarge",
    "c6i.large", "c6i.xlarge", "r6i.large", "r6i.xlarge",
)
RDS_SAMPLE_CLASSES = (
    "db.t3.micro", "db.t3.small", "db.t3.medium", "db.t3.large",
    "db.m6g.large", "db.m6g.xlarge", "db.r6g.large", "db.r6g.xlarge",
)

# Utilization bands as (upper bound of the draw, ((lo, span) for cpu_avg,
# cpu_max, memory_avg, memory_max)). The first band whose bound exceeds the
# draw wins.
_EC2_BANDS: tuple[tuple[float, tuple[tuple[float, float], ...]], ...] = (
    (0.15, ((0, 3), (0, 8), (0, 5), (0, 12))),  # idle
    (0.40, ((10, 20), (30, 25), (15, 25), (35, 20))),  # under-utilized
    (0.85, ((40, 30), (60, 20), (45, 25), (65, 20))),  # optimal
    (1.00, ((70, 20), (85, 15), (75, 15), (88, 12))),  # over-utilized
)
_RDS_BANDS: tuple[tuple[float, tuple[tuple[float, float], ...]], ...] = (
    (0.30, ((10, 15), (25, 20), (20, 20), (40, 15))),
    (0.85, ((35, 30), (55, 25), (50, 25), (70, 15))),
    (1.00, ((65, 25), (80, 20), (70, 20), (85, 15))),
)


def get_profile(profile_id: str) -> DemoProfile:
    """Look up a demo profile by id.

    Raises:
        NotFoundError: If no profile has this id.
    """
    for profile in DEMO_PROFILES:
        if profile.id == profile_id:
            return profile
    raise NotFoundError("profile", profile_id)


class DemoBillingSource:
    """Seeded synthetic BillingDataSource.

    Records are generated on first use and cached, so every query against one
    source instance sees the same data set. Switching profiles means building
    a new source.

    Args:
        profile: Demo profile id (startup-saas, ecommerce, ml-heavy).
        days: Number of days of history, ending today.
        seed: Seed for the random generator; None for a fresh data set.
        today: Last generated day (defaults to date.today()).
    """

    def __init__(
        self,
        profile: str = "startup-saas",
        days: int = 90,
        seed: int | None = None,
        today: date | None = None,
    ) -> None:
        self.profile = get_profile(profile)
        self._days = days
        self._seed = seed
        self._today = today
        self._records: list[BillingRecord] | None = None
        self._utilization: list[UtilizationSample] | None = None

    def load_records(self) -> list[BillingRecord]:
        """Return the generated billing lines, newest day first."""
        if self._records is None:
            self._records = self._generate_records(random.Random(self._seed))
            logger.info(
                "demo_billing_generated",
                profile=self.profile.id,
                days=self._days,
                records=len(self._records),
            )
        return self._records

    def load_utilization(self) -> list[UtilizationSample]:
        """Return the generated EC2 and RDS fleet."""
        if self._utilization is None:
            # Offset the seed so the fleet does not mirror the billing draws
            seed = None if self._seed is None else self._seed + 1
            self._utilization = self._generate_utilization(random.Random(seed))
        return self._utilization

    def load_recommendations(self) -> list[Recommendation]:
        """Return the static recommendation catalogue."""
        return list(RECOMMENDATIONS)

    # ------------------------------------------------------------------
    # Generators
    # ------------------------------------------------------------------

    def _generate_records(self, rng: random.Random) -> list[BillingRecord]:
        today = self._today or date.today()
        weights = SERVICE_WEIGHTS[self.profile.id]
        records: list[BillingRecord] = []

        for offset in range(self._days):
            day = today - timedelta(days=offset)
            trend_factor = 1 + (self._days - offset) * DAILY_GROWTH
            weekend_factor = WEEKEND_FACTOR if day.weekday() >= 5 else 1.0

            for service in SERVICES:
                weight = weights.get(service.name, 1.0)
                entries = rng.randint(2, 5)
                for _ in range(entries):
                    team = rng.choice(TEAMS)
                    environment = rng.choice(ENVIRONMENTS)
                    region = rng.choice(REGIONS)
                    base = (
                        service.base_daily / entries
                        * trend_factor
                        * weekend_factor
                        * ENVIRONMENT_FACTORS[environment]
                        * weight
                    )
                    cost = round_money(base * (1 + rng.uniform(-1, 1) * service.variance))
                    untagged = rng.random() < UNTAGGED_RATE
                    records.append(
                        BillingRecord(
                            service=service.name,
                            cost=cost,
                            usage_date=day,
                            team=None if untagged else team,
                            environment=environment,  # type: ignore[arg-type]
                            project=None if untagged else f"{team.lower()}-{environment}-{service.name.lower()}",
                            region=region,
                            usage_quantity=float(round(float(cost) * (10 + rng.random() * 50))),
                            usage_unit=USAGE_UNITS.get(service.category, "units"),
                        )
                    )
        return records

    def _generate_utilization(self, rng: random.Random) -> list[UtilizationSample]:
        ec2_count, rds_count = FLEET_SIZES[self.profile.id]
        samples = [
            self._sample(rng, "EC2", EC2_SAMPLE_CLASSES, _EC2_BANDS, f"i-{_token(rng, 12)}")
            for _ in range(ec2_count)
        ]
        samples.extend(
            self._sample(rng, "RDS", RDS_SAMPLE_CLASSES, _RDS_BANDS, f"db-{_token(rng, 10)}")
            for _ in range(rds_count)
        )
        return samples

    @staticmethod
    def _sample(
        rng: random.Random,
        resource_type: str,
        classes: tuple[str, ...],
        bands: tuple[tuple[float, tuple[tuple[float, float], ...]], ...],
        resource_id: str,
    ) -> UtilizationSample:
        instance_class = rng.choice(classes)
        team = rng.choice(TEAMS)
        environment = rng.choice(ENVIRONMENTS)
        region = rng.choice(REGIONS)

        draw = rng.random()
        ranges = next(ranges for bound, ranges in bands if draw < bound)
        cpu_avg, cpu_max, memory_avg, memory_max = (
            float(round(lo + rng.random() * span)) for lo, span in ranges
        )

        spec = instance_catalog.lookup(instance_class, resource_type == "RDS")
        monthly_cost = spec.monthly_rate if spec is not None else Decimal("50")
        return UtilizationSample(
            resource_id=resource_id,
            resource_type=resource_type,  # type: ignore[arg-type]
            instance_class=instance_class,
            cpu_avg=cpu_avg,
            cpu_max=cpu_max,
            memory_avg=memory_avg,
            memory_max=memory_max,
            monthly_cost=monthly_cost,
            region=region,
            team=team,
            environment=environment,
        )


def _token(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(length))


# ---------------------------------------------------------------------------
# Static recommendation catalogue
# ---------------------------------------------------------------------------

RECOMMENDATIONS: tuple[Recommendation, ...] = (
    Recommendation(
        id="rec-1",
        category="Idle Resources",
        title="Terminate idle EC2 instances",
        description=(
            "Found 3 EC2 instances with <5% CPU utilization over the past 14 days. "
            "Consider terminating or right-sizing these instances."
        ),
        current_cost=Decimal("892.50"),
        projected_savings=Decimal("714.00"),
        confidence="high",
        service="EC2",
        action_type="terminate",
        resource_id="i-0abc123def456789",
        effort="low",
        risk="low",
        evidence=(
            "Average CPU utilization: 4.2% over 14 days",
            "Memory usage peaked at 12%",
            "No network traffic in last 7 days",
            "3 instances affected: i-0abc123, i-0def456, i-0ghi789",
        ),
    ),
    Recommendation(
        id="rec-2",
        category="Storage Optimization",
        title="Move infrequent S3 data to Glacier",
        description=(
            "Identified 2.3TB of S3 data not accessed in 90+ days. "
            "Moving to Glacier Deep Archive could save significantly."
        ),
        current_cost=Decimal("52.90"),
        projected_savings=Decimal("47.61"),
        confidence="high",
        service="S3",
        action_type="storage_class",
        resource_id="s3://company-logs-archive",
        effort="low",
        risk="low",
        evidence=(
            "2.3TB not accessed in 90+ days",
            "Last access: 120 days ago",
            "No lifecycle policies currently configured",
            "Retrieval time acceptable for archive data",
        ),
    ),
    Recommendation(
        id="rec-3",
        category="Reserved Instances",
        title="Purchase RDS Reserved Instances",
        description="Your RDS usage patterns suggest 1-year reserved instances could provide substantial savings.",
        current_cost=Decimal("8400.00"),
        projected_savings=Decimal("2940.00"),
        confidence="medium",
        service="RDS",
        action_type="reserved",
        resource_id="db-prod-primary",
        effort="medium",
        risk="medium",
        evidence=(
            "RDS instances running 24/7 for 6+ months",
            "Consistent usage pattern detected",
            "35% savings with 1-year commitment",
            "Break-even at 7.5 months",
        ),
    ),
    Recommendation(
        id="rec-4",
        category="Log Retention",
        title="Reduce CloudWatch log retention",
        description=(
            "Multiple log groups set to indefinite retention. "
            "Setting 30-day retention where appropriate saves storage costs."
        ),
        current_cost=Decimal("156.00"),
        projected_savings=Decimal("109.20"),
        confidence="high",
        service="CloudWatch",
        action_type="retention",
        resource_id="/aws/lambda/production-api",
        effort="low",
        risk="low",
        evidence=(
            "23 log groups with indefinite retention",
            "Only 5% of logs accessed after 7 days",
            "Compliance requires only 30-day retention",
            "Current storage: 450GB, projected: 150GB",
        ),
    ),
    Recommendation(
        id="rec-5",
        category="Right-Sizing",
        title="Downsize over-provisioned ElastiCache",
        description=(
            "ElastiCache cluster showing 15% memory utilization. "
            "Consider downsizing from r6g.xlarge to r6g.large."
        ),
        current_cost=Decimal("548.00"),
        projected_savings=Decimal("274.00"),
        confidence="medium",
        service="ElastiCache",
        action_type="resize",
        resource_id="prod-session-cache",
        effort="medium",
        risk="medium",
        evidence=(
            "Average memory utilization: 15%",
            "Peak memory: 28% during Black Friday",
            "Connection count: 45 avg, 120 max",
            "Current: r6g.xlarge, Recommended: r6g.large",
        ),
    ),
    Recommendation(
        id="rec-6",
        category="Unused Resources",
        title="Delete unattached EBS volumes",
        description="Found 8 EBS volumes totaling 500GB that have been unattached for 30+ days.",
        current_cost=Decimal("50.00"),
        projected_savings=Decimal("50.00"),
        confidence="high",
        service="EBS",
        action_type="delete",
        resource_id="vol-0123456789abcdef0",
        effort="low",
        risk="low",
        evidence=(
            "8 volumes unattached for 30+ days",
            "Total size: 500GB",
            "Snapshots exist for 6 of 8 volumes",
            "No recent EC2 associations",
        ),
    ),
    Recommendation(
        id="rec-7",
        category="Networking",
        title="Optimize NAT Gateway usage",
        description=(
            "High data transfer through NAT Gateway. "
            "Consider VPC endpoints for S3/DynamoDB to reduce costs."
        ),
        current_cost=Decimal("420.00"),
        projected_savings=Decimal("168.00"),
        confidence="medium",
        service="CloudFront",
        action_type="optimize",
        resource_id="nat-0abc123def456789",
        effort="medium",
        risk="low",
        evidence=(
            "2.1TB monthly data transfer via NAT",
            "65% of traffic is to S3/DynamoDB",
            "VPC endpoints would eliminate NAT for AWS services",
            "Gateway endpoints are free for S3/DynamoDB",
        ),
    ),
    Recommendation(
        id="rec-8",
        category="Development",
        title="Schedule dev environment shutdown",
        description=(
            "Development environment running 24/7. "
            "Scheduling shutdown outside business hours saves 65% of costs."
        ),
        current_cost=Decimal("1250.00"),
        projected_savings=Decimal("812.50"),
        confidence="high",
        service="EC2",
        action_type="schedule",
        resource_id="dev-environment",
        effort="low",
        risk="low",
        evidence=(
            "Dev environment runs 24/7",
            "Zero activity 8PM-8AM and weekends",
            "Instance Scheduler can automate start/stop",
            "12 hours x 5 days = 65% reduction potential",
        ),
    ),
)


__all__ = [
    "DEMO_PROFILES",
    "RECOMMENDATIONS",
    "DemoBillingSource",
    "DemoProfile",
    "ServiceProfile",
    "get_profile",
]
