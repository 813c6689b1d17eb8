"""Shared test fixtures for spendlens tests."""

import sys
from pathlib import Path

# Ensure the src/ layout is importable without installing the package.
_SRC_PATH = Path(__file__).parent.parent / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from datetime import date, timedelta
from decimal import Decimal

import pytest

from spendlens.adapters.status_store import InMemoryStatusStore
from spendlens.core.models import BillingRecord, Recommendation, UtilizationSample
from spendlens.core.services import ANOMALY_STATUSES, RECOMMENDATION_STATUSES, CostAnalyticsService
from spendlens.settings import Settings

TODAY = date(2026, 2, 26)


def make_record(
    service: str = "EC2",
    cost: str | float = "100",
    usage_date: date = TODAY,
    team: str | None = "Engineering",
    environment: str = "production",
    project: str | None = "eng-prod-ec2",
    region: str = "us-east-1",
    usage_quantity: float = 10.0,
    usage_unit: str = "hours",
) -> BillingRecord:
    """Build a BillingRecord with sensible defaults."""
    return BillingRecord(
        service=service,
        cost=Decimal(str(cost)),
        usage_date=usage_date,
        team=team,
        environment=environment,  # type: ignore[arg-type]
        project=project,
        region=region,
        usage_quantity=usage_quantity,
        usage_unit=usage_unit,
    )


def make_daily_records(
    service: str,
    daily_costs: list[float],
    end: date = TODAY,
    team: str | None = "Engineering",
) -> list[BillingRecord]:
    """One record per day, the last cost landing on ``end``."""
    start = end - timedelta(days=len(daily_costs) - 1)
    return [
        make_record(service=service, cost=cost, usage_date=start + timedelta(days=i), team=team)
        for i, cost in enumerate(daily_costs)
    ]


class StaticBillingSource:
    """In-memory BillingDataSource over fixed lists."""

    def __init__(
        self,
        records: list[BillingRecord],
        utilization: list[UtilizationSample] | None = None,
        recommendations: list[Recommendation] | None = None,
    ) -> None:
        self.records = records
        self.utilization = utilization or []
        self.recommendations = recommendations or []

    def load_records(self) -> list[BillingRecord]:
        return self.records

    def load_utilization(self) -> list[UtilizationSample]:
        return self.utilization

    def load_recommendations(self) -> list[Recommendation]:
        return self.recommendations


@pytest.fixture
def today() -> date:
    """Provide a consistent reference date (a Thursday)."""
    return TODAY


@pytest.fixture
def settings() -> Settings:
    """Provide test settings with safe defaults."""
    return Settings(
        log_json=False,
        data_source="demo",
        demo_seed=42,
        notifications_enabled=False,
        notification_webhook_url="http://notify-test:54321/budget-alert",
    )


@pytest.fixture
def spike_records() -> list[BillingRecord]:
    """Twenty days of flat EC2 spend at 300 with a 600 spike on the last day."""
    return make_daily_records("EC2", [300.0] * 19 + [600.0])


@pytest.fixture
def analytics_factory(settings: Settings):
    """Build a CostAnalyticsService over a static source."""

    def _build(
        records: list[BillingRecord],
        utilization: list[UtilizationSample] | None = None,
        recommendations: list[Recommendation] | None = None,
    ) -> CostAnalyticsService:
        return CostAnalyticsService(
            source=StaticBillingSource(records, utilization, recommendations),
            settings=settings,
            anomaly_statuses=InMemoryStatusStore("anomaly", ANOMALY_STATUSES),
            recommendation_statuses=InMemoryStatusStore("recommendation", RECOMMENDATION_STATUSES),
        )

    return _build
