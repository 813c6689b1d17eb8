"""Abstract interfaces (Protocol classes) for SpendLens collaborators.

The analytics service depends on these interfaces, not on concrete data
sources or transports, so tests can substitute simple doubles.
"""

from typing import Protocol, runtime_checkable

from spendlens.core.models import (
    BillingRecord,
    NotificationPayload,
    Recommendation,
    UtilizationSample,
)


@runtime_checkable
class BillingDataSource(Protocol):
    """Supplies a materialized lookback window of billing data."""

    def load_records(self) -> list[BillingRecord]:
        """Return every billing record for the source's lookback window."""
        ...

    def load_utilization(self) -> list[UtilizationSample]:
        """Return utilization samples for rightsizing (empty when unavailable)."""
        ...

    def load_recommendations(self) -> list[Recommendation]:
        """Return catalogued cost-saving recommendations (empty when unavailable)."""
        ...


@runtime_checkable
class StatusStore(Protocol):
    """Key-value store of user-set statuses, keyed by entity id."""

    def get(self, entity_id: str) -> str | None:
        """Return the recorded status, or None when never set."""
        ...

    def set(self, entity_id: str, status: str) -> None:
        """Record a status for an entity."""
        ...

    def clear(self) -> None:
        """Forget every recorded status."""
        ...


@runtime_checkable
class NotificationSender(Protocol):
    """Transport for budget alert payloads."""

    async def send(self, payload: NotificationPayload) -> bool:
        """Deliver a payload; return True on success, False otherwise."""
        ...
