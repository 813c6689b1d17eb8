"""In-memory status store for anomaly and recommendation statuses.

Statuses are set only by user actions. Writes are serialized with a lock so
each entity id sees one mutation at a time when the API serves concurrent
requests.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

import structlog

logger = structlog.get_logger(__name__)


class InMemoryStatusStore:
    """Status map keyed by entity id.

    Args:
        name: Label used in log events (e.g. "anomaly").
        allowed: Statuses accepted by set(); any status when None.
    """

    def __init__(self, name: str, allowed: Iterable[str] | None = None) -> None:
        self._name = name
        self._allowed = frozenset(allowed) if allowed is not None else None
        self._statuses: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, entity_id: str) -> str | None:
        """Return the recorded status, or None when never set."""
        return self._statuses.get(entity_id)

    def set(self, entity_id: str, status: str) -> None:
        """Record a status for an entity.

        Raises:
            ValueError: If the status is not one of the allowed values.
        """
        if self._allowed is not None and status not in self._allowed:
            raise ValueError(f"Invalid {self._name} status: {status}")
        with self._lock:
            previous = self._statuses.get(entity_id)
            self._statuses[entity_id] = status
        logger.info(
            "status_updated",
            store=self._name,
            entity_id=entity_id,
            previous=previous,
            status=status,
        )

    def clear(self) -> None:
        """Forget every recorded status."""
        with self._lock:
            count = len(self._statuses)
            self._statuses.clear()
        logger.debug("status_store_cleared", store=self._name, cleared=count)

    def __len__(self) -> int:
        return len(self._statuses)


__all__ = ["InMemoryStatusStore"]
