"""Error types raised outside the pure analytics engine."""


class SpendLensError(Exception):
    """Base class for SpendLens service errors."""


class NotFoundError(SpendLensError):
    """An entity referenced by id does not exist.

    Args:
        resource: Kind of entity (anomaly, recommendation, profile).
        resource_id: The identifier that was not found.
    """

    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(f"{resource} '{resource_id}' not found")
        self.resource = resource
        self.resource_id = resource_id


class DataSourceError(SpendLensError):
    """Billing data could not be loaded from the configured source."""
