"""Billing data source backed by a CSV billing export.

Expected columns (header row required):
    service_name, cost, usage_date, tag_team, tag_environment, tag_project,
    region, usage_quantity, usage_unit

Empty tag_team / tag_project cells are read as untagged. Dates are ISO
YYYY-MM-DD. CSV parsing uses the standard library csv module.
"""

from __future__ import annotations

import csv
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

import structlog

from spendlens.core.models import BillingRecord, Recommendation, UtilizationSample
from spendlens.errors import DataSourceError

logger = structlog.get_logger(__name__)

REQUIRED_COLUMNS = (
    "service_name",
    "cost",
    "usage_date",
    "tag_team",
    "tag_environment",
    "tag_project",
    "region",
    "usage_quantity",
    "usage_unit",
)


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CsvBillingSource:
    """Loads billing records from a CSV export on disk.

    Implements the BillingDataSource interface. The file is read on every
    load_records() call so that a refreshed export is picked up by the next
    query.

    Args:
        path: Path to the CSV export.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load_records(self) -> list[BillingRecord]:
        """Parse every row of the export.

        Raises:
            DataSourceError: If the file is missing, lacks required columns,
                or contains an unparseable row.
        """
        try:
            with self._path.open(newline="", encoding="utf-8") as handle:
                reader = csv.DictReader(handle)
                missing = [col for col in REQUIRED_COLUMNS if col not in (reader.fieldnames or [])]
                if missing:
                    raise DataSourceError(f"{self._path}: missing columns {', '.join(missing)}")
                records = [self._parse_row(row, line) for line, row in enumerate(reader, start=2)]
        except OSError as exc:
            raise DataSourceError(f"Cannot read billing export {self._path}: {exc}") from exc

        logger.info("csv_billing_records_loaded", path=str(self._path), records=len(records))
        return records

    def load_utilization(self) -> list[UtilizationSample]:
        """Billing exports carry no utilization data."""
        return []

    def load_recommendations(self) -> list[Recommendation]:
        """Billing exports carry no recommendation catalogue."""
        return []

    def _parse_row(self, row: dict[str, str], line: int) -> BillingRecord:
        try:
            return BillingRecord(
                service=row["service_name"].strip(),
                cost=Decimal(row["cost"]),
                usage_date=date.fromisoformat(row["usage_date"].strip()),
                team=_optional(row["tag_team"]),
                environment=row["tag_environment"].strip(),  # type: ignore[arg-type]
                project=_optional(row["tag_project"]),
                region=row["region"].strip(),
                usage_quantity=float(row["usage_quantity"] or 0),
                usage_unit=row["usage_unit"].strip(),
            )
        except (InvalidOperation, ValueError) as exc:
            raise DataSourceError(f"{self._path}:{line}: invalid billing row ({exc})") from exc


__all__ = ["CsvBillingSource", "REQUIRED_COLUMNS"]
