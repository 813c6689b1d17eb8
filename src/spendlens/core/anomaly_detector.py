"""Spend anomaly detection against a per-service rolling baseline.

For every service, each day's spend is compared with the mean of the seven
days immediately before it. A day is flagged when spend is both sharply above
that baseline (more than 40 %) and large in absolute terms (more than 400),
the absolute gate keeping low-spend services from producing noise.

Anomalies are append-only facts. Their identity is derived from
(service, date); only their status changes, through acknowledge/dismiss
actions recorded in a status store owned by the caller.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import structlog

from spendlens.core.models import (
    Anomaly,
    AnomalyStatus,
    BillingRecord,
    round_money,
    round_percent,
)

logger = structlog.get_logger(__name__)

DEFAULT_MIN_INCREASE_PCT = 40.0
DEFAULT_MIN_SPEND = 400.0
DEFAULT_WINDOW_DAYS = 7
DEFAULT_SCAN_LIMIT = 30
DEFAULT_MAX_RESULTS = 5


def anomaly_id(service: str, detected_date: date) -> str:
    """Stable identifier for the anomaly of a service on a day."""
    return f"anomaly-{service}-{detected_date.isoformat()}"


class CostAnomalyDetector:
    """Rolling-baseline spike detector for daily service spend.

    Args:
        min_increase_pct: Percent above baseline a day must exceed.
        min_spend: Absolute daily spend a day must exceed.
        window_days: Number of preceding days in the rolling baseline.
        scan_limit: Date indexes at or beyond this position are not scanned.
        max_results: Maximum anomalies returned, most recent first.
    """

    def __init__(
        self,
        min_increase_pct: float = DEFAULT_MIN_INCREASE_PCT,
        min_spend: float = DEFAULT_MIN_SPEND,
        window_days: int = DEFAULT_WINDOW_DAYS,
        scan_limit: int = DEFAULT_SCAN_LIMIT,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self._min_increase_pct = Decimal(str(min_increase_pct))
        self._min_spend = Decimal(str(min_spend))
        self._window_days = window_days
        self._scan_limit = scan_limit
        self._max_results = max_results

    def detect(self, records: Iterable[BillingRecord]) -> list[Anomaly]:
        """Scan the full record set for spend spikes.

        Args:
            records: All billing records (not window-filtered).

        Returns:
            Up to max_results anomalies, sorted by detected date descending.
        """
        daily_by_service: dict[str, dict[date, Decimal]] = {}
        for record in records:
            days = daily_by_service.setdefault(record.service, {})
            days[record.usage_date] = days.get(record.usage_date, Decimal("0")) + record.cost

        anomalies: list[Anomaly] = []
        for service, daily in daily_by_service.items():
            anomalies.extend(self._scan_service(service, daily))

        anomalies.sort(key=lambda anomaly: anomaly.detected_date, reverse=True)
        result = anomalies[: self._max_results]

        logger.info(
            "anomaly_scan_completed",
            services=len(daily_by_service),
            detected=len(anomalies),
            returned=len(result),
        )
        return result

    def _scan_service(self, service: str, daily: dict[date, Decimal]) -> list[Anomaly]:
        dates = sorted(daily)
        found: list[Anomaly] = []

        for index in range(self._window_days, min(len(dates), self._scan_limit)):
            current_date = dates[index]
            current = daily[current_date]
            preceding = dates[index - self._window_days : index]
            rolling_mean = sum((daily[d] for d in preceding), Decimal("0")) / self._window_days

            if rolling_mean == 0:
                continue

            pct_increase = (current - rolling_mean) / rolling_mean * 100
            if pct_increase <= self._min_increase_pct or current <= self._min_spend:
                continue

            whole_pct = pct_increase.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            anomaly = Anomaly(
                id=anomaly_id(service, current_date),
                service=service,
                detected_date=current_date,
                baseline_spend=round_money(rolling_mean),
                actual_spend=round_money(current),
                percent_increase=round_percent(pct_increase),
                description=(
                    f"Unusual spike in {service} spend detected. Cost was {whole_pct}% "
                    f"higher than the {self._window_days}-day average."
                ),
            )
            found.append(anomaly)

            logger.warning(
                "cost_anomaly_detected",
                service=service,
                detected_date=current_date.isoformat(),
                baseline_spend=str(anomaly.baseline_spend),
                actual_spend=str(anomaly.actual_spend),
                percent_increase=str(anomaly.percent_increase),
            )

        return found


def apply_status(
    anomalies: Iterable[Anomaly],
    status_lookup: Callable[[str], str | None],
) -> list[Anomaly]:
    """Overlay user-set statuses and drop dismissed anomalies.

    Args:
        anomalies: Freshly detected anomalies (status "new").
        status_lookup: Returns the recorded status for an anomaly id, or None.

    Returns:
        Anomalies carrying their recorded status, excluding dismissed ones.
    """
    merged: list[Anomaly] = []
    for anomaly in anomalies:
        status: AnomalyStatus = status_lookup(anomaly.id) or anomaly.status  # type: ignore[assignment]
        if status == "dismissed":
            continue
        merged.append(replace(anomaly, status=status) if status != anomaly.status else anomaly)
    return merged


__all__ = ["CostAnomalyDetector", "anomaly_id", "apply_status"]
