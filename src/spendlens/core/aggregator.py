"""Dimensional aggregation of billing records.

Every query here is a pure function of (records, days, service filter, today).
A record is inside the window when ``today - days <= usage_date <= today``;
the service filter is either ``"all"``/None or an exact service name.

Key invariants:
  - Totals are summed as Decimal and rounded to cents once, at the output.
  - Breakdowns sort descending by total; ties keep first-seen order.
  - The date dimension sorts ascending by date (it is a trend, not a ranking).
  - Every ratio has an explicit zero-denominator fallback of 0.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, timedelta
from decimal import Decimal

from spendlens.core.models import (
    UNALLOCATED_TEAM,
    BillingRecord,
    BreakdownEntry,
    CostDriver,
    CostUnitMetrics,
    DailyTotal,
    PeriodTotals,
    SeriesPoint,
    UnallocatedSpend,
    round_money,
    round_percent,
)

ALL_SERVICES = "all"
DIMENSIONS = ("service", "team", "environment", "date")

# Fixed heuristic: one active user per 15 units of spend
_SPEND_PER_ESTIMATED_USER = Decimal("15")
_ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Window filtering
# ---------------------------------------------------------------------------


def window_start(days: int, today: date | None = None) -> date:
    """First day of a ``days``-long lookback window ending today."""
    return (today or date.today()) - timedelta(days=days)


def filter_window(
    records: Iterable[BillingRecord],
    days: int,
    service: str | None = ALL_SERVICES,
    today: date | None = None,
) -> list[BillingRecord]:
    """Select the records inside the lookback window that match the service filter.

    Args:
        records: Billing records in any order.
        days: Lookback window length in days.
        service: Service name to keep, or "all"/None for every service.
        today: Window end date (defaults to the current date).

    Returns:
        Matching records in input order.
    """
    end = today or date.today()
    start = window_start(days, end)
    match_all = service is None or service == ALL_SERVICES
    return [
        record
        for record in records
        if start <= record.usage_date <= end and (match_all or record.service == service)
    ]


def _sum_by(records: Iterable[BillingRecord], key: Callable[[BillingRecord], str]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for record in records:
        name = key(record)
        totals[name] = totals.get(name, _ZERO) + record.cost
    return totals


def _ranked(totals: dict[str, Decimal]) -> list[BreakdownEntry]:
    entries = [BreakdownEntry(name=name, value=round_money(value)) for name, value in totals.items()]
    return sorted(entries, key=lambda entry: entry.value, reverse=True)


def _team_of(record: BillingRecord) -> str:
    return record.team or UNALLOCATED_TEAM


# ---------------------------------------------------------------------------
# Breakdowns
# ---------------------------------------------------------------------------


def service_breakdown(
    records: Iterable[BillingRecord],
    days: int = 30,
    service: str | None = ALL_SERVICES,
    today: date | None = None,
) -> list[BreakdownEntry]:
    """Spend per service for the window, largest first."""
    return _ranked(_sum_by(filter_window(records, days, service, today), lambda r: r.service))


def team_breakdown(
    records: Iterable[BillingRecord],
    days: int = 30,
    service: str | None = ALL_SERVICES,
    today: date | None = None,
) -> list[BreakdownEntry]:
    """Spend per team for the window; untagged spend is reported as "Unallocated"."""
    return _ranked(_sum_by(filter_window(records, days, service, today), _team_of))


def environment_breakdown(
    records: Iterable[BillingRecord],
    days: int = 30,
    service: str | None = ALL_SERVICES,
    today: date | None = None,
) -> list[BreakdownEntry]:
    """Spend per environment for the window, largest first."""
    return _ranked(_sum_by(filter_window(records, days, service, today), lambda r: r.environment))


def daily_trend(
    records: Iterable[BillingRecord],
    days: int = 30,
    service: str | None = ALL_SERVICES,
    today: date | None = None,
) -> list[DailyTotal]:
    """Spend per calendar day for the window, oldest first."""
    totals: dict[date, Decimal] = {}
    for record in filter_window(records, days, service, today):
        totals[record.usage_date] = totals.get(record.usage_date, _ZERO) + record.cost
    return [DailyTotal(date=day, total=round_money(total)) for day, total in sorted(totals.items())]


def daily_series(
    records: Iterable[BillingRecord],
    days: int = 30,
    service: str | None = ALL_SERVICES,
    today: date | None = None,
) -> list[SeriesPoint]:
    """The daily trend as a float series for the forecaster."""
    return [SeriesPoint(date=point.date, value=float(point.total)) for point in daily_trend(records, days, service, today)]


def breakdown(
    records: Iterable[BillingRecord],
    dimension: str,
    days: int = 30,
    service: str | None = ALL_SERVICES,
    today: date | None = None,
) -> list[BreakdownEntry]:
    """Dispatch to the breakdown for a named dimension.

    Args:
        records: Billing records.
        dimension: service | team | environment | date.
        days: Lookback window length.
        service: Service filter.
        today: Window end date.

    Raises:
        ValueError: If the dimension is not one of DIMENSIONS.
    """
    if dimension == "service":
        return service_breakdown(records, days, service, today)
    if dimension == "team":
        return team_breakdown(records, days, service, today)
    if dimension == "environment":
        return environment_breakdown(records, days, service, today)
    if dimension == "date":
        return [
            BreakdownEntry(name=point.date.isoformat(), value=point.total)
            for point in daily_trend(records, days, service, today)
        ]
    raise ValueError(f"Unsupported breakdown dimension: {dimension}")


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


def top_cost_drivers(
    records: Iterable[BillingRecord],
    days: int = 30,
    today: date | None = None,
) -> list[CostDriver]:
    """Compare each service's spend in the current window with the window before it.

    The previous window is ``[today - 2*days, today - days)``, so the two
    windows never share a day.

    Returns:
        One driver per service seen in either window, sorted by current-window
        cost descending.
    """
    end = today or date.today()
    cutoff = window_start(days, end)
    previous_cutoff = cutoff - timedelta(days=days)

    current: dict[str, Decimal] = {}
    previous: dict[str, Decimal] = {}
    for record in records:
        if cutoff <= record.usage_date <= end:
            current[record.service] = current.get(record.service, _ZERO) + record.cost
        elif previous_cutoff <= record.usage_date < cutoff:
            previous[record.service] = previous.get(record.service, _ZERO) + record.cost

    services = list(current)
    services.extend(name for name in previous if name not in current)

    drivers: list[CostDriver] = []
    for name in services:
        current_cost = current.get(name, _ZERO)
        previous_cost = previous.get(name, _ZERO)
        change = (current_cost - previous_cost) / previous_cost * 100 if previous_cost > 0 else _ZERO
        drivers.append(
            CostDriver(
                service=name,
                current_cost=round_money(current_cost),
                previous_cost=round_money(previous_cost),
                change_pct=round_percent(change),
            )
        )
    return sorted(drivers, key=lambda driver: driver.current_cost, reverse=True)


def unallocated_spend(
    records: Iterable[BillingRecord],
    days: int = 30,
    today: date | None = None,
) -> UnallocatedSpend:
    """Spend with neither a team nor a project tag, against the window total."""
    unallocated = _ZERO
    total = _ZERO
    for record in filter_window(records, days, ALL_SERVICES, today):
        total += record.cost
        if not record.team and not record.project:
            unallocated += record.cost
    return UnallocatedSpend(amount=round_money(unallocated), total=round_money(total))


def cost_unit_metrics(
    records: Iterable[BillingRecord],
    days: int = 30,
    today: date | None = None,
) -> CostUnitMetrics:
    """Cost per estimated active user and per thousand requests for the window."""
    total_cost = _ZERO
    total_requests = 0.0
    for record in filter_window(records, days, ALL_SERVICES, today):
        total_cost += record.cost
        if record.usage_unit == "requests":
            total_requests += record.usage_quantity

    estimated_users = int(total_cost // _SPEND_PER_ESTIMATED_USER)
    cost_per_user = total_cost / estimated_users if estimated_users > 0 else _ZERO
    cost_per_thousand = (
        total_cost / Decimal(str(total_requests)) * 1000 if total_requests > 0 else _ZERO
    )

    return CostUnitMetrics(
        total_cost=round_money(total_cost),
        estimated_users=estimated_users,
        cost_per_user=round_money(cost_per_user),
        total_requests=total_requests,
        cost_per_thousand_requests=round_money(cost_per_thousand),
    )


def period_totals(records: Iterable[BillingRecord], today: date | None = None) -> PeriodTotals:
    """Month-to-date spend against the whole previous calendar month."""
    end = today or date.today()
    this_month_start = end.replace(day=1)
    last_month_end = this_month_start - timedelta(days=1)
    last_month_start = last_month_end.replace(day=1)

    this_month = _ZERO
    last_month = _ZERO
    for record in records:
        if this_month_start <= record.usage_date <= end:
            this_month += record.cost
        elif last_month_start <= record.usage_date <= last_month_end:
            last_month += record.cost

    change = (this_month - last_month) / last_month * 100 if last_month > 0 else _ZERO
    return PeriodTotals(
        this_month=round_money(this_month),
        last_month=round_money(last_month),
        change_pct=round_percent(change),
    )


def available_services(records: Iterable[BillingRecord]) -> list[str]:
    """Distinct service names, alphabetically."""
    return sorted({record.service for record in records})


__all__ = [
    "ALL_SERVICES",
    "DIMENSIONS",
    "available_services",
    "breakdown",
    "cost_unit_metrics",
    "daily_series",
    "daily_trend",
    "environment_breakdown",
    "filter_window",
    "period_totals",
    "service_breakdown",
    "team_breakdown",
    "top_cost_drivers",
    "unallocated_spend",
    "window_start",
]
