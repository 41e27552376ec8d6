"""
Multi-unit metric roll-up.

Per-unit figures are built from rows the repository already fetched; totals
across units are plain sums, except the rating which is a mean of unit ratings.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from ...shared.numbers import round_half_up, safe_ratio
from ..appointments.series import STATUS_CANCELLED, STATUS_COMPLETED, STATUS_CONFIRMED, get_field

REPORT_PERIODS = ("week", "month", "3months", "year")
TOP_LIMIT = 5
NO_UNIT = "-"


@dataclass
class UnitMetrics:
    unit_id: str
    name: str
    revenue: float = 0.0
    appointments: int = 0
    completed: int = 0
    cancelled: int = 0
    confirmed_or_completed: int = 0
    active_clients: int = 0
    new_clients: int = 0
    average_ticket: float = 0.0
    occupancy_rate: int = 0
    rating: float = 0.0
    top_services: list[dict] = field(default_factory=list)
    top_staff: list[dict] = field(default_factory=list)


@dataclass
class RollupTotals:
    revenue: float = 0.0
    appointments: int = 0
    completed: int = 0
    cancelled: int = 0
    active_clients: int = 0
    new_clients: int = 0
    occupancy_rate: int = 0
    average_rating: float = 0.0
    best_unit: str = NO_UNIT
    worst_unit: str = NO_UNIT


def occupancy_rate(confirmed_or_completed: int, total: int) -> int:
    """Percentage of appointments that were confirmed or completed, 0..100"""
    if total <= 0:
        return 0
    rate = int(round_half_up(confirmed_or_completed / total * 100))
    return max(0, min(100, rate))


def top_services(appointments: Iterable) -> list[dict]:
    counts: dict[str, int] = {}
    for apt in appointments:
        name = get_field(apt, "service_name")
        if name:
            counts[name] = counts.get(name, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "count": count} for name, count in ranked[:TOP_LIMIT]]


def top_staff(appointments: list, staff: Iterable) -> list[dict]:
    """Staff ranked by revenue of their completed appointments"""
    ranking = []
    for member in staff:
        staff_id = get_field(member, "id")
        own = [a for a in appointments if get_field(a, "staff_id") == staff_id]
        revenue = sum(
            float(get_field(a, "service_price") or 0) for a in own if get_field(a, "status") == STATUS_COMPLETED
        )
        ranking.append(
            {"name": get_field(member, "name") or "Profissional", "revenue": revenue, "appointments": len(own)}
        )
    ranking.sort(key=lambda item: item["revenue"], reverse=True)
    return ranking[:TOP_LIMIT]


def build_unit_metrics(
    unit_id: str,
    name: str,
    revenue: float,
    appointments: list,
    active_clients: int = 0,
    new_clients: int = 0,
    rating: Optional[float] = None,
    staff: Optional[list] = None,
) -> UnitMetrics:
    """Metrics of one unit from its revenue total and the appointments in the period"""
    statuses = [get_field(a, "status") for a in appointments]
    total = len(statuses)
    completed = statuses.count(STATUS_COMPLETED)
    confirmed_or_completed = completed + statuses.count(STATUS_CONFIRMED)

    return UnitMetrics(
        unit_id=unit_id,
        name=name,
        revenue=float(revenue or 0),
        appointments=total,
        completed=completed,
        cancelled=statuses.count(STATUS_CANCELLED),
        confirmed_or_completed=confirmed_or_completed,
        active_clients=active_clients,
        new_clients=new_clients,
        average_ticket=safe_ratio(float(revenue or 0), completed),
        occupancy_rate=occupancy_rate(confirmed_or_completed, total),
        rating=float(rating or 0),
        top_services=top_services(appointments),
        top_staff=top_staff(appointments, staff or []),
    )


def roll_up(units: list[UnitMetrics]) -> RollupTotals:
    """Consolidated totals; an empty list yields all zeros"""
    if not units:
        return RollupTotals()

    totals = RollupTotals(
        revenue=sum(u.revenue for u in units),
        appointments=sum(u.appointments for u in units),
        completed=sum(u.completed for u in units),
        cancelled=sum(u.cancelled for u in units),
        active_clients=sum(u.active_clients for u in units),
        new_clients=sum(u.new_clients for u in units),
        average_rating=round_half_up(sum(u.rating for u in units) / len(units), 1),
    )
    totals.occupancy_rate = occupancy_rate(sum(u.confirmed_or_completed for u in units), totals.appointments)

    # First unit wins on equal revenue
    best = max(units, key=lambda u: u.revenue)
    worst = min(units, key=lambda u: u.revenue)
    totals.best_unit = best.name
    totals.worst_unit = worst.name
    return totals


def period_range(period: str, today: date) -> tuple[date, date]:
    """Inclusive date range of a report period; weeks start on Monday"""
    if period == "week":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    month_start = today.replace(day=1)
    month_end = month_start + relativedelta(months=1) - timedelta(days=1)
    if period == "3months":
        return month_start - relativedelta(months=2), month_end
    if period == "year":
        return date(today.year, 1, 1), today
    return month_start, month_end
