"""
Recurring-series aggregation

Pure functions over already fetched appointments. Items may be ORM rows,
pydantic models or plain dicts; only the fields below are read.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Optional

from .recurrence import get_recurrence_label

STATUS_PENDING = "pendente"
STATUS_CONFIRMED = "confirmado"
STATUS_COMPLETED = "concluido"
STATUS_CANCELLED = "cancelado"

APPOINTMENT_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)
OPEN_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)

DEFAULT_SERIES_LABEL = "Recorrente"


def get_field(item: Any, name: str, default=None):
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _sort_key(item: Any) -> tuple[str, str]:
    return (str(get_field(item, "appointment_date") or ""), str(get_field(item, "appointment_time") or ""))


@dataclass
class SeriesSummary:
    group_id: Optional[str]
    appointments: list = field(default_factory=list)
    pending_count: int = 0
    completed_count: int = 0
    cancelled_count: int = 0
    paused_count: int = 0
    total_value: float = 0.0
    recurrence_label: str = DEFAULT_SERIES_LABEL

    @property
    def size(self) -> int:
        return len(self.appointments)

    @property
    def first(self):
        return self.appointments[0] if self.appointments else None

    @property
    def last(self):
        return self.appointments[-1] if self.appointments else None


def sort_series(appointments: list) -> list:
    """Stable ascending sort by (date, time). Does not mutate the input"""
    return sorted(appointments, key=_sort_key)


def summarize_series(appointments: list, group_id: Optional[str] = None) -> SeriesSummary:
    """
    Order a series and count it by status.

    Pending covers pendente and confirmado. Paused is counted independently of
    status. Cancelled appointments do not contribute to the total value.
    An empty input yields an empty summary.
    """
    ordered = sort_series(appointments)
    summary = SeriesSummary(group_id=group_id, appointments=ordered)
    if not ordered:
        return summary

    if group_id is None:
        summary.group_id = get_field(ordered[0], "recurrence_group_id")

    for item in ordered:
        status = get_field(item, "status")
        if status in OPEN_STATUSES:
            summary.pending_count += 1
        elif status == STATUS_COMPLETED:
            summary.completed_count += 1
        elif status == STATUS_CANCELLED:
            summary.cancelled_count += 1

        if get_field(item, "is_paused"):
            summary.paused_count += 1

        if status != STATUS_CANCELLED:
            summary.total_value += float(get_field(item, "service_price") or 0)

    rule = get_field(ordered[0], "recurrence_rule")
    summary.recurrence_label = get_recurrence_label(rule) if rule else DEFAULT_SERIES_LABEL
    return summary


def group_appointments(appointments: list) -> tuple[list, list[SeriesSummary]]:
    """
    Split appointments into standalone ones and one summary per recurrence group.

    Groups keep the order in which their first member appears in the input.
    """
    standalone = []
    groups: "OrderedDict[str, list]" = OrderedDict()

    for item in appointments:
        group_id = get_field(item, "recurrence_group_id")
        if group_id:
            groups.setdefault(group_id, []).append(item)
        else:
            standalone.append(item)

    return standalone, [summarize_series(items, group_id) for group_id, items in groups.items()]
