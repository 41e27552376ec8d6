"""Staff schedule validation against the unit's business hours"""

from dataclasses import asdict, dataclass
from typing import Optional

from ..appointments.time_slots import (
    DAY_NAMES,
    DaySchedule,
    business_hours_to_schedule,
    is_multi_unit_schedule,
    normalize_day_schedule,
    time_to_minutes,
)


@dataclass
class ScheduleConflict:
    day: str
    type: str  # closed_day, outside_hours
    message: str
    severity: str = "error"

    def to_dict(self) -> dict:
        return asdict(self)


def business_hours_map(rows: list) -> dict[str, Optional[DaySchedule]]:
    mapping: dict[str, Optional[DaySchedule]] = {day: None for day in DAY_NAMES}
    for row in rows:
        if row.day_of_week in mapping:
            mapping[row.day_of_week] = business_hours_to_schedule(row)
    return mapping


def find_schedule_conflicts(
    staff_schedule: Optional[dict], business_hours: list, unit_id: Optional[str] = None
) -> list[ScheduleConflict]:
    """
    Compare a weekly staff schedule with business hours.

    Working on a closed day, starting before opening or leaving after closing
    are errors. Multi-unit schedules are checked for ``unit_id`` only.
    """
    if not staff_schedule:
        return []

    weekly = staff_schedule
    if is_multi_unit_schedule(staff_schedule):
        weekly = (staff_schedule.get("units") or {}).get(unit_id) or {}

    hours = business_hours_map(business_hours)
    conflicts = []
    for day in DAY_NAMES:
        raw = weekly.get(day)
        if not raw:
            continue
        staff_day = normalize_day_schedule(raw)
        if not staff_day.enabled:
            continue

        business_day = hours[day]
        if business_day is None or not business_day.enabled:
            conflicts.append(ScheduleConflict(day, "closed_day", "Barbearia está fechada neste dia"))
            continue

        if time_to_minutes(staff_day.start) < time_to_minutes(business_day.start):
            conflicts.append(
                ScheduleConflict(
                    day,
                    "outside_hours",
                    f"Entrada ({staff_day.start}) é antes da abertura da barbearia ({business_day.start})",
                )
            )
        if time_to_minutes(staff_day.end) > time_to_minutes(business_day.end):
            conflicts.append(
                ScheduleConflict(
                    day,
                    "outside_hours",
                    f"Saída ({staff_day.end}) é depois do fechamento da barbearia ({business_day.end})",
                )
            )
    return conflicts


def can_save(conflicts: list[ScheduleConflict]) -> bool:
    return not any(c.severity == "error" for c in conflicts)
