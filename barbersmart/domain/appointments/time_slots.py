"""
Schedules and time slots

Single place for deciding whether a date/time can be booked and which slots a
day offers. Priority: blocked date > special hours > staff schedule >
business hours > default.
"""

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Optional

DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DAY_LABELS = {
    "monday": "Segunda",
    "tuesday": "Terça",
    "wednesday": "Quarta",
    "thursday": "Quinta",
    "friday": "Sexta",
    "saturday": "Sábado",
    "sunday": "Domingo",
}

SLOT_STEP_MINUTES = 30


@dataclass
class DaySchedule:
    enabled: bool
    start: str
    end: str
    break_start: Optional[str] = None
    break_end: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_DAY_SCHEDULE = DaySchedule(enabled=True, start="09:00", end="18:00")


def default_weekly_schedule() -> dict[str, dict]:
    """Mon-Fri 09:00-18:00, Saturday until 14:00, closed on Sunday"""
    weekly = {day: DEFAULT_DAY_SCHEDULE.to_dict() for day in DAY_NAMES}
    weekly["saturday"]["end"] = "14:00"
    weekly["sunday"]["enabled"] = False
    return weekly


def day_name(value: date) -> str:
    return DAY_NAMES[value.weekday()]


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(value: int) -> str:
    return f"{value // 60:02d}:{value % 60:02d}"


def _hhmm(value: Optional[str]) -> Optional[str]:
    return value[:5] if value else value


def _first_set(raw: dict, *keys, default=None):
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return default


def normalize_day_schedule(raw: Optional[dict]) -> DaySchedule:
    """Accept the legacy is_open/is_working and open_time/close_time keys"""
    if not raw:
        return DaySchedule(enabled=False, start="09:00", end="18:00")
    return DaySchedule(
        enabled=bool(_first_set(raw, "enabled", "is_open", "is_working", default=False)),
        start=_hhmm(_first_set(raw, "start", "open_time", default="09:00")),
        end=_hhmm(_first_set(raw, "end", "close_time", default="18:00")),
        break_start=_hhmm(raw.get("break_start")),
        break_end=_hhmm(raw.get("break_end")),
    )


def is_multi_unit_schedule(schedule: Any) -> bool:
    return isinstance(schedule, dict) and "units" in schedule


def get_schedule_for_day(schedule: Optional[dict], day: str, unit_id: Optional[str] = None) -> Optional[DaySchedule]:
    """Day entry of a standard or multi-unit weekly schedule, or None if absent"""
    if not schedule:
        return None

    if is_multi_unit_schedule(schedule):
        unit_schedule = (schedule.get("units") or {}).get(unit_id) if unit_id else None
        if unit_schedule and unit_schedule.get(day):
            return normalize_day_schedule(unit_schedule[day])
        return None

    if schedule.get(day):
        return normalize_day_schedule(schedule[day])
    return None


def business_hours_to_schedule(row: Any) -> DaySchedule:
    return DaySchedule(
        enabled=bool(row.is_open),
        start=_hhmm(row.open_time) or "09:00",
        end=_hhmm(row.close_time) or "18:00",
        break_start=_hhmm(row.break_start),
        break_end=_hhmm(row.break_end),
    )


def get_effective_schedule(
    staff_schedule: Optional[dict],
    business_day: Optional[DaySchedule],
    day: str,
    unit_id: Optional[str] = None,
) -> DaySchedule:
    staff_day = get_schedule_for_day(staff_schedule, day, unit_id)
    if staff_day:
        return staff_day
    if business_day:
        return business_day
    return DaySchedule(
        enabled=day != "sunday",
        start=DEFAULT_DAY_SCHEDULE.start,
        end=DEFAULT_DAY_SCHEDULE.end,
    )


def is_time_in_range(value: str, start: str, end: str) -> bool:
    """Start inclusive, end exclusive"""
    return time_to_minutes(start) <= time_to_minutes(value) < time_to_minutes(end)


def check_time_overlap(start_time: str, duration_minutes: int, booked: list[tuple[str, int]]) -> bool:
    """True if [start, start + duration) intersects any booked (time, duration)"""
    slot_start = time_to_minutes(start_time)
    slot_end = slot_start + duration_minutes
    for booked_time, booked_duration in booked:
        booked_start = time_to_minutes(booked_time)
        booked_end = booked_start + (booked_duration or SLOT_STEP_MINUTES)
        if slot_start < booked_end and slot_end > booked_start:
            return True
    return False


@dataclass
class ValidationResult:
    is_valid: bool
    reason: Optional[str] = None
    schedule: Optional[DaySchedule] = None


class TimeSlotPlanner:
    """Validates dates/times and generates slots for one unit and, optionally, one staff member"""

    def __init__(
        self,
        business_hours: list,
        special_hours: list,
        blocked_dates: list[date],
        staff_schedule: Optional[dict] = None,
        unit_id: Optional[str] = None,
    ):
        self.business_by_day = {row.day_of_week: business_hours_to_schedule(row) for row in business_hours}
        self.special_by_date = {row.special_date: row for row in special_hours}
        self.blocked_dates = set(blocked_dates)
        self.staff_schedule = staff_schedule
        self.unit_id = unit_id

    @staticmethod
    def _check_time(value: str, schedule: DaySchedule) -> Optional[str]:
        if not is_time_in_range(value, schedule.start, schedule.end):
            return f"Horário fora do expediente ({schedule.start} - {schedule.end})"
        if schedule.break_start and schedule.break_end:
            if is_time_in_range(value, schedule.break_start, schedule.break_end):
                return f"Horário está no intervalo ({schedule.break_start} - {schedule.break_end})"
        return None

    def validate_date_time(self, target: date, time: Optional[str] = None) -> ValidationResult:
        # 1. Blocked dates
        if target in self.blocked_dates:
            return ValidationResult(False, "Esta data está bloqueada para agendamentos")

        # 2. Special hours override the weekly schedule
        special = self.special_by_date.get(target)
        if special is not None:
            if not special.is_open:
                return ValidationResult(False, "Barbearia fechada nesta data (horário especial)")
            schedule = DaySchedule(
                enabled=True,
                start=_hhmm(special.open_time) or DEFAULT_DAY_SCHEDULE.start,
                end=_hhmm(special.close_time) or DEFAULT_DAY_SCHEDULE.end,
                break_start=_hhmm(special.break_start),
                break_end=_hhmm(special.break_end),
            )
            reason = self._check_time(time, schedule) if time else None
            if reason:
                return ValidationResult(False, reason)
            return ValidationResult(True, schedule=schedule)

        # 3/4/5. Staff schedule, business hours, default
        day = day_name(target)
        staff_day = get_schedule_for_day(self.staff_schedule, day, self.unit_id)
        schedule = get_effective_schedule(self.staff_schedule, self.business_by_day.get(day), day, self.unit_id)

        if not schedule.enabled:
            reason = (
                "Este profissional não trabalha neste dia"
                if staff_day
                else "Barbearia fechada neste dia da semana"
            )
            return ValidationResult(False, reason)

        reason = self._check_time(time, schedule) if time else None
        if reason:
            return ValidationResult(False, reason)
        return ValidationResult(True, schedule=schedule)

    def generate_time_slots(self, target: date, duration_minutes: int = SLOT_STEP_MINUTES) -> list[str]:
        """30-minute grid of start times whose service fits before closing and does not touch the break"""
        validation = self.validate_date_time(target)
        if not validation.is_valid or validation.schedule is None:
            return []

        schedule = validation.schedule
        current = time_to_minutes(schedule.start)
        end = time_to_minutes(schedule.end)
        break_start = time_to_minutes(schedule.break_start) if schedule.break_start else None
        break_end = time_to_minutes(schedule.break_end) if schedule.break_end else None

        slots = []
        while current + duration_minutes <= end:
            slot_end = current + duration_minutes
            in_break = False
            if break_start is not None and break_end is not None:
                if break_start <= current < break_end:
                    in_break = True
                elif current < break_start and slot_end > break_start:
                    in_break = True
            if not in_break:
                slots.append(minutes_to_time(current))
            current += SLOT_STEP_MINUTES
        return slots


def filter_available_slots(slots: list[str], duration_minutes: int, booked: list[tuple[str, int]]) -> list[str]:
    return [slot for slot in slots if not check_time_overlap(slot, duration_minutes, booked)]
