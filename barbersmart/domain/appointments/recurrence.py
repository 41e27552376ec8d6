"""Recurrence rules: date generation and Portuguese labels"""

import uuid
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from ...shared.numbers import round_half_up

RECURRENCE_RULES = ("weekly", "biweekly", "triweekly", "monthly", "custom")

# Upper bound when the series is limited by an end date instead of a count
MAX_OCCURRENCES_WITH_END_DATE = 52
DEFAULT_CUSTOM_INTERVAL_DAYS = 7

_RULE_LABELS = {
    "weekly": "Semanalmente",
    "biweekly": "Quinzenalmente",
    "triweekly": "A cada 3 semanas",
    "monthly": "Mensalmente",
}

_DAYS_PER_OCCURRENCE = {
    "weekly": 7,
    "biweekly": 14,
    "triweekly": 21,
    "monthly": 30,
}

COUNT_OPTIONS = [2, 3, 4, 5, 6, 8, 10, 12]


def _next_date(current: date, rule: str, custom_interval_days: int) -> date:
    if rule == "weekly":
        return current + timedelta(weeks=1)
    if rule == "biweekly":
        return current + timedelta(weeks=2)
    if rule == "triweekly":
        return current + timedelta(weeks=3)
    if rule == "monthly":
        # Chained from the previous date: Jan 31 -> Feb 28 -> Mar 28
        return current + relativedelta(months=1)
    if rule == "custom":
        return current + timedelta(days=custom_interval_days)
    raise ValueError(f"Unknown recurrence rule: {rule}")


def generate_recurring_dates(
    start_date: date,
    rule: str,
    count: int,
    custom_interval_days: Optional[int] = None,
    end_date: Optional[date] = None,
) -> list[date]:
    """
    Dates of a recurring series, starting at ``start_date``.

    With ``end_date`` the series stops at the first date past it and never
    exceeds 52 occurrences; otherwise exactly ``count`` dates are returned.
    """
    if count < 1:
        return []
    interval = custom_interval_days or DEFAULT_CUSTOM_INTERVAL_DAYS
    limit = MAX_OCCURRENCES_WITH_END_DATE if end_date else count

    dates = []
    current = start_date
    for _ in range(limit):
        if end_date and current > end_date:
            break
        dates.append(current)
        current = _next_date(current, rule, interval)
    return dates


def get_recurrence_label(rule: Optional[str], custom_interval_days: Optional[int] = None) -> str:
    if rule == "custom":
        return f"A cada {custom_interval_days or DEFAULT_CUSTOM_INTERVAL_DAYS} dias"
    return _RULE_LABELS.get(rule or "", "Personalizado")


def format_recurrence_summary(
    rule: str, count: int, start_date: date, custom_interval_days: Optional[int] = None
) -> str:
    """e.g. 'Semanalmente por 4 vezes, a partir de 05/03/2025'"""
    label = get_recurrence_label(rule, custom_interval_days)
    times = "vez" if count == 1 else "vezes"
    return f"{label} por {count} {times}, a partir de {start_date.strftime('%d/%m/%Y')}"


def get_count_duration_label(rule: str, count: int, custom_interval_days: Optional[int] = None) -> str:
    """Approximate span of the series, e.g. '(3 semanas)' or '(2 meses)'. Empty under a week"""
    days_per = _DAYS_PER_OCCURRENCE.get(rule) or custom_interval_days or DEFAULT_CUSTOM_INTERVAL_DAYS
    total_days = (count - 1) * days_per
    if total_days < 7:
        return ""

    weeks = int(round_half_up(total_days / 7))
    if weeks < 4:
        return f"({weeks} {'semana' if weeks == 1 else 'semanas'})"

    months = int(round_half_up(total_days / 30))
    return f"({months} {'mês' if months == 1 else 'meses'})"


def get_recurrence_count_options(rule: str, custom_interval_days: Optional[int] = None) -> list[dict]:
    """Count choices labelled with the span they cover, e.g. {"value": 4, "label": "4 vezes (3 semanas)"}"""
    options = []
    for count in COUNT_OPTIONS:
        duration = get_count_duration_label(rule, count, custom_interval_days)
        options.append({"value": count, "label": f"{count} vezes {duration}" if duration else f"{count} vezes"})
    return options


def calculate_total_price(price: Optional[float], count: int) -> float:
    return float(price or 0) * count


def generate_recurrence_group_id() -> str:
    return str(uuid.uuid4())
