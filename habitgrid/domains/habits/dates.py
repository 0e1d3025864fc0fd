"""Calendar helpers for the weekly grid (Monday-start weeks, ISO strings)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from habitgrid.domains.habits.errors import HabitValidationError

MAX_WINDOW_DAYS = 366


@dataclass(frozen=True)
class WeekView:
    start_date: date
    end_date: date
    days: List[date]


def current_week(today: Optional[date] = None) -> WeekView:
    """The Monday-Sunday week containing ``today``."""
    today = today or date.today()
    start = today - timedelta(days=today.weekday())
    end = start + timedelta(days=6)
    return WeekView(start_date=start, end_date=end, days=days_between(start, end))


def days_between(start: date, end: date) -> List[date]:
    """Every date from ``start`` to ``end`` inclusive."""
    if end < start:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def parse_iso_date(value: Union[str, date, None], field: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat((value or "").strip())
    except (TypeError, ValueError) as exc:
        raise HabitValidationError(f"{field} must be an ISO date (YYYY-MM-DD)") from exc


def validate_window(start: date, end: date) -> None:
    if end < start:
        raise HabitValidationError("end_date must not be before start_date")
    if (end - start).days + 1 > MAX_WINDOW_DAYS:
        raise HabitValidationError(f"date window is limited to {MAX_WINDOW_DAYS} days")


def format_week_range(start: date, end: date) -> str:
    """``Jan 12 – Jan 18``"""
    return f"{start:%b} {start.day} – {end:%b} {end.day}"


def format_month_name(value: date) -> str:
    return f"{value:%B}"
