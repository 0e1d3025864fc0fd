"""Habit DTOs and schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, List, Literal, Optional, Set

from pydantic import BaseModel, Field, model_validator

from habitgrid.domains.habits.dates import format_month_name, format_week_range
from habitgrid.domains.habits.frequency import (
    FREQUENCY_CUSTOM,
    FREQUENCY_DAILY,
    FrequencyConfig,
    describe_frequency,
    due_days,
)

COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


def _check_frequency_pair(frequency: Optional[str], config) -> None:
    if frequency == FREQUENCY_DAILY and config is not None:
        raise ValueError("daily habits take no frequency_config")
    if frequency == FREQUENCY_CUSTOM and config is None:
        raise ValueError("custom habits require a frequency_config")


class HabitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=4096)
    category: Optional[str] = Field(default=None, max_length=64)
    color_hex: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=16)
    frequency: Literal["daily", "custom"] = "daily"
    frequency_config: Optional[FrequencyConfig] = None

    @model_validator(mode="after")
    def frequency_pair(self) -> "HabitCreate":
        if not self.name.strip():
            raise ValueError("name must not be blank")
        _check_frequency_pair(self.frequency, self.frequency_config)
        return self


class HabitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=4096)
    category: Optional[str] = Field(default=None, max_length=64)
    color_hex: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=16)
    frequency: Optional[Literal["daily", "custom"]] = None
    frequency_config: Optional[FrequencyConfig] = None

    @model_validator(mode="after")
    def frequency_pair(self) -> "HabitUpdate":
        if "frequency" in self.model_fields_set:
            _check_frequency_pair(self.frequency, self.frequency_config)
        return self


class CompletionToggle(BaseModel):
    habit_id: int
    day: date = Field(alias="date")


class ReorderRequest(BaseModel):
    ordered_ids: List[int] = Field(max_length=1000)


class WeekQuery(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def both_or_neither(self) -> "WeekQuery":
        if (self.start_date is None) != (self.end_date is None):
            raise ValueError("start_date and end_date go together")
        return self


class HabitResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    category: Optional[str]
    color_hex: Optional[str]
    icon: Optional[str]
    frequency: str
    frequency_config: Optional[dict]
    frequency_label: str
    is_archived: bool
    sort_order: int
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class WeekHabitResponse(HabitResponse):
    due: List[bool]


class WeekResponse(BaseModel):
    start_date: date
    end_date: date
    label: str
    month: str
    days: List[date]
    habits: List[WeekHabitResponse]
    completions: Dict[str, List[date]]


def serialize_habit(habit) -> HabitResponse:
    return HabitResponse(
        id=habit.id,
        name=habit.name,
        description=habit.description,
        category=habit.category,
        color_hex=habit.color_hex,
        icon=habit.icon,
        frequency=habit.frequency,
        frequency_config=habit.frequency_config,
        frequency_label=describe_frequency(habit),
        is_archived=habit.is_archived,
        sort_order=habit.sort_order,
        created_at=habit.created_at,
        updated_at=habit.updated_at,
    )


def serialize_week(
    start: date,
    end: date,
    days: List[date],
    habits: Iterable,
    completions: Dict[int, Set[date]],
) -> WeekResponse:
    """Week payload; ``due`` is evaluated per habit for each day of the window."""
    habit_rows = [
        WeekHabitResponse(**serialize_habit(habit).model_dump(), due=due_days(habit, days))
        for habit in habits
    ]
    return WeekResponse(
        start_date=start,
        end_date=end,
        label=format_week_range(start, end),
        month=format_month_name(start),
        days=days,
        habits=habit_rows,
        completions={str(habit_id): sorted(dates) for habit_id, dates in completions.items()},
    )
