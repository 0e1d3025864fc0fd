"""Frequency rules: when is a habit due?

A habit is either ``daily`` or ``custom``. Custom habits carry a tagged
``frequency_config``:

* ``{"type": "weekly_count", "count": 3}`` - can be done on any day, the
  count is an advisory weekly target.
* ``{"type": "specific_days", "days": [1, 3, 5]}`` - due only on the listed
  weekdays, numbered 0 = Sunday ... 6 = Saturday.

Evaluation is pure and fails closed: anything that does not parse as one of
the known variants is never due.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from habitgrid.core.utils.validation import jsonable_errors
from habitgrid.domains.habits.errors import HabitValidationError

FREQUENCY_DAILY = "daily"
FREQUENCY_CUSTOM = "custom"
FREQUENCIES = (FREQUENCY_DAILY, FREQUENCY_CUSTOM)

CONFIG_WEEKLY_COUNT = "weekly_count"
CONFIG_SPECIFIC_DAYS = "specific_days"


class WeeklyCountConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["weekly_count"]
    count: int = Field(ge=1, le=7)


class SpecificDaysConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["specific_days"]
    days: List[Annotated[int, Field(ge=0, le=6)]] = Field(min_length=1)

    @field_validator("days")
    @classmethod
    def canonical_days(cls, v: List[int]) -> List[int]:
        return sorted(set(v))


FrequencyConfig = Annotated[
    Union[WeeklyCountConfig, SpecificDaysConfig], Field(discriminator="type")
]

_config_adapter: TypeAdapter = TypeAdapter(FrequencyConfig)


def weekday_index(day: date) -> int:
    """Weekday with Sunday as 0, matching the stored ``days`` values."""
    return (day.weekday() + 1) % 7


def _field(habit: Any, name: str) -> Any:
    if isinstance(habit, dict):
        return habit.get(name)
    return getattr(habit, name, None)


def parse_frequency_config(raw: Any) -> Optional[Union[WeeklyCountConfig, SpecificDaysConfig]]:
    """Return the typed config, or None when ``raw`` is missing or malformed."""
    if raw is None:
        return None
    if isinstance(raw, (WeeklyCountConfig, SpecificDaysConfig)):
        return raw
    try:
        return _config_adapter.validate_python(raw)
    except ValidationError:
        return None


def is_due(habit: Any, day: date) -> bool:
    """Whether ``habit`` can be completed on ``day``."""
    frequency = _field(habit, "frequency")
    if frequency == FREQUENCY_DAILY:
        return True
    if frequency != FREQUENCY_CUSTOM:
        return False

    config = parse_frequency_config(_field(habit, "frequency_config"))
    if isinstance(config, WeeklyCountConfig):
        # The weekly target is not checked against completions.
        return True
    if isinstance(config, SpecificDaysConfig):
        return weekday_index(day) in config.days
    return False


def due_days(habit: Any, days: Iterable[date]) -> List[bool]:
    return [is_due(habit, day) for day in days]


def filter_due(habits: Iterable[Any], day: date) -> List[Any]:
    return [habit for habit in habits if is_due(habit, day)]


def normalize_frequency(frequency: Optional[str], config: Any) -> Tuple[str, Optional[dict]]:
    """Validate a frequency/config pair and return its stored form.

    Raises HabitValidationError when the pair breaks the variant rules.
    """
    frequency = str(frequency or FREQUENCY_DAILY).strip().lower()
    if frequency not in FREQUENCIES:
        raise HabitValidationError(f"unknown frequency: {frequency}")

    if hasattr(config, "model_dump"):
        config = config.model_dump()

    if frequency == FREQUENCY_DAILY:
        if config:
            raise HabitValidationError("daily habits take no frequency_config")
        return FREQUENCY_DAILY, None

    if not config:
        raise HabitValidationError("custom habits require a frequency_config")
    try:
        parsed = _config_adapter.validate_python(config)
    except ValidationError as exc:
        raise HabitValidationError("invalid frequency_config", details=jsonable_errors(exc)) from exc
    return FREQUENCY_CUSTOM, parsed.model_dump()


def describe_frequency(habit: Any) -> str:
    """Short label shown next to the habit name."""
    frequency = _field(habit, "frequency")
    if frequency == FREQUENCY_DAILY:
        return "Every day"
    config = parse_frequency_config(_field(habit, "frequency_config")) if frequency == FREQUENCY_CUSTOM else None
    if isinstance(config, WeeklyCountConfig):
        return f"{config.count}x per week"
    if isinstance(config, SpecificDaysConfig):
        count = len(config.days)
        return f"{count} day per week" if count == 1 else f"{count} days per week"
    return "Not scheduled"
