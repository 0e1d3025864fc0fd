"""Habit services: owner-scoped repository, completion toggles and the week view.

Every function takes the caller's ``user_id`` first and never reads or writes
another user's rows. Each mutation commits once.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Set, Union

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from habitgrid.domains.habits.dates import parse_iso_date, validate_window
from habitgrid.domains.habits.errors import (
    HabitValidationError,
    InvalidReference,
    NotFoundOrUnauthorized,
)
from habitgrid.domains.habits.frequency import (
    FREQUENCY_CUSTOM,
    FREQUENCY_DAILY,
    filter_due,
    normalize_frequency,
)
from habitgrid.domains.habits.models.habit_models import Habit, HabitCompletion
from habitgrid.extensions import db

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#ff6b6b"
DEFAULT_ICON = "🧘"
NAME_MAX_LENGTH = 255
UPDATABLE_FIELDS = (
    "name",
    "description",
    "category",
    "color_hex",
    "icon",
    "frequency",
    "frequency_config",
)

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

DateLike = Union[date, str]


# --- validation helpers ---


def _clean_name(name: Optional[str]) -> str:
    name_norm = (name or "").strip()
    if not name_norm:
        raise HabitValidationError("name is required")
    if len(name_norm) > NAME_MAX_LENGTH:
        raise HabitValidationError(f"name is limited to {NAME_MAX_LENGTH} characters")
    return name_norm


def _clean_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def _clean_color(value: Optional[str]) -> str:
    color = (value or "").strip() or current_app.config.get("HABITS_DEFAULT_COLOR", DEFAULT_COLOR)
    if not _COLOR_RE.match(color):
        raise HabitValidationError("color_hex must look like #rrggbb")
    return color.lower()


def _clean_icon(value: Optional[str]) -> str:
    return (value or "").strip() or current_app.config.get("HABITS_DEFAULT_ICON", DEFAULT_ICON)


def _clean_ids(ordered_ids: Iterable) -> List[int]:
    try:
        ids = [int(raw) for raw in ordered_ids]
    except (TypeError, ValueError) as exc:
        raise HabitValidationError("ordered_ids must be habit ids") from exc
    if len(set(ids)) != len(ids):
        raise HabitValidationError("ordered_ids contains duplicates")
    return ids


# --- queries ---


def _owned_habit(user_id: int, habit_id: int) -> Habit:
    habit = Habit.query.filter_by(id=habit_id, user_id=user_id).first()
    if not habit:
        raise NotFoundOrUnauthorized()
    return habit


def _ordered(query):
    return query.order_by(Habit.sort_order.asc(), Habit.created_at.asc(), Habit.id.asc())


def _active_habits(user_id: int):
    return Habit.query.filter_by(user_id=user_id, is_archived=False)


def _next_sort_order(user_id: int) -> int:
    current = (
        db.session.query(func.max(Habit.sort_order))
        .filter(Habit.user_id == user_id, Habit.is_archived.is_(False))
        .scalar()
    )
    return 0 if current is None else current + 1


def get_habit(user_id: int, habit_id: int) -> Habit:
    return _owned_habit(user_id, habit_id)


def list_habits(user_id: int, active_only: bool = True) -> List[Habit]:
    query = _active_habits(user_id) if active_only else Habit.query.filter_by(user_id=user_id)
    return _ordered(query).all()


def list_due_habits(user_id: int, day: DateLike) -> List[Habit]:
    """Active habits due on ``day`` (the "today" view)."""
    return filter_due(list_habits(user_id), parse_iso_date(day))


# --- habit mutations ---


def create_habit(
    user_id: int,
    *,
    name: str,
    description: str | None = None,
    category: str | None = None,
    color_hex: str | None = None,
    icon: str | None = None,
    frequency: str | None = None,
    frequency_config: dict | None = None,
    sort_order: int | None = None,
) -> Habit:
    name_norm = _clean_name(name)
    frequency_norm, config = normalize_frequency(frequency, frequency_config)
    color = _clean_color(color_hex)
    if sort_order is not None and sort_order < 0:
        raise HabitValidationError("sort_order must not be negative")

    habit = Habit(
        user_id=user_id,
        name=name_norm,
        description=_clean_text(description),
        category=_clean_text(category),
        color_hex=color,
        icon=_clean_icon(icon),
        frequency=frequency_norm,
        frequency_config=config,
        is_archived=False,
        sort_order=_next_sort_order(user_id) if sort_order is None else sort_order,
    )
    db.session.add(habit)
    db.session.commit()
    logger.info("Created habit %s for user %s", habit.id, user_id)
    return habit


def _validated_updates(fields: dict) -> Dict[str, object]:
    updates: Dict[str, object] = {}
    if "name" in fields:
        updates["name"] = _clean_name(fields["name"])
    for key in ("description", "category"):
        if key in fields:
            updates[key] = _clean_text(fields[key])
    if "color_hex" in fields:
        updates["color_hex"] = _clean_color(fields["color_hex"])
    if "icon" in fields:
        updates["icon"] = _clean_icon(fields["icon"])
    if "frequency" in fields or "frequency_config" in fields:
        # The pair always travels together; a lone config implies "custom".
        config = fields.get("frequency_config")
        frequency = fields.get("frequency") or (FREQUENCY_CUSTOM if config else FREQUENCY_DAILY)
        updates["frequency"], updates["frequency_config"] = normalize_frequency(frequency, config)
    return updates


def update_habit(user_id: int, habit_id: int, **fields) -> Habit:
    """Apply display/frequency changes; owner, archive flag and order are never touched."""
    ignored = sorted(set(fields) - set(UPDATABLE_FIELDS))
    if ignored:
        logger.debug("Ignoring non-updatable habit fields: %s", ", ".join(ignored))
    updates = _validated_updates({k: v for k, v in fields.items() if k in UPDATABLE_FIELDS})

    habit = _owned_habit(user_id, habit_id)
    for key, value in updates.items():
        setattr(habit, key, value)
    habit.updated_at = datetime.utcnow()
    db.session.commit()
    return habit


def archive_habit(user_id: int, habit_id: int) -> Habit:
    """Soft-delete a habit. Archiving twice is a quiet success."""
    habit = _owned_habit(user_id, habit_id)
    if habit.is_archived:
        return habit
    habit.is_archived = True
    habit.updated_at = datetime.utcnow()
    db.session.commit()
    logger.info("Archived habit %s for user %s", habit.id, user_id)
    return habit


def reorder_habits(user_id: int, ordered_ids: Iterable) -> None:
    """Give listed habits ``sort_order = index`` in a single transaction.

    Only the listed rows are written; omitted habits keep their stored
    ``sort_order``. Any unknown, foreign or archived id rejects the whole
    request before anything is written.
    """
    ids = _clean_ids(ordered_ids)
    if not ids:
        return

    # Row locks serialize concurrent reorders on backends that support them.
    listed = _active_habits(user_id).filter(Habit.id.in_(ids)).with_for_update().all()
    by_id = {habit.id: habit for habit in listed}
    missing = [habit_id for habit_id in ids if habit_id not in by_id]
    if missing:
        logger.info("Reorder by user %s rejected, unknown ids %s", user_id, missing)
        raise InvalidReference()

    for index, habit_id in enumerate(ids):
        by_id[habit_id].sort_order = index

    db.session.commit()


# --- completions ---


def _remove_completion(habit_id: int, day: date) -> int:
    return HabitCompletion.query.filter_by(habit_id=habit_id, completed_date=day).delete(
        synchronize_session=False
    )


def toggle_completion(user_id: int, habit_id: int, day: DateLike) -> dict:
    """Flip the completion for (habit, day) and report the new state.

    Due-ness is not checked here. A concurrent insert for the same cell
    surfaces as a unique-constraint violation and is treated as already
    completed.
    """
    day = parse_iso_date(day)
    habit = _owned_habit(user_id, habit_id)

    if _remove_completion(habit.id, day):
        completed = False
    else:
        completed = True
        try:
            with db.session.begin_nested():
                db.session.add(HabitCompletion(habit_id=habit.id, completed_date=day))
        except IntegrityError:
            logger.info(
                "Completion for habit %s on %s was recorded concurrently; keeping it",
                habit.id,
                day.isoformat(),
            )
            db.session.commit()
            return {"completed": True}

    db.session.commit()
    return {"completed": completed}


def get_completions(user_id: int, habit_ids: List[int], start: date, end: date) -> Dict[int, Set[date]]:
    if not habit_ids:
        return {}
    rows = (
        db.session.query(HabitCompletion.habit_id, HabitCompletion.completed_date)
        .join(Habit, Habit.id == HabitCompletion.habit_id)
        .filter(
            Habit.user_id == user_id,
            HabitCompletion.habit_id.in_(habit_ids),
            HabitCompletion.completed_date >= start,
            HabitCompletion.completed_date <= end,
        )
        .all()
    )
    grouped: Dict[int, Set[date]] = {habit_id: set() for habit_id in habit_ids}
    for habit_id, completed_date in rows:
        grouped.setdefault(habit_id, set()).add(completed_date)
    return grouped


def get_week(user_id: int, start: DateLike, end: DateLike) -> dict:
    """Active habits plus their completions between ``start`` and ``end`` inclusive.

    Every returned habit has a (possibly empty) completion set. Due-ness is
    a presentation concern and does not filter anything here.
    """
    start_date = parse_iso_date(start, "start_date")
    end_date = parse_iso_date(end, "end_date")
    validate_window(start_date, end_date)

    habits = list_habits(user_id)
    if not habits:
        return {"habits": [], "completions": {}}
    completions = get_completions(user_id, [habit.id for habit in habits], start_date, end_date)
    return {"habits": habits, "completions": completions}
