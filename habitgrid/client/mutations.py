"""Optimistic mutations over the cached week views.

Every mutation runs the same four steps:

1. issue: the week views are marked pending so background refetches skip them;
2. optimistic apply: each cached view is edited in place and an undo record
   for *this call only* is kept;
3. resolve: on failure the undo record is applied and a notice is emitted,
   nothing is retried;
4. settle: the pending mark is cleared and every cached week view is
   refetched from the server.

Undo records are per call, so two in-flight mutations on different cells
never roll each other back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from habitgrid.client.cache import Key, QueryCache
from habitgrid.client.transport import HabitsTransport
from habitgrid.domains.habits.errors import HabitError
from habitgrid.domains.habits.frequency import due_days

logger = logging.getLogger(__name__)

WEEK_PREFIX: Key = ("habits",)

Notify = Callable[[str, str], None]


@dataclass
class MutationResult:
    ok: bool
    data: Any = None
    error: Optional[HabitError] = None


def _iso(value) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)


def week_key(start, end) -> Key:
    return WEEK_PREFIX + (_iso(start), _iso(end))


def _find_habit(view: Dict[str, Any], habit_id: int) -> Tuple[int, Optional[Dict[str, Any]]]:
    for index, habit in enumerate(view.get("habits", [])):
        if habit.get("id") == habit_id:
            return index, habit
    return -1, None


def _set_completed(view: Dict[str, Any], habit_id: int, day: str, completed: bool) -> None:
    dates = set(view.setdefault("completions", {}).get(str(habit_id), []))
    if completed:
        dates.add(day)
    else:
        dates.discard(day)
    view["completions"][str(habit_id)] = sorted(dates)


def _is_completed(view: Dict[str, Any], habit_id: int, day: str) -> bool:
    return day in view.get("completions", {}).get(str(habit_id), [])


def _with_due(view: Dict[str, Any], habit: Dict[str, Any]) -> Dict[str, Any]:
    days = [date.fromisoformat(day) for day in view.get("days", [])]
    return {**habit, "due": due_days(habit, days)}


def _apply_order(view: Dict[str, Any], ordered_ids: List[int]) -> None:
    listed = {habit_id: index for index, habit_id in enumerate(ordered_ids)}
    for habit in view.get("habits", []):
        if habit["id"] in listed:
            habit["sort_order"] = listed[habit["id"]]
    view["habits"] = sorted(view.get("habits", []), key=lambda habit: habit.get("sort_order", 0))


class HabitsClient:
    """Client-side view of one user's habits.

    ``notify(level, message)`` receives user-facing notices; ``level`` is
    ``"success"`` or ``"error"``.
    """

    def __init__(
        self,
        transport: HabitsTransport,
        cache: Optional[QueryCache] = None,
        notify: Optional[Notify] = None,
    ) -> None:
        self.transport = transport
        self.cache = cache or QueryCache()
        self.notify = notify or (lambda level, message: None)

    # --- queries ---

    def fetch_week(self, start, end, background: bool = False) -> Optional[Dict[str, Any]]:
        """Load a week view into the cache.

        A background fetch is skipped while a mutation on the week views is
        pending; the cached view (possibly None) is returned instead.
        """
        key = week_key(start, end)
        if background and self.cache.is_pending(key):
            logger.debug("Skipping background refetch of %s, mutation pending", key)
            return self.cache.get(key)
        body = self.transport.fetch_week(start, end)
        view = {k: v for k, v in body.items() if k != "ok"}
        self.cache.set(key, view)
        return view

    def week(self, start, end) -> Optional[Dict[str, Any]]:
        return self.cache.get(week_key(start, end))

    def _views(self) -> List[Tuple[Key, Dict[str, Any]]]:
        return [(key, self.cache.get(key)) for key in self.cache.keys(WEEK_PREFIX) if self.cache.get(key)]

    # --- protocol ---

    def _run(
        self,
        apply: Callable[[], Any],
        call: Callable[[], Dict[str, Any]],
        undo: Callable[[Any], None],
        failure_notice: str,
        on_success: Optional[Callable[[Dict[str, Any]], Any]] = None,
        success_notice: Optional[str] = None,
    ) -> MutationResult:
        self.cache.begin_mutation(WEEK_PREFIX)
        try:
            record = apply()
            try:
                body = call()
            except HabitError as exc:
                logger.warning("%s: %s (%s)", failure_notice, exc, getattr(exc, "message", ""))
                undo(record)
                self.notify("error", failure_notice)
                return MutationResult(ok=False, error=exc)
            data = on_success(body) if on_success else body
            if success_notice:
                self.notify("success", success_notice)
            return MutationResult(ok=True, data=data)
        finally:
            self.cache.end_mutation(WEEK_PREFIX)
            self._settle()

    def _settle(self) -> None:
        for key in self.cache.keys(WEEK_PREFIX):
            _, start, end = key
            try:
                self.fetch_week(start, end)
            except HabitError as exc:
                logger.warning("Refetch of %s failed, keeping cached view: %s", key, exc)

    # --- mutations ---

    def toggle(self, habit_id: int, day) -> MutationResult:
        day_iso = _iso(day)

        def apply():
            record = []
            for key, view in self._views():
                was = _is_completed(view, habit_id, day_iso)
                record.append((key, was))
                _set_completed(view, habit_id, day_iso, not was)
            return record

        def undo(record):
            for key, was in record:
                view = self.cache.get(key)
                if view is not None:
                    _set_completed(view, habit_id, day_iso, was)

        def on_success(body):
            completed = bool(body.get("completed"))
            for _, view in self._views():
                _set_completed(view, habit_id, day_iso, completed)
            return {"completed": completed}

        return self._run(
            apply,
            lambda: self.transport.toggle(habit_id, day_iso),
            undo,
            "Failed to update completion",
            on_success=on_success,
        )

    def reorder(self, ordered_ids: Iterable[int]) -> MutationResult:
        ids = [int(habit_id) for habit_id in ordered_ids]

        def apply():
            record = self.cache.snapshot(WEEK_PREFIX)
            for _, view in self._views():
                _apply_order(view, ids)
            return record

        def undo(record):
            self.cache.restore(record, fields=("habits",))

        return self._run(apply, lambda: self.transport.reorder(ids), undo, "Failed to reorder habits")

    def create(self, **fields) -> MutationResult:
        """No optimistic row (the id is server assigned); the new habit is added on success."""

        def on_success(body):
            habit = body.get("habit") or {}
            for _, view in self._views():
                if _find_habit(view, habit.get("id"))[1] is None:
                    view.setdefault("habits", []).append(_with_due(view, habit))
                    view.setdefault("completions", {})[str(habit.get("id"))] = []
            return habit

        return self._run(
            lambda: None,
            lambda: self.transport.create(fields),
            lambda record: None,
            "Failed to create habit",
            on_success=on_success,
            success_notice="Habit created successfully",
        )

    def update(self, habit_id: int, **fields) -> MutationResult:
        def apply():
            record = []
            for key, view in self._views():
                index, habit = _find_habit(view, habit_id)
                if habit is None:
                    continue
                record.append((key, dict(habit)))
                view["habits"][index] = _with_due(view, {**habit, **fields})
            return record

        def undo(record):
            for key, previous in record:
                view = self.cache.get(key)
                if view is None:
                    continue
                index, _ = _find_habit(view, habit_id)
                if index >= 0:
                    view["habits"][index] = previous

        return self._run(
            apply,
            lambda: self.transport.update(habit_id, fields),
            undo,
            "Failed to update habit",
            on_success=lambda body: body.get("habit"),
            success_notice="Habit updated successfully",
        )

    def archive(self, habit_id: int) -> MutationResult:
        def apply():
            record = []
            for key, view in self._views():
                index, habit = _find_habit(view, habit_id)
                if habit is None:
                    continue
                record.append((key, index, view["habits"].pop(index)))
            return record

        def undo(record):
            for key, index, habit in record:
                view = self.cache.get(key)
                if view is not None and _find_habit(view, habit_id)[1] is None:
                    view.setdefault("habits", []).insert(index, habit)

        return self._run(
            apply,
            lambda: self.transport.archive(habit_id),
            undo,
            "Failed to archive habit",
            success_notice="Habit archived",
        )
