"""Tests for Habits domain services: repository, reorder, completion toggles."""

from datetime import date

import pytest

pytestmark = pytest.mark.integration

from habitgrid.domains.habits import services as habit_services
from habitgrid.domains.habits.errors import (
    HabitValidationError,
    InvalidReference,
    NotFoundOrUnauthorized,
)
from habitgrid.domains.habits.models.habit_models import Habit, HabitCompletion
from habitgrid.domains.habits.services import (
    archive_habit,
    create_habit,
    get_completions,
    get_habit,
    list_due_habits,
    list_habits,
    reorder_habits,
    toggle_completion,
    update_habit,
)

MONDAY = date(2026, 10, 19)
MWF = {"type": "specific_days", "days": [1, 3, 5]}


def _names(habits):
    return [habit.name for habit in habits]


# ============== Habit CRUD Tests ==============


class TestCreateHabit:
    """Creation defaults, ordering and validation."""

    def test_create_applies_defaults(self, app, owner):
        habit = create_habit(owner.id, name="  Read  ")

        assert habit.id is not None
        assert habit.name == "Read"
        assert habit.frequency == "daily"
        assert habit.frequency_config is None
        assert habit.color_hex == "#ff6b6b"
        assert habit.icon == "🧘"
        assert habit.is_archived is False
        assert habit.sort_order == 0

    def test_create_appends_to_the_end(self, app, owner):
        create_habit(owner.id, name="A")
        create_habit(owner.id, name="B")
        third = create_habit(owner.id, name="C")
        assert third.sort_order == 2

    def test_create_respects_explicit_sort_order(self, app, owner):
        habit = create_habit(owner.id, name="Pinned", sort_order=7)
        assert habit.sort_order == 7

    def test_create_custom_habit_stores_canonical_config(self, app, owner):
        habit = create_habit(
            owner.id,
            name="Yoga",
            frequency="custom",
            frequency_config={"type": "specific_days", "days": [5, 1, 3]},
            color_hex="#00AA00",
        )
        assert habit.frequency_config == MWF
        assert habit.color_hex == "#00aa00"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"name": "   "},
            {"name": "x" * 256},
            {"name": "Run", "frequency": "custom"},
            {"name": "Run", "frequency": "daily", "frequency_config": {"type": "weekly_count", "count": 2}},
            {"name": "Run", "frequency": "custom", "frequency_config": {"type": "weekly_count", "count": 8}},
            {"name": "Run", "color_hex": "red"},
            {"name": "Run", "sort_order": -1},
        ],
    )
    def test_create_rejects_invalid_input_without_writing(self, app, owner, kwargs):
        with pytest.raises(HabitValidationError):
            create_habit(owner.id, **kwargs)
        assert Habit.query.filter_by(user_id=owner.id).count() == 0


class TestListHabits:
    def test_list_is_ordered_and_excludes_archived(self, app, owner):
        a = create_habit(owner.id, name="A")
        create_habit(owner.id, name="B")
        create_habit(owner.id, name="C", sort_order=0)
        archive_habit(owner.id, a.id)

        assert _names(list_habits(owner.id)) == ["C", "B"]
        assert _names(list_habits(owner.id, active_only=False)) == ["A", "C", "B"]

    def test_list_is_scoped_to_owner(self, app, owner, stranger):
        create_habit(owner.id, name="Mine")
        create_habit(stranger.id, name="Theirs")
        assert _names(list_habits(owner.id)) == ["Mine"]

    def test_list_due_habits(self, app, owner):
        create_habit(owner.id, name="Daily")
        create_habit(owner.id, name="Yoga", frequency="custom", frequency_config=MWF)
        assert _names(list_due_habits(owner.id, MONDAY)) == ["Daily", "Yoga"]
        assert _names(list_due_habits(owner.id, "2026-10-20")) == ["Daily"]


class TestUpdateHabit:
    def test_update_changes_display_fields(self, app, owner):
        habit = create_habit(owner.id, name="Read")
        before = habit.updated_at

        updated = update_habit(owner.id, habit.id, name="Read more", category=" mind ", icon="📚")

        assert updated.name == "Read more"
        assert updated.category == "mind"
        assert updated.icon == "📚"
        assert updated.updated_at >= before

    def test_update_ignores_protected_fields(self, app, owner, stranger):
        habit = create_habit(owner.id, name="Read")
        update_habit(owner.id, habit.id, user_id=stranger.id, is_archived=True, sort_order=42, name="Still mine")

        fresh = get_habit(owner.id, habit.id)
        assert fresh.user_id == owner.id
        assert fresh.is_archived is False
        assert fresh.sort_order == 0
        assert fresh.name == "Still mine"

    def test_switching_to_daily_clears_config(self, app, owner):
        habit = create_habit(owner.id, name="Yoga", frequency="custom", frequency_config=MWF)
        updated = update_habit(owner.id, habit.id, frequency="daily")
        assert updated.frequency == "daily"
        assert updated.frequency_config is None

    def test_lone_config_implies_custom(self, app, owner):
        habit = create_habit(owner.id, name="Gym")
        updated = update_habit(owner.id, habit.id, frequency_config={"type": "weekly_count", "count": 3})
        assert updated.frequency == "custom"
        assert updated.frequency_config == {"type": "weekly_count", "count": 3}

    def test_update_foreign_habit_is_not_found_and_unchanged(self, app, owner, stranger):
        habit = create_habit(owner.id, name="Private")
        with pytest.raises(NotFoundOrUnauthorized):
            update_habit(stranger.id, habit.id, name="Hijacked")
        assert get_habit(owner.id, habit.id).name == "Private"

    def test_validation_runs_before_lookup(self, app, owner):
        with pytest.raises(HabitValidationError):
            update_habit(owner.id, 999999, name="   ")

    def test_update_rejects_invalid_frequency_pair(self, app, owner):
        habit = create_habit(owner.id, name="Gym")
        with pytest.raises(HabitValidationError):
            update_habit(owner.id, habit.id, frequency="custom", frequency_config=None)
        assert get_habit(owner.id, habit.id).frequency == "daily"


class TestArchiveHabit:
    def test_archive_is_idempotent(self, app, owner):
        habit = create_habit(owner.id, name="Old")
        archive_habit(owner.id, habit.id)
        again = archive_habit(owner.id, habit.id)
        assert again.is_archived is True
        assert list_habits(owner.id) == []

    def test_archive_foreign_habit_is_not_found(self, app, owner, stranger):
        habit = create_habit(owner.id, name="Mine")
        with pytest.raises(NotFoundOrUnauthorized):
            archive_habit(stranger.id, habit.id)
        assert get_habit(owner.id, habit.id).is_archived is False

    def test_archive_keeps_completions(self, app, owner):
        habit = create_habit(owner.id, name="Old")
        toggle_completion(owner.id, habit.id, MONDAY)
        archive_habit(owner.id, habit.id)
        assert HabitCompletion.query.filter_by(habit_id=habit.id).count() == 1


# ============== Reorder Tests ==============


class TestReorderHabits:
    def test_reorder_assigns_index_order(self, app, owner):
        a = create_habit(owner.id, name="A")
        b = create_habit(owner.id, name="B")
        c = create_habit(owner.id, name="C")

        reorder_habits(owner.id, [c.id, a.id, b.id])

        assert _names(list_habits(owner.id)) == ["C", "A", "B"]
        assert [h.sort_order for h in list_habits(owner.id)] == [0, 1, 2]

    def test_omitted_habits_keep_their_sort_order(self, app, owner):
        a = create_habit(owner.id, name="A", sort_order=10)
        b = create_habit(owner.id, name="B", sort_order=20)
        c = create_habit(owner.id, name="C", sort_order=30)

        reorder_habits(owner.id, [c.id, a.id])

        assert get_habit(owner.id, c.id).sort_order == 0
        assert get_habit(owner.id, a.id).sort_order == 1
        assert get_habit(owner.id, b.id).sort_order == 20
        assert _names(list_habits(owner.id)) == ["C", "A", "B"]

    def test_foreign_id_rejects_whole_request(self, app, owner, stranger):
        a = create_habit(owner.id, name="A")
        b = create_habit(owner.id, name="B")
        theirs = create_habit(stranger.id, name="X")

        with pytest.raises(InvalidReference):
            reorder_habits(owner.id, [b.id, theirs.id, a.id])

        assert [(h.name, h.sort_order) for h in list_habits(owner.id)] == [("A", 0), ("B", 1)]
        assert get_habit(stranger.id, theirs.id).sort_order == 0

    def test_archived_or_unknown_ids_are_invalid(self, app, owner):
        a = create_habit(owner.id, name="A")
        b = create_habit(owner.id, name="B")
        archive_habit(owner.id, b.id)

        with pytest.raises(InvalidReference):
            reorder_habits(owner.id, [b.id, a.id])
        with pytest.raises(InvalidReference):
            reorder_habits(owner.id, [a.id, 987654])

    def test_duplicate_ids_are_a_validation_error(self, app, owner):
        a = create_habit(owner.id, name="A")
        with pytest.raises(HabitValidationError):
            reorder_habits(owner.id, [a.id, a.id])

    def test_empty_list_is_a_no_op(self, app, owner):
        habit = create_habit(owner.id, name="A", sort_order=4)
        reorder_habits(owner.id, [])
        assert get_habit(owner.id, habit.id).sort_order == 4


# ============== Completion Toggle Tests ==============


class TestToggleCompletion:
    def test_two_toggles_return_true_then_false(self, app, owner):
        habit = create_habit(owner.id, name="Read")

        assert toggle_completion(owner.id, habit.id, MONDAY) == {"completed": True}
        assert HabitCompletion.query.filter_by(habit_id=habit.id, completed_date=MONDAY).count() == 1

        assert toggle_completion(owner.id, habit.id, "2026-10-19") == {"completed": False}
        assert HabitCompletion.query.filter_by(habit_id=habit.id).count() == 0

    def test_toggle_does_not_check_due_ness(self, app, owner):
        habit = create_habit(owner.id, name="Yoga", frequency="custom", frequency_config=MWF)
        tuesday = date(2026, 10, 20)
        assert toggle_completion(owner.id, habit.id, tuesday) == {"completed": True}

    def test_toggle_foreign_habit_is_not_found(self, app, owner, stranger):
        habit = create_habit(owner.id, name="Mine")
        with pytest.raises(NotFoundOrUnauthorized):
            toggle_completion(stranger.id, habit.id, MONDAY)
        assert HabitCompletion.query.count() == 0

    def test_toggle_bad_date_is_a_validation_error(self, app, owner):
        habit = create_habit(owner.id, name="Read")
        with pytest.raises(HabitValidationError):
            toggle_completion(owner.id, habit.id, "19/10/2026")

    def test_concurrent_insert_converges_to_completed(self, app, owner, monkeypatch):
        """The losing insert of a race sees the unique constraint and reports completed."""
        habit = create_habit(owner.id, name="Read")
        assert toggle_completion(owner.id, habit.id, MONDAY) == {"completed": True}

        # Simulate the second request having read "absent" before the first committed.
        monkeypatch.setattr(habit_services, "_remove_completion", lambda habit_id, day: 0)

        assert toggle_completion(owner.id, habit.id, MONDAY) == {"completed": True}
        assert HabitCompletion.query.filter_by(habit_id=habit.id, completed_date=MONDAY).count() == 1


class TestGetCompletions:
    def test_groups_by_habit_within_bounds(self, app, owner):
        read = create_habit(owner.id, name="Read")
        gym = create_habit(owner.id, name="Gym")
        toggle_completion(owner.id, read.id, date(2026, 10, 18))  # before window
        toggle_completion(owner.id, read.id, date(2026, 10, 19))
        toggle_completion(owner.id, read.id, date(2026, 10, 25))

        grouped = get_completions(owner.id, [read.id, gym.id], date(2026, 10, 19), date(2026, 10, 25))

        assert grouped == {read.id: {date(2026, 10, 19), date(2026, 10, 25)}, gym.id: set()}

    def test_foreign_habit_ids_yield_nothing(self, app, owner, stranger):
        theirs = create_habit(stranger.id, name="Theirs")
        toggle_completion(stranger.id, theirs.id, MONDAY)
        assert get_completions(owner.id, [theirs.id], MONDAY, MONDAY) == {theirs.id: set()}
