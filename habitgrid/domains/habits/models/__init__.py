from habitgrid.domains.habits.models.habit_models import Habit, HabitCompletion

__all__ = ["Habit", "HabitCompletion"]
