"""Habits models with prefixed tables."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship

from habitgrid.extensions import db


class Habit(db.Model):
    __tablename__ = "habits_habit"
    __table_args__ = (
        db.Index("ix_habits_habit_user_archived_sort", "user_id", "is_archived", "sort_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(db.Text)
    category: Mapped[str | None] = mapped_column(db.String(64))
    color_hex: Mapped[str | None] = mapped_column(db.String(7))
    icon: Mapped[str | None] = mapped_column(db.String(16))
    frequency: Mapped[str] = mapped_column(db.String(16), nullable=False, default="daily")
    frequency_config: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    is_archived: Mapped[bool] = mapped_column(default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    completions: Mapped[list["HabitCompletion"]] = relationship(
        "HabitCompletion",
        back_populates="habit",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Habit {self.id} {self.name!r} user={self.user_id}>"


class HabitCompletion(db.Model):
    __tablename__ = "habits_completion"
    __table_args__ = (
        # One completion per habit per day; toggle races resolve against this.
        db.UniqueConstraint("habit_id", "completed_date", name="uq_habits_completion_habit_date"),
        db.Index("ix_habits_completion_date", "completed_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    habit_id: Mapped[int] = mapped_column(
        db.ForeignKey("habits_habit.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    completed_date: Mapped[date] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    habit: Mapped[Habit] = relationship("Habit", back_populates="completions")
