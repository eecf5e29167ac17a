from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    # SQLite hands DateTime(timezone=True) columns back as naive values.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    pass


class TargetType(str, enum.Enum):
    BINARY = "BINARY"
    QUANTITY = "QUANTITY"
    # Reserved: no time tracking yet, treated as BINARY everywhere.
    TIMER = "TIMER"

    @property
    def is_binary(self) -> bool:
        return self is not TargetType.QUANTITY


class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (
        Index("ix_goals_active_order", "is_deleted", "is_archived", "sort_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    target_type: Mapped[TargetType] = mapped_column(
        Enum(TargetType, native_enum=False, length=16, validate_strings=True),
        default=TargetType.BINARY,
        server_default=TargetType.BINARY.value,
        nullable=False,
    )
    target_value: Mapped[float] = mapped_column(Float, default=1.0, server_default="1", nullable=False)
    unit: Mapped[str] = mapped_column(String(64), default="", server_default="", nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    logs: Mapped[list["CompletionLog"]] = relationship(
        "CompletionLog",
        back_populates="goal",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"Goal(id={self.id!r}, name={self.name!r}, target_type={self.target_type.value})"


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_active_order", "is_deleted", "is_completed", "sort_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"Task(id={self.id!r}, title={self.title!r}, is_completed={self.is_completed!r})"


class CompletionLog(Base):
    """One row per goal per logical day; `date` is stored as YYYY-MM-DD."""

    __tablename__ = "completion_logs"
    __table_args__ = (
        UniqueConstraint("goal_id", "date", name="uq_completion_logs_goal_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    goal_id: Mapped[int] = mapped_column(
        ForeignKey("goals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    value: Mapped[float] = mapped_column(Float, default=0.0, server_default="0", nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)

    goal: Mapped[Goal] = relationship("Goal", back_populates="logs")

    def __repr__(self) -> str:
        return (
            f"CompletionLog(goal_id={self.goal_id!r}, date={self.date!r}, "
            f"value={self.value!r}, is_completed={self.is_completed!r})"
        )


TABLE_GOALS = Goal.__tablename__
TABLE_TASKS = Task.__tablename__
TABLE_COMPLETION_LOGS = CompletionLog.__tablename__
