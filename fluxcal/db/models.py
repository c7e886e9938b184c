"""SQLAlchemy 2.0 declarative models: User, FoodEntry, FastingStateSummary.

All instants are stored as UTC.  Calendar-day keys (``buffer_for_date``,
``FastingStateSummary.date``) are ``YYYY-MM-DD`` strings in the user's
local zone.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class User(Base):
    """A tracked person: biometrics, goal, balance anchor, buffer."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Biometrics (all five required before BMR/TDEE can be derived).
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    height: Mapped[float | None] = mapped_column(Float, nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(16), nullable=True)
    activity_level: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # Goal plan.
    goal_weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    goal_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    goal_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    daily_goal_calories: Mapped[int | None] = mapped_column(Integer, nullable=True)
    daily_deficit: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Persisted balance anchor (value + instant it was true).
    cumulative_net_calories: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    last_balance_update_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Instant fasting/energy accounting begins (full time-of-day precision).
    fasting_tracking_start_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Single-use next-day allowance.
    buffer_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    buffer_for_date: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Timezone: either IANA city name or fixed UTC offset.
    tz_mode: Mapped[str | None] = mapped_column(String(16), nullable=True)
    tz_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tz_offset_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<User {self.id} goal={self.daily_goal_calories}>"


class FoodEntry(Base):
    """A single logged food item."""

    __tablename__ = "food_items"
    __table_args__ = (Index("ix_food_user_timestamp", "user_id", "timestamp"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(256), nullable=False)
    calories: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    meal_type: Mapped[str | None] = mapped_column(String(32), nullable=True)

    protein: Mapped[float | None] = mapped_column(Float, nullable=True)
    carbs: Mapped[float | None] = mapped_column(Float, nullable=True)
    fat: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<FoodEntry {self.name} {self.calories}kcal>"


class FastingStateSummary(Base):
    """Seconds spent in each fasting stage on one local day."""

    __tablename__ = "fasting_state_summaries"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_fasting_user_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False)

    fed_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    post_absorptive_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fat_burning_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    deep_ketosis_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    autophagy_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<FastingStateSummary {self.date}>"
