"""
Break period model for recurring pauses inside working hours.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Boolean, ForeignKey, Index, CheckConstraint, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consult_scheduling.core.constants import MAX_TITLE_LENGTH
from consult_scheduling.core.database import Base


class BreakPeriod(Base):
    """
    Model for a break that blocks booking inside an otherwise available day.

    A NULL day_of_week applies the break to every day.
    """

    __tablename__ = "break_periods"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    """Unique identifier for the break."""

    schedule_id: Mapped[str] = mapped_column(ForeignKey("provider_schedules.id", ondelete="CASCADE"))
    """Reference to the owning schedule."""

    day_of_week: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Day of the week (0=Sunday), or NULL for every day."""

    start_time: Mapped[str] = mapped_column(String(5))
    """Break start (HH:MM)."""

    end_time: Mapped[str] = mapped_column(String(5))
    """Break end (HH:MM)."""

    title: Mapped[Optional[str]] = mapped_column(String(MAX_TITLE_LENGTH), nullable=True)
    """Optional label shown in conflict messages (e.g. 'Lunch')."""

    is_recurring: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Whether the break repeats weekly."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the break was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the break was last updated."""

    # Relationships
    schedule = relationship("ProviderSchedule", back_populates="break_periods")
    """Relationship to the owning schedule."""

    __table_args__ = (
        CheckConstraint('start_time < end_time', name='check_break_time_range'),
        Index('idx_break_periods_schedule_day', 'schedule_id', 'day_of_week'),
    )

    def __repr__(self) -> str:
        return f"<BreakPeriod(schedule_id={self.schedule_id}, day={self.day_of_week}, {self.start_time}-{self.end_time}, title='{self.title}')>"
