"""
Weekly availability model for a schedule's recurring working hours.

Each record is one working period on one day of the week. Several records per
day are allowed so a provider can work split shifts (e.g. 09:00-12:00 and
14:00-18:00).
"""

import uuid
from datetime import datetime

from sqlalchemy import String, TIMESTAMP, Boolean, ForeignKey, Index, CheckConstraint, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consult_scheduling.core.database import Base


class WeeklyAvailability(Base):
    """
    Model for one recurring working period of a schedule.

    Times are zero-padded HH:MM strings, which compare correctly as text.
    """

    __tablename__ = "weekly_availability"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    """Unique identifier for the availability record."""

    schedule_id: Mapped[str] = mapped_column(ForeignKey("provider_schedules.id", ondelete="CASCADE"))
    """Reference to the owning schedule."""

    day_of_week: Mapped[int] = mapped_column(Integer)
    """Day of the week (0=Sunday, 1=Monday, ..., 6=Saturday)."""

    start_time: Mapped[str] = mapped_column(String(5))
    """Start of the working period (HH:MM)."""

    end_time: Mapped[str] = mapped_column(String(5))
    """End of the working period (HH:MM)."""

    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """False keeps the record but excludes it from availability."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the record was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the record was last updated."""

    # Relationships
    schedule = relationship("ProviderSchedule", back_populates="weekly_availability")
    """Relationship to the owning schedule."""

    __table_args__ = (
        CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='check_weekly_day_of_week'),
        CheckConstraint('start_time < end_time', name='check_weekly_time_range'),
        Index('idx_weekly_availability_schedule_day', 'schedule_id', 'day_of_week'),
    )

    def __repr__(self) -> str:
        return f"<WeeklyAvailability(schedule_id={self.schedule_id}, day={self.day_of_week}, {self.start_time}-{self.end_time})>"
