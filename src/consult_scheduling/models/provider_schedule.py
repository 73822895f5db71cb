"""
Provider schedule model grouping the recurring rules of a provider.

A schedule owns its weekly availability rules, break periods and date-specific
exceptions. The editing workflow keeps at most one active default schedule per
provider; the engine always reads that one.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, TIMESTAMP, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consult_scheduling.core.constants import MAX_STRING_LENGTH
from consult_scheduling.core.database import Base


class ProviderSchedule(Base):
    """
    Schedule entity holding a provider's recurring availability.

    All times stored on the schedule and its children are wall-clock times in
    the schedule's `timezone`.
    """

    __tablename__ = "provider_schedules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    """Unique identifier for the schedule (UUID string)."""

    provider_id: Mapped[str] = mapped_column(ForeignKey("providers.id", ondelete="CASCADE"))
    """Reference to the provider who owns this schedule."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), default="Default Schedule")
    """Human-readable schedule name."""

    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)
    """IANA timezone name the schedule's wall-clock times are expressed in."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Whether the schedule is in use."""

    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """Whether this is the provider's default schedule."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the schedule was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the schedule was last updated."""

    # Relationships
    provider = relationship("Provider", back_populates="schedules")
    """Relationship to the owning Provider."""

    weekly_availability = relationship(
        "WeeklyAvailability", back_populates="schedule", cascade="all, delete-orphan"
    )
    """Weekly recurring availability rules."""

    break_periods = relationship("BreakPeriod", back_populates="schedule", cascade="all, delete-orphan")
    """Breaks inside available days."""

    exceptions = relationship("ScheduleException", back_populates="schedule", cascade="all, delete-orphan")
    """Date-specific overrides."""

    __table_args__ = (
        Index('idx_provider_schedules_provider_active', 'provider_id', 'is_active', 'is_default'),
    )

    def __repr__(self) -> str:
        return f"<ProviderSchedule(id={self.id}, provider_id={self.provider_id}, default={self.is_default}, tz={self.timezone})>"
