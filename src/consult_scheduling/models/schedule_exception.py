"""
Schedule exception model for date-specific overrides.

Exceptions take precedence over the weekly rules on their date: an
UNAVAILABLE exception blocks the whole day, a MODIFIED_HOURS exception
restricts booking to its own window.
"""

import uuid
from datetime import date as date_type, datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Date, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consult_scheduling.core.constants import MAX_NOTES_LENGTH, MAX_TITLE_LENGTH
from consult_scheduling.core.database import Base


class ScheduleException(Base):
    """
    Exception entity overriding a schedule on one date.

    Multiple exceptions per date are allowed.
    """

    __tablename__ = "schedule_exceptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    """Unique identifier for the exception."""

    schedule_id: Mapped[str] = mapped_column(ForeignKey("provider_schedules.id", ondelete="CASCADE"))
    """Reference to the owning schedule."""

    date: Mapped[date_type] = mapped_column(Date)
    """Date the exception applies to."""

    type: Mapped[str] = mapped_column(String(20))
    """Exception type. Valid values: 'UNAVAILABLE', 'MODIFIED_HOURS'."""

    start_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    """Start of the modified window (HH:MM). Required for MODIFIED_HOURS."""

    end_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    """End of the modified window (HH:MM). Required for MODIFIED_HOURS."""

    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), default="")
    """Label shown as the reason for blocked slots."""

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)
    """Optional internal notes."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the exception was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the exception was last updated."""

    # Relationships
    schedule = relationship("ProviderSchedule", back_populates="exceptions")
    """Relationship to the owning schedule."""

    __table_args__ = (
        CheckConstraint("type IN ('UNAVAILABLE', 'MODIFIED_HOURS')", name='check_exception_type'),
        CheckConstraint(
            "type != 'MODIFIED_HOURS' OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name='check_modified_hours_range'
        ),
        Index('idx_schedule_exceptions_schedule_date', 'schedule_id', 'date'),
    )

    def __repr__(self) -> str:
        return f"<ScheduleException(id={self.id}, date={self.date}, type={self.type}, title='{self.title}')>"
