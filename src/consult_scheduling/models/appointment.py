"""
Appointment model representing booked consultations.

Appointments are written by the booking workflow. The scheduling engine only
reads them: SCHEDULED and CONFIRMED appointments occupy the provider's time.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consult_scheduling.core.constants import DEFAULT_APPOINTMENT_DURATION_MINUTES, MAX_NOTES_LENGTH
from consult_scheduling.core.database import Base


class Appointment(Base):
    """
    Appointment entity representing a consultation between a patient and a provider.

    `appointment_date` is stored as wall-clock time in the provider schedule's
    timezone. Preventing two overlapping inserts needs a storage-level guard
    (e.g. a PostgreSQL exclusion constraint over provider_id and the time
    range); the index below only serves the engine's range queries.
    """

    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    """Unique identifier for the appointment (UUID string)."""

    provider_id: Mapped[str] = mapped_column(ForeignKey("providers.id"))
    """Reference to the provider being consulted."""

    patient_id: Mapped[Optional[str]] = mapped_column(ForeignKey("patients.id"), nullable=True)
    """Reference to the patient who booked the appointment."""

    appointment_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=False))
    """Start of the appointment, naive wall-clock time in the schedule's timezone."""

    duration: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, default=DEFAULT_APPOINTMENT_DURATION_MINUTES
    )
    """Length in minutes. NULL is treated as the default duration."""

    status: Mapped[str] = mapped_column(String(20), default="SCHEDULED")
    """
    Current status. Valid values: 'SCHEDULED', 'CONFIRMED', 'IN_PROGRESS',
    'COMPLETED', 'CANCELLED', 'NO_SHOW'.
    """

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)
    """Optional booking notes."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the appointment was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the appointment was last updated."""

    # Relationships
    provider = relationship("Provider", back_populates="appointments")
    """Relationship to the Provider entity."""

    patient = relationship("Patient", back_populates="appointments")
    """Relationship to the Patient entity."""

    __table_args__ = (
        Index('idx_appointments_provider_date', 'provider_id', 'appointment_date'),
        Index('idx_appointments_provider_status', 'provider_id', 'status'),
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, provider_id={self.provider_id}, date={self.appointment_date}, status={self.status})>"
