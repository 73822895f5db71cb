"""
Patient model representing individuals who book consultations.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consult_scheduling.core.constants import MAX_STRING_LENGTH
from consult_scheduling.core.database import Base


class Patient(Base):
    """
    Patient entity. The engine reads only the name, to word conflict messages.
    """

    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    """Unique identifier for the patient (UUID string)."""

    full_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Full name of the patient (first and last name)."""

    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Optional contact phone number."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the patient was first created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the patient was last updated."""

    # Relationships
    appointments = relationship("Appointment", back_populates="patient")
    """Relationship to the patient's appointments."""

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, full_name='{self.full_name}')>"
