"""
Provider model representing healthcare professionals who offer consultations.

Providers own one or more schedules and are the subject of every availability
and conflict query. Only active, verified providers appear in the
multi-provider availability view.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consult_scheduling.core.constants import MAX_STRING_LENGTH
from consult_scheduling.core.database import Base


class Provider(Base):
    """
    Provider entity representing a practitioner who can be booked.

    Schedules and appointments reference the provider by id. The engine only
    reads providers; onboarding and verification are handled elsewhere.
    """

    __tablename__ = "providers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    """Unique identifier for the provider (UUID string)."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name shown in the multi-provider availability view."""

    specialty: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Optional clinical specialty."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Whether the provider currently accepts bookings."""

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """Whether the provider's credentials have been verified."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the provider was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the provider was last updated."""

    # Relationships
    schedules = relationship("ProviderSchedule", back_populates="provider", cascade="all, delete-orphan")
    """Relationship to the provider's schedules."""

    appointments = relationship("Appointment", back_populates="provider")
    """Relationship to the provider's appointments."""

    __table_args__ = (
        Index('idx_providers_active_verified', 'is_active', 'is_verified'),
    )

    def __repr__(self) -> str:
        return f"<Provider(id={self.id}, name='{self.name}', active={self.is_active})>"
