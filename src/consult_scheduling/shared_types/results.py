"""
Result models returned by the scheduling engine.

These Pydantic models are transient, never persisted. The booking layer
serializes them with model_dump(mode="json") for the booking UI, which renders
every conflict message and suggested alternative.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class ConflictType(str, Enum):
    """Reason a requested or existing booking cannot stand."""
    APPOINTMENT = "appointment"
    BREAK = "break"
    UNAVAILABLE = "unavailable"
    OUTSIDE_HOURS = "outside_hours"
    BUFFER_VIOLATION = "buffer_violation"


class Severity(str, Enum):
    """Errors block a booking, warnings are shown only, info carries suggestions."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ConflictingItem(BaseModel):
    """Reference to the schedule item that caused a conflict."""
    id: str
    title: str
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    type: str  # 'appointment', 'break', 'exception' or 'schedule'


class AlternativeSlot(BaseModel):
    """A substitute slot proposed when the requested time is unavailable."""
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM


class ConflictDetail(BaseModel):
    """One conflict, warning or suggestion produced by a check."""
    type: ConflictType
    severity: Severity
    message: str
    conflicting_item: Optional[ConflictingItem] = None
    suggested_alternatives: Optional[List[AlternativeSlot]] = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


class ConflictCheckResult(BaseModel):
    """Outcome of validating a single proposed booking."""
    is_valid: bool
    conflicts: List[ConflictDetail] = []
    warnings: List[ConflictDetail] = []
    suggestions: List[ConflictDetail] = []


class AvailabilitySlot(BaseModel):
    """A candidate slot with its availability flag for one day."""
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    is_available: bool
    reason: Optional[str] = None
    provider_id: Optional[str] = None  # Set in the multi-provider view
    provider_name: Optional[str] = None


class AffectedAppointment(BaseModel):
    """An existing appointment that a proposed schedule edit would invalidate."""
    id: str
    appointment_date: str  # ISO-8601 timestamp
    patient_name: str
    conflict_type: ConflictType
    severity: Severity


class ScheduleValidationResult(BaseModel):
    """Outcome of re-validating future appointments against a schedule edit."""
    is_valid: bool
    affected_appointments: List[AffectedAppointment] = []
    conflicts: List[ConflictDetail] = []


class OccurrenceCheck(BaseModel):
    """Validation of one occurrence in a recurring series."""
    start: datetime
    result: ConflictCheckResult


class RecurringCheckResult(BaseModel):
    """Outcome of validating every occurrence of a recurring series."""
    is_valid: bool
    occurrences: List[OccurrenceCheck] = []

    @property
    def invalid_occurrences(self) -> List[OccurrenceCheck]:
        return [o for o in self.occurrences if not o.result.is_valid]
