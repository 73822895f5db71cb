"""
Shared types for the scheduling engine.

Value types and repository snapshots live in `scheduling`; engine outputs
live in `results`.
"""

from .scheduling import (
    ACTIVE_STATUSES,
    AppointmentData,
    AppointmentStatus,
    BreakPeriodData,
    DayOfWeek,
    ExceptionType,
    ProviderSummary,
    RecurrencePattern,
    ScheduleData,
    ScheduleExceptionData,
    TimeOfDay,
    WeeklyRuleData,
)
from .results import (
    AffectedAppointment,
    AlternativeSlot,
    AvailabilitySlot,
    ConflictCheckResult,
    ConflictDetail,
    ConflictingItem,
    ConflictType,
    OccurrenceCheck,
    RecurringCheckResult,
    ScheduleValidationResult,
    Severity,
)

__all__ = [
    "ACTIVE_STATUSES",
    "AppointmentData",
    "AppointmentStatus",
    "BreakPeriodData",
    "DayOfWeek",
    "ExceptionType",
    "ProviderSummary",
    "RecurrencePattern",
    "ScheduleData",
    "ScheduleExceptionData",
    "TimeOfDay",
    "WeeklyRuleData",
    "AffectedAppointment",
    "AlternativeSlot",
    "AvailabilitySlot",
    "ConflictCheckResult",
    "ConflictDetail",
    "ConflictingItem",
    "ConflictType",
    "OccurrenceCheck",
    "RecurringCheckResult",
    "ScheduleValidationResult",
    "Severity",
]
