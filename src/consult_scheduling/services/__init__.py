"""
Services package for the scheduling engine.

This package contains the service classes that answer availability, booking
and schedule-edit questions, plus the repository port they read through.
"""

from .schedule_repository import (
    ScheduleNotFoundError,
    ScheduleRepository,
    SchedulingError,
    SchedulingIndeterminateError,
)
from .availability_service import AvailabilityService
from .conflict_detection_service import ConflictDetectionService
from .alternative_slot_service import AlternativeSlotFinder
from .schedule_change_validator import ScheduleChangeValidator
from .sqlalchemy_schedule_repository import SqlAlchemyScheduleRepository

__all__ = [
    "ScheduleNotFoundError",
    "ScheduleRepository",
    "SchedulingError",
    "SchedulingIndeterminateError",
    "AvailabilityService",
    "ConflictDetectionService",
    "AlternativeSlotFinder",
    "ScheduleChangeValidator",
    "SqlAlchemyScheduleRepository",
]
