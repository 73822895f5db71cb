# Package initialization
# Import all models to ensure relationships are properly established
from .provider import Provider
from .patient import Patient
from .provider_schedule import ProviderSchedule
from .weekly_availability import WeeklyAvailability
from .break_period import BreakPeriod
from .schedule_exception import ScheduleException
from .appointment import Appointment

__all__ = [
    "Provider",
    "Patient",
    "ProviderSchedule",
    "WeeklyAvailability",
    "BreakPeriod",
    "ScheduleException",
    "Appointment",
]
