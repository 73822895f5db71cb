"""
Shared value types for schedule data consumed by the scheduling engine.

This module contains the validated value types (day of week, HH:MM time of day)
and the immutable snapshot data classes the engine receives from the schedule
repository. Services never mutate these; they derive transient results from them.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date as date_type, datetime, time, timedelta
from enum import Enum, IntEnum
from typing import Any, Mapping, Optional, Tuple

from consult_scheduling.core.constants import DEFAULT_APPOINTMENT_DURATION_MINUTES, MINUTES_PER_DAY
from consult_scheduling.utils.datetime_utils import to_schedule_local

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::00)?$")


class DayOfWeek(IntEnum):
    """Day of week using the Sunday=0 convention."""
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_date(cls, value: date_type) -> "DayOfWeek":
        """Resolve the day of week for a date (Python's weekday() is Monday=0)."""
        return cls((value.weekday() + 1) % 7)

    @classmethod
    def parse(cls, value: Any) -> "DayOfWeek":
        """
        Parse a day of week from an enum member, an int (Sunday=0) or a name.

        Raises:
            ValueError: If the value is not a recognizable day of week
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
            if name.isdigit():
                return cls(int(name))
        raise ValueError(f"Invalid day of week: {value!r}")


class TimeOfDay(str):
    """
    Zero-padded 24-hour HH:MM wall-clock time.

    Because the format is fixed width, lexicographic order equals
    chronological order, so instances compare correctly as plain strings.
    A trailing ':00' seconds component is accepted and dropped.
    """

    def __new__(cls, value: Any) -> "TimeOfDay":
        if isinstance(value, TimeOfDay):
            return value
        if isinstance(value, time):
            value = value.strftime("%H:%M")
        if not isinstance(value, str):
            raise ValueError(f"Time of day must be a string or time, got {type(value).__name__}")
        match = _TIME_PATTERN.match(value.strip())
        if not match:
            raise ValueError(f"Invalid time of day (expected HH:MM): {value!r}")
        return super().__new__(cls, f"{match.group(1)}:{match.group(2)}")

    @property
    def minutes(self) -> int:
        """Minutes since midnight."""
        return int(self[:2]) * 60 + int(self[3:])

    @classmethod
    def from_minutes(cls, total_minutes: int) -> "TimeOfDay":
        """
        Build a time of day from minutes since midnight.

        Raises:
            ValueError: If the value falls outside a single day
        """
        if not 0 <= total_minutes < MINUTES_PER_DAY:
            raise ValueError(f"Minutes out of range for a time of day: {total_minutes}")
        return cls(f"{total_minutes // 60:02d}:{total_minutes % 60:02d}")

    @classmethod
    def from_datetime(cls, value: datetime) -> "TimeOfDay":
        return cls(value.strftime("%H:%M"))

    def to_time(self) -> time:
        return time(int(self[:2]), int(self[3:]))


class ExceptionType(str, Enum):
    """Kind of one-off schedule exception."""
    UNAVAILABLE = "UNAVAILABLE"
    MODIFIED_HOURS = "MODIFIED_HOURS"


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status (owned by the booking workflow)."""
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @property
    def occupies_time(self) -> bool:
        """Only scheduled and confirmed appointments block a provider's time."""
        return self in (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


ACTIVE_STATUSES: Tuple[AppointmentStatus, ...] = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


class RecurrencePattern(str, Enum):
    """Repeat interval for a recurring appointment series."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, accepting snake_case and camelCase spellings."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _parse_bool(value: Any) -> bool:
    """Read a flag from a form payload, where "false" and "0" arrive as strings."""
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in ("true", "1", "yes", "on"):
            return True
        if normalized in ("false", "0", "no", "off", ""):
            return False
        raise ValueError(f"Invalid boolean value: {value!r}")
    return bool(value)


def _parse_date(value: Any) -> date_type:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    if isinstance(value, str):
        # Accept full timestamps and keep only the calendar date
        return date_type.fromisoformat(value[:10])
    raise ValueError(f"Invalid date: {value!r}")


def _optional_time(value: Any) -> Optional[TimeOfDay]:
    if value is None or value == "":
        return None
    return TimeOfDay(value)


@dataclass(frozen=True)
class WeeklyRuleData:
    """One recurring availability window for a day of the week."""
    day_of_week: DayOfWeek
    start_time: TimeOfDay
    end_time: TimeOfDay
    is_available: bool = True
    id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "day_of_week", DayOfWeek.parse(self.day_of_week))
        object.__setattr__(self, "start_time", TimeOfDay(self.start_time))
        object.__setattr__(self, "end_time", TimeOfDay(self.end_time))
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Weekly rule start_time must be before end_time ({self.start_time}-{self.end_time})"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WeeklyRuleData":
        return cls(
            day_of_week=_pick(data, "day_of_week", "dayOfWeek"),
            start_time=_pick(data, "start_time", "startTime"),
            end_time=_pick(data, "end_time", "endTime"),
            is_available=_parse_bool(_pick(data, "is_available", "isAvailable", default=True)),
            id=_pick(data, "id"),
        )


@dataclass(frozen=True)
class BreakPeriodData:
    """A break inside an otherwise available day; no day_of_week means every day."""
    start_time: TimeOfDay
    end_time: TimeOfDay
    day_of_week: Optional[DayOfWeek] = None
    title: Optional[str] = None
    is_recurring: bool = True
    id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.day_of_week is not None:
            object.__setattr__(self, "day_of_week", DayOfWeek.parse(self.day_of_week))
        object.__setattr__(self, "start_time", TimeOfDay(self.start_time))
        object.__setattr__(self, "end_time", TimeOfDay(self.end_time))
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Break start_time must be before end_time ({self.start_time}-{self.end_time})"
            )

    def applies_to(self, day_of_week: DayOfWeek) -> bool:
        return self.day_of_week is None or self.day_of_week == day_of_week

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BreakPeriodData":
        day = _pick(data, "day_of_week", "dayOfWeek")
        return cls(
            start_time=_pick(data, "start_time", "startTime"),
            end_time=_pick(data, "end_time", "endTime"),
            day_of_week=None if day in (None, "") else day,
            title=_pick(data, "title"),
            is_recurring=_parse_bool(_pick(data, "is_recurring", "isRecurring", default=True)),
            id=_pick(data, "id"),
        )


@dataclass(frozen=True)
class ScheduleExceptionData:
    """A date-specific override: full unavailability or modified hours."""
    date: date_type
    type: ExceptionType
    title: str = ""
    start_time: Optional[TimeOfDay] = None
    end_time: Optional[TimeOfDay] = None
    notes: Optional[str] = None
    id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", _parse_date(self.date))
        object.__setattr__(self, "type", ExceptionType(self.type))
        object.__setattr__(self, "start_time", _optional_time(self.start_time))
        object.__setattr__(self, "end_time", _optional_time(self.end_time))
        if self.type == ExceptionType.MODIFIED_HOURS:
            if self.start_time is None or self.end_time is None:
                raise ValueError("MODIFIED_HOURS exceptions require start_time and end_time")
            if self.start_time >= self.end_time:
                raise ValueError(
                    f"Exception start_time must be before end_time ({self.start_time}-{self.end_time})"
                )

    @property
    def is_unavailable(self) -> bool:
        return self.type == ExceptionType.UNAVAILABLE

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScheduleExceptionData":
        return cls(
            date=_pick(data, "date"),
            type=_pick(data, "type"),
            title=_pick(data, "title", default="") or "",
            start_time=_pick(data, "start_time", "startTime"),
            end_time=_pick(data, "end_time", "endTime"),
            notes=_pick(data, "notes"),
            id=_pick(data, "id"),
        )


@dataclass(frozen=True)
class ScheduleData:
    """
    Snapshot of a provider schedule with its nested rules, breaks and exceptions.

    Exceptions are limited to the date window requested from the repository.
    """
    id: str
    provider_id: str
    timezone: str = "UTC"
    weekly_rules: Tuple[WeeklyRuleData, ...] = field(default_factory=tuple)
    break_periods: Tuple[BreakPeriodData, ...] = field(default_factory=tuple)
    exceptions: Tuple[ScheduleExceptionData, ...] = field(default_factory=tuple)
    is_active: bool = True
    is_default: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "weekly_rules", tuple(self.weekly_rules))
        object.__setattr__(self, "break_periods", tuple(self.break_periods))
        object.__setattr__(self, "exceptions", tuple(self.exceptions))

    def rules_for_day(self, day_of_week: DayOfWeek) -> list[WeeklyRuleData]:
        """Available weekly rules for a day, ordered by start time."""
        rules = [r for r in self.weekly_rules if r.day_of_week == day_of_week and r.is_available]
        return sorted(rules, key=lambda r: (r.start_time, r.end_time))

    def breaks_for_day(self, day_of_week: DayOfWeek) -> list[BreakPeriodData]:
        return [b for b in self.break_periods if b.applies_to(day_of_week)]

    def exceptions_on(self, target_date: date_type) -> list[ScheduleExceptionData]:
        return [e for e in self.exceptions if e.date == target_date]


@dataclass(frozen=True)
class AppointmentData:
    """
    Read-only view of a booked appointment.

    `start` is a naive wall-clock datetime in the schedule's timezone.
    """
    id: str
    provider_id: str
    start: datetime
    duration_minutes: int = DEFAULT_APPOINTMENT_DURATION_MINUTES
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", AppointmentStatus(self.status))
        if not self.duration_minutes:
            object.__setattr__(self, "duration_minutes", DEFAULT_APPOINTMENT_DURATION_MINUTES)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    @property
    def occupies_time(self) -> bool:
        return self.status.occupies_time

    def localized(self, tz_name: str) -> "AppointmentData":
        """Return this appointment with `start` as naive wall-clock time in `tz_name`."""
        if self.start.tzinfo is None:
            return self
        return replace(self, start=to_schedule_local(self.start, tz_name))


@dataclass(frozen=True)
class ProviderSummary:
    """Active, verified provider listed in the multi-provider availability view."""
    id: str
    name: str
