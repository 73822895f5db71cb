"""
Conflict detection service for validating proposed bookings.

Runs every check against a single proposed appointment and accumulates the
results. Conflicts are returned as data, never raised, so the booking UI can
show every reason at once. Only repository failures raise.

The check is advisory: two concurrent calls can both pass for overlapping
times. The booking-creation collaborator must enforce atomicity at the
storage layer (exclusion constraint on provider and time range, or a row lock
on the provider's schedule) and call check_booking again when that constraint
rejects an insert, to produce the user-facing message.
"""

import logging
from datetime import date as date_type, datetime, timedelta
from typing import List, Optional, Sequence, Tuple, Union

from consult_scheduling.core.config import EngineSettings
from consult_scheduling.core.constants import DEFAULT_BREAK_TITLE, MAX_RECURRING_OCCURRENCES
from consult_scheduling.services.alternative_slot_service import AlternativeSlotFinder
from consult_scheduling.services.schedule_repository import ScheduleRepository, call_repository
from consult_scheduling.shared_types.results import (
    ConflictCheckResult,
    ConflictDetail,
    ConflictingItem,
    ConflictType,
    OccurrenceCheck,
    RecurringCheckResult,
    Severity,
)
from consult_scheduling.shared_types.scheduling import (
    ACTIVE_STATUSES,
    AppointmentData,
    DayOfWeek,
    ExceptionType,
    RecurrencePattern,
    ScheduleData,
)
from consult_scheduling.utils.datetime_utils import (
    add_months,
    ensure_date,
    ensure_datetime,
    minutes_from_midnight,
    start_of_day,
    to_schedule_local,
)
from consult_scheduling.utils.interval_utils import contains, gap_between, overlaps

logger = logging.getLogger(__name__)


def _hhmm(value: datetime) -> str:
    return value.strftime("%H:%M")


class ConflictDetectionService:
    """
    Service class for single-booking validation.

    All checks of one call observe the same repository snapshot, fetched once
    at the start of the call.
    """

    def __init__(self, repository: ScheduleRepository, settings: Optional[EngineSettings] = None) -> None:
        self.repository = repository
        self.settings = settings or EngineSettings.from_env()
        self._alternative_finder: Optional[AlternativeSlotFinder] = None

    @property
    def alternative_finder(self) -> AlternativeSlotFinder:
        if self._alternative_finder is None:
            self._alternative_finder = AlternativeSlotFinder(self)
        return self._alternative_finder

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return self.settings.repository_timeout_seconds if timeout is None else timeout

    async def check_booking(
        self,
        provider_id: str,
        appointment_start: Union[datetime, str],
        duration_minutes: int,
        patient_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
        suggest_alternatives: bool = True,
        timeout: Optional[float] = None
    ) -> ConflictCheckResult:
        """
        Validate a proposed appointment.

        Checks run in order and all of them run: working hours, schedule
        exceptions, existing appointments, break periods, buffer time. A missing
        schedule short-circuits since nothing else can be evaluated.

        Args:
            provider_id: Provider being booked
            appointment_start: Start instant (naive schedule time, aware datetime or ISO string)
            duration_minutes: Appointment length
            patient_id: Patient being booked, used to word conflicts with their own bookings
            exclude_appointment_id: Appointment to ignore (the booking being rescheduled)
            suggest_alternatives: Attach alternative slots when the booking is invalid
            timeout: Seconds allowed per repository call

        Returns:
            ConflictCheckResult, valid iff no error-severity conflict exists

        Raises:
            ValueError: If duration is not positive or the start cannot be parsed
            SchedulingIndeterminateError: If schedule data could not be loaded
        """
        if duration_minutes <= 0:
            raise ValueError(f"Appointment duration must be positive, got {duration_minutes}")
        requested = ensure_datetime(appointment_start)

        schedule, appointments = await self._load_snapshot(provider_id, requested, duration_minutes, timeout)
        if schedule is None:
            return ConflictCheckResult(
                is_valid=False,
                conflicts=[ConflictDetail(
                    type=ConflictType.UNAVAILABLE,
                    severity=Severity.ERROR,
                    message="Provider has no active schedule configured",
                )],
            )

        start = to_schedule_local(requested, schedule.timezone)
        end = start + timedelta(minutes=duration_minutes)
        others = [
            a for a in appointments
            if a.occupies_time and (exclude_appointment_id is None or a.id != exclude_appointment_id)
        ]

        conflicts: List[ConflictDetail] = []
        conflicts.extend(self.check_working_hours(schedule, start, end))
        conflicts.extend(self.check_schedule_exceptions(schedule, start, end))
        conflicts.extend(self.find_overlapping_appointments(others, start, end, patient_id))
        conflicts.extend(self.check_break_periods(schedule, start, end))
        warnings = self.check_buffer_time(others, start, end, self.settings.buffer_minutes)

        is_valid = not any(c.is_error for c in conflicts)
        suggestions: List[ConflictDetail] = []
        if not is_valid and suggest_alternatives:
            alternatives = await self.alternative_finder.find_alternatives(
                provider_id,
                start.date(),
                duration_minutes,
                max_alternatives=self.settings.max_alternatives,
                exclude_appointment_id=exclude_appointment_id,
                timeout=timeout,
            )
            if alternatives:
                suggestions.append(ConflictDetail(
                    type=ConflictType.APPOINTMENT,
                    severity=Severity.INFO,
                    message="Alternative time slots available",
                    suggested_alternatives=alternatives,
                ))

        logger.debug(
            f"Booking check for provider {provider_id} at {start.isoformat()} ({duration_minutes}m): "
            f"valid={is_valid}, conflicts={len(conflicts)}, warnings={len(warnings)}"
        )
        return ConflictCheckResult(
            is_valid=is_valid,
            conflicts=conflicts,
            warnings=warnings,
            suggestions=suggestions,
        )

    async def is_slot_available(
        self,
        provider_id: str,
        appointment_start: Union[datetime, str],
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> bool:
        """Boolean probe over check_booking, without alternative suggestions."""
        result = await self.check_booking(
            provider_id,
            appointment_start,
            duration_minutes,
            exclude_appointment_id=exclude_appointment_id,
            suggest_alternatives=False,
            timeout=timeout,
        )
        return result.is_valid

    async def check_double_booking(
        self,
        provider_id: str,
        appointment_start: Union[datetime, str],
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> List[ConflictDetail]:
        """
        Return only the double-booking conflicts for a proposed appointment.

        Used by the booking collaborator after a storage-level constraint
        rejects an insert. Naive starts are compared as stored; an aware start
        is converted into the provider's schedule timezone (UTC when the
        provider has no active schedule).
        """
        if duration_minutes <= 0:
            raise ValueError(f"Appointment duration must be positive, got {duration_minutes}")
        start = ensure_datetime(appointment_start)
        tz_name = "UTC"
        if start.tzinfo is not None:
            day = start.date()
            schedule = await call_repository(
                "get_active_default_schedule",
                self.repository.get_active_default_schedule(
                    provider_id, day - timedelta(days=1), day + timedelta(days=1)
                ),
                self._timeout(timeout),
            )
            if schedule is not None:
                tz_name = schedule.timezone
            start = to_schedule_local(start, tz_name)
        end = start + timedelta(minutes=duration_minutes)
        appointments = await self._load_appointments(provider_id, start, end, timeout)
        others = [
            a.localized(tz_name) for a in appointments
            if a.occupies_time and (exclude_appointment_id is None or a.id != exclude_appointment_id)
        ]
        return self.find_overlapping_appointments(others, start, end)

    async def check_recurring_booking(
        self,
        provider_id: str,
        first_start: Union[datetime, str],
        duration_minutes: int,
        pattern: Union[RecurrencePattern, str],
        count: Optional[int] = None,
        until: Optional[Union[date_type, str]] = None,
        patient_id: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> RecurringCheckResult:
        """
        Validate every occurrence of a recurring series.

        Occurrences repeat DAILY, WEEKLY or MONTHLY from `first_start` until
        `count` occurrences or the `until` date (inclusive), whichever ends
        first, capped at MAX_RECURRING_OCCURRENCES. Nothing is created.

        Raises:
            ValueError: If neither count nor until is given
        """
        if count is None and until is None:
            raise ValueError("Recurring booking requires count or until")
        occurrences = self.expand_recurrence(
            ensure_datetime(first_start),
            RecurrencePattern(pattern),
            count,
            ensure_date(until) if until is not None else None,
        )

        checks: List[OccurrenceCheck] = []
        for occurrence in occurrences:
            result = await self.check_booking(
                provider_id,
                occurrence,
                duration_minutes,
                patient_id=patient_id,
                suggest_alternatives=False,
                timeout=timeout,
            )
            checks.append(OccurrenceCheck(start=occurrence, result=result))

        return RecurringCheckResult(
            is_valid=all(c.result.is_valid for c in checks),
            occurrences=checks,
        )

    @staticmethod
    def expand_recurrence(
        first_start: datetime,
        pattern: RecurrencePattern,
        count: Optional[int] = None,
        until: Optional[date_type] = None
    ) -> List[datetime]:
        """Expand a recurrence into its occurrence start times."""
        limit = MAX_RECURRING_OCCURRENCES if count is None else min(count, MAX_RECURRING_OCCURRENCES)
        occurrences: List[datetime] = []
        for index in range(limit):
            if pattern == RecurrencePattern.DAILY:
                occurrence = first_start + timedelta(days=index)
            elif pattern == RecurrencePattern.WEEKLY:
                occurrence = first_start + timedelta(weeks=index)
            else:
                occurrence = add_months(first_start, index)
            if until is not None and occurrence.date() > until:
                break
            occurrences.append(occurrence)
        return occurrences

    async def _load_snapshot(
        self,
        provider_id: str,
        requested: datetime,
        duration_minutes: int,
        timeout: Optional[float]
    ) -> Tuple[Optional[ScheduleData], List[AppointmentData]]:
        """
        Fetch the schedule and nearby active appointments once for a check.

        The appointment window spans the day before through the day after the
        booking, which covers the buffer on both sides and bookings that
        cross midnight.
        """
        day = requested.date()
        schedule = await call_repository(
            "get_active_default_schedule",
            self.repository.get_active_default_schedule(
                provider_id, day - timedelta(days=1), day + timedelta(days=1)
            ),
            self._timeout(timeout),
        )
        if schedule is None:
            return None, []

        start = to_schedule_local(requested, schedule.timezone)
        end = start + timedelta(minutes=duration_minutes)
        appointments = await self._load_appointments(provider_id, start, end, timeout)
        return schedule, [a.localized(schedule.timezone) for a in appointments]

    async def _load_appointments(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        timeout: Optional[float]
    ) -> List[AppointmentData]:
        window_start = min(
            start_of_day(start.date() - timedelta(days=1)),
            start - timedelta(minutes=self.settings.buffer_minutes),
        )
        window_end = max(
            start_of_day(end.date() + timedelta(days=1)),
            end + timedelta(minutes=self.settings.buffer_minutes),
        )
        return await call_repository(
            "get_appointments",
            self.repository.get_appointments(provider_id, window_start, window_end, ACTIVE_STATUSES),
            self._timeout(timeout),
        )

    @staticmethod
    def check_working_hours(schedule: ScheduleData, start: datetime, end: datetime) -> List[ConflictDetail]:
        """
        Check that the booking lies entirely within one available weekly rule.

        A booking crossing midnight is never contained, since rules end by 23:59.
        """
        day = start.date()
        rules = schedule.rules_for_day(DayOfWeek.from_date(day))
        if not rules:
            return [ConflictDetail(
                type=ConflictType.OUTSIDE_HOURS,
                severity=Severity.ERROR,
                message="Provider is not available on this day",
            )]

        start_min = minutes_from_midnight(start, day)
        end_min = minutes_from_midnight(end, day)
        if any(contains(r.start_time.minutes, r.end_time.minutes, start_min, end_min) for r in rules):
            return []

        nearest = min(
            rules,
            key=lambda r: (max(gap_between(r.start_time.minutes, r.end_time.minutes, start_min, end_min), 0),
                           r.start_time),
        )
        return [ConflictDetail(
            type=ConflictType.OUTSIDE_HOURS,
            severity=Severity.ERROR,
            message="Appointment is outside provider working hours",
            conflicting_item=ConflictingItem(
                id=nearest.id or "working-hours",
                title="Working Hours",
                start_time=nearest.start_time,
                end_time=nearest.end_time,
                type="schedule",
            ),
        )]

    @staticmethod
    def check_schedule_exceptions(schedule: ScheduleData, start: datetime, end: datetime) -> List[ConflictDetail]:
        """
        Check exceptions on the booking's date.

        Each UNAVAILABLE exception is its own conflict. With MODIFIED_HOURS
        exceptions present, the booking must fit inside one of their windows.
        """
        day = start.date()
        exceptions = schedule.exceptions_on(day)
        conflicts: List[ConflictDetail] = []

        for exception in exceptions:
            if exception.is_unavailable:
                conflicts.append(ConflictDetail(
                    type=ConflictType.UNAVAILABLE,
                    severity=Severity.ERROR,
                    message=f"Provider is unavailable: {exception.title}",
                    conflicting_item=ConflictingItem(
                        id=exception.id or "exception",
                        title=exception.title,
                        start_time=exception.start_time or "00:00",
                        end_time=exception.end_time or "23:59",
                        type="exception",
                    ),
                ))

        modified_hours = [e for e in exceptions if e.type == ExceptionType.MODIFIED_HOURS]
        if modified_hours:
            start_min = minutes_from_midnight(start, day)
            end_min = minutes_from_midnight(end, day)
            if not any(
                contains(e.start_time.minutes, e.end_time.minutes, start_min, end_min)
                for e in modified_hours
            ):
                exception = modified_hours[0]
                conflicts.append(ConflictDetail(
                    type=ConflictType.OUTSIDE_HOURS,
                    severity=Severity.ERROR,
                    message=f"Appointment is outside modified hours: {exception.title}",
                    conflicting_item=ConflictingItem(
                        id=exception.id or "modified-hours",
                        title=exception.title,
                        start_time=exception.start_time,
                        end_time=exception.end_time,
                        type="exception",
                    ),
                ))

        return conflicts

    @staticmethod
    def find_overlapping_appointments(
        appointments: Sequence[AppointmentData],
        start: datetime,
        end: datetime,
        patient_id: Optional[str] = None
    ) -> List[ConflictDetail]:
        """One conflict per existing appointment whose interval overlaps [start, end)."""
        conflicts: List[ConflictDetail] = []
        for appointment in appointments:
            if not overlaps(start, end, appointment.start, appointment.end):
                continue
            patient_name = appointment.patient_name or "Unknown Patient"
            if patient_id is not None and appointment.patient_id == patient_id:
                message = f"Patient already has an appointment at {_hhmm(appointment.start)}"
            else:
                message = (
                    f"Double booking conflict with existing appointment for {patient_name} "
                    f"at {_hhmm(appointment.start)}-{_hhmm(appointment.end)}"
                )
            conflicts.append(ConflictDetail(
                type=ConflictType.APPOINTMENT,
                severity=Severity.ERROR,
                message=message,
                conflicting_item=ConflictingItem(
                    id=appointment.id,
                    title=f"Appointment with {patient_name}",
                    start_time=_hhmm(appointment.start),
                    end_time=_hhmm(appointment.end),
                    type="appointment",
                ),
            ))
        return conflicts

    @staticmethod
    def check_break_periods(schedule: ScheduleData, start: datetime, end: datetime) -> List[ConflictDetail]:
        """One conflict per break (day-specific or every-day) overlapping the booking."""
        day = start.date()
        start_min = minutes_from_midnight(start, day)
        end_min = minutes_from_midnight(end, day)
        conflicts: List[ConflictDetail] = []
        for break_period in schedule.breaks_for_day(DayOfWeek.from_date(day)):
            if overlaps(start_min, end_min, break_period.start_time.minutes, break_period.end_time.minutes):
                title = break_period.title or DEFAULT_BREAK_TITLE
                conflicts.append(ConflictDetail(
                    type=ConflictType.BREAK,
                    severity=Severity.ERROR,
                    message=f"Appointment conflicts with break period: {title}",
                    conflicting_item=ConflictingItem(
                        id=break_period.id or "break",
                        title=break_period.title or "Break Period",
                        start_time=break_period.start_time,
                        end_time=break_period.end_time,
                        type="break",
                    ),
                ))
        return conflicts

    @staticmethod
    def check_buffer_time(
        appointments: Sequence[AppointmentData],
        start: datetime,
        end: datetime,
        buffer_minutes: int
    ) -> List[ConflictDetail]:
        """
        Warn about appointments closer than `buffer_minutes` to either end of the booking.

        The gap is measured from the booking's end to the other start, and from
        the other end to the booking's start. Overlapping appointments are
        already errors and are not repeated as warnings.
        """
        if buffer_minutes <= 0:
            return []
        day = start.date()
        start_min = minutes_from_midnight(start, day)
        end_min = minutes_from_midnight(end, day)
        warnings: List[ConflictDetail] = []
        for appointment in appointments:
            gap = gap_between(
                start_min, end_min,
                minutes_from_midnight(appointment.start, day),
                minutes_from_midnight(appointment.end, day),
            )
            if 0 <= gap < buffer_minutes:
                warnings.append(ConflictDetail(
                    type=ConflictType.BUFFER_VIOLATION,
                    severity=Severity.WARNING,
                    message=f"Less than {buffer_minutes} minutes between appointments",
                    conflicting_item=ConflictingItem(
                        id=appointment.id,
                        title="Adjacent Appointment",
                        start_time=_hhmm(appointment.start),
                        end_time=_hhmm(appointment.end),
                        type="appointment",
                    ),
                ))
        return warnings
