"""
Schedule change validation service.

Before a provider's edited weekly schedule is saved, every future active
appointment bound to the schedule is checked against the proposed rules,
breaks and exceptions. The result lists each affected appointment so the
editing UI can warn the provider. Nothing is modified.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from consult_scheduling.core.config import EngineSettings
from consult_scheduling.services.schedule_repository import (
    ScheduleNotFoundError,
    ScheduleRepository,
    call_repository,
)
from consult_scheduling.shared_types.results import (
    AffectedAppointment,
    ConflictDetail,
    ConflictingItem,
    ConflictType,
    ScheduleValidationResult,
    Severity,
)
from consult_scheduling.shared_types.scheduling import (
    ACTIVE_STATUSES,
    AppointmentData,
    BreakPeriodData,
    DayOfWeek,
    ScheduleExceptionData,
    WeeklyRuleData,
)
from consult_scheduling.utils.datetime_utils import local_now, minutes_from_midnight
from consult_scheduling.utils.interval_utils import contains, overlaps

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _coerce(items: Iterable[Union[T, Mapping[str, Any]]], cls: Any) -> Tuple[T, ...]:
    """Accept snapshot objects or plain dicts from the editing UI."""
    return tuple(item if isinstance(item, cls) else cls.from_dict(item) for item in items)


class ScheduleChangeValidator:
    """
    Service class for validating proposed schedule edits against booked appointments.

    Args:
        repository: Schedule repository
        settings: Engine settings (horizon and timeout)
        clock: Returns the current wall-clock time for a timezone name;
            defaults to the real clock
    """

    def __init__(
        self,
        repository: ScheduleRepository,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Callable[[str], datetime]] = None
    ) -> None:
        self.repository = repository
        self.settings = settings or EngineSettings.from_env()
        self.clock = clock or local_now

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return self.settings.repository_timeout_seconds if timeout is None else timeout

    async def validate_changes(
        self,
        schedule_id: str,
        new_weekly_rules: Iterable[Union[WeeklyRuleData, Mapping[str, Any]]],
        new_break_periods: Iterable[Union[BreakPeriodData, Mapping[str, Any]]],
        new_exceptions: Iterable[Union[ScheduleExceptionData, Mapping[str, Any]]] = (),
        timeout: Optional[float] = None
    ) -> ScheduleValidationResult:
        """
        Validate a proposed schedule against its upcoming appointments.

        Args:
            schedule_id: Schedule being edited
            new_weekly_rules: Proposed weekly availability rules
            new_break_periods: Proposed break periods
            new_exceptions: Proposed exceptions (only UNAVAILABLE ones affect bookings)
            timeout: Seconds allowed per repository call

        Returns:
            ScheduleValidationResult; valid iff no appointment is affected

        Raises:
            ValueError: If a proposed rule, break or exception is malformed
            ScheduleNotFoundError: If the schedule does not exist
            SchedulingIndeterminateError: If schedule data could not be loaded
        """
        rules = _coerce(new_weekly_rules, WeeklyRuleData)
        breaks = _coerce(new_break_periods, BreakPeriodData)
        exceptions = _coerce(new_exceptions, ScheduleExceptionData)

        schedule = await call_repository(
            "get_schedule",
            self.repository.get_schedule(schedule_id),
            self._timeout(timeout),
        )
        if schedule is None:
            raise ScheduleNotFoundError(f"Schedule {schedule_id} not found")

        now = self.clock(schedule.timezone)
        horizon = now + timedelta(days=self.settings.schedule_change_horizon_days)
        appointments = await call_repository(
            "get_schedule_appointments",
            self.repository.get_schedule_appointments(schedule_id, now, horizon, ACTIVE_STATUSES),
            self._timeout(timeout),
        )

        affected: List[AffectedAppointment] = []
        conflicts: List[ConflictDetail] = []
        for appointment in appointments:
            if not appointment.occupies_time:
                continue
            appointment = appointment.localized(schedule.timezone)
            appointment_conflicts = self.check_appointment(appointment, rules, breaks, exceptions)
            if not appointment_conflicts:
                continue
            conflicts.extend(appointment_conflicts)
            first = appointment_conflicts[0]
            affected.append(AffectedAppointment(
                id=appointment.id,
                appointment_date=appointment.start.isoformat(),
                patient_name=appointment.patient_name or "Unknown Patient",
                conflict_type=first.type,
                severity=first.severity,
            ))

        if affected:
            logger.info(f"Schedule {schedule_id} change affects {len(affected)} upcoming appointments")
        return ScheduleValidationResult(
            is_valid=not affected,
            affected_appointments=affected,
            conflicts=conflicts,
        )

    @staticmethod
    def check_appointment(
        appointment: AppointmentData,
        rules: Sequence[WeeklyRuleData],
        breaks: Sequence[BreakPeriodData],
        exceptions: Sequence[ScheduleExceptionData]
    ) -> List[ConflictDetail]:
        """Conflicts for one appointment under the proposed schedule, in check order."""
        day = appointment.start.date()
        day_of_week = DayOfWeek.from_date(day)
        start_min = minutes_from_midnight(appointment.start, day)
        end_min = minutes_from_midnight(appointment.end, day)
        when = appointment.start.strftime("%Y-%m-%d %H:%M")
        item = ConflictingItem(
            id=appointment.id,
            title=f"Appointment with {appointment.patient_name or 'Unknown Patient'}",
            start_time=appointment.start.strftime("%H:%M"),
            end_time=appointment.end.strftime("%H:%M"),
            type="appointment",
        )

        conflicts: List[ConflictDetail] = []
        day_rules = [r for r in rules if r.day_of_week == day_of_week and r.is_available]
        if not any(contains(r.start_time.minutes, r.end_time.minutes, start_min, end_min) for r in day_rules):
            conflicts.append(ConflictDetail(
                type=ConflictType.OUTSIDE_HOURS,
                severity=Severity.ERROR,
                message=f"Appointment on {when} would be outside new working hours",
                conflicting_item=item,
            ))

        for break_period in breaks:
            if break_period.applies_to(day_of_week) and overlaps(
                start_min, end_min, break_period.start_time.minutes, break_period.end_time.minutes
            ):
                conflicts.append(ConflictDetail(
                    type=ConflictType.BREAK,
                    severity=Severity.ERROR,
                    message=f"Appointment on {when} would conflict with break: {break_period.title or 'Break'}",
                    conflicting_item=item,
                ))

        for exception in exceptions:
            if exception.is_unavailable and exception.date == day:
                conflicts.append(ConflictDetail(
                    type=ConflictType.UNAVAILABLE,
                    severity=Severity.ERROR,
                    message=f"Appointment on {when} falls on unavailable date: {exception.title}",
                    conflicting_item=item,
                ))

        return conflicts
