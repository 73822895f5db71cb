"""
Test utilities for the scheduling engine tests.

Provides an in-memory ScheduleRepository and schedule builders so service
tests run without a database.
"""

import asyncio
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set

from consult_scheduling.shared_types import (
    AppointmentData,
    AppointmentStatus,
    BreakPeriodData,
    DayOfWeek,
    ProviderSummary,
    ScheduleData,
    ScheduleExceptionData,
    WeeklyRuleData,
)

WEEKDAYS = (
    DayOfWeek.MONDAY,
    DayOfWeek.TUESDAY,
    DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY,
    DayOfWeek.FRIDAY,
)


def weekday_schedule(
    provider_id: str = "provider-1",
    schedule_id: str = "schedule-1",
    start_time: str = "09:00",
    end_time: str = "17:00",
    days: Iterable[DayOfWeek] = WEEKDAYS,
    break_periods: Sequence[BreakPeriodData] = (),
    exceptions: Sequence[ScheduleExceptionData] = (),
    timezone: str = "UTC"
) -> ScheduleData:
    """Build a schedule with the same working window on each of `days`."""
    return ScheduleData(
        id=schedule_id,
        provider_id=provider_id,
        timezone=timezone,
        weekly_rules=tuple(
            WeeklyRuleData(day_of_week=day, start_time=start_time, end_time=end_time, id=f"rule-{int(day)}")
            for day in days
        ),
        break_periods=tuple(break_periods),
        exceptions=tuple(exceptions),
    )


class InMemoryScheduleRepository:
    """
    ScheduleRepository double backed by dicts.

    Follows the port contract: exceptions are limited to the requested window
    and appointments are filtered by start in [start, end) and status.
    """

    def __init__(self) -> None:
        self.schedules: Dict[str, ScheduleData] = {}
        self.appointments: List[AppointmentData] = []
        self.providers: List[ProviderSummary] = []
        self.calls: List[str] = []

    def add_provider(self, provider_id: str, name: str) -> None:
        self.providers.append(ProviderSummary(id=provider_id, name=name))

    def add_schedule(self, schedule: ScheduleData) -> None:
        self.schedules[schedule.id] = schedule

    def add_appointment(self, appointment: AppointmentData) -> None:
        self.appointments.append(appointment)

    async def get_active_default_schedule(
        self,
        provider_id: str,
        window_start: date,
        window_end: date
    ) -> Optional[ScheduleData]:
        self.calls.append("get_active_default_schedule")
        for schedule in self.schedules.values():
            if schedule.provider_id == provider_id and schedule.is_active and schedule.is_default:
                return replace(
                    schedule,
                    exceptions=tuple(e for e in schedule.exceptions if window_start <= e.date <= window_end),
                )
        return None

    async def get_schedule(self, schedule_id: str) -> Optional[ScheduleData]:
        self.calls.append("get_schedule")
        return self.schedules.get(schedule_id)

    async def get_appointments(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus]
    ) -> List[AppointmentData]:
        self.calls.append("get_appointments")
        wanted: Set[AppointmentStatus] = set(statuses)
        return sorted(
            (
                a for a in self.appointments
                if a.provider_id == provider_id and start <= a.start < end and a.status in wanted
            ),
            key=lambda a: a.start,
        )

    async def get_schedule_appointments(
        self,
        schedule_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus]
    ) -> List[AppointmentData]:
        self.calls.append("get_schedule_appointments")
        schedule = self.schedules.get(schedule_id)
        if schedule is None:
            return []
        return await self.get_appointments(schedule.provider_id, start, end, statuses)

    async def get_active_providers(self) -> List[ProviderSummary]:
        self.calls.append("get_active_providers")
        return list(self.providers)


class FailingScheduleRepository(InMemoryScheduleRepository):
    """Raises a connection error for the listed providers."""

    def __init__(self, failing_provider_ids: Iterable[str] = ()) -> None:
        super().__init__()
        self.failing_provider_ids = set(failing_provider_ids)

    async def get_active_default_schedule(
        self,
        provider_id: str,
        window_start: date,
        window_end: date
    ) -> Optional[ScheduleData]:
        if provider_id in self.failing_provider_ids:
            raise ConnectionError(f"database unavailable for {provider_id}")
        return await super().get_active_default_schedule(provider_id, window_start, window_end)


class SlowScheduleRepository(InMemoryScheduleRepository):
    """Sleeps before answering schedule lookups, to exercise timeouts."""

    def __init__(self, delay_seconds: float) -> None:
        super().__init__()
        self.delay_seconds = delay_seconds

    async def get_active_default_schedule(
        self,
        provider_id: str,
        window_start: date,
        window_end: date
    ) -> Optional[ScheduleData]:
        await asyncio.sleep(self.delay_seconds)
        return await super().get_active_default_schedule(provider_id, window_start, window_end)


def make_appointment(
    start: datetime,
    duration_minutes: int = 30,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    appointment_id: str = "appt-1",
    provider_id: str = "provider-1",
    patient_id: str = "patient-1",
    patient_name: Optional[str] = "Jane Doe"
) -> AppointmentData:
    """Build an appointment snapshot with sensible defaults."""
    return AppointmentData(
        id=appointment_id,
        provider_id=provider_id,
        start=start,
        duration_minutes=duration_minutes,
        status=status,
        patient_id=patient_id,
        patient_name=patient_name,
    )
