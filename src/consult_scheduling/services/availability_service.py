"""
Availability service for computing bookable slots over a date range.

This module merges the four schedule sources into per-slot availability flags:
date-specific exceptions, weekly rules, break periods and booked appointments.
The merge itself is a pure function over immutable snapshots; the service only
adds the repository reads around it.
"""

import asyncio
import logging
from datetime import date as date_type, timedelta
from typing import List, Optional, Sequence, Tuple, Union

from consult_scheduling.core.config import EngineSettings
from consult_scheduling.core.constants import (
    DAY_END_TIME,
    DAY_START_TIME,
    DEFAULT_BREAK_TITLE,
    EXISTING_APPOINTMENT_REASON,
    NOT_AVAILABLE_ON_DAY_REASON,
    OUTSIDE_MODIFIED_HOURS_REASON,
)
from consult_scheduling.services.schedule_repository import ScheduleRepository, call_repository
from consult_scheduling.shared_types.results import AvailabilitySlot
from consult_scheduling.shared_types.scheduling import (
    ACTIVE_STATUSES,
    AppointmentData,
    BreakPeriodData,
    DayOfWeek,
    ExceptionType,
    ProviderSummary,
    ScheduleData,
    ScheduleExceptionData,
)
from consult_scheduling.utils.datetime_utils import (
    ensure_date,
    iter_dates,
    minutes_from_midnight,
    start_of_day,
)
from consult_scheduling.utils.interval_utils import contains, overlaps
from consult_scheduling.utils.slot_utils import TimeSlot, generate_time_slots

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service class for availability operations.

    Computes per-slot availability for one provider or for every active,
    verified provider. Repository data is fetched once per provider per call.
    """

    def __init__(self, repository: ScheduleRepository, settings: Optional[EngineSettings] = None) -> None:
        self.repository = repository
        self.settings = settings or EngineSettings.from_env()

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return self.settings.repository_timeout_seconds if timeout is None else timeout

    @staticmethod
    def _validate_range(
        start_date: Union[date_type, str],
        end_date: Union[date_type, str]
    ) -> Tuple[date_type, date_type]:
        """
        Parse and validate a date range.

        Raises:
            ValueError: If a date is malformed or start_date is after end_date
        """
        start = ensure_date(start_date)
        end = ensure_date(end_date)
        if start > end:
            raise ValueError(f"start_date {start} is after end_date {end}")
        return start, end

    def _validate_duration(self, slot_duration_minutes: Optional[int]) -> int:
        """Apply the configured default and reject non-positive durations."""
        duration = slot_duration_minutes
        if duration is None:
            duration = self.settings.default_slot_duration_minutes
        if duration <= 0:
            raise ValueError(f"Slot duration must be positive, got {duration}")
        return duration

    async def compute_availability(
        self,
        provider_id: str,
        start_date: Union[date_type, str],
        end_date: Union[date_type, str],
        slot_duration_minutes: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> List[AvailabilitySlot]:
        """
        Compute availability slots for a single provider.

        Args:
            provider_id: Provider to compute slots for
            start_date: First day (date or YYYY-MM-DD)
            end_date: Last day, inclusive
            slot_duration_minutes: Slot length, defaults to the configured duration
            timeout: Seconds allowed per repository call

        Returns:
            Slots ordered by date then start time; empty if the provider has
            no active default schedule

        Raises:
            ValueError: If the range or duration is invalid
            SchedulingIndeterminateError: If schedule data could not be loaded
        """
        start, end = self._validate_range(start_date, end_date)
        duration = self._validate_duration(slot_duration_minutes)

        schedule, appointments = await self._fetch_provider_data(provider_id, start, end, timeout)
        if schedule is None:
            logger.info(f"No active default schedule for provider {provider_id}, skipping")
            return []

        return self.calculate_slots(schedule, appointments, start, end, duration)

    async def compute_all_providers_availability(
        self,
        start_date: Union[date_type, str],
        end_date: Union[date_type, str],
        slot_duration_minutes: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> List[AvailabilitySlot]:
        """
        Compute availability across all active, verified providers.

        Providers are computed concurrently (bounded by the configured limit).
        Each slot is tagged with provider_id/provider_name and the merged list
        is sorted by (date, start_time). A provider that fails contributes no
        slots instead of failing the whole view.

        Raises:
            ValueError: If the range or duration is invalid
            SchedulingIndeterminateError: If the provider list could not be loaded
        """
        start, end = self._validate_range(start_date, end_date)
        duration = self._validate_duration(slot_duration_minutes)

        providers = await call_repository(
            "get_active_providers",
            self.repository.get_active_providers(),
            self._timeout(timeout),
        )
        if not providers:
            logger.info("No active providers found")
            return []

        semaphore = asyncio.Semaphore(max(1, self.settings.max_concurrent_provider_queries))

        async def provider_slots(provider: ProviderSummary) -> List[AvailabilitySlot]:
            async with semaphore:
                try:
                    slots = await self.compute_availability(
                        provider.id, start, end, duration, timeout
                    )
                except Exception as e:
                    logger.exception(f"Availability query error for provider {provider.id}: {e}")
                    return []
            return [
                slot.model_copy(update={"provider_id": provider.id, "provider_name": provider.name})
                for slot in slots
            ]

        results = await asyncio.gather(*(provider_slots(p) for p in providers))

        all_slots = [slot for provider_result in results for slot in provider_result]
        all_slots.sort(key=lambda s: (s.date, s.start_time))
        return all_slots

    async def _fetch_provider_data(
        self,
        provider_id: str,
        start: date_type,
        end: date_type,
        timeout: Optional[float]
    ) -> Tuple[Optional[ScheduleData], List[AppointmentData]]:
        """
        Fetch the schedule snapshot and active appointments for a date range.

        Appointments are loaded from the day before `start` so bookings that
        cross midnight into the range still block slots.
        """
        schedule = await call_repository(
            "get_active_default_schedule",
            self.repository.get_active_default_schedule(provider_id, start, end),
            self._timeout(timeout),
        )
        if schedule is None:
            return None, []

        appointments = await call_repository(
            "get_appointments",
            self.repository.get_appointments(
                provider_id,
                start_of_day(start - timedelta(days=1)),
                start_of_day(end + timedelta(days=1)),
                ACTIVE_STATUSES,
            ),
            self._timeout(timeout),
        )
        return schedule, [a.localized(schedule.timezone) for a in appointments if a.occupies_time]

    @staticmethod
    def calculate_slots(
        schedule: ScheduleData,
        appointments: Sequence[AppointmentData],
        start: date_type,
        end: date_type,
        duration_minutes: int
    ) -> List[AvailabilitySlot]:
        """Pure merge over every day in [start, end]. Inputs are never mutated."""
        slots: List[AvailabilitySlot] = []
        for day in iter_dates(start, end):
            day_start = start_of_day(day)
            day_end = day_start + timedelta(days=1)
            day_appointments = [a for a in appointments if a.start < day_end and a.end > day_start]
            slots.extend(
                AvailabilityService.calculate_day_slots(schedule, day_appointments, day, duration_minutes)
            )
        return slots

    @staticmethod
    def calculate_day_slots(
        schedule: ScheduleData,
        appointments: Sequence[AppointmentData],
        day: date_type,
        duration_minutes: int
    ) -> List[AvailabilitySlot]:
        """
        Merge schedule sources for one day into availability slots.

        Precedence is fixed and determines the reported reason:
        1. UNAVAILABLE exception: the whole day is one unavailable slot
        2. Weekly rules: no available rule makes the whole day unavailable
        3. Per candidate slot, conflicts are collected in order:
           MODIFIED_HOURS exception, break periods, appointments.
           The first conflict becomes the slot's reason.

        Args:
            schedule: Schedule snapshot (exceptions for `day` included)
            appointments: Active appointments touching `day`
            day: Calendar day
            duration_minutes: Slot length

        Returns:
            Slots for the day ordered by rule then time
        """
        day_of_week = DayOfWeek.from_date(day)
        date_str = day.isoformat()
        exceptions = schedule.exceptions_on(day)

        unavailable = next((e for e in exceptions if e.is_unavailable), None)
        if unavailable is not None:
            logger.debug(f"{date_str}: unavailable exception '{unavailable.title}'")
            return [AvailabilitySlot(
                date=date_str,
                start_time=DAY_START_TIME,
                end_time=DAY_END_TIME,
                is_available=False,
                reason=unavailable.title or "Unavailable",
            )]

        rules = schedule.rules_for_day(day_of_week)
        if not rules:
            return [AvailabilitySlot(
                date=date_str,
                start_time=DAY_START_TIME,
                end_time=DAY_END_TIME,
                is_available=False,
                reason=NOT_AVAILABLE_ON_DAY_REASON,
            )]

        modified_hours = [e for e in exceptions if e.type == ExceptionType.MODIFIED_HOURS]
        breaks = schedule.breaks_for_day(day_of_week)
        busy = [
            (minutes_from_midnight(a.start, day), minutes_from_midnight(a.end, day))
            for a in appointments
            if a.occupies_time
        ]

        slots: List[AvailabilitySlot] = []
        for rule in rules:
            for candidate in generate_time_slots(rule.start_time, rule.end_time, duration_minutes):
                reason = AvailabilityService._first_conflict(candidate, modified_hours, breaks, busy)
                slots.append(AvailabilitySlot(
                    date=date_str,
                    start_time=candidate.start,
                    end_time=candidate.end,
                    is_available=reason is None,
                    reason=reason,
                ))
        return slots

    @staticmethod
    def _first_conflict(
        slot: TimeSlot,
        modified_hours: Sequence[ScheduleExceptionData],
        breaks: Sequence[BreakPeriodData],
        busy: Sequence[Tuple[int, int]]
    ) -> Optional[str]:
        """Return the description of the first conflict for a slot, or None if it is free."""
        if modified_hours and not any(
            contains(e.start_time, e.end_time, slot.start, slot.end) for e in modified_hours
        ):
            return modified_hours[0].title or OUTSIDE_MODIFIED_HOURS_REASON

        for break_period in breaks:
            if overlaps(slot.start, slot.end, break_period.start_time, break_period.end_time):
                return break_period.title or DEFAULT_BREAK_TITLE

        slot_start, slot_end = slot.start.minutes, slot.end.minutes
        for busy_start, busy_end in busy:
            if overlaps(slot_start, slot_end, busy_start, busy_end):
                return EXISTING_APPOINTMENT_REASON

        return None
