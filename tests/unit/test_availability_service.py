"""
Unit tests for the availability service.

Covers the per-day merge (exception, weekly rule, break, appointment
precedence), single-provider and multi-provider queries, and repository
failure handling.
"""

from datetime import date, datetime, timedelta

import pytest

from consult_scheduling.services.availability_service import AvailabilityService
from consult_scheduling.services.schedule_repository import SchedulingIndeterminateError
from consult_scheduling.shared_types import (
    AppointmentStatus,
    BreakPeriodData,
    DayOfWeek,
    ExceptionType,
    ScheduleData,
    ScheduleExceptionData,
    WeeklyRuleData,
)
from tests.utils import (
    FailingScheduleRepository,
    InMemoryScheduleRepository,
    SlowScheduleRepository,
    make_appointment,
    weekday_schedule,
)


def _available_starts(slots):
    return [s.start_time for s in slots if s.is_available]


class TestCalculateDaySlots:
    """Test the pure per-day merge."""

    def test_scenario_a_full_day_all_available(self, monday):
        """Test a Monday 09:00-17:00 rule yields 16 available 30 minute slots."""
        slots = AvailabilityService.calculate_day_slots(weekday_schedule(), [], monday, 30)

        assert len(slots) == 16
        assert all(s.is_available for s in slots)
        assert all(s.date == "2025-01-06" for s in slots)
        assert (slots[0].start_time, slots[-1].end_time) == ("09:00", "17:00")

    def test_scenario_b_break_blocks_two_slots(self, monday):
        """Test a Monday 12:00-13:00 break marks 12:00 and 12:30 unavailable."""
        schedule = weekday_schedule(break_periods=[
            BreakPeriodData(day_of_week=DayOfWeek.MONDAY, start_time="12:00", end_time="13:00", title="Lunch"),
        ])

        slots = AvailabilityService.calculate_day_slots(schedule, [], monday, 30)

        unavailable = [s for s in slots if not s.is_available]
        assert [s.start_time for s in unavailable] == ["12:00", "12:30"]
        assert all(s.reason == "Lunch" for s in unavailable)
        assert len(_available_starts(slots)) == 14

    def test_untitled_break_reason(self, monday):
        """Test a break without title is reported as 'Break'."""
        schedule = weekday_schedule(break_periods=[BreakPeriodData(start_time="12:00", end_time="12:30")])

        slots = AvailabilityService.calculate_day_slots(schedule, [], monday, 30)

        assert [s.reason for s in slots if not s.is_available] == ["Break"]

    def test_break_on_other_day_ignored(self, monday):
        """Test a Tuesday break does not affect Monday."""
        schedule = weekday_schedule(break_periods=[
            BreakPeriodData(day_of_week=DayOfWeek.TUESDAY, start_time="12:00", end_time="13:00"),
        ])

        slots = AvailabilityService.calculate_day_slots(schedule, [], monday, 30)

        assert all(s.is_available for s in slots)

    def test_scenario_c_unavailable_exception(self, monday):
        """Test an UNAVAILABLE exception makes the whole date unavailable with its title."""
        schedule = weekday_schedule(exceptions=[
            ScheduleExceptionData(date=monday, type=ExceptionType.UNAVAILABLE, title="Medical Conference"),
        ])

        slots = AvailabilityService.calculate_day_slots(schedule, [], monday, 30)

        assert slots
        assert all(not s.is_available for s in slots)
        assert all(s.reason == "Medical Conference" for s in slots)
        assert (slots[0].start_time, slots[0].end_time) == ("00:00", "23:59")

    def test_exception_beats_appointment_and_break(self, monday):
        """Test exception precedence over every other source."""
        schedule = weekday_schedule(
            break_periods=[BreakPeriodData(start_time="12:00", end_time="13:00", title="Lunch")],
            exceptions=[ScheduleExceptionData(date=monday, type="UNAVAILABLE", title="Sick leave")],
        )
        appointments = [make_appointment(datetime(2025, 1, 6, 10, 0))]

        slots = AvailabilityService.calculate_day_slots(schedule, appointments, monday, 30)

        assert [s.reason for s in slots] == ["Sick leave"]

    def test_day_without_rules(self):
        """Test a Saturday without rules is one unavailable whole-day slot."""
        slots = AvailabilityService.calculate_day_slots(weekday_schedule(), [], date(2025, 1, 11), 30)

        assert len(slots) == 1
        assert not slots[0].is_available
        assert slots[0].reason == "Not available on this day"

    def test_modified_hours_restrict_the_day(self, monday):
        """Test only slots inside the modified window stay available."""
        schedule = weekday_schedule(exceptions=[
            ScheduleExceptionData(
                date=monday, type="MODIFIED_HOURS", start_time="10:00", end_time="12:00", title="Half day"
            ),
        ])

        slots = AvailabilityService.calculate_day_slots(schedule, [], monday, 30)

        assert _available_starts(slots) == ["10:00", "10:30", "11:00", "11:30"]
        assert {s.reason for s in slots if not s.is_available} == {"Half day"}

    def test_appointment_blocks_slot(self, monday):
        """Test a confirmed appointment blocks exactly its slot."""
        appointments = [make_appointment(datetime(2025, 1, 6, 10, 0))]

        slots = AvailabilityService.calculate_day_slots(weekday_schedule(), appointments, monday, 30)

        blocked = [s for s in slots if not s.is_available]
        assert [(s.start_time, s.reason) for s in blocked] == [("10:00", "Existing appointment")]

    def test_longer_appointment_blocks_partial_slots(self, monday):
        """Test a 45 minute appointment at 10:15 blocks three 15 minute slots."""
        appointments = [make_appointment(datetime(2025, 1, 6, 10, 15), duration_minutes=45)]

        slots = AvailabilityService.calculate_day_slots(weekday_schedule(), appointments, monday, 15)

        assert [s.start_time for s in slots if not s.is_available] == ["10:15", "10:30", "10:45"]

    def test_cancelled_appointment_does_not_block(self, monday):
        """Test cancelled appointments never occupy time."""
        appointments = [make_appointment(datetime(2025, 1, 6, 10, 0), status=AppointmentStatus.CANCELLED)]

        slots = AvailabilityService.calculate_day_slots(weekday_schedule(), appointments, monday, 30)

        assert all(s.is_available for s in slots)

    def test_appointment_crossing_midnight_blocks_next_day(self, monday):
        """Test a late Sunday appointment running past midnight blocks early Monday slots."""
        schedule = weekday_schedule(start_time="00:00", end_time="03:00")
        appointments = [make_appointment(datetime(2025, 1, 5, 23, 30), duration_minutes=120)]

        slots = AvailabilityService.calculate_day_slots(schedule, appointments, monday, 30)

        assert [s.start_time for s in slots if not s.is_available] == ["00:00", "00:30", "01:00"]

    def test_split_shift_rules(self, monday):
        """Test several rules on one day each produce their own slots."""
        schedule = ScheduleData(
            id="schedule-1",
            provider_id="provider-1",
            weekly_rules=[
                WeeklyRuleData(day_of_week=DayOfWeek.MONDAY, start_time="14:00", end_time="15:00"),
                WeeklyRuleData(day_of_week=DayOfWeek.MONDAY, start_time="09:00", end_time="10:00"),
            ],
        )

        slots = AvailabilityService.calculate_day_slots(schedule, [], monday, 30)

        assert [s.start_time for s in slots] == ["09:00", "09:30", "14:00", "14:30"]

    def test_inputs_are_not_mutated(self, monday):
        """Test the merge leaves its inputs untouched."""
        schedule = weekday_schedule()
        appointments = [make_appointment(datetime(2025, 1, 6, 10, 0))]
        before = (schedule, list(appointments))

        AvailabilityService.calculate_slots(schedule, appointments, monday, monday + timedelta(days=6), 30)

        assert (schedule, appointments) == before


class TestComputeAvailability:
    """Test single-provider availability through the repository."""

    @pytest.mark.asyncio
    async def test_week_range(self, repository, settings, monday):
        """Test a full week returns rule slots on weekdays and one block per weekend day."""
        service = AvailabilityService(repository, settings)

        slots = await service.compute_availability("provider-1", monday, monday + timedelta(days=6))

        assert len(slots) == 5 * 16 + 2
        assert sum(1 for s in slots if s.is_available) == 80
        assert slots == sorted(slots, key=lambda s: (s.date, s.start_time))

    @pytest.mark.asyncio
    async def test_string_dates(self, repository, settings):
        """Test YYYY-MM-DD strings are accepted."""
        service = AvailabilityService(repository, settings)

        slots = await service.compute_availability("provider-1", "2025-01-06", "2025-01-06", 60)

        assert len(slots) == 8

    @pytest.mark.asyncio
    async def test_repository_appointments_block_slots(self, repository, settings, monday):
        """Test appointments loaded from the repository are merged."""
        repository.add_appointment(make_appointment(datetime(2025, 1, 6, 9, 0)))
        repository.add_appointment(make_appointment(
            datetime(2025, 1, 6, 11, 0), status=AppointmentStatus.COMPLETED, appointment_id="appt-2"
        ))
        service = AvailabilityService(repository, settings)

        slots = await service.compute_availability("provider-1", monday, monday)

        assert [s.start_time for s in slots if not s.is_available] == ["09:00"]

    @pytest.mark.asyncio
    async def test_unknown_provider_returns_empty(self, repository, settings, monday):
        """Test a provider without an active default schedule yields no slots."""
        service = AvailabilityService(repository, settings)

        assert await service.compute_availability("nobody", monday, monday) == []

    @pytest.mark.asyncio
    async def test_inverted_range_raises(self, repository, settings, monday):
        """Test start after end is rejected."""
        service = AvailabilityService(repository, settings)

        with pytest.raises(ValueError):
            await service.compute_availability("provider-1", monday, monday - timedelta(days=1))

    @pytest.mark.asyncio
    async def test_bad_date_string_raises(self, repository, settings):
        """Test malformed date strings are rejected."""
        service = AvailabilityService(repository, settings)

        with pytest.raises(ValueError):
            await service.compute_availability("provider-1", "2025-13-01", "2025-13-02")

    @pytest.mark.asyncio
    async def test_timeout_is_indeterminate(self, settings, monday):
        """Test a slow repository surfaces as indeterminate, never as availability."""
        repo = SlowScheduleRepository(delay_seconds=1.0)
        repo.add_schedule(weekday_schedule())
        service = AvailabilityService(repo, settings)

        with pytest.raises(SchedulingIndeterminateError):
            await service.compute_availability("provider-1", monday, monday, timeout=0.01)

    @pytest.mark.asyncio
    async def test_repository_error_is_indeterminate(self, settings, monday):
        """Test repository failures propagate as indeterminate with the cause chained."""
        repo = FailingScheduleRepository(failing_provider_ids=["provider-1"])
        service = AvailabilityService(repo, settings)

        with pytest.raises(SchedulingIndeterminateError) as exc_info:
            await service.compute_availability("provider-1", monday, monday)

        assert isinstance(exc_info.value.__cause__, ConnectionError)


    @pytest.mark.asyncio
    async def test_zero_duration_is_not_replaced_by_default(self, repository, settings, monday):
        """Test an explicit zero duration raises rather than falling back to the default."""
        service = AvailabilityService(repository, settings)

        with pytest.raises(ValueError, match="got 0"):
            await service.compute_availability("provider-1", monday, monday, 0)

    @pytest.mark.asyncio
    async def test_omitted_duration_uses_default(self, repository, settings, monday):
        """Test leaving the duration out uses the configured slot length."""
        service = AvailabilityService(repository, settings)

        slots = await service.compute_availability("provider-1", monday, monday)

        assert len(slots) == 16


class TestComputeAllProvidersAvailability:
    """Test the multi-provider availability view."""

    @pytest.mark.asyncio
    async def test_slots_tagged_and_sorted(self, settings, monday):
        """Test slots from every provider are tagged and merged in date/time order."""
        repo = InMemoryScheduleRepository()
        repo.add_provider("provider-1", "Dr. Ada Lovelace")
        repo.add_provider("provider-2", "Dr. Grace Hopper")
        repo.add_schedule(weekday_schedule())
        repo.add_schedule(weekday_schedule(
            provider_id="provider-2", schedule_id="schedule-2", start_time="08:00", end_time="10:00"
        ))
        service = AvailabilityService(repo, settings)

        slots = await service.compute_all_providers_availability(monday, monday)

        assert len(slots) == 16 + 4
        assert slots[0].provider_id == "provider-2"
        assert slots[0].provider_name == "Dr. Grace Hopper"
        assert slots[0].start_time == "08:00"
        assert {s.provider_id for s in slots} == {"provider-1", "provider-2"}
        assert [(s.date, s.start_time) for s in slots] == sorted((s.date, s.start_time) for s in slots)

    @pytest.mark.asyncio
    async def test_provider_without_schedule_skipped(self, settings, monday):
        """Test a provider without schedule contributes nothing."""
        repo = InMemoryScheduleRepository()
        repo.add_provider("provider-1", "Dr. Ada Lovelace")
        repo.add_provider("provider-3", "Dr. No Schedule")
        repo.add_schedule(weekday_schedule())
        service = AvailabilityService(repo, settings)

        slots = await service.compute_all_providers_availability(monday, monday)

        assert {s.provider_id for s in slots} == {"provider-1"}

    @pytest.mark.asyncio
    async def test_failing_provider_contributes_no_slots(self, settings, monday):
        """Test one failing provider does not fail the aggregate view."""
        repo = FailingScheduleRepository(failing_provider_ids=["provider-2"])
        repo.add_provider("provider-1", "Dr. Ada Lovelace")
        repo.add_provider("provider-2", "Dr. Grace Hopper")
        repo.add_schedule(weekday_schedule())
        repo.add_schedule(weekday_schedule(provider_id="provider-2", schedule_id="schedule-2"))
        service = AvailabilityService(repo, settings)

        slots = await service.compute_all_providers_availability(monday, monday)

        assert len(slots) == 16
        assert {s.provider_id for s in slots} == {"provider-1"}

    @pytest.mark.asyncio
    async def test_no_providers(self, settings, monday):
        """Test an empty provider list yields no slots."""
        service = AvailabilityService(InMemoryScheduleRepository(), settings)

        assert await service.compute_all_providers_availability(monday, monday) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [0, -30])
    async def test_invalid_duration_raises_before_querying(self, settings, monday, duration):
        """Test a bad slot duration is rejected instead of reading as no availability."""
        repo = InMemoryScheduleRepository()
        repo.add_provider("provider-1", "Dr. Ada Lovelace")
        repo.add_schedule(weekday_schedule())
        service = AvailabilityService(repo, settings)

        with pytest.raises(ValueError, match="Slot duration must be positive"):
            await service.compute_all_providers_availability(monday, monday, duration)
        assert repo.calls == []

    @pytest.mark.asyncio
    async def test_invalid_range_raises_before_querying(self, settings, monday):
        """Test range validation happens before any repository call."""
        repo = InMemoryScheduleRepository()
        service = AvailabilityService(repo, settings)

        with pytest.raises(ValueError):
            await service.compute_all_providers_availability(monday, monday - timedelta(days=1))
        assert repo.calls == []
