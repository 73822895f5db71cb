"""
Alternative slot service for suggesting bookable times near a rejected request.
"""

import logging
from datetime import date as date_type, datetime, timedelta
from typing import TYPE_CHECKING, List, Optional, Union

from consult_scheduling.services.schedule_repository import call_repository
from consult_scheduling.shared_types.results import AlternativeSlot
from consult_scheduling.shared_types.scheduling import DayOfWeek
from consult_scheduling.utils.datetime_utils import ensure_date
from consult_scheduling.utils.slot_utils import generate_time_slots

if TYPE_CHECKING:
    from consult_scheduling.services.conflict_detection_service import ConflictDetectionService

logger = logging.getLogger(__name__)


class AlternativeSlotFinder:
    """
    Finds valid slots on the preferred date and the days after it.

    Candidates come from the schedule's weekly rules and are re-checked with
    the conflict detector, so an alternative is never offered unless a booking
    at that time would pass every check.
    """

    def __init__(self, conflict_service: "ConflictDetectionService", search_days: Optional[int] = None) -> None:
        self.conflict_service = conflict_service
        self.search_days = conflict_service.settings.alternative_search_days if search_days is None else search_days

    async def find_alternatives(
        self,
        provider_id: str,
        preferred_date: Union[date_type, str],
        duration_minutes: int,
        max_alternatives: Optional[int] = None,
        exclude_appointment_id: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> List[AlternativeSlot]:
        """
        Find up to `max_alternatives` valid slots.

        Args:
            provider_id: Provider to search
            preferred_date: First day to search (date or YYYY-MM-DD)
            duration_minutes: Length of the wanted appointment; candidates step by it
            max_alternatives: Number of slots to return, defaults to the configured value
            exclude_appointment_id: Appointment being rescheduled, ignored as a conflict
            timeout: Seconds allowed per repository call

        Returns:
            Valid slots in day then time order; empty if the provider has no schedule

        Raises:
            SchedulingIndeterminateError: If schedule data could not be loaded
        """
        if duration_minutes <= 0:
            raise ValueError(f"Appointment duration must be positive, got {duration_minutes}")
        first_day = ensure_date(preferred_date)
        limit = self.conflict_service.settings.max_alternatives if max_alternatives is None else max_alternatives
        if limit <= 0 or self.search_days <= 0:
            return []
        last_day = first_day + timedelta(days=self.search_days - 1)

        repository = self.conflict_service.repository
        schedule = await call_repository(
            "get_active_default_schedule",
            repository.get_active_default_schedule(provider_id, first_day, last_day),
            self.conflict_service.settings.repository_timeout_seconds if timeout is None else timeout,
        )
        if schedule is None:
            return []

        alternatives: List[AlternativeSlot] = []
        for offset in range(self.search_days):
            day = first_day + timedelta(days=offset)
            for rule in schedule.rules_for_day(DayOfWeek.from_date(day)):
                for candidate in generate_time_slots(rule.start_time, rule.end_time, duration_minutes):
                    start = datetime.combine(day, candidate.start.to_time())
                    result = await self.conflict_service.check_booking(
                        provider_id,
                        start,
                        duration_minutes,
                        exclude_appointment_id=exclude_appointment_id,
                        suggest_alternatives=False,
                        timeout=timeout,
                    )
                    if not result.is_valid:
                        continue
                    alternatives.append(AlternativeSlot(
                        date=day.isoformat(),
                        start_time=candidate.start,
                        end_time=candidate.end,
                    ))
                    if len(alternatives) >= limit:
                        return alternatives

        logger.debug(
            f"Found {len(alternatives)} alternatives for provider {provider_id} "
            f"from {first_day} over {self.search_days} days"
        )
        return alternatives
