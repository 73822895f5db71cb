"""
Schedule repository port.

The scheduling engine reads schedules, appointments and providers only through
this interface. Services receive an implementation in their constructor, so
tests can pass an in-memory double and deployments the SQLAlchemy adapter.

Every call goes through `call_repository`, which applies the caller's timeout
and turns infrastructure failures into SchedulingIndeterminateError. An
indeterminate outcome is never reported as "available".
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Awaitable, List, Optional, Protocol, Sequence, TypeVar

from consult_scheduling.shared_types.scheduling import (
    AppointmentData,
    AppointmentStatus,
    ProviderSummary,
    ScheduleData,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SchedulingError(Exception):
    """Base class for scheduling engine failures."""
    pass


class SchedulingIndeterminateError(SchedulingError):
    """
    Raised when the engine cannot reach a verdict because repository data was unavailable.

    Covers timeouts and repository failures (connection loss, query errors).
    Callers retry or degrade; they must not treat the slot as available.
    """
    pass


class ScheduleNotFoundError(SchedulingError):
    """Raised when a schedule id does not resolve to a schedule."""
    pass


class ScheduleRepository(Protocol):
    """Read port for schedule data. All methods may suspend."""

    async def get_active_default_schedule(
        self,
        provider_id: str,
        window_start: date,
        window_end: date
    ) -> Optional[ScheduleData]:
        """
        Load the provider's active default schedule.

        Exceptions are limited to dates in [window_start, window_end].
        Returns None when the provider has no active default schedule.
        """
        ...

    async def get_schedule(self, schedule_id: str) -> Optional[ScheduleData]:
        """Load a schedule by id with all of its rules, breaks and exceptions."""
        ...

    async def get_appointments(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus]
    ) -> List[AppointmentData]:
        """Load the provider's appointments starting in [start, end) with one of `statuses`."""
        ...

    async def get_schedule_appointments(
        self,
        schedule_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus]
    ) -> List[AppointmentData]:
        """Load appointments of the provider owning `schedule_id` starting in [start, end)."""
        ...

    async def get_active_providers(self) -> List[ProviderSummary]:
        """List active, verified providers."""
        ...


async def call_repository(
    operation: str,
    awaitable: Awaitable[T],
    timeout: Optional[float]
) -> T:
    """
    Await a repository call with a timeout.

    Args:
        operation: Short description used in error messages and logs
        awaitable: The pending repository call
        timeout: Seconds to wait, or None to wait indefinitely

    Returns:
        The repository result

    Raises:
        SchedulingIndeterminateError: On timeout or repository failure
        asyncio.CancelledError: If the calling task is cancelled
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        logger.warning(f"Repository call '{operation}' timed out after {timeout}s")
        raise SchedulingIndeterminateError(f"{operation} timed out after {timeout}s") from e
    except SchedulingError:
        raise
    except Exception as e:
        logger.exception(f"Repository call '{operation}' failed: {e}")
        raise SchedulingIndeterminateError(f"{operation} failed: {e}") from e
