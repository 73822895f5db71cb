"""
SQLAlchemy implementation of the schedule repository port.

Queries are blocking, so each call runs in a worker thread with its own
session and converts ORM rows into immutable snapshots before the session
closes. The engine never holds ORM objects.

This adapter is read-only. Check-then-insert races between two bookings are
not prevented here: the booking workflow must guard inserts at the storage
layer (a PostgreSQL exclusion constraint over provider_id and the appointment
time range, or SELECT ... FOR UPDATE on the provider's schedule row) and
re-run the conflict check when that guard rejects an insert.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from consult_scheduling.core.database import SessionLocal, get_db_context
from consult_scheduling.models import (
    Appointment,
    Patient,
    Provider,
    ProviderSchedule,
)
from consult_scheduling.shared_types.scheduling import (
    AppointmentData,
    AppointmentStatus,
    BreakPeriodData,
    ProviderSummary,
    ScheduleData,
    ScheduleExceptionData,
    WeeklyRuleData,
)

logger = logging.getLogger(__name__)


class SqlAlchemyScheduleRepository:
    """
    Schedule repository backed by the ORM models.

    Args:
        session_factory: sessionmaker used to open one session per call
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self.session_factory = session_factory

    async def get_active_default_schedule(
        self,
        provider_id: str,
        window_start: date,
        window_end: date
    ) -> Optional[ScheduleData]:
        return await asyncio.to_thread(self._load_active_default_schedule, provider_id, window_start, window_end)

    async def get_schedule(self, schedule_id: str) -> Optional[ScheduleData]:
        return await asyncio.to_thread(self._load_schedule, schedule_id)

    async def get_appointments(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus]
    ) -> List[AppointmentData]:
        return await asyncio.to_thread(self._load_appointments, provider_id, start, end, statuses)

    async def get_schedule_appointments(
        self,
        schedule_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus]
    ) -> List[AppointmentData]:
        return await asyncio.to_thread(self._load_schedule_appointments, schedule_id, start, end, statuses)

    async def get_active_providers(self) -> List[ProviderSummary]:
        return await asyncio.to_thread(self._load_active_providers)

    def _load_active_default_schedule(
        self,
        provider_id: str,
        window_start: date,
        window_end: date
    ) -> Optional[ScheduleData]:
        with get_db_context(self.session_factory) as db:
            schedule = db.scalars(
                select(ProviderSchedule)
                .options(
                    selectinload(ProviderSchedule.weekly_availability),
                    selectinload(ProviderSchedule.break_periods),
                    selectinload(ProviderSchedule.exceptions),
                )
                .where(
                    ProviderSchedule.provider_id == provider_id,
                    ProviderSchedule.is_active.is_(True),
                    ProviderSchedule.is_default.is_(True),
                )
                .order_by(ProviderSchedule.updated_at.desc())
            ).first()
            if schedule is None:
                logger.debug(f"No active default schedule for provider {provider_id}")
                return None
            return self._to_schedule_data(schedule, window_start, window_end)

    def _load_schedule(self, schedule_id: str) -> Optional[ScheduleData]:
        with get_db_context(self.session_factory) as db:
            schedule = db.get(ProviderSchedule, schedule_id)
            if schedule is None:
                return None
            return self._to_schedule_data(schedule)

    def _load_appointments(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus]
    ) -> List[AppointmentData]:
        with get_db_context(self.session_factory) as db:
            return self._query_appointments(db, provider_id, start, end, statuses)

    def _load_schedule_appointments(
        self,
        schedule_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus]
    ) -> List[AppointmentData]:
        with get_db_context(self.session_factory) as db:
            schedule = db.get(ProviderSchedule, schedule_id)
            if schedule is None:
                return []
            return self._query_appointments(db, schedule.provider_id, start, end, statuses)

    def _load_active_providers(self) -> List[ProviderSummary]:
        with get_db_context(self.session_factory) as db:
            providers = db.scalars(
                select(Provider)
                .where(Provider.is_active.is_(True), Provider.is_verified.is_(True))
                .order_by(Provider.name)
            ).all()
            return [ProviderSummary(id=p.id, name=p.name) for p in providers]

    @staticmethod
    def _query_appointments(
        db: Session,
        provider_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus]
    ) -> List[AppointmentData]:
        rows = db.execute(
            select(Appointment, Patient.full_name)
            .outerjoin(Patient, Appointment.patient_id == Patient.id)
            .where(
                Appointment.provider_id == provider_id,
                Appointment.appointment_date >= start,
                Appointment.appointment_date < end,
                Appointment.status.in_([AppointmentStatus(s).value for s in statuses]),
            )
            .order_by(Appointment.appointment_date)
        ).all()
        return [
            AppointmentData(
                id=appointment.id,
                provider_id=appointment.provider_id,
                start=appointment.appointment_date,
                duration_minutes=appointment.duration or 0,
                status=appointment.status,
                patient_id=appointment.patient_id,
                patient_name=patient_name,
            )
            for appointment, patient_name in rows
        ]

    @staticmethod
    def _to_schedule_data(
        schedule: ProviderSchedule,
        window_start: Optional[date] = None,
        window_end: Optional[date] = None
    ) -> ScheduleData:
        """Convert a schedule row and its children, keeping exceptions inside the window."""
        exceptions = [
            e for e in schedule.exceptions
            if (window_start is None or e.date >= window_start) and (window_end is None or e.date <= window_end)
        ]
        return ScheduleData(
            id=schedule.id,
            provider_id=schedule.provider_id,
            timezone=schedule.timezone or "UTC",
            is_active=schedule.is_active,
            is_default=schedule.is_default,
            weekly_rules=tuple(
                WeeklyRuleData(
                    day_of_week=rule.day_of_week,
                    start_time=rule.start_time,
                    end_time=rule.end_time,
                    is_available=rule.is_available,
                    id=rule.id,
                )
                for rule in schedule.weekly_availability
            ),
            break_periods=tuple(
                BreakPeriodData(
                    start_time=b.start_time,
                    end_time=b.end_time,
                    day_of_week=b.day_of_week,
                    title=b.title,
                    is_recurring=b.is_recurring,
                    id=b.id,
                )
                for b in schedule.break_periods
            ),
            exceptions=tuple(
                ScheduleExceptionData(
                    date=e.date,
                    type=e.type,
                    title=e.title or "",
                    start_time=e.start_time,
                    end_time=e.end_time,
                    notes=e.notes,
                    id=e.id,
                )
                for e in sorted(exceptions, key=lambda e: e.date)
            ),
        )
