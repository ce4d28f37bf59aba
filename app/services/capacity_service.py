"""Daily capacity and queue number allocation.

A booking key is (doctor_id, location_id, appointment_date). ``reserve`` takes
the key's counter row lock with a single conditional UPDATE, so concurrent
bookings for the same key run one after another while bookings for other
keys never wait on each other. The lock is held until the surrounding
transaction commits or rolls back.
"""

from datetime import date
from uuid import UUID

import structlog
from sqlalchemy import and_, func, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import CapacityExhaustedException
from app.models.appointments import appointments
from app.models.queue_counters import queue_counters
from app.services.booking_state import COMMITTED_STATUSES

logger = structlog.get_logger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}

_COMMITTED_VALUES = sorted(status.value for status in COMMITTED_STATUSES)


class CapacityGuard:
    """Capacity checks and queue numbers for one database session."""

    def __init__(self, db: AsyncSession):
        """Initialize guard with database session."""
        self.db = db

    @staticmethod
    def _counter_key(doctor_id: UUID, location_id: UUID, appointment_date: date):
        return and_(
            queue_counters.c.doctor_id == doctor_id,
            queue_counters.c.location_id == location_id,
            queue_counters.c.appointment_date == appointment_date,
        )

    async def committed_count(
        self,
        doctor_id: UUID,
        location_id: UUID,
        appointment_date: date,
    ) -> int:
        """Count appointments occupying capacity (not cancelled, not no-show)."""
        stmt = (
            select(func.count())
            .select_from(appointments)
            .where(
                appointments.c.doctor_id == doctor_id,
                appointments.c.location_id == location_id,
                appointments.c.appointment_date == appointment_date,
                appointments.c.status.in_(_COMMITTED_VALUES),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def peek_next_queue_number(
        self,
        doctor_id: UUID,
        location_id: UUID,
        appointment_date: date,
    ) -> int:
        """Queue number the next booking would get, without reserving it."""
        stmt = select(queue_counters.c.last_queue_number).where(
            self._counter_key(doctor_id, location_id, appointment_date)
        )
        result = await self.db.execute(stmt)
        return (result.scalar() or 0) + 1

    async def _ensure_counter(
        self,
        doctor_id: UUID,
        location_id: UUID,
        appointment_date: date,
    ) -> None:
        """Create the key's counter row unless it exists."""
        dialect = self.db.get_bind().dialect.name
        try:
            insert = _UPSERT_INSERTS[dialect]
        except KeyError:
            raise RuntimeError(f"Unsupported database dialect for queue counters: {dialect}")

        stmt = (
            insert(queue_counters)
            .values(
                doctor_id=doctor_id,
                location_id=location_id,
                appointment_date=appointment_date,
                last_queue_number=0,
            )
            .on_conflict_do_nothing(
                index_elements=["doctor_id", "location_id", "appointment_date"]
            )
        )
        await self.db.execute(stmt)

    async def reserve(
        self,
        doctor_id: UUID,
        location_id: UUID,
        appointment_date: date,
        capacity: int,
    ) -> int:
        """
        Check remaining capacity and allocate the next queue number.

        Must run inside the booking transaction. The caller rolls back on any
        failure, which also returns the allocated number to the counter.

        Args:
            doctor_id: Doctor ID
            location_id: Practice or virtual location ID
            appointment_date: Calendar day
            capacity: Maximum committed appointments for the day

        Returns:
            Allocated queue number, starting at 1

        Raises:
            CapacityExhaustedException: If the day is already full
        """
        await self._ensure_counter(doctor_id, location_id, appointment_date)

        stmt = (
            update(queue_counters)
            .where(self._counter_key(doctor_id, location_id, appointment_date))
            .values(
                last_queue_number=queue_counters.c.last_queue_number + 1,
                updated_at=func.now(),
            )
            .returning(queue_counters.c.last_queue_number)
        )
        result = await self.db.execute(stmt)
        queue_number = result.scalar_one()

        # Counted under the counter lock, so no concurrent booking can slip in
        committed = await self.committed_count(doctor_id, location_id, appointment_date)
        if committed >= capacity:
            logger.info(
                "booking_rejected_capacity",
                doctor_id=str(doctor_id),
                location_id=str(location_id),
                appointment_date=appointment_date.isoformat(),
                committed=committed,
                capacity=capacity,
            )
            raise CapacityExhaustedException()

        return queue_number
