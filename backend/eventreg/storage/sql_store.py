"""
Relational registration store on SQLAlchemy's async ORM.

Every operation runs in its own short session and commits immediately.
Mutations are single-row, single-statement UPDATEs keyed by primary key,
so they are safe to retry and rely on the database for atomicity.
No explicit locks are taken.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventreg.core.errors import StorageError
from eventreg.core.logging import get_logger
from eventreg.db.session import dispose_engine
from eventreg.models.registration import RegistrationRecord, RegistrationStatus
from eventreg.schemas.registration import Registration, RegistrationCreate

logger = get_logger(__name__)


class SqlRegistrationStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], owns_engine: bool = False):
        self._session_factory = session_factory
        self._owns_engine = owns_engine

    async def create_registration(self, data: RegistrationCreate) -> Registration:
        record = RegistrationRecord(
            name=data.name,
            email=data.email,
            phone=data.phone or None,
            qty=data.qty,
            dietary=data.dietary or None,
            notes=data.notes or None,
            status=RegistrationStatus.PENDING.value,
            checked_in=False,
        )
        try:
            async with self._session_factory() as session:
                session.add(record)
                await session.commit()
                await session.refresh(record)
        except SQLAlchemyError as e:
            logger.error("registration_insert_failed", error=str(e))
            raise StorageError() from e

        return Registration.model_validate(record)

    async def get_registration(self, registration_id: int) -> Optional[Registration]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(RegistrationRecord).where(RegistrationRecord.id == registration_id)
                )
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("registration_read_failed", registration_id=registration_id, error=str(e))
            raise StorageError() from e

        return Registration.model_validate(record) if record else None

    async def get_all_registrations(self) -> list[Registration]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(RegistrationRecord).order_by(
                        RegistrationRecord.created_at.desc(),
                        RegistrationRecord.id.desc(),
                    )
                )
                records = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("registration_list_failed", error=str(e))
            raise StorageError() from e

        return [Registration.model_validate(r) for r in records]

    async def update_registration_status(self, registration_id: int, status: RegistrationStatus) -> bool:
        return await self._update(registration_id, status=RegistrationStatus(status).value)

    async def update_checked_in_status(self, registration_id: int, checked_in: bool) -> bool:
        return await self._update(registration_id, checked_in=checked_in)

    async def _update(self, registration_id: int, **values) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(RegistrationRecord)
                    .where(RegistrationRecord.id == registration_id)
                    .values(**values)
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("registration_update_failed", registration_id=registration_id, error=str(e))
            raise StorageError() from e

        if result.rowcount == 0:
            logger.warning("registration_update_no_rows", registration_id=registration_id, fields=list(values))
            return False
        return True

    async def close(self) -> None:
        if self._owns_engine:
            await dispose_engine()
