"""
Registration service: validation and delegation in front of the storage backend.

Input is validated before anything reaches storage, so a rejected request
never leaves a partial row behind. Status only ever moves pending -> paid;
this module exposes no way to move it back.
"""

from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from eventreg.core import metrics
from eventreg.core.errors import NotFoundError, ValidationError, field_errors
from eventreg.core.logging import get_logger
from eventreg.models.registration import RegistrationStatus
from eventreg.schemas.registration import Registration, RegistrationCreate
from eventreg.storage.base import RegistrationStore

logger = get_logger(__name__)


def validate_registration(data: Union[RegistrationCreate, dict[str, Any]]) -> RegistrationCreate:
    if isinstance(data, RegistrationCreate):
        return data
    try:
        return RegistrationCreate.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(details=field_errors(e.errors())) from e


class RegistrationService:
    def __init__(self, store: RegistrationStore):
        self.store = store

    async def create(self, data: Union[RegistrationCreate, dict[str, Any]]) -> Registration:
        validated = validate_registration(data)
        registration = await self.store.create_registration(validated)
        metrics.registrations_created.inc()
        logger.info("registration_created", registration_id=registration.id, qty=registration.qty)
        return registration

    async def get(self, registration_id: int) -> Optional[Registration]:
        return await self.store.get_registration(registration_id)

    async def get_or_404(self, registration_id: int) -> Registration:
        registration = await self.store.get_registration(registration_id)
        if registration is None:
            raise NotFoundError("Registration not found")
        return registration

    async def list_all(self) -> list[Registration]:
        return await self.store.get_all_registrations()

    async def mark_paid(self, registration_id: int) -> bool:
        """Idempotent: repeating it on a paid registration is a no-op write."""
        updated = await self.store.update_registration_status(registration_id, RegistrationStatus.PAID)
        metrics.registration_updates.labels(field="status", result="applied" if updated else "missing").inc()
        if updated:
            logger.info("registration_marked_paid", registration_id=registration_id)
        return updated

    async def set_checked_in(self, registration_id: int, checked_in: bool) -> Registration:
        await self.get_or_404(registration_id)
        updated = await self.store.update_checked_in_status(registration_id, checked_in)
        metrics.registration_updates.labels(field="checked_in", result="applied" if updated else "missing").inc()
        logger.info("registration_checked_in_updated", registration_id=registration_id, checked_in=checked_in)
        return await self.get_or_404(registration_id)
