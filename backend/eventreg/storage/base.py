"""
Storage interface for registration records.

Backends conform structurally; there is no shared base class.

Implementations:
- SqlRegistrationStore: SQLAlchemy async (PostgreSQL, or SQLite as an embedded file store)
- SheetsRegistrationStore: a Google Sheets worksheet
"""

from typing import Optional, Protocol, runtime_checkable

from eventreg.models.registration import RegistrationStatus
from eventreg.schemas.registration import Registration, RegistrationCreate


@runtime_checkable
class RegistrationStore(Protocol):
    async def create_registration(self, data: RegistrationCreate) -> Registration:
        """Insert a pending, not-checked-in registration and return it with id and created_at."""
        ...

    async def get_registration(self, registration_id: int) -> Optional[Registration]:
        """Return the registration, or None when it does not exist."""
        ...

    async def get_all_registrations(self) -> list[Registration]:
        """All registrations, newest first."""
        ...

    async def update_registration_status(self, registration_id: int, status: RegistrationStatus) -> bool:
        """
        Blind idempotent set. Returns False when no row matched;
        a missing id is not an error.
        """
        ...

    async def update_checked_in_status(self, registration_id: int, checked_in: bool) -> bool:
        """Same contract as update_registration_status."""
        ...

    async def close(self) -> None:
        ...
