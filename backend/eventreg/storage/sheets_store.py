"""
Google Sheets registration store.

Rows live in a single worksheet, one registration per row, with a header in
row 1. The Sheets client is blocking, so every call is pushed to the default
executor. Ids are allocated as max(existing) + 1; rows are never deleted so
an id is never handed out twice within one process. Allocation is serialized
with an in-process lock because the sheet has no sequence of its own.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from googleapiclient.errors import HttpError

from eventreg.core.errors import ConfigurationError, StorageError
from eventreg.core.logging import get_logger
from eventreg.db.base import utcnow
from eventreg.models.registration import RegistrationStatus
from eventreg.schemas.registration import Registration, RegistrationCreate

logger = get_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

COLUMNS = ["id", "name", "email", "phone", "qty", "dietary", "notes", "status", "checked_in", "created_at"]
STATUS_COLUMN = "H"
CHECKED_IN_COLUMN = "I"
LAST_COLUMN = "J"


def build_sheets_service(client_email: str, private_key: str):
    """Authenticate with a service account and return a Sheets v4 resource."""
    if not client_email or not private_key:
        raise ConfigurationError("Google Sheets credentials are not configured")

    from google.oauth2 import service_account
    from googleapiclient.discovery import build

    credentials = service_account.Credentials.from_service_account_info(
        {
            "type": "service_account",
            "client_email": client_email,
            # Keys pasted into env files usually carry literal "\n" sequences
            "private_key": private_key.replace("\\n", "\n"),
            "token_uri": TOKEN_URI,
        },
        scopes=SCOPES,
    )
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


def _row_to_registration(row: list[Any]) -> Optional[Registration]:
    cells = list(row) + [""] * (len(COLUMNS) - len(row))
    values = dict(zip(COLUMNS, cells))
    created_at = values["created_at"]
    try:
        return Registration(
            id=int(values["id"]),
            name=values["name"],
            email=values["email"],
            phone=values["phone"] or None,
            qty=int(values["qty"]),
            dietary=values["dietary"] or None,
            notes=values["notes"] or None,
            status=RegistrationStatus(values["status"] or RegistrationStatus.PENDING.value),
            checked_in=str(values["checked_in"]).strip().upper() == "TRUE",
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.fromtimestamp(0, timezone.utc),
        )
    except (TypeError, ValueError) as e:
        # Hand-edited rows can be malformed; skip them rather than fail the whole read
        logger.warning("sheets_row_skipped", row_id=values["id"], error=str(e))
        return None


class SheetsRegistrationStore:
    def __init__(self, service, spreadsheet_id: str, worksheet: str = "Registrations"):
        if not spreadsheet_id:
            raise ConfigurationError("GOOGLE_SHEETS_SPREADSHEET_ID is not configured")
        self._service = service
        self._spreadsheet_id = spreadsheet_id
        self._worksheet = worksheet
        self._header_ready = False
        self._id_lock = asyncio.Lock()

    async def _run(self, fn: Callable[[], Any], operation: str) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fn)
        except HttpError as e:
            logger.error("sheets_request_failed", operation=operation, status=getattr(e.resp, "status", None), error=str(e))
            raise StorageError() from e

    def _values(self):
        return self._service.spreadsheets().values()

    async def _ensure_header(self) -> None:
        if self._header_ready:
            return

        header_range = f"{self._worksheet}!A1:{LAST_COLUMN}1"
        result = await self._run(
            lambda: self._values().get(spreadsheetId=self._spreadsheet_id, range=header_range).execute(),
            "read_header",
        )
        if not result.get("values"):
            await self._run(
                lambda: self._values().update(
                    spreadsheetId=self._spreadsheet_id,
                    range=header_range,
                    valueInputOption="RAW",
                    body={"values": [COLUMNS]},
                ).execute(),
                "write_header",
            )
            logger.info("sheets_header_written", worksheet=self._worksheet)
        self._header_ready = True

    async def _read_rows(self) -> list[list[Any]]:
        await self._ensure_header()
        data_range = f"{self._worksheet}!A2:{LAST_COLUMN}"
        result = await self._run(
            lambda: self._values().get(spreadsheetId=self._spreadsheet_id, range=data_range).execute(),
            "read_rows",
        )
        return result.get("values", [])

    async def _find_row_number(self, registration_id: int) -> Optional[int]:
        for index, row in enumerate(await self._read_rows()):
            if row and str(row[0]).strip() == str(registration_id):
                return index + 2  # 1-based, after the header row
        return None

    async def create_registration(self, data: RegistrationCreate) -> Registration:
        async with self._id_lock:
            rows = await self._read_rows()
            existing_ids = [r.id for r in map(_row_to_registration, rows) if r is not None]
            registration = Registration(
                id=max(existing_ids, default=0) + 1,
                name=data.name,
                email=data.email,
                phone=data.phone or None,
                qty=data.qty,
                dietary=data.dietary or None,
                notes=data.notes or None,
                status=RegistrationStatus.PENDING,
                checked_in=False,
                created_at=utcnow(),
            )
            row = [
                registration.id,
                registration.name,
                registration.email,
                registration.phone or "",
                registration.qty,
                registration.dietary or "",
                registration.notes or "",
                registration.status.value,
                "FALSE",
                registration.created_at.isoformat(),
            ]
            await self._run(
                lambda: self._values().append(
                    spreadsheetId=self._spreadsheet_id,
                    range=f"{self._worksheet}!A:{LAST_COLUMN}",
                    valueInputOption="RAW",
                    insertDataOption="INSERT_ROWS",
                    body={"values": [row]},
                ).execute(),
                "append_row",
            )
        return registration

    async def get_registration(self, registration_id: int) -> Optional[Registration]:
        for registration in await self.get_all_registrations():
            if registration.id == registration_id:
                return registration
        return None

    async def get_all_registrations(self) -> list[Registration]:
        registrations = [r for r in map(_row_to_registration, await self._read_rows()) if r is not None]
        registrations.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return registrations

    async def update_registration_status(self, registration_id: int, status: RegistrationStatus) -> bool:
        return await self._write_cell(registration_id, STATUS_COLUMN, RegistrationStatus(status).value)

    async def update_checked_in_status(self, registration_id: int, checked_in: bool) -> bool:
        return await self._write_cell(registration_id, CHECKED_IN_COLUMN, "TRUE" if checked_in else "FALSE")

    async def _write_cell(self, registration_id: int, column: str, value: str) -> bool:
        row_number = await self._find_row_number(registration_id)
        if row_number is None:
            logger.warning("registration_update_no_rows", registration_id=registration_id, column=column)
            return False

        cell = f"{self._worksheet}!{column}{row_number}"
        await self._run(
            lambda: self._values().update(
                spreadsheetId=self._spreadsheet_id,
                range=cell,
                valueInputOption="RAW",
                body={"values": [[value]]},
            ).execute(),
            "update_cell",
        )
        return True

    async def close(self) -> None:
        return None
