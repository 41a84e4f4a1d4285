"""
Admin endpoints for the registration list and check-in. All require a bearer token.
"""

from fastapi import APIRouter, Depends

from eventreg.api.deps import get_registration_service, require_admin
from eventreg.schemas.common import ApiResponse
from eventreg.schemas.registration import CheckInRequest, Registration
from eventreg.services.registration_service import RegistrationService

router = APIRouter(
    prefix="/registrations",
    tags=["Registrations"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=ApiResponse[list[Registration]])
async def list_registrations(
    registrations: RegistrationService = Depends(get_registration_service),
):
    """All registrations, newest first."""
    return ApiResponse(data=await registrations.list_all())


@router.get("/{registration_id}", response_model=ApiResponse[Registration])
async def get_registration(
    registration_id: int,
    registrations: RegistrationService = Depends(get_registration_service),
):
    return ApiResponse(data=await registrations.get_or_404(registration_id))


@router.post("/check-in", response_model=ApiResponse[Registration])
async def check_in(
    body: CheckInRequest,
    registrations: RegistrationService = Depends(get_registration_service),
):
    """Set or clear the checked-in flag. Independent of payment status."""
    registration = await registrations.set_checked_in(body.registration_id, body.checked_in)
    return ApiResponse(data=registration)
