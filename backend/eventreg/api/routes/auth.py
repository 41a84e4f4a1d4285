"""
Authentication endpoints: admin login and token verification.
"""

from fastapi import APIRouter, Depends

from eventreg.api.deps import require_admin
from eventreg.schemas.auth import LoginRequest, LoginResponse, TokenPayload
from eventreg.schemas.common import ApiResponse
from eventreg.services.auth_service import authenticate_admin

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=ApiResponse[LoginResponse])
async def login(login_data: LoginRequest):
    """Authenticate and receive a JWT valid for JWT_EXPIRES_HOURS."""
    token = await authenticate_admin(login_data.username, login_data.password)
    return ApiResponse(data=LoginResponse(token=token, username=login_data.username))


@router.get("/verify", response_model=ApiResponse[TokenPayload])
async def verify(admin: TokenPayload = Depends(require_admin)):
    """Lets the dashboard check whether its stored token is still valid."""
    return ApiResponse(data=admin)
