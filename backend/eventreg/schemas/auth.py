"""
Pydantic schemas for admin authentication.
"""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    token: str
    username: str


class TokenPayload(BaseModel):
    username: str
    role: str
