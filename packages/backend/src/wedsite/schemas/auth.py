"""Pydantic schemas for login, refresh and password management."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from wedsite.auth.resolver import LoginResult


class LoginRequest(BaseModel):
    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until the access token expires
    username: str
    role: str
    wedding_ids: list[str] = []
    must_change_password: bool = False

    @classmethod
    def from_result(cls, result: LoginResult) -> "TokenResponse":
        return cls(
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
            expires_in=result.tokens.expires_in,
            username=result.identity.subject,
            role=result.identity.role.value,
            wedding_ids=list(result.identity.wedding_ids),
            must_change_password=result.identity.must_change_password,
        )


class MeResponse(BaseModel):
    """The caller's identity with memberships read live."""

    username: str
    role: str
    must_change_password: bool
    wedding_ids: list[str]
    is_super_admin: bool


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class SetNewPasswordRequest(BaseModel):
    new_password: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    tokens: Optional[TokenResponse] = None


class ProfileRead(BaseModel):
    username: str
    role: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None

    model_config = {"from_attributes": True}


class EmailUpdate(BaseModel):
    email: Optional[str] = None  # empty or null removes the stored email
