"""Auth API — login, refresh, profile and password management.

Routes:
- POST /auth/login            → username/password → token pair
- POST /auth/refresh          → refresh token → new token pair
- GET  /auth/me               → current identity, memberships read live
- POST /auth/change-password  → change own password
- POST /auth/set-new-password → replace a temporary password
- GET  /auth/profile          → own stored profile
- PUT  /auth/profile/email    → set or clear own email
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wedsite.auth.dependencies import (
    get_current_identity,
    get_identity_resolver,
    get_identity_store,
    get_token_codec,
)
from wedsite.auth.identity import AuthFailure, Identity
from wedsite.auth.resolver import IdentityResolver, LoginResult
from wedsite.auth.store import IdentityStore
from wedsite.auth.tokens import TokenCodec
from wedsite.config import settings
from wedsite.db.engine import get_db
from wedsite.schemas.auth import (
    ChangePasswordRequest,
    EmailUpdate,
    LoginRequest,
    MeResponse,
    MessageResponse,
    ProfileRead,
    RefreshRequest,
    SetNewPasswordRequest,
    TokenResponse,
)
from wedsite.services.account_service import AccountService

router = APIRouter(prefix="/auth")


def _token_response(result) -> TokenResponse:
    if isinstance(result, AuthFailure):
        raise result.to_error()
    return TokenResponse.from_result(result)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    return _token_response(await resolver.login(body.username, body.password))


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    return _token_response(resolver.refresh(body.refresh_token))


@router.get("/me", response_model=MeResponse)
async def me(
    identity: Identity = Depends(get_current_identity),
    store: IdentityStore = Depends(get_identity_store),
):
    memberships = await store.get_memberships(identity)
    return MeResponse(
        username=identity.subject,
        role=identity.role.value,
        must_change_password=identity.must_change_password,
        wedding_ids=sorted(memberships),
        is_super_admin=identity.is_privileged,
    )


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    svc = AccountService(db, bcrypt_rounds=settings.bcrypt_rounds)
    await svc.change_password(identity, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/set-new-password", response_model=MessageResponse)
async def set_new_password(
    body: SetNewPasswordRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    store: IdentityStore = Depends(get_identity_store),
    codec: TokenCodec = Depends(get_token_codec),
):
    """Replace the temporary password and hand back tokens without the flag."""
    svc = AccountService(db, bcrypt_rounds=settings.bcrypt_rounds)
    await svc.set_new_password(identity, body.new_password)

    memberships = tuple(sorted(await store.get_memberships(identity)))
    cleared = Identity(
        subject=identity.subject,
        role=identity.role,
        must_change_password=False,
        wedding_ids=memberships,
    )
    tokens = codec.issue_pair(
        cleared.subject, cleared.role, wedding_ids=cleared.wedding_ids
    )
    return MessageResponse(
        message="Password changed successfully",
        tokens=TokenResponse.from_result(LoginResult(identity=cleared, tokens=tokens)),
    )


@router.get("/profile", response_model=ProfileRead)
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    svc = AccountService(db, bcrypt_rounds=settings.bcrypt_rounds)
    return await svc.get_profile(identity)


@router.put("/profile/email", response_model=MessageResponse)
async def update_email(
    body: EmailUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    svc = AccountService(db, bcrypt_rounds=settings.bcrypt_rounds)
    email = await svc.update_email(identity, body.email)
    return MessageResponse(
        message="Email updated successfully" if email else "Email removed successfully"
    )
