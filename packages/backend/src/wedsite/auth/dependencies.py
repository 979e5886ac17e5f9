"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. They wire the
auth core to the request (database session, configuration) and are the
only place where an AuthFailure turns into a raised AppError. Tests
swap any of them out through app.dependency_overrides.
"""

import uuid
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from wedsite.auth.identity import AuthFailure, Identity
from wedsite.auth.policy import WeddingAccessPolicy
from wedsite.auth.providers import default_providers
from wedsite.auth.resolver import IdentityResolver
from wedsite.auth.session import SessionAuthenticator
from wedsite.auth.store import IdentityStore
from wedsite.auth.tokens import TokenCodec
from wedsite.config import settings
from wedsite.db.engine import get_db
from wedsite.db.models import Wedding
from wedsite.errors import ValidationError
from wedsite.services.wedding_directory import WeddingDirectory


def _unwrap(result):
    if isinstance(result, AuthFailure):
        raise result.to_error()
    return result


# ─── Collaborators ──────────────────────────────────────


def get_token_codec() -> TokenCodec:
    return TokenCodec(settings.token_secret)


def get_identity_store(db: AsyncSession = Depends(get_db)) -> IdentityStore:
    return IdentityStore(db, legacy_wedding_id=settings.legacy_wedding_id)


def get_wedding_directory(db: AsyncSession = Depends(get_db)) -> WeddingDirectory:
    return WeddingDirectory(db)


def get_session_authenticator(
    codec: TokenCodec = Depends(get_token_codec),
    store: IdentityStore = Depends(get_identity_store),
) -> SessionAuthenticator:
    return SessionAuthenticator(codec, store)


def get_identity_resolver(
    codec: TokenCodec = Depends(get_token_codec),
    store: IdentityStore = Depends(get_identity_store),
) -> IdentityResolver:
    return IdentityResolver(default_providers(store, settings.master_password), codec)


def get_access_policy(
    store: IdentityStore = Depends(get_identity_store),
    directory: WeddingDirectory = Depends(get_wedding_directory),
) -> WeddingAccessPolicy:
    return WeddingAccessPolicy(store, directory)


# ─── Identity ───────────────────────────────────────────


async def get_current_identity(
    authorization: Optional[str] = Header(None),
    authenticator: SessionAuthenticator = Depends(get_session_authenticator),
) -> Identity:
    """Any authenticated caller (401 otherwise)."""
    return _unwrap(authenticator.require_auth(authorization))


async def require_super_admin_identity(
    authorization: Optional[str] = Header(None),
    authenticator: SessionAuthenticator = Depends(get_session_authenticator),
) -> Identity:
    """Master or super-admin (403 for everyone else)."""
    return _unwrap(authenticator.require_super_admin(authorization))


async def require_master_identity(
    authorization: Optional[str] = Header(None),
    authenticator: SessionAuthenticator = Depends(get_session_authenticator),
) -> Identity:
    return _unwrap(authenticator.require_master(authorization))


# ─── Wedding scope ──────────────────────────────────────


def parse_wedding_id(wedding_id: str) -> str:
    """Wedding ids are canonical UUID4 strings; reject anything else before any lookup.

    Other UUID versions and the brace, urn or undashed spellings are refused.
    """
    try:
        parsed = uuid.UUID(wedding_id)
    except ValueError:
        raise ValidationError("Invalid wedding id", "INVALID_WEDDING_ID")
    if parsed.version != 4 or str(parsed) != wedding_id.lower():
        raise ValidationError("Invalid wedding id", "INVALID_WEDDING_ID")
    return str(parsed)


async def get_admin_wedding(
    wedding_id: str,
    identity: Identity = Depends(get_current_identity),
    policy: WeddingAccessPolicy = Depends(get_access_policy),
) -> Wedding:
    """Path dependency for /{wedding_id} admin routes.

    Membership first, then the wedding's lifecycle state.
    """
    return _unwrap(await policy.authorize_admin(identity, parse_wedding_id(wedding_id)))
