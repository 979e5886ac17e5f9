"""Wedding API — public lookup and wedding-admin views.

Routes:
- GET /weddings/{slug}               → public, active weddings only
- GET /admin/weddings                → weddings the caller administers
- GET /admin/weddings/{wedding_id}   → one wedding (membership + lifecycle)
- GET /admin/resolve-slug/{slug}     → slug → wedding id for the admin UI
"""

from fastapi import APIRouter, Depends

from wedsite.auth.dependencies import (
    get_access_policy,
    get_admin_wedding,
    get_current_identity,
    get_identity_store,
    get_wedding_directory,
)
from wedsite.auth.identity import AuthFailure, Identity
from wedsite.auth.policy import WeddingAccessPolicy, require_active_wedding
from wedsite.auth.store import IdentityStore
from wedsite.db.models import Wedding
from wedsite.errors import NotFoundError
from wedsite.schemas.wedding import WeddingRead, WeddingSummary
from wedsite.services.wedding_directory import WeddingDirectory

router = APIRouter()


@router.get("/weddings/{slug}", response_model=WeddingSummary)
async def get_public_wedding(
    slug: str,
    directory: WeddingDirectory = Depends(get_wedding_directory),
):
    """Public microsite lookup. Drafts and archived weddings are hidden."""
    wedding = await directory.resolve_slug(slug)
    denied = require_active_wedding(wedding)
    if denied:
        raise denied.to_error()
    return wedding


@router.get("/admin/weddings", response_model=list[WeddingRead])
async def list_my_weddings(
    identity: Identity = Depends(get_current_identity),
    store: IdentityStore = Depends(get_identity_store),
    directory: WeddingDirectory = Depends(get_wedding_directory),
):
    """Super-admins see every wedding; everyone else sees their memberships."""
    if identity.is_privileged:
        return await directory.list_weddings()
    memberships = await store.get_memberships(identity)
    return await directory.list_weddings(wedding_ids=sorted(memberships))


@router.get("/admin/weddings/{wedding_id}", response_model=WeddingRead)
async def get_admin_wedding_detail(wedding: Wedding = Depends(get_admin_wedding)):
    return wedding


@router.get("/admin/resolve-slug/{slug}", response_model=WeddingSummary)
async def resolve_slug(
    slug: str,
    identity: Identity = Depends(get_current_identity),
    directory: WeddingDirectory = Depends(get_wedding_directory),
    policy: WeddingAccessPolicy = Depends(get_access_policy),
):
    wedding = await directory.resolve_slug(slug)
    if wedding is None:
        raise NotFoundError("Wedding not found", "WEDDING_NOT_FOUND")
    result = await policy.authorize_admin(identity, wedding.wedding_id)
    if isinstance(result, AuthFailure):
        raise result.to_error()
    return result
