"""Super-admin API — wedding lifecycle, ownership and staff accounts.

Every route here requires a master or super-admin token; the check is
applied once at include_router level in wedsite.api.

Routes:
- POST   /superadmin/weddings                               → create (with optional owner)
- GET    /superadmin/weddings                               → list, filter by status
- PATCH  /superadmin/weddings/{wedding_id}                  → rename
- POST   /superadmin/weddings/{wedding_id}/archive          → archive (terminal)
- GET    /superadmin/weddings/{wedding_id}/owners           → list owners
- POST   /superadmin/weddings/{wedding_id}/owners           → link or create an owner
- DELETE /superadmin/weddings/{wedding_id}/owners/{username} → unlink an owner
- POST   /superadmin/staff                                  → create staff account
- GET    /superadmin/staff                                  → list staff accounts
- PATCH  /superadmin/staff/{username}                       → change staff email or password
- DELETE /superadmin/staff/{username}                       → delete staff, unlink from weddings
- GET    /superadmin/admins                                 → list super admins (master only)
- POST   /superadmin/users/{username}/reset-password       → temporary password (master only)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wedsite.auth.dependencies import (
    get_wedding_directory,
    parse_wedding_id,
    require_master_identity,
    require_super_admin_identity,
)
from wedsite.auth.identity import Identity
from wedsite.config import settings
from wedsite.db.engine import get_db
from wedsite.schemas.wedding import (
    AdminRead,
    OwnerAdd,
    OwnerAdded,
    OwnerRead,
    PasswordReset,
    StaffCreate,
    StaffDeleted,
    StaffUpdate,
    SuperAdminRead,
    WeddingCreate,
    WeddingCreated,
    WeddingRead,
    WeddingUpdate,
)
from wedsite.services.account_service import AccountService
from wedsite.services.wedding_directory import WeddingDirectory
from wedsite.services.wedding_service import WeddingService

router = APIRouter(prefix="/superadmin")


def _wedding_service(db: AsyncSession = Depends(get_db)) -> WeddingService:
    return WeddingService(db, bcrypt_rounds=settings.bcrypt_rounds)


def _account_service(db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(db, bcrypt_rounds=settings.bcrypt_rounds)


# ─── Weddings ───────────────────────────────────────────


@router.post("/weddings", response_model=WeddingCreated, status_code=201)
async def create_wedding(
    body: WeddingCreate,
    identity: Identity = Depends(require_super_admin_identity),
    svc: WeddingService = Depends(_wedding_service),
):
    created = await svc.create_wedding(
        slug=body.slug,
        display_name=body.display_name,
        created_by=identity.subject,
        status=body.status,
        owner_username=body.owner_username,
        owner_email=body.owner_email,
        staff_username=body.staff_username,
    )
    return WeddingCreated(
        wedding=WeddingRead.model_validate(created.wedding),
        owner_username=created.owner_username,
        temp_password=created.temp_password,
    )


@router.get("/weddings", response_model=list[WeddingRead])
async def list_weddings(
    status: Optional[str] = Query(None, pattern="^(draft|active|archived)$"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    directory: WeddingDirectory = Depends(get_wedding_directory),
):
    return await directory.list_weddings(status=status, limit=limit, offset=offset)


@router.patch("/weddings/{wedding_id}", response_model=WeddingRead)
async def update_wedding(
    wedding_id: str,
    body: WeddingUpdate,
    identity: Identity = Depends(require_super_admin_identity),
    svc: WeddingService = Depends(_wedding_service),
):
    return await svc.update_wedding(
        parse_wedding_id(wedding_id),
        updated_by=identity.subject,
        display_name=body.display_name,
    )


@router.post("/weddings/{wedding_id}/archive", response_model=WeddingRead)
async def archive_wedding(
    wedding_id: str,
    identity: Identity = Depends(require_super_admin_identity),
    svc: WeddingService = Depends(_wedding_service),
):
    return await svc.archive_wedding(
        parse_wedding_id(wedding_id), archived_by=identity.subject
    )


# ─── Owners ─────────────────────────────────────────────


@router.get("/weddings/{wedding_id}/owners", response_model=list[OwnerRead])
async def list_owners(
    wedding_id: str,
    svc: WeddingService = Depends(_wedding_service),
):
    return await svc.list_owners(parse_wedding_id(wedding_id))


@router.post(
    "/weddings/{wedding_id}/owners", response_model=OwnerAdded, status_code=201
)
async def add_owner(
    wedding_id: str,
    body: OwnerAdd,
    identity: Identity = Depends(require_super_admin_identity),
    svc: WeddingService = Depends(_wedding_service),
):
    """Link an existing admin, or create a new client account when asked to."""
    wedding_id = parse_wedding_id(wedding_id)
    if body.create_account:
        new_owner = await svc.add_new_owner(
            wedding_id, body.username, added_by=identity.subject, email=body.email
        )
        return OwnerAdded(
            wedding_id=wedding_id,
            username=new_owner.admin.username,
            temp_password=new_owner.temp_password,
        )

    admin = await svc.link_owner(wedding_id, body.username, added_by=identity.subject)
    return OwnerAdded(wedding_id=wedding_id, username=admin.username)


@router.delete("/weddings/{wedding_id}/owners/{username}", status_code=204)
async def remove_owner(
    wedding_id: str,
    username: str,
    identity: Identity = Depends(require_super_admin_identity),
    svc: WeddingService = Depends(_wedding_service),
):
    await svc.remove_owner(
        parse_wedding_id(wedding_id), username, removed_by=identity.subject
    )


# ─── Staff ──────────────────────────────────────────────


@router.post("/staff", response_model=AdminRead, status_code=201)
async def create_staff(
    body: StaffCreate,
    identity: Identity = Depends(require_super_admin_identity),
    svc: AccountService = Depends(_account_service),
):
    return await svc.create_staff(
        body.username, body.password, created_by=identity.subject, email=body.email
    )


@router.get("/staff", response_model=list[AdminRead])
async def list_staff(svc: AccountService = Depends(_account_service)):
    return await svc.list_staff()


@router.patch("/staff/{username}", response_model=AdminRead)
async def update_staff(
    username: str,
    body: StaffUpdate,
    identity: Identity = Depends(require_super_admin_identity),
    svc: AccountService = Depends(_account_service),
):
    email = body.email
    if "email" in body.model_fields_set and email is None:
        email = ""
    return await svc.update_staff(
        username, updated_by=identity.subject, email=email, password=body.password
    )


@router.delete("/staff/{username}", response_model=StaffDeleted)
async def delete_staff(
    username: str,
    identity: Identity = Depends(require_super_admin_identity),
    svc: AccountService = Depends(_account_service),
):
    wedding_ids = await svc.delete_staff(username, deleted_by=identity.subject)
    return StaffDeleted(
        username=username.strip().lower(),
        removed_from_weddings=len(wedding_ids),
        wedding_ids=wedding_ids,
    )


# ─── Super admins ───────────────────────────────────────


@router.get("/admins", response_model=list[SuperAdminRead])
async def list_admins(
    identity: Identity = Depends(require_master_identity),
    svc: AccountService = Depends(_account_service),
):
    return await svc.list_admins()


@router.post("/users/{username}/reset-password", response_model=PasswordReset)
async def reset_password(
    username: str,
    identity: Identity = Depends(require_master_identity),
    svc: AccountService = Depends(_account_service),
):
    """Issue a temporary password to a wedding or legacy admin."""
    temp_password = await svc.force_reset_password(username, reset_by=identity.subject)
    return PasswordReset(username=username.strip().lower(), temp_password=temp_password)
