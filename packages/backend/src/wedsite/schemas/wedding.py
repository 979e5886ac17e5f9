"""Pydantic schemas for weddings, owners and staff accounts.

Learn: Request schemas only check shapes. The format rules (slug,
username, email) live in wedsite.services.validation so the CLI and the
API enforce the same ones, with specific error codes.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ─── Weddings ───────────────────────────────────────────

class WeddingCreate(BaseModel):
    slug: str
    display_name: str
    status: Literal["draft", "active"] = "active"
    # Owner: at most one of these
    owner_username: Optional[str] = None
    owner_email: Optional[str] = None
    staff_username: Optional[str] = None


class WeddingUpdate(BaseModel):
    display_name: Optional[str] = None


class WeddingSummary(BaseModel):
    """What the public site and the slug resolver need."""

    wedding_id: str
    slug: str
    display_name: str
    status: str

    model_config = {"from_attributes": True}


class WeddingRead(WeddingSummary):
    owner_id: Optional[str] = None
    co_owner_ids: list[str] = []
    created_at: datetime
    created_by: str
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None


class WeddingCreated(BaseModel):
    wedding: WeddingRead
    owner_username: Optional[str] = None
    temp_password: Optional[str] = Field(
        None, description="Shown once, only when a new client account was created"
    )


# ─── Owners ─────────────────────────────────────────────

class OwnerAdd(BaseModel):
    username: str
    email: Optional[str] = None
    create_account: bool = False  # True → new client account with temp password


class OwnerRead(BaseModel):
    username: str
    role: str
    added_at: datetime
    added_by: str

    model_config = {"from_attributes": True}


class OwnerAdded(BaseModel):
    wedding_id: str
    username: str
    temp_password: Optional[str] = None


# ─── Staff ──────────────────────────────────────────────

class StaffCreate(BaseModel):
    username: str
    password: str
    email: Optional[str] = None


class AdminRead(BaseModel):
    username: str
    email: Optional[str] = None
    user_type: str
    wedding_ids: list[str] = []
    must_change_password: bool = False
    created_at: datetime
    created_by: Optional[str] = None

    model_config = {"from_attributes": True}


class StaffUpdate(BaseModel):
    """Omitted fields stay unchanged; an empty or null email clears it."""

    email: Optional[str] = None
    password: Optional[str] = None


class StaffDeleted(BaseModel):
    message: str = "Staff member deleted successfully"
    username: str
    removed_from_weddings: int
    wedding_ids: list[str] = []


class SuperAdminRead(BaseModel):
    username: str
    email: Optional[str] = None
    created_at: datetime
    created_by: Optional[str] = None

    model_config = {"from_attributes": True}


class PasswordReset(BaseModel):
    username: str
    temp_password: str = Field(..., description="Shown once; the user must change it at login")
