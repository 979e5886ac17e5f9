"""Account service — creating admins and managing passwords.

Learn: Username uniqueness is the primary key of each account table, so
an IntegrityError on INSERT means "taken" even when two requests race past
the existence check.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wedsite.auth.identity import Identity, Role
from wedsite.auth.password import (
    DEFAULT_ROUNDS,
    generate_temp_password,
    hash_password_async,
    verify_password_async,
)
from wedsite.auth.providers import MASTER_USERNAME
from wedsite.db.models import (
    LegacyAdmin,
    SuperAdmin,
    Wedding,
    WeddingAdmin,
    WeddingAdminLink,
)
from wedsite.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from wedsite.events.store import EventStore
from wedsite.events.types import (
    EMAIL_UPDATED,
    PASSWORD_CHANGED,
    PASSWORD_RESET,
    STAFF_CREATED,
    STAFF_DELETED,
    STAFF_UPDATED,
    SUPER_ADMIN_CREATED,
)
from wedsite.services.validation import (
    CHANGED_PASSWORD_MIN,
    validate_email,
    validate_password,
    validate_username,
)
from wedsite.services.wedding_service import drop_owner

logger = structlog.get_logger()

AccountRecord = Union[SuperAdmin, WeddingAdmin, LegacyAdmin]


@dataclass
class Profile:
    username: str
    role: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None


class AccountService:
    """Business logic for admin accounts."""

    def __init__(self, db: AsyncSession, bcrypt_rounds: int = DEFAULT_ROUNDS):
        self.db = db
        self.events = EventStore(db)
        self.bcrypt_rounds = bcrypt_rounds

    async def _insert(self, record, kind: str) -> None:
        if await self.db.get(type(record), record.username) is not None:
            raise ConflictError(
                f"A {kind} with this username already exists", "USERNAME_EXISTS"
            )
        self.db.add(record)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(
                f"A {kind} with this username already exists", "USERNAME_EXISTS"
            )

    # ─── Creation ───────────────────────────────────────

    async def create_staff(
        self,
        username: str,
        password: str,
        created_by: str,
        email: Optional[str] = None,
    ) -> WeddingAdmin:
        """Create a reusable staff account with no weddings yet."""
        username = validate_username(username)
        validate_password(password)
        staff = WeddingAdmin(
            username=username,
            password_hash=await hash_password_async(password, self.bcrypt_rounds),
            email=validate_email(email),
            wedding_ids=[],
            user_type="staff",
            must_change_password=False,
            created_by=created_by,
        )
        await self._insert(staff, "wedding admin")

        await self.events.append(
            stream_id=f"admin:{username}",
            event_type=STAFF_CREATED,
            data={"username": username, "email": staff.email},
            metadata={"actor": created_by},
        )
        await self.db.commit()
        logger.info("account.staff_created", username=username, created_by=created_by)
        return staff

    async def create_super_admin(
        self,
        username: str,
        password: str,
        created_by: str = "cli",
        email: Optional[str] = None,
    ) -> SuperAdmin:
        username = validate_username(username)
        validate_password(password)
        admin = SuperAdmin(
            username=username,
            password_hash=await hash_password_async(password, self.bcrypt_rounds),
            email=validate_email(email),
            created_by=created_by,
        )
        await self._insert(admin, "super admin")

        await self.events.append(
            stream_id=f"admin:{username}",
            event_type=SUPER_ADMIN_CREATED,
            data={"username": username},
            metadata={"actor": created_by},
        )
        await self.db.commit()
        logger.info(
            "account.super_admin_created", username=username, created_by=created_by
        )
        return admin

    async def list_staff(self) -> list[WeddingAdmin]:
        result = await self.db.execute(
            select(WeddingAdmin)
            .where(WeddingAdmin.user_type == "staff")
            .order_by(WeddingAdmin.username)
        )
        return list(result.scalars().all())

    async def list_admins(self) -> list[SuperAdmin]:
        """Stored super admins, newest first. Master is not a stored account."""
        result = await self.db.execute(
            select(SuperAdmin)
            .where(SuperAdmin.username != MASTER_USERNAME)
            .order_by(SuperAdmin.created_at.desc(), SuperAdmin.username)
        )
        return list(result.scalars().all())

    # ─── Staff management ───────────────────────────────

    async def _get_staff(self, username: str) -> WeddingAdmin:
        username = validate_username(username)
        staff = await self.db.get(
            WeddingAdmin, username, populate_existing=True, with_for_update=True
        )
        if staff is None:
            raise NotFoundError(f'Staff member "{username}" not found', "STAFF_NOT_FOUND")
        if staff.user_type != "staff":
            raise ValidationError(f'User "{username}" is not a staff member', "NOT_STAFF")
        return staff

    async def update_staff(
        self,
        username: str,
        updated_by: str,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> WeddingAdmin:
        """Change a staff member's email and/or password.

        None means "leave unchanged"; an empty email clears it.
        """
        if email is None and password is None:
            raise ValidationError(
                "At least one field (email or password) must be provided"
            )
        if password is not None:
            validate_password(password)
        new_email = validate_email(email) if email is not None else None

        staff = await self._get_staff(username)
        changes = []
        if email is not None:
            staff.email = new_email
            changes.append("email")
        if password is not None:
            staff.password_hash = await hash_password_async(
                password, self.bcrypt_rounds
            )
            changes.append("password")

        await self.events.append(
            stream_id=f"admin:{staff.username}",
            event_type=STAFF_UPDATED,
            data={"username": staff.username, "fields": changes},
            metadata={"actor": updated_by},
        )
        await self.db.commit()
        logger.info(
            "account.staff_updated",
            username=staff.username,
            fields=changes,
            updated_by=updated_by,
        )
        return staff

    async def delete_staff(self, username: str, deleted_by: str) -> list[str]:
        """Delete a staff account and unlink it from every wedding it manages.

        Refused with LAST_OWNER if any of those weddings would be left
        without an owner; nothing is written in that case. Returns the ids
        of the weddings the account was removed from.
        """
        staff = await self._get_staff(username)

        result = await self.db.execute(
            select(WeddingAdminLink)
            .where(WeddingAdminLink.username == staff.username)
            .order_by(WeddingAdminLink.wedding_id)
        )
        links = list(result.scalars().all())
        wedding_ids = [link.wedding_id for link in links]

        if wedding_ids:
            counts = await self.db.execute(
                select(WeddingAdminLink.wedding_id, func.count())
                .where(WeddingAdminLink.wedding_id.in_(wedding_ids))
                .group_by(WeddingAdminLink.wedding_id)
            )
            sole = sorted(w for w, n in counts.all() if n <= 1)
            if sole:
                raise ValidationError(
                    "Cannot remove the last owner of a wedding: "
                    + ", ".join(sole),
                    "LAST_OWNER",
                )

        for link in links:
            wedding = await self.db.get(
                Wedding, link.wedding_id, populate_existing=True, with_for_update=True
            )
            if wedding is not None:
                drop_owner(wedding, staff.username, deleted_by)
            await self.db.delete(link)
        await self.db.delete(staff)

        await self.events.append(
            stream_id=f"admin:{staff.username}",
            event_type=STAFF_DELETED,
            data={"username": staff.username, "wedding_ids": wedding_ids},
            metadata={"actor": deleted_by},
        )
        await self.db.commit()
        logger.info(
            "account.staff_deleted",
            username=staff.username,
            removed_from=len(wedding_ids),
            deleted_by=deleted_by,
        )
        return wedding_ids

    # ─── Profile ────────────────────────────────────────

    async def get_profile(self, identity: Identity) -> Profile:
        if identity.role == Role.MASTER:
            return Profile(
                username=MASTER_USERNAME, role=Role.MASTER.value, created_by="system"
            )
        record = await self._record_for(identity)
        if record is None:
            raise NotFoundError("Profile not found")
        return Profile(
            username=record.username,
            role=identity.role.value,
            email=record.email,
            created_at=getattr(record, "created_at", None),
            created_by=getattr(record, "created_by", None),
        )

    async def update_email(self, identity: Identity, email: Optional[str]) -> Optional[str]:
        """Set or clear the caller's email. Returns the stored value."""
        if identity.role == Role.MASTER:
            raise ForbiddenError("Master account email cannot be updated")
        new_email = validate_email(email)

        record = await self._record_for(identity)
        if record is None:
            raise NotFoundError("User not found")
        record.email = new_email

        await self.events.append(
            stream_id=f"admin:{identity.subject}",
            event_type=EMAIL_UPDATED,
            data={"username": identity.subject, "cleared": new_email is None},
            metadata={"actor": identity.subject},
        )
        await self.db.commit()
        logger.info("account.email_updated", username=identity.subject)
        return new_email

    # ─── Passwords ──────────────────────────────────────

    async def _record_for(self, identity: Identity) -> Optional[AccountRecord]:
        model = {
            Role.SUPER: SuperAdmin,
            Role.WEDDING_CLIENT: WeddingAdmin,
            Role.WEDDING_STAFF: WeddingAdmin,
            Role.LEGACY: LegacyAdmin,
        }[identity.role]
        return await self.db.get(model, identity.subject, populate_existing=True)

    async def _store_password(
        self, identity: Identity, record: AccountRecord, new_password: str, reason: str
    ) -> None:
        record.password_hash = await hash_password_async(
            new_password, self.bcrypt_rounds
        )
        if hasattr(record, "must_change_password"):
            record.must_change_password = False

        await self.events.append(
            stream_id=f"admin:{identity.subject}",
            event_type=PASSWORD_CHANGED,
            data={"username": identity.subject, "role": identity.role.value},
            metadata={"actor": identity.subject, "reason": reason},
        )
        await self.db.commit()
        logger.info(
            "account.password_changed",
            username=identity.subject,
            role=identity.role.value,
            reason=reason,
        )

    async def change_password(
        self, identity: Identity, current_password: str, new_password: str
    ) -> None:
        """Change the caller's own password after re-checking the current one."""
        if identity.role == Role.MASTER:
            raise ForbiddenError("Master account password cannot be changed")
        validate_password(new_password, CHANGED_PASSWORD_MIN)
        if new_password == current_password:
            raise ValidationError(
                "New password must be different from current password"
            )

        record = await self._record_for(identity)
        if record is None:
            raise NotFoundError("User not found")
        if not await verify_password_async(current_password, record.password_hash):
            raise AuthError("Current password is incorrect")

        await self._store_password(identity, record, new_password, "change")

    async def set_new_password(self, identity: Identity, new_password: str) -> None:
        """Replace a temporary password. Only allowed while the flag is set."""
        if identity.role == Role.MASTER:
            raise ForbiddenError("Master account password cannot be changed")
        validate_password(new_password, CHANGED_PASSWORD_MIN)

        record = await self._record_for(identity)
        if record is None:
            raise NotFoundError("User not found")
        if not getattr(record, "must_change_password", False):
            raise ForbiddenError(
                "This endpoint is only for users who must change their password. "
                "Use the regular password change endpoint instead."
            )

        await self._store_password(identity, record, new_password, "initial")

    async def force_reset_password(self, username: str, reset_by: str) -> str:
        """Give a wedding or legacy admin a new temporary password.

        The account must pick a new password at next login. Returns the
        temporary password; it is not stored anywhere in clear text.
        """
        username = username.strip().lower()
        if not username:
            raise ValidationError("Username is required")
        if username == MASTER_USERNAME:
            raise ForbiddenError("Cannot reset master account password")

        record = await self.db.get(WeddingAdmin, username, populate_existing=True)
        if record is None:
            record = await self.db.get(LegacyAdmin, username, populate_existing=True)
        if record is None:
            raise NotFoundError("User not found")

        temp_password = generate_temp_password()
        record.password_hash = await hash_password_async(
            temp_password, self.bcrypt_rounds
        )
        record.must_change_password = True

        await self.events.append(
            stream_id=f"admin:{username}",
            event_type=PASSWORD_RESET,
            data={"username": username},
            metadata={"actor": reset_by},
        )
        await self.db.commit()
        logger.info("account.password_reset", username=username, reset_by=reset_by)
        return temp_password
