"""Wedding service — creating weddings and managing their owners.

Learn: A wedding and everything that points at it (slug index, owner
account, owner link, the owner's membership array) are written in ONE
transaction. Either the wedding exists with its owner fully linked, or
nothing was written. reconcile_memberships() repairs rows left behind by
older code that wrote these steps separately.

Membership arrays (WeddingAdmin.wedding_ids) are JSON lists: always
assign a new list, never mutate in place, or the ORM won't see the change.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wedsite.auth.password import (
    DEFAULT_ROUNDS,
    generate_temp_password,
    hash_password_async,
)
from wedsite.db.models import Wedding, WeddingAdmin, WeddingAdminLink, WeddingSlug
from wedsite.errors import ConflictError, NotFoundError, ValidationError
from wedsite.events.store import EventStore
from wedsite.events.types import (
    CLIENT_CREATED,
    MEMBERSHIPS_RECONCILED,
    OWNER_LINKED,
    OWNER_UNLINKED,
    WEDDING_ARCHIVED,
    WEDDING_CREATED,
    WEDDING_UPDATED,
)
from wedsite.services.validation import (
    validate_display_name,
    validate_email,
    validate_slug,
    validate_username,
)
from wedsite.services.wedding_directory import WeddingStatus

logger = structlog.get_logger()

INITIAL_STATUSES = (WeddingStatus.DRAFT.value, WeddingStatus.ACTIVE.value)


@dataclass
class CreatedWedding:
    wedding: Wedding
    owner_username: Optional[str] = None
    temp_password: Optional[str] = None  # only for a newly created client


@dataclass
class NewOwner:
    admin: WeddingAdmin
    temp_password: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def drop_owner(wedding: Wedding, username: str, changed_by: str) -> None:
    """Remove a username from the wedding's owner fields.

    The first co-owner is promoted when the primary owner leaves. The
    caller deletes the WeddingAdminLink row and enforces the last-owner rule.
    """
    co_owners = [u for u in wedding.co_owner_ids or [] if u != username]
    if wedding.owner_id == username:
        wedding.owner_id = co_owners[0] if co_owners else None
        co_owners = co_owners[1:]
    wedding.co_owner_ids = co_owners
    wedding.updated_at = _utcnow()
    wedding.updated_by = changed_by


class WeddingService:
    """Business logic for the wedding lifecycle and ownership."""

    def __init__(self, db: AsyncSession, bcrypt_rounds: int = DEFAULT_ROUNDS):
        self.db = db
        self.events = EventStore(db)
        self.bcrypt_rounds = bcrypt_rounds

    async def _conflict(self, message: str, code: str) -> ConflictError:
        """Abandon the whole unit of work and build the 409."""
        await self.db.rollback()
        return ConflictError(message, code)

    async def _flush_or_conflict(self, message: str, code: str) -> None:
        try:
            await self.db.flush()
        except IntegrityError:
            raise await self._conflict(message, code)

    async def _get_wedding_or_404(self, wedding_id: str) -> Wedding:
        wedding = await self.db.get(Wedding, wedding_id, populate_existing=True)
        if wedding is None:
            raise NotFoundError("Wedding not found", "WEDDING_NOT_FOUND")
        return wedding

    # ─── Creation ───────────────────────────────────────

    async def create_wedding(
        self,
        slug: str,
        display_name: str,
        created_by: str,
        status: str = WeddingStatus.ACTIVE.value,
        owner_username: Optional[str] = None,
        owner_email: Optional[str] = None,
        staff_username: Optional[str] = None,
    ) -> CreatedWedding:
        """Create a wedding, optionally with an owner.

        Owner modes:
        - neither owner_username nor staff_username → no owner yet
        - owner_username → a new client account with a temporary password
        - staff_username → an existing staff account is linked as owner
        """
        slug = validate_slug(slug)
        display_name = validate_display_name(display_name)
        if status not in INITIAL_STATUSES:
            raise ValidationError(
                "Status must be 'draft' or 'active'", "INVALID_STATUS"
            )
        if owner_username and staff_username:
            raise ValidationError(
                "Provide either a new owner or an existing staff member, not both"
            )
        if owner_username:
            owner_username = validate_username(owner_username)
            owner_email = validate_email(owner_email)

        staff = None
        if staff_username:
            staff = await self._get_admin_for_update(staff_username)
            if staff.user_type != "staff":
                raise ValidationError(
                    "Only staff accounts can be linked at creation", "NOT_STAFF"
                )

        wedding = Wedding(
            slug=slug,
            display_name=display_name,
            status=status,
            co_owner_ids=[],
            created_by=created_by,
        )
        self.db.add(wedding)
        await self._flush_or_conflict("This slug is already taken", "SLUG_EXISTS")
        self.db.add(WeddingSlug(slug=slug, wedding_id=wedding.wedding_id))
        await self._flush_or_conflict("This slug is already taken", "SLUG_EXISTS")

        await self.events.append(
            stream_id=f"wedding:{wedding.wedding_id}",
            event_type=WEDDING_CREATED,
            data={"slug": slug, "display_name": display_name, "status": status},
            metadata={"actor": created_by},
        )

        result = CreatedWedding(wedding=wedding)
        if owner_username:
            new_owner = await self._create_client(
                owner_username, owner_email, created_by
            )
            await self._link(wedding, new_owner.admin, created_by)
            result.owner_username = new_owner.admin.username
            result.temp_password = new_owner.temp_password
        elif staff is not None:
            await self._link(wedding, staff, created_by)
            result.owner_username = staff.username

        await self.db.commit()
        logger.info(
            "wedding.created",
            wedding_id=wedding.wedding_id,
            slug=slug,
            owner=result.owner_username,
            created_by=created_by,
        )
        return result

    async def _create_client(
        self, username: str, email: Optional[str], created_by: str
    ) -> NewOwner:
        username = validate_username(username)
        if await self.db.get(WeddingAdmin, username) is not None:
            raise await self._conflict(
                "A wedding admin with this username already exists", "USERNAME_EXISTS"
            )
        temp_password = generate_temp_password()
        admin = WeddingAdmin(
            username=username,
            password_hash=await hash_password_async(temp_password, self.bcrypt_rounds),
            email=validate_email(email),
            wedding_ids=[],
            user_type="client",
            must_change_password=True,
            created_by=created_by,
        )
        self.db.add(admin)
        await self._flush_or_conflict(
            "A wedding admin with this username already exists", "USERNAME_EXISTS"
        )
        await self.events.append(
            stream_id=f"admin:{username}",
            event_type=CLIENT_CREATED,
            data={"username": username, "email": admin.email},
            metadata={"actor": created_by},
        )
        return NewOwner(admin=admin, temp_password=temp_password)

    async def _get_admin_for_update(self, username: str) -> WeddingAdmin:
        admin = await self.db.get(
            WeddingAdmin,
            username.strip().lower(),
            populate_existing=True,
            with_for_update=True,
        )
        if admin is None:
            raise NotFoundError("Wedding admin not found", "ADMIN_NOT_FOUND")
        return admin

    async def _link(self, wedding: Wedding, admin: WeddingAdmin, added_by: str) -> None:
        """Insert the link row and update both denormalised sides."""
        existing = await self.db.get(
            WeddingAdminLink, (wedding.wedding_id, admin.username)
        )
        if existing is not None:
            raise ConflictError(
                "This admin is already an owner of the wedding", "ALREADY_LINKED"
            )
        self.db.add(
            WeddingAdminLink(
                wedding_id=wedding.wedding_id,
                username=admin.username,
                role="owner",
                added_by=added_by,
            )
        )
        await self._flush_or_conflict(
            "This admin is already an owner of the wedding", "ALREADY_LINKED"
        )

        if wedding.wedding_id not in (admin.wedding_ids or []):
            admin.wedding_ids = [*(admin.wedding_ids or []), wedding.wedding_id]
        if wedding.owner_id is None:
            wedding.owner_id = admin.username
        elif admin.username != wedding.owner_id:
            wedding.co_owner_ids = [*(wedding.co_owner_ids or []), admin.username]

        await self.events.append(
            stream_id=f"wedding:{wedding.wedding_id}",
            event_type=OWNER_LINKED,
            data={"username": admin.username, "user_type": admin.user_type},
            metadata={"actor": added_by},
        )

    # ─── Updates ────────────────────────────────────────

    async def update_wedding(
        self, wedding_id: str, updated_by: str, display_name: Optional[str] = None
    ) -> Wedding:
        wedding = await self._get_wedding_or_404(wedding_id)
        changes = {}
        if display_name is not None:
            wedding.display_name = validate_display_name(display_name)
            changes["display_name"] = wedding.display_name

        if changes:
            wedding.updated_at = _utcnow()
            wedding.updated_by = updated_by
            await self.events.append(
                stream_id=f"wedding:{wedding_id}",
                event_type=WEDDING_UPDATED,
                data=changes,
                metadata={"actor": updated_by},
            )
            await self.db.commit()
        return wedding

    async def archive_wedding(self, wedding_id: str, archived_by: str) -> Wedding:
        """Move a wedding to the terminal archived state. Idempotent."""
        wedding = await self._get_wedding_or_404(wedding_id)
        if wedding.status == WeddingStatus.ARCHIVED:
            return wedding

        previous = wedding.status
        wedding.status = WeddingStatus.ARCHIVED.value
        wedding.updated_at = _utcnow()
        wedding.updated_by = archived_by
        await self.events.append(
            stream_id=f"wedding:{wedding_id}",
            event_type=WEDDING_ARCHIVED,
            data={"previous_status": previous},
            metadata={"actor": archived_by},
        )
        await self.db.commit()
        logger.info("wedding.archived", wedding_id=wedding_id, archived_by=archived_by)
        return wedding

    # ─── Ownership ──────────────────────────────────────

    async def link_owner(
        self, wedding_id: str, username: str, added_by: str
    ) -> WeddingAdmin:
        """Link an existing wedding admin (client or staff) as an owner."""
        wedding = await self._get_wedding_or_404(wedding_id)
        admin = await self._get_admin_for_update(username)
        await self._link(wedding, admin, added_by)
        await self.db.commit()
        logger.info(
            "wedding.owner_linked",
            wedding_id=wedding_id,
            username=admin.username,
            added_by=added_by,
        )
        return admin

    async def add_new_owner(
        self,
        wedding_id: str,
        username: str,
        added_by: str,
        email: Optional[str] = None,
    ) -> NewOwner:
        """Create a new client account and link it to the wedding."""
        wedding = await self._get_wedding_or_404(wedding_id)
        new_owner = await self._create_client(username, email, added_by)
        await self._link(wedding, new_owner.admin, added_by)
        await self.db.commit()
        logger.info(
            "wedding.owner_created",
            wedding_id=wedding_id,
            username=new_owner.admin.username,
            added_by=added_by,
        )
        return new_owner

    async def remove_owner(self, wedding_id: str, username: str, removed_by: str) -> None:
        """Unlink an owner. A wedding always keeps at least one owner."""
        wedding = await self._get_wedding_or_404(wedding_id)
        username = username.strip().lower()

        link = await self.db.get(WeddingAdminLink, (wedding_id, username))
        if link is None:
            raise NotFoundError(
                "This admin is not an owner of the wedding", "NOT_LINKED"
            )

        owner_count = await self.db.scalar(
            select(func.count())
            .select_from(WeddingAdminLink)
            .where(WeddingAdminLink.wedding_id == wedding_id)
        )
        if owner_count <= 1:
            raise ValidationError(
                "Cannot remove the last owner of a wedding", "LAST_OWNER"
            )

        await self.db.delete(link)

        admin = await self.db.get(
            WeddingAdmin, username, populate_existing=True, with_for_update=True
        )
        if admin is not None:
            admin.wedding_ids = [w for w in admin.wedding_ids or [] if w != wedding_id]

        drop_owner(wedding, username, removed_by)

        await self.events.append(
            stream_id=f"wedding:{wedding_id}",
            event_type=OWNER_UNLINKED,
            data={"username": username},
            metadata={"actor": removed_by},
        )
        await self.db.commit()
        logger.info(
            "wedding.owner_unlinked",
            wedding_id=wedding_id,
            username=username,
            removed_by=removed_by,
        )

    async def list_owners(self, wedding_id: str) -> list[WeddingAdminLink]:
        await self._get_wedding_or_404(wedding_id)
        result = await self.db.execute(
            select(WeddingAdminLink)
            .where(WeddingAdminLink.wedding_id == wedding_id)
            .order_by(WeddingAdminLink.added_at, WeddingAdminLink.username)
        )
        return list(result.scalars().all())

    # ─── Reconciliation ─────────────────────────────────

    async def reconcile_memberships(self, performed_by: str = "system") -> int:
        """Rebuild every admin's wedding_ids from the link table.

        Safe to run any number of times. Returns how many admins changed.
        """
        result = await self.db.execute(
            select(WeddingAdminLink.username, WeddingAdminLink.wedding_id)
        )
        linked: dict[str, set[str]] = {}
        for username, wedding_id in result.all():
            linked.setdefault(username, set()).add(wedding_id)

        admins = await self.db.execute(select(WeddingAdmin))
        changed = 0
        for admin in admins.scalars().all():
            current = list(admin.wedding_ids or [])
            expected = linked.get(admin.username, set())
            if set(current) == expected:
                continue

            kept = list(dict.fromkeys(w for w in current if w in expected))
            added = sorted(expected - set(kept))
            admin.wedding_ids = kept + added
            changed += 1
            await self.events.append(
                stream_id=f"admin:{admin.username}",
                event_type=MEMBERSHIPS_RECONCILED,
                data={"before": current, "after": admin.wedding_ids},
                metadata={"actor": performed_by},
            )

        await self.db.commit()
        logger.info("wedding.memberships_reconciled", changed=changed)
        return changed
