"""Identity store — read access to the account namespaces.

Learn: Each namespace is its own table, so "is this username a super
admin?" and "is this username a wedding admin?" are independent lookups.
The resolver decides precedence; this class only fetches.

get_memberships() is the live membership read every wedding-scoped
request goes through. It ignores anything carried in the token.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from wedsite.auth.identity import Identity, Role
from wedsite.db.errors import translate_db_errors
from wedsite.db.models import LegacyAdmin, SuperAdmin, WeddingAdmin


def normalize_username(username: str) -> str:
    return username.strip().lower()


class IdentityStore:
    def __init__(self, db: AsyncSession, legacy_wedding_id: str = ""):
        self.db = db
        self.legacy_wedding_id = legacy_wedding_id

    async def get_super_admin(self, username: str) -> Optional[SuperAdmin]:
        async with translate_db_errors("get_super_admin"):
            return await self.db.get(SuperAdmin, normalize_username(username))

    async def get_wedding_admin(
        self, username: str, *, for_update: bool = False
    ) -> Optional[WeddingAdmin]:
        async with translate_db_errors("get_wedding_admin"):
            return await self.db.get(
                WeddingAdmin,
                normalize_username(username),
                populate_existing=True,
                with_for_update=for_update or None,
            )

    async def get_legacy_admin(self, username: str) -> Optional[LegacyAdmin]:
        async with translate_db_errors("get_legacy_admin"):
            return await self.db.get(LegacyAdmin, normalize_username(username))

    async def get_memberships(self, identity: Identity) -> frozenset[str]:
        """Current set of wedding ids the identity may administer.

        Master and super-admin are not membership-scoped and get an empty
        set; callers check is_privileged first. A deleted account has no
        memberships.
        """
        if identity.role in (Role.WEDDING_CLIENT, Role.WEDDING_STAFF):
            admin = await self.get_wedding_admin(identity.subject)
            if admin is None:
                return frozenset()
            return frozenset(admin.wedding_ids or [])

        if identity.role == Role.LEGACY:
            legacy = await self.get_legacy_admin(identity.subject)
            if legacy is None or not self.legacy_wedding_id:
                return frozenset()
            return frozenset({self.legacy_wedding_id})

        return frozenset()
