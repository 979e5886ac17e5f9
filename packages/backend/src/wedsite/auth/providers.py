"""Identity providers — one per account namespace.

Each provider answers a single question: do these credentials belong to
an account in my namespace? There are three answers: the identity (match),
PASSWORD_MISMATCH (the account exists, the password is wrong) or None (no
such account). The resolver asks them in order and the first match wins.

An authoritative provider owns every username it holds. A password
mismatch there ends the login instead of falling through, so a
super-admin name cannot be logged into with a legacy admin's password.
"""

import hmac
from typing import Protocol, Union

from wedsite.auth.identity import AuthFailure, Identity, Role
from wedsite.auth.password import verify_password_async
from wedsite.auth.store import IdentityStore

MASTER_USERNAME = "master"

PASSWORD_MISMATCH = AuthFailure(401, "Invalid username or password", "AUTH_ERROR")

ProviderResult = Union[Identity, AuthFailure, None]


class IdentityProvider(Protocol):
    name: str
    authoritative: bool

    async def try_authenticate(self, username: str, password: str) -> ProviderResult:
        """Identity on a match, PASSWORD_MISMATCH or None otherwise."""
        ...


class MasterProvider:
    """The single configuration-defined master account."""

    name = "master"
    authoritative = False

    def __init__(self, master_password: str):
        self._password = master_password

    async def try_authenticate(self, username: str, password: str) -> ProviderResult:
        if not self._password or username != MASTER_USERNAME:
            return None
        if not hmac.compare_digest(
            password.encode("utf-8"), self._password.encode("utf-8")
        ):
            return None
        return Identity(subject=MASTER_USERNAME, role=Role.MASTER)


class SuperAdminProvider:
    name = "super"
    authoritative = True

    def __init__(self, store: IdentityStore):
        self.store = store

    async def try_authenticate(self, username: str, password: str) -> ProviderResult:
        admin = await self.store.get_super_admin(username)
        if admin is None:
            return None
        if not await verify_password_async(password, admin.password_hash):
            return PASSWORD_MISMATCH
        return Identity(subject=admin.username, role=Role.SUPER)


class WeddingAdminProvider:
    """Client and staff accounts; role follows the record's user_type."""

    name = "wedding"
    authoritative = False

    def __init__(self, store: IdentityStore):
        self.store = store

    async def try_authenticate(self, username: str, password: str) -> ProviderResult:
        admin = await self.store.get_wedding_admin(username)
        if admin is None:
            return None
        if not await verify_password_async(password, admin.password_hash):
            return PASSWORD_MISMATCH
        role = Role.WEDDING_STAFF if admin.user_type == "staff" else Role.WEDDING_CLIENT
        return Identity(
            subject=admin.username,
            role=role,
            must_change_password=admin.must_change_password,
            wedding_ids=tuple(admin.wedding_ids or ()),
        )


class LegacyAdminProvider:
    name = "legacy"
    authoritative = False

    def __init__(self, store: IdentityStore):
        self.store = store

    async def try_authenticate(self, username: str, password: str) -> ProviderResult:
        admin = await self.store.get_legacy_admin(username)
        if admin is None:
            return None
        if not await verify_password_async(password, admin.password_hash):
            return PASSWORD_MISMATCH
        wedding_ids = (
            (self.store.legacy_wedding_id,) if self.store.legacy_wedding_id else ()
        )
        return Identity(
            subject=admin.username,
            role=Role.LEGACY,
            must_change_password=admin.must_change_password,
            wedding_ids=wedding_ids,
        )


def default_providers(
    store: IdentityStore, master_password: str
) -> list[IdentityProvider]:
    """The login precedence: master, super-admin, wedding admin, legacy."""
    return [
        MasterProvider(master_password),
        SuperAdminProvider(store),
        WeddingAdminProvider(store),
        LegacyAdminProvider(store),
    ]
