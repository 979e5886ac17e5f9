"""Identity value objects shared by the whole auth core."""

from dataclasses import dataclass
from enum import Enum

from wedsite.errors import AppError, error_for_status


class Role(str, Enum):
    MASTER = "master"
    SUPER = "super"
    WEDDING_CLIENT = "wedding_client"
    WEDDING_STAFF = "wedding_staff"
    LEGACY = "legacy"


# Roles with implicit access to every wedding.
PRIVILEGED_ROLES = frozenset({Role.MASTER, Role.SUPER})

# Roles whose wedding access is decided by a live membership lookup.
TENANT_SCOPED_ROLES = frozenset(
    {Role.WEDDING_CLIENT, Role.WEDDING_STAFF, Role.LEGACY}
)


@dataclass(frozen=True)
class Identity:
    """Who is calling.

    role and subject come from the signed token and are trusted.
    wedding_ids is the snapshot taken at login and is informational only
    (e.g. the frontend picks a default wedding from it); authorization
    always re-fetches memberships from the account record.
    """

    subject: str
    role: Role
    must_change_password: bool = False
    wedding_ids: tuple[str, ...] = ()

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


@dataclass(frozen=True)
class AuthFailure:
    """A typed authentication/authorization denial.

    Returned (never raised) by the auth core. The HTTP edge turns it
    into an AppError with to_error().
    """

    status_code: int
    error: str
    code: str = "AUTH_ERROR"

    def to_error(self) -> AppError:
        return error_for_status(self.status_code, self.error, self.code)
