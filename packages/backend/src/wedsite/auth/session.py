"""Session authenticator — per-request token checks.

Learn: Verifying the access token is pure computation (HMAC + clock), so
most requests never touch the database. Only wedding-scoped checks for
non-privileged roles read the account's current memberships.
"""

from typing import Optional, Protocol, Union

from wedsite.auth.identity import AuthFailure, Identity, Role
from wedsite.auth.tokens import TokenCodec, TokenType

MISSING_HEADER = AuthFailure(401, "Missing authorization header", "AUTH_ERROR")
MASTER_REQUIRED = AuthFailure(403, "Master access required", "FORBIDDEN")
SUPER_ADMIN_REQUIRED = AuthFailure(403, "Super admin access required", "FORBIDDEN")
WEDDING_ACCESS_DENIED = AuthFailure(
    403,
    "Access denied: You do not have permission for this wedding",
    "ACCESS_DENIED",
)


class MembershipSource(Protocol):
    async def get_memberships(self, identity: Identity) -> frozenset[str]:
        ...


def extract_bearer(header: Optional[str]) -> Optional[str]:
    """Pull the token out of an Authorization header.

    Accepts "Bearer <token>" and, for older clients, the bare token.
    """
    if not header:
        return None
    parts = header.split(None, 1)
    if parts and parts[0].lower() == "bearer":
        return parts[1].strip() if len(parts) > 1 else None
    return header.strip() or None


class SessionAuthenticator:
    def __init__(self, codec: TokenCodec, memberships: MembershipSource):
        self.codec = codec
        self.memberships = memberships

    def require_auth(self, header: Optional[str]) -> Union[Identity, AuthFailure]:
        token = extract_bearer(header)
        if token is None:
            return MISSING_HEADER
        claim = self.codec.verify(token, expected_type=TokenType.ACCESS)
        if isinstance(claim, AuthFailure):
            return claim
        return claim.to_identity()

    def require_master(self, header: Optional[str]) -> Union[Identity, AuthFailure]:
        identity = self.require_auth(header)
        if isinstance(identity, AuthFailure):
            return identity
        if identity.role != Role.MASTER:
            return MASTER_REQUIRED
        return identity

    def require_super_admin(
        self, header: Optional[str]
    ) -> Union[Identity, AuthFailure]:
        identity = self.require_auth(header)
        if isinstance(identity, AuthFailure):
            return identity
        if not identity.is_privileged:
            return SUPER_ADMIN_REQUIRED
        return identity

    async def check_wedding_access(
        self, identity: Identity, wedding_id: str
    ) -> Optional[AuthFailure]:
        """None if the identity may act on the wedding, else the denial."""
        if identity.is_privileged:
            return None
        memberships = await self.memberships.get_memberships(identity)
        if wedding_id not in memberships:
            return WEDDING_ACCESS_DENIED
        return None

    async def require_wedding_access(
        self, header: Optional[str], wedding_id: str
    ) -> Union[Identity, AuthFailure]:
        identity = self.require_auth(header)
        if isinstance(identity, AuthFailure):
            return identity
        denied = await self.check_wedding_access(identity, wedding_id)
        return denied or identity
