"""Wedding access policy — lifecycle state on top of membership.

Learn: Membership answers "is this wedding yours?"; the lifecycle answers
"is this wedding open?". Both have to pass:

    draft     → visible to its admins, hidden from the public
    active    → visible to everyone
    archived  → visible to super-admins/master only (terminal)
"""

from typing import Optional, Union

from wedsite.auth.identity import AuthFailure, Identity
from wedsite.auth.session import MembershipSource, WEDDING_ACCESS_DENIED
from wedsite.db.models import Wedding
from wedsite.services.wedding_directory import WeddingDirectory, WeddingStatus

WEDDING_NOT_FOUND = AuthFailure(404, "Wedding not found", "NOT_FOUND")
WEDDING_ARCHIVED_PUBLIC = AuthFailure(
    403, "This wedding is no longer available.", "WEDDING_ARCHIVED"
)
WEDDING_NOT_PUBLISHED = AuthFailure(
    403, "This wedding is not yet published.", "WEDDING_DRAFT"
)
WEDDING_ARCHIVED_ADMIN = AuthFailure(
    403,
    "This wedding has been archived. Please contact support if you need access.",
    "ACCESS_DENIED",
)


def require_active_wedding(
    wedding: Optional[Wedding], *, admin_view: bool = False
) -> Optional[AuthFailure]:
    """Gate for wedding content. Drafts pass only for admin views."""
    if wedding is None:
        return WEDDING_NOT_FOUND
    if wedding.status == WeddingStatus.ARCHIVED:
        return WEDDING_ARCHIVED_PUBLIC
    if wedding.status == WeddingStatus.DRAFT and not admin_view:
        return WEDDING_NOT_PUBLISHED
    return None


def require_admin_accessible_wedding(
    wedding: Optional[Wedding], is_super_admin: bool
) -> Optional[AuthFailure]:
    """Gate for admin screens. Only super-admins and master see archived weddings."""
    if wedding is None:
        return WEDDING_NOT_FOUND
    if is_super_admin:
        return None
    if wedding.status == WeddingStatus.ARCHIVED:
        return WEDDING_ARCHIVED_ADMIN
    return None


class WeddingAccessPolicy:
    def __init__(self, memberships: MembershipSource, directory: WeddingDirectory):
        self.memberships = memberships
        self.directory = directory

    async def authorize_admin(
        self, identity: Identity, wedding_id: str
    ) -> Union[Wedding, AuthFailure]:
        """Full admin check for one wedding. Returns the wedding on success.

        Membership is checked before the wedding is fetched, so a
        non-member cannot discover which wedding ids exist.
        """
        if not identity.is_privileged:
            memberships = await self.memberships.get_memberships(identity)
            if wedding_id not in memberships:
                return WEDDING_ACCESS_DENIED

        wedding = await self.directory.get_wedding(wedding_id)
        denied = require_admin_accessible_wedding(wedding, identity.is_privileged)
        return denied or wedding
