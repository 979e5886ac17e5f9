"""Wedding access policy tests: lifecycle gates and archived lockout."""

import pytest

from wedsite.auth.identity import AuthFailure, Identity, Role
from wedsite.auth.policy import (
    WeddingAccessPolicy,
    require_active_wedding,
    require_admin_accessible_wedding,
)
from wedsite.auth.store import IdentityStore
from wedsite.db.models import Wedding
from wedsite.services.wedding_directory import WeddingDirectory

ARCHIVED_MESSAGE = (
    "This wedding has been archived. Please contact support if you need access."
)
UNKNOWN_ID = "6f9d1a52-0000-4000-8000-000000000404"


def _wedding(status: str) -> Wedding:
    return Wedding(slug="some-wedding", display_name="Some Wedding", status=status, created_by="t")


@pytest.fixture()
def policy(db_session):
    return WeddingAccessPolicy(IdentityStore(db_session), WeddingDirectory(db_session))


# ═══════════════════════════════════════════════════════════
# Pure gates
# ═══════════════════════════════════════════════════════════


def test_active_wedding_is_public():
    assert require_active_wedding(_wedding("active")) is None


def test_missing_wedding_is_404():
    assert require_active_wedding(None).status_code == 404
    assert require_admin_accessible_wedding(None, is_super_admin=True).status_code == 404


def test_draft_hidden_from_public_but_not_admins():
    denied = require_active_wedding(_wedding("draft"))
    assert denied.status_code == 403
    assert denied.error == "This wedding is not yet published."
    assert require_active_wedding(_wedding("draft"), admin_view=True) is None


@pytest.mark.parametrize("admin_view", [False, True])
def test_archived_wedding_never_public(admin_view):
    assert require_active_wedding(_wedding("archived"), admin_view=admin_view).status_code == 403


@pytest.mark.parametrize("status", ["draft", "active"])
def test_admin_accessible_statuses(status):
    assert require_admin_accessible_wedding(_wedding(status), is_super_admin=False) is None


def test_archived_locks_out_non_super_admins():
    denied = require_admin_accessible_wedding(_wedding("archived"), is_super_admin=False)
    assert denied == AuthFailure(403, ARCHIVED_MESSAGE, "ACCESS_DENIED")
    assert require_admin_accessible_wedding(_wedding("archived"), is_super_admin=True) is None


# ═══════════════════════════════════════════════════════════
# Composed admin check
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_member_of_active_wedding(policy, make_wedding, make_wedding_admin):
    wedding = await make_wedding("anna-and-ben", owners=("couple",))
    await make_wedding_admin("couple", wedding_ids=[wedding.wedding_id])

    identity = Identity(subject="couple", role=Role.WEDDING_CLIENT)
    result = await policy.authorize_admin(identity, wedding.wedding_id)
    assert isinstance(result, Wedding)
    assert result.wedding_id == wedding.wedding_id


@pytest.mark.asyncio
async def test_archived_lockout_for_member(policy, make_wedding, make_wedding_admin):
    wedding = await make_wedding("old-wedding", status="archived", owners=("couple",))
    await make_wedding_admin("couple", wedding_ids=[wedding.wedding_id])

    identity = Identity(subject="couple", role=Role.WEDDING_CLIENT)
    result = await policy.authorize_admin(identity, wedding.wedding_id)
    assert result == AuthFailure(403, ARCHIVED_MESSAGE, "ACCESS_DENIED")


@pytest.mark.asyncio
async def test_super_admin_sees_archived(policy, make_wedding):
    wedding = await make_wedding("old-wedding", status="archived")
    result = await policy.authorize_admin(Identity("root", Role.SUPER), wedding.wedding_id)
    assert isinstance(result, Wedding)


@pytest.mark.asyncio
async def test_non_member_denied_before_lookup(policy, make_wedding_admin):
    await make_wedding_admin("couple", wedding_ids=[])
    identity = Identity(subject="couple", role=Role.WEDDING_CLIENT)
    # Unknown id gives the same 403 as a real wedding: no existence probing
    result = await policy.authorize_admin(identity, UNKNOWN_ID)
    assert result.status_code == 403


@pytest.mark.asyncio
async def test_super_admin_unknown_wedding_is_404(policy):
    result = await policy.authorize_admin(Identity("root", Role.SUPER), UNKNOWN_ID)
    assert result.status_code == 404
