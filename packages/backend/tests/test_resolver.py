"""Identity resolution tests: provider precedence, login and refresh."""

import pytest

from wedsite.auth.identity import AuthFailure, Role
from wedsite.auth.providers import (
    PASSWORD_MISMATCH,
    MasterProvider,
    SuperAdminProvider,
    default_providers,
)
from wedsite.auth.resolver import IdentityResolver, LoginResult
from wedsite.auth.store import IdentityStore
from wedsite.auth.tokens import TokenCodec, TokenType
from wedsite.db.models import WeddingAdmin

from conftest import LEGACY_WEDDING_ID, MASTER_PASSWORD

SECRET = "resolver-test-secret"


@pytest.fixture()
def codec():
    return TokenCodec(SECRET)


@pytest.fixture()
def store(db_session):
    return IdentityStore(db_session, legacy_wedding_id=LEGACY_WEDDING_ID)


@pytest.fixture()
def resolver(store, codec):
    return IdentityResolver(default_providers(store, MASTER_PASSWORD), codec)


# ═══════════════════════════════════════════════════════════
# Master
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_master_login(resolver, codec):
    result = await resolver.login("master", MASTER_PASSWORD)
    assert isinstance(result, LoginResult)
    assert result.identity.role == Role.MASTER
    assert result.tokens.expires_in == 900

    claim = codec.verify(result.tokens.access_token)
    assert claim.subject == "master"
    assert claim.role == Role.MASTER


@pytest.mark.asyncio
async def test_master_username_is_normalized(resolver):
    result = await resolver.login("  MASTER ", MASTER_PASSWORD)
    assert result.identity.role == Role.MASTER


@pytest.mark.asyncio
async def test_master_wrong_password(resolver):
    result = await resolver.login("master", "not-the-password")
    assert isinstance(result, AuthFailure)
    assert result.status_code == 401


@pytest.mark.asyncio
async def test_master_disabled_without_password():
    provider = MasterProvider("")
    assert await provider.try_authenticate("master", "") is None
    assert await provider.try_authenticate("master", "anything") is None


# ═══════════════════════════════════════════════════════════
# Precedence
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_super_admin_shadows_legacy_admin(
    resolver, make_super_admin, make_legacy_admin
):
    await make_super_admin("anna", "shared-password")
    await make_legacy_admin("anna", "shared-password")

    result = await resolver.login("anna", "shared-password")
    assert result.identity.role == Role.SUPER


@pytest.mark.asyncio
async def test_super_admin_name_blocks_legacy_password(
    resolver, make_super_admin, make_legacy_admin
):
    await make_super_admin("anna", "super-password")
    await make_legacy_admin("anna", "legacy-password")

    result = await resolver.login("anna", "legacy-password")
    assert result == AuthFailure(401, "Invalid username or password", "AUTH_ERROR")

    result = await resolver.login("anna", "super-password")
    assert result.identity.role == Role.SUPER


@pytest.mark.asyncio
async def test_legacy_admin_alone_logs_in(resolver, make_legacy_admin):
    await make_legacy_admin("anna", "legacy-password")

    result = await resolver.login("anna", "legacy-password")
    assert result.identity.role == Role.LEGACY
    assert result.identity.wedding_ids == (LEGACY_WEDDING_ID,)


@pytest.mark.asyncio
async def test_wedding_admin_mismatch_falls_through_to_legacy(
    resolver, make_wedding_admin, make_legacy_admin
):
    await make_wedding_admin("ben", "wedding-password")
    await make_legacy_admin("ben", "legacy-password")

    result = await resolver.login("ben", "legacy-password")
    assert result.identity.role == Role.LEGACY


@pytest.mark.asyncio
async def test_provider_outcomes(store, make_super_admin):
    await make_super_admin("anna", "super-password")
    provider = SuperAdminProvider(store)

    assert provider.authoritative is True
    assert (await provider.try_authenticate("anna", "super-password")).role == Role.SUPER
    assert await provider.try_authenticate("anna", "wrong-password") == PASSWORD_MISMATCH
    assert await provider.try_authenticate("nobody", "super-password") is None


@pytest.mark.asyncio
async def test_wedding_admin_before_legacy(
    resolver, make_wedding_admin, make_legacy_admin
):
    await make_wedding_admin("ben", "same-password", wedding_ids=["w1"])
    await make_legacy_admin("ben", "same-password")

    result = await resolver.login("ben", "same-password")
    assert result.identity.role == Role.WEDDING_CLIENT


# ═══════════════════════════════════════════════════════════
# Wedding admins
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_client_login_carries_snapshot_and_flag(resolver, codec, make_wedding_admin):
    await make_wedding_admin(
        "couple", "temp-password", wedding_ids=["w1"], must_change_password=True
    )

    result = await resolver.login("Couple", "temp-password")
    assert result.identity.role == Role.WEDDING_CLIENT
    assert result.identity.wedding_ids == ("w1",)
    assert result.identity.must_change_password is True

    claim = codec.verify(result.tokens.access_token)
    assert claim.must_change_password is True
    assert claim.wedding_ids == ("w1",)


@pytest.mark.asyncio
async def test_staff_login(resolver, make_wedding_admin):
    await make_wedding_admin("planner", "planner-pass", wedding_ids=["a", "b"], user_type="staff")
    result = await resolver.login("planner", "planner-pass")
    assert result.identity.role == Role.WEDDING_STAFF


# ═══════════════════════════════════════════════════════════
# Failures
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_unknown_user_gets_generic_401(resolver):
    result = await resolver.login("nobody", "whatever-password")
    assert isinstance(result, AuthFailure)
    assert result.status_code == 401
    assert result.error == "Invalid username or password"


@pytest.mark.asyncio
async def test_wrong_password_is_indistinguishable(resolver, make_super_admin):
    await make_super_admin("root", "root-password-1")
    wrong = await resolver.login("root", "root-password-2")
    unknown = await resolver.login("nobody", "root-password-2")
    assert wrong == unknown


@pytest.mark.asyncio
@pytest.mark.parametrize("username,password", [("", "pw"), ("anna", ""), ("", "")])
async def test_missing_credentials(resolver, username, password):
    result = await resolver.login(username, password)
    assert result.status_code == 400


# ═══════════════════════════════════════════════════════════
# Refresh
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_refresh_reissues_pair(resolver, codec, make_super_admin):
    await make_super_admin("root", "root-password-1")
    login = await resolver.login("root", "root-password-1")

    refreshed = resolver.refresh(login.tokens.refresh_token)
    assert isinstance(refreshed, LoginResult)
    assert refreshed.identity.subject == "root"
    assert refreshed.identity.role == Role.SUPER
    assert codec.verify(refreshed.tokens.access_token).subject == "root"
    assert codec.verify(refreshed.tokens.refresh_token, TokenType.REFRESH).role == Role.SUPER


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(resolver):
    login = await resolver.login("master", MASTER_PASSWORD)
    result = resolver.refresh(login.tokens.access_token)
    assert isinstance(result, AuthFailure)
    assert result.error == "Invalid token type"


@pytest.mark.asyncio
async def test_refresh_does_not_recheck_account(resolver, db_session, make_wedding_admin):
    await make_wedding_admin("gone", "gone-password")
    login = await resolver.login("gone", "gone-password")

    admin = await db_session.get(WeddingAdmin, "gone")
    await db_session.delete(admin)
    await db_session.commit()

    # Stateless: the refresh token stays usable until it expires
    refreshed = resolver.refresh(login.tokens.refresh_token)
    assert isinstance(refreshed, LoginResult)
    assert refreshed.identity.subject == "gone"
