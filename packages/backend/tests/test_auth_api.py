"""Auth API tests: login, refresh, /me and password endpoints."""

import pytest

from wedsite.auth.identity import Role
from wedsite.auth.tokens import ACCESS_TOKEN_TTL_MS, now_ms

from conftest import MASTER_PASSWORD


async def _login(client, username, password):
    return await client.post(
        "/api/v1/auth/login", json={"username": username, "password": password}
    )


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_master_login(client):
    r = await _login(client, "master", MASTER_PASSWORD)
    assert r.status_code == 200
    body = r.json()
    assert body["role"] == "master"
    assert body["username"] == "master"
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == 900
    assert body["access_token"].count(".") == 1
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_login_unknown_user(client):
    r = await _login(client, "nobody", "some-password")
    assert r.status_code == 401
    assert r.json() == {"detail": "Invalid username or password", "code": "AUTH_ERROR"}
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_login_wrong_password_same_response(client, make_super_admin):
    await make_super_admin("root", "root-password-1")
    wrong = await _login(client, "root", "root-password-2")
    unknown = await _login(client, "nobody", "root-password-2")
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


@pytest.mark.asyncio
async def test_login_empty_password(client):
    r = await _login(client, "master", "")
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_login_missing_field(client):
    r = await client.post("/api/v1/auth/login", json={"username": "master"})
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert "password" in r.json()["detail"]


@pytest.mark.asyncio
async def test_client_login_reports_memberships(client, make_wedding, make_wedding_admin):
    wedding = await make_wedding("anna-and-ben", owners=("couple",))
    await make_wedding_admin(
        "couple", "temp-password", wedding_ids=[wedding.wedding_id], must_change_password=True
    )

    body = (await _login(client, "couple", "temp-password")).json()
    assert body["role"] == "wedding_client"
    assert body["wedding_ids"] == [wedding.wedding_id]
    assert body["must_change_password"] is True


# ═══════════════════════════════════════════════════════════
# Refresh
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_refresh(client):
    tokens = (await _login(client, "master", MASTER_PASSWORD)).json()
    r = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert r.status_code == 200
    assert r.json()["role"] == "master"

    me = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {r.json()['access_token']}"},
    )
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_refresh_with_access_token(client):
    tokens = (await _login(client, "master", MASTER_PASSWORD)).json()
    r = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]}
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token type"


@pytest.mark.asyncio
async def test_refresh_token_cannot_call_api(client):
    tokens = (await _login(client, "master", MASTER_PASSWORD)).json()
    r = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token type"


# ═══════════════════════════════════════════════════════════
# /me
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_requires_header(client):
    r = await client.get("/api/v1/auth/me")
    assert r.status_code == 401
    assert r.json()["detail"] == "Missing authorization header"


@pytest.mark.asyncio
async def test_me_expired_token(client, bearer):
    r = await client.get(
        "/api/v1/auth/me",
        headers=bearer("master", Role.MASTER, issued_at=now_ms() - ACCESS_TOKEN_TTL_MS - 1000),
    )
    assert r.status_code == 401
    assert r.json() == {"detail": "Token expired", "code": "TOKEN_EXPIRED"}


@pytest.mark.asyncio
async def test_me_reads_memberships_live(client, bearer, make_wedding_admin):
    await make_wedding_admin("planner", wedding_ids=["w-2", "w-1"], user_type="staff")
    r = await client.get("/api/v1/auth/me", headers=bearer("planner", Role.WEDDING_STAFF))
    assert r.status_code == 200
    body = r.json()
    assert body["role"] == "wedding_staff"
    assert body["wedding_ids"] == ["w-1", "w-2"]
    assert body["is_super_admin"] is False


# ═══════════════════════════════════════════════════════════
# Passwords
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_change_password_flow(client, make_super_admin):
    await make_super_admin("root", "root-password-1")
    tokens = (await _login(client, "root", "root-password-1")).json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    r = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "root-password-1", "new_password": "root-password-2"},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Password changed successfully"

    assert (await _login(client, "root", "root-password-1")).status_code == 401
    assert (await _login(client, "root", "root-password-2")).status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(client, bearer, make_super_admin):
    await make_super_admin("root", "root-password-1")
    r = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "nope-nope", "new_password": "root-password-2"},
        headers=bearer("root", Role.SUPER),
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Current password is incorrect"


@pytest.mark.asyncio
async def test_master_cannot_change_password(client, bearer):
    r = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": MASTER_PASSWORD, "new_password": "another-one"},
        headers=bearer("master", Role.MASTER),
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_set_new_password_issues_clean_tokens(client, make_wedding, make_wedding_admin):
    wedding = await make_wedding("anna-and-ben", owners=("couple",))
    await make_wedding_admin(
        "couple", "temp-password", wedding_ids=[wedding.wedding_id], must_change_password=True
    )
    tokens = (await _login(client, "couple", "temp-password")).json()

    r = await client.post(
        "/api/v1/auth/set-new-password",
        json={"new_password": "chosen-password"},
        headers={"Authorization": f"Bearer {tokens['access_token']}"},
    )
    assert r.status_code == 200
    fresh = r.json()["tokens"]
    assert fresh["must_change_password"] is False
    assert fresh["wedding_ids"] == [wedding.wedding_id]

    again = await client.post(
        "/api/v1/auth/set-new-password",
        json={"new_password": "another-password"},
        headers={"Authorization": f"Bearer {fresh['access_token']}"},
    )
    assert again.status_code == 403

    assert (await _login(client, "couple", "chosen-password")).json()["must_change_password"] is False


# ═══════════════════════════════════════════════════════════
# Profile
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_profile_for_master(client, bearer):
    r = await client.get("/api/v1/auth/profile", headers=bearer("master", Role.MASTER))
    assert r.status_code == 200
    assert r.json()["username"] == "master"
    assert r.json()["created_by"] == "system"


@pytest.mark.asyncio
async def test_profile_for_deleted_account(client, bearer):
    r = await client.get("/api/v1/auth/profile", headers=bearer("ghost", Role.SUPER))
    assert r.status_code == 404
    assert r.json()["detail"] == "Profile not found"


@pytest.mark.asyncio
async def test_update_and_clear_email(client, bearer, make_wedding_admin):
    await make_wedding_admin("couple")
    headers = bearer("couple", Role.WEDDING_CLIENT)

    r = await client.put(
        "/api/v1/auth/profile/email", json={"email": "us@example.com"}, headers=headers
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Email updated successfully"

    profile = await client.get("/api/v1/auth/profile", headers=headers)
    assert profile.json()["email"] == "us@example.com"
    assert profile.json()["role"] == "wedding_client"

    r = await client.put("/api/v1/auth/profile/email", json={"email": ""}, headers=headers)
    assert r.json()["message"] == "Email removed successfully"
    assert (await client.get("/api/v1/auth/profile", headers=headers)).json()["email"] is None


@pytest.mark.asyncio
async def test_update_email_rejected(client, bearer, make_wedding_admin):
    await make_wedding_admin("couple")
    r = await client.put(
        "/api/v1/auth/profile/email",
        json={"email": "not-an-email"},
        headers=bearer("couple", Role.WEDDING_CLIENT),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_EMAIL"

    r = await client.put(
        "/api/v1/auth/profile/email",
        json={"email": "m@example.com"},
        headers=bearer("master", Role.MASTER),
    )
    assert r.status_code == 403
    assert r.json()["detail"] == "Master account email cannot be updated"
