#!/usr/bin/env python3
"""
Wedsite Quickstart — a wedding's whole admin lifecycle in one script.

Creates a wedding with a new client owner → client logs in with the
temporary password → sets a real password → sees only their wedding →
super-admin archives it → the client is locked out.

Run with: WEDSITE_EXAMPLE_PASSWORD=... python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000
"""

import sys
import uuid

from _common import client_for, login, super_admin_client


def main():
    run_id = uuid.uuid4().hex[:6]
    admin = super_admin_client()

    # ── Create wedding with a new client owner ────────────────────
    print("\n1. Creating wedding...")
    resp = admin.post("/superadmin/weddings", json={
        "slug": f"anna-and-ben-{run_id}",
        "display_name": "Anna & Ben",
        "status": "active",
        "owner_username": f"anna_{run_id}",
        "owner_email": "anna@example.com",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    created = resp.json()
    wedding = created["wedding"]
    print(f"   Wedding: {wedding['display_name']} ({wedding['wedding_id'][:8]}...)")
    print(f"   Owner:   {created['owner_username']} (temporary password issued)")

    # ── Client logs in with the temporary password ────────────────
    print("\n2. Client logs in...")
    tokens = login(created["owner_username"], created["temp_password"])
    print(f"   Role: {tokens['role']}, must change password: {tokens['must_change_password']}")

    client = client_for(tokens)
    resp = client.post("/auth/set-new-password", json={"new_password": "a-real-password"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    client = client_for(resp.json()["tokens"])
    print("   Password set, fresh tokens issued")

    # ── Client sees exactly one wedding ───────────────────────────
    print("\n3. Client's weddings:")
    for w in client.get("/admin/weddings").json():
        print(f"   - {w['slug']} [{w['status']}]")

    # ── Public site ───────────────────────────────────────────────
    resp = client.get(f"/weddings/{wedding['slug']}")
    print(f"\n4. Public page: {resp.status_code}")

    # ── Archive → locked out ──────────────────────────────────────
    print("\n5. Archiving...")
    resp = admin.post(f"/superadmin/weddings/{wedding['wedding_id']}/archive")
    assert resp.status_code == 200, f"Failed: {resp.text}"
    resp = client.get(f"/admin/weddings/{wedding['wedding_id']}")
    print(f"   Client access after archive: {resp.status_code} {resp.json()['detail']}")
    if resp.status_code != 403:
        sys.exit(1)

    print("\n✓ Lifecycle finished.")


if __name__ == "__main__":
    main()
