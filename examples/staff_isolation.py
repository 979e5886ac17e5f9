#!/usr/bin/env python3
"""
Tenant isolation with a shared staff account.

A planner (staff) is linked to two weddings and unlinked from one of
them. The unlink takes effect on the very next request, without the
planner logging in again: membership is read live, never from the token.

Run with: WEDSITE_EXAMPLE_PASSWORD=... python examples/staff_isolation.py
"""

import uuid

from _common import client_for, login, super_admin_client


def main():
    run_id = uuid.uuid4().hex[:6]
    admin = super_admin_client()

    staff_username = f"planner_{run_id}"
    resp = admin.post("/superadmin/staff", json={
        "username": staff_username,
        "password": "planner-pass-1",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"\nStaff account: {staff_username}")

    weddings = []
    for name in ("north", "south"):
        resp = admin.post("/superadmin/weddings", json={
            "slug": f"{name}-{run_id}",
            "display_name": f"Wedding {name.title()}",
            "staff_username": staff_username,
        })
        assert resp.status_code == 201, f"Failed: {resp.text}"
        weddings.append(resp.json()["wedding"])
        print(f"  linked to {weddings[-1]['slug']}")

    # Second owner so the staff member is not the last one
    north = weddings[0]
    resp = admin.post(f"/superadmin/weddings/{north['wedding_id']}/owners", json={
        "username": f"couple_{run_id}",
        "create_account": True,
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"

    detail_path = f"/admin/weddings/{north['wedding_id']}"
    planner = client_for(login(staff_username, "planner-pass-1"))
    print(f"\nBefore unlink: {planner.get(detail_path).status_code}")

    resp = admin.delete(f"/superadmin/weddings/{north['wedding_id']}/owners/{staff_username}")
    assert resp.status_code == 204, f"Failed: {resp.text}"

    # Same token, next request
    print(f"After unlink:  {planner.get(detail_path).status_code}")


if __name__ == "__main__":
    main()
