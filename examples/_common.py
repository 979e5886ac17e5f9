"""
Shared helpers for Wedsite examples.

Handles the health check and login so each example can focus on its
specific flow. Credentials come from the environment:

    WEDSITE_EXAMPLE_ADMIN     super-admin username (default: "master")
    WEDSITE_EXAMPLE_PASSWORD  its password (the master password, or one
                              created with `wedsite create-superadmin`)
"""

import os
import sys

import httpx

BASE = os.environ.get("WEDSITE_API_URL", "http://localhost:8000").rstrip("/") + "/api/v1"


def check_backend() -> None:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  wedsite serve --reload")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Redis:    {'✓' if health['redis'] == 'ok' else '✗'}")

    if health["database"] != "ok":
        print("\nERROR: Database is not connected.")
        sys.exit(1)


def login(username: str, password: str) -> dict:
    """Log in and return the token response (exits on failure)."""
    resp = httpx.post(
        f"{BASE}/auth/login",
        json={"username": username, "password": password},
        timeout=10,
    )
    if resp.status_code != 200:
        print(f"ERROR: Login as {username} failed: {resp.status_code} {resp.text}")
        sys.exit(1)
    return resp.json()


def client_for(tokens: dict) -> httpx.Client:
    return httpx.Client(
        base_url=BASE,
        timeout=10,
        headers={"Authorization": f"Bearer {tokens['access_token']}"},
    )


def super_admin_client() -> httpx.Client:
    """Check backend, log in as the configured super-admin, return a client."""
    check_backend()
    username = os.environ.get("WEDSITE_EXAMPLE_ADMIN", "master")
    password = os.environ.get("WEDSITE_EXAMPLE_PASSWORD")
    if not password:
        print("ERROR: set WEDSITE_EXAMPLE_PASSWORD")
        sys.exit(1)
    tokens = login(username, password)
    print(f"  Auth:     ✓ ({tokens['role']})")
    return client_for(tokens)
