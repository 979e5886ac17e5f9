"""Wedsite CLI — database bootstrap and API smoke checks.

Usage:
    wedsite serve                                    # Run the API with uvicorn
    wedsite create-superadmin anna --email a@x.io    # Bootstrap a super-admin
    wedsite reconcile-memberships                    # Repair membership arrays
    wedsite login anna                               # Log in against a running API
    wedsite health                                   # Check a running API

create-superadmin and reconcile-memberships talk to the database
directly (WEDSITE_DATABASE_URL); login and health go through the HTTP
API (WEDSITE_API_URL).
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from wedsite.config import settings
from wedsite.errors import AppError
from wedsite.logging_config import configure_logging

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("WEDSITE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


def _run(coro):
    """Run an async coroutine from a synchronous click handler.

    Offloads to a thread when a loop is already running (e.g. CliRunner
    inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


# ---------------------------------------------------------------------------
# Database commands
# ---------------------------------------------------------------------------


async def _create_superadmin(
    username: str, password: str, email: Optional[str], session_factory=None
) -> str:
    from wedsite.services.account_service import AccountService

    if session_factory is None:
        from wedsite.db.engine import async_session_factory as session_factory

    async with session_factory() as db:
        svc = AccountService(db, bcrypt_rounds=settings.bcrypt_rounds)
        admin = await svc.create_super_admin(
            username, password, created_by="cli", email=email
        )
        return admin.username


async def _reconcile(session_factory=None) -> int:
    from wedsite.services.wedding_service import WeddingService

    if session_factory is None:
        from wedsite.db.engine import async_session_factory as session_factory

    async with session_factory() as db:
        return await WeddingService(db).reconcile_memberships(performed_by="cli")


# ---------------------------------------------------------------------------
# HTTP commands
# ---------------------------------------------------------------------------


async def _login(username: str, password: str) -> dict:
    async with _client() as client:
        resp = await client.post(
            "/api/v1/auth/login", json={"username": username, "password": password}
        )
        body = resp.json()
        if resp.status_code != 200:
            raise click.ClickException(body.get("detail", resp.text))
        return body


async def _health() -> dict:
    async with _client() as client:
        resp = await client.get("/api/v1/health")
        resp.raise_for_status()
        return resp.json()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="wedsite")
def cli():
    """Wedsite — multi-tenant wedding microsite backend."""
    configure_logging(settings.log_level, settings.log_json)


@cli.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "wedsite.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("create-superadmin")
@click.argument("username")
@click.option("--email", default=None, help="Contact email")
@click.password_option(help="Password (prompted if omitted)")
def create_superadmin(username: str, email: Optional[str], password: str):
    """Create a super-admin account."""
    try:
        created = _run(_create_superadmin(username, password, email))
    except AppError as e:
        _fail(e.message)
    click.secho(f"Super admin '{created}' created.", fg="green")


@cli.command("reconcile-memberships")
def reconcile_memberships():
    """Rebuild every wedding admin's membership list from the owner links."""
    try:
        changed = _run(_reconcile())
    except AppError as e:
        _fail(e.message)
    click.echo(f"Reconciled memberships: {changed} admin(s) updated.")


@cli.command()
@click.argument("username")
@click.option("--password", prompt=True, hide_input=True)
@click.option("--json", "as_json", is_flag=True, help="Print the raw response")
def login(username: str, password: str, as_json: bool):
    """Log in against a running API and print the tokens."""
    body = _run(_login(username, password))
    if as_json:
        click.echo(_pretty_json(body))
        return
    click.echo(f"role:          {body['role']}")
    click.echo(f"weddings:      {', '.join(body['wedding_ids']) or '-'}")
    click.echo(f"access token:  {body['access_token']}")
    if body.get("must_change_password"):
        click.secho("Password change required before continuing.", fg="yellow")


@cli.command()
def health():
    """Check a running API."""
    try:
        body = _run(_health())
    except httpx.HTTPError as e:
        _fail(f"API unreachable at {_api_url()}: {e}")
    colour = "green" if body.get("status") == "healthy" else "yellow"
    click.secho(_pretty_json(body), fg=colour)


if __name__ == "__main__":
    cli()
