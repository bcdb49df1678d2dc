"""Bizdesk CLI — talk to a running backend, and promote admins.

Usage:
    bizdesk register "Sara" 09120000000          # Create an account (prompts for password)
    bizdesk login 09120000000                    # Print a session token
    bizdesk ask "How do I price my SaaS?"        # Business chat (needs BIZDESK_TOKEN)
    bizdesk users                                # List accounts (admin token)
    bizdesk promote 09120000000                  # Grant admin, directly in the database

API commands use BIZDESK_API_URL (default http://localhost:5001) and
BIZDESK_TOKEN for authenticated calls. `promote` connects to
BIZDESK_DATABASE_URL directly; no HTTP route grants admin rights.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import sys
from typing import Optional

import click
import httpx

from bizdesk import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5001"


def _api_url() -> str:
    return os.environ.get("BIZDESK_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Bizdesk backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    # Business chat waits on several model calls; be generous.
    return httpx.AsyncClient(base_url=_api_url(), timeout=120.0, headers=headers)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _token_from_env() -> str:
    token = os.environ.get("BIZDESK_TOKEN")
    if not token:
        click.secho(
            "Error: set BIZDESK_TOKEN (get one with `bizdesk login`)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return token


def _fail(resp: httpx.Response) -> None:
    """Print the API error detail and exit non-zero."""
    try:
        detail = resp.json().get("detail", resp.text)
    except ValueError:
        detail = resp.text
    click.secho(f"Error {resp.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k) or "—")[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="bizdesk")
def main():
    """Bizdesk — accounts, business chat and admin tools."""


# ---------------------------------------------------------------------------
# bizdesk register / login
# ---------------------------------------------------------------------------


@main.command()
@click.argument("name")
@click.argument("phone")
@click.password_option()
@click.option("--company", help="Company name")
def register(name: str, phone: str, password: str, company: Optional[str]):
    """Create an account and print its session token."""
    _run(_register_impl(name, phone, password, company))


async def _register_impl(name: str, phone: str, password: str, company: Optional[str]):
    async with _client() as c:
        r = await c.post("/api/v1/auth/register", json={
            "name": name,
            "phone": phone,
            "password": password,
            "company_name": company,
        })
        if r.status_code != 201:
            _fail(r)
        data = r.json()
        click.secho(f"Registered {data['account']['name']} ({data['account']['id']})", fg="green")
        click.echo(data["token"])


@main.command()
@click.argument("identifier")
@click.password_option(confirmation_prompt=False)
def login(identifier: str, password: str):
    """Log in with phone (or email) and print a session token."""
    _run(_login_impl(identifier, password))


async def _login_impl(identifier: str, password: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/login", json={
            "identifier": identifier,
            "password": password,
        })
        if r.status_code != 200:
            _fail(r)
        click.echo(r.json()["token"])


# ---------------------------------------------------------------------------
# bizdesk ask
# ---------------------------------------------------------------------------


@main.command()
@click.argument("prompt")
def ask(prompt: str):
    """Ask the marketing, sales and finance personas a question."""
    _run(_ask_impl(prompt, _token_from_env()))


async def _ask_impl(prompt: str, token: str):
    async with _client(token) as c:
        click.echo("Asking the business advisors...")
        r = await c.post("/api/v1/business-chat", json={"prompt": prompt})
        if r.status_code != 200:
            _fail(r)
        click.echo()
        click.echo(r.json()["response"])


# ---------------------------------------------------------------------------
# bizdesk users
# ---------------------------------------------------------------------------


@main.command()
def users():
    """List all accounts (requires an admin token)."""
    _run(_users_impl(_token_from_env()))


async def _users_impl(token: str):
    async with _client(token) as c:
        r = await c.get("/api/v1/admin/users")
        if r.status_code != 200:
            _fail(r)
        rows = r.json()
        if not rows:
            click.echo("No accounts.")
            return
        click.secho(f"Accounts ({len(rows)}):", bold=True)
        _print_table(rows, [
            ("ID", "id", 8),
            ("NAME", "name", 20),
            ("PHONE", "phone", 14),
            ("EMAIL", "email", 28),
            ("ROLE", "role", 6),
            ("COMPANY", "company_name", 20),
        ])


# ---------------------------------------------------------------------------
# bizdesk promote
# ---------------------------------------------------------------------------


@main.command()
@click.argument("identifier")
@click.option("--revoke", is_flag=True, help="Demote back to a regular user")
def promote(identifier: str, revoke: bool):
    """Grant (or --revoke) the admin role, directly in the database."""
    _run(_promote_impl(identifier, revoke))


async def _promote_impl(identifier: str, revoke: bool):
    from sqlalchemy.ext.asyncio import AsyncSession

    from bizdesk.auth.google import GoogleIdentityVerifier
    from bizdesk.auth.jwt import TokenService
    from bizdesk.auth.roles import Role
    from bizdesk.config import settings
    from bizdesk.db.engine import build_engine
    from bizdesk.services.identity_service import (
        AccountNotFoundError,
        IdentityService,
        LogResetCodeSender,
    )
    from bizdesk.stores.accounts import SqlAccountStore

    role = Role.USER if revoke else Role.ADMIN
    engine = build_engine(settings.database_url, pooled=False)
    try:
        async with AsyncSession(engine, expire_on_commit=False) as db:
            svc = IdentityService(
                store=SqlAccountStore(db),
                tokens=TokenService.from_settings(settings),
                verifier=GoogleIdentityVerifier.from_settings(settings),
                code_sender=LogResetCodeSender(),
            )
            try:
                account = await svc.set_role(identifier, role)
            except AccountNotFoundError:
                click.secho(f"No account for {identifier}", fg="red", err=True)
                sys.exit(1)
            click.secho(f"{account.name} is now {role.value}", fg="green")
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
