"""
Shared helpers for Bizdesk examples.

Handles the health check and account setup (register, falling back to
login) so each example can focus on its specific workflow.
"""

import os
import sys
import uuid

import httpx

BASE = os.environ.get("BIZDESK_API_URL", "http://localhost:5001").rstrip("/") + "/api/v1"


def check_backend() -> None:
    """Verify the backend is reachable and its database is up."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  uvicorn bizdesk.main:app --reload --port 5001")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print(f"Backend health: {health['status']}")
    print(f"  Postgres: {'✓' if health['postgres'] == 'ok' else health['postgres']}")
    print(f"  Redis:    {'✓' if health['redis'] == 'ok' else health['redis']}")

    if health["postgres"] != "ok":
        print("\nERROR: Postgres is not connected.")
        sys.exit(1)


def demo_phone() -> str:
    """A phone number unique to this run, so examples are repeatable."""
    return "0912" + f"{uuid.uuid4().int % 10 ** 7:07d}"


def authenticate(phone: str, password: str = "demo-password-123") -> dict:
    """Register (or log in, if the phone is taken) and return the auth payload."""
    resp = httpx.post(
        f"{BASE}/auth/register",
        json={
            "name": "Demo Founder",
            "phone": phone,
            "password": password,
            "company_name": "Demo Co",
            "company_size": "1-10",
        },
        timeout=10,
    )
    if resp.status_code == 400:
        resp = httpx.post(
            f"{BASE}/auth/login",
            json={"identifier": phone, "password": password},
            timeout=10,
        )
    if resp.status_code not in (200, 201):
        print(f"ERROR: Authentication failed: {resp.status_code} {resp.text}")
        sys.exit(1)
    return resp.json()


def create_client(timeout: float = 10) -> httpx.Client:
    """Check backend, authenticate, and return an httpx Client with auth headers."""
    check_backend()
    auth = authenticate(demo_phone())
    print(f"  Auth:     ✓ ({auth['account']['name']}, {auth['account']['role']})")
    return httpx.Client(
        base_url=BASE,
        timeout=timeout,
        headers={"Authorization": f"Bearer {auth['token']}"},
    )
