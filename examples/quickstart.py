#!/usr/bin/env python3
"""
Bizdesk Quickstart — account lifecycle in one script.

Registers an account → logs in → reads /me → updates the profile →
requests a password-reset code → browses the knowledge library.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:5001
"""

import sys

import httpx

from _common import BASE, check_backend, demo_phone

PASSWORD = "demo-password-123"


def main():
    check_backend()
    client = httpx.Client(base_url=BASE, timeout=10)
    phone = demo_phone()

    # ── Register ──────────────────────────────────────────────────
    print("\n1. Registering...")
    resp = client.post("/auth/register", json={
        "name": "Demo Founder",
        "phone": phone,
        "password": PASSWORD,
        "company_name": "Demo Co",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    account = resp.json()["account"]
    print(f"   Account: {account['name']} ({account['id'][:8]}...), role={account['role']}")

    # ── Duplicate is refused ──────────────────────────────────────
    resp = client.post("/auth/register", json={
        "name": "Someone Else", "phone": phone, "password": PASSWORD,
    })
    print(f"   Registering the same phone again → {resp.status_code}")

    # ── Login ─────────────────────────────────────────────────────
    print("\n2. Logging in...")
    resp = client.post("/auth/login", json={"identifier": phone, "password": PASSWORD})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    token = resp.json()["token"]
    client.headers["Authorization"] = f"Bearer {token}"
    print(f"   Token: {token[:24]}...")

    resp = client.post("/auth/login", json={"identifier": phone, "password": "wrong-password"})
    print(f"   Wrong password → {resp.status_code}")

    # ── Who am I ──────────────────────────────────────────────────
    print("\n3. Current account:")
    me = client.get("/auth/me").json()
    print(f"   {me['name']} @ {me['company_name']} (tier: {me['subscription_tier']})")

    # ── Profile ───────────────────────────────────────────────────
    print("\n4. Updating profile...")
    resp = client.patch("/users/me", json={
        "position": "CEO",
        "calendar_events": [{"title": "Investor call", "date": "2026-11-02"}],
    })
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Position: {resp.json()['position']}")
    print(f"   Calendar: {len(resp.json()['calendar_events'])} event(s)")

    # ── Password reset ────────────────────────────────────────────
    print("\n5. Requesting a password-reset code...")
    resp = client.post("/auth/reset-code", json={"identifier": phone})
    print(f"   {resp.json()['message']} (delivered out of band, valid 10 minutes)")

    # ── Knowledge library ─────────────────────────────────────────
    print("\n6. Knowledge library:")
    articles = client.get("/articles").json()
    if not articles:
        print("   (empty — admins add articles with POST /articles)")
    for article in articles[:5]:
        print(f"   [{article['category']}] {article['title']}")

    resp = client.post("/articles", json={
        "title": "x", "category": "x", "format": "x", "summary": "x",
    })
    print(f"   Non-admin article write → {resp.status_code}")

    print("\n✓ Quickstart finished.")


if __name__ == "__main__":
    try:
        main()
    except httpx.HTTPError as e:
        print(f"ERROR: {e!r}")
        sys.exit(1)
