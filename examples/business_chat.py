#!/usr/bin/env python3
"""
Business chat — one question, three expert personas.

The backend asks its marketing, sales and finance personas in parallel
and returns their analyses merged in that order. If any persona fails,
the whole request fails with 500 and the failed personas are listed.

Run with: python examples/business_chat.py "How should I price my SaaS?"

Requires: pip install httpx, and BIZDESK_GEMINI_API_KEY set on the backend.
"""

import sys

from _common import create_client


def main():
    prompt = " ".join(sys.argv[1:]) or "How can a 5-person agency grow revenue next year?"
    client = create_client(timeout=120)

    print(f"\nQuestion: {prompt}\n")
    resp = client.post("/business-chat", json={"prompt": prompt})

    if resp.status_code == 500:
        detail = resp.json()["detail"]
        print(f"✗ {detail['message']}")
        print(f"  Failed personas: {', '.join(detail['failed_personas'])}")
        sys.exit(1)
    assert resp.status_code == 200, f"Failed: {resp.status_code} {resp.text}"

    data = resp.json()
    for section in data["sections"]:
        print(f"── {section['label']} " + "─" * 20)
        print(section["text"].strip())
        print()

    print(f"✓ {len(data['sections'])} analyses received.")


if __name__ == "__main__":
    main()
