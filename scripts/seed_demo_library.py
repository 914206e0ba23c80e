#!/usr/bin/env python3
"""Seed a demo library with one prompt per wildcard syntax.

Usage:
    python scripts/seed_demo_library.py --email demo@example.com --password demo-pass-1
    python scripts/seed_demo_library.py --base-url http://localhost:8400 --signup ...
"""

from __future__ import annotations

import argparse
import sys

import httpx

from prompt_shelf.core.templates import EXAMPLE_WILDCARDS

GROUPS = {
    "Syntax examples": [
        "curlyBraces",
        "squareBrackets",
        "doubleParens",
        "loraReferences",
        "dollarVariables",
    ],
    "Combined": ["mixed"],
}


def _session(client: httpx.Client, email: str, password: str, signup: bool) -> str:
    path = "/api/v1/auth/signup" if signup else "/api/v1/auth/login"
    resp = client.post(path, json={"email": email, "password": password, "name": "Demo"})
    if signup and resp.status_code == 409:
        resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    resp.raise_for_status()
    return resp.json()["token"]


def seed_via_api(base_url: str, email: str, password: str, signup: bool) -> None:
    with httpx.Client(base_url=base_url, timeout=10.0) as client:
        token = _session(client, email, password, signup)
        client.headers["Authorization"] = f"Bearer {token}"

        resp = client.post(
            "/api/v1/libraries",
            json={"name": "Wildcard demo", "description": "One prompt per template syntax"},
        )
        resp.raise_for_status()
        library = resp.json()
        print(f"  Created library: {library['name']} ({library['id']})")

        for group_name, examples in GROUPS.items():
            resp = client.post(
                "/api/v1/groups", json={"library_id": library["id"], "name": group_name}
            )
            resp.raise_for_status()
            group = resp.json()

            for key in examples:
                resp = client.post(
                    "/api/v1/prompts",
                    json={
                        "group_id": group["id"],
                        "positive_prompt": EXAMPLE_WILDCARDS[key],
                        "notes": f"Example: {key}",
                    },
                )
                if resp.status_code == 201:
                    body = resp.json()
                    print(f"  Created prompt: {key} ({body['wildcard_count']} wildcards)")
                else:
                    print(f"  FAILED {key}: {resp.status_code} {resp.text}", file=sys.stderr)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo library into PromptShelf")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8400",
        help="PromptShelf API base URL (default: http://localhost:8400)",
    )
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--signup", action="store_true", help="Create the account first")
    args = parser.parse_args()

    print(f"Seeding demo library to {args.base_url} ...")
    seed_via_api(args.base_url, args.email, args.password, args.signup)
    print("Done.")


if __name__ == "__main__":
    main()
