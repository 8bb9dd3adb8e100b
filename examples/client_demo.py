#!/usr/bin/env python3
"""Walk through a wallet login against a running agent.

This script shows how to:
1. Build and sign a challenge with an Ed25519 wallet key
2. Exchange it for a bearer token at the auth route
3. Call a public and an authenticated method with that token

Usage:
    AGENT_TOKEN_SECRET=change-me python -m torus_agent.main
    python examples/client_demo.py http://localhost:3000
"""

from __future__ import annotations

import json
import sys

import httpx
from nacl.signing import SigningKey

from torus_agent.core.security import ss58_encode
from torus_agent.services.challenge import build_challenge, encode_challenge


def sign_in(client: httpx.Client, signing_key: SigningKey, origin: str) -> str:
    """Return a session token for `signing_key`."""
    address = ss58_encode(signing_key.verify_key.encode())
    payload = encode_challenge(build_challenge(origin))
    signature = signing_key.sign(payload).signature

    response = client.post(
        "/auth",
        json={
            "payload": "0x" + payload.hex(),
            "signature": "0x" + signature.hex(),
            "address": address,
        },
        headers={"Origin": origin},
    )
    response.raise_for_status()
    print(f"Signed in as {address}")
    return str(response.json()["token"])


def main(base_url: str) -> int:
    signing_key = SigningKey.generate()

    with httpx.Client(base_url=base_url, timeout=10.0) as client:
        echo = client.post("/test", json={"cid": "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"})
        print(f"POST /test -> {echo.status_code} {echo.json()}")

        missing = client.get("/check-session")
        print(f"GET /check-session without token -> {missing.status_code} {missing.json()}")

        token = sign_in(client, signing_key, base_url)
        session = client.get("/check-session", headers={"Authorization": f"Bearer {token}"})
        print(f"GET /check-session -> {session.status_code} {session.json()}")

        docs = client.get("/docs")
        if docs.status_code == 200:
            print("Documented paths:", json.dumps(sorted(docs.json()["paths"])))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else "http://localhost:3000"))
