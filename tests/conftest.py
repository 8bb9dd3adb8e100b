# tests/conftest.py
from __future__ import annotations

import json
import secrets
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import pytest
import sr25519
from fastapi.testclient import TestClient
from nacl.signing import SigningKey

from torus_agent.agent import Agent
from torus_agent.core.security import ss58_encode, wrap_bytes
from torus_agent.core.settings import AgentSettings
from torus_agent.main import create_agent
from torus_agent.schemas.auth import ChallengeDocument
from torus_agent.services.challenge import build_challenge, encode_challenge
from torus_agent.utils.time import utcnow

TEST_SECRET = "test"
TEST_ORIGIN = "http://x"
AGENT_ADDRESS = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"


@dataclass(frozen=True)
class Wallet:
    """Ed25519 keypair with its generic-format SS58 address."""

    signing_key: SigningKey

    @property
    def public_key(self) -> bytes:
        return self.signing_key.verify_key.encode()

    @property
    def address(self) -> str:
        return ss58_encode(self.public_key, 42)

    def sign(self, message: bytes) -> bytes:
        return self.signing_key.sign(message).signature


@dataclass(frozen=True)
class Sr25519Wallet:
    """sr25519 keypair, the scheme browser extension accounts sign with."""

    public_key: bytes
    private_key: bytes

    @classmethod
    def generate(cls) -> Sr25519Wallet:
        public_key, private_key = sr25519.pair_from_seed(secrets.token_bytes(32))
        return cls(public_key=bytes(public_key), private_key=bytes(private_key))

    @property
    def address(self) -> str:
        return ss58_encode(self.public_key, 42)

    def sign(self, message: bytes) -> bytes:
        return bytes(sr25519.sign((self.public_key, self.private_key), message))


AnyWallet = Wallet | Sr25519Wallet


def make_wallet() -> Wallet:
    return Wallet(SigningKey.generate())


def sign_bytes(wallet: AnyWallet, payload: bytes, *, wrap: bool = False) -> dict[str, str]:
    """Return an auth request body for arbitrary payload bytes."""
    message = wrap_bytes(payload) if wrap else payload
    return {
        "payload": "0x" + payload.hex(),
        "signature": "0x" + wallet.sign(message).hex(),
        "address": wallet.address,
    }


def sign_document(wallet: AnyWallet, document: dict[str, Any], *, wrap: bool = False) -> dict[str, str]:
    """Sign a raw JSON document (keys exactly as given)."""
    return sign_bytes(wallet, json.dumps(document).encode("utf-8"), wrap=wrap)


def sign_challenge(
    wallet: AnyWallet,
    document: ChallengeDocument,
    *,
    wrap: bool = False,
) -> dict[str, str]:
    return sign_bytes(wallet, encode_challenge(document), wrap=wrap)


def challenge_for(uri: str = TEST_ORIGIN, *, nonce: str | None = None, created_at: datetime | None = None) -> ChallengeDocument:
    document = build_challenge(uri, now=created_at or utcnow())
    if nonce is not None:
        document = document.model_copy(update={"nonce": nonce})
    return document


@pytest.fixture()
def wallet() -> Wallet:
    return make_wallet()


@pytest.fixture()
def sr25519_wallet() -> Sr25519Wallet:
    return Sr25519Wallet.generate()


@pytest.fixture()
def other_wallet() -> Wallet:
    return make_wallet()


@pytest.fixture()
def settings() -> AgentSettings:
    return AgentSettings(token_secret=TEST_SECRET, address=AGENT_ADDRESS)


@pytest.fixture()
def agent(settings: AgentSettings) -> Agent:
    return create_agent(settings)


@pytest.fixture()
def client(agent: Agent) -> Iterator[TestClient]:
    with TestClient(agent.app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def auth_headers(client: TestClient, wallet: Wallet) -> dict[str, str]:
    """Authenticate `wallet` through the auth route and return bearer headers."""
    response = client.post(
        "/auth",
        json=sign_challenge(wallet, challenge_for()),
        headers={"Origin": TEST_ORIGIN},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}
