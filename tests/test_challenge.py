"""Tests for the challenge validator."""

from datetime import UTC, datetime, timedelta

import pytest

from tests.conftest import TEST_ORIGIN, Wallet, challenge_for, sign_challenge, sign_document
from torus_agent.core.errors import (
    InvalidPayloadError,
    InvalidSignatureError,
    MalformedPayloadError,
    NonceReusedError,
    OriginMismatchError,
    StaleChallengeError,
)
from torus_agent.core.security import ss58_encode
from torus_agent.schemas.auth import SignedPayload
from torus_agent.services.challenge import (
    NONCE_BYTES,
    ChallengeValidator,
    build_challenge,
    encode_challenge,
)
from torus_agent.services.replay import NonceReplayGuard
from torus_agent.services.signing import SignatureVerifier

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture()
def guard() -> NonceReplayGuard:
    return NonceReplayGuard(now=NOW)


@pytest.fixture()
def validator(guard: NonceReplayGuard) -> ChallengeValidator:
    return ChallengeValidator(SignatureVerifier(), guard)


def _signed(wallet: Wallet, **kwargs) -> SignedPayload:
    kwargs.setdefault("created_at", NOW)
    return SignedPayload(**sign_challenge(wallet, challenge_for(**kwargs)))


def test_valid_challenge_returns_signer_identity(
    validator: ChallengeValidator, guard: NonceReplayGuard, wallet: Wallet
) -> None:
    identity, document = validator.validate(_signed(wallet, nonce="ab12"), TEST_ORIGIN, NOW)

    assert identity == wallet.address
    assert document.nonce == "ab12"
    assert guard.seen("ab12") is True


def test_identity_is_canonicalized_to_chain_format(guard: NonceReplayGuard, wallet: Wallet) -> None:
    validator = ChallengeValidator(SignatureVerifier(), guard, ss58_format=0)
    signed = sign_challenge(wallet, challenge_for(created_at=NOW))
    signed["address"] = "0x" + wallet.public_key.hex()

    identity, _ = validator.validate(SignedPayload(**signed), TEST_ORIGIN, NOW)

    assert identity == ss58_encode(wallet.public_key, 0)


def test_replayed_nonce_is_rejected(validator: ChallengeValidator, wallet: Wallet) -> None:
    document = challenge_for(nonce="ab12", created_at=NOW)
    validator.validate(SignedPayload(**sign_challenge(wallet, document)), TEST_ORIGIN, NOW)

    with pytest.raises(NonceReusedError):
        validator.validate(SignedPayload(**sign_challenge(wallet, document)), TEST_ORIGIN, NOW)

    # A different signature over the same nonce is refused as well.
    with pytest.raises(NonceReusedError):
        validator.validate(
            SignedPayload(**sign_challenge(wallet, document, wrap=True)),
            TEST_ORIGIN,
            NOW + timedelta(minutes=1),
        )


def test_nonce_reuse_is_detected_across_wallets(
    validator: ChallengeValidator, wallet: Wallet, other_wallet: Wallet
) -> None:
    validator.validate(_signed(wallet, nonce="shared"), TEST_ORIGIN, NOW)

    with pytest.raises(NonceReusedError):
        validator.validate(_signed(other_wallet, nonce="shared"), TEST_ORIGIN, NOW)


def test_origin_mismatch_leaves_no_trace(
    validator: ChallengeValidator, guard: NonceReplayGuard, wallet: Wallet
) -> None:
    signed = _signed(wallet, uri="http://evil", nonce="n1")

    with pytest.raises(OriginMismatchError):
        validator.validate(signed, TEST_ORIGIN, NOW)
    assert guard.seen("n1") is False


def test_stale_challenge_is_rejected(
    validator: ChallengeValidator, guard: NonceReplayGuard, wallet: Wallet
) -> None:
    signed = _signed(wallet, nonce="old", created_at=NOW - timedelta(minutes=10, seconds=1))

    with pytest.raises(StaleChallengeError):
        validator.validate(signed, TEST_ORIGIN, NOW)
    assert guard.seen("old") is False


def test_challenge_at_window_edge_is_accepted(validator: ChallengeValidator, wallet: Wallet) -> None:
    signed = _signed(wallet, created_at=NOW - timedelta(minutes=10))
    identity, _ = validator.validate(signed, TEST_ORIGIN, NOW)
    assert identity == wallet.address


def test_future_dated_challenge(validator: ChallengeValidator, wallet: Wallet) -> None:
    slightly_ahead = _signed(wallet, created_at=NOW + timedelta(seconds=30))
    validator.validate(slightly_ahead, TEST_ORIGIN, NOW)

    far_ahead = _signed(wallet, created_at=NOW + timedelta(minutes=5))
    with pytest.raises(StaleChallengeError):
        validator.validate(far_ahead, TEST_ORIGIN, NOW)


def test_invalid_signature_leaves_no_trace(
    validator: ChallengeValidator, guard: NonceReplayGuard, wallet: Wallet, other_wallet: Wallet
) -> None:
    signed = sign_challenge(wallet, challenge_for(nonce="n2", created_at=NOW))
    signed["address"] = other_wallet.address

    with pytest.raises(InvalidSignatureError):
        validator.validate(SignedPayload(**signed), TEST_ORIGIN, NOW)
    assert len(guard) == 0


def test_malformed_payload(validator: ChallengeValidator, wallet: Wallet) -> None:
    signed = sign_challenge(wallet, challenge_for(created_at=NOW))
    signed["payload"] = "invalid"

    with pytest.raises(MalformedPayloadError):
        validator.validate(SignedPayload(**signed), TEST_ORIGIN, NOW)


@pytest.mark.parametrize(
    "document",
    [
        {"statement": "hi", "uri": TEST_ORIGIN, "createdAt": NOW.isoformat()},
        {"statement": "hi", "uri": TEST_ORIGIN, "nonce": "ab12", "createdAt": "yesterday"},
        {"statement": "hi", "nonce": "ab12", "createdAt": NOW.isoformat()},
    ],
)
def test_wrong_document_shape(
    validator: ChallengeValidator, guard: NonceReplayGuard, wallet: Wallet, document: dict
) -> None:
    with pytest.raises(InvalidPayloadError):
        validator.validate(SignedPayload(**sign_document(wallet, document)), TEST_ORIGIN, NOW)
    assert len(guard) == 0


def test_created_alias_is_accepted(validator: ChallengeValidator, wallet: Wallet) -> None:
    document = {
        "statement": "Sign in",
        "uri": TEST_ORIGIN,
        "nonce": "ab12",
        "created": "2024-05-01T11:59:00.000Z",
    }
    identity, parsed = validator.validate(
        SignedPayload(**sign_document(wallet, document)), TEST_ORIGIN, NOW
    )

    assert identity == wallet.address
    assert parsed.created_at == NOW - timedelta(minutes=1)


def test_naive_timestamps_are_treated_as_utc(validator: ChallengeValidator, wallet: Wallet) -> None:
    document = {
        "statement": "Sign in",
        "uri": TEST_ORIGIN,
        "nonce": "naive",
        "createdAt": "2024-05-01T11:58:00",
    }
    _, parsed = validator.validate(SignedPayload(**sign_document(wallet, document)), TEST_ORIGIN, NOW)
    assert parsed.created_at.tzinfo is not None


def test_build_challenge_generates_random_nonce() -> None:
    first = build_challenge(TEST_ORIGIN, now=NOW)
    second = build_challenge(TEST_ORIGIN, now=NOW)

    assert len(bytes.fromhex(first.nonce)) == NONCE_BYTES
    assert first.nonce != second.nonce
    assert b'"createdAt"' in encode_challenge(first)
