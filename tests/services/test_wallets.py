# tests/services/test_wallets.py
"""Tests for the wallet registry and wallet verification challenges."""

from datetime import timedelta

import pytest

from skinbag_settlement.db.time import as_utc, utcnow
from skinbag_settlement.models import WalletVerificationChallenge
from skinbag_settlement.services import wallets as wallet_service
from skinbag_settlement.services.errors import (
    ChallengeExpiredError,
    InvalidSignatureError,
    InvalidTransitionError,
    NoWalletConfiguredError,
    NotFoundError,
    ValidationError,
    WalletMismatchError,
    WalletNotVerifiedError,
)

EVM_ADDRESS = "0x" + "ab" * 20
OTHER_EVM_ADDRESS = "0x" + "cd" * 20


def _add_wallet(db_session, human, address, **kwargs):
    return wallet_service.upsert_wallet(
        db_session,
        human.id,
        chain="polygon",
        network="testnet",
        token_symbol="USDC",
        address=address,
        **kwargs,
    )


def test_first_wallet_becomes_default(db_session, human) -> None:
    """Test that a group always ends up with a default wallet."""
    wallet = _add_wallet(db_session, human, EVM_ADDRESS)

    assert wallet.is_default is True
    assert wallet.verification_status == "unverified"
    assert wallet.token_symbol == "USDC"


def test_new_default_clears_previous_default(db_session, human, wallet) -> None:
    """Test that marking a wallet as default unsets its siblings."""
    second = _add_wallet(db_session, human, OTHER_EVM_ADDRESS, is_default=True)
    db_session.refresh(wallet)

    assert second.is_default is True
    assert wallet.is_default is False
    wallets = wallet_service.list_wallets(db_session, human.id)
    assert [w.id for w in wallets] == [second.id, wallet.id]


def test_reupsert_updates_in_place_and_resets_verification(db_session, human, verified_wallet) -> None:
    """Test that saving the same natural key updates the row and resets verification."""
    updated = _add_wallet(db_session, human, EVM_ADDRESS, label="renamed", is_default=True)

    assert updated.id == verified_wallet.id
    assert updated.label == "renamed"
    assert updated.verification_status == "unverified"


def test_invalid_address_rejected(db_session, human) -> None:
    """Test that addresses must match their chain's format."""
    with pytest.raises(ValidationError):
        _add_wallet(db_session, human, "not-an-address")

    with pytest.raises(ValidationError):
        wallet_service.upsert_wallet(
            db_session,
            human.id,
            chain="solana",
            network="mainnet",
            token_symbol="USDC",
            address=EVM_ADDRESS,
        )


def test_resolve_wallet_uses_default(db_session, human, wallet) -> None:
    """Test that the default wallet of the group is picked."""
    resolved = wallet_service.resolve_wallet_for_payout(
        db_session, human.id, "polygon", "testnet", "usdc"
    )
    assert resolved.id == wallet.id


def test_resolve_wallet_without_configuration(db_session, human) -> None:
    """Test that a payee without a wallet in the group is reported."""
    with pytest.raises(NoWalletConfiguredError):
        wallet_service.resolve_wallet_for_payout(db_session, human.id, "polygon", "testnet", "USDC")


def test_resolve_explicit_wallet_mismatch(db_session, human, wallet) -> None:
    """Test that an explicit wallet must match chain, network and token."""
    with pytest.raises(WalletMismatchError, match="chain/network"):
        wallet_service.resolve_wallet_for_payout(
            db_session, human.id, "polygon", "mainnet", "USDC", wallet.id
        )
    with pytest.raises(WalletMismatchError, match="token"):
        wallet_service.resolve_wallet_for_payout(
            db_session, human.id, "polygon", "testnet", "USDT", wallet.id
        )


def test_unverified_wallet_blocks_auto_pay(wallet) -> None:
    """Test that agent_auto payouts need a verified wallet."""
    with pytest.raises(WalletNotVerifiedError):
        wallet_service.assert_verified_for_auto_pay(wallet)


def test_challenge_message_and_signature_are_deterministic(db_session, human, wallet) -> None:
    """Test the challenge message layout and the expected demo signature."""
    issued = wallet_service.create_challenge(db_session, human.id, wallet_id=wallet.id)
    challenge = issued.challenge

    lines = challenge.message.split("\n")
    assert lines[0] == "skinbag.rent wallet verification"
    assert lines[1] == f"address:{EVM_ADDRESS}"
    assert lines[2] == f"challenge:{challenge.challenge}"
    assert lines[4] == "proof_method:demo_deterministic"
    assert challenge.status == "pending"
    assert issued.signature_format.startswith("demo_sig_")
    assert wallet_service.expected_signature(
        EVM_ADDRESS.upper(), challenge.challenge
    ) == wallet_service.expected_signature(EVM_ADDRESS, challenge.challenge)


def test_challenge_by_filters(db_session, human, wallet) -> None:
    """Test locating the wallet by natural-key filters instead of id."""
    issued = wallet_service.create_challenge(
        db_session, human.id, chain="polygon", address=EVM_ADDRESS.upper()
    )
    assert issued.wallet.id == wallet.id

    with pytest.raises(NotFoundError):
        wallet_service.create_challenge(db_session, human.id, chain="solana")


def test_challenge_expiry_is_clamped(db_session, human, wallet) -> None:
    """Test that the requested lifetime is clamped to the configured maximum."""
    before = utcnow()
    issued = wallet_service.create_challenge(
        db_session, human.id, wallet_id=wallet.id, expires_in_minutes=100000
    )
    lifetime = as_utc(issued.challenge.expires_at) - before
    assert timedelta(minutes=1439) < lifetime <= timedelta(minutes=1441)


def test_zero_challenge_expiry_uses_minimum(db_session, human, wallet) -> None:
    """Test that a zero lifetime is clamped up to the minimum, not replaced by the default."""
    before = utcnow()
    issued = wallet_service.create_challenge(
        db_session, human.id, wallet_id=wallet.id, expires_in_minutes=0
    )
    lifetime = as_utc(issued.challenge.expires_at) - before
    assert timedelta(0) < lifetime <= timedelta(minutes=1, seconds=5)


def test_verify_challenge_marks_wallet_verified(db_session, human, wallet) -> None:
    """Test that the correct signature verifies both challenge and wallet."""
    issued = wallet_service.create_challenge(db_session, human.id, wallet_id=wallet.id)
    signature = wallet_service.expected_signature(wallet.address, issued.challenge.challenge)

    verified = wallet_service.verify_challenge(db_session, issued.challenge.id, signature, human.id)

    assert verified.challenge.status == "verified"
    assert verified.challenge.verified_at is not None
    assert verified.challenge.provided_signature == signature
    assert verified.wallet.verification_status == "verified"

    with pytest.raises(InvalidTransitionError):
        wallet_service.verify_challenge(db_session, issued.challenge.id, signature)


def test_wrong_signature_rejects_challenge(db_session, human, wallet) -> None:
    """Test that a bad signature rejects the challenge and keeps the wallet unverified."""
    issued = wallet_service.create_challenge(db_session, human.id, wallet_id=wallet.id)

    with pytest.raises(InvalidSignatureError):
        wallet_service.verify_challenge(db_session, issued.challenge.id, "demo_sig_nope")

    challenge = db_session.get(WalletVerificationChallenge, issued.challenge.id)
    assert challenge.status == "rejected"
    assert wallet.verification_status == "unverified"


def test_expired_challenge(db_session, human, wallet) -> None:
    """Test that an expired challenge is marked expired on verification."""
    issued = wallet_service.create_challenge(db_session, human.id, wallet_id=wallet.id)
    issued.challenge.expires_at = utcnow() - timedelta(seconds=1)
    db_session.flush()
    signature = wallet_service.expected_signature(wallet.address, issued.challenge.challenge)

    with pytest.raises(ChallengeExpiredError):
        wallet_service.verify_challenge(db_session, issued.challenge.id, signature)

    assert db_session.get(WalletVerificationChallenge, issued.challenge.id).status == "expired"


def test_verify_checks_expected_human(db_session, human, wallet) -> None:
    """Test that a challenge cannot be verified for a different payee."""
    issued = wallet_service.create_challenge(db_session, human.id, wallet_id=wallet.id)

    with pytest.raises(NotFoundError, match="selected human"):
        wallet_service.verify_challenge(
            db_session, issued.challenge.id, "demo_sig_x", expected_human_id="someone-else"
        )


def test_blank_signature_rejected(db_session, human, wallet) -> None:
    """Test that an empty signature is a validation error."""
    issued = wallet_service.create_challenge(db_session, human.id, wallet_id=wallet.id)
    with pytest.raises(ValidationError):
        wallet_service.verify_challenge(db_session, issued.challenge.id, "   ")


def test_list_challenges_filters_by_status(db_session, human, wallet) -> None:
    """Test listing challenges newest first with a status filter."""
    first = wallet_service.create_challenge(db_session, human.id, wallet_id=wallet.id)
    wallet_service.create_challenge(db_session, human.id, wallet_id=wallet.id)
    with pytest.raises(InvalidSignatureError):
        wallet_service.verify_challenge(db_session, first.challenge.id, "demo_sig_wrong")

    assert len(wallet_service.list_challenges(db_session, human.id)) == 2
    rejected = wallet_service.list_challenges(db_session, human.id, status="rejected")
    assert [c.id for c in rejected] == [first.challenge.id]
