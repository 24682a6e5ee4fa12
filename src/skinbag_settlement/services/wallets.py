"""Payee wallet registry and challenge/response ownership verification."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from skinbag_settlement.core.settings import settings
from skinbag_settlement.db.time import as_utc, utcnow
from skinbag_settlement.models import HumanWallet, WalletVerificationChallenge
from skinbag_settlement.models.common import CHALLENGE_STATUSES, WALLET_VERIFICATION_STATUSES

from .common import (
    clamp_limit,
    clamp_offset,
    constant_time_equals,
    ensure_chain,
    ensure_choice,
    ensure_network,
    get_human,
    is_valid_address,
    normalize_token,
    sha256_hex,
)
from .errors import (
    ChallengeExpiredError,
    InvalidSignatureError,
    InvalidTransitionError,
    NoWalletConfiguredError,
    NotFoundError,
    ValidationError,
    WalletMismatchError,
    WalletNotVerifiedError,
)

logger = logging.getLogger(__name__)

PROOF_METHOD = "demo_deterministic"
SIGNATURE_FORMAT = "demo_sig_<sha256(lowercase_address + '|' + challenge)>"


@dataclass
class IssuedChallenge:
    challenge: WalletVerificationChallenge
    wallet: HumanWallet
    signature_format: str = SIGNATURE_FORMAT


@dataclass
class VerifiedWallet:
    challenge: WalletVerificationChallenge
    wallet: HumanWallet


def expected_signature(address: str, challenge: str) -> str:
    """The deterministic stand-in for a wallet signature over ``challenge``."""
    return f"demo_sig_{sha256_hex(f'{address.lower()}|{challenge}')}"


def build_challenge_message(address: str, challenge: str, expires_at: str) -> str:
    return "\n".join(
        [
            "skinbag.rent wallet verification",
            f"address:{address}",
            f"challenge:{challenge}",
            f"expires_at:{expires_at}",
            f"proof_method:{PROOF_METHOD}",
        ]
    )


def _group_filter(human_id: str, chain: str, network: str, token_symbol: str):
    return (
        HumanWallet.human_id == human_id,
        HumanWallet.chain == chain,
        HumanWallet.network == network,
        func.upper(HumanWallet.token_symbol) == token_symbol,
    )


def _default_first():
    return (
        HumanWallet.is_default.desc(),
        HumanWallet.updated_at.desc(),
        HumanWallet.created_at.desc(),
    )


def get_wallet(db: Session, wallet_id: str) -> HumanWallet:
    wallet = db.get(HumanWallet, wallet_id)
    if wallet is None:
        raise NotFoundError("Wallet not found")
    return wallet


def list_wallets(db: Session, human_id: str) -> list[HumanWallet]:
    """Return a payee's wallets, defaults first, then most recently updated."""
    get_human(db, human_id)
    stmt = select(HumanWallet).where(HumanWallet.human_id == human_id).order_by(*_default_first())
    return list(db.scalars(stmt))


def upsert_wallet(
    db: Session,
    human_id: str,
    *,
    chain: str,
    network: str,
    token_symbol: str,
    address: str,
    label: str | None = None,
    destination_tag: str | None = None,
    is_default: bool = False,
    verification_status: str | None = None,
) -> HumanWallet:
    """Create or update a wallet keyed by (payee, chain, network, token, address).

    Marking a wallet as default clears the flag on its siblings first; after
    the write the group is guaranteed to have a default wallet.

    Raises:
        NotFoundError: If the payee does not exist
        ValidationError: If chain, network or address format are invalid
    """
    get_human(db, human_id)
    ensure_chain(chain)
    ensure_network(network)
    if not is_valid_address(chain, address):
        raise ValidationError(f"Invalid wallet address format for {chain}")
    status = verification_status or "unverified"
    ensure_choice(status, WALLET_VERIFICATION_STATUSES, "verification_status")

    address = address.strip()
    token = normalize_token(token_symbol)
    group = _group_filter(human_id, chain, network, token)

    if is_default:
        db.execute(
            update(HumanWallet)
            .where(*group)
            .values(is_default=False, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )

    wallet = db.scalar(select(HumanWallet).where(*group, HumanWallet.address == address))
    if wallet is None:
        wallet = HumanWallet(
            human_id=human_id,
            chain=chain,
            network=network,
            token_symbol=token,
            address=address,
        )
        db.add(wallet)
    wallet.label = label
    wallet.destination_tag = destination_tag
    wallet.verification_status = status
    wallet.is_default = is_default
    db.flush()

    has_default = db.scalar(
        select(HumanWallet.id).where(*group, HumanWallet.is_default.is_(True)).limit(1)
    )
    if has_default is None:
        wallet.is_default = True
        db.flush()

    logger.info("Saved wallet %s for human %s on %s/%s", wallet.id, human_id, chain, network)
    return wallet


def resolve_wallet_for_payout(
    db: Session,
    human_id: str,
    chain: str,
    network: str,
    token_symbol: str,
    wallet_id: str | None = None,
) -> HumanWallet:
    """Pick the destination wallet of a payout.

    An explicit ``wallet_id`` must belong to the payee and match the payout's
    chain, network and token; otherwise the payee's default wallet is used.
    """
    token = normalize_token(token_symbol)
    if wallet_id:
        wallet = db.get(HumanWallet, wallet_id)
        if wallet is None or wallet.human_id != human_id:
            raise WalletMismatchError("Wallet not found for selected human")
        if wallet.chain != chain or wallet.network != network:
            raise WalletMismatchError("Wallet chain/network mismatch with payout")
        if wallet.token_symbol.upper() != token:
            raise WalletMismatchError("Wallet token mismatch with payout")
        return wallet

    stmt = (
        select(HumanWallet)
        .where(*_group_filter(human_id, chain, network, token))
        .order_by(*_default_first())
        .limit(1)
    )
    wallet = db.scalar(stmt)
    if wallet is None:
        raise NoWalletConfiguredError(
            "No wallet configured for this human on selected chain/network/token"
        )
    return wallet


def assert_verified_for_auto_pay(wallet: HumanWallet) -> None:
    if wallet.verification_status != "verified":
        raise WalletNotVerifiedError("Wallet must be verified for agent_auto payouts")


def create_challenge(
    db: Session,
    human_id: str,
    *,
    wallet_id: str | None = None,
    chain: str | None = None,
    network: str | None = None,
    token_symbol: str | None = None,
    address: str | None = None,
    expires_in_minutes: int | None = None,
) -> IssuedChallenge:
    """Issue a verification challenge for one of the payee's wallets."""
    get_human(db, human_id)
    if wallet_id:
        wallet = db.get(HumanWallet, wallet_id)
        if wallet is None or wallet.human_id != human_id:
            raise NotFoundError("Wallet not found for this human")
    else:
        stmt = select(HumanWallet).where(HumanWallet.human_id == human_id)
        if chain:
            stmt = stmt.where(HumanWallet.chain == chain)
        if network:
            stmt = stmt.where(HumanWallet.network == network)
        if token_symbol:
            stmt = stmt.where(func.upper(HumanWallet.token_symbol) == normalize_token(token_symbol))
        if address:
            stmt = stmt.where(func.lower(HumanWallet.address) == address.strip().lower())
        wallet = db.scalar(stmt.order_by(*_default_first()).limit(1))
        if wallet is None:
            raise NotFoundError("Wallet not found for verification challenge")

    minutes = (
        settings.challenge_expiry_default_minutes
        if expires_in_minutes is None
        else expires_in_minutes
    )
    minutes = min(
        max(minutes, settings.challenge_expiry_min_minutes),
        settings.challenge_expiry_max_minutes,
    )
    nonce = uuid.uuid4().hex
    expires_at = utcnow() + timedelta(minutes=minutes)

    challenge = WalletVerificationChallenge(
        wallet_id=wallet.id,
        human_id=wallet.human_id,
        challenge=nonce,
        message=build_challenge_message(wallet.address, nonce, expires_at.isoformat()),
        proof_method=PROOF_METHOD,
        expected_signature_hash=sha256_hex(expected_signature(wallet.address, nonce)),
        status="pending",
        expires_at=expires_at,
    )
    db.add(challenge)
    db.flush()
    logger.info("Issued wallet challenge %s for wallet %s", challenge.id, wallet.id)
    return IssuedChallenge(challenge=challenge, wallet=wallet)


def verify_challenge(
    db: Session,
    challenge_id: str,
    signature: str,
    expected_human_id: str | None = None,
) -> VerifiedWallet:
    """Check a signature against a pending challenge.

    Lazy expiry and signature rejection are terminal for the challenge, so
    both are committed before the error is raised.

    Raises:
        NotFoundError: Unknown challenge, or one issued for another payee
        InvalidTransitionError: Challenge is no longer pending
        ChallengeExpiredError: Challenge expired before verification
        InvalidSignatureError: Signature does not match
    """
    challenge = db.get(WalletVerificationChallenge, challenge_id)
    if challenge is None:
        raise NotFoundError("Wallet verification challenge not found")
    if expected_human_id and challenge.human_id != expected_human_id:
        raise NotFoundError("Challenge does not belong to selected human")
    if challenge.status != "pending":
        raise InvalidTransitionError(f"Challenge is already in status {challenge.status}")

    if as_utc(challenge.expires_at) <= utcnow():
        challenge.status = "expired"
        db.commit()
        logger.warning("Wallet challenge %s expired before verification", challenge.id)
        raise ChallengeExpiredError("Wallet verification challenge expired")

    provided = signature.strip()
    if not provided:
        raise ValidationError("signature is required")

    wallet = get_wallet(db, challenge.wallet_id)
    challenge.provided_signature = provided
    if not constant_time_equals(sha256_hex(provided), challenge.expected_signature_hash):
        challenge.status = "rejected"
        db.commit()
        logger.warning("Rejected signature for wallet challenge %s", challenge.id)
        raise InvalidSignatureError(
            f"Invalid signature for challenge {challenge.id}. "
            "Expected format: demo_sig_<sha256(address|challenge)>"
        )

    now = utcnow()
    challenge.status = "verified"
    challenge.verified_at = now
    wallet.verification_status = "verified"
    db.flush()
    logger.info("Verified wallet %s via challenge %s", wallet.id, challenge.id)
    return VerifiedWallet(challenge=challenge, wallet=wallet)


def list_challenges(
    db: Session,
    human_id: str,
    status: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[WalletVerificationChallenge]:
    get_human(db, human_id)
    stmt = select(WalletVerificationChallenge).where(WalletVerificationChallenge.human_id == human_id)
    if status:
        ensure_choice(status, CHALLENGE_STATUSES, "status")
        stmt = stmt.where(WalletVerificationChallenge.status == status)
    stmt = (
        stmt.order_by(WalletVerificationChallenge.created_at.desc())
        .limit(clamp_limit(limit))
        .offset(clamp_offset(offset))
    )
    return list(db.scalars(stmt))
