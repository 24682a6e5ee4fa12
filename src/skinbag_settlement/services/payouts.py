"""Payout engine: the ``CryptoPayout`` state machine and its event log.

Lifecycle::

    pending -> approved -> submitted -> confirmed
        \\          \\           \\
         +----------+-----------+--> failed
    pending|approved -> cancelled

Every transition appends a ``PayoutEvent`` and fans it out to the owner's
webhook subscriptions within the same transaction.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skinbag_settlement.db.time import utcnow
from skinbag_settlement.models import Booking, Bounty, BountyApplication, CryptoPayout, PayoutEvent
from skinbag_settlement.models.common import (
    EXECUTION_MODES,
    PAYOUT_ACTOR_TYPES,
    PAYOUT_STATUSES,
    SOURCE_TYPES,
)

from . import policy as policy_service
from . import wallets as wallet_service
from . import webhooks
from .common import (
    clamp_limit,
    clamp_offset,
    ensure_chain,
    ensure_choice,
    ensure_network,
    get_human,
    get_user,
    next_seq,
    normalize_token,
)
from .errors import (
    ApprovalRequiredError,
    InvalidTransitionError,
    NotFoundError,
    SourceUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceResolution:
    """Payee and amount a booking, bounty or manual source resolves to."""

    human_id: str
    amount_cents: int
    source_status: str | None = None


def resolve_source(
    db: Session,
    user_id: str,
    source_type: str,
    source_id: str | None = None,
    amount_cents: int | None = None,
    human_id: str | None = None,
) -> SourceResolution:
    """Work out who gets paid, and how much, for a settlement source.

    Bookings pay their human ``total_price_cents``; bounties pay the most
    recently accepted application's proposed amount; manual sources need an
    explicit payee and amount. An explicit ``amount_cents`` always wins.

    Raises:
        ValidationError: Missing payee/amount/source id, or unknown source type
        SourceUnavailableError: Source missing, cancelled, or without an accepted application
    """
    ensure_choice(source_type, SOURCE_TYPES, "source_type")
    if source_type == "manual":
        if not human_id or amount_cents is None:
            raise ValidationError("manual payouts require human_id and amount_cents")
        get_human(db, human_id)
        return SourceResolution(human_id=human_id, amount_cents=amount_cents)

    if not source_id:
        raise ValidationError("source_id is required for bounty and booking payouts")

    if source_type == "booking":
        booking = db.scalar(
            select(Booking).where(Booking.id == source_id, Booking.user_id == user_id)
        )
        if booking is None:
            raise SourceUnavailableError("Booking not found")
        if booking.status == "cancelled":
            raise SourceUnavailableError("Cannot payout cancelled booking")
        return SourceResolution(
            human_id=booking.human_id,
            amount_cents=amount_cents if amount_cents is not None else booking.total_price_cents,
            source_status=booking.status,
        )

    bounty = db.scalar(select(Bounty).where(Bounty.id == source_id, Bounty.user_id == user_id))
    if bounty is None:
        raise SourceUnavailableError("Bounty not found")
    if bounty.status == "cancelled":
        raise SourceUnavailableError("Cannot payout cancelled bounty")
    accepted = db.scalar(
        select(BountyApplication)
        .where(BountyApplication.bounty_id == source_id, BountyApplication.status == "accepted")
        .order_by(BountyApplication.updated_at.desc())
        .limit(1)
    )
    if accepted is None:
        raise SourceUnavailableError("No accepted application found for this bounty")
    return SourceResolution(
        human_id=accepted.human_id,
        amount_cents=amount_cents if amount_cents is not None else accepted.proposed_amount_cents,
        source_status=bounty.status,
    )


def simulated_tx_hash(chain: str) -> str:
    core = uuid.uuid4().hex
    if chain == "solana":
        return f"sim-sol-{core}"
    return f"0x{core}{core[:8]}"


def get_payout(db: Session, user_id: str, payout_id: str) -> CryptoPayout:
    payout = db.scalar(
        select(CryptoPayout).where(CryptoPayout.id == payout_id, CryptoPayout.user_id == user_id)
    )
    if payout is None:
        raise NotFoundError("Payout not found")
    return payout


def list_payouts(
    db: Session,
    user_id: str,
    status: str | None = None,
    source_type: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[CryptoPayout]:
    stmt = select(CryptoPayout).where(CryptoPayout.user_id == user_id)
    if status:
        ensure_choice(status, PAYOUT_STATUSES, "status")
        stmt = stmt.where(CryptoPayout.status == status)
    if source_type:
        ensure_choice(source_type, SOURCE_TYPES, "source_type")
        stmt = stmt.where(CryptoPayout.source_type == source_type)
    stmt = (
        stmt.order_by(CryptoPayout.created_at.desc())
        .limit(clamp_limit(limit))
        .offset(clamp_offset(offset))
    )
    return list(db.scalars(stmt))


def list_events(db: Session, user_id: str, payout_id: str) -> list[PayoutEvent]:
    get_payout(db, user_id, payout_id)
    stmt = (
        select(PayoutEvent)
        .where(PayoutEvent.payout_id == payout_id)
        .order_by(PayoutEvent.seq.asc())
    )
    return list(db.scalars(stmt))


def record_event(
    db: Session,
    payout: CryptoPayout,
    event_type: str,
    actor_type: str,
    actor_id: str | None = None,
    payload: dict[str, Any] | None = None,
) -> PayoutEvent:
    """Append an event to the payout's log and fan it out to webhooks."""
    ensure_choice(actor_type, PAYOUT_ACTOR_TYPES, "actor_type")
    event = PayoutEvent(
        payout_id=payout.id,
        seq=next_seq(db, PayoutEvent, PayoutEvent.payout_id, payout.id),
        event_type=event_type,
        actor_type=actor_type,
        actor_id=actor_id,
        payload=payload,
        created_at=utcnow(),
    )
    db.add(event)
    db.flush()
    webhooks.fan_out(db, payout, event)
    return event


def _find_by_idempotency_key(db: Session, user_id: str, key: str) -> CryptoPayout | None:
    return db.scalar(
        select(CryptoPayout).where(
            CryptoPayout.user_id == user_id,
            CryptoPayout.idempotency_key == key,
        )
    )


def _replay(existing: CryptoPayout, key: str, requested: dict[str, Any]) -> CryptoPayout:
    """Return ``existing`` if it matches the request the key is being reused for."""
    mismatched = sorted(
        field for field, value in requested.items()
        if value is not None and getattr(existing, field) != value
    )
    if mismatched:
        logger.warning(
            "Idempotency key %s reused for a different payout than %s (%s)",
            key, existing.id, ", ".join(mismatched),
        )
        raise ValidationError(
            f"idempotency_key was already used for a different payout: {', '.join(mismatched)}"
        )
    logger.info("Idempotent replay of payout %s (key %s)", existing.id, key)
    return existing


def create_intent(
    db: Session,
    user_id: str,
    *,
    source_type: str,
    chain: str,
    network: str,
    token_symbol: str,
    source_id: str | None = None,
    human_id: str | None = None,
    amount_cents: int | None = None,
    wallet_id: str | None = None,
    execution_mode: str = "manual",
    requested_by_agent_id: str | None = None,
    idempotency_key: str | None = None,
) -> CryptoPayout:
    """Create a payout intent, or return the one already made under ``idempotency_key``.

    The payout starts ``approved`` only for ``agent_auto`` intents whose owner
    policy does not require approval; otherwise it starts ``pending``.

    Raises:
        ValidationError: ``idempotency_key`` already names a payout with other terms
        SourceUnavailableError: Source missing or not payable
        WalletMismatchError: Explicit wallet does not fit the payout
        NoWalletConfiguredError: Payee has no wallet for the tuple
        WalletNotVerifiedError: ``agent_auto`` with an unverified wallet
        PolicyViolationError: ``agent_auto`` outside the owner's policy
    """
    get_user(db, user_id)
    requested = {
        "source_type": source_type,
        "source_id": source_id,
        "human_id": human_id,
        "amount_cents": amount_cents,
        "chain": chain,
        "network": network,
        "token_symbol": normalize_token(token_symbol),
        "wallet_id": wallet_id,
        "execution_mode": execution_mode,
    }
    if idempotency_key:
        existing = _find_by_idempotency_key(db, user_id, idempotency_key)
        if existing is not None:
            return _replay(existing, idempotency_key, requested)

    ensure_chain(chain)
    ensure_network(network)
    ensure_choice(execution_mode, EXECUTION_MODES, "execution_mode")
    token = normalize_token(token_symbol)
    auto = execution_mode == "agent_auto"

    source = resolve_source(db, user_id, source_type, source_id, amount_cents, human_id)
    if source.amount_cents <= 0:
        raise ValidationError("Payout amount must be positive")

    wallet = wallet_service.resolve_wallet_for_payout(
        db, source.human_id, chain, network, token, wallet_id
    )
    if auto:
        wallet_service.assert_verified_for_auto_pay(wallet)

    # Locking the policy row serializes auto payouts per owner, closing the
    # read-then-insert window on the daily cap.
    owner_policy = policy_service.get_policy(db, user_id, for_update=auto)
    if auto:
        policy_service.assert_autopay_allowed(
            db, owner_policy, source.amount_cents, chain, token
        )

    now = utcnow()
    auto_approved = auto and not owner_policy.require_approval
    payout = CryptoPayout(
        user_id=user_id,
        human_id=source.human_id,
        source_type=source_type,
        source_id=source_id,
        wallet_id=wallet.id,
        chain=chain,
        network=network,
        token_symbol=token,
        amount_cents=source.amount_cents,
        status="approved" if auto_approved else "pending",
        execution_mode=execution_mode,
        idempotency_key=idempotency_key,
        requested_by_agent_id=requested_by_agent_id,
        approved_at=now if auto_approved else None,
        created_at=now,
        updated_at=now,
    )
    try:
        with db.begin_nested():
            db.add(payout)
    except IntegrityError:
        # A concurrent request won the race for the same idempotency key.
        existing = _find_by_idempotency_key(db, user_id, idempotency_key) if idempotency_key else None
        if existing is None:
            raise
        return _replay(existing, idempotency_key, requested)

    record_event(
        db,
        payout,
        "payout_created",
        "agent" if requested_by_agent_id else "user",
        requested_by_agent_id or user_id,
        {
            "sourceType": source_type,
            "sourceId": source_id,
            "chain": chain,
            "network": network,
            "tokenSymbol": token,
            "amountCents": source.amount_cents,
            "executionMode": execution_mode,
        },
    )
    if auto_approved:
        record_event(
            db, payout, "payout_auto_approved", "system",
            payload={"reason": "policy.require_approval=false"},
        )

    logger.info(
        "Created payout %s (%s, %s cents, status %s) for user %s",
        payout.id, execution_mode, payout.amount_cents, payout.status, user_id,
    )
    return payout


def approve(db: Session, user_id: str, payout_id: str, actor_id: str | None = None) -> CryptoPayout:
    payout = get_payout(db, user_id, payout_id)
    if payout.status != "pending":
        raise InvalidTransitionError(f"Cannot approve payout in status {payout.status}")

    payout.status = "approved"
    payout.approved_at = utcnow()
    db.flush()
    record_event(db, payout, "payout_approved", "user", actor_id or user_id)
    logger.info("Approved payout %s", payout.id)
    return payout


def execute_by_agent(
    db: Session,
    user_id: str,
    payout_id: str,
    agent_id: str,
    tx_hash: str | None = None,
    confirm_immediately: bool = True,
) -> CryptoPayout:
    """Submit (and by default confirm) an ``agent_auto`` payout.

    The owner's policy is re-checked because limits may have changed since the
    intent was created, and the destination wallet must still be verified.

    Raises:
        InvalidTransitionError: Not an ``agent_auto`` payout, or not executable in its status
        ApprovalRequiredError: Still pending while policy requires manual approval
        PolicyViolationError: Payout no longer fits the owner's policy
        WalletNotVerifiedError: Destination wallet is not verified
    """
    payout = get_payout(db, user_id, payout_id)
    if payout.execution_mode != "agent_auto":
        raise InvalidTransitionError("Only agent_auto payouts can be executed by agent")

    # The wallet may have been re-upserted (and unverified) after the intent.
    wallet_service.assert_verified_for_auto_pay(wallet_service.get_wallet(db, payout.wallet_id))

    owner_policy = policy_service.get_policy(db, user_id, for_update=True)
    policy_service.assert_autopay_allowed(
        db,
        owner_policy,
        payout.amount_cents,
        payout.chain,
        payout.token_symbol,
        exclude_payout_id=payout.id,
    )

    if payout.status == "pending":
        if owner_policy.require_approval:
            raise ApprovalRequiredError("Payout requires manual approval before execution")
        payout.status = "approved"
        payout.approved_at = utcnow()
        db.flush()
        record_event(
            db, payout, "payout_auto_approved", "system",
            payload={"reason": "execution_without_manual_approval"},
        )

    if payout.status not in ("approved", "submitted"):
        raise InvalidTransitionError(f"Cannot execute payout in status {payout.status}")

    tx = (tx_hash or "").strip() or simulated_tx_hash(payout.chain)
    payout.status = "submitted"
    payout.submitted_at = utcnow()
    payout.tx_hash = tx
    payout.requested_by_agent_id = agent_id
    db.flush()
    record_event(db, payout, "payout_submitted", "agent", agent_id, {"txHash": tx})

    if confirm_immediately:
        payout.status = "confirmed"
        payout.confirmed_at = utcnow()
        db.flush()
        record_event(
            db, payout, "payout_confirmed", "agent", agent_id,
            {"txHash": tx, "mode": "simulated"},
        )

    logger.info("Agent %s executed payout %s (status %s)", agent_id, payout.id, payout.status)
    return payout


def fail(
    db: Session,
    user_id: str,
    payout_id: str,
    reason: str,
    actor_type: str = "system",
    actor_id: str | None = None,
) -> CryptoPayout:
    payout = get_payout(db, user_id, payout_id)
    if payout.status in ("confirmed", "cancelled"):
        raise InvalidTransitionError(f"Cannot fail payout in status {payout.status}")

    payout.status = "failed"
    payout.failed_at = utcnow()
    payout.failure_reason = reason
    db.flush()
    record_event(db, payout, "payout_failed", actor_type, actor_id, {"reason": reason})
    logger.info("Payout %s marked failed: %s", payout.id, reason)
    return payout


def cancel(
    db: Session,
    user_id: str,
    payout_id: str,
    reason: str | None = None,
    actor_id: str | None = None,
) -> CryptoPayout:
    """Withdraw a payout that has not been submitted yet."""
    payout = get_payout(db, user_id, payout_id)
    if payout.status not in ("pending", "approved"):
        raise InvalidTransitionError(f"Cannot cancel payout in status {payout.status}")

    payout.status = "cancelled"
    payout.cancelled_at = utcnow()
    db.flush()
    record_event(db, payout, "payout_cancelled", "user", actor_id or user_id, {"reason": reason})
    logger.info("Payout %s cancelled", payout.id)
    return payout


