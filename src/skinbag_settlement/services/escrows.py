"""Escrow engine: hold funds against a source, release them into a payout."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from skinbag_settlement.db.time import utcnow
from skinbag_settlement.models import CryptoPayout, EscrowEvent, EscrowHold
from skinbag_settlement.models.common import (
    AUDIT_ACTOR_TYPES,
    ESCROW_STATUSES,
    EXECUTION_MODES,
    SOURCE_TYPES,
)

from . import payouts
from . import wallets as wallet_service
from .common import (
    clamp_limit,
    clamp_offset,
    ensure_chain,
    ensure_choice,
    ensure_network,
    get_user,
    next_seq,
    normalize_token,
)
from .errors import InvalidTransitionError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class EscrowRelease:
    escrow: EscrowHold
    payout: CryptoPayout


def _record_event(
    db: Session,
    escrow: EscrowHold,
    event_type: str,
    actor_type: str,
    actor_id: str | None = None,
    payload: dict[str, Any] | None = None,
) -> EscrowEvent:
    ensure_choice(actor_type, AUDIT_ACTOR_TYPES, "actor_type")
    event = EscrowEvent(
        escrow_id=escrow.id,
        seq=next_seq(db, EscrowEvent, EscrowEvent.escrow_id, escrow.id),
        event_type=event_type,
        actor_type=actor_type,
        actor_id=actor_id,
        payload=payload,
        created_at=utcnow(),
    )
    db.add(event)
    db.flush()
    return event


def get_escrow(db: Session, user_id: str, escrow_id: str) -> EscrowHold:
    escrow = db.scalar(
        select(EscrowHold).where(EscrowHold.id == escrow_id, EscrowHold.user_id == user_id)
    )
    if escrow is None:
        raise NotFoundError("Escrow hold not found")
    return escrow


def list_escrows(
    db: Session,
    user_id: str,
    status: str | None = None,
    source_type: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[EscrowHold]:
    stmt = select(EscrowHold).where(EscrowHold.user_id == user_id)
    if status:
        ensure_choice(status, ESCROW_STATUSES, "status")
        stmt = stmt.where(EscrowHold.status == status)
    if source_type:
        ensure_choice(source_type, SOURCE_TYPES, "source_type")
        stmt = stmt.where(EscrowHold.source_type == source_type)
    stmt = (
        stmt.order_by(EscrowHold.created_at.desc())
        .limit(clamp_limit(limit))
        .offset(clamp_offset(offset))
    )
    return list(db.scalars(stmt))


def list_events(db: Session, user_id: str, escrow_id: str) -> list[EscrowEvent]:
    get_escrow(db, user_id, escrow_id)
    stmt = select(EscrowEvent).where(EscrowEvent.escrow_id == escrow_id).order_by(EscrowEvent.seq)
    return list(db.scalars(stmt))


def create_hold(
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
    note: str | None = None,
    created_by_agent_id: str | None = None,
) -> EscrowHold:
    """Hold funds for a payee without creating a payout yet.

    The source resolves to a payee and amount exactly as for payout intents,
    and the destination wallet is bound at hold time.
    """
    get_user(db, user_id)
    ensure_chain(chain)
    ensure_network(network)
    token = normalize_token(token_symbol)

    source = payouts.resolve_source(db, user_id, source_type, source_id, amount_cents, human_id)
    if source.amount_cents <= 0:
        raise ValidationError("Escrow amount must be positive")
    wallet = wallet_service.resolve_wallet_for_payout(
        db, source.human_id, chain, network, token, wallet_id
    )

    escrow = EscrowHold(
        user_id=user_id,
        human_id=source.human_id,
        wallet_id=wallet.id,
        source_type=source_type,
        source_id=source_id,
        chain=chain,
        network=network,
        token_symbol=token,
        amount_cents=source.amount_cents,
        status="held",
        note=(note or "").strip() or None,
        created_by_agent_id=created_by_agent_id,
        held_at=utcnow(),
    )
    db.add(escrow)
    db.flush()
    _record_event(
        db,
        escrow,
        "escrow_created",
        "agent" if created_by_agent_id else "user",
        created_by_agent_id or user_id,
        {
            "sourceType": source_type,
            "sourceId": source_id,
            "chain": chain,
            "network": network,
            "tokenSymbol": token,
            "amountCents": source.amount_cents,
        },
    )
    logger.info("Created escrow %s holding %s cents for user %s", escrow.id, escrow.amount_cents, user_id)
    return escrow


def release(
    db: Session,
    user_id: str,
    escrow_id: str,
    *,
    execution_mode: str = "manual",
    requested_by_agent_id: str | None = None,
    idempotency_key: str | None = None,
    auto_execute: bool = False,
    tx_hash: str | None = None,
    confirm_immediately: bool = True,
) -> EscrowRelease:
    """Release a held escrow into exactly one manual-source payout.

    With ``agent_auto`` and ``auto_execute`` the new payout is executed right
    away and its latest state is returned.
    """
    escrow = get_escrow(db, user_id, escrow_id)
    if escrow.status != "held":
        raise InvalidTransitionError(f"Escrow hold cannot be released from status {escrow.status}")
    ensure_choice(execution_mode, EXECUTION_MODES, "execution_mode")
    if execution_mode == "agent_auto" and not requested_by_agent_id:
        raise ValidationError("requested_by_agent_id is required for agent_auto release")

    payout = payouts.create_intent(
        db,
        user_id,
        source_type="manual",
        human_id=escrow.human_id,
        amount_cents=escrow.amount_cents,
        chain=escrow.chain,
        network=escrow.network,
        token_symbol=escrow.token_symbol,
        wallet_id=escrow.wallet_id,
        execution_mode=execution_mode,
        requested_by_agent_id=requested_by_agent_id,
        idempotency_key=idempotency_key,
    )
    claimed_by = db.scalar(
        select(EscrowHold.id).where(
            EscrowHold.release_payout_id == payout.id, EscrowHold.id != escrow.id
        )
    )
    if claimed_by is not None:
        raise InvalidTransitionError(
            f"Payout {payout.id} already settles escrow hold {claimed_by}"
        )

    escrow.status = "released"
    escrow.release_payout_id = payout.id
    escrow.released_at = utcnow()
    db.flush()
    _record_event(
        db,
        escrow,
        "escrow_released",
        "agent" if requested_by_agent_id else "user",
        requested_by_agent_id or user_id,
        {"payoutId": payout.id, "executionMode": execution_mode},
    )
    logger.info("Released escrow %s into payout %s", escrow.id, payout.id)

    if execution_mode == "agent_auto" and auto_execute:
        payout = payouts.execute_by_agent(
            db, user_id, payout.id, requested_by_agent_id, tx_hash, confirm_immediately
        )
    return EscrowRelease(escrow=escrow, payout=payout)


def cancel(
    db: Session,
    user_id: str,
    escrow_id: str,
    reason: str | None = None,
    actor_id: str | None = None,
) -> EscrowHold:
    """Give up a hold that has not been released."""
    escrow = get_escrow(db, user_id, escrow_id)
    if escrow.status != "held":
        raise InvalidTransitionError(f"Escrow hold cannot be cancelled from status {escrow.status}")

    escrow.status = "cancelled"
    escrow.cancelled_at = utcnow()
    db.flush()
    _record_event(db, escrow, "escrow_cancelled", "user", actor_id or user_id, {"reason": reason})
    logger.info("Cancelled escrow %s", escrow.id)
    return escrow
