"""Dispute engine: adjudication over bookings, payouts, escrows and bounties.

Resolving a dispute only records the decision; reversing or releasing the
underlying payout or escrow is left to the reviewer.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from skinbag_settlement.db.time import utcnow
from skinbag_settlement.models import (
    Booking,
    Bounty,
    CryptoPayout,
    Dispute,
    DisputeEvent,
    EscrowHold,
    User,
)
from skinbag_settlement.models.common import (
    AUDIT_ACTOR_TYPES,
    DISPUTE_RESOLUTIONS,
    DISPUTE_STATUSES,
    DISPUTE_TARGET_TYPES,
)

from .access import require_reviewer
from .common import clamp_limit, clamp_offset, ensure_choice, get_user, next_seq
from .errors import InvalidTransitionError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Target type -> (model, label used in not-found messages)
_TARGETS: dict[str, tuple[type, str]] = {
    "booking": (Booking, "Booking"),
    "payout": (CryptoPayout, "Payout"),
    "escrow": (EscrowHold, "Escrow hold"),
    "bounty": (Bounty, "Bounty"),
}

OPEN_STATUSES = ("open", "under_review")


def _record_event(
    db: Session,
    dispute: Dispute,
    event_type: str,
    actor_type: str,
    actor_id: str | None = None,
    payload: dict[str, Any] | None = None,
) -> DisputeEvent:
    ensure_choice(actor_type, AUDIT_ACTOR_TYPES, "actor_type")
    event = DisputeEvent(
        dispute_id=dispute.id,
        seq=next_seq(db, DisputeEvent, DisputeEvent.dispute_id, dispute.id),
        event_type=event_type,
        actor_type=actor_type,
        actor_id=actor_id,
        payload=payload,
        created_at=utcnow(),
    )
    db.add(event)
    db.flush()
    return event


def _assert_target(db: Session, user_id: str, target_type: str, target_id: str) -> None:
    model, label = _TARGETS[target_type]
    found = db.scalar(select(model.id).where(model.id == target_id, model.user_id == user_id))
    if found is None:
        raise NotFoundError(f"{label} not found for dispute target")


def open_dispute(
    db: Session,
    user_id: str,
    *,
    target_type: str,
    target_id: str,
    reason: str,
    evidence: dict[str, Any] | None = None,
    opened_by_agent_id: str | None = None,
) -> Dispute:
    """Open a dispute on a target the user owns."""
    get_user(db, user_id)
    ensure_choice(target_type, DISPUTE_TARGET_TYPES, "target_type")
    reason = reason.strip()
    if not reason:
        raise ValidationError("reason is required")
    _assert_target(db, user_id, target_type, target_id)

    now = utcnow()
    dispute = Dispute(
        user_id=user_id,
        target_type=target_type,
        target_id=target_id,
        opened_by_agent_id=opened_by_agent_id,
        reason=reason,
        evidence=evidence,
        status="open",
        opened_at=now,
    )
    db.add(dispute)
    db.flush()
    _record_event(
        db,
        dispute,
        "dispute_opened",
        "agent" if opened_by_agent_id else "user",
        opened_by_agent_id or user_id,
        {"targetType": target_type, "targetId": target_id, "reason": reason},
    )
    logger.info("Opened dispute %s on %s %s", dispute.id, target_type, target_id)
    return dispute


def get_dispute(db: Session, user_id: str, dispute_id: str) -> Dispute:
    dispute = db.scalar(select(Dispute).where(Dispute.id == dispute_id, Dispute.user_id == user_id))
    if dispute is None:
        raise NotFoundError("Dispute not found")
    return dispute


def list_disputes(
    db: Session,
    user_id: str,
    status: str | None = None,
    target_type: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Dispute]:
    stmt = select(Dispute).where(Dispute.user_id == user_id)
    if status:
        ensure_choice(status, DISPUTE_STATUSES, "status")
        stmt = stmt.where(Dispute.status == status)
    if target_type:
        ensure_choice(target_type, DISPUTE_TARGET_TYPES, "target_type")
        stmt = stmt.where(Dispute.target_type == target_type)
    stmt = (
        stmt.order_by(Dispute.created_at.desc())
        .limit(clamp_limit(limit))
        .offset(clamp_offset(offset))
    )
    return list(db.scalars(stmt))


def list_events(db: Session, user_id: str, dispute_id: str) -> list[DisputeEvent]:
    get_dispute(db, user_id, dispute_id)
    stmt = select(DisputeEvent).where(DisputeEvent.dispute_id == dispute_id).order_by(DisputeEvent.seq)
    return list(db.scalars(stmt))


def _get_for_review(db: Session, dispute_id: str) -> Dispute:
    dispute = db.get(Dispute, dispute_id)
    if dispute is None:
        raise NotFoundError("Dispute not found")
    return dispute


def start_review(db: Session, reviewer: User, dispute_id: str) -> Dispute:
    """Move an open dispute under review."""
    require_reviewer(reviewer)
    dispute = _get_for_review(db, dispute_id)
    if dispute.status != "open":
        raise InvalidTransitionError(f"Dispute is already in status {dispute.status}")

    dispute.status = "under_review"
    db.flush()
    _record_event(db, dispute, "dispute_under_review", "admin", reviewer.id)
    logger.info("Dispute %s under review by %s", dispute.id, reviewer.id)
    return dispute


def resolve(
    db: Session,
    reviewer: User,
    dispute_id: str,
    decision: str,
    note: str | None = None,
) -> Dispute:
    """Record a reviewer's decision; ``reject`` rejects, anything else resolves.

    Raises:
        ForbiddenError: Caller is not a reviewer
        NotFoundError: Unknown dispute
        InvalidTransitionError: Dispute already resolved or rejected
    """
    require_reviewer(reviewer)
    ensure_choice(decision, DISPUTE_RESOLUTIONS, "decision")
    dispute = _get_for_review(db, dispute_id)
    if dispute.status not in OPEN_STATUSES:
        raise InvalidTransitionError(f"Dispute is already in status {dispute.status}")

    note = (note or "").strip() or None
    dispute.status = "rejected" if decision == "reject" else "resolved"
    dispute.resolution = decision
    dispute.resolution_note = note
    dispute.resolved_by_user_id = reviewer.id
    dispute.resolved_at = utcnow()
    db.flush()
    _record_event(
        db, dispute, "dispute_resolved", "admin", reviewer.id,
        {"decision": decision, "note": note},
    )
    logger.info("Dispute %s %s with decision %s", dispute.id, dispute.status, decision)
    return dispute
