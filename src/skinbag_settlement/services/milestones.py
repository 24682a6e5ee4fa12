"""Milestone engine: partial-payment checkpoints capped by the source budget."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from skinbag_settlement.db.time import as_utc, utcnow
from skinbag_settlement.models import Booking, BookingMilestone, Bounty, CryptoPayout
from skinbag_settlement.models.common import MILESTONE_SOURCE_TYPES, MILESTONE_STATUSES

from . import payouts
from .common import clamp_limit, clamp_offset, ensure_choice, get_user
from .errors import InvalidTransitionError, NotFoundError, SourceUnavailableError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class MilestoneCompletion:
    milestone: BookingMilestone
    payout: CryptoPayout | None = None


def _source_cap(db: Session, user_id: str, source_type: str, source_id: str) -> tuple[int, str]:
    """Return the (cap in cents, currency) of a milestone source."""
    if source_type == "booking":
        booking = db.scalar(
            select(Booking).where(Booking.id == source_id, Booking.user_id == user_id)
        )
        if booking is None:
            raise SourceUnavailableError("Booking not found for milestone source")
        if booking.status == "cancelled":
            raise SourceUnavailableError("Cannot create milestone for cancelled booking")
        return booking.total_price_cents, "USD"

    bounty = db.scalar(select(Bounty).where(Bounty.id == source_id, Bounty.user_id == user_id))
    if bounty is None:
        raise SourceUnavailableError("Bounty not found for milestone source")
    if bounty.status == "cancelled":
        raise SourceUnavailableError("Cannot create milestone for cancelled bounty")
    return bounty.budget_cents, bounty.currency or "USD"


def _parse_due_at(due_at: datetime | str | None) -> datetime | None:
    if due_at is None or isinstance(due_at, datetime):
        return as_utc(due_at)
    text = due_at.strip()
    if not text:
        return None
    try:
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError as err:
        raise ValidationError("Invalid due_at datetime") from err


def committed_cents(db: Session, user_id: str, source_type: str, source_id: str) -> int:
    """Sum of non-cancelled milestone amounts for a source."""
    total = db.scalar(
        select(func.coalesce(func.sum(BookingMilestone.amount_cents), 0)).where(
            BookingMilestone.user_id == user_id,
            BookingMilestone.source_type == source_type,
            BookingMilestone.source_id == source_id,
            BookingMilestone.status != "cancelled",
        )
    )
    return int(total or 0)


def get_milestone(db: Session, user_id: str, milestone_id: str) -> BookingMilestone:
    milestone = db.scalar(
        select(BookingMilestone).where(
            BookingMilestone.id == milestone_id,
            BookingMilestone.user_id == user_id,
        )
    )
    if milestone is None:
        raise NotFoundError("Milestone not found")
    return milestone


def create(
    db: Session,
    user_id: str,
    *,
    source_type: str,
    source_id: str,
    title: str,
    amount_cents: int,
    description: str | None = None,
    due_at: datetime | str | None = None,
    created_by_agent_id: str | None = None,
) -> BookingMilestone:
    """Add a milestone, keeping the source's milestones within its budget.

    Raises:
        ValidationError: Non-positive amount, bad source type or due date
        SourceUnavailableError: Source missing or cancelled, or cap would be exceeded
    """
    get_user(db, user_id)
    ensure_choice(source_type, MILESTONE_SOURCE_TYPES, "source_type")
    if amount_cents <= 0:
        raise ValidationError("amount_cents must be positive")

    cap_cents, currency = _source_cap(db, user_id, source_type, source_id)
    if committed_cents(db, user_id, source_type, source_id) + amount_cents > cap_cents:
        raise SourceUnavailableError("Milestone amount exceeds source budget/price cap")

    milestone = BookingMilestone(
        user_id=user_id,
        source_type=source_type,
        source_id=source_id,
        title=title.strip(),
        description=(description or "").strip() or None,
        amount_cents=amount_cents,
        currency=currency,
        status="planned",
        due_at=_parse_due_at(due_at),
        created_by_agent_id=created_by_agent_id,
    )
    db.add(milestone)
    db.flush()
    logger.info(
        "Created milestone %s (%s cents) on %s %s", milestone.id, amount_cents, source_type, source_id
    )
    return milestone


def list_milestones(
    db: Session,
    user_id: str,
    source_type: str | None = None,
    source_id: str | None = None,
    status: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[BookingMilestone]:
    stmt = select(BookingMilestone).where(BookingMilestone.user_id == user_id)
    if source_type:
        ensure_choice(source_type, MILESTONE_SOURCE_TYPES, "source_type")
        stmt = stmt.where(BookingMilestone.source_type == source_type)
    if source_id:
        stmt = stmt.where(BookingMilestone.source_id == source_id)
    if status:
        ensure_choice(status, MILESTONE_STATUSES, "status")
        stmt = stmt.where(BookingMilestone.status == status)
    stmt = (
        stmt.order_by(BookingMilestone.created_at.desc())
        .limit(clamp_limit(limit))
        .offset(clamp_offset(offset))
    )
    return list(db.scalars(stmt))


def complete(
    db: Session,
    user_id: str,
    milestone_id: str,
    auto_create_payout: bool = False,
    payout_config: dict[str, Any] | None = None,
) -> MilestoneCompletion:
    """Mark a milestone done, optionally paying it out in the same step.

    ``payout_config`` carries chain, network, token_symbol and optionally
    wallet_id, execution_mode, requested_by_agent_id, idempotency_key,
    auto_execute, tx_hash and confirm_immediately. The milestone ends ``paid``
    only when the payout it created reached ``confirmed``.
    """
    milestone = get_milestone(db, user_id, milestone_id)
    if milestone.status in ("cancelled", "paid"):
        raise InvalidTransitionError(
            f"Milestone cannot be completed from status {milestone.status}"
        )

    payout = None
    if auto_create_payout:
        if not payout_config:
            raise ValidationError("payout config is required when auto_create_payout is set")
        config = dict(payout_config)
        auto_execute = config.pop("auto_execute", False)
        tx_hash = config.pop("tx_hash", None)
        confirm_immediately = config.pop("confirm_immediately", True)
        if config.get("execution_mode") == "agent_auto" and not config.get("requested_by_agent_id"):
            raise ValidationError("requested_by_agent_id is required for agent_auto payouts")

        payout = payouts.create_intent(
            db,
            user_id,
            source_type=milestone.source_type,
            source_id=milestone.source_id,
            amount_cents=milestone.amount_cents,
            **config,
        )
        claimed_by = db.scalar(
            select(BookingMilestone.id).where(
                BookingMilestone.payout_id == payout.id,
                BookingMilestone.id != milestone.id,
            )
        )
        if claimed_by is not None:
            raise InvalidTransitionError(
                f"Payout {payout.id} already settles milestone {claimed_by}"
            )
        agent_id = config.get("requested_by_agent_id")
        if config.get("execution_mode") == "agent_auto" and auto_execute and agent_id:
            payout = payouts.execute_by_agent(
                db, user_id, payout.id, agent_id, tx_hash, confirm_immediately
            )

    milestone.status = "paid" if payout is not None and payout.status == "confirmed" else "completed"
    milestone.completed_at = utcnow()
    if payout is not None:
        milestone.payout_id = payout.id
    db.flush()
    logger.info("Milestone %s completed with status %s", milestone.id, milestone.status)
    return MilestoneCompletion(milestone=milestone, payout=payout)
