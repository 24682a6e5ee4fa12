"""Shared enumerations and column helpers for the settlement models."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from skinbag_settlement.db.time import utcnow

CHAINS = ("ethereum", "polygon", "arbitrum", "solana", "bitcoin", "tron")
NETWORKS = ("mainnet", "testnet")
EXECUTION_MODES = ("manual", "agent_auto")
SOURCE_TYPES = ("bounty", "booking", "manual")

PAYOUT_STATUSES = ("pending", "approved", "submitted", "confirmed", "failed", "cancelled")
PAYOUT_EVENT_TYPES = (
    "payout_created",
    "payout_auto_approved",
    "payout_approved",
    "payout_submitted",
    "payout_confirmed",
    "payout_failed",
    "payout_cancelled",
)
WALLET_VERIFICATION_STATUSES = ("unverified", "verified", "rejected")
CHALLENGE_STATUSES = ("pending", "verified", "expired", "rejected")
ESCROW_STATUSES = ("held", "released", "cancelled", "expired")
DISPUTE_TARGET_TYPES = ("booking", "payout", "escrow", "bounty")
DISPUTE_STATUSES = ("open", "under_review", "resolved", "rejected")
DISPUTE_RESOLUTIONS = ("refund", "release", "split", "no_action", "reject")
MILESTONE_SOURCE_TYPES = ("booking", "bounty")
MILESTONE_STATUSES = ("planned", "in_progress", "completed", "paid", "cancelled")
WEBHOOK_SUBSCRIPTION_STATUSES = ("active", "paused", "revoked")
WEBHOOK_DELIVERY_STATUSES = ("queued", "delivered", "failed")

PAYOUT_ACTOR_TYPES = ("user", "agent", "system")
AUDIT_ACTOR_TYPES = ("user", "agent", "system", "admin")


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid.uuid4())


def check_in(column: str, values: Iterable[str], name: str) -> CheckConstraint:
    """Build a ``column IN (...)`` check constraint."""
    allowed = ", ".join(f"'{value}'" for value in values)
    return CheckConstraint(f"{column} IN ({allowed})", name=name)


def id_column() -> Mapped[str]:
    return mapped_column(String(36), primary_key=True, default=new_id)


class TimestampMixin:
    """``created_at`` / ``updated_at`` columns maintained by the ORM."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
