"""Disputes raised against settlement targets."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from skinbag_settlement.db.session import Base
from skinbag_settlement.db.time import utcnow

from .common import (
    AUDIT_ACTOR_TYPES,
    DISPUTE_RESOLUTIONS,
    DISPUTE_STATUSES,
    DISPUTE_TARGET_TYPES,
    TimestampMixin,
    check_in,
    id_column,
)


class Dispute(TimestampMixin, Base):
    """Adjudication case over a booking, payout, escrow or bounty."""

    __tablename__ = "disputes"
    __table_args__ = (
        check_in("target_type", DISPUTE_TARGET_TYPES, "ck_disputes_target_type"),
        check_in("status", DISPUTE_STATUSES, "ck_disputes_status"),
        check_in("resolution", DISPUTE_RESOLUTIONS, "ck_disputes_resolution"),
        Index("idx_disputes_user_status", "user_id", "status"),
        Index("idx_disputes_target", "target_type", "target_id"),
    )

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    target_type: Mapped[str] = mapped_column(String(16), nullable=False)
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    opened_by_agent_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    evidence: Mapped[dict[str, Any] | None] = mapped_column("evidence_json", JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open")
    resolution: Mapped[str | None] = mapped_column(String(16), nullable=True)
    resolution_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_by_user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class DisputeEvent(Base):
    """Immutable audit record of one dispute state change."""

    __tablename__ = "dispute_events"
    __table_args__ = (
        check_in("actor_type", AUDIT_ACTOR_TYPES, "ck_dispute_events_actor_type"),
        Index("idx_dispute_events_dispute_id", "dispute_id"),
    )

    id: Mapped[str] = id_column()
    dispute_id: Mapped[str] = mapped_column(
        ForeignKey("disputes.id", ondelete="CASCADE"), nullable=False
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_type: Mapped[str] = mapped_column(String(16), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    payload: Mapped[dict[str, Any] | None] = mapped_column("payload_json", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
