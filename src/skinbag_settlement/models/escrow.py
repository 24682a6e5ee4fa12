"""Escrow holds and their audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from skinbag_settlement.db.session import Base
from skinbag_settlement.db.time import utcnow

from .common import (
    AUDIT_ACTOR_TYPES,
    CHAINS,
    ESCROW_STATUSES,
    NETWORKS,
    SOURCE_TYPES,
    TimestampMixin,
    check_in,
    id_column,
)


class EscrowHold(TimestampMixin, Base):
    """Funds committed against a source until released into a payout."""

    __tablename__ = "escrow_holds"
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_escrow_holds_amount_positive"),
        check_in("source_type", SOURCE_TYPES, "ck_escrow_holds_source_type"),
        check_in("chain", CHAINS, "ck_escrow_holds_chain"),
        check_in("network", NETWORKS, "ck_escrow_holds_network"),
        check_in("status", ESCROW_STATUSES, "ck_escrow_holds_status"),
        Index("idx_escrow_holds_user_status", "user_id", "status"),
        Index("idx_escrow_holds_source", "source_type", "source_id"),
    )

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    human_id: Mapped[str] = mapped_column(ForeignKey("humans.id"), nullable=False)
    wallet_id: Mapped[str] = mapped_column(ForeignKey("human_wallets.id"), nullable=False)
    source_type: Mapped[str] = mapped_column(String(16), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    chain: Mapped[str] = mapped_column(String(16), nullable=False)
    network: Mapped[str] = mapped_column(String(16), nullable=False)
    token_symbol: Mapped[str] = mapped_column(String(12), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="held")
    release_payout_id: Mapped[str | None] = mapped_column(
        ForeignKey("crypto_payouts.id"), nullable=True
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_agent_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    held_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class EscrowEvent(Base):
    """Immutable audit record of one escrow state change."""

    __tablename__ = "escrow_events"
    __table_args__ = (
        check_in("actor_type", AUDIT_ACTOR_TYPES, "ck_escrow_events_actor_type"),
        Index("idx_escrow_events_escrow_id", "escrow_id"),
    )

    id: Mapped[str] = id_column()
    escrow_id: Mapped[str] = mapped_column(
        ForeignKey("escrow_holds.id", ondelete="CASCADE"), nullable=False
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_type: Mapped[str] = mapped_column(String(16), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    payload: Mapped[dict[str, Any] | None] = mapped_column("payload_json", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
