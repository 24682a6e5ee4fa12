"""Crypto payouts and their append-only event log."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from skinbag_settlement.db.session import Base
from skinbag_settlement.db.time import utcnow

from .common import (
    CHAINS,
    EXECUTION_MODES,
    NETWORKS,
    PAYOUT_ACTOR_TYPES,
    PAYOUT_STATUSES,
    SOURCE_TYPES,
    TimestampMixin,
    check_in,
    id_column,
)
from .marketplace import Human
from .wallet import HumanWallet


class CryptoPayout(TimestampMixin, Base):
    """A single settlement of funds from an owner to a payee wallet."""

    __tablename__ = "crypto_payouts"
    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_crypto_payouts_idempotency"),
        CheckConstraint("amount_cents > 0", name="ck_crypto_payouts_amount_positive"),
        check_in("source_type", SOURCE_TYPES, "ck_crypto_payouts_source_type"),
        check_in("chain", CHAINS, "ck_crypto_payouts_chain"),
        check_in("network", NETWORKS, "ck_crypto_payouts_network"),
        check_in("status", PAYOUT_STATUSES, "ck_crypto_payouts_status"),
        check_in("execution_mode", EXECUTION_MODES, "ck_crypto_payouts_execution_mode"),
        Index("idx_payouts_user_status", "user_id", "status"),
    )

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    human_id: Mapped[str] = mapped_column(ForeignKey("humans.id"), nullable=False)
    source_type: Mapped[str] = mapped_column(String(16), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    wallet_id: Mapped[str] = mapped_column(ForeignKey("human_wallets.id"), nullable=False)
    chain: Mapped[str] = mapped_column(String(16), nullable=False)
    network: Mapped[str] = mapped_column(String(16), nullable=False)
    token_symbol: Mapped[str] = mapped_column(String(12), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    execution_mode: Mapped[str] = mapped_column(String(16), nullable=False, default="manual")
    tx_hash: Mapped[str | None] = mapped_column(String(140), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(120), nullable=True)
    requested_by_agent_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    human: Mapped[Human] = relationship(lazy="joined")
    wallet: Mapped[HumanWallet] = relationship(lazy="joined")

    @property
    def human_name(self) -> str | None:
        return self.human.display_name if self.human is not None else None

    @property
    def wallet_address(self) -> str | None:
        return self.wallet.address if self.wallet is not None else None


class PayoutEvent(Base):
    """Immutable audit record of one payout state change."""

    __tablename__ = "payout_events"
    __table_args__ = (
        check_in("actor_type", PAYOUT_ACTOR_TYPES, "ck_payout_events_actor_type"),
        Index("idx_payout_events_payout_id", "payout_id"),
    )

    id: Mapped[str] = id_column()
    payout_id: Mapped[str] = mapped_column(
        ForeignKey("crypto_payouts.id", ondelete="CASCADE"), nullable=False
    )
    # Position within the payout's log; timestamps alone can tie.
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_type: Mapped[str] = mapped_column(String(16), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    payload: Mapped[dict[str, Any] | None] = mapped_column("payload_json", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
