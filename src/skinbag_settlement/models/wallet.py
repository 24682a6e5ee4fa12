"""Payee wallets and their ownership-verification challenges."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from skinbag_settlement.db.session import Base

from .common import (
    CHAINS,
    CHALLENGE_STATUSES,
    NETWORKS,
    WALLET_VERIFICATION_STATUSES,
    TimestampMixin,
    check_in,
    id_column,
)


class HumanWallet(TimestampMixin, Base):
    """Destination wallet of a payee for one chain/network/token."""

    __tablename__ = "human_wallets"
    __table_args__ = (
        UniqueConstraint(
            "human_id", "chain", "network", "token_symbol", "address",
            name="uq_human_wallets_natural_key",
        ),
        check_in("chain", CHAINS, "ck_human_wallets_chain"),
        check_in("network", NETWORKS, "ck_human_wallets_network"),
        check_in(
            "verification_status",
            WALLET_VERIFICATION_STATUSES,
            "ck_human_wallets_verification_status",
        ),
        Index("idx_wallets_human_id", "human_id"),
    )

    id: Mapped[str] = id_column()
    human_id: Mapped[str] = mapped_column(
        ForeignKey("humans.id", ondelete="CASCADE"), nullable=False
    )
    label: Mapped[str | None] = mapped_column(Text, nullable=True)
    chain: Mapped[str] = mapped_column(String(16), nullable=False)
    network: Mapped[str] = mapped_column(String(16), nullable=False)
    token_symbol: Mapped[str] = mapped_column(String(12), nullable=False)
    address: Mapped[str] = mapped_column(String(120), nullable=False)
    destination_tag: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verification_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="unverified"
    )


class WalletVerificationChallenge(TimestampMixin, Base):
    """Nonce-based ownership proof for a single wallet."""

    __tablename__ = "wallet_verification_challenges"
    __table_args__ = (
        check_in("status", CHALLENGE_STATUSES, "ck_wallet_challenges_status"),
        Index("idx_wallet_challenges_wallet_status", "wallet_id", "status"),
        Index("idx_wallet_challenges_human_status", "human_id", "status"),
    )

    id: Mapped[str] = id_column()
    wallet_id: Mapped[str] = mapped_column(
        ForeignKey("human_wallets.id", ondelete="CASCADE"), nullable=False
    )
    human_id: Mapped[str] = mapped_column(
        ForeignKey("humans.id", ondelete="CASCADE"), nullable=False
    )
    challenge: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    proof_method: Mapped[str] = mapped_column(
        String(32), nullable=False, default="demo_deterministic"
    )
    expected_signature_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    provided_signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
