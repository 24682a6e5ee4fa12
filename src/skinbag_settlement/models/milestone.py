"""Partial-payment checkpoints against a booking or bounty."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from skinbag_settlement.db.session import Base

from .common import MILESTONE_SOURCE_TYPES, MILESTONE_STATUSES, TimestampMixin, check_in, id_column


class BookingMilestone(TimestampMixin, Base):
    __tablename__ = "booking_milestones"
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_booking_milestones_amount_positive"),
        check_in("source_type", MILESTONE_SOURCE_TYPES, "ck_booking_milestones_source_type"),
        check_in("status", MILESTONE_STATUSES, "ck_booking_milestones_status"),
        Index("idx_booking_milestones_user_status", "user_id", "status"),
        Index("idx_booking_milestones_source", "source_type", "source_id"),
    )

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    source_type: Mapped[str] = mapped_column(String(16), nullable=False)
    source_id: Mapped[str] = mapped_column(String(36), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="planned")
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payout_id: Mapped[str | None] = mapped_column(ForeignKey("crypto_payouts.id"), nullable=True)
    created_by_agent_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
