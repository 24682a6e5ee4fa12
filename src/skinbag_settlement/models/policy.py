"""Per-owner payout policy."""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from skinbag_settlement.db.session import Base

from .common import TimestampMixin


class PaymentPolicy(TimestampMixin, Base):
    """Autopay switch, limits and allow-lists applied to one owner's payouts."""

    __tablename__ = "payment_policies"
    __table_args__ = (
        CheckConstraint("max_single_payout_cents > 0", name="ck_policy_single_positive"),
        CheckConstraint("max_daily_payout_cents > 0", name="ck_policy_daily_positive"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    autopay_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    require_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_single_payout_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    max_daily_payout_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    # Stored as JSON arrays under the historical *_json column names.
    allowed_chains: Mapped[list[str]] = mapped_column("allowed_chains_json", JSON, nullable=False)
    allowed_tokens: Mapped[list[str]] = mapped_column("allowed_tokens_json", JSON, nullable=False)
