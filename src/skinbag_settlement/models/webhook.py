"""Payout webhook subscriptions and their outbox of deliveries."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from skinbag_settlement.db.session import Base

from .common import (
    WEBHOOK_DELIVERY_STATUSES,
    WEBHOOK_SUBSCRIPTION_STATUSES,
    TimestampMixin,
    check_in,
    id_column,
)


class PayoutWebhookSubscription(TimestampMixin, Base):
    """Subscriber endpoint plus the payout event types it wants."""

    __tablename__ = "payout_webhook_subscriptions"
    __table_args__ = (
        check_in("status", WEBHOOK_SUBSCRIPTION_STATUSES, "ck_payout_webhooks_status"),
        Index("idx_payout_webhooks_user_status", "user_id", "status"),
    )

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    endpoint_url: Mapped[str] = mapped_column(Text, nullable=False)
    secret_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    events: Mapped[list[str]] = mapped_column("events_json", JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_agent_id: Mapped[str | None] = mapped_column(String(120), nullable=True)

    @property
    def has_secret(self) -> bool:
        return bool(self.secret_hash)


class PayoutWebhookDelivery(TimestampMixin, Base):
    """One outbox row per (subscription, payout event)."""

    __tablename__ = "payout_webhook_deliveries"
    __table_args__ = (
        check_in("delivery_status", WEBHOOK_DELIVERY_STATUSES, "ck_payout_webhook_deliveries_status"),
        Index("idx_payout_webhooks_delivery_sub", "subscription_id", "created_at"),
        Index("idx_payout_webhooks_delivery_payout", "payout_id", "event_type"),
    )

    id: Mapped[str] = id_column()
    subscription_id: Mapped[str] = mapped_column(
        ForeignKey("payout_webhook_subscriptions.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    payout_id: Mapped[str] = mapped_column(
        ForeignKey("crypto_payouts.id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column("payload_json", JSON, nullable=False)
    delivery_status: Mapped[str] = mapped_column(String(16), nullable=False, default="queued")
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    http_status: Mapped[int | None] = mapped_column(Integer, nullable=True)
    response_body: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
