"""Webhook outbox: subscriptions and the simulated deliveries of payout events."""

from __future__ import annotations

import json
import logging
from urllib.parse import urlsplit

from sqlalchemy import select
from sqlalchemy.orm import Session

from skinbag_settlement.core.settings import settings
from skinbag_settlement.db.time import isoformat, utcnow
from skinbag_settlement.models import (
    CryptoPayout,
    PayoutEvent,
    PayoutWebhookDelivery,
    PayoutWebhookSubscription,
)
from skinbag_settlement.models.common import (
    PAYOUT_EVENT_TYPES,
    WEBHOOK_DELIVERY_STATUSES,
    WEBHOOK_SUBSCRIPTION_STATUSES,
)

from .common import clamp_limit, clamp_offset, ensure_choice, get_user, sha256_hex
from .errors import ValidationError

logger = logging.getLogger(__name__)

WILDCARD = "*"
SIMULATED_HTTP_STATUS = 202
SIMULATED_RESPONSE_BODY = json.dumps({"simulated": True})


def normalize_events(events: list[str] | None) -> list[str]:
    """Trim, de-duplicate and validate a subscription's event filter."""
    unique: dict[str, None] = {}
    for event_type in events if events is not None else [WILDCARD]:
        event_type = event_type.strip()
        if event_type:
            unique.setdefault(event_type, None)
    if not unique:
        raise ValidationError("events must include at least one event type")
    for event_type in unique:
        if event_type != WILDCARD and event_type not in PAYOUT_EVENT_TYPES:
            raise ValidationError(f"Unsupported webhook event type: {event_type}")
    return list(unique)


def _assert_endpoint(endpoint_url: str) -> None:
    parts = urlsplit(endpoint_url)
    if parts.scheme not in ("http", "https"):
        raise ValidationError("endpoint_url must use http or https protocol")
    if not parts.netloc:
        raise ValidationError("endpoint_url must be a valid URL")


def create_subscription(
    db: Session,
    user_id: str,
    *,
    endpoint_url: str,
    events: list[str] | None = None,
    secret: str | None = None,
    status: str = "active",
    description: str | None = None,
    created_by_agent_id: str | None = None,
) -> PayoutWebhookSubscription:
    get_user(db, user_id)
    endpoint_url = endpoint_url.strip()
    _assert_endpoint(endpoint_url)
    ensure_choice(status, WEBHOOK_SUBSCRIPTION_STATUSES, "status")

    secret = (secret or "").strip()
    subscription = PayoutWebhookSubscription(
        user_id=user_id,
        endpoint_url=endpoint_url,
        secret_hash=sha256_hex(secret) if secret else None,
        events=normalize_events(events),
        status=status,
        description=(description or "").strip() or None,
        created_by_agent_id=created_by_agent_id,
    )
    db.add(subscription)
    db.flush()
    logger.info("Created webhook subscription %s for user %s", subscription.id, user_id)
    return subscription


def list_subscriptions(
    db: Session,
    user_id: str,
    status: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[PayoutWebhookSubscription]:
    get_user(db, user_id)
    stmt = select(PayoutWebhookSubscription).where(PayoutWebhookSubscription.user_id == user_id)
    if status:
        ensure_choice(status, WEBHOOK_SUBSCRIPTION_STATUSES, "status")
        stmt = stmt.where(PayoutWebhookSubscription.status == status)
    stmt = (
        stmt.order_by(PayoutWebhookSubscription.created_at.desc())
        .limit(clamp_limit(limit))
        .offset(clamp_offset(offset))
    )
    return list(db.scalars(stmt))


def list_deliveries(
    db: Session,
    user_id: str,
    *,
    subscription_id: str | None = None,
    payout_id: str | None = None,
    delivery_status: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[PayoutWebhookDelivery]:
    get_user(db, user_id)
    stmt = select(PayoutWebhookDelivery).where(PayoutWebhookDelivery.user_id == user_id)
    if subscription_id:
        stmt = stmt.where(PayoutWebhookDelivery.subscription_id == subscription_id)
    if payout_id:
        stmt = stmt.where(PayoutWebhookDelivery.payout_id == payout_id)
    if delivery_status:
        ensure_choice(delivery_status, WEBHOOK_DELIVERY_STATUSES, "delivery_status")
        stmt = stmt.where(PayoutWebhookDelivery.delivery_status == delivery_status)
    limit = clamp_limit(limit, settings.delivery_page_size, settings.delivery_max_page_size)
    stmt = (
        stmt.order_by(PayoutWebhookDelivery.created_at.desc())
        .limit(limit)
        .offset(clamp_offset(offset))
    )
    return list(db.scalars(stmt))


def fan_out(db: Session, payout: CryptoPayout, event: PayoutEvent) -> list[PayoutWebhookDelivery]:
    """Record one delivery per active subscription whose filter matches ``event``.

    No outbound request is made; each delivery is stored as already delivered
    with a synthetic 202 response.
    """
    subscriptions = db.scalars(
        select(PayoutWebhookSubscription)
        .where(
            PayoutWebhookSubscription.user_id == payout.user_id,
            PayoutWebhookSubscription.status == "active",
        )
        .order_by(PayoutWebhookSubscription.created_at.asc())
    )
    body = {
        "eventId": event.id,
        "eventType": event.event_type,
        "payoutId": payout.id,
        "occurredAt": isoformat(event.created_at),
        "actorType": event.actor_type,
        "actorId": event.actor_id,
        "payload": event.payload,
    }

    deliveries = []
    for subscription in subscriptions:
        if WILDCARD not in subscription.events and event.event_type not in subscription.events:
            continue
        now = utcnow()
        delivery = PayoutWebhookDelivery(
            subscription_id=subscription.id,
            user_id=payout.user_id,
            payout_id=payout.id,
            event_type=event.event_type,
            payload=body,
            delivery_status="delivered",
            attempt_count=1,
            http_status=SIMULATED_HTTP_STATUS,
            response_body=SIMULATED_RESPONSE_BODY,
            last_attempt_at=now,
            delivered_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(delivery)
        deliveries.append(delivery)

    if deliveries:
        db.flush()
    logger.debug(
        "Fanned out %s for payout %s to %d subscription(s)",
        event.event_type,
        payout.id,
        len(deliveries),
    )
    return deliveries
