"""Payout webhook subscription and delivery endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from skinbag_settlement.api.v1.dependencies import CurrentUserDep, SessionDep
from skinbag_settlement.db.session import atomic
from skinbag_settlement.models import PayoutWebhookDelivery, PayoutWebhookSubscription
from skinbag_settlement.schemas.webhook import (
    DeliveryResponse,
    SubscriptionCreate,
    SubscriptionResponse,
)
from skinbag_settlement.services import webhooks as webhook_service

router = APIRouter(prefix="/payout-webhooks", tags=["payout-webhooks"])


@router.get("/subscriptions", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    current_user: CurrentUserDep,
    db: SessionDep,
    subscription_status: str | None = Query(None, alias="status"),
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[PayoutWebhookSubscription]:
    return webhook_service.list_subscriptions(
        db, current_user.id, subscription_status, limit, offset
    )


@router.post(
    "/subscriptions",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription(
    subscription_data: SubscriptionCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PayoutWebhookSubscription:
    """Subscribe an endpoint to the caller's payout events."""
    with atomic(db):
        return webhook_service.create_subscription(
            db, current_user.id, **subscription_data.model_dump()
        )


@router.get("/deliveries", response_model=list[DeliveryResponse])
async def list_deliveries(
    current_user: CurrentUserDep,
    db: SessionDep,
    subscription_id: str | None = Query(None),
    payout_id: str | None = Query(None),
    delivery_status: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> list[PayoutWebhookDelivery]:
    """List simulated webhook deliveries, newest first."""
    return webhook_service.list_deliveries(
        db,
        current_user.id,
        subscription_id=subscription_id,
        payout_id=payout_id,
        delivery_status=delivery_status,
        limit=limit,
        offset=offset,
    )
