"""Payout webhook subscription and delivery schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from .common import AgentId, ORMModel, UTCDateTime

SubscriptionStatus = Literal["active", "paused", "revoked"]


class SubscriptionCreate(BaseModel):
    endpoint_url: str = Field(min_length=8, max_length=2000)
    events: list[str] | None = None
    secret: str | None = Field(default=None, min_length=8, max_length=200)
    status: SubscriptionStatus = "active"
    description: str | None = Field(default=None, max_length=500)
    created_by_agent_id: AgentId | None = None


class SubscriptionResponse(ORMModel):
    id: str
    user_id: str
    endpoint_url: str
    events: list[str]
    status: str
    description: str | None
    created_by_agent_id: str | None
    has_secret: bool
    created_at: UTCDateTime
    updated_at: UTCDateTime


class DeliveryResponse(ORMModel):
    id: str
    subscription_id: str
    user_id: str
    payout_id: str
    event_type: str
    payload: dict[str, Any]
    delivery_status: str
    attempt_count: int
    http_status: int | None
    response_body: str | None
    error_message: str | None
    last_attempt_at: UTCDateTime | None
    delivered_at: UTCDateTime | None
    created_at: UTCDateTime
    updated_at: UTCDateTime
