"""Dispute schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from .common import AgentId, ORMModel, UTCDateTime

TargetType = Literal["booking", "payout", "escrow", "bounty"]
Decision = Literal["refund", "release", "split", "no_action", "reject"]


class DisputeOpen(BaseModel):
    target_type: TargetType
    target_id: str
    reason: str = Field(min_length=8, max_length=4000)
    evidence: dict[str, Any] | None = None
    opened_by_agent_id: AgentId | None = None


class DisputeResolve(BaseModel):
    decision: Decision
    note: str | None = Field(default=None, max_length=4000)


class DisputeResponse(ORMModel):
    id: str
    user_id: str
    target_type: str
    target_id: str
    opened_by_agent_id: str | None
    reason: str
    evidence: dict[str, Any] | None
    status: str
    resolution: str | None
    resolution_note: str | None
    resolved_by_user_id: str | None
    opened_at: UTCDateTime
    resolved_at: UTCDateTime | None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class DisputeStatusesResponse(BaseModel):
    statuses: list[str]
    resolutions: list[str]
