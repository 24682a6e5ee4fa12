"""Milestone schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from .common import (
    AgentId,
    Chain,
    ExecutionMode,
    IdempotencyKey,
    Network,
    ORMModel,
    TokenSymbol,
    TxHash,
    UTCDateTime,
)
from .payout import PayoutResponse

MilestoneSourceType = Literal["booking", "bounty"]


class MilestoneCreate(BaseModel):
    source_type: MilestoneSourceType
    source_id: str
    title: str = Field(min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=4000)
    amount_cents: int = Field(gt=0)
    due_at: datetime | None = None
    created_by_agent_id: AgentId | None = None


class MilestonePayoutConfig(BaseModel):
    chain: Chain
    network: Network
    token_symbol: TokenSymbol
    wallet_id: str | None = None
    execution_mode: ExecutionMode = "manual"
    requested_by_agent_id: AgentId | None = None
    idempotency_key: IdempotencyKey | None = None
    auto_execute: bool = False
    tx_hash: TxHash | None = None
    confirm_immediately: bool = True

    @model_validator(mode="after")
    def _agent_required_for_auto(self) -> "MilestonePayoutConfig":
        if self.execution_mode == "agent_auto" and not self.requested_by_agent_id:
            raise ValueError("requested_by_agent_id is required for agent_auto payouts")
        return self


class MilestoneComplete(BaseModel):
    auto_create_payout: bool = False
    payout: MilestonePayoutConfig | None = None

    @model_validator(mode="after")
    def _payout_config_required(self) -> "MilestoneComplete":
        if self.auto_create_payout and self.payout is None:
            raise ValueError("payout config is required when auto_create_payout is set")
        return self


class MilestoneResponse(ORMModel):
    id: str
    user_id: str
    source_type: str
    source_id: str
    title: str
    description: str | None
    amount_cents: int
    currency: str
    status: str
    due_at: UTCDateTime | None
    completed_at: UTCDateTime | None
    payout_id: str | None
    created_by_agent_id: str | None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class MilestoneCompleteResponse(BaseModel):
    milestone: MilestoneResponse
    payout: PayoutResponse | None = None
