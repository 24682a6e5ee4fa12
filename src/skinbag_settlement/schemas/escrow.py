"""Escrow hold schemas."""

from pydantic import BaseModel, Field, model_validator

from .common import (
    AgentId,
    Chain,
    ExecutionMode,
    IdempotencyKey,
    Network,
    ORMModel,
    SourceType,
    TokenSymbol,
    TxHash,
    UTCDateTime,
)
from .payout import PayoutResponse


class EscrowCreate(BaseModel):
    source_type: SourceType
    source_id: str | None = None
    human_id: str | None = None
    amount_cents: int | None = Field(default=None, gt=0)
    chain: Chain
    network: Network
    token_symbol: TokenSymbol
    wallet_id: str | None = None
    note: str | None = Field(default=None, max_length=2000)
    created_by_agent_id: AgentId | None = None


class EscrowRelease(BaseModel):
    execution_mode: ExecutionMode = "manual"
    requested_by_agent_id: AgentId | None = None
    idempotency_key: IdempotencyKey | None = None
    auto_execute: bool = False
    tx_hash: TxHash | None = None
    confirm_immediately: bool = True

    @model_validator(mode="after")
    def _agent_required_for_auto(self) -> "EscrowRelease":
        if self.execution_mode == "agent_auto" and not self.requested_by_agent_id:
            raise ValueError("requested_by_agent_id is required for agent_auto release")
        return self


class EscrowCancel(BaseModel):
    reason: str | None = Field(default=None, min_length=4, max_length=400)


class EscrowResponse(ORMModel):
    id: str
    user_id: str
    human_id: str
    wallet_id: str
    source_type: str
    source_id: str | None
    chain: str
    network: str
    token_symbol: str
    amount_cents: int
    status: str
    release_payout_id: str | None
    note: str | None
    created_by_agent_id: str | None
    held_at: UTCDateTime
    released_at: UTCDateTime | None
    cancelled_at: UTCDateTime | None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class EscrowReleaseResponse(BaseModel):
    escrow: EscrowResponse
    payout: PayoutResponse


class EscrowStatusesResponse(BaseModel):
    statuses: list[str]
