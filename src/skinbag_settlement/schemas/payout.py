"""Crypto payout schemas."""

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


class PayoutCreate(BaseModel):
    source_type: SourceType
    source_id: str | None = None
    human_id: str | None = None
    amount_cents: int | None = Field(default=None, gt=0)
    chain: Chain
    network: Network
    token_symbol: TokenSymbol
    wallet_id: str | None = None
    execution_mode: ExecutionMode = "manual"
    requested_by_agent_id: AgentId | None = None
    idempotency_key: IdempotencyKey | None = None

    @model_validator(mode="after")
    def _agent_required_for_auto(self) -> "PayoutCreate":
        if self.execution_mode == "agent_auto" and not self.requested_by_agent_id:
            raise ValueError("requested_by_agent_id is required for agent_auto payouts")
        return self


class PayoutApprove(BaseModel):
    actor_id: str | None = None


class PayoutExecute(BaseModel):
    agent_id: AgentId
    tx_hash: TxHash | None = None
    confirm_immediately: bool = True


class PayoutFail(BaseModel):
    reason: str = Field(min_length=4, max_length=400)


class PayoutCancel(BaseModel):
    reason: str | None = Field(default=None, min_length=4, max_length=400)


class PayoutResponse(ORMModel):
    id: str
    user_id: str
    human_id: str
    human_name: str | None = None
    source_type: str
    source_id: str | None
    wallet_id: str
    wallet_address: str | None = None
    chain: str
    network: str
    token_symbol: str
    amount_cents: int
    status: str
    execution_mode: str
    tx_hash: str | None
    idempotency_key: str | None
    requested_by_agent_id: str | None
    approved_at: UTCDateTime | None
    submitted_at: UTCDateTime | None
    confirmed_at: UTCDateTime | None
    failed_at: UTCDateTime | None
    failure_reason: str | None
    cancelled_at: UTCDateTime | None
    created_at: UTCDateTime
    updated_at: UTCDateTime
