"""Payment policy and fee estimation schemas."""

from pydantic import BaseModel, Field

from .common import Chain, ExecutionMode, Network, ORMModel, TokenSymbol, UTCDateTime


class PaymentPolicyResponse(ORMModel):
    user_id: str
    autopay_enabled: bool
    require_approval: bool
    max_single_payout_cents: int
    max_daily_payout_cents: int
    allowed_chains: list[str]
    allowed_tokens: list[str]
    created_at: UTCDateTime
    updated_at: UTCDateTime


class PaymentPolicyUpdate(BaseModel):
    """Partial policy update; omitted fields are left unchanged."""

    autopay_enabled: bool | None = None
    require_approval: bool | None = None
    max_single_payout_cents: int | None = None
    max_daily_payout_cents: int | None = None
    allowed_chains: list[str] | None = Field(default=None, max_length=6)
    allowed_tokens: list[str] | None = Field(default=None, max_length=20)


class FeeEstimateRequest(BaseModel):
    chain: Chain
    network: Network
    token_symbol: TokenSymbol
    amount_cents: int = Field(gt=0)
    execution_mode: ExecutionMode = "manual"


class FeeEstimateResponse(BaseModel):
    chain: str
    network: str
    token_symbol: str
    amount_cents: int
    execution_mode: str
    estimated_network_fee_cents: int
    estimated_platform_fee_cents: int
    estimated_total_debit_cents: int
    estimated_recipient_net_cents: int


class SupportedNetworksResponse(BaseModel):
    chains: list[str]
    networks: list[str]
    payout_statuses: list[str]
    payout_webhook_event_types: list[str]
