"""Wallet registry and verification schemas."""

from typing import Literal

from pydantic import BaseModel, Field

from .common import Chain, Network, ORMModel, TokenSymbol, UTCDateTime

VerificationStatus = Literal["unverified", "verified", "rejected"]


class WalletUpsert(BaseModel):
    chain: Chain
    network: Network
    token_symbol: TokenSymbol
    address: str = Field(min_length=10, max_length=120)
    label: str | None = Field(default=None, max_length=120)
    destination_tag: str | None = Field(default=None, max_length=120)
    is_default: bool = False
    # Only admins may set this through the API.
    verification_status: VerificationStatus | None = None


class WalletResponse(ORMModel):
    id: str
    human_id: str
    label: str | None
    chain: str
    network: str
    token_symbol: str
    address: str
    destination_tag: str | None
    is_default: bool
    verification_status: str
    created_at: UTCDateTime
    updated_at: UTCDateTime


class ChallengeCreate(BaseModel):
    """Locate the wallet by id or by any of the natural-key filters."""

    wallet_id: str | None = None
    chain: Chain | None = None
    network: Network | None = None
    token_symbol: TokenSymbol | None = None
    address: str | None = Field(default=None, min_length=10, max_length=120)
    expires_in_minutes: int | None = None


class ChallengeResponse(ORMModel):
    id: str
    wallet_id: str
    human_id: str
    challenge: str
    message: str
    proof_method: str
    status: str
    expires_at: UTCDateTime
    verified_at: UTCDateTime | None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class WalletSummary(ORMModel):
    id: str
    chain: str
    network: str
    token_symbol: str
    address: str
    verification_status: str


class IssuedChallengeResponse(BaseModel):
    challenge: ChallengeResponse
    wallet: WalletSummary
    signature_format: str


class ChallengeVerify(BaseModel):
    challenge_id: str
    signature: str = Field(min_length=1, max_length=200)
    human_id: str | None = None


class VerifiedChallengeResponse(BaseModel):
    challenge: ChallengeResponse
    wallet: WalletResponse
