"""Shared schema types."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from skinbag_settlement.db.time import as_utc

# Stores without timezone support hand back naive datetimes; they are UTC.
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]

Chain = Literal["ethereum", "polygon", "arbitrum", "solana", "bitcoin", "tron"]
Network = Literal["mainnet", "testnet"]
ExecutionMode = Literal["manual", "agent_auto"]
SourceType = Literal["bounty", "booking", "manual"]

TokenSymbol = Annotated[str, Field(min_length=2, max_length=12)]
AgentId = Annotated[str, Field(min_length=2, max_length=120)]
IdempotencyKey = Annotated[str, Field(min_length=6, max_length=120)]
TxHash = Annotated[str, Field(min_length=8, max_length=140)]


class ORMModel(BaseModel):
    """Base for responses built from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class AuditEventResponse(ORMModel):
    """One entry of a payout, escrow or dispute event log."""

    id: str
    seq: int
    event_type: str
    actor_type: str
    actor_id: str | None
    payload: dict | None
    created_at: UTCDateTime
