"""Escrow hold endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from skinbag_settlement.api.v1.dependencies import CurrentUserDep, SessionDep
from skinbag_settlement.db.session import atomic
from skinbag_settlement.models import EscrowEvent, EscrowHold
from skinbag_settlement.schemas.common import AuditEventResponse
from skinbag_settlement.schemas.escrow import (
    EscrowCancel,
    EscrowCreate,
    EscrowRelease,
    EscrowReleaseResponse,
    EscrowResponse,
    EscrowStatusesResponse,
)
from skinbag_settlement.services import escrows as escrow_service
from skinbag_settlement.services import policy as policy_service

router = APIRouter(prefix="/escrows", tags=["escrows"])


@router.get("/statuses", response_model=EscrowStatusesResponse)
async def list_escrow_statuses() -> dict[str, list[str]]:
    return policy_service.list_escrow_statuses()


@router.get("", response_model=list[EscrowResponse])
async def list_escrows(
    current_user: CurrentUserDep,
    db: SessionDep,
    escrow_status: str | None = Query(None, alias="status"),
    source_type: str | None = Query(None),
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[EscrowHold]:
    """List the caller's escrow holds, newest first."""
    return escrow_service.list_escrows(db, current_user.id, escrow_status, source_type, limit, offset)


@router.post("", response_model=EscrowResponse, status_code=status.HTTP_201_CREATED)
async def create_escrow(
    escrow_data: EscrowCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> EscrowHold:
    """Hold funds for a payee against a booking, bounty or manual source."""
    with atomic(db):
        return escrow_service.create_hold(db, current_user.id, **escrow_data.model_dump())


@router.get("/{escrow_id}", response_model=EscrowResponse)
async def get_escrow(escrow_id: str, current_user: CurrentUserDep, db: SessionDep) -> EscrowHold:
    return escrow_service.get_escrow(db, current_user.id, escrow_id)


@router.get("/{escrow_id}/events", response_model=list[AuditEventResponse])
async def list_escrow_events(
    escrow_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[EscrowEvent]:
    return escrow_service.list_events(db, current_user.id, escrow_id)


@router.post("/{escrow_id}/release", response_model=EscrowReleaseResponse)
async def release_escrow(
    escrow_id: str,
    request: EscrowRelease,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict:
    """Release a held escrow into a payout."""
    with atomic(db):
        released = escrow_service.release(db, current_user.id, escrow_id, **request.model_dump())
    return {"escrow": released.escrow, "payout": released.payout}


@router.post("/{escrow_id}/cancel", response_model=EscrowResponse)
async def cancel_escrow(
    escrow_id: str,
    request: EscrowCancel,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> EscrowHold:
    with atomic(db):
        return escrow_service.cancel(db, current_user.id, escrow_id, request.reason)
