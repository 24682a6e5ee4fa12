"""Crypto payout endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from skinbag_settlement.api.v1.dependencies import CurrentUserDep, SessionDep
from skinbag_settlement.db.session import atomic
from skinbag_settlement.models import CryptoPayout, PayoutEvent
from skinbag_settlement.schemas.common import AuditEventResponse
from skinbag_settlement.schemas.payout import (
    PayoutApprove,
    PayoutCancel,
    PayoutCreate,
    PayoutExecute,
    PayoutFail,
    PayoutResponse,
)
from skinbag_settlement.services import payouts as payout_service

router = APIRouter(prefix="/payouts", tags=["payouts"])


@router.get("", response_model=list[PayoutResponse])
async def list_payouts(
    current_user: CurrentUserDep,
    db: SessionDep,
    payout_status: str | None = Query(None, alias="status"),
    source_type: str | None = Query(None),
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[CryptoPayout]:
    """List the caller's payouts, newest first."""
    return payout_service.list_payouts(db, current_user.id, payout_status, source_type, limit, offset)


@router.post("", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED)
async def create_payout(
    payout_data: PayoutCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CryptoPayout:
    """Create a payout intent; replays return the payout already created for the key."""
    with atomic(db):
        return payout_service.create_intent(db, current_user.id, **payout_data.model_dump())


@router.get("/{payout_id}", response_model=PayoutResponse)
async def get_payout(payout_id: str, current_user: CurrentUserDep, db: SessionDep) -> CryptoPayout:
    return payout_service.get_payout(db, current_user.id, payout_id)


@router.get("/{payout_id}/events", response_model=list[AuditEventResponse])
async def list_payout_events(
    payout_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[PayoutEvent]:
    """Return the payout's event log, oldest first."""
    return payout_service.list_events(db, current_user.id, payout_id)


@router.post("/{payout_id}/approve", response_model=PayoutResponse)
async def approve_payout(
    payout_id: str,
    request: PayoutApprove,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CryptoPayout:
    with atomic(db):
        return payout_service.approve(db, current_user.id, payout_id, request.actor_id)


@router.post("/{payout_id}/execute", response_model=PayoutResponse)
async def execute_payout(
    payout_id: str,
    request: PayoutExecute,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CryptoPayout:
    """Submit (and by default confirm) an agent_auto payout."""
    with atomic(db):
        return payout_service.execute_by_agent(
            db,
            current_user.id,
            payout_id,
            request.agent_id,
            request.tx_hash,
            request.confirm_immediately,
        )


@router.post("/{payout_id}/fail", response_model=PayoutResponse)
async def fail_payout(
    payout_id: str,
    request: PayoutFail,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CryptoPayout:
    with atomic(db):
        return payout_service.fail(
            db, current_user.id, payout_id, request.reason, "user", current_user.id
        )


@router.post("/{payout_id}/cancel", response_model=PayoutResponse)
async def cancel_payout(
    payout_id: str,
    request: PayoutCancel,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CryptoPayout:
    with atomic(db):
        return payout_service.cancel(db, current_user.id, payout_id, request.reason)
