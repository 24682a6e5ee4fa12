"""Dispute endpoints; review and resolution are admin-only."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from skinbag_settlement.api.v1.dependencies import AdminUserDep, CurrentUserDep, SessionDep
from skinbag_settlement.db.session import atomic
from skinbag_settlement.models import Dispute, DisputeEvent
from skinbag_settlement.schemas.common import AuditEventResponse
from skinbag_settlement.schemas.dispute import (
    DisputeOpen,
    DisputeResolve,
    DisputeResponse,
    DisputeStatusesResponse,
)
from skinbag_settlement.services import disputes as dispute_service
from skinbag_settlement.services import policy as policy_service

router = APIRouter(prefix="/disputes", tags=["disputes"])


@router.get("/statuses", response_model=DisputeStatusesResponse)
async def list_dispute_statuses() -> dict[str, list[str]]:
    return policy_service.list_dispute_statuses()


@router.get("", response_model=list[DisputeResponse])
async def list_disputes(
    current_user: CurrentUserDep,
    db: SessionDep,
    dispute_status: str | None = Query(None, alias="status"),
    target_type: str | None = Query(None),
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[Dispute]:
    return dispute_service.list_disputes(
        db, current_user.id, dispute_status, target_type, limit, offset
    )


@router.post("", response_model=DisputeResponse, status_code=status.HTTP_201_CREATED)
async def open_dispute(
    dispute_data: DisputeOpen,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Dispute:
    """Open a dispute against a booking, payout, escrow or bounty the caller owns."""
    with atomic(db):
        return dispute_service.open_dispute(db, current_user.id, **dispute_data.model_dump())


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(dispute_id: str, current_user: CurrentUserDep, db: SessionDep) -> Dispute:
    return dispute_service.get_dispute(db, current_user.id, dispute_id)


@router.get("/{dispute_id}/events", response_model=list[AuditEventResponse])
async def list_dispute_events(
    dispute_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[DisputeEvent]:
    return dispute_service.list_events(db, current_user.id, dispute_id)


@router.post("/{dispute_id}/review", response_model=DisputeResponse)
async def start_review(dispute_id: str, reviewer: AdminUserDep, db: SessionDep) -> Dispute:
    """Move an open dispute under review."""
    with atomic(db):
        return dispute_service.start_review(db, reviewer, dispute_id)


@router.post("/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: str,
    request: DisputeResolve,
    reviewer: AdminUserDep,
    db: SessionDep,
) -> Dispute:
    """Record the reviewer's decision on a dispute."""
    with atomic(db):
        return dispute_service.resolve(db, reviewer, dispute_id, request.decision, request.note)
