"""Milestone endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from skinbag_settlement.api.v1.dependencies import CurrentUserDep, SessionDep
from skinbag_settlement.db.session import atomic
from skinbag_settlement.models import BookingMilestone
from skinbag_settlement.schemas.milestone import (
    MilestoneComplete,
    MilestoneCompleteResponse,
    MilestoneCreate,
    MilestoneResponse,
)
from skinbag_settlement.services import milestones as milestone_service

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.get("", response_model=list[MilestoneResponse])
async def list_milestones(
    current_user: CurrentUserDep,
    db: SessionDep,
    source_type: str | None = Query(None),
    source_id: str | None = Query(None),
    milestone_status: str | None = Query(None, alias="status"),
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[BookingMilestone]:
    return milestone_service.list_milestones(
        db, current_user.id, source_type, source_id, milestone_status, limit, offset
    )


@router.post("", response_model=MilestoneResponse, status_code=status.HTTP_201_CREATED)
async def create_milestone(
    milestone_data: MilestoneCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> BookingMilestone:
    """Add a milestone to a booking or bounty within its price or budget."""
    with atomic(db):
        return milestone_service.create(db, current_user.id, **milestone_data.model_dump())


@router.get("/{milestone_id}", response_model=MilestoneResponse)
async def get_milestone(
    milestone_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> BookingMilestone:
    return milestone_service.get_milestone(db, current_user.id, milestone_id)


@router.post("/{milestone_id}/complete", response_model=MilestoneCompleteResponse)
async def complete_milestone(
    milestone_id: str,
    request: MilestoneComplete,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict:
    """Complete a milestone, optionally creating (and executing) its payout."""
    payout_config = request.payout.model_dump() if request.payout else None
    with atomic(db):
        completion = milestone_service.complete(
            db, current_user.id, milestone_id, request.auto_create_payout, payout_config
        )
    return {"milestone": completion.milestone, "payout": completion.payout}
