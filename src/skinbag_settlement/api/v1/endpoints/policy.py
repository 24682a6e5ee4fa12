"""Payment policy, supported network and fee estimation endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from skinbag_settlement.api.v1.dependencies import CurrentUserDep, SessionDep
from skinbag_settlement.db.session import atomic
from skinbag_settlement.models import PaymentPolicy
from skinbag_settlement.schemas.policy import (
    FeeEstimateRequest,
    FeeEstimateResponse,
    PaymentPolicyResponse,
    PaymentPolicyUpdate,
    SupportedNetworksResponse,
)
from skinbag_settlement.services import policy as policy_service

router = APIRouter(tags=["policy"])


@router.get("/payments/networks", response_model=SupportedNetworksResponse)
async def list_supported_networks() -> dict[str, list[str]]:
    """List chains, networks, payout statuses and webhook event types."""
    return policy_service.list_supported_networks()


@router.get("/payment-policy", response_model=PaymentPolicyResponse)
async def get_payment_policy(current_user: CurrentUserDep, db: SessionDep) -> PaymentPolicy:
    """Return the caller's payment policy, creating defaults on first read."""
    with atomic(db):
        return policy_service.get_policy(db, current_user.id)


@router.patch("/payment-policy", response_model=PaymentPolicyResponse)
async def update_payment_policy(
    update: PaymentPolicyUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PaymentPolicy:
    """Partially update the caller's payment policy."""
    with atomic(db):
        return policy_service.update_policy(db, current_user.id, update)


@router.post("/payouts/estimate-fees", response_model=FeeEstimateResponse)
async def estimate_fees(request: FeeEstimateRequest, current_user: CurrentUserDep) -> dict:
    """Estimate network and platform fees for a prospective payout."""
    estimate = policy_service.estimate_fees(
        request.chain,
        request.network,
        request.token_symbol,
        request.amount_cents,
        request.execution_mode,
    )
    return estimate.to_dict()
