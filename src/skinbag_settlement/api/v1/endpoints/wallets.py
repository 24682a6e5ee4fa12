"""Wallet registry and wallet verification endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from skinbag_settlement.api.v1.dependencies import CurrentUserDep, SessionDep
from skinbag_settlement.db.session import atomic
from skinbag_settlement.models import HumanWallet, WalletVerificationChallenge
from skinbag_settlement.schemas.wallet import (
    ChallengeCreate,
    ChallengeResponse,
    ChallengeVerify,
    IssuedChallengeResponse,
    VerifiedChallengeResponse,
    WalletResponse,
    WalletUpsert,
)
from skinbag_settlement.services import wallets as wallet_service
from skinbag_settlement.services.access import require_human_access
from skinbag_settlement.services.errors import ForbiddenError, NotFoundError

router = APIRouter(tags=["wallets"])


@router.get("/humans/{human_id}/wallets", response_model=list[WalletResponse])
async def list_wallets(human_id: str, current_user: CurrentUserDep, db: SessionDep) -> list[HumanWallet]:
    """List a payee's wallets, default wallet first."""
    require_human_access(db, current_user, human_id)
    return wallet_service.list_wallets(db, human_id)


@router.post(
    "/humans/{human_id}/wallets",
    response_model=WalletResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upsert_wallet(
    human_id: str,
    wallet_data: WalletUpsert,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> HumanWallet:
    """Create or update one of the payee's wallets.

    Only admins may set ``verification_status`` directly; everyone else goes
    through the challenge flow.
    """
    require_human_access(db, current_user, human_id)
    if wallet_data.verification_status is not None and not current_user.is_admin:
        raise ForbiddenError("Only admins can set verification_status directly")
    with atomic(db):
        return wallet_service.upsert_wallet(db, human_id, **wallet_data.model_dump())


@router.get(
    "/humans/{human_id}/wallet-verification-challenges",
    response_model=list[ChallengeResponse],
)
async def list_challenges(
    human_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    challenge_status: str | None = Query(None, alias="status"),
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[WalletVerificationChallenge]:
    """List verification challenges issued for a payee, newest first."""
    require_human_access(db, current_user, human_id)
    return wallet_service.list_challenges(db, human_id, challenge_status, limit, offset)


@router.post(
    "/humans/{human_id}/wallet-verification-challenges",
    response_model=IssuedChallengeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_challenge(
    human_id: str,
    request: ChallengeCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict:
    """Issue a verification challenge for one of the payee's wallets."""
    require_human_access(db, current_user, human_id)
    with atomic(db):
        issued = wallet_service.create_challenge(db, human_id, **request.model_dump())
    return {
        "challenge": issued.challenge,
        "wallet": issued.wallet,
        "signature_format": issued.signature_format,
    }


@router.post("/wallet-verification/verify", response_model=VerifiedChallengeResponse)
async def verify_challenge(
    request: ChallengeVerify,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict:
    """Submit a signature for a pending challenge."""
    human_id = request.human_id
    if human_id is None:
        challenge = db.get(WalletVerificationChallenge, request.challenge_id)
        if challenge is None:
            raise NotFoundError("Wallet verification challenge not found")
        human_id = challenge.human_id
    require_human_access(db, current_user, human_id)

    with atomic(db):
        verified = wallet_service.verify_challenge(
            db, request.challenge_id, request.signature, human_id
        )
    return {"challenge": verified.challenge, "wallet": verified.wallet}
