"""Per-owner payout policy and the fee estimator."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from skinbag_settlement.core.settings import settings
from skinbag_settlement.db.time import start_of_day, utcnow
from skinbag_settlement.models import CryptoPayout, PaymentPolicy
from skinbag_settlement.models.common import (
    CHAINS,
    DISPUTE_RESOLUTIONS,
    DISPUTE_STATUSES,
    ESCROW_STATUSES,
    EXECUTION_MODES,
    NETWORKS,
    PAYOUT_EVENT_TYPES,
    PAYOUT_STATUSES,
)
from skinbag_settlement.schemas.policy import PaymentPolicyUpdate

from .common import ensure_chain, ensure_choice, ensure_network, get_user, normalize_token
from .errors import PolicyViolationError, ValidationError

logger = logging.getLogger(__name__)

# Payouts in these statuses count towards the owner's daily cap.
DAILY_CAP_STATUSES = ("pending", "approved", "submitted", "confirmed")


@dataclass(frozen=True)
class ChainFeeRule:
    """Flat base fee per network plus a variable part in basis points."""

    base_mainnet_cents: int
    base_testnet_cents: int
    network_bps: int

    def base_for(self, network: str) -> int:
        return self.base_mainnet_cents if network == "mainnet" else self.base_testnet_cents


CHAIN_FEE_RULES: dict[str, ChainFeeRule] = {
    "ethereum": ChainFeeRule(180, 15, 20),
    "polygon": ChainFeeRule(25, 5, 5),
    "arbitrum": ChainFeeRule(60, 8, 8),
    "solana": ChainFeeRule(8, 2, 2),
    "bitcoin": ChainFeeRule(220, 30, 15),
    "tron": ChainFeeRule(40, 6, 6),
}


@dataclass(frozen=True)
class FeeEstimate:
    chain: str
    network: str
    token_symbol: str
    amount_cents: int
    execution_mode: str
    estimated_network_fee_cents: int
    estimated_platform_fee_cents: int
    estimated_total_debit_cents: int
    estimated_recipient_net_cents: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def get_policy(db: Session, user_id: str, *, for_update: bool = False) -> PaymentPolicy:
    """Return the owner's policy, creating it with safe defaults on first read.

    Args:
        db: Database session
        user_id: Owner of the policy
        for_update: Lock the row so concurrent payout creation for the same
            owner is serialized (honoured by PostgreSQL, ignored by SQLite)

    Returns:
        The persisted policy row

    Raises:
        NotFoundError: If the owner does not exist
    """
    get_user(db, user_id)
    stmt = select(PaymentPolicy).where(PaymentPolicy.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    policy = db.scalar(stmt)
    if policy is not None:
        return policy

    policy = PaymentPolicy(
        user_id=user_id,
        autopay_enabled=settings.default_autopay_enabled,
        require_approval=settings.default_require_approval,
        max_single_payout_cents=settings.default_max_single_payout_cents,
        max_daily_payout_cents=settings.default_max_daily_payout_cents,
        allowed_chains=list(settings.default_allowed_chains),
        allowed_tokens=list(settings.default_allowed_tokens),
    )
    db.add(policy)
    db.flush()
    logger.info("Created default payment policy for user %s", user_id)
    return policy


def update_policy(db: Session, user_id: str, update: PaymentPolicyUpdate) -> PaymentPolicy:
    """Apply the provided fields of ``update``; untouched fields keep their values."""
    policy = get_policy(db, user_id)
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return policy

    for field in ("max_single_payout_cents", "max_daily_payout_cents"):
        if field in changes and changes[field] <= 0:
            raise ValidationError(f"{field} must be positive")

    if "allowed_chains" in changes:
        chains = _unique(chain.strip().lower() for chain in changes["allowed_chains"])
        if not chains or any(chain not in CHAINS for chain in chains):
            raise ValidationError(
                f"allowed_chains must be non-empty and subset of: {', '.join(CHAINS)}"
            )
        changes["allowed_chains"] = chains

    if "allowed_tokens" in changes:
        tokens = _unique(normalize_token(token) for token in changes["allowed_tokens"])
        if not tokens:
            raise ValidationError("allowed_tokens must be non-empty")
        changes["allowed_tokens"] = tokens

    for field, value in changes.items():
        setattr(policy, field, value)
    db.flush()
    logger.info("Updated payment policy for user %s: %s", user_id, sorted(changes))
    return policy


def daily_allocated_cents(db: Session, user_id: str, exclude_payout_id: str | None = None) -> int:
    """Sum today's (UTC calendar day) payouts that count towards the daily cap."""
    day_start = start_of_day(utcnow())
    stmt = select(func.coalesce(func.sum(CryptoPayout.amount_cents), 0)).where(
        CryptoPayout.user_id == user_id,
        CryptoPayout.status.in_(DAILY_CAP_STATUSES),
        CryptoPayout.created_at >= day_start,
        CryptoPayout.created_at < day_start + timedelta(days=1),
    )
    if exclude_payout_id is not None:
        stmt = stmt.where(CryptoPayout.id != exclude_payout_id)
    return int(db.scalar(stmt) or 0)


def assert_autopay_allowed(
    db: Session,
    policy: PaymentPolicy,
    amount_cents: int,
    chain: str,
    token_symbol: str,
    *,
    exclude_payout_id: str | None = None,
) -> None:
    """Raise ``PolicyViolationError`` unless an automatic payout fits the policy.

    ``exclude_payout_id`` keeps an already persisted payout from being counted
    twice when it is re-checked at execution time.
    """
    token = normalize_token(token_symbol)
    if not policy.autopay_enabled:
        raise _violation("Auto payout is disabled in payment policy", policy)
    if amount_cents > policy.max_single_payout_cents:
        raise _violation("Payout exceeds max single payout limit", policy)
    if chain not in policy.allowed_chains:
        raise _violation(f"Chain {chain} is not allowed by payment policy", policy)
    if token not in policy.allowed_tokens:
        raise _violation(f"Token {token} is not allowed by payment policy", policy)

    allocated = daily_allocated_cents(db, policy.user_id, exclude_payout_id)
    if allocated + amount_cents > policy.max_daily_payout_cents:
        raise _violation("Daily payout limit exceeded", policy)


def estimate_fees(
    chain: str,
    network: str,
    token_symbol: str,
    amount_cents: int,
    execution_mode: str = "manual",
) -> FeeEstimate:
    """Estimate network and platform fees for a payout. Pure function."""
    if amount_cents <= 0:
        raise ValidationError("amount_cents must be positive")
    ensure_chain(chain)
    ensure_network(network)
    ensure_choice(execution_mode, EXECUTION_MODES, "execution_mode")

    rule = CHAIN_FEE_RULES[chain]
    network_fee = rule.base_for(network) + _ceil_bps(amount_cents, rule.network_bps)

    platform_bps = (
        settings.platform_fee_bps_agent_auto
        if execution_mode == "agent_auto"
        else settings.platform_fee_bps_manual
    )
    platform_fee = max(settings.platform_fee_min_cents, _ceil_bps(amount_cents, platform_bps))

    return FeeEstimate(
        chain=chain,
        network=network,
        token_symbol=normalize_token(token_symbol),
        amount_cents=amount_cents,
        execution_mode=execution_mode,
        estimated_network_fee_cents=network_fee,
        estimated_platform_fee_cents=platform_fee,
        estimated_total_debit_cents=amount_cents + network_fee + platform_fee,
        estimated_recipient_net_cents=max(amount_cents - network_fee - platform_fee, 0),
    )


def list_supported_networks() -> dict[str, list[str]]:
    return {
        "chains": list(CHAINS),
        "networks": list(NETWORKS),
        "payout_statuses": list(PAYOUT_STATUSES),
        "payout_webhook_event_types": list(PAYOUT_EVENT_TYPES),
    }


def list_escrow_statuses() -> dict[str, list[str]]:
    return {"statuses": list(ESCROW_STATUSES)}


def list_dispute_statuses() -> dict[str, list[str]]:
    return {"statuses": list(DISPUTE_STATUSES), "resolutions": list(DISPUTE_RESOLUTIONS)}


def _ceil_bps(amount_cents: int, bps: int) -> int:
    return -(-amount_cents * bps // 10_000)


def _unique(values) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


def _violation(message: str, policy: PaymentPolicy) -> PolicyViolationError:
    logger.warning("Policy violation for user %s: %s", policy.user_id, message)
    return PolicyViolationError(message)
