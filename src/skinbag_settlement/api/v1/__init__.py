# src/skinbag_settlement/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    disputes_router,
    escrows_router,
    milestones_router,
    payouts_router,
    policy_router,
    wallets_router,
    webhooks_router,
)

__all__ = [
    "policy_router",
    "wallets_router",
    "payouts_router",
    "escrows_router",
    "milestones_router",
    "disputes_router",
    "webhooks_router",
]
