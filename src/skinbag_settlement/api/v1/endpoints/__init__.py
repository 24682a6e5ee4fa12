# src/skinbag_settlement/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .disputes import router as disputes_router
from .escrows import router as escrows_router
from .milestones import router as milestones_router
from .payouts import router as payouts_router
from .policy import router as policy_router
from .wallets import router as wallets_router
from .webhooks import router as webhooks_router

__all__ = [
    "policy_router",
    "wallets_router",
    "payouts_router",
    "escrows_router",
    "milestones_router",
    "disputes_router",
    "webhooks_router",
]
