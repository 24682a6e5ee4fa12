"""Capability checks deciding who may act on settlement resources."""

from __future__ import annotations

from sqlalchemy.orm import Session

from skinbag_settlement.models import Human, User

from .common import get_human
from .errors import ForbiddenError


def can_act_on_human(user: User, human: Human) -> bool:
    """Admins act on every payee; everyone else only on profiles they own."""
    return user.is_admin or human.user_id == user.id


def require_human_access(db: Session, user: User, human_id: str) -> Human:
    """Load a payee profile and make sure ``user`` may manage it.

    Raises:
        NotFoundError: If the profile does not exist
        ForbiddenError: If the caller neither owns the profile nor is an admin
    """
    human = get_human(db, human_id)
    if not can_act_on_human(user, human):
        raise ForbiddenError("Not allowed to manage this human profile")
    return human


def require_reviewer(user: User) -> User:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
