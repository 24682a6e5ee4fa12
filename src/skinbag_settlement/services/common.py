"""Helpers shared by the settlement services."""

from __future__ import annotations

import hashlib
import hmac
import re
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from skinbag_settlement.core.settings import settings
from skinbag_settlement.models import Human, User
from skinbag_settlement.models.common import CHAINS, NETWORKS

from .errors import NotFoundError, ValidationError

_EVM_ADDRESS = re.compile(r"^0x[a-fA-F0-9]{40}$")
_ADDRESS_PATTERNS: dict[str, re.Pattern[str]] = {
    "ethereum": _EVM_ADDRESS,
    "polygon": _EVM_ADDRESS,
    "arbitrum": _EVM_ADDRESS,
    "solana": re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$"),
    "bitcoin": re.compile(r"^(bc1|tb1|[13])[a-zA-HJ-NP-Z0-9]{20,}$", re.IGNORECASE),
    "tron": re.compile(r"^T[1-9A-HJ-NP-Za-km-z]{33}$"),
}


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def constant_time_equals(left: str, right: str) -> bool:
    """Compare two hash strings without leaking the mismatch position."""
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))


def normalize_token(symbol: str) -> str:
    return symbol.strip().upper()


def ensure_chain(chain: str) -> str:
    if chain not in CHAINS:
        raise ValidationError(f"Unsupported chain: {chain}")
    return chain


def ensure_network(network: str) -> str:
    if network not in NETWORKS:
        raise ValidationError(f"Unsupported network: {network}")
    return network


def ensure_choice(value: str, allowed: Iterable[str], field: str) -> str:
    if value not in allowed:
        raise ValidationError(f"Invalid {field}: {value}")
    return value


def is_valid_address(chain: str, address: str) -> bool:
    """Check an address against the format of its chain family."""
    pattern = _ADDRESS_PATTERNS.get(chain)
    return bool(pattern and pattern.match(address.strip()))


def clamp_limit(limit: int | None, default: int | None = None, maximum: int | None = None) -> int:
    default = settings.default_page_size if default is None else default
    maximum = settings.max_page_size if maximum is None else maximum
    return min(max(limit if limit is not None else default, 1), maximum)


def clamp_offset(offset: int | None) -> int:
    return max(offset or 0, 0)


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_human(db: Session, human_id: str) -> Human:
    human = db.get(Human, human_id)
    if human is None:
        raise NotFoundError("Human not found")
    return human


def next_seq(db: Session, model: type, column, aggregate_id: str) -> int:
    """Return the next position in an aggregate's append-only event log."""
    current = db.scalar(select(func.max(model.seq)).where(column == aggregate_id))
    return (current or 0) + 1
