# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")

from skinbag_settlement.core.security import create_access_token
from skinbag_settlement.db.session import Base, build_engine
from skinbag_settlement.db.session import get_db as app_get_session
from skinbag_settlement.db.time import utcnow
from skinbag_settlement.main import app as fastapi_app
from skinbag_settlement.models import (
    Booking,
    Bounty,
    BountyApplication,
    Human,
    HumanWallet,
    User,
)
from skinbag_settlement.schemas.policy import PaymentPolicyUpdate
from skinbag_settlement.services import policy as policy_service
from skinbag_settlement.services import wallets as wallet_service

TEST_DB_URL = "sqlite://"

EVM_ADDRESS = "0x" + "ab" * 20
OTHER_EVM_ADDRESS = "0x" + "cd" * 20


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine(TEST_DB_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Fixtures and endpoints commit, so wipe every table between tests.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _make_user(db_session: Session, email: str, full_name: str, role: str) -> User:
    user = User(email=email, full_name=full_name, role=role)
    db_session.add(user)
    db_session.commit()
    return user


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def owner(db_session: Session) -> User:
    """Client account that funds bookings, bounties and payouts."""
    return _make_user(db_session, "owner@example.com", "Olive Owner", "client")


@pytest.fixture()
def other_owner(db_session: Session) -> User:
    """A second client with no claim on the first owner's data."""
    return _make_user(db_session, "other@example.com", "Oscar Other", "client")


@pytest.fixture()
def admin(db_session: Session) -> User:
    return _make_user(db_session, "admin@example.com", "Ari Admin", "admin")


@pytest.fixture()
def payee_user(db_session: Session) -> User:
    """Account that owns the payee's human profile."""
    return _make_user(db_session, "payee@example.com", "Pat Payee", "human")


@pytest.fixture()
def owner_headers(owner: User) -> dict[str, str]:
    return _headers(owner)


@pytest.fixture()
def other_headers(other_owner: User) -> dict[str, str]:
    return _headers(other_owner)


@pytest.fixture()
def admin_headers(admin: User) -> dict[str, str]:
    return _headers(admin)


@pytest.fixture()
def payee_headers(payee_user: User) -> dict[str, str]:
    return _headers(payee_user)


@pytest.fixture()
def human(db_session: Session, payee_user: User) -> Human:
    """Rentable human profile; the payee of every settlement in the tests."""
    human = Human(
        user_id=payee_user.id,
        display_name="Pat the Runner",
        headline="Errands and deliveries",
        hourly_rate_cents=4500,
    )
    db_session.add(human)
    db_session.commit()
    return human


@pytest.fixture()
def booking(db_session: Session, owner: User, human: Human) -> Booking:
    starts_at = utcnow() + timedelta(days=1)
    booking = Booking(
        user_id=owner.id,
        human_id=human.id,
        starts_at=starts_at,
        ends_at=starts_at + timedelta(hours=8),
        status="confirmed",
        total_price_cents=36000,
    )
    db_session.add(booking)
    db_session.commit()
    return booking


@pytest.fixture()
def bounty(db_session: Session, owner: User, human: Human) -> Bounty:
    """Bounty with a budget of 50000 and an accepted application bidding 42000."""
    bounty = Bounty(
        user_id=owner.id,
        title="Photograph the storefront",
        description="Ten photos of the storefront at noon",
        budget_cents=50000,
        currency="USD",
        status="in_progress",
    )
    db_session.add(bounty)
    db_session.flush()
    db_session.add(
        BountyApplication(
            bounty_id=bounty.id,
            human_id=human.id,
            cover_letter="I live next door",
            proposed_amount_cents=42000,
            status="accepted",
        )
    )
    db_session.commit()
    return bounty


@pytest.fixture()
def wallet(db_session: Session, human: Human) -> HumanWallet:
    """Default, still unverified polygon/testnet USDC wallet of the payee."""
    wallet = wallet_service.upsert_wallet(
        db_session,
        human.id,
        chain="polygon",
        network="testnet",
        token_symbol="USDC",
        address=EVM_ADDRESS,
        label="main",
        is_default=True,
    )
    db_session.commit()
    return wallet


@pytest.fixture()
def verified_wallet(db_session: Session, wallet: HumanWallet) -> HumanWallet:
    wallet.verification_status = "verified"
    db_session.commit()
    return wallet


@pytest.fixture()
def autopay_policy(db_session: Session, owner: User):
    """Owner policy allowing agent_auto payouts without manual approval."""
    policy = policy_service.update_policy(
        db_session,
        owner.id,
        PaymentPolicyUpdate(
            autopay_enabled=True,
            require_approval=False,
            max_single_payout_cents=50000,
            max_daily_payout_cents=100000,
        ),
    )
    db_session.commit()
    return policy
