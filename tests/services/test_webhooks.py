# tests/services/test_webhooks.py
"""Tests for webhook subscriptions and the simulated delivery outbox."""

import json

import pytest

from skinbag_settlement.services import payouts as payout_service
from skinbag_settlement.services import webhooks as webhook_service
from skinbag_settlement.services.errors import ValidationError

POLYGON_USDC = {"chain": "polygon", "network": "testnet", "token_symbol": "USDC"}


def _subscribe(db_session, owner, **kwargs):
    return webhook_service.create_subscription(
        db_session, owner.id, endpoint_url="https://hooks.example.com/payouts", **kwargs
    )


def _payout(db_session, owner, booking):
    return payout_service.create_intent(
        db_session, owner.id, source_type="booking", source_id=booking.id, **POLYGON_USDC
    )


def test_subscription_defaults(db_session, owner) -> None:
    """Test the wildcard default and that the secret is only kept hashed."""
    subscription = _subscribe(db_session, owner, secret="s3cr3t-value")

    assert subscription.events == ["*"]
    assert subscription.status == "active"
    assert subscription.has_secret is True
    assert subscription.secret_hash != "s3cr3t-value"
    assert len(subscription.secret_hash) == 64


def test_subscription_validation(db_session, owner) -> None:
    """Test URL scheme and event type validation."""
    with pytest.raises(ValidationError):
        webhook_service.create_subscription(db_session, owner.id, endpoint_url="ftp://example.com")
    with pytest.raises(ValidationError):
        _subscribe(db_session, owner, events=["payout_exploded"])
    with pytest.raises(ValidationError):
        _subscribe(db_session, owner, events=["  "])


def test_normalize_events_deduplicates() -> None:
    """Test trimming and de-duplication of event filters."""
    assert webhook_service.normalize_events([" payout_created", "payout_created", "*"]) == [
        "payout_created",
        "*",
    ]


def test_events_fan_out_to_matching_subscriptions(db_session, owner, booking, wallet) -> None:
    """Test that each payout event reaches every matching active subscription."""
    everything = _subscribe(db_session, owner)
    approvals = _subscribe(db_session, owner, events=["payout_approved"])
    _subscribe(db_session, owner, status="paused")

    payout = _payout(db_session, owner, booking)
    payout_service.approve(db_session, owner.id, payout.id)

    all_deliveries = webhook_service.list_deliveries(db_session, owner.id, payout_id=payout.id)
    assert len(all_deliveries) == 3

    to_everything = webhook_service.list_deliveries(
        db_session, owner.id, subscription_id=everything.id
    )
    assert sorted(d.event_type for d in to_everything) == ["payout_approved", "payout_created"]
    to_approvals = webhook_service.list_deliveries(
        db_session, owner.id, subscription_id=approvals.id
    )
    assert [d.event_type for d in to_approvals] == ["payout_approved"]


def test_delivery_payload_and_simulated_response(db_session, owner, booking, wallet) -> None:
    """Test the stored delivery body and the synthetic 202 response."""
    _subscribe(db_session, owner)
    payout = _payout(db_session, owner, booking)

    (delivery,) = webhook_service.list_deliveries(db_session, owner.id)
    event = payout_service.list_events(db_session, owner.id, payout.id)[0]

    assert delivery.delivery_status == "delivered"
    assert delivery.attempt_count == 1
    assert delivery.http_status == 202
    assert json.loads(delivery.response_body) == {"simulated": True}
    assert delivery.payload["eventId"] == event.id
    assert delivery.payload["eventType"] == "payout_created"
    assert delivery.payload["payoutId"] == payout.id
    assert delivery.payload["actorType"] == "user"
    assert delivery.payload["payload"]["amountCents"] == 36000


def test_no_subscriptions_no_deliveries(db_session, owner, booking, wallet) -> None:
    """Test that payouts without subscribers leave the outbox empty."""
    _payout(db_session, owner, booking)
    assert webhook_service.list_deliveries(db_session, owner.id) == []


def test_list_subscriptions_by_status(db_session, owner) -> None:
    """Test the status filter of the subscription listing."""
    active = _subscribe(db_session, owner)
    _subscribe(db_session, owner, status="revoked")

    listed = webhook_service.list_subscriptions(db_session, owner.id, status="active")
    assert [s.id for s in listed] == [active.id]


def test_every_payout_event_is_fanned_out(mocker, db_session, owner, booking, wallet) -> None:
    """Test that each recorded payout event passes through the outbox."""
    spy = mocker.spy(webhook_service, "fan_out")

    payout = _payout(db_session, owner, booking)
    payout_service.cancel(db_session, owner.id, payout.id, "Changed plans")

    assert [call.args[2].event_type for call in spy.call_args_list] == [
        "payout_created",
        "payout_cancelled",
    ]
