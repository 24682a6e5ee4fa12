# tests/v1/test_payouts.py
"""Tests for payout endpoints."""

from fastapi import status

PAYOUTS = "/api/v1/payouts"


def _payload(booking, **overrides) -> dict:
    payload = {
        "source_type": "booking",
        "source_id": booking.id,
        "chain": "polygon",
        "network": "testnet",
        "token_symbol": "USDC",
    }
    payload.update(overrides)
    return payload


def test_create_manual_payout(client, owner_headers, booking, wallet) -> None:
    """Test that a manual payout for a booking starts pending."""
    response = client.post(PAYOUTS, json=_payload(booking), headers=owner_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "pending"
    assert data["amount_cents"] == 36000
    assert data["wallet_id"] == wallet.id
    assert data["human_name"] == "Pat the Runner"
    assert data["wallet_address"] == wallet.address

    fetched = client.get(f"{PAYOUTS}/{data['id']}", headers=owner_headers)
    assert fetched.status_code == status.HTTP_200_OK
    assert fetched.json()["id"] == data["id"]


def test_idempotent_replay(client, owner_headers, booking, wallet) -> None:
    """Test that the same idempotency key returns the same payout."""
    payload = _payload(booking, idempotency_key="booking-settle-1")
    first = client.post(PAYOUTS, json=payload, headers=owner_headers).json()
    second = client.post(PAYOUTS, json=payload, headers=owner_headers).json()

    assert first["id"] == second["id"]
    assert len(client.get(PAYOUTS, headers=owner_headers).json()) == 1
    events = client.get(f"{PAYOUTS}/{first['id']}/events", headers=owner_headers).json()
    assert [e["event_type"] for e in events] == ["payout_created"]


def test_agent_auto_requires_agent(client, owner_headers, booking, wallet) -> None:
    response = client.post(
        PAYOUTS, json=_payload(booking, execution_mode="agent_auto"), headers=owner_headers
    )
    assert response.status_code == 422


def test_agent_auto_refused_by_default_policy(client, owner_headers, booking, verified_wallet) -> None:
    """Test that default policies refuse autopay with a typed error body."""
    response = client.post(
        PAYOUTS,
        json=_payload(booking, execution_mode="agent_auto", requested_by_agent_id="agent-007"),
        headers=owner_headers,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error_code"] == "policy_violation"


def test_agent_auto_unverified_wallet(client, owner_headers, booking, wallet, autopay_policy) -> None:
    response = client.post(
        PAYOUTS,
        json=_payload(booking, execution_mode="agent_auto", requested_by_agent_id="agent-007"),
        headers=owner_headers,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error_code"] == "wallet_not_verified"


def test_agent_auto_execute_flow(
    client, owner_headers, booking, verified_wallet, autopay_policy
) -> None:
    """Test auto-approval followed by agent execution to confirmed."""
    created = client.post(
        PAYOUTS,
        json=_payload(booking, execution_mode="agent_auto", requested_by_agent_id="agent-007"),
        headers=owner_headers,
    ).json()
    assert created["status"] == "approved"

    response = client.post(
        f"{PAYOUTS}/{created['id']}/execute",
        json={"agent_id": "agent-007", "tx_hash": "0xdeadbeefcafe"},
        headers=owner_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "confirmed"
    assert data["tx_hash"] == "0xdeadbeefcafe"

    events = client.get(f"{PAYOUTS}/{created['id']}/events", headers=owner_headers).json()
    assert [e["event_type"] for e in events] == [
        "payout_created",
        "payout_auto_approved",
        "payout_submitted",
        "payout_confirmed",
    ]
    assert [e["seq"] for e in events] == [1, 2, 3, 4]


def test_approve_then_manual_execute_refused(client, owner_headers, booking, wallet) -> None:
    created = client.post(PAYOUTS, json=_payload(booking), headers=owner_headers).json()

    approved = client.post(f"{PAYOUTS}/{created['id']}/approve", json={}, headers=owner_headers)
    assert approved.status_code == status.HTTP_200_OK
    assert approved.json()["status"] == "approved"
    assert approved.json()["approved_at"] is not None

    again = client.post(f"{PAYOUTS}/{created['id']}/approve", json={}, headers=owner_headers)
    assert again.status_code == status.HTTP_409_CONFLICT
    assert again.json()["error_code"] == "invalid_transition"

    executed = client.post(
        f"{PAYOUTS}/{created['id']}/execute", json={"agent_id": "agent-007"}, headers=owner_headers
    )
    assert executed.status_code == status.HTTP_409_CONFLICT


def test_fail_and_cancel(client, owner_headers, booking, wallet) -> None:
    """Test the fail and cancel transitions."""
    first = client.post(PAYOUTS, json=_payload(booking), headers=owner_headers).json()
    second = client.post(PAYOUTS, json=_payload(booking), headers=owner_headers).json()

    failed = client.post(
        f"{PAYOUTS}/{first['id']}/fail", json={"reason": "RPC node timeout"}, headers=owner_headers
    )
    assert failed.status_code == status.HTTP_200_OK
    assert failed.json()["status"] == "failed"
    assert failed.json()["failure_reason"] == "RPC node timeout"

    cancelled = client.post(
        f"{PAYOUTS}/{second['id']}/cancel", json={"reason": "Paid in cash"}, headers=owner_headers
    )
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancelled_at"] is not None
    assert failed.json()["cancelled_at"] is None

    refused = client.post(f"{PAYOUTS}/{first['id']}/cancel", json={}, headers=owner_headers)
    assert refused.status_code == status.HTTP_409_CONFLICT

    listed = client.get(PAYOUTS, params={"status": "failed"}, headers=owner_headers).json()
    assert [p["id"] for p in listed] == [first["id"]]


def test_payouts_are_owner_scoped(client, owner_headers, other_headers, booking, wallet) -> None:
    created = client.post(PAYOUTS, json=_payload(booking), headers=owner_headers).json()

    response = client.get(f"{PAYOUTS}/{created['id']}", headers=other_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error_code"] == "not_found"
    assert client.get(PAYOUTS, headers=other_headers).json() == []


def test_foreign_booking_is_unavailable(client, other_headers, booking, wallet) -> None:
    response = client.post(PAYOUTS, json=_payload(booking), headers=other_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error_code"] == "source_unavailable"
