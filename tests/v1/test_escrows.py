# tests/v1/test_escrows.py
"""Tests for escrow hold endpoints."""

from fastapi import status

ESCROWS = "/api/v1/escrows"


def _hold(client, headers, booking, **overrides) -> dict:
    payload = {
        "source_type": "booking",
        "source_id": booking.id,
        "chain": "polygon",
        "network": "testnet",
        "token_symbol": "USDC",
        "note": "Deposit for Saturday",
    }
    payload.update(overrides)
    response = client.post(ESCROWS, json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def test_escrow_statuses(client) -> None:
    response = client.get(f"{ESCROWS}/statuses")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["statuses"] == ["held", "released", "cancelled", "expired"]


def test_booking_escrow_release_creates_payout(client, owner_headers, booking, wallet) -> None:
    """Test hold, manual release and the linked pending payout."""
    escrow = _hold(client, owner_headers, booking)
    assert escrow["status"] == "held"
    assert escrow["amount_cents"] == 36000
    assert escrow["wallet_id"] == wallet.id

    response = client.post(f"{ESCROWS}/{escrow['id']}/release", json={}, headers=owner_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["escrow"]["status"] == "released"
    assert data["escrow"]["release_payout_id"] == data["payout"]["id"]
    assert data["payout"]["status"] == "pending"
    assert data["payout"]["amount_cents"] == 36000
    assert data["payout"]["source_type"] == "manual"

    again = client.post(f"{ESCROWS}/{escrow['id']}/release", json={}, headers=owner_headers)
    assert again.status_code == status.HTTP_409_CONFLICT

    events = client.get(f"{ESCROWS}/{escrow['id']}/events", headers=owner_headers).json()
    assert [e["event_type"] for e in events] == ["escrow_created", "escrow_released"]


def test_agent_release_requires_agent(client, owner_headers, booking, wallet) -> None:
    escrow = _hold(client, owner_headers, booking)
    response = client.post(
        f"{ESCROWS}/{escrow['id']}/release",
        json={"execution_mode": "agent_auto"},
        headers=owner_headers,
    )
    assert response.status_code == 422


def test_cancel_escrow(client, owner_headers, booking, wallet) -> None:
    """Test that cancelled holds cannot be released."""
    escrow = _hold(client, owner_headers, booking)

    response = client.post(
        f"{ESCROWS}/{escrow['id']}/cancel", json={"reason": "Booking moved"}, headers=owner_headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancelled_at"] is not None

    release = client.post(f"{ESCROWS}/{escrow['id']}/release", json={}, headers=owner_headers)
    assert release.status_code == status.HTTP_409_CONFLICT

    listed = client.get(ESCROWS, params={"status": "cancelled"}, headers=owner_headers).json()
    assert [e["id"] for e in listed] == [escrow["id"]]


def test_escrows_are_owner_scoped(client, owner_headers, other_headers, booking, wallet) -> None:
    escrow = _hold(client, owner_headers, booking)
    response = client.get(f"{ESCROWS}/{escrow['id']}", headers=other_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
