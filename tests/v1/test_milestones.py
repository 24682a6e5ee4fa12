# tests/v1/test_milestones.py
"""Tests for milestone endpoints."""

from fastapi import status

MILESTONES = "/api/v1/milestones"


def _create(client, headers, booking, **overrides):
    payload = {
        "source_type": "booking",
        "source_id": booking.id,
        "title": "Morning shift",
        "amount_cents": 18000,
    }
    payload.update(overrides)
    return client.post(MILESTONES, json=payload, headers=headers)


def test_create_and_get_milestone(client, owner_headers, booking) -> None:
    response = _create(client, owner_headers, booking, due_at="2030-03-01T12:00:00Z")
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "planned"
    assert data["currency"] == "USD"
    assert data["due_at"].startswith("2030-03-01T12:00:00")

    fetched = client.get(f"{MILESTONES}/{data['id']}", headers=owner_headers)
    assert fetched.json()["title"] == "Morning shift"


def test_budget_cap(client, owner_headers, booking) -> None:
    """Test that the booking price caps the sum of milestones."""
    assert _create(client, owner_headers, booking).status_code == status.HTTP_201_CREATED
    assert _create(client, owner_headers, booking).status_code == status.HTTP_201_CREATED

    response = _create(client, owner_headers, booking, amount_cents=100)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error_code"] == "source_unavailable"


def test_complete_with_payout(client, owner_headers, booking, wallet) -> None:
    """Test completion that creates a linked manual payout."""
    milestone = _create(client, owner_headers, booking).json()

    response = client.post(
        f"{MILESTONES}/{milestone['id']}/complete",
        json={
            "auto_create_payout": True,
            "payout": {"chain": "polygon", "network": "testnet", "token_symbol": "USDC"},
        },
        headers=owner_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["milestone"]["status"] == "completed"
    assert data["payout"]["status"] == "pending"
    assert data["payout"]["amount_cents"] == 18000
    assert data["milestone"]["payout_id"] == data["payout"]["id"]


def test_complete_without_payout(client, owner_headers, booking) -> None:
    milestone = _create(client, owner_headers, booking).json()
    response = client.post(f"{MILESTONES}/{milestone['id']}/complete", json={}, headers=owner_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["payout"] is None

    listed = client.get(MILESTONES, params={"status": "completed"}, headers=owner_headers).json()
    assert [m["id"] for m in listed] == [milestone["id"]]


def test_payout_config_required(client, owner_headers, booking) -> None:
    milestone = _create(client, owner_headers, booking).json()
    response = client.post(
        f"{MILESTONES}/{milestone['id']}/complete",
        json={"auto_create_payout": True},
        headers=owner_headers,
    )
    assert response.status_code == 422


def test_agent_payout_requires_agent(client, owner_headers, booking, wallet) -> None:
    """Test that an agent_auto payout config without an agent id is rejected."""
    milestone = _create(client, owner_headers, booking).json()
    response = client.post(
        f"{MILESTONES}/{milestone['id']}/complete",
        json={
            "auto_create_payout": True,
            "payout": {
                "chain": "polygon",
                "network": "testnet",
                "token_symbol": "USDC",
                "execution_mode": "agent_auto",
            },
        },
        headers=owner_headers,
    )
    assert response.status_code == 422

    fetched = client.get(f"{MILESTONES}/{milestone['id']}", headers=owner_headers).json()
    assert fetched["status"] == "planned"
    assert fetched["payout_id"] is None


def test_milestones_are_owner_scoped(client, owner_headers, other_headers, booking) -> None:
    milestone = _create(client, owner_headers, booking).json()
    response = client.get(f"{MILESTONES}/{milestone['id']}", headers=other_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
