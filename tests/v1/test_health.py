# tests/v1/test_health.py
"""Tests for the service probes and authentication guard."""

from fastapi import status


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root_describes_service(client) -> None:
    """Test the root endpoint's service summary."""
    data = client.get("/").json()
    assert data["name"] == "Skinbag Settlement"
    assert data["docs"] == "/docs"
    assert "version" in data


def test_protected_endpoint_requires_token(client) -> None:
    """Test that calls without a bearer token are refused."""
    response = client.get("/api/v1/payouts")
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_invalid_token_rejected(client) -> None:
    response = client.get("/api/v1/payouts", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
