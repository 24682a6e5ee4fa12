# tests/v1/test_wallets.py
"""Tests for wallet registry and verification endpoints."""

from fastapi import status

from skinbag_settlement.services.wallets import expected_signature

ADDRESS = "0x" + "ef" * 20


def _wallet_payload(**overrides) -> dict:
    payload = {
        "chain": "polygon",
        "network": "testnet",
        "token_symbol": "usdc",
        "address": ADDRESS,
        "label": "payout wallet",
        "is_default": True,
    }
    payload.update(overrides)
    return payload


def test_payee_registers_wallet(client, human, payee_headers) -> None:
    """Test that the profile's owner can add and list wallets."""
    response = client.post(
        f"/api/v1/humans/{human.id}/wallets", json=_wallet_payload(), headers=payee_headers
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["token_symbol"] == "USDC"
    assert data["verification_status"] == "unverified"
    assert data["is_default"] is True

    listed = client.get(f"/api/v1/humans/{human.id}/wallets", headers=payee_headers)
    assert [w["id"] for w in listed.json()] == [data["id"]]


def test_other_users_cannot_manage_wallets(client, human, other_headers) -> None:
    response = client.post(
        f"/api/v1/humans/{human.id}/wallets", json=_wallet_payload(), headers=other_headers
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error_code"] == "forbidden"

    response = client.get(f"/api/v1/humans/{human.id}/wallets", headers=other_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_unknown_human_is_not_found(client, owner_headers) -> None:
    response = client.get("/api/v1/humans/missing/wallets", headers=owner_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_only_admins_set_verification_status(client, human, payee_headers, admin_headers) -> None:
    """Test that verification_status is admin-only on upsert."""
    payload = _wallet_payload(verification_status="verified")

    response = client.post(f"/api/v1/humans/{human.id}/wallets", json=payload, headers=payee_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.post(f"/api/v1/humans/{human.id}/wallets", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["verification_status"] == "verified"


def test_invalid_address_rejected(client, human, payee_headers) -> None:
    response = client.post(
        f"/api/v1/humans/{human.id}/wallets",
        json=_wallet_payload(address="0xnot-a-real-address"),
        headers=payee_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error_code"] == "validation_error"


def test_challenge_and_verify_flow(client, human, payee_headers) -> None:
    """Test issuing a challenge and verifying it with the expected signature."""
    wallet = client.post(
        f"/api/v1/humans/{human.id}/wallets", json=_wallet_payload(), headers=payee_headers
    ).json()

    response = client.post(
        f"/api/v1/humans/{human.id}/wallet-verification-challenges",
        json={"wallet_id": wallet["id"]},
        headers=payee_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    issued = response.json()
    assert issued["signature_format"].startswith("demo_sig_")
    assert issued["wallet"]["id"] == wallet["id"]
    challenge = issued["challenge"]
    assert challenge["status"] == "pending"
    assert ADDRESS in challenge["message"]

    response = client.post(
        "/api/v1/wallet-verification/verify",
        json={
            "challenge_id": challenge["id"],
            "signature": expected_signature(ADDRESS, challenge["challenge"]),
        },
        headers=payee_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["challenge"]["status"] == "verified"
    assert data["wallet"]["verification_status"] == "verified"

    listed = client.get(
        f"/api/v1/humans/{human.id}/wallet-verification-challenges",
        params={"status": "verified"},
        headers=payee_headers,
    )
    assert [c["id"] for c in listed.json()] == [challenge["id"]]


def test_wrong_signature_rejects_challenge(client, human, payee_headers) -> None:
    """Test that a bad signature rejects the challenge and is reported."""
    wallet = client.post(
        f"/api/v1/humans/{human.id}/wallets", json=_wallet_payload(), headers=payee_headers
    ).json()
    challenge = client.post(
        f"/api/v1/humans/{human.id}/wallet-verification-challenges",
        json={"wallet_id": wallet["id"]},
        headers=payee_headers,
    ).json()["challenge"]

    response = client.post(
        "/api/v1/wallet-verification/verify",
        json={"challenge_id": challenge["id"], "signature": "demo_sig_forged"},
        headers=payee_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error_code"] == "invalid_signature"

    rejected = client.get(
        f"/api/v1/humans/{human.id}/wallet-verification-challenges",
        params={"status": "rejected"},
        headers=payee_headers,
    )
    assert [c["id"] for c in rejected.json()] == [challenge["id"]]


def test_verify_checks_access(client, human, payee_headers, other_headers) -> None:
    """Test that strangers cannot verify someone else's challenge."""
    wallet = client.post(
        f"/api/v1/humans/{human.id}/wallets", json=_wallet_payload(), headers=payee_headers
    ).json()
    challenge = client.post(
        f"/api/v1/humans/{human.id}/wallet-verification-challenges",
        json={"wallet_id": wallet["id"]},
        headers=payee_headers,
    ).json()["challenge"]

    response = client.post(
        "/api/v1/wallet-verification/verify",
        json={
            "challenge_id": challenge["id"],
            "signature": expected_signature(ADDRESS, challenge["challenge"]),
        },
        headers=other_headers,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
