"""
HTTP surface tests: authentication, role guards and result envelopes.
"""

import pytest


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_me(client, club, headers_for):
    response = await client.get("/v1/auth/me", headers=headers_for(club.pilot))

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "pilot"
    assert body["role"] == "MEMBER"


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(client, club):
    response = await client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_UNAUTHORIZED"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client, club):
    response = await client.get("/v1/billing/flights/uncharged")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_billing_is_board_only(client, club, headers_for):
    for member in (club.pilot, club.treasurer):
        response = await client.get("/v1/billing/flights/uncharged", headers=headers_for(member))
        assert response.status_code == 403

    response = await client.get("/v1/accounting/users/balances", headers=headers_for(club.treasurer))
    assert response.status_code == 200

    response = await client.get("/v1/accounting/users/balances", headers=headers_for(club.pilot))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_uncharged_flights_and_quote(client, club, headers_for):
    headers = headers_for(club.board)

    response = await client.get("/v1/billing/flights/uncharged", headers=headers)
    assert response.status_code == 200
    assert [f["id"] for f in response.json()] == [club.flight_id]
    assert response.json()[0]["flight_time_hours"] == 1.5

    response = await client.get(f"/v1/billing/flights/{club.flight_id}/quote", headers=headers)
    assert response.status_code == 200
    quote = response.json()
    assert quote["rate"] == 150.0
    assert quote["rate_source"] == "aircraft"
    assert quote["flight_amount"] == 225.0
    assert quote["total"] == 225.0
    assert [(s["target_id"], s["percentage"]) for s in quote["splits"]] == [(club.pilot_id, 100.0)]
    assert quote["splits"][0]["description"].startswith("Flight D-EABC")


@pytest.mark.asyncio
async def test_quote_of_unknown_flight(client, club, headers_for):
    response = await client.get("/v1/billing/flights/9999/quote", headers=headers_for(club.board))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_charge_endpoint_reports_business_failures(client, club, headers_for):
    headers = headers_for(club.board)
    body = {"target_id": club.pilot_id, "amount": 225.0, "description": "Flight D-EABC 12.03.2026"}

    first = await client.post(f"/v1/billing/flights/{club.flight_id}/charge/user", json=body, headers=headers)
    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["data"]["amount"] == -225.0

    second = await client.post(f"/v1/billing/flights/{club.flight_id}/charge/user", json=body, headers=headers)
    assert second.status_code == 200
    assert second.json()["success"] is False
    assert second.json()["error"] == "Flight has already been charged"

    response = await client.get("/v1/billing/flights/uncharged", headers=headers)
    assert response.json() == []


@pytest.mark.asyncio
async def test_split_charge_endpoint_time_mode(client, club, headers_for):
    body = {
        "mode": "time",
        "flight_amount": 225.0,
        "splits": [
            {"target_type": "user", "target_id": club.pilot_id, "minutes": 30},
            {"target_type": "user", "target_id": club.copilot_id, "minutes": 60, "description": "Copilot hour"},
        ],
    }

    response = await client.post(
        f"/v1/billing/flights/{club.flight_id}/split-charge", json=body, headers=headers_for(club.board)
    )

    assert response.status_code == 200
    result = response.json()
    assert result["success"] is True
    assert [t["amount"] for t in result["data"]["transactions"]] == [-75.0, -150.0]


@pytest.mark.asyncio
async def test_batch_charge_endpoint(client, club, headers_for):
    body = {
        "charges": [
            {"flight_id": club.flight_id, "target_id": club.pilot_id, "amount": 225.0, "description": "Flight"},
            {"flight_id": 9999, "target_id": club.pilot_id, "amount": 10.0, "description": "Ghost"},
        ]
    }

    response = await client.post("/v1/billing/batch-charge", json=body, headers=headers_for(club.board))

    assert response.status_code == 200
    result = response.json()
    assert result["success"] is True
    assert result["data"]["success_count"] == 1
    assert result["data"]["failed_count"] == 1
    assert result["data"]["errors"][0].startswith("Item 2 (flight 9999)")


@pytest.mark.asyncio
async def test_treasurer_books_payment_but_cannot_reverse_flight_charge(client, club, headers_for):
    board = headers_for(club.board)
    treasurer = headers_for(club.treasurer)

    charged = await client.post(
        f"/v1/billing/flights/{club.flight_id}/charge/user",
        json={"target_id": club.pilot_id, "amount": 225.0, "description": "Flight"},
        headers=board,
    )
    transaction_id = charged.json()["data"]["transaction_id"]

    payment = await client.post(
        f"/v1/accounting/users/{club.pilot_id}/payments",
        json={"amount": 300.0, "description": "Transfer"},
        headers=treasurer,
    )
    assert payment.json()["success"] is True

    response = await client.post(
        f"/v1/accounting/user-transactions/{transaction_id}/reverse-flight-charge", headers=treasurer
    )
    assert response.status_code == 403

    response = await client.post(
        f"/v1/accounting/user-transactions/{transaction_id}/reverse-flight-charge", headers=board
    )
    assert response.json()["success"] is True
    assert response.json()["data"]["reversed_count"] == 1

    history = await client.get(f"/v1/accounting/users/{club.pilot_id}/transactions", headers=treasurer)
    assert history.status_code == 200
    assert history.json()[0]["running_balance"] == 300.0
    assert {t["kind"] for t in history.json()} == {"flight_charge", "manual", "reversal"}


@pytest.mark.asyncio
async def test_unknown_member_ledger(client, club, headers_for):
    response = await client.get("/v1/accounting/users/9999/transactions", headers=headers_for(club.board))

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"
