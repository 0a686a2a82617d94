"""Integration tests for API endpoints"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from autoquote_gateway.domain.exceptions import LenderAPIError

pytestmark = pytest.mark.integration


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "autoquote-gateway"}


def test_request_id_is_echoed(client: TestClient):
    """Test caller-supplied request IDs come back on the response"""
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]


def test_metrics_endpoint(client: TestClient, raw_profile: dict):
    """Test Prometheus metrics endpoint"""
    client.post("/v1/match", json=raw_profile)

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "autoquote_lender_matches_total" in response.text
    assert "http_request_duration_seconds" in response.text


def test_match_endpoint(client: TestClient, raw_profile: dict):
    """Test POST /v1/match with a qualified borrower"""
    response = client.post("/v1/match", json=raw_profile)

    assert response.status_code == 200
    data = response.json()
    assert [m["lender"]["id"] for m in data["matches"]] == [
        "credit-union-one",
        "chase-auto",
        "bank-of-america",
        "ally-bank",
        "capital-one",
    ]
    assert data["matches"][0]["estimated_apr"] == 4.8
    assert data["matches"][0]["confidence"] == "high"
    assert len(data["no_match_reasons"]) == 2
    assert data["borrower_summary"] == {
        "monthly_income": 6000,
        "loan_amount": 20000,
        "vehicle_value": 25000,
        "down_payment": 5000,
        "estimated_credit_score": 675,
    }


def test_match_endpoint_snake_case(client: TestClient):
    """Test snake_case field names are accepted"""
    response = client.post(
        "/v1/match",
        json={"monthly_income": 6000, "employment_type": "Full-time", "purchase_price": 25000, "down_payment": 5000},
    )

    assert response.status_code == 200
    assert response.json()["borrower_summary"]["loan_amount"] == 20000


def test_match_endpoint_invalid_profile(client: TestClient):
    """Test missing income returns 422 with the validation errors"""
    response = client.post("/v1/match", json={"employmentType": "Full-time", "downPayment": "-$100"})

    assert response.status_code == 422
    assert response.json()["detail"] == ["monthly income is required", "down payment cannot be negative"]


def test_start_and_poll_quote_session(client: TestClient, raw_profile: dict):
    """Test POST /v1/quotes then GET with wait=true"""
    response = client.post("/v1/quotes", json=raw_profile)

    assert response.status_code == 202
    started = response.json()
    assert started["session_id"].startswith("quote_")
    assert started["progress"]["total"] == 5
    assert started["status"] in ("requesting", "collecting")

    response = client.get(f"/v1/quotes/{started['session_id']}", params={"wait": True})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["progress_percentage"] == 100.0
    assert len(data["quotes"]) == 5
    assert data["negotiation_result"]["improvements_summary"]["total_quotes_improved"] >= 0
    assert data["negotiation_result"]["negotiation_log"][-1].endswith("%")
    for quote in data["quotes"]:
        assert quote["fees"]["total"] == (
            quote["fees"]["processing"] + quote["fees"]["prepayment_penalty"] + quote["fees"]["documentation"]
        )


def test_list_quote_sessions(client: TestClient, raw_profile: dict):
    """Test GET /v1/quotes lists sessions"""
    session_id = client.post("/v1/quotes", json=raw_profile).json()["session_id"]
    client.get(f"/v1/quotes/{session_id}", params={"wait": True})

    response = client.get("/v1/quotes")

    assert response.status_code == 200
    assert [s["session_id"] for s in response.json()["sessions"]] == [session_id]


def test_start_quote_session_invalid_profile(client: TestClient):
    """Test invalid borrowers never start a session"""
    response = client.post("/v1/quotes", json={"employmentType": "Full-time"})

    assert response.status_code == 422
    assert client.get("/v1/quotes").json()["sessions"] == []


def test_get_unknown_session(client: TestClient):
    """Test 404 for unknown session ids"""
    assert client.get("/v1/quotes/quote_0_missing").status_code == 404
    assert client.get("/v1/quotes/quote_0_missing", params={"wait": True}).status_code == 404


def test_cancel_session(client: TestClient, raw_profile: dict):
    """Test cancelling returns the session snapshot"""
    session_id = client.post("/v1/quotes", json=raw_profile).json()["session_id"]

    response = client.post(f"/v1/quotes/{session_id}/cancel")

    assert response.status_code == 200
    assert response.json()["status"] in ("completed", "failed")
    assert client.post("/v1/quotes/quote_0_missing/cancel").status_code == 404


def test_cleanup_expired_sessions(client: TestClient, raw_profile: dict):
    """Test DELETE /v1/quotes/expired keeps fresh sessions"""
    session_id = client.post("/v1/quotes", json=raw_profile).json()["session_id"]
    client.get(f"/v1/quotes/{session_id}", params={"wait": True})

    response = client.delete("/v1/quotes/expired")

    assert response.status_code == 200
    assert response.json() == {"removed": 0}
    assert client.get(f"/v1/quotes/{session_id}").status_code == 200


@patch("autoquote_gateway.infrastructure.clients.lender.MockLenderClient.request_lender_quote", new_callable=AsyncMock)
def test_session_fails_when_lenders_are_down(mock_quote: AsyncMock, client: TestClient, raw_profile: dict):
    """Test every lender erroring ends the session failed"""
    mock_quote.side_effect = LenderAPIError("Lender endpoint unavailable")

    session_id = client.post("/v1/quotes", json=raw_profile).json()["session_id"]
    data = client.get(f"/v1/quotes/{session_id}", params={"wait": True}).json()

    assert mock_quote.await_count == 5
    assert data["status"] == "failed"
    assert data["error"] == "no lender quotes received"
    assert data["progress"] == {"total": 5, "completed": 0, "failed": 5}


@patch("autoquote_gateway.services.quote_manager.match_borrower_to_lenders")
def test_match_endpoint_unexpected_error(mock_match: MagicMock, client: TestClient, raw_profile: dict):
    """Test unexpected failures map to 500"""
    mock_match.side_effect = RuntimeError("catalog offline")

    response = client.post("/v1/match", json=raw_profile)

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"
