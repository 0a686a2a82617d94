"""
E2E tests for borrower personas through the full API.

Lender endpoints are simulated in-process with zero latency, so every
session runs to completion within the test.

Borrower personas:
- prime: strong income and savings, every lender qualifies
- near_prime: typical $6k/mo buyer, five lenders qualify
- self_employed: only lenders that accept self-employment income
- retired: only the credit union accepts retirees
- descriptor_only: no purchase price, vehicle priced from its description
- thin_income: below every lender's income floor
"""

import pytest
from fastapi.testclient import TestClient


def match_ids(client: TestClient, profile: dict) -> list[str]:
    response = client.post("/v1/match", json=profile)
    assert response.status_code == 200
    return [m["lender"]["id"] for m in response.json()["matches"]]


def run_session(client: TestClient, profile: dict) -> dict:
    started = client.post("/v1/quotes", json=profile)
    assert started.status_code == 202
    response = client.get(f"/v1/quotes/{started.json()['session_id']}", params={"wait": True})
    assert response.status_code == 200
    return response.json()


@pytest.mark.integration
def test_prime_borrower(client: TestClient):
    """
    prime: $9k/mo, $60k savings, $25k loan on a $35k vehicle
    Expected: every lender qualifies, best rates first
    """
    profile = {
        "monthlyIncome": "$9,000",
        "employmentType": "Full-time",
        "accountBalance": "$60,000",
        "purchasePrice": "$35,000",
        "downPayment": "$10,000",
    }

    response = client.post("/v1/match", json=profile)
    data = response.json()

    assert data["borrower_summary"]["estimated_credit_score"] == 785
    assert [m["estimated_apr"] for m in data["matches"]] == [3.8, 4.1, 4.2, 4.5, 4.7, 5.1, 5.2]
    assert data["no_match_reasons"] == []

    session = run_session(client, profile)
    assert session["status"] == "completed"
    assert len(session["quotes"]) == 7


@pytest.mark.integration
def test_near_prime_borrower(client: TestClient, raw_profile: dict):
    """
    near_prime: $6k/mo full-time, $5k down on a $25k vehicle
    Expected: five lenders, negotiation never worsens any quote
    """
    assert match_ids(client, raw_profile) == [
        "credit-union-one",
        "chase-auto",
        "bank-of-america",
        "ally-bank",
        "capital-one",
    ]

    session = run_session(client, raw_profile)
    assert session["status"] == "completed"

    result = session["negotiation_result"]
    for before, after in zip(result["original_quotes"], result["final_quotes"]):
        assert after["offered_apr"] <= before["offered_apr"]
        assert after["offered_apr"] >= round(before["offered_apr"] * 0.8, 2)
        assert after["fees"]["total"] <= before["fees"]["total"]


@pytest.mark.integration
def test_self_employed_borrower(client: TestClient):
    """
    self_employed: $5k/mo, $12k savings, $18k loan
    Expected: only lenders accepting self-employment income
    """
    profile = {
        "monthlyIncome": "$5,000",
        "employmentType": "Self-employed",
        "accountBalance": "$12,000",
        "purchasePrice": "$22,000",
        "downPayment": "$4,000",
    }

    response = client.post("/v1/match", json=profile)
    data = response.json()

    assert data["borrower_summary"]["estimated_credit_score"] == 680
    assert [m["lender"]["id"] for m in data["matches"]] == [
        "credit-union-one",
        "wells-fargo",
        "chase-auto",
        "bank-of-america",
    ]
    assert "Capital One Auto Finance: Employment type 'Self-employed' not accepted by this lender" in (
        data["no_match_reasons"]
    )


@pytest.mark.integration
def test_retired_borrower(client: TestClient):
    """
    retired: $3k/mo pension, $40k savings, $15k loan
    Expected: credit union only
    """
    profile = {
        "monthlyIncome": "$3,000",
        "employmentType": "Retired",
        "accountBalance": "$40,000",
        "purchasePrice": "$30,000",
        "downPayment": "$15,000",
    }

    assert match_ids(client, profile) == ["credit-union-one"]

    session = run_session(client, profile)
    assert session["status"] == "completed"
    assert session["progress"] == {"total": 1, "completed": 1, "failed": 0}
    # A single quote is its own best rate, so it is never rate-challenged
    assert all(
        attempt["type"] != "rate_challenge"
        for attempt in session["quotes"][0]["negotiation_history"]
    )


@pytest.mark.integration
def test_descriptor_only_borrower(client: TestClient):
    """
    descriptor_only: "2021 Honda Civic" with no purchase price
    Expected: vehicle valued at $21,000, high-LTV lenders drop out
    """
    profile = {
        "monthlyIncome": "$6,000",
        "employmentType": "Full-time",
        "vinOrModel": "2021 Honda Civic",
        "downPayment": "$3,000",
    }

    response = client.post("/v1/match", json=profile)
    data = response.json()

    assert data["borrower_summary"]["vehicle_value"] == 21000
    assert data["borrower_summary"]["loan_amount"] == 18000
    assert [m["lender"]["id"] for m in data["matches"]] == ["credit-union-one", "chase-auto", "bank-of-america"]
    assert "Capital One Auto Finance: LTV ratio 85.7% exceeds maximum 85.0%" in data["no_match_reasons"]


@pytest.mark.integration
def test_thin_income_borrower(client: TestClient):
    """
    thin_income: $1,800/mo
    Expected: no lender qualifies and the session fails
    """
    profile = {"monthlyIncome": "$1,800", "employmentType": "Part-time", "purchasePrice": "$12,000"}

    assert match_ids(client, profile) == []

    session = run_session(client, profile)
    assert session["status"] == "failed"
    assert session["error"] == "no lender quotes received"
    assert session["progress"]["total"] == 0
