"""Unit tests for the simulated lender endpoint"""

from datetime import timedelta

import pytest

from autoquote_gateway.domain.catalog import get_lender
from autoquote_gateway.domain.exceptions import LenderAPIError
from autoquote_gateway.domain.models import (
    Confidence,
    NegotiationResponse,
    NegotiationType,
    QuoteBorrowerSnapshot,
    QuoteRequest,
    QuoteStatus,
)
from autoquote_gateway.domain.payments import calculate_monthly_payment
from autoquote_gateway.infrastructure.clients.lender import negotiated_apr, quote_confidence


@pytest.fixture
def borrower() -> QuoteBorrowerSnapshot:
    return QuoteBorrowerSnapshot(
        monthly_income=6000,
        estimated_credit_score=675,
        employment_type="Full-time",
        loan_amount=20_000,
        vehicle_value=25_000,
        down_payment=5000,
    )


def quote_request(lender_id: str, borrower: QuoteBorrowerSnapshot) -> QuoteRequest:
    return QuoteRequest(lender_id=lender_id, borrower=borrower)


async def test_request_lender_quote_shape(make_client, borrower, fixed_now):
    """Test quote fields for a near-prime borrower with no APR jitter"""
    client = make_client(draws=0.5)  # uniform() lands mid-range, so jitter is 0
    chase = get_lender("chase-auto")

    quote = await client.request_lender_quote(quote_request(chase.id, borrower), chase)

    assert quote.lender_id == "chase-auto"
    assert quote.lender_name == "Chase Auto Finance"
    assert quote.offered_apr == 5.0  # good-credit rate plus 0.5 for scores 670-739
    assert quote.term_length == 60
    assert quote.loan_amount == 20_000
    assert quote.max_loan_amount == 24_000
    assert quote.status == QuoteStatus.RECEIVED
    assert quote.negotiation_history == []
    assert quote.created_at == fixed_now
    assert quote.expiration_time == fixed_now + timedelta(days=7)


async def test_request_lender_quote_apr_within_lender_bounds(make_client, borrower):
    """Test jittered APRs stay inside each lender's range"""
    client = make_client(seed=7)

    for lender_id in ("chase-auto", "capital-one", "credit-union-one", "ally-bank", "bank-of-america"):
        lender = get_lender(lender_id)
        for _ in range(20):
            quote = await client.request_lender_quote(quote_request(lender_id, borrower), lender)
            assert lender.apr_range.min <= quote.offered_apr <= lender.apr_range.max
            assert quote.offered_apr == round(quote.offered_apr, 2)


async def test_request_lender_quote_fee_bands(make_client, borrower):
    """Test simulated fees stay in their bands"""
    client = make_client(seed=99)
    chase = get_lender("chase-auto")

    for _ in range(50):
        fees = (await client.request_lender_quote(quote_request(chase.id, borrower), chase)).fees
        assert 200 <= fees.processing <= 699
        assert fees.prepayment_penalty == 0 or 500 <= fees.prepayment_penalty <= 1499
        assert 50 <= fees.documentation <= 249
        assert fees.total == fees.processing + fees.prepayment_penalty + fees.documentation


async def test_request_lender_quote_caps_headroom_at_lender_max(make_client, borrower):
    """Test max loan amount never exceeds the lender's product limit"""
    client = make_client(draws=0.5)
    capital_one = get_lender("capital-one")  # max 75,000
    big_loan = QuoteBorrowerSnapshot(
        monthly_income=9000,
        estimated_credit_score=760,
        employment_type="Full-time",
        loan_amount=70_000,
        vehicle_value=90_000,
        down_payment=20_000,
    )

    quote = await client.request_lender_quote(quote_request(capital_one.id, big_loan), capital_one)

    assert quote.max_loan_amount == 75_000
    assert quote.offered_apr == 5.2


async def test_request_lender_quote_failure(make_client, borrower):
    """Test injected transport failures surface as LenderAPIError"""
    client = make_client(failure_rate=1.0)
    chase = get_lender("chase-auto")

    with pytest.raises(LenderAPIError):
        await client.request_lender_quote(quote_request(chase.id, borrower), chase)


def test_quote_confidence():
    """Test lender-side confidence thresholds"""
    chase = get_lender("chase-auto")  # min score 650, min income 3000

    assert quote_confidence(720, 5400, chase) == Confidence.HIGH
    assert quote_confidence(700, 4000, chase) == Confidence.MEDIUM
    assert quote_confidence(679, 9000, chase) == Confidence.LOW
    assert quote_confidence(760, 3500, chase) == Confidence.LOW


@pytest.mark.parametrize(
    "original, improvement, expected",
    [
        (10.0, 1.5, 8.5),
        (5.0, 1.05, 4.0),  # capped at the 80% floor
        (6.0, 0.0, 6.0),
        (6.0, -1.0, 6.0),  # never raises the rate
    ],
)
def test_negotiated_apr(original, improvement, expected):
    """Test improvement application with floor and no-increase guarantees"""
    assert negotiated_apr(original, improvement) == expected


async def test_rate_challenge_accepted(make_client, make_quote):
    """Test accepted rate challenge lowers APR and payment"""
    client = make_client(draws=0.0)
    quote = make_quote(apr=10.0)

    negotiated = await client.negotiate_with_lender(quote, 4.0, NegotiationType.RATE_CHALLENGE)

    # gap 6.0 * 0.7 capped at 1.5
    assert negotiated.offered_apr == 8.5
    assert negotiated.status == QuoteStatus.NEGOTIATED
    assert negotiated.monthly_payment == calculate_monthly_payment(20_000, 8.5, 60)
    attempt = negotiated.latest_attempt
    assert attempt.response == NegotiationResponse.ACCEPTED
    assert attempt.original_apr == 10.0
    assert attempt.new_apr == 8.5
    assert attempt.improvement_amount == 1.5

    # Original quote untouched
    assert quote.offered_apr == 10.0
    assert quote.negotiation_history == []


async def test_rate_challenge_respects_floor(make_client, make_quote):
    """Test a large gap never pushes APR below 80% of the original"""
    client = make_client(draws=0.0)

    negotiated = await client.negotiate_with_lender(make_quote(apr=5.0), 3.5, NegotiationType.RATE_CHALLENGE)

    assert negotiated.offered_apr == 4.0


async def test_rate_challenge_declined(make_client, make_quote):
    """Test declined challenge keeps pricing and records the attempt"""
    client = make_client(draws=0.99)
    quote = make_quote(apr=7.0)

    negotiated = await client.negotiate_with_lender(quote, 5.0, NegotiationType.RATE_CHALLENGE)

    assert negotiated.offered_apr == 7.0
    assert negotiated.status == QuoteStatus.RECEIVED
    assert negotiated.latest_attempt.response == NegotiationResponse.DECLINED
    assert len(negotiated.negotiation_history) == 1


async def test_rate_challenge_never_increases_apr(make_client, make_quote):
    """Test a competitor rate above ours cannot make the quote worse"""
    client = make_client(draws=0.0)

    negotiated = await client.negotiate_with_lender(make_quote(apr=5.0), 6.0, NegotiationType.RATE_CHALLENGE)

    assert negotiated.offered_apr == 5.0
    assert negotiated.latest_attempt.response == NegotiationResponse.DECLINED


async def test_fee_reduction_accepted_reports_discount(make_client, make_quote):
    """Test accepted fee reduction carries a 50% processing fee discount"""
    client = make_client(draws=0.0)
    quote = make_quote(processing=500)

    negotiated = await client.negotiate_with_lender(quote, 0, NegotiationType.FEE_REDUCTION)

    attempt = negotiated.latest_attempt
    assert attempt.type == NegotiationType.FEE_REDUCTION
    assert attempt.response == NegotiationResponse.ACCEPTED
    assert attempt.processing_fee_discount == 0.5
    assert negotiated.offered_apr == quote.offered_apr
    # The endpoint reports the discount; applying it is the negotiator's job
    assert negotiated.fees.processing == 500
    assert negotiated.fees is not quote.fees


async def test_term_request_is_recorded_only(make_client, make_quote):
    """Test term requests never change pricing"""
    client = make_client(draws=0.0)
    quote = make_quote(apr=6.5)

    negotiated = await client.negotiate_with_lender(quote, 0, NegotiationType.TERM_REQUEST)

    assert negotiated.latest_attempt.response == NegotiationResponse.ACCEPTED
    assert negotiated.offered_apr == 6.5
    assert negotiated.term_length == quote.term_length


async def test_negotiation_failure(make_client, make_quote):
    """Test injected failures surface from negotiation calls too"""
    client = make_client(failure_rate=1.0)

    with pytest.raises(LenderAPIError):
        await client.negotiate_with_lender(make_quote(), 4.0, NegotiationType.RATE_CHALLENGE)
