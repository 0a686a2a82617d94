"""Simulated lender endpoint: quote requests and negotiation exchanges"""

import asyncio
import logging
import math
import random
import uuid
from dataclasses import replace
from typing import Awaitable, Callable, Optional, Protocol, Tuple

from autoquote_gateway.config import settings
from autoquote_gateway.domain.exceptions import LenderAPIError
from autoquote_gateway.domain.models import (
    Confidence,
    LenderProduct,
    LenderQuote,
    NegotiationAttempt,
    NegotiationResponse,
    NegotiationType,
    QuoteFees,
    QuoteRequest,
    QuoteStatus,
)
from autoquote_gateway.domain.payments import (
    calculate_monthly_payment,
    preferred_term,
    select_apr_for_credit_score,
)
from autoquote_gateway.infrastructure.observability.metrics import quote_latency_histogram
from autoquote_gateway.utils.time_utils import add_days, utc_now

# Lender endpoints price the 670-739 band tighter than the matching estimate
QUOTE_NEAR_PRIME_MARKUP = 0.5
APR_JITTER = 0.5
MAX_LOAN_HEADROOM = 1.2

RATE_CHALLENGE_MAX_PROBABILITY = 0.8
RATE_CHALLENGE_PROBABILITY_PER_POINT = 0.3
RATE_CHALLENGE_CAPTURE = 0.7
RATE_CHALLENGE_MAX_IMPROVEMENT = 1.5
APR_FLOOR_RATIO = 0.8

FEE_REDUCTION_PROBABILITY = 0.4
FEE_REDUCTION_DISCOUNT = 0.5
TERM_REQUEST_PROBABILITY = 0.3

Sleep = Callable[[float], Awaitable[None]]


class QuoteService(Protocol):
    """Contract the session manager and negotiator rely on"""

    async def request_lender_quote(self, request: QuoteRequest, lender: LenderProduct) -> LenderQuote:
        ...

    async def negotiate_with_lender(
        self,
        quote: LenderQuote,
        competitor_apr: float,
        negotiation_type: NegotiationType,
    ) -> LenderQuote:
        ...


def negotiated_apr(original_apr: float, improvement: float) -> float:
    """Apply an APR improvement, never dropping below 80% of the original rate"""
    floor = math.ceil(original_apr * APR_FLOOR_RATIO * 100 - 1e-9) / 100
    return min(original_apr, max(round(original_apr - improvement, 2), floor))


def quote_confidence(credit_score: int, monthly_income: int, lender: LenderProduct) -> Confidence:
    """
    Lender-side confidence in the borrower.

    - high: credit buffer >= 70 and income ratio >= 1.8
    - low:  credit buffer < 30 or income ratio < 1.2
    - medium otherwise
    """
    credit_buffer = credit_score - lender.min_credit_score
    income_ratio = monthly_income / lender.min_monthly_income if lender.min_monthly_income > 0 else float("inf")

    if credit_buffer >= 70 and income_ratio >= 1.8:
        return Confidence.HIGH
    if credit_buffer < 30 or income_ratio < 1.2:
        return Confidence.LOW
    return Confidence.MEDIUM


class MockLenderClient:
    """
    Simulated lender API.

    Every call waits a random latency and draws its outcome from an injected
    random source, so tests can pass a seeded random.Random and a no-op sleep.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        sleep: Optional[Sleep] = None,
        latency: Optional[Tuple[float, float]] = None,
        negotiation_latency: Optional[Tuple[float, float]] = None,
        failure_rate: Optional[float] = None,
        expiration_days: Optional[int] = None,
        clock: Optional[Callable] = None,
    ):
        self.rng = rng or random.Random()
        self.sleep = sleep or asyncio.sleep
        self.latency = latency or (settings.quote_latency_min_seconds, settings.quote_latency_max_seconds)
        self.negotiation_latency = negotiation_latency or (
            settings.negotiation_latency_min_seconds,
            settings.negotiation_latency_max_seconds,
        )
        self.failure_rate = settings.quote_failure_rate if failure_rate is None else failure_rate
        self.expiration_days = expiration_days or settings.quote_expiration_days
        self.clock = clock or utc_now

    async def _simulate_delay(self, bounds: Tuple[float, float]) -> None:
        low, high = bounds
        await self.sleep(self.rng.uniform(low, high))

    def _maybe_fail(self, lender_name: str) -> None:
        # Only draw when failures are enabled so seeded runs stay reproducible
        if self.failure_rate > 0 and self.rng.random() < self.failure_rate:
            raise LenderAPIError(f"{lender_name} endpoint returned a malformed response")

    async def request_lender_quote(self, request: QuoteRequest, lender: LenderProduct) -> LenderQuote:
        """
        Request a live quote from one lender.

        Raises:
            LenderAPIError: simulated transport failure
        """
        logging.info("Requesting quote", extra={"lender_id": lender.id, "step": "quote_request"})

        with quote_latency_histogram.time():
            await self._simulate_delay(self.latency)
            self._maybe_fail(lender.name)

        quote = self._generate_quote(request, lender)
        logging.info(
            "Quote received",
            extra={"lender_id": lender.id, "step": "quote_received", "offered_apr": quote.offered_apr},
        )
        return quote

    def _generate_quote(self, request: QuoteRequest, lender: LenderProduct) -> LenderQuote:
        borrower = request.borrower

        base_apr = select_apr_for_credit_score(
            lender, borrower.estimated_credit_score, near_prime_markup=QUOTE_NEAR_PRIME_MARKUP
        )
        jitter = self.rng.uniform(-APR_JITTER, APR_JITTER)
        final_apr = max(lender.apr_range.min, min(lender.apr_range.max, base_apr + jitter))
        offered_apr = round(final_apr, 2)

        term = preferred_term(lender)

        fees = QuoteFees(
            processing=self.rng.randint(200, 699),
            prepayment_penalty=self.rng.randint(500, 1499) if self.rng.random() > 0.7 else 0,
            documentation=self.rng.randint(50, 249),
        )

        created_at = self.clock()
        return LenderQuote(
            lender_id=lender.id,
            lender_name=lender.name,
            offered_apr=offered_apr,
            term_length=term,
            loan_amount=borrower.loan_amount,
            max_loan_amount=min(lender.max_loan_amount, borrower.loan_amount * MAX_LOAN_HEADROOM),
            monthly_payment=calculate_monthly_payment(borrower.loan_amount, offered_apr, term),
            fees=fees,
            expiration_time=add_days(created_at, self.expiration_days),
            created_at=created_at,
            confidence=quote_confidence(borrower.estimated_credit_score, borrower.monthly_income, lender),
            status=QuoteStatus.RECEIVED,
        )

    async def negotiate_with_lender(
        self,
        quote: LenderQuote,
        competitor_apr: float,
        negotiation_type: NegotiationType,
    ) -> LenderQuote:
        """
        Run one negotiation exchange and return an updated copy of the quote.

        The copy always carries one new NegotiationAttempt. Only a successful
        rate challenge changes pricing here; an accepted fee reduction reports
        its discount on the attempt and leaves fees to the caller.

        Raises:
            LenderAPIError: simulated transport failure
        """
        await self._simulate_delay(self.negotiation_latency)
        self._maybe_fail(quote.lender_name)

        negotiation_type = NegotiationType(negotiation_type)
        timestamp = self.clock()
        attempt_id = uuid.uuid4().hex

        if negotiation_type == NegotiationType.RATE_CHALLENGE:
            gap = quote.offered_apr - competitor_apr
            message = f"Competitor is offering {competitor_apr}% - can you match or beat this rate?"
            probability = min(RATE_CHALLENGE_MAX_PROBABILITY, gap * RATE_CHALLENGE_PROBABILITY_PER_POINT)

            if self.rng.random() < probability:
                improvement = min(gap * RATE_CHALLENGE_CAPTURE, RATE_CHALLENGE_MAX_IMPROVEMENT)
                new_apr = negotiated_apr(quote.offered_apr, improvement)
                attempt = NegotiationAttempt(
                    id=attempt_id,
                    timestamp=timestamp,
                    type=negotiation_type,
                    message=message,
                    response=NegotiationResponse.ACCEPTED,
                    original_apr=quote.offered_apr,
                    new_apr=new_apr,
                    improvement_amount=round(quote.offered_apr - new_apr, 2),
                )
                logging.info(
                    "Rate challenge accepted",
                    extra={"lender_id": quote.lender_id, "step": "negotiation", "new_apr": new_apr},
                )
                return replace(
                    quote,
                    offered_apr=new_apr,
                    monthly_payment=calculate_monthly_payment(quote.loan_amount, new_apr, quote.term_length),
                    status=QuoteStatus.NEGOTIATED,
                    fees=replace(quote.fees),
                    negotiation_history=[*quote.negotiation_history, attempt],
                )

        elif negotiation_type == NegotiationType.FEE_REDUCTION:
            message = "Can you waive or reduce processing fees for this qualified borrower?"
            if self.rng.random() < FEE_REDUCTION_PROBABILITY:
                attempt = NegotiationAttempt(
                    id=attempt_id,
                    timestamp=timestamp,
                    type=negotiation_type,
                    message=message,
                    response=NegotiationResponse.ACCEPTED,
                    original_apr=quote.offered_apr,
                    processing_fee_discount=FEE_REDUCTION_DISCOUNT,
                )
                return self._with_attempt(quote, attempt)

        else:
            # Term requests are recorded only; no term change is defined
            message = "Can you offer more flexible term options?"
            if self.rng.random() < TERM_REQUEST_PROBABILITY:
                attempt = NegotiationAttempt(
                    id=attempt_id,
                    timestamp=timestamp,
                    type=negotiation_type,
                    message=message,
                    response=NegotiationResponse.ACCEPTED,
                    original_apr=quote.offered_apr,
                )
                return self._with_attempt(quote, attempt)

        declined = NegotiationAttempt(
            id=attempt_id,
            timestamp=timestamp,
            type=negotiation_type,
            message=message,
            response=NegotiationResponse.DECLINED,
            original_apr=quote.offered_apr,
        )
        logging.info(
            "Negotiation declined",
            extra={"lender_id": quote.lender_id, "step": "negotiation", "type": negotiation_type.value},
        )
        return self._with_attempt(quote, declined)

    @staticmethod
    def _with_attempt(quote: LenderQuote, attempt: NegotiationAttempt) -> LenderQuote:
        return replace(quote, fees=replace(quote.fees), negotiation_history=[*quote.negotiation_history, attempt])
