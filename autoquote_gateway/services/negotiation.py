"""Negotiation engine - multi-phase rate and fee negotiation over collected quotes"""

import copy
import logging
import math
import uuid
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

from autoquote_gateway.domain.exceptions import LenderAPIError
from autoquote_gateway.domain.models import (
    ImprovementsSummary,
    LenderQuote,
    NegotiationAttempt,
    NegotiationResponse,
    NegotiationResult,
    NegotiationType,
)
from autoquote_gateway.infrastructure.clients.lender import QuoteService
from autoquote_gateway.infrastructure.observability.metrics import record_negotiation_attempt
from autoquote_gateway.utils.time_utils import clock_stamp, utc_now


@dataclass(frozen=True)
class NegotiationStrategy:
    """Which tactics to run, and the thresholds that make a quote worth negotiating"""

    priority_order: Tuple[NegotiationType, ...] = (
        NegotiationType.RATE_CHALLENGE,
        NegotiationType.FEE_REDUCTION,
    )
    max_attempts: int = 2  # per quote, counting attempts already on the quote
    rate_gap_threshold: float = 0.3  # percentage points over the best rate
    fee_threshold: int = 300  # dollars of combined fees


def calculate_improvements(original: Sequence[LenderQuote], final: Sequence[LenderQuote]) -> ImprovementsSummary:
    """
    Compare quotes slot by slot.

    - total_quotes_improved: quotes whose final APR is below the original
    - average_rate_improvement: mean APR drop over improved quotes only (0 if none)
    - total_fees_saved: sum of max(0, original fees - final fees)
    """
    improved = 0
    total_rate_improvement = 0.0
    fees_saved = 0

    for before, after in zip(original, final):
        if after.offered_apr < before.offered_apr:
            improved += 1
            total_rate_improvement += before.offered_apr - after.offered_apr
        fees_saved += max(0, before.fees.total - after.fees.total)

    return ImprovementsSummary(
        total_quotes_improved=improved,
        average_rate_improvement=total_rate_improvement / improved if improved > 0 else 0.0,
        total_fees_saved=fees_saved,
    )


class LoanNegotiator:
    """
    Runs negotiation phases over a set of lender quotes.

    Phase 1 challenges every quote priced meaningfully above the best rate.
    Phase 2 asks for fee reductions on quotes with substantial fees. Phase 2
    starts only once every phase 1 exchange has returned. Within a phase,
    lenders are negotiated one at a time in input order. A quote that already
    carries max_attempts attempts is left alone.

    One negotiator is shared by concurrent sessions, so each run keeps its
    own log list.
    """

    def __init__(
        self,
        client: QuoteService,
        strategy: Optional[NegotiationStrategy] = None,
        clock: Optional[Callable] = None,
    ):
        self.client = client
        self.strategy = strategy or NegotiationStrategy()
        self.clock = clock or utc_now

    def _record(self, log: List[str], message: str) -> None:
        log.append(f"[{clock_stamp(self.clock())}] {message}")
        logging.info(message, extra={"step": "negotiation"})

    def _attempts_exhausted(self, quote: LenderQuote) -> bool:
        return len(quote.negotiation_history) >= self.strategy.max_attempts

    def _declined(self, quote: LenderQuote, negotiation_type: NegotiationType, error: Exception) -> LenderQuote:
        """Treat a failed exchange as a declined attempt so the phase can continue"""
        attempt = NegotiationAttempt(
            id=uuid.uuid4().hex,
            timestamp=self.clock(),
            type=negotiation_type,
            message=f"Negotiation request failed: {error}",
            response=NegotiationResponse.DECLINED,
            original_apr=quote.offered_apr,
        )
        return replace(quote, fees=replace(quote.fees), negotiation_history=[*quote.negotiation_history, attempt])

    async def negotiate_all_quotes(self, quotes: Sequence[LenderQuote]) -> NegotiationResult:
        """
        Negotiate every quote and summarise the gains.

        The input quotes are never mutated; original_quotes holds copies of
        them and final_quotes holds the negotiated versions, slot for slot.
        """
        log: List[str] = []
        original_quotes = copy.deepcopy(list(quotes))
        current = copy.deepcopy(list(quotes))

        best_rate = min((q.offered_apr for q in current), default=None)
        self._record(log, f"Starting negotiation with {len(current)} lender quotes. Best initial rate: {best_rate}%")

        if best_rate is not None and NegotiationType.RATE_CHALLENGE in self.strategy.priority_order:
            await self._rate_challenge_phase(current, best_rate, log)

        if NegotiationType.FEE_REDUCTION in self.strategy.priority_order:
            await self._fee_reduction_phase(current, log)

        summary = calculate_improvements(original_quotes, current)
        self._record(
            log, f"Negotiation complete! Improved {summary.total_quotes_improved} out of {len(current)} quotes"
        )
        self._record(log, f"Average rate improvement: {summary.average_rate_improvement:.2f}%")

        return NegotiationResult(
            original_quotes=original_quotes,
            final_quotes=current,
            improvements_summary=summary,
            negotiation_log=log,
        )

    async def _rate_challenge_phase(self, current: List[LenderQuote], best_rate: float, log: List[str]) -> None:
        self._record(log, "Phase 1: Challenging lenders with competitive rates...")

        for i, quote in enumerate(current):
            # The best-rate lender is the leverage, not a target
            if quote.offered_apr == best_rate:
                continue
            if quote.offered_apr - best_rate <= self.strategy.rate_gap_threshold:
                continue
            if self._attempts_exhausted(quote):
                continue

            self._record(
                log, f"Challenging {quote.lender_name} ({quote.offered_apr}%) with competitor rate of {best_rate}%"
            )
            try:
                negotiated = await self.client.negotiate_with_lender(quote, best_rate, NegotiationType.RATE_CHALLENGE)
            except LenderAPIError as e:
                self._record(log, f"Error negotiating with {quote.lender_name}: {e}")
                current[i] = self._declined(quote, NegotiationType.RATE_CHALLENGE, e)
                record_negotiation_attempt(NegotiationType.RATE_CHALLENGE.value, NegotiationResponse.DECLINED.value)
                continue

            current[i] = negotiated
            if negotiated.offered_apr < quote.offered_apr:
                self._record(
                    log,
                    f"Success! {quote.lender_name} improved rate from {quote.offered_apr}% to {negotiated.offered_apr}%",
                )
            else:
                self._record(log, f"{quote.lender_name} declined to match competitive rate")
            latest = negotiated.latest_attempt
            if latest is not None:
                record_negotiation_attempt(latest.type.value, latest.response.value)

    async def _fee_reduction_phase(self, current: List[LenderQuote], log: List[str]) -> None:
        self._record(log, "Phase 2: Attempting fee reductions...")

        for i, quote in enumerate(current):
            total_fees = quote.fees.total
            if total_fees <= self.strategy.fee_threshold:
                continue
            if self._attempts_exhausted(quote):
                continue

            self._record(log, f"Requesting fee reduction from {quote.lender_name} (current fees: ${total_fees})")
            try:
                negotiated = await self.client.negotiate_with_lender(quote, 0, NegotiationType.FEE_REDUCTION)
            except LenderAPIError as e:
                self._record(log, f"Error negotiating fees with {quote.lender_name}: {e}")
                current[i] = self._declined(quote, NegotiationType.FEE_REDUCTION, e)
                record_negotiation_attempt(NegotiationType.FEE_REDUCTION.value, NegotiationResponse.DECLINED.value)
                continue

            latest = negotiated.latest_attempt
            if latest is not None and latest.response == NegotiationResponse.ACCEPTED:
                discount = latest.processing_fee_discount or 0.0
                negotiated.fees.processing = math.floor(negotiated.fees.processing * (1 - discount))
                self._record(log, f"{quote.lender_name} reduced processing fees")
            else:
                self._record(log, f"{quote.lender_name} declined to reduce fees")
            if latest is not None:
                record_negotiation_attempt(latest.type.value, latest.response.value)

            current[i] = negotiated
