"""Lender matching engine - eligibility filtering, pricing and ranking"""

import logging
from typing import Iterable, List, Optional

from autoquote_gateway.domain.catalog import LENDER_CATALOG, active_lenders
from autoquote_gateway.domain.credit import estimate_credit_score
from autoquote_gateway.domain.models import (
    BorrowerProfile,
    BorrowerSummary,
    Confidence,
    LenderMatch,
    LenderProduct,
    MatchResult,
)
from autoquote_gateway.domain.payments import (
    calculate_monthly_payment,
    preferred_term,
    select_apr_for_credit_score,
)
from autoquote_gateway.domain.valuation import PriceTableValuationOracle, ValuationOracle

DEFAULT_VEHICLE_VALUE = 25_000

default_oracle = PriceTableValuationOracle()


def resolve_vehicle_value(
    profile: BorrowerProfile,
    oracle: Optional[ValuationOracle] = None,
    default_value: int = DEFAULT_VEHICLE_VALUE,
) -> int:
    """Purchase price if given, else the oracle's estimate, else the fixed fallback"""
    if profile.purchase_price:
        return profile.purchase_price

    oracle = oracle if oracle is not None else default_oracle
    if profile.vehicle_descriptor:
        valuation = oracle.estimate_vehicle_value(profile.vehicle_descriptor)
        if valuation is not None and valuation.final_estimate:
            return valuation.final_estimate

    return default_value


def loan_to_value(loan_amount: int, vehicle_value: int) -> float:
    return loan_amount / vehicle_value if vehicle_value > 0 else 0.0


def eligibility_failures(
    lender: LenderProduct,
    credit_score: int,
    monthly_income: int,
    loan_amount: int,
    vehicle_value: int,
    employment_type: Optional[str],
) -> List[str]:
    """
    Evaluate the five eligibility predicates and return one reason per failure.

    Order: credit score, income, loan amount range, employment type, LTV.
    The employment check is skipped when the employment type is unknown.
    """
    reasons: List[str] = []

    if credit_score < lender.min_credit_score:
        reasons.append(f"Credit score {credit_score} below minimum {lender.min_credit_score}")

    if monthly_income < lender.min_monthly_income:
        reasons.append(f"Monthly income ${monthly_income:,} below minimum ${lender.min_monthly_income:,}")

    if loan_amount < lender.min_loan_amount or loan_amount > lender.max_loan_amount:
        reasons.append(
            f"Loan amount ${loan_amount:,} outside range "
            f"${lender.min_loan_amount:,}-${lender.max_loan_amount:,}"
        )

    if employment_type and employment_type not in lender.accepted_employment_types:
        reasons.append(f"Employment type '{employment_type}' not accepted by this lender")

    ltv = loan_to_value(loan_amount, vehicle_value)
    if ltv > lender.max_ltv:
        reasons.append(f"LTV ratio {ltv * 100:.1f}% exceeds maximum {lender.max_ltv * 100:.1f}%")

    return reasons


def match_confidence(credit_score: int, monthly_income: int, lender: LenderProduct) -> Confidence:
    """
    Confidence from the borrower's buffer over lender minimums.

    - high:   credit buffer >= 70 and income ratio >= 1.8
    - medium: credit buffer >= 40 and income ratio >= 1.4
    - low:    anything else
    """
    credit_buffer = credit_score - lender.min_credit_score
    income_ratio = monthly_income / lender.min_monthly_income if lender.min_monthly_income > 0 else float("inf")

    if credit_buffer >= 70 and income_ratio >= 1.8:
        return Confidence.HIGH
    if credit_buffer >= 40 and income_ratio >= 1.4:
        return Confidence.MEDIUM
    return Confidence.LOW


def _sort_key(match: LenderMatch):
    return (match.estimated_apr, -match.confidence.rank)


def match_borrower_to_lenders(
    profile: BorrowerProfile,
    catalog: Iterable[LenderProduct] = LENDER_CATALOG,
    oracle: Optional[ValuationOracle] = None,
    default_vehicle_value: int = DEFAULT_VEHICLE_VALUE,
) -> MatchResult:
    """
    Main entry point: match a borrower against every active lender product.

    Pure function of the profile and the catalog. Matches are sorted by APR
    ascending, ties broken by confidence (high first). Rejected lenders
    contribute their first failing predicate to no_match_reasons.
    """
    monthly_income = profile.monthly_income
    credit_score = profile.estimated_credit_score or estimate_credit_score(profile)
    vehicle_value = resolve_vehicle_value(profile, oracle, default_vehicle_value)

    total_down_payment = profile.down_payment + profile.trade_in_value
    loan_amount = max(0, vehicle_value - total_down_payment)

    summary = BorrowerSummary(
        monthly_income=monthly_income,
        loan_amount=loan_amount,
        vehicle_value=vehicle_value,
        down_payment=total_down_payment,
        estimated_credit_score=credit_score,
    )

    matches: List[LenderMatch] = []
    no_match_reasons: List[str] = []

    for lender in active_lenders(catalog):
        failures = eligibility_failures(
            lender,
            credit_score=credit_score,
            monthly_income=monthly_income,
            loan_amount=loan_amount,
            vehicle_value=vehicle_value,
            employment_type=profile.employment_type,
        )

        if failures:
            no_match_reasons.append(f"{lender.name}: {failures[0]}")
            logging.debug(
                "Lender rejected",
                extra={"step": "lender_match", "lender_id": lender.id, "reasons": failures},
            )
            continue

        apr = select_apr_for_credit_score(lender, credit_score)
        term = preferred_term(lender)
        confidence = match_confidence(credit_score, monthly_income, lender)

        matches.append(
            LenderMatch(
                lender=lender,
                estimated_apr=apr,
                monthly_payment=calculate_monthly_payment(loan_amount, apr, term),
                loan_amount=loan_amount,
                loan_term=term,
                confidence=confidence,
                reasons=[
                    f"Qualified with {confidence.value} confidence "
                    f"(Credit: {credit_score}, Income: ${monthly_income:,}/mo)"
                ],
            )
        )

    # Stable sort keeps catalog order for full ties
    matches.sort(key=_sort_key)

    logging.info(
        "Lender matching completed",
        extra={
            "step": "lender_match",
            "eligible_count": len(matches),
            "rejected_count": len(no_match_reasons),
            "credit_score": credit_score,
            "loan_amount": loan_amount,
        },
    )

    return MatchResult(matches=matches, no_match_reasons=no_match_reasons, borrower_summary=summary)
