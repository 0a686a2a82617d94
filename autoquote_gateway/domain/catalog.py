"""Static lender product catalog, loaded once at import and never mutated"""

from typing import Iterable, List, Tuple

from autoquote_gateway.domain.exceptions import LenderNotFoundError
from autoquote_gateway.domain.models import AprRange, LenderProduct

FULL_TIME = "Full-time"
PART_TIME = "Part-time"
SELF_EMPLOYED = "Self-employed"
RETIRED = "Retired"

LENDER_CATALOG: Tuple[LenderProduct, ...] = (
    LenderProduct(
        id="chase-auto",
        name="Chase Auto Finance",
        min_loan_amount=5000,
        max_loan_amount=100_000,
        min_credit_score=650,
        min_monthly_income=3000,
        accepted_employment_types=frozenset({FULL_TIME, PART_TIME, SELF_EMPLOYED}),
        loan_terms_months=(36, 48, 60, 72),
        apr_range=AprRange(min=3.99, max=18.99, good_credit=4.5, fair_credit=8.9, poor_credit=15.9),
        max_ltv=0.90,
        special_programs=("First-time buyer", "Refinance"),
    ),
    LenderProduct(
        id="capital-one",
        name="Capital One Auto Finance",
        min_loan_amount=4000,
        max_loan_amount=75_000,
        min_credit_score=600,
        min_monthly_income=2500,
        accepted_employment_types=frozenset({FULL_TIME, PART_TIME}),
        loan_terms_months=(36, 48, 60, 72, 84),
        apr_range=AprRange(min=4.24, max=19.99, good_credit=5.2, fair_credit=10.5, poor_credit=17.8),
        max_ltv=0.85,
        special_programs=("Used car specialists",),
    ),
    LenderProduct(
        id="wells-fargo",
        name="Wells Fargo Auto",
        min_loan_amount=5000,
        max_loan_amount=150_000,
        min_credit_score=680,
        min_monthly_income=3500,
        accepted_employment_types=frozenset({FULL_TIME, SELF_EMPLOYED}),
        loan_terms_months=(24, 36, 48, 60, 72),
        apr_range=AprRange(min=3.74, max=16.99, good_credit=4.1, fair_credit=7.9, poor_credit=14.5),
        max_ltv=0.95,
        special_programs=("Green vehicle discount", "Refinance"),
    ),
    LenderProduct(
        id="credit-union-one",
        name="Local Credit Union",
        min_loan_amount=3000,
        max_loan_amount=80_000,
        min_credit_score=580,
        min_monthly_income=2000,
        accepted_employment_types=frozenset({FULL_TIME, PART_TIME, SELF_EMPLOYED, RETIRED}),
        loan_terms_months=(36, 48, 60, 72),
        apr_range=AprRange(min=3.25, max=15.99, good_credit=3.8, fair_credit=6.9, poor_credit=12.9),
        max_ltv=0.90,
        special_programs=("Member benefits", "First-time buyer"),
    ),
    LenderProduct(
        id="ally-bank",
        name="Ally Bank Auto",
        min_loan_amount=5000,
        max_loan_amount=100_000,
        min_credit_score=620,
        min_monthly_income=2800,
        accepted_employment_types=frozenset({FULL_TIME, PART_TIME}),
        loan_terms_months=(36, 48, 60, 72, 84),
        apr_range=AprRange(min=4.49, max=19.49, good_credit=5.1, fair_credit=9.8, poor_credit=16.9),
        max_ltv=0.85,
        special_programs=("Online-only rates",),
    ),
    LenderProduct(
        id="bank-of-america",
        name="Bank of America Auto",
        min_loan_amount=7500,
        max_loan_amount=125_000,
        min_credit_score=660,
        min_monthly_income=3200,
        accepted_employment_types=frozenset({FULL_TIME, SELF_EMPLOYED}),
        loan_terms_months=(36, 48, 60, 72),
        apr_range=AprRange(min=4.19, max=17.99, good_credit=4.7, fair_credit=8.5, poor_credit=15.2),
        max_ltv=0.88,
        special_programs=("Preferred Rewards discount",),
    ),
    LenderProduct(
        id="lightstream",
        name="LightStream Auto",
        min_loan_amount=5000,
        max_loan_amount=100_000,
        min_credit_score=720,
        min_monthly_income=4000,
        accepted_employment_types=frozenset({FULL_TIME}),
        loan_terms_months=(24, 36, 48, 60, 72, 84),
        apr_range=AprRange(min=3.99, max=12.99, good_credit=4.2, fair_credit=6.8, poor_credit=10.9),
        max_ltv=0.95,
        special_programs=("Excellent credit rates", "No fees"),
    ),
)


def active_lenders(catalog: Iterable[LenderProduct] = LENDER_CATALOG) -> List[LenderProduct]:
    return [lender for lender in catalog if lender.is_active]


def get_lender(lender_id: str, catalog: Iterable[LenderProduct] = LENDER_CATALOG) -> LenderProduct:
    for lender in catalog:
        if lender.id == lender_id:
            return lender
    raise LenderNotFoundError(f"Unknown lender: {lender_id}")


def validate_catalog(catalog: Iterable[LenderProduct] = LENDER_CATALOG) -> List[str]:
    """
    Check catalog data quality. Returns a list of violations (empty when clean).

    Checks:
    - APR ordering: min <= good <= fair <= poor <= max
    - Loan amount bounds are ordered
    - Max LTV is a positive ratio
    - At least one loan term
    - Unique lender ids
    """
    problems: List[str] = []
    seen_ids = set()

    for lender in catalog:
        rates = lender.apr_range
        if not rates.min <= rates.good_credit <= rates.fair_credit <= rates.poor_credit <= rates.max:
            problems.append(
                f"{lender.id}: APR tiers out of order "
                f"({rates.min} <= {rates.good_credit} <= {rates.fair_credit} "
                f"<= {rates.poor_credit} <= {rates.max} does not hold)"
            )
        if lender.min_loan_amount > lender.max_loan_amount:
            problems.append(f"{lender.id}: min loan amount exceeds max loan amount")
        if not 0 < lender.max_ltv <= 1.5:
            problems.append(f"{lender.id}: max LTV {lender.max_ltv} outside (0, 1.5]")
        if not lender.loan_terms_months:
            problems.append(f"{lender.id}: no loan terms offered")
        if lender.id in seen_ids:
            problems.append(f"{lender.id}: duplicate lender id")
        seen_ids.add(lender.id)

    return problems
