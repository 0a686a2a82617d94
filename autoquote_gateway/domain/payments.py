"""Loan pricing helpers: amortized payments, APR tiers and preferred terms"""

from autoquote_gateway.domain.models import LenderProduct

PREFERRED_TERM_MONTHS = 60

EXCELLENT_CREDIT = 740
GOOD_CREDIT = 670
FAIR_CREDIT = 600


def calculate_monthly_payment(loan_amount: float, apr: float, term_months: int) -> float:
    """
    Fixed-rate annuity payment, rounded to cents.

    P = L * r * (1 + r)^n / ((1 + r)^n - 1), with r = APR / 100 / 12.
    A zero rate spreads principal evenly over the term.
    """
    if loan_amount <= 0 or term_months <= 0:
        return 0.0

    monthly_rate = apr / 100 / 12
    if monthly_rate == 0:
        return round(loan_amount / term_months, 2)

    factor = (1 + monthly_rate) ** term_months
    payment = loan_amount * (monthly_rate * factor) / (factor - 1)
    return round(payment, 2)


def select_apr_for_credit_score(lender: LenderProduct, credit_score: int, near_prime_markup: float = 1.0) -> float:
    """
    Map a credit score onto the lender's APR table.

    >= 740 good, >= 670 good + markup, >= 600 fair, else poor.
    """
    rates = lender.apr_range
    if credit_score >= EXCELLENT_CREDIT:
        apr = rates.good_credit
    elif credit_score >= GOOD_CREDIT:
        apr = rates.good_credit + near_prime_markup
    elif credit_score >= FAIR_CREDIT:
        apr = rates.fair_credit
    else:
        apr = rates.poor_credit
    return round(apr, 2)


def preferred_term(lender: LenderProduct) -> int:
    """60 months when offered, otherwise the lender's first listed term"""
    if PREFERRED_TERM_MONTHS in lender.loan_terms_months:
        return PREFERRED_TERM_MONTHS
    return lender.loan_terms_months[0]
