"""Synthetic credit score estimation from income, balance and employment signals"""

import logging

from autoquote_gateway.domain.models import BorrowerProfile, EmploymentType
from autoquote_gateway.domain.parsing import MAX_CREDIT_SCORE, MIN_CREDIT_SCORE

BASELINE_SCORE = 650

# (threshold, adjustment), checked top-down
INCOME_TIERS = [(8000, 60), (6000, 40), (4500, 25), (3000, 10)]
LOW_INCOME_THRESHOLD = 2500
LOW_INCOME_PENALTY = -30

BALANCE_TIERS = [(30_000, 40), (20_000, 30), (10_000, 20), (5000, 10)]
LOW_BALANCE_THRESHOLD = 2000
LOW_BALANCE_PENALTY = -25

EMPLOYMENT_ADJUSTMENTS = {
    EmploymentType.FULL_TIME.value: 20,
    EmploymentType.PART_TIME.value: -5,
    EmploymentType.SELF_EMPLOYED.value: -15,
    EmploymentType.RETIRED.value: 10,
}

GOOD_SAVINGS_RATE = 0.5
LOW_SAVINGS_RATE = 0.1


def _tier_adjustment(amount: int, tiers, low_threshold: int, low_penalty: int) -> int:
    for threshold, adjustment in tiers:
        if amount >= threshold:
            return adjustment
    if amount < low_threshold:
        return low_penalty
    return 0


def savings_rate_adjustment(monthly_income: int, account_balance: int) -> int:
    """+15 when balance exceeds half a year's income, -10 below a tenth; 0 with no income"""
    if monthly_income <= 0:
        return 0
    rate = account_balance / (monthly_income * 12)
    if rate > GOOD_SAVINGS_RATE:
        return 15
    if rate < LOW_SAVINGS_RATE:
        return -10
    return 0


def estimate_credit_score(profile: BorrowerProfile) -> int:
    """
    Estimate a credit score in [300, 850] from the borrower profile.

    Baseline 650 with additive adjustments:
    - Monthly income: +60 / +40 / +25 / +10 at >= 8000 / 6000 / 4500 / 3000, -30 below 2500
    - Account balance: +40 / +30 / +20 / +10 at >= 30k / 20k / 10k / 5k, -25 below 2000
    - Employment: +20 full-time, -5 part-time, -15 self-employed, +10 retired
    - Savings rate (balance / annual income): +15 above 0.5, -10 below 0.1

    Deterministic: identical profiles always score the same.
    """
    score = BASELINE_SCORE
    score += _tier_adjustment(profile.monthly_income, INCOME_TIERS, LOW_INCOME_THRESHOLD, LOW_INCOME_PENALTY)
    score += _tier_adjustment(profile.account_balance, BALANCE_TIERS, LOW_BALANCE_THRESHOLD, LOW_BALANCE_PENALTY)
    score += EMPLOYMENT_ADJUSTMENTS.get(profile.employment_type or "", 0)
    score += savings_rate_adjustment(profile.monthly_income, profile.account_balance)

    final_score = max(MIN_CREDIT_SCORE, min(MAX_CREDIT_SCORE, score))
    logging.debug(
        "Estimated credit score",
        extra={"step": "credit_estimate", "credit_score": final_score},
    )
    return final_score
