"""Parsing boundary for untrusted, string-encoded borrower input"""

import re
from datetime import date, datetime
from typing import Any, List, Mapping, Optional

from autoquote_gateway.domain.exceptions import InvalidBorrowerProfileError
from autoquote_gateway.domain.models import BorrowerProfile, EmploymentType

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

MIN_CREDIT_SCORE = 300
MAX_CREDIT_SCORE = 850


def parse_money(value: Any) -> int:
    """
    Parse a money value into whole dollars.

    "$1,234" -> 1234, "$1,234.56" -> 1234, "$0" -> 0.
    Missing or unparsable input parses to 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)

    text = str(value).replace("$", "").replace(",", "")
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def normalize_employment_type(value: Optional[str]) -> Optional[str]:
    """Map free-text employment descriptions onto catalog employment types"""
    if not value or not value.strip():
        return None

    normalized = value.lower().strip()
    if "full" in normalized and "time" in normalized:
        return EmploymentType.FULL_TIME.value
    if "part" in normalized and "time" in normalized:
        return EmploymentType.PART_TIME.value
    if "self" in normalized or "freelance" in normalized:
        return EmploymentType.SELF_EMPLOYED.value
    if "retire" in normalized:
        return EmploymentType.RETIRED.value

    # Unknown types pass through and fail every lender's employment check
    return value.strip()


def parse_date_of_birth(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not value:
        return None

    for fmt in ("%Y-%m-%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(str(value).strip(), fmt).date()
        except ValueError:
            continue
    return None


def _field(raw: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in raw:
        return raw[camel]
    return raw.get(snake)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_borrower_profile(raw: Mapping[str, Any]) -> BorrowerProfile:
    """
    Convert a loosely-typed borrower record into a validated BorrowerProfile.

    Accepts camelCase (collector form) or snake_case keys.

    Raises:
        InvalidBorrowerProfileError: listing every problem found
    """
    errors: List[str] = []

    income_raw = _field(raw, "monthlyIncome", "monthly_income")
    if income_raw is None or (isinstance(income_raw, str) and not income_raw.strip()):
        errors.append("monthly income is required")
    monthly_income = parse_money(income_raw)

    money = {
        "monthly income": monthly_income,
        "down payment": parse_money(_field(raw, "downPayment", "down_payment")),
        "trade-in value": parse_money(_field(raw, "tradeInValue", "trade_in_value")),
        "account balance": parse_money(_field(raw, "accountBalance", "account_balance")),
        "purchase price": parse_money(_field(raw, "purchasePrice", "purchase_price")),
    }
    for label, amount in money.items():
        if amount < 0:
            errors.append(f"{label} cannot be negative")

    credit_score = _field(raw, "estimatedCreditScore", "estimated_credit_score")
    if credit_score is not None:
        try:
            credit_score = int(credit_score)
        except (TypeError, ValueError):
            errors.append("estimated credit score must be a whole number")
            credit_score = None
        else:
            if not MIN_CREDIT_SCORE <= credit_score <= MAX_CREDIT_SCORE:
                errors.append(
                    f"estimated credit score must be between {MIN_CREDIT_SCORE} and {MAX_CREDIT_SCORE}"
                )

    if errors:
        raise InvalidBorrowerProfileError(errors)

    return BorrowerProfile(
        monthly_income=monthly_income,
        employment_type=normalize_employment_type(_field(raw, "employmentType", "employment_type")),
        down_payment=money["down payment"],
        trade_in_value=money["trade-in value"],
        account_balance=money["account balance"],
        # 0 means "unknown" so that the valuation fallback applies
        purchase_price=money["purchase price"] or None,
        vehicle_descriptor=_text(_field(raw, "vinOrModel", "vehicle_descriptor")),
        vehicle_type=_text(_field(raw, "vehicleType", "vehicle_type")),
        date_of_birth=parse_date_of_birth(_field(raw, "dateOfBirth", "date_of_birth")),
        estimated_credit_score=credit_score,
        full_name=_text(_field(raw, "fullName", "full_name")),
        email=_text(_field(raw, "email", "email")),
        employer_name=_text(_field(raw, "employerName", "employer_name")),
    )
