"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from autoquote_gateway.domain.models import (
    Confidence,
    NegotiationResponse,
    NegotiationType,
    QuoteStatus,
    SessionStatus,
)

MoneyInput = Optional[Union[str, int, float]]


class BorrowerProfileRequest(BaseModel):
    """Borrower data as collected by the conversation wizard (money as "$1,234" strings)"""

    model_config = ConfigDict(populate_by_name=True)

    monthly_income: MoneyInput = Field(None, alias="monthlyIncome")
    employment_type: Optional[str] = Field(None, alias="employmentType")
    date_of_birth: Optional[str] = Field(None, alias="dateOfBirth")
    vehicle_type: Optional[str] = Field(None, alias="vehicleType")
    vin_or_model: Optional[str] = Field(None, alias="vinOrModel")
    purchase_price: MoneyInput = Field(None, alias="purchasePrice")
    down_payment: MoneyInput = Field(None, alias="downPayment")
    trade_in_value: MoneyInput = Field(None, alias="tradeInValue")
    account_balance: MoneyInput = Field(None, alias="accountBalance")
    estimated_credit_score: Optional[int] = Field(None, alias="estimatedCreditScore")
    full_name: Optional[str] = Field(None, alias="fullName")
    email: Optional[str] = None
    employer_name: Optional[str] = Field(None, alias="employerName")

    def to_profile_data(self) -> Dict[str, Any]:
        """Raw camelCase mapping for the parsing boundary"""
        return self.model_dump(by_alias=True, exclude_none=True)


class AprRangeSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    min: float
    max: float
    good_credit: float
    fair_credit: float
    poor_credit: float


class LenderSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    min_loan_amount: int
    max_loan_amount: int
    min_credit_score: int
    min_monthly_income: int
    loan_terms_months: List[int]
    apr_range: AprRangeSchema
    max_ltv: float
    special_programs: List[str]


class LenderMatchSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lender: LenderSchema
    estimated_apr: float
    monthly_payment: float
    loan_amount: int
    loan_term: int
    confidence: Confidence
    reasons: List[str]


class BorrowerSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    monthly_income: int
    loan_amount: int
    vehicle_value: int
    down_payment: int
    estimated_credit_score: int


class MatchResponse(BaseModel):
    """Response for POST /v1/match"""

    model_config = ConfigDict(from_attributes=True)

    matches: List[LenderMatchSchema]
    no_match_reasons: List[str]
    borrower_summary: BorrowerSummarySchema


class QuoteFeesSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    processing: int
    prepayment_penalty: int
    documentation: int
    total: int


class NegotiationAttemptSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    timestamp: datetime
    type: NegotiationType
    message: str
    response: NegotiationResponse
    original_apr: Optional[float] = None
    new_apr: Optional[float] = None
    improvement_amount: Optional[float] = None
    processing_fee_discount: Optional[float] = None


class LenderQuoteSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lender_id: str
    lender_name: str
    offered_apr: float
    term_length: int
    loan_amount: int
    max_loan_amount: float
    monthly_payment: float
    fees: QuoteFeesSchema
    expiration_time: datetime
    status: QuoteStatus
    confidence: Confidence
    negotiation_history: List[NegotiationAttemptSchema]


class ImprovementsSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_quotes_improved: int
    average_rate_improvement: float
    total_fees_saved: int


class NegotiationResultSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    original_quotes: List[LenderQuoteSchema]
    final_quotes: List[LenderQuoteSchema]
    improvements_summary: ImprovementsSummarySchema
    negotiation_log: List[str]


class SessionProgressSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    completed: int
    failed: int


class QuoteSessionResponse(BaseModel):
    """Snapshot of a quote session"""

    model_config = ConfigDict(from_attributes=True)

    session_id: str
    status: SessionStatus
    progress: SessionProgressSchema
    progress_percentage: float
    quotes: List[LenderQuoteSchema]
    negotiation_result: Optional[NegotiationResultSchema] = None
    created_at: datetime
    updated_at: datetime
    error: Optional[str] = None


class QuoteSessionListResponse(BaseModel):
    sessions: List[QuoteSessionResponse]


class CleanupResponse(BaseModel):
    removed: int
