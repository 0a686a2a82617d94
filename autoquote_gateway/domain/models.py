"""Domain models - pure Python dataclasses representing business entities"""

import copy
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple


class EmploymentType(str, Enum):
    """Employment categories recognised by lender products"""

    FULL_TIME = "Full-time"
    PART_TIME = "Part-time"
    SELF_EMPLOYED = "Self-employed"
    RETIRED = "Retired"


class Confidence(str, Enum):
    """Strength of a borrower/lender match"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class QuoteStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"
    NEGOTIATED = "negotiated"
    EXPIRED = "expired"


class NegotiationType(str, Enum):
    RATE_CHALLENGE = "rate_challenge"
    FEE_REDUCTION = "fee_reduction"
    TERM_REQUEST = "term_request"


class NegotiationResponse(str, Enum):
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COUNTER_OFFER = "counter_offer"


class SessionStatus(str, Enum):
    """Quote session state machine: requesting -> collecting -> negotiating -> completed | failed"""

    REQUESTING = "requesting"
    COLLECTING = "collecting"
    NEGOTIATING = "negotiating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED)


@dataclass(frozen=True)
class BorrowerProfile:
    """Validated borrower snapshot; money amounts in whole dollars"""

    monthly_income: int
    employment_type: Optional[str] = None
    down_payment: int = 0
    trade_in_value: int = 0
    account_balance: int = 0
    purchase_price: Optional[int] = None
    vehicle_descriptor: Optional[str] = None
    vehicle_type: Optional[str] = None
    date_of_birth: Optional[date] = None
    estimated_credit_score: Optional[int] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    employer_name: Optional[str] = None


@dataclass(frozen=True)
class AprRange:
    """APR bounds and per-credit-tier rates, in percent"""

    min: float
    max: float
    good_credit: float  # score 700+
    fair_credit: float  # score 600-699
    poor_credit: float  # score below 600


@dataclass(frozen=True)
class LenderProduct:
    """Static lender product definition from the catalog"""

    id: str
    name: str
    min_loan_amount: int
    max_loan_amount: int
    min_credit_score: int
    min_monthly_income: int
    accepted_employment_types: FrozenSet[str]
    loan_terms_months: Tuple[int, ...]
    apr_range: AprRange
    max_ltv: float  # decimal, 0.9 == 90%
    special_programs: Tuple[str, ...] = ()
    is_active: bool = True


@dataclass
class LenderMatch:
    """Eligible lender with estimated pricing for one matching run"""

    lender: LenderProduct
    estimated_apr: float
    monthly_payment: float
    loan_amount: int
    loan_term: int
    confidence: Confidence
    reasons: List[str]


@dataclass
class BorrowerSummary:
    monthly_income: int
    loan_amount: int
    vehicle_value: int
    down_payment: int  # down payment plus trade-in
    estimated_credit_score: int


@dataclass
class MatchResult:
    """Output of the matching engine"""

    matches: List[LenderMatch]
    no_match_reasons: List[str]
    borrower_summary: BorrowerSummary


@dataclass(frozen=True)
class QuoteBorrowerSnapshot:
    """Borrower facts sent to a lender endpoint"""

    monthly_income: int
    estimated_credit_score: int
    employment_type: str
    loan_amount: int
    vehicle_value: int
    down_payment: int


@dataclass(frozen=True)
class QuoteRequest:
    lender_id: str
    borrower: QuoteBorrowerSnapshot


@dataclass
class QuoteFees:
    processing: int
    prepayment_penalty: int
    documentation: int

    @property
    def total(self) -> int:
        return self.processing + self.prepayment_penalty + self.documentation


@dataclass(frozen=True)
class NegotiationAttempt:
    """Audit record of a single negotiation exchange with a lender"""

    id: str
    timestamp: datetime
    type: NegotiationType
    message: str
    response: NegotiationResponse
    original_apr: Optional[float] = None
    new_apr: Optional[float] = None
    improvement_amount: Optional[float] = None
    # Fraction of the processing fee the lender agreed to drop (fee_reduction only)
    processing_fee_discount: Optional[float] = None


@dataclass
class LenderQuote:
    """Live offer returned by a lender endpoint"""

    lender_id: str
    lender_name: str
    offered_apr: float
    term_length: int
    loan_amount: int
    max_loan_amount: float
    monthly_payment: float
    fees: QuoteFees
    expiration_time: datetime
    created_at: datetime
    confidence: Confidence
    status: QuoteStatus = QuoteStatus.RECEIVED
    negotiation_history: List[NegotiationAttempt] = field(default_factory=list)

    @property
    def latest_attempt(self) -> Optional[NegotiationAttempt]:
        return self.negotiation_history[-1] if self.negotiation_history else None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expiration_time


@dataclass
class ImprovementsSummary:
    total_quotes_improved: int
    average_rate_improvement: float
    total_fees_saved: int


@dataclass
class NegotiationResult:
    """Outcome of a full negotiation run over a set of quotes"""

    original_quotes: List[LenderQuote]
    final_quotes: List[LenderQuote]
    improvements_summary: ImprovementsSummary
    negotiation_log: List[str]


@dataclass
class SessionProgress:
    total: int
    completed: int = 0
    failed: int = 0


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of a quote session handed to observers"""

    session_id: str
    borrower_profile: BorrowerProfile
    status: SessionStatus
    progress: SessionProgress
    quotes: Tuple[LenderQuote, ...]
    negotiation_result: Optional[NegotiationResult]
    created_at: datetime
    updated_at: datetime
    error: Optional[str] = None

    @property
    def progress_percentage(self) -> float:
        return progress_percentage(self.status, self.progress)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass
class QuoteSession:
    """Mutable orchestration state, owned by the quote manager"""

    session_id: str
    borrower_profile: BorrowerProfile
    status: SessionStatus
    progress: SessionProgress
    created_at: datetime
    updated_at: datetime
    quotes: List[LenderQuote] = field(default_factory=list)
    negotiation_result: Optional[NegotiationResult] = None
    error: Optional[str] = None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            borrower_profile=self.borrower_profile,
            status=self.status,
            progress=copy.copy(self.progress),
            quotes=tuple(copy.deepcopy(self.quotes)),
            negotiation_result=copy.deepcopy(self.negotiation_result),
            created_at=self.created_at,
            updated_at=self.updated_at,
            error=self.error,
        )


def progress_percentage(status: SessionStatus, progress: SessionProgress) -> float:
    """
    UI-facing progress: 80% for quote collection, 10% each for negotiating and completed.

    Not authoritative state; the status field is.
    """
    collected = 80.0 * progress.completed / progress.total if progress.total > 0 else 0.0
    negotiating = 10.0 if status == SessionStatus.NEGOTIATING else 0.0
    completed = 10.0 if status == SessionStatus.COMPLETED else 0.0
    return min(100.0, collected + negotiating + completed)
