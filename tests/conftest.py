"""Pytest fixtures for testing"""

import random
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient

from autoquote_gateway.api.main import create_app
from autoquote_gateway.config import Settings
from autoquote_gateway.domain.models import (
    BorrowerProfile,
    Confidence,
    LenderQuote,
    QuoteFees,
    QuoteStatus,
)
from autoquote_gateway.infrastructure.clients.lender import MockLenderClient
from autoquote_gateway.infrastructure.database.repositories import SqlSessionRepository
from autoquote_gateway.infrastructure.database.session import create_session_factory
from autoquote_gateway.services.quote_manager import QuoteManager
from autoquote_gateway.services.repository import InMemorySessionRepository

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


async def no_sleep(_seconds: float) -> None:
    """Drop-in for asyncio.sleep that returns immediately"""
    return None


class FixedRandom(random.Random):
    """random.Random whose random() (and therefore uniform()) always draws the same value"""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        quote_latency_min_seconds=0.0,
        quote_latency_max_seconds=0.0,
        negotiation_latency_min_seconds=0.0,
        negotiation_latency_max_seconds=0.0,
        quote_request_timeout_seconds=1.0,
        session_timeout_seconds=5.0,
    )


@pytest.fixture
def lender_client(rng: random.Random) -> MockLenderClient:
    """Seeded, zero-latency simulated lender API"""
    return MockLenderClient(
        rng=rng,
        sleep=no_sleep,
        latency=(0.0, 0.0),
        negotiation_latency=(0.0, 0.0),
        failure_rate=0.0,
    )


@pytest.fixture
def make_client() -> Callable[..., MockLenderClient]:
    """Factory for zero-latency lender clients; draws(value) pins every random() call"""

    def _make(
        draws: Optional[float] = None,
        failure_rate: float = 0.0,
        seed: int = 1234,
        clock: Optional[Callable] = None,
    ) -> MockLenderClient:
        return MockLenderClient(
            rng=FixedRandom(draws) if draws is not None else random.Random(seed),
            sleep=no_sleep,
            latency=(0.0, 0.0),
            negotiation_latency=(0.0, 0.0),
            failure_rate=failure_rate,
            clock=clock or (lambda: FIXED_NOW),
        )

    return _make


@pytest.fixture
def memory_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def sql_repository(tmp_path) -> SqlSessionRepository:
    """SQLite-backed session store in a per-test file"""
    return SqlSessionRepository(create_session_factory(f"sqlite:///{tmp_path}/sessions.db"))


@pytest.fixture
def quote_manager(
    lender_client: MockLenderClient,
    memory_repository: InMemorySessionRepository,
    test_settings: Settings,
) -> QuoteManager:
    return QuoteManager(repository=memory_repository, client=lender_client, config=test_settings)


@pytest.fixture
def client(quote_manager: QuoteManager, test_settings: Settings) -> Generator[TestClient, None, None]:
    """FastAPI test client; the context keeps one event loop alive for background sessions"""
    app = create_app(quote_manager=quote_manager, config=test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def raw_profile() -> dict:
    """Borrower record as the conversation wizard collects it"""
    return {
        "fullName": "Jordan Rivera",
        "monthlyIncome": "$6,000",
        "employmentType": "Full-time",
        "dateOfBirth": "1988-04-12",
        "vinOrModel": "2023 Toyota Camry",
        "purchasePrice": "$25,000",
        "downPayment": "$5,000",
        "tradeInValue": "$0",
    }


@pytest.fixture
def good_profile() -> BorrowerProfile:
    return BorrowerProfile(
        monthly_income=6000,
        employment_type="Full-time",
        down_payment=5000,
        trade_in_value=0,
        purchase_price=25_000,
    )


@pytest.fixture
def make_quote() -> Callable[..., LenderQuote]:
    """Factory for lender quotes with sensible defaults"""

    def _make(
        lender_id: str = "chase-auto",
        apr: float = 6.0,
        processing: int = 400,
        prepayment_penalty: int = 0,
        documentation: int = 100,
        loan_amount: int = 20_000,
        lender_name: Optional[str] = None,
    ) -> LenderQuote:
        return LenderQuote(
            lender_id=lender_id,
            lender_name=lender_name or lender_id.replace("-", " ").title(),
            offered_apr=apr,
            term_length=60,
            loan_amount=loan_amount,
            max_loan_amount=loan_amount * 1.2,
            monthly_payment=386.66,
            fees=QuoteFees(processing=processing, prepayment_penalty=prepayment_penalty, documentation=documentation),
            expiration_time=FIXED_NOW + timedelta(days=7),
            created_at=FIXED_NOW,
            confidence=Confidence.MEDIUM,
            status=QuoteStatus.RECEIVED,
        )

    return _make


@pytest.fixture
def fixed_now() -> datetime:
    """Clock value used by make_client and make_quote"""
    return FIXED_NOW
