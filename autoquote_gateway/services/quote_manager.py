"""Quote session manager - matching, lender fan-out and negotiation orchestration"""

import asyncio
import copy
import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from autoquote_gateway.config import Settings, settings as default_settings
from autoquote_gateway.domain.catalog import LENDER_CATALOG, validate_catalog
from autoquote_gateway.domain.exceptions import LenderAPIError, SessionNotFoundError
from autoquote_gateway.domain.matching import match_borrower_to_lenders
from autoquote_gateway.domain.models import (
    BorrowerProfile,
    LenderProduct,
    LenderQuote,
    MatchResult,
    QuoteBorrowerSnapshot,
    QuoteRequest,
    QuoteSession,
    QuoteStatus,
    SessionProgress,
    SessionSnapshot,
    SessionStatus,
)
from autoquote_gateway.domain.parsing import parse_borrower_profile
from autoquote_gateway.domain.valuation import ValuationOracle
from autoquote_gateway.infrastructure.clients.lender import MockLenderClient, QuoteService
from autoquote_gateway.infrastructure.observability.logging import (
    log_negotiation_complete,
    log_quote_outcome,
    log_session_transition,
)
from autoquote_gateway.infrastructure.observability.metrics import (
    quote_request_counter,
    record_match_result,
    record_session_outcome,
)
from autoquote_gateway.services.events import ProgressCallback, SnapshotBroadcaster, SnapshotSubscription
from autoquote_gateway.services.negotiation import LoanNegotiator
from autoquote_gateway.services.repository import InMemorySessionRepository, SessionRepository
from autoquote_gateway.utils.time_utils import utc_now

DEFAULT_EMPLOYMENT_TYPE = "Full-time"


def new_session_id() -> str:
    return f"quote_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def build_borrower_snapshot(profile: BorrowerProfile, match_result: MatchResult) -> QuoteBorrowerSnapshot:
    """Borrower facts sent to every lender, taken from the same matching run"""
    summary = match_result.borrower_summary
    return QuoteBorrowerSnapshot(
        monthly_income=summary.monthly_income,
        estimated_credit_score=summary.estimated_credit_score,
        employment_type=profile.employment_type or DEFAULT_EMPLOYMENT_TYPE,
        loan_amount=summary.loan_amount,
        vehicle_value=summary.vehicle_value,
        down_payment=summary.down_payment,
    )


class QuoteManager:
    """
    Owns quote sessions from creation to a terminal state.

    State machine: requesting -> collecting -> negotiating -> completed,
    with failed reachable from collecting (no quotes), negotiating (error),
    or any live state on timeout / cancellation. Observers only ever see
    immutable snapshots.
    """

    def __init__(
        self,
        repository: Optional[SessionRepository] = None,
        client: Optional[QuoteService] = None,
        negotiator: Optional[LoanNegotiator] = None,
        catalog: Optional[Sequence[LenderProduct]] = None,
        oracle: Optional[ValuationOracle] = None,
        config: Optional[Settings] = None,
    ):
        self.settings = config or default_settings
        self.repository = repository or InMemorySessionRepository()
        self.client = client or MockLenderClient()
        self.negotiator = negotiator or LoanNegotiator(self.client)
        self.catalog = tuple(catalog) if catalog is not None else LENDER_CATALOG
        self.oracle = oracle

        for problem in validate_catalog(self.catalog):
            logging.warning(f"Lender catalog problem: {problem}", extra={"step": "catalog_check"})

        self._tasks: Dict[str, asyncio.Task] = {}
        self._broadcasters: Dict[str, SnapshotBroadcaster] = {}
        self._save_lock = asyncio.Lock()

    def match(self, profile: Union[BorrowerProfile, Mapping[str, Any]]) -> MatchResult:
        """Run the matching engine against this manager's catalog"""
        if not isinstance(profile, BorrowerProfile):
            profile = parse_borrower_profile(profile)
        result = match_borrower_to_lenders(
            profile,
            catalog=self.catalog,
            oracle=self.oracle,
            default_vehicle_value=self.settings.default_vehicle_value,
        )
        record_match_result(len(result.matches), len(result.no_match_reasons))
        return result

    async def start_quote_collection(
        self,
        profile: Union[BorrowerProfile, Mapping[str, Any]],
        on_progress: Optional[ProgressCallback] = None,
    ) -> SessionSnapshot:
        """
        Create a session and start collecting quotes from every eligible lender.

        Returns once the session exists and the fan-out has been scheduled.
        The outcome arrives through on_progress, subscribe() or get_session().

        Raises:
            InvalidBorrowerProfileError: before any session is created
        """
        if not isinstance(profile, BorrowerProfile):
            profile = parse_borrower_profile(profile)

        match_result = self.match(profile)
        eligible = [m.lender for m in match_result.matches]

        now = utc_now()
        session = QuoteSession(
            session_id=new_session_id(),
            borrower_profile=profile,
            status=SessionStatus.REQUESTING,
            progress=SessionProgress(total=len(eligible)),
            created_at=now,
            updated_at=now,
        )

        broadcaster = SnapshotBroadcaster()
        if on_progress is not None:
            broadcaster.add_callback(on_progress)
        self._broadcasters[session.session_id] = broadcaster

        log_session_transition(session.session_id, session.status.value, len(eligible), 0, 0)
        await self._commit(session)

        borrower = build_borrower_snapshot(profile, match_result)
        task = asyncio.create_task(self._run_session(session, eligible, borrower))
        self._tasks[session.session_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(session.session_id, None))

        # Let the fan-out begin before handing control back
        await asyncio.sleep(0)
        return session.snapshot()

    async def _run_session(
        self,
        session: QuoteSession,
        lenders: List[LenderProduct],
        borrower: QuoteBorrowerSnapshot,
    ) -> None:
        try:
            await asyncio.wait_for(
                self._collect_and_negotiate(session, lenders, borrower),
                timeout=self.settings.session_timeout_seconds,
            )
        except asyncio.TimeoutError:
            await self._fail(session, "session timed out")
        except asyncio.CancelledError:
            # Cancellation ends the session; it is reported through the failed state
            await self._fail(session, "session cancelled")

    async def _collect_and_negotiate(
        self,
        session: QuoteSession,
        lenders: List[LenderProduct],
        borrower: QuoteBorrowerSnapshot,
    ) -> None:
        await self._transition(session, SessionStatus.COLLECTING)

        results = await asyncio.gather(
            *(self._request_quote(session, lender, borrower) for lender in lenders),
            return_exceptions=True,
        )
        session.quotes = [result for result in results if isinstance(result, LenderQuote)]
        logging.info(
            "Quote collection completed",
            extra={"session_id": session.session_id, "step": "collection_complete", "quotes": len(session.quotes)},
        )

        if not session.quotes:
            await self._fail(session, "no lender quotes received")
            return

        await self._transition(session, SessionStatus.NEGOTIATING)

        start_time = time.time()
        try:
            negotiation_result = await self.negotiator.negotiate_all_quotes(session.quotes)
        except Exception as e:
            logging.error(f"Negotiation failed: {e}", extra={"session_id": session.session_id})
            await self._fail(session, f"negotiation failed: {e}")
            return

        session.negotiation_result = negotiation_result
        session.quotes = list(negotiation_result.final_quotes)

        summary = negotiation_result.improvements_summary
        log_negotiation_complete(
            session.session_id,
            summary.total_quotes_improved,
            summary.average_rate_improvement,
            summary.total_fees_saved,
            (time.time() - start_time) * 1000,
        )
        await self._transition(session, SessionStatus.COMPLETED)

    async def _request_quote(
        self,
        session: QuoteSession,
        lender: LenderProduct,
        borrower: QuoteBorrowerSnapshot,
    ) -> Optional[LenderQuote]:
        """Request one lender's quote; failures are counted, never raised"""
        request = QuoteRequest(lender_id=lender.id, borrower=borrower)
        try:
            quote = await asyncio.wait_for(
                self.client.request_lender_quote(request, lender),
                timeout=self.settings.quote_request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            outcome = "timeout"
        except LenderAPIError as e:
            outcome = "failed"
            logging.warning(f"Lender API error: {e}", extra={"session_id": session.session_id, "lender_id": lender.id})
        except Exception as e:
            outcome = "failed"
            logging.error(f"Unexpected quote error: {e}", extra={"session_id": session.session_id, "lender_id": lender.id})
        else:
            session.progress.completed += 1
            session.quotes.append(quote)
            quote_request_counter.labels(lender=lender.id, outcome="received").inc()
            log_quote_outcome(session.session_id, lender.id, "received", quote.offered_apr)
            await self._commit(session)
            return quote

        session.progress.failed += 1
        quote_request_counter.labels(lender=lender.id, outcome=outcome).inc()
        log_quote_outcome(session.session_id, lender.id, outcome)
        await self._commit(session)
        return None

    async def _transition(self, session: QuoteSession, status: SessionStatus) -> None:
        if session.status.is_terminal:
            return

        session.status = status
        progress = session.progress
        log_session_transition(session.session_id, status.value, progress.total, progress.completed, progress.failed)
        if status.is_terminal:
            record_session_outcome(status.value)

        await self._commit(session)
        if status.is_terminal:
            self._broadcasters.pop(session.session_id, None)

    async def _fail(self, session: QuoteSession, reason: str) -> None:
        if session.status.is_terminal:
            return
        session.error = reason
        await self._transition(session, SessionStatus.FAILED)

    async def _commit(self, session: QuoteSession) -> None:
        """Persist the session and push a fresh snapshot to observers"""
        session.updated_at = utc_now()
        # Writes run in a worker thread on a copy, in commit order. A cancelled
        # caller never interrupts a write in flight
        await asyncio.shield(self._persist(copy.deepcopy(session)))

        broadcaster = self._broadcasters.get(session.session_id)
        if broadcaster is not None:
            await broadcaster.publish(session.snapshot())

    async def _persist(self, session: QuoteSession) -> None:
        async with self._save_lock:
            await asyncio.to_thread(self.repository.save, session)

    def get_session(self, session_id: str) -> Optional[SessionSnapshot]:
        session = self.repository.get(session_id)
        return session.snapshot() if session is not None else None

    def get_all_sessions(self) -> List[SessionSnapshot]:
        return [session.snapshot() for session in self.repository.list_sessions()]

    def subscribe(self, session_id: str) -> SnapshotSubscription:
        """
        Stream snapshots of a session until it reaches a terminal state.

        Raises:
            SessionNotFoundError: unknown session id
        """
        broadcaster = self._broadcasters.get(session_id)
        if broadcaster is not None:
            return broadcaster.subscribe()

        snapshot = self.get_session(session_id)
        if snapshot is None:
            raise SessionNotFoundError(f"Quote session not found: {session_id}")
        return SnapshotSubscription.finished(snapshot)

    async def wait_for_session(self, session_id: str) -> SessionSnapshot:
        """Wait until the session's background run has finished"""
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.shield(task)

        snapshot = await asyncio.to_thread(self.get_session, session_id)
        if snapshot is None:
            raise SessionNotFoundError(f"Quote session not found: {session_id}")
        return snapshot

    async def cancel_session(self, session_id: str) -> SessionSnapshot:
        """Cancel a running session; it ends in the failed state"""
        task = self._tasks.get(session_id)
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        snapshot = await asyncio.to_thread(self.get_session, session_id)
        if snapshot is None:
            raise SessionNotFoundError(f"Quote session not found: {session_id}")
        return snapshot

    def cleanup_expired_sessions(self, now: Optional[datetime] = None) -> int:
        """
        Drop sessions older than the session TTL (24h by default) and mark
        quotes past their expiration time as expired in the sessions that remain.

        Returns the number of sessions removed.
        """
        now = now or utc_now()
        cutoff = now - timedelta(hours=self.settings.session_ttl_hours)
        removed = self.repository.delete_created_before(cutoff)

        for session in self.repository.list_sessions():
            stale = [q for q in session.quotes if q.status != QuoteStatus.EXPIRED and q.is_expired(now)]
            if not stale:
                continue
            for quote in stale:
                quote.status = QuoteStatus.EXPIRED
            self.repository.save(session)

        if removed:
            logging.info("Expired quote sessions removed", extra={"step": "session_cleanup", "removed": removed})
        return removed
