"""Quote session endpoints - start collection, poll, cancel and clean up"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from autoquote_gateway.api.dependencies import get_quote_manager, get_request_id
from autoquote_gateway.api.v1.schemas import (
    BorrowerProfileRequest,
    CleanupResponse,
    QuoteSessionListResponse,
    QuoteSessionResponse,
)
from autoquote_gateway.domain.exceptions import InvalidBorrowerProfileError, SessionNotFoundError
from autoquote_gateway.services.quote_manager import QuoteManager

router = APIRouter()


@router.post("/quotes", response_model=QuoteSessionResponse, status_code=202)
async def start_quote_collection(
    request_body: BorrowerProfileRequest,
    request: Request,
    manager: QuoteManager = Depends(get_quote_manager),
):
    """
    Start a quote session.

    Flow:
    1. Match the borrower against the lender catalog
    2. Request quotes from every eligible lender concurrently
    3. Negotiate rates and fees over the quotes received

    Returns immediately with the initial snapshot; poll GET /v1/quotes/{session_id}.
    """
    request_id = get_request_id(request)

    try:
        snapshot = await manager.start_quote_collection(request_body.to_profile_data())
    except InvalidBorrowerProfileError as e:
        logging.warning(f"Invalid borrower profile: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=e.errors)

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    logging.info(
        "Quote session started",
        extra={"request_id": request_id, "session_id": snapshot.session_id, "lenders": snapshot.progress.total},
    )
    return QuoteSessionResponse.model_validate(snapshot)


@router.get("/quotes", response_model=QuoteSessionListResponse)
def list_quote_sessions(manager: QuoteManager = Depends(get_quote_manager)):
    sessions = [QuoteSessionResponse.model_validate(s) for s in manager.get_all_sessions()]
    return QuoteSessionListResponse(sessions=sessions)


@router.delete("/quotes/expired", response_model=CleanupResponse)
def cleanup_expired_sessions(manager: QuoteManager = Depends(get_quote_manager)):
    """Remove sessions older than the configured TTL"""
    return CleanupResponse(removed=manager.cleanup_expired_sessions())


@router.get("/quotes/{session_id}", response_model=QuoteSessionResponse)
async def get_quote_session(
    session_id: str,
    wait: bool = Query(False, description="Block until the session reaches a terminal state"),
    manager: QuoteManager = Depends(get_quote_manager),
):
    try:
        if wait:
            snapshot = await manager.wait_for_session(session_id)
        else:
            snapshot = await asyncio.to_thread(manager.get_session, session_id)
    except SessionNotFoundError:
        snapshot = None

    if snapshot is None:
        raise HTTPException(status_code=404, detail="Quote session not found")

    return QuoteSessionResponse.model_validate(snapshot)


@router.post("/quotes/{session_id}/cancel", response_model=QuoteSessionResponse)
async def cancel_quote_session(session_id: str, manager: QuoteManager = Depends(get_quote_manager)):
    try:
        snapshot = await manager.cancel_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Quote session not found")

    return QuoteSessionResponse.model_validate(snapshot)
