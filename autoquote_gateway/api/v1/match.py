"""POST /v1/match - synchronous lender matching"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from autoquote_gateway.api.dependencies import get_quote_manager, get_request_id
from autoquote_gateway.api.v1.schemas import BorrowerProfileRequest, MatchResponse
from autoquote_gateway.domain.exceptions import InvalidBorrowerProfileError
from autoquote_gateway.services.quote_manager import QuoteManager

router = APIRouter()


@router.post("/match", response_model=MatchResponse)
def match_lenders(
    request_body: BorrowerProfileRequest,
    request: Request,
    manager: QuoteManager = Depends(get_quote_manager),
):
    """
    Match a borrower against the lender catalog.

    Returns eligible lenders sorted by estimated APR (best first), plus one
    rejection reason per ineligible lender.
    """
    request_id = get_request_id(request)

    try:
        result = manager.match(request_body.to_profile_data())
    except InvalidBorrowerProfileError as e:
        logging.warning(f"Invalid borrower profile: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=e.errors)

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return MatchResponse.model_validate(result)
