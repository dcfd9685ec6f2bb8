from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from procurement_api.database import get_db
from procurement_api.schemas.quote import (
    QuoteCreatedResponse,
    QuoteSubmission,
    QuoteTokenPayload,
)
from procurement_api.services import quote_service

router = APIRouter()


@router.get("/lib/verify-quote-token", response_model=QuoteTokenPayload)
async def verify_quote_token(token: str = Query(None)):
    """Decode a supplier's quote link so the form can show which BRFQ it targets."""
    if not token:
        raise HTTPException(status_code=400, detail="Missing token")
    payload = quote_service.decode_quote_token(token)
    return QuoteTokenPayload(rfq_id=payload["rfqId"], supplier_id=payload["supplierId"])


@router.post(
    "/suppliers/quote",
    response_model=QuoteCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_quote(body: QuoteSubmission, db: AsyncSession = Depends(get_db)):
    quote = await quote_service.submit_quote(db, body)
    return QuoteCreatedResponse(
        message="Quote submitted successfully",
        quote=quote_service.to_response(quote),
    )
