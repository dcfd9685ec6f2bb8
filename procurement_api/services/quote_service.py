from typing import Optional

from fastapi import HTTPException, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.models.brfq import Brfq
from procurement_api.models.quote import Quote, QuoteItem
from procurement_api.models.supplier import Supplier
from procurement_api.schemas.quote import (
    QuoteItemCreate,
    QuoteItemResponse,
    QuoteResponse,
    QuoteSubmission,
)
from procurement_api.services.auth_service import verify_quote_token
from procurement_api.services.workflow_service import APPROVED, OPEN_STATUSES

logger = structlog.get_logger()


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


def to_response(q: Quote) -> QuoteResponse:
    return QuoteResponse(
        id=str(q.id),
        rfq_id=str(q.rfq_id),
        supplier_id=str(q.supplier_id),
        supplier_quote_no=q.supplier_quote_no or "",
        valid_for=q.valid_for or "",
        currency=q.currency or "",
        shipping=q.shipping or "",
        comments=q.comments or "",
        submitted_at=q.submitted_at.isoformat() if q.submitted_at else "",
        items=[
            QuoteItemResponse(
                id=str(it.id),
                supplier_part_no=it.supplier_part_no or "",
                delivery_days=it.delivery_days or "",
                unit_price=_float(it.unit_price),
                qty=_float(it.qty),
                uom=it.uom or "",
                cost=float(it.cost or 0),
            )
            for it in q.items
        ],
    )


def decode_quote_token(token: Optional[str]) -> dict:
    """Verified ``{"rfqId", "supplierId"}``; 401 on any token problem."""
    if not token:
        raise HTTPException(status_code=401, detail="Quote token is required")
    try:
        return verify_quote_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired quote token",
        )


def _build_item(it: QuoteItemCreate) -> QuoteItem:
    cost = it.cost
    if not cost and it.unit_price is not None and it.qty is not None:
        cost = it.unit_price * it.qty
    return QuoteItem(
        supplier_part_no=it.supplier_part_no or (it.item_ref or ""),
        delivery_days=it.delivery_days or "",
        unit_price=it.unit_price,
        qty=it.qty,
        uom=it.uom or "",
        cost=cost or 0,
    )


async def submit_quote(db: AsyncSession, body: QuoteSubmission) -> Quote:
    """
    Record a supplier's quote for the BRFQ named in its token.

    The BRFQ and supplier ids come only from the verified token. Nothing is
    written unless the token verifies, both records exist, the BRFQ is open
    for bidding and the supplier has not quoted it before.
    """
    payload = decode_quote_token(body.token)
    rfq_id, supplier_id = payload["rfqId"], payload["supplierId"]

    brfq = (await db.execute(select(Brfq).where(Brfq.id == rfq_id))).scalar_one_or_none()
    if brfq is None:
        raise HTTPException(status_code=400, detail="Referenced BRFQ does not exist")
    supplier = (
        await db.execute(select(Supplier.id).where(Supplier.id == supplier_id))
    ).scalar_one_or_none()
    if supplier is None:
        raise HTTPException(status_code=400, detail="Referenced supplier does not exist")
    if not (
        brfq.published
        and brfq.approval_status == APPROVED
        and brfq.status in OPEN_STATUSES
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "BRFQ_NOT_OPEN",
                "message": f"BRFQ is not open for quotes (status {brfq.status})",
            },
        )

    existing = await db.execute(
        select(Quote.id).where(Quote.rfq_id == rfq_id, Quote.supplier_id == supplier_id)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Duplicate quote: a quote from this supplier already exists for this RFQ",
        )

    quote = Quote(
        rfq_id=rfq_id,
        supplier_id=supplier_id,
        supplier_quote_no=body.supplier_quote_no,
        valid_for=body.valid_for,
        currency=body.currency,
        shipping=body.shipping,
        comments=body.comments,
        items=[_build_item(it) for it in body.items],
    )
    db.add(quote)
    try:
        await db.flush()
    except IntegrityError:
        # Concurrent submission won the unique (rfq_id, supplier_id) race
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Duplicate quote: a quote from this supplier already exists for this RFQ",
        )

    logger.info(
        "quote_submitted",
        quote_id=quote.id,
        rfq_id=rfq_id,
        supplier_id=supplier_id,
        items=len(quote.items),
    )
    return quote


async def list_quotes_for_brfq(db: AsyncSession, brfq_id: str) -> list[Quote]:
    result = await db.execute(
        select(Quote).where(Quote.rfq_id == brfq_id).order_by(Quote.submitted_at)
    )
    return list(result.scalars().all())
