from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.models.brfq import (
    Brfq,
    RequestItem,
    ScopeOfWorkItem,
    brfq_suppliers,
)
from procurement_api.models.supplier import Supplier
from procurement_api.schemas.brfq import (
    BrfqCreate,
    BrfqResponse,
    RequestItemResponse,
    ScopeOfWorkResponse,
)

logger = structlog.get_logger()

BRFQ_PREFIX = "BRFQ"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


async def generate_rfq_number(db: AsyncSession) -> str:
    """Next number after the highest issued one; gaps from deletes are never reused."""
    result = await db.execute(
        select(func.max(Brfq.rfq_id)).where(Brfq.rfq_id.like(f"{BRFQ_PREFIX}-%"))
    )
    last = result.scalar()
    try:
        seq = int(last.rsplit("-", 1)[1]) if last else 0
    except ValueError:
        seq = 0
    return f"{BRFQ_PREFIX}-{seq + 1:06d}"


async def get_linked_supplier_ids(db: AsyncSession, brfq_id: str) -> list[str]:
    result = await db.execute(
        select(brfq_suppliers.c.supplier_id).where(brfq_suppliers.c.brfq_id == brfq_id)
    )
    return [row[0] for row in result.all()]


async def create_brfq(db: AsyncSession, body: BrfqCreate, created_by: Optional[str]) -> Brfq:
    """Insert a draft BRFQ with its items, scope of work and supplier links."""
    supplier_ids = list(dict.fromkeys(body.supplier_ids))
    if supplier_ids:
        found = await db.execute(select(Supplier.id).where(Supplier.id.in_(supplier_ids)))
        missing = set(supplier_ids) - {row[0] for row in found.all()}
        if missing:
            raise HTTPException(
                status_code=400,
                detail=f"Unknown supplier ids: {', '.join(sorted(missing))}",
            )

    brfq = Brfq(
        rfq_id=await generate_rfq_number(db),
        title=body.title,
        category_id=body.category_id,
        status="draft",
        approval_status="none",
        published=False,
        publish_on_approval=body.publish_on_approval,
        close_date=body.close_date.replace(tzinfo=None) if body.close_date else None,
        requester=body.requester,
        requester_email=body.requester_email,
        currency=body.currency,
        incoterms=body.incoterms,
        carrier=body.carrier,
        urgency=body.urgency,
        shipping_type=body.shipping_type,
        payment_process=body.payment_process,
        shipping_address=body.shipping_address,
        notes_to_supplier=body.notes_to_supplier,
        target_price=body.target_price,
        created_by=created_by,
    )
    db.add(brfq)
    try:
        await db.flush()
    except IntegrityError:
        # Another request took the same number first
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "RFQ_NUMBER_CONFLICT",
                "message": f"RFQ number {brfq.rfq_id} was just issued; retry the request",
            },
        )

    for item in body.items:
        db.add(RequestItem(brfq_id=brfq.id, **item.model_dump()))
    for position, sow in enumerate(body.scope_of_work):
        db.add(
            ScopeOfWorkItem(
                brfq_id=brfq.id,
                title=sow.title,
                description=sow.description,
                position=position,
            )
        )
    if supplier_ids:
        await db.execute(
            insert(brfq_suppliers),
            [{"brfq_id": brfq.id, "supplier_id": sid} for sid in supplier_ids],
        )
    await db.flush()

    logger.info(
        "brfq_created",
        brfq_id=brfq.id,
        rfq_id=brfq.rfq_id,
        items=len(body.items),
        suppliers=len(supplier_ids),
    )
    return brfq


async def build_brfq_response(db: AsyncSession, brfq: Brfq) -> BrfqResponse:
    items = await db.execute(
        select(RequestItem).where(RequestItem.brfq_id == brfq.id).order_by(RequestItem.id)
    )
    scope = await db.execute(
        select(ScopeOfWorkItem)
        .where(ScopeOfWorkItem.brfq_id == brfq.id)
        .order_by(ScopeOfWorkItem.position)
    )
    return BrfqResponse(
        id=str(brfq.id),
        rfq_id=brfq.rfq_id,
        title=brfq.title,
        category_id=brfq.category_id,
        status=brfq.status,
        approval_status=brfq.approval_status,
        published=bool(brfq.published),
        publish_on_approval=bool(brfq.publish_on_approval),
        approved_by=brfq.approved_by,
        approved_at=_iso(brfq.approved_at),
        approval_note=brfq.approval_note,
        close_date=_iso(brfq.close_date),
        requester=brfq.requester,
        currency=brfq.currency,
        incoterms=brfq.incoterms,
        carrier=brfq.carrier,
        urgency=brfq.urgency,
        shipping_type=brfq.shipping_type,
        payment_process=brfq.payment_process,
        notes_to_supplier=brfq.notes_to_supplier,
        target_price=float(brfq.target_price) if brfq.target_price is not None else None,
        supplier_ids=await get_linked_supplier_ids(db, brfq.id),
        items=[
            RequestItemResponse(
                id=str(it.id),
                internal_part_no=it.internal_part_no,
                manufacturer=it.manufacturer,
                mfg_part_no=it.mfg_part_no,
                description=it.description,
                uom=it.uom,
                quantity=it.quantity,
            )
            for it in items.scalars().all()
        ],
        scope_of_work=[
            ScopeOfWorkResponse(
                id=str(s.id), title=s.title, description=s.description, position=s.position
            )
            for s in scope.scalars().all()
        ],
        created_at=_iso(brfq.created_at) or "",
        updated_at=_iso(brfq.updated_at) or "",
    )
