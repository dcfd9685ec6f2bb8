"""Lookup tables behind the BRFQ form's dropdowns."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.database import get_db
from procurement_api.middleware.auth import get_current_user
from procurement_api.middleware.authorization import require_roles
from procurement_api.models.reference import (
    Carrier,
    Category,
    Currency,
    Incoterm,
    PaymentProcess,
    ShippingType,
    Uom,
    Urgency,
)
from procurement_api.schemas.reference import LookupCreate, LookupResponse

logger = structlog.get_logger()
router = APIRouter()

LOOKUP_MODELS = {
    "carrier": Carrier,
    "incoterms": Incoterm,
    "currency": Currency,
    "uom": Uom,
    "urgency": Urgency,
    "shipping": ShippingType,
    "payment": PaymentProcess,
    "categories": Category,
}


def _model_for(kind: str):
    model = LOOKUP_MODELS.get(kind)
    if model is None:
        raise HTTPException(status_code=404, detail=f"Unknown field type '{kind}'")
    return model


def _to_response(row) -> LookupResponse:
    return LookupResponse(
        id=str(row.id),
        name=row.name,
        created_at=row.created_at.isoformat() if row.created_at else "",
    )


@router.get("/{kind}", response_model=list[LookupResponse])
async def list_lookup(
    kind: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    model = _model_for(kind)
    result = await db.execute(select(model).order_by(model.name))
    return [_to_response(r) for r in result.scalars().all()]


@router.post("/{kind}", response_model=LookupResponse, status_code=status.HTTP_201_CREATED)
async def create_lookup(
    kind: str,
    body: LookupCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("ADMIN")),
    db: AsyncSession = Depends(get_db),
):
    model = _model_for(kind)
    name = (body.item_name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="itemName is required")

    row = model(name=name)
    db.add(row)
    await db.flush()
    logger.info("lookup_created", kind=kind, lookup_id=row.id)
    return _to_response(row)


@router.delete("/{kind}/{item_id}")
async def delete_lookup(
    kind: str,
    item_id: str,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("ADMIN")),
    db: AsyncSession = Depends(get_db),
):
    model = _model_for(kind)
    row = (await db.execute(select(model).where(model.id == item_id))).scalar_one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail=f"{kind} not found")

    await db.delete(row)
    logger.info("lookup_deleted", kind=kind, lookup_id=item_id)
    return {"message": f"{kind} deleted successfully"}
