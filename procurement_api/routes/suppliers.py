from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.database import get_db
from procurement_api.middleware.auth import get_current_user
from procurement_api.middleware.authorization import (
    ADMIN_ROLES,
    BUYER_ROLES,
    actor_name,
    require_roles,
)
from procurement_api.models.supplier import Supplier
from procurement_api.schemas.common import PaginatedResponse, build_pagination
from procurement_api.schemas.supplier import SupplierCreate, SupplierResponse
from procurement_api.services import supplier_service
from procurement_api.services.notification_service import send_notification

logger = structlog.get_logger()
router = APIRouter()


@router.post("/suppliers", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def register_supplier(body: SupplierCreate, db: AsyncSession = Depends(get_db)):
    """Public self-registration; the supplier stays pending until approved."""
    supplier = await supplier_service.register_supplier(db, body)
    return supplier_service.to_response(supplier)


@router.get("/suppliers", response_model=PaginatedResponse[SupplierResponse])
async def list_suppliers(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1, le=100),
    supplier_status: str = Query(None, alias="status"),
    search: str = Query(None, max_length=200),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES, "APPROVER")),
    db: AsyncSession = Depends(get_db),
):
    q = select(Supplier)
    count_q = select(func.count(Supplier.id))
    if supplier_status:
        q = q.where(Supplier.status == supplier_status)
        count_q = count_q.where(Supplier.status == supplier_status)
    if search:
        pattern = f"%{search}%"
        q = q.where(Supplier.company_name.ilike(pattern))
        count_q = count_q.where(Supplier.company_name.ilike(pattern))

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(
        q.order_by(Supplier.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return PaginatedResponse(
        data=[supplier_service.to_response(s) for s in result.scalars().all()],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/suppliers/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    supplier = await supplier_service.get_supplier_or_404(db, supplier_id)
    return supplier_service.to_response(supplier)


@router.post("/supplier/{supplier_id}/approve", response_model=SupplierResponse)
async def approve_supplier(
    supplier_id: str,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    approval = await supplier_service.approve_supplier(
        db, supplier_id, actor=actor_name(current_user)
    )
    supplier = approval.supplier

    if approval.temp_password:
        background_tasks.add_task(
            send_notification,
            "supplier_approved",
            [supplier.registration_email],
            {
                "company_name": supplier.company_name,
                "username": approval.user.username,
                "email": supplier.registration_email,
                "temp_password": approval.temp_password,
            },
        )

    return supplier_service.to_response(supplier)
