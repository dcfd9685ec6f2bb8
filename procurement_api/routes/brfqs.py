from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.database import get_db
from procurement_api.middleware.auth import get_current_user
from procurement_api.middleware.authorization import BUYER_ROLES, actor_name, require_roles
from procurement_api.models.brfq import Brfq
from procurement_api.schemas.brfq import (
    BrfqActionResponse,
    BrfqCreate,
    BrfqResponse,
    ModificationRequestCreate,
    ModificationResponse,
    PauseRequest,
    ResumeRequest,
)
from procurement_api.schemas.common import PaginatedResponse, build_pagination
from procurement_api.schemas.quote import QuoteResponse
from procurement_api.services import quote_service, workflow_service
from procurement_api.services.brfq_service import build_brfq_response, create_brfq
from procurement_api.services.notification_service import queue_supplier_notification

logger = structlog.get_logger()
router = APIRouter()


@router.post("", response_model=BrfqResponse, status_code=status.HTTP_201_CREATED)
async def create(
    body: BrfqCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    brfq = await create_brfq(db, body, created_by=current_user["user_id"])
    return await build_brfq_response(db, brfq)


@router.get("", response_model=PaginatedResponse[BrfqResponse])
async def list_brfqs(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1, le=100),
    brfq_status: str = Query(None, alias="status"),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    q = select(Brfq)
    count_q = select(func.count(Brfq.id))
    if brfq_status:
        q = q.where(Brfq.status == brfq_status)
        count_q = count_q.where(Brfq.status == brfq_status)

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(
        q.order_by(Brfq.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    data = [await build_brfq_response(db, b) for b in result.scalars().all()]
    return PaginatedResponse(data=data, pagination=build_pagination(page, limit, total))


@router.get("/{brfq_id}", response_model=BrfqResponse)
async def get_brfq(
    brfq_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    brfq = await workflow_service.get_brfq_or_404(db, brfq_id)
    return await build_brfq_response(db, brfq)


@router.post("/{brfq_id}/submit", response_model=BrfqActionResponse)
async def submit_for_approval(
    brfq_id: str,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    brfq = await workflow_service.submit_brfq_for_approval(db, brfq_id, actor_name(current_user))
    return BrfqActionResponse(
        message="BRFQ submitted for approval",
        brfq=await build_brfq_response(db, brfq),
    )


@router.post(
    "/{brfq_id}/modification-request",
    response_model=ModificationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_modification(
    brfq_id: str,
    body: ModificationRequestCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    mod = await workflow_service.create_modification_request(
        db,
        brfq_id,
        requested_by=body.requested_by or actor_name(current_user),
        requested_fields=body.requested_fields,
        summary=body.summary,
        note=body.note,
    )
    return workflow_service.modification_to_response(mod)


@router.post("/{brfq_id}/pause", response_model=BrfqActionResponse)
async def pause(
    brfq_id: str,
    body: PauseRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    actor = body.requested_by or actor_name(current_user)
    brfq, _ = await workflow_service.pause_brfq(
        db, brfq_id, actor, body.reason_text, body.notify_suppliers
    )
    if body.notify_suppliers:
        await queue_supplier_notification(
            db,
            background_tasks,
            brfq.id,
            "brfq_paused",
            {
                "rfq_number": brfq.rfq_id,
                "title": brfq.title,
                "actor": actor,
                "reason": body.reason_text or "No reason provided",
            },
        )
    return BrfqActionResponse(message="BRFQ paused", brfq=await build_brfq_response(db, brfq))


@router.post("/{brfq_id}/resume", response_model=BrfqActionResponse)
async def resume(
    brfq_id: str,
    body: ResumeRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    actor = body.performed_by or actor_name(current_user)
    brfq, _ = await workflow_service.resume_brfq(db, brfq_id, actor, body.notify_suppliers)
    if body.notify_suppliers:
        await queue_supplier_notification(
            db,
            background_tasks,
            brfq.id,
            "brfq_resumed",
            {"rfq_number": brfq.rfq_id, "title": brfq.title, "actor": actor},
        )
    return BrfqActionResponse(message="BRFQ resumed", brfq=await build_brfq_response(db, brfq))


@router.get("/{brfq_id}/quotes", response_model=list[QuoteResponse])
async def list_quotes(
    brfq_id: str,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES, "APPROVER")),
    db: AsyncSession = Depends(get_db),
):
    await workflow_service.get_brfq_or_404(db, brfq_id)
    quotes = await quote_service.list_quotes_for_brfq(db, brfq_id)
    return [quote_service.to_response(q) for q in quotes]
