"""Approver/admin endpoints: BRFQ approval queue and modification requests."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.config import settings
from procurement_api.database import get_db
from procurement_api.middleware.auth import get_current_user
from procurement_api.middleware.authorization import ADMIN_ROLES, actor_name, require_roles
from procurement_api.models.brfq import Brfq
from procurement_api.models.modification import ModificationRequest
from procurement_api.schemas.brfq import (
    BrfqActionResponse,
    BrfqApprovalResponse,
    BrfqDecisionRequest,
    BrfqResponse,
    EmailResult,
    ModificationActionRequest,
    ModificationActionResponse,
    ModificationResponse,
)
from procurement_api.schemas.common import PaginatedResponse, build_pagination
from procurement_api.services import workflow_service
from procurement_api.services.auth_service import generate_quote_token
from procurement_api.services.brfq_service import build_brfq_response, get_linked_supplier_ids
from procurement_api.services.notification_service import (
    queue_supplier_notification,
    resolve_supplier_emails,
    send_notification,
)

logger = structlog.get_logger()
router = APIRouter()


# ---------------------------------------------------------------------------
# BRFQ approval queue
# ---------------------------------------------------------------------------


@router.get("/brfqs", response_model=PaginatedResponse[BrfqResponse])
async def list_brfqs_for_approval(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1, le=100),
    approval_status: str = Query(None, alias="approvalStatus"),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    q = select(Brfq)
    count_q = select(func.count(Brfq.id))
    if approval_status:
        q = q.where(Brfq.approval_status == approval_status)
        count_q = count_q.where(Brfq.approval_status == approval_status)

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(
        q.order_by(Brfq.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    data = [await build_brfq_response(db, b) for b in result.scalars().all()]
    return PaginatedResponse(data=data, pagination=build_pagination(page, limit, total))


@router.post("/brfqs/{brfq_id}/approve", response_model=BrfqApprovalResponse)
async def approve_brfq(
    brfq_id: str,
    body: BrfqDecisionRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    brfq, published = await workflow_service.approve_brfq(
        db,
        brfq_id,
        actor=body.approver or actor_name(current_user),
        note=body.note,
        publish_override=body.publish_override,
    )

    # Each invited supplier gets its own quote link
    base = settings.PUBLIC_BASE_URL.rstrip("/")
    supplier_ids = await get_linked_supplier_ids(db, brfq.id)
    emails = await resolve_supplier_emails(db, supplier_ids)
    results = []
    for sid in supplier_ids:
        email = emails.get(sid)
        if not email:
            results.append(
                EmailResult(supplier_id=sid, queued=False, error="No email found for supplier id")
            )
            continue
        token = generate_quote_token(brfq.id, sid)
        background_tasks.add_task(
            send_notification,
            "rfq_issued",
            [email],
            {
                "title": brfq.title,
                "close_date": brfq.close_date.isoformat() if brfq.close_date else "Not set",
                "notes": brfq.notes_to_supplier or "",
                "quote_link": f"{base}/supplier/submit-quote?token={token}",
                "register_link": f"{base}/sign-up",
            },
        )
        results.append(EmailResult(supplier_id=sid, email=email, queued=True))

    logger.info(
        "brfq_invitations_queued",
        brfq_id=brfq.id,
        queued=sum(1 for r in results if r.queued),
        skipped=sum(1 for r in results if not r.queued),
    )
    return BrfqApprovalResponse(
        message="BRFQ approved" + (" and published" if published else ""),
        brfq=await build_brfq_response(db, brfq),
        email_results=results,
    )


@router.post("/brfqs/{brfq_id}/reject", response_model=BrfqActionResponse)
async def reject_brfq(
    brfq_id: str,
    body: BrfqDecisionRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    actor = body.approver or actor_name(current_user)
    brfq = await workflow_service.reject_brfq(db, brfq_id, actor=actor, note=body.note)

    if brfq.requester_email:
        background_tasks.add_task(
            send_notification,
            "brfq_rejected",
            [brfq.requester_email],
            {
                "rfq_number": brfq.rfq_id,
                "title": brfq.title,
                "actor": actor,
                "note": body.note or "No reason provided",
            },
        )

    return BrfqActionResponse(message="BRFQ rejected", brfq=await build_brfq_response(db, brfq))


# ---------------------------------------------------------------------------
# Modification requests
# ---------------------------------------------------------------------------


@router.get("/modification-requests", response_model=list[ModificationResponse])
async def list_modification_requests(
    mod_status: str = Query(None, alias="status"),
    brfq_id: str = Query(None, alias="brfqId"),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    q = select(ModificationRequest)
    if mod_status:
        q = q.where(ModificationRequest.status == mod_status)
    if brfq_id:
        q = q.where(ModificationRequest.brfq_id == brfq_id)
    result = await db.execute(q.order_by(ModificationRequest.requested_at.desc()))
    return [workflow_service.modification_to_response(m) for m in result.scalars().all()]


@router.post(
    "/modification-requests/{modification_id}/approve",
    response_model=ModificationActionResponse,
)
async def approve_modification(
    modification_id: str,
    body: ModificationActionRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    mod, history, brfq = await workflow_service.approve_modification(
        db, modification_id, acted_by=body.acted_by or actor_name(current_user), note=body.note
    )
    if body.notify_suppliers:
        await queue_supplier_notification(
            db,
            background_tasks,
            brfq.id,
            "brfq_modified",
            {"rfq_number": brfq.rfq_id, "title": brfq.title},
        )
    return ModificationActionResponse(
        message="Modification request approved",
        data={
            "modification": workflow_service.modification_to_response(mod).model_dump(by_alias=True),
            "history": workflow_service.history_to_response(history).model_dump(by_alias=True),
            "brfq": (await build_brfq_response(db, brfq)).model_dump(by_alias=True),
        },
    )


@router.post(
    "/modification-requests/{modification_id}/reject",
    response_model=ModificationActionResponse,
)
async def reject_modification(
    modification_id: str,
    body: ModificationActionRequest,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    mod, history = await workflow_service.reject_modification(
        db, modification_id, acted_by=body.acted_by or actor_name(current_user), note=body.note
    )
    return ModificationActionResponse(
        message="Modification request rejected",
        data={
            "modification": workflow_service.modification_to_response(mod).model_dump(by_alias=True),
            "history": workflow_service.history_to_response(history).model_dump(by_alias=True),
        },
    )
