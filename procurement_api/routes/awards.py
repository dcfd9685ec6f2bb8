from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from procurement_api.database import get_db
from procurement_api.middleware.auth import get_current_user
from procurement_api.middleware.authorization import (
    ADMIN_ROLES,
    BUYER_ROLES,
    actor_name,
    require_roles,
)
from procurement_api.schemas.award import (
    AwardApproveRequest,
    AwardInitiateRequest,
    AwardInitiateResponse,
    AwardResponse,
)
from procurement_api.services import award_service, workflow_service

router = APIRouter()


@router.post("/initiate", response_model=AwardInitiateResponse)
async def initiate_award(
    body: AwardInitiateRequest,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    outcome = await award_service.initiate_award(db, body, actor=actor_name(current_user))
    return AwardInitiateResponse(
        approved=outcome.approved,
        message="Award approved automatically" if outcome.approved else "Award requires approval",
        award_id=str(outcome.award.id),
        warnings=outcome.warnings,
    )


@router.post("/{award_id}/approve", response_model=AwardResponse)
async def approve_award(
    award_id: str,
    body: AwardApproveRequest,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    if not body.approver:
        body.approver = actor_name(current_user)
    award, _ = await award_service.approve_award(db, award_id, body)
    return await award_service.build_award_response(db, award)


@router.get("/brfq/{brfq_id}", response_model=list[AwardResponse])
async def list_awards(
    brfq_id: str,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BUYER_ROLES, "APPROVER")),
    db: AsyncSession = Depends(get_db),
):
    await workflow_service.get_brfq_or_404(db, brfq_id)
    return await award_service.list_awards_for_brfq(db, brfq_id)
