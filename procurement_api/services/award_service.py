"""
Award rule evaluation and the award approval flow.

``evaluate_rules`` is pure: it turns an award request into the list of
warnings that force a manual approval. An award with no warnings is approved
on the spot and its BRFQ marked ``awarded``; otherwise it waits in
``pending`` until ``approve_award`` is called.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
import json
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.config import settings
from procurement_api.models.award import Award, AwardApprovalHistory, AwardWinner
from procurement_api.models.supplier import Supplier
from procurement_api.schemas.award import (
    AwardApproveRequest,
    AwardHistoryResponse,
    AwardInitiateRequest,
    AwardResponse,
    AwardWinnerResponse,
    WinnerInput,
)
from procurement_api.services.audit_service import create_audit_log
from procurement_api.services.workflow_service import (
    AWARDED,
    OPEN_STATUSES,
    ensure_open,
    get_brfq_or_404,
    raise_conflict,
    transition,
)

logger = structlog.get_logger()

AWARD_PENDING = "pending"
AWARD_APPROVED = "approved"


@dataclass
class AwardOutcome:
    award: Award
    approved: bool
    warnings: list[str] = field(default_factory=list)


def evaluate_rules(
    estimated_value: Optional[Decimal],
    split_award: bool,
    supplier_count: int,
    value_threshold: Optional[float] = None,
    split_requires_approval: Optional[bool] = None,
) -> list[str]:
    """Warnings for every rule the request trips; empty means auto-approve."""
    if value_threshold is None:
        value_threshold = settings.AWARD_VALUE_THRESHOLD
    if split_requires_approval is None:
        split_requires_approval = settings.AWARD_SPLIT_REQUIRES_APPROVAL

    messages = []
    value = float(estimated_value or 0)
    if value_threshold and value > value_threshold:
        messages.append(
            f"Estimated award value {value:g} exceeds threshold {value_threshold:g}."
        )
    if split_award and split_requires_approval:
        messages.append(
            f"Split award to {supplier_count} suppliers requires higher-level approval."
        )
    return messages


def to_response(
    award: Award, winners: list[AwardWinner], history: list[AwardApprovalHistory]
) -> AwardResponse:
    return AwardResponse(
        id=str(award.id),
        brfq_id=str(award.brfq_id),
        status=award.status,
        justification=award.justification,
        estimated_value=float(award.estimated_value) if award.estimated_value is not None else None,
        split_award=bool(award.split_award),
        approved_by=award.approved_by,
        approved_at=award.approved_at.isoformat() if award.approved_at else None,
        created_at=award.created_at.isoformat() if award.created_at else "",
        winners=[
            AwardWinnerResponse(
                id=str(w.id),
                supplier_id=str(w.supplier_id),
                amount=float(w.amount) if w.amount is not None else None,
            )
            for w in winners
        ],
        approvals=[
            AwardHistoryResponse(
                id=str(h.id),
                action=h.action,
                by_user=h.by_user,
                note=h.note,
                created_at=h.created_at.isoformat() if h.created_at else "",
            )
            for h in history
        ],
    )


async def _ensure_suppliers_exist(db: AsyncSession, supplier_ids: list[str]) -> None:
    if not supplier_ids:
        return
    found = await db.execute(select(Supplier.id).where(Supplier.id.in_(supplier_ids)))
    missing = set(supplier_ids) - {row[0] for row in found.all()}
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown supplier ids: {', '.join(sorted(missing))}",
        )


def _add_winners(db: AsyncSession, award_id: str, winners: list[WinnerInput]) -> None:
    for w in winners:
        db.add(AwardWinner(award_id=award_id, supplier_id=w.supplier_id, amount=w.amount))


async def initiate_award(
    db: AsyncSession, body: AwardInitiateRequest, actor: Optional[str] = None
) -> AwardOutcome:
    if not body.brfq_id or not body.supplier_ids:
        raise HTTPException(
            status_code=400, detail="brfqId and at least one supplierId are required"
        )

    brfq = await get_brfq_or_404(db, body.brfq_id)
    ensure_open(brfq, AWARDED, "award")
    supplier_ids = list(dict.fromkeys(body.supplier_ids))
    winners = body.winners or [WinnerInput(supplier_id=sid) for sid in supplier_ids]
    await _ensure_suppliers_exist(db, supplier_ids + [w.supplier_id for w in winners])

    triggered = evaluate_rules(body.estimated_value, body.split_award, len(supplier_ids))
    approved = not triggered
    now = datetime.utcnow()

    award = Award(
        brfq_id=brfq.id,
        status=AWARD_APPROVED if approved else AWARD_PENDING,
        justification=body.justification,
        estimated_value=body.estimated_value,
        split_award=body.split_award,
        created_by=actor or "system",
        approved_by="system" if approved else None,
        approved_at=now if approved else None,
    )
    db.add(award)
    await db.flush()

    _add_winners(db, award.id, winners)
    if approved:
        brfq.status = AWARDED
    else:
        db.add(
            AwardApprovalHistory(
                award_id=award.id,
                action="requested",
                by_user=actor or "system",
                note=json.dumps({"triggered": triggered}),
            )
        )
    await db.flush()

    await create_audit_log(
        db,
        actor=actor,
        action="AWARD_INITIATED",
        entity_type="AWARD",
        entity_id=award.id,
        after_state={"status": award.status, "brfq_id": brfq.id},
    )
    logger.info(
        "award_initiated",
        award_id=award.id,
        brfq_id=brfq.id,
        approved=approved,
        triggered=len(triggered),
    )
    return AwardOutcome(award=award, approved=approved, warnings=triggered)


async def get_award_or_404(db: AsyncSession, award_id: str) -> Award:
    result = await db.execute(select(Award).where(Award.id == award_id))
    award = result.scalar_one_or_none()
    if not award:
        raise HTTPException(status_code=404, detail="Award not found")
    return award


async def approve_award(
    db: AsyncSession, award_id: str, body: AwardApproveRequest
) -> tuple[Award, bool]:
    """Approve a pending award; returns ``(award, changed)``."""
    award = await get_award_or_404(db, award_id)
    if award.status == AWARD_APPROVED:
        return award, False

    brfq = await get_brfq_or_404(db, award.brfq_id)
    result = transition(brfq.status, AWARDED, OPEN_STATUSES, "award", "BRFQ")
    if not result.ok:
        raise_conflict(result)

    approver = body.approver or "approver"
    # Winners recorded at initiation stand unless the approver names new ones
    if body.winners:
        await _ensure_suppliers_exist(db, [w.supplier_id for w in body.winners])
        await db.execute(delete(AwardWinner).where(AwardWinner.award_id == award.id))
        _add_winners(db, award.id, body.winners)

    before = {"status": award.status}
    award.status = AWARD_APPROVED
    award.approved_by = approver
    award.approved_at = datetime.utcnow()
    brfq.status = AWARDED

    db.add(
        AwardApprovalHistory(
            award_id=award.id, action="approved", by_user=approver, note=body.note
        )
    )
    await db.flush()

    await create_audit_log(
        db,
        actor=approver,
        action="AWARD_APPROVED",
        entity_type="AWARD",
        entity_id=award.id,
        before_state=before,
        after_state={"status": award.status},
    )
    logger.info("award_approved", award_id=award.id, brfq_id=brfq.id, by=approver)
    return award, True


async def list_awards_for_brfq(db: AsyncSession, brfq_id: str) -> list[AwardResponse]:
    awards = (
        await db.execute(
            select(Award).where(Award.brfq_id == brfq_id).order_by(Award.created_at.desc())
        )
    ).scalars().all()
    if not awards:
        return []

    ids = [a.id for a in awards]
    winners = (
        await db.execute(select(AwardWinner).where(AwardWinner.award_id.in_(ids)))
    ).scalars().all()
    history = (
        await db.execute(
            select(AwardApprovalHistory)
            .where(AwardApprovalHistory.award_id.in_(ids))
            .order_by(AwardApprovalHistory.created_at)
        )
    ).scalars().all()

    winners_by_award: dict[str, list[AwardWinner]] = {}
    for w in winners:
        winners_by_award.setdefault(w.award_id, []).append(w)
    history_by_award: dict[str, list[AwardApprovalHistory]] = {}
    for h in history:
        history_by_award.setdefault(h.award_id, []).append(h)

    return [
        to_response(a, winners_by_award.get(a.id, []), history_by_award.get(a.id, []))
        for a in awards
    ]


async def build_award_response(db: AsyncSession, award: Award) -> AwardResponse:
    winners = (
        await db.execute(select(AwardWinner).where(AwardWinner.award_id == award.id))
    ).scalars().all()
    history = (
        await db.execute(
            select(AwardApprovalHistory)
            .where(AwardApprovalHistory.award_id == award.id)
            .order_by(AwardApprovalHistory.created_at)
        )
    ).scalars().all()
    return to_response(award, list(winners), list(history))
