"""
Status transitions for BRFQs and modification requests.

Approval-oriented records move one way out of ``pending``:

    pending → approved
    pending → rejected

Nothing moves out of ``approved`` or ``rejected``. Every guarded write goes
through ``transition()`` first; a failed result becomes a 400 whose message
embeds the current status. All writes of one call share the caller's session,
so they commit or roll back together.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from fastapi import HTTPException, status as http_status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.models.brfq import Brfq, BrfqApprovalStep, PauseAction, RequestItem
from procurement_api.models.modification import (
    ModificationApprovalHistory,
    ModificationRequest,
)
from procurement_api.schemas.brfq import ModificationHistoryResponse, ModificationResponse
from procurement_api.services.audit_service import create_audit_log

logger = structlog.get_logger()

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

# BRFQ.status values outside the approval pair
DRAFT = "draft"
PUBLISHED = "PUBLISHED"
MODIFYING = "modifying"
PAUSED = "paused"
AWARDED = "awarded"
MODIFICATION_PENDING = "modification_pending"

# Statuses of an approved BRFQ that is still live: it can be changed, quoted and awarded
OPEN_STATUSES = (PUBLISHED, APPROVED)

# Keys of a modification summary copied straight onto the BRFQ
MODIFIABLE_FIELDS = {
    "title": "title",
    "currency": "currency",
    "incoterms": "incoterms",
    "carrier": "carrier",
    "notesToSupplier": "notes_to_supplier",
    "targetPrice": "target_price",
}


@dataclass
class TransitionResult:
    ok: bool
    previous: Optional[str]
    target: str
    reason: Optional[str] = None


def transition(
    current: Optional[str],
    target: str,
    allowed_from: Iterable[Optional[str]],
    action: str,
    entity_label: str,
) -> TransitionResult:
    """Check a status move without touching the database."""
    if current in tuple(allowed_from):
        return TransitionResult(ok=True, previous=current, target=target)
    return TransitionResult(
        ok=False,
        previous=current,
        target=target,
        reason=f"Cannot {action} {entity_label} with status {current}",
    )


def raise_conflict(result: TransitionResult) -> None:
    """400 ``INVALID_STATUS_TRANSITION`` carrying the failed result's reason."""
    raise HTTPException(
        status_code=http_status.HTTP_400_BAD_REQUEST,
        detail={"code": "INVALID_STATUS_TRANSITION", "message": result.reason},
    )


def ensure_open(brfq: Brfq, target: str, action: str) -> None:
    """Raise the 400 conflict unless the BRFQ is approved and in an open status."""
    result = transition(brfq.approval_status, target, (APPROVED,), action, "BRFQ")
    if result.ok:
        result = transition(brfq.status, target, OPEN_STATUSES, action, "BRFQ")
    if not result.ok:
        raise_conflict(result)


async def get_brfq_or_404(session: AsyncSession, brfq_id: str) -> Brfq:
    result = await session.execute(select(Brfq).where(Brfq.id == brfq_id))
    brfq = result.scalar_one_or_none()
    if not brfq:
        raise HTTPException(status_code=404, detail="BRFQ not found")
    return brfq


async def get_modification_or_404(
    session: AsyncSession, modification_id: str
) -> ModificationRequest:
    result = await session.execute(
        select(ModificationRequest).where(ModificationRequest.id == modification_id)
    )
    mod = result.scalar_one_or_none()
    if not mod:
        raise HTTPException(status_code=404, detail="Modification request not found")
    return mod


def _brfq_state(brfq: Brfq) -> dict:
    return {
        "status": brfq.status,
        "approval_status": brfq.approval_status,
        "published": brfq.published,
    }


# ---------------------------------------------------------------------------
# BRFQ approval
# ---------------------------------------------------------------------------


async def submit_brfq_for_approval(
    session: AsyncSession, brfq_id: str, actor: str
) -> Brfq:
    """Move a draft BRFQ into the approval queue."""
    brfq = await get_brfq_or_404(session, brfq_id)
    result = transition(brfq.status, PENDING, (DRAFT,), "submit", "BRFQ")
    if not result.ok:
        raise_conflict(result)

    before = _brfq_state(brfq)
    brfq.status = PENDING
    brfq.approval_status = PENDING
    await create_audit_log(
        session,
        actor=actor,
        action="BRFQ_SUBMITTED",
        entity_type="BRFQ",
        entity_id=brfq.id,
        before_state=before,
        after_state=_brfq_state(brfq),
    )
    logger.info("brfq_submitted_for_approval", brfq_id=brfq.id, by=actor)
    return brfq


async def reject_brfq(
    session: AsyncSession,
    brfq_id: str,
    actor: Optional[str] = None,
    note: Optional[str] = None,
) -> Brfq:
    """
    Reject a BRFQ awaiting approval.

    Only ``approval_status == "pending"`` may be rejected. The BRFQ is
    unpublished and the decision recorded as an approval step.
    """
    actor = actor or "admin"
    brfq = await get_brfq_or_404(session, brfq_id)
    result = transition(brfq.approval_status, REJECTED, (PENDING,), "reject", "BRFQ")
    if not result.ok:
        raise_conflict(result)

    before = _brfq_state(brfq)
    now = datetime.utcnow()
    brfq.status = REJECTED
    brfq.approval_status = REJECTED
    brfq.approved_by = actor
    brfq.approved_at = now
    brfq.approval_note = note or None
    brfq.published = False

    session.add(
        BrfqApprovalStep(brfq_id=brfq.id, action="reject", acted_by=actor, note=note, acted_at=now)
    )
    await create_audit_log(
        session,
        actor=actor,
        action="BRFQ_REJECTED",
        entity_type="BRFQ",
        entity_id=brfq.id,
        before_state=before,
        after_state=_brfq_state(brfq),
    )
    logger.info("brfq_rejected", brfq_id=brfq.id, by=actor)
    return brfq


async def approve_brfq(
    session: AsyncSession,
    brfq_id: str,
    actor: Optional[str] = None,
    note: Optional[str] = None,
    publish_override: Optional[bool] = None,
) -> tuple[Brfq, bool]:
    """
    Approve a BRFQ; returns ``(brfq, published_now)``.

    Allowed from a pending approval or from a BRFQ that never entered the
    approval queue (``none``/null). Publishing follows ``publish_override``
    when given, else the BRFQ's own ``publish_on_approval`` flag.
    """
    actor = actor or "admin"
    brfq = await get_brfq_or_404(session, brfq_id)
    result = transition(
        brfq.approval_status, APPROVED, (PENDING, "none", None), "approve", "BRFQ"
    )
    if not result.ok:
        raise_conflict(result)

    should_publish = (
        publish_override if isinstance(publish_override, bool) else bool(brfq.publish_on_approval)
    )

    before = _brfq_state(brfq)
    now = datetime.utcnow()
    brfq.approval_status = APPROVED
    brfq.approved_by = actor
    brfq.approved_at = now
    brfq.approval_note = note or None
    if should_publish:
        brfq.published = True
        brfq.status = APPROVED

    session.add(
        BrfqApprovalStep(brfq_id=brfq.id, action="approve", acted_by=actor, note=note, acted_at=now)
    )
    await create_audit_log(
        session,
        actor=actor,
        action="BRFQ_APPROVED",
        entity_type="BRFQ",
        entity_id=brfq.id,
        before_state=before,
        after_state=_brfq_state(brfq),
    )
    logger.info("brfq_approved", brfq_id=brfq.id, by=actor, published=should_publish)
    return brfq, should_publish


# ---------------------------------------------------------------------------
# Modification requests
# ---------------------------------------------------------------------------


async def create_modification_request(
    session: AsyncSession,
    brfq_id: str,
    requested_by: Optional[str],
    requested_fields: list[str],
    summary: dict,
    note: Optional[str],
) -> ModificationRequest:
    """
    Record a pending modification and pause bidding on the BRFQ.

    Only an approved, open BRFQ without another pending request can be
    modified. The status and publish flag it had are kept on the request so a
    rejection can put them back.
    """
    brfq = await get_brfq_or_404(session, brfq_id)
    ensure_open(brfq, MODIFYING, "request modification for")
    pending = await session.execute(
        select(ModificationRequest.id).where(
            ModificationRequest.brfq_id == brfq.id,
            ModificationRequest.status == PENDING,
        )
    )
    if pending.first() is not None:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "MODIFICATION_ALREADY_PENDING",
                "message": "BRFQ already has a pending modification request",
            },
        )
    requested_by = requested_by or "unknown"

    mod = ModificationRequest(
        brfq_id=brfq.id,
        requested_by=requested_by,
        field=requested_fields[0] if requested_fields else "general",
        reason=note or "Modification requested",
        summary=summary or {},
        status=PENDING,
        requested_at=datetime.utcnow(),
        previous_status=brfq.status,
        previous_published=bool(brfq.published),
    )
    session.add(mod)

    before = _brfq_state(brfq)
    brfq.published = False
    brfq.status = MODIFYING
    brfq.approval_status = MODIFICATION_PENDING
    await session.flush()

    await create_audit_log(
        session,
        actor=requested_by,
        action="BRFQ_MODIFICATION_REQUESTED",
        entity_type="BRFQ",
        entity_id=brfq.id,
        before_state=before,
        after_state=_brfq_state(brfq),
    )
    logger.info("modification_requested", brfq_id=brfq.id, modification_id=mod.id)
    return mod


async def reject_modification(
    session: AsyncSession,
    modification_id: str,
    acted_by: Optional[str] = None,
    note: Optional[str] = None,
) -> tuple[ModificationRequest, ModificationApprovalHistory]:
    """
    Reject a pending modification request.

    The status change, its history row and the BRFQ going back to the status
    and publish flag it had before the request are flushed together. A request
    that is not pending is left untouched and no history is written.
    """
    acted_by = acted_by or "admin"
    mod = await get_modification_or_404(session, modification_id)
    result = transition(mod.status, REJECTED, (PENDING,), "reject", "modification request")
    if not result.ok:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "INVALID_STATUS_TRANSITION",
                "message": f"Modification request is not pending (status {mod.status})",
            },
        )

    now = datetime.utcnow()
    mod.status = REJECTED
    mod.processed_by = acted_by
    mod.processed_at = now
    history = ModificationApprovalHistory(
        modification_id=mod.id,
        action="reject",
        acted_by=acted_by,
        acted_at=now,
        note=note or "",
    )
    session.add(history)

    brfq = (
        await session.execute(select(Brfq).where(Brfq.id == mod.brfq_id))
    ).scalar_one_or_none()
    if brfq is not None and brfq.status == MODIFYING:
        brfq.status = mod.previous_status or APPROVED
        brfq.approval_status = APPROVED
        brfq.published = bool(mod.previous_published)
    await session.flush()

    logger.info("modification_rejected", modification_id=mod.id, by=acted_by)
    return mod, history


def _summary_to(summary: dict, key: str):
    entry = summary.get(key)
    if isinstance(entry, dict) and "to" in entry:
        return True, entry["to"]
    return False, None


def _parse_datetime(value) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def apply_modification_summary(brfq: Brfq, summary: dict) -> Optional[list[dict]]:
    """
    Copy ``summary[key]["to"]`` values onto the BRFQ.

    Returns the replacement item rows when the summary carries ``items``,
    otherwise None.
    """
    for key, attr in MODIFIABLE_FIELDS.items():
        present, value = _summary_to(summary, key)
        if not present:
            continue
        if attr == "target_price" and value is not None:
            try:
                value = Decimal(str(value))
            except InvalidOperation:
                continue
        setattr(brfq, attr, value)

    present, value = _summary_to(summary, "closeDateTime")
    if present:
        close = _parse_datetime(value)
        if close is not None:
            brfq.close_date = close

    present, value = _summary_to(summary, "publishOnApproval")
    if present:
        brfq.publish_on_approval = bool(value)
        if brfq.publish_on_approval:
            brfq.published = True

    present, value = _summary_to(summary, "items")
    if not present or not isinstance(value, list):
        return None

    rows = []
    for it in value:
        if not isinstance(it, dict):
            continue
        try:
            quantity = int(float(it.get("quantity", it.get("qty", 0)) or 0))
        except (TypeError, ValueError):
            quantity = 0
        rows.append(
            {
                "internal_part_no": it.get("internalPartNo"),
                "manufacturer": it.get("manufacturer"),
                "mfg_part_no": it.get("mfgPartNo"),
                "description": it.get("description") or it.get("itemDescription") or "",
                "uom": it.get("uom") or it.get("UOM") or "EA",
                "quantity": quantity,
            }
        )
    return rows


async def approve_modification(
    session: AsyncSession,
    modification_id: str,
    acted_by: Optional[str] = None,
    note: Optional[str] = None,
) -> tuple[ModificationRequest, ModificationApprovalHistory, Brfq]:
    """
    Approve a pending modification request and apply it to its BRFQ.

    Item replacement, the BRFQ update, the request status and the history row
    all land in the caller's unit of work.
    """
    acted_by = acted_by or "admin"
    mod = await get_modification_or_404(session, modification_id)
    result = transition(mod.status, APPROVED, (PENDING,), "approve", "modification request")
    if not result.ok:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "INVALID_STATUS_TRANSITION",
                "message": f"Modification request is not pending (status {mod.status})",
            },
        )

    brfq = await get_brfq_or_404(session, mod.brfq_id)
    brfq_result = transition(brfq.status, APPROVED, (MODIFYING,), "apply modification to", "BRFQ")
    if not brfq_result.ok:
        raise_conflict(brfq_result)
    before = _brfq_state(brfq)
    now = datetime.utcnow()

    new_items = apply_modification_summary(brfq, mod.summary or {})
    if new_items is not None:
        await session.execute(delete(RequestItem).where(RequestItem.brfq_id == brfq.id))
        for row in new_items:
            session.add(RequestItem(brfq_id=brfq.id, **row))

    brfq.status = APPROVED
    brfq.approval_status = APPROVED
    brfq.approved_at = now
    brfq.approved_by = acted_by
    # Bidding reopens if the BRFQ was live before the request
    brfq.published = bool(brfq.published or mod.previous_published)

    mod.status = APPROVED
    mod.processed_by = acted_by
    mod.processed_at = now
    history = ModificationApprovalHistory(
        modification_id=mod.id,
        action="approve",
        acted_by=acted_by,
        acted_at=now,
        note=note or "",
    )
    session.add(history)
    await session.flush()

    await create_audit_log(
        session,
        actor=acted_by,
        action="BRFQ_MODIFICATION_APPROVED",
        entity_type="BRFQ",
        entity_id=brfq.id,
        before_state=before,
        after_state=_brfq_state(brfq),
    )
    logger.info(
        "modification_approved",
        modification_id=mod.id,
        brfq_id=brfq.id,
        items_replaced=new_items is not None,
        by=acted_by,
    )
    return mod, history, brfq


# ---------------------------------------------------------------------------
# Pause / resume
# ---------------------------------------------------------------------------


async def pause_brfq(
    session: AsyncSession,
    brfq_id: str,
    requested_by: Optional[str],
    reason: Optional[str],
    notify_suppliers: bool = True,
) -> tuple[Brfq, PauseAction]:
    requested_by = requested_by or "unknown_user"
    brfq = await get_brfq_or_404(session, brfq_id)
    if brfq.status == PAUSED:
        raise_conflict(
            TransitionResult(
                ok=False, previous=PAUSED, target=PAUSED,
                reason=f"Cannot pause BRFQ with status {brfq.status}",
            )
        )

    action = PauseAction(
        brfq_id=brfq.id,
        action="paused",
        performed_by=requested_by,
        previous_status=brfq.status,
        reason=reason,
        notify_suppliers=notify_suppliers,
    )
    session.add(action)
    brfq.status = PAUSED
    await session.flush()
    logger.info("brfq_paused", brfq_id=brfq.id, by=requested_by)
    return brfq, action


async def resume_brfq(
    session: AsyncSession,
    brfq_id: str,
    performed_by: Optional[str],
    notify_suppliers: bool = True,
) -> tuple[Brfq, PauseAction]:
    """
    Resume a paused BRFQ.

    The restored status is ``PUBLISHED`` for a published BRFQ, ``approved``
    once approval went through, else whatever it was before the last pause.
    """
    performed_by = performed_by or "unknown_user"
    brfq = await get_brfq_or_404(session, brfq_id)
    result = transition(brfq.status, DRAFT, (PAUSED,), "resume", "BRFQ")
    if not result.ok:
        raise_conflict(result)

    last_pause = (
        await session.execute(
            select(PauseAction)
            .where(PauseAction.brfq_id == brfq.id, PauseAction.action == "paused")
            .order_by(PauseAction.created_at.desc())
        )
    ).scalars().first()

    if brfq.published:
        new_status = PUBLISHED
    elif brfq.approval_status == APPROVED:
        new_status = APPROVED
    elif last_pause is not None and last_pause.previous_status not in (None, PAUSED):
        new_status = last_pause.previous_status
    else:
        new_status = DRAFT

    action = PauseAction(
        brfq_id=brfq.id,
        action="resumed",
        performed_by=performed_by,
        previous_status=PAUSED,
        notify_suppliers=notify_suppliers,
    )
    session.add(action)
    brfq.status = new_status
    await session.flush()
    logger.info("brfq_resumed", brfq_id=brfq.id, status=new_status, by=performed_by)
    return brfq, action


# ---------------------------------------------------------------------------
# Response shaping
# ---------------------------------------------------------------------------


def modification_to_response(mod: ModificationRequest) -> ModificationResponse:
    return ModificationResponse(
        id=str(mod.id),
        brfq_id=str(mod.brfq_id),
        requested_by=mod.requested_by,
        field=mod.field,
        reason=mod.reason,
        summary=mod.summary,
        status=mod.status,
        processed_by=mod.processed_by,
        processed_at=mod.processed_at.isoformat() if mod.processed_at else None,
        requested_at=mod.requested_at.isoformat() if mod.requested_at else "",
    )


def history_to_response(h: ModificationApprovalHistory) -> ModificationHistoryResponse:
    return ModificationHistoryResponse(
        id=str(h.id),
        modification_id=str(h.modification_id),
        action=h.action,
        acted_by=h.acted_by,
        acted_at=h.acted_at.isoformat() if h.acted_at else "",
        note=h.note,
    )
