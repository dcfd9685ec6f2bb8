"""
Append-only audit trail for supplier, BRFQ and award decisions.

Rows are added to the caller's session and flushed; they commit or roll back
together with the change they describe.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.models.audit_log import AuditLog

logger = structlog.get_logger()


def changed_keys(before: Optional[dict], after: Optional[dict]) -> Optional[list[str]]:
    if not before or not after:
        return None
    keys = sorted(k for k in before.keys() | after.keys() if before.get(k) != after.get(k))
    return keys or None


def _snapshot(state: Optional[dict]) -> Optional[dict[str, Any]]:
    # Decimals and datetimes must survive the JSON column
    return jsonable_encoder(state) if state is not None else None


async def create_audit_log(
    session: AsyncSession,
    actor: Optional[str],
    action: str,
    entity_type: str,
    entity_id: str,
    before_state: Optional[dict] = None,
    after_state: Optional[dict] = None,
) -> AuditLog:
    if not entity_id:
        raise ValueError("entity_id is required")

    entry = AuditLog(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_state=_snapshot(before_state),
        after_state=_snapshot(after_state),
        changed_fields=changed_keys(before_state, after_state),
        request_id=structlog.contextvars.get_contextvars().get("request_id"),
        created_at=datetime.utcnow(),
    )
    session.add(entry)
    await session.flush()

    logger.debug("audit_recorded", action=action, entity=f"{entity_type}:{entity_id}", actor=actor)
    return entry
