"""
Notification templates and their dispatch by email.

Recipient addresses are resolved DURING the request (while the DB session is
open), then dispatched via BackgroundTasks (fire-and-forget).
"""

from html import escape
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.config import settings
from procurement_api.models.supplier import Supplier
from procurement_api.services.brfq_service import get_linked_supplier_ids
from procurement_api.services.email_service import normalize_recipients, send_email

logger = structlog.get_logger()

# ---------- Template registry ----------

TEMPLATES = {
    "rfq_issued": {
        "subject": "New RFQ published: {title}",
        "html": (
            "<h2>New Request for Quotation (RFQ)</h2>"
            "<p>Dear Supplier,</p>"
            "<p>You have been invited to respond to the following RFQ:</p>"
            "<p><strong>Title:</strong> {title}<br>"
            "<strong>Close Date:</strong> {close_date}<br>"
            "<strong>Notes:</strong> {notes}</p>"
            "<p><a href=\"{quote_link}\">Respond without registering</a> | "
            "<a href=\"{register_link}\">Join our suppliers (verified)</a></p>"
            "<p>Thank you,<br><strong>Your Procurement Team</strong></p>"
        ),
    },
    "brfq_rejected": {
        "subject": "RFQ {rfq_number}: Rejected",
        "html": (
            "<h2>Request Rejected</h2>"
            "<p>Your request <strong>{rfq_number}</strong> ({title}) has been "
            "<span style='color:red'>rejected</span> by {actor}.</p>"
            "<p><strong>Reason:</strong> {note}</p>"
        ),
    },
    "brfq_modified": {
        "subject": "RFQ Updated – {rfq_number}",
        "html": (
            "<h2>RFQ Updated</h2>"
            "<p>The RFQ <strong>{title}</strong> ({rfq_number}) has been updated. "
            "Please review the changes before quoting.</p>"
        ),
    },
    "brfq_paused": {
        "subject": "RFQ {rfq_number} paused",
        "html": (
            "<p>The RFQ <strong>{title}</strong> has been paused by {actor}.</p>"
            "<p><strong>Reason:</strong> {reason}</p>"
        ),
    },
    "brfq_resumed": {
        "subject": "RFQ {rfq_number} resumed",
        "html": (
            "<p>The RFQ <strong>{title}</strong> has been resumed by {actor}. "
            "Please continue with bidding as applicable.</p>"
        ),
    },
    "supplier_approved": {
        "subject": "Welcome to {app_name}: Your Supplier Account",
        "html": (
            "<h2>Welcome to {app_name}!</h2>"
            "<p>Your supplier registration for <strong>{company_name}</strong> "
            "has been approved.</p>"
            "<p><strong>Username:</strong> {username}<br>"
            "<strong>Login Email:</strong> {email}<br>"
            "<strong>Temporary Password:</strong> {temp_password}</p>"
            "<p>Please log in and change your password immediately.</p>"
        ),
    },
}


def render_template(template_id: str, context: dict) -> Optional[tuple[str, str]]:
    """Return ``(subject, html)`` or None if the template is unknown or incomplete."""
    template = TEMPLATES.get(template_id)
    if not template:
        logger.warning("notification_template_not_found", template_id=template_id)
        return None

    safe = {"app_name": settings.APP_NAME}
    safe.update({k: escape(str(v)) if v is not None else "" for k, v in context.items()})
    try:
        return template["subject"].format(**safe), template["html"].format(**safe)
    except KeyError as e:
        logger.error("notification_template_render_error", template_id=template_id, missing_key=str(e))
        return None


async def resolve_supplier_emails(
    session: AsyncSession, supplier_ids: list[str]
) -> dict[str, Optional[str]]:
    """Map each supplier id to its registration email (None when unknown)."""
    emails: dict[str, Optional[str]] = {sid: None for sid in supplier_ids}
    if not supplier_ids:
        return emails
    result = await session.execute(
        select(Supplier.id, Supplier.registration_email).where(Supplier.id.in_(supplier_ids))
    )
    for sid, email in result.all():
        emails[sid] = email
    return emails


async def send_notification(
    template_id: str,
    recipient_emails: list[str],
    context: dict,
) -> bool:
    """Render template and dispatch email."""
    emails = normalize_recipients(recipient_emails)
    if not emails:
        logger.warning("notification_no_recipients", template_id=template_id)
        return False

    rendered = render_template(template_id, context)
    if rendered is None:
        return False
    subject, html = rendered

    result = await send_email(emails, subject, html, tag=template_id)

    logger.info(
        "notification_sent",
        template_id=template_id,
        recipients=emails,
        success=result,
    )
    return result


async def queue_supplier_notification(
    session: AsyncSession,
    background_tasks: BackgroundTasks,
    brfq_id: str,
    template_id: str,
    context: dict,
) -> list[str]:
    """
    Resolve the BRFQ's linked supplier emails now and queue one notice per
    address, so no supplier sees who else was invited. Returns the addresses
    queued.
    """
    supplier_ids = await get_linked_supplier_ids(session, brfq_id)
    emails = normalize_recipients(
        (await resolve_supplier_emails(session, supplier_ids)).values()
    )
    for email in emails:
        background_tasks.add_task(send_notification, template_id, [email], context)
    logger.info(
        "supplier_notification_queued",
        brfq_id=brfq_id,
        template_id=template_id,
        recipients=len(emails),
    )
    return emails
