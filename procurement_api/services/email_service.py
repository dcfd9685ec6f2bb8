"""
Transactional email over the Brevo REST API.

A single shared ``httpx.AsyncClient`` is used for every send and closed on
shutdown. Sends are retried on network errors and 5xx answers; a 4xx answer
or exhausted retries make ``send_email`` return False. It never raises, so it
is safe to run from ``BackgroundTasks``.
"""

from typing import Iterable, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, before_sleep_log
import logging
import structlog

from procurement_api.config import settings

logger = structlog.get_logger()
_std_logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"

_http_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
    _http_client = None


class EmailDeliveryError(Exception):
    """Transient Brevo failure (network error or 5xx)."""


def normalize_recipients(to_emails: Iterable[Optional[str]]) -> List[str]:
    """Trimmed, lower-cased, de-duplicated addresses in first-seen order."""
    seen = []
    for email in to_emails:
        if not email:
            continue
        email = email.strip().lower()
        if email and email not in seen:
            seen.append(email)
    return seen


def build_payload(
    to_emails: List[str],
    subject: str,
    html_content: str,
    tag: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> dict:
    payload = {
        "sender": {"name": settings.APP_NAME, "email": settings.EMAIL_FROM_ADDRESS},
        "to": [{"email": email} for email in to_emails],
        "subject": subject,
        "htmlContent": html_content,
    }
    if tag:
        payload["tags"] = [tag]
    if reply_to:
        payload["replyTo"] = {"email": reply_to}
    return payload


@retry(
    retry=retry_if_exception_type(EmailDeliveryError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    before_sleep=before_sleep_log(_std_logger, logging.WARNING),
    reraise=True,
)
async def _post_to_brevo(payload: dict) -> httpx.Response:
    headers = {
        "accept": "application/json",
        "api-key": settings.BREVO_API_KEY or "",
        "content-type": "application/json",
    }
    try:
        response = await get_http_client().post(BREVO_API_URL, headers=headers, json=payload)
    except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
        logger.warning("email_network_error_retrying", error=str(exc))
        raise EmailDeliveryError(str(exc)) from exc

    if response.status_code >= 500:
        logger.warning("email_brevo_5xx_retrying", status_code=response.status_code)
        raise EmailDeliveryError(f"Brevo returned {response.status_code}")
    return response


async def send_email(
    to_emails: List[str],
    subject: str,
    html_content: str,
    tag: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> bool:
    """Send one message to every recipient. True when Brevo accepted it."""
    recipients = normalize_recipients(to_emails)
    if not recipients:
        logger.warning("email_no_recipients", subject=subject)
        return False

    if not settings.BREVO_API_KEY:
        logger.warning("brevo_api_key_missing", message="Email sending skipped", to=recipients)
        return False

    payload = build_payload(recipients, subject, html_content, tag=tag, reply_to=reply_to)
    try:
        response = await _post_to_brevo(payload)
    except EmailDeliveryError as exc:
        logger.error("email_all_retries_exhausted", error=str(exc), to=recipients, subject=subject)
        return False

    if response.status_code in (201, 202):
        logger.info(
            "email_sent_brevo",
            to=recipients,
            subject=subject,
            tag=tag,
            message_id=response.json().get("messageId"),
        )
        return True

    logger.error(
        "email_failed_brevo",
        status_code=response.status_code,
        response=response.text[:500],
        to=recipients,
        subject=subject,
    )
    return False
