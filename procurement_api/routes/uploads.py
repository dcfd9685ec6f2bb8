import asyncio

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, HTTPException
import structlog

from procurement_api.middleware.auth import get_current_user
from procurement_api.schemas.upload import PresignRequest, PresignResponse
from procurement_api.services.storage import build_upload_key, get_storage_client

logger = structlog.get_logger()
router = APIRouter()


@router.post("/presign", response_model=PresignResponse)
async def presign_upload(
    body: PresignRequest,
    current_user: dict = Depends(get_current_user),
):
    """Presigned POST so the browser uploads attachments straight to S3."""
    if not body.filename:
        raise HTTPException(status_code=400, detail="filename is required")

    key = build_upload_key(body.filename)
    client = get_storage_client()
    try:
        presigned = await asyncio.to_thread(client.presign_post, key, body.content_type)
    except (BotoCoreError, ClientError) as e:
        logger.error("presign_failed", key=key, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to create upload URL")

    return PresignResponse(
        url=presigned["url"],
        fields=presigned["fields"],
        key=key,
        public_url=client.public_url(key),
    )
