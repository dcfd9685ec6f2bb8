import random
import string
import time
from typing import Optional

import boto3
from botocore.config import Config
import structlog

from procurement_api.config import settings

logger = structlog.get_logger()


def build_upload_key(filename: str, prefix: Optional[str] = None) -> str:
    """``<prefix>/<epoch-ms>-<random>.<ext>`` with the extension lower-cased."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    safe_name = f"{int(time.time() * 1000)}-{suffix}.{ext or 'bin'}"
    prefix = (settings.S3_UPLOAD_PREFIX if prefix is None else prefix).strip("/")
    return f"{prefix}/{safe_name}" if prefix else safe_name


class S3UploadClient:
    def __init__(self):
        self.s3 = boto3.client(
            "s3",
            region_name=settings.S3_UPLOAD_REGION,
            aws_access_key_id=settings.S3_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY or None,
            config=Config(signature_version="s3v4"),
        )
        self.bucket = settings.S3_UPLOAD_BUCKET

    def public_url(self, key: str) -> str:
        if settings.S3_PUBLIC_BASE:
            return f"{settings.S3_PUBLIC_BASE.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.{settings.S3_UPLOAD_REGION}.amazonaws.com/{key}"

    def presign_post(self, key: str, content_type: Optional[str] = None) -> dict:
        """Presigned POST policy; size capped by settings, content type pinned when given."""
        fields = {"Content-Type": content_type} if content_type else None
        type_condition = (
            {"Content-Type": content_type}
            if content_type
            else ["starts-with", "$Content-Type", ""]
        )
        presigned = self.s3.generate_presigned_post(
            Bucket=self.bucket,
            Key=key,
            Fields=fields,
            Conditions=[
                ["content-length-range", 0, settings.UPLOAD_MAX_BYTES],
                type_condition,
            ],
            ExpiresIn=settings.PRESIGN_EXPIRES_SECONDS,
        )
        logger.info("s3_presigned_post", key=key)
        return presigned


_client: Optional[S3UploadClient] = None


def get_storage_client() -> S3UploadClient:
    global _client
    if _client is None:
        _client = S3UploadClient()
    return _client
