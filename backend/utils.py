import logging
import os
import uuid
from pathlib import Path
from typing import Optional, List
from fastapi import HTTPException, status, UploadFile
from sqlalchemy.orm import Session
from models import AdminLog, Profile
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

AWS_REGION = os.environ.get("AWS_REGION")
S3_BUCKET_NAME = os.environ.get("S3_BUCKET_NAME")
S3_ACCESS_KEY = os.environ.get("S3_ACCESS_KEY") or os.environ.get("AWS_ACCESS_KEY_ID")
S3_SECRET_KEY = os.environ.get("S3_SECRET_KEY") or os.environ.get("AWS_SECRET_ACCESS_KEY")

IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]
MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_MB", 5)) * 1024 * 1024

S3_CLIENT = None
if AWS_REGION and S3_BUCKET_NAME and S3_ACCESS_KEY and S3_SECRET_KEY:
    S3_CLIENT = boto3.client(
        "s3",
        region_name=AWS_REGION,
        aws_access_key_id=S3_ACCESS_KEY,
        aws_secret_access_key=S3_SECRET_KEY,
        config=Config(signature_version="s3v4", s3={"addressing_style": "virtual"}),
    )


def log_admin_action(db: Session, admin: Optional[Profile], action: str, method: Optional[str] = None, path: Optional[str] = None, meta: Optional[dict] = None, commit: bool = True):
    """Record a staff action in the audit trail. Pass commit=False to join the caller's transaction."""
    db.add(AdminLog(
        admin_id=admin.id if admin else None,
        admin_email=admin.email if admin else "",
        admin_name=admin.full_name if admin else "",
        action=action,
        method=method,
        path=path,
        meta=meta
    ))
    if commit:
        db.commit()


def _file_size(file: UploadFile) -> int:
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)
    return size


def _build_s3_url(key: str) -> str:
    if not S3_BUCKET_NAME or not AWS_REGION:
        raise RuntimeError("S3 configuration missing")
    return f"https://{S3_BUCKET_NAME}.s3.{AWS_REGION}.amazonaws.com/{key}"


def _upload_to_s3(file: UploadFile, key_prefix: str, allowed_types: Optional[List[str]] = None) -> str:
    if not file.content_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing file content type")
    if allowed_types and file.content_type not in allowed_types:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file type")
    if _file_size(file) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=f"File exceeds {MAX_UPLOAD_BYTES // (1024 * 1024)} MB")
    if not S3_CLIENT or not S3_BUCKET_NAME or not AWS_REGION:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="S3 not configured")

    extension = Path(file.filename or "").suffix.lower()
    key = f"{key_prefix.rstrip('/')}/{uuid.uuid4().hex}{extension}"
    try:
        S3_CLIENT.upload_fileobj(file.file, S3_BUCKET_NAME, key, ExtraArgs={"ContentType": file.content_type})
    except (BotoCoreError, ClientError) as exc:
        logger.error("S3 upload of %s failed: %s", key, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Upload failed") from exc
    return _build_s3_url(key)
