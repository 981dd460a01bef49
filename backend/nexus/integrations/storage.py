"""
文件存储（阿里云 OSS）

约定：upload(path, bytes) -> public_url。作业帖子图片、头像通过这里上传。
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import oss2

from nexus.api.errors import AppError, ExternalServiceError, ValidationError
from nexus.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class UploadResult:
    key: str
    public_url: str


def _build_host(bucket: str, endpoint: str) -> str:
    endpoint = endpoint.strip()
    base = endpoint if endpoint.startswith(("http://", "https://")) else f"https://{endpoint}"
    scheme, rest = base.split("://", 1)
    # virtual-hosted style: https://bucket.endpoint
    return f"{scheme}://{bucket}.{rest}"


def _endpoint_for_sdk(endpoint: str) -> str:
    endpoint = endpoint.strip()
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    return f"https://{endpoint}"


def _configured() -> bool:
    return bool(
        settings.OSS_ENDPOINT
        and settings.OSS_BUCKET
        and settings.OSS_ACCESS_KEY_ID
        and settings.OSS_ACCESS_KEY_SECRET
    )


def build_object_url(*, key: str) -> str:
    if settings.OSS_PUBLIC_BASE_URL:
        return f"{settings.OSS_PUBLIC_BASE_URL.rstrip('/')}/{key}"
    if not (settings.OSS_ENDPOINT and settings.OSS_BUCKET):
        raise AppError(code=500001, message="OSS not configured", status_code=500)
    return f"{_build_host(settings.OSS_BUCKET, settings.OSS_ENDPOINT)}/{key}"


def _get_bucket() -> oss2.Bucket:
    if not _configured():
        raise AppError(code=500001, message="OSS not configured", status_code=500)
    auth = oss2.Auth(settings.OSS_ACCESS_KEY_ID, settings.OSS_ACCESS_KEY_SECRET)
    return oss2.Bucket(auth, _endpoint_for_sdk(settings.OSS_ENDPOINT), settings.OSS_BUCKET)  # type: ignore[arg-type]


def object_key(*, user_id: int, folder: str, content_type: str) -> str:
    """uploads/<folder>/<yyyymmdd>/<user_id>_<uuid>.<ext>"""
    ext = ALLOWED_CONTENT_TYPES[content_type]
    day = datetime.now(timezone.utc).strftime("%Y%m%d")
    prefix = settings.OSS_DIR_PREFIX.strip("/")
    return f"{prefix}/{folder}/{day}/{user_id}_{uuid.uuid4().hex}.{ext}"


def upload(path: str, data: bytes, *, content_type: str) -> UploadResult:
    """
    上传文件到 OSS

    Raises:
        ValidationError: 文件类型不支持或超过大小限制
        ExternalServiceError: OSS 上传失败
    """
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError("Unsupported file type", code=400901, field="file")
    if not data or len(data) > MAX_UPLOAD_BYTES:
        raise ValidationError("File must be between 1 byte and 10MB", code=400902, field="file")

    bucket = _get_bucket()
    headers = {"Content-Type": content_type}
    if settings.OSS_OBJECT_ACL:
        headers["x-oss-object-acl"] = settings.OSS_OBJECT_ACL
    try:
        bucket.put_object(path, data, headers=headers)
    except oss2.exceptions.OssError as e:
        logger.exception("OSS upload failed for %s", path)
        raise ExternalServiceError(f"File upload failed: {e}", code=502501)
    return UploadResult(key=path, public_url=build_object_url(key=path))
