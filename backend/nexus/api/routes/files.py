"""
文件上传路由模块

上传作业图片或头像到 OSS，返回公开地址，之后作为 image_url / avatar_url 提交。
"""
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Query, UploadFile
from fastapi.concurrency import run_in_threadpool

from nexus.api.deps import SubscribedUser
from nexus.api.errors import ValidationError
from nexus.api.schemas import ApiEnvelope, UploadData
from nexus.integrations import storage

router = APIRouter(prefix="/files", tags=["files"])


@router.post("/upload", response_model=ApiEnvelope)
async def upload(
    current_user: SubscribedUser,
    file: UploadFile,
    folder: Literal["homework", "avatars"] = Query(default="homework"),
) -> ApiEnvelope:
    """
    上传图片

    请求路径: POST /api/v1/files/upload?folder=homework
    Content-Type: multipart/form-data
    """
    content_type = (file.content_type or "").lower()
    if content_type not in storage.ALLOWED_CONTENT_TYPES:
        raise ValidationError("Unsupported file type", code=400901, field="file")
    content = await file.read()
    key = storage.object_key(user_id=current_user.id, folder=folder, content_type=content_type)
    result = await run_in_threadpool(storage.upload, key, content, content_type=content_type)
    return ApiEnvelope(data=UploadData(key=result.key, public_url=result.public_url))
