"""
AI 作业助手路由模块
"""
from __future__ import annotations

import logging

from fastapi import APIRouter

from nexus.api.deps import SubscribedUser
from nexus.api.schemas import ApiEnvelope, AskData, AskRequest
from nexus.integrations.ai_helper import AiHelperClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai-helper", tags=["ai-helper"])


@router.post("/ask", response_model=ApiEnvelope)
def ask(current_user: SubscribedUser, body: AskRequest) -> ApiEnvelope:
    """
    向 AI 助手提问

    调用失败返回 502xxx，不自动重试。

    请求路径: POST /api/v1/ai-helper/ask
    """
    logger.info("User %s asked the AI helper (%s chars)", current_user.id, len(body.question))
    result = AiHelperClient().ask(body.question)
    return ApiEnvelope(data=AskData(answer=result.answer))
