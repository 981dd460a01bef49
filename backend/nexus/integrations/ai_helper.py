"""
AI 作业助手集成

约定：ask(question) -> {answer}，同步请求/响应，不做重试。
支持模拟模式（AI_HELPER_MOCK）。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from nexus.api.errors import AppError, ExternalServiceError, ValidationError
from nexus.core.config import settings

_ASK_PATH = "/v1/ask"


@dataclass(frozen=True)
class HelperAnswer:
    answer: str
    raw: dict[str, Any] | None = None


class AiHelperClient:
    def __init__(self) -> None:
        self._mock = settings.AI_HELPER_MOCK
        self._base_url = (settings.AI_HELPER_BASE_URL or "").rstrip("/")
        self._api_key = settings.AI_HELPER_API_KEY

    def _headers(self) -> dict[str, str]:
        if not (self._api_key and self._base_url):
            raise AppError(code=500401, message="AI helper not configured", status_code=500)
        return {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}

    def ask(self, question: str) -> HelperAnswer:
        """
        向 AI 助手提问

        Raises:
            ValidationError: 问题为空或过长
            ExternalServiceError: 服务调用失败或返回格式不正确
        """
        question = (question or "").strip()
        if not question:
            raise ValidationError("Question cannot be empty", code=400801, field="question")
        if len(question) > settings.AI_HELPER_MAX_QUESTION_LENGTH:
            raise ValidationError("Question is too long", code=400802, field="question")

        if self._mock:
            return HelperAnswer(
                answer=f"Let's work through it step by step: {question[:80]}",
                raw={"mock": True},
            )

        try:
            with httpx.Client(timeout=settings.AI_HELPER_TIMEOUT_SECONDS) as client:
                r = client.post(
                    f"{self._base_url}{_ASK_PATH}",
                    json={"question": question},
                    headers=self._headers(),
                )
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"AI helper error: {e}", code=502401)

        answer = data.get("answer") if isinstance(data, dict) else None
        if not isinstance(answer, str):
            raise ExternalServiceError("AI helper invalid response", code=502402)
        return HelperAnswer(answer=answer, raw=data)
