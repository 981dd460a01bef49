"""
支付服务集成

只依赖支付服务的两个约定：
- 创建结账会话，返回跳转地址 {url}
- 支付完成后，支付服务回调 /subscription/webhook 更新订阅状态

支持模拟模式（PAYMENT_MOCK），本地开发时直接返回前端的成功页地址。
"""
from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Any

import httpx

from nexus.api.errors import AppError, ExternalServiceError
from nexus.core.config import settings

_CHECKOUT_PATH = "/v1/checkout/sessions"


@dataclass(frozen=True)
class CheckoutSession:
    url: str
    session_id: str | None = None
    raw: dict[str, Any] | None = None


class PaymentClient:
    def __init__(self) -> None:
        self._mock = settings.PAYMENT_MOCK
        self._base_url = (settings.PAYMENT_API_BASE_URL or "").rstrip("/")
        self._api_key = settings.PAYMENT_API_KEY

    def _headers(self) -> dict[str, str]:
        if not (self._api_key and self._base_url):
            raise AppError(code=500301, message="Payment service not configured", status_code=500)
        return {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}

    def create_checkout_session(self, *, user_id: int, username: str) -> CheckoutSession:
        """
        创建订阅结账会话

        Returns:
            CheckoutSession: url 为支付页面地址，前端在新窗口打开

        Raises:
            ExternalServiceError: 支付服务调用失败或返回格式不正确
        """
        frontend = settings.FRONTEND_BASE_URL.rstrip("/")
        success_url = f"{frontend}/subscription?status=success"
        cancel_url = f"{frontend}/subscription?status=cancelled"

        if self._mock:
            return CheckoutSession(url=success_url, session_id="mock_checkout", raw={"mock": True})

        payload = {
            "price_id": settings.PAYMENT_PRICE_ID,
            "mode": "subscription",
            "client_reference_id": str(user_id),
            "customer_name": username,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        try:
            with httpx.Client(timeout=settings.PAYMENT_TIMEOUT_SECONDS) as client:
                r = client.post(f"{self._base_url}{_CHECKOUT_PATH}", json=payload, headers=self._headers())
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Payment checkout error: {e}", code=502301)

        if not isinstance(data, dict) or not data.get("url"):
            raise ExternalServiceError("Payment checkout invalid response", code=502302)
        return CheckoutSession(
            url=str(data["url"]),
            session_id=str(data["id"]) if data.get("id") is not None else None,
            raw=data,
        )


def verify_webhook_secret(authorization: str | None) -> bool:
    """校验回调请求头里的共享密钥，未配置密钥时只在本地环境放行"""
    secret = settings.PAYMENT_WEBHOOK_SECRET
    if not secret:
        return settings.ENVIRONMENT == "local"
    if not authorization:
        return False
    token = authorization.removeprefix("Bearer ").strip()
    return hmac.compare_digest(token, secret)
