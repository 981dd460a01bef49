"""
自定义异常模块

定义应用特定的异常类，用于统一的错误处理。
所有业务异常都继承自 AppError，在 main.py 中有统一的异常处理器，
渲染为 {"code": ..., "message": ..., "data": ...}。

错误码约定：前三位是 HTTP 状态码，后三位区分具体错误。
需要前端跳转的错误（未登录、未订阅、无权限）在 data.redirect_to 中给出目标页面。
"""
from __future__ import annotations

from typing import Any


class AppError(Exception):
    """
    应用自定义异常类

    - code: 业务错误码（用于前端区分不同错误）
    - message: 错误消息
    - status_code: HTTP 状态码
    - data: 附加数据（可选）

    使用示例：
        raise AppError(code=404101, message="Post not found", status_code=404)
    """

    def __init__(
        self,
        *,
        code: int,
        message: str,
        status_code: int = 400,
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.data = data


class AuthRequired(AppError):
    """没有有效会话，前端跳转登录页"""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code=401001, message=message, status_code=401, data={"redirect_to": "/auth"}
        )


class SubscriptionRequired(AppError):
    """已登录但订阅未激活，前端跳转订阅页"""

    def __init__(self, message: str = "Active subscription required") -> None:
        super().__init__(
            code=403001,
            message=message,
            status_code=403,
            data={"redirect_to": "/subscription"},
        )


class PermissionDenied(AppError):
    """服务端角色校验未通过，前端离开当前页面"""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(code=403002, message=message, status_code=403, data={"redirect_to": "/"})


class InsufficientBalance(AppError):
    """
    积分不足

    虽然 HTTP 402 Payment Required 在语义上更准确，
    但很多客户端会特殊处理 402，所以使用 400。
    """

    def __init__(self, *, balance: int, required: int) -> None:
        super().__init__(
            code=402001,
            message="Insufficient points",
            status_code=400,
            data={"balance": balance, "required": required},
        )
        self.balance = balance
        self.required = required


class ValidationError(AppError):
    """业务层字段校验失败（写入前拒绝）"""

    def __init__(self, message: str, *, code: int = 400001, field: str | None = None) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=400,
            data={"field": field} if field else None,
        )


class NotFound(AppError):
    def __init__(self, message: str = "Not found", *, code: int = 404000) -> None:
        super().__init__(code=code, message=message, status_code=404)


class PersistenceError(AppError):
    """数据库写入失败，整个操作已回滚"""

    def __init__(self, message: str = "Failed to save changes, please retry") -> None:
        super().__init__(code=500201, message=message, status_code=500)


class ExternalServiceError(AppError):
    """外部服务（支付、AI 助手、文件存储）调用失败"""

    def __init__(self, message: str, *, code: int = 502000) -> None:
        super().__init__(code=code, message=message, status_code=502)
