"""
配置路由模块

返回门户内容配置：聊天房间、积分规则、订阅页文案、支持的音乐平台。
"""
from __future__ import annotations

from fastapi import APIRouter

from nexus.api.schemas import ApiEnvelope, ConfigData
from nexus.services.config_service import get_config

router = APIRouter(tags=["config"])


@router.get("/config", response_model=ApiEnvelope)
def config() -> ApiEnvelope:
    """
    获取门户配置

    请求路径: GET /api/v1/config
    """
    cfg = get_config()
    data = ConfigData(
        chat=cfg.get("chat", {}),
        points_rules=cfg.get("points_rules", {}),
        subscription=cfg.get("subscription", {}),
        music_providers=cfg.get("music_providers", []),
    )
    return ApiEnvelope(data=data)
