"""
API 路由聚合模块

将所有业务路由模块聚合到一个统一的 router 中，
注册到主应用（nexus/main.py）上。

路由模块说明：
- auth: 注册、登录、当前会话
- user: 用户资料
- points: 积分余额、流水、排行榜
- homework: 作业帖子、解锁、点赞、回复
- files: 图片上传
- chat: 聊天 REST 接口与 WebSocket
- games / merch / music: 活动目录
- subscription: 订阅状态、结账、支付回调
- ai_helper: AI 作业助手
- admin: 管理后台
- config: 门户配置
- utils: 健康检查
"""
from fastapi import APIRouter

from nexus.api.routes import (
    admin,
    ai_helper,
    auth,
    chat,
    config,
    files,
    games,
    homework,
    merch,
    music,
    points,
    subscription,
    user,
    utils,
)

api_router = APIRouter()

api_router.include_router(auth.router)  # /auth/*
api_router.include_router(user.router)  # /user/*
api_router.include_router(points.router)  # /points/*
api_router.include_router(homework.router)  # /homework/*
api_router.include_router(files.router)  # /files/*
api_router.include_router(chat.router)  # /chat/*
api_router.include_router(games.router)  # /games/*
api_router.include_router(merch.router)  # /merch/*
api_router.include_router(music.router)  # /music/*
api_router.include_router(subscription.router)  # /subscription/*
api_router.include_router(ai_helper.router)  # /ai-helper/*
api_router.include_router(admin.router)  # /admin/*
api_router.include_router(config.router)  # /config
api_router.include_router(utils.router)  # /utils/*
