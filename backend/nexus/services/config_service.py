"""
门户内容配置

从 nexus/config/default_config.json 读取聊天房间、积分规则、订阅页文案等，
进程内缓存，可通过 refresh_config 重新加载。
"""
from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Any

_lock = Lock()
_config: dict[str, Any] | None = None

_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "default_config.json"


def get_config() -> dict[str, Any]:
    global _config
    with _lock:
        if _config is not None:
            return _config
        _config = _load_from_file()
        return _config


def refresh_config() -> dict[str, Any]:
    global _config
    with _lock:
        _config = _load_from_file()
        return _config


def _load_from_file() -> dict[str, Any]:
    if not _CONFIG_PATH.exists():
        return {"chat": {"rooms": [{"id": "global", "name": "Global"}]}, "points_rules": {}}
    return json.loads(_CONFIG_PATH.read_text(encoding="utf-8"))


def public_rooms() -> list[dict[str, str]]:
    return list(get_config().get("chat", {}).get("rooms", []))


def public_room_ids() -> set[str]:
    return {room["id"] for room in public_rooms()}


def default_game_reward() -> int:
    return int(get_config().get("points_rules", {}).get("default_game_reward", 10))
