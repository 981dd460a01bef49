"""
Snowflake ID 生成器

所有表的主键都使用 64 位 Snowflake ID：
- 41 位：距 2024-01-01T00:00:00Z 的毫秒数
- 10 位：节点 ID（SNOWFLAKE_NODE_ID，0-1023）
- 12 位：同一毫秒内的序列号

同一节点生成的 ID 单调递增，聊天消息在 created_at 相同的情况下
用 id 作为第二排序键即可得到稳定的插入顺序。
"""
from __future__ import annotations

import threading
import time
from datetime import datetime, timezone

from nexus.core.config import settings

_EPOCH_MS = 1704067200000
_NODE_BITS = 10
_SEQ_BITS = 12
_MAX_SEQ = (1 << _SEQ_BITS) - 1
_MAX_BACKWARD_MS = 5000


class Snowflake:
    """线程安全的 Snowflake 生成器"""

    def __init__(self, *, node_id: int) -> None:
        if not (0 <= node_id < (1 << _NODE_BITS)):
            raise ValueError("SNOWFLAKE_NODE_ID must be in [0, 1023]")
        self._node_id = node_id
        self._lock = threading.Lock()
        self._last_ts = -1
        self._seq = 0

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    @classmethod
    def _wait_until(cls, target_ms: int) -> int:
        ts = cls._now_ms()
        while ts < target_ms:
            time.sleep(0.001)
            ts = cls._now_ms()
        return ts

    def next_id(self) -> int:
        """
        生成下一个 ID

        时钟回拨不超过 5 秒时等待时钟追上，超过则拒绝生成。

        Raises:
            RuntimeError: 时钟回拨超过 5 秒
        """
        with self._lock:
            ts = self._now_ms()
            if ts < self._last_ts:
                diff = self._last_ts - ts
                if diff > _MAX_BACKWARD_MS:
                    raise RuntimeError(f"Clock moved backwards by {diff}ms, refusing to generate ids")
                ts = self._wait_until(self._last_ts)

            if ts == self._last_ts:
                self._seq = (self._seq + 1) & _MAX_SEQ
                if self._seq == 0:
                    # sequence exhausted for this millisecond
                    ts = self._wait_until(self._last_ts + 1)
            else:
                self._seq = 0

            self._last_ts = ts
            return ((ts - _EPOCH_MS) << (_NODE_BITS + _SEQ_BITS)) | (self._node_id << _SEQ_BITS) | self._seq


def id_created_at(snowflake_id: int) -> datetime:
    """从 ID 中还原生成时间（UTC）"""
    ms = (snowflake_id >> (_NODE_BITS + _SEQ_BITS)) + _EPOCH_MS
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


_GENERATOR: Snowflake | None = None


def generate_id() -> int:
    global _GENERATOR
    if _GENERATOR is None:
        _GENERATOR = Snowflake(node_id=settings.SNOWFLAKE_NODE_ID)
    return _GENERATOR.next_id()
