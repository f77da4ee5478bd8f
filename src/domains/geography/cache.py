"""
行政区划读穿缓存

进程内有界 LRU + TTL，键为区划ID。
只缓存查到的区划，未找到的ID每次都回源。
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional

from src.core.config import settings
from .matcher import DivisionShape

logger = logging.getLogger(__name__)


class DivisionCache:
    """
    区划缓存

    Attributes:
        _max_size: 最大条目数，超出时淘汰最久未使用的条目
        _ttl: 过期时间（秒），<=0 表示不过期
    """

    def __init__(
        self,
        max_size: int = settings.division_cache_max_size,
        ttl_seconds: float = settings.division_cache_ttl_seconds,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_size = max(1, max_size)
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[int, tuple[float, DivisionShape]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, division_id: int) -> Optional[DivisionShape]:
        with self._lock:
            item = self._entries.get(division_id)
            if item is None:
                return None
            stored_at, division = item
            if self._ttl > 0 and self._clock() - stored_at >= self._ttl:
                del self._entries[division_id]
                logger.debug(f"区划缓存过期: division_id={division_id}")
                return None
            self._entries.move_to_end(division_id)
            return division

    def put(self, division: DivisionShape) -> None:
        with self._lock:
            self._entries[division.id] = (self._clock(), division)
            self._entries.move_to_end(division.id)
            while len(self._entries) > self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"区划缓存淘汰: division_id={evicted}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("区划缓存已清空")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, division_id: object) -> bool:
        return division_id in self._entries


_default_cache: Optional[DivisionCache] = None


def get_division_cache() -> DivisionCache:
    """进程级默认缓存（FastAPI 依赖注入使用）"""
    global _default_cache
    if _default_cache is None:
        _default_cache = DivisionCache()
    return _default_cache
