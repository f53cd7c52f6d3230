"""
Document Cache.

按 类型/ID/版本 键缓存压缩后的文档，负责：
- TTL 过期（时钟可注入，便于测试）
- LRU 淘汰（超过 max_size 时淘汰最久未访问的条目）
- 显式失效（全部 / 单键）
"""
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

from prompt_assembly.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_KEY_PREFIX = "doc"


def cache_key(doc_type: str, doc_id: str, version: Optional[str] = None, *parts: Any) -> str:
    """
    构建缓存键: doc:<type>:<id>:<version>[:part...]

    version 缺省写作 "latest"；None 的附加段写作空串。
    """
    segments = [CACHE_KEY_PREFIX, doc_type, doc_id, version or "latest"]
    segments.extend("" if p is None else str(p) for p in parts)
    return ":".join(segments)


class DocumentCache:
    """
    进程内 TTL + LRU 缓存

    由调用方显式注入，不存在全局实例。
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_size: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttl_seconds: 条目存活时间（默认 settings.doc_cache_ttl_seconds）
            max_size: 最大条目数（默认 settings.doc_cache_max_size）
            clock: 单调时钟函数
        """
        self.ttl_seconds = float(ttl_seconds if ttl_seconds is not None else settings.doc_cache_ttl_seconds)
        self.max_size = int(max_size if max_size is not None else settings.doc_cache_max_size)
        if self.max_size <= 0:
            raise ValueError(f"max_size must be positive, got {self.max_size}")
        self._clock = clock

        # key -> (expires_at, value)，OrderedDict 保持 LRU 顺序
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

        # 统计
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _lookup(self, key: str) -> Tuple[bool, Any]:
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                self._misses += 1
                return False, None
            expires_at, value = cached
            if expires_at <= self._clock():
                self._entries.pop(key, None)
                self._misses += 1
                return False, None
            self._entries.move_to_end(key)
            self._hits += 1
            return True, value

    def _store(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("文档缓存 LRU 淘汰: %s", evicted)

    def get_or_fetch(self, key: str, fetch: Callable[[], T]) -> T:
        """
        命中则返回缓存值，否则调用 fetch() 并写入缓存

        fetch 抛出的异常原样向上传播，不写入缓存。
        """
        found, value = self._lookup(key)
        if found:
            logger.debug("文档缓存命中: %s", key)
            return value
        logger.debug("文档缓存未命中: %s", key)
        value = fetch()
        self._store(key, value)
        return value

    def invalidate(self) -> None:
        """清空全部条目"""
        with self._lock:
            self._entries.clear()

    def invalidate_for(self, key: str) -> bool:
        """移除单个键，返回是否存在"""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
