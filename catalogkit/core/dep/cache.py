"""拉取缓存

职责:
- 按请求 URL 缓存目录索引、单条目、原始内容三个独立分区
- 记录 ETag 供条件请求复用
- 显式清理（条目不会按时间过期）

缓存由调用方构造并注入 CatalogFetcher，多个根引用并行解析时共享同一实例，
因此所有读写都在锁内完成。
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

PARTITION_INDEX = "indexes"
PARTITION_ITEM = "items"
PARTITION_RAW = "raw"
PARTITIONS = (PARTITION_INDEX, PARTITION_ITEM, PARTITION_RAW)


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    etag: str | None = None
    timestamp: float = 0.0

    @property
    def age(self) -> float:
        return time.time() - self.timestamp


class CacheStore:
    """三分区拉取缓存"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._partitions: dict[str, dict[str, CacheEntry]] = {p: {} for p in PARTITIONS}

    def _partition(self, partition: str) -> dict[str, CacheEntry]:
        try:
            return self._partitions[partition]
        except KeyError:
            raise ValueError(f"未知缓存分区: {partition}，可选: {PARTITIONS}") from None

    def get(self, partition: str, url: str) -> CacheEntry | None:
        with self._lock:
            return self._partition(partition).get(url)

    def put(self, partition: str, url: str, data: Any, etag: str | None = None) -> CacheEntry:
        entry = CacheEntry(data=data, etag=etag, timestamp=time.time())
        with self._lock:
            self._partition(partition)[url] = entry
        logger.debug("缓存写入: [%s] %s (etag=%s)", partition, url, etag)
        return entry

    def clear(self) -> None:
        """清空全部分区"""
        with self._lock:
            for entries in self._partitions.values():
                entries.clear()

    def clear_url(self, url: str) -> bool:
        """清除某个 URL 在所有分区中的缓存"""
        removed = False
        with self._lock:
            for entries in self._partitions.values():
                if entries.pop(url, None) is not None:
                    removed = True
        return removed

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {p: len(entries) for p, entries in self._partitions.items()}
