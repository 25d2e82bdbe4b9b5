"""目录条目解析模块

拆分说明:
- models.py: 数据模型
- schema.py: 载荷结构校验
- refs.py: 引用分类与 URL 模板
- similarity.py: 相似名称建议
- cache.py: 三分区拉取缓存
- fetcher.py: 带缓存/重试/限流识别的拉取器
- locator.py: 多目录定位
- resolver.py: 依赖树解析
"""

from catalogkit.core.dep.cache import CacheStore
from catalogkit.core.dep.fetcher import CatalogFetcher
from catalogkit.core.dep.locator import CatalogLocator
from catalogkit.core.dep.models import (
    CatalogConfig,
    CatalogIndex,
    CatalogMatch,
    DependencyTree,
    DistributableItem,
    ResolvedItem,
)
from catalogkit.core.dep.resolver import (
    DependencyResolver,
    ResolveOutcome,
    collect_external_dependencies,
    collect_files_in_order,
    find_cycle,
)

__all__ = [
    "CacheStore",
    "CatalogFetcher",
    "CatalogLocator",
    "DependencyResolver",
    "ResolveOutcome",
    "CatalogConfig",
    "CatalogIndex",
    "CatalogMatch",
    "DependencyTree",
    "DistributableItem",
    "ResolvedItem",
    "collect_external_dependencies",
    "collect_files_in_order",
    "find_cycle",
]
