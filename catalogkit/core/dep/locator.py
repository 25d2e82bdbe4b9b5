"""目录定位器

职责:
- 按名称在已配置目录中定位条目（按配置顺序，收集全部命中）
- @catalog/name 只搜索指定目录，不回退其他目录
- 为未找到提示收集已搜索目录与可用名称
"""

from __future__ import annotations

import logging

from catalogkit.core.dep.fetcher import CatalogFetcher
from catalogkit.core.dep.models import CatalogConfig, CatalogMatch, DistributableItem
from catalogkit.core.dep.refs import build_item_url, parse_namespaced, substitute_template
from catalogkit.core.exceptions import CatalogFetchError, SchemaValidationError

logger = logging.getLogger(__name__)


class CatalogLocator:
    """在有序目录映射中查找条目"""

    def __init__(self, fetcher: CatalogFetcher, catalogs: dict[str, CatalogConfig]) -> None:
        self.fetcher = fetcher
        self.catalogs = catalogs

    def _targets(self, ref: str) -> list[tuple[CatalogConfig, str]]:
        """ref -> [(目录配置, 条目名)]，命名空间引用只返回被寻址的目录"""
        namespaced = parse_namespaced(ref)
        if namespaced is not None:
            cfg = self.catalogs.get(namespaced.catalog)
            if cfg is None:
                logger.warning(
                    "目录 '%s' 未配置。已配置: %s", namespaced.catalog, list(self.catalogs),
                )
                return []
            return [(cfg, namespaced.name)]
        return [(cfg, ref) for cfg in self.catalogs.values()]

    def locate(self, ref: str) -> list[CatalogMatch]:
        """返回按目录声明顺序排列的全部命中，不在首个命中处短路"""
        matches: list[CatalogMatch] = []
        for cfg, name in self._targets(ref):
            url = substitute_template(cfg.url, name)
            item = self.find_in_catalog(cfg, name)
            if item is not None:
                matches.append(CatalogMatch(catalog_name=cfg.name, catalog_url=url, item=item))
        logger.debug("定位 %s: %d 个命中", ref, len(matches))
        return matches

    def find_in_catalog(self, cfg: CatalogConfig, name: str) -> DistributableItem | None:
        """在单个目录中查找条目，拉取失败视为未找到

        - 模板目录: 替换 {name} 后直接作为单条目拉取
        - 普通目录: 先查索引，未命中再拉取约定的单条目 URL
        限流错误照常抛出。
        """
        url = substitute_template(cfg.url, name)
        try:
            if cfg.is_template:
                return self.fetcher.fetch_single_item(url, cfg.headers).data

            index = self.fetcher.fetch_index(url, cfg.headers).data
            item = index.find(name)
            if item is not None:
                return item
            return self.fetcher.fetch_single_item(build_item_url(url, name), cfg.headers).data
        except (CatalogFetchError, SchemaValidationError) as e:
            logger.debug("目录 '%s' 中未找到 %s: %s", cfg.name, name, e)
            return None

    def searched_urls(self, ref: str) -> list[str]:
        return [substitute_template(cfg.url, name) for cfg, name in self._targets(ref)]

    def available_names(self, ref: str) -> list[str]:
        """收集被搜索目录索引中列出的条目名称，供相似名称建议使用"""
        names: list[str] = []
        for cfg, name in self._targets(ref):
            if cfg.is_template:
                continue
            try:
                index = self.fetcher.fetch_index(substitute_template(cfg.url, name), cfg.headers).data
            except (CatalogFetchError, SchemaValidationError) as e:
                logger.debug("获取目录 '%s' 索引失败，跳过建议: %s", cfg.name, e)
                continue
            for n in index.names():
                if n not in names:
                    names.append(n)
        return names
