"""依赖解析器

职责:
- 从根引用出发，沿 registry_dependencies 深度优先构建完整依赖树
- 循环依赖检测（给出完整环路径）
- 去重: 同名引用先解析者胜出，不重复遍历其子树
- 后序写入: 依赖总是先于依赖方出现，可按顺序安装
- 批量解析多个根引用，单个失败不影响其他

安装（写文件、装外部包）之前先完成整棵树的解析。
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

from catalogkit.core.dep.fetcher import CatalogFetcher, load_json
from catalogkit.core.dep.locator import CatalogLocator
from catalogkit.core.dep.models import (
    CatalogMatch,
    DependencyTree,
    ItemFile,
    ResolvedItem,
)
from catalogkit.core.dep.refs import (
    DirectUrl,
    NamespacedRef,
    Reference,
    ShortRepoRef,
    classify,
)
from catalogkit.core.dep.schema import parse_item
from catalogkit.core.dep.similarity import suggest
from catalogkit.core.exceptions import (
    CatalogKitError,
    CircularDependencyError,
    ComponentNotFoundError,
    NameConflictError,
    ReferenceParseError,
    SelectionError,
)

logger = logging.getLogger(__name__)

# 选择策略：多个目录同时命中时返回选中的下标
SelectFn = Callable[[list[CatalogMatch]], int]


def select_first(matches: list[CatalogMatch]) -> int:
    """默认选择策略 — 按目录声明顺序取第一个"""
    logger.info(
        "多个目录命中，使用第一个: %s (候选: %s)",
        matches[0].catalog_name, ", ".join(m.catalog_name for m in matches),
    )
    return 0


@dataclass
class _ResolutionState:
    """单个根引用的解析状态"""

    resolved: dict[str, ResolvedItem] = field(default_factory=dict)
    visiting: set[str] = field(default_factory=set)
    path: list[str] = field(default_factory=list)


@dataclass
class ResolveOutcome:
    """批量解析中单个根引用的结果"""

    reference: str
    tree: DependencyTree | None = None
    error: CatalogKitError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DependencyResolver:
    """依赖树解析器

    通过 select 参数注入多目录命中时的选择策略（Strategy 模式），
    默认取第一个命中，CLI 中替换为交互式选择。
    """

    def __init__(
        self,
        locator: CatalogLocator,
        fetcher: CatalogFetcher | None = None,
        select: SelectFn | None = None,
    ) -> None:
        self.locator = locator
        self.fetcher = fetcher or locator.fetcher
        self._select = select or select_first

    # ------------------------------------------------------------------
    # 依赖树
    # ------------------------------------------------------------------

    def resolve_tree(self, ref: str) -> DependencyTree:
        """解析根引用及其全部传递依赖

        Raises:
            CircularDependencyError: 存在循环依赖
            NameConflictError: 直链根条目与某个依赖同名
            ComponentNotFoundError: 某个引用在所有目录中都不存在
            ReferenceParseError / SchemaValidationError / RateLimitError /
            CatalogFetchError / SelectionError
        """
        state = _ResolutionState()
        self._visit(ref, state)

        root = state.resolved[ref]
        # 直链根以 URL 为键，名称取自载荷，可能与某个依赖重名
        if root.name != ref and root.name in state.resolved:
            clash = state.resolved[root.name]
            raise NameConflictError(root.name, [root.source, clash.source])
        dependencies = {name: r for name, r in state.resolved.items() if name != ref}
        logger.info("已解析 %s: %d 个依赖", ref, len(dependencies))
        return DependencyTree(root=root, dependencies=dependencies)

    def _visit(self, ref: str, state: _ResolutionState) -> None:
        if ref in state.visiting:
            start = state.path.index(ref)
            raise CircularDependencyError([*state.path[start:], ref])

        if ref in state.resolved:
            logger.debug("已解析，复用: %s", ref)
            return

        state.visiting.add(ref)
        state.path.append(ref)
        try:
            resolved = self.resolve_reference(ref)
            for dep in resolved.item.registry_dependencies:
                self._visit(dep, state)
            # 子依赖全部完成后才写入，保证依赖先于依赖方
            state.resolved[ref] = resolved
        finally:
            state.visiting.discard(ref)
            state.path.pop()

    # ------------------------------------------------------------------
    # 单个引用
    # ------------------------------------------------------------------

    def resolve_reference(self, ref: str) -> ResolvedItem:
        """解析单个引用（不递归）"""
        reference = classify(ref)

        if isinstance(reference, DirectUrl):
            item = self.fetcher.fetch_single_item(reference.url).data
            return ResolvedItem(name=item.name, item=item, source=reference.url)

        if isinstance(reference, ShortRepoRef):
            return self._resolve_repo_file(ref, reference)

        matches = self.locator.locate(ref)
        if not matches:
            raise self._not_found(ref, reference)
        match = matches[0] if len(matches) == 1 else self._choose(ref, matches)
        return ResolvedItem(name=ref, item=match.item, source=match.catalog_url)

    def _resolve_repo_file(self, ref: str, reference: ShortRepoRef) -> ResolvedItem:
        """github:owner/repo/path/to/item.json -> 仓库中的条目文件"""
        if not reference.path:
            raise ReferenceParseError(ref, "依赖引用需指向条目文件: github:owner/repo/path")
        raw = self.fetcher.fetch_from_github(reference.owner, reference.repo, reference.path)
        item = parse_item(load_json(raw.data))
        return ResolvedItem(name=ref, item=item, source=ref)

    def _choose(self, ref: str, matches: list[CatalogMatch]) -> CatalogMatch:
        logger.info("条目 %s 存在于 %d 个目录", ref, len(matches))
        index = self._select(matches)
        if not 0 <= index < len(matches):
            raise SelectionError(index, len(matches))
        return matches[index]

    def _not_found(self, ref: str, reference: Reference) -> ComponentNotFoundError:
        name = reference.name if isinstance(reference, NamespacedRef) else ref
        available = self.locator.available_names(ref)
        return ComponentNotFoundError(
            ref,
            searched=self.locator.searched_urls(ref),
            available=available,
            suggestions=suggest(name, available),
        )

    # ------------------------------------------------------------------
    # 批量
    # ------------------------------------------------------------------

    def resolve_many(self, refs: list[str], max_workers: int = 1) -> list[ResolveOutcome]:
        """批量解析多个根引用，各自独立，返回顺序与输入一致"""

        def _one(ref: str) -> ResolveOutcome:
            try:
                return ResolveOutcome(ref, tree=self.resolve_tree(ref))
            except CatalogKitError as exc:
                logger.error("解析失败: %s - %s", ref, exc)
                return ResolveOutcome(ref, error=exc)

        if max_workers <= 1 or len(refs) <= 1:
            outcomes = [_one(r) for r in refs]
        else:
            with ThreadPoolExecutor(max_workers=min(max_workers, len(refs))) as pool:
                outcomes = list(pool.map(_one, refs))

        failed = [o.reference for o in outcomes if not o.ok]
        if failed:
            logger.warning(
                "解析汇总: %d 成功, %d 失败 (%s)",
                len(outcomes) - len(failed), len(failed), ", ".join(failed),
            )
        return outcomes


# ----------------------------------------------------------------------
# 依赖树派生工具
# ----------------------------------------------------------------------


def collect_external_dependencies(tree: DependencyTree) -> list[str]:
    """汇总整棵树的外部包依赖，去重并保持首次出现顺序"""
    seen: dict[str, None] = {}
    for resolved in [tree.root, *tree.dependencies.values()]:
        for dep in resolved.item.dependencies:
            seen.setdefault(dep, None)
    return list(seen)


def collect_files_in_order(tree: DependencyTree) -> list[tuple[str, tuple[ItemFile, ...]]]:
    """按安装顺序返回 (名称, 文件)：依赖按解析顺序在前，根在最后"""
    result = [(name, r.item.files) for name, r in tree.dependencies.items()]
    result.append((tree.root.name, tree.root.item.files))
    return result


def find_cycle(tree: DependencyTree) -> list[str] | None:
    """在已构建的依赖树上检测环，返回环路径或 None"""
    nodes = {**tree.dependencies, tree.root.name: tree.root}

    visited: set[str] = set()
    visiting: set[str] = set()
    path: list[str] = []

    def dfs(name: str) -> list[str] | None:
        if name in visiting:
            return [*path[path.index(name):], name]
        if name in visited:
            return None
        visiting.add(name)
        path.append(name)
        for dep in nodes[name].item.registry_dependencies:
            if dep in nodes:
                cycle = dfs(dep)
                if cycle:
                    return cycle
        visiting.discard(name)
        path.pop()
        visited.add(name)
        return None

    return dfs(tree.root.name)
