"""目录与条目数据模型

数据类:
- ItemFile / CssVars / DistributableItem: 条目载荷（拉取后不可变）
- CatalogIndex: 目录索引
- CatalogConfig: 规范化后的目录配置
- CatalogMatch / ResolvedItem / DependencyTree: 定位与解析结果
- FetchResult: 拉取结果
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

ITEM_TYPES = ("ui", "hook", "block", "lib", "component", "page", "file")

# 目录索引文件名与单条目子路径
INDEX_FILENAME = "registry.json"
ITEM_SUBPATH = "r"

NAME_PLACEHOLDER = "{name}"

CATALOG_SIMPLE = "simple"
CATALOG_AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class ItemFile:
    """条目携带的单个文件，内容对本模块不透明"""

    path: str
    content: str
    type: str
    target: str


@dataclass(frozen=True)
class CssVars:
    theme: dict[str, str] = field(default_factory=dict)
    light: dict[str, str] = field(default_factory=dict)
    dark: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DistributableItem:
    """可分发条目: 一组文件 + 元数据 + 依赖声明"""

    name: str
    type: str
    files: tuple[ItemFile, ...] = ()
    title: str = ""
    description: str = ""
    author: str = ""
    dependencies: tuple[str, ...] = ()           # 外部包标识
    registry_dependencies: tuple[str, ...] = ()  # 其他条目的名称或直链 URL
    css_vars: CssVars | None = None
    docs: str = ""
    categories: tuple[str, ...] = ()
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CatalogIndex:
    name: str
    items: tuple[DistributableItem, ...] = ()
    homepage: str = ""

    def find(self, name: str) -> DistributableItem | None:
        """按名称线性查找条目"""
        for item in self.items:
            if item.name == name:
                return item
        return None

    def names(self) -> list[str]:
        return [item.name for item in self.items]


@dataclass(frozen=True)
class CatalogConfig:
    """单个目录的规范化配置

    kind:
      - simple:        裸 URL
      - authenticated: {url, headers}
    URL 中包含 {name} 占位符时为模板目录。
    """

    name: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    kind: str = CATALOG_SIMPLE

    @property
    def is_template(self) -> bool:
        return NAME_PLACEHOLDER in self.url


@dataclass(frozen=True)
class CatalogMatch:
    """条目在某个目录中的一次命中"""

    catalog_name: str
    catalog_url: str
    item: DistributableItem


@dataclass(frozen=True)
class ResolvedItem:
    name: str
    item: DistributableItem
    source: str  # 目录 URL 或直链 URL


@dataclass
class DependencyTree:
    """根条目 + 按解析完成顺序排列的全部传递依赖（不含根）"""

    root: ResolvedItem
    dependencies: dict[str, ResolvedItem] = field(default_factory=dict)

    def install_order(self) -> list[str]:
        return [*self.dependencies, self.root.name]


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    data: T
    cached: bool
    etag: str | None = None
