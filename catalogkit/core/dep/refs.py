"""引用解析与 URL 模板

职责:
- 按字符串形态对引用分类（直链 / @目录/名称 / github:owner/repo / 普通名称）
- 替换目录 URL 模板中的 {name} 占位符
- 推导约定的单条目 URL
- 将目录配置（裸 URL 或 {url, headers}）规范化为 CatalogConfig

纯函数，无 I/O。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union
from urllib.parse import quote

from catalogkit.core.dep.models import (
    CATALOG_AUTHENTICATED,
    CATALOG_SIMPLE,
    INDEX_FILENAME,
    ITEM_SUBPATH,
    NAME_PLACEHOLDER,
    CatalogConfig,
)
from catalogkit.core.exceptions import ConfigError, ReferenceParseError

_NAMESPACED_RE = re.compile(r"^@([^/]+)/(.+)$")
_REPO_RE = re.compile(r"^github:([^/]+)/([^/]+)(?:/(.+))?$")
_URL_PREFIXES = ("http://", "https://")
_REPO_PREFIX = "github:"


@dataclass(frozen=True)
class DirectUrl:
    url: str


@dataclass(frozen=True)
class NamespacedRef:
    catalog: str
    name: str


@dataclass(frozen=True)
class ShortRepoRef:
    owner: str
    repo: str
    path: str | None = None


@dataclass(frozen=True)
class PlainName:
    name: str


Reference = Union[DirectUrl, NamespacedRef, ShortRepoRef, PlainName]


def is_url_reference(ref: str) -> bool:
    return ref.lower().startswith(_URL_PREFIXES)


def parse_namespaced(ref: str) -> NamespacedRef | None:
    """解析 @catalog/name，名称部分可以包含 /"""
    m = _NAMESPACED_RE.match(ref)
    if not m:
        return None
    return NamespacedRef(catalog=m.group(1), name=m.group(2))


def is_namespaced(ref: str) -> bool:
    return parse_namespaced(ref) is not None


def parse_repo_reference(ref: str) -> ShortRepoRef | None:
    """解析 github:owner/repo 或 github:owner/repo/path/to/file"""
    m = _REPO_RE.match(ref)
    if not m:
        return None
    return ShortRepoRef(owner=m.group(1), repo=m.group(2), path=m.group(3))


def classify(ref: str) -> Reference:
    """按字符串形态对引用分类

    Raises:
        ReferenceParseError: 空引用、以 @ 开头但不是 @catalog/name、
            或 github: 开头但不是 github:owner/repo[/path]
    """
    if not ref or not ref.strip():
        raise ReferenceParseError(ref, "引用不能为空")
    if is_url_reference(ref):
        return DirectUrl(ref)
    if ref.startswith("@"):
        namespaced = parse_namespaced(ref)
        if namespaced is None:
            raise ReferenceParseError(ref, "应为 @catalog/name 格式")
        return namespaced
    if ref.startswith(_REPO_PREFIX):
        repo_ref = parse_repo_reference(ref)
        if repo_ref is None:
            raise ReferenceParseError(ref, "应为 github:owner/repo[/path] 格式")
        return repo_ref
    return PlainName(ref)


def has_name_placeholder(url: str) -> bool:
    return NAME_PLACEHOLDER in url


def encode_name(name: str) -> str:
    """条目名按 URL 路径段编码，保留 / 作为子路径分隔"""
    return quote(name, safe="/")


def substitute_template(url: str, name: str) -> str:
    """替换全部 {name} 占位符（名称经 URL 编码），无占位符时原样返回

    Raises:
        ReferenceParseError: 替换后仍残留花括号（模板语法错误）
    """
    rest = url.replace(NAME_PLACEHOLDER, "")
    if "{" in rest or "}" in rest:
        raise ReferenceParseError(url, "URL 模板仅支持 {name} 占位符")
    return url.replace(NAME_PLACEHOLDER, encode_name(name))


def build_item_url(catalog_url: str, name: str) -> str:
    """由目录 URL 推导约定的单条目 URL

    https://example.com/registry.json -> https://example.com/r/<name>.json
    """
    base = catalog_url.rstrip("/")
    suffix = "/" + INDEX_FILENAME
    if base.endswith(suffix):
        base = base[: -len(suffix)]
    return f"{base}/{ITEM_SUBPATH}/{encode_name(name)}.json"


def normalize_catalog_url(url: str) -> str:
    """为目录基础 URL 补全索引文件名，已指向 .json 文件时原样返回"""
    if url.endswith(".json"):
        return url
    return f"{url.rstrip('/')}/{INDEX_FILENAME}"


def parse_catalog_config(name: str, raw: Any) -> CatalogConfig:
    """将配置中的目录项（裸 URL 或 {url, headers}）规范化

    Raises:
        ConfigError: 目录项形态不受支持
    """
    if isinstance(raw, str):
        if not raw:
            raise ConfigError(f"目录 '{name}' 的 URL 为空")
        return CatalogConfig(name=name, url=raw, kind=CATALOG_SIMPLE)

    if isinstance(raw, dict):
        url = raw.get("url")
        if not isinstance(url, str) or not url:
            raise ConfigError(f"目录 '{name}' 缺少 url 字段")
        headers = raw.get("headers") or {}
        if not isinstance(headers, dict):
            raise ConfigError(f"目录 '{name}' 的 headers 应为映射")
        return CatalogConfig(
            name=name,
            url=url,
            headers={str(k): str(v) for k, v in headers.items()},
            kind=CATALOG_AUTHENTICATED if headers else CATALOG_SIMPLE,
        )

    raise ConfigError(
        f"目录 '{name}' 配置类型不受支持: {type(raw).__name__}，"
        "应为 URL 字符串或 {url, headers}"
    )


def parse_catalog_map(raw_map: dict[str, Any]) -> dict[str, CatalogConfig]:
    """规范化整个目录映射，保持声明顺序"""
    return {name: parse_catalog_config(name, raw) for name, raw in raw_map.items()}
