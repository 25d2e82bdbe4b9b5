"""目录载荷结构校验

将 JSON 解析结果校验并转换为不可变数据模型。
校验失败时收集全部问题（带字段路径），统一抛出 SchemaValidationError。
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from catalogkit.core.dep.models import (
    ITEM_TYPES,
    CatalogIndex,
    CssVars,
    DistributableItem,
    ItemFile,
)
from catalogkit.core.exceptions import SchemaValidationError

# 已发布目录中的类型值带有该前缀，如 "registry:ui"
TYPE_PREFIX = "registry:"


class _Issues:
    """按字段路径收集校验问题"""

    def __init__(self) -> None:
        self.items: list[str] = []

    def add(self, path: str, message: str) -> None:
        self.items.append(f"{path or '(root)'}: {message}")


def _join(path: str, key: str | int) -> str:
    return f"{path}.{key}" if path else str(key)


def _str(data: dict, key: str, path: str, issues: _Issues, *, required: bool = False) -> str:
    value = data.get(key)
    if value is None:
        if required:
            issues.add(_join(path, key), "必填字段缺失")
        return ""
    if not isinstance(value, str):
        issues.add(_join(path, key), f"应为字符串，实际为 {type(value).__name__}")
        return ""
    return value


def _str_list(data: dict, key: str, path: str, issues: _Issues) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list):
        issues.add(_join(path, key), "应为字符串数组")
        return ()
    result = []
    for i, v in enumerate(value):
        if isinstance(v, str):
            result.append(v)
        else:
            issues.add(_join(_join(path, key), i), "应为字符串")
    return tuple(result)


def _str_map(value: Any, path: str, issues: _Issues) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        issues.add(path, "应为字符串映射")
        return {}
    result: dict[str, str] = {}
    for k, v in value.items():
        if isinstance(v, str):
            result[str(k)] = v
        else:
            issues.add(_join(path, k), "应为字符串")
    return result


def _item_type(data: dict, path: str, issues: _Issues) -> str:
    raw = _str(data, "type", path, issues, required=True)
    if not raw:
        return ""
    value = raw.removeprefix(TYPE_PREFIX)
    if value not in ITEM_TYPES:
        issues.add(_join(path, "type"), f"未知类型 '{raw}'，可选: {', '.join(ITEM_TYPES)}")
    return value


def _file(data: Any, path: str, issues: _Issues) -> ItemFile | None:
    if not isinstance(data, dict):
        issues.add(path, "应为对象")
        return None
    return ItemFile(
        path=_str(data, "path", path, issues, required=True),
        content=_str(data, "content", path, issues, required=True),
        type=_item_type(data, path, issues),
        target=_str(data, "target", path, issues, required=True),
    )


def _item(data: Any, path: str, issues: _Issues) -> DistributableItem | None:
    if not isinstance(data, dict):
        issues.add(path, "应为对象")
        return None

    name = _str(data, "name", path, issues, required=True)
    if isinstance(data.get("name"), str) and not name:
        issues.add(_join(path, "name"), "不能为空")

    files: list[ItemFile] = []
    raw_files = data.get("files")
    if not isinstance(raw_files, list):
        issues.add(_join(path, "files"), "必填数组缺失或类型错误")
    else:
        for i, f in enumerate(raw_files):
            parsed = _file(f, _join(_join(path, "files"), i), issues)
            if parsed is not None:
                files.append(parsed)

    css_vars = None
    raw_css = data.get("cssVars")
    if raw_css is not None:
        css_path = _join(path, "cssVars")
        if isinstance(raw_css, dict):
            css_vars = CssVars(
                theme=_str_map(raw_css.get("theme"), _join(css_path, "theme"), issues),
                light=_str_map(raw_css.get("light"), _join(css_path, "light"), issues),
                dark=_str_map(raw_css.get("dark"), _join(css_path, "dark"), issues),
            )
        else:
            issues.add(css_path, "应为对象")

    meta = data.get("meta")
    if meta is not None and not isinstance(meta, dict):
        issues.add(_join(path, "meta"), "应为对象")
        meta = None

    return DistributableItem(
        name=name,
        type=_item_type(data, path, issues),
        files=tuple(files),
        title=_str(data, "title", path, issues),
        description=_str(data, "description", path, issues),
        author=_str(data, "author", path, issues),
        dependencies=_str_list(data, "dependencies", path, issues),
        registry_dependencies=_str_list(data, "registryDependencies", path, issues),
        css_vars=css_vars,
        docs=_str(data, "docs", path, issues),
        categories=_str_list(data, "categories", path, issues),
        meta=dict(meta or {}),
    )


def parse_item(payload: Any) -> DistributableItem:
    """校验单个条目载荷

    Raises:
        SchemaValidationError: 结构不符合条目格式
    """
    issues = _Issues()
    item = _item(payload, "", issues)
    if issues.items or item is None:
        raise SchemaValidationError(issues.items)
    return item


def parse_catalog_index(payload: Any) -> CatalogIndex:
    """校验目录索引载荷

    Raises:
        SchemaValidationError: 结构不符合目录索引格式
    """
    issues = _Issues()
    if not isinstance(payload, dict):
        raise SchemaValidationError(["(root): 应为对象"])

    name = _str(payload, "name", "", issues, required=True)
    if isinstance(payload.get("name"), str) and not name:
        issues.add("name", "不能为空")

    homepage = _str(payload, "homepage", "", issues)
    if homepage and urlparse(homepage).scheme not in ("http", "https"):
        issues.add("homepage", f"不是合法的 URL: {homepage}")

    items: list[DistributableItem] = []
    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        issues.add("items", "必填数组缺失或类型错误")
    else:
        for i, raw in enumerate(raw_items):
            parsed = _item(raw, _join("items", i), issues)
            if parsed is not None:
                items.append(parsed)

    if issues.items:
        raise SchemaValidationError(issues.items)
    return CatalogIndex(name=name, items=tuple(items), homepage=homepage)
