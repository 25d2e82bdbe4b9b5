"""载荷结构校验测试"""

from __future__ import annotations

import pytest

from catalogkit.core.dep.schema import parse_catalog_index, parse_item
from catalogkit.core.exceptions import SchemaValidationError


def _details(payload, parse=parse_item) -> list[str]:
    with pytest.raises(SchemaValidationError) as exc:
        parse(payload)
    return exc.value.details


class TestParseItem:
    def test_full_item(self, make_item) -> None:
        item = parse_item(make_item(
            "card", ["button"], deps=["clsx"],
            title="Card", description="卡片", author="acme",
            cssVars={"light": {"--radius": "0.5rem"}},
            categories=["layout"], docs="https://example.com/docs/card",
            meta={"since": 2},
        ))
        assert item.name == "card"
        assert item.type == "ui"
        assert item.registry_dependencies == ("button",)
        assert item.dependencies == ("clsx",)
        assert item.files[0].path == "ui/card.svelte"
        assert item.files[0].type == "ui"
        assert item.css_vars.light == {"--radius": "0.5rem"}
        assert item.css_vars.dark == {}
        assert item.categories == ("layout",)
        assert item.meta == {"since": 2}

    def test_bare_type_accepted(self, make_item) -> None:
        assert parse_item(make_item("use-mobile", type="hook")).type == "hook"

    def test_empty_files_allowed(self) -> None:
        assert parse_item({"name": "x", "type": "registry:lib", "files": []}).files == ()

    def test_missing_files(self) -> None:
        details = _details({"name": "x", "type": "registry:ui"})
        assert details == ["files: 必填数组缺失或类型错误"]

    def test_empty_name(self, make_item) -> None:
        assert "name: 不能为空" in _details(make_item(""))

    def test_unknown_type(self, make_item) -> None:
        details = _details(make_item("x", type="registry:widget"))
        assert any(d.startswith("type: 未知类型 'registry:widget'") for d in details)

    def test_file_issues_have_paths(self, make_item) -> None:
        payload = make_item("x")
        payload["files"].append({"content": "", "type": "registry:ui", "target": "t"})
        assert "files.1.path: 必填字段缺失" in _details(payload)

    def test_collects_all_issues(self) -> None:
        details = _details({"name": 1, "type": "registry:ui", "files": "nope", "dependencies": "clsx"})
        assert len(details) == 3

    def test_non_object(self) -> None:
        assert _details(["x"]) == ["(root): 应为对象"]

    def test_non_string_dependency(self, make_item) -> None:
        assert "registryDependencies.0: 应为字符串" in _details(make_item("x", [1]))


class TestParseIndex:
    def test_valid(self, make_index, make_item) -> None:
        index = parse_catalog_index(make_index("acme", [make_item("button"), make_item("card")]))
        assert index.name == "acme"
        assert index.homepage == "https://example.com"
        assert index.find("card").name == "card"
        assert index.find("ghost") is None

    def test_nested_item_path(self, make_index, make_item) -> None:
        bad = make_item("card")
        del bad["files"][0]["target"]
        details = _details(make_index("acme", [make_item("button"), bad]), parse_catalog_index)
        assert details == ["items.1.files.0.target: 必填字段缺失"]

    def test_bad_homepage(self) -> None:
        details = _details({"name": "acme", "homepage": "ftp://x", "items": []}, parse_catalog_index)
        assert details == ["homepage: 不是合法的 URL: ftp://x"]

    def test_missing_items(self) -> None:
        assert _details({"name": "acme"}, parse_catalog_index) == ["items: 必填数组缺失或类型错误"]

    def test_root_not_object(self) -> None:
        assert _details([], parse_catalog_index) == ["(root): 应为对象"]
