"""横切模块测试：exceptions / config / logger / yaml_io"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from catalogkit.core.config import DEFAULT_CATALOGS, Config, get_config, init_config
from catalogkit.core.exceptions import (
    CatalogFetchError,
    CatalogKitError,
    CircularDependencyError,
    ComponentNotFoundError,
    ConfigError,
    NameConflictError,
    RateLimitError,
    ReferenceParseError,
    SchemaValidationError,
    SelectionError,
)
from catalogkit.utils.logger import JSONFormatter, reset_logging, setup_logging
from catalogkit.utils.yaml_io import MAX_YAML_SIZE, load_yaml


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")


# =========================================================================
# exceptions.py
# =========================================================================


class TestExceptions:
    @pytest.mark.parametrize("cls", [
        ConfigError, ReferenceParseError, CatalogFetchError, RateLimitError,
        SchemaValidationError, ComponentNotFoundError, CircularDependencyError, SelectionError,
        NameConflictError,
    ])
    def test_hierarchy(self, cls: type) -> None:
        assert issubclass(cls, CatalogKitError)

    def test_codes_distinct(self) -> None:
        classes = [
            ConfigError, ReferenceParseError, CatalogFetchError, RateLimitError,
            SchemaValidationError, ComponentNotFoundError, CircularDependencyError, SelectionError,
            NameConflictError,
        ]
        codes = [c.code for c in classes]
        assert len(set(codes)) == len(codes)
        assert CatalogKitError.code == "UNKNOWN"

    def test_fetch_error_fields(self) -> None:
        cause = TimeoutError("timed out")
        e = CatalogFetchError("https://x/registry.json", cause=cause)
        assert e.status_code is None and e.cause is cause
        assert "timed out" in str(e)
        assert "503" in str(CatalogFetchError("https://x", 503))

    def test_rate_limit_reset_time(self) -> None:
        reset = datetime(2024, 1, 1, tzinfo=timezone.utc)
        e = RateLimitError(reset)
        assert e.reset_time == reset
        assert "2024-01-01" in str(e)

    def test_schema_details(self) -> None:
        e = SchemaValidationError(["files: 必填数组缺失或类型错误"])
        assert e.details == ["files: 必填数组缺失或类型错误"]
        assert "files" in str(e)
        assert SchemaValidationError().details == []

    def test_not_found_message(self) -> None:
        e = ComponentNotFoundError("buton", ["https://a/registry.json"], ["button"], ["button"])
        assert "buton" in str(e) and "https://a/registry.json" in str(e)
        assert str(e).endswith("button")


# =========================================================================
# config.py
# =========================================================================


class TestConfig:
    def test_default_values(self) -> None:
        cfg = Config()
        assert cfg.catalogs == DEFAULT_CATALOGS
        assert cfg.catalogs is not DEFAULT_CATALOGS
        assert cfg.max_retries == 3 and cfg.max_workers == 4

    def test_from_file_missing(self, tmp_path: Path) -> None:
        cfg = Config.from_file(str(tmp_path / "nonexist.yml"))
        assert cfg.catalogs == DEFAULT_CATALOGS

    def test_from_file_with_data(self, tmp_path: Path) -> None:
        f = tmp_path / "catalogkit.yml"
        _write_yaml(f, {
            "catalogs": {
                "acme": "https://acme.example.com/registry.json",
                "private": {
                    "url": "https://private.example.com/r/{name}.json",
                    "headers": {"Authorization": "Bearer t"},
                },
            },
            "max_retries": 5,
            "timeout": 10,
        })
        cfg = Config.from_file(str(f))
        assert cfg.max_retries == 5 and cfg.timeout == 10
        catalogs = cfg.catalog_configs()
        assert list(catalogs) == ["acme", "private"]
        assert catalogs["private"].kind == "authenticated"
        assert catalogs["private"].is_template

    def test_empty_catalogs_use_default(self, tmp_path: Path) -> None:
        f = tmp_path / "c.yml"
        _write_yaml(f, {"catalogs": {}, "max_workers": 2})
        cfg = Config.from_file(str(f))
        assert cfg.catalogs == DEFAULT_CATALOGS
        assert cfg.max_workers == 2

    def test_extra_fields(self, tmp_path: Path) -> None:
        f = tmp_path / "c.yml"
        _write_yaml(f, {"max_workers": 2, "style": "new-york"})
        assert Config.from_file(str(f)).extra == {"style": "new-york"}

    def test_catalogs_not_mapping(self, tmp_path: Path) -> None:
        f = tmp_path / "c.yml"
        _write_yaml(f, {"catalogs": ["https://a.example.com"]})
        with pytest.raises(ConfigError, match="catalogs"):
            Config.from_file(str(f))

    def test_bad_catalog_entry(self, tmp_path: Path) -> None:
        f = tmp_path / "c.yml"
        _write_yaml(f, {"catalogs": {"bad": 42}})
        with pytest.raises(ConfigError, match="bad"):
            Config.from_file(str(f)).catalog_configs()

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        f = tmp_path / "c.yml"
        f.write_text("catalogs: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="配置文件无效"):
            Config.from_file(str(f))

    def test_global_singleton(self, tmp_path: Path) -> None:
        import catalogkit.core.config as cfgmod

        cfgmod._current = None
        assert get_config().max_workers == 4

        f = tmp_path / "init.yml"
        _write_yaml(f, {"max_workers": 16})
        init_config(str(f))
        assert get_config().max_workers == 16
        cfgmod._current = None


# =========================================================================
# yaml_io.py
# =========================================================================


class TestLoadYaml:
    def test_missing_and_empty(self, tmp_path: Path) -> None:
        assert load_yaml(tmp_path / "none.yml") == {}
        empty = tmp_path / "empty.yml"
        empty.write_text("", encoding="utf-8")
        assert load_yaml(empty) == {}

    def test_non_mapping(self, tmp_path: Path) -> None:
        f = tmp_path / "list.yml"
        f.write_text("- a\n- b\n", encoding="utf-8")
        assert load_yaml(f) == {}

    def test_too_large(self, tmp_path: Path) -> None:
        f = tmp_path / "big.yml"
        f.write_text("x: " + "a" * (MAX_YAML_SIZE + 1), encoding="utf-8")
        with pytest.raises(ValueError, match="过大"):
            load_yaml(f)


# =========================================================================
# logger.py
# =========================================================================


class TestLogger:
    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        reset_logging()
        for h in handlers:
            root.addHandler(h)
        root.setLevel(level)

    def test_setup_replaces_handlers(self) -> None:
        setup_logging("DEBUG")
        setup_logging("DEBUG")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG

    def test_unknown_level_falls_back(self) -> None:
        setup_logging("NOPE")
        assert logging.getLogger().level == logging.INFO

    def test_json_formatter(self) -> None:
        record = logging.LogRecord(
            "catalogkit.core.dep.fetcher", logging.WARNING, __file__, 42,
            "重新校验失败: %s", ("https://x",), None,
        )
        data = json.loads(JSONFormatter().format(record))
        assert data["level"] == "WARNING"
        assert data["logger"] == "catalogkit.core.dep.fetcher"
        assert data["message"] == "重新校验失败: https://x"
        assert data["line"] == 42
        assert "exception" not in data
