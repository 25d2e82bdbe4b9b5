"""集中配置管理

目录映射、重试参数、并行度统一从 YAML 文件加载，支持编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import yaml

from catalogkit.core.dep.models import CatalogConfig
from catalogkit.core.dep.refs import parse_catalog_map
from catalogkit.core.exceptions import ConfigError
from catalogkit.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "catalogkit.yml"
DEFAULT_CATALOGS: dict[str, Any] = {
    "default": "https://rumcli.pages.dev/r/registry.json",
}


@dataclass
class Config:
    """全局配置"""

    # 目录名 -> URL 字符串 或 {url, headers}，按声明顺序搜索
    catalogs: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_CATALOGS))

    # 拉取
    max_retries: int = 3
    initial_delay: float = 1.0
    timeout: float = 30.0

    # 批量解析并行度
    max_workers: int = 4

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_PATH) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f"配置文件无效: {path}: {e}") from e
        if not data:
            return cls()
        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        # catalogs 为空时沿用默认目录
        if not matched.get("catalogs", True):
            matched.pop("catalogs")
        if "catalogs" in matched and not isinstance(matched["catalogs"], dict):
            raise ConfigError(f"{path}: catalogs 应为映射")
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def catalog_configs(self) -> dict[str, CatalogConfig]:
        """规范化后的有序目录映射"""
        return parse_catalog_map(self.catalogs)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
