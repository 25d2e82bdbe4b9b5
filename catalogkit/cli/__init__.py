"""catalogkit 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os

import click

from catalogkit import __version__
from catalogkit.utils.logger import setup_logging


def _parse_kv_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    """解析 key=value 参数对，值中允许再出现 ="""
    result: dict[str, str] = {}
    for p in pairs:
        if "=" not in p:
            raise click.BadParameter(f"应为 NAME=URL 格式: {p}")
        k, v = p.split("=", 1)
        result[k.strip()] = v.strip()
    return result


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """catalogkit - 从远程目录解析条目及其依赖"""
    setup_logging(
        level=os.getenv("CATALOGKIT_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("CATALOGKIT_LOG_JSON", "") == "1",
    )


# 注册各领域子命令
from catalogkit.cli.cmd_resolve import register as _reg_resolve  # noqa: E402

_reg_resolve(main)
