"""CLI — 条目定位与依赖解析命令"""

from __future__ import annotations

import json
import sys
import threading
from typing import Any

import click

from catalogkit.cli import _parse_kv_pairs
from catalogkit.core.config import DEFAULT_CONFIG_PATH, Config, init_config
from catalogkit.core.dep import (
    CacheStore,
    CatalogFetcher,
    CatalogLocator,
    DependencyResolver,
    DependencyTree,
    ResolveOutcome,
    collect_external_dependencies,
    collect_files_in_order,
)
from catalogkit.core.dep.models import CatalogConfig, CatalogMatch
from catalogkit.core.dep.refs import has_name_placeholder, normalize_catalog_url, parse_catalog_map
from catalogkit.core.exceptions import CatalogKitError


def register(group: click.Group) -> None:
    group.add_command(resolve)
    group.add_command(locate)


_PROMPT_LOCK = threading.Lock()


def prompt_select(matches: list[CatalogMatch]) -> int:
    """交互式选择目录，返回 0 起始下标

    并行解析多个根时可能同时触发，逐个提问。
    """
    name = matches[0].item.name
    with _PROMPT_LOCK:
        click.echo(f"条目 '{name}' 存在于多个目录:", err=True)
        for i, m in enumerate(matches, start=1):
            click.echo(f"  {i}) {m.catalog_name} ({m.catalog_url})", err=True)
        choice = click.prompt(
            "选择目录编号", type=click.IntRange(1, len(matches)), default=1, err=True,
        )
    return choice - 1


def _catalogs(config_path: str, catalog: tuple[str, ...]) -> tuple[dict[str, CatalogConfig], Config]:
    """加载配置；--catalog 指定时替换配置文件中的目录映射"""
    cfg = init_config(config_path)
    if not catalog:
        return cfg.catalog_configs(), cfg
    raw = {
        name: url if has_name_placeholder(url) else normalize_catalog_url(url)
        for name, url in _parse_kv_pairs(catalog).items()
    }
    return parse_catalog_map(raw), cfg


def _build_resolver(config_path: str, catalog: tuple[str, ...]) -> tuple[DependencyResolver, int]:
    try:
        catalogs, cfg = _catalogs(config_path, catalog)
    except CatalogKitError as e:
        raise click.ClickException(str(e)) from e
    fetcher = CatalogFetcher(
        CacheStore(),
        max_retries=cfg.max_retries,
        initial_delay=cfg.initial_delay,
        timeout=cfg.timeout,
    )
    locator = CatalogLocator(fetcher, catalogs)
    return DependencyResolver(locator, fetcher, select=prompt_select), cfg.max_workers


def _tree_to_dict(tree: DependencyTree, with_files: bool) -> dict[str, Any]:
    order = []
    for name, files in collect_files_in_order(tree):
        entry: dict[str, Any] = {"name": name}
        if with_files:
            entry["files"] = [{"path": f.path, "target": f.target, "type": f.type} for f in files]
        order.append(entry)
    return {
        "root": tree.root.name,
        "source": tree.root.source,
        "install_order": order,
        "dependencies": {name: r.source for name, r in tree.dependencies.items()},
        "external_dependencies": collect_external_dependencies(tree),
    }


def _outcome_to_dict(outcome: ResolveOutcome, with_files: bool) -> dict[str, Any]:
    if outcome.tree is not None:
        return {"reference": outcome.reference, "ok": True,
                "tree": _tree_to_dict(outcome.tree, with_files)}
    err = outcome.error
    return {"reference": outcome.reference, "ok": False,
            "error": {"code": getattr(err, "code", "UNKNOWN"), "message": str(err)}}


def _echo_outcome(outcome: ResolveOutcome, with_files: bool) -> None:
    if outcome.tree is None:
        click.echo(f"[失败] {outcome.reference}: {outcome.error}", err=True)
        return
    tree = outcome.tree
    click.echo(f"{outcome.reference} ({tree.root.source})")
    click.echo(f"  依赖: {len(tree.dependencies)} 个")
    for i, (name, files) in enumerate(collect_files_in_order(tree), start=1):
        click.echo(f"  {i:3d}. {name}  [{len(files)} 个文件]")
        if with_files:
            for f in files:
                click.echo(f"         {f.path} -> {f.target}")
    external = collect_external_dependencies(tree)
    if external:
        click.echo(f"  外部依赖: {' '.join(external)}")


@click.command()
@click.argument("refs", nargs=-1, required=True)
@click.option("--config", "-c", default=DEFAULT_CONFIG_PATH, help="配置文件路径")
@click.option("--catalog", multiple=True, help="目录，格式: NAME=URL（可多次指定，覆盖配置文件）")
@click.option("--parallel", "-p", default=None, type=int, help="并行解析的根引用数")
@click.option("--files", "with_files", is_flag=True, help="列出每个条目的文件")
@click.option("--json", "as_json", is_flag=True, help="以 JSON 输出")
def resolve(
    refs: tuple[str, ...], config: str, catalog: tuple[str, ...],
    parallel: int | None, with_files: bool, as_json: bool,
) -> None:
    """解析条目及其全部依赖，按安装顺序输出"""
    resolver, max_workers = _build_resolver(config, catalog)
    outcomes = resolver.resolve_many(list(refs), max_workers=parallel or max_workers)

    if as_json:
        data = [_outcome_to_dict(o, with_files) for o in outcomes]
        click.echo(json.dumps(data, ensure_ascii=False, indent=2))
    else:
        for o in outcomes:
            _echo_outcome(o, with_files)

    if not all(o.ok for o in outcomes):
        sys.exit(1)


@click.command()
@click.argument("name")
@click.option("--config", "-c", default=DEFAULT_CONFIG_PATH, help="配置文件路径")
@click.option("--catalog", multiple=True, help="目录，格式: NAME=URL（可多次指定，覆盖配置文件）")
def locate(name: str, config: str, catalog: tuple[str, ...]) -> None:
    """列出包含指定条目的全部目录"""
    resolver, _ = _build_resolver(config, catalog)
    try:
        matches = resolver.locator.locate(name)
    except CatalogKitError as e:
        raise click.ClickException(str(e)) from e
    if not matches:
        click.echo(f"未找到: {name}")
        sys.exit(1)
    for m in matches:
        title = f"  {m.item.title}" if m.item.title else ""
        click.echo(f"  {m.catalog_name:16s} {m.catalog_url}{title}")
