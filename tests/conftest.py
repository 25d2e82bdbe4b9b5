"""共享 fixture — 假 HTTP 传输 + 载荷工厂

  conftest.py                         test_*.py
  ┌──────────────────────────┐     ┌──────────────────────────────┐
  │ FakeTransport            │     │ transport.json(url, payload) │
  │   按 URL 返回预置响应    │<────│ fetcher.fetch_index(url)     │
  │   记录每次请求           │     │ assert transport.count(url)  │
  ├──────────────────────────┤     ├──────────────────────────────┤
  │ make_item / make_index   │────>│ make_item("card", ["button"])│
  └──────────────────────────┘     └──────────────────────────────┘

未注册的 URL 一律返回 404，无需真实网络。
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import pytest

from catalogkit.core.dep.cache import CacheStore
from catalogkit.core.dep.fetcher import CatalogFetcher, HttpResponse


class FakeTransport:
    """按 URL 返回预置响应的传输实现

    同一 URL 注册多个响应时依次返回，最后一个重复使用；
    响应为异常实例时直接抛出（模拟传输失败）。
    """

    def __init__(self) -> None:
        self.routes: dict[str, list[HttpResponse | BaseException]] = {}
        self.calls: list[tuple[str, dict[str, str]]] = []

    def add(self, url: str, *responses: HttpResponse | BaseException) -> None:
        self.routes.setdefault(url, []).extend(responses)

    def json(self, url: str, payload: Any, *, status: int = 200, etag: str | None = None) -> None:
        headers = {"etag": etag} if etag else {}
        self.add(url, HttpResponse(status=status, body=json.dumps(payload).encode(), headers=headers))

    def count(self, url: str) -> int:
        return sum(1 for u, _ in self.calls if u == url)

    def __call__(self, url: str, headers: Mapping[str, str], timeout: float) -> HttpResponse:
        self.calls.append((url, dict(headers)))
        queue = self.routes.get(url)
        if not queue:
            return HttpResponse(status=404)
        resp = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(resp, BaseException):
            raise resp
        return resp


def _make_item(
    name: str,
    registry_deps: list[str] | None = None,
    deps: list[str] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """构造条目载荷，默认带一个同名文件"""
    payload: dict[str, Any] = {
        "name": name,
        "type": "registry:ui",
        "files": [{
            "path": f"ui/{name}.svelte",
            "content": f"<!-- {name} -->",
            "type": "registry:ui",
            "target": f"components/ui/{name}.svelte",
        }],
    }
    if registry_deps:
        payload["registryDependencies"] = registry_deps
    if deps:
        payload["dependencies"] = deps
    payload.update(extra)
    return payload


def _make_index(name: str, items: list[dict[str, Any]]) -> dict[str, Any]:
    return {"name": name, "homepage": "https://example.com", "items": items}


@pytest.fixture()
def make_item():
    """条目载荷工厂: make_item("card", ["button"], deps=["clsx"])"""
    return _make_item


@pytest.fixture()
def make_index():
    """目录索引载荷工厂: make_index("acme", [make_item("button")])"""
    return _make_index


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def sleeps() -> list[float]:
    """记录退避等待时长，不真实 sleep"""
    return []


@pytest.fixture()
def fetcher(transport: FakeTransport, sleeps: list[float]) -> CatalogFetcher:
    return CatalogFetcher(CacheStore(), transport, initial_delay=0.5, sleep=sleeps.append)
