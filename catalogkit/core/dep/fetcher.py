"""目录拉取器

职责:
- 拉取目录索引 / 单条目 / 原始内容（HTTP GET）
- 按 URL 缓存，ETag 条件请求重新校验
- 5xx 与传输错误指数退避重试
- 识别 GitHub 风格限流（403 + 剩余额度 0），立即失败不重试
- 重新校验遇到网络错误时回退到旧缓存

状态流转（单次调用）:
  无缓存  → 拉取 → 成功 / HTTP 错误(重试) / 结构错误 / 限流
  有缓存  → 条件请求 → 304 返回缓存 / 变更后重新解析入缓存 / 网络错误返回旧缓存
"""

from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, TypeVar

from catalogkit.core.dep.cache import (
    PARTITION_INDEX,
    PARTITION_ITEM,
    PARTITION_RAW,
    CacheEntry,
    CacheStore,
)
from catalogkit.core.dep.models import (
    INDEX_FILENAME,
    ITEM_SUBPATH,
    CatalogIndex,
    DistributableItem,
    FetchResult,
)
from catalogkit.core.dep.refs import encode_name, parse_repo_reference
from catalogkit.core.dep.schema import parse_catalog_index, parse_item
from catalogkit.core.exceptions import (
    CatalogFetchError,
    RateLimitError,
    ReferenceParseError,
    SchemaValidationError,
)
from catalogkit.utils.net import validate_url_scheme

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_TIMEOUT = 30.0

GITHUB_RAW_BASE = "https://raw.githubusercontent.com"
RATE_LIMIT_REMAINING = "x-ratelimit-remaining"
RATE_LIMIT_RESET = "x-ratelimit-reset"


@dataclass(frozen=True)
class HttpResponse:
    """传输层响应，headers 的键统一为小写"""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


# 传输策略：(url, headers, timeout) -> HttpResponse，传输失败时抛出 OSError
Transport = Callable[[str, Mapping[str, str], float], HttpResponse]


def _lower_headers(headers: Any) -> dict[str, str]:
    if headers is None:
        return {}
    return {str(k).lower(): str(v) for k, v in headers.items()}


def urllib_transport(url: str, headers: Mapping[str, str], timeout: float) -> HttpResponse:
    """默认传输实现，HTTP 错误状态码作为普通响应返回"""
    req = urllib.request.Request(url, headers=dict(headers))
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
            return HttpResponse(
                status=resp.status, body=resp.read(),
                headers=_lower_headers(resp.headers),
            )
    except urllib.error.HTTPError as e:
        # urllib 将 304 与 4xx/5xx 都作为 HTTPError 抛出
        body = e.read() if e.fp is not None else b""
        return HttpResponse(status=e.code, body=body, headers=_lower_headers(e.headers))


def backoff_delay(attempt: int, initial_delay: float) -> float:
    """指数退避: initial_delay * 2^attempt"""
    return initial_delay * (2 ** attempt)


def load_json(body: bytes | str) -> Any:
    """解析 JSON 载荷，格式错误视为结构校验失败"""
    try:
        return json.loads(body)
    except ValueError as e:
        raise SchemaValidationError([f"(root): 无效的 JSON: {e}"]) from e


def build_github_raw_url(owner: str, repo: str, path: str, branch: str = "main") -> str:
    return f"{GITHUB_RAW_BASE}/{owner}/{repo}/{branch}/{path}"


class CatalogFetcher:
    """带缓存与重试的目录拉取器

    缓存与传输均由调用方注入：
      - cache: CacheStore，不传则新建一个私有实例
      - transport: HTTP 传输策略，默认 urllib_transport，测试时可替换为假实现
      - sleep: 退避等待函数，测试时可替换
    """

    def __init__(
        self,
        cache: CacheStore | None = None,
        transport: Transport | None = None,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cache = cache if cache is not None else CacheStore()
        self.transport = transport or urllib_transport
        self.max_retries = max(1, max_retries)
        self.initial_delay = initial_delay
        self.timeout = timeout
        self._sleep = sleep

    # ------------------------------------------------------------------
    # 公共接口
    # ------------------------------------------------------------------

    def fetch_index(
        self, url: str, headers: Mapping[str, str] | None = None, use_cache: bool = True,
    ) -> FetchResult[CatalogIndex]:
        """拉取并校验目录索引"""
        return self._fetch(
            PARTITION_INDEX, url, headers, use_cache,
            lambda body: parse_catalog_index(load_json(body)),
        )

    def fetch_single_item(
        self, url: str, headers: Mapping[str, str] | None = None, use_cache: bool = True,
    ) -> FetchResult[DistributableItem]:
        """拉取并校验单个条目"""
        return self._fetch(
            PARTITION_ITEM, url, headers, use_cache,
            lambda body: parse_item(load_json(body)),
        )

    def fetch_raw(
        self, url: str, headers: Mapping[str, str] | None = None, use_cache: bool = True,
    ) -> FetchResult[str]:
        """拉取原始文本内容，不做结构校验"""
        return self._fetch(
            PARTITION_RAW, url, headers, use_cache,
            lambda body: body.decode("utf-8", errors="replace"),
        )

    def fetch_from_github(
        self,
        owner: str,
        repo: str,
        path: str,
        *,
        token: str | None = None,
        branch: str = "main",
        use_cache: bool = True,
    ) -> FetchResult[str]:
        """从 GitHub 仓库拉取原始文件，token 用于私有仓库"""
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        url = build_github_raw_url(owner, repo, path, branch)
        return self.fetch_raw(url, headers, use_cache)

    def fetch_index_from_github(
        self, ref: str, *, token: str | None = None, branch: str = "main",
    ) -> FetchResult[CatalogIndex]:
        """github:owner/repo[/path] -> 目录索引，path 缺省为 registry.json"""
        repo_ref = parse_repo_reference(ref)
        if repo_ref is None:
            raise ReferenceParseError(ref, "应为 github:owner/repo[/path] 格式")
        raw = self.fetch_from_github(
            repo_ref.owner, repo_ref.repo, repo_ref.path or INDEX_FILENAME,
            token=token, branch=branch,
        )
        return FetchResult(parse_catalog_index(load_json(raw.data)), raw.cached, raw.etag)

    def fetch_item_from_github(
        self, ref: str, name: str, *, token: str | None = None, branch: str = "main",
    ) -> FetchResult[DistributableItem]:
        """github:owner/repo[/dir] + name -> <dir>/<name>.json，dir 缺省为 r"""
        repo_ref = parse_repo_reference(ref)
        if repo_ref is None:
            raise ReferenceParseError(ref, "应为 github:owner/repo[/path] 格式")
        path = f"{repo_ref.path or ITEM_SUBPATH}/{encode_name(name)}.json"
        raw = self.fetch_from_github(
            repo_ref.owner, repo_ref.repo, path, token=token, branch=branch,
        )
        return FetchResult(parse_item(load_json(raw.data)), raw.cached, raw.etag)

    # ------------------------------------------------------------------
    # 缓存流程
    # ------------------------------------------------------------------

    def _fetch(
        self,
        partition: str,
        url: str,
        headers: Mapping[str, str] | None,
        use_cache: bool,
        parse: Callable[[bytes], T],
    ) -> FetchResult[T]:
        headers = dict(headers or {})

        if use_cache:
            cached = self.cache.get(partition, url)
            if cached is not None:
                if cached.etag:
                    return self._revalidate(partition, url, headers, cached, parse)
                logger.debug("缓存命中: %s", url)
                return FetchResult(cached.data, True, cached.etag)

        response = self._request(url, headers)
        if not response.ok:
            raise CatalogFetchError(url, response.status)

        data = parse(response.body)
        etag = response.header("etag")
        if use_cache:
            self.cache.put(partition, url, data, etag)
        logger.info("已拉取: %s", url)
        return FetchResult(data, False, etag)

    def _revalidate(
        self,
        partition: str,
        url: str,
        headers: dict[str, str],
        cached: CacheEntry,
        parse: Callable[[bytes], T],
    ) -> FetchResult[T]:
        """ETag 条件请求；网络错误时返回旧缓存，结构错误与限流照常抛出"""
        conditional = {**headers, "If-None-Match": cached.etag or ""}
        try:
            response = self._request(url, conditional)
            if response.status == 304:
                logger.debug("未变更 (304): %s", url)
                return FetchResult(cached.data, True, cached.etag)
            if not response.ok:
                raise CatalogFetchError(url, response.status)
        except CatalogFetchError as e:
            # TODO: 旧缓存没有时效上限，目录长期不可达时会一直返回旧数据；需要时在此加入最大陈旧时长
            logger.warning(
                "重新校验失败，使用缓存数据 (已缓存 %.0f 秒): %s - %s", cached.age, url, e,
            )
            return FetchResult(cached.data, True, cached.etag)

        data = parse(response.body)
        etag = response.header("etag")
        self.cache.put(partition, url, data, etag)
        logger.info("内容已变更，缓存已更新: %s", url)
        return FetchResult(data, False, etag)

    # ------------------------------------------------------------------
    # 重试与限流
    # ------------------------------------------------------------------

    def _request(self, url: str, headers: Mapping[str, str]) -> HttpResponse:
        """带重试的 GET，2xx/304/4xx 直接返回，5xx 与传输错误指数退避重试

        Raises:
            RateLimitError: 403 且剩余额度为 0，立即抛出
            CatalogFetchError: 重试耗尽，或请求无法构造
        """
        validate_url_scheme(url, context="catalog fetch")
        request_headers = {"Accept": "application/json", **headers}

        last_status: int | None = None
        last_error: BaseException | None = None
        for attempt in range(self.max_retries):
            try:
                response = self.transport(url, request_headers, self.timeout)
            except ValueError as e:
                # 请求无法构造（如 URL 含非 ASCII 字符），不重试
                logger.warning("请求无法构造: %s - %s", url, e)
                raise CatalogFetchError(url, None, e) from e
            except (OSError, http.client.HTTPException) as e:
                last_status, last_error = None, e
                logger.warning(
                    "请求失败 (第 %d/%d 次): %s - %s", attempt + 1, self.max_retries, url, e,
                )
            else:
                self._check_rate_limit(response)
                if response.status < 500:
                    return response
                last_status, last_error = response.status, None
                logger.warning(
                    "服务端错误 HTTP %d (第 %d/%d 次): %s",
                    response.status, attempt + 1, self.max_retries, url,
                )

            if attempt < self.max_retries - 1:
                self._sleep(backoff_delay(attempt, self.initial_delay))

        raise CatalogFetchError(url, last_status, last_error) from last_error

    @staticmethod
    def _check_rate_limit(response: HttpResponse) -> None:
        if response.status != 403:
            return
        remaining = response.header(RATE_LIMIT_REMAINING)
        reset = response.header(RATE_LIMIT_RESET)
        if remaining != "0" or not reset:
            return
        try:
            reset_ts = int(reset)
        except ValueError:
            logger.warning("无法解析限流重置时间: %s", reset)
            return
        raise RateLimitError(datetime.fromtimestamp(reset_ts, tz=timezone.utc))
