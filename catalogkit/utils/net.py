"""网络工具 — URL 安全校验"""

from __future__ import annotations

from urllib.parse import urlparse

from catalogkit.core.exceptions import ReferenceParseError

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ReferenceParseError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ReferenceParseError(
            url,
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，仅支持 http/https",
        )
