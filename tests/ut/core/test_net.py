"""URL scheme 校验测试"""

import pytest

from catalogkit.core.exceptions import ReferenceParseError
from catalogkit.utils.net import validate_url_scheme


class TestValidateUrlScheme:
    def test_http_ok(self) -> None:
        validate_url_scheme("http://example.com/registry.json")

    def test_https_ok(self) -> None:
        validate_url_scheme("https://example.com/registry.json")

    @pytest.mark.parametrize("url", [
        "file:///etc/passwd",
        "ftp://evil.com/payload",
        "/local/path",
    ])
    def test_rejected(self, url: str) -> None:
        with pytest.raises(ReferenceParseError, match="不允许的 URL 协议"):
            validate_url_scheme(url)

    def test_context_in_error(self) -> None:
        with pytest.raises(ReferenceParseError, match="catalog fetch"):
            validate_url_scheme("file:///x", context="catalog fetch")
