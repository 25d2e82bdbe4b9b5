"""统一异常体系

所有业务异常继承 CatalogKitError，每类异常携带结构化字段，
CLI 层可据此输出友好提示，批量解析可据此按根引用隔离错误。
"""

from __future__ import annotations

from datetime import datetime


class CatalogKitError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(CatalogKitError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ReferenceParseError(CatalogKitError):
    """引用或 URL 模板格式错误，不重试"""

    code = "REFERENCE_PARSE_ERROR"

    def __init__(self, reference: str, reason: str) -> None:
        super().__init__(f"无效的引用 '{reference}': {reason}")
        self.reference = reference


class CatalogFetchError(CatalogKitError):
    """网络或 HTTP 错误（已按重试策略重试后仍失败）"""

    code = "CATALOG_FETCH_ERROR"

    def __init__(
        self,
        url: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        detail = status_code if status_code is not None else cause
        super().__init__(f"拉取目录失败: {url}: {detail}")
        self.url = url
        self.status_code = status_code
        self.cause = cause


class RateLimitError(CatalogKitError):
    """触发远端限流，不自动重试"""

    code = "RATE_LIMITED"

    def __init__(self, reset_time: datetime) -> None:
        super().__init__(f"API 访问频率超限，重置时间: {reset_time.isoformat()}")
        self.reset_time = reset_time


class SchemaValidationError(CatalogKitError):
    """载荷结构不符合预期，说明目录不兼容，不重试"""

    code = "SCHEMA_ERROR"

    def __init__(self, details: list[str] | None = None) -> None:
        self.details = details or []
        lines = "\n".join(f"  - {d}" for d in self.details)
        super().__init__(f"载荷结构校验失败:\n{lines}" if lines else "载荷结构校验失败")


class ComponentNotFoundError(CatalogKitError):
    """所有目录中都找不到指定条目"""

    code = "COMPONENT_NOT_FOUND"

    def __init__(
        self,
        name: str,
        searched: list[str],
        available: list[str] | None = None,
        suggestions: list[str] | None = None,
    ) -> None:
        self.name = name
        self.searched = searched
        self.available = available or []
        self.suggestions = suggestions or []
        message = f"条目 '{name}' 在任何目录中都不存在。已搜索: {', '.join(searched) or '(无)'}"
        if self.suggestions:
            message += "\n\n是否要找:\n  " + "\n  ".join(self.suggestions)
        super().__init__(message)


class CircularDependencyError(CatalogKitError):
    """检测到循环依赖"""

    code = "CIRCULAR_DEPENDENCY"

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(f"检测到循环依赖: {' -> '.join(cycle)}")
        self.cycle = cycle


class SelectionError(CatalogKitError):
    """选择回调返回了无效的下标"""

    code = "SELECTION_ERROR"

    def __init__(self, index: int, choices: int) -> None:
        super().__init__(f"选择下标越界: {index}（可选 0..{choices - 1}）")
        self.index = index
        self.choices = choices


class NameConflictError(CatalogKitError):
    """依赖树中两个不同来源的条目同名"""

    code = "NAME_CONFLICT"

    def __init__(self, name: str, sources: list[str]) -> None:
        super().__init__(f"条目名称冲突 '{name}': {' / '.join(sources)}")
        self.name = name
        self.sources = sources
