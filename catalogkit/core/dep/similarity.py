"""名称相似度建议

仅用于丰富 ComponentNotFoundError 的提示信息，不影响解析结果。
"""

from __future__ import annotations

SUGGEST_THRESHOLD = 0.4


def levenshtein(a: str, b: str) -> int:
    """编辑距离: 单字符插入/删除/替换的最少次数"""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j - 1] + cost,  # 替换
                current[j - 1] + 1,      # 插入
                previous[j] + 1,         # 删除
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """相似度 [0, 1]，忽略大小写，1 表示相同"""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1 - levenshtein(a.lower(), b.lower()) / max_len


def find_by_prefix_or_substring(target: str, candidates: list[str]) -> list[str]:
    """以 target 开头或包含 target 的候选（忽略大小写）"""
    lowered = target.lower()
    return [c for c in candidates if lowered in c.lower()]


def find_by_similarity(
    target: str,
    candidates: list[str],
    threshold: float = 0.3,
    max_results: int = 3,
) -> list[str]:
    """按相似度降序返回不低于阈值的候选"""
    scored = [(c, similarity(target, c)) for c in candidates]
    scored = [s for s in scored if s[1] >= threshold]
    scored.sort(key=lambda s: s[1], reverse=True)
    return [name for name, _ in scored[:max_results]]


def suggest(target: str, candidates: list[str], max_suggestions: int = 3) -> list[str]:
    """合并前缀/子串匹配与相似度匹配，去重并截断"""
    suggestions: list[str] = []
    for name in find_by_prefix_or_substring(target, candidates)[:max_suggestions]:
        if name not in suggestions:
            suggestions.append(name)
    for name in find_by_similarity(
        target, candidates, threshold=SUGGEST_THRESHOLD, max_results=max_suggestions,
    ):
        if len(suggestions) >= max_suggestions:
            break
        if name not in suggestions:
            suggestions.append(name)
    return suggestions[:max_suggestions]
