"""Locale 覆盖层解析：locale 专属值 → 基础值 → 默认值。"""

from __future__ import annotations

from typing import Any, Mapping, Optional, TypeVar

T = TypeVar("T")


def resolve_field(*candidates: Optional[T], default: T) -> T:
    """按顺序返回第一个非 None 的候选值，否则返回 default。

    空字符串视为已设置，与 None 区分。
    """
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return default


def overlay_for(i18n: Mapping[str, Any], locale: Optional[str]) -> Optional[Any]:
    """取 locale 对应的覆盖层；无 locale 或无条目时返回 None。"""
    if not locale:
        return None
    return i18n.get(locale)
