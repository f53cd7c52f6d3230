"""
Token 估算服务。

压缩阶段与组装阶段共用同一个估算函数：chars / 4 向上取整。
不区分语言与编码，只求两阶段口径一致。
"""
import json
import math
from typing import Any, Iterable, Optional


def estimate_tokens(text: Optional[str]) -> int:
    """
    估算文本 token 数

    Args:
        text: 输入文本

    Returns:
        ceil(len(text) / 4)，空文本为 0
    """
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def estimate_tokens_total(texts: Iterable[Optional[str]]) -> int:
    return sum(estimate_tokens(t) for t in texts)


def serialize_context(context: Any) -> str:
    """上下文字典的规范序列化（键排序、紧凑分隔符、保留非 ASCII）。"""
    return json.dumps(context, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def estimate_context_tokens(context: Any) -> int:
    return estimate_tokens(serialize_context(context))
