"""片段渲染：把文本层或压缩文档包进作用域分隔块并计算成本。

  === WORLD_BEGIN ===
  {...}
  === WORLD_END ===
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional

from prompt_assembly.errors import RenderError
from prompt_assembly.models.identifiers import format_id
from prompt_assembly.models.pieces import Piece
from prompt_assembly.models.scope import Scope
from prompt_assembly.services.token_estimator import estimate_tokens, serialize_context

_SCOPE_BLOCK_RE = re.compile(r"=== ([A-Z_]+)_BEGIN ===\n(.*?)\n=== \1_END ===", re.S)


def wrap_scope_block(scope: Scope, body: str) -> str:
    tag = Scope(scope).value.upper()
    return f"=== {tag}_BEGIN ===\n{body}\n=== {tag}_END ==="


def make_piece(scope: Scope, slug: str, version: Optional[str], body: Optional[str]) -> Piece:
    """渲染片段；正文为空时抛 RenderError。"""
    if body is None or not body.strip():
        raise RenderError(
            piece_id=format_id(scope, slug, version),
            reason="rendered body is empty",
        )
    text = wrap_scope_block(scope, body.strip())
    return Piece(
        scope=scope,
        slug=slug,
        version=version,
        rendered_text=text,
        token_cost=estimate_tokens(text),
    )


def render_context_piece(
    scope: Scope,
    slug: str,
    version: Optional[str],
    context: Mapping[str, Any],
) -> Piece:
    """压缩文档 → 片段（规范 JSON 正文）。"""
    return make_piece(scope, slug, version, serialize_context(dict(context)))


def calculate_scope_tokens(prompt: str) -> Dict[str, int]:
    """从组装好的 prompt 中按分隔块统计各作用域的 token 数。"""
    totals: Dict[str, int] = {}
    for match in _SCOPE_BLOCK_RE.finditer(prompt or ""):
        scope_name = match.group(1).lower()
        totals[scope_name] = totals.get(scope_name, 0) + estimate_tokens(match.group(2))
    return totals
