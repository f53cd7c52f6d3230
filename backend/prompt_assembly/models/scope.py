"""作用域模型：六个按优先级排序的内容类别。"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class Scope(str, Enum):
    """内容作用域（数值越小优先级越高，最先评估）"""

    CORE = "core"
    RULESET = "ruleset"
    WORLD = "world"
    SCENARIO = "scenario"
    ENTRY = "entry"
    NPC = "npc"


SCOPE_PRIORITY: Dict[Scope, int] = {
    Scope.CORE: 0,
    Scope.RULESET: 1,
    Scope.WORLD: 2,
    Scope.SCENARIO: 3,
    Scope.ENTRY: 4,
    Scope.NPC: 5,
}

# 结构上保证永不丢弃
PROTECTED_SCOPES: FrozenSet[Scope] = frozenset({Scope.CORE, Scope.RULESET, Scope.WORLD})

# entry 没有对应的 drop 动作，按受保护处理
ALWAYS_INCLUDED_SCOPES: FrozenSet[Scope] = PROTECTED_SCOPES | {Scope.ENTRY}


def scope_priority(scope: Scope) -> int:
    return SCOPE_PRIORITY[Scope(scope)]


def is_protected(scope: Scope) -> bool:
    return Scope(scope) in PROTECTED_SCOPES
