"""Layer 分类：把任意内容来源标签归一为 Scope。"""

from __future__ import annotations

import logging
import warnings
from typing import Dict, Optional, Tuple

from prompt_assembly.errors import UnknownLayerWarning
from prompt_assembly.models.scope import Scope

logger = logging.getLogger(__name__)


LAYER_SCOPE_TABLE: Dict[str, Scope] = {
    "core": Scope.CORE,
    "system": Scope.CORE,
    "foundation": Scope.CORE,
    "framework": Scope.CORE,
    "ruleset": Scope.RULESET,
    "rules": Scope.RULESET,
    "policy": Scope.RULESET,
    "world": Scope.WORLD,
    "lore": Scope.WORLD,
    "setting": Scope.WORLD,
    "scenario": Scope.SCENARIO,
    "adventure": Scope.SCENARIO,
    "entry": Scope.ENTRY,
    "entry_point": Scope.ENTRY,
    "entry-point": Scope.ENTRY,
    "start": Scope.ENTRY,
    "npc": Scope.NPC,
    "npcs": Scope.NPC,
    "character": Scope.NPC,
}

# 子串启发式，按顺序匹配
LAYER_SUBSTRING_RULES: Tuple[Tuple[str, Scope], ...] = (
    ("core", Scope.CORE),
    ("system", Scope.CORE),
    ("rule", Scope.RULESET),
    ("world", Scope.WORLD),
    ("lore", Scope.WORLD),
    ("scenario", Scope.SCENARIO),
    ("adventure", Scope.SCENARIO),
    ("entry", Scope.ENTRY),
    ("start", Scope.ENTRY),
    ("npc", Scope.NPC),
    ("character", Scope.NPC),
)


def _match_layer(normalized: str) -> Optional[Scope]:
    direct = LAYER_SCOPE_TABLE.get(normalized)
    if direct is not None:
        return direct
    for needle, scope in LAYER_SUBSTRING_RULES:
        if needle in normalized:
            return scope
    return None


def classify_layer(label: Optional[str]) -> Scope:
    """标签 → Scope。

    归一化（去空白、小写）后先查直接映射表，再走子串启发式；
    仍无法识别则发出 UnknownLayerWarning 并回落到 core。

    Args:
        label: 内容来源标签（如 "Core"、"world-lore"、"npc_bio"）。

    Returns:
        对应的 Scope。同一标签总是得到同一结果。
    """
    normalized = (label or "").strip().lower()
    scope = _match_layer(normalized)
    if scope is not None:
        return scope

    logger.warning("未识别的 layer 标签 '%s'，按 core 处理", label)
    warnings.warn(
        f"Unknown layer label {label!r}; defaulting to core",
        UnknownLayerWarning,
        stacklevel=2,
    )
    return Scope.CORE
