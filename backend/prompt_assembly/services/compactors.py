"""文档压缩器：从原始文档生成省 token 的摘要结构。

三个压缩器共用同一条覆盖层规则（locale 专属 → 基础字段 → 默认值），
只做内容变换；NPC 的存储身份由调用方在压缩后盖章。
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from prompt_assembly.models.documents import (
    AdventureDoc,
    CompactAdventure,
    CompactNpcDoc,
    CompactNpcStyle,
    CompactWorld,
    NpcDoc,
    WorldDoc,
    parse_document,
)
from prompt_assembly.services.overlay import overlay_for, resolve_field

ADVENTURE_SYNOPSIS_MAX_CHARS = 280
ADVENTURE_CAST_MAX = 12
NPC_SUMMARY_MAX_CHARS = 160
UNKNOWN_NAME = "Unknown"


def compact_world(
    doc: Union[WorldDoc, Mapping[str, Any]],
    locale: Optional[str] = None,
    *,
    piece_id: str = "",
) -> CompactWorld:
    """世界文档 → CompactWorld。timeworld 原样透传（整体对象）。"""
    world = parse_document(WorldDoc, doc, piece_id=piece_id or "world:?")
    overlay = overlay_for(world.i18n, locale)

    name = resolve_field(
        overlay.name if overlay else None,
        world.name,
        default=UNKNOWN_NAME,
    )
    return CompactWorld(
        id=world.id or "",
        name=name,
        timeworld=dict(world.timeworld) if world.timeworld is not None else None,
    )


def compact_adventure(
    doc: Union[AdventureDoc, Mapping[str, Any]],
    locale: Optional[str] = None,
    *,
    piece_id: str = "",
) -> CompactAdventure:
    """冒险文档 → CompactAdventure。

    synopsis 截断到 280 字符；cast 只保留前 12 个（保持顺序）。
    """
    adventure = parse_document(AdventureDoc, doc, piece_id=piece_id or "scenario:?")
    overlay = overlay_for(adventure.i18n, locale)

    name = resolve_field(
        overlay.name if overlay else None,
        adventure.name,
        default=UNKNOWN_NAME,
    )
    synopsis = resolve_field(
        overlay.synopsis if overlay else None,
        adventure.synopsis,
        default="",
    )
    return CompactAdventure(
        id=adventure.id or "",
        name=name,
        synopsis=synopsis[:ADVENTURE_SYNOPSIS_MAX_CHARS],
        cast=list(adventure.cast[:ADVENTURE_CAST_MAX]),
    )


def compact_npc(
    doc: Union[NpcDoc, Mapping[str, Any]],
    locale: Optional[str] = None,
    *,
    piece_id: str = "",
) -> CompactNpcDoc:
    """NPC 文档 → CompactNpcDoc（id / ver 留空）。

    display_name / summary / style.voice / style.register 走覆盖层；
    summary 截断到 160 字符。
    """
    npc = parse_document(NpcDoc, doc, piece_id=piece_id or "npc:?")
    overlay = overlay_for(npc.i18n, locale)
    overlay_style = overlay.style if overlay else None

    name = resolve_field(
        overlay.display_name if overlay else None,
        npc.display_name,
        default=UNKNOWN_NAME,
    )
    summary = resolve_field(
        overlay.summary if overlay else None,
        npc.summary,
        default="",
    )
    voice = resolve_field(
        overlay_style.voice if overlay_style else None,
        npc.style.voice,
        default=None,
    )
    register = resolve_field(
        overlay_style.register_ if overlay_style else None,
        npc.style.register_,
        default=None,
    )
    return CompactNpcDoc(
        name=name,
        archetype=npc.archetype,
        summary=summary[:NPC_SUMMARY_MAX_CHARS],
        style=CompactNpcStyle(voice=voice, register=register),
        tags=list(npc.tags),
    )
