"""Prompt 组装数据模型。"""

from prompt_assembly.models.scope import (
    Scope,
    SCOPE_PRIORITY,
    PROTECTED_SCOPES,
    ALWAYS_INCLUDED_SCOPES,
    scope_priority,
    is_protected,
)
from prompt_assembly.models.identifiers import PieceId, check_slug, format_id, parse_id
from prompt_assembly.models.documents import (
    WorldDoc,
    AdventureDoc,
    NpcDoc,
    CompactWorld,
    CompactAdventure,
    CompactNpcDoc,
    parse_document,
    stamp_identity,
)
from prompt_assembly.models.pieces import (
    PolicyAction,
    AssembleInput,
    ContentSegment,
    SourceDocument,
    ContentBundle,
    Piece,
    RenderFailure,
    PolicyDecision,
    TokenEstimate,
    AssembleMeta,
    AssembleOutput,
)

__all__ = [
    "Scope",
    "SCOPE_PRIORITY",
    "PROTECTED_SCOPES",
    "ALWAYS_INCLUDED_SCOPES",
    "scope_priority",
    "is_protected",
    "PieceId",
    "check_slug",
    "format_id",
    "parse_id",
    "WorldDoc",
    "AdventureDoc",
    "NpcDoc",
    "CompactWorld",
    "CompactAdventure",
    "CompactNpcDoc",
    "parse_document",
    "stamp_identity",
    "PolicyAction",
    "AssembleInput",
    "ContentSegment",
    "SourceDocument",
    "ContentBundle",
    "Piece",
    "RenderFailure",
    "PolicyDecision",
    "TokenEstimate",
    "AssembleMeta",
    "AssembleOutput",
]
