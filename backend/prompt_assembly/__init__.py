"""
分层 prompt 组装核心

在硬性 token 预算下，把 core / ruleset / world / scenario / entry / npc
六层内容组装成单个 prompt，并输出 included / dropped / policy / tokenEst 审计元数据。
"""
from prompt_assembly.errors import (
    PromptAssemblyError,
    AssemblyValidationError,
    MissingProtectedScopeError,
    RenderError,
    DocumentSchemaError,
    UnknownLayerWarning,
)
from prompt_assembly.models import (
    Scope,
    AssembleInput,
    AssembleOutput,
    ContentBundle,
    ContentSegment,
    SourceDocument,
    Piece,
    PolicyAction,
    format_id,
    parse_id,
)
from prompt_assembly.services import (
    DocumentCache,
    PromptAssembler,
    assemble_prompt,
    budget_summary,
    estimate_tokens,
)

__all__ = [
    "PromptAssemblyError",
    "AssemblyValidationError",
    "MissingProtectedScopeError",
    "RenderError",
    "DocumentSchemaError",
    "UnknownLayerWarning",
    "Scope",
    "AssembleInput",
    "AssembleOutput",
    "ContentBundle",
    "ContentSegment",
    "SourceDocument",
    "Piece",
    "PolicyAction",
    "format_id",
    "parse_id",
    "DocumentCache",
    "PromptAssembler",
    "assemble_prompt",
    "budget_summary",
    "estimate_tokens",
]
