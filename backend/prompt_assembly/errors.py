"""Prompt 组装错误类型。

受保护作用域（core / ruleset / world）的失败是致命的，直接抛给调用方；
可丢弃作用域的渲染失败降级为一次 drop，并在 policy 中留下标记。
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class PromptAssemblyError(RuntimeError):
    """Base class for assembly failures surfaced to the caller."""

    error_type = "prompt_assembly_error"

    def __init__(self, *, reason: str) -> None:
        self.reason = str(reason or "prompt assembly failed")
        super().__init__(self.reason)

    def to_detail(self) -> Dict[str, Any]:
        return {
            "error_type": self.error_type,
            "reason": self.reason,
        }


class AssemblyValidationError(PromptAssemblyError):
    """Raised when AssembleInput is malformed; no work has been done."""

    error_type = "assemble_input_invalid"

    def __init__(self, *, reason: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(reason=reason)

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["field"] = self.field
        return detail


class MissingProtectedScopeError(PromptAssemblyError):
    """Raised when core, ruleset or world has no candidate piece."""

    error_type = "protected_scope_missing"

    def __init__(self, *, missing_scopes: List[str]) -> None:
        self.missing_scopes = list(missing_scopes or [])
        super().__init__(
            reason=f"missing protected scope candidates: {', '.join(self.missing_scopes)}"
        )

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["missing_scopes"] = self.missing_scopes
        return detail


class RenderError(PromptAssemblyError):
    """A single piece could not be rendered."""

    error_type = "piece_render_failed"

    def __init__(self, *, piece_id: str, reason: str) -> None:
        self.piece_id = piece_id
        super().__init__(reason=reason)

    def __str__(self) -> str:
        return f"{self.piece_id}: {self.reason}"

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["piece_id"] = self.piece_id
        return detail


class DocumentSchemaError(RenderError):
    """Raw document rejected at the ingestion boundary."""

    error_type = "document_schema_invalid"


class UnknownLayerWarning(UserWarning):
    """Layer label not recognised; classified as core."""
