"""组装模型：调用方输入、候选片段与审计输出的契约。"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prompt_assembly.models.identifiers import check_slug, format_id
from prompt_assembly.models.scope import Scope


class PolicyAction(str, Enum):
    """预算策略动作码（按决策顺序写入 meta.policy）"""

    SCENARIO_POLICY_UNDECIDED = "SCENARIO_POLICY_UNDECIDED"
    SCENARIO_DROPPED = "SCENARIO_DROPPED"
    NPC_DROPPED = "NPC_DROPPED"
    RENDER_FAILED = "RENDER_FAILED"


# ==================== 输入 ====================


class AssembleInput(BaseModel):
    """一次组装调用的参数（由外部编排层构造）。"""

    model_config = ConfigDict(populate_by_name=True)

    world_id: str = Field(alias="worldId")
    ruleset_slug: Optional[str] = Field(default=None, alias="rulesetSlug")
    scenario_slug: Optional[str] = Field(default=None, alias="scenarioSlug")
    entry_start_slug: str = Field(default="", alias="entryStartSlug")
    npc_hints: List[str] = Field(default_factory=list, alias="npcHints")
    model: Optional[str] = None
    budget_tokens: Optional[int] = Field(default=None, alias="budgetTokens")
    locale: Optional[str] = None
    scenario_overflow: Optional[Literal["drop", "keep"]] = Field(
        default=None, alias="scenarioOverflow",
    )

    @field_validator("npc_hints", mode="before")
    @classmethod
    def _coerce_none_to_list(cls, v: Any) -> List[Any]:
        return v if v is not None else []


class ContentSegment(BaseModel):
    """已成文的文本层（框架规则、规则集、入口点等）。

    scope 显式给出时优先；否则由 layer 标签分类。
    """
    layer: str = ""
    slug: str
    version: Optional[str] = None
    text: str = ""
    scope: Optional[Scope] = None

    @field_validator("slug")
    @classmethod
    def _check_slug(cls, v: str) -> str:
        return check_slug(v)


class SourceDocument(BaseModel):
    """来自内容仓库的原始文档及其存储身份。"""
    slug: str
    version: Optional[str] = None
    doc: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("slug")
    @classmethod
    def _check_slug(cls, v: str) -> str:
        return check_slug(v)


class ContentBundle(BaseModel):
    """调用方预先取回的全部内容。"""
    segments: List[ContentSegment] = Field(default_factory=list)
    world: Optional[SourceDocument] = None
    scenario: Optional[SourceDocument] = None
    npcs: List[SourceDocument] = Field(default_factory=list)


# ==================== 候选片段 ====================


class Piece(BaseModel):
    """已渲染、已知成本的上下文单元。"""

    model_config = ConfigDict(frozen=True)

    scope: Scope
    slug: str
    version: Optional[str] = None
    rendered_text: str
    token_cost: int

    @property
    def id(self) -> str:
        return format_id(self.scope, self.slug, self.version)


class RenderFailure(BaseModel):
    """渲染失败的可丢弃候选，由策略引擎记为 drop。"""

    model_config = ConfigDict(frozen=True)

    scope: Scope
    slug: str
    version: Optional[str] = None
    reason: str

    @property
    def id(self) -> str:
        return format_id(self.scope, self.slug, self.version)


# ==================== 输出 ====================


class PolicyDecision(BaseModel):
    """单条策略决策（动作 + 涉及的片段 + 原因）。"""
    action: PolicyAction
    piece_id: Optional[str] = None
    reason: str = ""


class TokenEstimate(BaseModel):
    input: int
    budget: int
    pct: float


class AssembleMeta(BaseModel):
    """审计元数据：included / dropped 按作用域优先级排列。"""
    included: List[str] = Field(default_factory=list)
    dropped: List[str] = Field(default_factory=list)
    policy: List[str] = Field(default_factory=list)
    token_est: TokenEstimate
    decisions: List[PolicyDecision] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    by_scope: Dict[str, int] = Field(default_factory=dict)
    model: str = ""
    world_id: str = ""
    ruleset_slug: Optional[str] = None
    scenario_slug: Optional[str] = None
    entry_start_slug: str = ""


class AssembleOutput(BaseModel):
    prompt: str
    pieces: List[Piece] = Field(default_factory=list)
    meta: AssembleMeta

    def to_audit_dict(self) -> Dict[str, Any]:
        """审计/快照存储使用的 camelCase 记录。"""
        meta = self.meta
        return {
            "included": list(meta.included),
            "dropped": list(meta.dropped),
            "policy": list(meta.policy),
            "tokenEst": {
                "input": meta.token_est.input,
                "budget": meta.token_est.budget,
                "pct": meta.token_est.pct,
            },
            "decisions": [
                {
                    "action": d.action.value,
                    "pieceId": d.piece_id,
                    "reason": d.reason,
                }
                for d in meta.decisions
            ],
            "warnings": list(meta.warnings),
            "byScope": dict(meta.by_scope),
            "model": meta.model,
            "worldId": meta.world_id,
            "rulesetSlug": meta.ruleset_slug,
            "scenarioSlug": meta.scenario_slug,
            "entryStartSlug": meta.entry_start_slug,
        }
