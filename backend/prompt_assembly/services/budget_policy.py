"""预算策略引擎：全局排序 + 纳入/丢弃决策。

按作用域优先级升序遍历候选（同作用域内保持调用方顺序），维护已纳入 token 累计：
- core / ruleset / world（以及 entry）总是纳入，超预算通过 pct > 1 暴露
- scenario 放不下时先记 SCENARIO_POLICY_UNDECIDED，再按调用方策略
  丢弃（SCENARIO_DROPPED）或保留
- npc 逐个独立评估，放不下的记 NPC_DROPPED；累计不变，后面更便宜的仍可能放得下
- 渲染失败的可丢弃候选直接丢弃并记 RENDER_FAILED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Sequence, Union

from prompt_assembly.errors import (
    AssemblyValidationError,
    MissingProtectedScopeError,
    RenderError,
)
from prompt_assembly.models.pieces import (
    Piece,
    PolicyAction,
    PolicyDecision,
    RenderFailure,
    TokenEstimate,
)
from prompt_assembly.models.scope import (
    ALWAYS_INCLUDED_SCOPES,
    PROTECTED_SCOPES,
    SCOPE_PRIORITY,
    Scope,
    is_protected,
    scope_priority,
)

logger = logging.getLogger(__name__)

Candidate = Union[Piece, RenderFailure]
ScenarioOverflow = Literal["drop", "keep"]


@dataclass
class BudgetDecision:
    """预算策略结果。"""

    included: List[Piece]
    dropped: List[Candidate]
    decisions: List[PolicyDecision]
    token_est: TokenEstimate
    warnings: List[str] = field(default_factory=list)

    @property
    def included_ids(self) -> List[str]:
        return [p.id for p in self.included]

    @property
    def dropped_ids(self) -> List[str]:
        return [c.id for c in self.dropped]

    @property
    def policy(self) -> List[str]:
        return [d.action.value for d in self.decisions]

    def tokens_by_scope(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for piece in self.included:
            totals[piece.scope.value] = totals.get(piece.scope.value, 0) + piece.token_cost
        return totals


def order_candidates(candidates: Sequence[Candidate]) -> List[Candidate]:
    """按作用域优先级稳定排序（同作用域保持原顺序）。"""
    return sorted(candidates, key=lambda c: scope_priority(c.scope))


def _check_protected(candidates: Sequence[Candidate]) -> None:
    present = {c.scope for c in candidates if isinstance(c, Piece)}
    missing = [s.value for s in sorted(PROTECTED_SCOPES, key=SCOPE_PRIORITY.get) if s not in present]
    if missing:
        raise MissingProtectedScopeError(missing_scopes=missing)


def apply_budget_policy(
    candidates: Sequence[Candidate],
    budget_tokens: int,
    *,
    scenario_overflow: ScenarioOverflow = "drop",
    warn_pct: Optional[float] = None,
) -> BudgetDecision:
    """对候选片段执行预算策略。

    Args:
        candidates: 已压缩/降级的片段及可丢弃的渲染失败，调用方顺序。
        budget_tokens: 全局 token 预算，必须为正。
        scenario_overflow: scenario 超预算时的最终决策（drop / keep）。
        warn_pct: 预算告警阈值；最终 pct 达到时写入 warnings。

    Returns:
        BudgetDecision。每个候选恰好出现在 included 或 dropped 之一。

    Raises:
        AssemblyValidationError: budget_tokens ≤ 0。
        MissingProtectedScopeError: core / ruleset / world 缺少候选。
        RenderError: 受保护作用域（或 entry）的候选渲染失败。
    """
    if budget_tokens is None or budget_tokens <= 0:
        raise AssemblyValidationError(
            reason=f"budget_tokens must be positive, got {budget_tokens}",
            field="budget_tokens",
        )
    if scenario_overflow not in ("drop", "keep"):
        raise AssemblyValidationError(
            reason=f"scenario_overflow must be 'drop' or 'keep', got {scenario_overflow!r}",
            field="scenario_overflow",
        )

    for candidate in candidates:
        if isinstance(candidate, RenderFailure) and candidate.scope in ALWAYS_INCLUDED_SCOPES:
            raise RenderError(piece_id=candidate.id, reason=candidate.reason)
    _check_protected(candidates)

    included: List[Piece] = []
    dropped: List[Candidate] = []
    decisions: List[PolicyDecision] = []
    running = 0
    scenario_decided = False

    for candidate in order_candidates(candidates):
        if isinstance(candidate, RenderFailure):
            dropped.append(candidate)
            decisions.append(PolicyDecision(
                action=PolicyAction.RENDER_FAILED,
                piece_id=candidate.id,
                reason=candidate.reason,
            ))
            continue

        fits = running + candidate.token_cost <= budget_tokens

        if candidate.scope in ALWAYS_INCLUDED_SCOPES or fits:
            included.append(candidate)
            running += candidate.token_cost
            continue

        if candidate.scope == Scope.SCENARIO:
            if not scenario_decided:
                decisions.append(PolicyDecision(
                    action=PolicyAction.SCENARIO_POLICY_UNDECIDED,
                    piece_id=candidate.id,
                    reason=f"scenario needs {candidate.token_cost} tokens, {budget_tokens - running} left",
                ))
                scenario_decided = True
            if scenario_overflow == "keep":
                included.append(candidate)
                running += candidate.token_cost
            else:
                dropped.append(candidate)
                decisions.append(PolicyDecision(
                    action=PolicyAction.SCENARIO_DROPPED,
                    piece_id=candidate.id,
                    reason="over budget",
                ))
            continue

        # npc
        dropped.append(candidate)
        decisions.append(PolicyDecision(
            action=PolicyAction.NPC_DROPPED,
            piece_id=candidate.id,
            reason=f"needs {candidate.token_cost} tokens, {budget_tokens - running} left",
        ))

    pct = running / budget_tokens
    warnings: List[str] = []
    protected_tokens = sum(p.token_cost for p in included if is_protected(p.scope))
    if protected_tokens > budget_tokens:
        logger.warning(
            "受保护内容已超预算 (%d/%d)，core/ruleset/world 不会被丢弃",
            protected_tokens, budget_tokens,
        )
        warnings.append(f"PROTECTED_OVER_BUDGET: {protected_tokens}/{budget_tokens}")
    if warn_pct is not None and pct >= warn_pct:
        warnings.append(f"BUDGET_WARN: {pct:.1%} of budget used")

    return BudgetDecision(
        included=included,
        dropped=dropped,
        decisions=decisions,
        token_est=TokenEstimate(input=running, budget=budget_tokens, pct=pct),
        warnings=warnings,
    )
