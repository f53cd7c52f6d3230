"""PromptAssembler：在全局 token 预算下组装多层上下文。

数据流:
  原始文档 → 压缩器（locale 覆盖层、结构裁剪）→ token 纪律（单文档上限）
  → 候选片段 → 预算策略（全局排序 + 丢弃决策）→ prompt + 审计元数据

纯同步、无副作用：只读参数，只写新建的返回值。取文档、解析 locale、
缓存组装结果都由调用方在调用前后完成。
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from prompt_assembly.config import Settings, settings
from prompt_assembly.errors import AssemblyValidationError, RenderError
from prompt_assembly.models.documents import (
    CompactAdventure,
    CompactNpcDoc,
    CompactWorld,
    stamp_identity,
)
from prompt_assembly.models.identifiers import format_id
from prompt_assembly.models.pieces import (
    AssembleInput,
    AssembleMeta,
    AssembleOutput,
    ContentBundle,
    ContentSegment,
    Piece,
    RenderFailure,
    SourceDocument,
)
from prompt_assembly.models.scope import ALWAYS_INCLUDED_SCOPES, Scope
from prompt_assembly.services.budget_policy import Candidate, apply_budget_policy, order_candidates
from prompt_assembly.services.compactors import compact_adventure, compact_npc, compact_world
from prompt_assembly.services.doc_cache import DocumentCache, cache_key
from prompt_assembly.services.layer_classifier import classify_layer
from prompt_assembly.services.rendering import make_piece, render_context_piece
from prompt_assembly.services.token_discipline import discipline_adventure, discipline_world

logger = logging.getLogger(__name__)

PIECE_SEPARATOR = "\n\n"


def parse_npc_hint(hint: str) -> Tuple[str, Optional[str]]:
    """'slug' 或 'slug@version' → (slug, version)。"""
    slug, _, version = hint.strip().partition("@")
    return slug, version or None


class PromptAssembler:
    """上下文组装器。

    config 与 cache 均可注入；不注入 cache 时每次调用都重新压缩。
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        cache: Optional[DocumentCache] = None,
    ) -> None:
        self.config = config or settings
        self.cache = cache

    # ==================== 入口 ====================

    def assemble(
        self,
        request: Union[AssembleInput, Mapping[str, Any]],
        content: Union[ContentBundle, Mapping[str, Any]],
    ) -> AssembleOutput:
        """组装 prompt。

        Args:
            request: AssembleInput 或等价的 dict（接受 camelCase 键）。
            content: 调用方预先取回的 ContentBundle。

        Returns:
            AssembleOutput：prompt 为纳入片段按作用域优先级的拼接；
            pieces 为全部成功渲染的候选（含被预算丢弃的）。

        Raises:
            AssemblyValidationError: 输入不合法（在任何工作开始之前）。
            MissingProtectedScopeError: core / ruleset / world 缺少候选。
            RenderError: 受保护作用域的片段渲染失败。
        """
        params = self.validate_input(request)
        bundle = self._coerce_bundle(content)
        budget = (
            params.budget_tokens
            if params.budget_tokens is not None
            else self.config.prompt_token_budget_default
        )

        candidates = self.collect_candidates(params, bundle)
        decision = apply_budget_policy(
            candidates,
            budget,
            scenario_overflow=params.scenario_overflow or self.config.scenario_overflow,
            warn_pct=self.config.prompt_budget_warn_pct,
        )

        prompt = PIECE_SEPARATOR.join(p.rendered_text for p in decision.included)
        # pieces 与 prompt 使用同一优先级顺序
        ordered_pieces = [c for c in order_candidates(candidates) if isinstance(c, Piece)]

        meta = AssembleMeta(
            included=decision.included_ids,
            dropped=decision.dropped_ids,
            policy=decision.policy,
            token_est=decision.token_est,
            decisions=decision.decisions,
            warnings=decision.warnings,
            by_scope=decision.tokens_by_scope(),
            model=params.model or self.config.default_model,
            world_id=params.world_id,
            ruleset_slug=params.ruleset_slug,
            scenario_slug=params.scenario_slug,
            entry_start_slug=params.entry_start_slug,
        )
        output = AssembleOutput(prompt=prompt, pieces=ordered_pieces, meta=meta)
        logger.info(
            "prompt 组装完成 world=%s: %d included, %d dropped, %d/%d tokens (%.1f%%)",
            params.world_id,
            len(meta.included),
            len(meta.dropped),
            meta.token_est.input,
            meta.token_est.budget,
            meta.token_est.pct * 100,
        )
        return output

    # ==================== 输入校验 ====================

    def validate_input(self, request: Union[AssembleInput, Mapping[str, Any]]) -> AssembleInput:
        """校验 AssembleInput；dict 输入在此解析。"""
        if isinstance(request, AssembleInput):
            params = request
        else:
            try:
                params = AssembleInput.model_validate(dict(request))
            except (TypeError, ValueError) as exc:
                field = None
                if isinstance(exc, ValidationError) and exc.errors():
                    field = ".".join(str(p) for p in exc.errors()[0]["loc"])
                raise AssemblyValidationError(
                    reason=f"invalid AssembleInput: {exc}",
                    field=field,
                ) from exc

        if not params.world_id or not params.world_id.strip():
            raise AssemblyValidationError(reason="world_id is required", field="world_id")
        if not params.entry_start_slug or not params.entry_start_slug.strip():
            raise AssemblyValidationError(
                reason="entry_start_slug is required", field="entry_start_slug",
            )
        if params.budget_tokens is not None and params.budget_tokens <= 0:
            raise AssemblyValidationError(
                reason=f"budget_tokens must be positive, got {params.budget_tokens}",
                field="budget_tokens",
            )
        return params

    @staticmethod
    def _coerce_bundle(content: Union[ContentBundle, Mapping[str, Any]]) -> ContentBundle:
        if isinstance(content, ContentBundle):
            return content
        try:
            return ContentBundle.model_validate(dict(content))
        except (TypeError, ValueError) as exc:
            raise AssemblyValidationError(
                reason=f"invalid ContentBundle: {exc}", field="content",
            ) from exc

    # ==================== 候选收集 ====================

    def collect_candidates(self, params: AssembleInput, bundle: ContentBundle) -> List[Candidate]:
        """按输入筛选并渲染候选片段（调用方顺序，未排序）。"""
        candidates: List[Candidate] = []
        npc_segments: List[ContentSegment] = []

        if bundle.world is not None:
            candidates.append(self._render_world(bundle.world, params.locale))

        if params.scenario_slug and bundle.scenario is not None:
            if bundle.scenario.slug == params.scenario_slug:
                candidates.append(self._render_scenario(bundle.scenario, params.locale))
            else:
                logger.warning(
                    "scenario 文档 '%s' 与请求的 scenario_slug '%s' 不符，跳过",
                    bundle.scenario.slug, params.scenario_slug,
                )

        seen_ids = {c.id for c in candidates}
        entry_found = False
        for segment in bundle.segments:
            scope = Scope(segment.scope) if segment.scope is not None else classify_layer(segment.layer)
            if scope == Scope.NPC:
                npc_segments.append(segment)
                continue
            if not self._segment_selected(scope, segment, params):
                logger.debug("片段 %s 不在本次请求范围内", format_id(scope, segment.slug, segment.version))
                continue
            if scope == Scope.ENTRY:
                entry_found = True
            segment_id = format_id(scope, segment.slug, segment.version)
            if segment_id in seen_ids:
                # 文档优先；同一片段标识只保留第一个候选
                logger.warning("片段 %s 与已有候选重复，跳过", segment_id)
                continue
            seen_ids.add(segment_id)
            candidates.append(self._render_segment(scope, segment))

        if not entry_found:
            logger.warning("入口点 '%s' 没有匹配的 entry 片段", params.entry_start_slug)

        candidates.extend(self._collect_npcs(params, bundle.npcs, npc_segments))
        return candidates

    @staticmethod
    def _segment_selected(scope: Scope, segment: ContentSegment, params: AssembleInput) -> bool:
        if scope == Scope.RULESET:
            return not params.ruleset_slug or segment.slug == params.ruleset_slug
        if scope == Scope.SCENARIO:
            return bool(params.scenario_slug) and segment.slug == params.scenario_slug
        if scope == Scope.ENTRY:
            return segment.slug == params.entry_start_slug
        return True

    def _collect_npcs(
        self,
        params: AssembleInput,
        documents: List[SourceDocument],
        segments: List[ContentSegment],
    ) -> List[Candidate]:
        """按 npc_hints 顺序选择 NPC；重复 hint 只保留第一个。"""
        candidates: List[Candidate] = []
        seen: set = set()
        for hint in params.npc_hints:
            slug, version = parse_npc_hint(hint)
            if not slug:
                continue
            if slug in seen:
                logger.warning("NPC hint '%s' 与先前的 hint 重复（同一 slug），忽略", hint)
                continue
            seen.add(slug)

            document = next(
                (d for d in documents if d.slug == slug and (version is None or d.version == version)),
                None,
            )
            if document is not None:
                candidates.append(self._render_npc(document, params.locale))
                continue

            segment = next(
                (s for s in segments if s.slug == slug and (version is None or s.version == version)),
                None,
            )
            if segment is not None:
                candidates.append(self._render_segment(Scope.NPC, segment))
                continue

            logger.warning("NPC hint '%s' 没有匹配的内容，忽略", hint)
        return candidates

    # ==================== 渲染 ====================

    def _guard(
        self,
        scope: Scope,
        slug: str,
        version: Optional[str],
        render: Callable[[], Piece],
    ) -> Candidate:
        """渲染失败隔离：受保护作用域向上传播，可丢弃作用域转为 RenderFailure。"""
        try:
            return render()
        except RenderError as exc:
            if scope in ALWAYS_INCLUDED_SCOPES:
                raise
            logger.warning("片段 %s 渲染失败，按丢弃处理: %s", exc.piece_id, exc.reason)
            return RenderFailure(scope=scope, slug=slug, version=version, reason=exc.reason)

    def _cached(self, key: str, build: Callable[[], Any]) -> Any:
        if self.cache is None:
            return build()
        return self.cache.get_or_fetch(key, build)

    def _render_segment(self, scope: Scope, segment: ContentSegment) -> Candidate:
        return self._guard(
            scope, segment.slug, segment.version,
            lambda: make_piece(scope, segment.slug, segment.version, segment.text),
        )

    def _render_world(self, source: SourceDocument, locale: Optional[str]) -> Candidate:
        cap = self.config.doc_token_cap
        piece_id = format_id(Scope.WORLD, source.slug, source.version)

        def build() -> CompactWorld:
            return discipline_world(compact_world(source.doc, locale, piece_id=piece_id), cap)

        def render() -> Piece:
            world = self._cached(cache_key("world", source.slug, source.version, locale, cap), build)
            return render_context_piece(Scope.WORLD, source.slug, source.version, world.to_context())

        return self._guard(Scope.WORLD, source.slug, source.version, render)

    def _render_scenario(self, source: SourceDocument, locale: Optional[str]) -> Candidate:
        cap = self.config.doc_token_cap
        piece_id = format_id(Scope.SCENARIO, source.slug, source.version)

        def build() -> CompactAdventure:
            return discipline_adventure(compact_adventure(source.doc, locale, piece_id=piece_id), cap)

        def render() -> Piece:
            adventure = self._cached(cache_key("adventure", source.slug, source.version, locale, cap), build)
            return render_context_piece(Scope.SCENARIO, source.slug, source.version, adventure.to_context())

        return self._guard(Scope.SCENARIO, source.slug, source.version, render)

    def _render_npc(self, source: SourceDocument, locale: Optional[str]) -> Candidate:
        piece_id = format_id(Scope.NPC, source.slug, source.version)

        def build() -> CompactNpcDoc:
            compacted = compact_npc(source.doc, locale, piece_id=piece_id)
            return stamp_identity(compacted, source.slug, source.version)

        def render() -> Piece:
            npc = self._cached(cache_key("npc", source.slug, source.version, locale), build)
            return render_context_piece(Scope.NPC, source.slug, source.version, npc.to_context())

        return self._guard(Scope.NPC, source.slug, source.version, render)


def assemble_prompt(
    request: Union[AssembleInput, Mapping[str, Any]],
    content: Union[ContentBundle, Mapping[str, Any]],
    *,
    config: Optional[Settings] = None,
    cache: Optional[DocumentCache] = None,
) -> AssembleOutput:
    """使用默认配置组装一次 prompt。"""
    return PromptAssembler(config=config, cache=cache).assemble(request, content)


def budget_summary(output: AssembleOutput) -> str:
    """审计用的多行预算摘要。"""
    est = output.meta.token_est
    lines = [
        f"Budget: {est.input}/{est.budget} tokens ({est.pct * 100:.1f}%)",
        f"Over budget: {'Yes' if est.input > est.budget else 'No'}",
        f"Included: {', '.join(output.meta.included) or '-'}",
    ]
    if output.meta.dropped:
        lines.append(f"Dropped: {', '.join(output.meta.dropped)}")
    if output.meta.policy:
        lines.append(f"Policy: {', '.join(output.meta.policy)}")
    for warning in output.meta.warnings:
        lines.append(f"Warning: {warning}")
    if output.meta.by_scope:
        per_scope = ", ".join(f"{scope}={tokens}" for scope, tokens in output.meta.by_scope.items())
        lines.append(f"By scope: {per_scope}")
    return "\n".join(lines)
