"""
Prompt 组装服务包
"""
from .token_estimator import estimate_tokens, estimate_tokens_total, estimate_context_tokens
from .layer_classifier import classify_layer
from .overlay import resolve_field
from .compactors import compact_world, compact_adventure, compact_npc
from .token_discipline import discipline_world, discipline_adventure
from .budget_policy import BudgetDecision, apply_budget_policy
from .rendering import calculate_scope_tokens
from .doc_cache import DocumentCache, cache_key
from .prompt_assembler import PromptAssembler, assemble_prompt, budget_summary

__all__ = [
    "estimate_tokens",
    "estimate_tokens_total",
    "estimate_context_tokens",
    "classify_layer",
    "resolve_field",
    "compact_world",
    "compact_adventure",
    "compact_npc",
    "discipline_world",
    "discipline_adventure",
    "BudgetDecision",
    "apply_budget_policy",
    "calculate_scope_tokens",
    "DocumentCache",
    "cache_key",
    "PromptAssembler",
    "assemble_prompt",
    "budget_summary",
]
