"""Tests for scope ordering and protection."""
import pytest

from prompt_assembly.models.scope import (
    ALWAYS_INCLUDED_SCOPES,
    Scope,
    is_protected,
    scope_priority,
)


class TestScope:
    """Six scopes in a fixed priority order."""

    def test_priority_order(self):
        ordered = sorted(Scope, key=scope_priority)
        assert [s.value for s in ordered] == ["core", "ruleset", "world", "scenario", "entry", "npc"]

    def test_accepts_plain_strings(self):
        assert scope_priority("npc") == 5
        assert is_protected("world") is True

    @pytest.mark.parametrize("scope", ["scenario", "entry", "npc"])
    def test_droppable_scopes_not_protected(self, scope):
        assert is_protected(scope) is False

    def test_entry_always_included(self):
        assert Scope.ENTRY in ALWAYS_INCLUDED_SCOPES
        assert Scope.SCENARIO not in ALWAYS_INCLUDED_SCOPES

    def test_unknown_scope(self):
        with pytest.raises(ValueError):
            scope_priority("weather")
