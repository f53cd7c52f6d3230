"""Tests for document compactors and locale overlays."""
import pytest

from prompt_assembly.errors import DocumentSchemaError
from prompt_assembly.models.documents import CompactNpcDoc, stamp_identity
from prompt_assembly.services.compactors import (
    compact_adventure,
    compact_npc,
    compact_world,
)
from prompt_assembly.services.overlay import resolve_field


class TestResolveField:
    """locale value -> base value -> default."""

    def test_first_set_value_wins(self):
        assert resolve_field("fr", "base", default="d") == "fr"
        assert resolve_field(None, "base", default="d") == "base"
        assert resolve_field(None, None, default="d") == "d"

    def test_empty_string_counts_as_set(self):
        assert resolve_field("", "base", default="d") == ""


class TestCompactWorld:
    """World documents keep name and timeworld."""

    def test_missing_name_defaults_to_unknown(self):
        world = compact_world({"id": "w1"})
        assert world.name == "Unknown"
        assert world.timeworld is None

    def test_locale_overlay_name(self):
        doc = {"id": "w1", "name": "Mystika", "i18n": {"fr": {"name": "Mystique"}}}
        assert compact_world(doc, "fr").name == "Mystique"
        assert compact_world(doc, "de").name == "Mystika"
        assert compact_world(doc).name == "Mystika"

    def test_timeworld_passes_through(self):
        timeworld = {"calendar": "lunar", "seasons": ["wet", "dry"]}
        world = compact_world({"id": "w1", "name": "M", "timeworld": timeworld})
        assert world.timeworld == timeworld

    def test_numeric_id_is_stringified(self):
        assert compact_world({"id": 42, "name": "M"}).id == "42"

    def test_unknown_fields_are_ignored(self):
        world = compact_world({"id": "w1", "name": "M", "factions": ["a", "b"]})
        assert "factions" not in world.to_context()

    def test_schema_violation(self):
        with pytest.raises(DocumentSchemaError, match="WorldDoc schema violation"):
            compact_world({"id": "w1", "timeworld": "always"}, piece_id="world:w1")

    def test_non_mapping_rejected(self):
        with pytest.raises(DocumentSchemaError) as exc_info:
            compact_world(["not", "a", "doc"], piece_id="world:w1")
        assert exc_info.value.piece_id == "world:w1"


class TestCompactAdventure:
    """Synopsis and cast are bounded."""

    def test_synopsis_truncated(self):
        adventure = compact_adventure({"id": "a1", "name": "Quest", "synopsis": "s" * 500})
        assert adventure.synopsis == "s" * 280

    def test_cast_capped_in_order(self):
        cast = [f"c{i}" for i in range(20)]
        adventure = compact_adventure({"id": "a1", "cast": cast})
        assert adventure.cast == cast[:12]

    def test_cast_entries_kept_as_is(self):
        cast = [{"id": "kiera", "role": "guide"}, "bram"]
        assert compact_adventure({"id": "a1", "cast": cast}).cast == cast

    def test_locale_overlay(self):
        doc = {
            "id": "a1",
            "name": "Quest",
            "synopsis": "base",
            "i18n": {"fr": {"synopsis": "résumé"}},
        }
        adventure = compact_adventure(doc, "fr")
        assert adventure.name == "Quest"
        assert adventure.synopsis == "résumé"

    def test_empty_overlay_synopsis_is_respected(self):
        doc = {"id": "a1", "synopsis": "base", "i18n": {"fr": {"synopsis": ""}}}
        assert compact_adventure(doc, "fr").synopsis == ""


class TestCompactNpc:
    """NPC bios are compacted without identity."""

    def test_summary_truncated(self):
        npc = compact_npc({"display_name": "Kiera", "summary": "x" * 500})
        assert len(npc.summary) == 160

    def test_identity_left_unset(self):
        npc = compact_npc({"id": "kiera", "version": "2.0.0", "display_name": "Kiera"})
        assert npc.id is None
        assert npc.ver is None

    def test_style_overlay(self):
        doc = {
            "display_name": "Kiera",
            "style": {"voice": "dry", "register": "formal"},
            "i18n": {"fr": {"display_name": "Kiéra", "style": {"voice": "sec"}}},
        }
        npc = compact_npc(doc, "fr")
        assert npc.name == "Kiéra"
        assert npc.style.voice == "sec"
        assert npc.style.register_ == "formal"
        assert npc.to_context()["style"] == {"voice": "sec", "register": "formal"}

    def test_missing_name_defaults_to_unknown(self):
        assert compact_npc({}).name == "Unknown"

    def test_tags_and_archetype(self):
        npc = compact_npc({"archetype": "mentor", "tags": ["guide", "elf"], "tags_extra": 1})
        assert npc.archetype == "mentor"
        assert npc.tags == ["guide", "elf"]


class TestStampIdentity:
    """Identity is applied after compaction."""

    def test_stamp_returns_copy(self):
        npc = compact_npc({"display_name": "Kiera"})
        stamped = stamp_identity(npc, "kiera", "2.0.0")
        assert (stamped.id, stamped.ver) == ("kiera", "2.0.0")
        assert npc.id is None
        assert isinstance(stamped, CompactNpcDoc)
