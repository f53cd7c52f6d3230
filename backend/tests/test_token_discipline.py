"""Tests for the per-document token discipline ladders."""
from prompt_assembly.models.documents import CompactAdventure, CompactWorld
from prompt_assembly.services.compactors import compact_adventure, compact_world
from prompt_assembly.services.token_discipline import (
    discipline_adventure,
    discipline_world,
    doc_tokens,
)


def _bulky_world() -> CompactWorld:
    seasons = [f"season-{i:03d}-" + "w" * 40 for i in range(20)]
    bands = [f"band-{i:02d}" for i in range(40)]
    return CompactWorld(
        id="w1",
        name="Realm",
        timeworld={"calendar": "lunar", "seasons": seasons, "bands": bands},
    )


def _bulky_adventure() -> CompactAdventure:
    return compact_adventure(
        {
            "id": "a1",
            "name": "Quest",
            "synopsis": "s" * 500,
            "cast": [f"character-{i:02d}" for i in range(20)],
        }
    )


class TestWorldLadder:
    """drop seasons, then drop timeworld."""

    def test_within_cap_is_unchanged(self):
        world = CompactWorld(id="w1", name="Realm", timeworld={"calendar": "lunar"})
        steps = []
        assert discipline_world(world, 300, steps_taken=steps) == world
        assert steps == []

    def test_seasons_dropped_first(self):
        world = CompactWorld(
            id="w1",
            name="Realm",
            timeworld={"calendar": "lunar", "seasons": ["s" * 1000]},
        )
        steps = []
        result = discipline_world(world, 50, steps_taken=steps)
        assert steps == ["drop_seasons"]
        assert result.timeworld == {"calendar": "lunar"}
        assert doc_tokens(result) <= 50

    def test_seasons_only_timeworld_becomes_null(self):
        world = compact_world(
            {"id": "w1", "name": "Realm", "timeworld": {"seasons": ["s" * 1000]}}
        )
        steps = []
        result = discipline_world(world, 50, steps_taken=steps)
        assert result.timeworld is None
        assert steps == ["drop_seasons"]

    def test_timeworld_removed_when_still_over(self):
        steps = []
        result = discipline_world(_bulky_world(), 50, steps_taken=steps)
        assert steps == ["drop_seasons", "drop_timeworld"]
        assert result.timeworld is None
        assert result.name == "Realm"

    def test_idempotent(self):
        once = discipline_world(_bulky_world(), 50)
        assert discipline_world(once, 50) == once

    def test_input_not_mutated(self):
        world = _bulky_world()
        discipline_world(world, 50)
        assert "seasons" in world.timeworld


class TestAdventureLadder:
    """cast to 8, cast to 4, then clear synopsis."""

    def test_first_step_only(self):
        steps = []
        result = discipline_adventure(_bulky_adventure(), 120, steps_taken=steps)
        assert steps == ["cast_8"]
        assert len(result.cast) == 8
        assert len(result.synopsis) == 280

    def test_second_step(self):
        steps = []
        result = discipline_adventure(_bulky_adventure(), 105, steps_taken=steps)
        assert steps == ["cast_8", "cast_4"]
        assert result.cast == [f"character-{i:02d}" for i in range(4)]
        assert len(result.synopsis) == 280

    def test_full_ladder(self):
        steps = []
        result = discipline_adventure(_bulky_adventure(), 50, steps_taken=steps)
        assert steps == ["cast_8", "cast_4", "clear_synopsis"]
        assert len(result.cast) == 4
        assert result.synopsis == ""
        assert doc_tokens(result) <= 50

    def test_ladder_exhausted_returns_best_effort(self):
        result = discipline_adventure(_bulky_adventure(), 1)
        assert result.synopsis == ""
        assert len(result.cast) == 4
        assert doc_tokens(result) > 1

    def test_idempotent(self):
        once = discipline_adventure(_bulky_adventure(), 50)
        assert discipline_adventure(once, 50) == once
