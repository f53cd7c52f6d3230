"""Token 纪律：压缩后按单文档上限逐级裁剪字段。

贪心、有序的降级阶梯：每一步之后重新估算，一旦满足上限立即停止；
步骤不重排、不跳过。每一步都是幂等的，已达标的文档原样返回。

  World:     ① 移除 timeworld.seasons（剩余为空则置 None）  ② timeworld = None
  Adventure: ① cast 截到 8  ② cast 截到 4  ③ synopsis = ""
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from prompt_assembly.config import settings
from prompt_assembly.models.documents import CompactAdventure, CompactWorld
from prompt_assembly.services.token_estimator import estimate_context_tokens

logger = logging.getLogger(__name__)

DocT = TypeVar("DocT", CompactWorld, CompactAdventure)


def doc_tokens(doc: DocT) -> int:
    return estimate_context_tokens(doc.to_context())


def _drop_seasons(world: CompactWorld) -> CompactWorld:
    if not world.timeworld or "seasons" not in world.timeworld:
        return world
    timeworld = {k: v for k, v in world.timeworld.items() if k != "seasons"}
    # 只剩空对象时等同于没有 timeworld
    return world.model_copy(update={"timeworld": timeworld or None})


def _drop_timeworld(world: CompactWorld) -> CompactWorld:
    if world.timeworld is None:
        return world
    return world.model_copy(update={"timeworld": None})


def _cap_cast(limit: int) -> Callable[[CompactAdventure], CompactAdventure]:
    def step(adventure: CompactAdventure) -> CompactAdventure:
        if len(adventure.cast) <= limit:
            return adventure
        return adventure.model_copy(update={"cast": list(adventure.cast[:limit])})
    return step


def _clear_synopsis(adventure: CompactAdventure) -> CompactAdventure:
    if adventure.synopsis == "":
        return adventure
    return adventure.model_copy(update={"synopsis": ""})


WORLD_LADDER: Tuple[Tuple[str, Callable[[CompactWorld], CompactWorld]], ...] = (
    ("drop_seasons", _drop_seasons),
    ("drop_timeworld", _drop_timeworld),
)

ADVENTURE_LADDER: Tuple[Tuple[str, Callable[[CompactAdventure], CompactAdventure]], ...] = (
    ("cast_8", _cap_cast(8)),
    ("cast_4", _cap_cast(4)),
    ("clear_synopsis", _clear_synopsis),
)


def _run_ladder(
    doc: DocT,
    ladder: Sequence[Tuple[str, Callable[[DocT], DocT]]],
    cap: int,
    steps_taken: Optional[List[str]] = None,
) -> DocT:
    tokens = doc_tokens(doc)
    for name, step in ladder:
        if tokens <= cap:
            break
        doc = step(doc)
        tokens = doc_tokens(doc)
        if steps_taken is not None:
            steps_taken.append(name)
        logger.debug("token 纪律 %s: %s -> %d tokens (cap=%d)", type(doc).__name__, name, tokens, cap)
    if tokens > cap:
        logger.debug("%s 阶梯已用尽仍超上限: %d > %d", type(doc).__name__, tokens, cap)
    return doc


def discipline_world(
    world: CompactWorld,
    cap: Optional[int] = None,
    *,
    steps_taken: Optional[List[str]] = None,
) -> CompactWorld:
    """对 CompactWorld 施加单文档 token 上限（默认 settings.doc_token_cap）。"""
    return _run_ladder(world, WORLD_LADDER, cap if cap is not None else settings.doc_token_cap, steps_taken)


def discipline_adventure(
    adventure: CompactAdventure,
    cap: Optional[int] = None,
    *,
    steps_taken: Optional[List[str]] = None,
) -> CompactAdventure:
    """对 CompactAdventure 施加单文档 token 上限（默认 settings.doc_token_cap）。"""
    return _run_ladder(adventure, ADVENTURE_LADDER, cap if cap is not None else settings.doc_token_cap, steps_taken)
