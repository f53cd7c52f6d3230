"""
Piece identifiers: ``scope:slug`` or ``scope:slug@version``.

The version is split off at the first ``@``; the scope is everything
before the first ``:`` of the remainder, so slugs may contain colons:

  npc:kiera@2.0.0        -> (npc, kiera, 2.0.0)
  world:realm:north      -> (world, realm:north, None)
"""
from dataclasses import dataclass
from typing import Optional

from prompt_assembly.models.scope import Scope


@dataclass(frozen=True)
class PieceId:
    """Immutable piece identity used in audit metadata."""

    scope: Scope
    slug: str
    version: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "scope", Scope(self.scope))
        check_slug(self.slug)

    def __str__(self) -> str:
        return format_id(self.scope, self.slug, self.version)


def check_slug(slug: str) -> str:
    """slug 不能为空，也不能含 @（@ 之后是版本号）。"""
    if not slug:
        raise ValueError("piece id requires a non-empty slug")
    if "@" in slug:
        raise ValueError(f"Invalid slug '{slug}', '@' is reserved for the version")
    return slug


def format_id(scope: Scope, slug: str, version: Optional[str] = None) -> str:
    scope_value = Scope(scope).value
    check_slug(slug)
    if version:
        return f"{scope_value}:{slug}@{version}"
    return f"{scope_value}:{slug}"


def parse_id(piece_id: str) -> PieceId:
    """Inverse of :func:`format_id`.

    Raises:
        ValueError: missing ``:`` separator or unknown scope.
    """
    head, sep, version = piece_id.partition("@")
    scope_value, colon, slug = head.partition(":")
    if not colon:
        raise ValueError(f"Invalid piece id '{piece_id}', expected 'scope:slug[@version]'")
    try:
        scope = Scope(scope_value)
    except ValueError:
        raise ValueError(
            f"Invalid scope '{scope_value}' in piece id '{piece_id}', "
            f"must be one of {[s.value for s in Scope]}"
        ) from None
    return PieceId(scope=scope, slug=slug, version=version if sep and version else None)
