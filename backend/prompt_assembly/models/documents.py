"""内容文档模型：原始文档在摄入边界解析，压缩结果供 token 估算与渲染。

原始文档（world / adventure / npc）来自外部内容仓库，结构松散：
未知顶层字段保留但忽略，i18n 覆盖层按 locale 键组织。
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from prompt_assembly.errors import DocumentSchemaError


def _none_to_dict(v: Any) -> Dict[str, Any]:
    return v if v is not None else {}


def _none_to_list(v: Any) -> List[Any]:
    return v if v is not None else []


def _id_to_str(v: Any) -> Optional[str]:
    """数据库主键可能是 int/UUID，统一为字符串。"""
    return None if v is None else str(v)


# ==================== 原始文档 ====================


class _RawDocument(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class WorldOverlay(_RawDocument):
    """世界文档的 locale 覆盖层。"""
    name: Optional[str] = None


class WorldDoc(_RawDocument):
    """世界文档（只用到 name 与 timeworld）。"""
    id: Optional[str] = None
    name: Optional[str] = None
    timeworld: Optional[Dict[str, Any]] = None
    i18n: Dict[str, WorldOverlay] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Optional[str]:
        return _id_to_str(v)

    @field_validator("i18n", mode="before")
    @classmethod
    def _coerce_none_to_dict(cls, v: Any) -> Dict[str, Any]:
        return _none_to_dict(v)


class AdventureOverlay(_RawDocument):
    name: Optional[str] = None
    synopsis: Optional[str] = None


class AdventureDoc(_RawDocument):
    """冒险/剧本文档。cast 条目可以是字符串或对象，原样保留。"""
    id: Optional[str] = None
    name: Optional[str] = None
    synopsis: Optional[str] = None
    cast: List[Any] = Field(default_factory=list)
    i18n: Dict[str, AdventureOverlay] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Optional[str]:
        return _id_to_str(v)

    @field_validator("i18n", mode="before")
    @classmethod
    def _coerce_none_to_dict(cls, v: Any) -> Dict[str, Any]:
        return _none_to_dict(v)

    @field_validator("cast", mode="before")
    @classmethod
    def _coerce_none_to_list(cls, v: Any) -> List[Any]:
        return _none_to_list(v)


class NpcStyle(_RawDocument):
    """NPC 说话风格。register 与 BaseModel 属性同名，用别名承载。"""
    voice: Optional[str] = None
    register_: Optional[str] = Field(default=None, alias="register")


class NpcOverlay(_RawDocument):
    display_name: Optional[str] = None
    summary: Optional[str] = None
    style: Optional[NpcStyle] = None


class NpcDoc(_RawDocument):
    """NPC 人物小传文档。"""
    id: Optional[str] = None
    version: Optional[str] = None
    display_name: Optional[str] = None
    archetype: Optional[str] = None
    summary: Optional[str] = None
    style: NpcStyle = Field(default_factory=NpcStyle)
    tags: List[str] = Field(default_factory=list)
    i18n: Dict[str, NpcOverlay] = Field(default_factory=dict)

    @field_validator("id", "version", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Optional[str]:
        return _id_to_str(v)

    @field_validator("style", mode="before")
    @classmethod
    def _coerce_style(cls, v: Any) -> Any:
        return v if v is not None else {}

    @field_validator("i18n", mode="before")
    @classmethod
    def _coerce_none_to_dict(cls, v: Any) -> Dict[str, Any]:
        return _none_to_dict(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_none_to_list(cls, v: Any) -> List[Any]:
        return _none_to_list(v)


DocT = TypeVar("DocT", bound=_RawDocument)


def parse_document(
    model: Type[DocT],
    raw: Union[DocT, Mapping[str, Any]],
    *,
    piece_id: str = "",
) -> DocT:
    """在摄入边界解析原始文档。

    Args:
        model: 目标文档模型（WorldDoc / AdventureDoc / NpcDoc）。
        raw: 原始 dict 或已解析的模型。
        piece_id: 出错时写入异常的片段标识。

    Raises:
        DocumentSchemaError: 文档不符合 schema。
    """
    if isinstance(raw, model):
        return raw
    piece_id = piece_id or f"{model.__name__}:?"
    if not isinstance(raw, Mapping):
        raise DocumentSchemaError(
            piece_id=piece_id,
            reason=f"{model.__name__} expects a mapping, got {type(raw).__name__}",
        )
    try:
        return model.model_validate(dict(raw))
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise DocumentSchemaError(
            piece_id=piece_id,
            reason=f"{model.__name__} schema violation: {errors}",
        ) from exc


# ==================== 压缩结果 ====================


class _CompactDocument(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_context(self) -> Dict[str, Any]:
        """转化为可序列化的上下文字典（token 估算与渲染共用）。"""
        return self.model_dump(by_alias=True)


class CompactWorld(_CompactDocument):
    id: str = ""
    name: str = "Unknown"
    timeworld: Optional[Dict[str, Any]] = None


class CompactAdventure(_CompactDocument):
    id: str = ""
    name: str = "Unknown"
    synopsis: str = ""
    cast: List[Any] = Field(default_factory=list)


class CompactNpcStyle(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    voice: Optional[str] = None
    register_: Optional[str] = Field(default=None, alias="register")


class CompactNpcDoc(_CompactDocument):
    """NPC 压缩结果。id / ver 由调用方在压缩后盖章。"""
    id: Optional[str] = None
    ver: Optional[str] = None
    name: str = "Unknown"
    archetype: Optional[str] = None
    summary: str = ""
    style: CompactNpcStyle = Field(default_factory=CompactNpcStyle)
    tags: List[str] = Field(default_factory=list)


def stamp_identity(npc: CompactNpcDoc, npc_id: Optional[str], ver: Optional[str]) -> CompactNpcDoc:
    """返回带存储身份（id / ver）的副本。"""
    return npc.model_copy(update={"id": npc_id, "ver": ver})
