"""Pydantic v2 models for parsed scene-description files."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pbrtscene.geometry import Point3f

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

Int64 = Annotated[int, Field(ge=INT64_MIN, le=INT64_MAX)]

PARAMETER_TYPES: tuple[str, ...] = (
    "bool",
    "float",
    "integer",
    "string",
    "point",
    "rgb",
    "texture",
    "blackbody",
)


class _Frozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# Parameter values
# ---------------------------------------------------------------------------


class BoolValue(_Frozen):
    type: Literal["bool"] = "bool"
    values: tuple[bool, ...]


class FloatValue(_Frozen):
    type: Literal["float"] = "float"
    values: tuple[float, ...]


class IntValue(_Frozen):
    type: Literal["integer"] = "integer"
    values: tuple[Int64, ...]


class StringValue(_Frozen):
    type: Literal["string"] = "string"
    values: tuple[str, ...]


class Point3fValue(_Frozen):
    type: Literal["point"] = "point"
    values: tuple[Point3f, ...]


class RGBValue(_Frozen):
    type: Literal["rgb"] = "rgb"
    values: tuple[float, ...]


class BlackbodyValue(_Frozen):
    type: Literal["blackbody"] = "blackbody"
    values: tuple[float, ...]


class TextureValue(_Frozen):
    type: Literal["texture"] = "texture"
    values: tuple[str, ...]


Value = Annotated[
    Union[
        BoolValue,
        FloatValue,
        IntValue,
        StringValue,
        Point3fValue,
        RGBValue,
        BlackbodyValue,
        TextureValue,
    ],
    Field(discriminator="type"),
]


class ParamSetItem(_Frozen):
    name: str
    value: Value


class ParamSet(_Frozen):
    """Ordered, name-keyed collection of parameter values.

    Names are unique. Iteration yields names in first-insertion order.
    """

    items: tuple[ParamSetItem, ...] = ()

    @model_validator(mode="after")
    def _unique_names(self) -> ParamSet:
        seen: set[str] = set()
        for item in self.items:
            if item.name in seen:
                raise ValueError(f"Duplicate parameter name: {item.name!r}")
            seen.add(item.name)
        return self

    @classmethod
    def from_items(cls, items: Iterable[ParamSetItem]) -> ParamSet:
        """Build a ParamSet where a repeated name replaces the earlier value in place."""
        merged: dict[str, ParamSetItem] = {}
        for item in items:
            merged[item.name] = item
        return cls(items=tuple(merged.values()))

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, name: object) -> bool:
        return any(item.name == name for item in self.items)

    def __getitem__(self, name: str) -> Any:
        for item in self.items:
            if item.name == name:
                return item.value
        raise KeyError(name)

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def names(self) -> list[str]:
        return [item.name for item in self.items]

    def values(self) -> list[Any]:
        return [item.value for item in self.items]

    def find(self, name: str, tag: str) -> tuple | None:
        """Return the value tuple for ``name`` if it was declared with type ``tag``."""
        value = self.get(name)
        if value is None or value.type != tag:
            return None
        return value.values

    def find_one(self, name: str, tag: str, default: Any = None) -> Any:
        """Return the first element for ``name``/``tag``, or ``default``."""
        values = self.find(name, tag)
        if not values:
            return default
        return values[0]


# ---------------------------------------------------------------------------
# Option blocks (before WorldBegin)
# ---------------------------------------------------------------------------


class LookAt(_Frozen):
    directive: Literal["LookAt"] = "LookAt"
    eye: tuple[float, float, float]
    look: tuple[float, float, float]
    up: tuple[float, float, float]


class Camera(_Frozen):
    directive: Literal["Camera"] = "Camera"
    name: str
    params: ParamSet = ParamSet()


class Sampler(_Frozen):
    directive: Literal["Sampler"] = "Sampler"
    name: str
    params: ParamSet = ParamSet()


class Integrator(_Frozen):
    directive: Literal["Integrator"] = "Integrator"
    name: str
    params: ParamSet = ParamSet()


class Film(_Frozen):
    directive: Literal["Film"] = "Film"
    name: str
    params: ParamSet = ParamSet()


OptionsBlock = Annotated[
    Union[LookAt, Camera, Sampler, Integrator, Film],
    Field(discriminator="directive"),
]


# ---------------------------------------------------------------------------
# World blocks (between WorldBegin and WorldEnd)
# ---------------------------------------------------------------------------


class Attribute(_Frozen):
    """An AttributeBegin/AttributeEnd scope and the blocks it groups."""

    directive: Literal["Attribute"] = "Attribute"
    blocks: tuple[WorldBlock, ...]


class LightSource(_Frozen):
    directive: Literal["LightSource"] = "LightSource"
    name: str
    params: ParamSet = ParamSet()


class Material(_Frozen):
    directive: Literal["Material"] = "Material"
    name: str
    params: ParamSet = ParamSet()


class Shape(_Frozen):
    directive: Literal["Shape"] = "Shape"
    name: str
    params: ParamSet = ParamSet()


class Translate(_Frozen):
    directive: Literal["Translate"] = "Translate"
    delta: tuple[float, float, float]


class Texture(_Frozen):
    directive: Literal["Texture"] = "Texture"
    name: str
    type: str
    texture_class: str
    params: ParamSet = ParamSet()


WorldBlock = Annotated[
    Union[Attribute, LightSource, Material, Shape, Translate, Texture],
    Field(discriminator="directive"),
]

Attribute.model_rebuild()


class Scene(_Frozen):
    options: tuple[OptionsBlock, ...] = ()
    world_objects: tuple[WorldBlock, ...] = ()
