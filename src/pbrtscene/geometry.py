"""Geometry leaf record used inside ``point`` parameter values."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Point3f(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float
    y: float
    z: float
