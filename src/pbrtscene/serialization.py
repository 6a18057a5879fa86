"""Scene emission as plain data, JSON, or YAML for tooling and debugging."""

from __future__ import annotations

import json
from io import StringIO
from typing import Literal

from ruamel.yaml import YAML

from pbrtscene.models import Scene

DumpFormat = Literal["yaml", "json"]


def scene_to_data(scene: Scene) -> dict:
    """Convert a Scene into JSON-compatible dicts, lists and scalars."""
    return scene.model_dump(mode="json")


def render_json(scene: Scene) -> str:
    return json.dumps(scene_to_data(scene), indent=2) + "\n"


def render_yaml(scene: Scene) -> str:
    """Render the scene as block-style YAML."""
    yml = YAML(typ="rt")
    yml.allow_unicode = True
    yml.default_flow_style = False
    stream = StringIO()
    yml.dump(scene_to_data(scene), stream)
    return stream.getvalue()


def render(scene: Scene, output_format: DumpFormat = "yaml") -> str:
    if output_format == "json":
        return render_json(scene)
    return render_yaml(scene)
