"""Read-only scene summaries for the ``inspect`` command."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator

from pbrtscene import __version__
from pbrtscene.models import Attribute, LookAt, Scene, Translate


def walk_world(scene: Scene) -> Iterator[tuple[int, object]]:
    """Yield ``(depth, block)`` for every world block in source order.

    Top-level blocks have depth 0; blocks inside one Attribute scope have
    depth 1, and so on. Attribute blocks are yielded before their contents.
    """
    stack: list[tuple[int, object]] = [(0, b) for b in reversed(scene.world_objects)]
    while stack:
        depth, block = stack.pop()
        yield depth, block
        if isinstance(block, Attribute):
            stack.extend((depth + 1, child) for child in reversed(block.blocks))


def inspect_scene(scene: Scene) -> dict[str, object]:
    """Build a JSON-compatible summary of a parsed scene."""
    directive_counts: Counter[str] = Counter()
    shape_counts: Counter[str] = Counter()
    light_counts: Counter[str] = Counter()
    material_counts: Counter[str] = Counter()
    max_depth = 0
    parameter_count = 0

    for depth, block in walk_world(scene):
        directive_counts[block.directive] += 1
        if isinstance(block, Attribute):
            max_depth = max(max_depth, depth + 1)
            continue
        if isinstance(block, Translate):
            continue
        parameter_count += len(block.params)
        if block.directive == "Shape":
            shape_counts[block.name] += 1
        elif block.directive == "LightSource":
            light_counts[block.name] += 1
        elif block.directive == "Material":
            material_counts[block.name] += 1

    options = []
    for option in scene.options:
        if isinstance(option, LookAt):
            options.append({"directive": option.directive, "name": None})
        else:
            parameter_count += len(option.params)
            options.append({"directive": option.directive, "name": option.name})

    return {
        "summary": {
            "pbrtscene_version": __version__,
            "option_count": len(scene.options),
            "world_block_count": len(scene.world_objects),
            "directive_count": sum(directive_counts.values()),
            "max_attribute_depth": max_depth,
            "parameter_count": parameter_count,
        },
        "options": options,
        "directives": dict(sorted(directive_counts.items())),
        "shapes": dict(sorted(shape_counts.items())),
        "lights": dict(sorted(light_counts.items())),
        "materials": dict(sorted(material_counts.items())),
    }


def render_text(payload: dict[str, object]) -> str:
    """Render human-readable text output for inspect diagnostics."""
    lines: list[str] = []

    summary = payload["summary"]
    lines.append("summary:")
    lines.append(f"  pbrtscene_version: {summary['pbrtscene_version']}")
    lines.append(f"  option_count: {summary['option_count']}")
    lines.append(f"  world_block_count: {summary['world_block_count']}")
    lines.append(f"  directive_count: {summary['directive_count']}")
    lines.append(f"  max_attribute_depth: {summary['max_attribute_depth']}")
    lines.append(f"  parameter_count: {summary['parameter_count']}")

    lines.append("options:")
    options = payload.get("options", [])
    if isinstance(options, list) and options:
        for option in options:
            if option["name"] is None:
                lines.append(f"  - {option['directive']}")
            else:
                lines.append(f"  - {option['directive']} {option['name']!r}")
    else:
        lines.append("  []")

    for section in ("directives", "shapes", "lights", "materials"):
        counts = payload.get(section, {})
        lines.append(f"{section}:")
        if isinstance(counts, dict) and counts:
            for key, count in counts.items():
                lines.append(f"  {key}: {count}")
        else:
            lines.append("  {}")

    return "\n".join(lines) + "\n"
