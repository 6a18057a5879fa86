"""Click CLI entry point for the pbrtscene parser."""

from __future__ import annotations

import json
from pathlib import Path

import click

from pbrtscene import __version__
from pbrtscene.errors import SceneError
from pbrtscene.inspection import inspect_scene, render_text as render_inspection_text
from pbrtscene.models import Scene
from pbrtscene.parser import parse_file
from pbrtscene.serialization import render
from pbrtscene.warning_policy import WarningPolicy, parse_code_list


def _build_warning_policy(
    warn_as_error: str | None, suppress_warning: str | None
) -> WarningPolicy | None:
    """Parse CLI warning options into a WarningPolicy, or None if unset."""
    if warn_as_error is None and suppress_warning is None:
        return None
    try:
        wae = parse_code_list(warn_as_error) if warn_as_error else frozenset()
        sup = parse_code_list(suppress_warning) if suppress_warning else frozenset()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    return WarningPolicy(warn_as_error=wae, suppress=sup)


def _load(input_file: Path, warn_as_error: str | None, suppress_warning: str | None) -> Scene:
    warning_policy = _build_warning_policy(warn_as_error, suppress_warning)
    try:
        return parse_file(input_file, warning_policy=warning_policy)
    except SceneError as e:
        raise click.ClickException(str(e))


def _warning_options(func):
    func = click.option(
        "--suppress-warning",
        "suppress_warning",
        type=str,
        default=None,
        help="Comma-separated W-codes to suppress (e.g. W01).",
    )(func)
    func = click.option(
        "--warn-as-error",
        "warn_as_error",
        type=str,
        default=None,
        help="Comma-separated W-codes to treat as errors (e.g. W01).",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="pbrtscene")
def main() -> None:
    """pbrtscene - parser for scene-description directive files."""


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_warning_options
def check(
    input_file: Path,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Parse a scene file and report whether it is well formed."""
    scene = _load(input_file, warn_as_error, suppress_warning)
    click.echo(
        f"OK: {input_file} ({len(scene.options)} options, "
        f"{len(scene.world_objects)} world blocks)"
    )


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Inspection output format.",
)
@_warning_options
def inspect(
    input_file: Path,
    output_format: str = "text",
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Summarize the directives of a scene file."""
    scene = _load(input_file, warn_as_error, suppress_warning)
    payload = inspect_scene(scene)
    if output_format == "json":
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo(render_inspection_text(payload), nl=False)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    show_default=True,
    help="Serialization format.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this file instead of stdout.",
)
@_warning_options
def dump(
    input_file: Path,
    output_format: str = "yaml",
    output: Path | None = None,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Print the parsed scene as YAML or JSON."""
    scene = _load(input_file, warn_as_error, suppress_warning)
    text = render(scene, output_format)
    if output is None:
        click.echo(text, nl=False)
        return
    try:
        output.write_text(text, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Cannot write {output}: {e}") from e
    click.echo(f"Wrote: {output}")
