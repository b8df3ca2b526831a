"""CLI entry point: click group that registers each tool's sub-command."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from darkfunction_toolbox.core.config import ConfigManager
from darkfunction_toolbox.core.events import LOG, PROGRESS, EventBus
from darkfunction_toolbox.core.exceptions import ToolboxError

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _configure_logging(verbosity: int) -> None:
    """Map ``-v`` repetitions to a logging level (WARNING, INFO, DEBUG)."""
    level = max(logging.DEBUG, logging.WARNING - 10 * verbosity)
    logging.basicConfig(level=level, format=_LOG_FORMAT)


def _config(ctx: click.Context) -> ConfigManager:
    """Return the ``ConfigManager`` loaded by the root group."""
    config = ctx.find_object(ConfigManager)
    if config is None:
        config = ConfigManager()
        config.load()
    return config


@click.group()
@click.version_option(package_name="darkfunction-toolbox")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug).")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Configuration directory (default: ~/.config/darkfunction-toolbox).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, config_dir: Path | None) -> None:
    """darkFunction Toolbox: sprite atlas & animation manifest CLI."""
    _configure_logging(verbose)
    config = ConfigManager(config_dir)
    try:
        config.load()
    except ToolboxError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj = config


@cli.command(name="atlas-inspector")
@click.argument("atlas", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.option("-r", "--resolve", "sprite_path", default=None, help="Sprite path to resolve, e.g. '/brown/2'.")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Do not list every sprite.")
def atlas_inspector_cmd(atlas: str, sprite_path: str | None, quiet: bool) -> None:
    """List the sprites of a .sprites atlas and optionally resolve one path."""
    from darkfunction_toolbox.tools.atlas_inspector import AtlasInspectorTool

    bus = EventBus()
    if not quiet:
        bus.subscribe(PROGRESS, lambda **kw: click.echo(f"  [{kw['current']:5d}/{kw['total']:5d}] {kw['message']}"))

    tool = AtlasInspectorTool(event_bus=bus)
    try:
        report = tool.run(params={"input": Path(atlas), "resolve": sprite_path})
    except ToolboxError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"Atlas {report.atlas_path.name}: image {report.image_path} "
        f"({report.image_width}x{report.image_height}px), {report.count} sprites"
    )
    if sprite_path is not None:
        if report.resolved is None:
            click.echo(f"No sprite at '{sprite_path}'")
        else:
            hit = report.resolved
            click.echo(f"{hit.path} -> x={hit.x} y={hit.y} w={hit.w} h={hit.h}")


@cli.command(name="animation-player")
@click.argument("anims", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.option("-a", "--animation", default=None, help="Animation name (default: first declared).")
@click.option(
    "--atlas",
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    default=None,
    help="Atlas for resolving sprites (default: the set's spriteSheet).",
)
@click.option("-s", "--step", "step_ms", type=float, default=None, help="Simulation tick in ms.")
@click.option("-d", "--duration", "duration_ms", type=float, default=None, help="Simulated time in ms.")
@click.option("--speed", type=float, default=None, help="Playback speed multiplier.")
@click.option(
    "--enforce-loops/--no-enforce-loops",
    default=None,
    help="Stop after the animation's 'loops' passes instead of looping forever.",
)
@click.option("--delay-scale", type=int, default=None, help="Milliseconds per authored delay unit.")
@click.pass_context
def animation_player_cmd(
    ctx: click.Context,
    anims: str,
    animation: str | None,
    atlas: str | None,
    step_ms: float | None,
    duration_ms: float | None,
    speed: float | None,
    enforce_loops: bool | None,
    delay_scale: int | None,
) -> None:
    """Simulate playback of an animation from an .anim file and print its frame timeline.

    Options left unset are taken from the configuration files.
    """
    from darkfunction_toolbox.tools.animation_player import AnimationPlayerTool

    settings = _config(ctx).tool_settings(AnimationPlayerTool.name)

    def setting(value: object, key: str) -> object:
        return value if value is not None else settings[key]

    bus = EventBus()
    bus.subscribe(PROGRESS, lambda **kw: click.echo(f"  {kw['message']}"))
    bus.subscribe(LOG, lambda **kw: click.echo(f"  {kw['message']}"))

    tool = AnimationPlayerTool(event_bus=bus)
    try:
        trace = tool.run(
            params={
                "input": Path(anims),
                "animation": animation,
                "atlas": Path(atlas) if atlas else None,
                "step_ms": setting(step_ms, "step_ms"),
                "duration_ms": setting(duration_ms, "duration_ms"),
                "speed": setting(speed, "speed"),
                "enforce_loops": setting(enforce_loops, "enforce_loops"),
                "delay_scale": setting(delay_scale, "delay_scale"),
            },
        )
    except ToolboxError as exc:
        raise click.ClickException(str(exc)) from exc

    status = "finished" if trace.finished else f"{trace.loops_completed} loops"
    click.echo(
        f"Played '{trace.animation}' for {trace.duration_s:.3f}s at x{trace.speed:g}: "
        f"{trace.count} frame changes ({status})"
    )
