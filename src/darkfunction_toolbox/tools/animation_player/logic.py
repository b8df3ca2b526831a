"""Pure playback simulation logic: drives an ``Animation`` with a fixed tick.

The simulation calls ``Animation.advance(step_ms / 1000, speed)`` once per
tick for ``duration_ms`` and records a ``PlaybackStep`` whenever the current
frame changes.  When an atlas is available each frame's layers are resolved
to sprite rectangles.
"""

from __future__ import annotations

import logging
from pathlib import Path

from darkfunction_toolbox.core.datatypes import AtlasReport, PlaybackStep, PlaybackTrace, SpriteEntry
from darkfunction_toolbox.core.events import COMPLETED, LOG, PROGRESS, EventBus
from darkfunction_toolbox.core.exceptions import ToolError, ValidationError
from darkfunction_toolbox.formats.animation import DEFAULT_DELAY_SCALE, Animation, AnimationSet
from darkfunction_toolbox.formats.sprite_atlas import SpriteAtlas
from darkfunction_toolbox.tools.atlas_inspector.logic import sprite_entry

logger = logging.getLogger(__name__)

ANIM_SUFFIXES: frozenset[str] = frozenset({".anim", ".xml"})


# ── Validation ────────────────────────────────────────────────────────────


def validate_playback_params(
    *,
    anim_path: Path | None,
    step_ms: float,
    duration_ms: float,
) -> None:
    """Validate playback parameters before processing.

    Args:
        anim_path: Path to the ``.anim`` manifest.
        step_ms: Simulation tick in milliseconds.
        duration_ms: Total simulated time in milliseconds.

    Raises:
        ValidationError: If any parameter is missing or out of range.
    """
    if anim_path is None:
        msg = "An .anim file path is required"
        raise ValidationError(msg)
    if not anim_path.exists():
        msg = f"Animation file does not exist: '{anim_path}'"
        raise ValidationError(msg)
    if anim_path.suffix.lower() not in ANIM_SUFFIXES:
        msg = f"Expected an .anim or .xml file, got: '{anim_path.name}'"
        raise ValidationError(msg)
    if step_ms <= 0:
        msg = f"Step must be > 0 ms, got {step_ms}"
        raise ValidationError(msg)
    if duration_ms < 0:
        msg = f"Duration must be >= 0 ms, got {duration_ms}"
        raise ValidationError(msg)


# ── Public API ────────────────────────────────────────────────────────────


def simulate_playback(
    anim_path: Path,
    *,
    animation: str | None = None,
    atlas_path: Path | None = None,
    atlas_report: AtlasReport | None = None,
    step_ms: float = 16.0,
    duration_ms: float = 2000.0,
    speed: float = 1.0,
    enforce_loops: bool = False,
    delay_scale: int = DEFAULT_DELAY_SCALE,
    event_bus: EventBus | None = None,
) -> PlaybackTrace:
    """Play an animation for *duration_ms* and record every frame change.

    Args:
        anim_path: Path to the ``.anim`` manifest.
        animation: Name of the animation to play (default: first declared).
        atlas_path: Atlas used to resolve layer sprites.
        atlas_report: Report from a preceding atlas-inspector stage; used when
            *atlas_path* is not given.
        step_ms: Simulation tick in milliseconds.
        duration_ms: Total simulated time in milliseconds.
        speed: Playback speed multiplier (``<= 0`` means normal speed).
        enforce_loops: Stop after the animation's ``loops`` passes.
        delay_scale: Milliseconds per authored delay unit.
        event_bus: Optional event bus for progress reporting.

    Returns:
        A ``PlaybackTrace`` whose first step is the initial frame.

    Raises:
        ParseError: If a manifest cannot be read or is invalid.
        ToolError: If the requested animation does not exist.
    """
    animations = AnimationSet.from_file(anim_path, delay_scale=delay_scale)
    anim = _pick_animation(animations, animation, anim_path=anim_path, enforce_loops=enforce_loops)

    atlas_file = _locate_atlas(animations, atlas_path=atlas_path, atlas_report=atlas_report)
    atlas = SpriteAtlas.from_file(atlas_file) if atlas_file is not None else None
    if atlas is None and event_bus is not None:
        event_bus.emit(LOG, tool="animation_player", message="No atlas available; layers stay unresolved")

    warned: set[str] = set()
    steps = [_record(anim, 0.0, atlas, warned)]

    dt = step_ms / 1000
    ticks = int(duration_ms // step_ms)
    for tick in range(1, ticks + 1):
        position, loops = anim.current_frame_index, anim.loops_completed
        anim.advance(dt, speed)
        if anim.current_frame_index == position and anim.loops_completed == loops:
            continue

        step = _record(anim, tick * dt, atlas, warned)
        steps.append(step)
        if event_bus is not None:
            event_bus.emit(
                PROGRESS,
                tool="animation_player",
                current=tick,
                total=ticks,
                message=f"t={step.time_s:8.3f}s  frame {step.position} (cell {step.cell_index})",
            )
        if anim.finished:
            logger.info("Animation '%s' finished after %d loops", anim.name, anim.loops_completed)
            break

    if event_bus is not None:
        event_bus.emit(
            COMPLETED,
            tool="animation_player",
            message=f"Done: {len(steps)} frame changes in '{anim.name}'",
        )

    return PlaybackTrace(
        anim_path=anim_path,
        animation=anim.name,
        speed=speed,
        duration_s=ticks * dt,
        steps=tuple(steps),
        loops_completed=anim.loops_completed,
        finished=anim.finished,
        atlas_path=atlas_file,
    )


# ── Internal helpers ──────────────────────────────────────────────────────


def _pick_animation(
    animations: AnimationSet,
    name: str | None,
    *,
    anim_path: Path,
    enforce_loops: bool,
) -> Animation:
    """Return a playable copy of the requested (or first) animation.

    Raises:
        ToolError: If the set is empty or *name* is unknown.
    """
    names = animations.names()
    if not names:
        msg = f"No <anim> nodes in '{anim_path.name}'"
        raise ToolError(msg)

    wanted = name if name is not None else names[0]
    anim = animations.get(wanted, enforce_loops=enforce_loops)
    if anim is None:
        msg = f"Animation '{wanted}' not found in '{anim_path.name}'. Available: {', '.join(names)}"
        raise ToolError(msg)
    return anim


def _locate_atlas(
    animations: AnimationSet,
    *,
    atlas_path: Path | None,
    atlas_report: AtlasReport | None,
) -> Path | None:
    """Pick the atlas file: explicit path, pipeline report, then the set's sprite sheet."""
    if atlas_path is not None:
        return atlas_path
    if atlas_report is not None:
        return atlas_report.atlas_path
    candidate = animations.sprite_sheet_path()
    if candidate.is_file():
        return candidate
    logger.info("Sprite sheet '%s' not found; layers stay unresolved", candidate)
    return None


def _record(anim: Animation, time_s: float, atlas: SpriteAtlas | None, warned: set[str]) -> PlaybackStep:
    """Snapshot the animation's current frame."""
    frame = anim.current_frame()
    if frame is None:
        msg = f"Animation '{anim.name}' has no frames"
        raise ToolError(msg)

    layers = tuple(layer.sprite_path for layer in frame.layers)
    resolved: list[SpriteEntry | None] = []
    for path in layers:
        sprite = atlas.resolve(path) if atlas is not None else None
        if sprite is None:
            if atlas is not None and path not in warned:
                warned.add(path)
                logger.warning("Sprite '%s' used by animation '%s' is not in the atlas", path, anim.name)
            resolved.append(None)
        else:
            resolved.append(sprite_entry(path, sprite))

    return PlaybackStep(
        time_s=time_s,
        position=anim.current_frame_index,
        cell_index=frame.index,
        delay_ms=frame.delay_ms,
        layers=layers,
        resolved=tuple(resolved),
    )
