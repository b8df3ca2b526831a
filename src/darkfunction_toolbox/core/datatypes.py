"""Shared value objects produced by the tools and passed along pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class SpriteEntry:
    """A sprite rectangle together with its full atlas path."""

    path: str
    x: int
    y: int
    w: int
    h: int


@dataclass(frozen=True)
class AtlasReport:
    """Result of inspecting a ``.sprites`` atlas manifest."""

    atlas_path: Path
    image_path: Path
    image_width: int
    image_height: int
    sprites: tuple[SpriteEntry, ...] = field(default_factory=tuple)
    query: str | None = None
    resolved: SpriteEntry | None = None

    @property
    def count(self) -> int:
        """Return the number of sprites in the atlas."""
        return len(self.sprites)


@dataclass(frozen=True)
class PlaybackStep:
    """The frame shown from ``time_s`` onward during a simulated playback.

    Attributes:
        time_s: Simulation time at which the frame became current.
        position: Position of the frame in the animation's sequence.
        cell_index: The frame's authored ``index`` attribute.
        delay_ms: The frame's display duration.
        layers: Absolute sprite paths of the frame's layers.
        resolved: Atlas rectangles for ``layers`` (``None`` where unresolved
            or when no atlas was available).
    """

    time_s: float
    position: int
    cell_index: int
    delay_ms: int
    layers: tuple[str, ...]
    resolved: tuple[SpriteEntry | None, ...]


@dataclass(frozen=True)
class PlaybackTrace:
    """Result of simulating an animation over a fixed time span."""

    anim_path: Path
    animation: str
    speed: float
    duration_s: float
    steps: tuple[PlaybackStep, ...]
    loops_completed: int
    finished: bool
    atlas_path: Path | None = None

    @property
    def count(self) -> int:
        """Return the number of recorded frame changes (including the first frame)."""
        return len(self.steps)
