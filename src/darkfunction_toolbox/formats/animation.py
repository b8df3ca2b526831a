"""Read darkFunction ``.anim`` manifests and play them back.

Format::

    <animations spriteSheet="n69yj7.sprites" ver="1.2">
      <anim name="Animation" loops="0">
        <cell index="0" delay="4">
          <spr name="/brown/2" x="0" y="0" z="0"/>
        </cell>
        <cell index="1" delay="4">
          <spr name="/brown/10" x="0" y="0" z="0"/>
        </cell>
      </anim>
    </animations>

Authored ``delay`` values are scaled by ``delay_scale`` into milliseconds at
parse time (``4`` becomes ``400`` ms with the default scale of 100).
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from darkfunction_toolbox.core.exceptions import (
    EmptyAnimation,
    MissingRequiredNode,
    ParseError,
    ValidationError,
)
from darkfunction_toolbox.formats._document import (
    XmlElement,
    iter_children,
    parse_document,
    read_whole_file,
    required_attribute,
    required_int,
)

if TYPE_CHECKING:
    from darkfunction_toolbox.formats.sprite_atlas import SpriteAtlas, SpriteRect

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SCALE = 100

# Floor for a frame's effective duration; keeps zero-delay frames advancing.
MIN_FRAME_DURATION_S = 0.001


class PlaybackState(enum.Enum):
    """Coarse state of an animation's playback cursor."""

    UNSTARTED = "unstarted"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(frozen=True)
class FrameLayer:
    """One ``<spr>`` drawn as part of a frame.

    Attributes:
        sprite_name: Atlas path of the sprite, as authored.
        x: Horizontal render offset.
        y: Vertical render offset.
        z: Draw-order hint.
    """

    sprite_name: str
    x: int
    y: int
    z: int

    @property
    def sprite_path(self) -> str:
        """Return the sprite name as an absolute atlas path."""
        if self.sprite_name.startswith("/"):
            return self.sprite_name
        return f"/{self.sprite_name}"


@dataclass(frozen=True)
class Frame:
    """One ``<cell>``: a display duration plus layered sprites.

    Attributes:
        index: Declared cell index (kept as authored, frames stay in document order).
        delay_ms: Display duration in milliseconds.
        layers: Sprites drawn for this frame, in document order.
    """

    index: int
    delay_ms: int
    layers: tuple[FrameLayer, ...] = ()

    def resolve_layers(self, atlas: SpriteAtlas) -> list[SpriteRect | None]:
        """Look up every layer's sprite in *atlas* (``None`` where unknown)."""
        return [atlas.resolve(layer.sprite_path) for layer in self.layers]


class Animation:
    """A named frame sequence with its own playback cursor.

    The cursor is ``(current_frame_index, accumulated_time)``.  Playback loops
    forever by default; ``loop_count`` is informational unless
    *enforce_loops* is set, in which case a positive ``loop_count`` stops
    playback on the last frame after that many complete passes.

    Instances are not thread-safe; give each consumer its own copy.

    Args:
        name: Animation name.
        loop_count: Authored ``loops`` attribute (0 means endless).
        frames: Frames in document order.
        enforce_loops: Stop after ``loop_count`` passes when positive.
    """

    def __init__(
        self,
        name: str,
        loop_count: int,
        frames: Sequence[Frame],
        *,
        enforce_loops: bool = False,
    ) -> None:
        self._name = name
        self._loop_count = loop_count
        self._frames: tuple[Frame, ...] = tuple(frames)
        self._enforce_loops = enforce_loops
        self.reset()

    @property
    def name(self) -> str:
        return self._name

    @property
    def loop_count(self) -> int:
        return self._loop_count

    @property
    def frames(self) -> tuple[Frame, ...]:
        return self._frames

    @property
    def enforce_loops(self) -> bool:
        return self._enforce_loops

    @property
    def current_frame_index(self) -> int:
        return self._current_index

    @property
    def accumulated_time(self) -> float:
        """Seconds spent on the current frame that have not yet been consumed."""
        return self._accumulated

    @property
    def loops_completed(self) -> int:
        """Number of times playback wrapped past the last frame."""
        return self._loops_completed

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def state(self) -> PlaybackState:
        """Return the current playback state."""
        if self._finished:
            return PlaybackState.FINISHED
        if self._started:
            return PlaybackState.RUNNING
        return PlaybackState.UNSTARTED

    def reset(self) -> None:
        """Rewind the cursor to frame 0 with no accumulated time."""
        self._current_index = 0
        self._accumulated = 0.0
        self._loops_completed = 0
        self._started = False
        self._finished = False

    def copy(self, *, enforce_loops: bool | None = None) -> Animation:
        """Return an independent animation with the same frames and a fresh cursor.

        Args:
            enforce_loops: Override the loop-enforcement flag of the copy.
        """
        return Animation(
            self._name,
            self._loop_count,
            tuple(self._frames),
            enforce_loops=self._enforce_loops if enforce_loops is None else enforce_loops,
        )

    def current_frame(self) -> Frame | None:
        """Return the frame under the cursor, or ``None`` for an empty animation."""
        if not self._frames:
            return None
        return self._frames[self._current_index]

    def total_duration_ms(self) -> int:
        """Return the length of one pass at normal speed."""
        return sum(frame.delay_ms for frame in self._frames)

    def advance(self, dt: float, speed: float = 1.0) -> None:
        """Advance the cursor by *dt* seconds of wall-clock time.

        Several frames may be skipped in one call.  Non-positive *dt* is added
        to the accumulated time but never moves the cursor; a non-finite *dt*
        is ignored.

        Args:
            dt: Elapsed seconds since the previous call.
            speed: Playback multiplier; values ``<= 0`` or non-finite mean
                normal speed.

        Raises:
            EmptyAnimation: If the animation has no frames.
        """
        if not self._frames:
            msg = f"Animation '{self._name}' has no frames"
            raise EmptyAnimation(msg)
        if self._finished:
            return
        if not (speed > 0 and math.isfinite(speed)):
            speed = 1.0
        if not math.isfinite(dt):
            return

        self._accumulated += dt
        if dt <= 0:
            return
        self._started = True

        duration = self._frame_duration(speed)
        while self._accumulated > duration:
            self._accumulated -= duration
            if not self._step():
                break
            duration = self._frame_duration(speed)

    def _frame_duration(self, speed: float) -> float:
        seconds = self._frames[self._current_index].delay_ms / speed / 1000
        return seconds if seconds > 0 else MIN_FRAME_DURATION_S

    def _step(self) -> bool:
        """Move to the next frame; return False when playback has finished."""
        if self._current_index + 1 < len(self._frames):
            self._current_index += 1
            return True

        self._loops_completed += 1
        if self._enforce_loops and 0 < self._loop_count <= self._loops_completed:
            self._finished = True
            self._accumulated = 0.0
            return False

        self._current_index = 0
        return True

    def __repr__(self) -> str:
        return (
            f"Animation(name={self._name!r}, frames={len(self._frames)}, "
            f"current={self._current_index}, state={self.state.value})"
        )


class AnimationSet:
    """A parsed ``.anim`` manifest: animation templates keyed by name.

    :meth:`get` hands out copies so every caller owns its playback cursor.

    Args:
        sprite_sheet: The ``spriteSheet`` attribute (atlas manifest file name).
        version: The ``ver`` attribute.
        animations: Templates keyed by name, in document order.
        base_dir: Directory of the manifest file.
    """

    def __init__(
        self,
        sprite_sheet: str,
        version: str,
        animations: Mapping[str, Animation],
        base_dir: Path | None = None,
    ) -> None:
        self._sprite_sheet = sprite_sheet
        self._version = version
        self._animations = MappingProxyType(dict(animations))
        self._base_dir = base_dir

    @classmethod
    def from_text(
        cls,
        text: str | bytes,
        *,
        base_dir: Path | None = None,
        delay_scale: int = DEFAULT_DELAY_SCALE,
    ) -> AnimationSet:
        """Parse animation XML held in memory.

        Args:
            text: The manifest content.
            base_dir: Directory the sprite sheet name is relative to.
            delay_scale: Milliseconds per authored delay unit.

        Raises:
            ParseError: On any malformed or incomplete manifest.
            ValidationError: If *delay_scale* is negative.
        """
        return cls.from_element(parse_document(text), base_dir=base_dir, delay_scale=delay_scale)

    @classmethod
    def from_file(cls, path: Path, *, delay_scale: int = DEFAULT_DELAY_SCALE) -> AnimationSet:
        """Read and parse an animation manifest file.

        Raises:
            IoFailure: If the file is missing, unreadable, or empty.
            ParseError: On any malformed or incomplete manifest.
        """
        animations = cls.from_text(read_whole_file(path), base_dir=path.parent, delay_scale=delay_scale)
        logger.info("Loaded %d animations from %s", len(animations), path)
        return animations

    @classmethod
    def from_element(
        cls,
        element: XmlElement,
        *,
        base_dir: Path | None = None,
        delay_scale: int = DEFAULT_DELAY_SCALE,
    ) -> AnimationSet:
        """Build a set from an already-parsed ``<animations>`` element."""
        if delay_scale < 0:
            msg = f"delay_scale must be >= 0, got {delay_scale}"
            raise ValidationError(msg)

        if element.tag_name != "animations":
            msg = "Cannot find node <animations> !"
            raise MissingRequiredNode(msg)

        sprite_sheet = required_attribute(element, "spriteSheet")
        version = required_attribute(element, "ver")

        if element.first_child() is None:
            msg = "The <animations> node does not have child nodes!"
            raise MissingRequiredNode(msg)

        animations: dict[str, Animation] = {}
        for child in iter_children(element):
            if child.tag_name != "anim":
                continue
            try:
                anim = parse_animation(child, delay_scale=delay_scale)
            except ParseError as exc:
                raise exc.with_context("Parsing <anim> failed") from exc
            if anim.name in animations:
                logger.warning("Duplicate animation '%s'; keeping the later one", anim.name)
                del animations[anim.name]
            animations[anim.name] = anim

        return cls(sprite_sheet, version, animations, base_dir)

    @property
    def sprite_sheet(self) -> str:
        return self._sprite_sheet

    @property
    def version(self) -> str:
        return self._version

    @property
    def base_dir(self) -> Path | None:
        return self._base_dir

    def sprite_sheet_path(self, *, only_file_name: bool = False) -> Path:
        """Return the path of the atlas manifest this set draws from.

        Args:
            only_file_name: Return the bare file name instead of joining it
                onto the manifest's directory.
        """
        if only_file_name or self._base_dir is None:
            return Path(self._sprite_sheet)
        return self._base_dir / self._sprite_sheet

    def get(self, name: str, *, enforce_loops: bool = False) -> Animation | None:
        """Return a fresh copy of the named animation, or ``None``.

        Args:
            name: Animation name.
            enforce_loops: Stop the copy after ``loop_count`` passes.
        """
        template = self._animations.get(name)
        if template is None:
            return None
        return template.copy(enforce_loops=enforce_loops)

    def names(self) -> list[str]:
        """Return animation names in document order."""
        return list(self._animations)

    def __len__(self) -> int:
        return len(self._animations)

    def __contains__(self, name: object) -> bool:
        return name in self._animations

    def __iter__(self) -> Iterator[str]:
        return iter(self._animations)

    def __repr__(self) -> str:
        return f"AnimationSet(sprite_sheet={self._sprite_sheet!r}, ver={self._version!r}, count={len(self)})"


# ── Element parsers ───────────────────────────────────────────────────────


def parse_layer(element: XmlElement) -> FrameLayer:
    """Parse a ``<spr name x y z>`` inside a cell."""
    name = required_attribute(element, "name")
    return FrameLayer(
        sprite_name=name,
        x=required_int(element, "x"),
        y=required_int(element, "y"),
        z=required_int(element, "z"),
    )


def parse_frame(element: XmlElement, *, delay_scale: int = DEFAULT_DELAY_SCALE) -> Frame:
    """Parse a ``<cell index delay>`` and its sprites."""
    index = required_int(element, "index", unsigned=True)
    delay = required_int(element, "delay", unsigned=True)

    layers: list[FrameLayer] = []
    for child in iter_children(element):
        if child.tag_name != "spr":
            continue
        try:
            layers.append(parse_layer(child))
        except ParseError as exc:
            raise exc.with_context(f"Parsing <spr> from <cell index='{index}'> failed") from exc

    return Frame(index=index, delay_ms=delay * delay_scale, layers=tuple(layers))


def parse_animation(element: XmlElement, *, delay_scale: int = DEFAULT_DELAY_SCALE) -> Animation:
    """Parse an ``<anim name loops>`` and its cells.

    Raises:
        ParseError: On the first invalid cell or sprite, prefixed with the
            animation name.
    """
    name = required_attribute(element, "name")
    try:
        loop_count = required_int(element, "loops")
    except ParseError as exc:
        raise exc.with_context(f"<anim name='{name}'>") from exc

    frames: list[Frame] = []
    for child in iter_children(element):
        if child.tag_name != "cell":
            continue
        try:
            frames.append(parse_frame(child, delay_scale=delay_scale))
        except ParseError as exc:
            raise exc.with_context(f"Parsing <cell> from <anim name='{name}'> failed") from exc

    if not frames:
        msg = f"The <anim name='{name}'> node does not have <cell> nodes!"
        raise MissingRequiredNode(msg)

    logger.debug("Parsed <anim name='%s'>: %d frames", name, len(frames))
    return Animation(name, loop_count, frames)
