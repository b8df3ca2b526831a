"""Tests for the ``.anim`` reader and the playback cursor."""

from __future__ import annotations

import math
from pathlib import Path

import pytest

from darkfunction_toolbox.core.exceptions import (
    EmptyAnimation,
    InvalidNumericAttribute,
    MissingOrEmptyAttribute,
    MissingRequiredNode,
    ValidationError,
)
from darkfunction_toolbox.formats.animation import (
    Animation,
    AnimationSet,
    Frame,
    FrameLayer,
    PlaybackState,
    parse_animation,
)
from darkfunction_toolbox.formats.sprite_atlas import SpriteAtlas, SpriteRect
from darkfunction_toolbox.formats.tests._fakes import FakeElement

ANIM_XML = """<?xml version="1.0"?>
<animations spriteSheet="sheet.sprites" ver="1.2">
  <anim name="Walk" loops="0">
    <cell index="0" delay="1">
      <spr name="/brown/0" x="0" y="0" z="0"/>
    </cell>
    <cell index="1" delay="2">
      <spr name="brown/1" x="-3" y="4" z="1"/>
      <spr name="/missing" x="0" y="0" z="2"/>
    </cell>
  </anim>
  <anim name="Idle" loops="3">
    <cell index="0" delay="5"/>
  </anim>
</animations>
"""

ATLAS_XML = """<img name="sheet.png" w="64" h="64"><definitions><dir name="/">
  <dir name="brown">
    <spr name="0" x="0" y="0" w="16" h="16"/>
    <spr name="1" x="16" y="0" w="16" h="16"/>
  </dir>
</dir></definitions></img>"""


def _anim_xml(body: str) -> str:
    """Wrap ``<anim>`` elements into a complete document."""
    return f'<animations spriteSheet="s.sprites" ver="1.0">{body}</animations>'


def _timed(*delays_ms: int, loops: int = 0, enforce_loops: bool = False) -> Animation:
    """Build an animation whose frames last *delays_ms*."""
    frames = [Frame(index=i, delay_ms=delay) for i, delay in enumerate(delays_ms)]
    return Animation("test", loops, frames, enforce_loops=enforce_loops)


@pytest.fixture()
def anims() -> AnimationSet:
    """Return the sample animation set parsed from text."""
    return AnimationSet.from_text(ANIM_XML)


# ── Parsing ───────────────────────────────────────────────────────────────


class TestAnimationSetParsing:
    """Tests for ``AnimationSet.from_text`` and ``from_file``."""

    def test_header(self, anims: AnimationSet) -> None:
        """Sprite sheet and version come from ``<animations>``."""
        assert anims.sprite_sheet == "sheet.sprites"
        assert anims.version == "1.2"

    def test_names_in_document_order(self, anims: AnimationSet) -> None:
        """Animations enumerate in declaration order."""
        assert anims.names() == ["Walk", "Idle"]
        assert list(anims) == ["Walk", "Idle"]
        assert len(anims) == 2
        assert "Walk" in anims
        assert "Run" not in anims

    def test_frames_are_scaled_to_milliseconds(self, anims: AnimationSet) -> None:
        """Authored delays are multiplied by the default scale of 100."""
        walk = anims.get("Walk")

        assert walk is not None
        assert [frame.delay_ms for frame in walk.frames] == [100, 200]
        assert walk.total_duration_ms() == 300

    def test_custom_delay_scale(self) -> None:
        """A custom scale changes the stored durations."""
        walk = AnimationSet.from_text(ANIM_XML, delay_scale=1).get("Walk")

        assert walk is not None
        assert [frame.delay_ms for frame in walk.frames] == [1, 2]

    def test_negative_delay_scale(self) -> None:
        """A negative scale is rejected before parsing."""
        with pytest.raises(ValidationError, match="delay_scale"):
            AnimationSet.from_text(ANIM_XML, delay_scale=-1)

    def test_layers(self, anims: AnimationSet) -> None:
        """Layers keep document order and accept negative offsets."""
        walk = anims.get("Walk")

        assert walk is not None
        assert walk.frames[1].layers == (
            FrameLayer(sprite_name="brown/1", x=-3, y=4, z=1),
            FrameLayer(sprite_name="/missing", x=0, y=0, z=2),
        )

    def test_loop_count(self, anims: AnimationSet) -> None:
        """``loops`` is kept as authored."""
        idle = anims.get("Idle")

        assert idle is not None
        assert idle.loop_count == 3
        assert idle.frames == (Frame(index=0, delay_ms=500),)

    def test_duplicate_animation_keeps_last(self, caplog: pytest.LogCaptureFixture) -> None:
        """A repeated name keeps the later animation at the later position."""
        anims = AnimationSet.from_text(
            _anim_xml(
                '<anim name="A" loops="0"><cell index="0" delay="1"/></anim>'
                '<anim name="B" loops="0"><cell index="0" delay="1"/></anim>'
                '<anim name="A" loops="7"><cell index="0" delay="1"/></anim>'
            )
        )

        assert anims.names() == ["B", "A"]
        again = anims.get("A")
        assert again is not None
        assert again.loop_count == 7
        assert "Duplicate animation 'A'" in caplog.text

    def test_sprite_sheet_path(self, anims: AnimationSet, tmp_path: Path) -> None:
        """The sprite sheet is joined onto the manifest directory when known."""
        assert anims.sprite_sheet_path() == Path("sheet.sprites")

        manifest = tmp_path / "hero.anim"
        manifest.write_text(ANIM_XML)
        loaded = AnimationSet.from_file(manifest)

        assert loaded.base_dir == tmp_path
        assert loaded.sprite_sheet_path() == tmp_path / "sheet.sprites"
        assert loaded.sprite_sheet_path(only_file_name=True) == Path("sheet.sprites")


class TestAnimationParseErrors:
    """Tests for rejected animation documents."""

    def test_wrong_root(self) -> None:
        """The document must be rooted at ``<animations>``."""
        with pytest.raises(MissingRequiredNode, match="<animations>"):
            AnimationSet.from_text("<img/>")

    def test_missing_sprite_sheet(self) -> None:
        """``spriteSheet`` is required."""
        with pytest.raises(MissingOrEmptyAttribute, match="'spriteSheet'"):
            AnimationSet.from_text('<animations ver="1"><anim/></animations>')

    def test_no_children(self) -> None:
        """An ``<animations>`` element with no children is rejected."""
        with pytest.raises(MissingRequiredNode, match="does not have child nodes"):
            AnimationSet.from_text('<animations spriteSheet="s" ver="1"/>')

    def test_anim_without_cells(self) -> None:
        """Every animation needs at least one cell."""
        with pytest.raises(MissingRequiredNode, match="anim name='Empty'"):
            AnimationSet.from_text(_anim_xml('<anim name="Empty" loops="0"/>'))

    def test_bad_loops(self) -> None:
        """A non-numeric ``loops`` names the attribute and the animation."""
        with pytest.raises(InvalidNumericAttribute, match="anim name='A'") as info:
            AnimationSet.from_text(_anim_xml('<anim name="A" loops="often"><cell index="0" delay="1"/></anim>'))
        assert info.value.attribute == "loops"

    def test_bad_layer_reports_full_context(self) -> None:
        """A broken layer names its cell, its animation and the field."""
        text = _anim_xml(
            '<anim name="Walk" loops="0"><cell index="1" delay="1"><spr name="/a" x="0" y="0"/></cell></anim>'
        )

        with pytest.raises(InvalidNumericAttribute) as info:
            AnimationSet.from_text(text)

        message = str(info.value)
        assert info.value.attribute == "z"
        assert "cell index='1'" in message
        assert "anim name='Walk'" in message

    def test_negative_delay(self) -> None:
        """Cell delays must not be negative."""
        with pytest.raises(InvalidNumericAttribute, match="must not be negative"):
            AnimationSet.from_text(_anim_xml('<anim name="A" loops="0"><cell index="0" delay="-1"/></anim>'))

    def test_parse_animation_from_fake_tree(self) -> None:
        """``parse_animation`` works on any ``XmlElement`` implementation."""
        tree = FakeElement(
            "anim",
            {"name": "Jump", "loops": "1"},
            [
                FakeElement(
                    "cell",
                    {"index": "0", "delay": "3"},
                    [FakeElement("spr", {"name": "/a", "x": "1", "y": "2", "z": "3"})],
                ),
            ],
        )

        anim = parse_animation(tree, delay_scale=10)

        assert anim.name == "Jump"
        assert anim.frames == (Frame(index=0, delay_ms=30, layers=(FrameLayer("/a", 1, 2, 3),)),)


# ── Playback ──────────────────────────────────────────────────────────────


class TestAdvance:
    """Tests for ``Animation.advance``."""

    def test_starts_on_first_frame(self) -> None:
        """A fresh cursor sits on frame 0 with no time accumulated."""
        anim = _timed(100, 200)

        assert anim.current_frame_index == 0
        assert anim.accumulated_time == 0.0
        assert anim.state is PlaybackState.UNSTARTED

    def test_crossing_a_frame_boundary(self) -> None:
        """Time spills over into the next frame once a delay is exceeded."""
        anim = _timed(100, 200)

        anim.advance(0.05)
        assert anim.current_frame_index == 0

        anim.advance(0.06)
        assert anim.current_frame_index == 1
        assert anim.accumulated_time == pytest.approx(0.01)
        assert anim.state is PlaybackState.RUNNING

    def test_exact_boundary_does_not_advance(self) -> None:
        """Reaching a frame's duration exactly stays on that frame."""
        anim = _timed(100, 200)

        anim.advance(0.1)

        assert anim.current_frame_index == 0

    def test_large_step_skips_and_wraps(self) -> None:
        """One call may skip several frames and wrap around."""
        anim = _timed(100, 200)

        anim.advance(0.35)

        assert anim.current_frame_index == 0
        assert anim.loops_completed == 1
        assert anim.accumulated_time == pytest.approx(0.05)

    def test_speed_shortens_frames(self) -> None:
        """Speed 2 halves each frame's duration."""
        anim = _timed(100, 200)

        anim.advance(0.06, speed=2.0)

        assert anim.current_frame_index == 1

    @pytest.mark.parametrize("speed", [0.0, -2.0, math.nan, math.inf])
    def test_non_positive_speed_means_normal(self, speed: float) -> None:
        """A speed of zero or below, or not finite, plays at normal speed."""
        anim = _timed(100, 200)

        anim.advance(0.06, speed=speed)
        assert anim.current_frame_index == 0

        anim.advance(0.05, speed=speed)
        assert anim.current_frame_index == 1

    def test_zero_delay_frame_still_advances(self) -> None:
        """A zero-delay frame is left after a minimal duration."""
        anim = _timed(0, 100)

        anim.advance(0.0015)

        assert anim.current_frame_index == 1

    def test_non_positive_dt_never_moves(self) -> None:
        """Zero or negative time is absorbed without moving the cursor."""
        anim = _timed(100, 200)

        anim.advance(0.0)
        anim.advance(-0.5)

        assert anim.current_frame_index == 0
        assert anim.accumulated_time == pytest.approx(-0.5)
        assert anim.state is PlaybackState.UNSTARTED

        anim.advance(0.55)
        assert anim.current_frame_index == 0
        assert anim.accumulated_time == pytest.approx(0.05)

    @pytest.mark.parametrize("dt", [math.inf, -math.inf, math.nan])
    def test_non_finite_dt_is_ignored(self, dt: float) -> None:
        """Infinite or NaN time returns at once and leaves the cursor usable."""
        anim = _timed(100, 200)

        anim.advance(dt)
        assert anim.current_frame_index == 0
        assert anim.accumulated_time == 0.0
        assert anim.state is PlaybackState.UNSTARTED

        anim.advance(0.15)
        assert anim.current_frame_index == 1
        assert anim.accumulated_time == pytest.approx(0.05)

    def test_loops_forever_by_default(self) -> None:
        """Without enforcement, ``loops`` never stops playback."""
        anim = _timed(100, 100, loops=1)

        anim.advance(1.05)

        assert not anim.finished
        assert anim.loops_completed == 5

    def test_empty_animation(self) -> None:
        """Advancing an animation without frames is an error."""
        anim = _timed()

        assert anim.current_frame() is None
        with pytest.raises(EmptyAnimation, match="'test'"):
            anim.advance(0.1)


class TestEnforcedLoops:
    """Tests for stopping after ``loop_count`` passes."""

    def test_stops_on_last_frame(self) -> None:
        """Playback stops on the final frame after the last pass."""
        anim = _timed(100, 100, loops=2, enforce_loops=True)

        anim.advance(0.25)
        assert not anim.finished
        assert anim.loops_completed == 1

        anim.advance(0.2)
        assert anim.finished
        assert anim.state is PlaybackState.FINISHED
        assert anim.current_frame_index == 1
        assert anim.accumulated_time == 0.0

    def test_finished_ignores_time(self) -> None:
        """A finished animation no longer moves."""
        anim = _timed(100, loops=1, enforce_loops=True)
        anim.advance(0.15)
        assert anim.finished

        anim.advance(5.0)

        assert anim.current_frame_index == 0
        assert anim.accumulated_time == 0.0

    def test_zero_loops_is_endless(self) -> None:
        """``loops="0"`` never finishes even when enforced."""
        anim = _timed(100, loops=0, enforce_loops=True)

        anim.advance(1.0)

        assert not anim.finished


class TestCursorLifecycle:
    """Tests for reset, copy and per-consumer cursors."""

    def test_reset(self) -> None:
        """``reset`` rewinds a running or finished animation."""
        anim = _timed(100, 100, loops=1, enforce_loops=True)
        anim.advance(0.5)
        assert anim.finished

        anim.reset()

        assert anim.current_frame_index == 0
        assert anim.loops_completed == 0
        assert anim.state is PlaybackState.UNSTARTED

    def test_copy_has_fresh_cursor(self) -> None:
        """A copy shares frames but not playback state."""
        anim = _timed(100, 200)
        anim.advance(0.15)

        clone = anim.copy()

        assert clone.frames == anim.frames
        assert clone.current_frame_index == 0
        assert anim.current_frame_index == 1

    def test_copy_overrides_enforcement(self) -> None:
        """``copy`` can switch loop enforcement on."""
        anim = _timed(100, loops=2)

        assert anim.copy(enforce_loops=True).enforce_loops
        assert not anim.copy().enforce_loops

    def test_get_returns_independent_copies(self, anims: AnimationSet) -> None:
        """Each ``get`` call returns its own cursor."""
        first = anims.get("Walk")
        assert first is not None
        first.advance(0.15)

        second = anims.get("Walk")

        assert second is not None
        assert second is not first
        assert second.current_frame_index == 0
        assert first.current_frame_index == 1

    def test_get_unknown(self, anims: AnimationSet) -> None:
        """An unknown name yields ``None``."""
        assert anims.get("Run") is None

    def test_get_with_enforcement(self, anims: AnimationSet) -> None:
        """``get`` forwards the enforcement flag to the copy."""
        idle = anims.get("Idle", enforce_loops=True)

        assert idle is not None
        assert idle.enforce_loops

    def test_current_frame(self) -> None:
        """``current_frame`` follows the cursor."""
        anim = _timed(100, 200)
        anim.advance(0.15)

        assert anim.current_frame() == Frame(index=1, delay_ms=200)


# ── Atlas lookups ─────────────────────────────────────────────────────────


class TestLayerResolution:
    """Tests for resolving frame layers against an atlas."""

    def test_sprite_path_is_absolute(self) -> None:
        """Layer names without a leading slash are treated as absolute."""
        assert FrameLayer("brown/1", 0, 0, 0).sprite_path == "/brown/1"
        assert FrameLayer("/brown/1", 0, 0, 0).sprite_path == "/brown/1"

    def test_resolve_layers(self, anims: AnimationSet) -> None:
        """Known sprites resolve; unknown ones yield ``None``."""
        atlas = SpriteAtlas.from_text(ATLAS_XML)
        walk = anims.get("Walk")
        assert walk is not None

        assert walk.frames[0].resolve_layers(atlas) == [SpriteRect("0", 0, 0, 16, 16)]
        assert walk.frames[1].resolve_layers(atlas) == [SpriteRect("1", 16, 0, 16, 16), None]
