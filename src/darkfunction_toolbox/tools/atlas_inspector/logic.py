"""Pure atlas inspection logic: parses a ``.sprites`` manifest and reports its sprites."""

from __future__ import annotations

import logging
from pathlib import Path

from darkfunction_toolbox.core.datatypes import AtlasReport, SpriteEntry
from darkfunction_toolbox.core.events import COMPLETED, PROGRESS, EventBus
from darkfunction_toolbox.core.exceptions import ValidationError
from darkfunction_toolbox.formats.sprite_atlas import SpriteAtlas, SpriteRect

logger = logging.getLogger(__name__)

# darkFunction Editor saves atlases as ``.sprites``; plain ``.xml`` is accepted too.
ATLAS_SUFFIXES: frozenset[str] = frozenset({".sprites", ".xml"})


# ── Validation ────────────────────────────────────────────────────────────


def validate_atlas_params(*, atlas_path: Path | None) -> None:
    """Validate atlas inspection parameters before processing.

    Args:
        atlas_path: Path to the ``.sprites`` manifest.

    Raises:
        ValidationError: If the path is missing, does not exist, or has an
            unexpected suffix.
    """
    if atlas_path is None:
        msg = "A .sprites file path is required"
        raise ValidationError(msg)
    if not atlas_path.exists():
        msg = f"Atlas file does not exist: '{atlas_path}'"
        raise ValidationError(msg)
    if atlas_path.suffix.lower() not in ATLAS_SUFFIXES:
        msg = f"Expected a .sprites or .xml file, got: '{atlas_path.name}'"
        raise ValidationError(msg)


# ── Public API ────────────────────────────────────────────────────────────


def sprite_entry(path: str, sprite: SpriteRect) -> SpriteEntry:
    """Return a ``SpriteEntry`` for *sprite* found at *path*."""
    return SpriteEntry(path=path, x=sprite.x, y=sprite.y, w=sprite.w, h=sprite.h)


def inspect_atlas(
    atlas_path: Path,
    *,
    resolve: str | None = None,
    event_bus: EventBus | None = None,
) -> AtlasReport:
    """Parse an atlas and describe every sprite in it.

    Args:
        atlas_path: Path to the ``.sprites`` manifest.
        resolve: Optional sprite path (e.g. ``/brown/2``) to look up.
        event_bus: Optional event bus for progress reporting.

    Returns:
        An ``AtlasReport``; ``resolved`` is ``None`` when *resolve* is not
        given or names no sprite.

    Raises:
        ParseError: If the manifest cannot be read or is invalid.
    """
    atlas = SpriteAtlas.from_file(atlas_path)

    entries: list[SpriteEntry] = []
    total = len(atlas)
    for idx, (path, sprite) in enumerate(atlas.walk()):
        entries.append(sprite_entry(path, sprite))
        if event_bus is not None:
            event_bus.emit(
                PROGRESS,
                tool="atlas_inspector",
                current=idx + 1,
                total=total,
                message=f"{path}  x={sprite.x} y={sprite.y} w={sprite.w} h={sprite.h}",
            )

    resolved: SpriteEntry | None = None
    if resolve is not None:
        match = atlas.resolve(resolve)
        if match is None:
            logger.info("No sprite at '%s' in %s", resolve, atlas_path.name)
        else:
            resolved = sprite_entry(resolve, match)

    if event_bus is not None:
        event_bus.emit(
            COMPLETED,
            tool="atlas_inspector",
            message=f"Done: {total} sprites in '{atlas_path.name}'",
        )

    return AtlasReport(
        atlas_path=atlas_path,
        image_path=atlas.image_path(),
        image_width=atlas.image_width,
        image_height=atlas.image_height,
        sprites=tuple(entries),
        query=resolve,
        resolved=resolved,
    )
