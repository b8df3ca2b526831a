"""Read darkFunction ``.sprites`` atlas manifests.

An atlas names rectangles of a single source image inside a directory tree::

    <img name="n69yj7.bmp" w="954" h="1033">
      <definitions>
        <dir name="/">
          <dir name="brown">
            <spr name="0" x="5" y="7" w="17" h="24"/>
            <spr name="1" x="38" y="7" w="14" h="24"/>
          </dir>
        </dir>
      </definitions>
    </img>

The sprite named ``0`` above is addressed by the path ``/brown/0``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TypeVar

from darkfunction_toolbox.core.exceptions import (
    MalformedXml,
    MissingRequiredNode,
    MissingRootDirectory,
    ParseError,
)
from darkfunction_toolbox.formats._document import (
    XmlElement,
    iter_children,
    parse_document,
    read_whole_file,
    required_attribute,
    required_int,
)

logger = logging.getLogger(__name__)

ROOT_NAME = "/"
SEPARATOR = "/"

_T = TypeVar("_T")


@dataclass(frozen=True)
class SpriteRect:
    """A named pixel rectangle inside the atlas image.

    Attributes:
        name: Leaf name as declared by ``<spr name=...>``.
        x: Left edge in the source image.
        y: Top edge in the source image.
        w: Width in pixels.
        h: Height in pixels.
    """

    name: str
    x: int
    y: int
    w: int
    h: int


@dataclass(frozen=True)
class Directory:
    """One ``<dir>`` node: named sub-directories and named sprites.

    A name may appear both as a sub-directory and as a sprite; the two
    namespaces are independent.
    """

    name: str
    children: Mapping[str, Directory] = field(default_factory=lambda: MappingProxyType({}))
    sprites: Mapping[str, SpriteRect] = field(default_factory=lambda: MappingProxyType({}))

    def __hash__(self) -> int:
        # Must agree with the order-insensitive equality of the mappings.
        return hash((self.name, frozenset(self.children.items()), frozenset(self.sprites.items())))

    def resolve(self, path: str) -> SpriteRect | None:
        """Resolve a path relative to this directory (no leading ``/``).

        The last segment always names a sprite, even when a sub-directory of
        the same name exists.  Empty segments end the lookup.

        Args:
            path: Relative path such as ``brown/0``.

        Returns:
            The matching sprite, or ``None``.
        """
        node = self
        remainder = path
        while remainder:
            head, sep, tail = remainder.partition(SEPARATOR)
            if not sep:
                return node.sprites.get(head)
            if not head:
                return None
            child = node.children.get(head)
            if child is None:
                return None
            node, remainder = child, tail
        return None

    def walk(self, prefix: str = ROOT_NAME) -> Iterator[tuple[str, SpriteRect]]:
        """Yield ``(full_path, sprite)`` pairs, sub-directories before own sprites."""
        for child_name, child in self.children.items():
            yield from child.walk(f"{prefix}{child_name}{SEPARATOR}")
        for sprite_name, sprite in self.sprites.items():
            yield f"{prefix}{sprite_name}", sprite


class SpriteAtlas:
    """A parsed ``.sprites`` manifest.

    Build instances with :meth:`from_file` or :meth:`from_text`; the tree is
    immutable afterwards.

    Args:
        image_name: Image file name from ``<img name=...>``.
        image_width: Image width from ``<img w=...>``.
        image_height: Image height from ``<img h=...>``.
        root: The root directory (named ``/``).
        base_dir: Directory of the manifest file, used to locate the image.
    """

    def __init__(
        self,
        image_name: str,
        image_width: int,
        image_height: int,
        root: Directory,
        base_dir: Path | None = None,
    ) -> None:
        self._image_name = image_name
        self._image_width = image_width
        self._image_height = image_height
        self._root = root
        self._base_dir = base_dir

    # ── construction ───────────────────────────────────────────

    @classmethod
    def from_text(cls, text: str | bytes, *, base_dir: Path | None = None) -> SpriteAtlas:
        """Parse atlas XML held in memory.

        Args:
            text: The manifest content.
            base_dir: Directory the image name is relative to.

        Raises:
            ParseError: On any malformed or incomplete manifest.
        """
        return cls.from_element(parse_document(text), base_dir=base_dir)

    @classmethod
    def from_file(cls, path: Path) -> SpriteAtlas:
        """Read and parse an atlas manifest file.

        Raises:
            IoFailure: If the file is missing, unreadable, or empty.
            ParseError: On any malformed or incomplete manifest.
        """
        atlas = cls.from_text(read_whole_file(path), base_dir=path.parent)
        logger.info("Loaded atlas %s (%d sprites)", path, len(atlas))
        return atlas

    @classmethod
    def from_element(cls, element: XmlElement, *, base_dir: Path | None = None) -> SpriteAtlas:
        """Build an atlas from an already-parsed ``<img>`` element."""
        if element.tag_name != "img":
            msg = "Cannot find node <img> !"
            raise MissingRequiredNode(msg)

        image_name = required_attribute(element, "name")
        image_width = required_int(element, "w", unsigned=True)
        image_height = required_int(element, "h", unsigned=True)

        if element.first_child() is None:
            msg = "The <img> node does not have child nodes!"
            raise MissingRequiredNode(msg)

        definitions = _single(element, "definitions", missing=MissingRequiredNode, parent="img")
        root_element = _single(definitions, "dir", missing=MissingRootDirectory, parent="definitions")

        try:
            root = parse_directory(root_element)
        except ParseError as exc:
            raise exc.with_context("Parsing <dir> failed") from exc

        if root.name != ROOT_NAME:
            msg = f"The root <dir> is missing! Expected name '{ROOT_NAME}', got '{root.name}'"
            raise MissingRootDirectory(msg)

        return cls(image_name, image_width, image_height, root, base_dir)

    # ── metadata ───────────────────────────────────────────────

    @property
    def image_name(self) -> str:
        """Return the image file name exactly as written in the manifest."""
        return self._image_name

    @property
    def image_width(self) -> int:
        return self._image_width

    @property
    def image_height(self) -> int:
        return self._image_height

    @property
    def root(self) -> Directory:
        """Return the root directory."""
        return self._root

    @property
    def base_dir(self) -> Path | None:
        """Return the manifest's directory, or ``None`` when parsed from text."""
        return self._base_dir

    def image_path(self, *, only_file_name: bool = False) -> Path:
        """Return the path of the atlas image.

        Args:
            only_file_name: Return the bare file name instead of joining it
                onto the manifest's directory.
        """
        if only_file_name or self._base_dir is None:
            return Path(self._image_name)
        return self._base_dir / self._image_name

    # ── queries ────────────────────────────────────────────────

    def resolve(self, path: str) -> SpriteRect | None:
        """Resolve an absolute sprite path such as ``/brown/2``.

        Returns:
            The sprite, or ``None`` for an empty path, a path without a
            leading ``/``, a directory path, or an unknown name.
        """
        if not path.startswith(SEPARATOR):
            return None
        return self._root.resolve(path[1:])

    def walk(self) -> Iterator[tuple[str, SpriteRect]]:
        """Yield every sprite together with its full path."""
        return self._root.walk()

    def list_all_sprites(self) -> list[SpriteRect]:
        """Return every sprite in the atlas (sub-directories before their parent's sprites)."""
        return [sprite for _path, sprite in self.walk()]

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.resolve(path) is not None

    def __repr__(self) -> str:
        return f"SpriteAtlas(image={self._image_name!r}, size={self._image_width}x{self._image_height})"


# ── Element parsers ───────────────────────────────────────────────────────


def parse_sprite(element: XmlElement) -> SpriteRect:
    """Parse a ``<spr name x y w h>`` leaf.

    Raises:
        MissingOrEmptyAttribute: If ``name`` is absent or empty.
        InvalidNumericAttribute: If a coordinate is absent, non-numeric, or negative.
    """
    name = required_attribute(element, "name")
    return SpriteRect(
        name=name,
        x=required_int(element, "x", unsigned=True),
        y=required_int(element, "y", unsigned=True),
        w=required_int(element, "w", unsigned=True),
        h=required_int(element, "h", unsigned=True),
    )


def parse_directory(element: XmlElement) -> Directory:
    """Parse a ``<dir>`` node and everything below it.

    Duplicate names within one directory keep the later declaration.

    Raises:
        ParseError: On the first invalid descendant, prefixed with the
            enclosing directory name.
    """
    name = required_attribute(element, "name")
    children: dict[str, Directory] = {}
    sprites: dict[str, SpriteRect] = {}

    for child in iter_children(element):
        if child.tag_name == "dir":
            try:
                sub = parse_directory(child)
            except ParseError as exc:
                raise exc.with_context(f"Parsing <dir> from <dir name='{name}'> failed") from exc
            _replace(children, sub.name, sub, where=name)
        elif child.tag_name == "spr":
            try:
                sprite = parse_sprite(child)
            except ParseError as exc:
                raise exc.with_context(f"Parsing <spr> from <dir name='{name}'> failed") from exc
            _replace(sprites, sprite.name, sprite, where=name)

    logger.debug("Parsed <dir name='%s'>: %d dirs, %d sprites", name, len(children), len(sprites))
    return Directory(name, MappingProxyType(children), MappingProxyType(sprites))


def _replace(mapping: dict[str, _T], key: str, value: _T, *, where: str) -> None:
    """Insert *value*, moving a replaced key to its new document position."""
    if key in mapping:
        logger.warning("Duplicate name '%s' in <dir name='%s'>; keeping the later one", key, where)
        del mapping[key]
    mapping[key] = value


def _single(
    element: XmlElement,
    tag: str,
    *,
    missing: type[ParseError],
    parent: str,
) -> XmlElement:
    """Return the only child of *element* tagged *tag*."""
    matches = [child for child in iter_children(element) if child.tag_name == tag]
    if not matches:
        msg = f"Cannot find node <{tag}> inside <{parent}>!"
        raise missing(msg)
    if len(matches) > 1:
        msg = f"Expected exactly one <{tag}> inside <{parent}>, found {len(matches)}"
        raise MalformedXml(msg)
    return matches[0]
