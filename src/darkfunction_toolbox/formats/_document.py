"""Minimal XML element capability used by the manifest parsers.

The parsers never touch an XML engine directly.  They walk objects that
satisfy :class:`XmlElement`::

    tag_name           : element tag, e.g. ``dir``
    attribute(name)    : raw string value or ``None``
    int_attribute(name): integer value, ``None`` when absent or non-numeric
    first_child()      : first child element in document order
    next_sibling()     : following sibling element in document order

:class:`EtreeElement` adapts ``xml.etree.ElementTree``; tests can supply any
in-memory tree with the same surface.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol
from xml.etree.ElementTree import Element, ParseError, fromstring

from darkfunction_toolbox.core.exceptions import (
    InvalidNumericAttribute,
    IoFailure,
    MalformedXml,
    MissingOrEmptyAttribute,
)

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?\d+")


class XmlElement(Protocol):
    """Read-only view of one XML element."""

    @property
    def tag_name(self) -> str: ...

    def attribute(self, name: str) -> str | None: ...

    def int_attribute(self, name: str) -> int | None: ...

    def first_child(self) -> XmlElement | None: ...

    def next_sibling(self) -> XmlElement | None: ...


class EtreeElement:
    """``XmlElement`` adapter over an ``xml.etree.ElementTree.Element``.

    Args:
        element: The wrapped element.
        parent: The wrapped element's parent, or ``None`` for the root.
        index: Position of *element* among the parent's children.
    """

    def __init__(self, element: Element, parent: Element | None = None, index: int = 0) -> None:
        self._element = element
        self._parent = parent
        self._index = index

    @property
    def tag_name(self) -> str:
        """Return the element tag."""
        return self._element.tag

    def attribute(self, name: str) -> str | None:
        """Return the attribute value, or ``None`` if absent."""
        return self._element.get(name)

    def int_attribute(self, name: str) -> int | None:
        """Return the attribute as an integer, or ``None`` if absent or non-numeric."""
        value = self._element.get(name)
        if value is None:
            return None
        value = value.strip()
        if not _INT_RE.fullmatch(value):
            return None
        return int(value)

    def first_child(self) -> EtreeElement | None:
        """Return the first child element, or ``None``."""
        if len(self._element) == 0:
            return None
        return EtreeElement(self._element[0], self._element, 0)

    def next_sibling(self) -> EtreeElement | None:
        """Return the following sibling element, or ``None``."""
        if self._parent is None or self._index + 1 >= len(self._parent):
            return None
        return EtreeElement(self._parent[self._index + 1], self._parent, self._index + 1)

    def __repr__(self) -> str:
        return f"EtreeElement(<{self._element.tag}>)"


def iter_children(element: XmlElement) -> Iterator[XmlElement]:
    """Yield the child elements of *element* in document order."""
    child = element.first_child()
    while child is not None:
        yield child
        child = child.next_sibling()


def read_whole_file(path: Path) -> bytes:
    """Read a manifest file fully into memory.

    Args:
        path: Path to the manifest.

    Returns:
        The raw file content.

    Raises:
        IoFailure: If the file cannot be opened or is empty.
    """
    try:
        data = path.read_bytes()
    except OSError as exc:
        msg = f"Cannot open file '{path}'"
        raise IoFailure(msg) from exc
    if not data:
        msg = f"File '{path}' is empty"
        raise IoFailure(msg)
    logger.debug("Read %d bytes from %s", len(data), path)
    return data


def parse_document(text: str | bytes) -> XmlElement:
    """Parse an XML document and return its root element.

    Raises:
        MalformedXml: If the text is not well-formed XML.
    """
    try:
        root = fromstring(text)
    except ParseError as exc:
        msg = f"XML parsing failed: {exc}"
        raise MalformedXml(msg) from exc
    return EtreeElement(root)


def required_attribute(element: XmlElement, name: str) -> str:
    """Return a non-empty string attribute.

    Raises:
        MissingOrEmptyAttribute: If the attribute is absent or empty.
    """
    value = element.attribute(name)
    if not value:
        msg = f"Cannot find attribute '{name}' or the value is empty!"
        raise MissingOrEmptyAttribute(msg, attribute=name)
    return value


def required_int(element: XmlElement, name: str, *, unsigned: bool = False) -> int:
    """Return a required integer attribute.

    Args:
        element: Element carrying the attribute.
        name: Attribute name.
        unsigned: Reject negative values when True.

    Raises:
        InvalidNumericAttribute: If the attribute is absent, non-numeric, or
            negative while *unsigned* is requested.
    """
    value = element.int_attribute(name)
    if value is None:
        msg = f"Cannot find attribute '{name}' or the value is not numeric!"
        raise InvalidNumericAttribute(msg, attribute=name)
    if unsigned and value < 0:
        msg = f"Attribute '{name}' must not be negative, got {value}"
        raise InvalidNumericAttribute(msg, attribute=name)
    return value
