"""Tests for the XML element capability and file helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from darkfunction_toolbox.core.exceptions import (
    InvalidNumericAttribute,
    IoFailure,
    MalformedXml,
    MissingOrEmptyAttribute,
)
from darkfunction_toolbox.formats._document import (
    iter_children,
    parse_document,
    read_whole_file,
    required_attribute,
    required_int,
)
from darkfunction_toolbox.formats.tests._fakes import FakeElement


class TestEtreeElement:
    """Tests for the ``xml.etree`` adapter returned by ``parse_document``."""

    def test_tag_and_attributes(self) -> None:
        """Tag names and raw attribute values are exposed."""
        root = parse_document('<img name="a.bmp" w="10"/>')

        assert root.tag_name == "img"
        assert root.attribute("name") == "a.bmp"
        assert root.attribute("missing") is None

    def test_int_attribute(self) -> None:
        """Integers parse, junk and absent attributes give ``None``."""
        root = parse_document('<spr x="12" y=" -3 " z="4px" w="1.5"/>')

        assert root.int_attribute("x") == 12
        assert root.int_attribute("y") == -3
        assert root.int_attribute("z") is None
        assert root.int_attribute("w") is None
        assert root.int_attribute("h") is None

    def test_children_in_document_order(self) -> None:
        """Children are walked in order and comments are skipped."""
        root = parse_document("<a><b/><!-- note --><c/><d/></a>")

        assert [child.tag_name for child in iter_children(root)] == ["b", "c", "d"]

    def test_root_has_no_sibling(self) -> None:
        """The document root has neither parent nor siblings."""
        root = parse_document("<a><b/></a>")

        assert root.next_sibling() is None
        first = root.first_child()
        assert first is not None
        assert first.first_child() is None
        assert first.next_sibling() is None

    def test_accepts_bytes_with_declaration(self) -> None:
        """Byte input with an XML declaration is accepted."""
        root = parse_document(b'<?xml version="1.0"?>\n<animations ver="1.2"/>')

        assert root.attribute("ver") == "1.2"

    @pytest.mark.parametrize("text", ["", "<img", "<a></b>", "not xml at all"])
    def test_malformed_raises(self, text: str) -> None:
        """Broken documents raise ``MalformedXml``."""
        with pytest.raises(MalformedXml, match="XML parsing failed"):
            parse_document(text)


class TestRequiredAttributes:
    """Tests for ``required_attribute`` and ``required_int``."""

    def test_required_attribute_returns_value(self) -> None:
        """A present, non-empty attribute is returned."""
        assert required_attribute(FakeElement("dir", {"name": "/"}), "name") == "/"

    @pytest.mark.parametrize("attrs", [{}, {"name": ""}])
    def test_required_attribute_missing_or_empty(self, attrs: dict[str, str]) -> None:
        """Absent and empty values raise ``MissingOrEmptyAttribute``."""
        with pytest.raises(MissingOrEmptyAttribute, match="'name'") as info:
            required_attribute(FakeElement("dir", attrs), "name")
        assert info.value.attribute == "name"

    def test_required_int_non_numeric(self) -> None:
        """Non-numeric values raise ``InvalidNumericAttribute`` naming the field."""
        with pytest.raises(InvalidNumericAttribute, match="'w'") as info:
            required_int(FakeElement("spr", {"w": "wide"}), "w")
        assert info.value.attribute == "w"

    def test_required_int_unsigned_rejects_negative(self) -> None:
        """Negative values fail only when ``unsigned`` is requested."""
        element = FakeElement("spr", {"x": "-1"})

        assert required_int(element, "x") == -1
        with pytest.raises(InvalidNumericAttribute, match="must not be negative"):
            required_int(element, "x", unsigned=True)


class TestReadWholeFile:
    """Tests for ``read_whole_file``."""

    def test_reads_content(self, tmp_path: Path) -> None:
        """File content is returned as bytes."""
        path = tmp_path / "a.sprites"
        path.write_bytes(b"<img/>")

        assert read_whole_file(path) == b"<img/>"

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises ``IoFailure``."""
        with pytest.raises(IoFailure, match="Cannot open"):
            read_whole_file(tmp_path / "missing.sprites")

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file raises ``IoFailure``."""
        path = tmp_path / "empty.anim"
        path.write_bytes(b"")

        with pytest.raises(IoFailure, match="is empty"):
            read_whole_file(path)
