"""Shared fixtures: small PDFs with hand-built outlines."""

from __future__ import annotations

import io
from typing import Any, Optional

import pytest
from pypdf import PdfWriter
from pypdf.generic import IndirectObject, NameObject


class OutlineBuilder:
    """Blank-page document whose outline is assembled item by item."""

    def __init__(self, pages: int) -> None:
        self.writer = PdfWriter()
        for _ in range(pages):
            self.writer.add_blank_page(width=200, height=200)

    def item(self, title: str, page: Optional[int] = None, parent: Optional[IndirectObject] = None) -> IndirectObject:
        """Outline item with a GoTo action to a zero-based page (no target when page is None)."""
        return self.writer.add_outline_item(title, page, parent=parent)

    def set_key(self, item: IndirectObject, key: str, value: Any) -> None:
        item.get_object()[NameObject(key)] = value

    def page_ref(self, index: int) -> IndirectObject:
        return self.writer.pages[index].indirect_reference

    def named(self, name: str, page: int) -> None:
        self.writer.add_named_destination(name, page)

    def to_bytes(self) -> bytes:
        buf = io.BytesIO()
        self.writer.write(buf)
        return buf.getvalue()


@pytest.fixture
def outline_pdf() -> type[OutlineBuilder]:
    return OutlineBuilder


@pytest.fixture
def chapters_pdf() -> bytes:
    """10 pages; top-level Intro (p1), Part One (p3) with two sections, Part Two (p7)."""

    b = OutlineBuilder(10)
    b.item("Intro", 0)
    part_one = b.item("Part One", 2)
    b.item("Section 1.1", 2, parent=part_one)
    b.item("Section 1.2", 4, parent=part_one)
    b.item("Part Two", 6)
    return b.to_bytes()


@pytest.fixture
def plain_pdf() -> bytes:
    return OutlineBuilder(3).to_bytes()
