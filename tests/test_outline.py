"""Tests for outline flattening."""

from __future__ import annotations

import pytest
from pypdf.generic import NameObject, TextStringObject

from pdf_errors import InvalidRequest, UnreadableDocument
from pdf_outline import UNTITLED, BookmarkRecord, extract_outline


def test_extract_outline_is_preorder(outline_pdf) -> None:
    """Children come right after their parent and before the parent's next sibling."""

    b = outline_pdf(12)
    one = b.item("1", 0)
    one_one = b.item("1.1", 1, parent=one)
    b.item("1.1.1", 2, parent=one_one)
    b.item("1.2", 3, parent=one)
    two = b.item("2", 5)
    b.item("2.1", 6, parent=two)
    b.item("3", 9)

    records = extract_outline(b.to_bytes())

    assert [(r.title, r.level) for r in records] == [
        ("1", 0),
        ("1.1", 1),
        ("1.1.1", 2),
        ("1.2", 1),
        ("2", 0),
        ("2.1", 1),
        ("3", 0),
    ]
    assert [r.page_number for r in records] == [1, 2, 3, 4, 6, 7, 10]


def test_unresolved_bookmarks_are_kept(outline_pdf) -> None:
    """An unresolvable item is recorded with no page; its children and siblings still resolve."""

    b = outline_pdf(5)
    broken = b.item("Broken")
    b.set_key(broken, "/Dest", TextStringObject("missing"))
    b.item("Child", 1, parent=broken)
    b.item("Sibling", 3)

    records = extract_outline(b.to_bytes())

    assert records == [
        BookmarkRecord("Broken", None, 0),
        BookmarkRecord("Child", 2, 1),
        BookmarkRecord("Sibling", 4, 0),
    ]
    assert not records[0].resolved
    assert records[0].to_dict() == {"title": "Broken", "page_number": None, "level": 0}


def test_blank_titles_get_placeholder(outline_pdf) -> None:
    b = outline_pdf(2)
    b.item("   ", 1)

    records = extract_outline(b.to_bytes())

    assert records == [BookmarkRecord(UNTITLED, 2, 0)]


def test_no_outline_yields_empty_list(plain_pdf) -> None:
    assert extract_outline(plain_pdf) == []


def test_extract_outline_is_repeatable(chapters_pdf) -> None:
    assert extract_outline(chapters_pdf) == extract_outline(chapters_pdf)


def test_cyclic_sibling_chain_terminates(outline_pdf, caplog) -> None:
    b = outline_pdf(3)
    first = b.item("A", 0)
    b.item("B", 1)
    last = b.item("C", 2)
    b.set_key(last, "/Next", first)

    records = extract_outline(b.to_bytes())

    assert [r.title for r in records] == ["A", "B", "C"]
    assert "cyclic" in caplog.text


def test_deep_outline_levels(outline_pdf) -> None:
    b = outline_pdf(1)
    parent = None
    for depth in range(60):
        parent = b.item(f"level {depth}", 0, parent=parent)

    records = extract_outline(b.to_bytes())

    assert [r.level for r in records] == list(range(60))


def test_empty_input_is_invalid() -> None:
    with pytest.raises(InvalidRequest):
        extract_outline(b"")


def test_garbage_input_is_unreadable() -> None:
    with pytest.raises(UnreadableDocument):
        extract_outline(b"this is not a pdf at all")


def test_child_of_unresolved_parent_keeps_depth(outline_pdf) -> None:
    b = outline_pdf(4)
    parent = b.item("No target")
    child = b.item("Child", 2, parent=parent)
    b.set_key(child, "/Dest", NameObject("/undefined"))

    records = extract_outline(b.to_bytes())

    assert records == [BookmarkRecord("No target", None, 0), BookmarkRecord("Child", None, 1)]


def test_titles_keep_surrounding_whitespace(outline_pdf) -> None:
    b = outline_pdf(2)
    b.item("  Spaced Title  ", 1)

    records = extract_outline(b.to_bytes())

    assert records == [BookmarkRecord("  Spaced Title  ", 2, 0)]
