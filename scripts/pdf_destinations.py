from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError
from pypdf.generic import IndirectObject

from pdf_document import deref, object_key, page_index, pdf_text
from pdf_logging import get_logger

logger = get_logger(__name__)


class DestinationKind(enum.Enum):
    PAGE = "page"
    NAMED = "named"


@dataclass(frozen=True)
class Destination:
    """Either a direct page target or a name to look up.

    A PAGE destination carries a page object identity, a raw zero-based
    page number, or both; the page object wins when both are present.
    """

    kind: DestinationKind
    page_ref: Optional[tuple] = None
    page_number: Optional[int] = None
    name: Optional[str] = None

    @classmethod
    def page(cls, page_ref: Optional[tuple] = None, page_number: Optional[int] = None) -> "Destination":
        return cls(DestinationKind.PAGE, page_ref=page_ref, page_number=page_number)

    @classmethod
    def named(cls, name: str) -> "Destination":
        return cls(DestinationKind.NAMED, name=name)


def page_target(target: Any) -> Optional[Destination]:
    # first element of an explicit destination array
    if isinstance(target, IndirectObject):
        return Destination.page(page_ref=object_key(target))
    if isinstance(target, int) and not isinstance(target, bool):
        return Destination.page(page_number=int(target))
    return None


def read_destination(value: Any) -> Optional[Destination]:
    """Convert a raw /Dest or /D value into a Destination, or None."""
    value = deref(value)
    if value is None:
        return None

    if isinstance(value, (str, bytes)):
        name = pdf_text(value)
        return Destination.named(name) if name else None

    if isinstance(value, list):
        if not value:
            return None
        return page_target(value[0])

    if hasattr(value, "get") and "/D" in value:
        return read_destination(value.get("/D"))

    return None


def read_target(node: Any) -> Optional[Destination]:
    dest = node.get("/Dest")
    if deref(dest) is not None:
        return read_destination(dest)

    action = deref(node.get("/A"))
    if action is None or not hasattr(action, "get"):
        return None
    kind = deref(action.get("/S"))
    if kind != "/GoTo":
        logger.debug("action %s is not a GoTo action", kind)
        return None
    return read_destination(action.get("/D"))


class DestinationResolver:
    """Maps outline items of one open document to one-based page numbers."""

    def __init__(self, reader: PdfReader) -> None:
        self.reader = reader
        self._pages = page_index(reader)
        try:
            self._named = reader.named_destinations
        except PyPdfError as e:
            logger.warning("could not read named destinations: %s", e)
            self._named = {}

    def resolve(self, node: Any, title: str = "", level: int = 0) -> Optional[int]:
        dest = read_target(node)
        if dest is None:
            logger.warning("bookmark '%s' at level %d has no page destination", title, level)
            return None

        if dest.kind is DestinationKind.NAMED:
            resolved = self._lookup(dest.name)
            if resolved is None:
                logger.warning(
                    "named destination '%s' for bookmark '%s' could not be resolved", dest.name, title
                )
                return None
            dest = resolved

        if dest.kind is DestinationKind.PAGE:
            page_number = self._page_number(dest)
            if page_number is None:
                logger.warning("bookmark '%s' at level %d points at no known page", title, level)
            else:
                logger.debug("bookmark '%s' -> page %d", title, page_number)
            return page_number

        logger.warning("unsupported destination kind %s for bookmark '%s'", dest.kind, title)
        return None

    def _lookup(self, name: str) -> Optional[Destination]:
        # name-tree keys are plain strings, legacy /Dests keys keep their slash
        other = name[1:] if name.startswith("/") else "/" + name
        found = self._named.get(name)
        if found is None:
            found = self._named.get(other)
        if found is None:
            return None
        return page_target(found.page)

    def _page_number(self, dest: Destination) -> Optional[int]:
        if dest.page_ref is not None:
            index = self._pages.get(dest.page_ref)
            return None if index is None else index + 1
        if dest.page_number is not None and dest.page_number >= 0:
            return dest.page_number + 1
        return None
