from __future__ import annotations

import contextlib
import io
from typing import Any, Iterator, Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError
from pypdf.generic import IndirectObject, NullObject

from pdf_errors import InvalidRequest, UnreadableDocument
from pdf_logging import get_logger

logger = get_logger(__name__)


@contextlib.contextmanager
def open_pdf(data: bytes) -> Iterator[PdfReader]:
    """Load a document from bytes and close it on every exit path."""
    if not data:
        raise InvalidRequest("input document is empty")

    reader = None
    try:
        reader = PdfReader(io.BytesIO(data))
        # force the page tree to load so a broken file fails here
        n_pages = len(reader.pages)
    except (PyPdfError, OSError, ValueError) as e:
        if reader is not None:
            reader.close()
        raise UnreadableDocument(f"failed to read pdf: {e}") from e

    logger.debug("opened pdf with %d pages", n_pages)
    try:
        yield reader
    finally:
        reader.close()


def deref(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, IndirectObject):
        value = value.get_object()
    if value is None or isinstance(value, NullObject):
        return None
    return value


def object_key(value: Any) -> tuple:
    if isinstance(value, IndirectObject):
        return ("ref", value.idnum, value.generation)
    return ("direct", id(value))


def page_index(reader: PdfReader) -> dict[tuple, int]:
    index = {}
    for i, page in enumerate(reader.pages):
        ref = page.indirect_reference
        if ref is not None:
            index.setdefault(object_key(ref), i)
    return index


def outline_first_node(reader: PdfReader) -> Optional[Any]:
    """Raw reference to the first top-level outline item, or None."""
    outlines = deref(reader.root_object.get("/Outlines"))
    if outlines is None or not hasattr(outlines, "get"):
        return None
    first = outlines.get("/First")
    if deref(first) is None:
        return None
    return first


def pdf_text(value: Any) -> str:
    value = deref(value)
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return str(value)
