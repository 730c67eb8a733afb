#!/usr/bin/env python3
from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass
from typing import Any, Optional

try:
    from pypdf import PdfReader

    from pdf_config import OutlineRequest, RunConfig, parse_model, read_input
    from pdf_destinations import DestinationResolver
    from pdf_document import deref, object_key, open_pdf, outline_first_node, pdf_text
    from pdf_errors import ChapterSplitError, InvalidRequest, error_payload
    from pdf_logging import configure_logging, get_logger
except Exception as e:
    print(json.dumps({"ok": False, "error": f"missing dependency import: {e}", "error_kind": "internal_error"}))
    sys.exit(0)

logger = get_logger(__name__)

UNTITLED = "[Untitled Bookmark]"


@dataclass(frozen=True)
class BookmarkRecord:
    title: str
    page_number: Optional[int]  # one-based; None when unresolved
    level: int  # 0 for top-level items

    @property
    def resolved(self) -> bool:
        return self.page_number is not None

    def to_dict(self) -> dict:
        return asdict(self)


def flatten_outline(first: Any, resolver: DestinationResolver) -> list[BookmarkRecord]:
    """Pre-order walk of the outline starting at the first top-level item.

    Every visited item is recorded, including those whose destination
    cannot be resolved. An item reached a second time (cyclic /First or
    /Next links) is not visited again.
    """
    records = []
    seen = set()
    stack = [(first, 0)]
    while stack:
        ref, level = stack.pop()
        node = deref(ref)
        if node is None or not hasattr(node, "get"):
            continue
        key = object_key(ref)
        if key in seen:
            logger.warning("outline item revisited at level %d; skipping cyclic link", level)
            continue
        seen.add(key)

        title = pdf_text(node.get("/Title"))
        if not title.strip():
            logger.warning("found an untitled bookmark at outline level %d", level)
            title = UNTITLED

        records.append(BookmarkRecord(title, resolver.resolve(node, title, level), level))

        # LIFO: the child subtree is popped before the next sibling
        if deref(node.get("/Next")) is not None:
            stack.append((node.get("/Next"), level))
        if deref(node.get("/First")) is not None:
            stack.append((node.get("/First"), level + 1))
    return records


def read_outline(reader: PdfReader) -> Optional[list[BookmarkRecord]]:
    first = outline_first_node(reader)
    if first is None:
        return None
    return flatten_outline(first, DestinationResolver(reader))


def extract_outline(data: bytes) -> list[BookmarkRecord]:
    with open_pdf(data) as reader:
        records = read_outline(reader)
    if records is None:
        logger.info("document has no outline")
        return []
    logger.info("extracted %d bookmarks", len(records))
    return records


def outline(req: dict) -> dict:
    request = parse_model(OutlineRequest, req)
    data = read_input(request.input_pdf)
    with open_pdf(data) as reader:
        page_count = len(reader.pages)
        records = read_outline(reader) or []
    return {
        "ok": True,
        "page_count": page_count,
        "bookmarks": [r.to_dict() for r in records],
    }


def main() -> None:
    try:
        payload = json.loads(sys.stdin.read().strip() or "{}")
    except json.JSONDecodeError as e:
        print(json.dumps(error_payload(InvalidRequest(f"malformed request: {e}"))))
        return

    cmd = payload.get("cmd", "outline")
    if cmd != "outline":
        print(json.dumps(error_payload(InvalidRequest(f"unknown cmd: {cmd}"))))
        return

    try:
        cfg = parse_model(RunConfig, payload.get("cfg"))
        configure_logging(cfg.log_level)
        out = outline(payload.get("req", {}))
    except ChapterSplitError as e:
        logger.error("%s", e)
        out = error_payload(e)
    except Exception as e:
        logger.exception("outline extraction failed")
        out = error_payload(e)
    print(json.dumps(out))


if __name__ == "__main__":
    main()
