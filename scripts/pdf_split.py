#!/usr/bin/env python3
from __future__ import annotations

import io
import json
import sys
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

try:
    import pypdf
    from pypdf import PdfReader, PdfWriter

    from pdf_chapters import ChapterRange, partition_chapters
    from pdf_config import RunConfig, SplitRequest, parse_model, read_input
    from pdf_document import open_pdf
    from pdf_errors import ChapterSplitError, InvalidRequest, error_payload
    from pdf_logging import configure_logging, get_logger
    from pdf_outline import BookmarkRecord, read_outline
except Exception as e:
    print(json.dumps({"ok": False, "error": f"missing dependency import: {e}", "error_kind": "internal_error"}))
    sys.exit(0)

logger = get_logger(__name__)

NO_OUTLINE = "no_outline"
NO_BOOKMARKS_AT_LEVEL = "no_bookmarks_at_level"


@dataclass
class SplitPlan:
    page_count: int
    bookmarks: list[BookmarkRecord] = field(default_factory=list)
    chapters: list[ChapterRange] = field(default_factory=list)
    reason: Optional[str] = None


@dataclass
class SplitResult:
    archive_name: str
    archive: bytes
    chapters: list[ChapterRange] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not self.chapters


def export_chapter(reader: PdfReader, chapter: ChapterRange) -> bytes:
    n_pages = len(reader.pages)
    w = PdfWriter()
    try:
        for p in range(chapter.start, chapter.end + 1):
            if p < 0 or p >= n_pages:
                logger.warning(
                    "chapter '%s': page %d out of range (pages=%d); keeping %d pages",
                    chapter.title,
                    p + 1,
                    n_pages,
                    len(w.pages),
                )
                break
            w.add_page(reader.pages[p])

        buf = io.BytesIO()
        w.write(buf)
        return buf.getvalue()
    finally:
        w.close()


def package_archive(entries: Iterable[tuple[str, bytes]], compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=compression) as zf:
        for name, content in entries:
            zf.writestr(name, content)
            logger.debug("added %s (%d bytes)", name, len(content))
    return buf.getvalue()


def _plan(reader: PdfReader, bookmark_level: int) -> SplitPlan:
    n_pages = len(reader.pages)
    bookmarks = read_outline(reader)
    if bookmarks is None:
        logger.info("document has no outline")
        return SplitPlan(page_count=n_pages, reason=NO_OUTLINE)

    chapters = partition_chapters(bookmarks, bookmark_level, n_pages)
    reason = None if chapters else NO_BOOKMARKS_AT_LEVEL
    return SplitPlan(page_count=n_pages, bookmarks=bookmarks, chapters=chapters, reason=reason)


def plan_split(data: bytes, bookmark_level: int = 1) -> SplitPlan:
    """Compute the chapters a split would produce without exporting them."""
    if bookmark_level < 1:
        raise InvalidRequest(f"bookmark level must be >= 1, got {bookmark_level}")
    with open_pdf(data) as reader:
        return _plan(reader, bookmark_level)


def archive_name(stem: str, reason: Optional[str], bookmark_level: int) -> str:
    if reason == NO_OUTLINE:
        return f"{stem}_no_outline.zip"
    if reason == NO_BOOKMARKS_AT_LEVEL:
        return f"{stem}_no_bookmarks_at_level_{bookmark_level}.zip"
    return f"{stem}_chapters.zip"


def split_by_outline(
    data: bytes,
    bookmark_level: int = 1,
    include_metadata: bool = False,
    allow_duplicate_pages: bool = False,
    stem: str = "document",
    compression: int = zipfile.ZIP_DEFLATED,
) -> SplitResult:
    """Split a document at the outline entries of one depth.

    include_metadata and allow_duplicate_pages are accepted for
    compatibility and have no effect yet.
    """
    if bookmark_level < 1:
        raise InvalidRequest(f"bookmark level must be >= 1, got {bookmark_level}")
    if include_metadata or allow_duplicate_pages:
        logger.debug(
            "ignoring include_metadata=%s allow_duplicate_pages=%s", include_metadata, allow_duplicate_pages
        )

    with open_pdf(data) as reader:
        plan = _plan(reader, bookmark_level)
        # chapters are exported one at a time while the source is open
        archive = package_archive(
            ((c.filename, export_chapter(reader, c)) for c in plan.chapters),
            compression=compression,
        )

    logger.info("split into %d chapters at level %d", len(plan.chapters), bookmark_level)
    return SplitResult(
        archive_name=archive_name(stem, plan.reason, bookmark_level),
        archive=archive,
        chapters=plan.chapters,
        reason=plan.reason,
    )


def doctor() -> dict:
    return {
        "ok": True,
        "python_exe": sys.executable,
        "python_version": sys.version.split()[0],
        "pypdf_version": pypdf.__version__,
    }


def plan(req: dict) -> dict:
    request = parse_model(SplitRequest, req)
    result = plan_split(read_input(request.input_pdf), request.bookmark_level)
    return {
        "ok": True,
        "page_count": result.page_count,
        "reason": result.reason,
        "chapters": [c.to_dict() for c in result.chapters],
    }


def split(req: dict, cfg: RunConfig) -> dict:
    request = parse_model(SplitRequest, req)
    input_pdf = request.input_pdf
    data = read_input(input_pdf)

    result = split_by_outline(
        data,
        bookmark_level=request.bookmark_level,
        include_metadata=request.include_metadata,
        allow_duplicate_pages=request.allow_duplicate_pages,
        stem=input_pdf.stem,
        compression=cfg.zip_compression,
    )

    out_dir = Path(request.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / result.archive_name
    with out_path.open("wb") as f:
        f.write(result.archive)

    return {
        "ok": True,
        "archive": str(out_path),
        "reason": result.reason,
        "chapters": [c.to_dict() for c in result.chapters],
    }


def main() -> None:
    try:
        payload = json.loads(sys.stdin.read().strip() or "{}")
    except json.JSONDecodeError as e:
        print(json.dumps(error_payload(InvalidRequest(f"malformed request: {e}"))))
        return

    cmd = payload.get("cmd")
    if cmd == "doctor":
        print(json.dumps(doctor()))
        return
    if cmd not in ("plan", "split"):
        print(json.dumps(error_payload(InvalidRequest(f"unknown cmd: {cmd}"))))
        return

    try:
        cfg = parse_model(RunConfig, payload.get("cfg"))
        configure_logging(cfg.log_level)
        if cmd == "plan":
            out = plan(payload.get("req", {}))
        else:
            out = split(payload.get("req", {}), cfg)
    except ChapterSplitError as e:
        logger.error("%s", e)
        out = error_payload(e)
    except Exception as e:
        logger.exception("%s failed", cmd)
        out = error_payload(e)
    print(json.dumps(out))


if __name__ == "__main__":
    main()
