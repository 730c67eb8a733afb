from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from pdf_errors import InvalidRequest
from pdf_logging import get_logger
from pdf_outline import BookmarkRecord

logger = get_logger(__name__)

UNSAFE_RE = re.compile(r"[^A-Za-z0-9.\-_ ]")


@dataclass(frozen=True)
class ChapterRange:
    """Pages start..end (zero-based, inclusive) exported as one chapter."""

    title: str
    start: int
    end: int
    ordinal: int
    source_title: str = ""

    @property
    def page_count(self) -> int:
        return self.end - self.start + 1

    @property
    def filename(self) -> str:
        return f"{self.ordinal:03d}-{self.title}.pdf"

    def to_dict(self) -> dict:
        return {
            "index": self.ordinal,
            "title": self.source_title or self.title,
            "start_page": self.start + 1,
            "end_page": self.end + 1,
            "file": self.filename,
        }


def sanitize_title(title: str, ordinal: int) -> str:
    cleaned = UNSAFE_RE.sub("", title).strip()
    return cleaned or f"Chapter_{ordinal}"


def partition_chapters(
    bookmarks: Iterable[BookmarkRecord], bookmark_level: int, total_pages: int
) -> list[ChapterRange]:
    """Split [0, total_pages) at the bookmarks found at one outline depth.

    bookmark_level is one-based: 1 selects the top-level items. Each chapter
    runs up to the page before the next selected bookmark; the last one runs
    to the end of the document. Bookmarks sharing a start page keep their
    outline order, so all but the last of them yield an empty range and are
    skipped.
    """
    if bookmark_level < 1:
        raise InvalidRequest(f"bookmark level must be >= 1, got {bookmark_level}")

    level = bookmark_level - 1
    starts = [(b.title, b.page_number - 1) for b in bookmarks if b.level == level and b.resolved]
    starts.sort(key=lambda s: s[1])
    if not starts:
        logger.info("no resolved bookmarks at level %d", bookmark_level)
        return []

    last_page = total_pages - 1
    chapters = []
    for i, (title, start) in enumerate(starts):
        end = starts[i + 1][1] - 1 if i + 1 < len(starts) else last_page
        end = min(end, last_page)
        if start < 0 or start > last_page or start > end:
            logger.warning(
                "skipping chapter '%s': invalid page range %d-%d (pages=%d)",
                title,
                start + 1,
                end + 1,
                total_pages,
            )
            continue
        ordinal = len(chapters) + 1
        chapters.append(
            ChapterRange(
                title=sanitize_title(title, ordinal),
                start=start,
                end=end,
                ordinal=ordinal,
                source_title=title,
            )
        )
    return chapters
