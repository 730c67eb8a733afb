class ChapterSplitError(Exception):
    kind = "error"


class InvalidRequest(ChapterSplitError):
    kind = "invalid_request"


class UnreadableDocument(ChapterSplitError):
    kind = "unreadable_document"


def error_payload(exc: Exception) -> dict:
    kind = getattr(exc, "kind", "internal_error")
    return {"ok": False, "error": str(exc), "error_kind": kind}
