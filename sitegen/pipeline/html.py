"""Structural completion of generated HTML documents.

Generated pages frequently arrive truncated or as bare fragments. The
completer inspects four structural predicates with plain pattern matching and
inserts whatever scaffolding is missing at fixed anchor points: after the
doctype, after the ``<html>`` opening tag and after ``</head>``. Existing
markup is never removed or reordered, and malformed input never raises.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Pattern

from ..failsafe import DEFAULT_BODY_CONTENT, DEFAULT_HEAD_FIELDS, PLACEHOLDER_DOCUMENT
from ..logging import get_logger
from ..models import FileRecord, FileType

MIN_CONTENT_LENGTH = 50
COMPLETE_MIN_LENGTH = 200

_LOGGER = get_logger("pipeline.html")

_DOCTYPE = re.compile(r"<!doctype[^>]*>", re.IGNORECASE)
_OPEN_TAGS: Dict[str, Pattern[str]] = {
    tag: re.compile(rf"<{tag}(?:\s[^>]*)?>", re.IGNORECASE) for tag in ("html", "head", "body")
}
_CLOSE_TAGS: Dict[str, Pattern[str]] = {
    tag: re.compile(rf"</{tag}\s*>", re.IGNORECASE) for tag in ("html", "head", "body")
}


@dataclass(frozen=True)
class HtmlStructure:
    """Result of evaluating the structural predicates on a document."""

    has_doctype: bool
    has_html: bool
    has_head: bool
    has_body: bool
    length: int

    @property
    def is_complete(self) -> bool:
        return self.has_doctype and self.has_html and self.has_head and self.has_body


def inspect_html(content: Optional[str]) -> HtmlStructure:
    """Evaluate the doctype/html/head/body predicates on ``content``."""
    text = (content or "").strip()
    return HtmlStructure(
        has_doctype=text.lower().startswith("<!doctype"),
        has_html=_has_pair(text, "html"),
        has_head=_has_pair(text, "head"),
        has_body=_has_pair(text, "body"),
        length=len(text),
    )


def complete_html(content: Optional[str], path: Optional[str] = None) -> str:
    """Return ``content`` as a structurally complete HTML document."""
    label = path or "<inline>"
    text = (content or "").strip()
    if len(text) < MIN_CONTENT_LENGTH:
        _LOGGER.debug("HTML for %s is trivial (%d chars); using placeholder", label, len(text))
        return PLACEHOLDER_DOCUMENT

    structure = inspect_html(text)
    if structure.is_complete and structure.length > COMPLETE_MIN_LENGTH:
        return content  # type: ignore[return-value]

    _LOGGER.debug(
        "HTML for %s needs completion (doctype=%s html=%s head=%s body=%s length=%d)",
        label,
        structure.has_doctype,
        structure.has_html,
        structure.has_head,
        structure.has_body,
        structure.length,
    )
    text = _ensure_doctype(text)
    text = _ensure_html(text)
    text = _ensure_head(text)
    text = _ensure_body(text)
    text = _ensure_closing_tags(text)

    if not inspect_html(text).is_complete:  # pragma: no cover
        _LOGGER.warning("HTML for %s is still incomplete after repair", label)
    return text


def is_html_record(record: FileRecord) -> bool:
    if record.type is FileType.HTML:
        return True
    if isinstance(record.type, str) and record.type.strip().lower() == "html":
        return True
    lowered = record.path.lower()
    return lowered.endswith(".html") or lowered.endswith(".htm")


def complete_html_record(record: FileRecord) -> FileRecord:
    """Complete ``record`` when it holds HTML; other records pass through."""
    if not is_html_record(record):
        return record
    completed = complete_html(record.content, record.path)
    if completed == record.content:
        return record
    return record.with_content(completed)


# ----------------------------------------------------------------------
# Repair steps


def _has_pair(text: str, tag: str) -> bool:
    return bool(_OPEN_TAGS[tag].search(text)) and bool(_CLOSE_TAGS[tag].search(text))


def _insert(text: str, index: int, fragment: str) -> str:
    return f"{text[:index]}{fragment}{text[index:]}"


def _ensure_doctype(text: str) -> str:
    if _DOCTYPE.match(text):
        return text
    return "<!DOCTYPE html>\n" + text


def _ensure_html(text: str) -> str:
    if not _OPEN_TAGS["html"].search(text):
        doctype = _DOCTYPE.match(text)
        if doctype:
            text = _insert(text, doctype.end(), '\n<html lang="en">')
    if not _CLOSE_TAGS["html"].search(text):
        text += "\n</html>"
    return text


def _ensure_head(text: str) -> str:
    head_open = _OPEN_TAGS["head"].search(text)
    if head_open is None:
        html_open = _OPEN_TAGS["html"].search(text)
        if html_open is None:
            return text
        block = f"\n<head>\n{DEFAULT_HEAD_FIELDS}\n"
        if not _CLOSE_TAGS["head"].search(text):
            block += "</head>"
        return _insert(text, html_open.end(), block)

    if not _CLOSE_TAGS["head"].search(text):
        body_open = _OPEN_TAGS["body"].search(text, head_open.end())
        if body_open:
            return _insert(text, body_open.start(), "</head>\n")
        return _insert(text, head_open.end(), "\n</head>")
    return text


def _ensure_body(text: str) -> str:
    if not _OPEN_TAGS["body"].search(text):
        head_close = _CLOSE_TAGS["head"].search(text)
        if head_close:
            text = _insert(text, head_close.end(), f"\n<body>\n{DEFAULT_BODY_CONTENT}\n")
    if _OPEN_TAGS["body"].search(text) and not _CLOSE_TAGS["body"].search(text):
        text = _insert_before_html_close(text, "</body>\n")
    return text


def _ensure_closing_tags(text: str) -> str:
    if not _CLOSE_TAGS["html"].search(text):
        text += "\n</html>"
    head_open = _OPEN_TAGS["head"].search(text)
    if head_open and not _CLOSE_TAGS["head"].search(text):
        text = _insert(text, head_open.end(), "\n</head>")
    if not _OPEN_TAGS["body"].search(text):
        text = _insert_before_html_close(text, "<body>\n")
    if not _CLOSE_TAGS["body"].search(text):
        text = _insert_before_html_close(text, "</body>\n")
    return text


def _insert_before_html_close(text: str, fragment: str) -> str:
    closings = list(_CLOSE_TAGS["html"].finditer(text))
    if not closings:
        return f"{text}\n{fragment.rstrip()}"
    return _insert(text, closings[-1].start(), fragment)


__all__ = [
    "COMPLETE_MIN_LENGTH",
    "HtmlStructure",
    "MIN_CONTENT_LENGTH",
    "complete_html",
    "complete_html_record",
    "inspect_html",
    "is_html_record",
]
