"""Composed reconciliation pipeline for generated file sets."""

from __future__ import annotations

from typing import Iterable, List

from ..logging import get_logger
from ..models import FileRecord
from .dedupe import RecordLike, dedupe_records
from .filetypes import normalize_record
from .html import complete_html_record, is_html_record
from .images import fix_image_urls
from .ordering import sort_by_priority

_LOGGER = get_logger("pipeline")


def normalize_and_reconcile(
    records: Iterable[RecordLike],
    *,
    fix_images: bool = True,
    allow_image: bool = False,
) -> List[FileRecord]:
    """Run dedupe, type normalization, HTML completion, image fixing and ordering.

    ``allow_image`` keeps IMAGE as a type; by default it is stored as OTHER.
    """
    incoming = list(records)
    unique = dedupe_records(incoming)

    reconciled: List[FileRecord] = []
    for record in unique:
        record = normalize_record(record, allow_image=allow_image)
        if is_html_record(record):
            record = complete_html_record(record)
            if fix_images:
                fixed = fix_image_urls(record.content)
                if fixed != record.content:
                    record = record.with_content(fixed)
        reconciled.append(record)

    ordered = sort_by_priority(reconciled)
    _LOGGER.debug(
        "Reconciled %d incoming record(s) into %d file(s)", len(incoming), len(ordered)
    )
    return ordered


__all__ = ["normalize_and_reconcile"]
