"""Path-based deduplication of generated file records."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..logging import get_logger
from ..models import FileRecord

RecordLike = Union[FileRecord, Mapping[str, Any]]

_LOGGER = get_logger("pipeline.dedupe")


def coerce_record(item: RecordLike) -> Optional[FileRecord]:
    """Return a usable :class:`FileRecord` or ``None`` for malformed input."""
    if isinstance(item, FileRecord):
        if not isinstance(item.path, str) or not item.path.strip():
            return None
        if not isinstance(item.content, str):
            return None
        return item
    if isinstance(item, Mapping):
        return FileRecord.from_mapping(item)
    return None


def dedupe_records(records: Iterable[RecordLike]) -> List[FileRecord]:
    """Collapse records sharing a path, keeping the longest content.

    Equal lengths resolve to the record seen last. Output keeps the position
    at which each path first appeared.
    """
    unique: Dict[str, FileRecord] = {}
    seen = 0
    dropped = 0
    for item in records:
        seen += 1
        record = coerce_record(item)
        if record is None:
            dropped += 1
            continue
        existing = unique.get(record.path)
        if existing is None or len(record.content) >= len(existing.content):
            unique[record.path] = record

    if dropped:
        _LOGGER.debug("Dropped %d malformed file record(s)", dropped)
    if len(unique) < seen - dropped:
        _LOGGER.debug("Collapsed %d record(s) into %d unique path(s)", seen - dropped, len(unique))
    return list(unique.values())


__all__ = ["RecordLike", "coerce_record", "dedupe_records"]
