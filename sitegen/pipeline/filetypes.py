"""Canonical file type resolution."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, FrozenSet, Optional, Union

from ..logging import get_logger
from ..models import FileRecord, FileType

_LOGGER = get_logger("pipeline.types")

EXTENSION_TYPES: Dict[str, FileType] = {
    "html": FileType.HTML,
    "htm": FileType.HTML,
    "css": FileType.CSS,
    "js": FileType.JAVASCRIPT,
    "jsx": FileType.JAVASCRIPT,
    "ts": FileType.TYPESCRIPT,
    "tsx": FileType.TYPESCRIPT,
    "json": FileType.JSON,
    "md": FileType.MARKDOWN,
    "markdown": FileType.MARKDOWN,
    "png": FileType.IMAGE,
    "jpg": FileType.IMAGE,
    "jpeg": FileType.IMAGE,
    "gif": FileType.IMAGE,
    "svg": FileType.IMAGE,
    "txt": FileType.TEXT,
}

# The persisted file schema has no IMAGE variant.
STORAGE_TYPES: FrozenSet[FileType] = frozenset(
    member for member in FileType if member is not FileType.IMAGE
)

_CANONICAL_NAMES: Dict[str, FileType] = {member.value.lower(): member for member in FileType}


def file_type_from_path(path: str) -> FileType:
    """Classify a path by its extension, defaulting to TEXT."""
    name = path.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return FileType.TEXT
    extension = name.rsplit(".", 1)[-1].lower()
    return EXTENSION_TYPES.get(extension, FileType.TEXT)


def normalize_type(
    hint: Union[FileType, str, None], path: Optional[str] = None
) -> FileType:
    """Resolve a free-form type hint (or a path) to a canonical :class:`FileType`."""
    if isinstance(hint, FileType):
        return hint
    if hint:
        cleaned = hint.strip().lower()
        canonical = _CANONICAL_NAMES.get(cleaned)
        if canonical is not None:
            return canonical
        if cleaned in EXTENSION_TYPES:
            return EXTENSION_TYPES[cleaned]
        if "." in cleaned:
            return file_type_from_path(cleaned)
    if path:
        return file_type_from_path(path)
    return FileType.TEXT


def to_storage_type(
    file_type: FileType, supported: FrozenSet[FileType] = STORAGE_TYPES
) -> FileType:
    """Map a canonical type onto the destination schema.

    Types the schema does not know (IMAGE for the project store) become OTHER.
    """
    if file_type in supported:
        return file_type
    _LOGGER.debug("Remapping file type %s to OTHER for storage", file_type.value)
    return FileType.OTHER


def normalize_record(record: FileRecord, *, allow_image: bool = False) -> FileRecord:
    """Return a copy of ``record`` whose type is canonical."""
    file_type = normalize_type(record.type, record.path)
    if not allow_image:
        file_type = to_storage_type(file_type)
    if record.type is file_type:
        return record
    return replace(record, type=file_type)


__all__ = [
    "EXTENSION_TYPES",
    "STORAGE_TYPES",
    "file_type_from_path",
    "normalize_record",
    "normalize_type",
    "to_storage_type",
]
