"""Deployment-priority ordering of project files."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Tuple, TypeVar

T = TypeVar("T")

_MAIN_CSS = ("main.css", "style.css", "styles.css")
_MAIN_JS = ("main.js", "script.js", "scripts.js")
_README = ("readme.md", "readme.txt")


def file_priority(path: str) -> int:
    """Return the priority bucket (1 = first) for ``path``."""
    lowered = path.lower()
    if lowered.endswith("index.html"):
        return 1
    if lowered.endswith("home.html"):
        return 2
    if lowered.endswith(".html"):
        return 3
    if lowered.endswith(_MAIN_CSS):
        return 4
    if lowered.endswith(".css"):
        return 5
    if lowered.endswith(_MAIN_JS):
        return 6
    if lowered.endswith(".js"):
        return 7
    if lowered.endswith("package.json"):
        return 8
    if lowered.endswith(_README):
        return 9
    return 10


def priority_key(path: str) -> Tuple[int, str, str]:
    # Case-insensitive tie-break, then original case to keep the order total.
    return (file_priority(path), path.lower(), path)


def sort_by_priority(records: Iterable[T]) -> List[T]:
    """Order records (or mappings with a ``path`` key) for display and export."""
    return sorted(records, key=lambda record: priority_key(_path_of(record)))


def sort_paths(paths: Iterable[str]) -> List[str]:
    return sorted(paths, key=priority_key)


def _path_of(record: Any) -> str:
    if isinstance(record, Mapping):
        value = record.get("path")
    else:
        value = getattr(record, "path", None)
    return value if isinstance(value, str) else ""


__all__ = ["file_priority", "priority_key", "sort_by_priority", "sort_paths"]
