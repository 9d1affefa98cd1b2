"""File reconciliation pipeline: dedupe, type, complete, fix images, order."""

from .dedupe import coerce_record, dedupe_records
from .filetypes import (
    EXTENSION_TYPES,
    STORAGE_TYPES,
    file_type_from_path,
    normalize_record,
    normalize_type,
    to_storage_type,
)
from .html import HtmlStructure, complete_html, complete_html_record, inspect_html, is_html_record
from .images import (
    BROKEN_IMAGE_PATTERN,
    IMAGE_REPLACEMENTS,
    ImageFixStats,
    ImageReplacement,
    find_broken_image_references,
    fix_image_urls,
    image_fix_stats,
)
from .ordering import file_priority, sort_by_priority, sort_paths
from .reconcile import normalize_and_reconcile

__all__ = [
    "BROKEN_IMAGE_PATTERN",
    "EXTENSION_TYPES",
    "HtmlStructure",
    "IMAGE_REPLACEMENTS",
    "ImageFixStats",
    "ImageReplacement",
    "STORAGE_TYPES",
    "coerce_record",
    "complete_html",
    "complete_html_record",
    "dedupe_records",
    "file_priority",
    "file_type_from_path",
    "find_broken_image_references",
    "fix_image_urls",
    "image_fix_stats",
    "inspect_html",
    "is_html_record",
    "normalize_and_reconcile",
    "normalize_record",
    "normalize_type",
    "sort_by_priority",
    "sort_paths",
    "to_storage_type",
]
