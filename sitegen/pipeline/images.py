"""Rewrites broken local image references to remote placeholder images."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Pattern, Tuple

from ..logging import get_logger

_LOGGER = get_logger("pipeline.images")

_EXTENSIONS = r"\.(?:jpg|jpeg|png|gif)"

FALLBACK_IMAGE_URL = "https://picsum.photos/800/600?random=99"

BROKEN_IMAGE_PATTERN: Pattern[str] = re.compile(
    rf"assets/images/[^\"'\s]+{_EXTENSIONS}", re.IGNORECASE
)


@dataclass(frozen=True)
class ImageReplacement:
    """Maps one family of local asset names to a remote placeholder."""

    pattern: Pattern[str]
    replacement: str
    label: str


@dataclass(frozen=True)
class ImageFixStats:
    """Counts of broken references before and after a fix pass."""

    total_broken: int
    fixed: int
    broken: List[str]


def _entry(stem: str, url: str, label: str, *, numbered: bool = True) -> ImageReplacement:
    suffix = "[0-9]*" if numbered else ""
    pattern = re.compile(rf"assets/images/{stem}{suffix}{_EXTENSIONS}", re.IGNORECASE)
    return ImageReplacement(pattern=pattern, replacement=url, label=label)


_UNSPLASH = "https://images.unsplash.com/photo-{}?w=800&h=600&fit=crop"
_UNSPLASH_FACE = "https://images.unsplash.com/photo-{}?w=400&h=400&fit=crop&crop=face"

IMAGE_REPLACEMENTS: Tuple[ImageReplacement, ...] = (
    # food / restaurant
    _entry("chef", _UNSPLASH.format("1556909114-f6e7ad7d3136"), "chef", numbered=False),
    _entry("dish", _UNSPLASH.format("1565299624946-b28f40a0ca4b"), "dish"),
    _entry("food", _UNSPLASH.format("1567620905732-2d1ec7ab7445"), "food"),
    _entry("restaurant", _UNSPLASH.format("1583394838336-acd977736f90"), "restaurant"),
    # business
    _entry("business", _UNSPLASH.format("1560472354-b33ff0c44a43"), "business"),
    _entry("office", _UNSPLASH.format("1559136555-9303baea8ebd"), "office"),
    _entry("team", _UNSPLASH.format("1522071820081-009f0129c71c"), "team"),
    # tech
    _entry("tech", _UNSPLASH.format("1518709268805-4e9042af2176"), "technology"),
    _entry("computer", _UNSPLASH.format("1516321318423-f06f85e504b3"), "computer"),
    _entry("laptop", _UNSPLASH.format("1496181133206-80ce9b88a853"), "laptop"),
    # portfolio
    _entry("portfolio", _UNSPLASH.format("1460925895917-afdab827c52f"), "portfolio"),
    _entry("design", _UNSPLASH.format("1551288049-bebda4e38f71"), "design"),
    _entry("creative", _UNSPLASH.format("1558618047-3c8c76ca7d13"), "creative"),
    # generic
    _entry("placeholder", "https://picsum.photos/800/600?random=1", "placeholder"),
    _entry("image", "https://picsum.photos/800/600?random=2", "generic image"),
    _entry("photo", "https://picsum.photos/800/600?random=3", "photo"),
    # hero / banner
    _entry("hero", "https://picsum.photos/1200/600?random=4", "hero"),
    _entry("banner", "https://picsum.photos/1200/400?random=5", "banner"),
    # profile / avatar
    _entry("profile", _UNSPLASH_FACE.format("1472099645785-5658abf4ff4e"), "profile"),
    _entry("avatar", _UNSPLASH_FACE.format("1507003211169-0a1dd7228f2d"), "avatar"),
)


def fix_image_urls(html: str) -> str:
    """Replace local ``assets/images/...`` references with remote placeholders."""
    fixed = html
    for entry in IMAGE_REPLACEMENTS:
        fixed, count = entry.pattern.subn(entry.replacement, fixed)
        if count:
            _LOGGER.debug("Fixed %d %s image reference(s)", count, entry.label)

    # Replacement URLs never contain "assets/images/", so each pass strictly
    # reduces the number of remaining references.
    while True:
        fixed, count = BROKEN_IMAGE_PATTERN.subn(FALLBACK_IMAGE_URL, fixed)
        if not count:
            break
        _LOGGER.debug("Fixed %d generic local image reference(s)", count)
    return fixed


def find_broken_image_references(html: str) -> List[str]:
    return [match.group(0) for match in BROKEN_IMAGE_PATTERN.finditer(html)]


def image_fix_stats(original: str, fixed: str) -> ImageFixStats:
    broken = find_broken_image_references(original)
    remaining = find_broken_image_references(fixed)
    return ImageFixStats(
        total_broken=len(broken),
        fixed=len(broken) - len(remaining),
        broken=broken,
    )


__all__ = [
    "BROKEN_IMAGE_PATTERN",
    "FALLBACK_IMAGE_URL",
    "IMAGE_REPLACEMENTS",
    "ImageFixStats",
    "ImageReplacement",
    "find_broken_image_references",
    "fix_image_urls",
    "image_fix_stats",
]
