"""Single-document previews of a project's generated files."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .failsafe import build_not_found_document
from .logging import get_logger
from .models import FileRecord, FileType
from .pipeline.filetypes import normalize_type
from .pipeline.images import fix_image_urls

_LOGGER = get_logger("preview")

_LOCAL_STYLESHEET = re.compile(
    r"<link\b[^>]*rel=[\"']stylesheet[\"'][^>]*href=[\"'](?!https?:|//)[^\"']*\.css[\"'][^>]*>\s*",
    re.IGNORECASE,
)
_LOCAL_SCRIPT = re.compile(
    r"<script\b[^>]*src=[\"'](?!https?:|//)[^\"']*\.js[\"'][^>]*>\s*</script>\s*",
    re.IGNORECASE,
)
_HEAD_CLOSE = re.compile(r"</head\s*>", re.IGNORECASE)
_BODY_OPEN = re.compile(r"<body\b[^>]*>", re.IGNORECASE)
_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)
_HTML_CLOSE = re.compile(r"</html\s*>", re.IGNORECASE)


@dataclass(frozen=True)
class CdnLibrary:
    """A front-end library recognised by markers and loaded from a CDN."""

    name: str
    markers: Tuple[str, ...]
    loaded: Tuple[str, ...]
    tags: Tuple[str, ...]


CDN_LIBRARIES: Tuple[CdnLibrary, ...] = (
    CdnLibrary(
        "bootstrap",
        ("data-bs-", "data-toggle", "navbar-expand"),
        ("bootstrap.min.css", "bootstrap.bundle"),
        (
            '<link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.2/dist/css/bootstrap.min.css">',
            '<script src="https://cdn.jsdelivr.net/npm/bootstrap@5.3.2/dist/js/bootstrap.bundle.min.js"></script>',
        ),
    ),
    CdnLibrary(
        "bootstrap-icons",
        ("bi bi-",),
        ("bootstrap-icons.css", "bootstrap-icons@"),
        ('<link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/bootstrap-icons@1.7.2/font/bootstrap-icons.css">',),
    ),
    CdnLibrary(
        "font-awesome",
        ("fa fa-", "fas fa-", "far fa-", "fab fa-"),
        ("font-awesome", "fontawesome"),
        ('<link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/font-awesome/6.0.0/css/all.min.css">',),
    ),
    CdnLibrary(
        "tailwind",
        ("tw-", "bg-blue-", "text-gray-"),
        ("tailwindcss",),
        ('<script src="https://cdn.tailwindcss.com"></script>',),
    ),
    CdnLibrary(
        "animate.css",
        ("animate__",),
        ("animate.min.css", "animate.css"),
        ('<link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/animate.css/4.1.1/animate.min.css">',),
    ),
    CdnLibrary(
        "aos",
        ("data-aos",),
        ("aos.js",),
        (
            '<link rel="stylesheet" href="https://unpkg.com/aos@2.3.1/dist/aos.css">',
            '<script src="https://unpkg.com/aos@2.3.1/dist/aos.js"></script>',
        ),
    ),
    CdnLibrary(
        "gsap",
        ("gsap.", "TweenMax", "TimelineMax"),
        ("gsap.min.js", "gsap.js"),
        ('<script src="https://cdnjs.cloudflare.com/ajax/libs/gsap/3.12.2/gsap.min.js"></script>',),
    ),
    CdnLibrary(
        "chart.js",
        ("new Chart(",),
        ("chart.js", "chart.min.js", "chart.umd"),
        ('<script src="https://cdn.jsdelivr.net/npm/chart.js"></script>',),
    ),
)


AOS_INIT = "if (window.AOS) { AOS.init(); }"


def select_preview_file(
    files: Sequence[FileRecord], target: Optional[str] = None
) -> Optional[FileRecord]:
    """Pick the file to render for ``target`` or the project's landing page."""
    html_files = [record for record in files if _type_of(record) is FileType.HTML]
    if target:
        lowered = target.lower()
        stem = re.sub(r"\.html$", "", lowered)
        for matches in (
            lambda record: record.path == target,
            lambda record: record.path.lower().endswith(lowered),
            lambda record: stem in record.path.lower(),
        ):
            found = next((record for record in html_files if matches(record)), None)
            if found is not None:
                return found
        _LOGGER.debug("No HTML file matched preview target %s", target)

    for suffix in ("index.html", "home.html", "index.js"):
        found = next((record for record in files if record.path.lower().endswith(suffix)), None)
        if found is not None:
            return found
    found = next((record for record in files if record.path.lower().endswith(".html")), None)
    if found is not None:
        return found
    return files[0] if files else None


def detect_libraries(content: str) -> List[CdnLibrary]:
    """Libraries whose markers appear in ``content`` but which it does not load yet."""
    return [
        library
        for library in CDN_LIBRARIES
        if any(marker in content for marker in library.markers)
        and not any(reference in content for reference in library.loaded)
    ]


def render_preview(
    files: Iterable[FileRecord],
    *,
    title: Optional[str] = None,
    target: Optional[str] = None,
) -> str:
    """Combine a page with every stylesheet and script into one HTML document."""
    records = list(files)
    page = select_preview_file(records, target)
    if page is None:
        html_paths = [record.path for record in records if _type_of(record) is FileType.HTML]
        return build_not_found_document(target, html_paths, title=title)

    document = fix_image_urls(page.content)
    css = "\n".join(record.content for record in records if _type_of(record) is FileType.CSS)
    js = "\n".join(
        record.content
        for record in records
        if _type_of(record) is FileType.JAVASCRIPT and record is not page
    )

    libraries = detect_libraries(document + "\n" + js)

    head_parts: List[str] = []
    for library in libraries:
        head_parts.extend(library.tags)
    if css:
        document = _LOCAL_STYLESHEET.sub("", document)
        head_parts.append(f"<style>\n{css}\n</style>")
    if head_parts:
        document = _inject_head(document, "\n".join(head_parts))

    if any(library.name == "aos" for library in libraries) and AOS_INIT not in js:
        js = f"{js}\n{AOS_INIT}" if js else AOS_INIT
    if js:
        document = _LOCAL_SCRIPT.sub("", document)
        document = _inject_script(document, f"<script>\n{js}\n</script>")

    _LOGGER.debug(
        "Rendered preview of %s with %d stylesheet byte(s), %d script byte(s), libraries: %s",
        page.path,
        len(css),
        len(js),
        ", ".join(library.name for library in libraries) or "none",
    )
    return document


def _inject_head(document: str, block: str) -> str:
    match = _HEAD_CLOSE.search(document)
    if match:
        return f"{document[: match.start()]}{block}\n{document[match.start():]}"
    body = _BODY_OPEN.search(document)
    if body:
        return f"{document[: body.start()]}{block}\n{document[body.start():]}"
    return f"{block}\n{document}"


def _inject_script(document: str, block: str) -> str:
    closes = list(_BODY_CLOSE.finditer(document))
    if closes:
        position = closes[-1].start()
        return f"{document[:position]}{block}\n{document[position:]}"
    body = _BODY_OPEN.search(document)
    if body:
        return f"{document[: body.end()]}\n{block}{document[body.end():]}"
    html_closes = list(_HTML_CLOSE.finditer(document))
    if html_closes:
        position = html_closes[-1].start()
        return f"{document[:position]}{block}\n{document[position:]}"
    return f"{document}\n{block}"


def _type_of(record: FileRecord) -> FileType:
    return normalize_type(record.type, record.path)


__all__ = [
    "AOS_INIT",
    "CDN_LIBRARIES",
    "CdnLibrary",
    "detect_libraries",
    "render_preview",
    "select_preview_file",
]
