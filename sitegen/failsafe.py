"""Fallback documents used when generated content is missing or unusable."""

from __future__ import annotations

from html import escape
from typing import Sequence

PLACEHOLDER_TITLE = "Generated Website"

DEFAULT_HEAD_FIELDS = (
    '    <meta charset="UTF-8">\n'
    '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
    f"    <title>{PLACEHOLDER_TITLE}</title>"
)

DEFAULT_BODY_CONTENT = (
    "    <h1>Welcome to Your Website</h1>\n"
    "    <p>This is a generated website.</p>"
)

PLACEHOLDER_DOCUMENT = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{PLACEHOLDER_TITLE}</title>
    <style>
        body {{
            font-family: Arial, sans-serif;
            margin: 0;
            padding: 40px;
            background-color: #f5f5f5;
        }}
        .container {{
            max-width: 800px;
            margin: 0 auto;
            background: white;
            padding: 40px;
            border-radius: 8px;
            box-shadow: 0 2px 10px rgba(0, 0, 0, 0.1);
        }}
        h1 {{
            color: #333;
            text-align: center;
        }}
        p {{
            color: #666;
            line-height: 1.6;
            text-align: center;
        }}
    </style>
</head>
<body>
    <div class="container">
        <h1>Welcome to Your Generated Website</h1>
        <p>
            Your website is being prepared. This placeholder page will be
            replaced with the generated content.
        </p>
    </div>
</body>
</html>"""


def build_not_found_document(
    target: str | None, html_paths: Sequence[str], *, title: str | None = None
) -> str:
    """Return the preview page shown when no renderable file exists."""
    site_title = escape(title or PLACEHOLDER_TITLE)
    requested = escape(target) if target else "index.html"
    if html_paths:
        items = "\n".join(f"                <li>{escape(path)}</li>" for path in html_paths)
    else:
        items = "                <li>No HTML files found</li>"
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Page Not Found - {site_title}</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 0; padding: 40px; background: #f5f5f5; text-align: center; }}
        .error-container {{ background: white; padding: 40px; border-radius: 8px; max-width: 500px; margin: 0 auto; }}
        h1 {{ color: #e74c3c; }}
        .file-list {{ text-align: left; background: #f8f9fa; padding: 20px; border-radius: 4px; margin-top: 20px; }}
    </style>
</head>
<body>
    <div class="error-container">
        <h1>404 - Page Not Found</h1>
        <p>The requested page "{requested}" could not be found in this project.</p>
        <div class="file-list">
            <h3>Available HTML Files:</h3>
            <ul>
{items}
            </ul>
        </div>
    </div>
</body>
</html>"""


__all__ = [
    "DEFAULT_BODY_CONTENT",
    "DEFAULT_HEAD_FIELDS",
    "PLACEHOLDER_DOCUMENT",
    "PLACEHOLDER_TITLE",
    "build_not_found_document",
]
