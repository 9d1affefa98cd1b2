"""Deployment-ready archives of a project's files."""

from __future__ import annotations

import io
import json
import re
import zipfile
from datetime import UTC, datetime
from typing import Dict, Optional

from .deploy.vercel import sanitize_project_name
from .logging import get_logger
from .models import Project
from .pipeline.ordering import sort_by_priority, sort_paths

_LOGGER = get_logger("export")

_ARCHIVE_UNSAFE = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


def archive_name(title: str) -> str:
    """File name offered for a project's zip download."""
    stem = _ARCHIVE_UNSAFE.sub("_", title).lower() or "project"
    return f"{stem}.zip"


def archive_path(path: str) -> Optional[str]:
    """Relative POSIX member name for ``path``, or ``None`` when it escapes the root."""
    normalized = path.replace("\\", "/")
    if normalized.startswith("/") or _DRIVE_PREFIX.match(normalized):
        return None
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if not parts or ".." in parts:
        return None
    return "/".join(parts)


def build_export_files(
    project: Project, *, now: Optional[datetime] = None
) -> Dict[str, str]:
    """Project files in deployment order plus the synthesized support files.

    Paths that would land outside the archive root (absolute, drive-qualified
    or containing ``..``) are skipped.
    """
    files: Dict[str, str] = {}
    for record in sort_by_priority(project.files):
        path = archive_path(record.path)
        if path is None:
            _LOGGER.warning("Skipping unsafe export path %r in project %s", record.path, project.id)
            continue
        files.setdefault(path, record.content)
    synthesized = {
        "README.md": _readme(project, now or datetime.now(UTC)),
        "deploy.sh": _deploy_script(project.title),
        "package.json": _package_json(project),
    }
    for path, content in synthesized.items():
        # Generated files always win over the scaffolding.
        files.setdefault(path, content)
    return files


def export_zip(project: Project, *, now: Optional[datetime] = None) -> bytes:
    files = build_export_files(project, now=now)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path, content in files.items():
            info = zipfile.ZipInfo(path)
            info.compress_type = zipfile.ZIP_DEFLATED
            if path == "deploy.sh":
                info.external_attr = 0o755 << 16
            else:
                info.external_attr = 0o644 << 16
            archive.writestr(info, content)
    _LOGGER.info("Exported %d file(s) for project %s", len(files), project.id)
    return buffer.getvalue()


def _readme(project: Project, now: datetime) -> str:
    exported = (archive_path(record.path) for record in project.files)
    file_lines = "\n".join(f"- {path}" for path in sort_paths(p for p in exported if p))
    return f"""# {project.title}

{project.description or "Generated with sitegen"}

## Original Prompt

{project.prompt}

## Generated Files

{file_lines or "- (none)"}

## Deployment Instructions

This is a static website and can be served from any static host.

### Vercel CLI

1. Install the Vercel CLI: `npm i -g vercel`
2. Run `./deploy.sh` (or `vercel --prod`) from this folder
3. Follow the prompts and open the URL it prints

### Vercel Dashboard

1. Go to https://vercel.com and sign in
2. Click "New Project" and import this folder
3. Deploy

## Project Details

- Type: Static Website
- Framework: Static HTML/CSS/JS

Generated on {now.strftime("%d %b %Y")}
"""


def _deploy_script(title: str) -> str:
    return f"""#!/bin/bash
# Vercel deployment script for {title}
set -e

echo "Starting Vercel deployment..."

if ! command -v vercel &> /dev/null; then
    echo "Installing Vercel CLI..."
    npm install -g vercel
fi

vercel --prod

echo "Deployment completed. Check the output above for your live URL."
"""


def _package_json(project: Project) -> str:
    payload = {
        "name": sanitize_project_name(project.title),
        "version": "1.0.0",
        "private": True,
        "description": project.description or project.title,
        "scripts": {
            "start": "npx serve .",
            "deploy": "vercel --prod",
        },
    }
    return json.dumps(payload, indent=2) + "\n"


__all__ = ["archive_name", "archive_path", "build_export_files", "export_zip"]
