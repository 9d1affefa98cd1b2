"""Tests for sitegen.export."""

from __future__ import annotations

import io
import json
import zipfile
from datetime import UTC, datetime

from sitegen.export import archive_name, archive_path, build_export_files, export_zip
from sitegen.models import FileRecord, FileType, Project

NOW = datetime(2024, 5, 17, 9, 30, tzinfo=UTC)


def _project(**overrides) -> Project:
    defaults = dict(
        id="p1",
        title="Lisbon Bakery",
        prompt="A bakery website",
        description="Warm, rustic bakery site",
        files=[
            FileRecord("style.css", "body{}", FileType.CSS),
            FileRecord("index.html", "<!DOCTYPE html><html></html>", FileType.HTML),
            FileRecord("app.js", "console.log(1)", FileType.JAVASCRIPT),
        ],
    )
    defaults.update(overrides)
    return Project(**defaults)


def test_archive_name_sanitizes_title() -> None:
    assert archive_name("Lisbon Bakery & Café!") == "lisbon_bakery___caf__.zip"
    assert archive_name("") == "project.zip"


def test_build_export_files_orders_and_synthesizes() -> None:
    files = build_export_files(_project(), now=NOW)

    assert list(files)[:3] == ["index.html", "style.css", "app.js"]
    assert {"README.md", "deploy.sh", "package.json"} <= set(files)

    readme = files["README.md"]
    assert readme.startswith("# Lisbon Bakery")
    assert "Warm, rustic bakery site" in readme
    assert "## Original Prompt\n\nA bakery website" in readme
    assert "- index.html\n- style.css\n- app.js" in readme
    assert "Generated on 17 May 2024" in readme

    assert files["deploy.sh"].startswith("#!/bin/bash")
    assert "vercel --prod" in files["deploy.sh"]

    package = json.loads(files["package.json"])
    assert package["name"] == "lisbon-bakery"
    assert package["private"] is True


def test_existing_files_are_not_overwritten() -> None:
    project = _project(
        files=[
            FileRecord("index.html", "<p>x</p>", FileType.HTML),
            FileRecord("README.md", "# Mine", FileType.MARKDOWN),
            FileRecord("package.json", '{"name": "mine"}', FileType.JSON),
        ]
    )

    files = build_export_files(project, now=NOW)

    assert files["README.md"] == "# Mine"
    assert files["package.json"] == '{"name": "mine"}'
    assert "deploy.sh" in files


def test_export_zip_contains_every_file() -> None:
    payload = export_zip(_project(), now=NOW)

    with zipfile.ZipFile(io.BytesIO(payload)) as archive:
        names = archive.namelist()
        assert names[:3] == ["index.html", "style.css", "app.js"]
        assert archive.read("style.css").decode("utf-8") == "body{}"
        assert (archive.getinfo("deploy.sh").external_attr >> 16) & 0o111


def test_archive_path_rejects_escaping_paths() -> None:
    assert archive_path("css/./style.css") == "css/style.css"
    assert archive_path("pages\\about.html") == "pages/about.html"
    for unsafe in ("../x.html", "/etc/x", "a/../../b.html", "C:\\site\\index.html", "", "./"):
        assert archive_path(unsafe) is None


def test_export_skips_paths_outside_the_archive_root() -> None:
    project = _project(
        files=[
            FileRecord("index.html", "<p>ok</p>", FileType.HTML),
            FileRecord("../x.html", "<p>escape</p>", FileType.HTML),
            FileRecord("/etc/x", "root", FileType.TEXT),
        ]
    )

    files = build_export_files(project, now=NOW)
    payload = export_zip(project, now=NOW)

    assert "../x.html" not in files
    assert "/etc/x" not in files
    assert "../x.html" not in files["README.md"]
    with zipfile.ZipFile(io.BytesIO(payload)) as archive:
        for name in archive.namelist():
            assert not name.startswith("/")
            assert ".." not in name.split("/")
