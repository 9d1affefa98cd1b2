from __future__ import annotations

from pathlib import Path

import pytest

from sitegen.config import SitegenConfig, load_config
from sitegen.stores.projects import ProjectStore
from tests._fixtures.site_builder import SiteBuilder


@pytest.fixture
def site_builder(tmp_path: Path) -> SiteBuilder:
    """Provide a reusable site builder rooted at the pytest tmp_path."""
    return SiteBuilder(tmp_path)


@pytest.fixture
def config(tmp_path: Path) -> SitegenConfig:
    """Defaults loaded from an empty directory, isolated from the caller's env."""
    return load_config(tmp_path, environ={})


@pytest.fixture
def store(tmp_path: Path) -> ProjectStore:
    return ProjectStore(tmp_path / "projects")
