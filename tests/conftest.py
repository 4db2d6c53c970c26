"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from helpers import TemplateGitAdapter, make_template

from scaffold.adapters.mock import MockAdapter
from scaffold.adapters.registry import AdapterRegistry
from scaffold.core.config.loader import InstallerSettings


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A complete local template repository."""
    return make_template(tmp_path / "template")


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Directory projects are created in."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def docker_mock() -> MockAdapter:
    return MockAdapter(adapter_name="docker", default_output="")


@pytest.fixture
def git_adapter() -> TemplateGitAdapter:
    return TemplateGitAdapter()


@pytest.fixture
def registry(docker_mock: MockAdapter, git_adapter: TemplateGitAdapter) -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.register(docker_mock)
    reg.register(git_adapter)
    return reg


@pytest.fixture
def settings(template_dir: Path) -> InstallerSettings:
    return InstallerSettings(
        template_repo=str(template_dir),
        health_attempts=2,
        health_interval=0,
    )
