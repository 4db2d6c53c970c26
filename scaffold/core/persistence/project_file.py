"""
Project file persistence — the ProjectConfig a project was installed with.

Stored as JSON in ``.scaffold/project.json`` inside the generated
project, so ``scaffold project reconfigure`` can rebuild the environment
later without asking every question again. The file holds database and
service credentials and is written 0600.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from scaffold.core.config.loader import ConfigError
from scaffold.core.models.project import ProjectConfig
from scaffold.core.persistence.atomic import atomic_write_text

logger = logging.getLogger(__name__)

PROJECT_STATE_DIR = ".scaffold"
PROJECT_FILE = "project.json"


def project_file_path(project_dir: Path) -> Path:
    return project_dir / PROJECT_STATE_DIR / PROJECT_FILE


def save_project_config(config: ProjectConfig, project_dir: Path) -> Path:
    """Write ``config`` to the project's ``.scaffold/project.json`` (atomic)."""
    path = project_file_path(project_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(config.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
    atomic_write_text(path, content, mode=0o600)
    logger.debug("Project config saved to %s", path)
    return path


def load_project_config(project_dir: Path) -> ProjectConfig:
    """Read the config a project was installed with.

    Raises:
        ConfigError: No project file, or it is unreadable or invalid.
    """
    path = project_file_path(project_dir)
    if not path.is_file():
        raise ConfigError(
            f"{project_dir} was not created by this installer "
            f"(no {PROJECT_STATE_DIR}/{PROJECT_FILE})"
        )
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        config = ProjectConfig.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    logger.debug("Loaded project config for %s from %s", config.name, path)
    return config
