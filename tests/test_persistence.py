"""
Tests for atomic file writes and the stored project config.
"""

import stat
from unittest.mock import patch

import pytest

from scaffold.core.config.loader import ConfigError
from scaffold.core.models import (
    DatabaseConfig,
    DatabaseKind,
    FeatureDecision,
    FeatureMode,
    PortAssignment,
    ProjectConfig,
)
from scaffold.core.persistence.atomic import atomic_write_text
from scaffold.core.persistence.project_file import (
    load_project_config,
    project_file_path,
    save_project_config,
)


class TestAtomicWrite:
    def test_writes_and_replaces(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("old\n")
        atomic_write_text(path, "new\n")
        assert path.read_text() == "new\n"
        assert [p.name for p in tmp_path.iterdir()] == [".env"]

    def test_mode(self, tmp_path):
        path = atomic_write_text(tmp_path / ".env.dev.local", "A=1\n", mode=0o600)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_new_file_is_world_readable(self, tmp_path):
        path = atomic_write_text(tmp_path / "PROJECT_INFO.md", "# app\n")
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_existing_mode_kept(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("old\n")
        path.chmod(0o640)
        atomic_write_text(path, "new\n")
        assert stat.S_IMODE(path.stat().st_mode) == 0o640

    def test_failure_leaves_no_temp_file(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("old\n")
        with patch("os.fsync", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                atomic_write_text(path, "new\n")
        assert path.read_text() == "old\n"
        assert [p.name for p in tmp_path.iterdir()] == [".env"]


CONFIG = ProjectConfig(
    name="shop",
    database=DatabaseConfig(
        kind=DatabaseKind.MYSQL,
        name="shop_db",
        user="shop_db_user",
        password="p@ss word",
        root_password="rootpw",
        port=PortAssignment(label="MySQL host", port=3307, verified=False),
    ),
    web_ports={"http": PortAssignment(label="web HTTP", port=8080)},
    features={
        "mailer": FeatureDecision(
            feature="mailer",
            mode=FeatureMode.LOCAL,
            ports={"smtp": PortAssignment(label="Mailpit smtp", port=1025)},
        ),
    },
)


class TestProjectFile:
    def test_round_trip(self, tmp_path):
        path = save_project_config(CONFIG, tmp_path)
        assert path == tmp_path / ".scaffold" / "project.json"
        assert load_project_config(tmp_path) == CONFIG

    def test_owner_only(self, tmp_path):
        path = save_project_config(CONFIG, tmp_path)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not created by this installer"):
            load_project_config(tmp_path)

    def test_corrupt_file(self, tmp_path):
        path = project_file_path(tmp_path)
        path.parent.mkdir()
        path.write_text("{")
        with pytest.raises(ConfigError, match="Cannot read"):
            load_project_config(tmp_path)

    def test_invalid_config(self, tmp_path):
        path = project_file_path(tmp_path)
        path.parent.mkdir()
        path.write_text('{"name": "My Shop"}')
        with pytest.raises(ConfigError, match="Cannot read"):
            load_project_config(tmp_path)
