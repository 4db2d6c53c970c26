"""
Tests for installer settings loading.
"""

import pytest

from scaffold.core.config.loader import (
    DEFAULT_TEMPLATE_REPO,
    ConfigError,
    InstallerSettings,
    find_settings_file,
    load_settings,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("SCAFFOLD_CONFIG", "SCAFFOLD_TEMPLATE_REPO", "SCAFFOLD_TEMPLATE_REF"):
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_defaults(self):
        s = InstallerSettings()
        assert s.template_repo == DEFAULT_TEMPLATE_REPO
        assert s.health_attempts == 30
        assert s.fallback_offset == 1000
        assert "install.sh" in s.installer_only_paths

    def test_no_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_settings() == InstallerSettings()


class TestLoadSettings:
    def test_flat_yaml(self, tmp_path):
        path = tmp_path / "scaffold.yml"
        path.write_text("template_ref: main\nscan_attempts: 10\n")
        s = load_settings(path)
        assert s.template_ref == "main"
        assert s.scan_attempts == 10

    def test_nested_yaml(self, tmp_path):
        path = tmp_path / "scaffold.yml"
        path.write_text("scaffold:\n  build_no_cache: false\n")
        assert load_settings(path).build_no_cache is False

    def test_empty_file(self, tmp_path):
        path = tmp_path / "scaffold.yml"
        path.write_text("")
        assert load_settings(path) == InstallerSettings()

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "scaffold.yml"
        path.write_text("template_repo: https://example.com/a\n")
        monkeypatch.setenv("SCAFFOLD_TEMPLATE_REPO", "https://example.com/b")
        monkeypatch.setenv("SCAFFOLD_TEMPLATE_REF", "v3")
        s = load_settings(path)
        assert s.template_repo == "https://example.com/b"
        assert s.template_ref == "v3"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "scaffold.yml"
        path.write_text("template_repo: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "scaffold.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "scaffold.yml"
        path.write_text("health_attempts: 0\n")
        with pytest.raises(ConfigError, match="Invalid installer settings"):
            load_settings(path)


class TestFindSettingsFile:
    def test_env_var_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SCAFFOLD_CONFIG", str(tmp_path / "custom.yml"))
        assert find_settings_file(tmp_path) == tmp_path / "custom.yml"

    def test_working_directory(self, tmp_path):
        (tmp_path / "scaffold.yml").write_text("")
        assert find_settings_file(tmp_path) == tmp_path / "scaffold.yml"

    def test_none(self, tmp_path):
        assert find_settings_file(tmp_path) is None
