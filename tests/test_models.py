"""
Tests for domain models — project config invariants, ports, compose sets.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from scaffold.core.models import (
    ComposeFileSet,
    DatabaseConfig,
    DatabaseKind,
    FeatureDecision,
    FeatureMode,
    PortAssignment,
    PortSource,
    ProjectConfig,
    ProjectConfigDraft,
    SharedEndpoint,
)
from scaffold.core.models.action import Receipt


def _port(label: str = "db", port: int = 3306) -> PortAssignment:
    return PortAssignment(label=label, port=port)


class TestDatabaseConfig:
    def test_none_is_default(self):
        db = DatabaseConfig()
        assert db.kind == DatabaseKind.NONE
        assert not db.enabled

    def test_none_rejects_credentials(self):
        with pytest.raises(ValidationError):
            DatabaseConfig(kind=DatabaseKind.NONE, name="app_db")

    def test_mysql_requires_root_password(self):
        with pytest.raises(ValidationError, match="root password"):
            DatabaseConfig(
                kind=DatabaseKind.MYSQL, name="app_db", user="app", password="pw", port=_port(),
            )

    def test_postgres_rejects_root_password(self):
        with pytest.raises(ValidationError, match="not applicable"):
            DatabaseConfig(
                kind=DatabaseKind.POSTGRES,
                name="app_db",
                user="app",
                password="pw",
                root_password="root",
                port=_port(port=5432),
            )

    def test_invalid_identifier_rejected(self):
        with pytest.raises(ValidationError, match="identifier"):
            DatabaseConfig(
                kind=DatabaseKind.POSTGRES, name="App-DB", user="app", password="pw",
                port=_port(port=5432),
            )

    def test_empty_password_rejected(self):
        with pytest.raises(ValidationError, match="password"):
            DatabaseConfig(
                kind=DatabaseKind.POSTGIS, name="app_db", user="app", password="",
                port=_port(port=5432),
            )

    def test_valid_mysql(self):
        db = DatabaseConfig(
            kind=DatabaseKind.MYSQL, name="app_db", user="app", password="pw",
            root_password="root", port=_port(),
        )
        assert db.enabled


class TestPortAssignment:
    def test_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            PortAssignment(label="web", port=80)
        with pytest.raises(ValidationError):
            PortAssignment(label="web", port=70000)

    def test_defaults(self):
        a = PortAssignment(label="web", port=8080)
        assert a.source == PortSource.USER_DEFAULT
        assert a.verified


class TestFeatureDecision:
    def test_absent_takes_nothing(self):
        with pytest.raises(ValidationError):
            FeatureDecision(feature="mailer", mode=FeatureMode.ABSENT, ports={"smtp": _port()})

    def test_shared_requires_endpoint(self):
        with pytest.raises(ValidationError, match="endpoint"):
            FeatureDecision(feature="mailer", mode=FeatureMode.SHARED)

    def test_shared_rejects_local_ports(self):
        with pytest.raises(ValidationError):
            FeatureDecision(
                feature="mailer",
                mode=FeatureMode.SHARED,
                endpoint=SharedEndpoint(container="mail"),
                ports={"smtp": _port("smtp", 1025)},
            )

    def test_local_rejects_endpoint(self):
        with pytest.raises(ValidationError):
            FeatureDecision(
                feature="mailer",
                mode=FeatureMode.LOCAL,
                endpoint=SharedEndpoint(container="mail"),
            )

    def test_flags(self):
        d = FeatureDecision(feature="mailer", mode=FeatureMode.LOCAL)
        assert d.enabled and d.is_local and not d.is_shared
        assert not FeatureDecision.absent("mailer").enabled


class TestProjectConfig:
    def test_name_must_be_identifier(self):
        with pytest.raises(ValidationError):
            ProjectConfig(name="My App")

    def test_frozen(self):
        cfg = ProjectConfig(name="my_app")
        with pytest.raises(ValidationError):
            cfg.name = "other"  # type: ignore[misc]

    def test_unknown_feature_is_absent(self):
        cfg = ProjectConfig(name="my_app")
        assert cfg.feature("storage").mode == FeatureMode.ABSENT
        assert cfg.enabled_features == []


class TestProjectConfigDraft:
    def test_write_once(self):
        draft = ProjectConfigDraft()
        draft.set("name", "my_app")
        with pytest.raises(ValueError, match="already been answered"):
            draft.set("name", "other")

    def test_feature_decided_once(self):
        draft = ProjectConfigDraft()
        draft.decide(FeatureDecision.absent("mailer"))
        with pytest.raises(ValueError, match="already been decided"):
            draft.decide(FeatureDecision.absent("mailer"))

    def test_unknown_field(self):
        with pytest.raises(KeyError):
            ProjectConfigDraft().set("colour", "blue")

    def test_build_requires_name(self):
        with pytest.raises(ValueError):
            ProjectConfigDraft().build()

    def test_build(self):
        draft = ProjectConfigDraft()
        draft.set("name", "my_app")
        draft.set("web_ports", {"http": PortAssignment(label="web HTTP", port=8080)})
        draft.decide(FeatureDecision(feature="mailer", mode=FeatureMode.LOCAL))
        cfg = draft.build()
        assert cfg.name == "my_app"
        assert cfg.web_port("http") == 8080
        assert cfg.enabled_features == ["mailer"]


class TestComposeFileSet:
    def test_args_and_env_value(self):
        fs = ComposeFileSet(files=("compose.yaml", "compose.override.yaml"))
        assert fs.args() == ["-f", "compose.yaml", "-f", "compose.override.yaml"]
        assert fs.env_value() == "compose.yaml:compose.override.yaml"
        assert len(fs) == 2

    def test_missing(self, tmp_path: Path):
        (tmp_path / "compose.yaml").write_text("")
        fs = ComposeFileSet(files=("compose.yaml", "compose.minio.yaml"))
        assert fs.missing(tmp_path) == ["compose.minio.yaml"]


class TestReceipt:
    def test_command_and_return_code(self):
        r = Receipt.failure(
            adapter="docker", action_id="compose-up", error="boom",
            command="docker compose up", return_code=17,
        )
        assert r.failed
        assert r.command == "docker compose up"
        assert r.return_code == 17

    def test_no_process_ran(self):
        r = Receipt.success(adapter="git", action_id="x")
        assert r.command == ""
        assert r.return_code is None
