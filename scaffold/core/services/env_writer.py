"""
Environment Writer — ProjectConfig → ``.env`` and ``.env.dev.local``.

Rendering is structured: sections of (key, value) pairs are built from
the typed config, then serialized under ``###> banner ###`` blocks.
No find-and-replace over template text.

    .env             Compose-level: project namespace, file set, ports,
                     database service variables, local feature settings
    .env.dev.local   framework-level: DATABASE_URL, MAILER_DSN,
                     Mercure and S3 settings (only if non-empty)

Lines of an existing file (the template's own ``.env``, or
``.env.dev.example`` as the base for ``.env.dev.local``) are kept,
except our own blocks and any database key: only the selected database
kind ever appears. Both files are written atomically and regenerated on
every run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import quote

from scaffold.core.models.compose import ComposeFileSet
from scaffold.core.models.project import (
    DatabaseConfig,
    DatabaseKind,
    FeatureDecision,
    ProjectConfig,
)
from scaffold.core.persistence.atomic import atomic_write_text
from scaffold.core.services.catalog import DATABASE_SERVICE, DATABASES, FEATURES_BY_KEY

logger = logging.getLogger(__name__)

ENV_FILE = ".env"
DEV_LOCAL_FILE = ".env.dev.local"
# Template-provided starting point for .env.dev.local
DEV_EXAMPLE_FILE = ".env.dev.example"

# Every database key of every kind; template values for these never survive a merge
DATABASE_KEYS = frozenset({
    "DATABASE_URL", "DB_HOST_PORT",
    "MYSQL_DATABASE", "MYSQL_USER", "MYSQL_PASSWORD", "MYSQL_ROOT_PASSWORD",
    "POSTGRES_DB", "POSTGRES_USER", "POSTGRES_PASSWORD",
})

_SAFE_VALUE = re.compile(r"^[A-Za-z0-9_./:@%+,?&=~-]*$")
_BANNER_OPEN = re.compile(r"^###> (.+) ###$")


@dataclass
class EnvSection:
    """A banner-delimited block of ``KEY=value`` lines."""

    title: str
    entries: list[tuple[str, str]] = field(default_factory=list)

    def add(self, key: str, value: str | int) -> None:
        self.entries.append((key, str(value)))

    def keys(self) -> list[str]:
        return [key for key, _ in self.entries]


# ── Serialization ───────────────────────────────────────────────


def quote_value(value: str) -> str:
    """Quote a value for the Compose / Symfony dotenv syntax."""
    if _SAFE_VALUE.match(value):
        return value
    if "'" not in value:
        return f"'{value}'"
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "$$")
    return f'"{escaped}"'


def render_env(sections: list[EnvSection]) -> str:
    """Serialize non-empty sections, separated by blank lines."""
    blocks = []
    for section in sections:
        if not section.entries:
            continue
        lines = [f"###> {section.title} ###"]
        lines.extend(f"{key}={quote_value(value)}" for key, value in section.entries)
        lines.append(f"###< {section.title} ###")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n" if blocks else ""


def merge_env(
    existing: str,
    sections: list[EnvSection],
    drop_keys: frozenset[str] = frozenset(),
) -> str:
    """Replace our sections inside an existing env file, keeping everything else.

    Blocks with the same banner are removed, as are stray assignments of
    keys the new sections define (or of ``drop_keys``); the rendered
    sections are appended.
    """
    rendered = render_env(sections)
    if not existing.strip():
        return rendered

    titles = {s.title for s in sections if s.entries}
    keys = {key for s in sections for key in s.keys()} | drop_keys

    kept: list[str] = []
    skipping: str | None = None
    for line in existing.splitlines():
        stripped = line.strip()
        if skipping is not None:
            if stripped == f"###< {skipping} ###":
                skipping = None
            continue
        match = _BANNER_OPEN.match(stripped)
        if match and match.group(1) in titles:
            skipping = match.group(1)
            continue
        assignment = stripped[7:] if stripped.startswith("export ") else stripped
        if "=" in assignment and assignment.partition("=")[0].strip() in keys:
            continue
        kept.append(line)

    base = "\n".join(kept).rstrip()
    if not rendered:
        return base + "\n"
    return f"{base}\n\n{rendered}" if base else rendered


# ── .env (Compose level) ────────────────────────────────────────


def compose_env_sections(config: ProjectConfig, file_set: ComposeFileSet) -> list[EnvSection]:
    compose = EnvSection("compose")
    compose.add("COMPOSE_PROJECT_NAME", config.name)
    compose.add("COMPOSE_FILE", file_set.env_value())

    server = EnvSection("server")
    server.add("SERVER_NAME", config.server_name)
    for name, assignment in config.web_ports.items():
        server.add(f"{name.upper()}_PORT", assignment.port)

    sections = [compose, server, database_service_section(config.database)]

    features = EnvSection("features")
    for key in config.enabled_features:
        decision = config.features[key]
        if decision.is_local:
            _local_feature_entries(features, decision)
    sections.append(features)
    return sections


def database_service_section(database: DatabaseConfig) -> EnvSection:
    """Variables consumed by the database service itself (selected kind only)."""
    section = EnvSection("database")
    if database.kind == DatabaseKind.MYSQL:
        section.add("MYSQL_DATABASE", database.name)
        section.add("MYSQL_USER", database.user)
        section.add("MYSQL_PASSWORD", database.password)
        section.add("MYSQL_ROOT_PASSWORD", database.root_password or "")
    elif database.kind in (DatabaseKind.POSTGRES, DatabaseKind.POSTGIS):
        section.add("POSTGRES_DB", database.name)
        section.add("POSTGRES_USER", database.user)
        section.add("POSTGRES_PASSWORD", database.password)
    if database.enabled and database.port is not None:
        section.add("DB_HOST_PORT", database.port.port)
    return section


def _local_feature_entries(section: EnvSection, decision: FeatureDecision) -> None:
    spec = FEATURES_BY_KEY[decision.feature]
    for port_name, env_key in spec.host_port_env.items():
        assignment = decision.ports.get(port_name)
        if assignment is not None:
            section.add(env_key, assignment.port)

    creds = decision.credentials
    if decision.feature == "mercure" and creds.get("MERCURE_PUBLISHER_JWT_KEY"):
        section.add("CADDY_MERCURE_JWT_SECRET", creds["MERCURE_PUBLISHER_JWT_KEY"])
    elif decision.feature == "storage":
        for key in ("MINIO_ROOT_USER", "MINIO_ROOT_PASSWORD"):
            if creds.get(key):
                section.add(key, creds[key])


# ── .env.dev.local (framework level) ────────────────────────────


def database_url(database: DatabaseConfig) -> str | None:
    """DSN for the application container, or None without a database."""
    spec = DATABASES.get(database.kind)
    if spec is None:
        return None
    user = quote(database.user, safe="")
    password = quote(database.password, safe="")
    name = quote(database.name, safe="")
    return (
        f"{spec.scheme}://{user}:{password}@{DATABASE_SERVICE}:{spec.container_port}/{name}"
        f"?serverVersion={spec.server_version}&charset={spec.charset}"
    )


def _address(decision: FeatureDecision, port_name: str) -> tuple[str, int]:
    """(host, port) the application container uses to reach a feature."""
    spec = FEATURES_BY_KEY[decision.feature]
    container_port = spec.ports[port_name]
    if decision.is_shared and decision.endpoint is not None:
        return decision.endpoint.host, decision.endpoint.port(port_name) or container_port
    return spec.service, container_port


def _browser_port(decision: FeatureDecision, port_name: str) -> int:
    """Host port a browser on the developer machine uses."""
    if decision.is_shared and decision.endpoint is not None:
        return decision.endpoint.port(port_name) or FEATURES_BY_KEY[decision.feature].ports[port_name]
    return decision.ports[port_name].port


def _credentials(decision: FeatureDecision) -> dict[str, str]:
    if decision.is_shared and decision.endpoint is not None:
        return decision.endpoint.credentials
    return decision.credentials


def framework_env_sections(config: ProjectConfig) -> list[EnvSection]:
    sections = []

    doctrine = EnvSection("doctrine/doctrine-bundle")
    dsn = database_url(config.database)
    if dsn:
        doctrine.add("DATABASE_URL", dsn)
    sections.append(doctrine)

    mailer = EnvSection("symfony/mailer")
    decision = config.feature("mailer")
    if decision.enabled:
        host, port = _address(decision, "smtp")
        mailer.add("MAILER_DSN", f"smtp://{host}:{port}")
    sections.append(mailer)

    mercure = EnvSection("symfony/mercure-bundle")
    decision = config.feature("mercure")
    if decision.enabled:
        host, port = _address(decision, "hub")
        mercure.add("MERCURE_URL", f"http://{host}:{port}/.well-known/mercure")
        mercure.add(
            "MERCURE_PUBLIC_URL",
            f"http://localhost:{_browser_port(decision, 'hub')}/.well-known/mercure",
        )
        secret = _credentials(decision).get("MERCURE_PUBLISHER_JWT_KEY")
        if secret:
            mercure.add("MERCURE_JWT_SECRET", secret)
    sections.append(mercure)

    storage = EnvSection("storage")
    decision = config.feature("storage")
    if decision.enabled:
        host, port = _address(decision, "api")
        storage.add("S3_ENDPOINT", f"http://{host}:{port}")
        creds = _credentials(decision)
        if creds.get("MINIO_ROOT_USER"):
            storage.add("S3_ACCESS_KEY", creds["MINIO_ROOT_USER"])
        if creds.get("MINIO_ROOT_PASSWORD"):
            storage.add("S3_SECRET_KEY", creds["MINIO_ROOT_PASSWORD"])
    sections.append(storage)

    return sections


# ── Write ───────────────────────────────────────────────────────


def write_environment(
    config: ProjectConfig,
    dest_dir: Path,
    file_set: ComposeFileSet,
) -> list[Path]:
    """Write ``.env`` and (if it has content) ``.env.dev.local``.

    Values this writer owns are replaced in existing files; their
    previous secrets are not recoverable.

    Returns:
        Paths written, in order.
    """
    env_path = dest_dir / ENV_FILE
    written = [
        atomic_write_text(
            env_path,
            merge_env(
                _read(env_path),
                compose_env_sections(config, file_set),
                DATABASE_KEYS,
            ),
        ),
    ]

    framework = framework_env_sections(config)
    if any(section.entries for section in framework):
        dev_local_path = dest_dir / DEV_LOCAL_FILE
        base = _read(dev_local_path) or _read(dest_dir / DEV_EXAMPLE_FILE)
        content = merge_env(base, framework, DATABASE_KEYS)
        written.append(atomic_write_text(dev_local_path, content, mode=0o600))

    logger.info("Wrote %s", ", ".join(p.name for p in written))
    return written


def _read(path: Path) -> str:
    if not path.is_file():
        return ""
    return path.read_text(encoding="utf-8")
