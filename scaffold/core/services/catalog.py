"""
Service catalog — databases and optional capabilities.

Static data only: canonical images, container ports, Compose overlay
files and the environment defaults each optional service needs. The
order of FEATURES is the order features are asked about and the order
their Compose files are layered.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from scaffold.core.models.project import DatabaseKind

# ── Base template files ─────────────────────────────────────────

BASE_COMPOSE_FILES = ("compose.yaml", "compose.override.yaml")
TEMPLATE_REQUIRED_FILES = (*BASE_COMPOSE_FILES, "Dockerfile")


# ── Databases ───────────────────────────────────────────────────


@dataclass(frozen=True)
class DatabaseSpec:
    """Per-engine constants."""

    kind: DatabaseKind
    label: str
    compose_file: str
    container_port: int
    default_host_port: int
    scheme: str
    server_version: str
    charset: str


DATABASES: dict[DatabaseKind, DatabaseSpec] = {
    DatabaseKind.MYSQL: DatabaseSpec(
        kind=DatabaseKind.MYSQL,
        label="MySQL",
        compose_file="compose.mysql.yaml",
        container_port=3306,
        default_host_port=3306,
        scheme="mysql",
        server_version="8.0.32",
        charset="utf8mb4",
    ),
    DatabaseKind.POSTGRES: DatabaseSpec(
        kind=DatabaseKind.POSTGRES,
        label="PostgreSQL",
        compose_file="compose.postgres.yaml",
        container_port=5432,
        default_host_port=5432,
        scheme="postgresql",
        server_version="16",
        charset="utf8",
    ),
    DatabaseKind.POSTGIS: DatabaseSpec(
        kind=DatabaseKind.POSTGIS,
        label="PostGIS",
        compose_file="compose.postgis.yaml",
        container_port=5432,
        default_host_port=5432,
        scheme="postgresql",
        server_version="16",
        charset="utf8",
    ),
}

# Compose service name of the database in every template overlay
DATABASE_SERVICE = "database"
WEB_SERVICE = "php"

WEB_PORT_DEFAULTS = {"http": 8080, "https": 8443}


# ── Optional features ───────────────────────────────────────────


@dataclass(frozen=True)
class FeatureSpec:
    """An optional capability that can be absent, shared or local."""

    key: str
    label: str
    description: str
    image: str
    service: str
    compose_file: str
    ports: dict[str, int]                     # port name → container port
    host_port_env: dict[str, str]             # port name → .env variable
    credential_env: tuple[str, ...] = ()      # container env keys read on reuse
    run_args: tuple[str, ...] = ()            # extra args for a shared instance
    run_env: dict[str, str] = field(default_factory=dict)

    def matches_image(self, image: str) -> bool:
        """Whether a container image reference is this feature's canonical image."""
        repo = image.split("@", 1)[0]
        # Strip a tag, but not a registry port (host:5000/name)
        if ":" in repo.rsplit("/", 1)[-1]:
            repo = repo.rsplit(":", 1)[0]
        return repo == self.image or repo.endswith(f"/{self.image}")


FEATURES: tuple[FeatureSpec, ...] = (
    FeatureSpec(
        key="mailer",
        label="Mailpit",
        description="mail catcher for development e-mail",
        image="axllent/mailpit",
        service="mailer",
        compose_file="compose.mailpit.yaml",
        ports={"smtp": 1025, "web": 8025},
        host_port_env={"smtp": "MAILPIT_SMTP_PORT", "web": "MAILPIT_WEB_PORT"},
    ),
    FeatureSpec(
        key="mercure",
        label="Mercure",
        description="real-time hub",
        image="dunglas/mercure",
        service="mercure",
        compose_file="compose.mercure.yaml",
        ports={"hub": 3000},
        host_port_env={"hub": "MERCURE_PORT"},
        credential_env=("MERCURE_PUBLISHER_JWT_KEY", "MERCURE_SUBSCRIBER_JWT_KEY"),
        run_env={"SERVER_NAME": ":3000"},
    ),
    FeatureSpec(
        key="storage",
        label="MinIO",
        description="S3-compatible object storage",
        image="minio/minio",
        service="minio",
        compose_file="compose.minio.yaml",
        ports={"api": 9000, "console": 9001},
        host_port_env={"api": "MINIO_API_PORT", "console": "MINIO_CONSOLE_PORT"},
        credential_env=("MINIO_ROOT_USER", "MINIO_ROOT_PASSWORD"),
        run_args=("server", "/data", "--console-address", ":9001"),
    ),
)

FEATURES_BY_KEY: dict[str, FeatureSpec] = {f.key: f for f in FEATURES}


def feature_order(key: str) -> int:
    """Catalog position of a feature (unknown keys sort last)."""
    for index, spec in enumerate(FEATURES):
        if spec.key == key:
            return index
    return len(FEATURES)
