"""
Questionnaire — project name, database and web ports.

Every answer goes into a write-once ProjectConfigDraft. Input errors
(empty names, empty passwords, invalid ports) are answered with a
warning and the same question again; nothing here raises on bad input.
"""

from __future__ import annotations

import logging
from pathlib import Path

from scaffold.core.models.ports import PortRequest
from scaffold.core.models.project import (
    DatabaseConfig,
    DatabaseKind,
    ProjectConfigDraft,
)
from scaffold.core.services.catalog import DATABASES, WEB_PORT_DEFAULTS
from scaffold.core.services.operator import Operator
from scaffold.core.services.ports.negotiator import PortNegotiator
from scaffold.core.services.sanitize import sanitize_identifier

logger = logging.getLogger(__name__)

DATABASE_CHOICES = [
    DatabaseKind.MYSQL.value,
    DatabaseKind.POSTGRES.value,
    DatabaseKind.POSTGIS.value,
    DatabaseKind.NONE.value,
]


class Questionnaire:
    """Collects the project-level answers into a draft."""

    def __init__(self, operator: Operator, negotiator: PortNegotiator, workdir: Path):
        self._operator = operator
        self._negotiator = negotiator
        self._workdir = workdir

    def collect(self, draft: ProjectConfigDraft) -> ProjectConfigDraft:
        name = self.ask_project_name()
        draft.set("name", name)
        draft.set("web_ports", self.ask_web_ports())
        draft.set("database", self.ask_database(name))
        return draft

    # ── Project name ────────────────────────────────────────────

    def ask_project_name(self) -> str:
        """Sanitized project name whose directory does not exist yet."""
        while True:
            name = self._ask_identifier("Project name (e.g. invoice_app)")
            if (self._workdir / name).exists():
                self._operator.warning(
                    f"Directory '{self._workdir / name}' already exists. Choose another name."
                )
                continue
            self._operator.success(f"Project name: {name}")
            return name

    # ── Database ────────────────────────────────────────────────

    def ask_database(self, project_name: str) -> DatabaseConfig:
        kind = DatabaseKind(
            self._operator.choose("Database", DATABASE_CHOICES, default=DatabaseKind.MYSQL.value)
        )
        if kind == DatabaseKind.NONE:
            return DatabaseConfig()

        spec = DATABASES[kind]
        name = self._ask_identifier(f"{spec.label} database name", default=f"{project_name}_db")
        user = self._ask_identifier(f"{spec.label} user", default=f"{project_name}_db_user")
        password = self._ask_required_secret(f"{spec.label} password")
        root_password = None
        if kind == DatabaseKind.MYSQL:
            root_password = self._ask_required_secret("MySQL root password")

        port = self._negotiator.negotiate(
            PortRequest(label=f"{spec.label} host", default_port=spec.default_host_port)
        )
        return DatabaseConfig(
            kind=kind,
            name=name,
            user=user,
            password=password,
            root_password=root_password,
            port=port,
        )

    # ── Web ─────────────────────────────────────────────────────

    def ask_web_ports(self) -> dict:
        return {
            name: self._negotiator.negotiate(PortRequest(label=f"web {name.upper()}", default_port=port))
            for name, port in WEB_PORT_DEFAULTS.items()
        }

    # ── Helpers ─────────────────────────────────────────────────

    def _ask_identifier(self, prompt: str, default: str | None = None) -> str:
        """Ask for an identifier, sanitize it and confirm when it changed."""
        while True:
            raw = self._operator.ask_text(prompt, default=default).strip()
            if not raw:
                self._operator.warning("A value is required.")
                continue

            value = sanitize_identifier(raw)
            if not value:
                self._operator.warning(f"'{raw}' contains no usable characters (a-z, 0-9, _).")
                continue
            if value != raw:
                self._operator.info(f"'{raw}' sanitized to '{value}'.")
                if not self._operator.confirm(f"Use '{value}'?", default=True):
                    continue
            logger.debug("%s: %s", prompt, value)
            return value

    def _ask_required_secret(self, prompt: str) -> str:
        while True:
            value = self._operator.ask_secret(prompt)
            if value:
                return value
            self._operator.warning(f"{prompt} cannot be empty.")
