"""
.env precedence inspection.

Symfony loads, for APP_ENV=<env>, in increasing priority:

    .env  <  .env.local  <  .env.<env>  <  .env.<env>.local

(``.env.local`` is skipped for the ``test`` environment.) Docker
Compose only reads ``.env``. This module reports which files exist,
which file wins for each key, and what it overrides.
"""

from __future__ import annotations

from pathlib import Path


def env_file_order(app_env: str = "dev") -> list[str]:
    """Files Symfony loads for ``app_env``, lowest priority first."""
    order = [".env"]
    if app_env != "test":
        order.append(".env.local")
    order += [f".env.{app_env}", f".env.{app_env}.local"]
    return order


_QUOTES = ("'", '"')


def _split_assignment(line: str) -> tuple[str, str] | None:
    """``[export ]KEY=value`` -> (KEY, value); None for anything else."""
    line = line.strip()
    if not line or line[0] == "#":
        return None
    line = line.removeprefix("export ").lstrip()
    key, sep, value = line.partition("=")
    if not sep:
        return None
    value = value.strip()
    if len(value) > 1 and value[0] in _QUOTES and value[-1] == value[0]:
        value = value[1:-1]
    return key.strip(), value


def parse_env_file(path: Path) -> dict[str, str]:
    """Key/value pairs of a dotenv file; later assignments win.

    A missing or unreadable file reads as empty.
    """
    if not path.is_file():
        return {}
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return {}
    pairs = (_split_assignment(line) for line in lines)
    return dict(pair for pair in pairs if pair is not None)


def redact_value(value: str) -> str:
    """``supersecret`` -> ``su****et``; four characters or fewer are fully masked."""
    if not value:
        return "(empty)"
    return "****" if len(value) <= 4 else f"{value[:2]}****{value[-2:]}"


def inspect_env_files(project_root: Path, app_env: str = "dev") -> dict:
    """Effective values and their sources across the env file chain.

    Returns:
        {
            "app_env": str,
            "files": [{name, exists, var_count, priority}, ...],
            "variables": [{key, value, source, overrides: [file, ...]}, ...],
            "compose_file": str,   # the only file Compose reads
        }
    """
    files = []
    variables: dict[str, dict] = {}

    for priority, name in enumerate(env_file_order(app_env), start=1):
        path = project_root / name
        parsed = parse_env_file(path)
        files.append({
            "name": name,
            "exists": path.is_file(),
            "var_count": len(parsed),
            "priority": priority,
        })
        for key, value in parsed.items():
            previous = variables.get(key)
            overrides = []
            if previous is not None:
                overrides = [*previous["overrides"], previous["source"]]
            variables[key] = {
                "key": key,
                "value": value,
                "source": name,
                "overrides": overrides,
            }

    return {
        "app_env": app_env,
        "files": files,
        "variables": sorted(variables.values(), key=lambda v: v["key"]),
        "compose_file": ".env",
    }
