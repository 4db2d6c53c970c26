"""
Identifier sanitization for project, database and user names.

Sanitized values are safe as Compose project names, container name
prefixes and SQL identifiers.
"""

from __future__ import annotations

import re

_INVALID_RUN = re.compile(r"[^a-z0-9_]+")
_UNDERSCORES = re.compile(r"_{2,}")


def sanitize_identifier(value: str) -> str:
    """Reduce ``value`` to ``^[a-z_][a-z0-9_]*$``.

    Lowercases, replaces each run of invalid characters with a single
    underscore, and strips leading/trailing underscores. A leading digit
    gets an underscore prefix. Returns "" when nothing usable remains,
    so the caller can re-prompt.

    >>> sanitize_identifier("My App!")
    'my_app'
    """
    text = _INVALID_RUN.sub("_", value.strip().lower())
    text = _UNDERSCORES.sub("_", text).strip("_")
    if not text:
        return ""
    if text[0].isdigit():
        text = f"_{text}"
    return text
