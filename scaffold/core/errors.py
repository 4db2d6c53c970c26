"""
Error taxonomy for the installer.

Input errors never reach this module — they are handled by re-prompting.
Everything here is fatal: the CLI prints the message as an ERROR banner
and exits with code 1.
"""

from __future__ import annotations


class ScaffoldError(Exception):
    """Base class for all fatal installer errors."""


class PreflightError(ScaffoldError):
    """A required external tool is missing or unusable."""

    def __init__(self, message: str, remediation: str = ""):
        super().__init__(message)
        self.remediation = remediation

    def __str__(self) -> str:
        base = super().__str__()
        if self.remediation:
            return f"{base}\n  → {self.remediation}"
        return base


class MaterializeError(ScaffoldError):
    """The template could not be turned into a complete project tree."""


class StepFailed(ScaffoldError):
    """An external command in the pipeline exited non-zero."""

    def __init__(
        self,
        step: str,
        command: str = "",
        return_code: int | None = None,
        detail: str = "",
    ):
        self.step = step
        self.command = command
        self.return_code = return_code
        self.detail = detail
        super().__init__(self._format())

    def _format(self) -> str:
        msg = f"Step '{self.step}' failed"
        if self.command:
            msg += f": `{self.command}`"
        if self.return_code is not None:
            msg += f" (exit code {self.return_code})"
        if self.detail:
            msg += f"\n{self.detail}"
        return msg


class HealthCheckTimeout(ScaffoldError):
    """A service did not become ready within the bounded number of attempts."""

    def __init__(self, service: str, attempts: int, last_error: str = ""):
        self.service = service
        self.attempts = attempts
        self.last_error = last_error
        msg = f"Service '{service}' not healthy after {attempts} attempts"
        if last_error:
            msg += f" (last error: {last_error})"
        super().__init__(msg)


class InstallFailed(ScaffoldError):
    """The pipeline failed after resources were created and has been rolled back."""

    def __init__(self, cause: BaseException, project_dir: str | None = None):
        self.cause = cause
        self.project_dir = project_dir
        super().__init__(str(cause) or cause.__class__.__name__)
