"""Exception hierarchy for the forge workspace tooling.

Every error raised on purpose by the package derives from :class:`ForgeError`
so the CLI can turn it into a non-zero exit status with a readable message.
"""

from __future__ import annotations


class ForgeError(Exception):
    """Base class for all forge errors."""


class ManifestError(ForgeError):
    """Raised when ``forge.json`` is missing, unreadable, or invalid."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class ConfigError(ForgeError):
    """Raised when environment variables do not form a valid ``SyncConfig``."""


class ModuleRegistryError(ForgeError):
    """Raised when ``go.work`` exists but cannot be read."""


class SyncError(ForgeError):
    """Raised when a synchronization step fails irrecoverably."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"{step}: {message}")


class PackageParseError(ForgeError):
    """Raised when a Go source file has no usable package clause."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"cannot parse {path}: {reason}")


class CommandError(ForgeError):
    """Raised when an external command exits non-zero or cannot be started."""

    def __init__(
        self,
        message: str,
        command: str = "",
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class WorkspaceValidationError(ForgeError):
    """Raised by ``Syncer.validate`` with every problem that was found."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        summary = "; ".join(self.problems) if self.problems else "workspace is invalid"
        super().__init__(summary)
