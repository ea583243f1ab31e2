"""Value objects produced and consumed during a single sync pass.

Nothing here is persisted: every pass derives these afresh from the files on
disk and drops them when it finishes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from forge.utils import print_warning


@dataclass(frozen=True)
class ImportSpec:
    """One import declaration: the quoted path and its optional alias."""

    path: str
    alias: str = ""

    @property
    def is_blank(self) -> bool:
        """``import _ "x"``: imported only for its side effects."""
        return self.alias == "_"


@dataclass
class DiscoveredPackage:
    """A directory on disk holding compilable Go source (or a module root).

    ``path`` is workspace-relative in POSIX form, ``"."`` for the root.
    """

    path: str
    import_path: str
    is_binary: bool = False
    source_files: list[str] = field(default_factory=list)
    test_files: list[str] = field(default_factory=list)
    is_module_root: bool = False

    @property
    def has_tests(self) -> bool:
        return bool(self.test_files)

    @property
    def kind(self) -> str:
        if self.is_module_root:
            return "module root"
        return "binary" if self.is_binary else "library"


@dataclass(frozen=True)
class WorkspaceModule:
    """An entry of the multi-module registry (``go.work``)."""

    import_path: str
    path: str


@dataclass
class SyncReport:
    """What a sync run changed, or would change in dry-run mode."""

    created_files: list[str] = field(default_factory=list)
    deleted_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    def warn(self, message: str) -> None:
        """Record a non-fatal problem and show it to the user."""
        self.errors.append(message)
        print_warning(f"Warning: {message}")

    @property
    def ok(self) -> bool:
        return not self.errors

    def as_summary(self) -> dict[str, str]:
        return {
            "Mode": "dry run" if self.dry_run else "write",
            "Deleted files": str(len(self.deleted_files)),
            "Created files": str(len(self.created_files)),
            "Warnings": str(len(self.errors)),
        }
