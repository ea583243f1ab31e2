"""Package Discovery.

Walks the workspace and classifies every directory that holds Go source as a
library, a binary, or a module root. Discovery is read-only and never aborts
on a single bad file: the offending package is skipped and reported.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath

from forge.config import SyncConfig
from forge.errors import PackageParseError, SyncError
from forge.sync.imports import parse_package_clause
from forge.sync.models import DiscoveredPackage, SyncReport
from forge.sync.modules import read_module_path
from forge.utils import join_import_path, relative_posix


class PackageDiscoverer:
    """Finds Go packages and module roots under a workspace root.

    Args:
        workspace_root: Absolute workspace directory.
        base_import_path: Import path used for code outside every module.
        config: Sync configuration (file conventions, skipped directories).
        report: Receives warnings for skipped packages.
    """

    def __init__(
        self,
        workspace_root: str | Path,
        base_import_path: str,
        config: SyncConfig | None = None,
        report: SyncReport | None = None,
    ) -> None:
        self.workspace_root = Path(workspace_root)
        self.base_import_path = base_import_path
        self.config = config or SyncConfig()
        self.report = report if report is not None else SyncReport()

    # -- Public API --------------------------------------------------------

    def discover(self) -> list[DiscoveredPackage]:
        """Return every package under the workspace root, sorted by path.

        Raises:
            SyncError: If the workspace root itself cannot be listed.
        """
        packages: dict[str, DiscoveredPackage] = {}
        # rel path -> import path of every module root seen so far
        module_roots: dict[str, str] = {}

        for dirpath, dirnames, filenames in os.walk(self.workspace_root, onerror=self._on_walk_error):
            dirnames[:] = sorted(d for d in dirnames if not self.config.is_skipped_dir(d))
            rel = relative_posix(dirpath, self.workspace_root)

            if self.config.module_boundary_file in filenames:
                import_path = self._module_import_path(Path(dirpath), rel)
                module_roots[rel] = import_path
                packages[rel] = DiscoveredPackage(
                    path=rel,
                    import_path=import_path,
                    is_module_root=True,
                )
                continue

            try:
                package = self._discover_package(Path(dirpath), rel, sorted(filenames), module_roots)
            except PackageParseError as exc:
                self.report.warn(f"skipping package {rel}: {exc}")
                continue
            if package is not None:
                packages[rel] = package

        return [packages[path] for path in sorted(packages)]

    # -- Internals ---------------------------------------------------------

    def _on_walk_error(self, error: OSError) -> None:
        failed = Path(error.filename) if error.filename else None
        if failed is None or failed == self.workspace_root:
            raise SyncError("discover", f"cannot walk {self.workspace_root}: {error}") from error
        self.report.warn(f"cannot read directory {failed}: {error.strerror or error}")

    def _module_import_path(self, directory: Path, rel: str) -> str:
        import_path = read_module_path(directory / self.config.module_boundary_file)
        if import_path is None:
            self.report.warn(
                f"{rel}/{self.config.module_boundary_file} declares no module path; "
                "deriving it from the workspace"
            )
            return join_import_path(self.base_import_path, rel)
        return import_path

    def _enclosing_import_path(self, rel: str, module_roots: dict[str, str]) -> str:
        """Import path of *rel* from its nearest enclosing module root."""
        candidate = PurePosixPath(rel)
        while True:
            key = candidate.as_posix()
            if key in module_roots:
                inner = PurePosixPath(rel).relative_to(candidate).as_posix()
                return join_import_path(module_roots[key], inner)
            if key == ".":
                return join_import_path(self.base_import_path, rel)
            candidate = candidate.parent

    def _discover_package(
        self,
        directory: Path,
        rel: str,
        filenames: list[str],
        module_roots: dict[str, str],
    ) -> DiscoveredPackage | None:
        sources: list[str] = []
        tests: list[str] = []
        for name in filenames:
            if not name.endswith(self.config.source_suffix) or name.startswith((".", "_")):
                continue
            if name.endswith(self.config.test_suffix):
                tests.append(name)
            else:
                sources.append(name)

        if not sources and not tests:
            return None

        is_binary = False
        for name in sources:
            if self._package_name(directory / name) == self.config.entry_package:
                is_binary = True

        return DiscoveredPackage(
            path=rel,
            import_path=self._enclosing_import_path(rel, module_roots),
            is_binary=is_binary,
            source_files=sources,
            test_files=tests,
        )

    def _package_name(self, path: Path) -> str:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PackageParseError(path.name, str(exc)) from exc
        name = parse_package_clause(content)
        if name is None:
            raise PackageParseError(path.name, "missing package clause")
        return name
