"""Transitive Fixture Dependency Resolver.

Works out which migration filegroups a package's tests need. Three sources
are combined:

1. the package's own ``migrations/`` directory;
2. the nearest ancestor owning the ``cmd/migrator/migrations`` convention;
3. the same facts for every in-workspace package it imports whose import
   path *looks* fixture-related (contains ``test`` or ``migrat``).

Step 3 is a substring heuristic, not a dependency cut: an import called
``contest`` is followed and a helper called ``dbsetup`` is not. This is a
known approximation.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from forge.config import SyncConfig
from forge.sync.imports import extract_imports
from forge.sync.modules import ModuleRegistry


def fixture_target(package_path: str, target_name: str = "migrations") -> str:
    """Bazel label of the fixtures filegroup owned by *package_path*."""
    path = PurePosixPath(package_path).as_posix()
    return f"//:{target_name}" if path == "." else f"//{path}:{target_name}"


class FixtureResolver:
    """Computes fixture targets for packages of one sync pass.

    Args:
        workspace_root: Absolute workspace directory.
        registry: Module registry used to resolve imports to directories.
        config: Sync configuration (fixture conventions and heuristics).
    """

    def __init__(
        self,
        workspace_root: str | Path,
        registry: ModuleRegistry,
        config: SyncConfig | None = None,
    ) -> None:
        self.workspace_root = Path(workspace_root)
        self.registry = registry
        self.config = config or SyncConfig()

    # -- Public API --------------------------------------------------------

    def find_fixture_deps(
        self,
        package_path: str,
        extra_files: list[str] | None = None,
    ) -> list[str]:
        """Return the sorted fixture targets *package_path* needs.

        Args:
            package_path: Workspace-relative package directory.
            extra_files: Additional files of the package whose imports are
                followed too, typically its ``_test.go`` files.

        Terminates on any import graph: every package is visited at most once
        and recursion stops at ``config.max_fixture_depth``.
        """
        found: set[str] = set()
        seen: set[str] = set()
        self._collect(PurePosixPath(package_path).as_posix(), found, seen, 0, extra_files or [])
        return sorted(found)

    def has_local_fixtures(self, package_path: str) -> bool:
        """``True`` if *package_path* has its own fixtures directory."""
        return (self.workspace_root / package_path / self.config.fixtures_dir).is_dir()

    def nearest_fixture_provider(self, package_path: str) -> str | None:
        """Closest proper ancestor holding the conventional fixtures location.

        Returns the provider package path (``<ancestor>/cmd/migrator``), or
        ``None``. The workspace root is not considered.
        """
        current = PurePosixPath(package_path)
        while True:
            current = current.parent
            if current.as_posix() == ".":
                return None
            provider = current / self.config.fixture_provider_subpath
            if (self.workspace_root / provider / self.config.fixtures_dir).is_dir():
                return provider.as_posix()

    # -- Internals ---------------------------------------------------------

    def _collect(
        self,
        package_path: str,
        found: set[str],
        seen: set[str],
        depth: int,
        extra_files: list[str],
    ) -> None:
        if package_path in seen or depth > self.config.max_fixture_depth:
            return
        seen.add(package_path)

        if self.has_local_fixtures(package_path):
            found.add(fixture_target(package_path, self.config.fixture_target_name))

        provider = self.nearest_fixture_provider(package_path)
        if provider is not None:
            found.add(fixture_target(provider, self.config.fixture_target_name))

        for import_path in self._package_imports(package_path, extra_files):
            if not self.config.is_fixture_relevant(import_path):
                continue
            dependency = self.registry.resolve_import_to_path(import_path)
            if dependency is None or dependency == package_path:
                continue
            self._collect(dependency, found, seen, depth + 1, [])

    def _package_imports(self, package_path: str, extra_files: list[str]) -> list[str]:
        directory = self.workspace_root / package_path
        names = self._source_files(directory)
        names += [name for name in extra_files if name.endswith(self.config.source_suffix)]
        imports: list[str] = []
        for name in names:
            try:
                content = (directory / name).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            imports.extend(extract_imports(content))
        return imports

    def _source_files(self, directory: Path) -> list[str]:
        try:
            entries = sorted(directory.iterdir())
        except OSError:
            return []
        return [
            entry.name
            for entry in entries
            if entry.is_file()
            and entry.name.endswith(self.config.source_suffix)
            and not entry.name.endswith(self.config.test_suffix)
        ]
