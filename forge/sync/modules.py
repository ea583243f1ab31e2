"""Module Registry Resolver.

Reads the multi-module registry (``go.work``) and every listed module's
``go.mod`` to build the table of in-workspace modules, then maps import paths
back to workspace directories. A registry is built once per sync pass and is
read-only afterwards.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath

from forge.config import SyncConfig
from forge.errors import ModuleRegistryError
from forge.sync.models import SyncReport, WorkspaceModule

_MODULE_RE = re.compile(r"""^\s*module\s+(?:"([^"]+)"|`([^`]+)`|(\S+))""")


def _strip_comment(line: str) -> str:
    return line.split("//", 1)[0].strip()


def _clean_dir(entry: str) -> str:
    entry = entry.strip().strip('"').strip("`")
    while entry.startswith("./"):
        entry = entry[2:]
    return entry.rstrip("/") or "."


def parse_module_directive(content: str) -> str | None:
    """Return the ``module`` path declared by go.mod *content*."""
    for line in content.splitlines():
        match = _MODULE_RE.match(_strip_comment(line))
        if match:
            return next(group for group in match.groups() if group)
    return None


def read_module_path(go_mod: Path) -> str | None:
    """Read *go_mod* and return its module path, ``None`` if unavailable."""
    try:
        content = go_mod.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    return parse_module_directive(content)


def parse_use_directives(content: str) -> list[str]:
    """Return the module directories listed by ``use`` lines of a go.work file.

    Both forms are accepted::

        use ./backend/services/orders

        use (
            ./backend/services/orders
            "./backend/libs/db"
        )
    """
    dirs: list[str] = []
    in_block = False
    for raw in content.splitlines():
        line = _strip_comment(raw)
        if not line:
            continue
        if in_block:
            if line.startswith(")"):
                in_block = False
                continue
            dirs.append(_clean_dir(line))
            continue
        if not re.match(r"^use\b", line):
            continue
        rest = line[len("use"):].strip()
        if rest.startswith("("):
            inner = rest[1:].strip()
            if inner.endswith(")"):
                dirs.extend(_clean_dir(part) for part in inner[:-1].split())
            else:
                in_block = True
                if inner:
                    dirs.append(_clean_dir(inner))
        elif rest:
            dirs.append(_clean_dir(rest))
    return dirs


class ModuleRegistry:
    """In-workspace Go modules, keyed by their declared import path.

    Args:
        workspace_root: Absolute workspace directory.
        config: Sync configuration (file names).
        report: Optional report that receives warnings for skipped entries.
    """

    def __init__(
        self,
        workspace_root: str | Path,
        config: SyncConfig | None = None,
        report: SyncReport | None = None,
    ) -> None:
        self.workspace_root = Path(workspace_root)
        self.config = config or SyncConfig()
        self.report = report
        self._modules: list[WorkspaceModule] | None = None
        self._module_dirs: list[str] | None = None

    @property
    def registry_path(self) -> Path:
        return self.workspace_root / self.config.module_registry_file

    def exists(self) -> bool:
        return self.registry_path.is_file()

    def module_dirs(self) -> list[str]:
        """Directories listed in go.work, in declaration order.

        A missing go.work yields an empty list.

        Raises:
            ModuleRegistryError: If go.work exists but cannot be read.
        """
        if self._module_dirs is None:
            try:
                content = self.registry_path.read_text(encoding="utf-8")
            except FileNotFoundError:
                content = ""
            except (OSError, UnicodeDecodeError) as exc:
                raise ModuleRegistryError(f"cannot read {self.registry_path}: {exc}") from exc
            self._module_dirs = parse_use_directives(content)
        return list(self._module_dirs)

    def parse_modules(self) -> list[WorkspaceModule]:
        """Return every module whose go.mod declares an import path.

        The workspace root itself (``use .``) is not treated as a module.
        Entries whose go.mod is missing or unreadable are skipped with a
        warning; duplicate import paths keep the first declaration.
        """
        if self._modules is not None:
            return list(self._modules)

        modules: list[WorkspaceModule] = []
        seen: set[str] = set()
        for module_dir in self.module_dirs():
            if module_dir == ".":
                continue
            go_mod = self.workspace_root / module_dir / self.config.module_boundary_file
            import_path = read_module_path(go_mod)
            if import_path is None:
                self._warn(f"skipping {module_dir}: no readable module path in {go_mod.name}")
                continue
            if import_path in seen:
                self._warn(f"skipping {module_dir}: module {import_path} is already registered")
                continue
            seen.add(import_path)
            modules.append(WorkspaceModule(import_path=import_path, path=module_dir))

        self._modules = modules
        return list(modules)

    def known_imports(self) -> list[str]:
        """Import paths of every registered module, sorted."""
        return sorted(module.import_path for module in self.parse_modules())

    def module_for_import(self, import_path: str) -> WorkspaceModule | None:
        """Return the module owning *import_path*, longest prefix first."""
        candidates = sorted(self.parse_modules(), key=lambda m: len(m.import_path), reverse=True)
        for module in candidates:
            if import_path == module.import_path or import_path.startswith(module.import_path + "/"):
                return module
        return None

    def resolve_import_to_path(self, import_path: str) -> str | None:
        """Map *import_path* to a workspace-relative directory.

        Returns ``None`` for imports outside the workspace and for in-workspace
        imports whose directory does not exist.
        """
        module = self.module_for_import(import_path)
        if module is None:
            return None
        remainder = import_path[len(module.import_path):].lstrip("/")
        candidate = PurePosixPath(module.path) / remainder if remainder else PurePosixPath(module.path)
        if not (self.workspace_root / candidate).is_dir():
            return None
        return candidate.as_posix()

    def _warn(self, message: str) -> None:
        if self.report is not None:
            self.report.warn(message)
