"""Synchronization Orchestrator.

Regenerates every Bazel file of a workspace from scratch:

Step 1: DETECT     -- collect the languages declared in forge.json.
Step 2: CLEAN      -- delete every BUILD.bazel file and MODULE.bazel.
Step 3: MODULE     -- write go.work if missing, then MODULE.bazel.
Step 4: BUILD      -- discover Go packages and render their BUILD.bazel files;
                      render BUILD.bazel for NestJS and frontend projects.
Step 5: RECONCILE  -- bazel mod tidy, restore blank-imported drivers, gazelle
                      update-repos (best effort, skipped in dry-run).

There is no incremental mode and no rollback: a run interrupted between steps
2 and 4 leaves the workspace without some of its build files until the next
successful sync. Runs are strictly sequential and assume one sync per
workspace at a time.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Callable

from jinja2 import TemplateError

from forge.config import SyncConfig
from forge.errors import CommandError, ManifestError, SyncError, WorkspaceValidationError
from forge.sync.build import BuildFileGenerator
from forge.sync.discover import PackageDiscoverer
from forge.sync.fixtures import FixtureResolver
from forge.sync.imports import extract_import_specs
from forge.sync.models import DiscoveredPackage, SyncReport
from forge.sync.modules import ModuleRegistry
from forge.templates import TemplateRenderer, go_repo_name
from forge.utils import (
    CommandRunner,
    console,
    print_info,
    print_step_header,
    print_success,
    print_summary_table,
    relative_posix,
    write_text_file,
)
from forge.workspace.manifest import load_workspace, validate_workspace
from forge.workspace.models import JS_LANGUAGES, Language, WorkspaceConfig

_USE_REPO_RE = r"use_repo\(\s*{extension}\b(?P<body>[^)]*)\)"


class Syncer:
    """Keeps a workspace's Bazel files in step with its projects.

    All collaborators are injected; nothing is read from process-wide state.

    Args:
        workspace_root: Workspace directory (holds forge.json).
        workspace: Loaded manifest.
        config: Sync configuration; ``config.dry_run`` turns every write and
            delete into a report entry.
        runner: Executes external tools.
        renderer: Renders the Bazel templates.
    """

    def __init__(
        self,
        workspace_root: str | Path,
        workspace: WorkspaceConfig,
        config: SyncConfig | None = None,
        runner: CommandRunner | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.workspace_root = Path(workspace_root).resolve()
        self.workspace = workspace
        self.config = config or SyncConfig()
        self.runner = runner or CommandRunner()
        self.renderer = renderer or TemplateRenderer()

    @classmethod
    def from_workspace(
        cls,
        workspace_root: str | Path,
        config: SyncConfig | None = None,
        runner: CommandRunner | None = None,
    ) -> "Syncer":
        """Load forge.json from *workspace_root* and build a ``Syncer``.

        Raises:
            ManifestError: If the manifest cannot be loaded.
        """
        config = config or SyncConfig()
        workspace = load_workspace(workspace_root, config.manifest_file)
        return cls(workspace_root, workspace, config=config, runner=runner)

    @property
    def dry_run(self) -> bool:
        return self.config.dry_run

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def sync(self) -> SyncReport:
        """Run a full synchronization and return what changed.

        Raises:
            ForgeError: On any fatal condition (unreadable go.work, walk
                failure on the workspace root, write or delete failure).
        """
        report = SyncReport(dry_run=self.dry_run)
        registry = ModuleRegistry(self.workspace_root, self.config, report)
        fixtures = FixtureResolver(self.workspace_root, registry, self.config)
        generator = BuildFileGenerator(
            self.workspace_root,
            self.workspace,
            self.renderer,
            registry,
            fixtures,
            self.config,
        )

        print_step_header(1, "Detect languages")
        languages = self.detect_languages()
        if languages:
            print_info(f"Active languages: {', '.join(languages)}")
        else:
            print_info(f"No projects registered in {self.config.manifest_file}")
        if self.dry_run:
            print_info("Dry run: no files will be changed")

        print_step_header(2, "Delete generated files")
        self.delete_generated_files(report)

        print_step_header(3, "Regenerate module descriptor")
        if Language.GO.value in languages:
            self.ensure_module_registry(generator, report)
        self.regenerate_module_descriptor(languages, generator, report)

        print_step_header(4, "Regenerate build files")
        packages = self.regenerate_all_build_descriptions(languages, generator, report)

        if self.dry_run or self.config.skip_external:
            print_info("Skipping external tools")
        else:
            print_step_header(5, "Reconcile dependencies")
            self.reconcile_external_tools(languages, registry, packages, report)

        console.print()
        print_summary_table(report.as_summary(), title="Sync report")
        if report.ok:
            print_success("Sync complete")
        else:
            print_success(f"Sync complete with {len(report.errors)} warning(s)")
        return report

    def validate(self) -> None:
        """Shallow workspace checks.

        Verifies that forge.json loads and passes the manifest sanity checks
        and that MODULE.bazel exists. Cross-checks between generated files and
        the manifest (orphaned BUILD files, drift) are not implemented yet.

        Raises:
            WorkspaceValidationError: With every problem found.
        """
        problems: list[str] = []
        try:
            workspace = load_workspace(self.workspace_root, self.config.manifest_file)
        except ManifestError as exc:
            problems.append(str(exc))
        else:
            problems.extend(validate_workspace(workspace, self.workspace_root))

        if not (self.workspace_root / self.config.module_descriptor_file).is_file():
            problems.append(f"{self.config.module_descriptor_file} not found")

        if problems:
            raise WorkspaceValidationError(problems)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def detect_languages(self) -> list[str]:
        """Distinct languages declared by the manifest's projects, sorted."""
        return self.workspace.languages()

    def find_generated_files(self, report: SyncReport | None = None) -> list[Path]:
        """Every BUILD.bazel in the tree plus the root MODULE.bazel, sorted."""
        found: list[Path] = []

        def on_error(error: OSError) -> None:
            if error.filename is None or Path(error.filename) == self.workspace_root:
                raise SyncError("clean", f"cannot walk {self.workspace_root}: {error}") from error
            if report is not None:
                report.warn(f"cannot read directory {error.filename}: {error.strerror or error}")

        for dirpath, dirnames, filenames in os.walk(self.workspace_root, onerror=on_error):
            dirnames[:] = sorted(d for d in dirnames if not self.config.is_skipped_dir(d))
            if self.config.build_file_name in filenames:
                found.append(Path(dirpath) / self.config.build_file_name)

        module_file = self.workspace_root / self.config.module_descriptor_file
        if module_file.is_file():
            found.append(module_file)
        return sorted(found)

    def delete_generated_files(self, report: SyncReport) -> None:
        for path in self.find_generated_files(report):
            rel = relative_posix(path, self.workspace_root)
            if self.dry_run:
                print_info(f"Would delete {rel}")
            else:
                try:
                    path.unlink()
                except OSError as exc:
                    raise SyncError("clean", f"cannot delete {rel}: {exc}") from exc
            report.deleted_files.append(rel)
        print_info(f"{len(report.deleted_files)} generated file(s) removed")

    def ensure_module_registry(self, generator: BuildFileGenerator, report: SyncReport) -> None:
        """Write go.work from the manifest's Go projects if it does not exist."""
        if generator.registry.exists():
            return
        module_dirs = [
            project.normalized_root
            for _, project in self.workspace.sorted_projects()
            if project.language == Language.GO.value
            and (self.workspace_root / project.normalized_root / self.config.module_boundary_file).is_file()
        ]
        if not module_dirs:
            return
        self._write(self.config.module_registry_file, generator.generate_module_registry(module_dirs), report)

    def regenerate_module_descriptor(
        self,
        languages: list[str],
        generator: BuildFileGenerator,
        report: SyncReport,
    ) -> None:
        content = self._render("module", lambda: generator.generate_module_descriptor(languages))
        self._write(self.config.module_descriptor_file, content, report)

    def regenerate_all_build_descriptions(
        self,
        languages: list[str],
        generator: BuildFileGenerator,
        report: SyncReport,
    ) -> list[DiscoveredPackage]:
        """Render BUILD.bazel for every Go package and JS project.

        Returns the discovered Go packages for the reconciliation step.
        """
        packages: list[DiscoveredPackage] = []
        if Language.GO.value in languages:
            discoverer = PackageDiscoverer(
                self.workspace_root,
                self.workspace.workspace.base_import_path,
                self.config,
                report,
            )
            packages = discoverer.discover()
            print_info(f"Found {len(packages)} Go package(s)")
            for package in packages:
                print_info(f"  {package.path} ({package.kind})")
                content = self._render(package.path, lambda: generator.generate(package))
                self._write(self._build_file(package.path), content, report)

        if any(language in JS_LANGUAGES for language in languages):
            for name, project in self.workspace.sorted_projects():
                content = self._render(name, lambda: generator.generate_js_build(name, project))
                if content is None:
                    continue
                print_info(f"  {project.normalized_root} ({project.language})")
                self._write(self._build_file(project.normalized_root), content, report)

        return packages

    def reconcile_external_tools(
        self,
        languages: list[str],
        registry: ModuleRegistry,
        packages: list[DiscoveredPackage],
        report: SyncReport,
    ) -> None:
        """Run the dependency tools; failures become report warnings."""
        self._run_tool(self.config.bazel_bin, ["mod", "tidy"], report)

        if Language.GO.value not in languages:
            return

        added = self.restore_indirect_deps(packages, report)
        if added:
            print_info(f"Restored {len(added)} indirect dependency repo(s): {', '.join(added)}")

        if not registry.exists():
            report.warn(
                f"{self.config.module_registry_file} not found; skipping {self.config.gazelle_bin} update-repos"
            )
            return

        args = [
            "update-repos",
            f"-from_file={self.config.module_registry_file}",
            *(f"-known_import={path}" for path in registry.known_imports()),
        ]
        env = {"GOWORK": str(registry.registry_path)}
        self._run_tool(self.config.gazelle_bin, args, report, env=env)

    def restore_indirect_deps(self, packages: list[DiscoveredPackage], report: SyncReport) -> list[str]:
        """Re-add blank-imported driver repos that ``bazel mod tidy`` drops.

        Returns the repository names that were added to ``use_repo(go_deps)``.
        """
        needed = self.find_blank_imported_deps(packages)
        if not needed:
            return []

        module_file = self.workspace_root / self.config.module_descriptor_file
        try:
            content = module_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            report.warn(f"cannot restore indirect dependencies: {exc}")
            return []

        updated, added = add_use_repos(content, "go_deps", [go_repo_name(dep) for dep in needed])
        if added:
            self._write(self.config.module_descriptor_file, updated, report, record=False)
        return added

    def find_blank_imported_deps(self, packages: list[DiscoveredPackage]) -> list[str]:
        """Known indirect modules that some package imports only for side effects."""
        found: set[str] = set()
        for package in packages:
            for name in package.source_files + package.test_files:
                path = self.workspace_root / package.path / name
                try:
                    content = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError):
                    continue
                for spec in extract_import_specs(content):
                    if not spec.is_blank:
                        continue
                    for module in self.config.known_indirect_deps:
                        if spec.path == module or spec.path.startswith(module + "/"):
                            found.add(module)
        return sorted(found)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build_file(self, directory: str) -> str:
        if directory in ("", "."):
            return self.config.build_file_name
        return f"{directory}/{self.config.build_file_name}"

    def _render(self, subject: str, render: Callable[[], str | None]) -> str | None:
        try:
            return render()
        except TemplateError as exc:
            raise SyncError("render", f"cannot render {subject}: {exc}") from exc

    def _write(self, rel_path: str, content: str, report: SyncReport, record: bool = True) -> None:
        if record and rel_path in report.created_files:
            report.warn(f"{rel_path} is generated twice; keeping the last version")
        if self.dry_run:
            print_info(f"Would write {rel_path}")
        else:
            try:
                write_text_file(self.workspace_root / rel_path, content)
            except OSError as exc:
                raise SyncError("write", f"cannot write {rel_path}: {exc}") from exc
        if record and rel_path not in report.created_files:
            report.created_files.append(rel_path)

    def _run_tool(
        self,
        name: str,
        args: list[str],
        report: SyncReport,
        env: dict[str, str] | None = None,
    ) -> None:
        command = " ".join([name, *args])
        print_info(f"Running {command}")
        try:
            self.runner.run(name, args, self.workspace_root, env=env)
        except CommandError as exc:
            report.warn(f"{name} failed, continuing without it: {exc}")


def add_use_repos(content: str, extension: str, repos: list[str]) -> tuple[str, list[str]]:
    """Ensure ``use_repo(<extension>, ...)`` in *content* lists every repo.

    The call is rewritten in the one-repo-per-line form ``bazel mod tidy``
    produces, or appended when the file has none.

    Returns:
        The updated content and the sorted list of repos that were added.
    """
    pattern = re.compile(_USE_REPO_RE.format(extension=re.escape(extension)), re.DOTALL)
    match = pattern.search(content)
    existing = set(re.findall(r'"([^"]+)"', match.group("body"))) if match else set()
    added = sorted(set(repos) - existing)
    if not added:
        return content, []

    names = sorted(existing | set(added))
    call = "use_repo(\n    {ext},\n{repos})".format(
        ext=extension,
        repos="".join(f'    "{name}",\n' for name in names),
    )
    if match:
        updated = content[: match.start()] + call + content[match.end():]
    else:
        updated = content.rstrip("\n") + "\n\n" + call + "\n"
    return updated, added
