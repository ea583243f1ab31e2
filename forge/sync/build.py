"""Build Description Generator.

Assembles the input record for every generated Bazel file and hands it to the
template renderer. Nothing in this module writes files or formats Starlark by
hand; it only decides *what* goes into each template.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Any

from forge.config import SyncConfig
from forge.sync.fixtures import FixtureResolver
from forge.sync.models import DiscoveredPackage
from forge.sync.modules import ModuleRegistry
from forge.templates import TemplateRenderer
from forge.workspace.models import FRONTEND_LANGUAGES, JS_LANGUAGES, Language, Project, WorkspaceConfig

MODULE_TEMPLATE = "bazel/MODULE.bazel.j2"
MODULE_ROOT_TEMPLATE = "bazel/go-root.BUILD.bazel.j2"
BINARY_TEMPLATE = "bazel/go-binary.BUILD.bazel.j2"
LIBRARY_TEMPLATE = "bazel/go-library.BUILD.bazel.j2"
NESTJS_TEMPLATE = "bazel/nestjs.BUILD.bazel.j2"
FRONTEND_TEMPLATE = "bazel/angular.BUILD.bazel.j2"
MODULE_REGISTRY_TEMPLATE = "bazel/go.work.j2"

DEFAULT_NODE_VERSION = "22.11.0"

# React apps are built with the Angular pipeline, as they are scaffolded.
FRONTEND_CONFIG_FILES = [
    "angular.json",
    "package.json",
    "tsconfig.json",
    "tsconfig.app.json",
    "tsconfig.spec.json",
]
FRONTEND_BUILD_COMMAND = "./node_modules/.bin/ng build --configuration=production"


class BuildFileGenerator:
    """Renders MODULE.bazel, go.work and per-package BUILD.bazel content.

    Args:
        workspace_root: Absolute workspace directory.
        workspace: Loaded ``forge.json`` manifest.
        renderer: Template renderer.
        registry: Module registry of the current sync pass.
        fixtures: Fixture resolver of the current sync pass.
        config: Sync configuration.
    """

    def __init__(
        self,
        workspace_root: str | Path,
        workspace: WorkspaceConfig,
        renderer: TemplateRenderer,
        registry: ModuleRegistry,
        fixtures: FixtureResolver,
        config: SyncConfig | None = None,
    ) -> None:
        self.workspace_root = Path(workspace_root)
        self.workspace = workspace
        self.renderer = renderer
        self.registry = registry
        self.fixtures = fixtures
        self.config = config or SyncConfig()

    # -- Go packages -------------------------------------------------------

    def generate(self, package: DiscoveredPackage) -> str:
        """Return the BUILD.bazel content for *package*."""
        template, context = self.build_context(package)
        return self.renderer.render(template, context)

    def build_context(self, package: DiscoveredPackage) -> tuple[str, dict[str, Any]]:
        """Pick the template for *package* and assemble its input record."""
        if package.is_module_root:
            return MODULE_ROOT_TEMPLATE, self._module_root_context(package)
        if package.is_binary:
            return BINARY_TEMPLATE, self._binary_context(package)
        return LIBRARY_TEMPLATE, self._library_context(package)

    def _module_root_context(self, package: DiscoveredPackage) -> dict[str, Any]:
        modules = [
            {"import_path": module.import_path, "path": module.path}
            for module in sorted(self.registry.parse_modules(), key=lambda m: m.import_path)
            if module.import_path != package.import_path
        ]
        return {"import_path": package.import_path, "modules": modules}

    def _binary_context(self, package: DiscoveredPackage) -> dict[str, Any]:
        binary_name = self._base_name(package.path)
        return {
            **self._common_context(package),
            "binary_name": binary_name,
            "image_tag": f"{self.workspace.workspace.name}/{binary_name}:latest",
        }

    def _library_context(self, package: DiscoveredPackage) -> dict[str, Any]:
        test_data_deps: list[str] = []
        if package.has_tests:
            test_data_deps = self.fixtures.find_fixture_deps(package.path, package.test_files)
        return {
            **self._common_context(package),
            "package_name": self._base_name(package.path),
            "test_data_deps": test_data_deps,
        }

    def _common_context(self, package: DiscoveredPackage) -> dict[str, Any]:
        return {
            "import_path": package.import_path,
            "files": list(package.source_files),
            "test_files": list(package.test_files),
            "has_tests": package.has_tests,
            "has_migrations": self.fixtures.has_local_fixtures(package.path),
            "fixtures_dir": self.config.fixtures_dir,
            "fixture_target_name": self.config.fixture_target_name,
        }

    def _base_name(self, package_path: str) -> str:
        name = PurePosixPath(package_path).name
        return name or self.workspace_root.name

    # -- Module descriptor -------------------------------------------------

    def generate_module_descriptor(self, languages: list[str]) -> str:
        """Return the MODULE.bazel content for the active *languages*."""
        return self.renderer.render(MODULE_TEMPLATE, self.module_descriptor_context(languages))

    def module_descriptor_context(self, languages: list[str]) -> dict[str, Any]:
        has_go = Language.GO.value in languages
        has_js = any(language in JS_LANGUAGES for language in languages)

        go_modules: list[str] = []
        if has_go:
            deployable_roots = {
                project.normalized_root
                for project in self.workspace.projects.values()
                if project.is_deployable
            }
            go_modules = sorted(
                module_dir
                for module_dir in self.registry.module_dirs()
                if module_dir != "." and module_dir not in deployable_roots
            )

        base_images: list[str] = []
        if has_go:
            base_images.append("distroless_base")
        if has_js:
            base_images.append("distroless_nodejs")

        tools = self.workspace.workspace.tool_versions
        return {
            "module_name": self.workspace.workspace.name,
            "version": self.config.module_version,
            "workspace_repo": self.workspace.workspace.base_import_path,
            "has_go": has_go,
            "has_module_registry": has_go and self.registry.exists(),
            "has_js": has_js,
            "go_version": self.workspace.go_version or self.config.default_go_version,
            "node_version": (tools.node if tools is not None and tools.node else DEFAULT_NODE_VERSION),
            "go_modules": go_modules,
            "base_images": base_images,
        }

    def generate_module_registry(self, module_dirs: list[str]) -> str:
        """Return go.work content listing *module_dirs*."""
        return self.renderer.render(
            MODULE_REGISTRY_TEMPLATE,
            {
                "go_version": self.workspace.go_version or self.config.default_go_version,
                "module_dirs": sorted(module_dirs),
            },
        )

    # -- JavaScript projects -----------------------------------------------

    def generate_js_build(self, name: str, project: Project) -> str | None:
        """Return BUILD.bazel content for a NestJS or frontend project.

        Returns ``None`` for languages without a Bazel pipeline.
        """
        context = {
            "project_name": name,
            "package_path": project.normalized_root,
            "workspace_name": self.workspace.workspace.name,
            "image_tag": f"{self.workspace.workspace.name}/{name}:latest",
        }
        if project.language == Language.NESTJS.value:
            return self.renderer.render(NESTJS_TEMPLATE, context)
        if project.language in FRONTEND_LANGUAGES:
            context["config_files"] = FRONTEND_CONFIG_FILES
            context["build_command"] = FRONTEND_BUILD_COMMAND
            return self.renderer.render(FRONTEND_TEMPLATE, context)
        return None
