"""Pydantic v2 models for the ``forge.json`` workspace manifest.

The manifest is owned by the project generators; the sync engine only reads
it. Field names follow the JSON document (camelCase) through aliases while
the Python attributes stay snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ProjectType(str, Enum):
    """Role of a project inside the workspace."""
    SERVICE = "service"
    APPLICATION = "application"
    LIBRARY = "library"


class Language(str, Enum):
    """Language or framework a project is written in."""
    GO = "go"
    NESTJS = "nestjs"
    ANGULAR = "angular"
    REACT = "react"
    VUE = "vue"


FRONTEND_LANGUAGES = frozenset({Language.ANGULAR.value, Language.REACT.value})
JS_LANGUAGES = frozenset({Language.NESTJS.value, *FRONTEND_LANGUAGES})


class _ManifestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# ---------------------------------------------------------------------------
# Architect targets
# ---------------------------------------------------------------------------

class ArchitectTarget(_ManifestModel):
    """A build/serve/deploy/test target descriptor."""
    builder: Optional[str] = None
    deployer: Optional[str] = None
    options: dict[str, Any] = Field(default_factory=dict)
    configurations: dict[str, Any] = Field(default_factory=dict)
    default_configuration: Optional[str] = Field(default=None, alias="defaultConfiguration")


class Architect(_ManifestModel):
    """Named targets attached to a project."""
    build: Optional[ArchitectTarget] = None
    serve: Optional[ArchitectTarget] = None
    deploy: Optional[ArchitectTarget] = None
    test: Optional[ArchitectTarget] = None


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------

class Project(_ManifestModel):
    """A registered project (service, application or library)."""
    project_type: str = Field(..., alias="projectType", description="service | application | library")
    language: str = Field(..., description="go, nestjs, angular, react, ...")
    root: str = Field(..., description="Workspace-relative project directory")
    tags: list[str] = Field(default_factory=list)
    architect: Optional[Architect] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def normalized_root(self) -> str:
        """Project root without ``./`` prefix or trailing slash."""
        root = self.root.strip().replace("\\", "/")
        while root.startswith("./"):
            root = root[2:]
        return root.rstrip("/") or "."

    @property
    def is_deployable(self) -> bool:
        """Services and applications inherit their dependencies transitively."""
        return self.project_type in (ProjectType.SERVICE.value, ProjectType.APPLICATION.value)


# ---------------------------------------------------------------------------
# Workspace metadata
# ---------------------------------------------------------------------------

class ToolVersions(_ManifestModel):
    """Locked versions of framework tools."""
    angular: Optional[str] = None
    go: Optional[str] = None
    nestjs: Optional[str] = None
    node: Optional[str] = None
    bazel: Optional[str] = None


class WorkspacePaths(_ManifestModel):
    """Workspace directory layout."""
    services: Optional[str] = None
    frontend_apps: Optional[str] = Field(default=None, alias="frontendApps")
    infrastructure: Optional[str] = None
    shared: Optional[str] = None
    docs: Optional[str] = None


class GitHubConfig(_ManifestModel):
    org: str = ""


class DockerConfig(_ManifestModel):
    registry: str = ""


class GCPConfig(_ManifestModel):
    project_id: str = Field(default="", alias="projectId")
    region: Optional[str] = None


class KubernetesConfig(_ManifestModel):
    namespace: str = ""
    context: Optional[str] = None


class WorkspaceMetadata(_ManifestModel):
    """Workspace-level metadata."""
    name: str = Field(..., description="Workspace name, used for image tags and module names")
    forge_version: str = Field(default="1.0.0", alias="forgeVersion")
    tool_versions: Optional[ToolVersions] = Field(default=None, alias="toolVersions")
    paths: Optional[WorkspacePaths] = None
    github: Optional[GitHubConfig] = None
    docker: Optional[DockerConfig] = None
    gcp: Optional[GCPConfig] = None
    kubernetes: Optional[KubernetesConfig] = None

    @property
    def base_import_path(self) -> str:
        """Import-path root for code that sits outside every Go module."""
        if self.github is not None and self.github.org:
            return f"github.com/{self.github.org}/{self.name}"
        return self.name


# ---------------------------------------------------------------------------
# Top-level manifest
# ---------------------------------------------------------------------------

class WorkspaceConfig(_ManifestModel):
    """The complete ``forge.json`` document."""
    schema_ref: Optional[str] = Field(default=None, alias="$schema")
    version: str = Field(default="1")
    workspace: WorkspaceMetadata
    new_project_root: Optional[str] = Field(default=None, alias="newProjectRoot")
    projects: dict[str, Project] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> Any:
        # Accept `"version": 1` as well as `"version": "1"`.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def add_project(self, name: str, project: Project) -> None:
        """Register *project* under *name*; names are unique."""
        if name in self.projects:
            raise ValueError(f"project {name!r} already exists")
        self.projects[name] = project

    def remove_project(self, name: str) -> Project:
        """Remove and return the project registered under *name*."""
        if name not in self.projects:
            raise KeyError(f"project {name!r} not found")
        return self.projects.pop(name)

    def get_project(self, name: str) -> Project | None:
        return self.projects.get(name)

    def sorted_projects(self) -> list[tuple[str, Project]]:
        """Projects ordered by name, for deterministic iteration."""
        return sorted(self.projects.items())

    def languages(self) -> list[str]:
        """Distinct declared languages, sorted."""
        return sorted({p.language for p in self.projects.values() if p.language})

    @property
    def go_version(self) -> str | None:
        tools = self.workspace.tool_versions
        return tools.go if tools is not None and tools.go else None
