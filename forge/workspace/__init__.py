"""Workspace manifest (``forge.json``) models and persistence."""

from forge.workspace.manifest import load_workspace, save_workspace, validate_workspace
from forge.workspace.models import Language, Project, ProjectType, WorkspaceConfig

__all__ = [
    "Language",
    "Project",
    "ProjectType",
    "WorkspaceConfig",
    "load_workspace",
    "save_workspace",
    "validate_workspace",
]
