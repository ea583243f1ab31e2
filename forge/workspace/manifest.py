"""Load, save and sanity-check the ``forge.json`` manifest."""

from __future__ import annotations

import json
import re
from pathlib import Path

from pydantic import ValidationError

from forge.errors import ManifestError
from forge.workspace.models import ProjectType, WorkspaceConfig

MANIFEST_FILE = "forge.json"

# Kebab-case: lowercase letters and digits in hyphen-separated groups.
_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")


def manifest_path(workspace_root: str | Path, filename: str = MANIFEST_FILE) -> Path:
    return Path(workspace_root) / filename


def load_workspace(workspace_root: str | Path, filename: str = MANIFEST_FILE) -> WorkspaceConfig:
    """Load and validate the manifest of the workspace at *workspace_root*.

    Raises:
        ManifestError: If the file is missing, unreadable, not JSON, or does
            not match the manifest model.
    """
    path = manifest_path(workspace_root, filename)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestError(f"{filename} not found in {Path(workspace_root)}", str(path)) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"cannot read {path}: {exc}", str(path)) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"{path} is not valid JSON: {exc}", str(path)) from exc

    try:
        return WorkspaceConfig.model_validate(data)
    except ValidationError as exc:
        raise ManifestError(f"{path} is invalid: {exc}", str(path)) from exc


def save_workspace(
    config: WorkspaceConfig,
    workspace_root: str | Path,
    filename: str = MANIFEST_FILE,
) -> Path:
    """Write *config* as pretty-printed JSON with camelCase keys."""
    path = manifest_path(workspace_root, filename)
    payload = config.model_dump(mode="json", by_alias=True, exclude_none=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path


def validate_name(name: str) -> bool:
    """Return ``True`` if *name* is kebab-case."""
    return bool(_NAME_PATTERN.match(name))


def validate_workspace(config: WorkspaceConfig, workspace_root: str | Path) -> list[str]:
    """Shallow semantic checks on a loaded manifest.

    Returns a list of human-readable problems (empty when everything looks
    fine). Cross-checks between the manifest and generated files are not
    performed.
    """
    root = Path(workspace_root)
    problems: list[str] = []

    if not config.workspace.name:
        problems.append("workspace name is required")
    elif not validate_name(config.workspace.name):
        problems.append(f"workspace name {config.workspace.name!r} is not kebab-case")

    valid_types = {t.value for t in ProjectType}
    for name, project in config.sorted_projects():
        if not validate_name(name):
            problems.append(f"project name {name!r} is not kebab-case")
        if project.project_type not in valid_types:
            problems.append(f"project {name!r}: invalid project type {project.project_type!r}")
        if not project.root.strip():
            problems.append(f"project {name!r}: root is required")
        elif not (root / project.normalized_root).is_dir():
            problems.append(f"project {name!r}: root {project.root!r} does not exist")

    return problems
