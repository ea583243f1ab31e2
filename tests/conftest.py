"""Shared pytest fixtures for the forge test suite.

Provides reusable fixtures for:
- Writing small workspaces (manifest + source tree) into a temp directory
- A recording fake for external commands (bazel, gazelle)
- The orders/web reference workspace used by the end-to-end sync tests
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest

from forge.config import SyncConfig
from forge.errors import CommandError


# ---------------------------------------------------------------------------
# Workspace builders
# ---------------------------------------------------------------------------

@pytest.fixture
def write_files() -> Callable[[Path, dict[str, str]], None]:
    """Return a helper writing ``{relative_path: content}`` under a root.

    Content is dedented so tests can use indented triple-quoted Go source.
    """

    def _write(root: Path, files: dict[str, str]) -> None:
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")

    return _write


@pytest.fixture
def make_manifest() -> Callable[..., dict[str, Any]]:
    """Return a builder for ``forge.json`` documents."""

    def _make(
        projects: dict[str, dict[str, Any]] | None = None,
        name: str = "acme",
        org: str = "acme-corp",
        go_version: str | None = "1.23.4",
    ) -> dict[str, Any]:
        workspace: dict[str, Any] = {"name": name, "forgeVersion": "1.0.0"}
        if org:
            workspace["github"] = {"org": org}
        if go_version:
            workspace["toolVersions"] = {"go": go_version, "node": "22.11.0"}
        return {
            "version": "1",
            "workspace": workspace,
            "newProjectRoot": "backend/services",
            "projects": projects or {},
        }

    return _make


@pytest.fixture
def make_workspace(
    tmp_path: Path,
    write_files: Callable[[Path, dict[str, str]], None],
    make_manifest: Callable[..., dict[str, Any]],
) -> Callable[..., Path]:
    """Return a builder that writes a manifest and files, returning the root."""

    def _make(
        projects: dict[str, dict[str, Any]] | None = None,
        files: dict[str, str] | None = None,
        **manifest_kwargs: Any,
    ) -> Path:
        root = tmp_path / "workspace"
        root.mkdir(exist_ok=True)
        manifest = make_manifest(projects, **manifest_kwargs)
        (root / "forge.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")
        write_files(root, files or {})
        return root

    return _make


# ---------------------------------------------------------------------------
# Reference workspace: Go service "orders" + Angular app "web"
# ---------------------------------------------------------------------------

ORDERS_PROJECTS = {
    "orders": {
        "projectType": "service",
        "language": "go",
        "root": "backend/services/orders",
        "tags": ["backend"],
    },
    "web": {
        "projectType": "application",
        "language": "angular",
        "root": "frontend/apps/web",
    },
}

ORDERS_FILES = {
    "backend/services/orders/go.mod": """
        module github.com/acme-corp/acme/backend/services/orders

        go 1.23.4
    """,
    "backend/services/orders/cmd/server/main.go": """
        package main

        import (
            "fmt"

            "github.com/acme-corp/acme/backend/services/orders/internal/store"
        )

        func main() {
            fmt.Println(store.Name)
        }
    """,
    "backend/services/orders/internal/store/store.go": """
        package store

        import _ "github.com/lib/pq"

        const Name = "orders"
    """,
    "backend/services/orders/internal/store/store_test.go": """
        package store

        import "testing"

        func TestName(t *testing.T) {}
    """,
    "frontend/apps/web/package.json": "{}\n",
    "frontend/apps/web/src/main.ts": "console.log('web');\n",
    # Stale files from a previous run
    "BUILD.bazel": "# stale root build\n",
    "MODULE.bazel": "# stale module\n",
    "backend/services/orders/BUILD.bazel": "# stale\n",
    "frontend/apps/web/BUILD.bazel": "# stale\n",
    "backend/services/orders/old/BUILD.bazel": "# stale, no sources left\n",
}


@pytest.fixture
def orders_workspace(make_workspace: Callable[..., Path]) -> Path:
    """Workspace with one Go service and one Angular app, plus stale files."""
    return make_workspace(ORDERS_PROJECTS, ORDERS_FILES)


# ---------------------------------------------------------------------------
# External command fakes
# ---------------------------------------------------------------------------


class FakeRunner:
    """Records every invocation instead of running anything.

    Args:
        fail: Executable names whose invocation raises ``CommandError``.
    """

    def __init__(self, fail: set[str] | None = None) -> None:
        self.calls: list[tuple[str, list[str], Path, dict[str, str] | None]] = []
        self.fail = fail or set()

    def run(
        self,
        name: str,
        args: list[str],
        cwd: str | Path,
        env: dict[str, str] | None = None,
    ) -> str:
        self.calls.append((name, list(args), Path(cwd), env))
        if name in self.fail:
            raise CommandError(
                f"Command failed (exit 1): {name}",
                command=" ".join([name, *args]),
                returncode=1,
                stderr="boom",
            )
        return ""

    def commands(self) -> list[str]:
        return [" ".join([name, *args]) for name, args, _, _ in self.calls]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def offline_config() -> SyncConfig:
    """Config for runs that must not reach any external tool."""
    return SyncConfig(skip_external=True)


@pytest.fixture
def runner_factory() -> type[FakeRunner]:
    """The ``FakeRunner`` class, for tests that need a configured instance."""
    return FakeRunner
