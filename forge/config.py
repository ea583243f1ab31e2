"""forge sync configuration.

Centralised, typed configuration for the synchronization engine. Every file
name, directory convention and heuristic keyword the engine relies on lives
here so it can be validated at construction time and serialised to/from JSON
or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from forge.errors import ConfigError

_TRUTHY = {"1", "true", "yes", "on"}


class SyncConfig(BaseModel):
    """Tunable parameters of a workspace sync.

    Instances are created once by the CLI (or a test) and passed to the
    ``Syncer`` together with the loaded workspace manifest.
    """

    # File conventions
    manifest_file: str = Field(default="forge.json")
    build_file_name: str = Field(default="BUILD.bazel")
    module_descriptor_file: str = Field(default="MODULE.bazel")
    module_registry_file: str = Field(default="go.work")
    module_boundary_file: str = Field(default="go.mod")
    source_suffix: str = Field(default=".go")
    test_suffix: str = Field(default="_test.go")
    entry_package: str = Field(default="main", description="Package clause marking a binary")

    # Directories never walked
    skip_dirs: list[str] = Field(
        default=["bazel-bin", "bazel-out", "bazel-testlogs", ".git", "node_modules", "vendor"]
    )
    skip_dir_prefixes: list[str] = Field(default=["bazel-", "."])

    # Fixture conventions
    fixtures_dir: str = Field(default="migrations")
    fixture_provider_subpath: str = Field(
        default="cmd/migrator",
        description="Path below an ancestor that owns the conventional fixtures directory",
    )
    fixture_target_name: str = Field(default="migrations")
    fixture_relevance_keywords: list[str] = Field(
        default=["test", "migrat"],
        description="Substrings of an import path that make it worth following for fixtures",
    )
    max_fixture_depth: int = Field(default=32, ge=1)

    # Module descriptor
    default_go_version: str = Field(default="1.24.0")
    module_version: str = Field(default="0.1.0")
    known_indirect_deps: list[str] = Field(
        default=[
            "github.com/lib/pq",
            "github.com/jackc/pgx/v5",
            "github.com/go-sql-driver/mysql",
            "github.com/mattn/go-sqlite3",
        ],
        description="Modules usually only blank-imported, which the tidy step drops",
    )

    # External tools
    bazel_bin: str = Field(default="bazel")
    gazelle_bin: str = Field(default="gazelle")

    # Run mode
    dry_run: bool = Field(default=False)
    skip_external: bool = Field(default=False, description="Skip tidy/fix-up/graph resolution")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def is_skipped_dir(self, name: str) -> bool:
        """Return ``True`` if a directory called *name* must not be walked."""
        if name in self.skip_dirs:
            return True
        return any(name.startswith(prefix) for prefix in self.skip_dir_prefixes)

    def is_fixture_relevant(self, import_path: str) -> bool:
        """Substring heuristic deciding whether an import may carry fixtures."""
        return any(keyword in import_path for keyword in self.fixture_relevance_keywords)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "SyncConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "SyncConfig":
        """Build a ``SyncConfig`` from environment variables.

        Recognised variables (all optional):
            FORGE_DRY_RUN, FORGE_SKIP_EXTERNAL, FORGE_GO_VERSION,
            FORGE_MAX_FIXTURE_DEPTH, FORGE_BAZEL_BIN, FORGE_GAZELLE_BIN.

        Keyword *overrides* win over the environment.

        Raises:
            ConfigError: If a variable cannot be parsed or fails validation.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("FORGE_DRY_RUN"):
            kwargs["dry_run"] = os.environ["FORGE_DRY_RUN"].strip().lower() in _TRUTHY
        if os.environ.get("FORGE_SKIP_EXTERNAL"):
            kwargs["skip_external"] = os.environ["FORGE_SKIP_EXTERNAL"].strip().lower() in _TRUTHY
        if os.environ.get("FORGE_GO_VERSION"):
            kwargs["default_go_version"] = os.environ["FORGE_GO_VERSION"]
        if os.environ.get("FORGE_MAX_FIXTURE_DEPTH"):
            raw_depth = os.environ["FORGE_MAX_FIXTURE_DEPTH"]
            try:
                kwargs["max_fixture_depth"] = int(raw_depth)
            except ValueError:
                raise ConfigError(f"FORGE_MAX_FIXTURE_DEPTH must be an integer, got {raw_depth!r}") from None
        if os.environ.get("FORGE_BAZEL_BIN"):
            kwargs["bazel_bin"] = os.environ["FORGE_BAZEL_BIN"]
        if os.environ.get("FORGE_GAZELLE_BIN"):
            kwargs["gazelle_bin"] = os.environ["FORGE_GAZELLE_BIN"]
        kwargs.update(overrides)
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
