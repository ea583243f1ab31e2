"""Tests for the synchronization orchestrator (forge.sync.syncer)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from forge.config import SyncConfig
from forge.errors import ForgeError, ManifestError, SyncError, WorkspaceValidationError
from forge.sync.syncer import Syncer, add_use_repos


def _read(root: Path, rel: str) -> str:
    return (root / rel).read_text(encoding="utf-8")


def _snapshot(root: Path) -> dict[str, str]:
    return {
        path.relative_to(root).as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestSyncEndToEnd:
    def test_orders_and_web(self, orders_workspace: Path, offline_config: SyncConfig):
        report = Syncer.from_workspace(orders_workspace, offline_config).sync()

        assert sorted(report.deleted_files) == [
            "BUILD.bazel",
            "MODULE.bazel",
            "backend/services/orders/BUILD.bazel",
            "backend/services/orders/old/BUILD.bazel",
            "frontend/apps/web/BUILD.bazel",
        ]
        assert sorted(report.created_files) == [
            "MODULE.bazel",
            "backend/services/orders/BUILD.bazel",
            "backend/services/orders/cmd/server/BUILD.bazel",
            "backend/services/orders/internal/store/BUILD.bazel",
            "frontend/apps/web/BUILD.bazel",
            "go.work",
        ]
        assert report.ok

        assert not (orders_workspace / "BUILD.bazel").exists()
        assert not (orders_workspace / "backend/services/orders/old/BUILD.bazel").exists()

        module = _read(orders_workspace, "MODULE.bazel")
        assert module.count("module(") == 1
        assert "rules_go" in module
        assert "aspect_rules_js" in module

        assert "gazelle:prefix github.com/acme-corp/acme/backend/services/orders" in _read(
            orders_workspace, "backend/services/orders/BUILD.bazel"
        )
        server = _read(orders_workspace, "backend/services/orders/cmd/server/BUILD.bazel")
        assert "go_binary(" in server
        assert 'repo_tags = ["acme/server:latest"]' in server
        web = _read(orders_workspace, "frontend/apps/web/BUILD.bazel")
        assert 'repo_tags = ["acme/web:latest"]' in web

        go_work = _read(orders_workspace, "go.work")
        assert "./backend/services/orders" in go_work

    def test_second_run_is_identical(self, orders_workspace: Path, offline_config: SyncConfig):
        Syncer.from_workspace(orders_workspace, offline_config).sync()
        first = _snapshot(orders_workspace)
        report = Syncer.from_workspace(orders_workspace, offline_config).sync()
        assert _snapshot(orders_workspace) == first
        # go.work is kept once it exists.
        assert "go.work" not in report.created_files

    def test_existing_go_work_is_not_rewritten(
        self, orders_workspace: Path, offline_config: SyncConfig
    ):
        (orders_workspace / "go.work").write_text(
            "go 1.23.4\n\nuse ./backend/services/orders // hand-written\n", encoding="utf-8"
        )
        Syncer.from_workspace(orders_workspace, offline_config).sync()
        assert "hand-written" in _read(orders_workspace, "go.work")

    def test_dry_run_changes_nothing(self, orders_workspace: Path):
        before = _snapshot(orders_workspace)
        report = Syncer.from_workspace(orders_workspace, SyncConfig(dry_run=True)).sync()
        assert report.dry_run
        assert "backend/services/orders/BUILD.bazel" in report.deleted_files
        assert "backend/services/orders/cmd/server/BUILD.bazel" in report.created_files
        assert _snapshot(orders_workspace) == before

    def test_frontend_only_workspace(self, make_workspace, offline_config: SyncConfig):
        root = make_workspace(
            {"web": {"projectType": "application", "language": "angular", "root": "apps/web"}},
            {"apps/web/src/main.ts": "x\n", "tools/gen/main.go": "package main\n"},
        )
        report = Syncer.from_workspace(root, offline_config).sync()
        # Go sources are ignored when no Go project is declared.
        assert sorted(report.created_files) == ["MODULE.bazel", "apps/web/BUILD.bazel"]
        assert "rules_go" not in _read(root, "MODULE.bazel")

    def test_empty_manifest(self, make_workspace, offline_config: SyncConfig):
        root = make_workspace({}, {"lib/BUILD.bazel": "# stale\n"})
        report = Syncer.from_workspace(root, offline_config).sync()
        assert report.deleted_files == ["lib/BUILD.bazel"]
        assert report.created_files == ["MODULE.bazel"]

    def test_bad_package_is_a_warning(self, orders_workspace: Path, write_files, offline_config):
        write_files(orders_workspace, {"backend/services/orders/broken/x.go": "not go at all\n"})
        report = Syncer.from_workspace(orders_workspace, offline_config).sync()
        assert len(report.errors) == 1
        assert "backend/services/orders/broken/BUILD.bazel" not in report.created_files
        assert "backend/services/orders/cmd/server/BUILD.bazel" in report.created_files

    def test_skipped_directories_are_not_cleaned(
        self, orders_workspace: Path, write_files, offline_config
    ):
        write_files(orders_workspace, {
            "frontend/apps/web/node_modules/pkg/BUILD.bazel": "# third party\n",
            "bazel-out/k8/BUILD.bazel": "# output\n",
        })
        Syncer.from_workspace(orders_workspace, offline_config).sync()
        assert (orders_workspace / "frontend/apps/web/node_modules/pkg/BUILD.bazel").exists()
        assert (orders_workspace / "bazel-out/k8/BUILD.bazel").exists()

    def test_missing_manifest(self, tmp_path: Path):
        with pytest.raises(ManifestError):
            Syncer.from_workspace(tmp_path)

    def test_unreadable_go_work_is_fatal(self, orders_workspace: Path, offline_config):
        (orders_workspace / "go.work").mkdir()
        with pytest.raises(ForgeError) as excinfo:
            Syncer.from_workspace(orders_workspace, offline_config).sync()
        assert "go.work" in str(excinfo.value)

    def test_write_failure_is_fatal(self, orders_workspace: Path, offline_config):
        # A directory where the binary's BUILD file should go cannot be written.
        (orders_workspace / "backend/services/orders/cmd/server/BUILD.bazel").mkdir()
        with pytest.raises(SyncError):
            Syncer.from_workspace(orders_workspace, offline_config).sync()


# ---------------------------------------------------------------------------
# External tool reconciliation
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestReconcile:
    def test_tool_invocations(self, orders_workspace: Path, fake_runner):
        syncer = Syncer.from_workspace(orders_workspace, SyncConfig(), runner=fake_runner)
        report = syncer.sync()

        commands = fake_runner.commands()
        assert commands[0] == "bazel mod tidy"
        assert commands[1] == (
            "gazelle update-repos -from_file=go.work "
            "-known_import=github.com/acme-corp/acme/backend/services/orders"
        )
        for _, _, cwd, _ in fake_runner.calls:
            assert cwd == orders_workspace.resolve()
        assert fake_runner.calls[1][3] == {"GOWORK": str(orders_workspace.resolve() / "go.work")}
        assert report.ok

    def test_blank_imported_driver_is_restored(self, orders_workspace: Path, fake_runner):
        Syncer.from_workspace(orders_workspace, SyncConfig(), runner=fake_runner).sync()
        module = _read(orders_workspace, "MODULE.bazel")
        assert 'use_repo(\n    go_deps,\n    "com_github_lib_pq",\n)' in module

    def test_tool_failures_are_warnings(self, orders_workspace: Path, runner_factory):
        runner = runner_factory(fail={"bazel", "gazelle"})
        report = Syncer.from_workspace(orders_workspace, SyncConfig(), runner=runner).sync()
        assert len(report.errors) == 2
        assert len(runner.calls) == 2
        assert (orders_workspace / "backend/services/orders/cmd/server/BUILD.bazel").exists()

    def test_skip_external(self, orders_workspace: Path, fake_runner):
        Syncer.from_workspace(
            orders_workspace, SyncConfig(skip_external=True), runner=fake_runner
        ).sync()
        assert fake_runner.calls == []

    def test_dry_run_runs_no_tools(self, orders_workspace: Path, fake_runner):
        Syncer.from_workspace(orders_workspace, SyncConfig(dry_run=True), runner=fake_runner).sync()
        assert fake_runner.calls == []

    def test_go_without_module_registry(self, make_workspace, fake_runner):
        root = make_workspace(
            {"gen": {"projectType": "library", "language": "go", "root": "tools/gen"}},
            {"tools/gen/main.go": "package main\n\nfunc main() {}\n"},
        )
        report = Syncer.from_workspace(root, SyncConfig(), runner=fake_runner).sync()

        assert not (root / "go.work").exists()
        assert "go_work" not in _read(root, "MODULE.bazel")
        assert (root / "tools/gen/BUILD.bazel").exists()
        assert fake_runner.commands() == ["bazel mod tidy"]
        assert any("go.work not found" in error for error in report.errors)

    def test_no_gazelle_without_go(self, make_workspace, fake_runner):
        root = make_workspace(
            {"api": {"projectType": "service", "language": "nestjs", "root": "apps/api"}},
            {"apps/api/src/main.ts": "x\n"},
        )
        Syncer.from_workspace(root, SyncConfig(), runner=fake_runner).sync()
        assert fake_runner.commands() == ["bazel mod tidy"]


class TestAddUseRepos:
    def test_appends_when_missing(self):
        content = 'module(name = "x")\n'
        updated, added = add_use_repos(content, "go_deps", ["com_github_lib_pq"])
        assert added == ["com_github_lib_pq"]
        assert updated == (
            'module(name = "x")\n\nuse_repo(\n    go_deps,\n    "com_github_lib_pq",\n)\n'
        )

    def test_merges_into_existing_call(self):
        content = (
            'go_deps.from_file(go_work = "//:go.work")\n'
            'use_repo(go_deps, "com_github_google_uuid")\n'
            'use_repo(oci, "distroless_base")\n'
        )
        updated, added = add_use_repos(content, "go_deps", ["com_github_lib_pq"])
        assert added == ["com_github_lib_pq"]
        assert (
            'use_repo(\n    go_deps,\n    "com_github_google_uuid",\n    "com_github_lib_pq",\n)\n'
            in updated
        )
        assert 'use_repo(oci, "distroless_base")' in updated

    def test_nothing_to_add(self):
        content = 'use_repo(\n    go_deps,\n    "com_github_lib_pq",\n)\n'
        assert add_use_repos(content, "go_deps", ["com_github_lib_pq"]) == (content, [])


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidate:
    def test_valid_after_sync(self, orders_workspace: Path, offline_config: SyncConfig):
        syncer = Syncer.from_workspace(orders_workspace, offline_config)
        syncer.sync()
        syncer.validate()

    def test_missing_module_descriptor(self, orders_workspace: Path):
        (orders_workspace / "MODULE.bazel").unlink()
        with pytest.raises(WorkspaceValidationError) as excinfo:
            Syncer.from_workspace(orders_workspace).validate()
        assert excinfo.value.problems == ["MODULE.bazel not found"]

    def test_reports_every_problem(self, orders_workspace: Path):
        manifest = json.loads(_read(orders_workspace, "forge.json"))
        manifest["projects"]["Bad_Name"] = {
            "projectType": "daemon",
            "language": "go",
            "root": "nowhere",
        }
        syncer = Syncer.from_workspace(orders_workspace)
        (orders_workspace / "forge.json").write_text(json.dumps(manifest), encoding="utf-8")
        with pytest.raises(WorkspaceValidationError) as excinfo:
            syncer.validate()
        problems = excinfo.value.problems
        assert len(problems) == 3
        assert any("kebab-case" in p for p in problems)
        assert any("daemon" in p for p in problems)
        assert any("does not exist" in p for p in problems)

    def test_broken_manifest_is_a_problem(self, orders_workspace: Path):
        syncer = Syncer.from_workspace(orders_workspace)
        (orders_workspace / "forge.json").write_text("{", encoding="utf-8")
        with pytest.raises(WorkspaceValidationError) as excinfo:
            syncer.validate()
        assert "not valid JSON" in excinfo.value.problems[0]
