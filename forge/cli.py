"""Command-line entry point: ``forge sync`` and ``forge validate``."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from forge import __version__
from forge.config import SyncConfig
from forge.errors import ForgeError, WorkspaceValidationError
from forge.sync.syncer import Syncer
from forge.utils import console, print_error, print_success


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forge",
        description="forge -- Bazel build file synchronization for polyglot workspaces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  forge sync\n"
            "  forge sync --dry-run\n"
            "  forge sync --skip-external -w ./my-workspace\n"
            "  forge validate\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"forge {__version__}")

    workspace_parent = argparse.ArgumentParser(add_help=False)
    workspace_parent.add_argument(
        "--workspace", "-w",
        default=".",
        help="Workspace directory holding forge.json (default: current directory)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser(
        "sync",
        parents=[workspace_parent],
        help="Regenerate MODULE.bazel and every BUILD.bazel file",
    )
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without touching any file",
    )
    sync_parser.add_argument(
        "--skip-external",
        action="store_true",
        help="Do not run bazel mod tidy or gazelle after generating files",
    )

    subparsers.add_parser(
        "validate",
        parents=[workspace_parent],
        help="Check the manifest and the generated module descriptor",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``forge``."""
    args = build_parser().parse_args(argv)
    workspace_root = Path(args.workspace)

    overrides = {}
    if getattr(args, "dry_run", False):
        overrides["dry_run"] = True
    if getattr(args, "skip_external", False):
        overrides["skip_external"] = True
    try:
        config = SyncConfig.from_env(**overrides)
        syncer = Syncer.from_workspace(workspace_root, config)
        if args.command == "sync":
            syncer.sync()
        else:
            syncer.validate()
            print_success("Workspace is valid")
    except WorkspaceValidationError as exc:
        print_error("Workspace validation failed:")
        for problem in exc.problems:
            console.print(f"  - {problem}", markup=False)
        sys.exit(1)
    except ForgeError as exc:
        print_error(str(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
