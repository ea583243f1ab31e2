"""Shared utility functions for forge.

Provides synchronous command execution, path helpers, and Rich-based console
reporting. Every public function is side-effect-free where possible, with
clear error messages when something goes wrong.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path, PurePosixPath

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from forge.errors import CommandError

console = Console()

# ---------------------------------------------------------------------------
# Command execution
# ---------------------------------------------------------------------------


class CommandRunner:
    """Runs external tools (bazel, gazelle, go) and returns their output.

    The orchestrator only ever talks to this interface, so tests can swap in
    a recording fake and assert on the invocations without executing any
    real toolchain.
    """

    def run(
        self,
        name: str,
        args: list[str],
        cwd: str | Path,
        env: dict[str, str] | None = None,
    ) -> str:
        """Run ``name *args`` in *cwd* and return its combined output.

        Args:
            name: Executable to run (resolved through ``PATH``).
            args: Arguments passed to the executable.
            cwd: Working directory for the child process.
            env: Optional extra environment variables merged on top of
                ``os.environ``.

        Returns:
            Stripped stdout followed by stderr.

        Raises:
            CommandError: If the executable is missing or exits non-zero.
        """
        cmd = [name, *args]
        cmd_str = " ".join(cmd)
        merged_env: dict[str, str] | None = None
        if env:
            merged_env = {**os.environ, **env}

        try:
            completed = subprocess.run(
                cmd,
                cwd=str(cwd),
                env=merged_env,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise CommandError(
                f"Cannot run {cmd_str}: {exc}",
                command=cmd_str,
            ) from exc

        stdout = (completed.stdout or "").strip()
        stderr = (completed.stderr or "").strip()
        if completed.returncode != 0:
            raise CommandError(
                f"Command failed (exit {completed.returncode}): {cmd_str}\n{stderr}".rstrip(),
                command=cmd_str,
                returncode=completed.returncode,
                stderr=stderr,
            )
        return "\n".join(part for part in (stdout, stderr) if part)


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def relative_posix(path: str | Path, root: str | Path) -> str:
    """Return *path* relative to *root* in POSIX form (``"."`` for the root)."""
    return Path(os.path.relpath(path, root)).as_posix()


def join_import_path(base: str, relative: str) -> str:
    """Join a module import path with a workspace-relative directory.

    Examples::

        join_import_path("example.com/w", "svc/cmd") -> "example.com/w/svc/cmd"
        join_import_path("example.com/w", ".")       -> "example.com/w"
    """
    if relative in ("", "."):
        return base
    if not base:
        return relative
    return str(PurePosixPath(base) / relative)


def write_text_file(path: Path, content: str) -> None:
    """Write *content* to *path*, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_step_header(step: int, name: str) -> None:
    """Print a sync step header as a full-width rule."""
    console.print()
    console.print(Rule(f"[bold cyan] Step {step}: {name} [/bold cyan]", style="cyan"))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


def print_info(message: str) -> None:
    """Print a dim informational line."""
    console.print(f"[dim]{escape(message)}[/dim]")
