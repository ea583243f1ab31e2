"""Jinja2 template rendering for Bazel build descriptions.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``forge/templates/`` directory and renders them with the input records
assembled by the build generator. Rendering is a pure function of the
template and its context, so identical inputs always give identical bytes.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for generated workspace files.

    The renderer discovers ``.j2`` template files under a configurable
    template directory. Undefined variables are errors, so a missing field in
    an input record fails loudly instead of producing a half-empty file.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([], default_for_string=False),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["bazel_module_name"] = _bazel_module_name_filter
        self.env.filters["go_repo_name"] = go_repo_name
        self.env.filters["starlark_str"] = _starlark_str_filter

    # -- Rendering ---------------------------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"bazel/go-library.BUILD.bazel.j2"``).
            context: Dictionary of variables available inside the template.

        Returns:
            The rendered template content as a string.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        template = self.env.from_string(template_string)
        return template.render(**context)

    # -- Utility -----------------------------------------------------------

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*.

        Paths are relative to the template root directory.
        """
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*.j2")
        )


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def go_repo_name(module_path: str) -> str:
    """Return the gazelle repository name for a Go module path.

    The host is reversed and every non-alphanumeric character becomes an
    underscore::

        go_repo_name("github.com/lib/pq")      -> "com_github_lib_pq"
        go_repo_name("github.com/jackc/pgx/v5") -> "com_github_jackc_pgx_v5"
    """
    host, _, rest = module_path.partition("/")
    parts = list(reversed(host.split(".")))
    if rest:
        parts.append(rest)
    name = "_".join(parts)
    return re.sub(r"[^A-Za-z0-9]", "_", name).lower()


def _bazel_module_name_filter(value: str) -> str:
    """Sanitise a workspace name into a legal Bazel module name."""
    name = re.sub(r"[^a-z0-9._-]+", "_", value.strip().lower())
    name = name.strip("._-")
    if not name or not name[0].isalpha():
        name = f"m_{name}" if name else "workspace"
    return name


def _starlark_str_filter(value: str) -> str:
    """Quote *value* as a Starlark string literal."""
    return json.dumps(str(value))
