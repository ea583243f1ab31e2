"""Lexical extraction of Go import declarations and package clauses.

This is a tokenizer, not a parser: it understands comments, interpreted and
raw string literals, and parenthesised import groups, which is all that is
needed to list the imports of a file. It never raises on malformed input and
returns whatever it could read up to the point the file stopped making sense.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from forge.sync.models import ImportSpec

_TOKEN_RE = re.compile(
    r"""
      (?P<comment>//[^\n]*|/\*.*?(?:\*/|\Z))
    | (?P<string>"(?:\\.|[^"\\\n])*"|`[^`]*`)
    | (?P<open>\()
    | (?P<close>\))
    | (?P<dot>\.)
    | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<newline>\n|;)
    """,
    re.DOTALL | re.VERBOSE,
)

# Top-level declarations that can only appear after the import section.
_DECLARATION_KEYWORDS = frozenset({"func", "type", "var", "const"})


def _tokens(content: str) -> Iterator[tuple[str, str]]:
    for match in _TOKEN_RE.finditer(content):
        kind = match.lastgroup
        if kind == "comment":
            # A block comment spanning lines still terminates a statement.
            if "\n" in match.group():
                yield "newline", "\n"
            continue
        yield kind, match.group()


def _unquote(literal: str) -> str:
    if literal.startswith("`"):
        return literal.strip("`")
    return literal[1:-1].replace('\\"', '"').replace("\\\\", "\\")


def extract_import_specs(content: str) -> list[ImportSpec]:
    """Return every import declared in Go source *content*, in order."""
    specs: list[ImportSpec] = []
    state = "idle"
    depth = 0
    alias = ""

    for kind, text in _tokens(content):
        if state == "idle":
            if kind == "ident" and text == "import":
                state, alias = "single", ""
            elif kind == "ident" and text in _DECLARATION_KEYWORDS:
                break
        elif state == "single":
            if kind == "open":
                state, depth, alias = "group", 1, ""
            elif kind == "string":
                specs.append(ImportSpec(_unquote(text), alias))
                state = "idle"
            elif kind in ("ident", "dot"):
                alias = text
            elif kind == "newline":
                continue
            else:
                state = "idle"
        elif state == "group":
            if kind == "open":
                depth += 1
            elif kind == "close":
                depth -= 1
                if depth == 0:
                    state = "idle"
            elif kind == "string":
                specs.append(ImportSpec(_unquote(text), alias))
                alias = ""
            elif kind in ("ident", "dot"):
                alias = text
            elif kind == "newline":
                alias = ""

    return specs


def extract_imports(content: str) -> list[str]:
    """Return the import paths declared in *content*, verbatim and in order."""
    return [spec.path for spec in extract_import_specs(content)]


def parse_package_clause(content: str) -> str | None:
    """Return the package name declared by *content*, or ``None``."""
    expect_name = False
    for kind, text in _tokens(content):
        if kind == "newline":
            continue
        if expect_name:
            return text if kind == "ident" else None
        if kind == "ident" and text == "package":
            expect_name = True
            continue
        # Anything but comments before the clause means this is not Go.
        return None
    return None
