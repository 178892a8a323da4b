"""Parsing of the C header that maps help keys to documentation pages.

The table is a list of ``HELP_URL("key", <expr>)`` entries plus
``#define NAME <expr>`` macros, where ``<expr>`` concatenates quoted literals
and names of earlier macros, e.g. ``HELP_URL(",", SY"/comma")``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .context import RunContext
from .errors import ConfigError, TableError
from .extract import CONTENT_SUFFIX

DEFINE_RE = re.compile(r"^[ \t]*#[ \t]*define[ \t]+(\w+)[ \t]+(.+?)[ \t]*$", re.MULTILINE)
ENTRY_START_RE = re.compile(r"\bHELP_URL\s*\(")
ENTRY_RE = re.compile(r"HELP_URL\s*\(\s*\"((?:[^\"\\\n]|\\.)*)\"\s*,\s*([^)\n]+?)\s*\)")
_TOKEN_RE = re.compile(r"\"((?:[^\"\\]|\\.)*)\"|([^\s\"]+)")
_IDENT_RE = re.compile(r"^[A-Za-z_]\w*$")


@dataclass(frozen=True)
class HelpUrlEntry:
    """One table entry; ``target`` is empty when expansion failed."""

    key: str
    raw: str
    target: str
    line: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.target)


def strip_c_comments(content: str) -> str:
    """Drop ``//`` and ``/* */`` comments, keeping every newline."""

    out: list[str] = []
    i = 0
    length = len(content)
    in_string = False
    while i < length:
        ch = content[i]
        nxt = content[i + 1] if i + 1 < length else ""
        if in_string:
            out.append(ch)
            if ch == "\\" and nxt:
                out.append(nxt)
                i += 2
                continue
            if ch == '"' or ch == "\n":
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif ch == "/" and nxt == "/":
            end = content.find("\n", i)
            if end < 0:
                break
            i = end
        elif ch == "/" and nxt == "*":
            end = content.find("*/", i + 2)
            block = content[i:] if end < 0 else content[i : end + 2]
            out.append("\n" * block.count("\n"))
            if end < 0:
                break
            i = end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def expand(expr: str, macros: Dict[str, str], line: int = 0) -> str:
    """Concatenate literals and macro values of one expression.

    Bare tokens that look like identifiers must name a known macro; other
    bare text is taken literally.
    """

    result: list[str] = []
    for match in _TOKEN_RE.finditer(expr):
        literal, bare = match.groups()
        if literal is not None:
            result.append(literal.replace('\\"', '"'))
            continue
        token = bare.strip()
        if not token:
            continue
        if token in macros:
            result.append(macros[token])
        elif _IDENT_RE.match(token):
            raise TableError(f"unknown macro {token!r}", line)
        else:
            result.append(token)
    return "".join(result).strip()


def parse_macros(content: str) -> Dict[str, str]:
    """Expand ``#define`` lines in order; a define may use earlier ones."""

    macros: Dict[str, str] = {}
    for match in DEFINE_RE.finditer(content):
        name, expr = match.groups()
        try:
            macros[name] = expand(expr, macros)
        except TableError:
            continue
    return macros


def _line_at(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def parse_table(content: str) -> List[HelpUrlEntry]:
    """Every ``HELP_URL`` entry of a header, in file order."""

    content = strip_c_comments(content)
    macros = parse_macros(content)
    entries: list[HelpUrlEntry] = []
    for start in ENTRY_START_RE.finditer(content):
        line_start = content.rfind("\n", 0, start.start()) + 1
        if content[line_start : start.start()].lstrip().startswith("#"):
            continue
        line = _line_at(content, start.start())
        match = ENTRY_RE.match(content, start.start())
        if match is None:
            snippet = content[start.start() :].split("\n", 1)[0]
            entries.append(HelpUrlEntry("", snippet, "", line, "malformed HELP_URL entry"))
            continue
        key, raw = match.group(1), match.group(2).strip()
        try:
            target = expand(raw, macros, line)
        except TableError as exc:
            entries.append(HelpUrlEntry(key, raw, "", line, exc.message))
            continue
        error = None if target else "empty target"
        entries.append(HelpUrlEntry(key, raw, target, line, error))
    return entries


def load_table(path: Path) -> List[HelpUrlEntry]:
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ConfigError(f"cannot read help table: {exc.strerror or exc}", path) from exc
    return parse_table(content)


def inject_docs(target: str, content_dirname: str = "docs") -> str:
    """Insert the content directory after the first path segment."""

    parts = [part for part in target.strip("/").split("/") if part]
    if not parts:
        return content_dirname
    return "/".join([parts[0], content_dirname, *parts[1:]])


def expected_path(entry: HelpUrlEntry, ctx: RunContext) -> Path:
    """Where the page of a table entry is expected on disk."""

    return ctx.root / (inject_docs(entry.target, ctx.content_dirname) + CONTENT_SUFFIX)


def anchor_source(entry: HelpUrlEntry, ctx: RunContext) -> Path:
    """Stand-in document the entry is resolved from, inside its own site."""

    first = entry.target.strip("/").split("/", 1)[0]
    return ctx.root / first / ctx.content_dirname / "__help_table__.md"


__all__ = [
    "HelpUrlEntry",
    "anchor_source",
    "expand",
    "expected_path",
    "inject_docs",
    "load_table",
    "parse_macros",
    "parse_table",
    "strip_c_comments",
]
