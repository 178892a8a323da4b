"""Mapping between nav-declared files and their rendered URL trails."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .context import RunContext
from .models import MkDocsConfig, PageEntry, PlainPathEntry, SectionEntry
from .nav import is_external_target, leaf_path
from .util_fs import collapse_url, strip_extension

_SLUG_RE = re.compile(r"[^A-Za-z0-9]+")


def slugify(title: str) -> str:
    """Lower-case a title and join its alphanumeric runs with hyphens."""

    return _SLUG_RE.sub("-", title).strip("-").lower()


def leaf_trail(target_path: str, prefix: str) -> str:
    """URL trail of a leaf declared under ``prefix``.

    At the top of the tree the whole target path (without extension) is the
    trail; below a section only the file stem is appended. An ``index`` leaf
    collapses into its parent's trail.
    """

    if prefix:
        stem = strip_extension(posixpath.basename(target_path))
        trail = collapse_url(f"{prefix}/{stem}")
    else:
        trail = collapse_url(strip_extension(target_path))
    if trail == "index":
        return ""
    if trail.endswith("/index"):
        return trail[: -len("/index")]
    return trail


@dataclass(frozen=True)
class DuplicateDeclaration:
    """A nav path or trail that was declared more than once."""

    path: Path
    kept_trail: str
    dropped_trail: str


@dataclass
class PathSpace:
    """Bidirectional maps between content files and URL trails."""

    src_to_url: Dict[Path, str] = field(default_factory=dict)
    url_to_src: Dict[str, Path] = field(default_factory=dict)
    duplicates: List[DuplicateDeclaration] = field(default_factory=list)

    @classmethod
    def build(cls, config: MkDocsConfig, ctx: RunContext) -> "PathSpace":
        space = cls()
        space._walk(config.nav, "", ctx)
        ctx.log(f"path space holds {len(space.src_to_url)} pages")
        return space

    def _walk(self, entries: Iterable, prefix: str, ctx: RunContext) -> None:
        for entry in entries:
            if isinstance(entry, SectionEntry):
                if entry.mount is not None:
                    child = collapse_url(f"{prefix}/{entry.mount}")
                else:
                    child = collapse_url(f"{prefix}/{slugify(entry.title)}")
                self._walk(entry.children, child, ctx)
            elif isinstance(entry, (PageEntry, PlainPathEntry)):
                if is_external_target(entry.target_path):
                    continue
                path = leaf_path(entry, ctx.content_dirname)
                self._insert(path, leaf_trail(entry.target_path, prefix))

    def _insert(self, path: Path, trail: str) -> None:
        kept = self.src_to_url.get(path)
        if kept is not None:
            self.duplicates.append(DuplicateDeclaration(path, kept, trail))
            return
        owner = self.url_to_src.get(trail)
        if owner is not None and owner != path:
            self.duplicates.append(DuplicateDeclaration(path, trail, trail))
            self.src_to_url[path] = trail
            return
        self.src_to_url[path] = trail
        self.url_to_src[trail] = path

    def to_url(self, path: Path) -> Optional[str]:
        return self.src_to_url.get(path)

    def to_fs(self, url: str, subsite_hint: str | None = None) -> Optional[Path]:
        """Look a trail up, tolerating ``/index`` and trailing-slash spellings."""

        found = self.lookup(url)
        if found is None and subsite_hint:
            found = self.lookup(f"{subsite_hint}/{url.lstrip('/')}")
        return found

    def lookup(self, rendered: str) -> Optional[Path]:
        for candidate in _spellings(rendered):
            found = self.url_to_src.get(candidate)
            if found is not None:
                return found
        return None

    def __contains__(self, path: object) -> bool:
        return path in self.src_to_url

    def __len__(self) -> int:
        return len(self.src_to_url)


def _spellings(rendered: str) -> List[str]:
    bare = rendered.rstrip("/")
    spellings = [rendered, bare, f"{bare}/index" if bare else "index"]
    if bare == "index":
        spellings.append("")
    elif bare.endswith("/index"):
        spellings.append(bare[: -len("/index")])
    return spellings


__all__ = ["DuplicateDeclaration", "PathSpace", "leaf_trail", "slugify"]
