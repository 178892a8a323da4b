"""Ordered multi-phase resolution of links and images to content files.

A link is tried against five bases, strictly in this order, and the first
existing candidate wins:

1. ``nav``: the link joined to the source's rendered URL trail and looked up
   among the nav-declared trails.
2. ``url-space``: the link joined in URL space, first treating the page as a
   directory (model A) and then its parent directory (model B), and mapped
   back to disk. Crossing into another subsite inserts that subsite's content
   directory after its name.
3. ``subsite``: the nav-rendered trail under the source's own content root and
   then under every mounted content root.
4. ``content-root``: the link under the source's content root.
5. ``parent``: the link under the source's containing directory.

Every page probe also accepts ``<name>/index.md`` for ``<name>.md``.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Optional, Sequence, Union

from .context import RunContext
from .extract import CONTENT_SUFFIX, NormalisedLink
from .path_space import PathSpace
from .util_fs import collapse_url, normalize_path, strip_extension


@dataclass(frozen=True)
class Resolution:
    target: Optional[Path] = None
    phase: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.target is not None


BROKEN = Resolution()


def _target_of(link: Union[str, NormalisedLink]) -> str:
    return link.target if isinstance(link, NormalisedLink) else link


def rendered_url(source: Path, link: str, space: PathSpace) -> Optional[str]:
    """Trail the link points at when followed from a nav page, or None."""

    trail = space.to_url(source)
    if trail is None:
        return None
    target = link.lstrip("/")
    if link.startswith("/"):
        joined = target
    else:
        # an index page is served at its own trail, every other page one level down
        base = trail if source.stem == "index" else posixpath.dirname(trail)
        joined = f"{base}/{target}" if base else target
    return collapse_url(strip_extension(joined))


def url_to_fs(url: str, site_name: str, content_dir: Path, ctx: RunContext, suffix: str) -> Path:
    """Map a collapsed URL back onto disk from the point of view of one site."""

    first, _, rest = url.partition("/")
    if first != site_name and ctx.is_subsite(first):
        path = ctx.root / first / ctx.content_dirname / rest
    else:
        inner = url
        own = f"{site_name}/"
        while inner.startswith(own):
            inner = inner[len(own):]
        path = content_dir / inner
    path = normalize_path(path)
    return path.with_name(path.name + suffix) if suffix else path


def url_space_candidates(
    source: Path, link: str, ctx: RunContext, *, keep_extension: bool = False
) -> list[Path]:
    """Filesystem candidates for model A then model B, without duplicates."""

    content_dir = ctx.content_dir_of(source)
    if content_dir is None:
        return []
    site_name = content_dir.parent.name
    within = source.relative_to(content_dir).as_posix()
    src_url = f"{site_name}/{strip_extension(within)}"
    link_url = link if keep_extension else strip_extension(link)
    suffix = "" if keep_extension else CONTENT_SUFFIX

    if link.startswith("/"):
        urls = [collapse_url(link_url)]
    else:
        urls = [
            collapse_url(f"{src_url}/{link_url}"),
            collapse_url(f"{posixpath.dirname(src_url)}/{link_url}"),
        ]

    candidates: list[Path] = []
    for url in urls:
        if not url:
            continue
        path = url_to_fs(url, site_name, content_dir, ctx, suffix)
        if path not in candidates:
            candidates.append(path)
    return candidates


def probe(candidate: Path, ctx: RunContext, known: AbstractSet[Path] = frozenset()) -> Optional[Path]:
    """Return the candidate or its directory index when either exists."""

    candidate = normalize_path(candidate)
    if candidate in known or ctx.is_file(candidate):
        return candidate
    index = candidate.parent / strip_extension(candidate.name) / f"index{CONTENT_SUFFIX}"
    if index in known or ctx.is_file(index):
        return index
    return None


def _probe_exact(candidate: Path, ctx: RunContext, known: AbstractSet[Path]) -> Optional[Path]:
    candidate = normalize_path(candidate)
    if candidate in known or ctx.is_file(candidate):
        return candidate
    return None


@dataclass
class LinkResolver:
    """Resolution against one path space; holds no mutable state of its own."""

    space: PathSpace
    ctx: RunContext
    content_roots: Sequence[Path] = ()
    known_files: AbstractSet[Path] = field(default_factory=frozenset)
    known_images: AbstractSet[Path] = field(default_factory=frozenset)

    def resolve(
        self, source: Path, link: Union[str, NormalisedLink], *, use_nav: bool = True
    ) -> Resolution:
        """Resolve a normalised page link from ``source``; BROKEN when no phase hits."""

        target = _target_of(link)
        ctx = self.ctx
        known = self.known_files

        if use_nav:
            rendered = rendered_url(source, target, self.space)
            if rendered is not None:
                found = self.space.lookup(rendered)
                if found is not None:
                    return Resolution(found, "nav")

        for candidate in url_space_candidates(source, target, ctx):
            found = probe(candidate, ctx, known)
            if found is not None:
                return Resolution(found, "url-space")

        if use_nav:
            rendered = rendered_url(source, target, self.space)
            if rendered:
                site_dir = ctx.site_dir_of(source)
                bases = [site_dir / ctx.content_dirname] if site_dir is not None else []
                bases.extend(root for root in self.content_roots if root not in bases)
                for base in bases:
                    found = probe(base / f"{rendered}{CONTENT_SUFFIX}", ctx, known)
                    if found is not None:
                        return Resolution(found, "subsite")

        relative = target.lstrip("/")
        content_dir = ctx.content_dir_of(source)
        if content_dir is not None:
            found = probe(content_dir / relative, ctx, known)
            if found is not None:
                return Resolution(found, "content-root")

        found = probe(source.parent / relative, ctx, known)
        if found is not None:
            return Resolution(found, "parent")
        return BROKEN

    def resolve_image(self, source: Path, ref: Union[str, NormalisedLink]) -> Resolution:
        """Resolve an image reference; the extension is kept and no index is tried."""

        target = _target_of(ref)
        ctx = self.ctx
        known = self.known_images

        for candidate in url_space_candidates(source, target, ctx, keep_extension=True):
            found = _probe_exact(candidate, ctx, known)
            if found is not None:
                return Resolution(found, "url-space")

        relative = target.lstrip("/")
        for root in self.content_roots:
            found = _probe_exact(root / relative, ctx, known)
            if found is not None:
                return Resolution(found, "subsite")

        content_dir = ctx.content_dir_of(source)
        if content_dir is not None:
            found = _probe_exact(content_dir / relative, ctx, known)
            if found is not None:
                return Resolution(found, "content-root")

        if not target.startswith("/"):
            found = _probe_exact(source.parent / target, ctx, known)
            if found is not None:
                return Resolution(found, "parent")
        return BROKEN


def resolve(
    source: Path,
    link: Union[str, NormalisedLink],
    space: PathSpace,
    ctx: RunContext,
    *,
    content_roots: Sequence[Path] = (),
    known_files: AbstractSet[Path] = frozenset(),
    use_nav: bool = True,
) -> Resolution:
    """Single-shot form of :meth:`LinkResolver.resolve`."""

    resolver = LinkResolver(space, ctx, content_roots, known_files)
    return resolver.resolve(source, link, use_nav=use_nav)


__all__ = [
    "BROKEN",
    "LinkResolver",
    "Resolution",
    "probe",
    "rendered_url",
    "resolve",
    "url_space_candidates",
    "url_to_fs",
]
