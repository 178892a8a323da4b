"""Loading, parsing and include merging of MkDocs nav declarations."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Iterator, List
from urllib.parse import urlparse

import yaml

from .context import RunContext
from .errors import ConfigError
from .models import (
    IncludeEntry,
    MkDocsConfig,
    NavLeaf,
    PageEntry,
    PlainPathEntry,
    SectionEntry,
)
from .util_fs import normalize_path

INCLUDE_SENTINEL = "!include"


class NavLoader(yaml.SafeLoader):
    """Safe loader that tolerates the custom tags found in MkDocs configs."""


def _construct_include(loader: yaml.SafeLoader, node: yaml.Node) -> str:
    return f"{INCLUDE_SENTINEL} {loader.construct_scalar(node)}"


def _construct_untyped(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


NavLoader.add_constructor("!include", _construct_include)
# !ENV, !relative and friends, plus the python/name hooks used for extensions.
NavLoader.add_multi_constructor("!", _construct_untyped)
NavLoader.add_multi_constructor("tag:yaml.org,2002:python/", _construct_untyped)


def load_yaml(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read nav declaration: {exc.strerror or exc}", path) from exc
    try:
        return yaml.load(text, Loader=NavLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML: {exc}", path) from exc


def parse_include_target(value: str) -> str | None:
    """Return the path of an include sentinel, or None for a plain value."""

    trimmed = value.strip()
    if not trimmed.startswith(INCLUDE_SENTINEL):
        return None
    target = trimmed[len(INCLUDE_SENTINEL):].strip().strip("\"'")
    return target or None


def is_external_target(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.scheme not in ("", "file"))


def parse_entry(item: Any, origin: Path) -> PageEntry | PlainPathEntry | IncludeEntry | SectionEntry:
    """Turn one raw nav item into its typed entry; unknown shapes are fatal."""

    if isinstance(item, str):
        return PlainPathEntry(target_path=item, origin=origin)
    if isinstance(item, dict) and len(item) == 1:
        ((title, value),) = item.items()
        title = str(title)
        if isinstance(value, str):
            include = parse_include_target(value)
            if include is not None:
                return IncludeEntry(title=title, subconfig_path=include, origin=origin)
            return PageEntry(title=title, target_path=value, origin=origin)
        if isinstance(value, list):
            return SectionEntry(title=title, children=parse_entries(value, origin))
        raise ConfigError(
            f"nav entry {title!r} has unsupported value of type {type(value).__name__}"
        )
    raise ConfigError(f"unrecognised nav entry: {item!r}")


def parse_entries(raw: Any, origin: Path) -> list:
    if not isinstance(raw, list):
        raise ConfigError(f"nav must be a list, got {type(raw).__name__}")
    return [parse_entry(item, origin) for item in raw]


def parse_root(path: Path, content_dirname: str = "docs") -> MkDocsConfig:
    """Parse a nav declaration without following its includes."""

    path = normalize_path(Path(path).absolute())
    data = load_yaml(path)
    if not isinstance(data, dict):
        raise ConfigError("declaration must be a mapping", path)
    if "nav" not in data:
        raise ConfigError("missing 'nav' key", path)
    try:
        nav = parse_entries(data["nav"], path.parent)
    except ConfigError as exc:
        raise ConfigError(exc.message, path) from exc
    return MkDocsConfig(
        nav=nav, root_dir=path.parent, source=path, content_dirname=content_dirname
    )


def resolve_includes(config: MkDocsConfig, ctx: RunContext) -> MkDocsConfig:
    """Splice every include into the tree, recursively.

    Included declarations are parsed relative to their own directory. The
    chain of canonical declaration paths being expanded is kept on a stack so
    that a cycle is reported instead of followed.
    """

    stack: list[Path] = []
    if config.source is not None:
        stack.append(config.source.resolve())
    merged = _merge(config.nav, ctx, stack)
    return config.model_copy(update={"nav": merged})


def _merge(entries: Iterable, ctx: RunContext, stack: list[Path]) -> list:
    merged: list = []
    for entry in entries:
        if isinstance(entry, IncludeEntry):
            merged.append(_splice(entry, ctx, stack))
        elif isinstance(entry, SectionEntry):
            children = _merge(entry.children, ctx, stack)
            merged.append(entry.model_copy(update={"children": children}))
        else:
            merged.append(entry)
    return merged


def _splice(entry: IncludeEntry, ctx: RunContext, stack: list[Path]) -> SectionEntry:
    include_file = normalize_path(entry.origin / entry.subconfig_path)
    if not include_file.is_file():
        raise ConfigError(
            f"include target of {entry.title!r} not found: {entry.subconfig_path}",
            include_file,
        )
    canonical = include_file.resolve()
    if canonical in stack:
        chain = stack[stack.index(canonical):] + [canonical]
        raise ConfigError(
            "include cycle: " + " -> ".join(str(item) for item in chain), include_file
        )

    ctx.log(f"splicing {include_file} under {entry.title!r}")
    sub = parse_root(include_file, ctx.content_dirname)
    stack.append(canonical)
    try:
        children = _merge(sub.nav, ctx, stack)
    finally:
        stack.pop()

    try:
        mount = include_file.parent.relative_to(ctx.root).as_posix()
    except ValueError:
        mount = ""
    if mount == ".":
        mount = ""
    return SectionEntry(title=entry.title, children=children, mount=mount)


def load_nav(path: Path, ctx: RunContext) -> MkDocsConfig:
    """Parse the root declaration and merge all of its includes."""

    return resolve_includes(parse_root(path, ctx.content_dirname), ctx)


def iter_leaves(entries: Iterable) -> Iterator[NavLeaf]:
    """Depth-first local leaves in declared order; external URLs are skipped."""

    for entry in entries:
        if isinstance(entry, SectionEntry):
            yield from iter_leaves(entry.children)
        elif isinstance(entry, (PageEntry, PlainPathEntry)):
            if not is_external_target(entry.target_path):
                yield entry
        elif isinstance(entry, IncludeEntry):
            raise ConfigError(f"unmerged include {entry.subconfig_path!r}")


def leaf_path(leaf: NavLeaf, content_dirname: str = "docs") -> Path:
    """Filesystem path a nav leaf points at."""

    return normalize_path(leaf.origin / content_dirname / leaf.target_path)


def mount_roots(entries: Iterable, root: Path) -> List[Path]:
    """Directories of every spliced declaration, in declared order."""

    roots: list[Path] = []

    def _walk(items: Iterable) -> None:
        for entry in items:
            if not isinstance(entry, SectionEntry):
                continue
            if entry.mount is not None:
                candidate = normalize_path(root / entry.mount) if entry.mount else root
                if candidate not in roots:
                    roots.append(candidate)
            _walk(entry.children)

    _walk(entries)
    return roots


__all__ = [
    "INCLUDE_SENTINEL",
    "NavLoader",
    "is_external_target",
    "iter_leaves",
    "leaf_path",
    "load_nav",
    "load_yaml",
    "mount_roots",
    "parse_entries",
    "parse_entry",
    "parse_include_target",
    "parse_root",
    "resolve_includes",
]
