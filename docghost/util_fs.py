"""Filesystem and path utilities for docghost."""

import os
import posixpath
from pathlib import Path
from typing import Iterable, Iterator, List, Union

from .errors import FilesystemError

PathLike = Union[str, Path]


def normalize_path(path: PathLike) -> Path:
    """Collapse ``.`` and ``..`` lexically, without touching the filesystem.

    ``..`` only removes a preceding normal component; leading ``..`` parts of a
    relative path are kept.
    """

    parts: list[str] = []
    path = Path(path)
    for part in path.parts:
        if part == ".":
            continue
        if part == "..":
            if parts and parts[-1] not in ("..", path.anchor):
                parts.pop()
            else:
                parts.append(part)
            continue
        parts.append(part)
    if not parts:
        return Path(".")
    return Path(*parts)


def collapse_url(url: str) -> str:
    """Collapse ``.``/``..`` segments of a URL trail; excess ``..`` are dropped."""

    segments: list[str] = []
    for segment in url.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)
    return "/".join(segments)


def strip_extension(value: str) -> str:
    """Remove the extension of the last segment of a POSIX path."""

    head, tail = posixpath.split(value)
    stem, _ = posixpath.splitext(tail)
    return posixpath.join(head, stem) if head else stem


def matches_exclude(path: PathLike, root: Path, exclude: Iterable[str]) -> bool:
    """Return True when the root-relative path contains an exclude substring."""

    patterns = [item.lower() for item in exclude if item]
    if not patterns:
        return False
    try:
        rel = Path(path).relative_to(root).as_posix()
    except ValueError:
        rel = Path(path).as_posix()
    rel = rel.lower()
    return any(pattern in rel for pattern in patterns)


def walk_files(
    root: Path,
    suffixes: Iterable[str],
    *,
    exclude_root: Path | None = None,
    exclude: Iterable[str] = (),
    errors: List[FilesystemError] | None = None,
) -> Iterator[Path]:
    """Yield files under ``root`` whose suffix is in ``suffixes``, sorted per directory.

    Directories matching an exclude substring are pruned. Unreadable
    directories are appended to ``errors`` instead of raising.
    """

    wanted = {suffix.lower() for suffix in suffixes}
    exclude = list(exclude)
    base = exclude_root or root

    def _on_error(exc: OSError) -> None:
        if errors is not None:
            errors.append(
                FilesystemError(Path(exc.filename or root), exc.strerror or str(exc))
            )

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        current = Path(dirpath)
        dirnames[:] = sorted(
            name
            for name in dirnames
            if not matches_exclude(current / name, base, exclude)
        )
        for name in sorted(filenames):
            candidate = current / name
            if candidate.suffix.lower() not in wanted:
                continue
            if matches_exclude(candidate, base, exclude):
                continue
            yield normalize_path(candidate)


__all__ = [
    "collapse_url",
    "matches_exclude",
    "normalize_path",
    "strip_extension",
    "walk_files",
]
