"""Run-scoped state shared by every component of one audit."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .errors import FilesystemError
from .io_utils import trace
from .util_fs import normalize_path


@dataclass
class RunContext:
    """Configuration and memo caches for a single audit run.

    Two audits never share a context, so the caches cannot leak between runs.
    """

    root: Path
    content_dirname: str = "docs"
    verbose: bool = False
    _subsites: dict[str, bool] = field(default_factory=dict, init=False, repr=False)
    _files: dict[Path, bool] = field(default_factory=dict, init=False, repr=False)
    file_errors: list[FilesystemError] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self.root = normalize_path(Path(self.root).absolute())

    def is_subsite(self, name: str) -> bool:
        """True when ``<root>/<name>`` holds a content subdirectory."""

        cached = self._subsites.get(name)
        if cached is None:
            cached = bool(name) and (self.root / name / self.content_dirname).is_dir()
            self._subsites[name] = cached
        return cached

    def is_file(self, path: Path) -> bool:
        """Memoised file check; a failing stat is recorded in ``file_errors``."""

        cached = self._files.get(path)
        if cached is None:
            try:
                cached = path.is_file()
            except OSError as exc:
                self.log(f"probe failed for {path}: {exc}")
                self.file_errors.append(FilesystemError(path, exc.strerror or str(exc)))
                cached = False
            self._files[path] = cached
        return cached

    def content_dir_of(self, path: Path) -> Path | None:
        """Return the nearest ancestor named like the content subdirectory."""

        for ancestor in path.parents:
            if ancestor == self.root:
                break
            if ancestor.name == self.content_dirname:
                return ancestor
        return None

    def site_dir_of(self, path: Path) -> Path | None:
        """Directory owning the content root that contains ``path``."""

        content_dir = self.content_dir_of(path)
        return content_dir.parent if content_dir is not None else None

    def display(self, path: Path) -> str:
        """Human-facing label: the path within its content root.

        Content of a subsite is prefixed with the subsite's name; files of the
        root site carry no prefix.
        """

        path = normalize_path(path)
        content_dir = self.content_dir_of(path)
        if content_dir is not None:
            inner = path.relative_to(content_dir).as_posix()
            owner = content_dir.parent
            if owner == self.root:
                return inner
            try:
                prefix = owner.relative_to(self.root).as_posix()
            except ValueError:
                return path.as_posix()
            return f"{prefix}/{inner}"
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    def log(self, msg: str) -> None:
        trace(self.verbose, msg)


__all__ = ["RunContext"]
