"""Error kinds raised or recorded during an audit."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass
class ConfigError(Exception):
    """Whole-input problem; aborts the run without counts."""

    message: str
    path: Path | None = None

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.path}: {self.message}"


@dataclass
class TableError(Exception):
    """Malformed help table entry or unresolved macro reference."""

    message: str
    line: int = 0

    def __str__(self) -> str:
        return f"line {self.line}: {self.message}" if self.line else self.message


@dataclass(frozen=True)
class FilesystemError:
    """Unreadable path recorded on the report; never fatal."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


__all__ = ["ConfigError", "FilesystemError", "TableError"]
