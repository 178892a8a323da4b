"""Pydantic models for nav declarations and audit options."""

from pathlib import Path
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


CATEGORIES = (
    "nav_missing",
    "ghost",
    "help_missing",
    "broken_links",
    "missing_images",
    "orphan_images",
)


class PageEntry(BaseModel):
    """Titled nav leaf pointing at a content file."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["page"] = "page"
    title: str = Field(..., description="Title shown in the navigation.")
    target_path: str = Field(..., description="Path relative to the content root.")
    origin: Path = Field(..., description="Directory of the declaring config file.")


class PlainPathEntry(BaseModel):
    """Untitled nav leaf; the title is implied by the file name."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["plain"] = "plain"
    target_path: str = Field(..., description="Path relative to the content root.")
    origin: Path = Field(..., description="Directory of the declaring config file.")


class IncludeEntry(BaseModel):
    """Splice of another nav declaration; only present before merging."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["include"] = "include"
    title: str = Field(..., description="Title the subsite is mounted under.")
    subconfig_path: str = Field(
        ..., description="Path of the included declaration, relative to origin."
    )
    origin: Path = Field(..., description="Directory of the declaring config file.")


class SectionEntry(BaseModel):
    """Titled group of nav entries, in declared order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["section"] = "section"
    title: str = Field(..., description="Section heading.")
    children: List["NavEntry"] = Field(
        default_factory=list, description="Entries nested under the section."
    )
    mount: Optional[str] = Field(
        None,
        description=(
            "Directory of a spliced declaration relative to the monorepo root. "
            "Set only on sections produced by include merging."
        ),
    )


NavEntry = Annotated[
    Union[PageEntry, PlainPathEntry, IncludeEntry, SectionEntry],
    Field(discriminator="kind"),
]

NavLeaf = Union[PageEntry, PlainPathEntry]

SectionEntry.model_rebuild()


class MkDocsConfig(BaseModel):
    """Root nav declaration together with where it lives on disk."""

    nav: List[NavEntry] = Field(default_factory=list)
    root_dir: Path = Field(..., description="Directory holding the root declaration.")
    source: Optional[Path] = Field(None, description="The declaration file itself.")
    content_dirname: str = Field(
        "docs", description="Name of the content subdirectory of every site."
    )


class AuditOptions(BaseModel):
    """Caller-supplied knobs for a single audit run."""

    model_config = ConfigDict(populate_by_name=True)

    mkdocs_yaml: Path = Field(..., alias="mkdocs-yaml")
    help_urls: Optional[Path] = Field(None, alias="help-urls")
    categories: List[str] = Field(
        default_factory=list,
        description="Categories to compute; an empty list computes all of them.",
    )
    summary_only: bool = Field(False, alias="summary")
    exclude: List[str] = Field(
        default_factory=list,
        description="Case-insensitive substrings; matching paths are skipped.",
    )
    workers: int = Field(4, ge=1)
    strict_ghosts: bool = Field(
        False,
        alias="strict-ghosts",
        description="Only nav membership clears a ghost, links do not.",
    )
    content_dirname: str = Field("docs", alias="content-dirname")
    verbose: bool = False

    @field_validator("categories")
    @classmethod
    def _known_categories(cls, value: List[str]) -> List[str]:
        normalised = [item.replace("-", "_") for item in value]
        unknown = sorted(set(normalised) - set(CATEGORIES))
        if unknown:
            raise ValueError(f"unknown categories: {', '.join(unknown)}")
        return normalised

    @field_validator("exclude")
    @classmethod
    def _drop_blank(cls, value: List[str]) -> List[str]:
        return [item.strip() for item in value if item.strip()]

    def selected(self) -> List[str]:
        """Return the categories to compute, in report order."""

        if not self.categories:
            return list(CATEGORIES)
        return [name for name in CATEGORIES if name in self.categories]


__all__ = [
    "CATEGORIES",
    "AuditOptions",
    "IncludeEntry",
    "MkDocsConfig",
    "NavEntry",
    "NavLeaf",
    "PageEntry",
    "PlainPathEntry",
    "SectionEntry",
]
