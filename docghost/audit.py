"""Audit orchestration over a whole documentation monorepo."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .context import RunContext
from .errors import ConfigError, FilesystemError
from .extract import (
    CONTENT_SUFFIX,
    IMAGE_SUFFIXES,
    External,
    NormalisedLink,
    extract,
    extract_css_images,
    normalise,
    normalise_image,
)
from .help_table import HelpUrlEntry, anchor_source, expected_path, load_table
from .models import CATEGORIES, AuditOptions, MkDocsConfig
from .nav import iter_leaves, leaf_path, load_nav, mount_roots
from .path_space import DuplicateDeclaration, PathSpace
from .resolver import LinkResolver
from .util_fs import matches_exclude, normalize_path, walk_files

PRINT_SUFFIX = "-print.md"
ASSETS_DIRNAME = "documentation-assets"
STYLESHEET_SUFFIXES = (".css", ".scss")


@dataclass(frozen=True, order=True)
class BrokenLink:
    source: Path
    link_target: str
    from_external_table: bool = False
    line: int = field(default=0, compare=False)


@dataclass(frozen=True, order=True)
class MissingImage:
    source: Path
    image_target: str
    line: int = field(default=0, compare=False)


@dataclass(frozen=True)
class MissingHelpTarget:
    """Help table entry whose page could not be found."""

    expected: Optional[Path]
    key: str
    line: int = 0
    reason: str = "not found"


@dataclass
class DocumentScan:
    path: Path
    referenced: List[Path] = field(default_factory=list)
    broken: List[BrokenLink] = field(default_factory=list)
    images: List[Path] = field(default_factory=list)
    missing_images: List[MissingImage] = field(default_factory=list)
    error: Optional[FilesystemError] = None


@dataclass
class AuditReport:
    """Findings of one run, each list ordered by source then target."""

    categories: List[str] = field(default_factory=lambda: list(CATEGORIES))
    nav_missing: List[Path] = field(default_factory=list)
    ghost: List[Path] = field(default_factory=list)
    help_missing: List[MissingHelpTarget] = field(default_factory=list)
    broken_links: List[BrokenLink] = field(default_factory=list)
    missing_images: List[MissingImage] = field(default_factory=list)
    orphan_images: List[Path] = field(default_factory=list)
    errors: List[FilesystemError] = field(default_factory=list)
    duplicates: List[DuplicateDeclaration] = field(default_factory=list)
    summary_only: bool = False

    def items(self, category: str) -> list:
        if category not in CATEGORIES:
            raise KeyError(category)
        return getattr(self, category)

    def counts(self) -> Dict[str, int]:
        return {name: len(self.items(name)) for name in self.categories}

    @property
    def total(self) -> int:
        return sum(self.counts().values())


@dataclass
class AuditOutcome:
    """Either a full report or a failure message, never both."""

    ok: bool
    report: Optional[AuditReport] = None
    error: Optional[str] = None


def collect_nav_paths(config: MkDocsConfig, ctx: RunContext) -> List[Path]:
    """Filesystem path of every nav leaf, first declaration first."""

    seen: dict[Path, None] = {}
    for leaf in iter_leaves(config.nav):
        seen.setdefault(leaf_path(leaf, ctx.content_dirname), None)
    return list(seen)


def content_roots(config: MkDocsConfig, ctx: RunContext) -> List[Path]:
    """Content directories of the root site and every mounted subsite."""

    roots: list[Path] = []
    for site in [ctx.root, *mount_roots(config.nav, ctx.root)]:
        candidate = normalize_path(site / ctx.content_dirname)
        if candidate not in roots and candidate.is_dir():
            roots.append(candidate)
    return roots


def scan_corpus(
    ctx: RunContext,
    roots: Iterable[Path],
    exclude: Sequence[str] = (),
    errors: List[FilesystemError] | None = None,
    suffixes: Sequence[str] = (CONTENT_SUFFIX,),
) -> List[Path]:
    """Every file with one of ``suffixes`` below the given roots, sorted."""

    found: set[Path] = set()
    for root in roots:
        found.update(
            walk_files(root, suffixes, exclude_root=ctx.root, exclude=exclude, errors=errors)
        )
    return sorted(found)


def scan_document(path: Path, resolver: LinkResolver, from_table: bool = False) -> DocumentScan:
    """Extract and resolve every reference of one document."""

    scan = DocumentScan(path)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        scan.error = FilesystemError(path, exc.strerror or str(exc))
        return scan

    extracted = extract(text)
    for ref in extracted.links:
        link = normalise(ref)
        if isinstance(link, External):
            continue
        resolution = resolver.resolve(path, link)
        if resolution.ok:
            scan.referenced.append(resolution.target)
        else:
            scan.broken.append(BrokenLink(path, link.target, from_table, ref.line))

    for ref in extracted.images:
        image = normalise_image(ref)
        if isinstance(image, External):
            continue
        resolution = resolver.resolve_image(path, image)
        if resolution.ok:
            scan.images.append(resolution.target)
        else:
            scan.missing_images.append(MissingImage(path, image.target, ref.line))
    return scan


def reachable_from(seeds: Iterable[Path], scans: Dict[Path, DocumentScan]) -> set[Path]:
    """Documents reachable from ``seeds`` by following resolved links."""

    reached: set[Path] = set()
    stack = list(seeds)
    while stack:
        current = stack.pop()
        if current in reached:
            continue
        reached.add(current)
        scan = scans.get(current)
        if scan is not None:
            stack.extend(target for target in scan.referenced if target not in reached)
    return reached


class AuditEngine:
    """Runs every check of one audit and accumulates a single report."""

    def __init__(self, options: AuditOptions, ctx: RunContext | None = None) -> None:
        self.options = options
        self.mkdocs_yaml = normalize_path(Path(options.mkdocs_yaml).absolute())
        self.ctx = ctx or RunContext(
            root=self.mkdocs_yaml.parent,
            content_dirname=options.content_dirname,
            verbose=options.verbose,
        )
        self.errors: list[FilesystemError] = []

    def _excluded(self, path: Optional[Path]) -> bool:
        if path is None:
            return False
        return matches_exclude(path, self.ctx.root, self.options.exclude)

    def run(self) -> AuditReport:
        ctx = self.ctx
        options = self.options
        selected = options.selected()

        if not self.mkdocs_yaml.is_file():
            raise ConfigError("nav declaration not found", self.mkdocs_yaml)
        config = load_nav(self.mkdocs_yaml, ctx)
        space = PathSpace.build(config, ctx)
        nav_paths = [p for p in collect_nav_paths(config, ctx) if not self._excluded(p)]
        roots = content_roots(config, ctx)
        ctx.log(f"content roots: {', '.join(str(root) for root in roots)}")

        corpus = scan_corpus(ctx, roots, options.exclude, self.errors)
        images = scan_corpus(ctx, roots, options.exclude, self.errors, IMAGE_SUFFIXES)
        help_entries = load_table(Path(options.help_urls)) if options.help_urls else []

        resolver = LinkResolver(
            space,
            ctx,
            content_roots=roots,
            known_files=frozenset(corpus),
            known_images=frozenset(images),
        )

        help_targets, help_missing = self._resolve_help(help_entries, resolver)
        existing_nav = [p for p in nav_paths if ctx.is_file(p)]
        scans = self._scan_documents(
            [*corpus, *existing_nav, *help_targets], resolver, set(help_targets)
        )

        report = AuditReport(
            categories=selected,
            summary_only=options.summary_only,
            duplicates=list(space.duplicates),
        )
        if "nav_missing" in selected:
            report.nav_missing = sorted(p for p in nav_paths if not ctx.is_file(p))
        if "ghost" in selected:
            report.ghost = self._ghosts(corpus, nav_paths, existing_nav + help_targets, scans)
        if "help_missing" in selected:
            report.help_missing = sorted(
                (item for item in help_missing if not self._excluded(item.expected)),
                key=lambda item: (str(item.expected or ""), item.key, item.line),
            )
        if "broken_links" in selected:
            report.broken_links = sorted(
                broken for scan in scans.values() for broken in scan.broken
            )
        if "missing_images" in selected:
            report.missing_images = sorted(
                missing for scan in scans.values() for missing in scan.missing_images
            )
        if "orphan_images" in selected:
            referenced = {image for scan in scans.values() for image in scan.images}
            referenced.update(self._stylesheet_images(roots, resolver))
            report.orphan_images = sorted(set(images) - referenced)

        report.errors = sorted(
            {
                *self.errors,
                *ctx.file_errors,
                *(scan.error for scan in scans.values() if scan.error),
            },
            key=lambda err: (str(err.path), err.message),
        )
        ctx.log(f"audit finished with {report.total} issues")
        return report

    def _resolve_help(
        self, entries: List[HelpUrlEntry], resolver: LinkResolver
    ) -> tuple[list[Path], list[MissingHelpTarget]]:
        ctx = self.ctx
        targets: list[Path] = []
        missing: list[MissingHelpTarget] = []
        for entry in entries:
            if not entry.ok:
                missing.append(
                    MissingHelpTarget(None, entry.key, entry.line, entry.error or "malformed entry")
                )
                continue
            target = "/" + entry.target.strip("/")
            if not target.endswith(CONTENT_SUFFIX):
                target += CONTENT_SUFFIX
            resolution = resolver.resolve(
                anchor_source(entry, ctx), NormalisedLink(target), use_nav=False
            )
            if resolution.ok:
                if resolution.target not in targets:
                    targets.append(resolution.target)
            else:
                missing.append(MissingHelpTarget(expected_path(entry, ctx), entry.key, entry.line))
        ctx.log(f"help table: {len(targets)} pages found, {len(missing)} missing")
        return targets, missing

    def _scan_documents(
        self, seeds: Iterable[Path], resolver: LinkResolver, table_pages: set[Path]
    ) -> Dict[Path, DocumentScan]:
        """Scan the seeds, then every page they link to that was not scanned yet."""

        scans: dict[Path, DocumentScan] = {}
        pending = sorted({p for p in seeds if not self._excluded(p)})

        def _scan(path: Path) -> DocumentScan:
            return scan_document(path, resolver, path in table_pages)

        with ThreadPoolExecutor(max_workers=self.options.workers) as pool:
            while pending:
                batch = list(pool.map(_scan, pending))
                for scan in batch:
                    scans[scan.path] = scan
                discovered = {
                    target
                    for scan in batch
                    for target in scan.referenced
                    if target not in scans
                    and target.suffix == CONTENT_SUFFIX
                    and not self._excluded(target)
                    and self.ctx.is_file(target)
                }
                pending = sorted(discovered)
        return scans

    def _ghosts(
        self,
        corpus: List[Path],
        nav_paths: List[Path],
        seeds: List[Path],
        scans: Dict[Path, DocumentScan],
    ) -> List[Path]:
        declared = set(nav_paths)
        ghosts = [
            path
            for path in corpus
            if path not in declared and not path.name.endswith(PRINT_SUFFIX)
        ]
        if self.options.strict_ghosts:
            return ghosts
        reached = reachable_from(seeds, scans)
        return [path for path in ghosts if path not in reached]

    def _stylesheet_images(self, roots: List[Path], resolver: LinkResolver) -> set[Path]:
        """Images referenced from stylesheets; misses there are not reported."""

        dirs = list(roots)
        assets = self.ctx.root / ASSETS_DIRNAME
        if assets.is_dir():
            dirs.append(assets)
        referenced: set[Path] = set()
        for sheet in scan_corpus(self.ctx, dirs, self.options.exclude, self.errors, STYLESHEET_SUFFIXES):
            try:
                css = sheet.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                self.errors.append(FilesystemError(sheet, exc.strerror or str(exc)))
                continue
            for ref in extract_css_images(css):
                image = normalise_image(ref)
                if isinstance(image, External):
                    continue
                resolution = resolver.resolve_image(sheet, image)
                if resolution.ok:
                    referenced.add(resolution.target)
        return referenced


def run_audit(options: AuditOptions, ctx: RunContext | None = None) -> AuditOutcome:
    """Run a full audit; whole-input problems become a failed outcome."""

    try:
        report = AuditEngine(options, ctx).run()
    except ConfigError as exc:
        return AuditOutcome(ok=False, error=str(exc))
    return AuditOutcome(ok=True, report=report)


__all__ = [
    "AuditEngine",
    "AuditOutcome",
    "AuditReport",
    "BrokenLink",
    "DocumentScan",
    "MissingHelpTarget",
    "MissingImage",
    "collect_nav_paths",
    "content_roots",
    "reachable_from",
    "run_audit",
    "scan_corpus",
    "scan_document",
]
