"""Text and JSON presentation of an audit report."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from .audit import AuditReport, BrokenLink, MissingHelpTarget, MissingImage
from .context import RunContext

SECTION_TITLES = {
    "nav_missing": "Missing nav entries",
    "ghost": "Ghost files (orphans)",
    "help_missing": "Missing help URLs",
    "broken_links": "Broken links",
    "missing_images": "Missing images",
    "orphan_images": "Orphan images",
}

TABLE_MARKER = "[H] "


def templates_dir() -> Path:
    return Path(__file__).parent / "templates"


def jinja_env() -> Environment:
    return Environment(
        loader=FileSystemLoader([str(templates_dir())]),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )


def format_item(item: Any, ctx: RunContext) -> str:
    """One report line for a finding of any category."""

    if isinstance(item, BrokenLink):
        marker = TABLE_MARKER if item.from_external_table else ""
        return f"{marker}{ctx.display(item.source)} -> {item.link_target}"
    if isinstance(item, MissingImage):
        return f"{ctx.display(item.source)} -> {item.image_target}"
    if isinstance(item, MissingHelpTarget):
        if item.expected is not None:
            return ctx.display(item.expected)
        return f"{item.key or '?'}: {item.reason} (line {item.line})"
    if isinstance(item, Path):
        return ctx.display(item)
    return str(item)


def _finding_payload(item: Any, ctx: RunContext) -> Any:
    if isinstance(item, BrokenLink):
        return {
            "source": ctx.display(item.source),
            "link_target": item.link_target,
            "from_external_table": item.from_external_table,
            "line": item.line,
        }
    if isinstance(item, MissingImage):
        return {
            "source": ctx.display(item.source),
            "image_target": item.image_target,
            "line": item.line,
        }
    return format_item(item, ctx)


def report_payload(report: AuditReport, ctx: RunContext) -> Dict[str, Any]:
    """JSON-ready view of a report with display paths."""

    payload: Dict[str, Any] = {
        "ok": True,
        "categories": list(report.categories),
        "counts": report.counts(),
        "total": report.total,
        "duplicates": [
            {
                "path": ctx.display(dup.path),
                "kept_trail": dup.kept_trail,
                "dropped_trail": dup.dropped_trail,
            }
            for dup in report.duplicates
        ],
        "errors": [
            {"path": ctx.display(err.path), "message": err.message} for err in report.errors
        ],
    }
    if not report.summary_only:
        payload["findings"] = {
            name: [_finding_payload(item, ctx) for item in report.items(name)]
            for name in report.categories
        }
    return payload


def failure_payload(message: str) -> Dict[str, Any]:
    return {"ok": False, "error": message}


def _sections(report: AuditReport, ctx: RunContext) -> List[Dict[str, Any]]:
    sections = []
    for name in report.categories:
        items = report.items(name)
        sections.append(
            {
                "name": name,
                "title": SECTION_TITLES[name],
                "count": len(items),
                "lines": [format_item(item, ctx) for item in items],
            }
        )
    return sections


def render_text(report: AuditReport, ctx: RunContext, env: Environment | None = None) -> str:
    """Human-readable report; one section per computed category."""

    template = (env or jinja_env()).get_template("report.txt.jinja")
    return template.render(
        sections=_sections(report, ctx),
        summary_only=report.summary_only,
        total=report.total,
        duplicates=[
            f"{ctx.display(dup.path)}: {dup.kept_trail or '/'} kept, {dup.dropped_trail or '/'} dropped"
            for dup in report.duplicates
        ],
        errors=[f"{ctx.display(err.path)}: {err.message}" for err in report.errors],
    )


__all__ = [
    "SECTION_TITLES",
    "failure_payload",
    "format_item",
    "jinja_env",
    "render_text",
    "report_payload",
]
