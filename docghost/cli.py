"""Command-line interface for docghost."""

import argparse
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml
from pydantic import ValidationError

from .audit import run_audit
from .context import RunContext
from .io_utils import stable_json_dumps, warn, write_json_stable
from .models import CATEGORIES, AuditOptions
from .render import failure_payload, render_text, report_payload
from .util_fs import normalize_path

EXIT_CLEAN = 0
EXIT_ISSUES = 1
EXIT_FAILURE = 2

_PATH_KEYS = ("mkdocs_yaml", "help_urls")
_KEY_ALIASES = {"summary": "summary_only"}


def load_options(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise SystemExit(f"Cannot read options file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise SystemExit(f"Invalid YAML in options file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SystemExit(f"Options file {path} must contain a mapping.")

    options: Dict[str, Any] = {}
    for key, value in data.items():
        name = str(key).replace("-", "_")
        name = _KEY_ALIASES.get(name, name)
        if name in _PATH_KEYS and value is not None:
            value = normalize_path(path.parent / str(value))
        options[name] = value
    return options


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def build_options(args: argparse.Namespace) -> AuditOptions:
    """Merge the optional options file with flags given on the command line."""

    data = load_options(Path(args.config)) if args.config else {}
    if args.mkdocs_yaml:
        data["mkdocs_yaml"] = Path(args.mkdocs_yaml)
    if args.help_urls:
        data["help_urls"] = Path(args.help_urls)
    categories = [name for name in CATEGORIES if getattr(args, name)]
    if categories:
        data["categories"] = categories
    if args.summary:
        data["summary_only"] = True
    if args.exclude:
        data["exclude"] = [*data.get("exclude", []), *_split_csv(args.exclude)]
    if args.workers is not None:
        data["workers"] = args.workers
    if args.strict_ghosts:
        data["strict_ghosts"] = True
    if args.verbose:
        data["verbose"] = True

    if "mkdocs_yaml" not in data:
        raise SystemExit("--mkdocs-yaml is required (directly or through --config).")
    try:
        return AuditOptions.model_validate(data)
    except ValidationError as exc:
        raise SystemExit(f"Invalid audit options: {exc}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docghost",
        description=(
            "Audit MkDocs navigation against the markdown on disk. By default every "
            "report is shown; pass category switches to restrict the output."
        ),
    )
    parser.add_argument("--mkdocs-yaml", help="Path to the root mkdocs.yml.")
    parser.add_argument(
        "--help-urls", help="Path to the header file containing HELP_URL definitions."
    )
    parser.add_argument("--config", help="YAML file holding audit options.")
    parser.add_argument(
        "--nav-missing",
        action="store_true",
        help="Show files referenced in nav that don't exist on disk.",
    )
    parser.add_argument(
        "--ghost",
        action="store_true",
        help="Show markdown files on disk that nav does not reach.",
    )
    parser.add_argument(
        "--help-missing",
        action="store_true",
        help="Show HELP_URL entries whose page does not exist.",
    )
    parser.add_argument(
        "--broken-links",
        action="store_true",
        help="Show internal links that do not resolve.",
    )
    parser.add_argument(
        "--missing-images",
        action="store_true",
        help="Show image references that point to non-existent files.",
    )
    parser.add_argument(
        "--orphan-images",
        action="store_true",
        help="Show image files not referenced by any markdown or CSS.",
    )
    parser.add_argument(
        "--summary", action="store_true", help="Show only counts, not individual items."
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress output; the exit status still reports issues.",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the report as JSON."
    )
    parser.add_argument("--out", help="Also write the JSON report to this path.")
    parser.add_argument(
        "--exclude",
        help="Comma-separated, case-insensitive path substrings to leave out.",
    )
    parser.add_argument("--workers", type=int, help="Threads used to scan documents.")
    parser.add_argument(
        "--strict-ghosts",
        action="store_true",
        help="Treat every file missing from nav as a ghost, even when linked.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Trace progress on stderr."
    )
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    options = build_options(args)
    ctx = RunContext(
        root=normalize_path(Path(options.mkdocs_yaml).absolute()).parent,
        content_dirname=options.content_dirname,
        verbose=options.verbose,
    )

    outcome = run_audit(options, ctx)
    if not outcome.ok or outcome.report is None:
        warn(f"Error: {outcome.error}")
        if args.json:
            print(stable_json_dumps(failure_payload(outcome.error or "")), end="")
        return EXIT_FAILURE

    report = outcome.report
    payload = report_payload(report, ctx)
    if args.out:
        write_json_stable(Path(args.out), payload)
    if args.json:
        print(stable_json_dumps(payload), end="")
    elif not args.quiet:
        print(render_text(report, ctx))
    return EXIT_ISSUES if report.total else EXIT_CLEAN


__all__ = ["build_options", "build_parser", "load_options", "main"]


if __name__ == "__main__":
    raise SystemExit(main())
