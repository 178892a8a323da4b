import json
import textwrap
from pathlib import Path

import pytest

from docghost import cli


def _write(path: Path, text: str = "# page\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


def _site(tmp_path: Path) -> Path:
    _write(tmp_path / "docs" / "a.md", "See [b](b.md).\n")
    _write(tmp_path / "docs" / "orphan.md")
    return _write(tmp_path / "mkdocs.yml", "nav:\n  - A: a.md\n  - Guide: guide.md\n")


def test_issues_exit_with_one(tmp_path: Path, capsys):
    mkdocs = _site(tmp_path)

    code = cli.main(["--mkdocs-yaml", str(mkdocs)])

    out = capsys.readouterr().out
    assert code == cli.EXIT_ISSUES
    assert "Missing nav entries:\n  guide.md" in out
    assert "Broken links:\n  a.md -> b.md" in out
    assert "Total issues: 3" in out


def test_clean_tree_exits_with_zero(tmp_path: Path, capsys):
    _write(tmp_path / "docs" / "index.md")
    mkdocs = _write(tmp_path / "mkdocs.yml", "nav:\n  - Home: index.md\n")

    assert cli.main(["--mkdocs-yaml", str(mkdocs)]) == cli.EXIT_CLEAN
    assert "Total issues: 0" in capsys.readouterr().out


def test_failure_exits_with_two(tmp_path: Path, capsys):
    code = cli.main(["--mkdocs-yaml", str(tmp_path / "absent.yml")])

    captured = capsys.readouterr()
    assert code == cli.EXIT_FAILURE
    assert captured.err.startswith("Error:")
    assert "Total issues" not in captured.out


def test_category_switches_and_summary(tmp_path: Path, capsys):
    mkdocs = _site(tmp_path)

    cli.main(["--mkdocs-yaml", str(mkdocs), "--ghost", "--nav-missing", "--summary"])

    out = capsys.readouterr().out
    assert "Missing nav entries: 1" in out
    assert "Ghost files (orphans): 1" in out
    assert "Broken links" not in out
    assert "Total issues: 2" in out


def test_json_output_and_out_file(tmp_path: Path, capsys):
    mkdocs = _site(tmp_path)
    out_file = tmp_path / "reports" / "audit.json"

    code = cli.main(["--mkdocs-yaml", str(mkdocs), "--json", "--out", str(out_file)])

    payload = json.loads(capsys.readouterr().out)
    assert code == cli.EXIT_ISSUES
    assert payload["ok"] is True
    assert payload["total"] == 3
    assert payload["findings"]["ghost"] == ["orphan.md"]
    assert json.loads(out_file.read_text(encoding="utf-8")) == payload


def test_quiet_prints_nothing(tmp_path: Path, capsys):
    mkdocs = _site(tmp_path)

    assert cli.main(["--mkdocs-yaml", str(mkdocs), "-q"]) == cli.EXIT_ISSUES
    assert capsys.readouterr().out == ""


def test_options_file_paths_are_relative_to_it(tmp_path: Path, capsys):
    _site(tmp_path)
    config = _write(
        tmp_path / "conf" / "audit.yml",
        """
        mkdocs-yaml: ../mkdocs.yml
        categories: [broken-links]
        exclude: [orphan]
        """,
    )

    code = cli.main(["--config", str(config), "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert code == cli.EXIT_ISSUES
    assert payload["categories"] == ["broken_links"]
    assert payload["counts"] == {"broken_links": 1}


def test_exclude_flag_extends_options(tmp_path: Path, capsys):
    mkdocs = _site(tmp_path)

    cli.main(["--mkdocs-yaml", str(mkdocs), "--ghost", "--exclude", "orphan, ,other", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["counts"] == {"ghost": 0}


def test_missing_mkdocs_yaml_is_a_usage_error():
    with pytest.raises(SystemExit):
        cli.main([])


def test_invalid_options_are_a_usage_error(tmp_path: Path):
    mkdocs = _site(tmp_path)

    with pytest.raises(SystemExit):
        cli.main(["--mkdocs-yaml", str(mkdocs), "--workers", "0"])


def test_unreadable_options_file(tmp_path: Path):
    with pytest.raises(SystemExit):
        cli.main(["--config", str(tmp_path / "absent.yml")])
