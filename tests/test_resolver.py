import textwrap
from pathlib import Path

from docghost.context import RunContext
from docghost.nav import load_nav
from docghost.path_space import PathSpace
from docghost.resolver import LinkResolver, resolve, url_space_candidates


def _write(path: Path, text: str = "# page\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


def _resolver(tmp_path: Path, nav: str) -> LinkResolver:
    mkdocs = _write(tmp_path / "mkdocs.yml", nav)
    ctx = RunContext(root=tmp_path)
    config = load_nav(mkdocs, ctx)
    roots = [p for p in [tmp_path / "docs"] if p.is_dir()]
    return LinkResolver(PathSpace.build(config, ctx), ctx, content_roots=roots)


def test_nav_phase_uses_parent_of_trail(tmp_path: Path):
    a = _write(tmp_path / "docs" / "a.md")
    b = _write(tmp_path / "docs" / "dir" / "b.md")
    child = _write(tmp_path / "release-notes" / "docs" / "child.md")
    _write(tmp_path / "release-notes" / "mkdocs.yml", "nav:\n  - Child: child.md\n")
    resolver = _resolver(
        tmp_path,
        """
        nav:
          - A: a.md
          - B: dir/b.md
          - Include: '!include ./release-notes/mkdocs.yml'
        """,
    )

    first = resolver.resolve(b, "../a.md")
    second = resolver.resolve(b, "/release-notes/child.md")

    assert (first.target, first.phase) == (a, "nav")
    assert (second.target, second.phase) == (child, "nav")


def test_model_a_wins_over_model_b(tmp_path: Path):
    source = _write(tmp_path / "docs" / "a" / "page.md")
    model_a = _write(tmp_path / "docs" / "a" / "x.md")
    model_b = _write(tmp_path / "docs" / "x.md")
    resolver = _resolver(tmp_path, "nav:\n  - Page: a/page.md\n")

    result = resolver.resolve(source, "../x.md")

    assert result.phase == "url-space"
    assert result.target == model_a
    assert result.target != model_b


def test_model_b_when_page_as_directory_misses(tmp_path: Path):
    source = _write(tmp_path / "docs" / "primitive-operators" / "beside.md")
    target = _write(tmp_path / "docs" / "operator-syntax.md")
    resolver = _resolver(tmp_path, "nav:\n  - Beside: primitive-operators/beside.md\n")

    result = resolver.resolve(source, "../operator-syntax.md")

    assert (result.target, result.phase) == (target, "url-space")


def test_cross_subsite_inserts_content_dir(tmp_path: Path):
    source = _write(tmp_path / "release-notes" / "docs" / "new-enhanced.md")
    target = _write(
        tmp_path
        / "programming-reference-guide"
        / "docs"
        / "introduction"
        / "arrays"
        / "array-notation.md"
    )
    ctx = RunContext(root=tmp_path)

    candidates = url_space_candidates(
        source,
        "../../programming-reference-guide/introduction/arrays/array-notation.md",
        ctx,
    )
    result = resolve(
        source,
        "../../programming-reference-guide/introduction/arrays/array-notation.md",
        PathSpace(),
        ctx,
    )

    assert candidates[0] == target
    assert (result.target, result.phase) == (target, "url-space")


def test_directory_index_fallback(tmp_path: Path):
    source = _write(
        tmp_path / "language-reference-guide" / "docs" / "introduction" / "arrays" / "structuring.md"
    )
    index = _write(
        tmp_path / "language-reference-guide" / "docs" / "primitive-functions" / "ravel" / "index.md"
    )
    ctx = RunContext(root=tmp_path)

    result = resolve(
        source,
        "../../../../language-reference-guide/primitive-functions/ravel.md",
        PathSpace(),
        ctx,
    )

    assert result.target == index


def test_deep_relative_link_stays_in_subsite(tmp_path: Path):
    site = tmp_path / "language-reference-guide" / "docs"
    source = _write(site / "system-functions" / "shell.md")
    target = _write(site / "primitive-operators" / "i-beam" / "shell-process-control.md")
    ctx = RunContext(root=tmp_path)

    result = resolve(
        source, "../../primitive-operators/i-beam/shell-process-control.md", PathSpace(), ctx
    )

    assert result.target == target


def test_content_root_and_parent_fallbacks(tmp_path: Path):
    outside = _write(tmp_path / "notes" / "readme.md")
    sibling = _write(tmp_path / "notes" / "other.md")
    rooted = _write(tmp_path / "guide" / "docs" / "shared" / "terms.md")
    source = _write(tmp_path / "guide" / "docs" / "deep" / "page.md")
    ctx = RunContext(root=tmp_path)
    space = PathSpace()

    assert resolve(outside, "other.md", space, ctx).target == sibling
    assert resolve(outside, "other.md", space, ctx).phase == "parent"
    absolute = resolve(source, "/shared/terms.md", space, ctx)
    assert absolute.target == rooted


def test_unresolvable_link_is_broken(tmp_path: Path):
    source = _write(tmp_path / "docs" / "a.md")
    resolver = _resolver(tmp_path, "nav:\n  - A: a.md\n")

    result = resolver.resolve(source, "b.md")

    assert not result.ok
    assert result.target is None and result.phase is None


def test_skipping_nav_phase(tmp_path: Path):
    a = _write(tmp_path / "docs" / "a.md")
    b = _write(tmp_path / "docs" / "dir" / "b.md")
    resolver = _resolver(tmp_path, "nav:\n  - A: a.md\n  - B: dir/b.md\n")

    assert resolver.resolve(b, "../a.md").phase == "nav"
    assert resolver.resolve(b, "../a.md", use_nav=False).phase == "url-space"
    assert resolver.resolve(b, "../a.md", use_nav=False).target == a


def test_image_resolution_keeps_extension(tmp_path: Path):
    source = _write(tmp_path / "guide" / "docs" / "topic" / "page.md")
    image = tmp_path / "guide" / "docs" / "topic" / "img" / "a.png"
    image.parent.mkdir(parents=True)
    image.write_bytes(b"\x89PNG")
    shared = tmp_path / "guide" / "docs" / "assets" / "logo.svg"
    shared.parent.mkdir(parents=True)
    shared.write_text("<svg/>", encoding="utf-8")
    ctx = RunContext(root=tmp_path)
    resolver = LinkResolver(
        PathSpace(), ctx, content_roots=[tmp_path / "guide" / "docs"]
    )

    assert resolver.resolve_image(source, "img/a.png").target == image
    assert resolver.resolve_image(source, "/assets/logo.svg").target == shared
    assert not resolver.resolve_image(source, "img/missing.png").ok
