import textwrap

import pytest

from docghost.extract import (
    External,
    NormalisedLink,
    extract,
    extract_css_images,
    extract_images,
    extract_links,
    mask_code,
    normalise,
    normalise_image,
)


def test_markdown_and_html_links():
    content = textwrap.dedent(
        """
        # Test Page

        Here is a [markdown link](markdown-target.md).

        And here is <a href="html-target.md">an HTML link</a>.

        And an inline <a href="inline.md">inline link</a> in text.
        """
    )

    links = extract_links(content)

    assert links == ["markdown-target.md", "html-target.md", "inline.md"]


def test_link_with_bold_text():
    content = "[**Applies To**](../propertyapplies/accelerator.md)"

    assert extract_links(content) == ["../propertyapplies/accelerator.md"]


def test_links_inside_markdown_table():
    content = textwrap.dedent(
        """
        |----------------------------------------------|----------------------------------------|
        |[ActiveXControl](../objects/activexcontrol.md)|[Bitmap](../objects/bitmap.md)          |
        |[ButtonEdit](../objects/buttonedit.md)        |[Calendar](../objects/calendar.md)      |
        """
    )

    assert extract_links(content) == [
        "../objects/activexcontrol.md",
        "../objects/bitmap.md",
        "../objects/buttonedit.md",
        "../objects/calendar.md",
    ]


def test_images_are_separate_from_links():
    content = textwrap.dedent(
        """
        ![Diagram](img/diagram.png "A title")
        [![Badge](img/badge.svg)](target.md)
        <img src="img/raw.gif" alt="raw">
        """
    )

    extracted = extract(content)

    assert [ref.target for ref in extracted.links] == ["target.md"]
    assert [ref.target for ref in extracted.images] == [
        "img/diagram.png",
        "img/badge.svg",
        "img/raw.gif",
    ]


def test_reference_definitions_and_footnotes():
    content = textwrap.dedent(
        """
        See [the guide][guide].

        [guide]: ../guide.md "Guide"
        [^1]: a footnote, not a link
        """
    )

    assert extract_links(content) == ["../guide.md"]


def test_code_is_ignored():
    content = textwrap.dedent(
        """
        Real [link](real.md) and `[fake](inline.md)`.

        ```markdown
        [fenced](fenced.md)
        ```

        ~~~~
        <a href="tilde.md">x</a>
        ~~~~
        """
    )

    assert extract_links(content) == ["real.md"]


def test_mask_code_preserves_offsets():
    content = "a `b` c\n```\ncode\n```\nd"

    masked = mask_code(content)

    assert len(masked) == len(content)
    assert masked.count("\n") == content.count("\n")
    assert "code" not in masked
    assert masked.endswith("d")


def test_lines_and_offsets_point_at_the_target():
    content = "# Title\n\nIntro [one](one.md)\n\n<a href=\"two.md\">two</a>\n"

    extracted = extract(content)

    first, second = extracted.links
    assert first.line == 3
    assert content[first.start : first.end] == "one.md"
    assert first.syntax == "markdown"
    assert second.line == 5
    assert content[second.start : second.end] == "two.md"
    assert second.syntax == "html"


def test_angle_bracket_and_parenthesised_targets():
    content = "[spaced](<my page.md>) and [wiki](Foo_(bar).md)"

    assert extract_links(content) == ["my page.md", "Foo_(bar).md"]


def test_normalise_anchor_is_ignored():
    assert normalise("page.md#section") == normalise("page.md")
    assert normalise("page.md#section").anchor == "section"


def test_normalise_infers_extension():
    assert normalise("page") == normalise("page.md")
    assert normalise("dir/") == normalise("dir.md")
    assert normalise("dir/page") == NormalisedLink("dir/page.md")
    assert normalise("path/to/dir/") == NormalisedLink("path/to/dir.md")
    assert normalise("page#anchor") == NormalisedLink("page.md")


@pytest.mark.parametrize(
    "target, reason",
    [
        ("https://example.com", "scheme"),
        ("http://example.com/page.md", "scheme"),
        ("mailto:test@example.com", "scheme"),
        ("//cdn.example.com/x.md", "scheme"),
        ("#just-anchor", "anchor"),
        ("image.png", "asset"),
        ("/", "root"),
    ],
)
def test_normalise_external(target: str, reason: str):
    result = normalise(target)

    assert isinstance(result, External)
    assert result.reason == reason


def test_normalise_decodes_percent_escapes():
    assert normalise("my%20page.md") == NormalisedLink("my page.md")


def test_normalise_image():
    assert normalise_image("img/a.png?v=2#frag") == NormalisedLink("img/a.png")
    assert isinstance(normalise_image("data:image/png;base64,AAAA"), External)
    assert isinstance(normalise_image("https://example.com/a.png"), External)


def test_extract_images_helper():
    assert extract_images("![x](a.png) and [y](b.md)") == ["a.png"]


def test_css_url_references():
    css = textwrap.dedent(
        """
        .logo { background: url("../img/logo.svg") no-repeat; }
        .bg { background-image: url(img/bg.png); }
        .inline { background: url(data:image/png;base64,AAAA); }
        .remote { background: url('https://example.com/x.png'); }
        """
    )

    assert extract_css_images(css) == ["../img/logo.svg", "img/bg.png"]


def test_reference_style_images_and_links():
    content = textwrap.dedent(
        """
        ![logo][l] and [the guide][Guide] and ![Chart][]

        [l]: img/logo.png
        [guide]: guide.md
        [chart]: <img/chart one.svg>
        [unused]: notes.md
        """
    )

    extracted = extract(content)

    assert [ref.target for ref in extracted.images] == ["img/logo.png", "img/chart one.svg"]
    assert [ref.target for ref in extracted.links] == ["guide.md", "notes.md"]
    assert extracted.images[0].line == 4
    assert extracted.images[0].syntax == "reference"


def test_definition_used_as_image_and_link():
    content = "![pic][p] and [download][p]\n\n[p]: img/p.png\n"

    extracted = extract(content)

    assert [ref.target for ref in extracted.images] == ["img/p.png"]
    assert [ref.target for ref in extracted.links] == ["img/p.png"]


def test_html_comments_are_ignored():
    content = textwrap.dedent(
        """
        <!-- see [old](gone.md) -->
        Kept [live](live.md).
        <!--
        <a href="hidden.md">x</a>
        ![old](img/old.png)
        -->
        """
    )

    extracted = extract(content)

    assert [ref.target for ref in extracted.links] == ["live.md"]
    assert extracted.links[0].line == 3
    assert extracted.images == []
    assert len(mask_code(content)) == len(content)
