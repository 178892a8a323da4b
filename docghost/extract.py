"""Extraction and normalisation of link and image references in markdown."""

from __future__ import annotations

import bisect
import posixpath
import re
from dataclasses import dataclass, field
from typing import List, Literal, Union
from urllib.parse import unquote

from bs4 import BeautifulSoup

CONTENT_SUFFIX = ".md"
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico", ".bmp")

RefKind = Literal["link", "image"]
RefSyntax = Literal["markdown", "reference", "html"]

_TEXT = r"\[(?:[^\[\]\n]|\[[^\[\]\n]*\])*\]"
_TARGET = (
    r"\(\s*(?:<(?P<angle>[^>\n]*)>"
    r"|(?P<bare>[^\s()]*(?:\([^\s()]*\)[^\s()]*)*))"
    r"(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*\)"
)
INLINE_LINK_RE = re.compile(r"(?<![!\\])" + _TEXT + _TARGET)
INLINE_IMAGE_RE = re.compile(r"(?<!\\)!" + _TEXT + _TARGET)
REFERENCE_DEF_RE = re.compile(
    r"^[ ]{0,3}\[(?!\^)(?P<label>[^\]\n]+)\]:[ \t]*(?:<(?P<angle>[^>\n]*)>|(?P<bare>\S+))",
    re.MULTILINE,
)
# full ``[text][id]`` and collapsed ``[id][]`` usages, with ``!`` for images
REFERENCE_USE_RE = re.compile(
    r"(?<!\\)(?P<bang>!?)\[(?P<text>(?:[^\[\]\n]|\[[^\[\]\n]*\])*)\]\[(?P<label>[^\[\]\n]*)\]"
)
CSS_URL_RE = re.compile(r"url\s*\(\s*['\"]?([^'\")]+)['\"]?\s*\)")

_FENCE_RE = re.compile(r"^[ ]{0,3}(`{3,}|~{3,})")
_INLINE_CODE_RE = re.compile(r"(?<!`)(`+)(?!`)(.+?)(?<!`)\1(?!`)")
_HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_HTML_HINT_RE = re.compile(r"<(?:a|img)\b", re.IGNORECASE)
_SCHEME_RE = re.compile(r"^(?:[A-Za-z][A-Za-z0-9+.\-]*:|//)")


@dataclass(frozen=True)
class RawReference:
    """A link or image target exactly as written in a document."""

    target: str
    line: int
    start: int
    end: int
    kind: RefKind = "link"
    syntax: RefSyntax = "markdown"


@dataclass
class Extracted:
    links: List[RawReference] = field(default_factory=list)
    images: List[RawReference] = field(default_factory=list)


@dataclass(frozen=True)
class NormalisedLink:
    """Target ready for resolution; the anchor is informational only."""

    target: str
    anchor: str = field(default="", compare=False)

    @property
    def is_absolute(self) -> bool:
        return self.target.startswith("/")


@dataclass(frozen=True)
class External:
    """Reference that is skipped and always counts as valid."""

    target: str
    reason: Literal["scheme", "anchor", "asset", "root"]


Normalised = Union[NormalisedLink, External]


def _blank(segment: str) -> str:
    return re.sub(r"[^\n]", " ", segment)


def mask_code(text: str) -> str:
    """Blank out fenced blocks, inline code spans and HTML comments.

    Every character keeps its offset and every newline survives.
    """

    masked: list[str] = []
    fence: str | None = None
    for line in text.splitlines(keepends=True):
        bare = line.rstrip("\r\n")
        if fence is None:
            match = _FENCE_RE.match(bare)
            if match:
                fence = match.group(1)
                masked.append(_blank(line))
            else:
                masked.append(line)
            continue
        closing = bare.strip()
        if closing and set(closing) == {fence[0]} and len(closing) >= len(fence):
            fence = None
        masked.append(_blank(line))
    text = _INLINE_CODE_RE.sub(lambda m: _blank(m.group(0)), "".join(masked))
    return _HTML_COMMENT_RE.sub(lambda m: _blank(m.group(0)), text)


def _label_key(label: str) -> str:
    return " ".join(label.split()).casefold()


def _reference_kinds(masked: str) -> dict[str, set[str]]:
    """Kinds each reference label is used with; images use ``![...][id]``."""

    kinds: dict[str, set[str]] = {}
    for match in REFERENCE_USE_RE.finditer(masked):
        label = match.group("label") or match.group("text")
        kind = "image" if match.group("bang") else "link"
        kinds.setdefault(_label_key(label), set()).add(kind)
    return kinds


class _LineIndex:
    def __init__(self, text: str) -> None:
        self.starts = [0] + [m.end() for m in re.finditer(r"\n", text)]

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self.starts, offset)

    def offset_of(self, line: int, column: int) -> int:
        line = min(max(line, 1), len(self.starts))
        return self.starts[line - 1] + column


def _from_match(match: re.Match, lines: _LineIndex, kind: RefKind, syntax: RefSyntax) -> RawReference:
    group = "angle" if match.group("angle") is not None else "bare"
    start, end = match.span(group)
    return RawReference(
        target=match.group(group),
        line=lines.line_of(start),
        start=start,
        end=end,
        kind=kind,
        syntax=syntax,
    )


def _html_references(masked: str, lines: _LineIndex) -> list[RawReference]:
    if not _HTML_HINT_RE.search(masked):
        return []
    found: list[RawReference] = []
    soup = BeautifulSoup(masked, "html.parser")
    for tag in soup.find_all(["a", "img"]):
        attr = "href" if tag.name == "a" else "src"
        value = tag.get(attr)
        if not isinstance(value, str) or not value.strip():
            continue
        offset = lines.offset_of(tag.sourceline or 1, tag.sourcepos or 0)
        start = masked.find(value, offset)
        if start < 0:
            start = offset
        found.append(
            RawReference(
                target=value,
                line=lines.line_of(start),
                start=start,
                end=start + len(value),
                kind="link" if tag.name == "a" else "image",
                syntax="html",
            )
        )
    return found


def extract(text: str) -> Extracted:
    """Find every link and image target in a markdown document.

    Code is masked before matching, so offsets and line numbers refer to the
    original text. Both lists are in document order.
    """

    masked = mask_code(text)
    lines = _LineIndex(masked)
    references: list[RawReference] = []
    references.extend(
        _from_match(m, lines, "link", "markdown") for m in INLINE_LINK_RE.finditer(masked)
    )
    references.extend(
        _from_match(m, lines, "image", "markdown") for m in INLINE_IMAGE_RE.finditer(masked)
    )
    used = _reference_kinds(masked)
    for match in REFERENCE_DEF_RE.finditer(masked):
        # an unused definition still counts as a link
        for kind in sorted(used.get(_label_key(match.group("label")), {"link"})):
            references.append(_from_match(match, lines, kind, "reference"))
    references.extend(_html_references(masked, lines))
    references.sort(key=lambda ref: (ref.start, ref.end))

    extracted = Extracted()
    for ref in references:
        if not ref.target.strip():
            continue
        if ref.kind == "image":
            extracted.images.append(ref)
        else:
            extracted.links.append(ref)
    return extracted


def extract_links(text: str) -> list[str]:
    return [ref.target for ref in extract(text).links]


def extract_images(text: str) -> list[str]:
    return [ref.target for ref in extract(text).images]


def extract_css_images(css: str) -> list[str]:
    """Local ``url(...)`` targets of a stylesheet."""

    refs: list[str] = []
    for match in CSS_URL_RE.finditer(css):
        url = match.group(1).strip()
        if not url or url.startswith("#") or _SCHEME_RE.match(url):
            continue
        refs.append(url)
    return refs


def normalise(raw: Union[str, RawReference]) -> Normalised:
    """Map a link target onto the content file it names.

    The anchor is dropped, a trailing separator becomes ``<dir>.md`` and a
    missing extension becomes ``.md``. URL schemes, bare anchors and links to
    non-content files are External.
    """

    target = raw.target if isinstance(raw, RawReference) else raw
    target = target.strip()
    path, _, anchor = target.partition("#")
    path = path.strip()
    if not path:
        return External(target, "anchor")
    if _SCHEME_RE.match(path):
        return External(target, "scheme")
    path = unquote(path.partition("?")[0])
    if not path:
        return External(target, "anchor")

    if path.endswith("/"):
        path = path.rstrip("/")
        if not path:
            return External(target, "root")
        if posixpath.basename(path) in (".", ".."):
            return NormalisedLink(f"{path}/index{CONTENT_SUFFIX}", anchor)
        return NormalisedLink(path + CONTENT_SUFFIX, anchor)

    _, ext = posixpath.splitext(posixpath.basename(path))
    if not ext:
        if posixpath.basename(path) in (".", ".."):
            return NormalisedLink(f"{path}/index{CONTENT_SUFFIX}", anchor)
        return NormalisedLink(path + CONTENT_SUFFIX, anchor)
    if ext.lower() == CONTENT_SUFFIX:
        return NormalisedLink(path, anchor)
    return External(target, "asset")


def normalise_image(raw: Union[str, RawReference]) -> Normalised:
    """Strip anchor and query from an image target; remote images are External."""

    target = raw.target if isinstance(raw, RawReference) else raw
    target = target.strip()
    path = target.partition("#")[0].partition("?")[0].strip()
    if not path:
        return External(target, "anchor")
    if _SCHEME_RE.match(path):
        return External(target, "scheme")
    return NormalisedLink(unquote(path))


__all__ = [
    "CONTENT_SUFFIX",
    "IMAGE_SUFFIXES",
    "External",
    "Extracted",
    "NormalisedLink",
    "RawReference",
    "extract",
    "extract_css_images",
    "extract_images",
    "extract_links",
    "mask_code",
    "normalise",
    "normalise_image",
]
