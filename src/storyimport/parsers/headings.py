"""Heading-hierarchy chapter detection shared by Markdown, HTML and DOCX."""

from __future__ import annotations

import re
import warnings
from collections import Counter
from typing import Iterable, Optional

from bs4 import BeautifulSoup, Comment, Tag, XMLParsedAsHTMLWarning

from storyimport.models import (
    ImportFormat,
    ParsedChapter,
    ParsedDocument,
    make_document,
)

from .scenes import scenes_if_multiple
from .text_utils import (
    NON_SEQUENTIAL_WARNING,
    check_sequential,
    extract_chapter_number,
    normalize_whitespace,
)

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_HEADING_RE = re.compile(r"^h([1-6])$")

_BLOCK_TAGS = frozenset(["p", "div", "blockquote", "li"])
_BLOCK_TAGS_WITH_HEADINGS = _BLOCK_TAGS | frozenset(HEADING_TAGS)


def determine_chapter_level(levels: Iterable[int]) -> int:
    """Pick the heading depth that marks chapters.

    Several H1s: H1. A lone H1 plus any H2: H2 (the H1 is the book title).
    Otherwise the most frequent level, ties going to the level seen first.
    """
    counts = Counter(levels)
    if counts.get(1, 0) > 1:
        return 1
    if counts.get(1, 0) == 1 and counts.get(2, 0) > 0:
        return 2

    return most_frequent_level(counts)


def most_frequent_level(counts: Counter) -> int:
    """Most frequent heading level; ties go to the level seen first."""
    best_level, best_count = 1, 0
    for level, count in counts.items():
        if count > best_count:
            best_level, best_count = level, count
    return best_level


def heading_level(tag: Tag) -> Optional[int]:
    match = _HEADING_RE.match(tag.name or "")
    return int(match.group(1)) if match else None


def html_to_paragraphs(root: Tag, include_headings: bool = False) -> list[str]:
    """Block-level text of ``root`` in document order, whitespace-normalized."""
    block_names = _BLOCK_TAGS_WITH_HEADINGS if include_headings else _BLOCK_TAGS

    for tag in root.find_all(["script", "style"]):
        tag.decompose()

    paragraphs: list[str] = []
    blocks = root.find_all(list(block_names))

    if blocks:
        for tag in blocks:
            if not _inside_block(tag, root, block_names):
                _block_paragraphs(tag, block_names, paragraphs)
    else:
        text = normalize_whitespace(root.get_text())
        if text:
            paragraphs.append(text)

    return paragraphs


def _inside_block(tag: Tag, root: Tag, block_names: frozenset[str]) -> bool:
    for parent in tag.parents:
        if parent is root:
            return False
        if parent.name in block_names:
            return True
    return False


def _block_paragraphs(tag: Tag, block_names: frozenset[str], out: list[str]) -> None:
    """Append the text of ``tag`` in document order.

    A leaf block is one paragraph. A block holding other blocks yields its
    own loose text as separate paragraphs around those of its children.
    """
    names = list(block_names)
    if not tag.find(names):
        text = normalize_whitespace(tag.get_text(separator=" ", strip=True))
        if text:
            out.append(text)
        return

    pending: list[str] = []

    def flush() -> None:
        text = " ".join("".join(pending).split())
        pending.clear()
        if text:
            out.append(text)

    for child in tag.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, Tag):
            if child.name in block_names or child.find(names):
                flush()
                _block_paragraphs(child, block_names, out)
            else:
                pending.append(child.get_text())
        else:
            pending.append(str(child))
    flush()


def html_text(root: Tag, include_headings: bool = False) -> str:
    return "\n\n".join(html_to_paragraphs(root, include_headings))


def _chapter_body(heading: Tag, chapter_level: int) -> str:
    """Text of the siblings after ``heading`` up to the next chapter heading."""
    parts: list[str] = []
    for sibling in heading.find_next_siblings():
        if heading_level(sibling) == chapter_level:
            break
        text = normalize_whitespace(sibling.get_text())
        if text:
            parts.append(text)
    return "\n\n".join(parts)


def parse_html_chapters(
    soup: BeautifulSoup,
    fmt: ImportFormat,
    *,
    title: str,
    fallback_title: str,
    author: Optional[str] = None,
    confidence: int = 85,
    number_limit: int = 15,
    sequential_warning: str = NON_SEQUENTIAL_WARNING,
) -> ParsedDocument:
    """Heading-based segmentation of an HTML DOM (native HTML or converted DOCX)."""
    body = soup.body
    if body is None:
        text = normalize_whitespace(soup.get_text())
        return make_document(
            fmt,
            [ParsedChapter(title=fallback_title, number=1, content=text)],
            confidence=50,
            detection_method="No body found",
            warnings=["No body element found in HTML."],
            title=title,
            author=author,
        )

    headings = body.find_all(list(HEADING_TAGS))
    if not headings:
        return _whole_body(
            body,
            fmt,
            title=title,
            author=author,
            detection_method="No headings found",
            warning="No heading structure found. Document imported as single chapter.",
        )

    chapter_level = determine_chapter_level(heading_level(h) for h in headings)
    chapters: list[ParsedChapter] = []

    for heading in headings:
        if heading_level(heading) != chapter_level:
            continue
        content = _chapter_body(heading, chapter_level)
        if not content:
            continue
        heading_text = heading.get_text().strip()
        chapters.append(
            ParsedChapter(
                title=heading_text,
                number=extract_chapter_number(heading_text, number_limit),
                content=content,
                scenes=scenes_if_multiple(content),
            )
        )

    if not chapters:
        return _whole_body(
            body,
            fmt,
            title=title,
            author=author,
            detection_method="No chapters extracted",
            warning="No chapters could be extracted from heading structure.",
        )

    warnings_out: list[str] = []
    if not check_sequential(ch.number for ch in chapters):
        warnings_out.append(sequential_warning)

    return make_document(
        fmt,
        chapters,
        confidence=confidence,
        detection_method=f"H{chapter_level} as chapters",
        warnings=warnings_out,
        title=title,
        author=author,
    )


def _whole_body(
    body: Tag,
    fmt: ImportFormat,
    *,
    title: str,
    author: Optional[str],
    detection_method: str,
    warning: str,
) -> ParsedDocument:
    text = html_text(body)
    chapter = ParsedChapter(
        title=title,
        number=1,
        content=text,
        scenes=scenes_if_multiple(text),
    )
    return make_document(
        fmt,
        [chapter],
        confidence=50,
        detection_method=detection_method,
        warnings=[warning],
        title=title,
        author=author,
    )
