"""Markdown parser."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from storyimport.models import (
    ImportFormat,
    ParsedChapter,
    ParsedDocument,
    make_document,
)

from .base import DocumentParser
from .headings import determine_chapter_level
from .scenes import scenes_if_multiple
from .text_utils import (
    NON_SEQUENTIAL_WARNING,
    check_sequential,
    extract_chapter_number,
    strip_extension,
)

log = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    line_index: int


class MarkdownParser(DocumentParser):
    name = "Markdown Parser"
    format = ImportFormat.MARKDOWN
    SUPPORTED_EXTENSIONS = (".md", ".markdown")

    def parse(self, content: str, file_name: str) -> ParsedDocument:
        lines = content.split("\n")
        headings = self._extract_headings(lines)

        if not headings:
            return self._single_chapter(content, lines, file_name)

        chapter_level = determine_chapter_level(h.level for h in headings)
        chapters = self._extract_chapters(headings, chapter_level, lines)

        if not chapters:
            return self._single_chapter(content, lines, file_name)

        log.debug("%s: heading level %d as chapters", file_name, chapter_level)

        warnings: list[str] = []
        if not check_sequential(ch.number for ch in chapters):
            warnings.append(NON_SEQUENTIAL_WARNING)

        return make_document(
            self.format,
            chapters,
            confidence=90,
            detection_method=f"Heading {chapter_level} as chapters",
            warnings=warnings,
            title=self._document_title(headings),
        )

    def _extract_headings(self, lines: list[str]) -> list[Heading]:
        headings: list[Heading] = []
        for i, line in enumerate(lines):
            m = _HEADING_RE.match(line)
            if m:
                headings.append(
                    Heading(level=len(m.group(1)), text=m.group(2).strip(), line_index=i)
                )
        return headings

    def _extract_chapters(
        self, headings: list[Heading], chapter_level: int, lines: list[str]
    ) -> list[ParsedChapter]:
        chapter_headings = [h for h in headings if h.level == chapter_level]
        chapters: list[ParsedChapter] = []

        for i, heading in enumerate(chapter_headings):
            start_line = heading.line_index + 1
            end_line = (
                chapter_headings[i + 1].line_index - 1
                if i + 1 < len(chapter_headings)
                else len(lines) - 1
            )
            body = "\n".join(lines[start_line : end_line + 1]).strip()
            if not body:
                continue

            chapters.append(
                ParsedChapter(
                    title=heading.text,
                    number=extract_chapter_number(heading.text),
                    content=body,
                    start_line=start_line,
                    end_line=end_line,
                    scenes=scenes_if_multiple(body),
                )
            )

        return chapters

    @staticmethod
    def _document_title(headings: list[Heading]) -> Optional[str]:
        """A leading H1 is the book title when it is the only H1."""
        if headings[0].level == 1 and sum(1 for h in headings if h.level == 1) == 1:
            return headings[0].text
        return None

    def _single_chapter(
        self, content: str, lines: list[str], file_name: str
    ) -> ParsedDocument:
        body = content.strip()
        chapter = ParsedChapter(
            title=strip_extension(file_name),
            number=1,
            content=body,
            start_line=0,
            end_line=len(lines) - 1,
            scenes=scenes_if_multiple(body),
        )
        return make_document(
            self.format,
            [chapter],
            confidence=50,
            detection_method="No structure detected",
            warnings=[
                "No markdown headings found. Treating entire document as one chapter."
            ],
            title=strip_extension(file_name),
        )
