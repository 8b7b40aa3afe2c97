"""Plain text parser."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from storyimport.models import (
    ImportFormat,
    ParsedChapter,
    ParsedDocument,
    make_document,
)

from .base import DocumentParser
from .scenes import scenes_if_multiple
from .text_utils import (
    NON_SEQUENTIAL_WARNING,
    WORD_NUMBERS,
    check_sequential,
    file_extension,
    first_title_line,
    roman_to_number,
    strip_extension,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChapterPattern:
    name: str
    regex: re.Pattern[str]
    confidence: int
    extract_number: Callable[[re.Match[str]], Optional[int]]

    def extract_title(self, match: re.Match[str]) -> str:
        return (match.group(2) or "").strip()


@dataclass(frozen=True)
class ChapterMatch:
    line_index: int
    number: Optional[int]
    title: str


_WORD_ALTERNATION = "|".join(WORD_NUMBERS)


def _int_group(match: re.Match[str]) -> Optional[int]:
    return int(match.group(1))


# Ordered by confidence; the first entry is also the default when no pattern
# reaches two matches.
CHAPTER_PATTERNS: tuple[ChapterPattern, ...] = (
    ChapterPattern(
        name="Chapter [number]: [title]",
        regex=re.compile(r"^(?:Chapter|CHAPTER|Ch\.?)\s+(\d+)(?::\s*(.+))?$", re.I),
        confidence=95,
        extract_number=_int_group,
    ),
    ChapterPattern(
        name="Chapter [word number]",
        regex=re.compile(
            rf"^(?:Chapter|CHAPTER)\s+({_WORD_ALTERNATION})(?::\s*(.+))?$", re.I
        ),
        confidence=90,
        extract_number=lambda m: WORD_NUMBERS.get(m.group(1).lower()),
    ),
    ChapterPattern(
        name="--- Chapter [number] ---",
        regex=re.compile(
            r"^[-=]+\s*(?:Chapter|CHAPTER)\s+(\d+)(?::\s*(.+))?\s*[-=]+$", re.I
        ),
        confidence=85,
        extract_number=_int_group,
    ),
    ChapterPattern(
        name="CHAPTER [number]",
        regex=re.compile(r"^CHAPTER\s+(\d+)(?::\s*(.+))?$"),
        confidence=80,
        extract_number=_int_group,
    ),
    ChapterPattern(
        name="Chapter [Roman]",
        regex=re.compile(r"^(?:Chapter|CHAPTER)\s+([IVXLCDM]+)(?::\s*(.+))?$", re.I),
        confidence=75,
        extract_number=lambda m: roman_to_number(m.group(1)),
    ),
)

CHAPTER_MARKER_PREFIX = re.compile(r"^(?:Chapter|CHAPTER|Ch\.)", re.I)


def find_chapter_matches(lines: list[str], pattern: ChapterPattern) -> list[ChapterMatch]:
    matches: list[ChapterMatch] = []
    for i, line in enumerate(lines):
        m = pattern.regex.match(line.strip())
        if m:
            matches.append(
                ChapterMatch(
                    line_index=i,
                    number=pattern.extract_number(m),
                    title=pattern.extract_title(m),
                )
            )
    return matches


def select_pattern(
    lines: list[str],
) -> tuple[ChapterPattern, list[ChapterMatch]]:
    """Highest ``matches * confidence`` among patterns with at least 2 matches.

    Falls back to the first pattern's (possibly empty) match set.
    """
    scored = [(p, find_chapter_matches(lines, p)) for p in CHAPTER_PATTERNS]
    best_pattern, best_matches = scored[0]
    best_score = len(best_matches) * best_pattern.confidence

    for pattern, matches in scored:
        score = len(matches) * pattern.confidence
        if score > best_score and len(matches) >= 2:
            best_pattern, best_matches, best_score = pattern, matches, score

    return best_pattern, best_matches


class PlainTextParser(DocumentParser):
    name = "Plain Text Parser"
    format = ImportFormat.PLAINTEXT
    SUPPORTED_EXTENSIONS = (".txt", ".text")

    def can_parse(self, content: str, file_name: str) -> bool:
        return self.claims_extension(file_name) or file_extension(file_name) == ""

    def parse(self, content: str, file_name: str) -> ParsedDocument:
        lines = content.split("\n")
        pattern, matches = select_pattern(lines)

        if not matches:
            return self._single_chapter(content, lines, file_name)

        log.debug("%s: %d markers via %r", file_name, len(matches), pattern.name)

        chapters: list[ParsedChapter] = []
        warnings: list[str] = []

        for i, match in enumerate(matches):
            start_line = match.line_index + 1  # marker line is not content
            end_line = (
                matches[i + 1].line_index - 1 if i + 1 < len(matches) else len(lines) - 1
            )
            body = "\n".join(lines[start_line : end_line + 1]).strip()

            if not body:
                warnings.append(f"Chapter {match.number} is empty and was skipped.")
                continue

            chapters.append(
                ParsedChapter(
                    title=match.title or f"Chapter {match.number}",
                    number=match.number,
                    content=body,
                    start_line=start_line,
                    end_line=end_line,
                    scenes=scenes_if_multiple(body),
                )
            )

        if not check_sequential(ch.number for ch in chapters):
            warnings.append(NON_SEQUENTIAL_WARNING)

        return make_document(
            self.format,
            chapters,
            confidence=pattern.confidence,
            detection_method=pattern.name,
            warnings=warnings,
            title=first_title_line(
                lines,
                CHAPTER_MARKER_PREFIX,
                self.settings.title_scan_lines,
                self.settings.title_max_length,
            ),
        )

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
            detection_method="No chapters detected",
            warnings=[
                "No chapter markers found. Treating entire document as one chapter."
            ],
            title=strip_extension(file_name),
        )
