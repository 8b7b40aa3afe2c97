"""RTF parser using striprtf."""

from __future__ import annotations

import logging
import re
from typing import Optional

from striprtf.striprtf import rtf_to_text

from storyimport.models import (
    ImportFormat,
    ParsedChapter,
    ParsedDocument,
    failed_document,
    make_document,
)

from .base import DocumentParser
from .scenes import scenes_if_multiple
from .text_utils import (
    WORD_NUMBERS,
    extract_chapter_number,
    first_title_line,
    strip_extension,
)
from .txt_parser import CHAPTER_MARKER_PREFIX

log = logging.getLogger(__name__)

_FIFTEEN = "|".join(w for w, n in WORD_NUMBERS.items() if n <= 15)

# Any of these marks a chapter line; there is no scoring as in plain text.
CHAPTER_PATTERNS = (
    re.compile(r"^(?:Chapter|CHAPTER|Ch\.?)\s+(\d+)(?::\s*(.+))?$", re.I),
    re.compile(rf"^(?:Chapter|CHAPTER)\s+({_FIFTEEN})(?::\s*(.+))?$", re.I),
    re.compile(r"^CHAPTER\s+(\d+)(?::\s*(.+))?$"),
    re.compile(r"^(?:Chapter|CHAPTER)\s+([IVXLCDM]+)(?::\s*(.+))?$", re.I),
)


def rtf_plain_text(rtf: str) -> str:
    text = rtf_to_text(rtf, errors="ignore")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def is_chapter_marker(line: str) -> bool:
    return any(p.match(line) for p in CHAPTER_PATTERNS)


class RtfParser(DocumentParser):
    name = "RTF Parser"
    format = ImportFormat.RTF
    SUPPORTED_EXTENSIONS = (".rtf",)

    def can_parse(self, content: str, file_name: str) -> bool:
        return self.claims_extension(file_name) or content.strip().startswith("{\\rtf")

    def parse(self, content: str, file_name: str) -> ParsedDocument:
        try:
            return self.parse_text(rtf_plain_text(content), file_name)
        except Exception as e:
            log.error("RTF parse failed for %s: %s", file_name, e)
            return failed_document(self.format, file_name, "RTF", e)

    def parse_text(self, text: str, file_name: str) -> ParsedDocument:
        """Chapter detection over already-stripped RTF text."""
        lines = text.split("\n")
        stem = strip_extension(file_name)
        markers = [
            (i, line.strip())
            for i, line in enumerate(lines)
            if is_chapter_marker(line.strip())
        ]

        if not markers:
            return make_document(
                self.format,
                [
                    ParsedChapter(
                        title=stem, number=1, content=text, scenes=scenes_if_multiple(text)
                    )
                ],
                confidence=50,
                detection_method="No chapters detected",
                warnings=[
                    "No chapter markers found. Treating entire document as one chapter."
                ],
                title=stem,
            )

        chapters: list[ParsedChapter] = []
        warnings: list[str] = []
        for i, (line_index, heading) in enumerate(markers):
            end = markers[i + 1][0] if i + 1 < len(markers) else len(lines)
            body = "\n".join(lines[line_index + 1 : end]).strip()
            if not body:
                warnings.append(f'Chapter "{heading}" is empty and was skipped.')
                continue
            chapters.append(
                ParsedChapter(
                    title=heading,
                    number=extract_chapter_number(heading) or i + 1,
                    content=body,
                    scenes=scenes_if_multiple(body),
                )
            )

        log.debug("%s: %d chapter markers", file_name, len(markers))
        return make_document(
            self.format,
            chapters,
            confidence=75,
            detection_method="Chapter markers",
            warnings=warnings,
            title=self._title(lines) or stem,
        )

    def _title(self, lines: list[str]) -> Optional[str]:
        return first_title_line(
            lines,
            CHAPTER_MARKER_PREFIX,
            self.settings.title_scan_lines,
            self.settings.title_max_length,
        )
