"""PDF parser using PyMuPDF."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional

import pymupdf

from storyimport.models import (
    ImportFormat,
    ParsedChapter,
    ParsedDocument,
    failed_document,
    make_document,
)

from .base import AsyncDocumentParser
from .scenes import scenes_if_multiple
from .text_utils import (
    NON_SEQUENTIAL_WARNING,
    check_sequential,
    strip_extension,
    word_number,
)

log = logging.getLogger(__name__)

HEADING_PATTERNS = (
    re.compile(r"^chapter\s+\d+", re.I),
    re.compile(r"^chapter\s+[a-z]+", re.I),
    re.compile(r"^ch\.?\s+\d+", re.I),
    re.compile(r"^\d+\.\s+"),
    re.compile(r"^part\s+\d+", re.I),
    re.compile(r"^section\s+\d+", re.I),
)

_CHAPTER_NUMBER_RE = re.compile(r"(?:chapter|ch\.?)\s*(\d+)", re.I)
_BARE_NUMBER_RE = re.compile(r"^\s*(\d+)\s*$")


@dataclass
class PdfText:
    text: str
    title: str = ""
    author: str = ""


def extract_pdf_text(data: bytes) -> PdfText:
    """Page texts joined by a blank line, with empty lines dropped."""
    doc = pymupdf.open(stream=data, filetype="pdf")
    try:
        if doc.needs_pass:
            raise ValueError("PDF is encrypted or password-protected")
        if doc.page_count == 0:
            raise ValueError("PDF has no pages")
        pages: list[str] = []
        for page in doc:
            lines = [line.strip() for line in page.get_text().split("\n")]
            page_text = "\n".join(line for line in lines if line)
            if page_text:
                pages.append(page_text)
        meta = doc.metadata or {}
        return PdfText(
            text="\n\n".join(pages),
            title=meta.get("title", "") or "",
            author=meta.get("author", "") or "",
        )
    finally:
        doc.close()


def pdf_chapter_number(heading: str) -> Optional[int]:
    m = _CHAPTER_NUMBER_RE.search(heading)
    if m:
        return int(m.group(1))
    m = _BARE_NUMBER_RE.match(heading)
    if m:
        return int(m.group(1))
    return word_number(heading, limit=20)


def is_heading(line: str) -> bool:
    return any(p.search(line) for p in HEADING_PATTERNS)


class PdfParser(AsyncDocumentParser):
    name = "PDF Parser"
    format = ImportFormat.PDF
    SUPPORTED_EXTENSIONS = (".pdf",)
    label = "PDF"

    async def parse_async(self, data: bytes, file_name: str) -> ParsedDocument:
        try:
            extracted = await asyncio.to_thread(extract_pdf_text, data)
            return self.parse_text(
                extracted.text,
                file_name,
                title=extracted.title or None,
                author=extracted.author or None,
            )
        except Exception as e:
            log.error("PDF parse failed for %s: %s", file_name, e)
            return failed_document(self.format, file_name, self.label, e)

    def parse_text(
        self,
        text: str,
        file_name: str,
        title: Optional[str] = None,
        author: Optional[str] = None,
    ) -> ParsedDocument:
        """Chapter detection over extracted page text."""
        stem = strip_extension(file_name)
        chapters = self._detect_chapters(text)

        if not chapters:
            return make_document(
                self.format,
                [ParsedChapter(title=stem, number=1, content=text)],
                confidence=50,
                detection_method="No chapters detected",
                warnings=[
                    "No chapter structure detected. Document imported as single chapter."
                ],
                title=title or stem,
                author=author,
            )

        warnings: list[str] = []
        if not check_sequential(ch.number for ch in chapters):
            warnings.append(NON_SEQUENTIAL_WARNING)

        return make_document(
            self.format,
            chapters,
            confidence=75,
            detection_method="Pattern-based chapter detection",
            warnings=warnings,
            title=title or stem,
            author=author,
        )

    def _detect_chapters(self, text: str) -> list[ParsedChapter]:
        lines = text.split("\n")
        starts = [i for i, line in enumerate(lines) if is_heading(line.strip())]

        chapters: list[ParsedChapter] = []
        for i, line_index in enumerate(starts):
            end = starts[i + 1] if i + 1 < len(starts) else len(lines)
            body = "\n".join(lines[line_index + 1 : end]).strip()
            if not body:
                continue
            heading = lines[line_index].strip()
            chapters.append(
                ParsedChapter(
                    title=heading,
                    number=pdf_chapter_number(heading) or i + 1,
                    content=body,
                    scenes=scenes_if_multiple(body),
                )
            )
        return chapters
