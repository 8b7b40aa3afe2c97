"""EPUB parser using ebooklib."""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path

from bs4 import BeautifulSoup
from ebooklib import epub

from storyimport.models import (
    ImportFormat,
    ParsedChapter,
    ParsedDocument,
    failed_document,
    make_document,
)

from .base import AsyncDocumentParser
from .headings import html_text
from .scenes import scenes_if_multiple
from .text_utils import count_words, extract_chapter_number, strip_extension

log = logging.getLogger(__name__)


def read_epub_bytes(data: bytes) -> epub.EpubBook:
    """ebooklib wants a path, so the archive goes through a temp dir."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "book.epub"
        path.write_bytes(data)
        return epub.read_epub(str(path), options={"ignore_ncx": True})


class EpubParser(AsyncDocumentParser):
    name = "EPUB Parser"
    format = ImportFormat.EPUB
    SUPPORTED_EXTENSIONS = (".epub",)
    label = "EPUB"

    async def parse_async(self, data: bytes, file_name: str) -> ParsedDocument:
        try:
            return await asyncio.to_thread(self._parse_bytes, data, file_name)
        except Exception as e:
            log.error("EPUB parse failed for %s: %s", file_name, e)
            return failed_document(self.format, file_name, self.label, e)

    def _parse_bytes(self, data: bytes, file_name: str) -> ParsedDocument:
        return self._parse_book(read_epub_bytes(data), file_name)

    def _parse_book(self, book: epub.EpubBook, file_name: str) -> ParsedDocument:
        title = self._get_meta(book, "title") or strip_extension(file_name)
        author = self._get_meta(book, "creator") or None
        min_words = self.settings.epub_min_chapter_words

        chapters: list[ParsedChapter] = []
        warnings: list[str] = []

        for item_id, _linear in book.spine:
            item = book.get_item_with_id(item_id)
            if item is None:
                continue

            soup = BeautifulSoup(item.get_content(), "lxml")
            body = soup.body
            if body is None:
                continue

            heading = body.find(["h1", "h2", "h3"])
            heading_text = heading.get_text().strip() if heading else ""

            text = html_text(body, include_headings=True)
            if not text:
                continue

            words = count_words(text)
            if words < min_words:
                # nav and cover pages
                warnings.append(
                    f"Skipped {item.get_name()} ({words} words, below {min_words})."
                )
                continue

            index = len(chapters) + 1
            chapter_title = heading_text or f"Chapter {index}"
            chapters.append(
                ParsedChapter(
                    title=chapter_title,
                    number=extract_chapter_number(chapter_title) or index,
                    content=text,
                    scenes=scenes_if_multiple(text),
                )
            )

        if not chapters:
            warnings.append("No chapters could be extracted from EPUB.")

        return make_document(
            self.format,
            chapters,
            confidence=85,
            detection_method="EPUB spine order",
            warnings=warnings,
            title=title,
            author=author,
        )

    @staticmethod
    def _get_meta(book: epub.EpubBook, field: str) -> str:
        values = book.get_metadata("DC", field)
        if values:
            val = values[0]
            if isinstance(val, tuple):
                return str(val[0]) if val[0] else ""
            return str(val)
        return ""
