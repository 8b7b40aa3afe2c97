"""DOCX parser using python-docx."""

from __future__ import annotations

import asyncio
import html
import io
import logging
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup
from docx import Document

from storyimport.models import (
    ImportFormat,
    ParsedChapter,
    ParsedDocument,
    failed_document,
    make_document,
)

from .base import AsyncDocumentParser
from .headings import parse_html_chapters
from .text_utils import strip_extension

log = logging.getLogger(__name__)

_HEADING_STYLE_RE = re.compile(r"^Heading\s*([1-6])$")


@dataclass
class DocxConversion:
    html: str
    title: str = ""
    author: str = ""


def docx_to_html(data: bytes) -> DocxConversion:
    """Render a .docx body as flat HTML: headings by style, everything else <p>."""
    doc = Document(io.BytesIO(data))
    props = doc.core_properties

    parts: list[str] = []
    for para in doc.paragraphs:
        text = para.text.strip()
        if not text:
            continue
        style_name = para.style.name if para.style else ""
        m = _HEADING_STYLE_RE.match(style_name)
        tag = f"h{m.group(1)}" if m else "p"
        parts.append(f"<{tag}>{html.escape(text)}</{tag}>")

    return DocxConversion(
        html="\n".join(parts),
        title=props.title or "",
        author=props.author or "",
    )


class DocxParser(AsyncDocumentParser):
    name = "DOCX Parser"
    format = ImportFormat.DOCX
    SUPPORTED_EXTENSIONS = (".docx",)
    label = "DOCX"

    async def parse_async(self, data: bytes, file_name: str) -> ParsedDocument:
        try:
            converted = await asyncio.to_thread(docx_to_html, data)
            return self.parse_html(
                converted.html,
                file_name,
                title=converted.title or None,
                author=converted.author or None,
            )
        except Exception as e:
            log.error("DOCX parse failed for %s: %s", file_name, e)
            return failed_document(self.format, file_name, self.label, e)

    def parse_html(
        self,
        html_text: str,
        file_name: str,
        title: Optional[str] = None,
        author: Optional[str] = None,
    ) -> ParsedDocument:
        """Chapter extraction over converter output."""
        stem = strip_extension(file_name)
        if not html_text.strip():
            return make_document(
                self.format,
                [ParsedChapter(title=stem, number=1, content="")],
                confidence=50,
                detection_method="Empty document",
                warnings=["Document appears to be empty or could not be parsed."],
                title=title or stem,
                author=author,
            )

        soup = BeautifulSoup(f"<html><body>{html_text}</body></html>", "lxml")
        h1s = soup.find_all("h1")
        if not title and len(h1s) == 1:
            title = h1s[0].get_text().strip() or None

        return parse_html_chapters(
            soup,
            self.format,
            title=title or stem,
            fallback_title=stem,
            author=author,
            number_limit=20,
        )
