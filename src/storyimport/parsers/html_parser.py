"""HTML parser using BeautifulSoup."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from storyimport.models import ImportFormat, ParsedDocument, failed_document

from .base import DocumentParser
from .headings import parse_html_chapters
from .text_utils import strip_extension

log = logging.getLogger(__name__)

HTML_NON_SEQUENTIAL_WARNING = "Chapter numbering is not sequential."


class HtmlParser(DocumentParser):
    name = "HTML Parser"
    format = ImportFormat.HTML
    SUPPORTED_EXTENSIONS = (".html", ".htm", ".xhtml")

    def can_parse(self, content: str, file_name: str) -> bool:
        if self.claims_extension(file_name):
            return True
        head = content.strip()
        return (
            head.startswith("<!DOCTYPE")
            or head.startswith("<html")
            or "<body" in content
        )

    def parse(self, content: str, file_name: str) -> ParsedDocument:
        try:
            soup = BeautifulSoup(content, "lxml")
            return parse_html_chapters(
                soup,
                self.format,
                title=self._document_title(soup, file_name),
                fallback_title=strip_extension(file_name),
                sequential_warning=HTML_NON_SEQUENTIAL_WARNING,
            )
        except Exception as e:
            log.error("HTML parse failed for %s: %s", file_name, e)
            return failed_document(self.format, file_name, "HTML", e)

    @staticmethod
    def _document_title(soup: BeautifulSoup, file_name: str) -> str:
        for tag_name in ("title", "h1"):
            tag = soup.find(tag_name)
            if tag:
                text = tag.get_text().strip()
                if text:
                    return text
        return strip_extension(file_name)
