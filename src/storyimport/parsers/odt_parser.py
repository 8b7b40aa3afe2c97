"""ODT (OpenDocument Text) parser using zipfile and lxml."""

from __future__ import annotations

import asyncio
import io
import logging
import re
import zipfile
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from lxml import etree

from storyimport.models import (
    ImportFormat,
    ParsedChapter,
    ParsedDocument,
    failed_document,
    make_document,
)

from .base import AsyncDocumentParser
from .headings import most_frequent_level
from .scenes import scenes_if_multiple
from .text_utils import extract_chapter_number, strip_extension

log = logging.getLogger(__name__)

NS = {
    "office": "urn:oasis:names:tc:opendocument:xmlns:office:1.0",
    "text": "urn:oasis:names:tc:opendocument:xmlns:text:1.0",
    "meta": "urn:oasis:names:tc:opendocument:xmlns:meta:1.0",
    "dc": "http://purl.org/dc/elements/1.1/",
}

_OUTLINE_LEVEL = f"{{{NS['text']}}}outline-level"
_LIST_ITEM = f"{{{NS['text']}}}list-item"
_LEADING_INT_RE = re.compile(r"^(\d+)")


@dataclass(frozen=True)
class Block:
    kind: str  # "heading" | "paragraph"
    text: str
    level: Optional[int] = None


@dataclass
class OdtContent:
    blocks: list[Block]
    title: Optional[str] = None
    author: Optional[str] = None


def _element_text(el: etree._Element) -> str:
    return "".join(el.itertext()).strip()


def outline_level(value: Optional[str]) -> int:
    """Leading integer of an outline-level attribute, 1 when absent or bad."""
    match = _LEADING_INT_RE.match((value or "").strip())
    level = int(match.group(1)) if match else 0
    return level or 1


def extract_blocks(content_xml: bytes) -> list[Block]:
    """Headings, paragraphs and list items directly under office:text."""
    root = etree.fromstring(content_xml)
    body = root.find("office:body/office:text", NS)
    if body is None:
        return []

    blocks: list[Block] = []
    for child in body:
        if not isinstance(child.tag, str):
            continue  # comments, processing instructions
        local = etree.QName(child).localname
        if local == "h":
            text = _element_text(child)
            if text:
                level = outline_level(child.get(_OUTLINE_LEVEL))
                blocks.append(Block("heading", text, level))
        elif local == "p":
            text = _element_text(child)
            if text:
                blocks.append(Block("paragraph", text))
        elif local == "list":
            for item in child.iter(_LIST_ITEM):
                text = _element_text(item)
                if text:
                    blocks.append(Block("paragraph", "- " + text))
    return blocks


def read_meta(meta_xml: bytes) -> tuple[Optional[str], Optional[str]]:
    root = etree.fromstring(meta_xml)
    title_el = root.find(".//dc:title", NS)
    author_el = root.find(".//dc:creator", NS)
    if author_el is None:
        author_el = root.find(".//meta:initial-creator", NS)
    title = (title_el.text or "").strip() if title_el is not None else ""
    author = (author_el.text or "").strip() if author_el is not None else ""
    return title or None, author or None


def read_odt(data: bytes) -> OdtContent:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        names = set(zf.namelist())
        if "content.xml" not in names:
            raise ValueError("Invalid ODT: Missing content.xml")
        content = OdtContent(blocks=extract_blocks(zf.read("content.xml")))
        if "meta.xml" in names:
            content.title, content.author = read_meta(zf.read("meta.xml"))
    return content


class OdtParser(AsyncDocumentParser):
    name = "ODT Parser"
    format = ImportFormat.ODT
    SUPPORTED_EXTENSIONS = (".odt",)
    label = "ODT"

    async def parse_async(self, data: bytes, file_name: str) -> ParsedDocument:
        try:
            content = await asyncio.to_thread(read_odt, data)
            return self._parse_blocks(
                content.blocks,
                content.title or strip_extension(file_name),
                content.author,
            )
        except Exception as e:
            log.error("ODT parse failed for %s: %s", file_name, e)
            return failed_document(self.format, file_name, self.label, e)

    def _parse_blocks(
        self, blocks: list[Block], title: str, author: Optional[str]
    ) -> ParsedDocument:
        headings = [b for b in blocks if b.kind == "heading"]
        if not headings:
            return self._single_chapter(
                blocks,
                title,
                author,
                "No headings found",
                "No heading structure found. Document imported as single chapter.",
            )

        chapter_level = most_frequent_level(Counter(h.level or 1 for h in headings))

        chapters: list[ParsedChapter] = []
        current_title: Optional[str] = None
        current: list[str] = []

        def flush() -> None:
            if current_title is None or not current:
                return
            body = "\n\n".join(current)
            chapters.append(
                ParsedChapter(
                    title=current_title,
                    number=extract_chapter_number(current_title) or len(chapters) + 1,
                    content=body,
                    scenes=scenes_if_multiple(body),
                )
            )

        for block in blocks:
            if block.kind == "heading" and block.level == chapter_level:
                flush()
                current_title, current = block.text, []
            elif current_title is not None:
                current.append(block.text)
        flush()

        if not chapters:
            return self._single_chapter(
                blocks,
                title,
                author,
                "No chapters extracted",
                "No chapters could be extracted.",
            )

        return make_document(
            self.format,
            chapters,
            confidence=85,
            detection_method=f"Heading level {chapter_level}",
            title=title,
            author=author,
        )

    def _single_chapter(
        self,
        blocks: list[Block],
        title: str,
        author: Optional[str],
        detection_method: str,
        warning: str,
    ) -> ParsedDocument:
        body = "\n\n".join(b.text for b in blocks)
        chapter = ParsedChapter(
            title=title, number=1, content=body, scenes=scenes_if_multiple(body)
        )
        return make_document(
            self.format,
            [chapter],
            confidence=50,
            detection_method=detection_method,
            warnings=[warning],
            title=title,
            author=author,
        )
