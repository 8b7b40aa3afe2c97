"""Tests for the async-tier parsers: DOCX, EPUB, ODT and PDF."""

from __future__ import annotations

import io
import threading
import zipfile
from pathlib import Path

import pytest

from conftest import build_docx, build_odt, build_pdf, long_text
from storyimport.config import DetectionSettings
from storyimport.models import ImportFormat
from storyimport.parsers.docx_parser import DocxParser
from storyimport.parsers.epub_parser import EpubParser
from storyimport.parsers.odt_parser import OdtParser, outline_level
from storyimport.parsers.pdf_parser import PdfParser, pdf_chapter_number


def _build_epub(
    tmp_path: Path, chapters: list[tuple[str, str]], raw: bool = False
) -> bytes:
    from ebooklib import epub

    book = epub.EpubBook()
    book.set_identifier("test123")
    book.set_title("Test Book")
    book.set_language("en")
    book.add_author("Test Author")

    items = []
    for i, (heading, body) in enumerate(chapters, start=1):
        item = epub.EpubHtml(title=heading, file_name=f"ch{i}.xhtml", lang="en")
        markup = body if raw else f"<p>{body}</p>"
        item.content = f"<html><body><h1>{heading}</h1>{markup}</body></html>"
        book.add_item(item)
        items.append(item)

    book.toc = [epub.Link(it.file_name, it.title, f"ch{i}") for i, it in enumerate(items)]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", *items]

    f = tmp_path / "test.epub"
    epub.write_epub(str(f), book)
    return f.read_bytes()


# ── DOCX Parser ────────────────────────────────────


class TestDocxParser:
    @pytest.mark.asyncio
    async def test_headings_as_chapters(self):
        data = build_docx(
            ("h1", "Chapter One"),
            ("p", "First paragraph of chapter one."),
            ("p", "Second paragraph."),
            ("h1", "Chapter Two"),
            ("p", "Content of chapter two."),
            title="My Novel",
            author="Jane Doe",
        )
        doc = await DocxParser().parse_async(data, "novel.docx")
        assert doc.format == ImportFormat.DOCX
        assert doc.metadata.title == "My Novel"
        assert doc.metadata.author == "Jane Doe"
        assert doc.metadata.detection_method == "H1 as chapters"
        assert [ch.title for ch in doc.chapters] == ["Chapter One", "Chapter Two"]
        assert [ch.number for ch in doc.chapters] == [1, 2]
        assert doc.chapters[0].content == "First paragraph of chapter one.\n\nSecond paragraph."

    @pytest.mark.asyncio
    async def test_no_headings_single_chapter(self):
        data = build_docx(("p", "Just some text."), ("p", "More text."))
        doc = await DocxParser().parse_async(data, "nohead.docx")
        assert len(doc.chapters) == 1
        assert doc.chapters[0].content == "Just some text.\n\nMore text."
        assert doc.metadata.confidence == 50

    @pytest.mark.asyncio
    async def test_empty_document(self):
        doc = await DocxParser().parse_async(build_docx(), "empty.docx")
        assert len(doc.chapters) == 1
        assert doc.chapters[0].content == ""
        assert doc.metadata.confidence == 50
        assert doc.warnings == ["Document appears to be empty or could not be parsed."]

    @pytest.mark.asyncio
    async def test_corrupt_bytes(self):
        doc = await DocxParser().parse_async(b"not a zip file", "broken.docx")
        assert doc.chapters == []
        assert doc.metadata.confidence == 0
        assert doc.metadata.detection_method == "DOCX parse failed"
        assert doc.warnings[0].startswith("Failed to parse DOCX:")

    def test_parse_html_word_numbers_match_substrings(self):
        html = "<h2>Chapter Eighteen</h2><p>a</p><h2>Chapter Nineteen</h2><p>b</p>"
        doc = DocxParser().parse_html(html, "x.docx")
        # "eighteen" contains "eight" and "nineteen" contains "nine"
        assert [ch.number for ch in doc.chapters] == [8, 9]

    def test_sync_parse_is_placeholder(self):
        doc = DocxParser().parse("", "novel.docx")
        assert doc.chapters == []
        assert doc.metadata.detection_method == "DOCX (use parse_async)"


# ── EPUB Parser ────────────────────────────────────


class TestEpubParser:
    @pytest.mark.asyncio
    async def test_spine_chapters(self, tmp_path: Path):
        data = _build_epub(
            tmp_path,
            [("Chapter 1", long_text("alpha")), ("Chapter 2", long_text("beta"))],
        )
        doc = await EpubParser().parse_async(data, "test.epub")
        assert doc.format == ImportFormat.EPUB
        assert doc.metadata.title == "Test Book"
        assert doc.metadata.author == "Test Author"
        assert doc.metadata.detection_method == "EPUB spine order"
        assert doc.metadata.confidence == 85
        assert [ch.title for ch in doc.chapters] == ["Chapter 1", "Chapter 2"]
        assert [ch.number for ch in doc.chapters] == [1, 2]
        assert "alpha0" in doc.chapters[0].content
        # the navigation page is too short to be a chapter
        assert any(w.startswith("Skipped") for w in doc.warnings)

    @pytest.mark.asyncio
    async def test_short_items_skipped(self, tmp_path: Path):
        data = _build_epub(
            tmp_path,
            [("Cover", "Just a cover."), ("Chapter 1", long_text("gamma"))],
        )
        doc = await EpubParser().parse_async(data, "test.epub")
        assert [ch.title for ch in doc.chapters] == ["Chapter 1"]

    @pytest.mark.asyncio
    async def test_min_words_from_settings(self, tmp_path: Path):
        data = _build_epub(tmp_path, [("Prologue", "A short prologue.")])
        settings = DetectionSettings(epub_min_chapter_words=1)
        doc = await EpubParser(settings).parse_async(data, "test.epub")
        assert "Prologue" in [ch.title for ch in doc.chapters]

    @pytest.mark.asyncio
    async def test_container_text_kept(self, tmp_path: Path):
        body = f"<div>Opening words here.<p>{long_text('delta')}</p>Closing line.</div>"
        data = _build_epub(tmp_path, [("Chapter 1", body)], raw=True)
        doc = await EpubParser().parse_async(data, "test.epub")
        content = doc.chapters[0].content
        assert "Opening words here.\n\ndelta0" in content
        assert content.endswith("delta59\n\nClosing line.")

    @pytest.mark.asyncio
    async def test_book_parsed_off_event_loop(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        data = _build_epub(tmp_path, [("Chapter 1", long_text("eps"))])
        seen: list[int] = []
        original = EpubParser._parse_book

        def recording(self, book, file_name):
            seen.append(threading.get_ident())
            return original(self, book, file_name)

        monkeypatch.setattr(EpubParser, "_parse_book", recording)
        doc = await EpubParser().parse_async(data, "test.epub")
        assert doc.chapters
        assert seen and seen[0] != threading.get_ident()

    @pytest.mark.asyncio
    async def test_nothing_extracted(self, tmp_path: Path):
        data = _build_epub(tmp_path, [("Cover", "Tiny.")])
        doc = await EpubParser().parse_async(data, "test.epub")
        assert doc.chapters == []
        assert "No chapters could be extracted from EPUB." in doc.warnings

    @pytest.mark.asyncio
    async def test_missing_container(self):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("mimetype", "application/epub+zip")
        doc = await EpubParser().parse_async(buf.getvalue(), "broken.epub")
        assert doc.chapters == []
        assert doc.metadata.confidence == 0
        assert doc.metadata.detection_method == "EPUB parse failed"

    @pytest.mark.asyncio
    async def test_not_a_zip(self):
        doc = await EpubParser().parse_async(b"garbage", "broken.epub")
        assert doc.chapters == []
        assert doc.warnings[0].startswith("Failed to parse EPUB:")


# ── ODT Parser ─────────────────────────────────────


ODT_BODY = (
    '<text:h text:outline-level="1">Chapter One</text:h>'
    "<text:p>First.</text:p>"
    "<text:list><text:list-item><text:p>Milk</text:p></text:list-item>"
    "<text:list-item><text:p>Eggs</text:p></text:list-item></text:list>"
    '<text:h text:outline-level="2">Aside</text:h>'
    "<text:p>Sub.</text:p>"
    '<text:h text:outline-level="1">Chapter Two</text:h>'
    "<text:p>Second.</text:p>"
)


class TestOdtParser:
    @pytest.mark.asyncio
    async def test_headings_as_chapters(self):
        data = build_odt(
            ODT_BODY,
            meta="<dc:title>Odt Book</dc:title><meta:initial-creator>Kim</meta:initial-creator>",
        )
        doc = await OdtParser().parse_async(data, "book.odt")
        assert doc.format == ImportFormat.ODT
        assert doc.metadata.title == "Odt Book"
        assert doc.metadata.author == "Kim"
        assert doc.metadata.detection_method == "Heading level 1"
        assert doc.metadata.confidence == 85
        assert [ch.title for ch in doc.chapters] == ["Chapter One", "Chapter Two"]
        assert [ch.number for ch in doc.chapters] == [1, 2]
        assert doc.chapters[0].content == "First.\n\n- Milk\n\n- Eggs\n\nAside\n\nSub."

    @pytest.mark.asyncio
    async def test_creator_preferred(self):
        meta = "<dc:creator>Lee</dc:creator><meta:initial-creator>Kim</meta:initial-creator>"
        doc = await OdtParser().parse_async(build_odt(ODT_BODY, meta=meta), "book.odt")
        assert doc.metadata.author == "Lee"

    @pytest.mark.asyncio
    async def test_no_meta_uses_file_name(self):
        doc = await OdtParser().parse_async(build_odt(ODT_BODY), "draft.odt")
        assert doc.metadata.title == "draft"
        assert doc.metadata.author is None

    @pytest.mark.asyncio
    async def test_no_headings(self):
        body = "<text:p>Para one.</text:p><text:p>Para two.</text:p>"
        doc = await OdtParser().parse_async(build_odt(body), "flat.odt")
        assert len(doc.chapters) == 1
        assert doc.chapters[0].content == "Para one.\n\nPara two."
        assert doc.metadata.confidence == 50

    @pytest.mark.asyncio
    async def test_empty_chapters_fall_back(self):
        body = '<text:h text:outline-level="1">Lonely</text:h>'
        doc = await OdtParser().parse_async(build_odt(body), "x.odt")
        assert doc.metadata.detection_method == "No chapters extracted"
        assert doc.warnings == ["No chapters could be extracted."]

    @pytest.mark.asyncio
    async def test_missing_content_xml(self):
        data = build_odt("", with_content=False)
        doc = await OdtParser().parse_async(data, "broken.odt")
        assert doc.chapters == []
        assert doc.metadata.detection_method == "ODT parse failed"
        assert doc.warnings == ["Failed to parse ODT: Invalid ODT: Missing content.xml"]

    @pytest.mark.asyncio
    async def test_not_a_zip(self):
        doc = await OdtParser().parse_async(b"\x00\x01", "broken.odt")
        assert doc.metadata.confidence == 0

    @pytest.mark.asyncio
    async def test_odd_outline_levels_degrade(self):
        body = (
            '<text:h text:outline-level="2.0">One</text:h><text:p>a</text:p>'
            '<text:h text:outline-level="2.0">Two</text:h><text:p>b</text:p>'
        )
        doc = await OdtParser().parse_async(build_odt(body), "x.odt")
        assert doc.metadata.confidence == 85
        assert doc.metadata.detection_method == "Heading level 2"
        assert [ch.title for ch in doc.chapters] == ["One", "Two"]

    @pytest.mark.parametrize(
        "value, expected",
        [("3", 3), ("2.0", 2), (" 4 ", 4), ("abc", 1), ("0", 1), ("", 1), (None, 1)],
    )
    def test_outline_level(self, value, expected):
        assert outline_level(value) == expected


# ── PDF Parser ─────────────────────────────────────


class TestPdfParser:
    @pytest.mark.asyncio
    async def test_chapter_headings(self):
        data = build_pdf(
            [
                ["Chapter 1", "It was a dark night.", "The wind howled."],
                ["Chapter 2", "Morning came."],
            ],
            title="PDF Novel",
            author="A. Writer",
        )
        doc = await PdfParser().parse_async(data, "novel.pdf")
        assert doc.format == ImportFormat.PDF
        assert doc.metadata.title == "PDF Novel"
        assert doc.metadata.author == "A. Writer"
        assert doc.metadata.confidence == 75
        assert doc.metadata.detection_method == "Pattern-based chapter detection"
        assert [ch.title for ch in doc.chapters] == ["Chapter 1", "Chapter 2"]
        assert [ch.number for ch in doc.chapters] == [1, 2]
        assert "dark night" in doc.chapters[0].content

    @pytest.mark.asyncio
    async def test_no_headings(self):
        data = build_pdf([["Hello World", "Second line of text."]])
        doc = await PdfParser().parse_async(data, "plain.pdf")
        assert len(doc.chapters) == 1
        assert doc.chapters[0].title == "plain"
        assert doc.metadata.title == "plain"
        assert doc.metadata.confidence == 50

    @pytest.mark.asyncio
    async def test_corrupt_pdf(self):
        doc = await PdfParser().parse_async(b"%PDF-garbage", "bad.pdf")
        assert doc.chapters == []
        assert doc.metadata.detection_method == "PDF parse failed"

    def test_parse_text_numbering(self):
        text = "1. Opening\nFirst.\nChapter Three\nThird.\nChapter 7\nLast."
        doc = PdfParser().parse_text(text, "x.pdf")
        assert [ch.number for ch in doc.chapters] == [1, 3, 7]
        assert doc.warnings == [
            "Chapter numbering is not sequential. Please review chapter numbers."
        ]

    def test_empty_heading_bodies_skipped(self):
        doc = PdfParser().parse_text("Chapter 1\nChapter 2\nBody.", "x.pdf")
        assert [ch.title for ch in doc.chapters] == ["Chapter 2"]
        assert doc.warnings == []

    def test_chapter_number_extraction(self):
        assert pdf_chapter_number("Ch. 4 Return") == 4
        assert pdf_chapter_number("12") == 12
        assert pdf_chapter_number("Chapter Twenty") == 20
        assert pdf_chapter_number("Section 9") is None
