"""Base parser interface for all manuscript formats."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Optional

from storyimport.config import DetectionSettings
from storyimport.models import ImportFormat, ParsedDocument, async_placeholder

from .text_utils import file_extension


class DocumentParser(ABC):
    """Abstract base for format-specific parsers.

    ``parse`` must never raise for malformed input: structural failures come
    back as a document with empty chapters and an explanatory warning.
    """

    name: ClassVar[str] = ""
    format: ClassVar[ImportFormat] = ImportFormat.UNKNOWN
    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = ()
    requires_async: ClassVar[bool] = False

    def __init__(self, settings: Optional[DetectionSettings] = None) -> None:
        self.settings = settings or DetectionSettings()

    @classmethod
    def claims_extension(cls, file_name: str) -> bool:
        return file_extension(file_name) in cls.SUPPORTED_EXTENSIONS

    def can_parse(self, content: str, file_name: str) -> bool:
        return self.claims_extension(file_name)

    @abstractmethod
    def parse(self, content: str, file_name: str) -> ParsedDocument:
        """Parse decoded text and return the detected structure."""


class AsyncDocumentParser(DocumentParser):
    """Parsers for archive or binary formats.

    Only ``parse_async`` produces real output; the synchronous ``parse`` is a
    well-defined placeholder telling the caller to switch APIs.
    """

    requires_async: ClassVar[bool] = True
    label: ClassVar[str] = ""

    def parse(self, content: str, file_name: str) -> ParsedDocument:
        return async_placeholder(self.format, file_name, self.label)

    @abstractmethod
    async def parse_async(self, data: bytes, file_name: str) -> ParsedDocument:
        """Decode raw file bytes and return the detected structure."""


def all_parsers(settings: Optional[DetectionSettings] = None) -> list[DocumentParser]:
    """Every parser, in dispatch priority order. Plain text comes last."""
    from storyimport.parsers.docx_parser import DocxParser
    from storyimport.parsers.epub_parser import EpubParser
    from storyimport.parsers.fountain_parser import FountainParser
    from storyimport.parsers.html_parser import HtmlParser
    from storyimport.parsers.json_parser import JsonParser
    from storyimport.parsers.markdown_parser import MarkdownParser
    from storyimport.parsers.odt_parser import OdtParser
    from storyimport.parsers.pdf_parser import PdfParser
    from storyimport.parsers.rtf_parser import RtfParser
    from storyimport.parsers.txt_parser import PlainTextParser

    parsers: list[type[DocumentParser]] = [
        JsonParser,
        EpubParser,
        DocxParser,
        OdtParser,
        PdfParser,
        RtfParser,
        FountainParser,
        HtmlParser,
        MarkdownParser,
        PlainTextParser,
    ]
    return [parser_cls(settings) for parser_cls in parsers]


def get_parser(
    fmt: ImportFormat, settings: Optional[DetectionSettings] = None
) -> DocumentParser:
    """Return the parser for a format; unimplemented formats get plain text."""
    parsers = all_parsers(settings)
    for parser in parsers:
        if parser.format == fmt:
            return parser
    return parsers[-1]
