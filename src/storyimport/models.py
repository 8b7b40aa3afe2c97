"""Data models for parsed manuscripts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from storyimport.parsers.text_utils import count_words, strip_extension


class ImportFormat(str, Enum):
    PLAINTEXT = "plaintext"
    MARKDOWN = "markdown"
    DOCX = "docx"
    JSON = "json"
    CSV = "csv"
    EPUB = "epub"
    HTML = "html"
    RTF = "rtf"
    ODT = "odt"
    FOUNTAIN = "fountain"
    PDF = "pdf"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ParsedScene:
    content: str
    title: Optional[str] = None

    @property
    def word_count(self) -> int:
        return count_words(self.content)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.title is not None:
            data["title"] = self.title
        data["content"] = self.content
        data["wordCount"] = self.word_count
        return data


@dataclass(frozen=True)
class ParsedChapter:
    """A detected chapter.

    ``word_count`` is always derived from ``content``; it is not the sum of
    the scene counts, since scene splitting drops the separator lines.
    """

    title: str
    content: str
    number: Optional[int] = None
    start_line: Optional[int] = None  # 0-based, line-oriented formats only
    end_line: Optional[int] = None
    scenes: Optional[list[ParsedScene]] = None  # None unless >1 scene detected

    @property
    def word_count(self) -> int:
        return count_words(self.content)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title}
        if self.number is not None:
            data["number"] = self.number
        data["content"] = self.content
        data["wordCount"] = self.word_count
        if self.start_line is not None:
            data["startLine"] = self.start_line
        if self.end_line is not None:
            data["endLine"] = self.end_line
        if self.scenes is not None:
            data["scenes"] = [s.to_dict() for s in self.scenes]
        return data


@dataclass(frozen=True)
class DocumentMetadata:
    total_words: int
    chapter_count: int
    confidence: int  # 0-100
    detection_method: str
    title: Optional[str] = None
    author: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.title is not None:
            data["title"] = self.title
        if self.author is not None:
            data["author"] = self.author
        data.update(
            totalWords=self.total_words,
            chapterCount=self.chapter_count,
            confidence=self.confidence,
            detectionMethod=self.detection_method,
        )
        return data


@dataclass(frozen=True)
class ParsedDocument:
    """Full parsed manuscript structure."""

    metadata: DocumentMetadata
    format: ImportFormat
    chapters: list[ParsedChapter] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "chapters": [ch.to_dict() for ch in self.chapters],
            "warnings": list(self.warnings),
            "format": self.format.value,
        }


def make_document(
    fmt: ImportFormat,
    chapters: Sequence[ParsedChapter],
    *,
    confidence: int,
    detection_method: str,
    warnings: Iterable[str] = (),
    title: Optional[str] = None,
    author: Optional[str] = None,
) -> ParsedDocument:
    """Assemble a document, deriving the totals from ``chapters``."""
    chapters = list(chapters)
    meta = DocumentMetadata(
        title=title,
        author=author,
        total_words=sum(ch.word_count for ch in chapters),
        chapter_count=len(chapters),
        confidence=confidence,
        detection_method=detection_method,
    )
    return ParsedDocument(
        metadata=meta, format=fmt, chapters=chapters, warnings=list(warnings)
    )


def failed_document(
    fmt: ImportFormat, file_name: str, label: str, error: object
) -> ParsedDocument:
    """Result for a hard decode failure caught at the parser boundary."""
    return make_document(
        fmt,
        [],
        confidence=0,
        detection_method=f"{label} parse failed",
        warnings=[f"Failed to parse {label}: {error}"],
        title=strip_extension(file_name),
    )


def async_placeholder(fmt: ImportFormat, file_name: str, label: str) -> ParsedDocument:
    """Result of calling the synchronous API on an async-only format."""
    return make_document(
        fmt,
        [],
        confidence=0,
        detection_method=f"{label} (use parse_async)",
        warnings=[f"{label} parsing requires the async method. Please use parse_async."],
        title=strip_extension(file_name),
    )
