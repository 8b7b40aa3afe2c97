"""Format sniffing and parser dispatch."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from storyimport.config import DetectionSettings
from storyimport.models import ImportFormat, ParsedDocument
from storyimport.parsers.base import DocumentParser, all_parsers, get_parser

log = logging.getLogger(__name__)


def detect_format(
    content: str, file_name: str, settings: Optional[DetectionSettings] = None
) -> ImportFormat:
    """First parser to accept the document, extension claims before sniffing."""
    parsers = all_parsers(settings)

    for parser in parsers:
        if parser.claims_extension(file_name) and parser.can_parse(content, file_name):
            return parser.format

    for parser in parsers:
        if parser.can_parse(content, file_name):
            return parser.format

    return ImportFormat.UNKNOWN


def select_parser(
    content: str, file_name: str, settings: Optional[DetectionSettings] = None
) -> DocumentParser:
    fmt = detect_format(content, file_name, settings)
    if fmt == ImportFormat.UNKNOWN:
        log.info("No parser claimed %s, falling back to plain text", file_name)
    return get_parser(fmt, settings)


def _resolve(
    content: str,
    file_name: str,
    fmt: Optional[ImportFormat],
    settings: Optional[DetectionSettings],
) -> DocumentParser:
    if fmt is not None:
        return get_parser(fmt, settings)
    return select_parser(content, file_name, settings)


def parse_document(
    content: str,
    file_name: str,
    fmt: Optional[ImportFormat] = None,
    settings: Optional[DetectionSettings] = None,
) -> ParsedDocument:
    """Synchronous entry point. Archive and binary formats return a placeholder."""
    parser = _resolve(content, file_name, fmt, settings)
    log.debug("Parsing %s with %s", file_name, parser.name)
    return parser.parse(content, file_name)


async def parse_document_async(
    data: bytes,
    file_name: str,
    fmt: Optional[ImportFormat] = None,
    settings: Optional[DetectionSettings] = None,
) -> ParsedDocument:
    """Asynchronous entry point for any format.

    Async-tier parsers get the raw bytes; text parsers get them decoded as
    UTF-8 with undecodable bytes replaced.
    """
    text = data.decode("utf-8", errors="replace")
    parser = _resolve(text, file_name, fmt, settings)
    log.debug("Parsing %s with %s", file_name, parser.name)
    if parser.requires_async:
        return await parser.parse_async(data, file_name)  # type: ignore[attr-defined]
    return parser.parse(text, file_name)


async def parse_file(
    path: Path, settings: Optional[DetectionSettings] = None
) -> ParsedDocument:
    data = await asyncio.to_thread(path.read_bytes)
    return await parse_document_async(data, path.name, settings=settings)
