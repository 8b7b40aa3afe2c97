"""JSON parser for already-structured story data.

Expected shape::

    {
      "title": "My Story",
      "author": "Author Name",
      "chapters": [
        {"title": "The Beginning", "number": 1, "summary": "...",
         "content": "...", "scenes": [{"title": "Scene 1", "content": "..."}]}
      ]
    }
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from storyimport.models import (
    ImportFormat,
    ParsedChapter,
    ParsedDocument,
    ParsedScene,
    failed_document,
    make_document,
)

from .base import DocumentParser
from .text_utils import strip_extension

log = logging.getLogger(__name__)


def is_valid_story_json(data: Any) -> bool:
    """An object with a ``chapters`` list of {title: str, content: str} entries."""
    if not isinstance(data, dict):
        return False
    chapters = data.get("chapters")
    if not isinstance(chapters, list):
        return False
    return all(
        isinstance(ch, dict)
        and isinstance(ch.get("title"), str)
        and isinstance(ch.get("content"), str)
        for ch in chapters
    )


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


class JsonParser(DocumentParser):
    name = "JSON Parser"
    format = ImportFormat.JSON
    SUPPORTED_EXTENSIONS = (".json",)

    def can_parse(self, content: str, file_name: str) -> bool:
        if not self.claims_extension(file_name):
            return False
        try:
            return is_valid_story_json(json.loads(content))
        except (ValueError, RecursionError):
            return False

    def parse(self, content: str, file_name: str) -> ParsedDocument:
        try:
            data = json.loads(content)
            if not is_valid_story_json(data):
                raise ValueError("expected an object with a 'chapters' list")
            return self._parse_story(data, file_name)
        except Exception as e:
            log.error("JSON parse failed for %s: %s", file_name, e)
            return failed_document(self.format, file_name, "JSON", e)

    def _parse_story(self, data: dict, file_name: str) -> ParsedDocument:
        chapters: list[ParsedChapter] = []
        warnings: list[str] = []

        for i, entry in enumerate(data["chapters"]):
            content = entry["content"]
            summary = entry.get("summary")
            if isinstance(summary, str) and summary and summary != content:
                content = f"{summary}\n\n{content}"

            number = entry.get("number")
            if not isinstance(number, int) or isinstance(number, bool):
                number = i + 1

            scenes = [
                ParsedScene(content=s["content"], title=_optional_str(s.get("title")))
                for s in entry.get("scenes") or []
                if isinstance(s, dict) and isinstance(s.get("content"), str)
            ]

            chapters.append(
                ParsedChapter(
                    title=entry["title"],
                    number=number,
                    content=content,
                    scenes=scenes or None,
                )
            )

        numbers = [ch.number for ch in chapters]
        if len(numbers) > 1 and len(set(numbers)) != len(numbers):
            warnings.append("Duplicate chapter numbers found in JSON data.")

        return make_document(
            self.format,
            chapters,
            confidence=100,
            detection_method="JSON structure",
            warnings=warnings,
            title=_optional_str(data.get("title")) or strip_extension(file_name),
            author=_optional_str(data.get("author")),
        )
