"""Fountain screenplay parser (.fountain, .spmd).

Scenes are found from scene headings (INT./EXT./INT/EXT./I/E. or a forced
``.`` heading) and grouped into acts, which become chapters.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Optional

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

_SNIFF_RE = re.compile(r"^(INT\.|EXT\.|INT/EXT\.|I/E\.)", re.I | re.M)
_TITLE_PAGE_RE = re.compile(
    r"^(Title|Author|Credit|Source|Draft date|Contact|Copyright):\s*(.+)$", re.I
)
_SCENE_HEADING_RE = re.compile(
    r"^(INT\.|EXT\.|INT/EXT\.|I/E\.|\.)\s*(.+?)(?:\s*[-–—]\s*(.+))?$", re.I
)
_ACT_RE = re.compile(r"^ACT\s+(ONE|TWO|THREE|FOUR|FIVE|I{1,3}V?|[1-5])", re.I | re.M)


@dataclass
class TitlePage:
    title: Optional[str] = None
    author: Optional[str] = None


@dataclass(frozen=True)
class Scene:
    heading: str
    location: str
    content: str
    time_of_day: Optional[str] = None

    @property
    def text(self) -> str:
        return f"{self.heading}\n\n{self.content}"


def parse_title_page(content: str) -> tuple[TitlePage, str]:
    """Split leading ``Key: Value`` lines from the screenplay body."""
    page = TitlePage()
    lines = content.split("\n")
    body_start = 0
    found_entry = False

    for i, line in enumerate(lines):
        m = _TITLE_PAGE_RE.match(line)
        if m:
            found_entry = True
            key, value = m.group(1).lower(), m.group(2).strip()
            if key == "title":
                page.title = value
            elif key in ("author", "credit"):
                page.author = value
        elif found_entry and not line.strip():
            body_start = i + 1
            break
        elif not found_entry and line.strip():
            break

    return page, "\n".join(lines[body_start:]).strip()


def parse_scenes(body: str) -> list[Scene]:
    scenes: list[Scene] = []
    heading: Optional[re.Match[str]] = None
    current: list[str] = []

    def flush() -> None:
        if heading is None:
            return
        text = "\n".join(current).strip()
        if not text:
            return
        prefix = heading.group(1).upper().replace(".", "", 1)
        location = f"{prefix} {heading.group(2).strip()}".strip()
        time_of_day = heading.group(3).strip() if heading.group(3) else None
        scenes.append(Scene(heading.group(0), location, text, time_of_day))

    for line in body.split("\n"):
        m = _SCENE_HEADING_RE.match(line.strip())
        if m:
            flush()
            heading, current = m, []
        elif heading is not None:
            current.append(line)
    flush()

    return scenes


class FountainParser(DocumentParser):
    name = "Fountain Parser"
    format = ImportFormat.FOUNTAIN
    SUPPORTED_EXTENSIONS = (".fountain", ".spmd")

    def can_parse(self, content: str, file_name: str) -> bool:
        return self.claims_extension(file_name) or bool(_SNIFF_RE.search(content))

    def parse(self, content: str, file_name: str) -> ParsedDocument:
        try:
            page, body = parse_title_page(content)
            scenes = parse_scenes(body)
            title = page.title or strip_extension(file_name)

            if not scenes:
                return make_document(
                    self.format,
                    [ParsedChapter(title=page.title or "Script", number=1, content=body)],
                    confidence=60,
                    detection_method="No scenes detected",
                    warnings=[
                        "No scene headings found. Document imported as single chapter."
                    ],
                    title=title,
                    author=page.author,
                )

            log.debug("%s: %d scenes", file_name, len(scenes))
            return make_document(
                self.format,
                self.group_into_acts(scenes),
                confidence=85,
                detection_method="Fountain scene headings",
                title=title,
                author=page.author,
            )
        except Exception as e:
            log.error("Fountain parse failed for %s: %s", file_name, e)
            return failed_document(self.format, file_name, "Fountain", e)

    def group_into_acts(self, scenes: list[Scene]) -> list[ParsedChapter]:
        """Group scenes by ``ACT`` markers; long unmarked scripts get synthetic acts."""
        acts: dict[str, list[Scene]] = {}
        current_act = "Act 1"
        for scene in scenes:
            m = _ACT_RE.search(scene.content)
            if m:
                current_act = f"Act {m.group(1)}"
            acts.setdefault(current_act, []).append(scene)

        if len(acts) == 1 and len(scenes) > self.settings.fountain_act_split_threshold:
            per_act = math.ceil(len(scenes) / self.settings.fountain_synthetic_acts)
            acts = {}
            for i, scene in enumerate(scenes):
                acts.setdefault(f"Act {i // per_act + 1}", []).append(scene)

        chapters: list[ParsedChapter] = []
        for number, (act_name, act_scenes) in enumerate(acts.items(), start=1):
            parsed = [ParsedScene(content=s.text, title=s.location) for s in act_scenes]
            chapters.append(
                ParsedChapter(
                    title=act_name,
                    number=number,
                    content="\n\n---\n\n".join(s.text for s in act_scenes),
                    scenes=parsed if len(parsed) > 1 else None,
                )
            )
        return chapters
