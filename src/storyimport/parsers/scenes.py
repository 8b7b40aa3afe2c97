"""Scene-break detection inside chapter prose."""

from __future__ import annotations

import re
from typing import Optional

from storyimport.models import ParsedScene

# Each pattern is applied to a single line.
SCENE_BREAK_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*\*\s*\*\s*\*\s*$"),
    re.compile(r"^\s*\*{3,}\s*$"),
    re.compile(r"^\s*-{3,}\s*$"),
    re.compile(r"^\s*~{3,}\s*$"),
    re.compile(r"^\s*#{3,}\s*$"),
)


def is_scene_break(line: str) -> bool:
    return any(p.match(line) for p in SCENE_BREAK_PATTERNS)


def detect_scenes(content: str) -> list[ParsedScene]:
    """Split chapter text on scene-break lines.

    Blank segments are dropped; titles are synthesized as "Scene N".
    """
    segments: list[str] = []
    current: list[str] = []

    for line in content.split("\n"):
        if is_scene_break(line):
            text = "\n".join(current).strip()
            if text:
                segments.append(text)
            current = []
        else:
            current.append(line)

    text = "\n".join(current).strip()
    if text:
        segments.append(text)

    return [
        ParsedScene(title=f"Scene {i}", content=seg)
        for i, seg in enumerate(segments, start=1)
    ]


def scenes_if_multiple(content: str) -> Optional[list[ParsedScene]]:
    """Scenes for a chapter, or None when there is at most one."""
    scenes = detect_scenes(content)
    return scenes if len(scenes) > 1 else None
