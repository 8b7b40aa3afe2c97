"""Word counting, whitespace and chapter-number helpers shared by all parsers."""

from __future__ import annotations

import re
from pathlib import PurePath
from typing import Iterable, Optional

# Insertion order matters: extract_chapter_number returns the first entry found
# as a substring, so "seventeen" resolves to 7 and "canine" to 9.
WORD_NUMBERS: dict[str, int] = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "thirteen": 13,
    "fourteen": 14,
    "fifteen": 15,
    "sixteen": 16,
    "seventeen": 17,
    "eighteen": 18,
    "nineteen": 19,
    "twenty": 20,
}

_ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100, "D": 500, "M": 1000}

_DIGITS_RE = re.compile(r"(\d+)")

NON_SEQUENTIAL_WARNING = (
    "Chapter numbering is not sequential. Please review chapter numbers."
)


def count_words(text: str) -> int:
    return len(text.split())


def normalize_whitespace(text: str) -> str:
    """Collapse runs of spaces and blank lines, trimming every line."""
    text = text.replace("\t", " ")
    text = re.sub(r" {2,}", " ", text)
    text = re.sub(r"\n\s*\n\s*\n", "\n\n", text)
    return "\n".join(line.strip() for line in text.split("\n")).strip()


def extract_chapter_number(text: str, limit: int = 15) -> Optional[int]:
    """Best-effort chapter number from a heading.

    The first run of digits wins. Otherwise the lower-cased text is searched
    for number words up to ``limit`` as plain substrings, with no word
    boundaries.
    """
    match = _DIGITS_RE.search(text)
    if match:
        return int(match.group(1))
    return word_number(text, limit)


def word_number(text: str, limit: int = 15) -> Optional[int]:
    lower = text.lower()
    for word, number in WORD_NUMBERS.items():
        if number > limit:
            break
        if word in lower:
            return number
    return None


def roman_to_number(roman: str) -> int:
    result = 0
    upper = roman.upper()
    for i, ch in enumerate(upper):
        current = _ROMAN_VALUES.get(ch, 0)
        following = _ROMAN_VALUES.get(upper[i + 1], 0) if i + 1 < len(upper) else 0
        if following and current < following:
            result -= current
        else:
            result += current
    return result


def file_extension(file_name: str) -> str:
    return PurePath(file_name).suffix.lower()


def strip_extension(file_name: str) -> str:
    return PurePath(file_name).stem


def check_sequential(numbers: Iterable[Optional[int]]) -> bool:
    """True unless two or more known numbers fail to ascend by exactly one."""
    known = [n for n in numbers if n is not None]
    return all(b == a + 1 for a, b in zip(known, known[1:]))


def first_title_line(
    lines: list[str], marker: re.Pattern[str], scan: int = 10, max_length: int = 100
) -> Optional[str]:
    """Document title heuristic: the first non-empty line of the opening ``scan``
    lines, if it is short and not itself a chapter marker."""
    candidates = [line.strip() for line in lines[:scan] if line.strip()]
    if not candidates:
        return None
    first = candidates[0]
    if len(first) < max_length and not marker.match(first):
        return first
    return None
