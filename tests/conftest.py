"""Shared fixtures for tests."""

from __future__ import annotations

import io
import os
import zipfile
from pathlib import Path

import pytest

from storyimport.config import AppConfig, DetectionSettings

ENV_VARS = (
    "STORYIMPORT_LOG_LEVEL",
    "STORYIMPORT_EPUB_MIN_WORDS",
    "STORYIMPORT_FOUNTAIN_ACT_THRESHOLD",
    "STORYIMPORT_FOUNTAIN_ACTS",
)

ODT_CONTENT = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<office:document-content'
    ' xmlns:office="urn:oasis:names:tc:opendocument:xmlns:office:1.0"'
    ' xmlns:text="urn:oasis:names:tc:opendocument:xmlns:text:1.0">'
    "<office:body><office:text>{body}</office:text></office:body>"
    "</office:document-content>"
)

ODT_META = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<office:document-meta'
    ' xmlns:office="urn:oasis:names:tc:opendocument:xmlns:office:1.0"'
    ' xmlns:meta="urn:oasis:names:tc:opendocument:xmlns:meta:1.0"'
    ' xmlns:dc="http://purl.org/dc/elements/1.1/">'
    "<office:meta>{meta}</office:meta>"
    "</office:document-meta>"
)


@pytest.fixture
def settings() -> DetectionSettings:
    return DetectionSettings()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=tmp_path / "data",
        config_dir=tmp_path / "config",
    )


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Private os.environ, XDG dirs and CWD so dotenv loading cannot leak."""
    monkeypatch.setattr(os, "environ", dict(os.environ))
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


def build_odt(body: str, meta: str | None = None, with_content: bool = True) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("mimetype", "application/vnd.oasis.opendocument.text")
        if with_content:
            zf.writestr("content.xml", ODT_CONTENT.format(body=body))
        if meta is not None:
            zf.writestr("meta.xml", ODT_META.format(meta=meta))
    return buf.getvalue()


def build_docx(*blocks: tuple[str, str], title: str = "", author: str = "") -> bytes:
    """``blocks`` are (kind, text) with kind "h1".."h6" or "p"."""
    from docx import Document

    doc = Document()
    doc.core_properties.title = title
    doc.core_properties.author = author
    for kind, text in blocks:
        if kind.startswith("h"):
            doc.add_heading(text, level=int(kind[1]))
        else:
            doc.add_paragraph(text)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def build_pdf(pages: list[list[str]], title: str = "", author: str = "") -> bytes:
    import pymupdf

    doc = pymupdf.open()
    for lines in pages:
        page = doc.new_page()
        for i, line in enumerate(lines):
            page.insert_text((72, 72 + i * 20), line, fontsize=12)
    doc.set_metadata({"title": title, "author": author})
    data = doc.tobytes()
    doc.close()
    return data


def long_text(topic: str, words: int = 60) -> str:
    return " ".join(f"{topic}{i}" for i in range(words))
