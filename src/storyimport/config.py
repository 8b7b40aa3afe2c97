"""Configuration management via .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


@dataclass
class DetectionSettings:
    """Thresholds used by the structure heuristics."""

    epub_min_chapter_words: int = 50  # shorter spine documents are nav/cover pages
    fountain_act_split_threshold: int = 15
    fountain_synthetic_acts: int = 3
    title_scan_lines: int = 10
    title_max_length: int = 100


@dataclass
class AppConfig:
    # Paths
    data_dir: Path = field(default_factory=lambda: _xdg_data_home() / "storyimport")
    config_dir: Path = field(
        default_factory=lambda: _xdg_config_home() / "storyimport"
    )

    log_level: str = "INFO"
    detection: DetectionSettings = field(default_factory=DetectionSettings)

    log_path: Path = field(init=False)

    def __post_init__(self) -> None:
        self.log_path = self.data_dir / "storyimport.log"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw)
    except ValueError:
        return default


def load_config(env_path: Optional[Path] = None) -> AppConfig:
    """Load config from .env file. Searches CWD then config dir."""
    search_paths = [
        env_path,
        Path.cwd() / ".env",
        _xdg_config_home() / "storyimport" / ".env",
        Path.home() / ".env",
    ]
    for p in search_paths:
        if p and p.exists():
            load_dotenv(p)
            break

    defaults = DetectionSettings()
    detection = DetectionSettings(
        epub_min_chapter_words=_env_int(
            "STORYIMPORT_EPUB_MIN_WORDS", defaults.epub_min_chapter_words
        ),
        fountain_act_split_threshold=_env_int(
            "STORYIMPORT_FOUNTAIN_ACT_THRESHOLD",
            defaults.fountain_act_split_threshold,
        ),
        fountain_synthetic_acts=_env_int(
            "STORYIMPORT_FOUNTAIN_ACTS", defaults.fountain_synthetic_acts
        ),
    )

    return AppConfig(
        log_level=os.getenv("STORYIMPORT_LOG_LEVEL", "INFO").upper(),
        detection=detection,
    )
