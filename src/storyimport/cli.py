"""storyimport - detect chapters and scenes in a manuscript file."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

from storyimport.config import AppConfig, load_config
from storyimport.importer import parse_file

USAGE = "usage: storyimport <file>"


def _setup_logging(config: AppConfig) -> None:
    handler = logging.FileHandler(config.log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger("storyimport")
    root.setLevel(getattr(logging, config.log_level, logging.INFO))
    root.addHandler(handler)


def main() -> None:
    if len(sys.argv) < 2:
        print(USAGE, file=sys.stderr)
        sys.exit(2)

    config = load_config()
    _setup_logging(config)

    path = Path(sys.argv[1]).expanduser()
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        sys.exit(1)

    document = asyncio.run(parse_file(path, settings=config.detection))
    print(json.dumps(document.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
