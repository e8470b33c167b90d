from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def read_text(path: str) -> Optional[str]:
    p = Path(path)
    if not p.exists():
        return None
    return p.read_text(encoding="utf-8")


def file_matches(path: str, contents: str) -> bool:
    return read_text(path) == contents


def write_file(path: str, contents: str, *, mode: int = 0o644, dry_run: bool = False) -> None:
    p = Path(path)
    if dry_run:
        logger.info("Would write %s", str(p))
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    p.chmod(mode)
    logger.info("Wrote %s", str(p))


def remove_file(path: str, *, dry_run: bool = False) -> None:
    p = Path(path)
    if dry_run:
        logger.info("Would remove %s", str(p))
        return
    p.unlink(missing_ok=True)
    logger.info("Removed %s", str(p))
