"""Multi-file patch parsing and application.

The oracle returns blocks of the form::

    --- FILE: relative/path.tsx ---
    <complete file content>

repeated once per file, each running to the next marker or end of text.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_FILE_BLOCK_RE = re.compile(r"--- FILE: ([^\n]*?) ---\n(.*?)(?=--- FILE:|\Z)", re.DOTALL)


class FileUpdate(BaseModel):
    filepath: str
    content: str


def parse_patch(text: str) -> Optional[list[FileUpdate]]:
    """Split a patch response into file updates.

    Returns ``None`` when non-empty text holds no file markers (a malformed
    response) and an empty list for empty text.
    """
    updates = [
        FileUpdate(filepath=m.group(1).strip(), content=m.group(2).strip())
        for m in _FILE_BLOCK_RE.finditer(text or "")
    ]
    if not updates and text and text.strip():
        return None
    return updates


def apply_file_updates(updates: list[FileUpdate], root: Path) -> list[Path]:
    """Write each update under ``root``, creating directories as needed.

    Paths that resolve outside ``root`` are skipped.
    """
    root = root.resolve()
    logger.info("Applying %d file updates...", len(updates))
    written = []
    for update in updates:
        target = (root / update.filepath).resolve()
        if not target.is_relative_to(root):
            logger.warning("Skipping update outside project: %s", update.filepath)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(update.content, encoding="utf-8")
        logger.info("  Updated: %s", update.filepath)
        written.append(target)
    return written
