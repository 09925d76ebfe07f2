"""Project context gathering for oracle requests."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

IGNORE_NAMES = frozenset({
    "node_modules", ".git", ".next", ".vscode", "dist", "build", "coverage",
    "public", "package-lock.json", "yarn.lock", "bun.lockb", "vibe-snapshot.png",
    "vibe.yaml",
})
TREE_EXTENSIONS = frozenset({".ts", ".tsx", ".js", ".jsx", ".css", ".json"})
SOURCE_EXTENSIONS = frozenset({".ts", ".tsx", ".js", ".jsx", ".css"})
MAX_TREE_DEPTH = 4


def _visible_entries(directory: Path, ignore: frozenset[str]) -> list[Path]:
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.debug("Cannot list %s: %s", directory, e)
        return []
    # Plan backups are never useful context.
    return [p for p in entries if p.name not in ignore and ".backup." not in p.name]


def get_project_structure(
    root: Path, depth: int = 0, ignore: frozenset[str] = IGNORE_NAMES,
) -> str:
    """Render the project as an indented tree of code and config files."""
    if depth > MAX_TREE_DEPTH:
        return ""
    lines = []
    entries = [p for p in _visible_entries(root, ignore)
               if p.is_dir() or p.suffix in TREE_EXTENSIONS]
    for index, entry in enumerate(entries):
        connector = "└── " if index == len(entries) - 1 else "├── "
        prefix = "  " * depth + connector
        if entry.is_dir():
            lines.append(f"{prefix}{entry.name}/\n")
            lines.append(get_project_structure(entry, depth + 1, ignore))
        else:
            lines.append(f"{prefix}{entry.name}\n")
    return "".join(lines)


def _iter_source_files(directory: Path, ignore: frozenset[str]):
    for entry in _visible_entries(directory, ignore):
        if entry.is_dir():
            yield from _iter_source_files(entry, ignore)
        elif entry.suffix in SOURCE_EXTENSIONS:
            yield entry


def get_critical_source_code(
    root: Path,
    max_file_bytes: int = 100 * 1024,
    max_chars: int = 400000,
    ignore: frozenset[str] = IGNORE_NAMES,
) -> str:
    """Concatenate source files as ``--- FILE: path ---`` blocks.

    Files above ``max_file_bytes`` are listed but not read; the total is
    truncated to ``max_chars``.
    """
    parts = []
    for path in _iter_source_files(root, ignore):
        rel = path.relative_to(root).as_posix()
        try:
            size = path.stat().st_size
            if size > max_file_bytes:
                parts.append(f"\n--- FILE: {rel} (Skipped: Too Large) ---\n")
                continue
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Skipping unreadable file %s: %s", rel, e)
            continue
        parts.append(f"\n--- FILE: {rel} ---\n{content}\n")

    context = "".join(parts)
    if len(context) > max_chars:
        logger.warning("Source context too large (%d chars), truncating to %d",
                       len(context), max_chars)
        return context[:max_chars] + "\n...[TRUNCATED]"
    return context


def read_manifest(root: Path, manifest_file: str = "package.json") -> str:
    """Return the dependency manifest text, or an empty string if absent."""
    path = root / manifest_file
    if not path.exists():
        logger.debug("No dependency manifest at %s", path)
        return ""
    return path.read_text(encoding="utf-8", errors="replace")
