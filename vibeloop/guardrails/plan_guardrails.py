"""Change-safety checks for AI-regenerated test plans.

A regenerated plan replaces the on-disk plan only after it has been backed
up, checked for legacy keys and measured against the previous version.
Violations are reported to the caller; they never block the write.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from vibeloop.models.test_plan import PlanLoadError, TestPlan

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("meta", "scenarios")
# Keys of the legacy developer schema; the shorthand DSL must not use them.
FORBIDDEN_KEYS = ("actions", "assert_visible", "assert_text", "selector")

AUTOMATIC_CHANGE_LIMIT = 30.0
PROMPTED_CHANGE_LIMIT = 75.0

_META_BLOCK = re.compile(r"meta:(.*?)(?=\n\w+:|\Z)", re.DOTALL)


class StructureCheck(BaseModel):
    is_valid: bool
    invalid_keys: list[str] = Field(default_factory=list)
    has_required_sections: bool = False
    line_count: int = 0


class PlanDiff(BaseModel):
    changes: list[str] = Field(default_factory=list)
    change_percentage: float = 0.0
    total: int = 0
    unchanged: int = 0
    added: int = 0
    removed: int = 0


class ChangeValidation(BaseModel):
    is_valid: bool
    threshold: float
    diff: PlanDiff
    recommendation: str = ""


class PlanUpdateReport(BaseModel):
    plan_path: str
    backup_path: Optional[str] = None
    structure: StructureCheck
    validation: ChangeValidation
    meta_preserved: bool = False


def validate_plan_structure(text: str) -> StructureCheck:
    """Scan plan text line by line for legacy keys."""
    lines = text.split("\n")
    found: list[str] = []
    for line in lines:
        for key in FORBIDDEN_KEYS:
            if (f"{key}:" in line or f"{key} " in line) and key not in found:
                found.append(key)
    return StructureCheck(
        is_valid=not found,
        invalid_keys=found,
        has_required_sections=any(f"{s}:" in text for s in REQUIRED_SECTIONS),
        line_count=len(lines),
    )


def backup_path_for(path: Path, now: datetime | None = None) -> Path:
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
    return path.with_name(f"{path.stem}.backup.{stamp}.yaml")


def create_backup(path: str | Path, content: str) -> Path:
    """Write ``content`` verbatim to a timestamped sibling of ``path``."""
    backup = backup_path_for(Path(path))
    backup.write_text(content, encoding="utf-8")
    logger.info("Backed up plan to %s", backup)
    return backup


def preserve_meta(original: str, updated: str) -> str:
    """Put the original ``meta`` block back unless the update sets a base URL."""
    original_meta = _META_BLOCK.search(original)
    if original_meta is None or "baseUrl:" in updated:
        return updated
    if _META_BLOCK.search(updated) is None:
        return original_meta.group(0) + "\n" + updated
    return _META_BLOCK.sub(lambda _: original_meta.group(0), updated, count=1)


def calculate_plan_diff(original: str, updated: str) -> PlanDiff:
    """Line-set diff, ignoring blank lines."""
    if not original or not original.strip():
        if not updated or not updated.strip():
            return PlanDiff()
        return PlanDiff(changes=["Full file created"], change_percentage=100.0)

    original_lines = [line for line in original.split("\n") if line.strip()]
    updated_lines = [line for line in updated.split("\n") if line.strip()]
    original_set = set(original_lines)
    updated_set = set(updated_lines)

    added = [line for line in updated_lines if line not in original_set]
    removed = [line for line in original_lines if line not in updated_set]
    unchanged = len(updated_lines) - len(added)

    total = max(len(original_lines), len(updated_lines))
    percentage = (len(added) + len(removed)) / total * 100 if total else 0.0

    return PlanDiff(
        changes=[f"+ {line}" for line in added] + [f"- {line}" for line in removed],
        change_percentage=percentage,
        total=total,
        unchanged=unchanged,
        added=len(added),
        removed=len(removed),
    )


def validate_minimal_changes(
    original: str, updated: str, user_prompt: str | None = None,
) -> ChangeValidation:
    """An explicit instruction licenses a larger rewrite than an automatic one."""
    diff = calculate_plan_diff(original, updated)
    threshold = PROMPTED_CHANGE_LIMIT if user_prompt and user_prompt.strip() else AUTOMATIC_CHANGE_LIMIT
    is_valid = diff.change_percentage <= threshold
    if is_valid:
        recommendation = f"Minimal changes: {diff.change_percentage:.1f}% modified."
    else:
        recommendation = (f"Large change detected: {diff.change_percentage:.1f}% modified "
                          f"(limit {threshold:.0f}%). Consider more targeted edits.")
    return ChangeValidation(
        is_valid=is_valid, threshold=threshold, diff=diff, recommendation=recommendation,
    )


def persist_regenerated_plan(
    plan_path: str | Path, new_text: str, user_prompt: str | None = None,
) -> PlanUpdateReport:
    """Back up the current plan, apply the guardrails and write the new one."""
    plan_path = Path(plan_path)
    original = plan_path.read_text(encoding="utf-8") if plan_path.exists() else ""

    backup = create_backup(plan_path, original) if original.strip() else None

    structure = validate_plan_structure(new_text)
    final_text = new_text
    meta_preserved = False
    if not structure.is_valid:
        logger.warning("Regenerated plan uses legacy keys: %s", ", ".join(structure.invalid_keys))
        final_text = preserve_meta(original, new_text)
        meta_preserved = final_text != new_text
        if meta_preserved:
            logger.info("Restored original meta block")

    validation = validate_minimal_changes(original, final_text, user_prompt)
    if validation.is_valid:
        logger.info(validation.recommendation)
    else:
        logger.warning(validation.recommendation)

    try:
        TestPlan.from_yaml(final_text)
    except PlanLoadError as e:
        logger.warning("Regenerated plan does not parse: %s", e)

    plan_path.write_text(final_text, encoding="utf-8")
    logger.info("Wrote test plan to %s", plan_path)

    return PlanUpdateReport(
        plan_path=str(plan_path),
        backup_path=str(backup) if backup else None,
        structure=structure,
        validation=validation,
        meta_preserved=meta_preserved,
    )
