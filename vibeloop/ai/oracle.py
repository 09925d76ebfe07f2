"""Repair oracle — the AI code generator behind the repair loop.

The loop depends only on the ``RepairOracle`` protocol. ``ClaudeOracle``
backs it with Claude; tests substitute a scripted fake.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Protocol

from pydantic import BaseModel, Field

from vibeloop.models.test_result import FailureRecord
from .client import AIClient
from .prompts.build_fix import BUILD_FIX_SYSTEM_PROMPT, build_build_fix_prompt
from .prompts.patch import PATCH_SYSTEM_PROMPT, build_patch_prompt
from .prompts.plan import PLAN_SYSTEM_PROMPT, build_plan_prompt

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"```[a-zA-Z]*\n")
_PREAMBLE_RE = re.compile(r"^Here is the .*? code:?", re.IGNORECASE)
_YAML_FENCE_OPEN_RE = re.compile(r"```ya?ml\s*")
_FENCE_CLOSE_RE = re.compile(r"```\s*$")


class BuildFixContext(BaseModel):
    file_path: str
    build_logs: str
    source: str
    manifest: str = ""


class PatchContext(BaseModel):
    failures: list[FailureRecord] = Field(default_factory=list)
    run_error: str | None = None
    plan_text: str = ""
    source_context: str = ""
    file_tree: str = ""
    manifest: str = ""


class PlanContext(BaseModel):
    file_tree: str = ""
    source_context: str = ""
    current_plan: str = ""
    user_prompt: str = ""


class RepairOracle(Protocol):
    def repair_file(self, context: BuildFixContext) -> str:
        """Return the fixed content of one file."""

    def repair_files(self, context: PatchContext) -> str:
        """Return a multi-file patch in ``--- FILE: path ---`` block format."""

    def generate_plan(self, context: PlanContext) -> str:
        """Return the full text of a regenerated YAML plan."""


def clean_code(text: str) -> str:
    """Strip markdown fences and chatty preambles from a whole-file response."""
    clean = _FENCE_OPEN_RE.sub("", text).replace("```", "")
    clean = _PREAMBLE_RE.sub("", clean.strip())
    return clean.strip()


def clean_yaml(text: str) -> str:
    clean = _YAML_FENCE_OPEN_RE.sub("", text)
    clean = _FENCE_CLOSE_RE.sub("", clean)
    return clean.strip()


class ClaudeOracle:
    """RepairOracle backed by the Claude API."""

    def __init__(self, ai_client: AIClient):
        self.ai_client = ai_client

    def repair_file(self, context: BuildFixContext) -> str:
        logger.info("Requesting a fix for %s", context.file_path)
        response = self.ai_client.complete(
            BUILD_FIX_SYSTEM_PROMPT,
            build_build_fix_prompt(context.build_logs, context.source, context.manifest),
        )
        code = clean_code(response)
        if "import" not in code and "export" not in code:
            logger.warning("The AI output looks suspicious (no imports/exports found)")
        return code

    def repair_files(self, context: PatchContext) -> str:
        failures = [f.model_dump() for f in context.failures]
        if context.run_error:
            failures.append({"scenario": "(run)", "action": "Run", "error": context.run_error})
        logger.info("Requesting a patch for %d failures", len(failures))
        return self.ai_client.complete(
            PATCH_SYSTEM_PROMPT,
            build_patch_prompt(
                json.dumps(failures, indent=2, default=str),
                context.plan_text,
                context.source_context,
                context.file_tree,
                context.manifest,
            ),
        )

    def generate_plan(self, context: PlanContext) -> str:
        logger.info("Generating test plan...")
        response = self.ai_client.complete(
            PLAN_SYSTEM_PROMPT,
            build_plan_prompt(
                context.file_tree, context.source_context,
                context.current_plan, context.user_prompt,
            ),
        )
        return clean_yaml(response)
