"""Repair loop — build, test and patch until green or out of iterations."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

import anthropic
from pydantic import BaseModel

from vibeloop.ai.oracle import BuildFixContext, PatchContext, PlanContext, RepairOracle
from vibeloop.guardrails.plan_guardrails import PlanUpdateReport, persist_regenerated_plan
from vibeloop.models.config import VibeConfig
from vibeloop.models.test_result import ExecutionResult

from .build import BuildResult, extract_error_file
from .patch_parser import apply_file_updates, parse_patch
from .project_context import get_critical_source_code, get_project_structure, read_manifest

logger = logging.getLogger(__name__)

BuildRunner = Callable[[], Awaitable[BuildResult]]
TestRunner = Callable[[], Awaitable[ExecutionResult]]


class RepairState(BaseModel):
    iteration: int = 1
    max_iterations: int = 5

    @property
    def exhausted(self) -> bool:
        return self.iteration > self.max_iterations

    def advance(self) -> None:
        self.iteration += 1


class RepairOutcome(BaseModel):
    success: bool
    fatal: bool = False
    iterations: int = 0
    message: str = ""
    last_result: Optional[ExecutionResult] = None
    last_build: Optional[BuildResult] = None


class RepairLoop:
    """Interleaves build checks, plan execution and oracle patches.

    Each iteration runs the build; a failing build gets a single-file fix
    for the file its log points at, a passing one is followed by a test
    run whose failures drive a multi-file patch. The iteration bound is the
    only guard against an oracle that never converges.
    """

    def __init__(
        self,
        config: VibeConfig,
        oracle: RepairOracle,
        build_runner: BuildRunner,
        test_runner: TestRunner,
        project_dir: Path,
    ):
        self.config = config
        self.oracle = oracle
        self.build_runner = build_runner
        self.test_runner = test_runner
        self.project_dir = project_dir
        self.plan_path = project_dir / config.plan_file

    async def run(self, prompt: str = "") -> RepairOutcome:
        state = RepairState(max_iterations=self.config.max_iterations)
        last_result: Optional[ExecutionResult] = None
        last_build: Optional[BuildResult] = None

        try:
            while True:
                if state.exhausted:
                    message = (f"Reached the maximum of {state.max_iterations} iterations "
                               f"without a passing run")
                    logger.error(message)
                    return RepairOutcome(
                        success=False, iterations=state.max_iterations, message=message,
                        last_result=last_result, last_build=last_build,
                    )

                logger.info("--- Iteration %d/%d ---", state.iteration, state.max_iterations)

                if state.iteration == 1 and prompt and prompt.strip():
                    await self.regenerate_plan(prompt)

                last_build = await self.build_runner()
                if not last_build.ok:
                    error = await self.fix_build(last_build)
                    if error:
                        return RepairOutcome(
                            success=False, fatal=True, iterations=state.iteration,
                            message=error, last_result=last_result, last_build=last_build,
                        )
                    state.advance()
                    continue

                last_result = await self.test_runner()
                if last_result.success:
                    message = (f"All {last_result.total_tests} checks passed "
                               f"after {state.iteration} iteration(s)")
                    logger.info(message)
                    return RepairOutcome(
                        success=True, iterations=state.iteration, message=message,
                        last_result=last_result, last_build=last_build,
                    )

                logger.warning("Iteration %d: %s", state.iteration, last_result.summary())
                await self.patch_from_failures(last_result)
                state.advance()
        except anthropic.APIError as e:
            message = f"AI oracle request failed: {e}"
            logger.error(message)
            return RepairOutcome(
                success=False, fatal=True, iterations=state.iteration, message=message,
                last_result=last_result, last_build=last_build,
            )

    async def regenerate_plan(self, prompt: str = "") -> PlanUpdateReport:
        current = self.plan_path.read_text(encoding="utf-8") if self.plan_path.exists() else ""
        context = PlanContext(
            file_tree=get_project_structure(self.project_dir),
            source_context=self._source_context(),
            current_plan=current,
            user_prompt=prompt,
        )
        new_plan = await asyncio.to_thread(self.oracle.generate_plan, context)
        return persist_regenerated_plan(self.plan_path, new_plan, prompt)

    async def fix_build(self, build: BuildResult) -> Optional[str]:
        """Apply a single-file fix; return an error message if no target exists."""
        logs = build.combined_output
        broken = extract_error_file(logs)
        if broken is None:
            broken = self.config.default_broken_file
            logger.warning("Could not find a file in the build logs, defaulting to %s", broken)
        else:
            logger.info("Targeted broken file: %s", broken)

        target = (self.project_dir / broken).resolve()
        if not target.is_file():
            message = f"The file {broken} does not exist; nothing to repair"
            logger.error(message)
            return message

        context = BuildFixContext(
            file_path=broken,
            build_logs=logs,
            source=target.read_text(encoding="utf-8"),
            manifest=read_manifest(self.project_dir, self.config.manifest_file),
        )
        fixed = await asyncio.to_thread(self.oracle.repair_file, context)
        target.write_text(fixed, encoding="utf-8")
        logger.info("Rewrote %s", broken)
        return None

    async def patch_from_failures(self, result: ExecutionResult) -> None:
        context = PatchContext(
            failures=result.failures,
            run_error=result.error,
            plan_text=self.plan_path.read_text(encoding="utf-8") if self.plan_path.exists() else "",
            source_context=self._source_context(),
            file_tree=get_project_structure(self.project_dir),
            manifest=read_manifest(self.project_dir, self.config.manifest_file),
        )
        response = await asyncio.to_thread(self.oracle.repair_files, context)
        updates = parse_patch(response)
        if not updates:
            logger.warning("No file updates found in the AI response; retrying unpatched")
            return
        apply_file_updates(updates, self.project_dir)

    def _source_context(self) -> str:
        return get_critical_source_code(
            self.project_dir,
            max_file_bytes=self.config.max_source_file_bytes,
            max_chars=self.config.max_context_chars,
        )
