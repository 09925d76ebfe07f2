"""Orchestrator — wires config, browser, executor, build and oracle together."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

from playwright.async_api import Page, async_playwright

from vibeloop.ai.client import AIClient, set_debug_dir
from vibeloop.ai.oracle import ClaudeOracle, RepairOracle
from vibeloop.executor.executor import Executor
from vibeloop.guardrails.plan_guardrails import PlanUpdateReport
from vibeloop.models.config import VibeConfig
from vibeloop.models.test_result import ExecutionResult
from vibeloop.repair.build import BuildResult, run_build
from vibeloop.repair.loop import RepairLoop, RepairOutcome
from vibeloop.utils.browser import create_context, launch_browser

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Orchestrator:
    """Entry points behind each CLI command."""

    def __init__(
        self,
        config: VibeConfig,
        project_dir: Path | None = None,
        oracle: RepairOracle | None = None,
    ):
        self.config = config
        self.project_dir = (project_dir or Path.cwd()).resolve()
        self.plan_path = self.project_dir / config.plan_file
        self.framework_dir = self.project_dir / ".vibeloop"
        self.executor = Executor(config, self.project_dir)
        self._oracle = oracle

        set_debug_dir(self.framework_dir / "debug")

    @property
    def oracle(self) -> RepairOracle:
        """The repair oracle, created on first use (needs ANTHROPIC_API_KEY)."""
        if self._oracle is None:
            self._oracle = ClaudeOracle(AIClient(
                model=self.config.ai_model,
                max_tokens=self.config.ai_max_tokens,
            ))
        return self._oracle

    async def _with_page(self, work: Callable[[Page], Awaitable[T]]) -> T:
        """Run ``work`` with one page owned for its whole duration."""
        async with async_playwright() as p:
            browser = await launch_browser(p, self.config)
            try:
                context = await create_context(browser, self.config)
                page = await context.new_page()
                return await work(page)
            finally:
                await browser.close()

    async def _build(self) -> BuildResult:
        return await run_build(
            self.config.build_command, self.project_dir, self.config.build_timeout_seconds,
        )

    def _repair_loop(self, page: Page | None = None) -> RepairLoop:
        async def run_tests() -> ExecutionResult:
            if page is None:
                raise RuntimeError("This repair loop was created without a browser page")
            return await self.executor.run_plan_file(page, self.plan_path)

        return RepairLoop(self.config, self.oracle, self._build, run_tests, self.project_dir)

    def run_tests(self) -> ExecutionResult:
        """Run the plan once."""
        return asyncio.run(self._with_page(
            lambda page: self.executor.run_plan_file(page, self.plan_path)
        ))

    def scan(self) -> BuildResult:
        """Run the build once."""
        return asyncio.run(self._build())

    def fix(self) -> tuple[BuildResult, str | None]:
        """Run the build and, if it fails, apply one single-file fix.

        Returns the build result and an error message when no fix target exists.
        """
        async def _fix() -> tuple[BuildResult, str | None]:
            build = await self._build()
            if build.ok:
                return build, None
            return build, await self._repair_loop().fix_build(build)

        return asyncio.run(_fix())

    def generate_plan(self, prompt: str = "") -> PlanUpdateReport:
        """Regenerate the plan through the guardrails."""
        return asyncio.run(self._repair_loop().regenerate_plan(prompt))

    def run_loop(self, prompt: str = "") -> RepairOutcome:
        """Run the bounded build → test → repair loop."""
        logger.info("=== Starting repair loop (max %d iterations) ===",
                    self.config.max_iterations)
        return asyncio.run(self._with_page(
            lambda page: self._repair_loop(page).run(prompt)
        ))
