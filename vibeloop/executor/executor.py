"""Test executor — runs a YAML test plan against a Playwright page."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from playwright.async_api import Page

from vibeloop.models.actions import TRIGGER_ACTION_TYPES, CanonicalAction, describe_action
from vibeloop.models.config import VibeConfig
from vibeloop.models.test_plan import PlanLoadError, TestPlan
from vibeloop.models.test_result import ExecutionResult, FailureRecord

from .action_runner import run_action
from .dev_server import server_address, start_dev_server, wait_for_port
from .network import NetworkExpectation
from .normalizer import normalize_action

logger = logging.getLogger(__name__)


class _Tally:
    """Counters and failure records for one execution pass."""

    def __init__(self) -> None:
        self.total = 0
        self.passed = 0
        self.failures: list[FailureRecord] = []

    def fail(self, scenario: str, action: dict | str, error: str) -> None:
        self.failures.append(FailureRecord(scenario=scenario, action=action, error=error))


class Executor:
    """Executes test plans sequentially against a single page.

    Scenarios and steps run strictly in order. A failing step is recorded and
    the next step still runs; a scenario whose page cannot be loaded is
    recorded once and skipped.
    """

    def __init__(self, config: VibeConfig, project_dir: Path | None = None):
        self.config = config
        self.project_dir = project_dir or Path.cwd()

    async def run_plan_file(self, page: Page, plan_path: Path) -> ExecutionResult:
        """Load the plan from disk and run it. Load errors abort the run."""
        try:
            plan = TestPlan.load(plan_path)
        except PlanLoadError as e:
            logger.error("%s", e)
            return ExecutionResult(success=False, error=str(e))
        return await self.run(page, plan)

    async def run(self, page: Page, plan: TestPlan) -> ExecutionResult:
        """Execute every scenario of ``plan`` and return the aggregated result."""
        base_url = plan.resolve_base_url(self.config.default_base_url)
        logger.info("Starting verification of %d scenarios against %s",
                    len(plan.scenarios), base_url)

        if not await self._ensure_server(page, base_url):
            return ExecutionResult(success=False, error="Server failed to start")

        tally = _Tally()
        pending: Optional[NetworkExpectation] = None

        for scenario in plan.scenarios:
            logger.info("Testing scenario: %s", scenario.name)
            try:
                await page.goto(plan.url_for(scenario, base_url), wait_until="networkidle",
                                timeout=self.config.navigation_timeout_ms)
            except Exception as e:
                logger.warning("Could not load %s: %s", scenario.path, e)
                tally.fail(scenario.name, "Navigation", f"Could not load {scenario.path}")
                if pending is not None:
                    pending.cancel()
                    pending = None
                continue
            logger.info("Arrived at %s", scenario.path)

            for raw_step in scenario.tests:
                action = normalize_action(raw_step)
                pending = await self._run_step(page, scenario.name, action, pending, tally)

        if pending is not None:
            logger.warning("Network expectation %s was never consumed", pending.description)
            pending.cancel()

        return self._build_result(tally)

    async def _run_step(
        self,
        page: Page,
        scenario_name: str,
        action: CanonicalAction,
        pending: Optional[NetworkExpectation],
        tally: _Tally,
    ) -> Optional[NetworkExpectation]:
        """Run one step and return the pending expectation for the next one."""
        is_listen = action.action_type == "network_listen"
        is_trigger = action.action_type in TRIGGER_ACTION_TYPES
        if not is_listen:
            tally.total += 1

        try:
            if pending is not None and not is_trigger:
                logger.info("Waiting for previous API call %s...", pending.description)
                await pending.wait()
                pending = None

            if is_listen:
                expectation = NetworkExpectation(page, action, self.config.network_timeout_ms)
                logger.info("Listening for %s...", expectation.description)
                return expectation

            message = await run_action(
                page, action,
                timeout=self.config.step_timeout_ms,
                expectation=pending if is_trigger else None,
            )
            tally.passed += 1
            logger.info("PASS %s", message)
            return None
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.warning("FAIL [%s] %s: %s", scenario_name, describe_action(action), error)
            tally.fail(scenario_name, action.model_dump(), error)
            if pending is not None:
                pending.cancel()
            return None

    async def _ensure_server(self, page: Page, base_url: str) -> bool:
        """Make sure the app answers; auto-start the dev server if it does not."""
        try:
            await page.goto(base_url, wait_until="networkidle",
                            timeout=self.config.probe_timeout_ms)
            return True
        except Exception as e:
            logger.warning("%s is down (%s). Auto-starting dev server...", base_url, e)

        host, port = server_address(base_url)
        try:
            start_dev_server(self.config.dev_server_command, self.project_dir)
            await wait_for_port(
                host, port,
                timeout=self.config.server_start_timeout_seconds,
                interval=self.config.server_poll_interval_seconds,
            )
            await page.goto(base_url, wait_until="networkidle",
                            timeout=self.config.navigation_timeout_ms)
        except Exception as e:
            logger.error("Could not auto-start server: %s", e)
            return False
        logger.info("Server is up!")
        return True

    @staticmethod
    def _build_result(tally: _Tally) -> ExecutionResult:
        if tally.total == 0:
            logger.warning("No tests were executed. Check the plan file.")
            return ExecutionResult(
                success=False, failures=tally.failures, error="No tests executed",
            )

        success = not tally.failures and tally.passed == tally.total
        result = ExecutionResult(
            success=success,
            total_tests=tally.total,
            passed_tests=tally.passed,
            failures=tally.failures,
        )
        if success:
            logger.info("All checks passed! %d/%d tests successful.",
                        tally.passed, tally.total)
        else:
            logger.warning("Verification failed: %d failures, %d/%d tests passed.",
                           len(tally.failures), tally.passed, tally.total)
        return result
