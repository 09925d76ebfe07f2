"""Tests for the plan executor."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from conftest import make_locator, make_response
from vibeloop.executor.executor import Executor
from vibeloop.models.test_plan import TestPlan


def _plan(*scenarios, base_url="http://localhost:3000"):
    return TestPlan.model_validate({"meta": {"baseUrl": base_url}, "scenarios": list(scenarios)})


class TestHappyPath:
    """Tests for plans whose steps all pass."""

    @pytest.mark.asyncio
    async def test_sample_plan_passes(self, vibe_config, mock_page, sample_plan):
        result = await Executor(vibe_config).run(mock_page, sample_plan)

        assert result.success is True
        # The network step registers a listener and is not a test.
        assert result.total_tests == 4
        assert result.passed_tests == 4
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_navigates_to_scenario_url(self, vibe_config, mock_page, sample_plan):
        await Executor(vibe_config).run(mock_page, sample_plan)

        urls = [c.args[0] for c in mock_page.goto.await_args_list]
        assert urls == ["http://localhost:3000", "http://localhost:3000/login"]
        assert mock_page.goto.await_args.kwargs["wait_until"] == "networkidle"

    @pytest.mark.asyncio
    async def test_run_plan_file(self, vibe_config, mock_page, project_dir):
        executor = Executor(vibe_config, project_dir)
        result = await executor.run_plan_file(mock_page, project_dir / "vibe.yaml")
        assert result.success is True


class TestFailures:
    """Tests for failure recording and isolation."""

    @pytest.mark.asyncio
    async def test_no_tests_executed(self, vibe_config, mock_page):
        plan = _plan({"name": "Empty", "path": "/", "tests": []})
        result = await Executor(vibe_config).run(mock_page, plan)

        assert result.success is False
        assert result.total_tests == 0
        assert result.error == "No tests executed"

    @pytest.mark.asyncio
    async def test_failed_step_does_not_stop_the_scenario(self, vibe_config, mock_page):
        missing = make_locator()
        missing.wait_for.side_effect = Exception("Timeout")
        mock_page.get_by_text = Mock(
            side_effect=lambda text: missing if text == "Missing" else make_locator()
        )
        plan = _plan({"name": "Home", "path": "/", "tests": [
            {"see": "Missing"}, {"see": "Present"}, {"click": "Go"},
        ]})

        result = await Executor(vibe_config).run(mock_page, plan)

        assert result.success is False
        assert result.total_tests == 3
        assert result.passed_tests == 2
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.scenario == "Home"
        assert failure.action == {"action_type": "see", "value": "Missing"}
        assert "Missing" in failure.error
        mock_page.click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_step_is_recorded(self, vibe_config, mock_page):
        plan = _plan({"name": "Home", "path": "/", "tests": [{"hover": "Menu"}]})

        result = await Executor(vibe_config).run(mock_page, plan)

        assert result.total_tests == 1
        assert result.passed_tests == 0
        assert "Unknown action" in result.failures[0].error

    @pytest.mark.asyncio
    async def test_navigation_failure_skips_scenario(self, vibe_config, mock_page):
        mock_page.goto = AsyncMock(side_effect=[None, Exception("net::ERR"), None])
        plan = _plan(
            {"name": "Broken", "path": "/broken", "tests": [{"see": "A"}, {"see": "B"}]},
            {"name": "Fine", "path": "/fine", "tests": [{"see": "C"}]},
        )

        result = await Executor(vibe_config).run(mock_page, plan)

        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.scenario == "Broken"
        assert failure.action == "Navigation"
        assert failure.error == "Could not load /broken"
        assert result.total_tests == 1
        assert result.passed_tests == 1
        assert result.success is False


class TestNetworkSteps:
    """Tests for network listeners within a plan."""

    @pytest.mark.asyncio
    async def test_listener_is_joined_with_click(self, vibe_config, mock_page):
        clicked = asyncio.Event()

        async def wait_for_event(event, predicate=None, timeout=None):
            await clicked.wait()
            return make_response("http://localhost:3000/api/login", "POST")

        async def click(selector, timeout=None):
            clicked.set()

        mock_page.wait_for_event = AsyncMock(side_effect=wait_for_event)
        mock_page.click = AsyncMock(side_effect=click)
        plan = _plan({"name": "Login", "path": "/login", "tests": [
            {"network": "POST /api/login"}, {"click": "Sign In"},
        ]})

        result = await Executor(vibe_config).run(mock_page, plan)

        assert result.success is True
        assert result.total_tests == 1

    @pytest.mark.asyncio
    async def test_unmet_expectation_fails_trigger(self, vibe_config, mock_page):
        mock_page.wait_for_event = AsyncMock(side_effect=Exception("Timeout 30000ms exceeded"))
        plan = _plan({"name": "Login", "path": "/login", "tests": [
            {"network": "POST /api/login"}, {"click": "Sign In"}, {"see": "Welcome"},
        ]})

        result = await Executor(vibe_config).run(mock_page, plan)

        assert result.total_tests == 2
        assert result.passed_tests == 1
        assert result.failures[0].action["action_type"] == "click"
        assert "POST /api/login" in result.failures[0].error

    @pytest.mark.asyncio
    async def test_non_trigger_step_awaits_pending_first(self, vibe_config, mock_page):
        order = []

        async def wait_for_event(event, predicate=None, timeout=None):
            order.append("response")
            return make_response("http://localhost:3000/api/items")

        locator = make_locator()
        locator.wait_for.side_effect = lambda **kwargs: order.append("see")
        mock_page.get_by_text = Mock(return_value=locator)
        mock_page.wait_for_event = AsyncMock(side_effect=wait_for_event)
        plan = _plan({"name": "List", "path": "/", "tests": [
            {"network": "/api/items"}, {"see": "Items"},
        ]})

        result = await Executor(vibe_config).run(mock_page, plan)

        assert result.success is True
        assert order == ["response", "see"]


class TestServerStartup:
    """Tests for dev server auto-start."""

    @pytest.mark.asyncio
    async def test_starts_server_when_probe_fails(self, vibe_config, mock_page, sample_plan):
        mock_page.goto = AsyncMock(side_effect=[Exception("ECONNREFUSED"), None, None])

        with patch("vibeloop.executor.executor.start_dev_server") as start, \
             patch("vibeloop.executor.executor.wait_for_port", new_callable=AsyncMock) as wait:
            result = await Executor(vibe_config).run(mock_page, sample_plan)

        start.assert_called_once()
        assert start.call_args.args[0] == "npm run dev"
        wait.assert_awaited_once()
        assert wait.await_args.args[:2] == ("localhost", 3000)
        assert result.success is True

    @pytest.mark.asyncio
    async def test_server_never_comes_up(self, vibe_config, mock_page, sample_plan):
        mock_page.goto = AsyncMock(side_effect=Exception("ECONNREFUSED"))

        with patch("vibeloop.executor.executor.start_dev_server"), \
             patch("vibeloop.executor.executor.wait_for_port", new_callable=AsyncMock,
                   side_effect=TimeoutError("did not start")):
            result = await Executor(vibe_config).run(mock_page, sample_plan)

        assert result.success is False
        assert result.error == "Server failed to start"
        assert result.total_tests == 0

    @pytest.mark.asyncio
    async def test_running_server_is_not_restarted(self, vibe_config, mock_page, sample_plan):
        with patch("vibeloop.executor.executor.start_dev_server") as start:
            await Executor(vibe_config).run(mock_page, sample_plan)
        start.assert_not_called()


class TestPlanLoading:
    """Tests for plan file errors."""

    @pytest.mark.asyncio
    async def test_missing_plan_file(self, vibe_config, mock_page, tmp_path):
        result = await Executor(vibe_config).run_plan_file(mock_page, tmp_path / "vibe.yaml")

        assert result.success is False
        assert "Could not find plan file" in result.error
        mock_page.goto.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_yaml(self, vibe_config, mock_page, tmp_path):
        plan_path = tmp_path / "vibe.yaml"
        plan_path.write_text("scenarios: [unclosed")

        result = await Executor(vibe_config).run_plan_file(mock_page, plan_path)

        assert result.success is False
        assert "Invalid YAML" in result.error


class TestBaseUrl:
    """Tests for base URL resolution."""

    @pytest.mark.asyncio
    async def test_config_default_used_without_meta(self, vibe_config, mock_page):
        """Test a plan without a base URL runs against the configured default."""
        config = vibe_config.model_copy(update={"default_base_url": "http://localhost:5173"})
        plan = TestPlan.from_yaml("scenarios:\n  - name: Home\n    path: /home\n    tests:\n      - see: Hi\n")

        result = await Executor(config).run(mock_page, plan)

        urls = [c.args[0] for c in mock_page.goto.await_args_list]
        assert urls == ["http://localhost:5173", "http://localhost:5173/home"]
        assert result.success is True

    @pytest.mark.asyncio
    async def test_plan_base_url_wins_over_config(self, vibe_config, mock_page):
        config = vibe_config.model_copy(update={"default_base_url": "http://localhost:5173"})
        plan = _plan({"name": "Home", "path": "/", "tests": [{"see": "Hi"}]},
                     base_url="http://localhost:4000")

        await Executor(config).run(mock_page, plan)

        assert mock_page.goto.await_args_list[0].args[0] == "http://localhost:4000"
