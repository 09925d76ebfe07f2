"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from playwright.async_api import Page

from vibeloop.models.config import VibeConfig
from vibeloop.models.test_plan import TestPlan


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def vibe_config() -> VibeConfig:
    """Create a test configuration with short timeouts."""
    return VibeConfig(
        plan_file="vibe.yaml",
        build_command="npm run build",
        dev_server_command="npm run dev",
        server_start_timeout_seconds=1,
        server_poll_interval_seconds=0.01,
        step_timeout_ms=5000,
        max_iterations=5,
    )


# ============================================================================
# Plan Fixtures
# ============================================================================


SAMPLE_PLAN_YAML = """\
meta:
  baseUrl: "http://localhost:3000"
scenarios:
  - name: "Login Flow"
    path: "/login"
    tests:
      - see: "Welcome Back"
      - type: "user@test.com"
        into: "Email Address"
      - network: "POST /api/login"
      - click: "Sign In"
      - url: "/dashboard"
"""


@pytest.fixture
def sample_plan_yaml() -> str:
    return SAMPLE_PLAN_YAML


@pytest.fixture
def sample_plan() -> TestPlan:
    return TestPlan.from_yaml(SAMPLE_PLAN_YAML)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A minimal web project on disk with a plan, a manifest and one page."""
    (tmp_path / "vibe.yaml").write_text(SAMPLE_PLAN_YAML)
    (tmp_path / "package.json").write_text('{"dependencies": {"next": "14.0.0"}}')
    app = tmp_path / "app"
    app.mkdir()
    (app / "page.tsx").write_text("export default function Page() { return null }\n")
    return tmp_path


# ============================================================================
# Browser Mocks
# ============================================================================


def make_locator(count: int = 1, style: str | None = None) -> MagicMock:
    """Create a mock Playwright locator whose ``first`` is itself."""
    locator = MagicMock()
    locator.first = locator
    locator.count = AsyncMock(return_value=count)
    locator.wait_for = AsyncMock()
    locator.fill = AsyncMock()
    locator.evaluate = AsyncMock(return_value=style)
    return locator


def make_response(url: str, method: str = "GET", status: int = 200) -> Mock:
    response = Mock()
    response.url = url
    response.status = status
    response.request = Mock(method=method)
    return response


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "http://localhost:3000/login"
    page.goto = AsyncMock()
    page.click = AsyncMock()
    page.fill = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.wait_for_url = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.wait_for_event = AsyncMock(return_value=make_response("http://localhost:3000/api"))
    page.get_by_text = Mock(return_value=make_locator())
    page.get_by_label = Mock(return_value=make_locator())
    page.get_by_placeholder = Mock(return_value=make_locator(count=0))
    return page
