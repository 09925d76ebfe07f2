"""Browser launch helpers for test execution."""

from __future__ import annotations

import logging
import subprocess
import sys

from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError, Playwright

from vibeloop.models.config import VibeConfig

logger = logging.getLogger(__name__)

_MISSING_BROWSER_MARKERS = ("Executable doesn't exist", "not found")


def install_chromium() -> None:
    """Download the Chromium build Playwright drives (first-run setup)."""
    logger.info("First-time setup: downloading Chromium (this happens only once)...")
    subprocess.run(
        [sys.executable, "-m", "playwright", "install", "chromium"],
        check=True,
    )
    logger.info("Browser setup complete")


async def launch_browser(playwright: Playwright, config: VibeConfig) -> Browser:
    """Launch Chromium, installing it once if the executable is missing."""
    kwargs = {
        "headless": config.headless,
        "slow_mo": config.slow_mo_ms,
        "args": ["--no-sandbox"],
    }
    try:
        return await playwright.chromium.launch(**kwargs)
    except PlaywrightError as e:
        if not any(marker in str(e) for marker in _MISSING_BROWSER_MARKERS):
            raise
    install_chromium()
    return await playwright.chromium.launch(**kwargs)


async def create_context(browser: Browser, config: VibeConfig) -> BrowserContext:
    """Create a browser context with the configured viewport and user agent."""
    return await browser.new_context(
        viewport={"width": config.viewport.width, "height": config.viewport.height},
        user_agent=config.user_agent,
    )
