"""Action runner — translates canonical actions to Playwright calls."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Page

from vibeloop.models.actions import CanonicalAction, describe_action
from .colors import colors_match, normalize_color
from .network import NetworkExpectation, join

logger = logging.getLogger(__name__)

_STYLE_PROPERTIES = {
    "assert_color": ("color", "Color"),
    "assert_background": ("backgroundColor", "Background"),
    "assert_border_color": ("borderColor", "Border color"),
}


class StepError(Exception):
    """A step's check did not hold."""


async def _perform(action_coro, expectation: Optional[NetworkExpectation]) -> None:
    """Run a triggering action, joined with the pending expectation if any."""
    if expectation is None:
        await action_coro
    else:
        await join(expectation.wait(), action_coro)


async def _fill_by_label_or_placeholder(page: Page, label: str, value: str, timeout: int) -> None:
    by_label = page.get_by_label(label)
    if await by_label.count() > 0:
        await by_label.first.fill(value, timeout=timeout)
        return
    by_placeholder = page.get_by_placeholder(label)
    if await by_placeholder.count() > 0:
        await by_placeholder.first.fill(value, timeout=timeout)
        return
    raise StepError(f'Input "{label}" not found.')


async def _check_style_color(page: Page, action, timeout: int) -> str:
    prop, label = _STYLE_PROPERTIES[action.action_type]
    element = page.get_by_text(action.element).first
    try:
        actual = await element.evaluate(
            f"el => window.getComputedStyle(el).{prop}", timeout=timeout
        )
    except Exception as e:
        raise StepError(f'{label} check failed for "{action.element}": {e}') from e
    if not colors_match(action.color, str(actual)):
        expected = normalize_color(action.color)
        normalized_actual = normalize_color(str(actual))
        raise StepError(
            f'{label} check failed for "{action.element}": expected "{action.color}" '
            f'({expected}) but got "{actual}" ({normalized_actual})'
        )
    return f"{label} matches: {action.color}"


async def run_action(
    page: Page,
    action: CanonicalAction,
    timeout: int = 5000,
    expectation: Optional[NetworkExpectation] = None,
) -> str:
    """Execute one canonical action and return a short success message.

    Args:
        page: Playwright page instance.
        action: The normalized action to execute.
        timeout: Per-step timeout in milliseconds.
        expectation: Pending network expectation; joined with ``click`` and
            ``type_smart`` so both the action and the response must complete.

    Raises:
        StepError: The check did not hold. Playwright errors propagate as-is.
    """
    logger.debug("Running action: %s", describe_action(action))

    match action.action_type:
        case "see":
            locator = page.get_by_text(action.value).first
            try:
                await locator.wait_for(state="visible", timeout=timeout)
            except Exception as e:
                raise StepError(f'Text "{action.value}" not found.') from e
            return f'Saw: "{action.value}"'

        case "assert_visible":
            await page.wait_for_selector(action.selector, state="visible", timeout=timeout)
            return f"Visible: {action.selector}"

        case "assert_text":
            el = await page.wait_for_selector(action.selector, timeout=timeout)
            text = (await el.text_content() or "") if el else ""
            if action.value not in text:
                raise StepError(f'Expected "{action.value}", found "{text}"')
            return f'Text match: "{action.value}"'

        case "click":
            await _perform(page.click(f"text={action.value}", timeout=timeout), expectation)
            if expectation is not None:
                return f'Clicked "{action.value}" & API verified ({expectation.description})'
            return f'Clicked "{action.value}"'

        case "type_smart":
            await _perform(
                _fill_by_label_or_placeholder(page, action.label, action.value, timeout),
                expectation,
            )
            if expectation is not None:
                return f'Typed "{action.value}" & API verified ({expectation.description})'
            return f'Typed "{action.value}"'

        case "type_selector":
            await page.fill(action.selector, action.value, timeout=timeout)
            return f"Typed into {action.selector}"

        case "assert_url":
            expected = action.value
            try:
                await page.wait_for_url(lambda url: expected in url, timeout=timeout)
            except Exception as e:
                raise StepError(f'URL does not contain "{expected}" (at {page.url})') from e
            return f'Navigated to "{expected}"'

        case "assert_color" | "assert_background" | "assert_border_color":
            return await _check_style_color(page, action, timeout)

        case "wait":
            await page.wait_for_timeout(action.ms)
            return f"Waited {action.ms}ms"

        case "network_listen":
            raise ValueError("network_listen is registered by the executor, not run")

        case _:
            raise StepError(f"Unknown action: {action.model_dump()}")
