"""Pending network expectations and the action/response rendezvous."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from playwright.async_api import Page, Response

from vibeloop.models.actions import NetworkListenAction

logger = logging.getLogger(__name__)


class NetworkExpectation:
    """A started-but-unresolved wait for one matching network response.

    Listening begins at construction, so a response triggered by a later
    action is not missed.
    """

    def __init__(self, page: Page, action: NetworkListenAction, timeout_ms: int):
        self.method = action.method.upper()
        self.url_part = action.url_part
        self._task: asyncio.Future = asyncio.ensure_future(
            page.wait_for_event("response", predicate=self.matches, timeout=timeout_ms)
        )

    def matches(self, response: Response) -> bool:
        return (
            self.url_part in response.url
            and response.request.method.upper() == self.method
            and response.status == 200
        )

    @property
    def description(self) -> str:
        return f"{self.method} {self.url_part}"

    async def wait(self) -> Any:
        try:
            return await self._task
        except Exception as e:
            raise TimeoutError(
                f"Expected network call {self.description} did not happen: {e}"
            ) from e

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()
        elif not self._task.cancelled():
            # Retrieve the outcome so a failed wait is not reported as unhandled.
            self._task.exception()


async def join(*awaitables: Awaitable[Any]) -> list[Any]:
    """Run awaitables concurrently and require all of them to complete.

    If one fails, the others are cancelled before the error propagates.
    """
    tasks = [asyncio.ensure_future(a) for a in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        raise
