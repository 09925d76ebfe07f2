"""Dev server auto-start — spawn detached and poll until the port answers."""

from __future__ import annotations

import asyncio
import logging
import subprocess
import time
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def server_address(base_url: str) -> tuple[str, int]:
    """Host and port the dev server is expected on, derived from the base URL."""
    parsed = urlparse(base_url)
    host = parsed.hostname or "localhost"
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    return host, port


def start_dev_server(command: str, cwd: Path | None = None) -> subprocess.Popen:
    """Start the dev server in its own session. The caller does not own it."""
    logger.info("Starting dev server: %s", command)
    return subprocess.Popen(
        command,
        shell=True,
        cwd=str(cwd) if cwd else None,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


async def wait_for_port(
    host: str,
    port: int,
    timeout: float = 30.0,
    interval: float = 1.0,
) -> None:
    """Poll a TCP port until it accepts connections.

    Raises:
        TimeoutError: the port did not open within ``timeout`` seconds.
    """
    start = time.monotonic()
    while True:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=1.0)
        except (OSError, asyncio.TimeoutError):
            if time.monotonic() - start > timeout:
                raise TimeoutError(f"Server on {host}:{port} did not start within {timeout}s")
            await asyncio.sleep(interval)
            continue
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        logger.debug("Port %s:%d is accepting connections", host, port)
        return
