"""Build invocation and build-log analysis."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_ANSI_RE = re.compile(
    r"[\u001b\u009b][\[()#;?]*(?:[0-9]{1,4}(?:;[0-9]{0,4})*)?[0-9A-ORZcf-nqry=><]"
)
_SOURCE_PATH_RE = re.compile(
    r"(\./(?:app|src|components|pages|lib)/[a-zA-Z0-9_\-/]+\.(?:tsx|ts|jsx|js))",
    re.IGNORECASE,
)


class BuildResult(BaseModel):
    command: str
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def combined_output(self) -> str:
        return self.stdout + "\n" + self.stderr


def strip_ansi(text: str) -> str:
    """Remove terminal color escape codes."""
    return _ANSI_RE.sub("", text)


def extract_error_file(logs: str) -> Optional[str]:
    """Return the first conventional source path mentioned in build logs."""
    match = _SOURCE_PATH_RE.search(strip_ansi(logs))
    return match.group(1) if match else None


async def run_build(command: str, cwd: Path, timeout: float = 600) -> BuildResult:
    """Run the build command through the shell and capture its output.

    Never raises for a failing build; spawn errors and timeouts are reported
    as a failed result.
    """
    logger.info("Running build: %s", command)
    start = time.monotonic()
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error("Could not start build: %s", e)
        return BuildResult(command=command, returncode=None, stderr=str(e))

    timed_out = False
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        timed_out = True
        process.kill()
        stdout, stderr = await process.communicate()

    result = BuildResult(
        command=command,
        returncode=process.returncode,
        stdout=(stdout or b"").decode(errors="replace"),
        stderr=(stderr or b"").decode(errors="replace"),
        duration_seconds=round(time.monotonic() - start, 2),
        timed_out=timed_out,
    )
    if result.ok:
        logger.info("Build passed in %.1fs", result.duration_seconds)
    elif timed_out:
        logger.warning("Build timed out after %.0fs", timeout)
    else:
        logger.warning("Build failed (exit %s)", result.returncode)
    return result
