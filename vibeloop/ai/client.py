"""Claude API client used by the repair oracle."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional

import anthropic

logger = logging.getLogger(__name__)

_debug_dir: Path | None = None


def set_debug_dir(path: Path) -> None:
    """Direct AI exchange logs to ``path``."""
    global _debug_dir
    _debug_dir = path
    _debug_dir.mkdir(parents=True, exist_ok=True)


def _get_debug_dir() -> Path:
    global _debug_dir
    if _debug_dir is None:
        _debug_dir = Path(".vibeloop") / "debug"
    _debug_dir.mkdir(parents=True, exist_ok=True)
    return _debug_dir


def _write_exchange(
    call_number: int,
    system_prompt: str,
    user_message: str,
    response_text: str = "",
    error: str | None = None,
) -> None:
    """Keep the full prompt and response of one call for later inspection."""
    sections = [
        f"=== SYSTEM PROMPT ({len(system_prompt)} chars) ===\n{system_prompt}",
        f"=== USER MESSAGE ({len(user_message)} chars) ===\n{user_message}",
        f"=== RESPONSE ({len(response_text)} chars) ===\n{response_text or '(empty)'}",
    ]
    if error:
        sections.append(f"=== ERROR ===\n{error}")
    header = f"=== AI CALL #{call_number} at {time.strftime('%Y-%m-%d %H:%M:%S')} ==="
    try:
        log_file = _get_debug_dir() / f"ai_call_{time.strftime('%Y%m%d_%H%M%S')}_{call_number:03d}.log"
        log_file.write_text("\n\n".join([header, *sections]) + "\n", encoding="utf-8")
    except OSError as e:
        logger.debug("Could not write AI exchange log: %s", e)
        return
    logger.debug("AI exchange logged to %s", log_file)


class AIClient:
    """Synchronous text completions against Claude, one message per call."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 32000,
        timeout: float = 900.0,
    ):
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY is not set. Export it before running "
                "fix, generate-plan or loop."
            )
        # Whole-file rewrites can take minutes to come back.
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
        self.model = model
        self.max_tokens = max_tokens
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
    ) -> str:
        """Return Claude's text reply. API errors are logged and re-raised."""
        self._call_count += 1
        call_number = self._call_count
        tokens = max_tokens or self.max_tokens
        logger.info("AI request #%d to %s (%d prompt chars, max_tokens=%d)",
                    call_number, self.model, len(system_prompt) + len(user_message), tokens)

        started = time.monotonic()
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            )
        except anthropic.APIError as e:
            logger.error("Claude API error on request #%d: %s", call_number, e)
            _write_exchange(call_number, system_prompt, user_message, error=str(e))
            raise

        text = response.content[0].text
        logger.info("AI response #%d: %d chars in %.1fs",
                    call_number, len(text), time.monotonic() - started)
        if response.stop_reason == "max_tokens":
            logger.warning("AI response #%d was truncated at %d tokens; "
                           "the returned file may be incomplete", call_number, tokens)

        _write_exchange(call_number, system_prompt, user_message, response_text=text)
        return text
