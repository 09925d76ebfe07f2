"""Configuration model for the verification and repair loop."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from vibeloop.models.test_plan import DEFAULT_BASE_URL


class ViewportConfig(BaseModel):
    width: int = 1280
    height: int = 720


class VibeConfig(BaseModel):
    # Plan
    plan_file: str = "vibe.yaml"
    default_base_url: str = DEFAULT_BASE_URL

    # Build
    build_command: str = "npm run build"
    build_timeout_seconds: float = 600

    # Dev server auto-start
    dev_server_command: str = "npm run dev"
    server_start_timeout_seconds: float = 30
    server_poll_interval_seconds: float = 1.0

    # Per-step timeouts (milliseconds, as Playwright expects)
    probe_timeout_ms: int = 3000
    navigation_timeout_ms: int = 30000
    step_timeout_ms: int = 5000
    network_timeout_ms: int = 30000

    # Repair loop
    max_iterations: int = 5
    default_broken_file: str = "app/page.tsx"
    manifest_file: str = "package.json"

    # Browser
    headless: bool = True
    slow_mo_ms: int = 50
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    user_agent: str = "BotIntern-Vibe-Check/1.0"

    # AI settings
    ai_model: str = "claude-sonnet-4-20250514"
    ai_max_tokens: int = 32000
    max_context_chars: int = 400000
    max_source_file_bytes: int = 100 * 1024

    @field_validator("max_iterations")
    @classmethod
    def check_max_iterations(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_iterations must be at least 1")
        return v

    @field_validator(
        "probe_timeout_ms", "navigation_timeout_ms", "step_timeout_ms",
        "network_timeout_ms", "build_timeout_seconds", "server_start_timeout_seconds",
        "server_poll_interval_seconds",
    )
    @classmethod
    def check_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @classmethod
    def load(cls, path: str | Path) -> "VibeConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def load_or_default(cls, path: str | Path) -> "VibeConfig":
        path = Path(path)
        return cls.load(path) if path.exists() else cls()

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
