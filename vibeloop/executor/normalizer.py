"""Action normalizer — maps a shorthand plan step to one canonical action.

The plan DSL is loosely typed: each step is a mapping carrying one shorthand
key (``see``, ``click``, ``type``/``into``, ``url``, ``network``, ``wait``,
``color``, ``background``, ``border-color``) or the legacy explicit
``{type, selector, value}`` form. This module is the only place that inspects
those keys; everything downstream works on the closed ``CanonicalAction``
variant.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import ValidationError

from vibeloop.models.actions import (
    AssertBackgroundAction,
    AssertBorderColorAction,
    AssertColorAction,
    AssertTextAction,
    AssertUrlAction,
    AssertVisibleAction,
    CanonicalAction,
    ClickAction,
    NetworkListenAction,
    SeeAction,
    TypeSelectorAction,
    TypeSmartAction,
    UnknownAction,
    WaitAction,
)

logger = logging.getLogger(__name__)

_ON_SEPARATOR = re.compile(r"\s+on\s+", re.IGNORECASE)

# Legacy explicit-type steps that are dispatched as-is.
_EXPLICIT_TYPES = {
    "see": SeeAction,
    "assert_visible": AssertVisibleAction,
    "assert_text": AssertTextAction,
    "click": ClickAction,
    "assert_url": AssertUrlAction,
}

_COLOR_KEYS = (
    ("color", AssertColorAction),
    ("background", AssertBackgroundAction),
    ("border-color", AssertBorderColorAction),
)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def _explicit_action(step: dict[str, Any]) -> CanonicalAction:
    model = _EXPLICIT_TYPES.get(step["type"])
    if model is None:
        return UnknownAction(original=step)
    fields = {k: _text(step[k]) for k in ("selector", "value") if step.get(k) is not None}
    try:
        return model(**fields)
    except ValidationError:
        return UnknownAction(original=step)


def _split_color(value: Any) -> tuple[str, str] | None:
    parts = _ON_SEPARATOR.split(_text(value))
    if len(parts) != 2:
        return None
    return parts[0].strip(), parts[1].strip()


def _wait_ms(value: Any) -> WaitAction | None:
    try:
        return WaitAction(ms=int(value))
    except (TypeError, ValueError):
        return None


def normalize_action(step: Any) -> CanonicalAction:
    """Normalize one raw plan step. Never raises; unrecognized steps are ``unknown``."""
    if not isinstance(step, dict):
        return UnknownAction(original=step)

    # "type X into Y" reuses the legacy key name, so it must win over it.
    if step.get("type") and step.get("into"):
        return TypeSmartAction(value=_text(step["type"]), label=_text(step["into"]))

    if step.get("type"):
        if step["type"] == "type" and step.get("selector"):
            return TypeSelectorAction(
                selector=_text(step["selector"]),
                value=_text(step.get("value") or ""),
            )
        return _explicit_action(step)

    if step.get("see"):
        return SeeAction(value=_text(step["see"]))
    if step.get("click"):
        return ClickAction(value=_text(step["click"]))
    if step.get("wait"):
        action = _wait_ms(step["wait"])
        if action is not None:
            return action
    if step.get("url"):
        return AssertUrlAction(value=_text(step["url"]))

    for key, model in _COLOR_KEYS:
        if step.get(key):
            split = _split_color(step[key])
            if split is not None:
                return model(color=split[0], element=split[1])

    if step.get("network"):
        tokens = _text(step["network"]).split()
        if tokens:
            if len(tokens) == 1:
                return NetworkListenAction(method="GET", url_part=tokens[0])
            return NetworkListenAction(method=tokens[0].upper(), url_part=tokens[1])

    logger.debug("Unrecognized step: %r", step)
    return UnknownAction(original=step)
