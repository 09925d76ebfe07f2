"""Color normalization for computed-style assertions."""

from __future__ import annotations

import re

NAMED_COLORS = {
    "red": "rgb(255, 0, 0)",
    "blue": "rgb(0, 0, 255)",
    "green": "rgb(0, 128, 0)",
    "white": "rgb(255, 255, 255)",
    "black": "rgb(0, 0, 0)",
    "yellow": "rgb(255, 255, 0)",
    "gray": "rgb(128, 128, 128)",
    "grey": "rgb(128, 128, 128)",
    "orange": "rgb(255, 165, 0)",
    "purple": "rgb(128, 0, 128)",
    "pink": "rgb(255, 192, 203)",
    "brown": "rgb(165, 42, 42)",
    "cyan": "rgb(0, 255, 255)",
    "magenta": "rgb(255, 0, 255)",
    "lime": "rgb(0, 255, 0)",
    "navy": "rgb(0, 0, 128)",
    "teal": "rgb(0, 128, 128)",
    "silver": "rgb(192, 192, 192)",
    "gold": "rgb(255, 215, 0)",
}

_HEX_RE = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6}|[0-9a-f]{8})$")
_RGB_RE = re.compile(
    r"^rgba?\(\s*(\d+(?:\.\d+)?)\s*,\s*(\d+(?:\.\d+)?)\s*,\s*(\d+(?:\.\d+)?)"
)


def normalize_color(color: str) -> str:
    """Convert a named, hex or rgb()/rgba() color to ``rgb(r, g, b)``.

    Alpha channels are dropped. Anything unrecognized is returned unchanged,
    so a comparison against it simply fails.
    """
    trimmed = color.strip().lower()

    if trimmed in NAMED_COLORS:
        return NAMED_COLORS[trimmed]

    match = _HEX_RE.match(trimmed)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
        return f"rgb({r}, {g}, {b})"

    match = _RGB_RE.match(trimmed)
    if match:
        return "rgb({}, {}, {})".format(*match.groups())

    return color


def colors_match(expected: str, actual: str) -> bool:
    """Strict equality of normalized forms; no tolerance for rendering drift."""
    return normalize_color(expected) == normalize_color(actual)
