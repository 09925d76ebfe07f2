"""Canonical test actions produced by the normalizer."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class SeeAction(BaseModel):
    action_type: Literal["see"] = "see"
    value: str


class AssertVisibleAction(BaseModel):
    action_type: Literal["assert_visible"] = "assert_visible"
    selector: str


class AssertTextAction(BaseModel):
    action_type: Literal["assert_text"] = "assert_text"
    selector: str
    value: str


class ClickAction(BaseModel):
    action_type: Literal["click"] = "click"
    value: str


class TypeSmartAction(BaseModel):
    """Type ``value`` into the input found by its label or placeholder."""
    action_type: Literal["type_smart"] = "type_smart"
    value: str
    label: str


class TypeSelectorAction(BaseModel):
    action_type: Literal["type_selector"] = "type_selector"
    selector: str
    value: str = ""


class AssertUrlAction(BaseModel):
    action_type: Literal["assert_url"] = "assert_url"
    value: str


class NetworkListenAction(BaseModel):
    action_type: Literal["network_listen"] = "network_listen"
    method: str = "GET"
    url_part: str


class AssertColorAction(BaseModel):
    action_type: Literal["assert_color"] = "assert_color"
    color: str
    element: str


class AssertBackgroundAction(BaseModel):
    action_type: Literal["assert_background"] = "assert_background"
    color: str
    element: str


class AssertBorderColorAction(BaseModel):
    action_type: Literal["assert_border_color"] = "assert_border_color"
    color: str
    element: str


class WaitAction(BaseModel):
    action_type: Literal["wait"] = "wait"
    ms: int


class UnknownAction(BaseModel):
    action_type: Literal["unknown"] = "unknown"
    original: Any = None


CanonicalAction = Annotated[
    Union[
        SeeAction,
        AssertVisibleAction,
        AssertTextAction,
        ClickAction,
        TypeSmartAction,
        TypeSelectorAction,
        AssertUrlAction,
        NetworkListenAction,
        AssertColorAction,
        AssertBackgroundAction,
        AssertBorderColorAction,
        WaitAction,
        UnknownAction,
    ],
    Field(discriminator="action_type"),
]

# Actions that trigger the call a pending network expectation is waiting for.
TRIGGER_ACTION_TYPES = frozenset({"click", "type_smart"})


def describe_action(action: BaseModel) -> str:
    """Render an action as a short human-readable string for logs."""
    fields = action.model_dump(exclude={"action_type"})
    details = ", ".join(f"{k}={v!r}" for k, v in fields.items())
    return f"{action.action_type}({details})"
