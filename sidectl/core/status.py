"""Short status strings for status bars and terminals."""

from __future__ import annotations

from sidectl.core.model import Side, State

STATUS_ICON = "◇"


def format_status(state: State, side: Side | None = None, action_set: str | None = None) -> str:
    if state is State.CONNECTED:
        label = action_set or "N/A"
        face = side.value if side is not None else Side.UNKNOWN.value
        return f"{STATUS_ICON} {label} <{face}>"
    if state is State.CONNECTING:
        return f"{STATUS_ICON} scanning ..."
    if state is State.UNAVAILABLE:
        return f"{STATUS_ICON} unavailable"
    return f"{STATUS_ICON} disconnected"
