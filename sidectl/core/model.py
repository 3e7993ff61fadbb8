"""Core data models used across settings, registry, resolver, and session."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum

from sidectl.core.errors import SettingsValidationError

DEFAULT_ACTION_SET = "default"


class Side(str, Enum):
    """Face of the tracker cube that points down."""

    BF = "BF"
    BR = "BR"
    BL = "BL"
    BB = "BB"
    TF = "TF"
    TR = "TR"
    TL = "TL"
    TB = "TB"
    UNKNOWN = "__"

    def __str__(self) -> str:
        return self.value


class State(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    UNAVAILABLE = "unavailable"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Action:
    command: str | None = None
    template: str | None = None
    action_set: str | None = None

    @property
    def is_noop(self) -> bool:
        return self.command is None and self.template is None and self.action_set is None

    @classmethod
    def from_dict(cls, doc: Mapping[str, str]) -> Action:
        return cls(
            command=doc.get("command"),
            template=doc.get("template"),
            action_set=doc.get("actionSet"),
        )

    def to_dict(self) -> dict[str, str]:
        doc: dict[str, str] = {}
        if self.command is not None:
            doc["command"] = self.command
        if self.template is not None:
            doc["template"] = self.template
        if self.action_set is not None:
            doc["actionSet"] = self.action_set
        return doc


@dataclass(frozen=True)
class ActionSet:
    """Total mapping from every `Side` to exactly one `Action`."""

    actions: Mapping[Side, Action]

    def __post_init__(self) -> None:
        missing = [side.value for side in Side if side not in self.actions]
        if missing:
            raise SettingsValidationError(
                f"Action set is missing orientations: {', '.join(missing)}"
            )

    def __getitem__(self, side: Side) -> Action:
        return self.actions[side]

    def __iter__(self) -> Iterator[Side]:
        return iter(Side)

    @classmethod
    def uniform(cls, make_action: Callable[[Side], Action]) -> ActionSet:
        return cls(actions={side: make_action(side) for side in Side})

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {side.value: self.actions[side].to_dict() for side in Side}


@dataclass
class Settings:
    device_name: str
    template_target_file: str
    active_action_set_name: str
    action_sets_by_name: dict[str, ActionSet] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "deviceName": self.device_name,
            "templateTargetFile": self.template_target_file,
            "activeActionSetName": self.active_action_set_name,
            "actionSetsByName": {
                name: action_set.to_dict()
                for name, action_set in self.action_sets_by_name.items()
            },
        }


@dataclass(frozen=True)
class RenderTemplate:
    template: str
    target_file: str


@dataclass(frozen=True)
class RunCommand:
    command: str


@dataclass(frozen=True)
class SwitchActionSet:
    previous: str
    current: str


Effect = RenderTemplate | RunCommand | SwitchActionSet
