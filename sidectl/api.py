"""Stable public API for building tooling on top of sidectl.

This module is the supported integration surface for third-party callers
(status-bar plugins, editor integrations, scripts). Avoid importing from
private/internal modules unless intentionally depending on non-stable
internals.
"""

from __future__ import annotations

from dataclasses import dataclass

from sidectl.core.decoder import decode_notification, decode_side
from sidectl.core.errors import (
    ActionSetNotFoundError,
    ConnectionFailedError,
    DeviceRequestCancelledError,
    RadioUnavailableError,
    SettingsLoadError,
    SettingsValidationError,
    SidectlError,
    TransportError,
)
from sidectl.core.model import (
    Action,
    ActionSet,
    Effect,
    RenderTemplate,
    RunCommand,
    Settings,
    Side,
    State,
    SwitchActionSet,
)
from sidectl.core.service import TrackerService, TrackerSink
from sidectl.core.settings import SettingsStore, YAMLSettingsStore
from sidectl.transports.base import Transport
from sidectl.transports.ble_gatt import BLEGATTTransport

__all__ = [
    "SidectlError",
    "ActionSetNotFoundError",
    "SettingsLoadError",
    "SettingsValidationError",
    "TransportError",
    "RadioUnavailableError",
    "DeviceRequestCancelledError",
    "ConnectionFailedError",
    "Action",
    "ActionSet",
    "Effect",
    "RenderTemplate",
    "RunCommand",
    "SwitchActionSet",
    "Settings",
    "Side",
    "State",
    "BLEGATTTransport",
    "YAMLSettingsStore",
    "TrackerSink",
    "ActionSetSummary",
    "Client",
    "decode_side",
    "decode_notification",
]


@dataclass(frozen=True)
class ActionSetSummary:
    """Name and contents of one registered action set."""

    name: str
    active: bool
    action_set: ActionSet


class Client:
    """Public client for driving the tracker from a host application.

    A `Client` wraps settings loading, the action-set registry, and the
    connection session behind a stable API. All coroutine methods must run on
    the same event loop.
    """

    def __init__(
        self,
        *,
        transport: Transport | None = None,
        store: SettingsStore | None = None,
        sink: TrackerSink | None = None,
    ) -> None:
        self._service = TrackerService(transport=transport, store=store, sink=sink)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def state(self) -> State:
        return self._service.state

    @property
    def side(self) -> Side | None:
        return self._service.side

    @property
    def status_text(self) -> str:
        return self._service.status_text

    @property
    def settings(self) -> Settings:
        return self._service.settings

    async def reconnect(self) -> None:
        await self._service.reconnect()

    async def disconnect(self) -> None:
        await self._service.disconnect()

    async def wait_idle(self) -> None:
        await self._service.wait_idle()

    def list_action_sets(self) -> list[ActionSetSummary]:
        registry = self._service.registry
        return [
            ActionSetSummary(name=name, active=name == registry.active_name, action_set=action_set)
            for name in registry.names()
            if (action_set := registry.get_action_set(name)) is not None
        ]

    def use_action_set(self, name: str) -> None:
        self._service.use_action_set(name)

    def upsert_action_set(self, name: str, action_set: ActionSet | dict) -> ActionSet:
        return self._service.upsert_action_set(name, action_set)

    def remove_action_set(self, name: str) -> None:
        self._service.registry.remove(name)

    def dispatch(self, side: Side) -> list[Effect]:
        """Resolve `side` against the active set as if the device reported it."""
        return self._service.resolver.on_orientation(side)
