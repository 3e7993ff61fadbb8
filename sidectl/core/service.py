"""Service layer used by CLI and future UI frontends."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from sidectl.core.model import ActionSet, Effect, Settings, Side, State
from sidectl.core.registry import ActionSetRegistry
from sidectl.core.resolver import ActionResolver
from sidectl.core.session import ConnectionSession
from sidectl.core.settings import SettingsStore, YAMLSettingsStore, load_settings, validate_settings_doc
from sidectl.core.status import format_status
from sidectl.transports.base import Transport
from sidectl.transports.ble_gatt import BLEGATTTransport

LOGGER = logging.getLogger(__name__)


class TrackerSink(Protocol):
    def on_status(self, state: State, text: str) -> None:
        """Show a status string for a state change or a new orientation."""

    def on_effect(self, effect: Effect) -> None:
        """Perform a template-render, run-command, or set-switch effect."""


class _NullSink:
    def on_status(self, state: State, text: str) -> None:
        pass

    def on_effect(self, effect: Effect) -> None:
        pass


class TrackerService:
    """Owns settings, action sets, and at most one connection session.

    All entry points are expected to run on one asyncio loop; notification
    dispatch and configuration edits are serialized by that loop.
    """

    def __init__(
        self,
        *,
        transport: Transport | None = None,
        store: SettingsStore | None = None,
        sink: TrackerSink | None = None,
    ) -> None:
        self.store = store or YAMLSettingsStore()
        loaded = load_settings(self.store)
        self.settings: Settings = loaded.settings
        self.load_warnings = loaded.warnings
        self.registry = ActionSetRegistry(self.settings, on_change=self.store.save)
        self.resolver = ActionResolver(self.registry, self.settings, emit=self._emit)
        self.transport = transport or BLEGATTTransport()
        self.sink: TrackerSink = sink or _NullSink()
        self.state = State.DISCONNECTED
        self.side: Side | None = None
        self.last_error: Exception | None = None
        self._session: ConnectionSession | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def session(self) -> ConnectionSession | None:
        return self._session

    @property
    def status_text(self) -> str:
        return format_status(self.state, self.side, self.registry.active_name)

    async def reconnect(self) -> None:
        """Toggle the connection: connect, cancel, or disconnect depending on state."""
        if self.state is State.CONNECTING:
            await self.cancel()
        elif self.state is State.CONNECTED:
            await self.disconnect()
        else:
            self.connect()

    def connect(self, device_name: str | None = None) -> ConnectionSession | None:
        """Start a session unless one is alive; `device_name` overrides the saved name for it."""
        if self._session is not None:
            LOGGER.debug("Connect ignored, session already %s", self._session.state.value)
            return None
        session = ConnectionSession(
            self.transport,
            device_name or self.settings.device_name,
            on_state=self._on_state,
            on_side=self._on_side,
        )
        self._session = session
        self._idle.clear()
        session.start()
        return session

    async def cancel(self) -> None:
        if self._session is not None:
            await self._session.cancel()

    async def disconnect(self) -> None:
        if self._session is not None:
            await self._session.disconnect()

    async def wait_idle(self) -> None:
        """Wait until no session is alive."""
        await self._idle.wait()

    async def shutdown(self) -> None:
        await self.disconnect()

    def use_action_set(self, name: str) -> None:
        self.registry.set_active(name)
        self._publish_status()

    def upsert_action_set(self, name: str, action_set: ActionSet | dict) -> ActionSet:
        return self.registry.upsert(name, action_set)

    def set_device_name(self, name: str) -> None:
        validate_settings_doc({**self.settings.to_dict(), "deviceName": name})
        self.settings.device_name = name
        self.store.save(self.settings)

    def set_template_target_file(self, pattern: str) -> None:
        validate_settings_doc({**self.settings.to_dict(), "templateTargetFile": pattern})
        self.settings.template_target_file = pattern
        self.store.save(self.settings)

    def _on_state(self, state: State) -> None:
        self.state = state
        if state is not State.CONNECTED:
            self.side = None
        if state is State.CONNECTING:
            self.last_error = None
        if state in (State.DISCONNECTED, State.UNAVAILABLE):
            if self._session is not None:
                self.last_error = self._session.last_error
            self._session = None
            self._idle.set()
        self._publish_status()

    def _on_side(self, side: Side) -> None:
        self.side = side
        self.resolver.on_orientation(side)
        self._publish_status()

    def _emit(self, effect: Effect) -> None:
        self.sink.on_effect(effect)

    def _publish_status(self) -> None:
        self.sink.on_status(self.state, self.status_text)
