from __future__ import annotations

import asyncio
from typing import Any

import pytest

from sidectl.core.errors import ConnectionFailedError, DeviceRequestCancelledError, SettingsLoadError
from sidectl.core.model import Settings


class FakeCharacteristic:
    def __init__(self, peripheral: FakePeripheral) -> None:
        self._peripheral = peripheral
        self.callback = None
        self.stopped = False
        self.initial: bytes | None = None

    async def start_notifications(self, callback) -> None:
        await self._peripheral.pause("subscribe")
        if self._peripheral.fail_at == "subscribe":
            raise ConnectionFailedError("notifications not supported")
        self.callback = callback
        if self.initial is not None:
            callback(self.initial)

    async def stop_notifications(self) -> None:
        self.callback = None
        self.stopped = True

    def push(self, *payloads: bytes) -> None:
        assert self.callback is not None, "not subscribed"
        for payload in payloads:
            self.callback(payload)


class FakeService:
    def __init__(self, peripheral: FakePeripheral) -> None:
        self._peripheral = peripheral

    async def get_characteristic(self, uuid: str) -> FakeCharacteristic:
        self._peripheral.characteristic_uuids.append(uuid)
        await self._peripheral.pause("characteristic")
        if self._peripheral.fail_at == "characteristic":
            raise ConnectionFailedError(f"Characteristic {uuid} not found")
        return self._peripheral.characteristic


class FakePeripheral:
    def __init__(self, name: str = "Timeular Tracker") -> None:
        self.name = name
        self.fail_at: str | None = None
        self.hold_at: str | None = None
        self._held: asyncio.Future[None] | None = None
        self.connected = False
        self.disconnect_calls = 0
        self.service_uuids: list[str] = []
        self.characteristic_uuids: list[str] = []
        self.characteristic = FakeCharacteristic(self)
        self._disconnected_callback = None

    @property
    def holding(self) -> bool:
        return self._held is not None and not self._held.done()

    async def pause(self, step: str) -> None:
        if self.hold_at != step:
            return
        self._held = asyncio.get_running_loop().create_future()
        try:
            await self._held
        finally:
            self._held = None

    async def connect(self, disconnected_callback) -> None:
        await self.pause("connect")
        if self.fail_at == "connect":
            raise ConnectionFailedError("GATT connect failed")
        self._disconnected_callback = disconnected_callback
        self.connected = True

    async def get_service(self, uuid: str) -> FakeService:
        self.service_uuids.append(uuid)
        await self.pause("service")
        if self.fail_at == "service":
            raise ConnectionFailedError(f"Service {uuid} not found")
        return FakeService(self)

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    def drop(self) -> None:
        self.connected = False
        assert self._disconnected_callback is not None
        self._disconnected_callback()


class FakeTransport:
    def __init__(self) -> None:
        self.available = True
        self.hold = False
        self.request_error: Exception | None = None
        self.peripheral = FakePeripheral()
        self.requests: list[str] = []
        self.cancel_calls = 0
        self._pending: asyncio.Future[Any] | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def get_availability(self) -> bool:
        return self.available

    async def request_device(self, name: str) -> FakePeripheral:
        self.requests.append(name)
        if self.request_error is not None:
            raise self.request_error
        if self.hold:
            self._pending = asyncio.get_running_loop().create_future()
            try:
                result = await self._pending
            finally:
                self._pending = None
            if result is None:
                raise DeviceRequestCancelledError(f"Device request for '{name}' was cancelled")
        return self.peripheral

    def cancel_request(self) -> None:
        self.cancel_calls += 1
        if self.pending:
            self._pending.set_result(None)

    def release(self) -> None:
        assert self._pending is not None
        self._pending.set_result(self.peripheral)


class MemoryStore:
    def __init__(self, doc: dict[str, Any] | None = None) -> None:
        self.path = None
        self.doc = doc or {}
        self.saved: list[dict[str, Any]] = []

    def load(self) -> dict[str, Any]:
        return dict(self.doc)

    def save(self, settings: Settings) -> None:
        self.saved.append(settings.to_dict())


class FailingStore(MemoryStore):
    def save(self, settings: Settings) -> None:
        raise SettingsLoadError("disk full")


class RecordingSink:
    def __init__(self) -> None:
        self.statuses: list[tuple[Any, str]] = []
        self.effects: list[Any] = []

    def on_status(self, state, text: str) -> None:
        self.statuses.append((state, text))

    def on_effect(self, effect) -> None:
        self.effects.append(effect)


async def _settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def settle():
    """Let pending session tasks run up to their next suspension point."""
    return _settle

