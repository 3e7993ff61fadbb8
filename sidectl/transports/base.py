"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

NotificationCallback = Callable[[bytes], None]


class Characteristic(Protocol):
    async def start_notifications(self, callback: NotificationCallback) -> None:
        """Subscribe and deliver each notification payload to `callback`."""

    async def stop_notifications(self) -> None:
        """Unsubscribe from notifications."""


class Service(Protocol):
    async def get_characteristic(self, uuid: str) -> Characteristic:
        """Return the characteristic with `uuid` or raise ConnectionFailedError."""


class Peripheral(Protocol):
    @property
    def name(self) -> str | None:
        """Advertised name of the peripheral."""

    async def connect(self, disconnected_callback: Callable[[], None]) -> None:
        """Open the GATT connection; `disconnected_callback` fires on link loss."""

    async def get_service(self, uuid: str) -> Service:
        """Return the primary service with `uuid` or raise ConnectionFailedError."""

    async def disconnect(self) -> None:
        """Close the GATT connection."""


class Transport(Protocol):
    async def get_availability(self) -> bool:
        """Return whether this host has a usable Bluetooth capability."""

    async def request_device(self, name: str) -> Peripheral:
        """Scan until a peripheral advertising `name` shows up.

        Raises RadioUnavailableError if scanning cannot start and
        DeviceRequestCancelledError if `cancel_request` is called first.
        """

    def cancel_request(self) -> None:
        """Resolve a pending `request_device` call as cancelled."""
