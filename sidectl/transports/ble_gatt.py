"""BLE GATT transport implementation built on bleak."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from sidectl.core.device_match import name_matches
from sidectl.core.errors import (
    ConnectionFailedError,
    DeviceRequestCancelledError,
    RadioUnavailableError,
)
from sidectl.transports.base import NotificationCallback

LOGGER = logging.getLogger(__name__)


def _import_bleak() -> Any:
    try:
        import bleak  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise RadioUnavailableError(
            "BLE transport requires 'bleak'. Install dependency and retry."
        ) from exc
    return bleak


class BleakCharacteristic:
    def __init__(self, client: Any, characteristic: Any) -> None:
        self._client = client
        self._characteristic = characteristic

    async def start_notifications(self, callback: NotificationCallback) -> None:
        def _notify_handler(_: Any, data: bytearray) -> None:
            callback(bytes(data))

        try:
            await self._client.start_notify(self._characteristic, _notify_handler)
        except Exception as exc:
            raise ConnectionFailedError(
                f"Could not subscribe to notifications on {self._characteristic.uuid}: {exc}"
            ) from exc

    async def stop_notifications(self) -> None:
        try:
            await self._client.stop_notify(self._characteristic)
        except Exception as exc:
            raise ConnectionFailedError(
                f"Could not stop notifications on {self._characteristic.uuid}: {exc}"
            ) from exc


class BleakService:
    def __init__(self, client: Any, service: Any) -> None:
        self._client = client
        self._service = service

    async def get_characteristic(self, uuid: str) -> BleakCharacteristic:
        characteristic = self._service.get_characteristic(uuid)
        if characteristic is None:
            raise ConnectionFailedError(f"Characteristic {uuid} not found on service {self._service.uuid}")
        return BleakCharacteristic(self._client, characteristic)


class BleakPeripheral:
    def __init__(self, device: Any, name: str | None = None) -> None:
        self._device = device
        self._name = name or getattr(device, "name", None)
        self._client: Any = None

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def address(self) -> str:
        return self._device.address

    async def connect(self, disconnected_callback: Callable[[], None]) -> None:
        bleak = _import_bleak()

        def _on_disconnect(_: Any) -> None:
            disconnected_callback()

        client = bleak.BleakClient(self._device, disconnected_callback=_on_disconnect)
        try:
            await client.connect()
        except Exception as exc:
            raise ConnectionFailedError(f"BLE connect failed for {self.address}: {exc}") from exc
        if not client.is_connected:
            raise ConnectionFailedError(f"BLE connect failed for {self.address}")
        self._client = client

    async def get_service(self, uuid: str) -> BleakService:
        if self._client is None:
            raise ConnectionFailedError(f"{self.address} is not connected")
        service = self._client.services.get_service(uuid)
        if service is None:
            raise ConnectionFailedError(f"Service {uuid} not found on {self.address}")
        return BleakService(self._client, service)

    async def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.disconnect()
        except Exception as exc:
            raise ConnectionFailedError(f"BLE disconnect failed for {self.address}: {exc}") from exc


class BLEGATTTransport:
    """Scan, connect, and subscribe through bleak.

    `request_device` keeps scanning until a matching advertisement arrives or
    `cancel_request` resolves the pending request.
    """

    def __init__(self) -> None:
        self._pending: asyncio.Future[Any] | None = None

    async def get_availability(self) -> bool:
        try:
            _import_bleak()
        except RadioUnavailableError as exc:
            LOGGER.warning("%s", exc)
            return False
        return True

    async def request_device(self, name: str) -> BleakPeripheral:
        bleak = _import_bleak()
        loop = asyncio.get_running_loop()
        found: asyncio.Future[Any] = loop.create_future()

        def _detected(device: Any, advertisement_data: Any) -> None:
            advertised = getattr(advertisement_data, "local_name", None) or device.name
            if found.done() or not name_matches(advertised, name):
                return
            LOGGER.info("Found %s (%s)", advertised, device.address)
            found.set_result((device, advertised))

        scanner = bleak.BleakScanner(detection_callback=_detected)
        try:
            await scanner.start()
        except Exception as exc:
            raise RadioUnavailableError(f"Could not start BLE scan: {exc}") from exc

        self._pending = found
        LOGGER.debug("Scanning for '%s'", name)
        try:
            result = await found
        finally:
            self._pending = None
            try:
                await scanner.stop()
            except Exception as exc:
                LOGGER.debug("Stopping BLE scan failed: %s", exc)

        if result is None:
            raise DeviceRequestCancelledError(f"Device request for '{name}' was cancelled")
        device, advertised = result
        return BleakPeripheral(device, name=advertised)

    def cancel_request(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(None)
