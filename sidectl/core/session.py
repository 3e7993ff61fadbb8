"""Connection session state machine for the tracker peripheral."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from sidectl.core.decoder import decode_notification
from sidectl.core.errors import RadioUnavailableError, SidectlError, TransportError
from sidectl.core.model import Side, State
from sidectl.transports.base import Characteristic, Peripheral, Transport

NOTIFICATION_SERVICE_UUID = "c7e70012-c847-11e6-8175-8c89a55d403c"
NOTIFICATION_CHARACTERISTIC_UUID = "c7e70012-c847-11e6-8175-8c89a55d403c"
LOGGER = logging.getLogger(__name__)


class ConnectionSession:
    """One connect attempt against the tracker.

    The session exclusively owns the pending device request, the peripheral,
    and the subscribed characteristic. The connect chain runs as a task with one
    suspension point per transport call; any `TransportError` along the way
    releases every handle and lands in `disconnected`.
    """

    def __init__(
        self,
        transport: Transport,
        device_name: str,
        *,
        on_state: Callable[[State], None] | None = None,
        on_side: Callable[[Side], None] | None = None,
    ) -> None:
        self._transport = transport
        self._device_name = device_name
        self._on_state = on_state
        self._on_side = on_side
        self._state = State.DISCONNECTED
        self._side: Side | None = None
        self._task: asyncio.Task[None] | None = None
        self._peripheral: Peripheral | None = None
        self._characteristic: Characteristic | None = None
        self._step = "idle"
        self._closing = False
        self._early: bytes | None = None
        self.last_error: Exception | None = None

    @property
    def state(self) -> State:
        return self._state

    @property
    def side(self) -> Side | None:
        return self._side

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    @property
    def has_handles(self) -> bool:
        return self._peripheral is not None or self._characteristic is not None

    def start(self) -> asyncio.Task[None]:
        """Enter `connecting` and launch the connect chain on the running loop."""
        if self._state is not State.DISCONNECTED or self._task is not None:
            raise RuntimeError(f"Session already started (state={self._state})")
        self._set_state(State.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def cancel(self) -> None:
        if self._state is not State.CONNECTING:
            return
        LOGGER.info("Cancelling connect attempt during %s", self._step)
        self._closing = True
        self._transport.cancel_request()
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._release()
        self._finish(State.DISCONNECTED)

    async def disconnect(self) -> None:
        if self._state is State.CONNECTING:
            await self.cancel()
            return
        if self._state is not State.CONNECTED:
            return
        LOGGER.info("Disconnecting from %s", self._device_name)
        self._closing = True
        await self._release()
        self._finish(State.DISCONNECTED)

    async def _run(self) -> None:
        try:
            await self._connect_chain()
        except asyncio.CancelledError:
            await self._release()
            raise
        except RadioUnavailableError as exc:
            self.last_error = exc
            LOGGER.warning("Bluetooth unavailable: %s", exc)
            await self._release()
            self._finish(State.UNAVAILABLE)
        except TransportError as exc:
            self.last_error = exc
            LOGGER.error("Error connecting to device during %s: %s", self._step, exc)
            await self._release()
            self._finish(State.DISCONNECTED)

    async def _connect_chain(self) -> None:
        self._step = "availability"
        if not await self._transport.get_availability():
            raise RadioUnavailableError("No Bluetooth capability on this host")

        self._step = "scan"
        peripheral = await self._transport.request_device(self._device_name)
        self._peripheral = peripheral

        self._step = "connect"
        await peripheral.connect(self._on_link_lost)

        self._step = "service discovery"
        service = await peripheral.get_service(NOTIFICATION_SERVICE_UUID)

        self._step = "characteristic discovery"
        characteristic = await service.get_characteristic(NOTIFICATION_CHARACTERISTIC_UUID)

        self._step = "subscribe"
        self._characteristic = characteristic
        await characteristic.start_notifications(self._on_notification)

        self._step = "notify"
        LOGGER.info("Connected to %s and listening for notifications", peripheral.name or self._device_name)
        self._set_state(State.CONNECTED)
        early, self._early = self._early, None
        if early is not None and self._state is State.CONNECTED:
            self._dispatch(early)

    def _on_notification(self, data: bytes) -> None:
        if self._state is State.CONNECTING and self._step == "subscribe":
            # Some stacks report the current face while the subscription starts.
            self._early = bytes(data)
            return
        if self._state is not State.CONNECTED:
            return
        self._dispatch(data)

    def _dispatch(self, data: bytes) -> None:
        side = decode_notification(data)
        LOGGER.debug("Notification %s -> %s", data.hex(), side.value)
        self._side = side
        if self._on_side is None:
            return
        try:
            self._on_side(side)
        except SidectlError as exc:
            LOGGER.error("Error handling orientation %s: %s", side.value, exc)

    def _on_link_lost(self) -> None:
        if self._closing or self._state is not State.CONNECTED:
            return
        LOGGER.warning("Connection to %s lost", self._device_name)
        self._characteristic = None
        self._peripheral = None
        self._finish(State.DISCONNECTED)

    async def _release(self) -> None:
        self._early = None
        characteristic, self._characteristic = self._characteristic, None
        peripheral, self._peripheral = self._peripheral, None
        if characteristic is not None:
            try:
                await characteristic.stop_notifications()
            except TransportError as exc:
                LOGGER.debug("Ignoring error while unsubscribing: %s", exc)
        if peripheral is not None:
            try:
                await peripheral.disconnect()
            except TransportError as exc:
                LOGGER.debug("Ignoring error while disconnecting: %s", exc)

    def _finish(self, state: State) -> None:
        self._step = "idle"
        self._set_state(state)

    def _set_state(self, state: State) -> None:
        if state is self._state:
            return
        LOGGER.debug("Session state %s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_state is not None:
            self._on_state(state)
