"""UDP push event listener.

MusicCast devices send JSON status events to the port announced in the
``X-AppPort`` header of every API request.  One socket serves all devices;
events are routed to the subscriber registered for the ``device_id`` field.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .const import DEFAULT_UDP_PORT

_LOGGER = logging.getLogger(__name__)

EventCallback = Callable[[dict[str, Any]], Awaitable[None] | None]


class _EventProtocol(asyncio.DatagramProtocol):
    def __init__(self, listener: EventListener) -> None:
        self._listener = listener

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self._listener.dispatch(data, addr[0])

    def error_received(self, exc: Exception) -> None:
        _LOGGER.error("UDP event socket error: %s", exc)


class EventListener:
    """Receive MusicCast UDP events and hand them to per-device callbacks.

    The socket is bound on the first :meth:`subscribe` and closed again when
    the last subscriber is removed.
    """

    def __init__(self, port: int = DEFAULT_UDP_PORT, host: str = "0.0.0.0") -> None:
        self.port = port
        self.host = host
        self._callbacks: dict[str, EventCallback] = {}
        self._transport: asyncio.DatagramTransport | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def listening(self) -> bool:
        return self._transport is not None

    async def subscribe(self, device_id: str, callback: EventCallback) -> None:
        if device_id in self._callbacks:
            _LOGGER.debug("Replacing event callback for %s", device_id)
        self._callbacks[device_id] = callback
        if self._transport is None:
            await self._bind()

    def unsubscribe(self, device_id: str) -> None:
        if self._callbacks.pop(device_id, None) is None:
            _LOGGER.debug("No event callback registered for %s", device_id)
        if not self._callbacks:
            self._close_transport()

    async def _bind(self) -> None:
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _EventProtocol(self),
            local_addr=(self.host, self.port),
        )
        self._transport = transport
        _LOGGER.info("Listening for MusicCast events on UDP port %d", self.port)

    def dispatch(self, data: bytes, sender: str = "") -> None:
        """Decode one datagram and run the callback of the device it names."""
        try:
            event = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as err:
            _LOGGER.error("Malformed event from %s: %s", sender or "unknown", err)
            return
        if not isinstance(event, dict):
            _LOGGER.error("Unexpected event from %s: %r", sender or "unknown", event)
            return

        device_id = event.get("device_id")
        callback = self._callbacks.get(device_id) if device_id else None
        if callback is None:
            _LOGGER.warning("Event for unknown device %s from %s", device_id, sender or "unknown")
            return

        result = callback(event)
        if asyncio.iscoroutine(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.error("Error handling MusicCast event: %s", err)

    def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()
            _LOGGER.debug("UDP event socket closed")

    async def close(self) -> None:
        """Drop all subscribers, close the socket and wait for running handlers."""
        self._callbacks.clear()
        self._close_transport()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
