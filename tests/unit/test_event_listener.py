"""Unit tests for the UDP event listener."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from musiccast_mqtt.event_listener import EventListener, _EventProtocol


def _datagram(**event):
    return json.dumps(event).encode("utf-8")


@pytest.fixture
def listener():
    listener = EventListener(port=0, host="127.0.0.1")
    transport = MagicMock()
    listener._bind = AsyncMock(side_effect=lambda: setattr(listener, "_transport", transport))
    return listener


class TestDispatch:
    async def test_sync_callback(self, listener):
        events = []
        await listener.subscribe("KITCHEN01", events.append)

        listener.dispatch(_datagram(device_id="KITCHEN01", main={"volume": 12}), "10.0.0.1")

        assert events == [{"device_id": "KITCHEN01", "main": {"volume": 12}}]

    async def test_async_callback(self, listener):
        handler = AsyncMock()
        await listener.subscribe("KITCHEN01", handler)

        listener.dispatch(_datagram(device_id="KITCHEN01", netusb={"play_time": 3}))
        await asyncio.gather(*listener._tasks)

        handler.assert_awaited_once_with({"device_id": "KITCHEN01", "netusb": {"play_time": 3}})
        assert not listener._tasks

    async def test_failing_handler_is_logged(self, listener, caplog):
        await listener.subscribe("KITCHEN01", AsyncMock(side_effect=RuntimeError("boom")))

        listener.dispatch(_datagram(device_id="KITCHEN01"))
        await asyncio.gather(*listener._tasks, return_exceptions=True)
        await asyncio.sleep(0)

        assert "Error handling MusicCast event: boom" in caplog.text

    async def test_unknown_device(self, listener, caplog):
        await listener.subscribe("KITCHEN01", MagicMock())
        listener.dispatch(_datagram(device_id="GARAGE01"), "10.0.0.9")
        assert "Event for unknown device GARAGE01 from 10.0.0.9" in caplog.text

    @pytest.mark.parametrize("data", [b"{not json", b"\xff\xfe", b"[1, 2]"])
    async def test_malformed_datagram(self, listener, caplog, data):
        callback = MagicMock()
        await listener.subscribe("KITCHEN01", callback)

        listener.dispatch(data, "10.0.0.1")

        callback.assert_not_called()
        assert "event from 10.0.0.1" in caplog.text

    def test_protocol_forwards_sender_ip(self):
        listener = MagicMock()
        _EventProtocol(listener).datagram_received(b"{}", ("10.0.0.1", 41100))
        listener.dispatch.assert_called_once_with(b"{}", "10.0.0.1")


class TestSocket:
    async def test_bound_once(self, listener):
        await listener.subscribe("KITCHEN01", MagicMock())
        await listener.subscribe("LIVING01", MagicMock())

        assert listener.listening
        listener._bind.assert_awaited_once()

    async def test_last_unsubscribe_closes(self, listener):
        await listener.subscribe("KITCHEN01", MagicMock())
        await listener.subscribe("LIVING01", MagicMock())
        transport = listener._transport

        listener.unsubscribe("KITCHEN01")
        assert listener.listening
        listener.unsubscribe("LIVING01")

        assert not listener.listening
        transport.close.assert_called_once_with()

    async def test_close_cancels_running_handlers(self, listener):
        started = asyncio.Event()

        async def _slow(event):
            started.set()
            await asyncio.sleep(60)

        await listener.subscribe("KITCHEN01", _slow)
        listener.dispatch(_datagram(device_id="KITCHEN01"))
        await started.wait()

        await listener.close()

        assert not listener.listening
        assert not listener._tasks

    async def test_real_socket(self):
        listener = EventListener(port=0, host="127.0.0.1")
        await listener.subscribe("KITCHEN01", MagicMock())
        try:
            assert listener.listening
        finally:
            await listener.close()
        assert not listener.listening
