"""MQTT side of the bridge.

Publishes zone state as ``<prefix>/<zone id>/<topic>`` and accepts commands
on ``<prefix>/set/<zone id>/<command>``.  ``<prefix>/connected`` carries
``1`` while the bridge is connected and ``0`` (last will) otherwise.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import secrets
import ssl
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import aiomqtt

from .api import MusicCastError
from .command_mapping import UnknownCommandError, execute_command
from .const import TOPIC_CONNECTED, TOPIC_SET

if TYPE_CHECKING:
    from .config import BridgeConfig
    from .device import Device
    from .device_registry import DeviceRegistry
    from .event_listener import EventListener
    from .group_manager import GroupManager
    from .zone import Zone

_LOGGER = logging.getLogger(__name__)

RECONNECT_MIN = 1
RECONNECT_MAX = 30


def decode_payload(raw: bytes | bytearray | str | None) -> Any:
    """Turn an MQTT payload into JSON, bool, float or str."""
    if raw is None:
        return ""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else str(raw)
    if "{" in text or "[" in text:
        try:
            return json.loads(text)
        except ValueError as err:
            _LOGGER.error("Invalid JSON payload %r: %s", text, err)
            return text
    if text == "false":
        return False
    if text == "true":
        return True
    try:
        number = float(text)
    except ValueError:
        return text
    return number if math.isfinite(number) else text


def encode_payload(payload: Any) -> str:
    """Render a published value: numbers as text, bools lower case, containers as JSON."""
    if payload is None:
        return ""
    if isinstance(payload, bool):
        return "true" if payload else "false"
    if isinstance(payload, (int, float)):
        return str(payload)
    if isinstance(payload, str):
        return payload
    if isinstance(payload, tuple):
        payload = list(payload)
    return json.dumps(payload)


class MusicCastMqttBridge:
    """Connect the device registry to an MQTT broker."""

    def __init__(
        self,
        config: BridgeConfig,
        registry: DeviceRegistry,
        groups: GroupManager,
        listener: EventListener | None = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.groups = groups
        self.listener = listener
        self.prefix = config.prefix
        self.client_id = f"{config.prefix}_{secrets.token_hex(4)}"
        self._client: aiomqtt.Client | None = None
        self._outbox: asyncio.Queue[tuple[str, str]] | None = None
        registry.subscribe(self._on_zone_update)

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def command_base(self) -> str:
        return f"{self.prefix}/{TOPIC_SET}/"

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    async def add_devices(self, ips: Iterable[str]) -> list[Device]:
        """Create devices for *ips* and route their UDP events."""
        added: list[Device] = []
        for ip in ips:
            try:
                device = await self.registry.add_device_from_ip(ip)
            except MusicCastError as err:
                _LOGGER.error("Error initializing device at %s: %s", ip, err)
                continue
            if device is None:
                _LOGGER.warning("No MusicCast device found at %s", ip)
                continue
            if self.listener is not None:
                await self.listener.subscribe(device.device_id, device.handle_event)
            _LOGGER.info("Added %s (%s) at %s", device.display_id, device.model, ip)
            added.append(device)
        self.registry.refresh_views()
        return added

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _create_client(self) -> aiomqtt.Client:
        config = self.config
        tls_context = None
        if config.use_tls:
            tls_context = ssl.create_default_context()
            if config.insecure:
                tls_context.check_hostname = False
                tls_context.verify_mode = ssl.CERT_NONE
        return aiomqtt.Client(
            hostname=config.broker_host,
            port=config.broker_port,
            username=config.username,
            password=config.password,
            identifier=self.client_id,
            will=aiomqtt.Will(
                topic=f"{self.prefix}/{TOPIC_CONNECTED}",
                payload="0",
                qos=0,
                retain=config.mqtt_retain,
            ),
            tls_context=tls_context,
        )

    async def run(self) -> None:
        """Stay connected until cancelled, reconnecting with exponential back-off."""
        backoff = RECONNECT_MIN
        while True:
            try:
                async with self._create_client() as client:
                    backoff = RECONNECT_MIN
                    await self._serve(client)
            except aiomqtt.MqttError as err:
                _LOGGER.warning("MQTT connection lost (%s), reconnecting in %ds", err, backoff)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, RECONNECT_MAX)

    async def _serve(self, client: aiomqtt.Client) -> None:
        _LOGGER.info("MQTT connected to %s:%d", self.config.broker_host, self.config.broker_port)
        self._outbox = asyncio.Queue()
        self._client = client
        publisher = asyncio.create_task(self._publish_loop(client, self._outbox), name="musiccast-mqtt-publish")
        try:
            await client.publish(
                f"{self.prefix}/{TOPIC_CONNECTED}", "1", qos=0, retain=self.config.mqtt_retain
            )
            await client.subscribe(f"{self.command_base}#")
            _LOGGER.info("MQTT subscribed to %s#", self.command_base)
            self.registry.republish()
            async for message in client.messages:
                await self.handle_message(str(message.topic), message.payload)
        finally:
            self._client = None
            self._outbox = None
            publisher.cancel()
            try:
                await publisher
            except asyncio.CancelledError:
                pass

    async def _publish_loop(self, client: aiomqtt.Client, outbox: asyncio.Queue[tuple[str, str]]) -> None:
        while True:
            topic, payload = await outbox.get()
            await client.publish(topic, payload, qos=0, retain=self.config.mqtt_retain)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def topic_for(self, zone: Zone, topic: str) -> str:
        return f"{self.prefix}/{zone.id}/{topic}"

    def _on_zone_update(self, zone: Zone, topic: str, payload: Any) -> None:
        full_topic = self.topic_for(zone, topic)
        if self._outbox is None:
            _LOGGER.debug("Not connected, dropping %s", full_topic)
            return
        _LOGGER.debug("MQTT publish %s %r", full_topic, payload)
        self._outbox.put_nowait((full_topic, encode_payload(payload)))

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_message(self, topic: str, raw: bytes | bytearray | str | None) -> None:
        """Decode one command message and run it against its zone."""
        _LOGGER.debug("MQTT < %s %r", topic, raw)
        if not topic.startswith(self.command_base):
            _LOGGER.error("Unknown topic %s", topic)
            return
        zone_id, _, command = topic[len(self.command_base) :].partition("/")
        if not zone_id or not command:
            _LOGGER.warning("Missing zone or command in topic %s", topic)
            return
        zone = self.registry.get_zone_by_id(zone_id)
        if zone is None:
            _LOGGER.error("Unknown zone %s", zone_id)
            return
        payload = decode_payload(raw)
        try:
            await execute_command(zone, command, payload, self.groups)
        except UnknownCommandError as err:
            _LOGGER.warning("%s: %s", zone.id, err)
        except MusicCastError as err:
            _LOGGER.error("Command %s for %s failed: %s", command, zone.id, err)
