"""Device registry for the MusicCast bridge.

Single owner of all known devices.  Resolves zones and devices by id, IP or
group id, drives periodic polling and turns device refreshes into
``(zone, topic, payload)`` notifications for subscribers.

The registry is constructed explicitly and handed to its collaborators; there
is no module-level instance.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from aiohttp import ClientSession

from .api import MusicCastClient
from .backoff import BackoffController
from .const import DEFAULT_DEVICE_INFO_TIMEOUT, DEFAULT_UDP_PORT
from .device import Device, NamingOptions
from .zone import Zone
from .zone_state import RegistrySnapshot, compute_zone_view, diff_rendered, inherit_album_art, render_zone_view

_LOGGER = logging.getLogger(__name__)

UpdateListener = Callable[[Zone, str, Any], None]


class DeviceRegistry:
    """Single source of truth for devices, zones and their link views."""

    def __init__(
        self,
        options: NamingOptions | None = None,
        session: ClientSession | None = None,
        udp_port: int = DEFAULT_UDP_PORT,
    ) -> None:
        self.options = options or NamingOptions()
        self._session = session
        self._udp_port = udp_port
        self.devices: dict[str, Device] = {}
        self._listeners: list[UpdateListener] = []
        self._backoff: dict[str, BackoffController] = {}
        self._next_poll: dict[str, float] = {}
        self._poll_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def add_device(self, device: Device) -> Device:
        """Register *device*; an existing device with the same id keeps its zones but takes the new IP."""
        existing = self.devices.get(device.device_id)
        if existing is not None:
            if existing.ip != device.ip:
                _LOGGER.info("Device %s moved from %s to %s", device.device_id, existing.ip, device.ip)
                existing.ip = device.ip
                existing.client = device.client
            return existing
        device.registry = self
        device.on_change = self._on_device_changed
        self.devices[device.device_id] = device
        self._backoff[device.device_id] = BackoffController()
        _LOGGER.debug("Registered device %s at %s", device.device_id, device.ip)
        return device

    async def add_device_from_ip(self, ip: str) -> Device | None:
        """Probe *ip*, then register and initialise the device found there."""
        probe = MusicCastClient(
            ip, timeout=DEFAULT_DEVICE_INFO_TIMEOUT, session=self._session, udp_port=self._udp_port
        )
        try:
            device = await Device.from_ip(ip, probe, options=self.options)
        finally:
            await probe.close()
        if device is None:
            return None
        device.client = MusicCastClient(ip, session=self._session, udp_port=self._udp_port)
        device = self.add_device(device)
        if not device.initialized:
            await device.initialize()
            self.publish_features(device)
        return device

    def remove_device(self, device_id: str) -> None:
        device = self.devices.pop(device_id, None)
        self._backoff.pop(device_id, None)
        self._next_poll.pop(device_id, None)
        if device is not None:
            device.registry = None
            device.on_change = None
            self.refresh_views()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_device_by_ip(self, ip: str) -> Device | None:
        return next((d for d in self.devices.values() if d.ip == ip), None)

    def get_device_by_id(self, id_: str) -> Device | None:
        """Look up by network name with friendly names enabled, else by device id."""
        if self.options.friendly_names:
            found = next((d for d in self.devices.values() if d.name == id_), None)
            if found is not None:
                return found
        return self.devices.get(id_)

    def get_zone_by_id(self, id_: str) -> Zone | None:
        """Look up a zone by the id it is published under."""
        return next((z for z in self.zones() if z.id == id_), None)

    def get_zone_by_key(self, key: str) -> Zone | None:
        device_id, _, zone_id = key.rpartition(":")
        device = self.devices.get(device_id)
        return device.zones.get(zone_id) if device else None

    def get_server_by_group_id(self, group_id: str) -> Device | None:
        """Return the device distributing *group_id* as server."""
        found = self.snapshot().server_by_group_id(group_id)
        return self.devices.get(found.device_id) if found else None

    def zones(self) -> list[Zone]:
        return [zone for device in self.devices.values() for zone in device.zones.values()]

    def display_id(self, key: str) -> str | None:
        zone = self.get_zone_by_key(key)
        return zone.id if zone else None

    # ------------------------------------------------------------------
    # Views and notifications
    # ------------------------------------------------------------------

    def subscribe(self, listener: UpdateListener) -> None:
        if listener in self._listeners:
            _LOGGER.debug("Listener %s already subscribed", listener)
            return
        self._listeners.append(listener)

    def unsubscribe(self, listener: UpdateListener) -> None:
        if listener not in self._listeners:
            _LOGGER.debug("Listener %s was not subscribed", listener)
            return
        self._listeners.remove(listener)

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(devices={d.device_id: d.snapshot() for d in self.devices.values()})

    def refresh_views(self) -> None:
        """Recompute every zone view and notify listeners about changed fields."""
        snapshot = self.snapshot()
        zones = self.zones()
        views = {
            z.key: compute_zone_view(z.device.device_id, z.zone_id, z.status_view(), snapshot, z.player_view())
            for z in zones
        }
        for zone in zones:
            view = views[zone.key]
            new_view = inherit_album_art(view, views.get(view.server) if view.server else None)
            if new_view.role != zone.view.role:
                _LOGGER.info("Zone %s link role %s -> %s", zone.id, zone.view.role, new_view.role)
            zone.view = new_view
            rendered = render_zone_view(new_view, self.display_id)
            changes = diff_rendered(zone.published, rendered)
            zone.published = rendered
            for topic, payload in changes:
                self._notify(zone, topic, payload)

    def republish(self) -> None:
        """Notify listeners about every zone field, e.g. after an MQTT reconnect."""
        for device in self.devices.values():
            self.publish_features(device)
        for zone in self.zones():
            for topic, payload in diff_rendered(None, zone.published or {}):
                self._notify(zone, topic, payload)

    def publish_features(self, device: Device) -> None:
        for zone in device.zones.values():
            for topic, payload in zone.features_payload():
                self._notify(zone, topic, payload)

    def _on_device_changed(self, device: Device) -> None:
        self.refresh_views()

    def _notify(self, zone: Zone, topic: str, payload: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(zone, topic, payload)
            except Exception as err:  # noqa: BLE001 – one bad listener must not stop the others
                _LOGGER.error("Update listener failed for %s/%s: %s", zone.id, topic, err)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def poll_devices(self, interval: float) -> None:
        """Poll every due device once, concurrently, and update back-off."""
        now = time.monotonic()
        due = [
            d for d in self.devices.values() if d.initialized and self._next_poll.get(d.device_id, 0) <= now
        ]
        if not due:
            return
        _LOGGER.debug("Polling %d device(s)", len(due))
        results = await asyncio.gather(*(d.poll() for d in due), return_exceptions=True)
        failures = 0
        for device, result in zip(due, results):
            backoff = self._backoff.setdefault(device.device_id, BackoffController())
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                failures += 1
                backoff.record_failure()
                _LOGGER.error(
                    "Error polling %s (%d consecutive failures): %s",
                    device.device_id,
                    backoff.consecutive_failures,
                    result,
                )
            else:
                backoff.record_success()
            self._next_poll[device.device_id] = now + backoff.next_interval(interval) - interval
        if failures:
            _LOGGER.debug("%d of %d device polls failed", failures, len(due))

    def start_polling(self, interval: float) -> None:
        if interval <= 0:
            _LOGGER.info("Polling disabled")
            return
        if self._poll_task is not None and not self._poll_task.done():
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop(interval), name="musiccast-poll")

    async def stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _poll_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.poll_devices(interval)
            except asyncio.CancelledError:
                raise
            except Exception as err:  # noqa: BLE001 – keep the loop alive
                _LOGGER.error("Error polling MusicCast devices: %s", err)
