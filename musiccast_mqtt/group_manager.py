"""Link (multi-room group) coordination for MusicCast zones.

The group manager turns a requested membership ("these zones should play
along with that server zone") into the sequence of ``/dist`` and zone calls
the devices need.  Every public operation is pushed through a
:class:`~musiccast_mqtt.task_queue.TaskQueue` with a concurrency of one so
two sequences never interleave.

Device calls are best-effort: a failing call is logged and the sequence goes
on.  Nothing is rolled back.  After each sequence the affected devices are
re-read, and the next poll cycle reconciles anything that is still off.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Awaitable, Iterable
from typing import TYPE_CHECKING, Any

from .api import MusicCastError, MusicCastResponseError
from .const import (
    DIST_NUM_ADD,
    DIST_NUM_CREATE,
    DIST_NUM_REMOVE,
    GROUP_ID_MARKER,
    GROUP_ID_MARKER_OFFSET,
    INPUT_AUX,
    INPUT_MAIN_SYNC,
    ROLE_CLIENT,
    ROLE_NONE,
    ROLE_SERVER,
    SERVER_INFO_ADD,
    SERVER_INFO_REMOVE,
    ZONE_MAIN,
)
from .task_queue import TaskQueue

if TYPE_CHECKING:
    from .device import Device
    from .device_registry import DeviceRegistry
    from .zone import Zone

_LOGGER = logging.getLogger(__name__)

__all__ = ["GroupManager", "create_group_id", "group_name"]


def create_group_id() -> str:
    """Return a new 32 hex digit group id.

    Layout: millisecond timestamp in hex followed by random hex, cut to
    12 chars, the fixed ``40008`` marker, then 15 more chars.  The random
    part keeps ids created within the same millisecond apart.
    """
    raw = format(int(time.time() * 1000), "x") + secrets.token_hex(16) + "0" * 16
    offset = GROUP_ID_MARKER_OFFSET
    return raw[:offset] + GROUP_ID_MARKER + raw[offset + 1 : offset + 16]


def group_name(server_name: str, clients: int) -> str:
    """Display name pushed to the server, e.g. ``Kitchen + 2 Rooms``."""
    if clients <= 0:
        return ""
    return f"{server_name} + {clients} {'Rooms' if clients > 1 else 'Room'}"


class GroupManager:
    """Serialized link/unlink engine working on zones of one registry."""

    def __init__(self, registry: DeviceRegistry, queue: TaskQueue | None = None) -> None:
        self._registry = registry
        self._queue = queue or TaskQueue(concurrency=1)

    @property
    def queue(self) -> TaskQueue:
        return self._queue

    # ------------------------------------------------------------------
    # Queued entry points
    # ------------------------------------------------------------------

    def queue_link_by_id(self, server: Zone | str | None, client_ids: Iterable[str]) -> None:
        ids = list(client_ids)
        self._queue.push(
            lambda: self.link(self._resolve(server), self._zones(ids)), name=f"link {self._label(server)} {ids}"
        )

    def queue_unlink_by_id(self, server: Zone | str | None, client_ids: Iterable[str]) -> None:
        ids = list(client_ids)
        self._queue.push(
            lambda: self.unlink(self._resolve(server), self._zones(ids)), name=f"unlink {self._label(server)} {ids}"
        )

    def queue_set_links_by_id(self, server: Zone | str | None, client_ids: Iterable[str]) -> None:
        ids = list(client_ids)
        self._queue.push(
            lambda: self.set_links(self._resolve(server), self._zones(ids)),
            name=f"set_links {self._label(server)} {ids}",
        )

    def queue_unlink_from_server(self, client: Zone | str | None) -> None:
        self._queue.push(
            lambda: self.unlink_from_server(self._resolve(client)), name=f"leave {self._label(client)}"
        )

    def _resolve(self, zone: Zone | str | None) -> Zone | None:
        if zone is None or not isinstance(zone, str):
            return zone
        return self._registry.get_zone_by_id(zone)

    def _zones(self, ids: list[str]) -> list[Zone | None]:
        zones = [self._registry.get_zone_by_id(i) for i in ids]
        for id_, zone in zip(ids, zones):
            if zone is None:
                _LOGGER.warning("Unknown zone %r", id_)
        return zones

    @staticmethod
    def _label(zone: Zone | str | None) -> str:
        if zone is None or isinstance(zone, str):
            return repr(zone)
        return zone.id

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def unlink_from_server(self, client: Zone | None) -> None:
        """Detach *client* from whichever server it is currently linked to."""
        if client is None:
            _LOGGER.warning("unlink_from_server() called without a zone")
            return
        if client.role != ROLE_CLIENT:
            _LOGGER.info("%s is not a client, nothing to leave", client.id)
            return
        server = client.linked_server
        if server is None:
            _LOGGER.info("%s is a client but its server is unknown", client.id)
            return
        await self.unlink(server, [client])

    async def set_links(self, server: Zone | None, desired: Iterable[Zone | None]) -> None:
        """Make *desired* the exact client set of *server*: unlink extras first, then link missing."""
        if server is None:
            _LOGGER.warning("set_links() called without a server zone")
            return
        wanted = _unique(z for z in desired if z is not None and z is not server)
        linked = server.linked_clients
        linked_keys = {z.key for z in linked}
        wanted_keys = {z.key for z in wanted}
        removed = [z for z in linked if z.key not in wanted_keys]
        added = [z for z in wanted if z.key not in linked_keys]
        _LOGGER.info(
            "Set links of %s: remove %s, add %s", server.id, [z.id for z in removed], [z.id for z in added]
        )
        if removed:
            await self.unlink(server, removed)
        if added:
            await self.link(server, added)

    async def link(self, server: Zone | None, clients: Iterable[Zone | None]) -> None:
        """Make every zone in *clients* a client of *server*'s group."""
        if server is None:
            _LOGGER.warning("link() called without a server zone")
            return
        zones = _unique(z for z in clients if z is not None and z is not server)
        if not zones:
            _LOGGER.warning("link() called without client zones for %s", server.id)
            return

        if server.role == ROLE_CLIENT:
            # A zone still receiving from elsewhere cannot distribute
            _LOGGER.debug("Server %s is itself a client, unlinking it first", server.id)
            await self.unlink_from_server(server)
            await self._refresh(server.device)

        if server.role == ROLE_SERVER and not server.device.is_group_id_empty():
            group_id = server.device.group_id
            create_new = False
            _LOGGER.debug("Server %s already distributes group %s", server.id, group_id)
        else:
            group_id = create_group_id()
            create_new = True
            _LOGGER.debug("Server %s starts new group %s", server.id, group_id)

        ready: list[Zone] = []
        # Keyed by the stable key of the server each zone currently follows
        wrong_groups: dict[str, list[Zone]] = {}

        for zone in [z for z in zones if z.role == ROLE_SERVER]:
            _LOGGER.debug("%s is a server, unlinking its own clients first", zone.id)
            await self.unlink_all_clients(zone)
            ready.append(zone)

        # Roles are read again: the unlinking above may have released requested zones
        handled = {z.key for z in ready}
        for zone in (z for z in zones if z.key not in handled and z.role == ROLE_CLIENT):
            handled.add(zone.key)
            current = zone.device.group_id
            if zone.view.server == server.key or (current == group_id and zone.device is not server.device):
                _LOGGER.debug("%s is already linked to %s", zone.id, server.id)
                continue
            _LOGGER.debug("%s follows %s, unlinking before relinking", zone.id, zone.view.server)
            wrong_groups.setdefault(zone.view.server or current, []).append(zone)
            ready.append(zone)

        for zone in (z for z in zones if z.key not in handled and z.role == ROLE_NONE):
            ready.append(zone)

        if not ready:
            _LOGGER.info("All requested zones are already linked to %s", server.id)
            return

        for group_zones in wrong_groups.values():
            old_server = group_zones[0].linked_server
            if old_server is not None:
                await self.unlink(old_server, group_zones)
            else:
                _LOGGER.warning("Cannot find the current server of %s", [z.id for z in group_zones])

        server_device = server.device
        by_device: dict[str, list[Zone]] = {}
        for zone in ready:
            by_device.setdefault(zone.device.ip, []).append(zone)
        remote_ips = [ip for ip in by_device if ip != server_device.ip]

        for ip, device_zones in by_device.items():
            device = device_zones[0].device
            zone_ids = [z.zone_id for z in device_zones]
            if ip != server_device.ip:
                await self._call(
                    device, "setClientInfo", device.client.set_client_info(group_id, zone_ids, server_device.ip)
                )
            elif server.zone_id == ZONE_MAIN:
                for zone_id in zone_ids:
                    await self._call(device, "setPower", device.client.set_power(zone_id, True))
                    await self._call(device, "setInput", device.client.set_input(zone_id, INPUT_MAIN_SYNC))
            else:
                _LOGGER.warning(
                    "Zones %s can only follow the main zone of %s, not %s", zone_ids, device.device_id, server.zone_id
                )

        if remote_ips:
            await self._call(
                server_device,
                "setServerInfo",
                server_device.client.set_server_info(group_id, ZONE_MAIN, SERVER_INFO_ADD, remote_ips),
            )
            num = DIST_NUM_CREATE if create_new else DIST_NUM_ADD
            await self._call(server_device, "startDistribution", server_device.client.start_distribution(num))

        for ip, device_zones in by_device.items():
            if ip != server_device.ip:
                await self._refresh(device_zones[0].device, device_zones)
        await self._refresh(server_device, by_device.get(server_device.ip, ()))
        await self._update_group_name(server)
        _LOGGER.info("Linked %s -> %s", server.id, [z.id for z in server.linked_clients])

    async def unlink_all_clients(self, server: Zone) -> None:
        await self.unlink(server, server.linked_clients)

    async def unlink(self, server: Zone | None, clients: Iterable[Zone | None]) -> None:
        """Remove every zone in *clients* from *server*'s group."""
        if server is None:
            _LOGGER.warning("unlink() called without a server zone")
            return
        requested = _unique(z for z in clients if z is not None)
        if not requested:
            _LOGGER.warning("unlink() called without client zones for %s", server.id)
            return

        linked = server.linked_clients
        linked_keys = {z.key for z in linked}
        zones = [z for z in requested if z.key in linked_keys]
        if not zones:
            _LOGGER.info("None of %s is linked to %s", [z.id for z in requested], server.id)
            return

        removing = {z.key for z in zones}
        remaining = [z for z in linked if z.key not in removing]
        delete_group = not remaining
        group_id = "" if delete_group else server.device.group_id
        server_device = server.device

        remove_ips: list[str] = []
        for zone in zones:
            device = zone.device
            _LOGGER.debug("Unlinking %s from %s", zone.id, server.id)
            if device is server_device or any(other.device is device for other in remaining):
                # Another zone of this device keeps receiving; only detach this zone
                await self._call(device, "setInput", device.client.set_input(zone.zone_id, INPUT_AUX))
                await self._call(device, "setPower", device.client.set_power(zone.zone_id, False))
                if device is not server_device:
                    await self._refresh(device, [zone])
            else:
                await self._call(device, "setClientInfo", device.client.set_client_info("", [zone.zone_id]))
                await self._refresh(device, [zone])
                if device.ip not in remove_ips:
                    remove_ips.append(device.ip)

        if remove_ips:
            await self._call(
                server_device,
                "setServerInfo",
                server_device.client.set_server_info(group_id, ZONE_MAIN, SERVER_INFO_REMOVE, remove_ips),
            )
        if delete_group:
            await self._call(server_device, "stopDistribution", server_device.client.stop_distribution())
        else:
            await self._call(
                server_device, "startDistribution", server_device.client.start_distribution(DIST_NUM_REMOVE)
            )

        await self._refresh(server_device, [z for z in zones if z.device is server_device])
        await self._update_group_name(server)
        _LOGGER.info("Unlinked %s from %s", [z.id for z in zones], server.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _update_group_name(self, server: Zone) -> None:
        name = group_name(server.name, len(server.linked_clients))
        device = server.device
        await self._call(device, "setGroupName", device.client.set_group_name(name))

    async def _call(self, device: Device, command: str, call: Awaitable[Any]) -> bool:
        """Await one device call; failures are logged and reported as False."""
        _LOGGER.debug("%s: %s", device.device_id, command)
        try:
            await call
        except MusicCastResponseError as err:
            _LOGGER.error(
                "%s: %s failed with response code %s - %s",
                device.device_id,
                command,
                err.response_code,
                err.code_name,
            )
            return False
        except (MusicCastError, OSError) as err:
            _LOGGER.error("%s: %s failed: %s", device.device_id, command, err)
            return False
        return True

    async def _refresh(self, device: Device, zones: Iterable[Zone] = ()) -> None:
        """Re-read zone status and distribution info after a change."""
        try:
            for zone in zones:
                await device.update_status(zone.zone_id)
            await device.update_distribution_info()
        except MusicCastError as err:
            _LOGGER.error("%s: refresh after link change failed: %s", device.device_id, err)


def _unique(zones: Iterable[Zone]) -> list[Zone]:
    seen: set[str] = set()
    out: list[Zone] = []
    for zone in zones:
        if zone.key not in seen:
            seen.add(zone.key)
            out.append(zone)
    return out
