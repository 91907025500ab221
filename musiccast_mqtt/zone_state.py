"""Zone link-state resolution and view diffing.

Role detection is kept out of the zone and device entities so it stays a pure
function that is easy to test.  Every refresh builds a fresh
:class:`RegistrySnapshot`, resolves each zone into an immutable
:class:`ZoneView` and diffs it against the previously published view.  No
link state is ever patched in place.

Linked peers are referenced by *zone key* (``"<device_id>:<zone_id>"``), never
by object, and are turned into display ids only when rendering.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field, replace
from types import MappingProxyType
from typing import Any

from .const import (
    INPUT_MAIN_SYNC,
    INPUT_MC_LINK,
    ROLE_CLIENT,
    ROLE_NONE,
    ROLE_SERVER,
    ZONE_MAIN,
)
from .models import DistributionInfo

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "DeviceSnapshot",
    "RegistrySnapshot",
    "LinkState",
    "StatusView",
    "PlayerView",
    "ZoneView",
    "zone_key",
    "split_zone_key",
    "resolve_link_state",
    "compute_zone_view",
    "inherit_album_art",
    "render_zone_view",
    "diff_rendered",
    "diff_zone_views",
]


def zone_key(device_id: str, zone_id: str) -> str:
    """Return the stable registry key of a zone."""
    return f"{device_id}:{zone_id}"


def split_zone_key(key: str) -> tuple[str, str]:
    device_id, _, zone_id = key.rpartition(":")
    return device_id, zone_id


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeviceSnapshot:
    """Read-only copy of the device fields role resolution depends on."""

    device_id: str
    ip: str
    is_slave: bool = False
    distribution_info: DistributionInfo | None = None
    zone_inputs: Mapping[str, str | None] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_distributing(self) -> bool:
        """Device reports itself as server, or as none while still holding clients."""
        dist = self.distribution_info
        if dist is None:
            return False
        return dist.role == ROLE_SERVER or (dist.role == ROLE_NONE and bool(dist.client_list))


@dataclass(frozen=True)
class RegistrySnapshot:
    devices: Mapping[str, DeviceSnapshot]

    def device_by_ip(self, ip: str) -> DeviceSnapshot | None:
        return next((d for d in self.devices.values() if d.ip == ip), None)

    def server_by_group_id(self, group_id: str) -> DeviceSnapshot | None:
        """Return the device distributing *group_id*, if any is known."""
        for device in self.devices.values():
            dist = device.distribution_info
            if dist is not None and dist.group_id == group_id and device.is_distributing:
                return device
        return None


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LinkState:
    role: str = ROLE_NONE
    server: str | None = None
    clients: tuple[str, ...] = ()


NO_LINK = LinkState()


@dataclass(frozen=True)
class StatusView:
    """Zone status already translated for publishing (friendly names, percent volume)."""

    power: str | None = None
    input: str | None = None
    volume: int | None = None
    mute: bool | None = None
    soundprogram: str | None = None


@dataclass(frozen=True)
class PlayerView:
    playback: str = ""
    title: str = ""
    artist: str = ""
    album: str = ""
    albumarturl: str = ""
    playtime: int | str = ""
    totaltime: int | str = ""


@dataclass(frozen=True)
class ZoneView:
    role: str = ROLE_NONE
    server: str | None = None
    clients: tuple[str, ...] = ()
    power: str | None = None
    input: str | None = None
    volume: int | None = None
    mute: bool | None = None
    soundprogram: str | None = None
    player: PlayerView = field(default_factory=PlayerView)


# ---------------------------------------------------------------------------
# Role resolution
# ---------------------------------------------------------------------------


def resolve_link_state(device_id: str, zone_id: str, snapshot: RegistrySnapshot) -> LinkState:
    """Resolve role, server and clients of one zone (first matching rule wins).

    1. A non-main zone on ``main_sync`` is a client of its own main zone.
    2. The declared ``server_zone`` of a distributing device is a server.  Its
       clients are the ``mc_link`` zones of the client-list devices (stereo
       pair slaves excluded) plus sibling zones on ``main_sync``.
    3. An ``mc_link`` zone on a device reporting role client with a non-empty
       group id is a client of whichever device distributes that group id.
    4. Anything else is unlinked.

    A device reporting role client with the all-zero group id is treated as
    unlinked; firmware reports that combination after leaving a group.
    """
    device = snapshot.devices.get(device_id)
    if device is None:
        return NO_LINK
    zone_input = device.zone_inputs.get(zone_id)

    if zone_id != ZONE_MAIN and zone_input == INPUT_MAIN_SYNC:
        return LinkState(role=ROLE_CLIENT, server=zone_key(device_id, ZONE_MAIN))

    dist = device.distribution_info
    if dist is None:
        return NO_LINK

    if zone_id == dist.server_zone and dist.role in (ROLE_SERVER, ROLE_NONE):
        client_devices: list[DeviceSnapshot] = []
        for ip in dist.client_ips:
            client = snapshot.device_by_ip(ip)
            if client is None:
                _LOGGER.warning("Unknown client %s in distribution info of %s", ip, device_id)
            elif client.is_slave:
                _LOGGER.debug("Skipping stereo pair slave %s in client list of %s", ip, device_id)
            else:
                client_devices.append(client)
        synced = [
            zone_key(device_id, zid)
            for zid, inp in device.zone_inputs.items()
            if zid != zone_id and inp == INPUT_MAIN_SYNC
        ]
        if dist.role == ROLE_SERVER or client_devices or synced:
            clients = [
                zone_key(client.device_id, zid)
                for client in client_devices
                for zid, inp in client.zone_inputs.items()
                if inp == INPUT_MC_LINK
            ]
            return LinkState(role=ROLE_SERVER, clients=tuple(clients + synced))

    if dist.role == ROLE_CLIENT and not dist.is_group_id_empty and zone_input == INPUT_MC_LINK:
        server = snapshot.server_by_group_id(dist.group_id)
        if server is None or server.device_id == device_id:
            _LOGGER.warning("Cannot find server for group id %s (client %s)", dist.group_id, device_id)
            return NO_LINK
        return LinkState(role=ROLE_CLIENT, server=zone_key(server.device_id, server.distribution_info.server_zone))

    return NO_LINK


def compute_zone_view(
    device_id: str,
    zone_id: str,
    status: StatusView,
    snapshot: RegistrySnapshot,
    player: PlayerView | None = None,
) -> ZoneView:
    """Combine translated status, player info and resolved link state."""
    link = resolve_link_state(device_id, zone_id, snapshot)
    return ZoneView(
        role=link.role,
        server=link.server,
        clients=link.clients,
        power=status.power,
        input=status.input,
        volume=status.volume,
        mute=status.mute,
        soundprogram=status.soundprogram,
        player=player or PlayerView(),
    )


def inherit_album_art(view: ZoneView, server_view: ZoneView | None) -> ZoneView:
    """Clients show the album art of the zone they receive audio from."""
    if view.role != ROLE_CLIENT or server_view is None or not server_view.player.albumarturl:
        return view
    return replace(view, player=replace(view.player, albumarturl=server_view.player.albumarturl))


# ---------------------------------------------------------------------------
# Diffing
# ---------------------------------------------------------------------------


def render_zone_view(view: ZoneView, display_id: Callable[[str], str | None]) -> dict[str, Any]:
    """Render *view* into the nested topic structure published over MQTT."""
    clients = [display_id(key) for key in view.clients]
    return {
        "link": {
            "role": view.role,
            "clients": [c for c in clients if c],
            "server": (display_id(view.server) or "") if view.server else "",
        },
        "power": view.power,
        "input": view.input,
        "volume": view.volume,
        "mute": view.mute,
        "soundprogram": view.soundprogram,
        "player": asdict(view.player),
    }


def diff_rendered(
    old: Mapping[str, Any] | None, new: Mapping[str, Any], prefix: str = ""
) -> list[tuple[str, Any]]:
    """Return ``(topic, value)`` for every leaf of *new* that differs from *old*.

    With ``old=None`` every leaf that carries a value is returned.
    """
    changes: list[tuple[str, Any]] = []
    for key, value in new.items():
        topic = f"{prefix}/{key}" if prefix else key
        old_value = None if old is None else old.get(key)
        if isinstance(value, Mapping):
            changes.extend(diff_rendered(old_value if isinstance(old_value, Mapping) else None, value, topic))
        elif old is None:
            if value is not None:
                changes.append((topic, value))
        elif value != old_value:
            changes.append((topic, value))
    return changes


def diff_zone_views(
    old: ZoneView | None, new: ZoneView, display_id: Callable[[str], str | None]
) -> list[tuple[str, Any]]:
    old_rendered = None if old is None else render_zone_view(old, display_id)
    return diff_rendered(old_rendered, render_zone_view(new, display_id))
