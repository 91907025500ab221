"""Device entity.

A device owns its zones and the device-wide snapshots the link resolver needs
(distribution info, stereo pair info) plus the play info shared by all zones.
Every refresh path ends in :meth:`Device._changed`, which lets the registry
recompute and publish zone views.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .api import MusicCastClient, MusicCastError
from .const import PLAY_INFO_CD, PLAY_INFO_NETUSB, PLAY_INFO_TUNER
from .models import (
    CdPlayInfo,
    DistributionInfo,
    Features,
    NameText,
    NetPlayInfo,
    StereoPairInfo,
    TunerPlayInfo,
)
from .zone import Zone
from .zone_state import DeviceSnapshot

if TYPE_CHECKING:
    from .device_registry import DeviceRegistry

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamingOptions:
    """How devices, zones, inputs and sound programs are named in topics."""

    friendly_names: bool = True
    zone_friendly_names: bool = True
    input_friendly_names: bool = False
    soundprogram_friendly_names: bool = False


class Device:
    """One MusicCast device and its zones."""

    def __init__(
        self,
        device_id: str,
        ip: str,
        client: MusicCastClient,
        model: str | None = None,
        options: NamingOptions | None = None,
        on_change: Callable[[Device], None] | None = None,
    ) -> None:
        self.device_id = device_id
        self.ip = ip
        self.model = model
        self.client = client
        self.options = options or NamingOptions()
        self.on_change = on_change
        self.registry: DeviceRegistry | None = None

        self.name: str | None = None
        self.features: Features | None = None
        self.zones: dict[str, Zone] = {}
        self.distribution_info: DistributionInfo | None = None
        self.stereo_pair_info: StereoPairInfo | None = None
        self.net_play_info: NetPlayInfo | None = None
        self.cd_play_info: CdPlayInfo | None = None
        self.tuner_play_info: TunerPlayInfo | None = None

        self.zone_names: dict[str, str] = {}
        self.input_names: dict[str, str] = {}
        self.input_by_name: dict[str, str] = {}
        self.sound_program_names: dict[str, str] = {}
        self.sound_program_by_name: dict[str, str] = {}
        self.input_play_info_types: dict[str, str] = {}

        self.initialized = False

    def __repr__(self) -> str:
        return f"<Device {self.device_id} {self.ip} ({self.name})>"

    @classmethod
    async def from_ip(
        cls,
        ip: str,
        client: MusicCastClient,
        options: NamingOptions | None = None,
        on_change: Callable[[Device], None] | None = None,
    ) -> Device | None:
        """Create a device by asking *ip* for its device id; None when unreachable."""
        try:
            info = await client.get_device_info_model()
        except MusicCastError as err:
            _LOGGER.error("Error creating device from %s: %s", ip, err)
            return None
        return cls(info.device_id, ip, client, model=info.model_name, options=options, on_change=on_change)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def display_id(self) -> str:
        """Device part of topics: network name or device id."""
        if self.options.friendly_names and self.name:
            return self.name
        return self.device_id

    @property
    def is_slave(self) -> bool:
        """True for the secondary unit of a stereo pair."""
        return self.stereo_pair_info is not None and self.stereo_pair_info.is_slave

    def is_group_id_empty(self) -> bool:
        return self.distribution_info is None or self.distribution_info.is_group_id_empty

    @property
    def group_id(self) -> str:
        return self.distribution_info.group_id if self.distribution_info else ""

    def snapshot(self) -> DeviceSnapshot:
        return DeviceSnapshot(
            device_id=self.device_id,
            ip=self.ip,
            is_slave=self.is_slave,
            distribution_info=self.distribution_info,
            zone_inputs=MappingProxyType({zid: z.raw_input for zid, z in self.zones.items()}),
        )

    # ------------------------------------------------------------------
    # Start-up
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Read names and features, create zones and run the first poll."""
        network = await self.client.get_network_status_model()
        self.name = network.network_name
        self.features = await self.client.get_features_model()
        self.input_play_info_types = self.features.input_play_info_types()
        try:
            self._apply_name_text(await self.client.get_name_text_model())
        except MusicCastError as err:
            _LOGGER.warning("%s: no name text available, using ids: %s", self.device_id, err)

        self.zones = {zf.id: Zone(self, zf) for zf in self.features.zone}
        _LOGGER.debug("%s: features loaded, zones %s", self.device_id, list(self.zones))
        await self.poll()
        self.initialized = True

    def _apply_name_text(self, names: NameText) -> None:
        self.zone_names = {e.id: e.text for e in names.zone_list if e.text}
        self.input_names = {e.id: e.text for e in names.input_list if e.text}
        self.input_by_name = {text: id_ for id_, text in self.input_names.items()}
        self.sound_program_names = {e.id: e.text for e in names.sound_program_list if e.text}
        self.sound_program_by_name = {text: id_ for id_, text in self.sound_program_names.items()}

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def poll(self) -> None:
        """Refresh every zone, distribution, stereo pair and play info.

        Errors propagate so the registry can apply back-off.
        """
        for zone_id in self.zones:
            await self._fetch_status(zone_id)
        self.distribution_info = await self.client.get_distribution_info_model()
        await self._fetch_stereo_pair_info()
        for kind in self._active_play_info_types():
            await self._fetch_play_info(kind)
        self._changed()

    async def update_status(self, zone_id: str) -> None:
        await self._fetch_status(zone_id)
        self._changed()

    async def update_distribution_info(self) -> None:
        """Re-read distribution info from the device and refresh views."""
        self.distribution_info = await self.client.get_distribution_info_model()
        _LOGGER.debug(
            "%s: distribution info role=%s group=%s clients=%s",
            self.device_id,
            self.distribution_info.role,
            self.distribution_info.group_id,
            self.distribution_info.client_ips,
        )
        self._changed()

    async def update_play_info(self, kind: str) -> None:
        await self._fetch_play_info(kind)
        self._changed()

    async def _fetch_status(self, zone_id: str) -> None:
        self.zones[zone_id].merge_status(await self.client.get_zone_status(zone_id))

    async def _fetch_stereo_pair_info(self) -> None:
        try:
            self.stereo_pair_info = await self.client.get_stereo_pair_info_model()
        except MusicCastError as err:
            # Devices without stereo pair support answer with an error code
            _LOGGER.debug("%s: no stereo pair info: %s", self.device_id, err)
            self.stereo_pair_info = None

    async def _fetch_play_info(self, kind: str) -> None:
        if kind == PLAY_INFO_NETUSB:
            self.net_play_info = await self.client.get_net_play_info_model()
        elif kind == PLAY_INFO_CD:
            self.cd_play_info = await self.client.get_cd_play_info_model()
        elif kind == PLAY_INFO_TUNER:
            self.tuner_play_info = await self.client.get_tuner_play_info_model()

    def _active_play_info_types(self) -> list[str]:
        kinds = {z.play_info_type for z in self.zones.values()}
        return [k for k in (PLAY_INFO_NETUSB, PLAY_INFO_CD, PLAY_INFO_TUNER) if k in kinds]

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Apply a UDP push event and re-fetch whatever it flags as stale."""
        _LOGGER.debug("%s: event %s", self.device_id, event)
        refetch_zones: list[str] = []
        for zone_id, zone in self.zones.items():
            part = event.get(zone_id)
            if not isinstance(part, dict):
                continue
            zone.merge_status({k: v for k, v in part.items() if not k.endswith("_updated")})
            if part.get("status_updated"):
                refetch_zones.append(zone_id)

        netusb = event.get("netusb") or {}
        if "play_time" in netusb and self.net_play_info is not None:
            self.net_play_info = self.net_play_info.model_copy(update={"play_time": netusb["play_time"]})
        self._changed()

        try:
            for zone_id in refetch_zones:
                await self._fetch_status(zone_id)
            if netusb.get("play_info_updated"):
                await self._fetch_play_info(PLAY_INFO_NETUSB)
            if (event.get("cd") or {}).get("play_info_updated"):
                await self._fetch_play_info(PLAY_INFO_CD)
            if (event.get("tuner") or {}).get("play_info_updated"):
                await self._fetch_play_info(PLAY_INFO_TUNER)
            if (event.get("dist") or {}).get("dist_info_updated"):
                self.distribution_info = await self.client.get_distribution_info_model()
        except MusicCastError as err:
            _LOGGER.error("%s: error refreshing after event: %s", self.device_id, err)
        self._changed()

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self)
