"""Typed Pydantic models for MusicCast API payloads.

- Only fields used by the bridge are declared; everything else is kept as extra.
- Field names match the Yamaha Extended Control payload keys.
- Helpers that interpret a payload (empty group id, stereo-pair slave, volume
  range) live on the model that owns the data.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .const import GROUP_ID_EMPTY, PLAY_INFO_NONE, ROLE_NONE, ZONE_MAIN

__all__ = [
    "DeviceInfo",
    "NetworkStatus",
    "RangeStep",
    "ZoneFeatures",
    "SystemInput",
    "Features",
    "ZoneStatus",
    "LinkedClient",
    "DistributionInfo",
    "StereoPairInfo",
    "NameTextEntry",
    "NameText",
    "NetPlayInfo",
    "CdPlayInfo",
    "TunerPlayInfo",
]


class _MusicCastBase(BaseModel):
    """Base class with permissive extra handling for firmware differences."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class DeviceInfo(_MusicCastBase):
    """Subset of */system/getDeviceInfo*."""

    device_id: str
    model_name: str | None = None
    system_version: float | None = None
    api_version: float | None = None


class NetworkStatus(_MusicCastBase):
    network_name: str | None = None


class RangeStep(_MusicCastBase):
    id: str
    min: float = 0
    max: float = 0
    step: float = 1


class ZoneFeatures(_MusicCastBase):
    """Capabilities of one zone as reported by */system/getFeatures*."""

    id: str
    func_list: list[str] = Field(default_factory=list)
    input_list: list[str] = Field(default_factory=list)
    sound_program_list: list[str] = Field(default_factory=list)
    range_step: list[RangeStep] = Field(default_factory=list)

    @property
    def volume_range(self) -> RangeStep | None:
        """Return the ``volume`` range entry, if the zone has one."""
        return next((r for r in self.range_step if r.id == "volume"), None)


class SystemInput(_MusicCastBase):
    id: str
    distribution_enable: bool = False
    play_info_type: str = PLAY_INFO_NONE


class _SystemFeatures(_MusicCastBase):
    func_list: list[str] = Field(default_factory=list)
    zone_num: int | None = None
    input_list: list[SystemInput] = Field(default_factory=list)


class Features(_MusicCastBase):
    system: _SystemFeatures = Field(default_factory=_SystemFeatures)
    zone: list[ZoneFeatures] = Field(default_factory=list)

    def input_play_info_types(self) -> dict[str, str]:
        """Map input id -> play info type (netusb, cd, tuner, none)."""
        return {inp.id: inp.play_info_type for inp in self.system.input_list}


class ZoneStatus(_MusicCastBase):
    """Subset of */{zone}/getStatus*."""

    power: str | None = None
    input: str | None = None
    volume: int | None = None
    mute: bool | None = None
    sound_program: str | None = None
    sleep: int | None = None


class LinkedClient(_MusicCastBase):
    ip_address: str


class DistributionInfo(_MusicCastBase):
    """Subset of */dist/getDistributionInfo*.

    ``server_zone`` defaults to ``main``: older firmware omits it and the
    device then implicitly distributes its main zone.
    """

    group_id: str = ""
    group_name: str = ""
    role: str = ROLE_NONE
    status: str | None = None
    server_zone: str = ZONE_MAIN
    client_list: list[LinkedClient] = Field(default_factory=list)

    @property
    def is_group_id_empty(self) -> bool:
        return self.group_id in ("", GROUP_ID_EMPTY)

    @property
    def client_ips(self) -> list[str]:
        return [c.ip_address for c in self.client_list]


class _PairInfo(_MusicCastBase):
    alive: str | None = None
    ip_address: str | None = None
    mac_address: str | None = None


class StereoPairInfo(_MusicCastBase):
    status: str | None = None
    pair_info: _PairInfo | None = None

    @property
    def is_slave(self) -> bool:
        """Return True for the secondary unit of a stereo pair."""
        return bool(self.status) and self.status.lower().startswith("slave")


class NameTextEntry(_MusicCastBase):
    id: str
    text: str = ""


class NameText(_MusicCastBase):
    """Friendly names for zones, inputs and sound programs."""

    zone_list: list[NameTextEntry] = Field(default_factory=list)
    input_list: list[NameTextEntry] = Field(default_factory=list)
    sound_program_list: list[NameTextEntry] = Field(default_factory=list)


class NetPlayInfo(_MusicCastBase):
    input: str | None = None
    playback: str | None = None
    repeat: str | None = None
    shuffle: str | None = None
    play_time: int | None = None
    total_time: int | None = None
    artist: str | None = None
    album: str | None = None
    track: str | None = None
    albumart_url: str | None = None


class CdPlayInfo(_MusicCastBase):
    playback: str | None = None
    repeat: str | None = None
    shuffle: str | None = None
    play_time: int | None = None
    total_time: int | None = None
    artist: str | None = None
    album: str | None = None
    track: str | None = None


class _TunerBand(_MusicCastBase):
    preset: int | None = None
    freq: int | None = None


class _TunerRds(_MusicCastBase):
    program_service: str | None = None
    radio_text_a: str | None = None
    radio_text_b: str | None = None


class _TunerDab(_MusicCastBase):
    preset: int | None = None
    ensemble_label: str | None = None
    service_label: str | None = None
    dls: str | None = None


class TunerPlayInfo(_MusicCastBase):
    band: str | None = None
    am: _TunerBand | None = None
    fm: _TunerBand | None = None
    rds: _TunerRds | None = None
    dab: _TunerDab | None = None
