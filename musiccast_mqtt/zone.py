"""Zone entity.

A zone is one independently addressable output slot of a device (``main``,
``zone2`` …).  It holds the raw status reported by the device, translates it
for publishing and forwards control commands to the device's API client.

The link fields (role, server, clients) are *not* stored on the zone: the
registry recomputes an immutable :class:`~musiccast_mqtt.zone_state.ZoneView`
on every refresh and the properties below resolve its zone keys on demand.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from .const import (
    PLAY_INFO_CD,
    PLAY_INFO_NETUSB,
    PLAY_INFO_NONE,
    PLAY_INFO_TUNER,
    ROLE_NONE,
    ZONE_MAIN,
)
from .models import RangeStep, ZoneFeatures
from .zone_state import PlayerView, StatusView, ZoneView, zone_key

if TYPE_CHECKING:
    from .device import Device

_LOGGER = logging.getLogger(__name__)

_NO_PLAYTIME = -60000


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> int:
    return int(max(low, min(high, value)))


class Zone:
    """One zone of a MusicCast device."""

    def __init__(self, device: Device, features: ZoneFeatures) -> None:
        self._device = device
        self._features = features
        self.status: dict[str, Any] = {}
        self.view: ZoneView = ZoneView()
        self.published: dict[str, Any] | None = None

    def __repr__(self) -> str:
        return f"<Zone {self.key} role={self.view.role}>"

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def device(self) -> Device:
        return self._device

    @property
    def features(self) -> ZoneFeatures:
        return self._features

    @property
    def zone_id(self) -> str:
        return self._features.id

    @property
    def key(self) -> str:
        """Stable registry key, independent of friendly-name settings."""
        return zone_key(self._device.device_id, self.zone_id)

    @property
    def name(self) -> str:
        """Human readable room name, used for group names."""
        if self.zone_id == ZONE_MAIN:
            return self._device.display_id
        return self._device.zone_names.get(self.zone_id) or f"{self._device.display_id}-{self.zone_id}"

    @property
    def id(self) -> str:
        """Id used in MQTT topics and in client lists."""
        if self.zone_id == ZONE_MAIN:
            return self._device.display_id
        if self._device.options.zone_friendly_names and self._device.zone_names.get(self.zone_id):
            return self._device.zone_names[self.zone_id]
        return f"{self._device.display_id}-{self.zone_id}"

    # ------------------------------------------------------------------
    # Link state (resolved through the registry)
    # ------------------------------------------------------------------

    @property
    def role(self) -> str:
        return self.view.role or ROLE_NONE

    @property
    def linked_server(self) -> Zone | None:
        if self.view.server is None or self._device.registry is None:
            return None
        return self._device.registry.get_zone_by_key(self.view.server)

    @property
    def linked_clients(self) -> list[Zone]:
        registry = self._device.registry
        if registry is None:
            return []
        zones = (registry.get_zone_by_key(key) for key in self.view.clients)
        return [z for z in zones if z is not None]

    # ------------------------------------------------------------------
    # Status translation
    # ------------------------------------------------------------------

    @property
    def raw_input(self) -> str | None:
        return self.status.get("input")

    @property
    def play_info_type(self) -> str:
        return self._device.input_play_info_types.get(self.raw_input or "", PLAY_INFO_NONE)

    def merge_status(self, status: dict[str, Any]) -> None:
        self.status = {**self.status, **status}

    def _volume_range(self) -> RangeStep | None:
        return self._features.volume_range

    def volume_percent(self) -> int | None:
        raw = self.status.get("volume")
        rng = self._volume_range()
        if raw is None or rng is None or rng.max == rng.min:
            return None
        return _round_half_up(raw / (rng.max - rng.min) * 100)

    def status_view(self) -> StatusView:
        """Return status ready for publishing (friendly names, percent volume)."""
        device = self._device
        inp = self.raw_input
        if inp is not None and device.options.input_friendly_names:
            inp = device.input_names.get(inp, inp)
        program = self.status.get("sound_program")
        if program is not None and device.options.soundprogram_friendly_names:
            program = device.sound_program_names.get(program, program)
        return StatusView(
            power=self.status.get("power"),
            input=inp,
            volume=self.volume_percent(),
            mute=self.status.get("mute"),
            soundprogram=program,
        )

    def player_view(self) -> PlayerView:
        """Build the ``player/*`` fields from the play info matching the current input."""
        device = self._device
        kind = self.play_info_type
        playtime: int | None = _NO_PLAYTIME
        totaltime: int | None = 0
        if kind == PLAY_INFO_NETUSB and device.net_play_info is not None:
            info = device.net_play_info
            art = f"http://{device.ip}{info.albumart_url}" if info.albumart_url else ""
            view = PlayerView(
                playback=info.playback or "",
                title=info.track or "",
                artist=info.artist or "",
                album=info.album or "",
                albumarturl=art,
            )
            playtime, totaltime = info.play_time, info.total_time
        elif kind == PLAY_INFO_CD and device.cd_play_info is not None:
            info_cd = device.cd_play_info
            view = PlayerView(
                playback=info_cd.playback or "",
                title=info_cd.track or "",
                artist=info_cd.artist or "",
                album=info_cd.album or "",
            )
            playtime, totaltime = info_cd.play_time, info_cd.total_time
        elif kind == PLAY_INFO_TUNER and device.tuner_play_info is not None:
            title, artist = self._tuner_text()
            view = PlayerView(title=title, artist=artist)
        else:
            return PlayerView()

        return PlayerView(
            playback=view.playback,
            title=view.title,
            artist=view.artist,
            album=view.album,
            albumarturl=view.albumarturl,
            playtime=playtime if playtime not in (None, _NO_PLAYTIME) else "",
            totaltime=totaltime if totaltime else "",
        )

    def _tuner_text(self) -> tuple[str, str]:
        info = self._device.tuner_play_info
        if info is None:
            return "", ""
        if info.band == "am" and info.am is not None:
            return _str(info.am.freq), _str(info.am.preset)
        if info.band == "fm":
            if info.rds is not None:
                return info.rds.radio_text_a or "", info.rds.radio_text_b or ""
            if info.fm is not None:
                return _str(info.fm.freq), _str(info.fm.preset)
        if info.band == "dab" and info.dab is not None:
            return info.dab.ensemble_label or "", info.dab.dls or ""
        return "", ""

    def features_payload(self) -> list[tuple[str, list[str]]]:
        """Return the ``features/*`` topics of this zone."""
        device = self._device
        inputs = list(self._features.input_list)
        if device.options.input_friendly_names:
            inputs = [device.input_names.get(i, i) for i in inputs]
        out = [("features/input", inputs)]
        if self._features.sound_program_list:
            programs = list(self._features.sound_program_list)
            if device.options.soundprogram_friendly_names:
                programs = [device.sound_program_names.get(p, p) for p in programs]
            out.append(("features/soundprogram", programs))
        return out

    # ------------------------------------------------------------------
    # Basic commands
    # ------------------------------------------------------------------

    async def power(self, on: bool) -> None:
        await self._device.client.set_power(self.zone_id, on)

    async def sleep(self, minutes: float) -> None:
        await self._device.client.set_sleep(self.zone_id, minutes)

    async def set_input(self, input_id: str) -> None:
        """Select *input_id* (friendly name when input friendly names are enabled)."""
        device = self._device
        if device.options.input_friendly_names:
            input_id = device.input_by_name.get(input_id, input_id)
        if input_id not in self._features.input_list:
            _LOGGER.warning(
                "Unknown input %r for %s zone %s, expected one of %s",
                input_id,
                device.device_id,
                self.zone_id,
                self._features.input_list,
            )
            return
        await device.client.set_input(self.zone_id, input_id)

    async def set_soundprogram(self, program: str) -> None:
        device = self._device
        if device.options.soundprogram_friendly_names:
            program = device.sound_program_by_name.get(program, program)
        if program not in self._features.sound_program_list:
            _LOGGER.warning("Unknown sound program %r for %s zone %s", program, device.device_id, self.zone_id)
            return
        await device.client.set_sound_program(self.zone_id, program)

    async def mute(self, enable: bool) -> None:
        await self._device.client.set_mute(self.zone_id, enable)

    # ------------------------------------------------------------------
    # Volume
    # ------------------------------------------------------------------

    async def set_volume(self, percent: float) -> None:
        """Set volume in percent of the zone's device range."""
        rng = self._volume_range()
        if rng is None:
            _LOGGER.warning("Zone %s has no volume range", self.key)
            return
        level = _round_half_up(percent / 100 * (rng.max - rng.min))
        await self._device.client.set_volume(self.zone_id, _clamp(level, rng.min, rng.max))

    async def volume_up(self) -> None:
        await self._step_volume(1)

    async def volume_down(self) -> None:
        await self._step_volume(-1)

    async def _step_volume(self, direction: int) -> None:
        rng = self._volume_range()
        current = self.status.get("volume")
        if rng is None or current is None:
            _LOGGER.warning("Cannot step volume of %s without a known volume", self.key)
            return
        level = current + direction * rng.step
        await self._device.client.set_volume(self.zone_id, _clamp(level, rng.min, rng.max))

    # ------------------------------------------------------------------
    # Player commands, routed by the play info type of the current input
    # ------------------------------------------------------------------

    async def play(self) -> None:
        await self._playback("play")

    async def pause(self) -> None:
        await self._playback("pause")

    async def stop(self) -> None:
        await self._playback("stop")

    async def next(self) -> None:
        await self._playback("next")

    async def previous(self) -> None:
        await self._playback("previous")

    async def _playback(self, action: str) -> None:
        client = self._device.client
        kind = self.play_info_type
        if kind == PLAY_INFO_NETUSB:
            await client.set_net_playback(action)
        elif kind == PLAY_INFO_CD:
            await client.set_cd_playback(action)
        elif kind == PLAY_INFO_TUNER and action in ("next", "previous"):
            await client.switch_tuner_preset(action)
        else:
            _LOGGER.warning("Cannot %s on %s with input %s", action, self.key, self.raw_input)

    async def play_position(self, position: int) -> None:
        if self.play_info_type != PLAY_INFO_NETUSB:
            _LOGGER.warning("Cannot set play position on %s with input %s", self.key, self.raw_input)
            return
        await self._device.client.set_net_play_position(position)

    async def set_repeat(self, mode: str) -> None:
        kind = self.play_info_type
        if kind == PLAY_INFO_NETUSB:
            await self._device.client.set_net_repeat(mode)
        elif kind == PLAY_INFO_CD:
            await self._device.client.set_cd_repeat(mode)
        else:
            _LOGGER.warning("Cannot set repeat on %s with input %s", self.key, self.raw_input)

    async def set_shuffle(self, mode: str) -> None:
        kind = self.play_info_type
        if kind == PLAY_INFO_NETUSB:
            await self._device.client.set_net_shuffle(mode)
        elif kind == PLAY_INFO_CD:
            await self._device.client.set_cd_shuffle(mode)
        else:
            _LOGGER.warning("Cannot set shuffle on %s with input %s", self.key, self.raw_input)

    async def toggle_repeat(self) -> None:
        kind = self.play_info_type
        if kind == PLAY_INFO_NETUSB:
            await self._device.client.toggle_net_repeat()
        elif kind == PLAY_INFO_CD:
            await self._device.client.toggle_cd_repeat()
        else:
            _LOGGER.warning("Cannot toggle repeat on %s with input %s", self.key, self.raw_input)

    async def toggle_shuffle(self) -> None:
        kind = self.play_info_type
        if kind == PLAY_INFO_NETUSB:
            await self._device.client.toggle_net_shuffle()
        elif kind == PLAY_INFO_CD:
            await self._device.client.toggle_cd_shuffle()
        else:
            _LOGGER.warning("Cannot toggle shuffle on %s with input %s", self.key, self.raw_input)

    async def recall_preset(self, num: int) -> None:
        await self._device.client.recall_preset(self.zone_id, num)


def _str(value: Any) -> str:
    return "" if value is None else str(value)
