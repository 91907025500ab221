"""Playback helpers (Net/USB, CD, tuner) for the MusicCast HTTP client.

Playback is addressed per *source* rather than per zone: a zone playing the
``server`` input is controlled through ``/netusb``, a zone playing ``cd``
through ``/cd``.  The zone entity decides which family to call.
"""

from __future__ import annotations

import logging
from typing import Any

from .const import (
    API_ENDPOINT_CD_PLAY_INFO,
    API_ENDPOINT_CD_PLAYBACK,
    API_ENDPOINT_CD_REPEAT,
    API_ENDPOINT_CD_SHUFFLE,
    API_ENDPOINT_CD_TOGGLE_REPEAT,
    API_ENDPOINT_CD_TOGGLE_SHUFFLE,
    API_ENDPOINT_NET_PLAY_INFO,
    API_ENDPOINT_NET_PLAY_POSITION,
    API_ENDPOINT_NET_PLAYBACK,
    API_ENDPOINT_NET_RECALL_PRESET,
    API_ENDPOINT_NET_REPEAT,
    API_ENDPOINT_NET_SHUFFLE,
    API_ENDPOINT_NET_TOGGLE_REPEAT,
    API_ENDPOINT_NET_TOGGLE_SHUFFLE,
    API_ENDPOINT_TUNER_PLAY_INFO,
    API_ENDPOINT_TUNER_SWITCH_PRESET,
)
from .models import CdPlayInfo, NetPlayInfo, TunerPlayInfo

_LOGGER = logging.getLogger(__name__)

# Short aliases accepted by setPlayback
_PLAYBACK_ALIASES = {
    "frw_start": "fast_reverse_start",
    "frw_end": "fast_reverse_end",
    "ffw_start": "fast_forward_start",
    "ffw_end": "fast_forward_end",
}


def _playback_value(value: str | None) -> str:
    if not value:
        return "play"
    return _PLAYBACK_ALIASES.get(value, value)


class PlaybackAPI:  # mix-in – must be left of base client in MRO
    """Transport controls for network, CD and tuner sources."""

    # pylint: disable=no-member

    # ------------------------------------------------------------------
    # Net/USB
    # ------------------------------------------------------------------

    async def get_net_play_info(self) -> dict[str, Any]:
        return await self._get(API_ENDPOINT_NET_PLAY_INFO)  # type: ignore[attr-defined]

    async def get_net_play_info_model(self) -> NetPlayInfo:
        return NetPlayInfo.model_validate(await self.get_net_play_info())

    async def set_net_playback(self, playback: str | None) -> None:
        await self._get(f"{API_ENDPOINT_NET_PLAYBACK}{_playback_value(playback)}")  # type: ignore[attr-defined]

    async def set_net_repeat(self, mode: str) -> None:
        await self._get(f"{API_ENDPOINT_NET_REPEAT}{mode}")  # type: ignore[attr-defined]

    async def set_net_shuffle(self, mode: str) -> None:
        await self._get(f"{API_ENDPOINT_NET_SHUFFLE}{mode}")  # type: ignore[attr-defined]

    async def toggle_net_repeat(self) -> None:
        await self._get(API_ENDPOINT_NET_TOGGLE_REPEAT)  # type: ignore[attr-defined]

    async def toggle_net_shuffle(self) -> None:
        await self._get(API_ENDPOINT_NET_TOGGLE_SHUFFLE)  # type: ignore[attr-defined]

    async def recall_preset(self, zone: str, num: int) -> None:
        """Recall net/usb preset *num* into *zone* (presets start at 1)."""
        num = int(num) if num else 1
        await self._get(API_ENDPOINT_NET_RECALL_PRESET.format(zone=zone, num=num))  # type: ignore[attr-defined]

    async def set_net_play_position(self, position: int) -> None:
        """Seek to *position* seconds."""
        await self._get(f"{API_ENDPOINT_NET_PLAY_POSITION}{int(position)}")  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # CD
    # ------------------------------------------------------------------

    async def get_cd_play_info(self) -> dict[str, Any]:
        return await self._get(API_ENDPOINT_CD_PLAY_INFO)  # type: ignore[attr-defined]

    async def get_cd_play_info_model(self) -> CdPlayInfo:
        return CdPlayInfo.model_validate(await self.get_cd_play_info())

    async def set_cd_playback(self, playback: str | None) -> None:
        await self._get(f"{API_ENDPOINT_CD_PLAYBACK}{_playback_value(playback)}")  # type: ignore[attr-defined]

    async def set_cd_repeat(self, mode: str) -> None:
        await self._get(f"{API_ENDPOINT_CD_REPEAT}{mode}")  # type: ignore[attr-defined]

    async def set_cd_shuffle(self, mode: str) -> None:
        await self._get(f"{API_ENDPOINT_CD_SHUFFLE}{mode}")  # type: ignore[attr-defined]

    async def toggle_cd_repeat(self) -> None:
        await self._get(API_ENDPOINT_CD_TOGGLE_REPEAT)  # type: ignore[attr-defined]

    async def toggle_cd_shuffle(self) -> None:
        await self._get(API_ENDPOINT_CD_TOGGLE_SHUFFLE)  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Tuner
    # ------------------------------------------------------------------

    async def get_tuner_play_info(self) -> dict[str, Any]:
        return await self._get(API_ENDPOINT_TUNER_PLAY_INFO)  # type: ignore[attr-defined]

    async def get_tuner_play_info_model(self) -> TunerPlayInfo:
        return TunerPlayInfo.model_validate(await self.get_tuner_play_info())

    async def switch_tuner_preset(self, direction: str) -> None:
        """Step through tuner presets; *direction* is ``next`` or ``previous``."""
        if direction not in ("next", "previous"):
            _LOGGER.warning("Invalid tuner preset direction %r", direction)
            return
        await self._get(f"{API_ENDPOINT_TUNER_SWITCH_PRESET}{direction}")  # type: ignore[attr-defined]
