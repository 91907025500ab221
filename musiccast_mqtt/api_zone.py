"""Zone control helpers for the MusicCast HTTP client.

Every call addresses one zone slot (``main``, ``zone2`` …).  This mix-in must
be inherited **before** the base client in the final MRO.
"""

from __future__ import annotations

from typing import Any

from .const import (
    API_ENDPOINT_INPUT,
    API_ENDPOINT_MUTE,
    API_ENDPOINT_POWER,
    API_ENDPOINT_SLEEP,
    API_ENDPOINT_SOUND_PROGRAM,
    API_ENDPOINT_VOLUME,
    API_ENDPOINT_ZONE_STATUS,
    SLEEP_STEPS,
)
from .models import ZoneStatus


def sleep_bucket(minutes: float) -> int:
    """Round *minutes* down to the nearest supported sleep timer value."""
    bucket = SLEEP_STEPS[0]
    for step in SLEEP_STEPS:
        if minutes >= step:
            bucket = step
    return bucket


class ZoneAPI:  # mix-in – must be left of base client in MRO
    """Power, volume, input and sound program per zone."""

    # pylint: disable=no-member

    async def get_zone_status(self, zone: str) -> dict[str, Any]:
        return await self._get(API_ENDPOINT_ZONE_STATUS.format(zone=zone))  # type: ignore[attr-defined]

    async def get_zone_status_model(self, zone: str) -> ZoneStatus:
        return ZoneStatus.model_validate(await self.get_zone_status(zone))

    async def set_power(self, zone: str, on: bool) -> None:
        state = "on" if on else "standby"
        await self._get(f"{API_ENDPOINT_POWER.format(zone=zone)}{state}")  # type: ignore[attr-defined]

    async def set_sleep(self, zone: str, minutes: float) -> None:
        """Set the sleep timer; the device only accepts 0/30/60/90/120."""
        await self._get(f"{API_ENDPOINT_SLEEP.format(zone=zone)}{sleep_bucket(minutes)}")  # type: ignore[attr-defined]

    async def set_volume(self, zone: str, level: int) -> None:
        """Set absolute *device* volume (not percent)."""
        await self._get(f"{API_ENDPOINT_VOLUME.format(zone=zone)}{int(level)}")  # type: ignore[attr-defined]

    async def set_mute(self, zone: str, enable: bool) -> None:
        await self._get(f"{API_ENDPOINT_MUTE.format(zone=zone)}{'true' if enable else 'false'}")  # type: ignore[attr-defined]

    async def set_input(self, zone: str, input_id: str) -> None:
        await self._get(f"{API_ENDPOINT_INPUT.format(zone=zone)}{input_id}")  # type: ignore[attr-defined]

    async def set_sound_program(self, zone: str, program: str) -> None:
        await self._get(f"{API_ENDPOINT_SOUND_PROGRAM.format(zone=zone)}{program}")  # type: ignore[attr-defined]
