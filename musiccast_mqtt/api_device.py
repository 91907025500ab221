"""System information helpers for the MusicCast HTTP client.

Contains only low-level calls for static device information.  All networking
is provided by the base client (`api_base.MusicCastClient`).
"""

from __future__ import annotations

from typing import Any

from .const import (
    API_ENDPOINT_DEVICE_INFO,
    API_ENDPOINT_FEATURES,
    API_ENDPOINT_NAME_TEXT,
    API_ENDPOINT_NETWORK_STATUS,
    API_ENDPOINT_STEREO_PAIR_INFO,
)
from .models import DeviceInfo, Features, NameText, NetworkStatus, StereoPairInfo


class DeviceAPI:  # mixin – must appear *before* the base client in MRO
    """Device-information helpers used during start-up and polling."""

    # The mixin relies on the base client providing `_get`.

    async def get_device_info(self) -> dict[str, Any]:
        return await self._get(API_ENDPOINT_DEVICE_INFO)  # type: ignore[attr-defined]

    async def get_device_info_model(self) -> DeviceInfo:
        """Return a pydantic-validated :class:`DeviceInfo`."""
        return DeviceInfo.model_validate(await self.get_device_info())

    async def get_features(self) -> dict[str, Any]:
        return await self._get(API_ENDPOINT_FEATURES)  # type: ignore[attr-defined]

    async def get_features_model(self) -> Features:
        return Features.model_validate(await self.get_features())

    async def get_network_status_model(self) -> NetworkStatus:
        return NetworkStatus.model_validate(await self._get(API_ENDPOINT_NETWORK_STATUS))  # type: ignore[attr-defined]

    async def get_name_text_model(self) -> NameText:
        return NameText.model_validate(await self._get(API_ENDPOINT_NAME_TEXT))  # type: ignore[attr-defined]

    async def get_stereo_pair_info_model(self) -> StereoPairInfo:
        """Return stereo pair status; devices without pairing support answer empty."""
        return StereoPairInfo.model_validate(await self._get(API_ENDPOINT_STEREO_PAIR_INFO))  # type: ignore[attr-defined]
