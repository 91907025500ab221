"""MusicCast API modular façade.

Composes the ``api_*`` mix-ins with the transport client from
``api_base.py`` so callers import a single :class:`MusicCastClient`.
"""

from __future__ import annotations

from .api_base import (
    MusicCastClient as _BaseClient,
)
from .api_base import (
    MusicCastConnectionError,
    MusicCastError,
    MusicCastInvalidDataError,
    MusicCastRequestError,
    MusicCastResponseError,
    MusicCastTimeoutError,
)
from .api_device import DeviceAPI
from .api_group import GroupAPI
from .api_playback import PlaybackAPI
from .api_zone import ZoneAPI

# Order is important: mixins first, base client last so its `__init__` is
# called exactly once via Python's MRO.


class MusicCastClient(
    ZoneAPI,
    PlaybackAPI,
    DeviceAPI,
    GroupAPI,
    _BaseClient,
):
    """Aggregated MusicCast HTTP API client."""


__all__ = [
    "MusicCastClient",
    "MusicCastError",
    "MusicCastRequestError",
    "MusicCastResponseError",
    "MusicCastTimeoutError",
    "MusicCastConnectionError",
    "MusicCastInvalidDataError",
]
