"""Link (distribution) helpers for the MusicCast HTTP client.

All networking is delegated to the base client.  These wrappers are thin on
purpose: the group manager decides *which* calls to issue and in what order,
and re-reads :meth:`get_distribution_info` afterwards instead of trusting the
write calls.
"""

from __future__ import annotations

from typing import Any

from .const import (
    API_ENDPOINT_DIST_CLIENT_INFO,
    API_ENDPOINT_DIST_GROUP_NAME,
    API_ENDPOINT_DIST_INFO,
    API_ENDPOINT_DIST_SERVER_INFO,
    API_ENDPOINT_DIST_START,
    API_ENDPOINT_DIST_STOP,
)
from .models import DistributionInfo


class GroupAPI:  # mix-in – must precede base client in MRO
    """Wrappers for the ``/dist`` endpoints."""

    # pylint: disable=no-member

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def get_distribution_info(self) -> dict[str, Any]:
        return await self._get(API_ENDPOINT_DIST_INFO)  # type: ignore[attr-defined]

    async def get_distribution_info_model(self) -> DistributionInfo:
        """Return :class:`DistributionInfo` parsed by *pydantic*."""
        return DistributionInfo.model_validate(await self.get_distribution_info())

    # ------------------------------------------------------------------
    # Group operations
    # ------------------------------------------------------------------

    async def set_server_info(self, group_id: str, zone: str, type_: str, client_list: list[str]) -> None:
        """Add or remove client device IPs on the distributing server."""
        payload = {"group_id": group_id, "zone": zone, "type": type_, "client_list": client_list}
        await self._post(API_ENDPOINT_DIST_SERVER_INFO, payload)  # type: ignore[attr-defined]

    async def set_client_info(self, group_id: str, zones: list[str], server_ip: str | None = None) -> None:
        """Join *zones* to *group_id* (or leave, when *group_id* is empty)."""
        payload: dict[str, Any] = {"group_id": group_id, "zone": zones}
        if server_ip is not None:
            payload["server_ip_address"] = server_ip
        await self._post(API_ENDPOINT_DIST_CLIENT_INFO, payload)  # type: ignore[attr-defined]

    async def start_distribution(self, num: int) -> None:
        """Start distribution: 0 = new group, 1 = clients added, 2 = clients removed."""
        await self._get(f"{API_ENDPOINT_DIST_START}{num}")  # type: ignore[attr-defined]

    async def stop_distribution(self) -> None:
        await self._get(API_ENDPOINT_DIST_STOP)  # type: ignore[attr-defined]

    async def set_group_name(self, name: str) -> None:
        await self._post(API_ENDPOINT_DIST_GROUP_NAME, {"name": name})  # type: ignore[attr-defined]
