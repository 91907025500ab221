"""MusicCast HTTP API core client.

Transport layer for the Yamaha Extended Control API.  High-level helpers for
zones, playback, system information and distribution live in the ``api_*``
mix-ins and are combined in :mod:`musiccast_mqtt.api`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp
import async_timeout
from aiohttp import ClientSession

from .const import (
    API_BASE_PATH,
    APP_NAME,
    DEFAULT_RESPONSE_DELAY,
    DEFAULT_TIMEOUT,
    DEFAULT_UDP_PORT,
    HEADER_APP_NAME,
    HEADER_APP_PORT,
    RESPONSE_CODES,
)

_LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------


class MusicCastError(Exception):
    """Base exception for all MusicCast API errors."""


class MusicCastRequestError(MusicCastError):
    """Raised when there is an error communicating with a MusicCast device."""

    def __init__(
        self,
        message: str,
        host: str | None = None,
        endpoint: str | None = None,
        last_error: Exception | None = None,
    ) -> None:
        self.host = host
        self.endpoint = endpoint
        self.last_error = last_error
        super().__init__(message)

    def __str__(self) -> str:
        """Enhanced string representation with context."""
        context_parts = []
        if self.host:
            context_parts.append(f"host={self.host}")
        if self.endpoint:
            context_parts.append(f"endpoint={self.endpoint}")
        if context_parts:
            return f"{super().__str__()} ({', '.join(context_parts)})"
        return super().__str__()


class MusicCastTimeoutError(MusicCastRequestError):
    """Raised when a request to a MusicCast device times out."""


class MusicCastConnectionError(MusicCastRequestError):
    """Raised on network-level connectivity problems (refused, unreachable, …)."""


class MusicCastResponseError(MusicCastError):
    """Raised when the device answers with a non-zero ``response_code``."""

    def __init__(self, response_code: int, host: str | None = None, endpoint: str | None = None) -> None:
        self.response_code = response_code
        self.code_name = RESPONSE_CODES.get(response_code, "Unknown")
        self.host = host
        self.endpoint = endpoint
        super().__init__(f"response_code {response_code} - {self.code_name}")

    def __str__(self) -> str:
        base = super().__str__()
        if self.endpoint:
            return f"{base} (host={self.host}, endpoint={self.endpoint})"
        return base


class MusicCastInvalidDataError(MusicCastError):
    """The device responded with malformed or non-JSON data."""


# -----------------------------------------------------------------------------
# MusicCast HTTP client – transport only
# -----------------------------------------------------------------------------


class MusicCastClient:
    """Minimal MusicCast HTTP API client – request/response handling only."""

    # ------------------------------------------------------------------
    # Lifecycle ---------------------------------------------------------
    # ------------------------------------------------------------------

    def __init__(
        self,
        host: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: ClientSession | None = None,
        udp_port: int = DEFAULT_UDP_PORT,
        response_delay: float = DEFAULT_RESPONSE_DELAY,
    ) -> None:
        """Instantiate the client.

        Args:
            host: Device hostname or IP.
            timeout: Network timeout per request (seconds).
            session: Optional shared *aiohttp* session.
            udp_port: Port announced via ``X-AppPort`` so the device pushes
                UDP events to this host.
            response_delay: Seconds to wait after every POST before the
                device is addressed again.
        """
        self._host = host
        self.timeout = timeout
        self.udp_port = udp_port
        self.response_delay = response_delay
        self._session = session
        self._owns_session = session is None
        self._endpoint = f"http://{host}{API_BASE_PATH}"
        self._headers = {HEADER_APP_NAME: APP_NAME, HEADER_APP_PORT: str(udp_port)}

    # ------------------------------------------------------------------
    # Request helpers ---------------------------------------------------
    # ------------------------------------------------------------------

    async def _request(self, endpoint: str, method: str = "GET", **kwargs: Any) -> dict[str, Any]:
        """Perform a request and return the JSON body without ``response_code``.

        Raises:
            MusicCastTimeoutError: the request exceeded ``timeout``.
            MusicCastConnectionError: the device could not be reached.
            MusicCastInvalidDataError: the body was not a JSON object.
            MusicCastResponseError: the device reported a non-zero response code.
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True

        kwargs.setdefault("headers", self._headers)
        url = f"{self._endpoint}{endpoint}"
        _LOGGER.debug("%s %s %s", method, url, kwargs.get("json", ""))

        try:
            async with async_timeout.timeout(self.timeout):
                resp = await self._session.request(method, url, **kwargs)
                async with resp:
                    resp.raise_for_status()
                    text = await resp.text()
        except asyncio.TimeoutError as err:
            raise MusicCastTimeoutError(
                f"Request timed out after {self.timeout}s", host=self._host, endpoint=endpoint, last_error=err
            ) from err
        except aiohttp.ClientError as err:
            raise MusicCastConnectionError(
                f"Request failed: {err}", host=self._host, endpoint=endpoint, last_error=err
            ) from err

        try:
            body = json.loads(text)
        except json.JSONDecodeError as err:
            raise MusicCastInvalidDataError(f"Invalid JSON from {self._host}{endpoint}: {text[:100]}") from err
        if not isinstance(body, dict):
            raise MusicCastInvalidDataError(f"Unexpected payload from {self._host}{endpoint}: {body!r}")

        code = body.pop("response_code", 0)
        if code != 0:
            err = MusicCastResponseError(code, host=self._host, endpoint=endpoint)
            _LOGGER.error(
                "Device %s answered %s with response code %s - %s",
                self._host,
                endpoint,
                err.response_code,
                err.code_name,
            )
            raise err
        return body

    async def _get(self, endpoint: str) -> dict[str, Any]:
        return await self._request(endpoint)

    async def _post(self, endpoint: str, data: dict[str, Any]) -> dict[str, Any]:
        """POST *data* as JSON, then give the device time to settle."""
        try:
            return await self._request(endpoint, method="POST", json=data)
        finally:
            if self.response_delay > 0:
                await asyncio.sleep(self.response_delay)

    # ------------------------------------------------------------------
    # Public helpers ----------------------------------------------------
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying *aiohttp* session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    @property
    def base_url(self) -> str:  # noqa: D401 – property, not a method.
        """Base URL every endpoint is appended to."""
        return self._endpoint

    @property
    def host(self) -> str:  # noqa: D401 – property, not a method.
        """Host address (IP or hostname)."""
        return self._host
