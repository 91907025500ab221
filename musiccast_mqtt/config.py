"""Configuration loading for the bridge.

Values are merged from four layers, later layers winning:

1. built-in defaults
2. an optional JSON file given with ``--config``
3. ``MUSICCAST2MQTT_*`` environment variables
4. command line flags

The merged mapping is validated with a voluptuous schema and frozen into a
:class:`BridgeConfig`.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

import voluptuous as vol

from .const import (
    CONF_BROKER_URL,
    CONF_DEVICES,
    CONF_FRIENDLY_NAMES,
    CONF_INPUT_FRIENDLY_NAMES,
    CONF_INSECURE,
    CONF_LOG,
    CONF_MQTT_RETAIN,
    CONF_POLLING_INTERVAL,
    CONF_PREFIX,
    CONF_SOUNDPROGRAM_FRIENDLY_NAMES,
    CONF_UDP_PORT,
    CONF_ZONE_FRIENDLY_NAMES,
    DEFAULT_BROKER_URL,
    DEFAULT_FRIENDLY_NAMES,
    DEFAULT_INPUT_FRIENDLY_NAMES,
    DEFAULT_INSECURE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MQTT_PORT,
    DEFAULT_MQTT_RETAIN,
    DEFAULT_POLLING_INTERVAL,
    DEFAULT_PREFIX,
    DEFAULT_SOUNDPROGRAM_FRIENDLY_NAMES,
    DEFAULT_UDP_PORT,
    DEFAULT_ZONE_FRIENDLY_NAMES,
    ENV_PREFIX,
    FRIENDLY_NAME_MODES,
    NAME,
    VERSION,
)
from .device import NamingOptions

_LOGGER = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    CONF_BROKER_URL: DEFAULT_BROKER_URL,
    CONF_PREFIX: DEFAULT_PREFIX,
    CONF_LOG: DEFAULT_LOG_LEVEL,
    CONF_POLLING_INTERVAL: DEFAULT_POLLING_INTERVAL,
    CONF_MQTT_RETAIN: DEFAULT_MQTT_RETAIN,
    CONF_FRIENDLY_NAMES: DEFAULT_FRIENDLY_NAMES,
    CONF_ZONE_FRIENDLY_NAMES: DEFAULT_ZONE_FRIENDLY_NAMES,
    CONF_INPUT_FRIENDLY_NAMES: DEFAULT_INPUT_FRIENDLY_NAMES,
    CONF_SOUNDPROGRAM_FRIENDLY_NAMES: DEFAULT_SOUNDPROGRAM_FRIENDLY_NAMES,
    CONF_INSECURE: DEFAULT_INSECURE,
    CONF_DEVICES: [],
    CONF_UDP_PORT: DEFAULT_UDP_PORT,
}

# Environment variable suffix for every config key
ENV_KEYS: dict[str, str] = {
    CONF_BROKER_URL: "BROKER_URL",
    CONF_PREFIX: "PREFIX",
    CONF_LOG: "LOG",
    CONF_POLLING_INTERVAL: "POLLING_INTERVAL",
    CONF_MQTT_RETAIN: "MQTT_RETAIN",
    CONF_FRIENDLY_NAMES: "FRIENDLYNAMES",
    CONF_ZONE_FRIENDLY_NAMES: "ZONE_FRIENDLYNAMES",
    CONF_INPUT_FRIENDLY_NAMES: "INPUT_FRIENDLYNAMES",
    CONF_SOUNDPROGRAM_FRIENDLY_NAMES: "SOUNDPROGRAM_FRIENDLYNAMES",
    CONF_INSECURE: "INSECURE",
    CONF_DEVICES: "DEVICES",
    CONF_UDP_PORT: "UDP_PORT",
}

LOG_LEVELS: dict[str, int] = {
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}
LOG_LEVEL_ALIASES = {"information": "info", "verbose": "debug"}

BROKER_SCHEMES = ("mqtt", "mqtts", "tcp", "ssl")
TLS_SCHEMES = ("mqtts", "ssl")


class ConfigError(ValueError):
    """Raised when the merged configuration does not validate."""


def _log_level(value: Any) -> str:
    level = str(value).strip().lower()
    level = LOG_LEVEL_ALIASES.get(level, level)
    if level not in LOG_LEVELS:
        raise vol.Invalid(f"expected one of {sorted(LOG_LEVELS)}")
    return level


def _device_list(value: Any) -> list[str]:
    """Accept a list or a whitespace separated string; entries are split on whitespace too."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise vol.Invalid("expected a list of IP addresses")
    return [part for item in value for part in str(item).split()]


def _broker_url(value: Any) -> str:
    url = str(value).strip()
    parts = urlsplit(url)
    if parts.scheme not in BROKER_SCHEMES:
        raise vol.Invalid(f"unsupported scheme {parts.scheme!r}, expected one of {BROKER_SCHEMES}")
    if not parts.hostname:
        raise vol.Invalid("broker url has no host")
    try:
        parts.port  # noqa: B018 - raises on an out-of-range port
    except ValueError as err:
        raise vol.Invalid(str(err)) from err
    return url


CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_BROKER_URL): _broker_url,
        vol.Required(CONF_PREFIX): vol.All(str, vol.Length(min=1)),
        vol.Required(CONF_LOG): _log_level,
        vol.Required(CONF_POLLING_INTERVAL): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Required(CONF_MQTT_RETAIN): vol.Boolean(),
        vol.Required(CONF_FRIENDLY_NAMES): vol.In(FRIENDLY_NAME_MODES),
        vol.Required(CONF_ZONE_FRIENDLY_NAMES): vol.In(FRIENDLY_NAME_MODES),
        vol.Required(CONF_INPUT_FRIENDLY_NAMES): vol.In(FRIENDLY_NAME_MODES),
        vol.Required(CONF_SOUNDPROGRAM_FRIENDLY_NAMES): vol.In(FRIENDLY_NAME_MODES),
        vol.Required(CONF_INSECURE): vol.Boolean(),
        vol.Required(CONF_DEVICES): _device_list,
        vol.Required(CONF_UDP_PORT): vol.All(vol.Coerce(int), vol.Range(min=1, max=65535)),
    }
)


@dataclass(frozen=True)
class BridgeConfig:
    """Validated bridge configuration."""

    broker_url: str = DEFAULT_BROKER_URL
    prefix: str = DEFAULT_PREFIX
    log_level: str = DEFAULT_LOG_LEVEL
    polling_interval: int = DEFAULT_POLLING_INTERVAL
    mqtt_retain: bool = DEFAULT_MQTT_RETAIN
    friendly_names: bool = True
    zone_friendly_names: bool = True
    input_friendly_names: bool = False
    soundprogram_friendly_names: bool = False
    insecure: bool = DEFAULT_INSECURE
    devices: tuple[str, ...] = ()
    udp_port: int = DEFAULT_UDP_PORT

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BridgeConfig:
        """Validate *data* (camelCase keys, missing keys take defaults)."""
        merged = {**DEFAULTS, **{k: v for k, v in data.items() if k in DEFAULTS}}
        unknown = sorted(set(data) - set(DEFAULTS))
        if unknown:
            _LOGGER.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        try:
            valid = CONFIG_SCHEMA(merged)
        except vol.Invalid as err:
            raise ConfigError(f"Invalid configuration: {err}") from err
        return cls(
            broker_url=valid[CONF_BROKER_URL],
            prefix=valid[CONF_PREFIX],
            log_level=valid[CONF_LOG],
            polling_interval=valid[CONF_POLLING_INTERVAL],
            mqtt_retain=valid[CONF_MQTT_RETAIN],
            friendly_names=valid[CONF_FRIENDLY_NAMES] == "name",
            zone_friendly_names=valid[CONF_ZONE_FRIENDLY_NAMES] == "name",
            input_friendly_names=valid[CONF_INPUT_FRIENDLY_NAMES] == "name",
            soundprogram_friendly_names=valid[CONF_SOUNDPROGRAM_FRIENDLY_NAMES] == "name",
            insecure=valid[CONF_INSECURE],
            devices=tuple(valid[CONF_DEVICES]),
            udp_port=valid[CONF_UDP_PORT],
        )

    # Broker URL parts

    @property
    def broker_host(self) -> str:
        return urlsplit(self.broker_url).hostname or ""

    @property
    def broker_port(self) -> int:
        return urlsplit(self.broker_url).port or DEFAULT_MQTT_PORT

    @property
    def username(self) -> str | None:
        user = urlsplit(self.broker_url).username
        return unquote(user) if user else None

    @property
    def password(self) -> str | None:
        password = urlsplit(self.broker_url).password
        return unquote(password) if password else None

    @property
    def use_tls(self) -> bool:
        return urlsplit(self.broker_url).scheme in TLS_SCHEMES

    @property
    def logging_level(self) -> int:
        return LOG_LEVELS[self.log_level]

    def naming_options(self) -> NamingOptions:
        return NamingOptions(
            friendly_names=self.friendly_names,
            zone_friendly_names=self.zone_friendly_names,
            input_friendly_names=self.input_friendly_names,
            soundprogram_friendly_names=self.soundprogram_friendly_names,
        )


def build_parser() -> argparse.ArgumentParser:
    """Return the command line parser; unset flags do not appear in the namespace."""
    parser = argparse.ArgumentParser(
        prog=NAME,
        description="Bridge Yamaha MusicCast devices to MQTT.",
        argument_default=argparse.SUPPRESS,
    )
    parser.add_argument("--config", dest="config_file", help="JSON file with configuration values")
    parser.add_argument(
        "--broker-url", dest=CONF_BROKER_URL, help='mqtt broker url, e.g. "mqtt://mqttbroker:1883"'
    )
    parser.add_argument("--prefix", dest=CONF_PREFIX, help="instance name, used as prefix for all topics")
    parser.add_argument(
        "--log", dest=CONF_LOG, choices=[*LOG_LEVELS, *LOG_LEVEL_ALIASES], help="log level"
    )
    parser.add_argument(
        "--polling-interval",
        dest=CONF_POLLING_INTERVAL,
        type=int,
        help="device polling interval in seconds, 0 disables polling",
    )
    parser.add_argument(
        "--mqtt-retain", dest=CONF_MQTT_RETAIN, action=argparse.BooleanOptionalAction, help="retain published state"
    )
    parser.add_argument(
        "--friendlynames", dest=CONF_FRIENDLY_NAMES, choices=FRIENDLY_NAME_MODES, help="use device name or id"
    )
    parser.add_argument(
        "--zone-friendlynames",
        dest=CONF_ZONE_FRIENDLY_NAMES,
        choices=FRIENDLY_NAME_MODES,
        help="use the zone name text as room name for zone2-4",
    )
    parser.add_argument(
        "--input-friendlynames",
        dest=CONF_INPUT_FRIENDLY_NAMES,
        choices=FRIENDLY_NAME_MODES,
        help="publish and accept inputs by name text",
    )
    parser.add_argument(
        "--soundprogram-friendlynames",
        dest=CONF_SOUNDPROGRAM_FRIENDLY_NAMES,
        choices=FRIENDLY_NAME_MODES,
        help="publish and accept sound programs by name text",
    )
    parser.add_argument(
        "--insecure",
        dest=CONF_INSECURE,
        action=argparse.BooleanOptionalAction,
        help="allow tls connections with invalid certificates",
    )
    parser.add_argument("--devices", dest=CONF_DEVICES, nargs="*", help="IP addresses of the devices to bridge")
    parser.add_argument("--udp-port", dest=CONF_UDP_PORT, type=int, help="port for UDP status events")
    parser.add_argument("--version", action="version", version=f"{NAME} {VERSION}")
    return parser


def load_file(path: str | os.PathLike[str]) -> dict[str, Any]:
    """Read a JSON config file; the top level must be an object."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        raise ConfigError(f"Cannot read config file {path}: {err}") from err
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def load_env(environ: Mapping[str, str]) -> dict[str, Any]:
    """Pick ``MUSICCAST2MQTT_*`` variables, keyed by config key."""
    return {key: environ[ENV_PREFIX + suffix] for key, suffix in ENV_KEYS.items() if ENV_PREFIX + suffix in environ}


def load_config(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> BridgeConfig:
    """Merge defaults, config file, environment and *argv* into a :class:`BridgeConfig`."""
    args = vars(build_parser().parse_args(argv))
    config_file = args.pop("config_file", None)
    merged: dict[str, Any] = {}
    if config_file:
        merged.update(load_file(config_file))
    merged.update(load_env(os.environ if environ is None else environ))
    merged.update(args)
    return BridgeConfig.from_dict(merged)
