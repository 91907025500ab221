"""Global fixtures for MusicCast bridge tests.

Devices are backed by :class:`FakeMusicCastClient`, which keeps a small in
memory model of one speaker.  Write calls change that model the way real
firmware does (``setClientInfo`` turns a device into a client, ``startDistribution``
into a server …) and are appended to a call log shared by every fake, so tests
can assert on the exact order of device commands across the whole network.
"""

from __future__ import annotations

import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from musiccast_mqtt.api_base import MusicCastConnectionError, MusicCastResponseError  # noqa: E402
from musiccast_mqtt.const import (  # noqa: E402
    GROUP_ID_EMPTY,
    INPUT_MC_LINK,
    ROLE_CLIENT,
    ROLE_NONE,
    ROLE_SERVER,
    SERVER_INFO_ADD,
)
from musiccast_mqtt.device import Device, NamingOptions  # noqa: E402
from musiccast_mqtt.device_registry import DeviceRegistry  # noqa: E402
from musiccast_mqtt.group_manager import GroupManager  # noqa: E402
from musiccast_mqtt.models import (  # noqa: E402
    CdPlayInfo,
    DeviceInfo,
    DistributionInfo,
    Features,
    NameText,
    NetPlayInfo,
    NetworkStatus,
    StereoPairInfo,
    TunerPlayInfo,
)
from musiccast_mqtt.task_queue import TaskQueue  # noqa: E402

# Inputs every fake device offers, with the play info type the firmware reports
FAKE_INPUTS: dict[str, str] = {
    "net_radio": "netusb",
    "spotify": "netusb",
    "mc_link": "netusb",
    "main_sync": "none",
    "aux": "none",
    "cd": "cd",
    "tuner": "tuner",
}

# Calls that change device state; reads are not logged
WRITE_CALLS = {
    "set_power",
    "set_sleep",
    "set_volume",
    "set_mute",
    "set_input",
    "set_sound_program",
    "set_client_info",
    "set_server_info",
    "start_distribution",
    "stop_distribution",
    "set_group_name",
    "set_net_playback",
    "set_net_repeat",
    "set_net_shuffle",
    "toggle_net_repeat",
    "toggle_net_shuffle",
    "set_net_play_position",
    "recall_preset",
    "set_cd_playback",
    "set_cd_repeat",
    "set_cd_shuffle",
    "toggle_cd_repeat",
    "toggle_cd_shuffle",
    "switch_tuner_preset",
}


@dataclass
class FakeDeviceState:
    """In-memory model of one MusicCast speaker."""

    device_id: str
    ip: str
    name: str
    zone_ids: tuple[str, ...] = ("main",)
    zone_names: dict[str, str] = field(default_factory=dict)
    volume_max: int = 100
    stereo_slave: bool = False
    status: dict[str, dict[str, Any]] = field(default_factory=dict)
    dist: dict[str, Any] = field(default_factory=dict)
    net_play_info: dict[str, Any] = field(
        default_factory=lambda: {
            "playback": "play",
            "artist": "Artist",
            "album": "Album",
            "track": "Track",
            "albumart_url": "/YamahaRemoteControl/AlbumART/AlbumART.jpg",
            "play_time": 12,
            "total_time": 240,
        }
    )
    fail_reads: bool = False

    def __post_init__(self) -> None:
        for zone_id in self.zone_ids:
            self.status.setdefault(
                zone_id,
                {"power": "on", "input": "net_radio", "volume": 50, "mute": False, "sound_program": "stereo"},
            )
        self.dist = {
            "group_id": GROUP_ID_EMPTY,
            "group_name": "",
            "role": ROLE_NONE,
            "server_zone": "main",
            "client_list": [],
            **self.dist,
        }


CallLog = list[tuple[str, str, tuple[Any, ...]]]


class FakeMusicCastClient:
    """Stand-in for :class:`musiccast_mqtt.api.MusicCastClient`."""

    def __init__(self, state: FakeDeviceState, log: CallLog) -> None:
        self.state = state
        self.log = log
        self.response_delay = 0
        self.failing: dict[str, MusicCastResponseError] = {}

    def _write(self, name: str, *args: Any) -> None:
        self.log.append((self.state.name, name, args))
        if name in self.failing:
            raise self.failing[name]

    def _read(self) -> None:
        if self.state.fail_reads:
            raise MusicCastConnectionError("unreachable", host=self.state.ip)

    async def close(self) -> None:
        return None

    # System

    async def get_device_info_model(self) -> DeviceInfo:
        self._read()
        return DeviceInfo(device_id=self.state.device_id, model_name="WX-030")

    async def get_network_status_model(self) -> NetworkStatus:
        return NetworkStatus(network_name=self.state.name)

    async def get_features_model(self) -> Features:
        return Features.model_validate(
            {
                "system": {
                    "input_list": [
                        {"id": id_, "distribution_enable": True, "play_info_type": kind}
                        for id_, kind in FAKE_INPUTS.items()
                    ]
                },
                "zone": [
                    {
                        "id": zone_id,
                        "input_list": list(FAKE_INPUTS),
                        "sound_program_list": ["straight", "stereo"],
                        "range_step": [{"id": "volume", "min": 0, "max": self.state.volume_max, "step": 1}],
                    }
                    for zone_id in self.state.zone_ids
                ],
            }
        )

    async def get_name_text_model(self) -> NameText:
        return NameText.model_validate(
            {
                "zone_list": [{"id": zid, "text": text} for zid, text in self.state.zone_names.items()],
                "input_list": [{"id": "net_radio", "text": "Net Radio"}, {"id": "aux", "text": "AUX"}],
                "sound_program_list": [{"id": "stereo", "text": "2ch Stereo"}],
            }
        )

    async def get_stereo_pair_info_model(self) -> StereoPairInfo:
        return StereoPairInfo(status="slave_left" if self.state.stereo_slave else "none")

    async def get_zone_status(self, zone: str) -> dict[str, Any]:
        self._read()
        return dict(self.state.status[zone])

    async def get_distribution_info_model(self) -> DistributionInfo:
        self._read()
        dist = dict(self.state.dist)
        dist["client_list"] = [{"ip_address": ip} for ip in dist["client_list"]]
        return DistributionInfo.model_validate(dist)

    async def get_net_play_info_model(self) -> NetPlayInfo:
        return NetPlayInfo.model_validate(self.state.net_play_info)

    async def get_cd_play_info_model(self) -> CdPlayInfo:
        return CdPlayInfo(playback="stop")

    async def get_tuner_play_info_model(self) -> TunerPlayInfo:
        return TunerPlayInfo.model_validate({"band": "fm", "fm": {"preset": 3, "freq": 101300}})

    # Zone

    async def set_power(self, zone: str, on: bool) -> None:
        self._write("set_power", zone, on)
        self.state.status[zone]["power"] = "on" if on else "standby"

    async def set_sleep(self, zone: str, minutes: float) -> None:
        self._write("set_sleep", zone, minutes)

    async def set_volume(self, zone: str, level: int) -> None:
        self._write("set_volume", zone, level)
        self.state.status[zone]["volume"] = level

    async def set_mute(self, zone: str, enable: bool) -> None:
        self._write("set_mute", zone, enable)
        self.state.status[zone]["mute"] = enable

    async def set_input(self, zone: str, input_id: str) -> None:
        self._write("set_input", zone, input_id)
        self.state.status[zone]["input"] = input_id

    async def set_sound_program(self, zone: str, program: str) -> None:
        self._write("set_sound_program", zone, program)
        self.state.status[zone]["sound_program"] = program

    # Distribution

    async def set_client_info(self, group_id: str, zones: list[str], server_ip: str | None = None) -> None:
        self._write("set_client_info", group_id, list(zones), server_ip)
        if group_id:
            self.state.dist.update(group_id=group_id, role=ROLE_CLIENT)
            for zone in zones:
                self.state.status[zone].update(input=INPUT_MC_LINK, power="on")
        else:
            self.state.dist.update(group_id=GROUP_ID_EMPTY, role=ROLE_NONE)
            for zone in zones:
                self.state.status[zone]["input"] = "net_radio"

    async def set_server_info(self, group_id: str, zone: str, type_: str, client_list: list[str]) -> None:
        self._write("set_server_info", group_id, zone, type_, list(client_list))
        clients = list(self.state.dist["client_list"])
        if type_ == SERVER_INFO_ADD:
            clients += [ip for ip in client_list if ip not in clients]
            self.state.dist["group_id"] = group_id
        else:
            clients = [ip for ip in clients if ip not in client_list]
        self.state.dist["client_list"] = clients

    async def start_distribution(self, num: int) -> None:
        self._write("start_distribution", num)
        self.state.dist["role"] = ROLE_SERVER if self.state.dist["client_list"] else ROLE_NONE

    async def stop_distribution(self) -> None:
        self._write("stop_distribution")
        self.state.dist.update(role=ROLE_NONE, group_id=GROUP_ID_EMPTY, client_list=[])

    async def set_group_name(self, name: str) -> None:
        self._write("set_group_name", name)
        self.state.dist["group_name"] = name

    # Playback

    def __getattr__(self, name: str) -> Callable[..., Awaitable[None]]:
        if name not in WRITE_CALLS:
            raise AttributeError(name)

        async def _call(*args: Any) -> None:
            self._write(name, *args)

        return _call


@pytest.fixture
def call_log() -> CallLog:
    """Ordered ``(device name, call, args)`` log shared by all fake devices."""
    return []


@pytest.fixture
def registry() -> DeviceRegistry:
    return DeviceRegistry(NamingOptions())


@pytest.fixture
def groups(registry: DeviceRegistry) -> GroupManager:
    return GroupManager(registry, TaskQueue())


@pytest.fixture
def make_client(call_log: CallLog) -> Callable[..., FakeMusicCastClient]:
    """Factory creating a fake client around a fresh device state."""

    def _make(device_id: str, ip: str, name: str, **kwargs: Any) -> FakeMusicCastClient:
        return FakeMusicCastClient(FakeDeviceState(device_id=device_id, ip=ip, name=name, **kwargs), call_log)

    return _make


@pytest.fixture
def add_device(
    registry: DeviceRegistry, make_client: Callable[..., FakeMusicCastClient]
) -> Callable[..., Awaitable[Device]]:
    """Factory creating an initialised fake device in ``registry``."""

    async def _add(device_id: str, ip: str, name: str, **kwargs: Any) -> Device:
        client = make_client(device_id, ip, name, **kwargs)
        device = registry.add_device(Device(device_id, ip, client, options=registry.options))
        await device.initialize()
        return device

    return _add


@pytest.fixture
async def three_rooms(add_device: Callable[..., Awaitable[Device]]) -> tuple[Device, Device, Device]:
    """Kitchen, Living and Office, all single-zone and unlinked."""
    kitchen = await add_device("KITCHEN01", "10.0.0.1", "Kitchen")
    living = await add_device("LIVING01", "10.0.0.2", "Living")
    office = await add_device("OFFICE01", "10.0.0.3", "Office")
    return kitchen, living, office


@pytest.fixture
def writes(call_log: CallLog) -> Callable[[], list[tuple[str, str]]]:
    """Return a callable reducing the call log to ``(device, call)`` pairs."""

    def _writes() -> list[tuple[str, str]]:
        return [(device, call) for device, call, _ in call_log]

    return _writes
