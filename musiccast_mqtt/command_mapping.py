"""Map inbound MQTT commands onto zone and group operations."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .group_manager import GroupManager
    from .zone import Zone

_LOGGER = logging.getLogger(__name__)


class MusicCastCommand(str, Enum):
    """Command names accepted on ``<prefix>/set/<zone>/<command>``."""

    JOIN_GROUP = "joingroup"
    LEAVE_GROUP = "leavegroup"
    ADD_CLIENTS = "addclients"
    REMOVE_CLIENTS = "removeclients"
    CLIENTS = "clients"
    SERVER = "server"
    NEXT = "next"
    PREVIOUS = "previous"
    PAUSE = "pause"
    PLAY = "play"
    STOP = "stop"
    PLAY_POSITION = "playposition"
    REPEAT = "repeat"
    SHUFFLE = "shuffle"
    TOGGLE_REPEAT = "togglerepeat"
    TOGGLE_SHUFFLE = "toggleshuffle"
    SLEEP = "sleep"
    INPUT = "input"
    SOUND_PROGRAM = "soundprogram"
    POWER = "power"
    MUTE = "mute"
    UNMUTE = "unmute"
    VOLUME = "volume"
    VOLUME_DOWN = "volumedown"
    VOLUME_UP = "volumeup"
    RECALL_PRESET = "recallpreset"


class UnknownCommandError(ValueError):
    """Raised for a command name this bridge does not implement."""


# Commands without payload, mapped to the zone coroutine they call
_SIMPLE_COMMANDS: dict[MusicCastCommand, str] = {
    MusicCastCommand.NEXT: "next",
    MusicCastCommand.PREVIOUS: "previous",
    MusicCastCommand.PAUSE: "pause",
    MusicCastCommand.PLAY: "play",
    MusicCastCommand.STOP: "stop",
    MusicCastCommand.TOGGLE_REPEAT: "toggle_repeat",
    MusicCastCommand.TOGGLE_SHUFFLE: "toggle_shuffle",
    MusicCastCommand.VOLUME_UP: "volume_up",
    MusicCastCommand.VOLUME_DOWN: "volume_down",
}

# Commands taking a number
_NUMBER_COMMANDS: dict[MusicCastCommand, str] = {
    MusicCastCommand.PLAY_POSITION: "play_position",
    MusicCastCommand.SLEEP: "sleep",
    MusicCastCommand.VOLUME: "set_volume",
    MusicCastCommand.RECALL_PRESET: "recall_preset",
}

# Commands taking a string
_STRING_COMMANDS: dict[MusicCastCommand, str] = {
    MusicCastCommand.REPEAT: "set_repeat",
    MusicCastCommand.SHUFFLE: "set_shuffle",
    MusicCastCommand.INPUT: "set_input",
    MusicCastCommand.SOUND_PROGRAM: "set_soundprogram",
}


def parse_id_list(payload: Any) -> list[str] | None:
    """Accept ``"a,b"`` or ``["a", "b"]``; anything else is None."""
    if isinstance(payload, str):
        return [part.strip() for part in payload.split(",") if part.strip()]
    if isinstance(payload, list):
        return [str(item) for item in payload]
    return None


def _is_number(payload: Any) -> bool:
    return isinstance(payload, (int, float)) and not isinstance(payload, bool)


async def execute_command(zone: Zone, command: str, payload: Any, groups: GroupManager) -> None:
    """Run *command* for *zone*.

    Group commands only enqueue work on *groups* and return immediately.
    Payloads of the wrong type are logged and ignored.

    Raises:
        UnknownCommandError: *command* is not a :class:`MusicCastCommand`.
    """
    try:
        cmd = MusicCastCommand(command.lower())
    except ValueError as err:
        raise UnknownCommandError(f"Command '{command}' not implemented") from err

    if cmd in (MusicCastCommand.JOIN_GROUP, MusicCastCommand.SERVER):
        if not isinstance(payload, str):
            _invalid(zone, cmd, payload)
        elif payload.strip():
            groups.queue_link_by_id(payload.strip(), [zone.id])
        elif cmd is MusicCastCommand.SERVER:
            groups.queue_unlink_from_server(zone)
        else:
            _invalid(zone, cmd, payload)
        return

    if cmd is MusicCastCommand.LEAVE_GROUP:
        groups.queue_unlink_from_server(zone)
        return

    if cmd in (MusicCastCommand.ADD_CLIENTS, MusicCastCommand.REMOVE_CLIENTS, MusicCastCommand.CLIENTS):
        ids = parse_id_list(payload)
        if ids is None:
            _invalid(zone, cmd, payload)
        elif cmd is MusicCastCommand.ADD_CLIENTS:
            groups.queue_link_by_id(zone, ids)
        elif cmd is MusicCastCommand.REMOVE_CLIENTS:
            groups.queue_unlink_by_id(zone, ids)
        else:
            groups.queue_set_links_by_id(zone, ids)
        return

    if cmd is MusicCastCommand.POWER:
        await zone.power(payload in ("on", True, "true"))
    elif cmd is MusicCastCommand.MUTE:
        await zone.mute(True)
    elif cmd is MusicCastCommand.UNMUTE:
        await zone.mute(False)
    elif cmd in _SIMPLE_COMMANDS:
        await getattr(zone, _SIMPLE_COMMANDS[cmd])()
    elif cmd in _NUMBER_COMMANDS:
        if _is_number(payload):
            await getattr(zone, _NUMBER_COMMANDS[cmd])(payload)
        else:
            _invalid(zone, cmd, payload)
    elif cmd in _STRING_COMMANDS:
        if isinstance(payload, str):
            await getattr(zone, _STRING_COMMANDS[cmd])(payload)
        else:
            _invalid(zone, cmd, payload)


def _invalid(zone: Zone, command: MusicCastCommand, payload: Any) -> None:
    _LOGGER.warning("Ignoring %s for %s: invalid payload %r", command.value, zone.id, payload)
