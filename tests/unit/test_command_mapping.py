"""Unit tests for MQTT command dispatch."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from musiccast_mqtt.command_mapping import MusicCastCommand, UnknownCommandError, execute_command, parse_id_list


@pytest.fixture
def zone():
    zone = MagicMock()
    zone.id = "Kitchen"
    for name in (
        "power",
        "mute",
        "sleep",
        "set_input",
        "set_soundprogram",
        "set_volume",
        "volume_up",
        "volume_down",
        "play",
        "pause",
        "stop",
        "next",
        "previous",
        "play_position",
        "set_repeat",
        "set_shuffle",
        "toggle_repeat",
        "toggle_shuffle",
        "recall_preset",
    ):
        setattr(zone, name, AsyncMock())
    return zone


@pytest.fixture
def group_manager():
    return MagicMock()


class TestParseIdList:
    def test_comma_separated(self):
        assert parse_id_list("Living, Office,") == ["Living", "Office"]

    def test_list(self):
        assert parse_id_list(["Living", "Office"]) == ["Living", "Office"]

    def test_other(self):
        assert parse_id_list(3.0) is None


class TestGroupCommands:
    """Group commands only enqueue work."""

    async def test_joingroup(self, zone, group_manager):
        await execute_command(zone, "joingroup", "Living", group_manager)
        group_manager.queue_link_by_id.assert_called_once_with("Living", ["Kitchen"])

    async def test_server_with_empty_payload_leaves(self, zone, group_manager):
        await execute_command(zone, "server", "", group_manager)
        group_manager.queue_unlink_from_server.assert_called_once_with(zone)
        group_manager.queue_link_by_id.assert_not_called()

    async def test_joingroup_empty_payload_is_ignored(self, zone, group_manager, caplog):
        await execute_command(zone, "joingroup", "", group_manager)
        group_manager.queue_link_by_id.assert_not_called()
        assert "invalid payload" in caplog.text

    async def test_leavegroup(self, zone, group_manager):
        await execute_command(zone, "leavegroup", "", group_manager)
        group_manager.queue_unlink_from_server.assert_called_once_with(zone)

    async def test_addclients(self, zone, group_manager):
        await execute_command(zone, "addclients", ["Living", "Office"], group_manager)
        group_manager.queue_link_by_id.assert_called_once_with(zone, ["Living", "Office"])

    async def test_removeclients(self, zone, group_manager):
        await execute_command(zone, "removeclients", "Living", group_manager)
        group_manager.queue_unlink_by_id.assert_called_once_with(zone, ["Living"])

    async def test_clients(self, zone, group_manager):
        await execute_command(zone, "clients", [], group_manager)
        group_manager.queue_set_links_by_id.assert_called_once_with(zone, [])

    async def test_clients_invalid_payload(self, zone, group_manager):
        await execute_command(zone, "clients", {"a": 1}, group_manager)
        group_manager.queue_set_links_by_id.assert_not_called()


class TestZoneCommands:
    @pytest.mark.parametrize(("payload", "expected"), [("on", True), (True, True), ("off", False), (False, False)])
    async def test_power(self, zone, group_manager, payload, expected):
        await execute_command(zone, "power", payload, group_manager)
        zone.power.assert_awaited_once_with(expected)

    async def test_mute_unmute(self, zone, group_manager):
        await execute_command(zone, "mute", "", group_manager)
        await execute_command(zone, "unmute", "", group_manager)
        assert [c.args for c in zone.mute.await_args_list] == [(True,), (False,)]

    async def test_volume(self, zone, group_manager):
        await execute_command(zone, "volume", 40.0, group_manager)
        zone.set_volume.assert_awaited_once_with(40.0)

    async def test_volume_rejects_string(self, zone, group_manager):
        await execute_command(zone, "volume", "loud", group_manager)
        zone.set_volume.assert_not_awaited()

    async def test_volume_rejects_bool(self, zone, group_manager):
        await execute_command(zone, "volume", True, group_manager)
        zone.set_volume.assert_not_awaited()

    async def test_input(self, zone, group_manager):
        await execute_command(zone, "input", "spotify", group_manager)
        zone.set_input.assert_awaited_once_with("spotify")

    async def test_command_name_is_case_insensitive(self, zone, group_manager):
        await execute_command(zone, "VolumeUp", "", group_manager)
        zone.volume_up.assert_awaited_once_with()

    @pytest.mark.parametrize(
        ("command", "method"),
        [
            ("next", "next"),
            ("previous", "previous"),
            ("play", "play"),
            ("pause", "pause"),
            ("stop", "stop"),
            ("togglerepeat", "toggle_repeat"),
            ("toggleshuffle", "toggle_shuffle"),
            ("volumedown", "volume_down"),
        ],
    )
    async def test_simple_commands(self, zone, group_manager, command, method):
        await execute_command(zone, command, "", group_manager)
        getattr(zone, method).assert_awaited_once_with()

    async def test_recallpreset(self, zone, group_manager):
        await execute_command(zone, "recallpreset", 2.0, group_manager)
        zone.recall_preset.assert_awaited_once_with(2.0)

    async def test_unknown_command(self, zone, group_manager):
        with pytest.raises(UnknownCommandError, match="dance"):
            await execute_command(zone, "dance", "", group_manager)


def test_every_command_is_lower_case():
    assert all(cmd.value == cmd.value.lower() for cmd in MusicCastCommand)
    assert len(MusicCastCommand) == 26
