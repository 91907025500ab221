"""Unit tests for zone status translation and zone commands."""

import pytest

from musiccast_mqtt.device import NamingOptions
from musiccast_mqtt.device_registry import DeviceRegistry


@pytest.fixture
async def kitchen(add_device):
    return await add_device("KITCHEN01", "10.0.0.1", "Kitchen", volume_max=60)


class TestNaming:
    async def test_main_zone_uses_network_name(self, kitchen):
        assert kitchen.zones["main"].id == "Kitchen"
        assert kitchen.zones["main"].key == "KITCHEN01:main"

    async def test_other_zone_with_and_without_name_text(self, add_device):
        avr = await add_device(
            "AVR01", "10.0.0.9", "Den", zone_ids=("main", "zone2", "zone3"), zone_names={"zone2": "Patio"}
        )
        assert avr.zones["zone2"].id == "Patio"
        assert avr.zones["zone3"].id == "Den-zone3"


class TestDeviceIds:
    @pytest.fixture
    def registry(self):
        return DeviceRegistry(NamingOptions(friendly_names=False, zone_friendly_names=False))

    async def test_ids_use_device_id(self, add_device):
        avr = await add_device("AVR01", "10.0.0.9", "Den", zone_ids=("main", "zone2"), zone_names={"zone2": "Patio"})
        assert avr.zones["main"].id == "AVR01"
        assert avr.zones["zone2"].id == "AVR01-zone2"


class TestVolume:
    """Volume is published and accepted in percent of the device range."""

    async def test_volume_percent(self, kitchen):
        zone = kitchen.zones["main"]
        zone.merge_status({"volume": 30})
        assert zone.volume_percent() == 50

    async def test_volume_percent_rounds_half_up(self, kitchen):
        zone = kitchen.zones["main"]
        zone.merge_status({"volume": 3})  # 5.0 %
        assert zone.volume_percent() == 5
        zone.merge_status({"volume": 1})  # 1.67 %
        assert zone.volume_percent() == 2

    async def test_set_volume_scales_to_device_range(self, kitchen, call_log):
        await kitchen.zones["main"].set_volume(50)
        assert call_log[-1] == ("Kitchen", "set_volume", ("main", 30))

    async def test_set_volume_is_clamped(self, kitchen, call_log):
        await kitchen.zones["main"].set_volume(150)
        assert call_log[-1] == ("Kitchen", "set_volume", ("main", 60))

    async def test_volume_up_uses_step(self, kitchen, call_log):
        zone = kitchen.zones["main"]
        zone.merge_status({"volume": 59})
        await zone.volume_up()
        await zone.volume_up()
        assert call_log[-2:] == [
            ("Kitchen", "set_volume", ("main", 60)),
            ("Kitchen", "set_volume", ("main", 60)),
        ]

    async def test_published_volume(self, kitchen):
        assert kitchen.zones["main"].published["volume"] == 83


class TestInput:
    async def test_known_input(self, kitchen, call_log):
        await kitchen.zones["main"].set_input("spotify")
        assert call_log == [("Kitchen", "set_input", ("main", "spotify"))]

    async def test_unknown_input_is_rejected(self, kitchen, call_log, caplog):
        await kitchen.zones["main"].set_input("vinyl")
        assert call_log == []
        assert "Unknown input 'vinyl'" in caplog.text

    async def test_unknown_sound_program_is_rejected(self, kitchen, call_log):
        await kitchen.zones["main"].set_soundprogram("hall_in_munich")
        assert call_log == []


class TestFriendlyInputs:
    @pytest.fixture
    def registry(self):
        return DeviceRegistry(NamingOptions(input_friendly_names=True, soundprogram_friendly_names=True))

    async def test_published_with_name_text(self, kitchen):
        published = kitchen.zones["main"].published
        assert published["input"] == "Net Radio"
        assert published["soundprogram"] == "2ch Stereo"

    async def test_accepts_name_text(self, kitchen, call_log):
        await kitchen.zones["main"].set_input("AUX")
        await kitchen.zones["main"].set_soundprogram("2ch Stereo")
        assert call_log == [
            ("Kitchen", "set_input", ("main", "aux")),
            ("Kitchen", "set_sound_program", ("main", "stereo")),
        ]

    async def test_features_use_name_text(self, kitchen):
        features = dict(kitchen.zones["main"].features_payload())
        assert "Net Radio" in features["features/input"]
        assert "spotify" in features["features/input"]
        assert features["features/soundprogram"] == ["straight", "2ch Stereo"]


class TestPlayer:
    async def test_netusb_player_view(self, kitchen):
        player = kitchen.zones["main"].player_view()
        assert player.title == "Track"
        assert player.artist == "Artist"
        assert player.albumarturl == "http://10.0.0.1/YamahaRemoteControl/AlbumART/AlbumART.jpg"
        assert player.playtime == 12
        assert player.totaltime == 240

    async def test_tuner_player_view(self, kitchen):
        zone = kitchen.zones["main"]
        kitchen.client.state.status["main"]["input"] = "tuner"
        await kitchen.poll()

        player = zone.player_view()

        assert (player.title, player.artist) == ("101300", "3")
        assert zone.published["player"]["title"] == "101300"

    async def test_no_player_for_aux(self, kitchen):
        zone = kitchen.zones["main"]
        zone.merge_status({"input": "aux"})
        assert zone.player_view().title == ""

    async def test_play_routes_by_input(self, kitchen, call_log):
        await kitchen.zones["main"].play()
        assert call_log == [("Kitchen", "set_net_playback", ("play",))]

    async def test_tuner_next_switches_preset(self, kitchen, call_log):
        kitchen.zones["main"].merge_status({"input": "tuner"})
        await kitchen.zones["main"].next()
        assert call_log == [("Kitchen", "switch_tuner_preset", ("next",))]

    async def test_playback_on_aux_is_ignored(self, kitchen, call_log, caplog):
        kitchen.zones["main"].merge_status({"input": "aux"})
        await kitchen.zones["main"].pause()
        assert call_log == []
        assert "Cannot pause" in caplog.text

    async def test_repeat_on_cd(self, kitchen, call_log):
        kitchen.zones["main"].merge_status({"input": "cd"})
        await kitchen.zones["main"].set_repeat("all")
        assert call_log == [("Kitchen", "set_cd_repeat", ("all",))]
