"""Constants for the MusicCast to MQTT bridge.

This module defines all constants used throughout the bridge, including
configuration keys, default values, reserved inputs and API endpoints.

Configuration:
    - Broker, prefix and polling settings
    - Friendly-name handling for devices, zones, inputs and sound programs

Link (group) handling:
    - Reserved inputs that mark a zone as a client
    - Distribution roles and group id layout

API Endpoints:
    - Zone control endpoints
    - Net/USB, CD and tuner playback endpoints
    - System information endpoints
    - Distribution (link) endpoints
"""

from __future__ import annotations

from typing import Final

NAME = "musiccast2mqtt"
VERSION = "0.3.0"

# Config keys
CONF_BROKER_URL = "brokerUrl"
CONF_PREFIX = "prefix"
CONF_LOG = "log"
CONF_POLLING_INTERVAL = "pollingInterval"
CONF_MQTT_RETAIN = "mqttRetain"
CONF_FRIENDLY_NAMES = "friendlynames"
CONF_ZONE_FRIENDLY_NAMES = "zoneFriendlynames"
CONF_INPUT_FRIENDLY_NAMES = "inputFriendlynames"
CONF_SOUNDPROGRAM_FRIENDLY_NAMES = "soundprogramFriendlynames"
CONF_INSECURE = "insecure"
CONF_DEVICES = "devices"
CONF_UDP_PORT = "udpPort"

ENV_PREFIX = "MUSICCAST2MQTT_"

# Defaults
DEFAULT_BROKER_URL = "mqtt://mqttbroker"
DEFAULT_PREFIX = "musiccast"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_POLLING_INTERVAL = 10  # seconds, 0 disables polling
DEFAULT_MQTT_RETAIN = True
DEFAULT_FRIENDLY_NAMES = "name"
DEFAULT_ZONE_FRIENDLY_NAMES = "name"
DEFAULT_INPUT_FRIENDLY_NAMES = "id"
DEFAULT_SOUNDPROGRAM_FRIENDLY_NAMES = "id"
DEFAULT_INSECURE = True
DEFAULT_UDP_PORT = 41100
DEFAULT_MQTT_PORT = 1883
DEFAULT_TIMEOUT = 5  # seconds per HTTP request
DEFAULT_RESPONSE_DELAY = 1.0  # seconds to wait after each POST
DEFAULT_DEVICE_INFO_TIMEOUT = 1  # seconds, only while probing a new IP

FRIENDLY_NAME_MODES: Final = ("name", "id")

# HTTP
API_BASE_PATH = "/YamahaExtendedControl/v1"
APP_NAME = "MusicCast/1.0"
HEADER_APP_NAME = "X-AppName"
HEADER_APP_PORT = "X-AppPort"

# Zones
ZONE_MAIN = "main"
ZONE_2 = "zone2"
ZONE_3 = "zone3"
ZONE_4 = "zone4"
ZONE_IDS: Final = (ZONE_MAIN, ZONE_2, ZONE_3, ZONE_4)

# Link roles
ROLE_SERVER = "server"
ROLE_CLIENT = "client"
ROLE_NONE = "none"

# Reserved inputs
INPUT_MAIN_SYNC = "main_sync"
INPUT_MC_LINK = "mc_link"
INPUT_AUX = "aux"

# Play info types reported in features.system.input_list
PLAY_INFO_NETUSB = "netusb"
PLAY_INFO_CD = "cd"
PLAY_INFO_TUNER = "tuner"
PLAY_INFO_NONE = "none"

# Group id layout: 12 hex chars, marker, 15 hex chars
GROUP_ID_LENGTH = 32
GROUP_ID_EMPTY = "0" * GROUP_ID_LENGTH
GROUP_ID_MARKER = "40008"
GROUP_ID_MARKER_OFFSET = 12

# startDistribution num argument
DIST_NUM_CREATE = 0
DIST_NUM_ADD = 1
DIST_NUM_REMOVE = 2

SERVER_INFO_ADD = "add"
SERVER_INFO_REMOVE = "remove"

# Vendor response codes
RESPONSE_CODES: Final[dict[int, str]] = {
    0: "SuccessfulRequest",
    1: "Initializing",
    2: "InternalError",
    3: "InvalidRequest",
    4: "InvalidParameter",
    5: "Guarded",
}

# Sleep timer buckets in minutes
SLEEP_STEPS: Final = (0, 30, 60, 90, 120)

# ---------------------------------------------------------------------------
# API endpoints
# ---------------------------------------------------------------------------

# Zone ("{zone}" is substituted)
API_ENDPOINT_POWER = "/{zone}/setPower?power="
API_ENDPOINT_SLEEP = "/{zone}/setSleep?sleep="
API_ENDPOINT_VOLUME = "/{zone}/setVolume?volume="
API_ENDPOINT_MUTE = "/{zone}/setMute?enable="
API_ENDPOINT_INPUT = "/{zone}/setInput?input="
API_ENDPOINT_SOUND_PROGRAM = "/{zone}/setSoundProgram?program="
API_ENDPOINT_ZONE_STATUS = "/{zone}/getStatus"

# Net/USB
API_ENDPOINT_NET_PLAYBACK = "/netusb/setPlayback?playback="
API_ENDPOINT_NET_PLAY_INFO = "/netusb/getPlayInfo"
API_ENDPOINT_NET_REPEAT = "/netusb/setRepeat?mode="
API_ENDPOINT_NET_SHUFFLE = "/netusb/setShuffle?mode="
API_ENDPOINT_NET_TOGGLE_REPEAT = "/netusb/toggleRepeat"
API_ENDPOINT_NET_TOGGLE_SHUFFLE = "/netusb/toggleShuffle"
API_ENDPOINT_NET_RECALL_PRESET = "/netusb/recallPreset?zone={zone}&num={num}"
API_ENDPOINT_NET_PLAY_POSITION = "/netusb/setPlayPosition?position="

# CD
API_ENDPOINT_CD_PLAYBACK = "/cd/setPlayback?playback="
API_ENDPOINT_CD_PLAY_INFO = "/cd/getPlayInfo"
API_ENDPOINT_CD_REPEAT = "/cd/setRepeat?mode="
API_ENDPOINT_CD_SHUFFLE = "/cd/setShuffle?mode="
API_ENDPOINT_CD_TOGGLE_REPEAT = "/cd/toggleRepeat"
API_ENDPOINT_CD_TOGGLE_SHUFFLE = "/cd/toggleShuffle"

# Tuner
API_ENDPOINT_TUNER_PLAY_INFO = "/tuner/getPlayInfo"
API_ENDPOINT_TUNER_SWITCH_PRESET = "/tuner/switchPreset?dir="

# System
API_ENDPOINT_DEVICE_INFO = "/system/getDeviceInfo"
API_ENDPOINT_FEATURES = "/system/getFeatures"
API_ENDPOINT_NETWORK_STATUS = "/system/getNetworkStatus"
API_ENDPOINT_NAME_TEXT = "/system/getNameText"
API_ENDPOINT_STEREO_PAIR_INFO = "/system/getStereoPairInfo"

# Distribution
API_ENDPOINT_DIST_INFO = "/dist/getDistributionInfo"
API_ENDPOINT_DIST_SERVER_INFO = "/dist/setServerInfo"
API_ENDPOINT_DIST_CLIENT_INFO = "/dist/setClientInfo"
API_ENDPOINT_DIST_START = "/dist/startDistribution?num="
API_ENDPOINT_DIST_STOP = "/dist/stopDistribution"
API_ENDPOINT_DIST_GROUP_NAME = "/dist/setGroupName"

# MQTT topics (relative to prefix)
TOPIC_CONNECTED = "connected"
TOPIC_SET = "set"
