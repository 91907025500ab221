"""Bridge Yamaha MusicCast devices to MQTT, including multi-room link groups."""

from .const import VERSION

__version__ = VERSION
