"""Command line entry point: ``musiccast2mqtt [options]``."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Sequence

import aiohttp

from .config import BridgeConfig, ConfigError, load_config
from .device_registry import DeviceRegistry
from .event_listener import EventListener
from .group_manager import GroupManager
from .mqtt_bridge import MusicCastMqttBridge
from .task_queue import TaskQueue, TaskResult

_LOGGER = logging.getLogger(__name__)


def _log_task_result(result: TaskResult) -> None:
    if not result.ok:
        _LOGGER.error("Group task %s failed after %.1fs: %s", result.name, result.duration, result.error)


async def run(config: BridgeConfig) -> None:
    """Run the bridge until SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises KeyboardInterrupt
            pass

    async with aiohttp.ClientSession() as session:
        registry = DeviceRegistry(config.naming_options(), session=session, udp_port=config.udp_port)
        queue = TaskQueue(on_result=_log_task_result)
        groups = GroupManager(registry, queue)
        listener = EventListener(config.udp_port)
        bridge = MusicCastMqttBridge(config, registry, groups, listener)

        mqtt_task = asyncio.create_task(bridge.run(), name="musiccast-mqtt")
        try:
            if not config.devices:
                _LOGGER.warning("No devices configured")
            await bridge.add_devices(config.devices)
            registry.start_polling(config.polling_interval)
            stop_task = asyncio.create_task(stop.wait())
            await asyncio.wait({mqtt_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
            stop_task.cancel()
            if mqtt_task.done() and not mqtt_task.cancelled():
                # run() only returns by raising
                mqtt_task.result()
        finally:
            _LOGGER.info("Shutting down")
            mqtt_task.cancel()
            try:
                await mqtt_task
            except asyncio.CancelledError:
                pass
            await registry.stop_polling()
            await queue.close()
            await listener.close()


def main(argv: Sequence[str] | None = None) -> int:
    try:
        config = load_config(argv)
    except ConfigError as err:
        print(err, file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.logging_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _LOGGER.info("Starting with broker %s, prefix %s", config.broker_host, config.prefix)
    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
