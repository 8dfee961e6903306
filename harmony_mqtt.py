#!/usr/bin/env python3
"""
🚀 Harmony MQTT Bridge
Publishes Harmony Hub state to MQTT and turns MQTT commands into hub actions
"""

import argparse
import asyncio
import logging
import logging.handlers
import os
import sys
from typing import List, Optional

import aiomqtt

from config_sync import ConfigSynchronizer
from display_formatter import DisplayFormatter
from harmony import HarmonyHubClient
from hub_errors import HarmonyError
from mqtt_service import HarmonyMqttService
from routing_table import RoutingTableHolder
from settings import BridgeSettings, SettingsError, load_settings
from topics import topic_root

# Set up logging
logger = logging.getLogger(__name__)


class NullPublisher:
    """Publisher that drops everything, for offline listings"""

    async def publish(self, topic: str, payload: str, qos: int = 1, retain: bool = True):
        logger.debug(f"Not publishing {topic}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="🚀 Harmony MQTT Bridge - Harmony Hub <-> MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
💡 EXAMPLES:
  harmony-mqtt run                          # Start the bridge using config.py
  harmony-mqtt run --hub 192.168.1.20 --name living-room --broker 192.168.1.5
  harmony-mqtt list-topics                  # Show every topic and its hub action
  harmony-mqtt run --log-file logs/harmony-mqtt.log   # Also keep a rolling log file

📡 TOPICS:
  harmony/<name>/devices/<device>/<group>/<control>/set   Press a button
  harmony/<name>/activity/set                             Activity label or POWEROFF
  harmony/<name>/activity/<activity>/set                  Start an activity
  harmony/<name>/activity                                 Current activity (retained)
  harmony/<name>/homeAutio                                Topology document (retained)

🔄 Send SIGHUP to re-sync the hub configuration while running.
        """
    )

    parser.add_argument('command', nargs='?', default='run', choices=['run', 'list-topics'],
                        help='run the bridge (default) or list topics')
    parser.add_argument('-c', '--config', help='Path to config.py (default: ./config.py)')
    parser.add_argument('--hub', dest='hub_ip', help='Harmony Hub IP address')
    parser.add_argument('--remote-id', dest='remote_id', help='Hub remote id (discovered if omitted)')
    parser.add_argument('--name', dest='harmony_name', help='Hub name used in topics')
    parser.add_argument('--prefix', dest='topic_prefix', help='Topic prefix (default: harmony)')
    parser.add_argument('--broker', dest='broker_host', help='MQTT broker host')
    parser.add_argument('--port', dest='broker_port', type=int, help='MQTT broker port')
    parser.add_argument('--username', dest='broker_username', help='MQTT username')
    parser.add_argument('--password', dest='broker_password', help='MQTT password')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    parser.add_argument('--log-file', help='Also write a rotating log file (e.g. logs/harmony-mqtt.log)')
    return parser


LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'
LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUPS = 5


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT
    )
    # aiohttp/aiomqtt chatter is only useful when debugging the transport
    logging.getLogger('aiohttp').setLevel(logging.WARNING)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8'
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


async def list_topics(settings: BridgeSettings) -> str:
    """Sync once without publishing and return the formatted listing"""
    async with HarmonyHubClient(settings.hub_ip, remote_id=settings.remote_id) as hub:
        synchronizer = ConfigSynchronizer(
            hub, NullPublisher(), RoutingTableHolder(),
            topic_root(settings.harmony_name, settings.topic_prefix),
            settings.harmony_name
        )
        result = await synchronizer.sync()
    return DisplayFormatter().format_routing_table(result.table, result.current_activity_label)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        settings = load_settings(args.config, vars(args))
    except SettingsError as e:
        print(f"❌ {e}")
        print("   Copy 'config.sample.py' to 'config.py' or pass --hub/--name/--broker.")
        return 2

    try:
        if args.command == 'list-topics':
            print(asyncio.run(list_topics(settings)))
        else:
            asyncio.run(HarmonyMqttService(settings).run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except HarmonyError as e:
        logger.error(f"Harmony bridge stopped: {e}")
        return 1
    except aiomqtt.MqttError as e:
        logger.error(f"MQTT connection failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
