#!/usr/bin/env python3
"""
Harmony MQTT Service

Owns the MQTT connection and the hub connection. MQTT messages and hub
notifications are pushed onto one internal queue and handled one at a time,
so every hub round trip finishes before the next event is looked at.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass
from typing import Callable, Optional

import aiomqtt

from command_router import CommandRouter
from config_sync import ConfigSynchronizer, SyncResult
from harmony import HarmonyHubClient
from hub_errors import HubProtocolError, HubUnavailable
from routing_table import RoutingTableHolder
from settings import BridgeSettings
from state_publisher import StatePublisher
from topics import subscription_filters, topic_root

# Set up logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboundMessage:
    topic: str
    payload: str


@dataclass(frozen=True)
class ActivityProgress:
    activity_id: str
    progress: float


@dataclass(frozen=True)
class ResyncRequested:
    pass


@dataclass(frozen=True)
class Fatal:
    """Stops the service: hub connection lost or MQTT connection failed"""
    error: Exception


class MqttPublisher:
    """Thin publish wrapper around an aiomqtt client"""

    def __init__(self, client: aiomqtt.Client):
        self.client = client

    async def publish(self, topic: str, payload: str, qos: int = 1, retain: bool = True):
        logger.debug(f"Publishing {topic}: {payload[:120]}")
        await self.client.publish(topic, payload=payload, qos=qos, retain=retain)


class HarmonyMqttService:
    """Bridges one Harmony Hub and one MQTT broker"""

    def __init__(self, settings: BridgeSettings, hub: Optional[HarmonyHubClient] = None,
                 mqtt_client_factory: Optional[Callable[[], aiomqtt.Client]] = None):
        self.settings = settings
        self.root = topic_root(settings.harmony_name, settings.topic_prefix)
        self.hub = hub or HarmonyHubClient(settings.hub_ip, remote_id=settings.remote_id)
        self._mqtt_client_factory = mqtt_client_factory or self._default_mqtt_client
        self.holder = RoutingTableHolder()
        self.events: asyncio.Queue = asyncio.Queue()
        self.synchronizer: Optional[ConfigSynchronizer] = None
        self.router: Optional[CommandRouter] = None
        self.state_publisher: Optional[StatePublisher] = None
        self.logger = logging.getLogger(__name__ + '.HarmonyMqttService')

        self.hub.add_activity_listener(self._on_activity_progress)
        self.hub.add_connection_lost_listener(self._on_connection_lost)

    def _default_mqtt_client(self) -> aiomqtt.Client:
        return aiomqtt.Client(
            hostname=self.settings.broker_host,
            port=self.settings.broker_port,
            username=self.settings.broker_username,
            password=self.settings.broker_password,
            identifier=f"harmony-mqtt-{self.settings.harmony_name}",
        )

    def attach(self, publisher):
        """Wire the core components to a publisher"""
        self.synchronizer = ConfigSynchronizer(self.hub, publisher, self.holder, self.root,
                                               self.settings.harmony_name)
        self.router = CommandRouter(self.hub, self.holder, self.root)
        self.state_publisher = StatePublisher(publisher, self.holder, self.root)

    async def run(self):
        """
        Connect, sync, subscribe and process events until a fatal error

        Raises:
            HubUnavailable / HubProtocolError: the first sync failed
            ConnectionLost: the hub connection dropped
            aiomqtt.MqttError: the broker connection failed
        """
        async with self._mqtt_client_factory() as client:
            self.attach(MqttPublisher(client))
            try:
                await self.hub.connect()
                result = await self.synchronizer.sync()
                self._after_sync(result)

                # Command topics only once the table exists
                for topic_filter in subscription_filters(self.root):
                    await client.subscribe(topic_filter, qos=1)
                self.logger.info(f"Subscribed to command topics under {self.root}")

                self._install_signal_handlers()
                pump = asyncio.create_task(self._pump_messages(client))
                try:
                    await self.process_events()
                finally:
                    pump.cancel()
                    await asyncio.gather(pump, return_exceptions=True)
            finally:
                await self.hub.close()

    async def process_events(self):
        """Handle queued events until a Fatal event arrives"""
        while True:
            event = await self.events.get()
            await self.handle_event(event)

    async def handle_event(self, event):
        if isinstance(event, InboundMessage):
            await self.router.route(event.topic, event.payload)
        elif isinstance(event, ActivityProgress):
            await self.state_publisher.on_activity_progress(event.activity_id, event.progress)
        elif isinstance(event, ResyncRequested):
            await self.resync()
        elif isinstance(event, Fatal):
            raise event.error
        else:
            self.logger.warning(f"Ignoring unknown event {event!r}")

    async def resync(self) -> Optional[SyncResult]:
        """Re-run the sync; on failure the previous routing table stays live"""
        try:
            result = await self.synchronizer.sync()
        except (HubUnavailable, HubProtocolError) as e:
            self.logger.error(f"Re-sync failed, keeping routing table generation "
                              f"{self.holder.current.generation}: {e}")
            return None
        self._after_sync(result)
        return result

    def request_resync(self):
        self.events.put_nowait(ResyncRequested())

    def _after_sync(self, result: SyncResult):
        self.state_publisher.current_activity = result.current_activity_label
        self.logger.info(
            f"Sync complete: {len(result.table)} topics, {len(result.table.activities)} activities, "
            f"current activity {result.current_activity_label}"
        )

    async def _pump_messages(self, client: aiomqtt.Client):
        try:
            async for message in client.messages:
                payload = message.payload
                if isinstance(payload, (bytes, bytearray)):
                    payload = payload.decode('utf-8', errors='replace')
                self.events.put_nowait(InboundMessage(str(message.topic), str(payload or '')))
        except aiomqtt.MqttError as e:
            self.events.put_nowait(Fatal(e))

    def _on_activity_progress(self, activity_id: str, progress: float):
        self.events.put_nowait(ActivityProgress(activity_id, progress))

    def _on_connection_lost(self, error: Exception):
        self.events.put_nowait(Fatal(error))

    def _install_signal_handlers(self):
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGHUP, self.request_resync)
        except (NotImplementedError, AttributeError, RuntimeError):
            self.logger.debug("SIGHUP re-sync not available on this platform")
