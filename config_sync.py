#!/usr/bin/env python3
"""
Config Synchronizer

Fetches the hub's device/activity graph, builds a fresh routing table and
homeAutio topology from it, publishes the topology and the current activity,
then installs the new table. A failed sync leaves the previous table live.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from config_models import HubConfig
from harmony import device_action
from routing_table import (
    ActivitySelect,
    ActivitySwitch,
    ButtonPress,
    RoutingTable,
    RoutingTableBuilder,
    RoutingTableHolder,
)
from topics import (
    activity_command_topic,
    activity_state_topic,
    activity_switch_topic,
    device_command_topic,
    topology_topic,
)
from topology import ButtonControl, SelectorControl, Topology, TopologyDevice

# Set up logging
logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one completed sync"""
    table: RoutingTable
    topology: Topology
    current_activity_label: Optional[str]


class ConfigSynchronizer:
    """Rebuilds the routing table from the hub's current configuration"""

    def __init__(self, hub, publisher, holder: RoutingTableHolder, root: str, hub_name: str):
        """
        Args:
            hub: HarmonyHubClient (or anything with get_config/get_current_activity_id)
            publisher: Object with an async publish(topic, payload, qos, retain)
            holder: Reference to the live routing table
            root: Topic root, e.g. harmony/living-room
            hub_name: Display name of the hub
        """
        self.hub = hub
        self.publisher = publisher
        self.holder = holder
        self.root = root
        self.hub_name = hub_name
        self.logger = logging.getLogger(__name__ + '.ConfigSynchronizer')

    async def sync(self) -> SyncResult:
        """
        Run one full sync

        Raises:
            HubUnavailable: hub could not be reached
            HubProtocolError: hub configuration could not be decoded
        """
        self.logger.info(f"Syncing configuration from Harmony Hub {self.hub_name}")
        config = await self.hub.get_config()

        table, topology = self.build(config, self.holder.next_generation)

        current_id = await self.hub.get_current_activity_id()
        current = table.activity_by_id(current_id)
        if current is None:
            self.logger.warning(f"Running activity {current_id} is not in the hub configuration")

        await self.publisher.publish(topology_topic(self.root), topology.to_json(), qos=1, retain=True)
        if current is not None:
            await self.publisher.publish(activity_state_topic(self.root), current.label, qos=1, retain=True)

        self.holder.swap(table)
        if table.collisions:
            self.logger.warning(
                f"{len(table.collisions)} topic collision(s) dropped: "
                f"{', '.join(c.topic for c in table.collisions)}"
            )

        return SyncResult(
            table=table,
            topology=topology,
            current_activity_label=current.label if current else None
        )

    def build(self, config: HubConfig, generation: int = 0):
        """
        Build a routing table and topology for a hub configuration

        Returns:
            Tuple of (RoutingTable, Topology)
        """
        builder = RoutingTableBuilder()
        topology = Topology()

        # {root}/devices/{device}/{group}/{function}/set
        for device in config.devices:
            topology_device = TopologyDevice(name=device.label)
            for group, function in device.iter_functions():
                topic = device_command_topic(self.root, device.label, group.name, function.name)
                topology_device.controls.append(
                    ButtonControl(name=f"{group.name} {function.name}", command_topic=topic)
                )
                builder.add(topic, ButtonPress(
                    device_id=device.id,
                    command=function.name,
                    action=function.action or device_action(device.id, function.name)
                ))
            topology.devices.append(topology_device)

        # The hub itself: one button per activity plus the activity selector
        hub_device = TopologyDevice(name=f"Harmony Hub {self.hub_name}")
        selections = {}
        for activity in config.activities:
            topic = activity_switch_topic(self.root, activity.label)
            hub_device.controls.append(ButtonControl(name=f"Activity: {activity.label}", command_topic=topic))
            builder.add(topic, ActivitySwitch(activity_id=activity.id, label=activity.label))
            builder.add_activity(activity)

            if activity.label in selections:
                self.logger.warning(f"Duplicate activity label {activity.label!r}, last one wins")
            selections[activity.label] = activity.label

        builder.add(activity_command_topic(self.root), ActivitySelect())
        hub_device.controls.append(SelectorControl(
            name="Activity",
            command_topic=activity_command_topic(self.root),
            value_topic=activity_state_topic(self.root),
            selection_labels=selections
        ))
        topology.devices.append(hub_device)

        return builder.build(generation), topology
