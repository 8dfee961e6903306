#!/usr/bin/env python3
"""
Command Router

Turns inbound MQTT command messages into hub actions using the live routing
table. Unknown topics and activities are logged and dropped.
"""

import logging

from hub_errors import HubProtocolError, HubUnavailable, NoRunningActivity
from routing_table import (
    Action,
    ActivitySelect,
    ActivitySwitch,
    ButtonPress,
    PowerOff,
    RoutingTable,
    RoutingTableHolder,
)
from topics import activity_command_topic, is_power_off

# Set up logging
logger = logging.getLogger(__name__)


class CommandRouter:
    """Routes (topic, payload) pairs to the Harmony Hub"""

    def __init__(self, hub, holder: RoutingTableHolder, root: str):
        self.hub = hub
        self.holder = holder
        self.root = root
        self.logger = logging.getLogger(__name__ + '.CommandRouter')

    async def route(self, topic: str, payload: str):
        """
        Handle one inbound message

        Never raises for unknown input; only ConnectionLost escapes.
        """
        self.logger.info(f"MQTT message received for topic {topic}: {payload}")
        table = self.holder.current

        if topic == activity_command_topic(self.root):
            action = self.resolve_selection(table, payload)
        elif topic in table:
            action = table.get(topic)
            if isinstance(action, ActivitySelect):
                action = self.resolve_selection(table, payload)
        else:
            self.logger.warning(f"Could not handle topic {topic}")
            return

        if action is None:
            return

        await self.dispatch(action)

    def resolve_selection(self, table: RoutingTable, payload: str):
        """Map an activity selector payload to PowerOff or an ActivitySwitch"""
        if is_power_off(payload):
            return PowerOff()

        activity = table.activity_by_label(payload)
        if activity is None:
            self.logger.warning(f"Could not find activity {payload}")
            return None

        return ActivitySwitch(activity_id=activity.id, label=activity.label)

    async def dispatch(self, action: Action):
        try:
            if isinstance(action, ButtonPress):
                self.logger.debug(f"Pressing {action.command} on device {action.device_id}")
                await self.hub.press_button(action.action)
            elif isinstance(action, ActivitySwitch):
                self.logger.debug(f"Starting activity {action.label} ({action.activity_id})")
                await self.hub.start_activity(action.activity_id)
            elif isinstance(action, PowerOff):
                try:
                    await self.hub.end_activity()
                except NoRunningActivity:
                    self.logger.debug("Power off requested with no running activity")
            else:
                self.logger.warning(f"Could not route action {action!r}")
        except (HubUnavailable, HubProtocolError) as e:
            self.logger.error(f"Hub command failed, dropping message: {e}")
