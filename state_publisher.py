#!/usr/bin/env python3
"""
State Publisher

Republishes completed activity changes reported by the hub as the retained
current-activity message.
"""

import logging
from typing import Optional

from routing_table import RoutingTableHolder
from topics import activity_state_topic

# Set up logging
logger = logging.getLogger(__name__)


class StatePublisher:
    """Publishes the hub's current activity label"""

    def __init__(self, publisher, holder: RoutingTableHolder, root: str):
        self.publisher = publisher
        self.holder = holder
        self.root = root
        self.current_activity: Optional[str] = None
        self.logger = logging.getLogger(__name__ + '.StatePublisher')

    async def on_activity_progress(self, activity_id: str, progress: float) -> bool:
        """
        Handle a hub activity progress notification

        Args:
            activity_id: Hub activity id
            progress: Completion in [0, 1]; only 1 triggers a publish, and only
                when the activity differs from the last one published

        Returns:
            True if a state message was published
        """
        if progress < 1:
            return False

        activity = self.holder.current.activity_by_id(activity_id)
        if activity is None:
            self.logger.warning(f"Activity {activity_id} is unknown, not publishing state")
            return False

        if activity.label == self.current_activity:
            self.logger.debug(f"Activity {activity.label} already published")
            return False

        self.logger.info(f"Harmony current activity updated: {activity.label}")
        await self.publisher.publish(activity_state_topic(self.root), activity.label, qos=1, retain=True)
        self.current_activity = activity.label
        return True
