#!/usr/bin/env python3
"""
Routing Table for inbound MQTT commands

The table maps command topics to hub actions and carries the activity list
of the same sync. It is built once per sync and never mutated afterwards;
RoutingTableHolder swaps whole tables so readers always see a complete
snapshot.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence, Tuple, Union

from config_models import Activity

# Set up logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ButtonPress:
    """Press a device function"""
    device_id: str
    command: str
    action: str


@dataclass(frozen=True)
class ActivitySwitch:
    """Start an activity"""
    activity_id: str
    label: str


@dataclass(frozen=True)
class PowerOff:
    """End the running activity"""


@dataclass(frozen=True)
class ActivitySelect:
    """Activity selector: the payload names the activity (or POWEROFF)"""


Action = Union[ButtonPress, ActivitySwitch, PowerOff, ActivitySelect]


@dataclass(frozen=True)
class Collision:
    """A mapping dropped because an earlier entry claimed the same topic"""
    topic: str
    kept: Action
    dropped: Action


class RoutingTable:
    """Immutable topic -> action snapshot plus the activities it was built from"""

    def __init__(self, entries: Dict[str, Action], collisions: Sequence[Collision] = (),
                 activities: Sequence[Activity] = (), generation: int = 0):
        self._entries = MappingProxyType(dict(entries))
        self.collisions: Tuple[Collision, ...] = tuple(collisions)
        self.activities: Tuple[Activity, ...] = tuple(activities)
        self.generation = generation

        # Duplicate labels: the last activity listed by the hub wins
        self._by_label = MappingProxyType({a.label: a for a in self.activities})
        self._by_id = MappingProxyType({a.id: a for a in self.activities})

    def get(self, topic: str) -> Optional[Action]:
        return self._entries.get(topic)

    def activity_by_label(self, label: str) -> Optional[Activity]:
        return self._by_label.get(label)

    def activity_by_id(self, activity_id: str) -> Optional[Activity]:
        return self._by_id.get(str(activity_id))

    def __contains__(self, topic: str) -> bool:
        return topic in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def items(self):
        return self._entries.items()

    def __repr__(self) -> str:
        return f"RoutingTable(entries={len(self)}, collisions={len(self.collisions)}, generation={self.generation})"


class RoutingTableBuilder:
    """Accumulates entries for a new table with first-writer-wins on topics"""

    def __init__(self):
        self._entries: Dict[str, Action] = {}
        self._collisions: List[Collision] = []
        self._activities: List[Activity] = []

    def add(self, topic: str, action: Action) -> bool:
        """
        Register a topic mapping

        Returns:
            True if added, False if the topic was already taken
        """
        existing = self._entries.get(topic)
        if existing is not None:
            self._collisions.append(Collision(topic=topic, kept=existing, dropped=action))
            logger.debug(f"Topic collision on {topic}, keeping first mapping")
            return False

        self._entries[topic] = action
        return True

    def add_activity(self, activity: Activity):
        self._activities.append(activity)

    def build(self, generation: int = 0) -> RoutingTable:
        return RoutingTable(self._entries, self._collisions, self._activities, generation)


class RoutingTableHolder:
    """Single reference to the live table, replaced atomically on every sync"""

    def __init__(self):
        self._table = RoutingTable({})

    @property
    def current(self) -> RoutingTable:
        return self._table

    @property
    def next_generation(self) -> int:
        return self._table.generation + 1

    def swap(self, table: RoutingTable) -> RoutingTable:
        """Install a new table and return the one it replaced"""
        previous, self._table = self._table, table
        logger.info(f"Routing table generation {table.generation} installed ({len(table)} topics)")
        return previous
