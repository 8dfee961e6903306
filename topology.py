#!/usr/bin/env python3
"""
homeAutio Topology Document

Describes every control the bridge exposes and its command/state topics.
The document is published retained so other subscribers can discover the
bridge; the `$type` annotations are part of that wire contract.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, List, Any

TYPE_NAMESPACE = "HomeAutio.Mqtt.Core.Entities"
TYPE_ASSEMBLY = "HomeAutio.Mqtt.Core"


def _type_name(name: str) -> str:
    return f"{TYPE_NAMESPACE}.{name}, {TYPE_ASSEMBLY}"


@dataclass
class ButtonControl:
    name: str
    command_topic: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "$type": _type_name("ButtonControl"),
            "Name": self.name,
            "CommandTopic": self.command_topic,
        }


@dataclass
class SelectorControl:
    name: str
    command_topic: str
    value_topic: str
    selection_labels: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        labels: Dict[str, Any] = {"$type": "System.Collections.Generic.Dictionary`2[[System.String, mscorlib],[System.String, mscorlib]], mscorlib"}
        labels.update(self.selection_labels)
        return {
            "$type": _type_name("SelectorControl"),
            "Name": self.name,
            "CommandTopic": self.command_topic,
            "ValueTopic": self.value_topic,
            "SelectionLabels": labels,
        }


@dataclass
class TopologyDevice:
    name: str
    controls: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "$type": _type_name("Device"),
            "Name": self.name,
            "Controls": [c.to_dict() for c in self.controls],
        }


@dataclass
class Topology:
    devices: List[TopologyDevice] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "$type": _type_name("Hub"),
            "Devices": [d.to_dict() for d in self.devices],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
