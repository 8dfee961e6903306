#!/usr/bin/env python3
"""
MQTT Topic Naming for the Harmony Bridge

Hub labels are turned into topic segments with a lossy but stable slug rule,
so subscribers can predict topic names from the labels they see in the
Harmony app.
"""

import re
from typing import List

DEFAULT_PREFIX = "harmony"
PLACEHOLDER_SEGMENT = "unnamed"
POWER_OFF = "POWEROFF"

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def slugify(label: str) -> str:
    """
    Normalize a human readable label into a single topic segment

    Args:
        label: Device, control group, control or activity label

    Returns:
        Lowercase segment with non-alphanumeric runs collapsed to '-',
        or PLACEHOLDER_SEGMENT when nothing alphanumeric is left
    """
    slug = _NON_ALNUM.sub('-', (label or '').lower()).strip('-')
    return slug or PLACEHOLDER_SEGMENT


def topic_root(hub_name: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}/{hub_name}"


def device_command_topic(root: str, device: str, group: str, control: str) -> str:
    return f"{root}/devices/{slugify(device)}/{slugify(group)}/{slugify(control)}/set"


def activity_state_topic(root: str) -> str:
    return f"{root}/activity"


def activity_command_topic(root: str) -> str:
    return f"{root}/activity/set"


def activity_switch_topic(root: str, activity_label: str) -> str:
    return f"{root}/activity/{slugify(activity_label)}/set"


def topology_topic(root: str) -> str:
    return f"{root}/homeAutio"


def subscription_filters(root: str) -> List[str]:
    """Wildcard filters covering every inbound command topic"""
    return [
        f"{root}/devices/+/+/+/set",
        activity_command_topic(root),
        f"{root}/activity/+/set",
    ]


def is_power_off(payload: str) -> bool:
    return payload.upper() == POWER_OFF
