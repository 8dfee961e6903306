#!/usr/bin/env python3
"""
Shared fixtures: a small hub configuration and fake hub/publisher doubles
"""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from config_models import ConfigurationParser

ROOT = "harmony/living-room"


def function(device_id, name, label=None):
    return {
        "name": name,
        "label": label or name,
        "action": json.dumps({"command": name, "type": "IRCommand", "deviceId": device_id}),
    }


def config_response(devices=None, activities=None):
    """Build a getConfig websocket response"""
    if devices is None:
        devices = [
            {
                "id": "100", "label": "Samsung TV", "manufacturer": "Samsung", "type": "Television",
                "controlGroup": [
                    {"name": "Power", "function": [function("100", "PowerOff"), function("100", "PowerOn")]},
                    {"name": "Volume", "function": [function("100", "VolumeUp", "Volume Up"),
                                                    function("100", "VolumeDown", "Volume Down"),
                                                    function("100", "Mute")]},
                ],
            },
            {
                "id": "200", "label": "Onkyo AV Receiver", "type": "StereoReceiver",
                "controlGroup": [
                    {"name": "Volume", "function": [function("200", "VolumeUp"), function("200", "VolumeDown")]},
                ],
            },
        ]
    if activities is None:
        activities = [
            {"id": "-1", "label": "PowerOff", "type": "PowerOff"},
            {"id": "10", "label": "Watch TV", "type": "VirtualTelevisionN"},
            {"id": "20", "label": "Listen to Music", "type": "VirtualMusic"},
        ]
    return {
        "cmd": "vnd.logitech.harmony/vnd.logitech.harmony.engine?config",
        "code": 200,
        "id": "abc",
        "msg": "OK",
        "data": {"activity": activities, "device": devices},
    }


def make_hub(config=None, current_activity="10"):
    hub = AsyncMock()
    hub.get_config = AsyncMock(return_value=config or ConfigurationParser().parse_hub_config(config_response()))
    hub.get_current_activity_id = AsyncMock(return_value=current_activity)
    hub.start_activity = AsyncMock(return_value={"code": 200})
    hub.end_activity = AsyncMock(return_value={"code": 200})
    hub.press_button = AsyncMock(return_value={"code": 200})
    hub.add_activity_listener = Mock()
    hub.add_connection_lost_listener = Mock()
    return hub


def make_publisher():
    publisher = AsyncMock()
    publisher.publish = AsyncMock()
    return publisher


@pytest.fixture
def hub():
    return make_hub()


@pytest.fixture
def publisher():
    return make_publisher()
