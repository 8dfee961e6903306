#!/usr/bin/env python3
"""
Configuration Data Models and Parsing for the Harmony Hub

This module provides dataclasses for the hub's device/activity graph and the
parser that turns the hub's `config` websocket response into them.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Any

from hub_errors import HubProtocolError

# Set up logging
logger = logging.getLogger(__name__)

POWER_OFF_ACTIVITY_ID = "-1"


@dataclass(frozen=True)
class Function:
    """A single invocable control of a device (e.g. VolumeUp)"""
    name: str
    label: str = ""
    action: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Function':
        name = data.get('name') or data.get('label') or ''
        return cls(
            name=str(name),
            label=str(data.get('label', name)),
            action=str(data.get('action', ''))
        )


@dataclass(frozen=True)
class ControlGroup:
    """Named group of device functions (e.g. Volume, NavigationBasic)"""
    name: str
    functions: List[Function] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ControlGroup':
        functions = data.get('function', [])
        if not isinstance(functions, list):
            raise HubProtocolError(f"Control group {data.get('name')!r} has no function list")
        return cls(
            name=str(data.get('name', '')),
            functions=[Function.from_dict(f) for f in functions if isinstance(f, dict)]
        )


@dataclass(frozen=True)
class Device:
    """Represents a Harmony Hub device"""
    id: str
    label: str
    manufacturer: str = ""
    model: str = ""
    device_type: str = ""
    control_groups: List[ControlGroup] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Device':
        """Create Device from the hub's device dictionary"""
        if 'label' not in data:
            raise HubProtocolError(f"Device {data.get('id', 'unknown')} has no label")

        groups = data.get('controlGroup', [])
        if not isinstance(groups, list):
            raise HubProtocolError(f"Device {data['label']!r} has a malformed controlGroup")

        return cls(
            id=str(data.get('id', '')),
            label=str(data['label']),
            manufacturer=data.get('manufacturer', ''),
            model=data.get('model', ''),
            device_type=data.get('type', ''),
            control_groups=[ControlGroup.from_dict(g) for g in groups if isinstance(g, dict)]
        )

    def iter_functions(self):
        """Yield (group, function) pairs in hub order"""
        for group in self.control_groups:
            for function in group.functions:
                yield group, function


@dataclass(frozen=True)
class Activity:
    """Represents a Harmony Hub activity"""
    id: str
    label: str
    activity_type: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Activity':
        if 'id' not in data or 'label' not in data:
            raise HubProtocolError(f"Activity entry is missing id or label: {sorted(data)}")
        return cls(
            id=str(data['id']),
            label=str(data['label']),
            activity_type=data.get('type', '')
        )

    @property
    def is_power_off(self) -> bool:
        return self.id == POWER_OFF_ACTIVITY_ID


@dataclass(frozen=True)
class HubConfig:
    """Snapshot of the hub's device/activity graph"""
    devices: List[Device] = field(default_factory=list)
    activities: List[Activity] = field(default_factory=list)


class ConfigurationParser:
    """Decodes Harmony Hub websocket responses into configuration models"""

    def __init__(self):
        self.logger = logging.getLogger(__name__ + '.ConfigurationParser')

    def parse_hub_config(self, response: Dict[str, Any]) -> HubConfig:
        """
        Parse full hub configuration response

        Args:
            response: WebSocket response containing hub configuration

        Returns:
            HubConfig with devices and activities in hub order

        Raises:
            HubProtocolError: if the response cannot be decoded
        """
        data = self._response_data(response)

        activity_data = data.get('activity', [])
        device_data = data.get('device', [])
        if not isinstance(activity_data, list) or not isinstance(device_data, list):
            raise HubProtocolError("Hub configuration has no activity/device lists")

        try:
            activities = [Activity.from_dict(a) for a in activity_data if isinstance(a, dict)]
            devices = [Device.from_dict(d) for d in device_data if isinstance(d, dict)]
        except (TypeError, AttributeError) as e:
            raise HubProtocolError(f"Malformed hub configuration: {e}") from e

        self.logger.debug(f"Parsed hub config: {len(devices)} devices, {len(activities)} activities")
        return HubConfig(devices=devices, activities=activities)

    def parse_current_activity(self, response: Dict[str, Any]) -> str:
        """Extract the running activity id from a getCurrentActivity response"""
        data = self._response_data(response)
        if 'result' not in data:
            raise HubProtocolError("getCurrentActivity response has no result")
        return str(data['result'])

    def parse_provision_info(self, response: Dict[str, Any]) -> Dict[str, Any]:
        """
        Parse provision information response

        Returns:
            Dict with the fields needed to open the hub websocket
        """
        data = self._response_data(response)
        remote_id = data.get('activeRemoteId') or data.get('remoteId')
        if not remote_id:
            raise HubProtocolError("Provision info has no remote id")

        return {
            'remote_id': str(remote_id),
            'hub_id': data.get('hubId', ''),
            'account_id': data.get('accountId', ''),
            'email': data.get('email', ''),
        }

    def _response_data(self, response: Dict[str, Any]) -> Dict[str, Any]:
        """Validate basic WebSocket response structure and return its data"""
        if not isinstance(response, dict):
            raise HubProtocolError(f"Response is not a dictionary: {type(response).__name__}")

        if 'error' in response:
            raise HubProtocolError(f"Response contains error: {response['error']}")

        code = response.get('code')
        if code is not None and str(code) not in ('200', '100'):
            raise HubProtocolError(f"Hub answered with code {code}: {response.get('msg', '')}")

        data = response.get('data')
        if not isinstance(data, dict):
            raise HubProtocolError("Response missing 'data' field")

        return data
