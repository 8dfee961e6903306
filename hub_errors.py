#!/usr/bin/env python3
"""
Error types shared by the Harmony hub client and the MQTT bridge
"""


class HarmonyError(Exception):
    """Base class for all Harmony bridge errors"""


class HubUnavailable(HarmonyError):
    """The hub could not be reached or did not answer in time"""


class HubProtocolError(HarmonyError):
    """A hub response could not be decoded into devices/activities"""


class ConnectionLost(HarmonyError):
    """The hub websocket closed after a successful connect"""


class NoRunningActivity(HarmonyError):
    """Power off was requested while no activity is running"""
