#!/usr/bin/env python3
"""
Bridge settings loaded from config.py with command line overrides
"""

import importlib.util
import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from topics import DEFAULT_PREFIX

# Set up logging
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.py"

# config.py attribute -> BridgeSettings field
CONFIG_KEYS = {
    "HUB_IP": "hub_ip",
    "REMOTE_ID": "remote_id",
    "HARMONY_NAME": "harmony_name",
    "TOPIC_PREFIX": "topic_prefix",
    "BROKER_HOST": "broker_host",
    "BROKER_PORT": "broker_port",
    "BROKER_USERNAME": "broker_username",
    "BROKER_PASSWORD": "broker_password",
}

REQUIRED = ("hub_ip", "harmony_name", "broker_host")


class SettingsError(Exception):
    """Configuration is missing or invalid"""


@dataclass
class BridgeSettings:
    hub_ip: str = ""
    harmony_name: str = ""
    broker_host: str = ""
    broker_port: int = 1883
    broker_username: Optional[str] = None
    broker_password: Optional[str] = None
    remote_id: Optional[str] = None
    topic_prefix: str = DEFAULT_PREFIX

    def validate(self) -> 'BridgeSettings':
        missing = [name for name in REQUIRED if not getattr(self, name)]
        if missing:
            raise SettingsError(f"Missing required settings: {', '.join(missing)}")
        try:
            self.broker_port = int(self.broker_port)
        except (TypeError, ValueError) as e:
            raise SettingsError(f"Invalid broker port {self.broker_port!r}") from e
        return self


def load_config_module(path: str) -> Dict[str, Any]:
    """
    Read the known settings from a config.py file

    Args:
        path: Path to the config file

    Returns:
        Dict of BridgeSettings field values found in the file
    """
    spec = importlib.util.spec_from_file_location("harmony_bridge_config", path)
    if spec is None or spec.loader is None:
        raise SettingsError(f"Cannot load configuration file {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except (OSError, SyntaxError) as e:
        raise SettingsError(f"Cannot load configuration file {path}: {e}") from e

    return {
        field_name: getattr(module, key)
        for key, field_name in CONFIG_KEYS.items()
        if hasattr(module, key)
    }


def load_settings(config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> BridgeSettings:
    """
    Build validated settings

    Values come from the config file (when it exists) and are then replaced by
    any non-empty override, typically parsed command line flags.
    """
    values: Dict[str, Any] = {}

    path = config_path or DEFAULT_CONFIG_FILE
    if os.path.exists(path):
        values.update(load_config_module(path))
        logger.debug(f"Loaded settings from {path}")
    elif config_path:
        raise SettingsError(f"Configuration file {config_path} not found")

    known = {f.name for f in fields(BridgeSettings)}
    for key, value in (overrides or {}).items():
        if key in known and value not in (None, ""):
            values[key] = value

    # Empty strings in config.py mean "not set"
    values = {k: v for k, v in values.items() if v != "" or k in REQUIRED}

    return BridgeSettings(**values).validate()
