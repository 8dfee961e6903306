#!/usr/bin/env python3
"""
Harmony Hub websocket client

Talks to the hub's local API on port 8088: discovers the remote id, keeps one
websocket open, correlates responses by message id and hands hub
notifications (activity progress) to registered listeners.
"""

import asyncio
import aiohttp
import json
import logging
import uuid
import random
import functools
from typing import Dict, List, Callable, Any, Optional

from config_models import ConfigurationParser, HubConfig, POWER_OFF_ACTIVITY_ID
from hub_errors import ConnectionLost, HubProtocolError, HubUnavailable, NoRunningActivity

# Set up logging
logger = logging.getLogger(__name__)

HUB_PORT = 8088
ENGINE = "vnd.logitech.harmony/vnd.logitech.harmony.engine"
PROVISION_ORIGIN = "http://sl.dhg.myharmony.com"

# connect.stateDigest activityStatus values
STATUS_OFF = 0
STATUS_STARTED = 2

ActivityListener = Callable[[str, float], None]


# Network retry mechanism with exponential backoff
def network_retry(max_attempts: int = 3, base_delay: float = 0.5, max_delay: float = 5.0):
    """
    Decorator for connection setup with exponential backoff retry logic.

    Args:
        max_attempts: Maximum number of retry attempts (default: 3)
        base_delay: Base delay in seconds for exponential backoff (default: 0.5)
        max_delay: Maximum delay in seconds between retries (default: 5.0)

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError, OSError) as e:
                    last_exception = e

                    # Don't retry on the last attempt
                    if attempt == max_attempts - 1:
                        break

                    delay = min(base_delay * (2 ** attempt), max_delay)
                    total_delay = delay + random.uniform(0, 0.1 * delay)

                    logger.debug(f"Network error on attempt {attempt + 1}/{max_attempts}, retrying in {total_delay:.2f}s: {e}")
                    await asyncio.sleep(total_delay)

            raise last_exception

        return wrapper
    return decorator


class HarmonyHubClient:
    """Persistent websocket session with one Harmony Hub"""

    def __init__(self, host: str, remote_id: Optional[str] = None, port: int = HUB_PORT,
                 request_timeout: float = 10.0):
        self.host = host
        self.port = port
        self.remote_id = remote_id
        self.request_timeout = request_timeout
        self.session: Optional[aiohttp.ClientSession] = None
        self.parser = ConfigurationParser()
        self._ws = None
        self._reader_task: Optional[asyncio.Task] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._activity_listeners: List[ActivityListener] = []
        self._connection_lost_listeners: List[Callable[[Exception], None]] = []
        self._closing = False

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def ws_url(self) -> str:
        return f"{self.base_url}/?domain=svcs.myharmony.com&hubId={self.remote_id}"

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def add_activity_listener(self, listener: ActivityListener):
        """Register a callback receiving (activity_id, progress) with progress in [0, 1]"""
        self._activity_listeners.append(listener)

    def add_connection_lost_listener(self, listener: Callable[[Exception], None]):
        self._connection_lost_listeners.append(listener)

    async def connect(self):
        """Open the websocket, discovering the remote id first if needed"""
        if self.connected:
            return

        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=None, connect=5)
            self.session = aiohttp.ClientSession(timeout=timeout)

        self._closing = False
        try:
            await self._open()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise HubUnavailable(f"Cannot reach Harmony Hub at {self.host}: {e}") from e

        self._reader_task = asyncio.create_task(self._read_loop())
        logger.info(f"Connected to Harmony Hub {self.host} (remote id {self.remote_id})")

    @network_retry(max_attempts=3, base_delay=0.5, max_delay=5.0)
    async def _open(self):
        if not self.remote_id:
            self.remote_id = await self._discover_remote_id()
        self._ws = await self.session.ws_connect(self.ws_url, heartbeat=30)

    async def _discover_remote_id(self) -> str:
        payload = {"id": 1, "cmd": "setup.account?getProvisionInfo", "params": {}}
        headers = {"Origin": PROVISION_ORIGIN, "Content-Type": "application/json", "Accept": "utf-8"}
        async with self.session.post(self.base_url, json=payload, headers=headers) as resp:
            resp.raise_for_status()
            try:
                body = await resp.json(content_type=None)
            except (json.JSONDecodeError, ValueError) as e:
                raise HubProtocolError(f"Provision info is not JSON: {e}") from e

        info = self.parser.parse_provision_info(body)
        logger.debug(f"Discovered remote id {info['remote_id']}")
        return info['remote_id']

    async def close(self):
        self._closing = True
        if self._ws is not None:
            await self._ws.close()
        if self._reader_task is not None:
            await asyncio.gather(self._reader_task, return_exceptions=True)
            self._reader_task = None
        if self.session is not None:
            await self.session.close()
            self.session = None
        self._ws = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(self, cmd: str, params: Dict[str, Any], timeout: Optional[float] = None,
                       allow_timeout: bool = False) -> Dict:
        """
        Send one command and wait for the response carrying the same id

        Args:
            cmd: hbus command name
            params: hbus params
            timeout: Seconds to wait for the response (default: request_timeout)
            allow_timeout: Treat a missing response as sent instead of failing

        Raises:
            HubUnavailable: not connected, send failed or no response in time
            ConnectionLost: the websocket closed while waiting
        """
        if not self.connected:
            raise HubUnavailable(f"Not connected to Harmony Hub {self.host}")

        msg_id = str(uuid.uuid4())
        command = {
            "hubId": self.remote_id,
            "timeout": 30,
            "hbus": {"cmd": cmd, "id": msg_id, "params": params},
        }

        future = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = future
        try:
            await self._ws.send_str(json.dumps(command))
            return await asyncio.wait_for(future, timeout or self.request_timeout)
        except asyncio.TimeoutError as e:
            if allow_timeout:
                return {"status": "sent", "warning": "timeout waiting response"}
            raise HubUnavailable(f"Harmony Hub did not answer {cmd}") from e
        except (aiohttp.ClientError, ConnectionResetError) as e:
            raise HubUnavailable(f"Failed to send {cmd}: {e}") from e
        finally:
            self._pending.pop(msg_id, None)

    async def _read_loop(self):
        error: Exception = ConnectionLost(f"Harmony Hub {self.host} closed the connection")
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_text(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    error = ConnectionLost(f"Harmony Hub websocket error: {self._ws.exception()}")
                    break
        except (aiohttp.ClientError, OSError) as e:
            error = ConnectionLost(f"Harmony Hub websocket failed: {e}")
        except Exception as e:
            logger.exception("Harmony Hub reader stopped unexpectedly")
            error = ConnectionLost(f"Harmony Hub reader failed: {e}")
        finally:
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(error)
            self._pending.clear()

        if not self._closing:
            logger.error(str(error))
            for listener in self._connection_lost_listeners:
                listener(error)

    def _handle_text(self, raw: str):
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring non-JSON message from hub: {raw[:80]}")
            return
        if not isinstance(message, dict):
            logger.warning(f"Ignoring unexpected message from hub: {raw[:80]}")
            return

        msg_id = str(message.get("id", ""))
        future = self._pending.get(msg_id)
        if future is not None:
            if str(message.get("code")) == "100":
                # startactivity progress ticks share the request id
                self._handle_progress(message)
            elif not future.done():
                future.set_result(message)
            return

        self._handle_notification(message)

    def _handle_progress(self, message: Dict):
        data = message.get("data") or {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring progress message with unexpected data: {data!r}")
            return
        activity_id = data.get("activityId")
        if activity_id is None:
            return
        try:
            total = float(data.get("total") or 0)
            done = float(data.get("done") or 0)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring progress message with non-numeric counts: {data!r}")
            return
        if not total:
            return
        self._notify_activity(str(activity_id), done / total)

    def _handle_notification(self, message: Dict):
        msg_type = message.get("type") or ""
        data = message.get("data") or {}
        if not isinstance(msg_type, str) or not isinstance(data, dict):
            logger.warning(f"Ignoring malformed hub notification: {str(message)[:80]}")
            return

        if msg_type.endswith("stateDigest?notify"):
            activity_id = data.get("activityId")
            status = data.get("activityStatus")
            if activity_id is None or status is None:
                return
            if status == STATUS_STARTED or (status == STATUS_OFF and str(activity_id) == POWER_OFF_ACTIVITY_ID):
                progress = 1.0
            else:
                progress = 0.5
            self._notify_activity(str(activity_id), progress)
        elif msg_type.endswith("startActivityFinished"):
            if "activityId" in data:
                self._notify_activity(str(data["activityId"]), 1.0)
        else:
            logger.debug(f"Unhandled hub notification {msg_type}")

    def _notify_activity(self, activity_id: str, progress: float):
        for listener in self._activity_listeners:
            listener(activity_id, progress)

    async def get_config(self) -> HubConfig:
        """Fetch the full device/activity configuration"""
        response = await self._request(f"{ENGINE}?config", {"verb": "get"}, timeout=30)
        return self.parser.parse_hub_config(response)

    async def get_current_activity_id(self) -> str:
        response = await self._request(f"{ENGINE}?getCurrentActivity", {"verb": "get"})
        return self.parser.parse_current_activity(response)

    async def start_activity(self, activity_id: str) -> Dict:
        params = {
            "async": "true",
            "timestamp": 0,
            "args": {"rule": "start"},
            "activityId": str(activity_id),
        }
        return await self._request(f"{ENGINE}?startactivity", params, timeout=30)

    async def end_activity(self) -> Dict:
        """Power off; raises NoRunningActivity if the hub is already off"""
        current = await self.get_current_activity_id()
        if current == POWER_OFF_ACTIVITY_ID:
            raise NoRunningActivity("No activity is running")
        return await self.start_activity(POWER_OFF_ACTIVITY_ID)

    async def press_button(self, action: str, hold: float = 0.05) -> Dict:
        """
        Press then release a device function, like a physical remote

        Args:
            action: The function's action JSON as found in the hub config
            hold: Seconds between press and release
        """
        params = {
            "status": "press",
            "timestamp": "0",
            "verb": "render",
            "action": action,
        }
        # The hub rarely acknowledges holdAction, so a short wait is enough
        result = await self._request(f"{ENGINE}?holdAction", params, timeout=0.5, allow_timeout=True)

        await asyncio.sleep(hold)

        await self._request(f"{ENGINE}?holdAction", dict(params, status="release"),
                            timeout=0.5, allow_timeout=True)
        return result


def device_action(device_id: str, command: str) -> str:
    """Build the action JSON for a device command"""
    return json.dumps({"command": command, "type": "IRCommand", "deviceId": device_id})
