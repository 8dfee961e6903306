#!/usr/bin/env python3
"""
Tests for inbound command routing
"""

import asyncio
import logging

import pytest

from command_router import CommandRouter
from config_sync import ConfigSynchronizer
from conftest import ROOT, make_hub, make_publisher
from hub_errors import ConnectionLost, HubUnavailable, NoRunningActivity
from routing_table import RoutingTable, RoutingTableHolder


def warnings(caplog):
    return [r for r in caplog.records if r.levelno == logging.WARNING]


class TestCommandRouter:
    def setup_method(self):
        self.hub = make_hub()
        self.holder = RoutingTableHolder()
        asyncio.run(ConfigSynchronizer(self.hub, make_publisher(), self.holder, ROOT, "living-room").sync())
        self.router = CommandRouter(self.hub, self.holder, ROOT)

    def route(self, topic, payload=""):
        asyncio.run(self.router.route(topic, payload))

    def hub_calls(self):
        return (self.hub.press_button.await_count + self.hub.start_activity.await_count
                + self.hub.end_activity.await_count)

    def test_unroutable_topic_warns_once_without_hub_calls(self, caplog):
        self.route(f"{ROOT}/devices/toaster/power/on/set", "1")

        assert len(warnings(caplog)) == 1
        assert "Could not handle topic" in warnings(caplog)[0].getMessage()
        assert self.hub_calls() == 0

    def test_button_press_ignores_payload(self):
        self.route(f"{ROOT}/devices/samsung-tv/power/poweron/set", "anything at all")

        self.hub.press_button.assert_awaited_once()
        action = self.hub.press_button.await_args.args[0]
        assert '"command": "PowerOn"' in action
        assert '"deviceId": "100"' in action

    @pytest.mark.parametrize("payload", ["POWEROFF", "PowerOff", "poweroff"])
    def test_power_off_sentinel(self, payload):
        self.route(f"{ROOT}/activity/set", payload)

        self.hub.end_activity.assert_awaited_once()
        self.hub.start_activity.assert_not_awaited()

    def test_power_off_with_no_running_activity_is_swallowed(self, caplog):
        self.hub.end_activity.side_effect = NoRunningActivity("off already")

        self.route(f"{ROOT}/activity/set", "POWEROFF")

        assert self.hub.end_activity.await_count == 1
        assert warnings(caplog) == []

    def test_activity_label_starts_activity(self):
        self.route(f"{ROOT}/activity/set", "Listen to Music")

        self.hub.start_activity.assert_awaited_once_with("20")

    def test_activity_label_match_is_exact(self, caplog):
        self.route(f"{ROOT}/activity/set", "watch tv")

        self.hub.start_activity.assert_not_awaited()
        assert len(warnings(caplog)) == 1
        assert "Could not find activity" in warnings(caplog)[0].getMessage()

    def test_per_activity_topic_starts_activity(self):
        self.route(f"{ROOT}/activity/watch-tv/set", "")

        self.hub.start_activity.assert_awaited_once_with("10")

    def test_hub_unavailable_is_logged_and_dropped(self, caplog):
        self.hub.press_button.side_effect = HubUnavailable("timeout")

        self.route(f"{ROOT}/devices/samsung-tv/volume/mute/set")

        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_connection_lost_propagates(self):
        self.hub.start_activity.side_effect = ConnectionLost("closed")

        with pytest.raises(ConnectionLost):
            self.route(f"{ROOT}/activity/watch-tv/set")

    def test_routes_against_latest_table(self):
        previous = self.holder.current
        self.holder.swap(RoutingTable({}, generation=previous.generation + 1))

        self.route(f"{ROOT}/activity/watch-tv/set")

        self.hub.start_activity.assert_not_awaited()

    def test_before_first_sync_nothing_routes(self, caplog):
        router = CommandRouter(self.hub, RoutingTableHolder(), ROOT)

        asyncio.run(router.route(f"{ROOT}/activity/set", "Watch TV"))
        asyncio.run(router.route(f"{ROOT}/devices/samsung-tv/power/poweron/set", ""))

        assert self.hub_calls() == 0
        assert len(warnings(caplog)) == 2
