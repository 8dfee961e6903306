#!/usr/bin/env python3
"""
Tests for activity state publishing
"""

import asyncio
import logging

from config_sync import ConfigSynchronizer
from conftest import ROOT, make_hub, make_publisher
from routing_table import RoutingTableHolder
from state_publisher import StatePublisher


class TestStatePublisher:
    def setup_method(self):
        self.holder = RoutingTableHolder()
        asyncio.run(ConfigSynchronizer(make_hub(), make_publisher(), self.holder, ROOT, "living-room").sync())
        self.publisher = make_publisher()
        self.state = StatePublisher(self.publisher, self.holder, ROOT)

    def test_completed_activity_is_published_retained(self):
        published = asyncio.run(self.state.on_activity_progress("20", 1.0))

        assert published
        self.publisher.publish.assert_awaited_once_with(
            f"{ROOT}/activity", "Listen to Music", qos=1, retain=True
        )
        assert self.state.current_activity == "Listen to Music"

    def test_progress_ticks_are_ignored(self):
        for progress in (0.0, 0.25, 0.5, 0.99):
            assert not asyncio.run(self.state.on_activity_progress("20", progress))

        self.publisher.publish.assert_not_awaited()

    def test_power_off_publishes_power_off_label(self):
        asyncio.run(self.state.on_activity_progress("-1", 1))

        self.publisher.publish.assert_awaited_once_with(f"{ROOT}/activity", "PowerOff", qos=1, retain=True)

    def test_unknown_activity_warns_and_publishes_nothing(self, caplog):
        published = asyncio.run(self.state.on_activity_progress("12345", 1.0))

        assert not published
        self.publisher.publish.assert_not_awaited()
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "12345" in warnings[0].getMessage()
        assert self.state.current_activity is None

    def test_repeated_completion_publishes_once(self):
        for _ in range(3):
            asyncio.run(self.state.on_activity_progress("20", 1.0))

        self.publisher.publish.assert_awaited_once_with(
            f"{ROOT}/activity", "Listen to Music", qos=1, retain=True
        )

    def test_new_activity_after_repeat_is_published(self):
        asyncio.run(self.state.on_activity_progress("20", 1.0))
        asyncio.run(self.state.on_activity_progress("20", 1.0))
        published = asyncio.run(self.state.on_activity_progress("10", 1.0))

        assert published
        assert [c.args[1] for c in self.publisher.publish.await_args_list] == ["Listen to Music", "Watch TV"]
        assert self.state.current_activity == "Watch TV"
