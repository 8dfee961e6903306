#!/usr/bin/env python3
"""
Tests for topic naming
"""

from hypothesis import given, strategies as st, settings

from topics import (
    PLACEHOLDER_SEGMENT,
    activity_command_topic,
    activity_state_topic,
    activity_switch_topic,
    device_command_topic,
    is_power_off,
    slugify,
    subscription_filters,
    topic_root,
    topology_topic,
)

ROOT = topic_root("living-room")


class TestSlugify:
    def test_lowercases_and_hyphenates(self):
        assert slugify("Samsung TV") == "samsung-tv"
        assert slugify("Volume Up") == "volume-up"

    def test_collapses_punctuation_runs(self):
        assert slugify("Watch  TV -- (HD)!") == "watch-tv-hd"
        assert slugify("Onkyo/AV_Receiver") == "onkyo-av-receiver"

    def test_strips_leading_and_trailing_separators(self):
        assert slugify("  ...Mute!  ") == "mute"

    def test_empty_input_uses_placeholder(self):
        assert slugify("") == PLACEHOLDER_SEGMENT
        assert slugify("!!!") == PLACEHOLDER_SEGMENT
        assert slugify(None) == PLACEHOLDER_SEGMENT

    def test_non_ascii_letters_are_dropped(self):
        assert slugify("Télé") == "t-l"

    @given(st.text())
    @settings(max_examples=200)
    def test_deterministic_and_idempotent(self, label):
        slug = slugify(label)
        assert slug == slugify(label)
        assert slugify(slug) == slug
        assert slug
        assert "/" not in slug and "+" not in slug and "#" not in slug

    @given(st.text(alphabet="abcxyz019", min_size=1))
    def test_plain_alphanumerics_unchanged(self, label):
        assert slugify(label) == label


class TestTopics:
    def test_root(self):
        assert ROOT == "harmony/living-room"
        assert topic_root("den", prefix="home") == "home/den"

    def test_device_command_topic(self):
        topic = device_command_topic(ROOT, "Samsung TV", "Volume", "VolumeUp")
        assert topic == "harmony/living-room/devices/samsung-tv/volume/volumeup/set"

    def test_activity_topics(self):
        assert activity_state_topic(ROOT) == "harmony/living-room/activity"
        assert activity_command_topic(ROOT) == "harmony/living-room/activity/set"
        assert activity_switch_topic(ROOT, "Watch TV") == "harmony/living-room/activity/watch-tv/set"
        assert topology_topic(ROOT) == "harmony/living-room/homeAutio"

    def test_subscription_filters(self):
        assert subscription_filters(ROOT) == [
            "harmony/living-room/devices/+/+/+/set",
            "harmony/living-room/activity/set",
            "harmony/living-room/activity/+/set",
        ]

    @given(
        triples=st.lists(
            st.tuples(*[st.text(alphabet="abcdefgh 123", min_size=1).filter(lambda s: s.strip())] * 3),
            min_size=2, max_size=6
        )
    )
    def test_distinct_slug_triples_give_distinct_topics(self, triples):
        slugged = {tuple(slugify(part) for part in triple) for triple in triples}
        topics = {device_command_topic(ROOT, *triple) for triple in triples}
        assert len(topics) == len(slugged)

    def test_power_off_is_case_insensitive(self):
        assert is_power_off("POWEROFF")
        assert is_power_off("PowerOff")
        assert is_power_off("poweroff")
        assert not is_power_off("Power Off")
        assert not is_power_off("Watch TV")
