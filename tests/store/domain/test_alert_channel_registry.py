"""Picking and swapping the low-stock alert channel."""

import pytest
from store.alerts.channel import build_channel, get_channel, reset_channel, use_channel
from store.alerts.channel.fake_channel import FakeAlertChannel
from store.alerts.channel.logging_adapter import LoggingAlertChannel
from store.settings import settings


class TestRegistry:
    def test_defaults_to_the_logging_channel(self, monkeypatch):
        monkeypatch.setattr(settings, "alert_channel", "log")
        reset_channel()
        assert isinstance(get_channel(), LoggingAlertChannel)

    def test_channel_named_in_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "alert_channel", "memory")
        reset_channel()
        channel = get_channel()
        assert isinstance(channel, FakeAlertChannel)
        assert get_channel() is channel

    def test_unknown_name_is_rejected(self):
        with pytest.raises(ValueError, match="pager"):
            build_channel("pager")


class TestUseChannel:
    def test_swaps_for_the_block_then_restores(self):
        outer = get_channel()
        fake = FakeAlertChannel()
        with use_channel(fake):
            assert get_channel() is fake
        assert get_channel() is outer
