"""Where low-stock alerts and digests are delivered.

The adapter is picked by name from ``ALERT_CHANNEL``: ``log`` (the default)
writes to the structured log, ``memory`` keeps everything in process for
demos and tests. ``use_channel()`` swaps one in for the length of a block.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from store.alerts.channel.fake_channel import FakeAlertChannel
from store.alerts.channel.logging_adapter import LoggingAlertChannel
from store.alerts.channel.port import AlertChannel
from store.settings import settings

CHANNELS: dict[str, type[AlertChannel]] = {
    "log": LoggingAlertChannel,
    "memory": FakeAlertChannel,
}

_current_channel: AlertChannel | None = None


def build_channel(name: str) -> AlertChannel:
    try:
        return CHANNELS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown alert channel {name!r}, expected one of {sorted(CHANNELS)}") from None


def get_channel() -> AlertChannel:
    global _current_channel
    if _current_channel is None:
        _current_channel = build_channel(settings.alert_channel)
    return _current_channel


def reset_channel() -> None:
    global _current_channel
    _current_channel = None


@contextmanager
def use_channel(channel: AlertChannel) -> Iterator[AlertChannel]:
    global _current_channel
    previous, _current_channel = _current_channel, channel
    try:
        yield channel
    finally:
        _current_channel = previous
