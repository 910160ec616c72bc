"""pytest configuration for Relay Hub tests."""

from __future__ import annotations

import itertools

import pytest

from relayhub.channel import Channel
from relayhub.registry import EndpointRegistry
from relayhub.relay import RelayEngine


# Configure asyncio mode for pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


class FakeChannel(Channel):
    """Channel that records every frame sent to it."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(channel_id)
        self.sent: list[tuple[str, dict]] = []

    def send(self, event: str, data: dict) -> None:
        self.sent.append((event, data))

    def events(self, name: str) -> list[dict]:
        return [data for event, data in self.sent if event == name]


@pytest.fixture()
def make_channel():
    counter = itertools.count(1)

    def _make(prefix: str = "chan") -> FakeChannel:
        return FakeChannel(f"{prefix}-{next(counter)}")

    return _make


@pytest.fixture()
def registry():
    return EndpointRegistry()


@pytest.fixture()
def engine(registry):
    return RelayEngine(registry)
