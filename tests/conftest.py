# tests/conftest.py
from __future__ import annotations

import pytest

from celine.outlet.contracts.broker import ConnectionOptions
from tests.helpers.fake_transport import FakeTransport


@pytest.fixture
def options() -> ConnectionOptions:
    return ConnectionOptions(host="test.mosquitto.org")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
