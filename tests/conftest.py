"""Shared fixtures for dexws tests."""

import pytest

from tests.fakes import FakeClock, FakeTransportFactory


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def factory():
    return FakeTransportFactory()
