"""Pytest configuration and shared fixtures."""

import pytest

from fakes import (
    FakeClock,
    FakeConfiguration,
    FakeDirectory,
    FakeEventPublisher,
    InMemoryStore,
    make_machine,
)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def configuration():
    return FakeConfiguration()


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def events():
    return FakeEventPublisher()


@pytest.fixture
def machine(store, clock, configuration, directory, events):
    return make_machine(store, clock, configuration, directory, events)
