"""Shared fixtures for hostwatch tests."""

import pytest

from fakes import FakeSampler, RecordingClient


@pytest.fixture
def fake_sampler() -> FakeSampler:
    return FakeSampler()


@pytest.fixture
def client() -> RecordingClient:
    return RecordingClient()
