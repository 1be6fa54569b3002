"""
Pytest Configuration and Fixtures

Shared test fixtures for unit and integration tests.
"""

import pytest
from factories import FakeClock

from assessflow.questions.registry import ManifestRegistry
from assessflow.questions.types import register_builtin_types
from assessflow.telemetry.environment import EnvironmentEvents


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def environment() -> EnvironmentEvents:
    return EnvironmentEvents()


@pytest.fixture
def registry() -> ManifestRegistry:
    """Fresh registry with the built-in types, overwrites allowed."""
    registry = ManifestRegistry(dev_mode=True)
    register_builtin_types(registry)
    return registry
