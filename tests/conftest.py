"""Shared fixtures for the symbv test suite."""

import io

import pytest
from hypothesis import HealthCheck, settings

from symbv.config import SymbvConfig, set_config
from symbv.core.run import SymbolicRun
from symbv.logging import LogLevel, configure_logging

settings.register_profile("symbv", suppress_health_check=[HealthCheck.function_scoped_fixture])
settings.load_profile("symbv")


@pytest.fixture(autouse=True)
def isolated_environment():
    """Default configuration and a silent, in-memory logger for every test."""
    set_config(SymbvConfig())
    logger = configure_logging(level=LogLevel.DEBUG, color=False, stream=io.StringIO())
    yield logger
    set_config(None)


@pytest.fixture
def config() -> SymbvConfig:
    return SymbvConfig()


@pytest.fixture
def run():
    with SymbolicRun("test") as r:
        yield r
