"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from tests.ec_setup.simulated_host import (
    FakeFetcher,
    ScriptedRunner,
    SimulatedHost,
)


@pytest.fixture
def host(tmp_path: Path) -> SimulatedHost:
    """A simulated host with ec_sys not loaded and not yet built."""
    return SimulatedHost(tmp_path / "host")


@pytest.fixture
def settings(host: SimulatedHost):
    """Settings pointing every host path into the simulated host."""
    return host.settings()


@pytest.fixture
def runner(host: SimulatedHost) -> ScriptedRunner:
    return ScriptedRunner(host)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()
