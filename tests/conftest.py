"""Shared test fixtures for line-twin tests."""

from pathlib import Path

import pytest

from line_twin import (
    ConfigLoader,
    LineConfig,
    SequenceRandomSource,
    StationConfig,
    TaskConfig,
)


@pytest.fixture
def config_dir() -> Path:
    """Path to the sample config directory."""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def loader(config_dir: Path) -> ConfigLoader:
    """ConfigLoader instance."""
    return ConfigLoader(config_dir)


@pytest.fixture
def no_jitter() -> SequenceRandomSource:
    """Random source that always returns 0.5 (zero twin jitter)."""
    return SequenceRandomSource([0.5])


def _station(station_id, *times, std_dev=None, buffer_capacity=None) -> StationConfig:
    """Station with one task per nominal time."""
    tasks = [
        TaskConfig(id=f"{station_id}-{i}", nominal_time=t, std_dev=std_dev)
        for i, t in enumerate(times)
    ]
    return StationConfig(id=station_id, tasks=tasks, buffer_capacity=buffer_capacity)


@pytest.fixture
def three_station_line() -> LineConfig:
    """Unbalanced three-station line with default variability."""
    return LineConfig(
        name="three",
        takt_time=12.0,
        stations=[
            _station("S1", 4.0, 5.0),
            _station("S2", 11.0),
            _station("S3", 3.0, 3.0, 3.0),
        ],
    )


@pytest.fixture
def blocking_line() -> LineConfig:
    """Fast station feeding a slow one through a single-slot buffer."""
    return LineConfig(
        name="blocking",
        takt_time=5.0,
        stations=[
            _station("fast", 1.0),
            _station("slow", 5.0, buffer_capacity=1),
        ],
    )


@pytest.fixture
def make_station():
    """Factory for stations with one task per nominal time."""
    return _station
