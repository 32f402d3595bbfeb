"""YAML configuration loader with name-based resolution.

Layout of a config directory::

    config/
        defaults.yaml        # twin / monte_carlo defaults
        lines/<name>.yaml    # stations (or raw measurements) plus takt time
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel

from line_twin.errors import InvalidConfiguration
from line_twin.measurements import MeasurementRecord, line_from_measurements
from line_twin.models import LineConfig, StationConfig


class TwinSettings(BaseModel):
    """Digital twin run parameters."""

    dt: float = 0.1
    buffer_capacity: int = 5
    source_inventory: int = 1000
    telemetry_interval_sec: float = 1.0
    duration_sec: float = 600.0
    speed: float = 1.0  # Wall-clock speed multiplier for realtime runs
    random_seed: Optional[int] = None


class MonteCarloSettings(BaseModel):
    """Reliability estimate parameters."""

    iterations: int = 1000
    random_seed: Optional[int] = None
    workers: int = 1


@dataclass
class DefaultsConfig:
    """Global defaults loaded from config/defaults.yaml."""

    twin: Dict[str, Any] = field(default_factory=dict)
    monte_carlo: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ResolvedLine:
    """A line with its twin and Monte Carlo settings fully resolved."""

    line: LineConfig
    twin: TwinSettings
    monte_carlo: MonteCarloSettings


class ConfigLoader:
    """Loads and resolves YAML configuration files."""

    def __init__(self, config_dir: Path | str = "config"):
        self.config_dir = Path(config_dir)
        self.defaults = self.load_defaults()

    def load_defaults(self) -> DefaultsConfig:
        """Load global defaults from config/defaults.yaml."""
        path = self.config_dir / "defaults.yaml"
        if not path.exists():
            return DefaultsConfig()
        data = self._load_yaml(path)
        return DefaultsConfig(
            twin=data.get("twin") or {},
            monte_carlo=data.get("monte_carlo") or {},
        )

    def load_line(self, name: str) -> LineConfig:
        """Load a line configuration by name.

        A line file lists either ``stations`` with their tasks, or raw
        ``measurements`` that are grouped into stations.
        """
        data = self._load_line_data(name)
        return self._parse_line(name, data)

    def resolve_line(self, name: str) -> ResolvedLine:
        """Load a line and merge its per-line overrides over the defaults."""
        data = self._load_line_data(name)
        twin = {**self.defaults.twin, **(data.get("twin") or {})}
        monte_carlo = {**self.defaults.monte_carlo, **(data.get("monte_carlo") or {})}
        return ResolvedLine(
            line=self._parse_line(name, data),
            twin=TwinSettings(**twin),
            monte_carlo=MonteCarloSettings(**monte_carlo),
        )

    def _load_line_data(self, name: str) -> Dict[str, Any]:
        path = self.config_dir / "lines" / f"{name}.yaml"
        return self._load_yaml(path)

    def _parse_line(self, name: str, data: Dict[str, Any]) -> LineConfig:
        line_name = data.get("name", name)
        if data.get("takt_time") is None:
            raise InvalidConfiguration(f"Line {name!r} has no takt_time")
        takt_time = data["takt_time"]

        if "measurements" in data:
            records = [MeasurementRecord(**m) for m in data["measurements"] or []]
            return line_from_measurements(records, takt_time=takt_time, name=line_name)

        stations = [StationConfig(**s) for s in data.get("stations") or []]
        return LineConfig(name=line_name, stations=stations, takt_time=takt_time)

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load a YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            return yaml.safe_load(f) or {}
