"""Pydantic schemas for line configurations and simulation reports."""

from enum import Enum
from typing import List, Optional, Union

import pandas as pd
from pydantic import BaseModel, Field

TaskId = Union[str, int]
StationId = Union[str, int]

# Station fail rates (percent) above which a station is flagged
CRITICAL_FAIL_RATE = 50.0
WARNING_FAIL_RATE = 10.0

# Reliability (percent) a line must exceed to count as meeting takt
TARGET_RELIABILITY = 90.0


class StationStatus(str, Enum):
    """Digital twin station states."""

    IDLE = "IDLE"
    BUSY = "BUSY"
    BLOCKED = "BLOCKED"
    STARVED = "STARVED"


# --- Line configuration ---


class TaskConfig(BaseModel):
    """One unit of work with a nominal duration and optional dispersion."""

    id: TaskId
    nominal_time: float  # Mean processing duration (seconds)
    std_dev: Optional[float] = None  # None means 10% of nominal_time


class StationConfig(BaseModel):
    """An ordered group of tasks assigned to one work position."""

    id: StationId
    tasks: List[TaskConfig] = Field(default_factory=list)

    # Digital twin only
    std_dev: Optional[float] = None  # Jitter half-width; None means 10% of total
    buffer_capacity: Optional[int] = None  # Input buffer size; None uses line default

    @property
    def total_nominal_time(self) -> float:
        """Sum of the nominal times of all tasks."""
        return sum((task.nominal_time for task in self.tasks), 0.0)


class LineConfig(BaseModel):
    """Stations in line order plus the takt time they must keep."""

    name: str = "line"
    stations: List[StationConfig] = Field(default_factory=list)
    takt_time: Optional[float] = None  # Seconds; required by the reliability estimate

    def over_takt_stations(self) -> List[StationConfig]:
        """Stations whose nominal total already exceeds takt time."""
        if self.takt_time is None:
            return []
        return [s for s in self.stations if s.total_nominal_time > self.takt_time]


# --- Monte Carlo reports ---


class StationReliability(BaseModel):
    """Per-station statistics from a Monte Carlo run."""

    id: StationId
    avg_time: float
    fail_rate: float  # % of trials where this station was the failing bottleneck
    max_time: float

    @property
    def risk(self) -> str:
        """Traffic-light classification of the fail rate."""
        if self.fail_rate > CRITICAL_FAIL_RATE:
            return "critical"
        if self.fail_rate > WARNING_FAIL_RATE:
            return "warning"
        return "ok"


class ReliabilityReport(BaseModel):
    """Aggregate result of a Monte Carlo reliability estimate."""

    reliability: float  # % of trials meeting takt time
    avg_cycle_time: float  # Mean bottleneck time
    p95_cycle_time: float  # 95th percentile bottleneck time
    iterations: int
    takt_time: float
    per_station: List[StationReliability] = Field(default_factory=list)

    @property
    def meets_target(self) -> bool:
        return self.reliability > TARGET_RELIABILITY

    @property
    def bottleneck(self) -> Optional[StationReliability]:
        """Station with the highest fail rate (first one on ties)."""
        worst: Optional[StationReliability] = None
        for station in self.per_station:
            if worst is None or station.fail_rate > worst.fail_rate:
                worst = station
        return worst

    def to_dataframe(self) -> pd.DataFrame:
        """Per-station table with one row per station, in line order."""
        rows = [
            {
                "station": s.id,
                "avg_time": s.avg_time,
                "fail_rate": s.fail_rate,
                "max_time": s.max_time,
                "risk": s.risk,
            }
            for s in self.per_station
        ]
        return pd.DataFrame(
            rows, columns=["station", "avg_time", "fail_rate", "max_time", "risk"]
        )
