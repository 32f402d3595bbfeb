"""Line balancing simulation: Monte Carlo reliability and a digital twin."""

from line_twin.aggregation import time_in_state
from line_twin.engine import SimulationEngine, TwinRun
from line_twin.errors import EmptyLine, InvalidConfiguration, LineConfigError
from line_twin.loader import (
    ConfigLoader,
    DefaultsConfig,
    MonteCarloSettings,
    ResolvedLine,
    TwinSettings,
)
from line_twin.measurements import (
    MeasurementRecord,
    group_measurements,
    line_from_measurements,
)
from line_twin.models import (
    LineConfig,
    ReliabilityReport,
    StationConfig,
    StationReliability,
    StationStatus,
    TaskConfig,
)
from line_twin.monte_carlo import (
    TrialTally,
    estimate_reliability,
    estimate_reliability_parallel,
)
from line_twin.random_source import (
    RandomSource,
    SeededRandomSource,
    SequenceRandomSource,
)
from line_twin.sampling import effective_std_dev, sample_task_time, station_time
from line_twin.twin import (
    BufferState,
    SimulationState,
    StationRuntime,
    TwinStats,
    build_simulation,
    run_ticks,
    step,
)

__all__ = [
    # Models
    "TaskConfig",
    "StationConfig",
    "LineConfig",
    "StationStatus",
    "StationReliability",
    "ReliabilityReport",
    # Errors
    "LineConfigError",
    "InvalidConfiguration",
    "EmptyLine",
    # Randomness
    "RandomSource",
    "SeededRandomSource",
    "SequenceRandomSource",
    # Task time model
    "effective_std_dev",
    "sample_task_time",
    "station_time",
    # Monte Carlo
    "TrialTally",
    "estimate_reliability",
    "estimate_reliability_parallel",
    # Digital twin
    "BufferState",
    "StationRuntime",
    "TwinStats",
    "SimulationState",
    "build_simulation",
    "step",
    "run_ticks",
    # Engine
    "SimulationEngine",
    "TwinRun",
    "time_in_state",
    # Config
    "ConfigLoader",
    "DefaultsConfig",
    "TwinSettings",
    "MonteCarloSettings",
    "ResolvedLine",
    # Measurements
    "MeasurementRecord",
    "group_measurements",
    "line_from_measurements",
]
