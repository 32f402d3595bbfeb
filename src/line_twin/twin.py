"""Fixed-step digital twin of a serial line with bounded buffers.

``buffers[i]`` feeds ``stations[i]``. The first buffer is an unbounded
source pre-filled with raw units; the last station delivers into a terminal
sink that only counts output. Every call to :func:`step` sweeps the stations
left to right, so a delivery made early in the sweep is visible to later
stations within the same tick but never to earlier ones.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from line_twin.errors import InvalidConfiguration
from line_twin.models import StationId, StationStatus
from line_twin.random_source import RandomSource, default_source
from line_twin.sampling import DEFAULT_VARIATION
from line_twin.validation import LineInput, as_stations, validate_stations

logger = logging.getLogger(__name__)

DEFAULT_DT = 0.1  # Simulated seconds per tick
DEFAULT_BUFFER_CAPACITY = 5
DEFAULT_SOURCE_INVENTORY = 1000  # Stand-in for infinite upstream supply
MIN_REQUIRED_TIME = 0.1


@dataclass
class BufferState:
    """Unit count waiting in front of a station."""

    capacity: Optional[int]  # None = unbounded
    count: int = 0

    @property
    def is_bounded(self) -> bool:
        return self.capacity is not None

    def has_space(self) -> bool:
        if self.capacity is None:
            return True
        return self.count < self.capacity


@dataclass
class StationRuntime:
    """Live state of one station during a twin run."""

    id: StationId
    avg_time: float
    std_dev: float
    status: StationStatus = StationStatus.IDLE
    progress: float = 0.0
    required_time: Optional[float] = None
    total_processed: int = 0

    @property
    def holds_unit(self) -> bool:
        """True while a unit is being worked on or waiting to leave."""
        return self.status in (StationStatus.BUSY, StationStatus.BLOCKED)


@dataclass
class TwinStats:
    output: int = 0
    time_elapsed: float = 0.0


@dataclass
class SimulationState:
    """Complete twin state; :func:`step` returns a new one each tick."""

    stations: List[StationRuntime]
    buffers: List[BufferState]
    stats: TwinStats = field(default_factory=TwinStats)
    tick: int = 0
    source_inventory: int = DEFAULT_SOURCE_INVENTORY

    def copy(self) -> "SimulationState":
        return copy.deepcopy(self)

    @property
    def units_released(self) -> int:
        """Units taken from the source buffer so far."""
        return self.source_inventory - self.buffers[0].count

    @property
    def work_in_process(self) -> int:
        """Units in interior buffers plus units held at stations."""
        queued = sum(buf.count for buf in self.buffers[1:])
        held = sum(1 for s in self.stations if s.holds_unit)
        return queued + held

    @property
    def efficiency(self) -> float:
        """Output relative to the first station's pace across all stations (%)."""
        if self.stats.time_elapsed <= 0 or not self.stations:
            return 0.0
        earned = self.stats.output * self.stations[0].avg_time
        return earned / (self.stats.time_elapsed * len(self.stations)) * 100

    def snapshot(self) -> Dict[str, Any]:
        """Flat telemetry row for the current tick."""
        row: Dict[str, Any] = {
            "tick": self.tick,
            "time": self.stats.time_elapsed,
            "output": self.stats.output,
            "efficiency": self.efficiency,
        }
        for station, buf in zip(self.stations, self.buffers):
            name = str(station.id)
            row[f"{name}_state"] = station.status.value
            row[f"{name}_progress"] = station.progress
            row[f"{name}_output"] = station.total_processed
            if buf.is_bounded:
                row[f"Buf_{name}_level"] = buf.count
                row[f"Buf_{name}_cap"] = buf.capacity
        return row


def build_simulation(
    line: LineInput,
    buffer_capacity: int = DEFAULT_BUFFER_CAPACITY,
    source_inventory: int = DEFAULT_SOURCE_INVENTORY,
) -> SimulationState:
    """Create the initial twin state for a line.

    Args:
        line: LineConfig, or a sequence of StationConfig in line order
        buffer_capacity: Capacity of interior buffers without an override
        source_inventory: Units pre-loaded into the unbounded source buffer

    Raises:
        EmptyLine: If there are no stations
        InvalidConfiguration: For negative times, capacities below 1 or a
            negative source inventory
    """
    stations = as_stations(line)
    validate_stations(stations)
    if buffer_capacity < 1:
        raise InvalidConfiguration(f"buffer_capacity must be >= 1, got {buffer_capacity}")
    if source_inventory < 0:
        raise InvalidConfiguration(
            f"source_inventory must be >= 0, got {source_inventory}"
        )

    runtimes: List[StationRuntime] = []
    buffers: List[BufferState] = []
    for i, cfg in enumerate(stations):
        avg_time = cfg.total_nominal_time
        std_dev = cfg.std_dev if cfg.std_dev is not None else avg_time * DEFAULT_VARIATION
        runtimes.append(StationRuntime(id=cfg.id, avg_time=avg_time, std_dev=std_dev))

        if i == 0:
            buffers.append(BufferState(capacity=None, count=source_inventory))
        else:
            cap = cfg.buffer_capacity if cfg.buffer_capacity is not None else buffer_capacity
            buffers.append(BufferState(capacity=cap))

    logger.debug("Built twin with %d stations", len(runtimes))
    return SimulationState(
        stations=runtimes, buffers=buffers, source_inventory=source_inventory
    )


def jittered_time(station: StationRuntime, rng: RandomSource) -> float:
    """Processing time with symmetric uniform jitter of +/- std_dev."""
    jitter = (rng.next_f64() - 0.5) * 2 * station.std_dev
    return max(MIN_REQUIRED_TIME, station.avg_time + jitter)


def _deliver(
    station: StationRuntime, output: Optional[BufferState], stats: TwinStats
) -> bool:
    """Move the finished unit downstream; False if the buffer is full."""
    if output is None:
        stats.output += 1
    elif output.has_space():
        output.count += 1
    else:
        return False

    station.status = StationStatus.IDLE
    station.progress = 0.0
    station.required_time = None
    station.total_processed += 1
    return True


def step(
    state: SimulationState,
    dt: float = DEFAULT_DT,
    rng: Optional[RandomSource] = None,
) -> SimulationState:
    """Advance the twin by one tick of ``dt`` simulated seconds.

    The input state is left untouched; the advanced copy is returned.
    Not safe to call concurrently with the same random source.

    Callers stepping repeatedly should pass ``rng``: without one, every call
    creates a fresh OS-seeded source. :func:`run_ticks` and
    :class:`line_twin.engine.SimulationEngine` create theirs once per run.
    """
    if dt <= 0:
        raise InvalidConfiguration(f"dt must be > 0, got {dt}")
    rng = default_source(rng)

    nxt = state.copy()
    last = len(nxt.stations) - 1
    for i, station in enumerate(nxt.stations):
        input_buffer = nxt.buffers[i]
        output_buffer = None if i == last else nxt.buffers[i + 1]

        if station.status == StationStatus.BUSY:
            station.progress += dt
            if station.progress >= station.required_time:
                if not _deliver(station, output_buffer, nxt.stats):
                    station.status = StationStatus.BLOCKED
        elif station.status == StationStatus.BLOCKED:
            _deliver(station, output_buffer, nxt.stats)
        elif input_buffer.count > 0:
            input_buffer.count -= 1
            station.status = StationStatus.BUSY
            station.required_time = jittered_time(station, rng)
            station.progress = 0.0
        else:
            station.status = StationStatus.STARVED

    nxt.stats.time_elapsed += dt
    nxt.tick += 1
    return nxt


def run_ticks(
    state: SimulationState,
    ticks: int,
    dt: float = DEFAULT_DT,
    rng: Optional[RandomSource] = None,
) -> List[SimulationState]:
    """Step ``ticks`` times and return every intermediate state (excluding the start).

    One random source serves the whole run; a fresh one is created when
    ``rng`` is omitted.
    """
    if ticks < 0:
        raise InvalidConfiguration(f"ticks must be >= 0, got {ticks}")
    rng = default_source(rng)
    trajectory: List[SimulationState] = []
    for _ in range(ticks):
        state = step(state, dt, rng)
        trajectory.append(state)
    return trajectory
