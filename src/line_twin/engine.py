"""SimPy driver that runs the digital twin and records its trajectory."""

import logging
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd
import simpy
import simpy.rt

from line_twin.aggregation import time_in_state
from line_twin.errors import InvalidConfiguration
from line_twin.loader import TwinSettings
from line_twin.random_source import RandomSource, default_source
from line_twin.twin import (
    DEFAULT_BUFFER_CAPACITY,
    DEFAULT_DT,
    DEFAULT_SOURCE_INVENTORY,
    SimulationState,
    build_simulation,
    step,
)
from line_twin.validation import LineInput

logger = logging.getLogger(__name__)


@dataclass
class TwinRun:
    """Final state plus the recorded telemetry and state-change log."""

    state: SimulationState
    telemetry: pd.DataFrame
    events: pd.DataFrame

    def time_in_state(self) -> pd.DataFrame:
        return time_in_state(self.events, self.state.stats.time_elapsed)


class SimulationEngine:
    """Drives :func:`line_twin.twin.step` from a SimPy process.

    In realtime mode the environment is a ``RealtimeEnvironment`` whose factor
    is ``1 / speed``: a higher speed calls ``step`` more often in wall-clock
    time but every call still advances the twin by exactly ``dt``.
    """

    def __init__(
        self,
        dt: float = DEFAULT_DT,
        telemetry_interval_sec: float = 1.0,
        buffer_capacity: int = DEFAULT_BUFFER_CAPACITY,
        source_inventory: int = DEFAULT_SOURCE_INVENTORY,
        realtime: bool = False,
        speed: float = 1.0,
    ):
        if dt <= 0:
            raise InvalidConfiguration(f"dt must be > 0, got {dt}")
        if telemetry_interval_sec <= 0:
            raise InvalidConfiguration(
                f"telemetry_interval_sec must be > 0, got {telemetry_interval_sec}"
            )
        if speed <= 0:
            raise InvalidConfiguration(f"speed must be > 0, got {speed}")
        self.dt = dt
        self.telemetry_interval_sec = telemetry_interval_sec
        self.buffer_capacity = buffer_capacity
        self.source_inventory = source_inventory
        self.realtime = realtime
        self.speed = speed

    @classmethod
    def from_settings(cls, settings: TwinSettings, realtime: bool = False) -> "SimulationEngine":
        return cls(
            dt=settings.dt,
            telemetry_interval_sec=settings.telemetry_interval_sec,
            buffer_capacity=settings.buffer_capacity,
            source_inventory=settings.source_inventory,
            realtime=realtime,
            speed=settings.speed,
        )

    def run(
        self,
        line: LineInput,
        duration_sec: float,
        rng: Optional[RandomSource] = None,
        state: Optional[SimulationState] = None,
    ) -> TwinRun:
        """Run the twin for ``duration_sec`` simulated seconds.

        Args:
            line: Line to build the twin from (ignored when ``state`` is given)
            duration_sec: Simulated time to cover, rounded to whole ticks
            rng: Random source for processing-time jitter
            state: Optional state to resume from

        Returns:
            TwinRun with the final state, telemetry and events DataFrames
        """
        if duration_sec < 0:
            raise InvalidConfiguration(f"duration_sec must be >= 0, got {duration_sec}")
        if state is None:
            state = build_simulation(
                line,
                buffer_capacity=self.buffer_capacity,
                source_inventory=self.source_inventory,
            )
        rng = default_source(rng)
        ticks = int(round(duration_sec / self.dt))

        env = self._make_environment()
        telemetry: List[dict] = []
        events: List[dict] = []
        holder = {"state": state}
        proc = env.process(self._twin_process(env, holder, ticks, rng, telemetry, events))

        logger.info("Starting twin run: %d ticks of %.3fs", ticks, self.dt)
        env.run(until=proc)
        final = holder["state"]
        logger.info(
            "Twin run finished at %.1fs with output %d", final.stats.time_elapsed, final.stats.output
        )
        return TwinRun(
            state=final,
            telemetry=pd.DataFrame(telemetry),
            events=pd.DataFrame(
                events, columns=["timestamp", "station", "state", "event_type"]
            ),
        )

    def _make_environment(self) -> simpy.Environment:
        if self.realtime:
            return simpy.rt.RealtimeEnvironment(factor=1.0 / self.speed, strict=False)
        return simpy.Environment()

    def _twin_process(
        self,
        env: simpy.Environment,
        holder: dict,
        ticks: int,
        rng: RandomSource,
        telemetry: List[dict],
        events: List[dict],
    ):
        """Step the twin once per ``dt`` and sample telemetry at each interval."""
        every = max(1, int(round(self.telemetry_interval_sec / self.dt)))
        current: SimulationState = holder["state"]

        telemetry.append(current.snapshot())
        for station in current.stations:
            events.append(self._event(current, station.id, station.status.value, "start"))

        for _ in range(ticks):
            yield env.timeout(self.dt)
            nxt = step(current, self.dt, rng)
            self._log_transitions(current, nxt, events)
            if nxt.tick % every == 0:
                telemetry.append(nxt.snapshot())
            current = nxt
            holder["state"] = current

        # Always finish with the last state
        if current.tick % every != 0:
            telemetry.append(current.snapshot())

    def _log_transitions(
        self, prev: SimulationState, nxt: SimulationState, events: List[dict]
    ) -> None:
        """Records state transitions for time-in-state accounting."""
        for before, after in zip(prev.stations, nxt.stations):
            if before.status != after.status:
                events.append(self._event(nxt, after.id, before.status.value, "end"))
                events.append(self._event(nxt, after.id, after.status.value, "start"))

    @staticmethod
    def _event(state: SimulationState, station_id, status: str, event_type: str) -> dict:
        return {
            "timestamp": state.stats.time_elapsed,
            "station": station_id,
            "state": status,
            "event_type": event_type,
        }
