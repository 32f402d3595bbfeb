"""Monte Carlo estimate of how often a line meets its takt time.

Each trial samples every task once (Box-Muller normal), sums the samples per
station, and compares the slowest station against takt time. Only the single
bottleneck of a failing trial is charged with the failure.
"""

import logging
import math
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from line_twin.errors import InvalidConfiguration
from line_twin.models import (
    ReliabilityReport,
    StationConfig,
    StationId,
    StationReliability,
)
from line_twin.random_source import RandomSource, SeededRandomSource, default_source
from line_twin.sampling import station_time
from line_twin.validation import (
    LineInput,
    as_stations,
    validate_stations,
    validate_takt_time,
)

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 1000
PERCENTILE = 0.95


@dataclass
class TrialTally:
    """Running totals over a batch of trials.

    Tallies from independent batches can be merged, so trials may be split
    across workers as long as every maximum ends up in the final population.
    """

    station_ids: List[StationId]
    takt_time: float
    trials: int = 0
    line_stops: int = 0
    max_times: List[float] = field(default_factory=list)
    time_sums: List[float] = field(default_factory=list)
    time_maxes: List[float] = field(default_factory=list)
    fail_counts: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        n = len(self.station_ids)
        if not self.time_sums:
            self.time_sums = [0.0] * n
        if not self.time_maxes:
            self.time_maxes = [0.0] * n
        if not self.fail_counts:
            self.fail_counts = [0] * n

    def record(self, station_times: Sequence[float]) -> None:
        """Add one trial given the sampled time of every station in line order."""
        max_time = 0.0
        bottleneck: Optional[int] = None
        for index, value in enumerate(station_times):
            self.time_sums[index] += value
            if value > self.time_maxes[index]:
                self.time_maxes[index] = value
            # Strict comparison: ties stay with the earlier station
            if value > max_time:
                max_time = value
                bottleneck = index

        self.max_times.append(max_time)
        self.trials += 1
        if max_time > self.takt_time:
            self.line_stops += 1
            if bottleneck is not None:
                self.fail_counts[bottleneck] += 1

    def merge(self, other: "TrialTally") -> "TrialTally":
        """Combine two tallies over the same stations into a new one."""
        if other.station_ids != self.station_ids:
            raise ValueError("Cannot merge tallies over different stations")
        return TrialTally(
            station_ids=list(self.station_ids),
            takt_time=self.takt_time,
            trials=self.trials + other.trials,
            line_stops=self.line_stops + other.line_stops,
            max_times=self.max_times + other.max_times,
            time_sums=[a + b for a, b in zip(self.time_sums, other.time_sums)],
            time_maxes=[max(a, b) for a, b in zip(self.time_maxes, other.time_maxes)],
            fail_counts=[a + b for a, b in zip(self.fail_counts, other.fail_counts)],
        )

    def to_report(self) -> ReliabilityReport:
        n = self.trials
        ordered = sorted(self.max_times)
        per_station = [
            StationReliability(
                id=station_id,
                avg_time=self.time_sums[i] / n,
                fail_rate=self.fail_counts[i] / n * 100,
                max_time=self.time_maxes[i],
            )
            for i, station_id in enumerate(self.station_ids)
        ]
        return ReliabilityReport(
            reliability=(n - self.line_stops) / n * 100,
            avg_cycle_time=sum(self.max_times) / n,
            p95_cycle_time=ordered[math.floor(n * PERCENTILE)],
            iterations=n,
            takt_time=self.takt_time,
            per_station=per_station,
        )


def _validate_run(stations: List[StationConfig], takt_time: float, iterations: int) -> None:
    validate_stations(stations)
    validate_takt_time(takt_time)
    if iterations <= 0:
        raise InvalidConfiguration(f"iterations must be > 0, got {iterations}")


def _run_trials(
    stations: List[StationConfig],
    takt_time: float,
    iterations: int,
    rng: RandomSource,
) -> TrialTally:
    tally = TrialTally(station_ids=[s.id for s in stations], takt_time=takt_time)
    for _ in range(iterations):
        tally.record([station_time(station, rng) for station in stations])
    return tally


def estimate_reliability(
    line: LineInput,
    takt_time: Optional[float] = None,
    iterations: int = DEFAULT_ITERATIONS,
    rng: Optional[RandomSource] = None,
) -> ReliabilityReport:
    """Estimate the probability that one production cycle meets takt time.

    Args:
        line: LineConfig, or a sequence of StationConfig in line order
        takt_time: Takt time in seconds (defaults to ``line.takt_time``)
        iterations: Number of independent trials (must be > 0)
        rng: Random source; an unseeded one is created when omitted

    Returns:
        ReliabilityReport with line and per-station statistics

    Raises:
        EmptyLine: If there are no stations
        InvalidConfiguration: For non-positive iterations, negative takt
            time or negative task times
    """
    stations = as_stations(line)
    takt = _resolve_takt(line, takt_time)
    _validate_run(stations, takt, iterations)

    logger.debug(
        "Running %d reliability trials over %d stations (takt %.2fs)",
        iterations,
        len(stations),
        takt,
    )
    report = _run_trials(stations, takt, iterations, default_source(rng)).to_report()
    logger.info(
        "Reliability %.1f%% (avg %.2fs, p95 %.2fs)",
        report.reliability,
        report.avg_cycle_time,
        report.p95_cycle_time,
    )
    return report


def _run_chunk(
    stations: List[StationConfig],
    takt_time: float,
    iterations: int,
    seed: Optional[int],
) -> TrialTally:
    return _run_trials(stations, takt_time, iterations, SeededRandomSource(seed))


def _chunk_sizes(iterations: int, workers: int) -> List[int]:
    base, extra = divmod(iterations, workers)
    sizes = [base + (1 if i < extra else 0) for i in range(workers)]
    return [size for size in sizes if size > 0]


def estimate_reliability_parallel(
    line: LineInput,
    takt_time: Optional[float] = None,
    iterations: int = DEFAULT_ITERATIONS,
    seed: Optional[int] = None,
    workers: int = 2,
) -> ReliabilityReport:
    """Like :func:`estimate_reliability`, with trials split across processes.

    Chunk ``i`` draws from its own source seeded with ``seed + i``, so a
    fixed seed and worker count reproduce the same report.
    """
    stations = as_stations(line)
    takt = _resolve_takt(line, takt_time)
    _validate_run(stations, takt, iterations)
    if workers < 1:
        raise InvalidConfiguration(f"workers must be >= 1, got {workers}")

    sizes = _chunk_sizes(iterations, workers)
    seeds = [None if seed is None else seed + i for i in range(len(sizes))]
    logger.debug("Splitting %d trials into chunks %s", iterations, sizes)

    with ProcessPoolExecutor(max_workers=len(sizes)) as pool:
        tallies = list(
            pool.map(
                _run_chunk,
                [stations] * len(sizes),
                [takt] * len(sizes),
                sizes,
                seeds,
            )
        )

    merged = tallies[0]
    for tally in tallies[1:]:
        merged = merged.merge(tally)
    return merged.to_report()


def _resolve_takt(line: LineInput, takt_time: Optional[float]) -> float:
    if takt_time is not None:
        return takt_time
    if getattr(line, "takt_time", None) is not None:
        return line.takt_time
    raise InvalidConfiguration("takt_time is required when the line does not set one")
