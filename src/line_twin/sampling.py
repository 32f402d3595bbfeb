"""Task time model: normally distributed task durations via Box-Muller."""

import math

from line_twin.models import StationConfig, TaskConfig
from line_twin.random_source import RandomSource

# Dispersion assumed when a task has no explicit std_dev
DEFAULT_VARIATION = 0.1


def effective_std_dev(task: TaskConfig) -> float:
    """Explicit std_dev, or 10% of the nominal time when absent."""
    if task.std_dev is not None:
        return task.std_dev
    return task.nominal_time * DEFAULT_VARIATION


def standard_normal(rng: RandomSource) -> float:
    """Standard normal variate from two uniforms in (0, 1]."""
    u1 = 1.0 - rng.next_f64()
    u2 = 1.0 - rng.next_f64()
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)


def sample_task_time(task: TaskConfig, rng: RandomSource) -> float:
    """Draw one non-negative duration for ``task``."""
    z = standard_normal(rng)
    return max(0.0, task.nominal_time + z * effective_std_dev(task))


def station_time(station: StationConfig, rng: RandomSource) -> float:
    """Sampled time for one cycle of ``station`` (0 for a station with no tasks)."""
    return sum((sample_task_time(task, rng) for task in station.tasks), 0.0)
