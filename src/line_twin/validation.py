"""Up-front checks shared by the estimator and the digital twin."""

import math
from typing import List, Sequence, Union

from line_twin.errors import EmptyLine, InvalidConfiguration
from line_twin.models import LineConfig, StationConfig

LineInput = Union[LineConfig, Sequence[StationConfig]]


def as_stations(line: LineInput) -> List[StationConfig]:
    """Accept a LineConfig or a bare station sequence."""
    if isinstance(line, LineConfig):
        return list(line.stations)
    return list(line)


def _is_non_negative(value: float) -> bool:
    return math.isfinite(value) and value >= 0


def validate_stations(stations: Sequence[StationConfig]) -> None:
    """Reject empty lines and negative or non-finite timing parameters.

    Station ids must stay unique once rendered as text, since telemetry
    columns are keyed by ``str(id)``.

    Raises:
        EmptyLine: If no stations are given
        InvalidConfiguration: If any time, deviation or capacity is out of range
    """
    if not stations:
        raise EmptyLine("Line configuration has no stations")

    seen = set()
    for station in stations:
        key = str(station.id)
        if key in seen:
            raise InvalidConfiguration(f"Duplicate station id: {station.id!r}")
        seen.add(key)

        if station.std_dev is not None and not _is_non_negative(station.std_dev):
            raise InvalidConfiguration(
                f"Station {station.id}: std_dev must be >= 0, got {station.std_dev}"
            )
        if station.buffer_capacity is not None and station.buffer_capacity < 1:
            raise InvalidConfiguration(
                f"Station {station.id}: buffer_capacity must be >= 1, "
                f"got {station.buffer_capacity}"
            )

        for task in station.tasks:
            if not _is_non_negative(task.nominal_time):
                raise InvalidConfiguration(
                    f"Task {task.id} at station {station.id}: "
                    f"nominal_time must be >= 0, got {task.nominal_time}"
                )
            if task.std_dev is not None and not _is_non_negative(task.std_dev):
                raise InvalidConfiguration(
                    f"Task {task.id} at station {station.id}: "
                    f"std_dev must be >= 0, got {task.std_dev}"
                )


def validate_takt_time(takt_time: float) -> None:
    if not _is_non_negative(takt_time):
        raise InvalidConfiguration(f"takt_time must be a finite value >= 0, got {takt_time}")
