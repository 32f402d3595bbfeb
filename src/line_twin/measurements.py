"""Group raw time-study measurements into stations.

Measurements carry a duration split into manual, walking, waiting and
automatic components plus the operator or station they were recorded at.
"""

import re
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from line_twin.models import LineConfig, StationConfig, TaskConfig, TaskId

DEFAULT_STATION = "Station 1"

_STATION_NUMBER = re.compile(r"station\s*(\d+)", re.IGNORECASE)
_DIGITS = re.compile(r"(\d+)")


class MeasurementRecord(BaseModel):
    """One timed element from a time study."""

    id: TaskId
    duration: float = 0.0
    manual_time: float = 0.0
    walk_time: float = 0.0
    waiting_time: float = 0.0
    auto_time: float = 0.0
    std_dev: Optional[float] = None
    operator: Optional[str] = None
    station: Optional[str] = None

    @property
    def operator_time(self) -> float:
        """Manual + walk + waiting, or the raw duration when nothing was split out."""
        op_time = self.manual_time + self.walk_time + self.waiting_time
        if op_time == 0 and self.auto_time == 0 and self.duration > 0:
            return self.duration
        return op_time

    @property
    def station_key(self) -> str:
        return self.operator or self.station or DEFAULT_STATION


def _station_sort_key(name: str) -> Tuple[float, List]:
    """Order "Station N" names by N; everything else after, naturally sorted."""
    match = _STATION_NUMBER.search(name)
    number = float(match.group(1)) if match else float("inf")
    natural = [
        (0, int(part), "") if part.isdigit() else (1, 0, part.lower())
        for part in _DIGITS.split(name)
        if part
    ]
    return number, natural


def group_measurements(records: Iterable[MeasurementRecord]) -> List[StationConfig]:
    """Bucket records into stations, keeping record order within each station."""
    grouped: Dict[str, List[TaskConfig]] = {}
    for record in records:
        grouped.setdefault(record.station_key, []).append(
            TaskConfig(
                id=str(record.id),
                nominal_time=record.operator_time,
                std_dev=record.std_dev,
            )
        )
    return [
        StationConfig(id=name, tasks=grouped[name])
        for name in sorted(grouped, key=_station_sort_key)
    ]


def line_from_measurements(
    records: Iterable[MeasurementRecord], takt_time: float, name: str = "line"
) -> LineConfig:
    return LineConfig(name=name, stations=group_measurements(records), takt_time=takt_time)
