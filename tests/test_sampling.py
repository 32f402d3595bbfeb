"""Unit tests for the Box-Muller task time model."""

import math

import pytest

from line_twin import (
    SeededRandomSource,
    SequenceRandomSource,
    StationConfig,
    TaskConfig,
    effective_std_dev,
    sample_task_time,
    station_time,
)


class TestEffectiveStdDev:
    def test_defaults_to_ten_percent(self):
        assert effective_std_dev(TaskConfig(id=1, nominal_time=10.0)) == pytest.approx(1.0)

    def test_explicit_value_wins(self):
        assert effective_std_dev(TaskConfig(id=1, nominal_time=10.0, std_dev=2.5)) == 2.5

    def test_explicit_zero_is_kept(self):
        assert effective_std_dev(TaskConfig(id=1, nominal_time=10.0, std_dev=0.0)) == 0.0


class TestSampleTaskTime:
    def test_unit_draw_gives_nominal(self):
        """u1 = 1 makes z = 0, so the sample equals the nominal time."""
        task = TaskConfig(id="a", nominal_time=7.5, std_dev=3.0)
        assert sample_task_time(task, SequenceRandomSource([0.0])) == pytest.approx(7.5)

    def test_box_muller_value(self):
        """u1 = u2 = 0.5 gives z = -sqrt(2 ln 2)."""
        task = TaskConfig(id="a", nominal_time=10.0, std_dev=2.0)
        expected = 10.0 - 2.0 * math.sqrt(2.0 * math.log(2.0))
        assert sample_task_time(task, SequenceRandomSource([0.5])) == pytest.approx(expected)

    def test_clamped_at_zero(self):
        task = TaskConfig(id="a", nominal_time=1.0, std_dev=10.0)
        assert sample_task_time(task, SequenceRandomSource([0.5])) == 0.0

    def test_zero_nominal_is_always_zero(self):
        task = TaskConfig(id="a", nominal_time=0.0)
        rng = SeededRandomSource(3)
        assert all(sample_task_time(task, rng) == 0.0 for _ in range(100))

    def test_samples_never_negative(self):
        task = TaskConfig(id="a", nominal_time=1.0, std_dev=2.0)
        rng = SeededRandomSource(11)
        assert min(sample_task_time(task, rng) for _ in range(2000)) >= 0.0

    def test_sample_mean_near_nominal(self):
        task = TaskConfig(id="a", nominal_time=20.0, std_dev=1.0)
        rng = SeededRandomSource(5)
        samples = [sample_task_time(task, rng) for _ in range(5000)]
        assert sum(samples) / len(samples) == pytest.approx(20.0, abs=0.1)

    def test_seeded_sources_repeat(self):
        task = TaskConfig(id="a", nominal_time=5.0)
        a, b = SeededRandomSource(42), SeededRandomSource(42)
        assert [sample_task_time(task, a) for _ in range(10)] == [
            sample_task_time(task, b) for _ in range(10)
        ]


class TestStationTime:
    def test_empty_station_is_zero(self):
        assert station_time(StationConfig(id="empty"), SeededRandomSource(1)) == 0.0

    def test_sums_tasks(self):
        station = StationConfig(
            id="s",
            tasks=[
                TaskConfig(id=1, nominal_time=3.0, std_dev=0.0),
                TaskConfig(id=2, nominal_time=4.5, std_dev=0.0),
            ],
        )
        assert station_time(station, SeededRandomSource(1)) == pytest.approx(7.5)


class TestSequenceRandomSource:
    def test_cycles_values(self):
        rng = SequenceRandomSource([0.1, 0.2])
        assert [rng.next_f64() for _ in range(5)] == [0.1, 0.2, 0.1, 0.2, 0.1]

    def test_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            SequenceRandomSource([1.0])

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            SequenceRandomSource([])
