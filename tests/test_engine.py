"""Tests for the SimPy-driven twin engine and time-in-state aggregation."""

import pandas as pd
import pytest

from line_twin import (
    InvalidConfiguration,
    SeededRandomSource,
    SimulationEngine,
    TwinSettings,
    build_simulation,
    run_ticks,
    time_in_state,
)
from line_twin.aggregation import TRACKED_STATES


@pytest.fixture
def engine() -> SimulationEngine:
    return SimulationEngine(dt=0.1, telemetry_interval_sec=1.0)


class TestEngineRun:
    def test_tick_count(self, engine, three_station_line):
        run = engine.run(three_station_line, 10.0, rng=SeededRandomSource(1))
        assert run.state.tick == 100
        assert run.state.stats.time_elapsed == pytest.approx(10.0)

    def test_telemetry_interval(self, engine, three_station_line):
        run = engine.run(three_station_line, 10.0, rng=SeededRandomSource(1))

        # Initial row plus one per simulated second
        assert len(run.telemetry) == 11
        assert list(run.telemetry["tick"]) == list(range(0, 101, 10))
        assert run.telemetry["time"].iloc[-1] == pytest.approx(10.0)

    def test_matches_pure_stepping(self, engine, three_station_line):
        run = engine.run(three_station_line, 10.0, rng=SeededRandomSource(5))
        stepped = run_ticks(build_simulation(three_station_line), 100, rng=SeededRandomSource(5))
        assert run.state == stepped[-1]

    def test_seeded_runs_identical(self, engine, three_station_line):
        a = engine.run(three_station_line, 60.0, rng=SeededRandomSource(2))
        b = engine.run(three_station_line, 60.0, rng=SeededRandomSource(2))
        pd.testing.assert_frame_equal(a.telemetry, b.telemetry)
        pd.testing.assert_frame_equal(a.events, b.events)

    def test_buffer_levels_within_capacity(self, three_station_line):
        engine = SimulationEngine(buffer_capacity=2, telemetry_interval_sec=0.5)
        run = engine.run(three_station_line, 300.0, rng=SeededRandomSource(4))
        df = run.telemetry

        level_cols = [c for c in df.columns if c.endswith("_level")]
        assert level_cols
        for level_col in level_cols:
            cap_col = level_col.replace("_level", "_cap")
            assert (df[level_col] <= df[cap_col]).all()
            assert (df[level_col] >= 0).all()

    def test_output_non_decreasing(self, engine, three_station_line):
        run = engine.run(three_station_line, 120.0, rng=SeededRandomSource(3))
        assert run.telemetry["output"].is_monotonic_increasing

    def test_resume_from_state(self, engine, three_station_line):
        first = engine.run(three_station_line, 5.0, rng=SeededRandomSource(7))
        second = engine.run(three_station_line, 5.0, rng=SeededRandomSource(8), state=first.state)
        assert second.state.tick == 100
        assert second.state.stats.time_elapsed == pytest.approx(10.0)

    def test_zero_duration(self, engine, three_station_line):
        run = engine.run(three_station_line, 0.0)
        assert run.state.tick == 0
        assert len(run.telemetry) == 1

    def test_realtime_speed(self, three_station_line):
        engine = SimulationEngine(realtime=True, speed=1000.0)
        run = engine.run(three_station_line, 0.5, rng=SeededRandomSource(1))
        assert run.state.tick == 5


class TestEngineEvents:
    def test_initial_start_events(self, engine, blocking_line, no_jitter):
        run = engine.run(blocking_line, 1.0, rng=no_jitter)
        head = run.events.head(2)

        assert list(head["station"]) == ["fast", "slow"]
        assert list(head["state"]) == ["IDLE", "IDLE"]
        assert (head["event_type"] == "start").all()
        assert (head["timestamp"] == 0.0).all()

    def test_transitions_logged_in_pairs(self, engine, blocking_line, no_jitter):
        run = engine.run(blocking_line, 10.0, rng=no_jitter)
        ev = run.events

        ends = ev[ev["event_type"] == "end"]
        starts = ev[ev["event_type"] == "start"]
        # Every transition closes one state and opens another
        assert len(starts) == len(ends) + 2

    def test_blocked_state_logged(self, engine, blocking_line, no_jitter):
        run = engine.run(blocking_line, 6.0, rng=no_jitter)
        fast = run.events[run.events["station"] == "fast"]
        assert "BLOCKED" in set(fast["state"])


class TestEngineConfig:
    def test_invalid_dt(self):
        with pytest.raises(InvalidConfiguration):
            SimulationEngine(dt=0.0)

    def test_invalid_speed(self):
        with pytest.raises(InvalidConfiguration):
            SimulationEngine(speed=0.0)

    def test_invalid_interval(self):
        with pytest.raises(InvalidConfiguration):
            SimulationEngine(telemetry_interval_sec=0.0)

    def test_negative_duration(self, engine, three_station_line):
        with pytest.raises(InvalidConfiguration):
            engine.run(three_station_line, -1.0)

    def test_from_settings(self):
        settings = TwinSettings(dt=0.5, buffer_capacity=3, speed=5.0)
        engine = SimulationEngine.from_settings(settings, realtime=True)
        assert engine.dt == 0.5
        assert engine.buffer_capacity == 3
        assert engine.speed == 5.0
        assert engine.realtime


class TestTimeInState:
    def test_durations_from_events(self):
        events = pd.DataFrame(
            [
                {"timestamp": 0.0, "station": "S1", "state": "IDLE", "event_type": "start"},
                {"timestamp": 0.0, "station": "S2", "state": "STARVED", "event_type": "start"},
                {"timestamp": 1.0, "station": "S1", "state": "IDLE", "event_type": "end"},
                {"timestamp": 1.0, "station": "S1", "state": "BUSY", "event_type": "start"},
                {"timestamp": 4.0, "station": "S1", "state": "BUSY", "event_type": "end"},
                {"timestamp": 4.0, "station": "S1", "state": "BLOCKED", "event_type": "start"},
            ]
        )
        stats = time_in_state(events, end_time=10.0)

        assert list(stats.index) == ["S1", "S2"]
        s1 = stats.loc["S1"]
        assert s1["IDLE"] == pytest.approx(1.0)
        assert s1["BUSY"] == pytest.approx(3.0)
        assert s1["BLOCKED"] == pytest.approx(6.0)
        assert s1["STARVED"] == 0.0
        assert s1["utilization_pct"] == pytest.approx(30.0)
        assert s1["blocked_pct"] == pytest.approx(60.0)
        assert stats.loc["S2", "starved_pct"] == pytest.approx(100.0)

    def test_empty_events(self):
        stats = time_in_state(
            pd.DataFrame(columns=["timestamp", "station", "state", "event_type"]), 5.0
        )
        assert stats.empty
        assert list(stats.columns[: len(TRACKED_STATES)]) == TRACKED_STATES

    def test_run_totals_cover_elapsed_time(self, engine, three_station_line):
        run = engine.run(three_station_line, 60.0, rng=SeededRandomSource(9))
        stats = run.time_in_state()

        assert list(stats.index) == ["S1", "S2", "S3"]
        for total in stats[TRACKED_STATES].sum(axis=1):
            assert total == pytest.approx(60.0)
        assert ((stats["utilization_pct"] >= 0) & (stats["utilization_pct"] <= 100)).all()
