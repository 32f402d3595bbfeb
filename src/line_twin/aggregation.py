"""Time-in-state aggregation over digital twin event logs."""

import pandas as pd

# States tracked for time-in-state aggregation
TRACKED_STATES = ["BUSY", "IDLE", "BLOCKED", "STARVED"]


def time_in_state(events_df: pd.DataFrame, end_time: float) -> pd.DataFrame:
    """Seconds each station spent in each state, with percentage columns.

    Args:
        events_df: Event log with ``timestamp, station, state, event_type``
            columns, as produced by the simulation engine
        end_time: Simulated time at which still-open states are closed

    Returns:
        DataFrame indexed by station (line order) with one column per tracked
        state plus ``utilization_pct``, ``blocked_pct`` and ``starved_pct``
    """
    columns = TRACKED_STATES + ["utilization_pct", "blocked_pct", "starved_pct"]
    if events_df.empty:
        return pd.DataFrame(columns=columns)

    starts = events_df[events_df["event_type"] == "start"].copy()
    starts = starts.sort_values(["timestamp"], kind="stable")
    order = list(pd.unique(starts["station"]))

    # Each state lasts until the station's next start event
    starts["next_time"] = starts.groupby("station")["timestamp"].shift(-1)
    starts["next_time"] = starts["next_time"].fillna(end_time)
    starts["duration"] = starts["next_time"] - starts["timestamp"]

    stats = (
        starts.groupby(["station", "state"])["duration"]
        .sum()
        .unstack(fill_value=0.0)
        .reindex(order)
    )
    for state in TRACKED_STATES:
        if state not in stats.columns:
            stats[state] = 0.0
    stats = stats[TRACKED_STATES]

    total = stats.sum(axis=1)
    safe_total = total.where(total > 0)
    stats["utilization_pct"] = (stats["BUSY"] / safe_total * 100).fillna(0.0)
    stats["blocked_pct"] = (stats["BLOCKED"] / safe_total * 100).fillna(0.0)
    stats["starved_pct"] = (stats["STARVED"] / safe_total * 100).fillna(0.0)
    stats.columns.name = None
    return stats
