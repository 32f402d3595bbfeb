"""Entry point for running reliability estimates and twin simulations."""

import argparse
import logging
from typing import Optional

from line_twin.engine import SimulationEngine, TwinRun
from line_twin.loader import ConfigLoader
from line_twin.models import ReliabilityReport
from line_twin.monte_carlo import estimate_reliability, estimate_reliability_parallel
from line_twin.random_source import SeededRandomSource


def run_reliability(
    line_name: str,
    config_dir: str = "config",
    iterations: Optional[int] = None,
    seed: Optional[int] = None,
    workers: Optional[int] = None,
) -> ReliabilityReport:
    """Run a Monte Carlo reliability estimate for a configured line.

    Args:
        line_name: Name of the line config (without .yaml extension)
        config_dir: Path to config directory
        iterations: Trial count (default from config)
        seed: Random seed (default from config)
        workers: Worker processes (default from config)

    Returns:
        ReliabilityReport
    """
    resolved = ConfigLoader(config_dir).resolve_line(line_name)
    settings = resolved.monte_carlo
    iterations = iterations if iterations is not None else settings.iterations
    seed = seed if seed is not None else settings.random_seed
    workers = workers if workers is not None else settings.workers

    if workers > 1:
        report = estimate_reliability_parallel(
            resolved.line, iterations=iterations, seed=seed, workers=workers
        )
    else:
        report = estimate_reliability(
            resolved.line, iterations=iterations, rng=SeededRandomSource(seed)
        )

    print(f"\n--- RELIABILITY: {resolved.line.name} ---")
    print(f"Takt Time:       {report.takt_time:.2f}s")
    print(f"Iterations:      {report.iterations:,}")
    print(f"Reliability:     {report.reliability:.1f}%")
    print(f"Avg Cycle Time:  {report.avg_cycle_time:.2f}s")
    print(f"P95 Cycle Time:  {report.p95_cycle_time:.2f}s")
    print(f"Meets Target:    {'yes' if report.meets_target else 'no'}")

    print("\n--- STATIONS ---")
    print(report.to_dataframe().round(2).to_string(index=False))
    return report


def run_twin(
    line_name: str,
    config_dir: str = "config",
    duration_sec: Optional[float] = None,
    seed: Optional[int] = None,
    realtime: bool = False,
    speed: Optional[float] = None,
) -> TwinRun:
    """Run the digital twin for a configured line.

    Args:
        line_name: Name of the line config (without .yaml extension)
        config_dir: Path to config directory
        duration_sec: Simulated seconds (default from config)
        seed: Random seed (default from config)
        realtime: Pace steps against the wall clock
        speed: Realtime speed multiplier (default from config)

    Returns:
        TwinRun with final state, telemetry and events
    """
    resolved = ConfigLoader(config_dir).resolve_line(line_name)
    settings = resolved.twin
    if speed is not None:
        settings.speed = speed
    duration = duration_sec if duration_sec is not None else settings.duration_sec
    seed = seed if seed is not None else settings.random_seed

    engine = SimulationEngine.from_settings(settings, realtime=realtime)
    print(f"Starting Twin: {resolved.line.name} ({duration:.0f}s simulated)...")
    run = engine.run(resolved.line, duration, rng=SeededRandomSource(seed))

    state = run.state
    print("\n--- TWIN COMPLETE ---")
    print(f"Telemetry Records: {len(run.telemetry)}")
    print(f"Event Records:     {len(run.events)}")
    print(f"Output:            {state.stats.output:,} units")
    print(f"Efficiency:        {state.efficiency:.1f}%")
    print(f"Work In Process:   {state.work_in_process}")

    print("\n--- Time in State (Seconds) ---")
    print(run.time_in_state().round(1))
    return run


def _reliability_command(args: argparse.Namespace) -> None:
    run_reliability(
        args.line,
        config_dir=args.config,
        iterations=args.iterations,
        seed=args.seed,
        workers=args.workers,
    )


def _twin_command(args: argparse.Namespace) -> None:
    run_twin(
        args.line,
        config_dir=args.config,
        duration_sec=args.duration,
        seed=args.seed,
        realtime=args.realtime,
        speed=args.speed,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Line balancing simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  reliability   Monte Carlo estimate of meeting takt time
  twin          Step the digital twin and summarize station states

Examples:
  line-twin reliability --line assembly_a --iterations 5000 --seed 7
  line-twin twin --line assembly_a --duration 300
  line-twin twin --line assembly_a --realtime --speed 20
        """,
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # === 'reliability' subcommand ===
    rel_parser = subparsers.add_parser(
        "reliability",
        help="Estimate line reliability",
        description="Run a Monte Carlo reliability estimate for a line config.",
    )
    rel_parser.add_argument("--line", required=True, help="Line config name (required)")
    rel_parser.add_argument(
        "--config", default="config", help="Config directory path (default: config)"
    )
    rel_parser.add_argument(
        "--iterations", type=int, default=None, help="Number of trials"
    )
    rel_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    rel_parser.add_argument(
        "--workers", type=int, default=None, help="Worker processes for trials"
    )
    rel_parser.set_defaults(func=_reliability_command)

    # === 'twin' subcommand ===
    twin_parser = subparsers.add_parser(
        "twin",
        help="Run the digital twin",
        description="Step the digital twin of a line config.",
    )
    twin_parser.add_argument("--line", required=True, help="Line config name (required)")
    twin_parser.add_argument(
        "--config", default="config", help="Config directory path (default: config)"
    )
    twin_parser.add_argument(
        "--duration", type=float, default=None, help="Simulated seconds to run"
    )
    twin_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    twin_parser.add_argument(
        "--realtime",
        action="store_true",
        help="Pace steps against the wall clock",
    )
    twin_parser.add_argument(
        "--speed", type=float, default=None, help="Realtime speed multiplier"
    )
    twin_parser.set_defaults(func=_twin_command)
    return parser


def main(argv: Optional[list] = None) -> None:
    """CLI entry point with subcommands."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
