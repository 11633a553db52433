from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from microgrid_lab.core.simulation.run import hourly_frame
from microgrid_lab.logging_config import get_logger, set_level
from microgrid_lab.scripts import demo_pipeline
from microgrid_lab.solution_store import SolutionStore

logger = get_logger(__name__)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="microgrid-lab",
        description="Evaluate or optimize wind/solar/biomass/storage microgrids (evaluate, region, group).",
    )
    parser.add_argument(
        "scenario",
        nargs="?",
        default="evaluate",
        choices=list(demo_pipeline.SCENARIOS.keys()),
        help="Scenario to run (default: evaluate)",
    )
    parser.add_argument("--student", default="", help="Student id used to scale load and biomass.")
    parser.add_argument("--region", type=int, help="Region id for the evaluate and region scenarios.")
    parser.add_argument("--group", help="Group name for the group scenario, e.g. region-39.")
    parser.add_argument(
        "--save",
        action="store_true",
        help="Persist results to the solution store.",
    )
    parser.add_argument("--store", help="Solution store directory (default: $MICROGRID_STORE_DIR or exports/solutions).")
    parser.add_argument("--export", help="Write the solution store as JSON to this path after running.")
    parser.add_argument("--hourly-csv", help="Write the best solution's hourly samples to this CSV path.")
    parser.add_argument("--log-level", help="Override MICROGRID_LOG_LEVEL (DEBUG, INFO, WARNING).")
    args = parser.parse_args(argv)

    if args.log_level and not set_level(args.log_level):
        logger.warning("Ignoring unknown log level %r", args.log_level)

    store = SolutionStore(args.store) if (args.save or args.export or args.store) else None
    logger.info("Starting microgrid-lab scenario=%s student=%r", args.scenario, args.student)
    try:
        outputs = demo_pipeline.run_named_scenario(
            args.scenario,
            student_id=args.student,
            region_id=args.region,
            group_name=args.group,
            store=store if args.save else None,
        )
        if args.hourly_csv:
            _write_hourly_csv(outputs, Path(args.hourly_csv))
        if args.export and store is not None:
            destination = Path(args.export)
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(store.export_json(), encoding="utf-8")
            logger.info("Solution store exported to %s", destination)
        logger.info("Scenario %s completed", args.scenario)
    except Exception:
        logger.exception("Scenario %s failed", args.scenario)
        raise


def _write_hourly_csv(outputs: dict, destination: Path) -> None:
    solutions = outputs.get("solutions") or []
    group = outputs.get("group")
    if not solutions and group is not None:
        solutions = group.region_solutions
    if not solutions or not solutions[0].simulation.hourly:
        logger.warning("No hourly data available for %s", destination)
        return
    destination.parent.mkdir(parents=True, exist_ok=True)
    hourly_frame(solutions[0].simulation).to_csv(destination)
    logger.info("Hourly samples written to %s", destination)


if __name__ == "__main__":
    main()
