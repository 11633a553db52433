from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Dict, List, Optional

from microgrid_lab.core.models import (
    BiomassRoute,
    GroupSettings,
    GroupSolution,
    ManualConfiguration,
    ModelCount,
    SearchProgress,
    SearchSettings,
    Solution,
)
from microgrid_lab.core.optimizer.engine import evaluate_configuration, optimize_region
from microgrid_lab.core.optimizer.group import optimize_group
from microgrid_lab.core.resources.provider import build_region, build_regions
from microgrid_lab.core.simulation.run import print_summary
from microgrid_lab.logging_config import get_logger
from microgrid_lab.solution_store import SolutionStore

logger = get_logger(__name__)

# Narrow sweep that finishes in seconds; the full grid is thousands of candidates.
DEMO_SEARCH = SearchSettings(
    pool_size=5,
    progress_interval=5,
    route_limit=1,
    turbine_limit=1,
    panel_limit=1,
    battery_limit=1,
    wind_ratios=(0.6, 1.0),
    solar_ratios=(0.6, 1.0),
    battery_hours=(4.0, 8.0),
    include_exploratory_grid=False,
)
DEMO_GROUP = GroupSettings(candidates_per_region=2, seed=7)


def build_demo_configuration(region_id: int = 2) -> ManualConfiguration:
    """A hand-built plant sized for a small forestry region."""
    return ManualConfiguration(
        region_id=region_id,
        wind=[ModelCount("GW87/1500", 2)],
        solar=[ModelCount("Tiger Neo 545N", 8000)],
        biomass_route=BiomassRoute.DIRECT_COMBUSTION,
        biomass_primary=ModelCount("GF-20", 1),
        biomass_secondary=ModelCount("ST-6", 1),
        battery=[ModelCount("BAT-280L", 1000)],
        inverter=[ModelCount("INV-1250K", 4)],
        pcs=[ModelCount("PCS-1000", 4)],
    )


def _log_progress(progress: SearchProgress) -> None:
    logger.info("[%d/%d] %s (feasible=%d)", progress.current, progress.total, progress.phase, progress.feasible_count)


def summarize_solutions(label: str, solutions: List[Solution], limit: int = 5) -> None:
    print(f"=== Microgrid Lab Scenario: {label} ===")
    if not solutions:
        print("No feasible solution found.")
        return
    for rank, solution in enumerate(solutions[:limit], start=1):
        score = solution.score
        print(
            f"#{rank} {solution.id} reliability={solution.simulation.reliability:.2f}% "
            f"cost={solution.total_cost:.1f} score={score.total:.0f} "
            f"(condition={score.condition:.0f} matching={score.matching:.0f} "
            f"economics={score.economics:.0f} stability={score.stability:.0f})"
        )
    best = solutions[0]
    print("-- Best Solution --")
    print_summary(best.simulation)
    for issue in best.score.issues:
        print(f"  issue: {issue}")


def summarize_group(group: Optional[GroupSolution]) -> None:
    print("=== Microgrid Lab Scenario: group ===")
    if group is None:
        print("No group solution found.")
        return
    print(
        f"group={group.group_name} center={group.center_region_id} regions={len(group.region_solutions)} "
        f"score={group.group_score.total:.0f} combined={group.combined_score:.2f}"
    )
    print(
        f"cost={group.total_cost:.1f} reliability={group.group_reliability:.2f}% "
        f"curtailment={group.group_curtailment_rate:.2f}%"
    )
    flow = group.biomass_flow
    print(
        f"biomass produced={flow.total_production_t:.1f} t/d transferred={flow.total_transferred_t:.1f} t/d "
        f"utilization={flow.utilization_rate:.1f}%"
    )
    for transfer in group.transfers:
        print(
            f"  {transfer.from_region_id} -> {transfer.to_region_id}: "
            f"biomass={transfer.biomass_t_per_day:.1f} t/d power={transfer.power_mw:.2f} MW"
        )


def run_evaluate(student_id: str, region_id: Optional[int], store: Optional[SolutionStore]) -> Dict[str, object]:
    region = build_region(region_id or 2)
    loader = store.load_region_solutions if store else None
    solution = evaluate_configuration(
        build_demo_configuration(region.id), region, student_id=student_id, load_solutions=loader
    )
    return {"region": region, "solutions": [solution]}


def run_region(student_id: str, region_id: Optional[int], store: Optional[SolutionStore]) -> Dict[str, object]:
    region = build_region(region_id or 2)
    saver = store.save_region_solutions if store else None
    solutions = optimize_region(
        region, student_id=student_id, on_progress=_log_progress, settings=DEMO_SEARCH, save=saver
    )
    return {"region": region, "solutions": solutions}


def run_group(
    student_id: str,
    group_name: Optional[str],
    store: Optional[SolutionStore],
) -> Dict[str, object]:
    name = group_name or "region-39"
    group = optimize_group(
        name,
        build_regions(),
        student_id=student_id,
        on_progress=_log_progress,
        settings=DEMO_GROUP,
        search_settings=DEMO_SEARCH,
    )
    if store is not None and group is not None:
        store.save_group_solution(name, group)
    return {"group": group}


@dataclass(frozen=True)
class ScenarioDefinition:
    kind: str
    description: str


SCENARIOS: Dict[str, ScenarioDefinition] = {
    "evaluate": ScenarioDefinition("evaluate", "Score a hand-built plant for one region"),
    "region": ScenarioDefinition("region", "Optimize one region on a narrow grid"),
    "group": ScenarioDefinition("group", "Joint optimization of a region group"),
}


def run_named_scenario(
    name: str,
    student_id: str = "",
    region_id: Optional[int] = None,
    group_name: Optional[str] = None,
    store: Optional[SolutionStore] = None,
    summarize: bool = True,
) -> Dict[str, object]:
    key = name.lower()
    definition = SCENARIOS.get(key)
    if not definition:
        raise KeyError(f"Unknown scenario '{name}'")
    if definition.kind == "group":
        outputs = run_group(student_id, group_name, store)
        if summarize:
            summarize_group(outputs["group"])  # type: ignore[arg-type]
        return outputs
    runner = run_evaluate if definition.kind == "evaluate" else run_region
    outputs = runner(student_id, region_id, store)
    if summarize:
        summarize_solutions(key, outputs["solutions"])  # type: ignore[arg-type]
    return outputs


def main(argv: list[str] | None = None) -> None:
    args = argv if argv is not None else sys.argv[1:]
    scenario = args[0].lower() if args else "evaluate"
    if scenario not in SCENARIOS:
        print(f"Unknown scenario '{scenario}'. Available: {', '.join(SCENARIOS)}")
        scenario = "evaluate"
    run_named_scenario(scenario)


if __name__ == "__main__":
    main()
