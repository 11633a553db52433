from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, List, Optional, Tuple, Union

from microgrid_lab.core.catalog.equipment import DEFAULT_CATALOG, EquipmentCatalog
from microgrid_lab.core.generation.biomass import (
    biomass_heat_value,
    max_biomass_power_mw,
    recommend_biomass_routes,
)
from microgrid_lab.core.models import (
    AnnualProfile,
    BiomassRoute,
    CancelToken,
    EquipmentConfiguration,
    ManualConfiguration,
    Region,
    RegionParameters,
    SearchProgress,
    SearchSettings,
    Solution,
)
from microgrid_lab.core.optimizer import adapters
from microgrid_lab.core.optimizer.pool import PoolEntry, SolutionPool
from microgrid_lab.core.resources.provider import annual_profile, region_parameters
from microgrid_lab.core.scoring.engine import score_solution
from microgrid_lab.core.simulation.run import simulate_lightweight, simulate_year
from microgrid_lab.core.sizing.engine import convert_manual_configuration, total_cost
from microgrid_lab.logging_config import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[SearchProgress], None]
SaveSolutions = Callable[[int, List[Solution]], None]
LoadSolutions = Callable[[int], List[Solution]]


def _now_ms() -> int:
    return int(time.time() * 1000)


def build_candidate_space(
    region: Region,
    student_id: str = "",
    settings: Optional[SearchSettings] = None,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> Tuple[adapters.CandidateSpace, RegionParameters, Dict[BiomassRoute, float]]:
    """Rank equipment, derive the ratio grid and return the sweep space for ``region``."""
    settings = settings or SearchSettings()
    params = region_parameters(region, student_id)
    heat_value = biomass_heat_value(region.biomass)
    routes = [rec.route for rec in recommend_biomass_routes(region.biomass, params.daily_biomass_t)]
    route_max = {
        route: max_biomass_power_mw(params.daily_biomass_t, heat_value, route) for route in routes
    }
    coverage = route_max[routes[0]] / params.peak_load_mw if params.peak_load_mw > 0 else 0.0
    grid = adapters.build_ratio_grid(params, coverage, settings)

    space = adapters.CandidateSpace(
        routes=tuple(routes[: settings.route_limit]),
        turbines=tuple(adapters.rank_turbines(params.avg_wind_speed, catalog)[: settings.turbine_limit]),
        panels=tuple(adapters.rank_panels(catalog)[: settings.panel_limit]),
        batteries=tuple(adapters.rank_batteries(catalog)[: settings.battery_limit]),
        ratios=tuple(grid.triples()),
    )
    return space, params, route_max


def _to_solution(
    entry: PoolEntry,
    region: Region,
    best_known_cost: float,
    timestamp: int,
    simulation=None,
) -> Solution:
    simulation = simulation or entry.simulation
    return Solution(
        id=entry.candidate_id,
        region_id=region.id,
        region_name=region.name,
        region_type=region.region_type,
        config=entry.config,
        total_cost=entry.total_cost,
        simulation=simulation,
        score=score_solution(entry.config, simulation, best_known_cost),
        timestamp=timestamp,
    )


def _snapshot(pool: SolutionPool, region: Region) -> Optional[List[Solution]]:
    min_cost = pool.min_cost()
    if min_cost is None:
        return None
    timestamp = _now_ms()
    return [_to_solution(entry, region, min_cost, timestamp) for entry in pool.entries]


def _finalize(
    pool: SolutionPool,
    region: Region,
    student_id: str,
    profile: AnnualProfile,
    catalog: EquipmentCatalog,
) -> List[Solution]:
    min_cost = pool.min_cost()
    if min_cost is None:
        return []
    timestamp = _now_ms()
    solutions = []
    for entry in pool.entries:
        full = simulate_year(entry.config, region, student_id, keep_hourly=True, profile=profile, catalog=catalog)
        solutions.append(_to_solution(entry, region, min_cost, timestamp, simulation=full))
    solutions.sort(key=lambda s: (-s.simulation.reliability, s.total_cost))
    return solutions


async def find_optimal_solutions(
    region: Region,
    student_id: str = "",
    on_progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
    settings: Optional[SearchSettings] = None,
    save: Optional[SaveSolutions] = None,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> List[Solution]:
    """
    Sweep the candidate space for ``region`` and return the ranked feasible pool.

    Each candidate is sized, simulated without hourly detail and, when feasible,
    offered to a bounded pool. Progress is reported every
    ``settings.progress_interval`` candidates, after which control is yielded to
    the event loop. The pool is re-simulated in full, scored against its cheapest
    member and ordered by reliability then cost.
    """
    settings = settings or SearchSettings()
    cancel = cancel or CancelToken()
    logger.info("Optimizing region %s (%s) | student=%r", region.id, region.region_type.value, student_id)
    try:
        space, params, route_max = build_candidate_space(region, student_id, settings, catalog)
        profile = annual_profile(region, student_id)
        total = space.total
        pool = SolutionPool(settings.pool_size)
        logger.info("Candidate space %s -> %d combinations", space.dimensions, total)

        def report(current: int, phase: str, snapshot: bool = False) -> None:
            if on_progress is None:
                return
            on_progress(
                SearchProgress(
                    current=current,
                    total=total,
                    phase=phase,
                    best_cost=best_cost,
                    best_reliability=best_reliability,
                    feasible_count=len(pool),
                    solutions=_snapshot(pool, region) if snapshot else None,
                )
            )

        current = 0
        best_cost = float("inf")
        best_reliability = 0.0
        report(0, "starting sweep")

        for index in space.indices():
            if cancel.cancelled:
                break
            current += 1
            candidate = space.candidate(index)
            config = adapters.build_candidate_configuration(
                candidate, params, region.region_type, route_max[candidate.route], catalog
            )
            result = simulate_lightweight(config, region, student_id, profile=profile, catalog=catalog)
            cost = total_cost(config)

            if result.feasible:
                if result.reliability > best_reliability:
                    best_reliability = result.reliability
                    best_cost = cost
                elif result.reliability == best_reliability and cost < best_cost:
                    best_cost = cost
                pool.offer(PoolEntry(f"opt-{region.id}-{current}", config, cost, result))
                logger.debug("Feasible %s: reliability=%.2f cost=%.2f", candidate.label, result.reliability, cost)

            if current % settings.progress_interval == 0:
                report(current, candidate.label, snapshot=True)
                await asyncio.sleep(0)

        solutions = _finalize(pool, region, student_id, profile, catalog)

        if cancel.cancelled:
            logger.info("Optimization cancelled for region %s after %d/%d candidates", region.id, current, total)
            if save is not None and solutions:
                save(region.id, solutions)
            report(current, "cancelled")
            return solutions

        if save is not None:
            save(region.id, solutions)
        report(total, "optimization complete")
        logger.info(
            "Optimized region %s: %d feasible solutions, best reliability=%.2f cost=%.2f",
            region.id,
            len(solutions),
            best_reliability,
            best_cost,
        )
        return solutions
    except Exception:
        logger.exception("Optimization failed for region %s", region.id)
        raise


def optimize_region(
    region: Region,
    student_id: str = "",
    on_progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
    settings: Optional[SearchSettings] = None,
    save: Optional[SaveSolutions] = None,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> List[Solution]:
    """Blocking wrapper around :func:`find_optimal_solutions`."""
    return asyncio.run(
        find_optimal_solutions(
            region,
            student_id=student_id,
            on_progress=on_progress,
            cancel=cancel,
            settings=settings,
            save=save,
            catalog=catalog,
        )
    )


def evaluate_configuration(
    configuration: Union[ManualConfiguration, EquipmentConfiguration],
    region: Region,
    student_id: str = "",
    best_known_cost: Optional[float] = None,
    load_solutions: Optional[LoadSolutions] = None,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> Solution:
    """
    Simulate and score a user-authored plant.

    The economics benchmark is ``best_known_cost`` (or the reference cost for the
    region type), lowered to the cheapest stored solution for the region when one
    exists.
    """
    logger.info("Evaluating manual configuration for region %s", region.id)
    try:
        if isinstance(configuration, ManualConfiguration):
            config = convert_manual_configuration(configuration, catalog)
        else:
            config = configuration

        benchmark = best_known_cost if best_known_cost is not None else adapters.reference_cost(region.region_type)
        if load_solutions is not None:
            stored = load_solutions(region.id)
            if stored and stored[0].total_cost < benchmark:
                benchmark = stored[0].total_cost

        simulation = simulate_year(config, region, student_id, keep_hourly=True, catalog=catalog)
        timestamp = _now_ms()
        solution = Solution(
            id=f"manual-{region.id}-{timestamp}",
            region_id=region.id,
            region_name=region.name,
            region_type=region.region_type,
            config=config,
            total_cost=total_cost(config),
            simulation=simulation,
            score=score_solution(config, simulation, benchmark),
            timestamp=timestamp,
        )
        logger.info(
            "Evaluated region %s: reliability=%.2f score=%.0f cost=%.2f",
            region.id,
            simulation.reliability,
            solution.score.total,
            solution.total_cost,
        )
        return solution
    except Exception:
        logger.exception("Manual evaluation failed for region %s", region.id)
        raise
