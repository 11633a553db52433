from __future__ import annotations

import asyncio
import json

import pytest

from microgrid_lab.core.models import CancelToken, RegionType, SearchSettings
from microgrid_lab.core.optimizer import adapters
from microgrid_lab.core.optimizer.engine import (
    build_candidate_space,
    evaluate_configuration,
    find_optimal_solutions,
    optimize_region,
)
from microgrid_lab.core.optimizer.pool import PoolEntry, SolutionPool
from microgrid_lab.core.resources.provider import region_parameters


def _entry(name, reliability, cost, solution_factory, region):
    simulation = solution_factory(region, cost, reliability=reliability).simulation
    return PoolEntry(name, None, cost, simulation)


def test_pool_replaces_worst_only_when_strictly_better(solution_factory, forestry_region):
    pool = SolutionPool(capacity=2)
    assert pool.offer(_entry("a", 99.0, 100.0, solution_factory, forestry_region))
    assert pool.offer(_entry("b", 98.5, 80.0, solution_factory, forestry_region))
    # equal reliability, higher cost than the worst member
    assert not pool.offer(_entry("c", 98.5, 90.0, solution_factory, forestry_region))
    assert pool.offer(_entry("d", 98.5, 70.0, solution_factory, forestry_region))
    assert pool.offer(_entry("e", 99.5, 500.0, solution_factory, forestry_region))
    assert sorted(entry.candidate_id for entry in pool) == ["a", "e"]
    assert pool.min_cost() == 100.0


def test_pool_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        SolutionPool(capacity=0)


def test_candidate_space_cardinality(forestry_region, tiny_search):
    space, params, route_max = build_candidate_space(forestry_region, settings=tiny_search)
    assert space.dimensions == (1, 1, 1, 1, 4)
    assert space.total == 4
    indices = list(space.indices())
    assert indices[0] == (0, 0, 0, 0, 0)
    assert indices[-1] == (0, 0, 0, 0, 3)
    assert space.routes[0] in route_max
    assert params.peak_load_mw > 0


def test_default_grid_merges_exploratory_and_heuristic_values(industrial_region):
    params = region_parameters(industrial_region)
    grid = adapters.build_ratio_grid(params, biomass_coverage=0.1)
    assert len(grid.wind_ratios) >= len(adapters.WIND_RATIO_GRID)
    assert max(grid.wind_ratios) <= 2.0
    assert min(grid.battery_hours) >= 0.5
    assert len(set(grid.solar_ratios)) == len(grid.solar_ratios)


def test_turbines_must_start_below_mean_wind():
    ranked = adapters.rank_turbines(3.2)
    assert ranked
    assert all(turbine.cut_in_speed < 3.2 for turbine in ranked)


def test_search_ranges_are_ordered(industrial_region):
    params = region_parameters(industrial_region)
    ranges = adapters.estimate_search_ranges(params, max_biomass_mw=5.0)
    for key in ("wind", "solar", "biomass", "battery"):
        assert ranges[key].minimum <= ranges[key].recommended <= ranges[key].maximum
        assert ranges[key].step > 0


def test_reference_costs_read_from_json(tmp_path):
    path = tmp_path / "costs.json"
    path.write_text(json.dumps({"industrial": 31000, "forestry": "n/a"}), encoding="utf-8")
    costs = adapters.load_reference_costs(path)
    assert costs == {"industrial": 31000.0}
    assert adapters.reference_cost(RegionType.INDUSTRIAL, costs) == 31000.0
    assert adapters.reference_cost(RegionType.FORESTRY, costs) == adapters.DEFAULT_BEST_KNOWN_COST
    assert adapters.load_reference_costs(tmp_path / "missing.json") == {}


def test_cancelled_search_returns_immediately(forestry_region, tiny_search):
    events = []
    saved = []
    token = CancelToken()
    token.cancel()
    solutions = optimize_region(
        forestry_region,
        on_progress=events.append,
        cancel=token,
        settings=tiny_search,
        save=lambda region_id, items: saved.append(region_id),
    )
    assert solutions == []
    assert saved == []
    assert events[0].current == 0
    assert events[-1].current == 0
    assert events[-1].phase == "cancelled"


def test_search_returns_ranked_feasible_pool(forestry_region, tiny_search):
    events = []
    saved = {}
    solutions = optimize_region(
        forestry_region,
        on_progress=events.append,
        settings=tiny_search,
        save=lambda region_id, items: saved.setdefault(region_id, items),
    )
    assert len(solutions) <= tiny_search.pool_size
    assert all(s.simulation.feasible for s in solutions)
    assert all(s.id.startswith(f"opt-{forestry_region.id}-") for s in solutions)
    keys = [(-s.simulation.reliability, s.total_cost) for s in solutions]
    assert keys == sorted(keys)
    assert all(len(s.simulation.hourly) == 8760 for s in solutions)
    assert saved[forestry_region.id] == solutions

    assert events[0].current == 0
    assert [e.current for e in events[1:-1]] == [2, 4]
    assert events[-1].current == events[-1].total == 4
    assert events[-1].phase == "optimization complete"


def test_cancelling_mid_sweep_keeps_partial_pool(forestry_region, tiny_search):
    token = CancelToken()
    events = []

    def on_progress(progress):
        events.append(progress)
        if progress.current == 2:
            token.cancel()

    solutions = asyncio.run(
        find_optimal_solutions(forestry_region, on_progress=on_progress, cancel=token, settings=tiny_search)
    )
    assert events[-1].phase == "cancelled"
    assert events[-1].current == 2
    assert all(s.id in {f"opt-{forestry_region.id}-1", f"opt-{forestry_region.id}-2"} for s in solutions)


def test_progress_yields_to_the_event_loop(forestry_region, tiny_search):
    ticks = []

    async def ticker():
        while True:
            ticks.append(1)
            await asyncio.sleep(0)

    async def run():
        task = asyncio.create_task(ticker())
        await find_optimal_solutions(forestry_region, settings=tiny_search)
        task.cancel()

    asyncio.run(run())
    assert len(ticks) >= 2


def test_manual_evaluation_uses_cheaper_stored_benchmark(forestry_region, demo_manual, solution_factory):
    reference = evaluate_configuration(demo_manual, forestry_region, best_known_cost=1e9)
    assert reference.id.startswith(f"manual-{forestry_region.id}-")
    assert reference.score.economics == 30

    stored = [solution_factory(forestry_region, reference.total_cost / 2)]
    benchmarked = evaluate_configuration(
        demo_manual, forestry_region, best_known_cost=1e9, load_solutions=lambda region_id: stored
    )
    assert benchmarked.score.economics == 5
    assert benchmarked.simulation.reliability == reference.simulation.reliability


def test_settings_defaults_follow_search_limits():
    settings = SearchSettings()
    assert settings.pool_size == 20
    assert (settings.route_limit, settings.turbine_limit, settings.panel_limit, settings.battery_limit) == (2, 3, 2, 2)
