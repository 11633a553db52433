from __future__ import annotations

import math

import pytest

from microgrid_lab.core.models import CancelToken, GroupSettings, TransferConfig
from microgrid_lab.core.optimizer import group as group_module
from microgrid_lab.core.optimizer.group import (
    GROUP_DEFINITIONS,
    _odometer,
    add_power_transfers,
    distance,
    evaluate_group,
    group_regions,
    optimize_group,
    region_group,
    transfer_cost,
    transfer_loss,
)
from microgrid_lab.core.resources.provider import build_regions, region_parameters


@pytest.fixture
def regions():
    return build_regions()


def _provider(solution_factory, costs=(20000.0, 12000.0)):
    async def provide(region, student_id, cancel):
        return [
            solution_factory(region, cost, reliability=99.0, suffix=str(index))
            for index, cost in enumerate(costs)
        ]

    return provide


def test_group_definitions_cover_fifty_two_regions():
    members = [rid for definition in GROUP_DEFINITIONS for rid in definition.region_ids]
    assert len(GROUP_DEFINITIONS) == 10
    assert sorted(members) == list(range(1, 53))
    assert all(d.center_region_id == d.region_ids[0] for d in GROUP_DEFINITIONS)
    assert region_group("region-39").region_ids == (39, 40, 47, 48)
    assert region_group("nowhere") is None


def test_odometer_turns_last_position_fastest():
    assert list(_odometer([2, 3])) == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]
    assert list(_odometer([1, 1])) == [(0, 0)]


def test_transfer_helpers(regions):
    a, b = regions[0], regions[1]
    d = distance(a, b)
    assert d == pytest.approx(math.hypot(a.x - b.x, a.y - b.y))
    assert transfer_cost(100.0, 10.0, 0.0) == pytest.approx(10 * 100 * 0.5 * 365 / 1e4)
    assert transfer_cost(100.0, 0.0, 2.0) == pytest.approx(2 * 1000 * 8000 * 100 * 0.02 / 1e8)
    assert transfer_loss(100.0, 10.0, 2.0) == pytest.approx((1.0, 0.01))


def test_power_transfers_split_surplus_and_cap_each_edge(regions, solution_factory):
    rich = solution_factory(regions[0], 100.0, generation_mwh=1060.0, load_mwh=1000.0)
    poor_a = solution_factory(regions[1], 100.0, generation_mwh=900.0, load_mwh=1000.0)
    poor_b = solution_factory(regions[2], 100.0, generation_mwh=950.0, load_mwh=1000.0)
    transfers = [TransferConfig(rich.region_id, poor_a.region_id, biomass_t_per_day=5.0)]
    add_power_transfers([rich, poor_a, poor_b], transfers)
    assert len(transfers) == 2
    assert transfers[0].biomass_t_per_day == 5.0
    assert transfers[0].power_mw == 10.0
    assert transfers[1].to_region_id == poor_b.region_id
    assert transfers[1].power_mw == 10.0

    small = solution_factory(regions[0], 100.0, generation_mwh=1004.0, load_mwh=1000.0)
    edges = []
    add_power_transfers([small, poor_a, poor_b], edges)
    assert [edge.power_mw for edge in edges] == [2.0, 2.0]


def test_group_score_terms(regions, solution_factory):
    solutions = [
        solution_factory(regions[0], 30000.0, reliability=99.5, score_total=70.0),
        solution_factory(regions[3], 22000.0, reliability=99.0, score_total=80.0),
    ]
    transfers = [TransferConfig(1, 4, biomass_t_per_day=100.0)]
    score = evaluate_group(solutions, transfers)
    assert score.avg_region_score == 75.0
    assert score.resource_sharing == 2.0
    assert score.load_balancing == 5.0
    # average cost 26000 against an expected (35000 + 22000) / 2
    assert score.economic_optimization == 5.0
    assert score.total == 87.0
    assert score.issues == []


def test_group_score_penalises_unreliable_and_costly_groups(regions, solution_factory):
    solutions = [
        solution_factory(regions[1], 50000.0, reliability=99.0),
        solution_factory(regions[4], 50000.0, reliability=90.0),
    ]
    score = evaluate_group(solutions, [])
    assert score.resource_sharing == 0.0
    assert score.load_balancing == 0.0
    assert score.economic_optimization == 1.0
    assert len(score.issues) == 2


def test_group_search_picks_cheapest_combination(regions, solution_factory):
    events = []
    result = optimize_group(
        "region-39",
        regions,
        on_progress=events.append,
        settings=GroupSettings(seed=1),
        candidate_provider=_provider(solution_factory),
    )
    assert result is not None
    assert result.group_name == "region-39"
    assert [s.region_id for s in result.region_solutions] == [39, 40, 47, 48]
    assert all(s.total_cost == 12000.0 for s in result.region_solutions)
    assert result.total_cost == 48000.0

    biomass_edges = [t for t in result.transfers if t.biomass_t_per_day > 0]
    assert {t.from_region_id for t in biomass_edges} == {40, 47, 48}
    assert all(t.to_region_id == 39 for t in biomass_edges)
    for edge in biomass_edges:
        daily = region_parameters(regions[edge.from_region_id - 1]).daily_biomass_t
        assert edge.biomass_t_per_day == pytest.approx(daily * 0.5)

    assert result.combined_score == pytest.approx(result.group_score.total - 48000.0 / 10000 + 5)
    assert result.group_reliability == pytest.approx(100.0)
    center = next(d for d in result.region_details if d.is_center)
    assert center.resources.received_biomass_t == pytest.approx(result.biomass_flow.total_transferred_t)
    assert center.resources.net_biomass_t == pytest.approx(
        center.resources.daily_biomass_t + center.resources.received_biomass_t
    )
    assert result.cost_comparison["savings_amount"] == 0.0
    assert result.equipment_summary["wind"] == pytest.approx(4 * 3.0)
    assert events[-1].phase == "group optimization complete"


def test_group_sampling_is_reproducible_with_a_seed(regions, solution_factory):
    settings = GroupSettings(max_combinations=20, seed=42)
    provider = _provider(solution_factory, costs=(20000.0, 15000.0, 12000.0))
    first = optimize_group("region-39", regions, settings=settings, candidate_provider=provider)
    second = optimize_group("region-39", regions, settings=settings, candidate_provider=provider)
    assert first is not None and second is not None
    assert [s.id for s in first.region_solutions] == [s.id for s in second.region_solutions]


def test_regions_without_candidates_are_skipped(regions, solution_factory):
    async def provide(region, student_id, cancel):
        if region.id == 47:
            return []
        return [solution_factory(region, 10000.0)]

    result = optimize_group("region-39", regions, candidate_provider=provide)
    assert [s.region_id for s in result.region_solutions] == [39, 40, 48]


def test_unknown_or_empty_groups_return_none(regions, solution_factory):
    provider = _provider(solution_factory)
    assert optimize_group("nowhere", regions, candidate_provider=provider) is None
    assert optimize_group("region-39", regions[:10], candidate_provider=provider) is None


def test_cancelled_group_search_returns_none(regions, solution_factory):
    token = CancelToken()
    token.cancel()
    events = []
    result = optimize_group(
        "region-39", regions, on_progress=events.append, cancel=token, candidate_provider=_provider(solution_factory)
    )
    assert result is None
    assert events[-1].phase == "cancelled"
    assert events[-1].current == 0


def test_group_regions_preserves_list_order(regions):
    members = group_regions(region_group("region-12"), regions)
    assert [r.id for r in members] == [4, 5, 11, 12, 20]


def test_cancelling_inside_a_region_search_stops_the_group(regions, solution_factory):
    token = CancelToken()
    searched = []

    async def provide(region, student_id, cancel):
        searched.append(region.id)
        assert cancel is token
        cancel.cancel()
        return [solution_factory(region, 12000.0)]

    events = []
    result = optimize_group("region-39", regions, on_progress=events.append, cancel=token, candidate_provider=provide)
    assert result is None
    assert searched == [39]
    assert events[-1].phase == "cancelled"


def test_default_provider_hands_the_token_to_the_region_search(regions, tiny_search, monkeypatch):
    received = []

    async def fake_search(region, student_id="", cancel=None, settings=None, **kwargs):
        received.append((region.id, cancel, settings))
        cancel.cancel()
        return []

    monkeypatch.setattr(group_module, "find_optimal_solutions", fake_search)
    token = CancelToken()
    result = optimize_group("region-39", regions, cancel=token, search_settings=tiny_search)
    assert result is None
    assert received == [(39, token, tiny_search)]
