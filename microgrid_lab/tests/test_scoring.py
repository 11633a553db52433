from __future__ import annotations

import pytest

from microgrid_lab.core.models import (
    BiomassRoute,
    BiomassSelection,
    EquipmentConfiguration,
    EquipmentSelection,
)
from microgrid_lab.core.scoring.engine import band_factor, economics_score, score_solution
from microgrid_lab.core.simulation.run import simulate_year
from microgrid_lab.core.sizing.engine import convert_manual_configuration, total_cost


def test_band_factor_shapes():
    assert band_factor(1.05, (1.0, 1.1), (0.8, 1.2), 1.05, 0.25) == 1.0
    assert band_factor(0.9, (1.0, 1.1), (0.8, 1.2), 1.05, 0.25) == pytest.approx(1 - 0.15 / 0.25)
    assert band_factor(2.0, (1.0, 1.1), (0.8, 1.2), 1.05, 0.25) == 0.5


@pytest.mark.parametrize(
    "ratio, points",
    [(0.9, 30), (1.05, 30), (1.07, 28), (1.18, 24), (1.3, 20), (1.45, 10), (1.5, 10), (2.0, 5)],
)
def test_economics_steps(ratio, points):
    assert economics_score(ratio) == points


def test_score_is_bounded_and_parts_add_up(forestry_region, demo_manual):
    config = convert_manual_configuration(demo_manual)
    simulation = simulate_year(config, forestry_region)
    score = score_solution(config, simulation, total_cost(config))
    assert 0 <= score.condition <= 30
    assert 0 <= score.matching <= 20
    assert score.economics == 30
    assert 0 <= score.stability <= 20
    assert score.group_bonus == 0
    assert score.total == min(100, score.condition + score.matching + score.economics + score.stability)


def test_expensive_plant_is_flagged(forestry_region, demo_manual):
    config = convert_manual_configuration(demo_manual)
    simulation = simulate_year(config, forestry_region)
    score = score_solution(config, simulation, total_cost(config) / 2)
    assert score.economics == 5
    assert any("above the best known solution" in issue for issue in score.issues)


def test_incomplete_biomass_chain_and_dc_ac_ratio_are_flagged(forestry_region):
    config = EquipmentConfiguration(
        solar=(EquipmentSelection.of("Tiger Neo 545N", "Jinko Solar", 2000, 0.545, 0.098),),
        biomass=BiomassSelection(
            route=BiomassRoute.GASIFICATION,
            primary=EquipmentSelection.of("FB-500", "GIEC", 1, 800, 70),
        ),
        inverter=(EquipmentSelection.of("INV-110K", "Sungrow", 1, 110, 4.2),),
    )
    simulation = simulate_year(config, forestry_region, keep_hourly=False)
    score = score_solution(config, simulation, 100.0)
    assert any("DC/AC ratio" in issue for issue in score.issues)
    assert any("Biomass chain incomplete" in issue for issue in score.issues)
    assert any("reliability" in issue.lower() for issue in score.issues)
