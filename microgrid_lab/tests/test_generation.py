from __future__ import annotations

import numpy as np
import pytest

from microgrid_lab.core.catalog.equipment import DEFAULT_CATALOG
from microgrid_lab.core.generation.biomass import (
    biomass_heat_value,
    biomass_power_mw,
    max_biomass_power_mw,
    recommend_biomass_routes,
)
from microgrid_lab.core.generation.solar import solar_array_power_mw
from microgrid_lab.core.generation.wind import BETZ_LIMIT, power_coefficient, turbine_power_kw, wind_farm_power_mw
from microgrid_lab.core.models import BiomassRoute, BiomassSelection, EquipmentSelection
from microgrid_lab.core.simulation.turbine_yield import all_turbine_yields, annual_turbine_yield


@pytest.mark.parametrize("turbine", DEFAULT_CATALOG.wind_turbines, ids=lambda t: t.model)
def test_power_curve_is_zero_outside_operating_window(turbine):
    below = np.linspace(0.0, turbine.cut_in_speed, 7)
    above = np.array([turbine.cut_out_speed + 0.01, turbine.cut_out_speed + 5.0, 40.0])
    assert np.all(turbine_power_kw(below, turbine) == 0.0)
    assert np.all(turbine_power_kw(above, turbine) == 0.0)


@pytest.mark.parametrize("turbine", DEFAULT_CATALOG.wind_turbines, ids=lambda t: t.model)
def test_power_curve_is_rated_between_rated_and_cut_out(turbine):
    speeds = np.linspace(turbine.rated_speed, turbine.cut_out_speed, 9)
    assert np.all(turbine_power_kw(speeds, turbine) == turbine.rated_power_kw)


def test_power_curve_never_exceeds_rated():
    turbine = DEFAULT_CATALOG.turbine("GW87/1500")
    speeds = np.linspace(0.0, 30.0, 301)
    power = turbine_power_kw(speeds, turbine)
    assert power.max() <= turbine.rated_power_kw
    assert power.min() >= 0.0
    assert isinstance(turbine_power_kw(8.0, turbine), float)


def test_missing_wind_speed_counts_as_calm():
    turbine = DEFAULT_CATALOG.turbine("GW87/1500")
    power = turbine_power_kw(np.array([np.nan, 12.0, np.nan]), turbine)
    assert np.all(np.isfinite(power))
    assert power[0] == power[2] == 0.0
    assert power[1] == turbine.rated_power_kw
    assert turbine_power_kw(float("nan"), turbine) == 0.0


def test_power_coefficient_is_clamped_to_betz_limit():
    cp = power_coefficient(np.array([0.0, 0.5, 4.0, 8.0, 50.0]))
    assert np.all(cp >= 0.0)
    assert np.all(cp <= BETZ_LIMIT)


def test_wind_farm_ignores_unknown_models():
    selections = (
        EquipmentSelection.of("GW87/1500", "Goldwind", 3, 1500, 520),
        EquipmentSelection.of("NOT-A-TURBINE", "", 10, 0, 0),
    )
    assert wind_farm_power_mw(12.0, selections) == pytest.approx(4.5)


def test_solar_output_scales_with_irradiance_and_is_zero_at_night():
    lines = (EquipmentSelection.of("Tiger Neo 545N", "Jinko Solar", 1000, 0.545, 0.098),)
    output = solar_array_power_mw(np.array([0.0, 0.5, 1.0]), np.array([25.0, 25.0, 25.0]), lines)
    assert output[0] == 0.0
    assert output[2] == pytest.approx(2 * output[1])
    assert output[2] == pytest.approx(0.545 * 0.95)


def test_hot_cells_produce_less_than_cool_cells():
    lines = (EquipmentSelection.of("Tiger Neo 545N", "Jinko Solar", 1000, 0.545, 0.098),)
    cool, hot = solar_array_power_mw(np.array([1.0, 1.0]), np.array([10.0, 45.0]), lines)
    assert hot < cool


def test_biomass_output_is_capped_by_prime_mover(forestry_region):
    heat_value = biomass_heat_value(forestry_region.biomass)
    assert heat_value > 0
    unlimited = max_biomass_power_mw(150.0, heat_value, BiomassRoute.DIRECT_COMBUSTION)

    small = BiomassSelection(
        route=BiomassRoute.DIRECT_COMBUSTION,
        secondary=EquipmentSelection.of("ST-6", "Hangzhou Turbine", 1, 100.0, 0),
    )
    assert biomass_power_mw(small, 150.0, heat_value) == pytest.approx(min(unlimited, 0.1))
    assert biomass_power_mw(BiomassSelection(), 150.0, heat_value) == 0.0


def test_route_recommendations_are_ranked_and_capped(forestry_region):
    recommendations = recommend_biomass_routes(forestry_region.biomass, 150.0)
    assert {rec.route for rec in recommendations} == set(BiomassRoute)
    scores = [rec.score for rec in recommendations]
    assert scores == sorted(scores, reverse=True)
    assert all(50 <= score <= 100 for score in scores)
    assert all(rec.reason for rec in recommendations)


def test_turbine_yield_reports_consistent_statistics(industrial_region):
    turbine = DEFAULT_CATALOG.turbine("GW121/2500")
    report = annual_turbine_yield(industrial_region, turbine)
    assert report.min_wind_speed <= report.avg_wind_speed <= report.max_wind_speed
    assert sum(report.wind_distribution.values()) == 8760
    assert 0.0 <= report.capacity_factor <= 100.0
    assert report.equivalent_hours == pytest.approx(report.annual_energy_mwh * 1000 / turbine.rated_power_kw)
    assert report.effective_hours <= 8760
    assert 0.0 <= report.avg_power_coefficient <= report.max_power_coefficient <= BETZ_LIMIT


def test_all_turbine_yields_covers_the_catalog(industrial_region):
    reports = all_turbine_yields(industrial_region)
    assert [r.turbine_model for r in reports] == [t.model for t in DEFAULT_CATALOG.wind_turbines]
