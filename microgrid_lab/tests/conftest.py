from __future__ import annotations

import pytest

from microgrid_lab.core.models import (
    BiomassRoute,
    EnergyRatio,
    EquipmentConfiguration,
    EquipmentSelection,
    ManualConfiguration,
    ModelCount,
    Region,
    SearchSettings,
    SimulationResult,
    Solution,
    SolutionScore,
)
from microgrid_lab.core.resources.provider import build_region


@pytest.fixture
def forestry_region() -> Region:
    return build_region(2)


@pytest.fixture
def industrial_region() -> Region:
    return build_region(1)


@pytest.fixture
def tiny_search() -> SearchSettings:
    return SearchSettings(
        pool_size=3,
        progress_interval=2,
        route_limit=1,
        turbine_limit=1,
        panel_limit=1,
        battery_limit=1,
        wind_ratios=(0.8, 1.2),
        solar_ratios=(1.0,),
        battery_hours=(6.0, 12.0),
        include_exploratory_grid=False,
    )


@pytest.fixture
def demo_manual(forestry_region) -> ManualConfiguration:
    return ManualConfiguration(
        region_id=forestry_region.id,
        wind=[ModelCount("GW87/1500", 2)],
        solar=[ModelCount("Tiger Neo 545N", 8000)],
        biomass_route=BiomassRoute.DIRECT_COMBUSTION,
        biomass_primary=ModelCount("GF-20", 1),
        biomass_secondary=ModelCount("ST-6", 1),
        battery=[ModelCount("BAT-280L", 1000)],
        inverter=[ModelCount("INV-1250K", 4)],
        pcs=[ModelCount("PCS-1000", 4)],
    )


@pytest.fixture
def wind_solar_config() -> EquipmentConfiguration:
    return EquipmentConfiguration(
        wind=(EquipmentSelection.of("GW87/1500", "Goldwind", 2, 1500, 520),),
        solar=(EquipmentSelection.of("Tiger Neo 545N", "Jinko Solar", 6000, 0.545, 0.098),),
        inverter=(EquipmentSelection.of("INV-1250K", "Sungrow", 3, 1250, 42),),
    )


def make_solution(
    region: Region,
    total_cost: float,
    reliability: float = 99.0,
    generation_mwh: float = 1000.0,
    load_mwh: float = 1000.0,
    score_total: float = 70.0,
    shortage_hours: int = 0,
    suffix: str = "a",
) -> Solution:
    simulation = SimulationResult(
        feasible=reliability >= 98.0,
        reliability=reliability,
        curtailment_rate=0.0,
        shortage_hours=shortage_hours,
        total_generation_mwh=generation_mwh,
        total_load_mwh=load_mwh,
        total_curtailment_mwh=0.0,
        total_shortage_mwh=0.0,
        avg_soc=50.0,
        min_soc=20.0,
        max_soc=90.0,
        wind_generation_mwh=generation_mwh / 3,
        solar_generation_mwh=generation_mwh / 3,
        biomass_generation_mwh=generation_mwh / 3,
        energy_ratio=EnergyRatio(0.3, 0.3, 0.3, 0.9),
    )
    return Solution(
        id=f"test-{region.id}-{suffix}",
        region_id=region.id,
        region_name=region.name,
        region_type=region.region_type,
        config=EquipmentConfiguration(
            wind=(EquipmentSelection.of("GW87/1500", "Goldwind", 2, 1500, total_cost / 2),),
            battery=(EquipmentSelection.of("BAT-280L", "EVE Energy", 10, 14.34, total_cost / 20),),
        ),
        total_cost=total_cost,
        simulation=simulation,
        score=SolutionScore(total=score_total, condition=20, matching=15, economics=20, stability=15),
        timestamp=0,
    )


@pytest.fixture
def solution_factory():
    return make_solution
