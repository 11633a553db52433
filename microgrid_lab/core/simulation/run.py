from __future__ import annotations

from typing import List, Optional

import numpy as np
import pandas as pd

from microgrid_lab.core.catalog.equipment import DEFAULT_CATALOG, EquipmentCatalog
from microgrid_lab.core.generation.biomass import biomass_heat_value, biomass_power_mw
from microgrid_lab.core.generation.solar import solar_array_power_mw
from microgrid_lab.core.generation.wind import wind_farm_power_mw
from microgrid_lab.core.models import (
    AnnualProfile,
    EnergyRatio,
    EquipmentConfiguration,
    HourlySample,
    Region,
    SimulationResult,
)
from microgrid_lab.core.resources.provider import HOURS_PER_YEAR, annual_profile, region_parameters
from microgrid_lab.core.simulation.dispatch import BatteryParams, initial_state, step_battery

FEASIBLE_RELIABILITY = 98.0


def _generation_arrays(
    config: EquipmentConfiguration,
    region: Region,
    profile: AnnualProfile,
    student_id: str,
    catalog: EquipmentCatalog,
):
    wind = np.asarray(wind_farm_power_mw(profile.wind_speed, config.wind, catalog), dtype=float)
    solar = np.asarray(
        solar_array_power_mw(profile.solar_irradiance, profile.temperature_c, config.solar, catalog),
        dtype=float,
    )
    # Biomass runs flat out on the planned daily feedstock, not the hourly availability curve.
    daily_biomass = region_parameters(region, student_id).daily_biomass_t
    biomass_mw = biomass_power_mw(config.biomass, daily_biomass, biomass_heat_value(region.biomass))
    biomass = np.full(profile.hours, biomass_mw, dtype=float)
    loads = np.nan_to_num(profile.load_kw / 1000.0, nan=0.0)
    return wind, solar, biomass, loads


def simulate_year(
    config: EquipmentConfiguration,
    region: Region,
    student_id: str = "",
    keep_hourly: bool = True,
    profile: Optional[AnnualProfile] = None,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> SimulationResult:
    """
    Run the 8760-hour energy balance for one configuration.

    Parameters
    ----------
    config:
        Plant to simulate; unknown catalog models produce no output.
    region:
        Region whose resource curves and feedstock drive generation.
    student_id:
        Selects the per-student resource multiplier; empty means unscaled.
    keep_hourly:
        When False only the annual aggregates are returned (lightweight mode).
    profile:
        Optional precomputed annual profile; built (and cached) when omitted.
    """
    profile = profile or annual_profile(region, student_id)
    wind, solar, biomass, loads = _generation_arrays(config, region, profile, student_id, catalog)
    generation = wind + solar + biomass

    params = BatteryParams.from_capacity(config.battery_kwh / 1000.0)
    state = initial_state(params)

    total_generation = 0.0
    total_load = 0.0
    total_curtailment = 0.0
    total_shortage = 0.0
    shortage_hours = 0
    soc_sum = 0.0
    min_soc = 100.0
    max_soc = 0.0
    hourly: List[HourlySample] = []

    wind_list = wind.tolist()
    solar_list = solar.tolist()
    biomass_list = biomass.tolist()
    generation_list = generation.tolist()
    load_list = loads.tolist()

    for idx in range(profile.hours):
        gen = generation_list[idx]
        load = load_list[idx]
        step = step_battery(load, gen, state, params)
        if step.is_shortage_hour:
            shortage_hours += 1

        total_generation += gen
        total_load += load
        total_curtailment += step.curtailment_mw
        total_shortage += step.shortage_mw
        soc_sum += step.soc
        min_soc = min(min_soc, step.soc)
        max_soc = max(max_soc, step.soc)

        if keep_hourly:
            hourly.append(
                HourlySample(
                    wind_mw=wind_list[idx],
                    solar_mw=solar_list[idx],
                    biomass_mw=biomass_list[idx],
                    total_generation_mw=gen,
                    load_mw=load,
                    balance_mw=gen - load,
                    battery_soc=step.soc,
                    battery_charge_mw=step.net_battery_mw,
                    curtailment_mw=step.curtailment_mw,
                    shortage_mw=step.shortage_mw,
                )
            )

    reliability = (HOURS_PER_YEAR - shortage_hours) / HOURS_PER_YEAR * 100.0
    curtailment_rate = total_curtailment / total_generation * 100.0 if total_generation > 0 else 0.0

    wind_generation = float(wind.sum())
    solar_generation = float(solar.sum())
    biomass_generation = float(biomass.sum())
    if total_load > 0:
        ratio = EnergyRatio(
            wind=wind_generation / total_load,
            solar=solar_generation / total_load,
            bio=biomass_generation / total_load,
        )
    else:
        ratio = EnergyRatio()
    ratio.total = ratio.wind + ratio.solar + ratio.bio

    return SimulationResult(
        feasible=reliability >= FEASIBLE_RELIABILITY,
        reliability=reliability,
        curtailment_rate=curtailment_rate,
        shortage_hours=shortage_hours,
        total_generation_mwh=total_generation,
        total_load_mwh=total_load,
        total_curtailment_mwh=total_curtailment,
        total_shortage_mwh=total_shortage,
        avg_soc=soc_sum / HOURS_PER_YEAR,
        min_soc=min_soc,
        max_soc=max_soc,
        wind_generation_mwh=wind_generation,
        solar_generation_mwh=solar_generation,
        biomass_generation_mwh=biomass_generation,
        energy_ratio=ratio,
        hourly=hourly,
    )


def simulate_lightweight(
    config: EquipmentConfiguration,
    region: Region,
    student_id: str = "",
    profile: Optional[AnnualProfile] = None,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> SimulationResult:
    """Aggregates only; the dispatch is identical to :func:`simulate_year`."""
    return simulate_year(config, region, student_id, keep_hourly=False, profile=profile, catalog=catalog)


def hourly_frame(result: SimulationResult) -> pd.DataFrame:
    """Tabulate the hourly samples, one row per hour of the year."""
    frame = pd.DataFrame([vars(sample) for sample in result.hourly])
    frame.index.name = "hour"
    return frame


def print_summary(result: SimulationResult) -> None:
    print(f"Reliability: {result.reliability:.2f}% ({result.shortage_hours} shortage hours)")
    print(f"Feasible: {'yes' if result.feasible else 'no'}")
    print(f"Generation: {result.total_generation_mwh:.1f} MWh | Load: {result.total_load_mwh:.1f} MWh")
    print(
        f"  wind {result.wind_generation_mwh:.1f} MWh | solar {result.solar_generation_mwh:.1f} MWh"
        f" | biomass {result.biomass_generation_mwh:.1f} MWh"
    )
    print(f"Curtailment: {result.total_curtailment_mwh:.1f} MWh ({result.curtailment_rate:.2f}%)")
    print(f"Shortage: {result.total_shortage_mwh:.2f} MWh")
    print(f"Battery SOC avg/min/max: {result.avg_soc:.1f}% / {result.min_soc:.1f}% / {result.max_soc:.1f}%")
