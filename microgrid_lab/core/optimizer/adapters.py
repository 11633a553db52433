from __future__ import annotations

import itertools
import json
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from microgrid_lab.core.catalog.equipment import (
    DEFAULT_CATALOG,
    BatterySpec,
    EquipmentCatalog,
    SolarPanelSpec,
    WindTurbineSpec,
)
from microgrid_lab.core.models import (
    BiomassRoute,
    EquipmentConfiguration,
    EquipmentSelection,
    RegionParameters,
    RegionType,
    SearchSettings,
)
from microgrid_lab.core.sizing.engine import (
    panel_electrical,
    round_half_up,
    select_biomass_equipment,
    select_inverters,
    select_pcs,
)

REFERENCE_COSTS_ENV = "MICROGRID_REFERENCE_COSTS"
DEFAULT_BEST_KNOWN_COST = 10000.0
BIOMASS_PEAK_SHARE = 0.3

WIND_RATIO_GRID = (0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0, 1.2, 1.4)
SOLAR_RATIO_GRID = (0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0, 1.2, 1.4, 1.6)
BATTERY_HOURS_GRID = (0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 4.0, 5.0, 6.0, 8.0, 10.0, 12.0, 16.0, 20.0, 24.0)
RATIO_SCALES = (0.5, 0.8, 1.0, 1.5, 2.0)
HOURS_SCALES = (0.5, 0.75, 1.0, 1.5, 2.0, 3.0)


def load_reference_costs(path: Optional[Path] = None) -> Dict[str, float]:
    """Best-known capital cost per region type, read from a JSON mapping when available."""
    if path is None:
        env_path = os.getenv(REFERENCE_COSTS_ENV, "")
        if not env_path:
            return {}
        path = Path(env_path)
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError:
        return {}
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}
    return {str(key): float(value) for key, value in data.items() if isinstance(value, (int, float))}


def reference_cost(region_type: RegionType, costs: Optional[Dict[str, float]] = None) -> float:
    costs = load_reference_costs() if costs is None else costs
    return float(costs.get(region_type.value, DEFAULT_BEST_KNOWN_COST)) or DEFAULT_BEST_KNOWN_COST


def rank_turbines(avg_wind_speed: float, catalog: EquipmentCatalog = DEFAULT_CATALOG) -> List[WindTurbineSpec]:
    """Turbines that start below the site's mean wind, best fit first."""
    available = [t for t in catalog.wind_turbines if t.cut_in_speed < avg_wind_speed]
    if not available:
        available = [catalog.wind_turbines[0]]

    def score(turbine: WindTurbineSpec) -> int:
        margin = avg_wind_speed - turbine.cut_in_speed
        points = 30 if margin >= 2 else 20 if margin >= 1 else 10
        rated_gap = abs(turbine.rated_speed - avg_wind_speed * 1.5)
        points += 40 if rated_gap <= 2 else 25 if rated_gap <= 4 else 10
        points += 30 if turbine.price_per_kw <= 0.35 else 20 if turbine.price_per_kw <= 0.45 else 10
        return points

    return sorted(available, key=score, reverse=True)


def rank_panels(catalog: EquipmentCatalog = DEFAULT_CATALOG) -> List[SolarPanelSpec]:
    def score(panel: SolarPanelSpec) -> int:
        points = 40 if panel.efficiency >= 22 else 30 if panel.efficiency >= 21 else 20
        points += 30 if panel.price_per_watt <= 1.6 else 20 if panel.price_per_watt <= 2.0 else 10
        return points

    return sorted(catalog.solar_panels, key=score, reverse=True)


def rank_batteries(catalog: EquipmentCatalog = DEFAULT_CATALOG) -> List[BatterySpec]:
    def score(battery: BatterySpec) -> int:
        points = 40 if battery.cycle_life >= 6000 else 30 if battery.cycle_life >= 4000 else 20
        points += 30 if battery.price_per_kwh <= 1.0 else 20 if battery.price_per_kwh <= 1.3 else 10
        return points

    return sorted(catalog.batteries, key=score, reverse=True)


def _unique(values: Sequence[float], digits: int) -> List[float]:
    seen: Dict[float, None] = {}
    for value in values:
        seen.setdefault(round_half_up(value, digits), None)
    return list(seen)


@dataclass(frozen=True)
class RatioGrid:
    wind_ratios: Tuple[float, ...]
    solar_ratios: Tuple[float, ...]
    battery_hours: Tuple[float, ...]

    def triples(self) -> List[Tuple[float, float, float]]:
        return list(itertools.product(self.wind_ratios, self.solar_ratios, self.battery_hours))


def build_ratio_grid(
    params: RegionParameters,
    biomass_coverage: float,
    settings: Optional[SearchSettings] = None,
) -> RatioGrid:
    """Wind/solar sizing ratios and storage hours to sweep.

    Fixed exploratory values are merged with multiples of a heuristic base that
    leans on wind or solar according to full-load hours, and is scaled up when
    biomass covers little of the peak.
    """
    settings = settings or SearchSettings()
    ws_multiplier = 1.5 if biomass_coverage < 0.3 else 1.2 if biomass_coverage < 0.5 else 1.0
    wind_adv = params.wind_full_load_hours / 2000
    solar_adv = params.solar_full_load_hours / 1200
    base_wind = wind_adv / (wind_adv + solar_adv) * ws_multiplier
    base_solar = solar_adv / (wind_adv + solar_adv) * ws_multiplier

    daily_load = params.daily_load_mwh
    max_ratio = 2.0 if daily_load > 1000 else 1.5 if daily_load > 500 else 1.2
    storage_multiplier = 1.5 if biomass_coverage < 0.2 else 1.2 if biomass_coverage < 0.4 else 1.0
    base_hours = max(2.0, min(16.0, 4 * (daily_load / 500) * storage_multiplier))

    exploratory = settings.include_exploratory_grid
    wind = list(WIND_RATIO_GRID if exploratory else ()) + [base_wind * s for s in RATIO_SCALES]
    solar = list(SOLAR_RATIO_GRID if exploratory else ()) + [base_solar * s for s in RATIO_SCALES]
    hours = list(BATTERY_HOURS_GRID if exploratory else ()) + [base_hours * s for s in HOURS_SCALES]

    if settings.wind_ratios is not None:
        wind = list(settings.wind_ratios)
    if settings.solar_ratios is not None:
        solar = list(settings.solar_ratios)
    if settings.battery_hours is not None:
        hours = list(settings.battery_hours)

    return RatioGrid(
        wind_ratios=tuple(_unique([min(max(r, 0.1), max_ratio) for r in wind], 2)),
        solar_ratios=tuple(_unique([min(max(r, 0.2), max_ratio) for r in solar], 2)),
        battery_hours=tuple(_unique([max(0.5, min(24.0, h)) for h in hours], 1)),
    )


@dataclass(frozen=True)
class Candidate:
    index: Tuple[int, ...]
    route: BiomassRoute
    turbine: WindTurbineSpec
    panel: SolarPanelSpec
    battery: BatterySpec
    wind_ratio: float
    solar_ratio: float
    battery_hours: float

    @property
    def label(self) -> str:
        return (
            f"wind {self.wind_ratio * 100:.0f}% solar {self.solar_ratio * 100:.0f}% "
            f"storage {self.battery_hours:.1f}h - {self.turbine.model}"
        )


@dataclass(frozen=True)
class CandidateSpace:
    """Cartesian product of routes, turbines, panels, batteries and ratio triples."""

    routes: Tuple[BiomassRoute, ...]
    turbines: Tuple[WindTurbineSpec, ...]
    panels: Tuple[SolarPanelSpec, ...]
    batteries: Tuple[BatterySpec, ...]
    ratios: Tuple[Tuple[float, float, float], ...]

    @property
    def dimensions(self) -> Tuple[int, ...]:
        return (len(self.routes), len(self.turbines), len(self.panels), len(self.batteries), len(self.ratios))

    @property
    def total(self) -> int:
        return math.prod(self.dimensions)

    def indices(self) -> Iterator[Tuple[int, ...]]:
        return itertools.product(*(range(size) for size in self.dimensions))

    def candidate(self, index: Tuple[int, ...]) -> Candidate:
        route_i, turbine_i, panel_i, battery_i, ratio_i = index
        wind_ratio, solar_ratio, battery_hours = self.ratios[ratio_i]
        return Candidate(
            index=index,
            route=self.routes[route_i],
            turbine=self.turbines[turbine_i],
            panel=self.panels[panel_i],
            battery=self.batteries[battery_i],
            wind_ratio=wind_ratio,
            solar_ratio=solar_ratio,
            battery_hours=battery_hours,
        )

    def __iter__(self) -> Iterator[Candidate]:
        for index in self.indices():
            yield self.candidate(index)


def build_candidate_configuration(
    candidate: Candidate,
    params: RegionParameters,
    region_type: RegionType,
    route_max_biomass_mw: float,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> EquipmentConfiguration:
    annual_load = params.annual_load_mwh
    wind_mw = annual_load / params.wind_full_load_hours * candidate.wind_ratio
    solar_mw = annual_load / params.solar_full_load_hours * candidate.solar_ratio
    battery_mwh = params.peak_load_mw * candidate.battery_hours
    biomass_mw = min(route_max_biomass_mw, params.peak_load_mw * BIOMASS_PEAK_SHARE)

    turbine = candidate.turbine
    panel = candidate.panel
    battery = candidate.battery
    wind_count = max(1, math.ceil(wind_mw * 1000 / turbine.rated_power_kw))
    solar_count = max(1, math.ceil(solar_mw * 1_000_000 / panel.power_w))
    battery_count = max(1, math.ceil(battery_mwh * 1000 / battery.energy_kwh))
    actual_solar_mw = solar_count * panel.power_w / 1_000_000
    solar = (
        EquipmentSelection.of(panel.model, panel.manufacturer, solar_count, panel.power_w / 1000.0, panel.price / 10000.0),
    )

    return EquipmentConfiguration(
        wind=(EquipmentSelection.of(turbine.model, turbine.manufacturer, wind_count, turbine.rated_power_kw, turbine.price),),
        solar=solar,
        biomass=select_biomass_equipment(biomass_mw, candidate.route, catalog),
        battery=(
            EquipmentSelection.of(battery.model, battery.manufacturer, battery_count, battery.energy_kwh, battery.price),
        ),
        inverter=tuple(
            select_inverters(
                actual_solar_mw,
                region_type,
                panel_electrical(solar, catalog),
                catalog,
            )
        ),
        pcs=tuple(select_pcs(battery_mwh, 2.0, catalog=catalog)),
    )


@dataclass(frozen=True)
class SearchRange:
    minimum: float
    maximum: float
    step: float
    recommended: float


def estimate_search_ranges(params: RegionParameters, max_biomass_mw: float) -> Dict[str, SearchRange]:
    """Manual-design slider ranges for wind/solar MW, biomass MW and battery MWh."""
    annual_load = params.annual_load_mwh
    peak = params.peak_load_mw

    wind_full = annual_load / params.wind_full_load_hours
    wind_max = max(5, math.ceil(wind_full * 1.5))
    solar_full = annual_load / params.solar_full_load_hours
    solar_max = max(5, math.ceil(solar_full * 1.5))
    biomass_max = max(1.0, max_biomass_mw * 1.2)

    def step_for(maximum: float) -> float:
        return 1 if maximum < 10 else 2 if maximum < 30 else 5

    return {
        "wind": SearchRange(0, wind_max, step_for(wind_max), round_half_up(wind_full * 0.6)),
        "solar": SearchRange(0, solar_max, step_for(solar_max), round_half_up(solar_full * 0.5)),
        "biomass": SearchRange(
            0,
            round_half_up(biomass_max, 1),
            0.5 if biomass_max < 3 else 1 if biomass_max < 10 else 2,
            round_half_up(biomass_max * 0.8, 1),
        ),
        "battery": SearchRange(
            max(10.0, peak * 2),
            max(100.0, peak * 12),
            2 if peak < 10 else 5 if peak < 30 else 20,
            round_half_up(peak * 6),
        ),
    }
