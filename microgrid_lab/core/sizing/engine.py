from __future__ import annotations

import math
from dataclasses import dataclass
from math import ceil, floor
from typing import Dict, List, Optional, Sequence, Tuple

from microgrid_lab.core.catalog.equipment import DEFAULT_CATALOG, EquipmentCatalog, InverterSpec, PcsSpec
from microgrid_lab.core.models import (
    BiomassRoute,
    BiomassSelection,
    EquipmentConfiguration,
    EquipmentSelection,
    ManualConfiguration,
    ModelCount,
    RegionType,
)
from microgrid_lab.logging_config import get_logger

logger = get_logger(__name__)

MAX_TURBINE_COUNT = 100
MAX_BOILER_COUNT = 5
MAX_BIOMASS_UNIT_COUNT = 10
STEAM_PER_MW = 4.5  # t/h of steam per MW electric
SYNGAS_PER_KW = 2.5  # Nm^3/h per kW electric
BIOGAS_PER_KW = 40.0  # Nm^3/day per kW electric
STEAM_TURBINE_MIN_FRACTION = 0.8
PCS_DISCHARGE_HOURS = 2.0
PCS_MIN_FRACTION = 0.8
VOC_TEMP_COEFF = 0.0025
MIN_CELL_TEMPERATURE_C = -10.0
MAX_SECONDARY_INVERTER_COUNT = 5
DEFAULT_DC_AC_RATIO = 1.10

DC_AC_RATIO_BY_TYPE: Dict[RegionType, float] = {
    RegionType.MOUNTAIN: 1.25,
    RegionType.AGRICULTURE: 1.20,
    RegionType.INDUSTRIAL: 1.10,
    RegionType.RESIDENTIAL: 1.10,
    RegionType.FORESTRY: 1.00,
    RegionType.TEST: 1.10,
}


@dataclass(frozen=True)
class PanelElectrical:
    vmp: float
    voc: float
    isc: float


DEFAULT_PANEL_ELECTRICAL = PanelElectrical(vmp=41.58, voc=49.62, isc=13.98)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positives, as score tables expect."""
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def select_wind_turbines(target_mw: float, catalog: EquipmentCatalog = DEFAULT_CATALOG) -> List[EquipmentSelection]:
    """Cheapest-per-kW turbine line from the size bracket matching ``target_mw``."""
    if target_mw <= 0:
        return []
    target_kw = target_mw * 1000.0
    turbines = catalog.wind_turbines
    if target_kw < 100:
        candidates = [t for t in turbines if t.rated_power_kw <= 10]
    elif target_kw < 500:
        candidates = [t for t in turbines if 10 <= t.rated_power_kw <= 50]
    elif target_kw < 3000:
        candidates = [t for t in turbines if 50 <= t.rated_power_kw <= 1500]
    else:
        candidates = [t for t in turbines if t.rated_power_kw >= 1500]
    if not candidates:
        candidates = list(turbines)

    for turbine in sorted(candidates, key=lambda t: t.price_per_kw):
        count = ceil(target_kw / turbine.rated_power_kw)
        if count > MAX_TURBINE_COUNT:
            continue
        return [EquipmentSelection.of(turbine.model, turbine.manufacturer, count, turbine.rated_power_kw, turbine.price)]
    return []


def select_solar_panels(target_mw: float, catalog: EquipmentCatalog = DEFAULT_CATALOG) -> List[EquipmentSelection]:
    if target_mw <= 0 or not catalog.solar_panels:
        return []
    best = min(catalog.solar_panels, key=lambda p: p.price_per_watt)
    count = ceil(target_mw * 1_000_000 / best.power_w)
    return [EquipmentSelection.of(best.model, best.manufacturer, count, best.power_w / 1000.0, best.price / 10000.0)]


def select_biomass_equipment(
    target_mw: float,
    route: BiomassRoute,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> BiomassSelection:
    """Size the fuel-conversion stage and the prime mover for ``target_mw`` electric."""
    primary = EquipmentSelection()
    secondary = EquipmentSelection()
    if target_mw <= 0:
        return BiomassSelection(route=route, primary=primary, secondary=secondary)

    target_kw = target_mw * 1000.0
    if route is BiomassRoute.DIRECT_COMBUSTION:
        steam_needed = target_mw * STEAM_PER_MW
        for boiler in sorted(catalog.boilers, key=lambda b: b.price / b.steam_output_tph):
            count = ceil(steam_needed / boiler.steam_output_tph)
            if count <= MAX_BOILER_COUNT:
                primary = EquipmentSelection.of(
                    boiler.model, boiler.manufacturer, count, boiler.steam_output_tph, boiler.price
                )
                break
        for turbine in sorted(catalog.steam_turbines, key=lambda t: t.price / t.rated_power_mw):
            if turbine.rated_power_mw >= target_mw * STEAM_TURBINE_MIN_FRACTION:
                secondary = EquipmentSelection.of(
                    turbine.model, turbine.manufacturer, 1, turbine.rated_power_mw * 1000.0, turbine.price
                )
                break
        return BiomassSelection(route=route, primary=primary, secondary=secondary)

    if route is BiomassRoute.GASIFICATION:
        gas_needed = target_kw * SYNGAS_PER_KW
        for gasifier in sorted(catalog.gasifiers, key=lambda g: g.price / g.gas_output_nm3h):
            count = ceil(gas_needed / gasifier.gas_output_nm3h)
            if count <= MAX_BIOMASS_UNIT_COUNT:
                primary = EquipmentSelection.of(
                    gasifier.model, gasifier.manufacturer, count, gasifier.gas_output_nm3h, gasifier.price
                )
                break
        fuel = "gas"
    else:
        gas_needed = target_kw * BIOGAS_PER_KW
        for digester in sorted(catalog.digesters, key=lambda d: d.price / d.daily_gas_nm3):
            count = ceil(gas_needed / digester.daily_gas_nm3)
            if count <= MAX_BIOMASS_UNIT_COUNT:
                primary = EquipmentSelection.of(
                    digester.model, digester.manufacturer, count, digester.daily_gas_nm3, digester.price
                )
                break
        fuel = "biogas"

    engines = sorted(
        (e for e in catalog.gas_engines if e.fuel_type == fuel),
        key=lambda e: e.price / e.rated_power_kw,
    )
    for engine in engines:
        count = ceil(target_kw / engine.rated_power_kw)
        if count <= MAX_BIOMASS_UNIT_COUNT:
            secondary = EquipmentSelection.of(engine.model, engine.manufacturer, count, engine.rated_power_kw, engine.price)
            break
    return BiomassSelection(route=route, primary=primary, secondary=secondary)


def select_batteries(target_mwh: float, catalog: EquipmentCatalog = DEFAULT_CATALOG) -> List[EquipmentSelection]:
    if target_mwh <= 0 or not catalog.batteries:
        return []
    best = min(catalog.batteries, key=lambda b: b.price_per_kwh)
    count = ceil(target_mwh * 1000.0 / best.energy_kwh)
    return [EquipmentSelection.of(best.model, best.manufacturer, count, best.energy_kwh, best.price)]


def _capacity_match(rated_kw: float, target_kw: float) -> float:
    return max(0.0, 1.0 - abs(rated_kw - target_kw) / max(target_kw, rated_kw))


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def select_pcs(
    battery_mwh: float,
    discharge_hours: float = PCS_DISCHARGE_HOURS,
    battery_voltage: Optional[float] = None,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> List[EquipmentSelection]:
    """Pick the power conversion system for a battery bank.

    Target power is the bank energy over ``discharge_hours``. Units are scored on
    capacity match (40), efficiency (30) and relative price per kW (30).
    """
    if battery_mwh <= 0 or not catalog.pcs_units:
        return []
    target_kw = battery_mwh * 1000.0 / discharge_hours

    candidates: List[PcsSpec] = list(catalog.pcs_units)
    if battery_voltage:
        candidates = [
            p for p in candidates if p.battery_voltage_min <= battery_voltage <= p.battery_voltage_max
        ] or list(catalog.pcs_units)

    suitable = [p for p in candidates if p.rated_power_kw >= target_kw * PCS_MIN_FRACTION]
    if not suitable:
        largest = max(candidates, key=lambda p: p.rated_power_kw)
        count = ceil(target_kw / largest.rated_power_kw)
        return [EquipmentSelection.of(largest.model, largest.manufacturer, count, largest.rated_power_kw, largest.price)]

    prices = [p.price / p.rated_power_kw for p in candidates]
    min_price, max_price = min(prices), max(prices)
    price_span = (max_price - min_price) or 1.0

    def score(pcs: PcsSpec) -> float:
        economy = 1.0 - (pcs.price / pcs.rated_power_kw - min_price) / price_span
        return (
            _capacity_match(pcs.rated_power_kw, target_kw) * 40
            + _clamp01((pcs.efficiency - 90) / 10) * 30
            + economy * 30
        )

    best = sorted(suitable, key=score, reverse=True)[0]
    count = ceil(target_kw / best.rated_power_kw)
    return [EquipmentSelection.of(best.model, best.manufacturer, count, best.rated_power_kw, best.price)]


def dc_ac_ratio(region_type: Optional[RegionType]) -> float:
    if region_type is None:
        return DEFAULT_DC_AC_RATIO
    return DC_AC_RATIO_BY_TYPE.get(region_type, DEFAULT_DC_AC_RATIO)


def panel_electrical(
    solar: Sequence[EquipmentSelection],
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> Optional[PanelElectrical]:
    """Electrical data of the first panel line, or None when unknown."""
    if not solar:
        return None
    panel = catalog.panel(solar[0].model)
    if panel is None:
        return None
    return PanelElectrical(vmp=panel.vmp, voc=panel.voc, isc=panel.isc)


def _max_open_circuit_voltage(panel: PanelElectrical) -> float:
    return panel.voc * (1 + VOC_TEMP_COEFF * (25 - MIN_CELL_TEMPERATURE_C))


def inverter_is_compatible(inverter: InverterSpec, panel: PanelElectrical) -> bool:
    """String-length, current and MPPT window checks for one inverter."""
    min_modules = ceil(inverter.mppt_min_voltage / panel.vmp)
    max_modules = floor(inverter.max_dc_voltage * 0.9 / _max_open_circuit_voltage(panel))
    if min_modules > max_modules:
        return False
    if panel.isc * 1.25 > inverter.max_input_current:
        return False
    recommended = round_half_up((inverter.mppt_min_voltage + inverter.mppt_max_voltage) / 2 / panel.vmp)
    working_voltage = recommended * panel.vmp
    return inverter.mppt_min_voltage <= working_voltage <= inverter.mppt_max_voltage


def score_inverter(inverter: InverterSpec, target_kw: float, panel_vmp: float) -> float:
    optimal_voltage = (inverter.mppt_min_voltage + inverter.mppt_max_voltage) / 2
    actual_voltage = round_half_up(optimal_voltage / panel_vmp) * panel_vmp
    voltage_match = 1.0 - abs(actual_voltage - optimal_voltage) / optimal_voltage
    economy = 1.0 - (inverter.price / inverter.rated_power_kw - 0.03) / 0.05
    return (
        _capacity_match(inverter.rated_power_kw, target_kw) * 40
        + _clamp01((inverter.max_efficiency - 95) / 5) * 30
        + max(0.0, voltage_match) * 20
        + _clamp01(economy) * 10
    )


def _inverter_line(inverter: InverterSpec, count: int) -> EquipmentSelection:
    return EquipmentSelection.of(inverter.model, inverter.manufacturer, count, inverter.rated_power_kw, inverter.price)


def _fill_inverters(
    ranked: Sequence[InverterSpec],
    target_kw: float,
    secondary_limit: Optional[float],
    max_secondary_count: Optional[int],
) -> List[EquipmentSelection]:
    primary = ranked[0]
    selections: List[EquipmentSelection] = []
    remaining = target_kw
    primary_count = floor(remaining / primary.rated_power_kw)
    if primary_count > 0:
        selections.append(_inverter_line(primary, primary_count))
        remaining -= primary_count * primary.rated_power_kw
    if remaining <= 0:
        return selections

    best_fit = primary
    min_diff = abs(best_fit.rated_power_kw - remaining)
    for inverter in ranked:
        diff = abs(inverter.rated_power_kw - remaining)
        within_limit = secondary_limit is None or inverter.rated_power_kw <= remaining * secondary_limit
        if diff < min_diff and within_limit:
            best_fit = inverter
            min_diff = diff
    count = ceil(remaining / best_fit.rated_power_kw)

    if max_secondary_count is None or count <= max_secondary_count:
        selections.append(_inverter_line(best_fit, count))
        return selections

    extra = ceil(remaining / primary.rated_power_kw)
    if selections:
        selections[0] = _inverter_line(primary, selections[0].count + extra)
    else:
        selections.append(_inverter_line(primary, extra))
    return selections


def select_inverters_basic(solar_mw: float, catalog: EquipmentCatalog = DEFAULT_CATALOG) -> List[EquipmentSelection]:
    """Fallback: rank by efficiency per unit price and cover the full DC capacity."""
    if solar_mw <= 0 or not catalog.inverters:
        return []
    ranked = sorted(
        catalog.inverters,
        key=lambda inv: inv.max_efficiency / (inv.price / inv.rated_power_kw),
        reverse=True,
    )
    return _fill_inverters(ranked, solar_mw * 1000.0, secondary_limit=None, max_secondary_count=None)


def select_inverters(
    solar_mw: float,
    region_type: Optional[RegionType] = None,
    panel: Optional[PanelElectrical] = None,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> List[EquipmentSelection]:
    """Size the inverter fleet for ``solar_mw`` of DC capacity.

    The AC target follows the region's DC/AC ratio. Only inverters whose string
    window fits the panel are considered; if none fit the basic method is used.
    """
    if solar_mw <= 0:
        return []
    panel = panel or DEFAULT_PANEL_ELECTRICAL
    target_kw = solar_mw * 1000.0 / dc_ac_ratio(region_type)

    compatible = [inv for inv in catalog.inverters if inverter_is_compatible(inv, panel)]
    if not compatible:
        logger.debug("No inverter matches panel Vmp=%.2f; using basic selection", panel.vmp)
        return select_inverters_basic(solar_mw, catalog)

    ranked = sorted(compatible, key=lambda inv: score_inverter(inv, target_kw, panel.vmp), reverse=True)
    return _fill_inverters(
        ranked,
        target_kw,
        secondary_limit=1.5,
        max_secondary_count=MAX_SECONDARY_INVERTER_COUNT,
    )


def total_cost(config: EquipmentConfiguration) -> float:
    """Capital cost of every line in 10k CNY, rounded to cents of that unit."""
    total = 0.0
    for selection in config.wind:
        total += selection.total_price
    for selection in config.solar:
        total += selection.total_price
    total += config.biomass.primary.total_price
    total += config.biomass.secondary.total_price
    for group in (config.battery, config.inverter, config.pcs):
        for selection in group:
            total += selection.total_price
    return round_half_up(total, 2)


def _lookup_lines(items: Sequence[ModelCount], lookup) -> Tuple[EquipmentSelection, ...]:
    lines = []
    for item in items:
        entry = lookup(item.model)
        if entry is None:
            lines.append(EquipmentSelection.of(item.model, "", item.count, 0.0, 0.0))
            continue
        lines.append(EquipmentSelection.of(item.model, entry[0], item.count, entry[1], entry[2]))
    return tuple(lines)


def convert_manual_configuration(
    manual: ManualConfiguration,
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> EquipmentConfiguration:
    """Resolve model/count pairs against the catalog; unknown models keep zero capacity and price."""

    def turbine(model: str):
        entry = catalog.turbine(model)
        return None if entry is None else (entry.manufacturer, entry.rated_power_kw, entry.price)

    def panel(model: str):
        entry = catalog.panel(model)
        return None if entry is None else (entry.manufacturer, entry.power_w / 1000.0, entry.price / 10000.0)

    def battery(model: str):
        entry = catalog.battery(model)
        return None if entry is None else (entry.manufacturer, entry.energy_kwh, entry.price)

    def inverter(model: str):
        entry = catalog.inverter(model)
        return None if entry is None else (entry.manufacturer, entry.rated_power_kw, entry.price)

    def pcs(model: str):
        entry = catalog.pcs(model)
        return None if entry is None else (entry.manufacturer, entry.rated_power_kw, entry.price)

    route = manual.biomass_route
    if route is BiomassRoute.DIRECT_COMBUSTION:
        def primary_lookup(model: str):
            entry = catalog.boiler(model)
            return None if entry is None else (entry.manufacturer, entry.steam_output_tph, entry.price)

        def secondary_lookup(model: str):
            entry = catalog.steam_turbine(model)
            return None if entry is None else (entry.manufacturer, entry.rated_power_mw * 1000.0, entry.price)
    else:
        def primary_lookup(model: str):
            if route is BiomassRoute.GASIFICATION:
                entry = catalog.gasifier(model)
                return None if entry is None else (entry.manufacturer, entry.gas_output_nm3h, entry.price)
            entry = catalog.digester(model)
            return None if entry is None else (entry.manufacturer, entry.daily_gas_nm3, entry.price)

        def secondary_lookup(model: str):
            entry = catalog.gas_engine(model)
            return None if entry is None else (entry.manufacturer, entry.rated_power_kw, entry.price)

    def biomass_line(item: Optional[ModelCount], lookup) -> EquipmentSelection:
        if item is None:
            return EquipmentSelection()
        entry = lookup(item.model)
        if entry is None:
            return EquipmentSelection()
        return EquipmentSelection.of(item.model, entry[0], item.count, entry[1], entry[2])

    return EquipmentConfiguration(
        wind=_lookup_lines(manual.wind, turbine),
        solar=_lookup_lines(manual.solar, panel),
        biomass=BiomassSelection(
            route=route,
            primary=biomass_line(manual.biomass_primary, primary_lookup),
            secondary=biomass_line(manual.biomass_secondary, secondary_lookup),
        ),
        battery=_lookup_lines(manual.battery, battery),
        inverter=_lookup_lines(manual.inverter, inverter),
        pcs=_lookup_lines(manual.pcs, pcs),
    )
