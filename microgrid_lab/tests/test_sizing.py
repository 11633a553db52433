from __future__ import annotations

import pytest

from microgrid_lab.core.models import (
    BiomassRoute,
    BiomassSelection,
    EquipmentConfiguration,
    EquipmentSelection,
    ManualConfiguration,
    ModelCount,
    RegionType,
)
from microgrid_lab.core.sizing.engine import (
    PanelElectrical,
    convert_manual_configuration,
    dc_ac_ratio,
    panel_electrical,
    round_half_up,
    select_batteries,
    select_biomass_equipment,
    select_inverters,
    select_inverters_basic,
    select_pcs,
    select_solar_panels,
    select_wind_turbines,
    total_cost,
)


def test_round_half_up_rounds_halves_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.125, 2) == 0.13
    assert round_half_up(1.44) == 1


@pytest.mark.parametrize(
    "selector",
    [select_wind_turbines, select_solar_panels, select_batteries, select_pcs, select_inverters],
)
def test_non_positive_targets_select_nothing(selector):
    assert selector(0) == []
    assert selector(-3.0) == []


def test_wind_selection_uses_cheapest_turbine_in_bracket():
    (line,) = select_wind_turbines(2.0)
    assert line.model == "GW87/1500"
    assert line.count == 2
    assert line.total_capacity == 3000


def test_equipment_line_totals_follow_count():
    line = EquipmentSelection.of("X", "Y", 4, 2.5, 10.0)
    assert line.total_capacity == 10.0
    assert line.total_price == 40.0
    assert EquipmentSelection.of("X", "Y", -2, 2.5, 10.0).count == 0


def test_direct_combustion_pairs_boiler_with_steam_turbine():
    selection = select_biomass_equipment(2.0, BiomassRoute.DIRECT_COMBUSTION)
    assert selection.primary.model == "GF-20"
    assert selection.primary.count == 1
    assert selection.secondary.model == "ST-6"
    assert selection.secondary.total_capacity == 6000


def test_gasification_sizes_gasifier_and_gas_engines():
    selection = select_biomass_equipment(1.0, BiomassRoute.GASIFICATION)
    assert selection.primary.model == "FB-1000"
    assert selection.primary.count == 2
    assert selection.secondary.model == "GE-600"
    assert selection.secondary.total_capacity >= 1000


def test_digestion_uses_biogas_engines():
    selection = select_biomass_equipment(0.5, BiomassRoute.ANAEROBIC_DIGESTION)
    assert selection.secondary.model.startswith("BG-")
    assert selection.secondary.total_capacity >= 500


def test_biomass_selection_is_empty_for_zero_target():
    selection = select_biomass_equipment(0.0, BiomassRoute.GASIFICATION)
    assert selection.primary.is_empty
    assert selection.secondary.is_empty


def test_pcs_falls_back_to_largest_unit_when_none_is_big_enough():
    (line,) = select_pcs(4.0)
    assert line.model == "PCS-1000"
    assert line.count == 2


@pytest.mark.parametrize("solar_mw", [0.02, 0.4, 3.0, 12.5])
def test_inverters_cover_the_ac_target(solar_mw):
    lines = select_inverters(solar_mw, RegionType.INDUSTRIAL)
    assert lines
    installed_kw = sum(line.total_capacity for line in lines)
    assert installed_kw >= solar_mw * 1000 / dc_ac_ratio(RegionType.INDUSTRIAL) - 1e-9


def test_total_cost_sums_every_line():
    config = EquipmentConfiguration(
        wind=(EquipmentSelection.of("GW87/1500", "Goldwind", 2, 1500, 520),),
        solar=(EquipmentSelection.of("Tiger Neo 545N", "Jinko Solar", 1000, 0.545, 0.098),),
        biomass=BiomassSelection(
            route=BiomassRoute.GASIFICATION,
            primary=EquipmentSelection.of("FB-500", "GIEC", 1, 800, 70),
            secondary=EquipmentSelection.of("GE-300", "Caterpillar", 2, 300, 58),
        ),
        battery=(EquipmentSelection.of("BAT-280L", "EVE Energy", 10, 14.34, 3.4),),
        inverter=(EquipmentSelection.of("INV-500K", "TBEA", 1, 500, 18),),
        pcs=(EquipmentSelection.of("PCS-100", "Sungrow", 1, 100, 8),),
    )
    assert total_cost(config) == pytest.approx(1040 + 98 + 70 + 116 + 34 + 18 + 8)


def test_manual_configuration_resolves_catalog_models(demo_manual):
    config = convert_manual_configuration(demo_manual)
    assert config.wind_kw == 3000
    assert config.solar_kw == pytest.approx(8000 * 0.545)
    assert config.biomass.secondary.total_capacity == 6000
    assert config.battery_kwh == pytest.approx(14340)
    assert config.inverter_kw == 5000
    assert config.pcs_kw == 4000


def test_unknown_manual_models_have_no_capacity_or_price():
    manual = ManualConfiguration(
        region_id=1,
        wind=[ModelCount("MYSTERY-9000", 3)],
        biomass_route=BiomassRoute.ANAEROBIC_DIGESTION,
        biomass_primary=ModelCount("AD-100", 1),
        biomass_secondary=ModelCount("ST-6", 1),
    )
    config = convert_manual_configuration(manual)
    (wind,) = config.wind
    assert wind.count == 3
    assert wind.total_capacity == 0
    assert wind.total_price == 0
    assert config.biomass.primary.model == "AD-100"
    # a steam turbine is not a valid prime mover for digestion
    assert config.biomass.secondary.is_empty


def test_incompatible_panel_falls_back_to_basic_selection():
    # no catalog inverter accepts this string current
    panel = PanelElectrical(vmp=41.58, voc=49.62, isc=5000.0)
    lines = select_inverters(2.0, RegionType.INDUSTRIAL, panel=panel)
    assert lines == select_inverters_basic(2.0)
    assert sum(line.total_capacity for line in lines) >= 2000


def test_panel_electrical_reads_the_first_known_panel_line():
    solar = (EquipmentSelection.of("Tiger Neo 545N", "Jinko Solar", 10, 0.545, 0.098),)
    panel = panel_electrical(solar)
    assert panel is not None
    assert panel.vmp > 0 and panel.voc > panel.vmp and panel.isc > 0
    assert panel_electrical(()) is None
    assert panel_electrical((EquipmentSelection.of("MYSTERY", "", 1, 1.0, 1.0),)) is None
