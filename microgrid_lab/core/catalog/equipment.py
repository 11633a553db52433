"""Static equipment catalogs.

Prices follow the catalog convention used throughout the engine: turbines,
biomass plant, batteries, inverters and PCS units are quoted in 10k CNY per
unit; solar panels are quoted in CNY per module and converted on selection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, TypeVar


@dataclass(frozen=True)
class SolarPanelSpec:
    id: str
    model: str
    manufacturer: str
    power_w: float
    efficiency: float
    voc: float
    isc: float
    vmp: float
    temp_coeff_pmax: float
    price: float
    price_per_watt: float


@dataclass(frozen=True)
class WindTurbineSpec:
    id: str
    model: str
    manufacturer: str
    rated_power_kw: float
    cut_in_speed: float
    rated_speed: float
    cut_out_speed: float
    rotor_diameter: float
    price: float
    price_per_kw: float


@dataclass(frozen=True)
class BoilerSpec:
    id: str
    model: str
    manufacturer: str
    steam_output_tph: float
    price: float


@dataclass(frozen=True)
class GasifierSpec:
    id: str
    model: str
    manufacturer: str
    gas_output_nm3h: float
    price: float


@dataclass(frozen=True)
class DigesterSpec:
    id: str
    model: str
    manufacturer: str
    daily_gas_nm3: float
    price: float


@dataclass(frozen=True)
class GasEngineSpec:
    id: str
    model: str
    manufacturer: str
    rated_power_kw: float
    fuel_type: str
    price: float


@dataclass(frozen=True)
class SteamTurbineSpec:
    id: str
    model: str
    manufacturer: str
    rated_power_mw: float
    price: float


@dataclass(frozen=True)
class BatterySpec:
    id: str
    model: str
    manufacturer: str
    energy_kwh: float
    cycle_life: int
    price: float
    price_per_kwh: float
    nominal_voltage: float


@dataclass(frozen=True)
class InverterSpec:
    id: str
    model: str
    manufacturer: str
    inverter_type: str
    rated_power_kw: float
    max_efficiency: float
    max_dc_voltage: float
    mppt_min_voltage: float
    mppt_max_voltage: float
    max_input_current: float
    price: float


@dataclass(frozen=True)
class PcsSpec:
    id: str
    model: str
    manufacturer: str
    rated_power_kw: float
    efficiency: float
    battery_voltage_min: float
    battery_voltage_max: float
    price: float


SOLAR_PANELS: Tuple[SolarPanelSpec, ...] = (
    SolarPanelSpec("PV-410M", "Hi-MO 5 410M", "LONGi", 410, 21.1, 37.2, 13.96, 31.0, -0.34, 780, 1.90),
    SolarPanelSpec("PV-430M", "Vertex S 430M", "Trina Solar", 430, 21.3, 38.8, 14.04, 32.4, -0.34, 820, 1.91),
    SolarPanelSpec("PV-545N", "Tiger Neo 545N", "Jinko Solar", 545, 21.28, 49.62, 13.98, 41.58, -0.30, 980, 1.80),
    SolarPanelSpec("PV-550M", "DeepBlue 3.0 550M", "JA Solar", 550, 21.3, 49.65, 14.03, 41.80, -0.35, 990, 1.80),
    SolarPanelSpec("PV-660M", "TW-SF 660M", "Tongwei", 660, 21.6, 45.20, 18.65, 37.80, -0.29, 1150, 1.74),
    SolarPanelSpec("PV-275P", "GCL-P6/60 275P", "GCL", 275, 16.9, 38.4, 9.15, 31.2, -0.40, 440, 1.60),
)

WIND_TURBINES: Tuple[WindTurbineSpec, ...] = (
    WindTurbineSpec("WT-3", "SWT-3kW", "Generic Small Wind", 3, 2.5, 9, 25, 3.2, 1.8, 0.60),
    WindTurbineSpec("WT-10", "SWT-10kW", "Generic Small Wind", 10, 3, 10, 25, 7.0, 5, 0.50),
    WindTurbineSpec("WT-50", "MWT-50kW", "Generic Medium Wind", 50, 3, 11, 25, 15, 20, 0.40),
    WindTurbineSpec("WT-1500", "GW87/1500", "Goldwind", 1500, 3, 11, 25, 87, 520, 0.35),
    WindTurbineSpec("WT-2500", "GW121/2500", "Goldwind", 2500, 3, 10.5, 25, 121, 850, 0.34),
    WindTurbineSpec("WT-3000", "MySE3.0-135", "Mingyang", 3000, 3, 10.5, 25, 135, 1000, 0.33),
    WindTurbineSpec("WT-3600", "EN-141/3.6", "Envision", 3600, 3, 10, 25, 141, 1200, 0.33),
)

BOILERS: Tuple[BoilerSpec, ...] = (
    BoilerSpec("GF-20", "GF-20", "Hangzhou Boiler", 20, 0),
    BoilerSpec("GF-50", "GF-50", "Wuxi Huaguang", 50, 0),
    BoilerSpec("CFB-35", "CFB-35", "Dongfang Boiler", 35, 0),
    BoilerSpec("CFB-75", "CFB-75", "Harbin Boiler", 75, 0),
    BoilerSpec("CFB-130", "CFB-130", "Shanghai Boiler", 130, 0),
)

GASIFIERS: Tuple[GasifierSpec, ...] = (
    GasifierSpec("DG-50", "DG-50", "Hefei Debo", 80, 10),
    GasifierSpec("DG-100", "DG-100", "Hefei Debo", 160, 18),
    GasifierSpec("DG-200", "DG-200", "Guangzhou Devotion", 320, 32),
    GasifierSpec("UG-300", "UG-300", "Shandong Baichuan", 450, 48),
    GasifierSpec("FB-500", "FB-500", "GIEC", 800, 70),
    GasifierSpec("FB-1000", "FB-1000", "GIEC", 1600, 135),
)

DIGESTERS: Tuple[DigesterSpec, ...] = (
    DigesterSpec("AD-100", "AD-100", "Qingdao Tianren", 150, 20),
    DigesterSpec("AD-300", "AD-300", "Beijing Zhongchi", 500, 50),
    DigesterSpec("AD-500", "AD-500", "Capital Environment", 900, 85),
    DigesterSpec("AD-1000", "AD-1000", "Welle Environmental", 2000, 155),
    DigesterSpec("AD-2000", "AD-2000", "Longking", 4500, 330),
)

GAS_ENGINES: Tuple[GasEngineSpec, ...] = (
    GasEngineSpec("GE-30", "GE-30", "Weichai", 30, "gas", 7),
    GasEngineSpec("GE-60", "GE-60", "Yuchai", 60, "gas", 12),
    GasEngineSpec("GE-120", "GE-120", "Jichai", 120, "gas", 25),
    GasEngineSpec("GE-300", "GE-300", "Caterpillar", 300, "gas", 58),
    GasEngineSpec("GE-600", "GE-600", "Jenbacher", 600, "gas", 108),
    GasEngineSpec("BG-50", "BG-50", "Weichai", 50, "biogas", 15),
    GasEngineSpec("BG-100", "BG-100", "Yuchai", 100, "biogas", 30),
    GasEngineSpec("BG-200", "BG-200", "Jichai", 200, "biogas", 60),
    GasEngineSpec("BG-500", "BG-500", "Jenbacher", 500, "biogas", 140),
)

STEAM_TURBINES: Tuple[SteamTurbineSpec, ...] = (
    SteamTurbineSpec("ST-6", "ST-6", "Hangzhou Turbine", 6, 0),
    SteamTurbineSpec("ST-12", "ST-12", "Nanjing Turbine", 12, 0),
    SteamTurbineSpec("ST-25", "ST-25", "Shanghai Electric", 25, 0),
    SteamTurbineSpec("ST-50", "ST-50", "Dongfang Electric", 50, 0),
)

BATTERIES: Tuple[BatterySpec, ...] = (
    BatterySpec("BAT-100L", "BAT-100L", "CATL", 5.12, 6000, 1.35, 2637, 51.2),
    BatterySpec("BAT-200L", "BAT-200L", "BYD", 10.24, 6000, 2.5, 2441, 51.2),
    BatterySpec("BAT-280L", "BAT-280L", "EVE Energy", 14.34, 6000, 3.4, 2371, 51.2),
    BatterySpec("BAT-100G", "BAT-100G", "Narada", 4.8, 3000, 0.7, 1458, 48),
    BatterySpec("BAT-200G", "BAT-200G", "Shuangdeng", 9.6, 3000, 1.2, 1250, 48),
)

INVERTERS: Tuple[InverterSpec, ...] = (
    InverterSpec("INV-5K", "INV-5K", "Huawei", "string", 5, 97.5, 600, 90, 580, 12, 0.4),
    InverterSpec("INV-20K", "INV-20K", "Sungrow", "string", 20, 98.2, 1100, 200, 1000, 26, 1.0),
    InverterSpec("INV-50K", "INV-50K", "Huawei", "string", 50, 98.6, 1100, 200, 1000, 32, 2.2),
    InverterSpec("INV-110K", "INV-110K", "Sungrow", "string", 110, 98.8, 1500, 200, 1100, 30, 4.2),
    InverterSpec("INV-500K", "INV-500K", "TBEA", "central", 500, 98.5, 1500, 500, 1500, 1000, 18),
    InverterSpec("INV-1250K", "INV-1250K", "Sungrow", "central", 1250, 98.7, 1500, 500, 1500, 2600, 42),
)

PCS_UNITS: Tuple[PcsSpec, ...] = (
    PcsSpec("PCS-30", "PCS-30", "Kehua", 30, 95, 200, 750, 2.5),
    PcsSpec("PCS-100", "PCS-100", "Sungrow", 100, 96, 400, 850, 8),
    PcsSpec("PCS-250", "PCS-250", "NR Electric", 250, 97, 500, 900, 18),
    PcsSpec("PCS-500", "PCS-500", "XJ Electric", 500, 97.5, 600, 1000, 38),
    PcsSpec("PCS-1000", "PCS-1000", "Sungrow", 1000, 98, 600, 1500, 72),
)

_Spec = TypeVar("_Spec")


def _find(items: Sequence[_Spec], model: str) -> Optional[_Spec]:
    for item in items:
        if getattr(item, "model") == model:
            return item
    return None


@dataclass(frozen=True)
class EquipmentCatalog:
    """Read-only bundle of every equipment list the engine selects from."""

    solar_panels: Tuple[SolarPanelSpec, ...] = SOLAR_PANELS
    wind_turbines: Tuple[WindTurbineSpec, ...] = WIND_TURBINES
    boilers: Tuple[BoilerSpec, ...] = BOILERS
    gasifiers: Tuple[GasifierSpec, ...] = GASIFIERS
    digesters: Tuple[DigesterSpec, ...] = DIGESTERS
    gas_engines: Tuple[GasEngineSpec, ...] = GAS_ENGINES
    steam_turbines: Tuple[SteamTurbineSpec, ...] = STEAM_TURBINES
    batteries: Tuple[BatterySpec, ...] = BATTERIES
    inverters: Tuple[InverterSpec, ...] = INVERTERS
    pcs_units: Tuple[PcsSpec, ...] = PCS_UNITS

    def turbine(self, model: str) -> Optional[WindTurbineSpec]:
        return _find(self.wind_turbines, model)

    def panel(self, model: str) -> Optional[SolarPanelSpec]:
        return _find(self.solar_panels, model)

    def battery(self, model: str) -> Optional[BatterySpec]:
        return _find(self.batteries, model)

    def inverter(self, model: str) -> Optional[InverterSpec]:
        return _find(self.inverters, model)

    def pcs(self, model: str) -> Optional[PcsSpec]:
        return _find(self.pcs_units, model)

    def boiler(self, model: str) -> Optional[BoilerSpec]:
        return _find(self.boilers, model)

    def gasifier(self, model: str) -> Optional[GasifierSpec]:
        return _find(self.gasifiers, model)

    def digester(self, model: str) -> Optional[DigesterSpec]:
        return _find(self.digesters, model)

    def gas_engine(self, model: str) -> Optional[GasEngineSpec]:
        return _find(self.gas_engines, model)

    def steam_turbine(self, model: str) -> Optional[SteamTurbineSpec]:
        return _find(self.steam_turbines, model)


DEFAULT_CATALOG = EquipmentCatalog()
