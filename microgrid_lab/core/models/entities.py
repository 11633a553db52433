from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np


class RegionType(str, Enum):
    INDUSTRIAL = "industrial"
    FORESTRY = "forestry"
    AGRICULTURE = "agriculture"
    RESIDENTIAL = "residential"
    MOUNTAIN = "mountain"
    TEST = "test"


class BiomassRoute(str, Enum):
    DIRECT_COMBUSTION = "direct_combustion"
    GASIFICATION = "gasification"
    ANAEROBIC_DIGESTION = "anaerobic_digestion"


@dataclass(frozen=True)
class BiomassComposition:
    """Elemental (C/H/O/N/S) and proximate analysis of a region's feedstock, all in %."""

    carbon: float
    hydrogen: float
    oxygen: float
    nitrogen: float
    sulfur: float
    moisture: float
    volatiles: float
    fixed_carbon: float
    ash: float


@dataclass(frozen=True)
class Region:
    """A map region; read-only input to every engine stage."""

    id: int
    name: str
    region_type: RegionType
    x: float
    y: float
    biomass: BiomassComposition
    cost_multiplier: float = 1.0


@dataclass(frozen=True)
class RegionParameters:
    """Planning constants for a region, already scaled by the student multiplier."""

    daily_load_mwh: float
    peak_load_mw: float
    daily_biomass_t: float
    wind_full_load_hours: float
    solar_full_load_hours: float
    avg_wind_speed: float
    avg_solar_intensity: float

    @property
    def annual_load_mwh(self) -> float:
        return self.daily_load_mwh * 365


@dataclass
class ResourceSample:
    """One day of hourly resource data."""

    wind_speed: List[float]
    solar_irradiance: List[float]
    load_kw: List[float]
    biomass_t: List[float]
    temperature_c: List[float]


@dataclass(frozen=True)
class AnnualProfile:
    """8760-hour resource arrays for one region/student pair."""

    wind_speed: np.ndarray
    solar_irradiance: np.ndarray
    load_kw: np.ndarray
    biomass_t: np.ndarray
    temperature_c: np.ndarray

    @property
    def hours(self) -> int:
        return int(self.load_kw.shape[0])


@dataclass(frozen=True)
class EquipmentSelection:
    model: str = ""
    manufacturer: str = ""
    count: int = 0
    unit_capacity: float = 0.0
    total_capacity: float = 0.0
    unit_price: float = 0.0
    total_price: float = 0.0

    @classmethod
    def of(
        cls,
        model: str,
        manufacturer: str,
        count: int,
        unit_capacity: float,
        unit_price: float,
    ) -> "EquipmentSelection":
        count = max(0, int(count))
        return cls(
            model=model,
            manufacturer=manufacturer,
            count=count,
            unit_capacity=unit_capacity,
            total_capacity=count * unit_capacity,
            unit_price=unit_price,
            total_price=count * unit_price,
        )

    @property
    def is_empty(self) -> bool:
        return not self.model or self.count == 0


@dataclass(frozen=True)
class BiomassSelection:
    route: BiomassRoute = BiomassRoute.DIRECT_COMBUSTION
    primary: EquipmentSelection = field(default_factory=EquipmentSelection)
    secondary: EquipmentSelection = field(default_factory=EquipmentSelection)


@dataclass(frozen=True)
class EquipmentConfiguration:
    """A complete hybrid plant: capacities in kW/kWh, prices in 10k CNY."""

    wind: Sequence[EquipmentSelection] = ()
    solar: Sequence[EquipmentSelection] = ()
    biomass: BiomassSelection = field(default_factory=BiomassSelection)
    battery: Sequence[EquipmentSelection] = ()
    inverter: Sequence[EquipmentSelection] = ()
    pcs: Sequence[EquipmentSelection] = ()

    @property
    def wind_kw(self) -> float:
        return sum(sel.total_capacity for sel in self.wind)

    @property
    def solar_kw(self) -> float:
        return sum(sel.total_capacity for sel in self.solar)

    @property
    def battery_kwh(self) -> float:
        return sum(sel.total_capacity for sel in self.battery)

    @property
    def inverter_kw(self) -> float:
        return sum(sel.total_capacity for sel in self.inverter)

    @property
    def pcs_kw(self) -> float:
        return sum(sel.total_capacity for sel in self.pcs)


@dataclass
class HourlySample:
    """One simulated hour; all power values in MW."""

    wind_mw: float
    solar_mw: float
    biomass_mw: float
    total_generation_mw: float
    load_mw: float
    balance_mw: float
    battery_soc: float
    battery_charge_mw: float
    curtailment_mw: float
    shortage_mw: float


@dataclass
class EnergyRatio:
    wind: float = 0.0
    solar: float = 0.0
    bio: float = 0.0
    total: float = 0.0


@dataclass
class SimulationResult:
    feasible: bool
    reliability: float
    curtailment_rate: float
    shortage_hours: int
    total_generation_mwh: float
    total_load_mwh: float
    total_curtailment_mwh: float
    total_shortage_mwh: float
    avg_soc: float
    min_soc: float
    max_soc: float
    wind_generation_mwh: float
    solar_generation_mwh: float
    biomass_generation_mwh: float
    energy_ratio: EnergyRatio = field(default_factory=EnergyRatio)
    hourly: List[HourlySample] = field(default_factory=list)


@dataclass
class SolutionScore:
    total: float
    condition: float
    matching: float
    economics: float
    stability: float
    group_bonus: float = 0.0
    issues: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Solution:
    id: str
    region_id: int
    region_name: str
    region_type: RegionType
    config: EquipmentConfiguration
    total_cost: float
    simulation: SimulationResult
    score: SolutionScore
    timestamp: int


@dataclass
class SearchProgress:
    current: int
    total: int
    phase: str
    best_cost: float = float("inf")
    best_reliability: float = 0.0
    feasible_count: int = 0
    solutions: Optional[List[Solution]] = None

    @property
    def fraction(self) -> float:
        return self.current / self.total if self.total else 0.0


@dataclass
class CancelToken:
    """Shared flag polled by the search loops at every iteration."""

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class SearchSettings:
    """Tunables for the single-region sweep.

    The grid overrides replace the heuristic grids entirely when given; leaving
    them as ``None`` reproduces the full exploratory search.
    """

    pool_size: int = 20
    progress_interval: int = 10
    route_limit: int = 2
    turbine_limit: int = 3
    panel_limit: int = 2
    battery_limit: int = 2
    wind_ratios: Optional[Sequence[float]] = None
    solar_ratios: Optional[Sequence[float]] = None
    battery_hours: Optional[Sequence[float]] = None
    include_exploratory_grid: bool = True


@dataclass
class GroupSettings:
    candidates_per_region: int = 5
    max_combinations: int = 5000
    biomass_share: float = 0.5
    power_edge_cap_mw: float = 10.0
    cost_penalty_divisor: float = 10000.0
    transfer_bonus: float = 5.0
    progress_interval: int = 10
    seed: Optional[int] = None


@dataclass
class TransferConfig:
    from_region_id: int
    to_region_id: int
    biomass_t_per_day: float = 0.0
    power_mw: float = 0.0


@dataclass(frozen=True)
class GroupDefinition:
    name: str
    region_ids: Sequence[int]
    center_region_id: int
    center_type: RegionType = RegionType.INDUSTRIAL


@dataclass
class GroupScore:
    total: float
    avg_region_score: float
    resource_sharing: float
    load_balancing: float
    economic_optimization: float
    issues: List[str] = field(default_factory=list)


@dataclass
class RegionResources:
    daily_load_mwh: float
    peak_load_mw: float
    daily_biomass_t: float
    received_biomass_t: float
    sent_biomass_t: float
    net_biomass_t: float


@dataclass
class RegionDetail:
    region_id: int
    region_name: str
    region_type: RegionType
    is_center: bool
    equipment: Dict[str, Dict[str, object]]
    resources: RegionResources
    costs: Dict[str, float]
    score: float


@dataclass
class BiomassFlowSummary:
    total_production_t: float
    total_transferred_t: float
    center_received_t: float
    utilization_rate: float


@dataclass
class GroupSolution:
    group_name: str
    center_region_id: int
    region_solutions: List[Solution]
    region_details: List[RegionDetail]
    transfers: List[TransferConfig]
    total_cost: float
    total_generation_mwh: float
    total_load_mwh: float
    group_reliability: float
    group_curtailment_rate: float
    cost_comparison: Dict[str, float]
    equipment_summary: Dict[str, float]
    biomass_flow: BiomassFlowSummary
    group_score: GroupScore
    combined_score: float
    timestamp: int


@dataclass
class ModelCount:
    model: str
    count: int


@dataclass
class ManualConfiguration:
    """User-authored plant expressed as catalog model names and unit counts."""

    region_id: int
    wind: List[ModelCount] = field(default_factory=list)
    solar: List[ModelCount] = field(default_factory=list)
    biomass_route: BiomassRoute = BiomassRoute.DIRECT_COMBUSTION
    biomass_primary: Optional[ModelCount] = None
    biomass_secondary: Optional[ModelCount] = None
    battery: List[ModelCount] = field(default_factory=list)
    inverter: List[ModelCount] = field(default_factory=list)
    pcs: List[ModelCount] = field(default_factory=list)


@dataclass
class RouteRecommendation:
    route: BiomassRoute
    score: float
    reason: str


@dataclass
class TurbineYield:
    turbine_model: str
    rated_power_kw: float
    avg_wind_speed: float
    max_wind_speed: float
    min_wind_speed: float
    wind_distribution: Dict[int, int]
    annual_energy_mwh: float
    equivalent_hours: float
    capacity_factor: float
    effective_hours: int
    avg_power_coefficient: float
    max_power_coefficient: float
