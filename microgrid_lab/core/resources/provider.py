"""Deterministic resource curves for the map regions.

Every value is derived from ``frac(sin(seed) * 10000)`` so the same region,
date and student always produce the same series.  Load and biomass series are
scaled by a per-student multiplier in [1.05, 1.10].
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Dict, List, Sequence, Tuple

import numpy as np

from microgrid_lab.core.models import (
    AnnualProfile,
    BiomassComposition,
    Region,
    RegionParameters,
    RegionType,
    ResourceSample,
)
from microgrid_lab.logging_config import get_logger

logger = get_logger(__name__)

TOTAL_REGIONS = 55
TEST_REGION_START = 53
MAP_WIDTH = 2000.0
MAP_HEIGHT = 1500.0
HOURS_PER_DAY = 24
DAYS_IN_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)
HOURS_PER_YEAR = sum(DAYS_IN_MONTH) * HOURS_PER_DAY

REGULAR_TYPE_CYCLE: Tuple[RegionType, ...] = (
    RegionType.INDUSTRIAL,
    RegionType.FORESTRY,
    RegionType.AGRICULTURE,
    RegionType.RESIDENTIAL,
    RegionType.MOUNTAIN,
)

COST_MULTIPLIER_BY_TYPE: Dict[RegionType, float] = {
    RegionType.INDUSTRIAL: 0.9,
    RegionType.FORESTRY: 1.0,
    RegionType.AGRICULTURE: 1.0,
    RegionType.RESIDENTIAL: 1.0,
    RegionType.MOUNTAIN: 1.5,
    RegionType.TEST: 1.0,
}


class ResourceScale(str, Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class WindProfile:
    base_speed: float
    variance: float
    daily_amplitude: float
    bonus: float


@dataclass(frozen=True)
class SolarProfile:
    base_intensity: float
    seasonal_amplitude: float
    variance: float
    multiplier: float


@dataclass(frozen=True)
class LoadProfile:
    day_base: float
    night_base: float
    variance: float


@dataclass(frozen=True)
class BiomassProfile:
    base_output: float
    harvest_output: float
    harvest_months: Tuple[int, ...]
    variance: float


@dataclass(frozen=True)
class TemperatureProfile:
    base: float
    seasonal_amplitude: float
    daily_amplitude: float
    variance: float


@dataclass(frozen=True)
class RegionResourceConfig:
    wind: WindProfile
    solar: SolarProfile
    load: LoadProfile
    biomass: BiomassProfile
    temperature: TemperatureProfile


@dataclass(frozen=True)
class MaterialDefaults:
    proximate: Tuple[float, float, float, float]
    elemental: Tuple[float, float, float, float, float]
    proximate_variance: Tuple[float, float, float, float]
    elemental_variance: Tuple[float, float, float, float, float]


RESOURCE_DEFAULTS: Dict[RegionType, RegionResourceConfig] = {
    RegionType.INDUSTRIAL: RegionResourceConfig(
        WindProfile(4.0, 3.0, 1.5, 0.0),
        SolarProfile(0.5, 0.3, 0.15, 1.0),
        LoadProfile(45000, 65000, 8000),
        BiomassProfile(60, 60, (), 15),
        TemperatureProfile(16, 12, 6, 2),
    ),
    RegionType.FORESTRY: RegionResourceConfig(
        WindProfile(2.5, 2.0, 1.0, -1.0),
        SolarProfile(0.4, 0.25, 0.1, 0.7),
        LoadProfile(4000, 2000, 1500),
        BiomassProfile(150, 150, (), 20),
        TemperatureProfile(14, 10, 5, 1.5),
    ),
    RegionType.AGRICULTURE: RegionResourceConfig(
        WindProfile(4.5, 3.5, 2.0, 0.5),
        SolarProfile(0.55, 0.3, 0.15, 1.1),
        LoadProfile(12000, 8000, 5000),
        BiomassProfile(100, 350, (8, 9, 10), 30),
        TemperatureProfile(15, 13, 8, 2),
    ),
    RegionType.RESIDENTIAL: RegionResourceConfig(
        WindProfile(3.5, 2.5, 1.5, 0.0),
        SolarProfile(0.5, 0.3, 0.15, 1.0),
        LoadProfile(35000, 20000, 8000),
        BiomassProfile(80, 80, (), 20),
        TemperatureProfile(15.5, 11, 5, 1.5),
    ),
    RegionType.MOUNTAIN: RegionResourceConfig(
        WindProfile(5.5, 4.0, 2.5, 2.0),
        SolarProfile(0.6, 0.35, 0.2, 1.2),
        LoadProfile(8000, 2000, 3000),
        BiomassProfile(30, 30, (), 10),
        TemperatureProfile(10, 14, 10, 3),
    ),
    RegionType.TEST: RegionResourceConfig(
        WindProfile(4.0, 3.0, 2.0, 0.0),
        SolarProfile(0.5, 0.3, 0.15, 1.0),
        LoadProfile(20000, 20000, 5000),
        BiomassProfile(100, 100, (), 20),
        TemperatureProfile(15, 12, 7, 2),
    ),
}

# proximate: moisture, volatiles, fixed carbon, ash; elemental: C, H, O, N, S
MATERIAL_DEFAULTS: Dict[RegionType, MaterialDefaults] = {
    RegionType.INDUSTRIAL: MaterialDefaults((40, 28, 10, 22), (25, 3.5, 8, 1, 0.5), (5, 4, 3, 3), (3, 0.5, 2, 0.3, 0.2)),
    RegionType.FORESTRY: MaterialDefaults((10, 72, 16, 2), (47, 5.6, 35, 0.3, 0.1), (2, 4, 3, 1), (3, 0.4, 3, 0.1, 0.05)),
    RegionType.AGRICULTURE: MaterialDefaults((15, 65, 13, 7), (42, 5.2, 30, 0.6, 0.2), (3, 4, 3, 2), (3, 0.4, 3, 0.2, 0.1)),
    RegionType.RESIDENTIAL: MaterialDefaults((35, 35, 12, 18), (28, 3.8, 13.5, 1, 0.7), (5, 4, 3, 3), (3, 0.4, 2, 0.3, 0.2)),
    RegionType.MOUNTAIN: MaterialDefaults((20, 60, 15, 5), (40, 5, 29, 0.8, 0.2), (3, 4, 3, 2), (3, 0.4, 3, 0.2, 0.1)),
    RegionType.TEST: MaterialDefaults((15, 60, 15, 10), (40, 5, 29, 0.8, 0.2), (5, 5, 5, 3), (5, 1, 5, 0.3, 0.1)),
}

# (sunrise hour, sunset hour, peak intensity) per month at ~35 degrees north
SOLAR_PARAMS: Tuple[Tuple[float, float, float], ...] = (
    (7.25, 17.25, 0.5),
    (6.83, 17.83, 0.6),
    (6.25, 18.33, 0.75),
    (5.67, 18.83, 0.85),
    (5.17, 19.33, 0.95),
    (5.0, 19.67, 1.0),
    (5.17, 19.58, 0.98),
    (5.58, 19.0, 0.9),
    (6.0, 18.33, 0.8),
    (6.42, 17.67, 0.65),
    (6.92, 17.17, 0.55),
    (7.25, 17.0, 0.45),
)

# dailyLoad MWh, peak MW, dailyBiomass t, wind hours, solar hours, avg wind, avg solar
BASE_REGION_PARAMS: Dict[RegionType, Tuple[float, float, float, float, float, float, float]] = {
    RegionType.INDUSTRIAL: (1320, 65, 60, 2000, 1200, 4.0, 0.5),
    RegionType.RESIDENTIAL: (660, 35, 80, 1800, 1200, 3.5, 0.5),
    RegionType.MOUNTAIN: (120, 8, 30, 2500, 1400, 7.5, 0.6),
    RegionType.AGRICULTURE: (240, 12, 163, 2200, 1300, 5.0, 0.55),
    RegionType.FORESTRY: (72, 4, 150, 1500, 1000, 2.5, 0.4),
    RegionType.TEST: (480, 20, 100, 2000, 1200, 4.0, 0.5),
}


def seeded_random(seed):
    """Return ``frac(sin(seed) * 10000)`` for a scalar or an array of seeds."""
    x = np.sin(np.asarray(seed, dtype=float)) * 10000.0
    value = x - np.floor(x)
    if np.ndim(value) == 0:
        return float(value)
    return value


def days_in_month(month: int) -> int:
    return DAYS_IN_MONTH[month - 1]


def student_multiplier(student_id: str, region_id: int) -> float:
    """Per-student scale factor in [1.05, 1.10]; 1.0 when no student is given."""
    if not student_id:
        return 1.0
    digits = re.sub(r"\D", "", student_id)
    student_num = int(digits) if digits else 0
    return 1.05 + seeded_random(student_num * 1000 + region_id * 7) * 0.05


def region_type_for(region_id: int) -> RegionType:
    if region_id >= TEST_REGION_START:
        return RegionType.TEST
    return REGULAR_TYPE_CYCLE[(region_id - 1) % len(REGULAR_TYPE_CYCLE)]


def normalize_composition(values: Sequence[float], precision: int = 2) -> List[float]:
    """Scale to a 100% total; the last component absorbs the rounding residue."""
    total = sum(values)
    normalized: List[float] = []
    running = 0.0
    for index, value in enumerate(values):
        if index == len(values) - 1:
            normalized.append(round(100.0 - running, precision))
        else:
            share = round(value / total * 100.0, precision)
            normalized.append(share)
            running += share
    return normalized


def generate_biomass_composition(region_type: RegionType, seed: int) -> BiomassComposition:
    defaults = MATERIAL_DEFAULTS[region_type]

    def r(offset: int) -> float:
        return seeded_random(seed + offset)

    proximate = [
        max(1.0, base + (r(offset) - 0.5) * 2 * var)
        for offset, base, var in zip(range(1, 5), defaults.proximate, defaults.proximate_variance)
    ]
    floors = (1.0, 1.0, 1.0, 0.1, 0.01)
    elemental = [
        max(floor, base + (r(offset) - 0.5) * 2 * var)
        for offset, base, var, floor in zip(range(5, 10), defaults.elemental, defaults.elemental_variance, floors)
    ]
    moisture, volatiles, fixed_carbon, ash = normalize_composition(proximate)
    carbon, hydrogen, oxygen, nitrogen, sulfur = normalize_composition(elemental)
    return BiomassComposition(
        carbon=carbon,
        hydrogen=hydrogen,
        oxygen=oxygen,
        nitrogen=nitrogen,
        sulfur=sulfur,
        moisture=moisture,
        volatiles=volatiles,
        fixed_carbon=fixed_carbon,
        ash=ash,
    )


def build_region(region_id: int) -> Region:
    """Place a region on the jittered map grid and derive its feedstock."""
    if region_id < 1:
        raise ValueError("Region ids start at 1.")
    region_type = region_type_for(region_id)
    grid_size = math.ceil(math.sqrt(TOTAL_REGIONS))
    cell_width = MAP_WIDTH / grid_size
    cell_height = MAP_HEIGHT / grid_size
    row = (region_id - 1) // grid_size
    col = (region_id - 1) % grid_size
    seed = region_id * 137
    offset_x = (seeded_random(seed + 1) - 0.5) * cell_width * 0.6
    offset_y = (seeded_random(seed + 2) - 0.5) * cell_height * 0.6
    if region_id >= TEST_REGION_START:
        name = f"Test-{region_id - TEST_REGION_START + 1}"
    else:
        name = f"Region-{region_id}"
    return Region(
        id=region_id,
        name=name,
        region_type=region_type,
        x=round(col * cell_width + cell_width * 0.5 + offset_x, 2),
        y=round(row * cell_height + cell_height * 0.5 + offset_y, 2),
        biomass=generate_biomass_composition(region_type, seed),
        cost_multiplier=COST_MULTIPLIER_BY_TYPE[region_type],
    )


def build_regions(count: int = TOTAL_REGIONS) -> List[Region]:
    return [build_region(region_id) for region_id in range(1, count + 1)]


def connect_regions(
    regions: Sequence[Region],
    biomass_count: int = 3,
    power_count: int = 5,
) -> Dict[int, Dict[str, List[int]]]:
    """Nearest-neighbour biomass and power links; test regions only link to each other."""
    links: Dict[int, Dict[str, List[int]]] = {}
    test_ids = [region.id for region in regions if region.id >= TEST_REGION_START]
    regular = [region for region in regions if region.id < TEST_REGION_START]
    for region in regions:
        if region.id >= TEST_REGION_START:
            others = [other for other in test_ids if other != region.id]
            links[region.id] = {"biomass": list(others), "power": list(others)}
            continue
        ranked = sorted(
            (other for other in regular if other.id != region.id),
            key=lambda other: math.hypot(other.x - region.x, other.y - region.y),
        )
        links[region.id] = {
            "biomass": [other.id for other in ranked[:biomass_count]],
            "power": [other.id for other in ranked[:power_count]],
        }
    return links


def _round(values: np.ndarray, decimals: int) -> List[float]:
    return [float(v) for v in np.round(values, decimals)]


def daily_resource_sample(
    region: Region,
    month: int = 1,
    day: int = 1,
    student_id: str = "",
    scale: ResourceScale = ResourceScale.DAY,
) -> ResourceSample:
    """Hourly resource series for one day.

    ``ResourceScale.MONTH`` returns one averaged value per day of ``month`` and
    ``ResourceScale.YEAR`` one value per month; both are used for overviews only.
    """
    config = RESOURCE_DEFAULTS[region.region_type]
    multiplier = student_multiplier(student_id, region.id)
    base_seed = region.id * 10000 + month * 100 + day

    if scale is ResourceScale.DAY:
        count = HOURS_PER_DAY
    elif scale is ResourceScale.MONTH:
        count = days_in_month(month)
    else:
        count = 12
    idx = np.arange(count, dtype=float)

    def r(offset: int) -> np.ndarray:
        return seeded_random(base_seed + idx + offset)

    sunrise, sunset, intensity = SOLAR_PARAMS[month - 1]
    seasonal = math.cos((month - 7) * math.pi / 6) * config.temperature.seasonal_amplitude

    if scale is ResourceScale.DAY:
        daylight = (idx >= sunrise) & (idx <= sunset)
        progress = (idx - sunrise) / (sunset - sunrise)
        solar = np.where(
            daylight,
            np.sin(progress * math.pi) * intensity * (0.7 + r(0) * 0.3) * config.solar.multiplier,
            0.0,
        )

        wind = config.wind.base_speed + config.wind.bonus
        wind = wind + np.sin(idx / 3) * config.wind.daily_amplitude
        wind = wind + (r(100) - 0.5) * config.wind.variance
        event = r(500)
        wind = np.where(event < 0.1, np.maximum(0.0, wind * 0.3), np.where(event > 0.95, wind * 1.8, wind))

        is_day = (idx >= 8) & (idx <= 18)
        load = np.where(is_day, config.load.day_base, config.load.night_base)
        load = load + (r(200) - 0.5) * config.load.variance

        temperature = (
            config.temperature.base
            + seasonal
            + np.sin((idx - 5) * math.pi / 12) * config.temperature.daily_amplitude
            + (r(400) - 0.5) * config.temperature.variance
        )
        months = np.full(count, month)
    else:
        months = idx + 1 if scale is ResourceScale.YEAR else np.full(count, month)
        month_intensity = np.array([SOLAR_PARAMS[int(m) - 1][2] for m in months])
        solar = config.solar.base_intensity * month_intensity * config.solar.multiplier
        solar = solar + (r(0) - 0.5) * config.solar.variance

        wind = config.wind.base_speed + config.wind.bonus + (r(100) - 0.5) * config.wind.variance * 0.5

        load = (config.load.day_base * 10 + config.load.night_base * 14) / 24
        load = load + (r(200) - 0.5) * config.load.variance * 0.3

        if scale is ResourceScale.MONTH:
            temperature = config.temperature.base + seasonal + (r(400) - 0.5) * config.temperature.variance * 1.5
        else:
            seasonal_by_month = np.cos((months - 7) * math.pi / 6) * config.temperature.seasonal_amplitude
            temperature = (
                config.temperature.base + seasonal_by_month + (r(400) - 0.5) * config.temperature.variance * 0.5
            )

    harvest = np.isin(months, config.biomass.harvest_months)
    biomass = np.where(harvest, config.biomass.harvest_output, config.biomass.base_output)
    biomass = np.maximum(0.0, biomass + (r(300) - 0.5) * config.biomass.variance)

    return ResourceSample(
        wind_speed=_round(np.maximum(0.0, wind), 2),
        solar_irradiance=_round(np.maximum(0.0, solar), 2),
        load_kw=_round(np.maximum(0.0, load * multiplier), 2),
        biomass_t=_round(np.maximum(0.0, biomass * multiplier), 2),
        temperature_c=_round(np.asarray(temperature, dtype=float), 1),
    )


@lru_cache(maxsize=64)
def _annual_arrays(region: Region, student_id: str) -> AnnualProfile:
    wind: List[float] = []
    solar: List[float] = []
    load: List[float] = []
    biomass: List[float] = []
    temperature: List[float] = []
    for month in range(1, 13):
        for day in range(1, days_in_month(month) + 1):
            sample = daily_resource_sample(region, month, day, student_id)
            wind.extend(sample.wind_speed)
            solar.extend(sample.solar_irradiance)
            load.extend(sample.load_kw)
            biomass.extend(sample.biomass_t)
            temperature.extend(sample.temperature_c)

    arrays = [np.asarray(series, dtype=float) for series in (wind, solar, load, biomass, temperature)]
    for array in arrays:
        array.flags.writeable = False
    logger.debug("Built annual profile for region %s (student=%r)", region.id, student_id)
    return AnnualProfile(*arrays)


def annual_profile(region: Region, student_id: str = "") -> AnnualProfile:
    """Concatenate the 365 daily samples into read-only 8760-hour arrays.

    Profiles are cached per region/student pair and shared between simulations.
    """
    return _annual_arrays(region, student_id)


def region_parameters(region: Region, student_id: str = "") -> RegionParameters:
    daily_load, peak, daily_biomass, wind_h, solar_h, avg_wind, avg_solar = BASE_REGION_PARAMS[region.region_type]
    multiplier = student_multiplier(student_id, region.id)
    return RegionParameters(
        daily_load_mwh=daily_load * multiplier,
        peak_load_mw=peak * multiplier,
        daily_biomass_t=daily_biomass * multiplier,
        wind_full_load_hours=wind_h,
        solar_full_load_hours=solar_h,
        avg_wind_speed=avg_wind,
        avg_solar_intensity=avg_solar,
    )
