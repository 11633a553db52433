from __future__ import annotations

from typing import Dict, List, Optional

import numpy as np

from microgrid_lab.core.catalog.equipment import DEFAULT_CATALOG, EquipmentCatalog, WindTurbineSpec
from microgrid_lab.core.generation.wind import power_coefficient, tip_speed_ratio, turbine_power_kw
from microgrid_lab.core.models import AnnualProfile, Region, TurbineYield
from microgrid_lab.core.resources.provider import annual_profile
from microgrid_lab.logging_config import get_logger

logger = get_logger(__name__)


def annual_turbine_yield(
    region: Region,
    turbine: WindTurbineSpec,
    student_id: str = "",
    profile: Optional[AnnualProfile] = None,
) -> TurbineYield:
    """Annual energy and wind statistics for one turbine at ``region``'s hub wind."""
    profile = profile or annual_profile(region, student_id)
    speed = np.asarray(profile.wind_speed, dtype=float)
    hours = speed.shape[0]

    power_kw = np.asarray(turbine_power_kw(speed, turbine))
    annual_mwh = float(power_kw.sum()) / 1000.0
    equivalent_hours = annual_mwh * 1000.0 / turbine.rated_power_kw if turbine.rated_power_kw > 0 else 0.0

    bins = np.floor(speed).astype(int)
    values, counts = np.unique(bins, return_counts=True)
    distribution: Dict[int, int] = {int(v): int(c) for v, c in zip(values, counts)}

    operating = (speed > turbine.cut_in_speed) & (speed <= turbine.cut_out_speed)
    if operating.any():
        tsr = np.asarray(tip_speed_ratio(turbine.rotor_diameter, turbine.rated_speed / 60.0, speed[operating]))
        cp = np.asarray(power_coefficient(tsr))
        avg_cp, max_cp = float(cp.mean()), float(cp.max())
    else:
        avg_cp = max_cp = 0.0

    return TurbineYield(
        turbine_model=turbine.model,
        rated_power_kw=turbine.rated_power_kw,
        avg_wind_speed=float(speed.mean()),
        max_wind_speed=float(speed.max()),
        min_wind_speed=float(speed.min()),
        wind_distribution=distribution,
        annual_energy_mwh=annual_mwh,
        equivalent_hours=equivalent_hours,
        capacity_factor=equivalent_hours / hours * 100.0 if hours else 0.0,
        effective_hours=int((power_kw > 0).sum()),
        avg_power_coefficient=avg_cp,
        max_power_coefficient=max_cp,
    )


def all_turbine_yields(
    region: Region,
    student_id: str = "",
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
) -> List[TurbineYield]:
    profile = annual_profile(region, student_id)
    yields = [annual_turbine_yield(region, turbine, student_id, profile) for turbine in catalog.wind_turbines]
    logger.info("Computed annual yield for %d turbines at region %s", len(yields), region.id)
    return yields
