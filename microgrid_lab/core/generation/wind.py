from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from microgrid_lab.core.catalog.equipment import DEFAULT_CATALOG, EquipmentCatalog, WindTurbineSpec
from microgrid_lab.core.models import EquipmentSelection

AIR_DENSITY = 1.225  # kg/m^3
GEARBOX_EFFICIENCY = 0.92
GENERATOR_EFFICIENCY = 0.95
BETZ_LIMIT = 0.593

# Cp(lambda, beta) fit coefficients
C1, C2, C3, C4, C5, C6 = 0.5176, 116.0, 0.4, 5.0, 21.0, 0.0068


def _as_output(values: np.ndarray, scalar: bool):
    return float(values) if scalar else values


def tip_speed_ratio(rotor_diameter: float, rotor_speed_rps: float, wind_speed):
    """lambda = 2*pi*n*R / V; zero where the wind speed is not positive."""
    speed = np.asarray(wind_speed, dtype=float)
    radius = rotor_diameter / 2.0
    safe = np.where(speed > 0, speed, 1.0)
    tsr = np.where(speed > 0, 2.0 * math.pi * rotor_speed_rps * radius / safe, 0.0)
    return _as_output(tsr, tsr.ndim == 0)


def power_coefficient(tsr, pitch_deg: float = 0.0):
    """Empirical Cp curve clamped to [0, Betz limit]."""
    tsr = np.asarray(tsr, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        inverse = 1.0 / (tsr + 0.08 * pitch_deg) - 0.035 / (pitch_deg**3 + 1.0)
        lambda_i = 1.0 / inverse
        cp = C1 * (C2 / lambda_i - C3 * pitch_deg - C4) * np.exp(-C5 / lambda_i) + C6 * tsr
    cp = np.where(np.isfinite(cp), cp, 0.0)
    cp = np.clip(cp, 0.0, BETZ_LIMIT)
    return _as_output(cp, cp.ndim == 0)


def turbine_power_kw(wind_speed, turbine: WindTurbineSpec):
    """Single-turbine output in kW for a scalar or an array of hub wind speeds."""
    speed = np.asarray(wind_speed, dtype=float)
    scalar = speed.ndim == 0
    # missing readings count as calm air
    speed = np.nan_to_num(np.atleast_1d(speed), nan=0.0)

    rotor_speed_rps = turbine.rated_speed / 60.0
    tsr = np.asarray(tip_speed_ratio(turbine.rotor_diameter, rotor_speed_rps, speed))
    cp = np.asarray(power_coefficient(tsr))
    aero_kw = (
        0.125 * cp * GEARBOX_EFFICIENCY * GENERATOR_EFFICIENCY * AIR_DENSITY
        * turbine.rotor_diameter**3 * speed**3 / 1000.0
    )
    partial = np.minimum(aero_kw, turbine.rated_power_kw)

    stopped = (speed <= turbine.cut_in_speed) | (speed > turbine.cut_out_speed)
    at_rated = (speed >= turbine.rated_speed) & (speed <= turbine.cut_out_speed)
    power = np.where(stopped, 0.0, np.where(at_rated, turbine.rated_power_kw, partial))
    return float(power[0]) if scalar else power


def wind_farm_power_mw(
    wind_speed,
    selections: Sequence[EquipmentSelection],
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
):
    """Sum of count x unit output over every turbine line, in MW; unknown models contribute nothing."""
    speed = np.asarray(wind_speed, dtype=float)
    total_kw = np.zeros_like(speed)
    for selection in selections:
        turbine = catalog.turbine(selection.model)
        if turbine is None or selection.count <= 0:
            continue
        total_kw = total_kw + np.asarray(turbine_power_kw(speed, turbine)) * selection.count
    total_mw = total_kw / 1000.0
    return _as_output(total_mw, total_mw.ndim == 0)
