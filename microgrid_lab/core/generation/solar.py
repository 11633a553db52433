from __future__ import annotations

from typing import Sequence

import numpy as np

from microgrid_lab.core.catalog.equipment import DEFAULT_CATALOG, EquipmentCatalog
from microgrid_lab.core.models import EquipmentSelection

SYSTEM_EFFICIENCY = 0.95
REFERENCE_TEMPERATURE_C = 25.0
REFERENCE_IRRADIANCE = 1.0  # kW/m^2
DEFAULT_TEMP_COEFF_PMAX = -0.35  # %/degC


def temperature_factor(temperature_c, temp_coeff_pmax: float = DEFAULT_TEMP_COEFF_PMAX):
    alpha = temp_coeff_pmax / 100.0
    factor = SYSTEM_EFFICIENCY * (1.0 + alpha * (np.asarray(temperature_c, dtype=float) - REFERENCE_TEMPERATURE_C))
    return float(factor) if np.ndim(factor) == 0 else factor


def solar_array_power_mw(
    irradiance,
    temperature_c,
    selections: Sequence[EquipmentSelection],
    catalog: EquipmentCatalog = DEFAULT_CATALOG,
):
    """PV output in MW for each panel line, derated by cell temperature."""
    irradiance = np.asarray(irradiance, dtype=float)
    temperature = np.broadcast_to(np.asarray(temperature_c, dtype=float), irradiance.shape)
    total_kw = np.zeros_like(irradiance)
    for selection in selections:
        panel = catalog.panel(selection.model)
        coeff = panel.temp_coeff_pmax if panel is not None else DEFAULT_TEMP_COEFF_PMAX
        factor = np.asarray(temperature_factor(temperature, coeff))
        line_kw = factor * selection.total_capacity * irradiance / REFERENCE_IRRADIANCE
        total_kw = total_kw + np.maximum(0.0, line_kw)
    total_mw = total_kw / 1000.0
    return float(total_mw) if total_mw.ndim == 0 else total_mw
