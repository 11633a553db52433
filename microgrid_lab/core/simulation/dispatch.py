from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BATTERY_EFFICIENCY = 0.92
INITIAL_SOC_FRACTION = 0.5
C_RATE = 1.0
SHORTAGE_EPSILON_MW = 0.001


class DispatchMode(str, Enum):
    CHARGING = "charging"
    DISCHARGING = "discharging"
    IDLE = "idle"


@dataclass
class BatteryParams:
    capacity_mwh: float
    max_charge_mw: float
    max_discharge_mw: float
    efficiency: float = BATTERY_EFFICIENCY

    @classmethod
    def from_capacity(cls, capacity_mwh: float, efficiency: float = BATTERY_EFFICIENCY) -> "BatteryParams":
        return cls(
            capacity_mwh=capacity_mwh,
            max_charge_mw=capacity_mwh * C_RATE,
            max_discharge_mw=capacity_mwh * C_RATE,
            efficiency=efficiency,
        )


@dataclass
class BatteryState:
    energy_mwh: float


@dataclass
class DispatchStep:
    mode: DispatchMode
    charge_mw: float
    discharge_mw: float
    curtailment_mw: float
    shortage_mw: float
    energy_mwh: float
    soc: float

    @property
    def net_battery_mw(self) -> float:
        return self.charge_mw - self.discharge_mw

    @property
    def is_shortage_hour(self) -> bool:
        return self.shortage_mw > SHORTAGE_EPSILON_MW


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(value, upper))


def initial_state(params: BatteryParams) -> BatteryState:
    return BatteryState(energy_mwh=params.capacity_mwh * INITIAL_SOC_FRACTION)


def step_battery(
    load_mw: float,
    generation_mw: float,
    state: BatteryState,
    params: BatteryParams,
) -> DispatchStep:
    """
    Advance the battery by one hour and settle the residual.

    Exactly one mode applies per hour:
      1) Charging: surplus and headroom; charge is limited by surplus, rate and
         headroom / efficiency, the rest is curtailed.
      2) Discharging: deficit and stored energy; delivery is limited by deficit,
         rate and energy x efficiency, the rest is shortage.
      3) Idle: any surplus is curtailed and any deficit is shortage.
    """
    if params.efficiency <= 0:
        raise ValueError("Battery efficiency must be positive.")

    residual = load_mw - generation_mw  # positive when load exceeds generation
    energy = state.energy_mwh
    capacity = params.capacity_mwh

    charge = 0.0
    discharge = 0.0
    curtailment = 0.0
    shortage = 0.0

    if residual < 0 and energy < capacity:
        mode = DispatchMode.CHARGING
        surplus = -residual
        charge = min(surplus, params.max_charge_mw, (capacity - energy) / params.efficiency)
        energy += charge * params.efficiency
        curtailment = surplus - charge
    elif residual > 0 and energy > 0:
        mode = DispatchMode.DISCHARGING
        discharge = min(residual, params.max_discharge_mw, energy * params.efficiency)
        energy -= discharge / params.efficiency
        shortage = residual - discharge
    else:
        mode = DispatchMode.IDLE
        if residual > 0:
            shortage = residual
        elif residual < 0:
            curtailment = -residual

    energy = _clamp(energy, 0.0, capacity)
    state.energy_mwh = energy
    soc = energy / capacity * 100.0 if capacity > 0 else 0.0

    return DispatchStep(
        mode=mode,
        charge_mw=charge,
        discharge_mw=discharge,
        curtailment_mw=curtailment,
        shortage_mw=shortage,
        energy_mwh=energy,
        soc=soc,
    )
