from __future__ import annotations

import statistics
from typing import List, Tuple

from microgrid_lab.core.models import EquipmentConfiguration, SimulationResult, SolutionScore
from microgrid_lab.core.sizing.engine import round_half_up, total_cost

HOURS_PER_YEAR = 8760
LPSP_MAX = 0.05
TARGET_MIX = (0.3, 0.4, 0.3)  # wind, solar, bio
MIX_BENCHMARK = 0.3
SIGMA_MAX = 0.3
ASSUMED_DISCHARGE_HOURS = 2.0
RELIABILITY_WARNING = 99.0
CURTAILMENT_WARNING = 15.0
COST_WARNING_RATIO = 1.1

# (cost ratio upper bound, points)
ECONOMICS_TABLE: Tuple[Tuple[float, int], ...] = (
    (1.05, 30),
    (1.10, 28),
    (1.15, 26),
    (1.20, 24),
    (1.25, 22),
    (1.30, 20),
    (1.40, 15),
    (1.50, 10),
)
ECONOMICS_FLOOR = 5


def band_factor(
    value: float,
    ideal: Tuple[float, float],
    outer: Tuple[float, float],
    center: float,
    spread: float,
) -> float:
    """1.0 inside ``ideal``, linear decay around ``center`` inside ``outer``, 0.5 elsewhere."""
    low, high = ideal
    outer_low, outer_high = outer
    if low <= value <= high:
        return 1.0
    if outer_low <= value < low or high < value <= outer_high:
        return max(0.0, 1.0 - abs(value - center) / spread)
    return 0.5


def _points(weight: float, factor: float) -> float:
    return min(weight, weight * max(0.0, min(1.0, factor)))


def condition_score(simulation: SimulationResult) -> float:
    lpsp = simulation.total_shortage_mwh / simulation.total_load_mwh if simulation.total_load_mwh > 0 else 0.0
    s_load = min(12.0, 12.0 * max(0.0, 1.0 - lpsp / LPSP_MAX))

    ratio = simulation.energy_ratio
    deviation = (
        abs(ratio.wind - TARGET_MIX[0]) + abs(ratio.solar - TARGET_MIX[1]) + abs(ratio.bio - TARGET_MIX[2])
    )
    s_ratio = min(10.0, 10.0 * max(0.0, 1.0 - deviation / MIX_BENCHMARK))
    s_balance = min(8.0, 8.0 * max(0.0, 1.0 - simulation.shortage_hours / HOURS_PER_YEAR))
    return min(30.0, round_half_up(s_load + s_ratio + s_balance))


def dc_ac_loading(config: EquipmentConfiguration) -> float:
    inverter_kw = config.inverter_kw
    return config.solar_kw / inverter_kw if inverter_kw > 0 else 0.0


def matching_score(config: EquipmentConfiguration, simulation: SimulationResult) -> float:
    k_inv = dc_ac_loading(config)
    s_inv = _points(7.0, band_factor(k_inv, (1.0, 1.1), (0.8, 1.2), 1.05, 0.25))

    battery_kwh = config.battery_kwh
    storage_power_kw = battery_kwh / ASSUMED_DISCHARGE_HOURS
    k_pcs = config.pcs_kw / storage_power_kw if storage_power_kw > 0 else 1.0
    s_pcs = _points(7.0, band_factor(k_pcs, (1.0, 1.2), (0.8, 1.5), 1.1, 0.3))

    daily_load = simulation.total_load_mwh / 365
    r_ess = (battery_kwh / 1000.0) / daily_load if daily_load > 0 else 0.0
    s_ess = _points(6.0, band_factor(r_ess, (0.08, 0.12), (0.05, 0.15), 0.10, 0.05))
    return min(20.0, round_half_up(s_inv + s_pcs + s_ess))


def stability_score(config: EquipmentConfiguration, simulation: SimulationResult) -> float:
    installed_mw = config.wind_kw / 1000.0 + config.solar_kw / 1000.0
    avg_load_mw = simulation.total_load_mwh / HOURS_PER_YEAR
    reserve = (installed_mw - avg_load_mw) / avg_load_mw if avg_load_mw > 0 else 0.0
    s_reserve = _points(8.0, band_factor(reserve, (0.15, 0.25), (0.10, 0.35), 0.20, 0.15))

    battery_mwh = config.battery_kwh / 1000.0
    if battery_mwh > 0:
        utilisation = (simulation.total_generation_mwh - simulation.total_curtailment_mwh) / (battery_mwh * 365)
    else:
        utilisation = 0.0
    utilisation = min(2.0, max(0.0, utilisation))
    s_storage = _points(7.0, band_factor(utilisation, (0.6, 0.8), (0.4, 0.9), 0.7, 0.3))

    ratio = simulation.energy_ratio
    sigma = statistics.pstdev([ratio.wind, ratio.solar, ratio.bio])
    s_diversity = min(5.0, 5.0 * max(0.0, 1.0 - sigma / SIGMA_MAX))
    return min(20.0, round_half_up(s_reserve + s_storage + s_diversity))


def economics_score(cost_ratio: float) -> float:
    for bound, points in ECONOMICS_TABLE:
        if cost_ratio <= bound:
            return float(points)
    return float(ECONOMICS_FLOOR)


def score_solution(
    config: EquipmentConfiguration,
    simulation: SimulationResult,
    best_known_cost: float,
) -> SolutionScore:
    """Rate a simulated configuration out of 100.

    Condition (30) and stability (20) come from the simulation, matching (20)
    from equipment sizing ratios and economics (30) from the cost relative to
    ``best_known_cost``.
    """
    issues: List[str] = []

    condition = condition_score(simulation)
    if simulation.reliability < RELIABILITY_WARNING:
        issues.append(
            f"Supply reliability {simulation.reliability:.1f}%, {simulation.shortage_hours} shortage hours"
        )

    matching = matching_score(config, simulation)
    k_inv = dc_ac_loading(config)
    if k_inv < 0.8 or k_inv > 1.2:
        issues.append(f"DC/AC ratio {k_inv:.2f} outside the recommended range [0.8-1.2]")
    if config.biomass.primary.model and not config.biomass.secondary.model:
        issues.append("Biomass chain incomplete: conversion unit without a prime mover")

    stability = stability_score(config, simulation)
    if simulation.curtailment_rate > CURTAILMENT_WARNING:
        issues.append(f"Curtailment rate {simulation.curtailment_rate:.1f}% is high")

    cost = total_cost(config)
    cost_ratio = cost / best_known_cost if best_known_cost > 0 else 1.0
    economics = economics_score(cost_ratio)
    if cost_ratio > COST_WARNING_RATIO:
        issues.append(f"Capital cost {(cost_ratio - 1) * 100:.1f}% above the best known solution")

    group_bonus = 0.0
    total = min(100.0, condition + matching + economics + stability + group_bonus)
    return SolutionScore(
        total=total,
        condition=condition,
        matching=matching,
        economics=economics,
        stability=stability,
        group_bonus=group_bonus,
        issues=issues,
    )
