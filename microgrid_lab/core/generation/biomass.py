from __future__ import annotations

from typing import Dict, List, Tuple

from microgrid_lab.core.models import (
    BiomassComposition,
    BiomassRoute,
    BiomassSelection,
    RouteRecommendation,
)

# (primary conversion, prime mover, generator) efficiency per route
ROUTE_EFFICIENCIES: Dict[BiomassRoute, Tuple[float, float, float]] = {
    BiomassRoute.DIRECT_COMBUSTION: (0.80, 0.30, 0.96),
    BiomassRoute.GASIFICATION: (0.75, 0.25, 0.95),
    BiomassRoute.ANAEROBIC_DIGESTION: (0.85, 0.35, 0.97),
}


def biomass_heat_value(composition: BiomassComposition) -> float:
    """Net calorific value in MJ/kg from the elemental analysis and moisture."""
    c = composition.carbon
    h = composition.hydrogen
    q_net = (
        35.16 * c
        + 116.23 * h
        - 11.09 * composition.oxygen
        + 6.28 * composition.nitrogen
        + 10.47 * composition.sulfur
        - 2.51 * (9 * h + composition.moisture)
    )
    return q_net / 100.0


def _fuel_power_kw(daily_biomass_t: float, heat_value: float, route: BiomassRoute) -> float:
    primary, prime_mover, generator = ROUTE_EFFICIENCIES[route]
    fuel_rate_kg_h = daily_biomass_t * 1000.0 / 24.0
    return fuel_rate_kg_h * heat_value * 1000.0 * primary * prime_mover * generator / 3600.0


def max_biomass_power_mw(daily_biomass_t: float, heat_value: float, route: BiomassRoute) -> float:
    """Power the feedstock could sustain through ``route`` with unlimited plant."""
    return _fuel_power_kw(daily_biomass_t, heat_value, route) / 1000.0


def biomass_power_mw(selection: BiomassSelection, daily_biomass_t: float, heat_value: float) -> float:
    """Constant biomass output, capped at the installed prime-mover capacity."""
    if not selection.secondary.model:
        return 0.0
    rated_mw = selection.secondary.total_capacity / 1000.0
    return min(max_biomass_power_mw(daily_biomass_t, heat_value, selection.route), rated_mw)


def recommend_biomass_routes(composition: BiomassComposition, daily_output_t: float) -> List[RouteRecommendation]:
    """Rank conversion routes by feedstock volume and quality, best first."""
    direct = 50
    if daily_output_t >= 100:
        direct += 20
    elif daily_output_t >= 50:
        direct += 15
    else:
        direct += 5
    if 20 <= composition.moisture <= 45:
        direct += 15
    elif composition.moisture < 20:
        direct += 10
    else:
        direct += 5
    if composition.ash < 10:
        direct += 15
    elif composition.ash < 20:
        direct += 10
    else:
        direct += 5

    gasification = 50
    if 30 <= daily_output_t <= 150:
        gasification += 20
    elif daily_output_t < 30:
        gasification += 15
    else:
        gasification += 10
    if composition.moisture < 20:
        gasification += 15
    elif composition.moisture < 30:
        gasification += 10
    if composition.volatiles > 60:
        gasification += 15
    elif composition.volatiles > 50:
        gasification += 10
    else:
        gasification += 5

    digestion = 50
    if daily_output_t >= 50:
        digestion += 20
    elif daily_output_t >= 30:
        digestion += 15
    else:
        digestion += 10
    if composition.moisture > 35:
        digestion += 15
    elif composition.moisture > 25:
        digestion += 10
    else:
        digestion += 5
    cn_ratio = composition.carbon / max(composition.nitrogen, 0.1)
    if 20 <= cn_ratio <= 30:
        digestion += 15
    elif 15 <= cn_ratio <= 40:
        digestion += 10
    else:
        digestion += 5

    recommendations = [
        RouteRecommendation(
            BiomassRoute.DIRECT_COMBUSTION,
            min(100, direct),
            "large output suits utility-scale combustion" if daily_output_t > 50 else "small output, combustion efficiency is low",
        ),
        RouteRecommendation(
            BiomassRoute.GASIFICATION,
            min(100, gasification),
            "low moisture gives efficient gasification" if composition.moisture < 25 else "high moisture, feedstock needs pre-drying",
        ),
        RouteRecommendation(
            BiomassRoute.ANAEROBIC_DIGESTION,
            min(100, digestion),
            "wet feedstock suits anaerobic digestion" if composition.moisture > 30 else "dry feedstock, digestion needs added water",
        ),
    ]
    return sorted(recommendations, key=lambda rec: rec.score, reverse=True)
