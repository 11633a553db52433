from __future__ import annotations

import asyncio
import math
import random
import time
from typing import Awaitable, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from microgrid_lab.core.models import (
    BiomassFlowSummary,
    CancelToken,
    GroupDefinition,
    GroupScore,
    GroupSettings,
    GroupSolution,
    Region,
    RegionDetail,
    RegionParameters,
    RegionResources,
    RegionType,
    SearchProgress,
    SearchSettings,
    Solution,
    TransferConfig,
)
from microgrid_lab.core.optimizer.engine import ProgressCallback, find_optimal_solutions
from microgrid_lab.core.resources.provider import region_parameters
from microgrid_lab.logging_config import get_logger

logger = get_logger(__name__)

# (region, student_id, cancel) -> candidate solutions for that region
CandidateProvider = Callable[[Region, str, CancelToken], Awaitable[List[Solution]]]


def _group(center: int, members: Sequence[int], center_type: RegionType) -> GroupDefinition:
    return GroupDefinition(
        name=f"region-{center}",
        region_ids=tuple(members),
        center_region_id=center,
        center_type=center_type,
    )


GROUP_DEFINITIONS: Tuple[GroupDefinition, ...] = (
    _group(10, (10, 1, 2, 3, 9), RegionType.INDUSTRIAL),
    _group(12, (12, 4, 5, 11, 20), RegionType.RESIDENTIAL),
    _group(14, (14, 6, 7, 13, 15, 22), RegionType.RESIDENTIAL),
    _group(23, (23, 16, 24, 31, 32), RegionType.INDUSTRIAL),
    _group(26, (26, 17, 18, 19, 25), RegionType.INDUSTRIAL),
    _group(28, (28, 21, 27, 35, 36), RegionType.INDUSTRIAL),
    _group(37, (37, 29, 30, 38, 46), RegionType.INDUSTRIAL),
    _group(39, (39, 40, 47, 48), RegionType.RESIDENTIAL),
    _group(42, (42, 33, 34, 41, 49, 50), RegionType.RESIDENTIAL),
    _group(44, (44, 8, 43, 45, 51, 52), RegionType.RESIDENTIAL),
)

# Average capital cost a region of each type is expected to need.
EXPECTED_REGION_COST: Dict[RegionType, float] = {
    RegionType.INDUSTRIAL: 35000.0,
    RegionType.RESIDENTIAL: 22000.0,
    RegionType.MOUNTAIN: 18000.0,
    RegionType.AGRICULTURE: 15000.0,
    RegionType.FORESTRY: 12000.0,
    RegionType.TEST: 15000.0,
}
DEFAULT_EXPECTED_COST = 10000.0
MIN_GROUP_RELIABILITY = 95.0

BIOMASS_HAUL_COST = 0.5  # per tonne per distance unit
POWER_LINE_HOURS = 8000
POWER_LINE_COST = 0.02
BIOMASS_LOSS_RATE = 0.001
POWER_LOSS_RATE = 0.00005


def region_group(name: str) -> Optional[GroupDefinition]:
    for definition in GROUP_DEFINITIONS:
        if definition.name == name:
            return definition
    return None


def group_regions(definition: GroupDefinition, regions: Sequence[Region]) -> List[Region]:
    """Members of ``definition`` in the order they appear in ``regions``."""
    members = set(definition.region_ids)
    return [region for region in regions if region.id in members]


def distance(a: Region, b: Region) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def transfer_cost(distance_units: float, biomass_t: float, power_mw: float) -> float:
    """Annual cost (in 10k currency units) of hauling biomass and wheeling power."""
    biomass_cost = biomass_t * distance_units * BIOMASS_HAUL_COST * 365 / 10000
    power_cost = power_mw * 1000 * POWER_LINE_HOURS * distance_units * POWER_LINE_COST / 10000 / 10000
    return biomass_cost + power_cost


def transfer_loss(distance_units: float, biomass_t: float, power_mw: float) -> Tuple[float, float]:
    return biomass_t * distance_units * BIOMASS_LOSS_RATE, power_mw * distance_units * POWER_LOSS_RATE


def biomass_transfers(
    regions: Sequence[Region],
    center_region_id: int,
    parameters: Dict[int, RegionParameters],
    share: float = 0.5,
) -> List[TransferConfig]:
    transfers = []
    for region in regions:
        if region.id == center_region_id:
            continue
        daily = parameters[region.id].daily_biomass_t
        if daily > 0:
            transfers.append(TransferConfig(region.id, center_region_id, biomass_t_per_day=daily * share))
    return transfers


def add_power_transfers(
    solutions: Sequence[Solution],
    transfers: List[TransferConfig],
    edge_cap_mw: float = 10.0,
) -> None:
    """Match annual generation surplus against deficit regions, in place."""
    deficits = [s for s in solutions if s.simulation.total_generation_mwh < s.simulation.total_load_mwh]
    for solution in solutions:
        surplus = solution.simulation.total_generation_mwh - solution.simulation.total_load_mwh
        if surplus <= 0:
            continue
        for deficit in deficits:
            amount = min(surplus / len(deficits), edge_cap_mw)
            existing = next(
                (
                    t
                    for t in transfers
                    if t.from_region_id == solution.region_id and t.to_region_id == deficit.region_id
                ),
                None,
            )
            if existing is not None:
                existing.power_mw = amount
            else:
                transfers.append(TransferConfig(solution.region_id, deficit.region_id, power_mw=amount))


def _balancing_points(spread: float) -> float:
    if spread < 1:
        return 5.0
    if spread < 3:
        return 4.0
    if spread < 5:
        return 3.0
    if spread < 10:
        return 2.0
    return 1.0


def _economic_points(cost_ratio: float) -> float:
    if cost_ratio <= 1.0:
        return 5.0
    if cost_ratio <= 1.1:
        return 4.0
    if cost_ratio <= 1.2:
        return 3.0
    if cost_ratio <= 1.3:
        return 2.0
    return 1.0


def evaluate_group(solutions: Sequence[Solution], transfers: Sequence[TransferConfig]) -> GroupScore:
    """Score one combination of per-region solutions."""
    issues: List[str] = []
    count = len(solutions)
    avg_region_score = sum(s.score.total for s in solutions) / count if count else 0.0

    total_biomass = sum(t.biomass_t_per_day for t in transfers)
    total_power = sum(t.power_mw for t in transfers)
    sharing = 0.0
    if total_biomass > 0 or total_power > 0:
        sharing = min(5.0, total_biomass / 50 + total_power / 10)

    balancing = 0.0
    if count:
        reliabilities = [s.simulation.reliability for s in solutions]
        balancing = _balancing_points(max(reliabilities) - min(reliabilities))
        if min(reliabilities) < MIN_GROUP_RELIABILITY:
            issues.append(f"Some regions fall below {MIN_GROUP_RELIABILITY:.0f}% reliability")
            balancing = max(0.0, balancing - 2)

    economics = 0.0
    if count:
        avg_cost = sum(s.total_cost for s in solutions) / count
        avg_expected = sum(EXPECTED_REGION_COST.get(s.region_type, DEFAULT_EXPECTED_COST) for s in solutions) / count
        ratio = avg_cost / avg_expected
        economics = _economic_points(ratio)
        if ratio > 1.3:
            issues.append(f"Average cost {(ratio - 1) * 100:.0f}% above expectation")

    total = math.floor(avg_region_score + sharing + balancing + economics + 0.5)
    return GroupScore(
        total=float(min(100, total)),
        avg_region_score=avg_region_score,
        resource_sharing=sharing,
        load_balancing=balancing,
        economic_optimization=economics,
        issues=issues,
    )


def _equipment_block(lines, divisor: float = 1000.0) -> Dict[str, object]:
    return {
        "models": [
            {"model": s.model, "manufacturer": s.manufacturer, "count": s.count, "unit_capacity": s.unit_capacity}
            for s in lines
        ],
        "total_capacity": sum(s.total_capacity for s in lines) / divisor,
        "total_cost": sum(s.total_price for s in lines),
    }


def region_details(
    solutions: Sequence[Solution],
    center_region_id: int,
    transfers: Sequence[TransferConfig],
    parameters: Dict[int, RegionParameters],
) -> List[RegionDetail]:
    details = []
    for solution in solutions:
        config = solution.config
        params = parameters.get(solution.region_id)
        received = sum(t.biomass_t_per_day for t in transfers if t.to_region_id == solution.region_id)
        sent = sum(t.biomass_t_per_day for t in transfers if t.from_region_id == solution.region_id)
        daily_biomass = params.daily_biomass_t if params else 0.0

        biomass = config.biomass
        equipment = {
            "wind": _equipment_block(config.wind),
            "solar": _equipment_block(config.solar),
            "biomass": {
                "route": biomass.route.value,
                "primary": {"model": biomass.primary.model, "count": biomass.primary.count},
                "secondary": {"model": biomass.secondary.model, "count": biomass.secondary.count},
                "total_capacity": biomass.secondary.total_capacity / 1000.0,
                "total_cost": biomass.primary.total_price + biomass.secondary.total_price,
            },
            "battery": _equipment_block(config.battery),
            "inverter": _equipment_block(config.inverter),
        }
        costs = {
            "wind": equipment["wind"]["total_cost"],
            "solar": equipment["solar"]["total_cost"],
            "biomass": equipment["biomass"]["total_cost"],
            "battery": equipment["battery"]["total_cost"],
            "inverter": equipment["inverter"]["total_cost"],
            "total": solution.total_cost,
        }
        details.append(
            RegionDetail(
                region_id=solution.region_id,
                region_name=solution.region_name,
                region_type=solution.region_type,
                is_center=solution.region_id == center_region_id,
                equipment=equipment,
                resources=RegionResources(
                    daily_load_mwh=solution.simulation.total_load_mwh / 365,
                    peak_load_mw=params.peak_load_mw if params else 0.0,
                    daily_biomass_t=daily_biomass,
                    received_biomass_t=received,
                    sent_biomass_t=sent,
                    net_biomass_t=daily_biomass + received - sent,
                ),
                costs=costs,
                score=solution.score.total,
            )
        )
    return details


def _odometer(counts: Sequence[int]) -> Iterator[Tuple[int, ...]]:
    """Index tuples over ``counts`` with the last position turning fastest."""
    indices = [0] * len(counts)
    while True:
        yield tuple(indices)
        for pos in range(len(indices) - 1, -1, -1):
            indices[pos] += 1
            if indices[pos] < counts[pos]:
                break
            indices[pos] = 0
        else:
            return


def build_group_solution(
    definition: GroupDefinition,
    solutions: List[Solution],
    transfers: List[TransferConfig],
    score: GroupScore,
    combined_score: float,
    parameters: Dict[int, RegionParameters],
    region_count: int,
) -> GroupSolution:
    total_cost = sum(s.total_cost for s in solutions)
    total_generation = sum(s.simulation.total_generation_mwh for s in solutions)
    total_load = sum(s.simulation.total_load_mwh for s in solutions)
    shortage_hours = sum(s.simulation.shortage_hours for s in solutions)
    curtailment = sum(s.simulation.total_curtailment_mwh for s in solutions)

    if total_load > 0:
        reliability = (total_load - shortage_hours * (total_load / 8760 / region_count)) / total_load * 100
    else:
        reliability = 0.0
    details = region_details(solutions, definition.center_region_id, transfers, parameters)

    production = sum(d.resources.daily_biomass_t for d in details)
    transferred = sum(t.biomass_t_per_day for t in transfers)
    center = next((d for d in details if d.is_center), None)
    received = center.resources.received_biomass_t if center else 0.0

    return GroupSolution(
        group_name=definition.name,
        center_region_id=definition.center_region_id,
        region_solutions=list(solutions),
        region_details=details,
        transfers=transfers,
        total_cost=total_cost,
        total_generation_mwh=total_generation,
        total_load_mwh=total_load,
        group_reliability=reliability,
        group_curtailment_rate=curtailment / total_generation * 100 if total_generation > 0 else 0.0,
        cost_comparison={
            "independent_total_cost": total_cost,
            "joint_total_cost": total_cost,
            "savings_amount": 0.0,
            "savings_rate": 0.0,
        },
        equipment_summary={
            key: sum(d.equipment[key]["total_capacity"] for d in details)
            for key in ("wind", "solar", "biomass", "battery", "inverter")
        },
        biomass_flow=BiomassFlowSummary(
            total_production_t=production,
            total_transferred_t=transferred,
            center_received_t=received,
            utilization_rate=transferred / production * 100 if production > 0 else 0.0,
        ),
        group_score=score,
        combined_score=combined_score,
        timestamp=int(time.time() * 1000),
    )


def _default_provider(settings: Optional[SearchSettings]) -> CandidateProvider:
    async def provide(region: Region, student_id: str, cancel: CancelToken) -> List[Solution]:
        return await find_optimal_solutions(region, student_id=student_id, cancel=cancel, settings=settings)

    return provide


async def find_group_solution(
    group_name: str,
    regions: Sequence[Region],
    student_id: str = "",
    on_progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
    settings: Optional[GroupSettings] = None,
    search_settings: Optional[SearchSettings] = None,
    candidate_provider: Optional[CandidateProvider] = None,
) -> Optional[GroupSolution]:
    """
    Search the best joint plan for a fixed cluster of regions.

    Each member gets up to ``settings.candidates_per_region`` solutions from the
    candidate provider (the single-region optimizer by default). Combinations are
    swept with the last region turning fastest; when the product exceeds
    ``settings.max_combinations`` each combination is kept with a fixed
    probability. The combination with the highest group score, less its cost
    penalty and plus the transfer bonus, wins.

    Returns ``None`` for an unknown group or one with no member regions, and when
    ``cancel`` is set before the sweep starts. The token is handed to the provider
    so a running region search stops with it.
    """
    settings = settings or GroupSettings()
    cancel = cancel or CancelToken()
    provider = candidate_provider or _default_provider(search_settings)

    definition = region_group(group_name)
    if definition is None:
        logger.warning("Unknown group %r; nothing to optimize", group_name)
        return None
    members = group_regions(definition, regions)
    if not members:
        logger.warning("Group %s has no regions in the supplied list", group_name)
        return None

    logger.info("Optimizing group %s (%d regions, center %s)", group_name, len(members), definition.center_region_id)
    try:
        best: Optional[GroupSolution] = None
        best_score = -math.inf
        feasible = 0

        def report(current: int, total: int, phase: str) -> None:
            if on_progress is not None:
                on_progress(
                    SearchProgress(
                        current=current,
                        total=total,
                        phase=phase,
                        best_cost=best.total_cost if best else float("inf"),
                        best_reliability=best.group_reliability if best else 0.0,
                        feasible_count=feasible,
                    )
                )

        report(0, len(members) * 2, "generating region candidates")
        candidates: Dict[int, List[Solution]] = {}
        for position, region in enumerate(members, start=1):
            if cancel.cancelled:
                logger.info("Group search %s cancelled during candidate generation", group_name)
                report(position - 1, len(members) * 2, "cancelled")
                return None
            report(position, len(members) * 2, f"candidates for {region.name}")
            found = await provider(region, student_id, cancel)
            if cancel.cancelled:
                logger.info("Group search %s cancelled while searching region %s", group_name, region.id)
                report(position, len(members) * 2, "cancelled")
                return None
            candidates[region.id] = list(found)[: settings.candidates_per_region]
            logger.debug("Region %s contributes %d candidates", region.id, len(candidates[region.id]))
            await asyncio.sleep(0)

        counts = [len(candidates[region.id]) or 1 for region in members]
        total_combinations = math.prod(counts)
        sampling_rate = min(1.0, settings.max_combinations / total_combinations)
        planned = min(total_combinations, settings.max_combinations)
        rng = random.Random(settings.seed)
        parameters = {region.id: region_parameters(region, student_id) for region in members}
        logger.info("Group %s: %d combinations, sampling rate %.4f", group_name, total_combinations, sampling_rate)
        report(0, planned, f"sweeping {planned} combinations")

        evaluated = 0
        for indices in _odometer(counts):
            if cancel.cancelled:
                break
            if sampling_rate < 1 and rng.random() > sampling_rate:
                continue
            evaluated += 1

            combination = [
                candidates[region.id][idx] for region, idx in zip(members, indices) if candidates[region.id]
            ]
            transfers = biomass_transfers(members, definition.center_region_id, parameters, settings.biomass_share)
            add_power_transfers(combination, transfers, settings.power_edge_cap_mw)

            score = evaluate_group(combination, transfers)
            cost = sum(s.total_cost for s in combination)
            combined = score.total - cost / settings.cost_penalty_divisor
            if transfers:
                combined += settings.transfer_bonus
            if combination:
                feasible += 1

            if combined > best_score:
                best_score = combined
                best = build_group_solution(
                    definition, combination, transfers, score, combined, parameters, len(members)
                )

            if evaluated % settings.progress_interval == 0:
                report(evaluated, planned, f"combination {evaluated}")
                await asyncio.sleep(0)

        if cancel.cancelled:
            logger.info("Group search %s cancelled after %d combinations", group_name, evaluated)
            report(evaluated, planned, "cancelled")
        else:
            report(planned, planned, "group optimization complete")
            logger.info(
                "Optimized group %s: %d combinations evaluated, best combined score %.2f",
                group_name,
                evaluated,
                best_score,
            )
        return best
    except Exception:
        logger.exception("Group optimization failed for %s", group_name)
        raise


def optimize_group(
    group_name: str,
    regions: Sequence[Region],
    student_id: str = "",
    on_progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
    settings: Optional[GroupSettings] = None,
    search_settings: Optional[SearchSettings] = None,
    candidate_provider: Optional[CandidateProvider] = None,
) -> Optional[GroupSolution]:
    """Blocking wrapper around :func:`find_group_solution`."""
    return asyncio.run(
        find_group_solution(
            group_name,
            regions,
            student_id=student_id,
            on_progress=on_progress,
            cancel=cancel,
            settings=settings,
            search_settings=search_settings,
            candidate_provider=candidate_provider,
        )
    )
