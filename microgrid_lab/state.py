from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

from microgrid_lab.core.models import (
    BiomassFlowSummary,
    BiomassRoute,
    BiomassSelection,
    EnergyRatio,
    EquipmentConfiguration,
    EquipmentSelection,
    GroupScore,
    GroupSolution,
    HourlySample,
    RegionDetail,
    RegionResources,
    RegionType,
    SimulationResult,
    Solution,
    SolutionScore,
    TransferConfig,
)


def _maybe_number(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _maybe_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _region_type(value: Any) -> RegionType:
    try:
        return RegionType(value)
    except ValueError:
        return RegionType.TEST


def serialize_dataclass(instance: Any) -> Dict[str, Any]:
    return asdict(instance)


def equipment_selection_from_store(data: Optional[Dict[str, Any]]) -> EquipmentSelection:
    if not data:
        return EquipmentSelection()
    return EquipmentSelection(
        model=data.get("model", ""),
        manufacturer=data.get("manufacturer", ""),
        count=_maybe_int(data.get("count"), 0),
        unit_capacity=_maybe_number(data.get("unit_capacity"), 0.0),
        total_capacity=_maybe_number(data.get("total_capacity"), 0.0),
        unit_price=_maybe_number(data.get("unit_price"), 0.0),
        total_price=_maybe_number(data.get("total_price"), 0.0),
    )


def _lines(items: Any) -> tuple:
    return tuple(equipment_selection_from_store(item) for item in items or [])


def configuration_from_store(data: Dict[str, Any]) -> EquipmentConfiguration:
    biomass = data.get("biomass", {}) or {}
    return EquipmentConfiguration(
        wind=_lines(data.get("wind")),
        solar=_lines(data.get("solar")),
        biomass=BiomassSelection(
            route=BiomassRoute(biomass.get("route", BiomassRoute.DIRECT_COMBUSTION.value)),
            primary=equipment_selection_from_store(biomass.get("primary")),
            secondary=equipment_selection_from_store(biomass.get("secondary")),
        ),
        battery=_lines(data.get("battery")),
        inverter=_lines(data.get("inverter")),
        pcs=_lines(data.get("pcs")),
    )


def hourly_sample_from_store(data: Dict[str, Any]) -> HourlySample:
    return HourlySample(
        wind_mw=_maybe_number(data.get("wind_mw")),
        solar_mw=_maybe_number(data.get("solar_mw")),
        biomass_mw=_maybe_number(data.get("biomass_mw")),
        total_generation_mw=_maybe_number(data.get("total_generation_mw")),
        load_mw=_maybe_number(data.get("load_mw")),
        balance_mw=_maybe_number(data.get("balance_mw")),
        battery_soc=_maybe_number(data.get("battery_soc")),
        battery_charge_mw=_maybe_number(data.get("battery_charge_mw")),
        curtailment_mw=_maybe_number(data.get("curtailment_mw")),
        shortage_mw=_maybe_number(data.get("shortage_mw")),
    )


def simulation_result_from_store(data: Dict[str, Any]) -> SimulationResult:
    ratio = data.get("energy_ratio", {}) or {}
    return SimulationResult(
        feasible=bool(data.get("feasible", False)),
        reliability=_maybe_number(data.get("reliability")),
        curtailment_rate=_maybe_number(data.get("curtailment_rate")),
        shortage_hours=_maybe_int(data.get("shortage_hours")),
        total_generation_mwh=_maybe_number(data.get("total_generation_mwh")),
        total_load_mwh=_maybe_number(data.get("total_load_mwh")),
        total_curtailment_mwh=_maybe_number(data.get("total_curtailment_mwh")),
        total_shortage_mwh=_maybe_number(data.get("total_shortage_mwh")),
        avg_soc=_maybe_number(data.get("avg_soc")),
        min_soc=_maybe_number(data.get("min_soc")),
        max_soc=_maybe_number(data.get("max_soc")),
        wind_generation_mwh=_maybe_number(data.get("wind_generation_mwh")),
        solar_generation_mwh=_maybe_number(data.get("solar_generation_mwh")),
        biomass_generation_mwh=_maybe_number(data.get("biomass_generation_mwh")),
        energy_ratio=EnergyRatio(
            wind=_maybe_number(ratio.get("wind")),
            solar=_maybe_number(ratio.get("solar")),
            bio=_maybe_number(ratio.get("bio")),
            total=_maybe_number(ratio.get("total")),
        ),
        hourly=[hourly_sample_from_store(item) for item in data.get("hourly", []) or []],
    )


def solution_score_from_store(data: Dict[str, Any]) -> SolutionScore:
    return SolutionScore(
        total=_maybe_number(data.get("total")),
        condition=_maybe_number(data.get("condition")),
        matching=_maybe_number(data.get("matching")),
        economics=_maybe_number(data.get("economics")),
        stability=_maybe_number(data.get("stability")),
        group_bonus=_maybe_number(data.get("group_bonus")),
        issues=list(data.get("issues", [])),
    )


def solution_from_store(data: Dict[str, Any]) -> Solution:
    return Solution(
        id=data.get("id", ""),
        region_id=_maybe_int(data.get("region_id")),
        region_name=data.get("region_name", ""),
        region_type=_region_type(data.get("region_type")),
        config=configuration_from_store(data.get("config", {}) or {}),
        total_cost=_maybe_number(data.get("total_cost")),
        simulation=simulation_result_from_store(data.get("simulation", {}) or {}),
        score=solution_score_from_store(data.get("score", {}) or {}),
        timestamp=_maybe_int(data.get("timestamp")),
    )


def transfer_from_store(data: Dict[str, Any]) -> TransferConfig:
    return TransferConfig(
        from_region_id=_maybe_int(data.get("from_region_id")),
        to_region_id=_maybe_int(data.get("to_region_id")),
        biomass_t_per_day=_maybe_number(data.get("biomass_t_per_day")),
        power_mw=_maybe_number(data.get("power_mw")),
    )


def region_detail_from_store(data: Dict[str, Any]) -> RegionDetail:
    resources = data.get("resources", {}) or {}
    return RegionDetail(
        region_id=_maybe_int(data.get("region_id")),
        region_name=data.get("region_name", ""),
        region_type=_region_type(data.get("region_type")),
        is_center=bool(data.get("is_center", False)),
        equipment=dict(data.get("equipment", {})),
        resources=RegionResources(
            daily_load_mwh=_maybe_number(resources.get("daily_load_mwh")),
            peak_load_mw=_maybe_number(resources.get("peak_load_mw")),
            daily_biomass_t=_maybe_number(resources.get("daily_biomass_t")),
            received_biomass_t=_maybe_number(resources.get("received_biomass_t")),
            sent_biomass_t=_maybe_number(resources.get("sent_biomass_t")),
            net_biomass_t=_maybe_number(resources.get("net_biomass_t")),
        ),
        costs={key: _maybe_number(value) for key, value in (data.get("costs", {}) or {}).items()},
        score=_maybe_number(data.get("score")),
    )


def group_solution_from_store(data: Dict[str, Any]) -> GroupSolution:
    score = data.get("group_score", {}) or {}
    flow = data.get("biomass_flow", {}) or {}
    return GroupSolution(
        group_name=data.get("group_name", ""),
        center_region_id=_maybe_int(data.get("center_region_id")),
        region_solutions=[solution_from_store(item) for item in data.get("region_solutions", [])],
        region_details=[region_detail_from_store(item) for item in data.get("region_details", [])],
        transfers=[transfer_from_store(item) for item in data.get("transfers", [])],
        total_cost=_maybe_number(data.get("total_cost")),
        total_generation_mwh=_maybe_number(data.get("total_generation_mwh")),
        total_load_mwh=_maybe_number(data.get("total_load_mwh")),
        group_reliability=_maybe_number(data.get("group_reliability")),
        group_curtailment_rate=_maybe_number(data.get("group_curtailment_rate")),
        cost_comparison={k: _maybe_number(v) for k, v in (data.get("cost_comparison", {}) or {}).items()},
        equipment_summary={k: _maybe_number(v) for k, v in (data.get("equipment_summary", {}) or {}).items()},
        biomass_flow=BiomassFlowSummary(
            total_production_t=_maybe_number(flow.get("total_production_t")),
            total_transferred_t=_maybe_number(flow.get("total_transferred_t")),
            center_received_t=_maybe_number(flow.get("center_received_t")),
            utilization_rate=_maybe_number(flow.get("utilization_rate")),
        ),
        group_score=GroupScore(
            total=_maybe_number(score.get("total")),
            avg_region_score=_maybe_number(score.get("avg_region_score")),
            resource_sharing=_maybe_number(score.get("resource_sharing")),
            load_balancing=_maybe_number(score.get("load_balancing")),
            economic_optimization=_maybe_number(score.get("economic_optimization")),
            issues=list(score.get("issues", [])),
        ),
        combined_score=_maybe_number(data.get("combined_score")),
        timestamp=_maybe_int(data.get("timestamp")),
    )
