from .entities import (
    AnnualProfile,
    BiomassComposition,
    BiomassFlowSummary,
    BiomassRoute,
    BiomassSelection,
    CancelToken,
    EnergyRatio,
    EquipmentConfiguration,
    EquipmentSelection,
    GroupDefinition,
    GroupScore,
    GroupSettings,
    GroupSolution,
    HourlySample,
    ManualConfiguration,
    ModelCount,
    Region,
    RegionDetail,
    RegionParameters,
    RegionResources,
    RegionType,
    ResourceSample,
    RouteRecommendation,
    SearchProgress,
    SearchSettings,
    SimulationResult,
    Solution,
    SolutionScore,
    TransferConfig,
    TurbineYield,
)

__all__ = [
    "AnnualProfile",
    "BiomassComposition",
    "BiomassFlowSummary",
    "BiomassRoute",
    "BiomassSelection",
    "CancelToken",
    "EnergyRatio",
    "EquipmentConfiguration",
    "EquipmentSelection",
    "GroupDefinition",
    "GroupScore",
    "GroupSettings",
    "GroupSolution",
    "HourlySample",
    "ManualConfiguration",
    "ModelCount",
    "Region",
    "RegionDetail",
    "RegionParameters",
    "RegionResources",
    "RegionType",
    "ResourceSample",
    "RouteRecommendation",
    "SearchProgress",
    "SearchSettings",
    "SimulationResult",
    "Solution",
    "SolutionScore",
    "TransferConfig",
    "TurbineYield",
]
