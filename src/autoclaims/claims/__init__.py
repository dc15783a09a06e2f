"""
Vehicle damage claims domain.

Record schemas, mocked photo analysis and repair cost estimation.
"""

from .analyzer import (
    DamageAnalyzer,
    MockDamageAnalyzer,
    PhotoAssessment,
    build_analysis,
    create_damage_analyzer,
    damage_type_for,
)
from .estimator import BASE_LABOR_COST, CostEstimate, generate_cost_estimate
from .schema import (
    # Enums
    ClaimStatus,
    ClaimPriority,
    DamageSeverity,
    DamageType,
    RepairType,
    # Models
    Claim,
    ClaimCreate,
    ClaimUpdate,
    DamageAnalysis,
    DamagePhoto,
    DamagePhotoCreate,
    CostBreakdown,
    CostBreakdownCreate,
    CostBreakdownInput,
)

__all__ = [
    # Analysis
    "DamageAnalyzer",
    "MockDamageAnalyzer",
    "PhotoAssessment",
    "build_analysis",
    "create_damage_analyzer",
    "damage_type_for",
    "BASE_LABOR_COST",
    "CostEstimate",
    "generate_cost_estimate",
    # Enums
    "ClaimStatus",
    "ClaimPriority",
    "DamageSeverity",
    "DamageType",
    "RepairType",
    # Models
    "Claim",
    "ClaimCreate",
    "ClaimUpdate",
    "DamageAnalysis",
    "DamagePhoto",
    "DamagePhotoCreate",
    "CostBreakdown",
    "CostBreakdownCreate",
    "CostBreakdownInput",
]
