"""
Damage analysis for uploaded vehicle photos.

Baseline v1: randomized placeholder results keyed by severity.
Interface designed for easy swap to real vision models.
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .schema import DamageAnalysis, DamageSeverity, DamageType, RepairType


@dataclass
class PhotoAssessment:
    """Everything the analyzer says about one photo."""
    severity: DamageSeverity
    damage_type: DamageType
    analysis: DamageAnalysis


# Severity -> (confidence floor, confidence span, findings, repair types)
_SEVERITY_PROFILES = {
    DamageSeverity.SEVERE: (
        85,
        15,
        [
            "Bumper: High confidence severe damage",
            "Paint: Significant scratching detected",
            "Structure: Minor to moderate deformation identified",
        ],
        [RepairType.REPLACEMENT, RepairType.BODYWORK, RepairType.PAINT],
    ),
    DamageSeverity.MODERATE: (
        70,
        20,
        [
            "Side Panel: Moderate confidence damage",
            "Paint: Surface scratches detected",
            "Door: No structural damage",
        ],
        [RepairType.BODYWORK, RepairType.PAINT],
    ),
    DamageSeverity.MINOR: (
        60,
        25,
        [
            "Paint: Minor scratches detected",
            "Trim: Cosmetic damage only",
            "Structure: No damage detected",
        ],
        [RepairType.PAINT, RepairType.TOUCH_UP],
    ),
}

_DAMAGE_TYPES = {
    DamageSeverity.SEVERE: DamageType.STRUCTURAL,
    DamageSeverity.MODERATE: DamageType.BODYWORK,
    DamageSeverity.MINOR: DamageType.COSMETIC,
}


def damage_type_for(severity: DamageSeverity) -> DamageType:
    """Map a severity to the damage category recorded on the photo."""
    return _DAMAGE_TYPES[severity]


def build_analysis(severity: Optional[DamageSeverity], rng: random.Random) -> DamageAnalysis:
    """
    Build the analysis blob for a severity.

    Unknown severities fall back to the moderate profile.
    """
    floor, span, damages, repair_types = _SEVERITY_PROFILES.get(
        severity, _SEVERITY_PROFILES[DamageSeverity.MODERATE]
    )
    return DamageAnalysis(
        confidence=floor + rng.randrange(span),
        damages=list(damages),
        repair_types=list(repair_types),
    )


class DamageAnalyzer(ABC):
    """Base class for photo damage analysis."""

    @abstractmethod
    def assess(self, filename: str, image_bytes: bytes) -> PhotoAssessment:
        """
        Assess a single processed photo.

        Args:
            filename: Stored filename of the photo
            image_bytes: Processed JPEG bytes

        Returns:
            PhotoAssessment with severity, damage type and analysis blob
        """
        pass


class MockDamageAnalyzer(DamageAnalyzer):
    """
    Placeholder analyzer that picks a random severity per photo.

    The image content is not inspected.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def assess(self, filename: str, image_bytes: bytes) -> PhotoAssessment:
        severity = self.rng.choice(list(DamageSeverity))
        return PhotoAssessment(
            severity=severity,
            damage_type=damage_type_for(severity),
            analysis=build_analysis(severity, self.rng),
        )


def create_damage_analyzer(
    use_vision_model: bool = False,
    rng: Optional[random.Random] = None,
) -> DamageAnalyzer:
    """
    Factory function to create a damage analyzer.

    Args:
        use_vision_model: If True, use a vision model (not yet implemented).
        rng: Optional random source, for reproducible results

    Returns:
        DamageAnalyzer instance
    """
    if use_vision_model:
        raise NotImplementedError(
            "Vision model not yet implemented. Set use_vision_model=False for the mock analyzer."
        )
    return MockDamageAnalyzer(rng=rng)
