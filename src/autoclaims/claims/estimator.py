"""
Repair cost estimation from photo analyses.

Placeholder formula: each suggested repair type adds a randomized amount to
its cost category, on top of a fixed base labor charge.
"""

import logging
import random
from dataclasses import dataclass
from typing import Iterable, Optional

from .schema import DamageAnalysis, RepairType

logger = logging.getLogger(__name__)

BASE_LABOR_COST = 200


@dataclass
class CostEstimate:
    """Category-split estimate, whole dollars."""
    bodywork_cost: int = 0
    paint_cost: int = 0
    parts_cost: int = 0
    labor_cost: int = BASE_LABOR_COST
    confidence_level: int = 0

    @property
    def total_cost(self) -> int:
        return self.bodywork_cost + self.paint_cost + self.parts_cost + self.labor_cost

    def to_dict(self) -> dict:
        """Convert to the cost breakdown field layout."""
        return {
            "bodywork_cost": float(self.bodywork_cost),
            "paint_cost": float(self.paint_cost),
            "parts_cost": float(self.parts_cost),
            "labor_cost": float(self.labor_cost),
            "total_cost": float(self.total_cost),
            "confidence_level": self.confidence_level,
        }


def generate_cost_estimate(
    analyses: Iterable[Optional[DamageAnalysis]],
    rng: Optional[random.Random] = None,
) -> CostEstimate:
    """
    Generate a cost estimate for a set of analyzed photos.

    Args:
        analyses: Analysis blobs of the photos. None entries are skipped.
        rng: Optional random source, for reproducible results

    Returns:
        CostEstimate with per-category amounts and a confidence level
    """
    rng = rng or random.Random()
    estimate = CostEstimate()
    counted = 0

    for analysis in analyses:
        if analysis is None:
            continue
        counted += 1
        repair_types = set(analysis.repair_types)

        if RepairType.REPLACEMENT in repair_types:
            estimate.parts_cost += 400 + rng.randrange(800)
            estimate.labor_cost += 200 + rng.randrange(300)
        if RepairType.BODYWORK in repair_types:
            estimate.bodywork_cost += 400 + rng.randrange(600)
            estimate.labor_cost += 100 + rng.randrange(200)
        if RepairType.PAINT in repair_types:
            estimate.paint_cost += 300 + rng.randrange(400)

    estimate.confidence_level = 80 + rng.randrange(20)

    logger.debug(
        f"Estimated ${estimate.total_cost} from {counted} analyses "
        f"(confidence {estimate.confidence_level}%)"
    )
    return estimate
