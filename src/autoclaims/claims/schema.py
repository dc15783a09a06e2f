"""
Claim schema for vehicle damage claims.

Defines Pydantic models for the three stored records (claim, damage photo,
cost breakdown) together with the input models used to create and update them.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Enums
# ============================================================================


class ClaimStatus(str, Enum):
    """Review state of a claim."""
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    PENDING_INFO = "pending_info"
    APPROVED = "approved"
    REJECTED = "rejected"
    CLOSED = "closed"


class ClaimPriority(str, Enum):
    """Claim priority levels."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class DamageSeverity(str, Enum):
    """Severity assessment of damage shown in a photo."""
    SEVERE = "severe"
    MODERATE = "moderate"
    MINOR = "minor"


class DamageType(str, Enum):
    """Category of damage shown in a photo."""
    STRUCTURAL = "structural"
    BODYWORK = "bodywork"
    COSMETIC = "cosmetic"


class RepairType(str, Enum):
    """Kind of repair work suggested by photo analysis."""
    REPLACEMENT = "replacement"
    BODYWORK = "bodywork"
    PAINT = "paint"
    TOUCH_UP = "touch-up"


# ============================================================================
# Claim
# ============================================================================


def _require_text(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("must not be empty")
    return v.strip()


class ClaimCreate(BaseModel):
    """Fields a policyholder provides when filing a claim."""

    policyholder_name: str = Field(description="Policyholder full name")
    vehicle_info: str = Field(description="Vehicle make, model and year")
    incident_date: str = Field(description="When the incident happened, as entered")
    incident_location: str = Field(description="Where the incident happened")
    incident_type: str = Field(description="Kind of incident (collision, theft, hail, ...)")
    damage_description: str = Field(description="Narrative description of the damage")

    status: ClaimStatus = Field(default=ClaimStatus.SUBMITTED)
    priority: ClaimPriority = Field(default=ClaimPriority.NORMAL)

    @field_validator(
        "policyholder_name",
        "vehicle_info",
        "incident_date",
        "incident_location",
        "incident_type",
        "damage_description",
    )
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        """Reject blank values for required descriptive fields."""
        return _require_text(v)


class ClaimUpdate(BaseModel):
    """Partial update applied by an adjuster. Only fields that are set are written."""

    policyholder_name: Optional[str] = None
    vehicle_info: Optional[str] = None
    incident_date: Optional[str] = None
    incident_location: Optional[str] = None
    incident_type: Optional[str] = None
    damage_description: Optional[str] = None

    status: Optional[ClaimStatus] = None
    priority: Optional[ClaimPriority] = None
    adjuster_notes: Optional[str] = None
    total_estimate: Optional[float] = Field(None, ge=0)
    estimation_confidence: Optional[int] = Field(None, ge=0, le=100)

    @field_validator(
        "policyholder_name",
        "vehicle_info",
        "incident_date",
        "incident_location",
        "incident_type",
        "damage_description",
    )
    @classmethod
    def validate_optional_text(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _require_text(v)

    def to_updates(self) -> dict:
        """
        Return only the explicitly provided fields, enums as plain values.

        An explicit null clears notes and estimates but is ignored for
        columns that cannot be empty.
        """
        updates = self.model_dump(mode="json", exclude_unset=True)
        return {
            key: value
            for key, value in updates.items()
            if value is not None or key in _NULLABLE_CLAIM_FIELDS
        }


_NULLABLE_CLAIM_FIELDS = {"adjuster_notes", "total_estimate", "estimation_confidence"}


class Claim(BaseModel):
    """A stored claim."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    claim_number: str
    policyholder_name: str
    vehicle_info: str
    incident_date: str
    incident_location: str
    incident_type: str
    damage_description: str
    status: ClaimStatus = ClaimStatus.SUBMITTED
    priority: ClaimPriority = ClaimPriority.NORMAL
    submission_date: datetime
    adjuster_notes: Optional[str] = None
    total_estimate: Optional[float] = None
    estimation_confidence: Optional[int] = None


# ============================================================================
# Damage Photo
# ============================================================================


class DamageAnalysis(BaseModel):
    """Result blob attached to a photo by the damage analyzer."""

    confidence: int = Field(ge=0, le=100, description="Analysis confidence percentage")
    damages: List[str] = Field(default_factory=list, description="Human-readable findings")
    repair_types: List[RepairType] = Field(default_factory=list, description="Suggested repairs")


class DamagePhotoCreate(BaseModel):
    """Metadata for a photo that has already been written to disk."""

    claim_id: int
    filename: str
    original_name: str
    mime_type: str
    size: int = Field(ge=0)
    damage_type: Optional[DamageType] = None
    severity: Optional[DamageSeverity] = None
    ai_analysis: Optional[DamageAnalysis] = None


class DamagePhoto(DamagePhotoCreate):
    """A stored damage photo."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    uploaded_at: datetime


# ============================================================================
# Cost Breakdown
# ============================================================================


class CostBreakdownCreate(BaseModel):
    """Category-split cost estimate for a claim."""

    claim_id: int
    bodywork_cost: Optional[float] = Field(None, ge=0)
    paint_cost: Optional[float] = Field(None, ge=0)
    parts_cost: Optional[float] = Field(None, ge=0)
    labor_cost: Optional[float] = Field(None, ge=0)
    total_cost: Optional[float] = Field(None, ge=0)
    confidence_level: Optional[int] = Field(None, ge=0, le=100)


class CostBreakdownInput(BaseModel):
    """Request body for creating a breakdown; the claim id comes from the path."""

    bodywork_cost: Optional[float] = Field(None, ge=0)
    paint_cost: Optional[float] = Field(None, ge=0)
    parts_cost: Optional[float] = Field(None, ge=0)
    labor_cost: Optional[float] = Field(None, ge=0)
    total_cost: Optional[float] = Field(None, ge=0)
    confidence_level: Optional[int] = Field(None, ge=0, le=100)

    def to_updates(self) -> dict:
        return self.model_dump(exclude_unset=True)


class CostBreakdown(CostBreakdownCreate):
    """A stored cost breakdown."""

    model_config = ConfigDict(from_attributes=True)

    id: int
