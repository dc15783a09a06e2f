"""
Storage interface shared by the SQLite and in-memory claim stores.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..claims.schema import (
    Claim,
    ClaimCreate,
    CostBreakdown,
    CostBreakdownCreate,
    DamagePhoto,
    DamagePhotoCreate,
)


# Columns a partial update may write. id, claim_number, submission_date and
# claim_id are fixed at creation.
CLAIM_UPDATABLE_FIELDS = (
    "policyholder_name",
    "vehicle_info",
    "incident_date",
    "incident_location",
    "incident_type",
    "damage_description",
    "status",
    "priority",
    "adjuster_notes",
    "total_estimate",
    "estimation_confidence",
)

COST_BREAKDOWN_UPDATABLE_FIELDS = (
    "bodywork_cost",
    "paint_cost",
    "parts_cost",
    "labor_cost",
    "total_cost",
    "confidence_level",
)


class ClaimNotFoundError(LookupError):
    """Raised when a photo or cost breakdown references a missing claim."""

    def __init__(self, claim_id: int):
        super().__init__(f"Claim {claim_id} not found")
        self.claim_id = claim_id


def generate_claim_number(sequence: int, now: Optional[datetime] = None) -> str:
    """
    Build a human-readable claim number.

    Format: CLM-YYYY-MMDD-NNN where NNN is the claim's id, zero-padded to
    at least three digits.
    """
    now = now or datetime.now()
    return f"CLM-{now:%Y}-{now:%m%d}-{sequence:03d}"


def filter_updates(updates: dict, allowed: tuple) -> dict:
    """Drop keys a partial update is not allowed to touch."""
    return {key: value for key, value in updates.items() if key in allowed}


class ClaimStorage(ABC):
    """Base class for claim storage backends."""

    # Claims

    @abstractmethod
    def get_claim(self, claim_id: int) -> Optional[Claim]:
        pass

    @abstractmethod
    def list_claims(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Claim]:
        """List claims newest first, optionally filtered."""
        pass

    @abstractmethod
    def count_claims(self, status: Optional[str] = None) -> int:
        pass

    @abstractmethod
    def create_claim(self, claim: ClaimCreate) -> Claim:
        """Insert a claim, assigning id, claim number and submission date."""
        pass

    @abstractmethod
    def update_claim(self, claim_id: int, updates: dict) -> Optional[Claim]:
        """
        Apply a partial update.

        Returns:
            The updated claim, or None if the claim does not exist
        """
        pass

    # Damage photos

    @abstractmethod
    def get_damage_photos(self, claim_id: int) -> list[DamagePhoto]:
        pass

    @abstractmethod
    def get_damage_photo(self, photo_id: int) -> Optional[DamagePhoto]:
        pass

    @abstractmethod
    def create_damage_photo(self, photo: DamagePhotoCreate) -> DamagePhoto:
        """
        Insert photo metadata.

        Raises:
            ClaimNotFoundError: if the parent claim does not exist
        """
        pass

    @abstractmethod
    def delete_damage_photo(self, photo_id: int) -> bool:
        """Returns True if a photo was deleted."""
        pass

    # Cost breakdowns

    @abstractmethod
    def get_cost_breakdown(self, claim_id: int) -> Optional[CostBreakdown]:
        pass

    @abstractmethod
    def create_cost_breakdown(self, breakdown: CostBreakdownCreate) -> CostBreakdown:
        """
        Insert a cost breakdown.

        Raises:
            ClaimNotFoundError: if the parent claim does not exist
        """
        pass

    @abstractmethod
    def update_cost_breakdown(self, claim_id: int, updates: dict) -> Optional[CostBreakdown]:
        pass
