"""
In-memory claim storage.

Keeps records in dictionaries. Used by tests and for throwaway demo servers.
"""

from datetime import datetime, timezone
from typing import Optional

from ..claims.schema import (
    Claim,
    ClaimCreate,
    CostBreakdown,
    CostBreakdownCreate,
    DamagePhoto,
    DamagePhotoCreate,
)
from .base import (
    CLAIM_UPDATABLE_FIELDS,
    COST_BREAKDOWN_UPDATABLE_FIELDS,
    ClaimNotFoundError,
    ClaimStorage,
    filter_updates,
    generate_claim_number,
)


class MemoryClaimStore(ClaimStorage):
    """
    Dictionary-backed storage with sequential ids per record type.

    Usage:
        store = MemoryClaimStore()
        claim = store.create_claim(ClaimCreate(...))
        store.update_claim(claim.id, {"status": "approved"})
    """

    def __init__(self):
        self._claims: dict[int, Claim] = {}
        self._photos: dict[int, DamagePhoto] = {}
        self._breakdowns: dict[int, CostBreakdown] = {}
        self._next_claim_id = 1
        self._next_photo_id = 1
        self._next_breakdown_id = 1

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def get_claim(self, claim_id: int) -> Optional[Claim]:
        return self._claims.get(claim_id)

    def list_claims(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Claim]:
        claims = [
            c for c in self._claims.values()
            if (status is None or c.status == status)
            and (priority is None or c.priority == priority)
        ]
        claims.sort(key=lambda c: (c.submission_date, c.id), reverse=True)
        end = offset + limit if limit is not None else None
        return claims[offset:end]

    def count_claims(self, status: Optional[str] = None) -> int:
        if status is None:
            return len(self._claims)
        return sum(1 for c in self._claims.values() if c.status == status)

    def create_claim(self, claim: ClaimCreate) -> Claim:
        claim_id = self._next_claim_id
        self._next_claim_id += 1

        now = datetime.now(timezone.utc)
        stored = Claim(
            **claim.model_dump(),
            id=claim_id,
            claim_number=generate_claim_number(claim_id, now),
            submission_date=now,
            adjuster_notes=None,
            total_estimate=None,
            estimation_confidence=None,
        )
        self._claims[claim_id] = stored
        return stored

    def update_claim(self, claim_id: int, updates: dict) -> Optional[Claim]:
        existing = self._claims.get(claim_id)
        if existing is None:
            return None

        merged = {**existing.model_dump(), **filter_updates(updates, CLAIM_UPDATABLE_FIELDS)}
        updated = Claim.model_validate(merged)
        self._claims[claim_id] = updated
        return updated

    # ------------------------------------------------------------------
    # Damage photos
    # ------------------------------------------------------------------

    def get_damage_photos(self, claim_id: int) -> list[DamagePhoto]:
        return [p for p in self._photos.values() if p.claim_id == claim_id]

    def get_damage_photo(self, photo_id: int) -> Optional[DamagePhoto]:
        return self._photos.get(photo_id)

    def create_damage_photo(self, photo: DamagePhotoCreate) -> DamagePhoto:
        if photo.claim_id not in self._claims:
            raise ClaimNotFoundError(photo.claim_id)

        photo_id = self._next_photo_id
        self._next_photo_id += 1

        stored = DamagePhoto(
            **photo.model_dump(),
            id=photo_id,
            uploaded_at=datetime.now(timezone.utc),
        )
        self._photos[photo_id] = stored
        return stored

    def delete_damage_photo(self, photo_id: int) -> bool:
        return self._photos.pop(photo_id, None) is not None

    # ------------------------------------------------------------------
    # Cost breakdowns
    # ------------------------------------------------------------------

    def _find_breakdown(self, claim_id: int) -> Optional[CostBreakdown]:
        return next(
            (b for b in self._breakdowns.values() if b.claim_id == claim_id),
            None,
        )

    def get_cost_breakdown(self, claim_id: int) -> Optional[CostBreakdown]:
        return self._find_breakdown(claim_id)

    def create_cost_breakdown(self, breakdown: CostBreakdownCreate) -> CostBreakdown:
        if breakdown.claim_id not in self._claims:
            raise ClaimNotFoundError(breakdown.claim_id)

        breakdown_id = self._next_breakdown_id
        self._next_breakdown_id += 1

        stored = CostBreakdown(**breakdown.model_dump(), id=breakdown_id)
        self._breakdowns[breakdown_id] = stored
        return stored

    def update_cost_breakdown(self, claim_id: int, updates: dict) -> Optional[CostBreakdown]:
        existing = self._find_breakdown(claim_id)
        if existing is None:
            return None

        merged = {
            **existing.model_dump(),
            **filter_updates(updates, COST_BREAKDOWN_UPDATABLE_FIELDS),
        }
        updated = CostBreakdown.model_validate(merged)
        self._breakdowns[existing.id] = updated
        return updated
