"""
SQLite-based claim storage.

Stores claims, damage photo metadata and cost breakdowns in a local SQLite
database. No external database setup required - just works.
"""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from ..claims.schema import (
    Claim,
    ClaimCreate,
    CostBreakdown,
    CostBreakdownCreate,
    DamagePhoto,
    DamagePhotoCreate,
)
from ..utils.config import get_settings
from .base import (
    CLAIM_UPDATABLE_FIELDS,
    COST_BREAKDOWN_UPDATABLE_FIELDS,
    ClaimNotFoundError,
    ClaimStorage,
    filter_updates,
    generate_claim_number,
)
from .memory_store import MemoryClaimStore

logger = logging.getLogger(__name__)


INIT_SCHEMA = """
CREATE TABLE IF NOT EXISTS claims (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    claim_number TEXT NOT NULL UNIQUE,
    policyholder_name TEXT NOT NULL,
    vehicle_info TEXT NOT NULL,
    incident_date TEXT NOT NULL,
    incident_location TEXT NOT NULL,
    incident_type TEXT NOT NULL,
    damage_description TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'submitted',
    priority TEXT NOT NULL DEFAULT 'normal',
    submission_date TEXT NOT NULL,
    adjuster_notes TEXT,
    total_estimate REAL,
    estimation_confidence INTEGER
);

CREATE TABLE IF NOT EXISTS damage_photos (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    claim_id INTEGER NOT NULL REFERENCES claims(id),
    filename TEXT NOT NULL,
    original_name TEXT NOT NULL,
    mime_type TEXT NOT NULL,
    size INTEGER NOT NULL,
    damage_type TEXT,
    severity TEXT,
    ai_analysis TEXT,
    uploaded_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS cost_breakdowns (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    claim_id INTEGER NOT NULL REFERENCES claims(id),
    bodywork_cost REAL,
    paint_cost REAL,
    parts_cost REAL,
    labor_cost REAL,
    total_cost REAL,
    confidence_level INTEGER
);

CREATE INDEX IF NOT EXISTS idx_claims_status ON claims(status);
CREATE INDEX IF NOT EXISTS idx_claims_submitted ON claims(submission_date);
CREATE INDEX IF NOT EXISTS idx_photos_claim_id ON damage_photos(claim_id);
CREATE INDEX IF NOT EXISTS idx_breakdowns_claim_id ON cost_breakdowns(claim_id);
"""


def _db_value(value):
    if isinstance(value, Enum):
        return value.value
    return value


class SQLiteClaimStore(ClaimStorage):
    """
    SQLite-based storage for vehicle damage claims.

    Usage:
        store = SQLiteClaimStore(Path("data/claims.db"))

        # Save a claim
        claim = store.create_claim(ClaimCreate(...))

        # Retrieve
        claim = store.get_claim(claim.id)

        # Update status
        store.update_claim(claim.id, {"status": "approved"})
    """

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the claim store."""
        self.db_path = Path(db_path or get_settings().database_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._get_connection() as conn:
            conn.executescript(INIT_SCHEMA)

    @contextmanager
    def _get_connection(self):
        """Get a database connection. Commits on success."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def get_claim(self, claim_id: int) -> Optional[Claim]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM claims WHERE id = ?", (claim_id,)).fetchone()
        return self._row_to_claim(row) if row else None

    def list_claims(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Claim]:
        query = "SELECT * FROM claims WHERE 1=1"
        params = []

        if status:
            query += " AND status = ?"
            params.append(_db_value(status))

        if priority:
            query += " AND priority = ?"
            params.append(_db_value(priority))

        query += " ORDER BY submission_date DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit if limit is not None else -1, offset])

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_claim(row) for row in rows]

    def count_claims(self, status: Optional[str] = None) -> int:
        with self._get_connection() as conn:
            if status:
                row = conn.execute(
                    "SELECT COUNT(*) FROM claims WHERE status = ?",
                    (_db_value(status),)
                ).fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM claims").fetchone()
        return row[0]

    def create_claim(self, claim: ClaimCreate) -> Claim:
        now = datetime.now(timezone.utc)
        data = claim.model_dump(mode="json")

        with self._get_connection() as conn:
            # The claim number embeds the row id, so insert a unique
            # placeholder first and replace it once the id is known.
            cursor = conn.execute(
                """
                INSERT INTO claims (
                    claim_number, policyholder_name, vehicle_info,
                    incident_date, incident_location, incident_type,
                    damage_description, status, priority, submission_date
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    f"PENDING-{uuid.uuid4().hex}",
                    data["policyholder_name"],
                    data["vehicle_info"],
                    data["incident_date"],
                    data["incident_location"],
                    data["incident_type"],
                    data["damage_description"],
                    data["status"],
                    data["priority"],
                    now.isoformat(timespec="microseconds"),
                ),
            )
            claim_id = cursor.lastrowid
            conn.execute(
                "UPDATE claims SET claim_number = ? WHERE id = ?",
                (generate_claim_number(claim_id, now), claim_id),
            )
            row = conn.execute("SELECT * FROM claims WHERE id = ?", (claim_id,)).fetchone()

        return self._row_to_claim(row)

    def update_claim(self, claim_id: int, updates: dict) -> Optional[Claim]:
        updates = filter_updates(updates, CLAIM_UPDATABLE_FIELDS)

        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM claims WHERE id = ?", (claim_id,)).fetchone()
            if row is None:
                return None
            if not updates:
                return self._row_to_claim(row)

            # Validate the merged record before writing anything
            merged = Claim.model_validate({**dict(row), **updates})
            values = merged.model_dump(mode="json", include=set(updates))

            assignments = ", ".join(f"{column} = ?" for column in values)
            conn.execute(
                f"UPDATE claims SET {assignments} WHERE id = ?",
                [*values.values(), claim_id],
            )
            row = conn.execute("SELECT * FROM claims WHERE id = ?", (claim_id,)).fetchone()

        return self._row_to_claim(row)

    # ------------------------------------------------------------------
    # Damage photos
    # ------------------------------------------------------------------

    def get_damage_photos(self, claim_id: int) -> list[DamagePhoto]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM damage_photos WHERE claim_id = ? ORDER BY id",
                (claim_id,)
            ).fetchall()
        return [self._row_to_photo(row) for row in rows]

    def get_damage_photo(self, photo_id: int) -> Optional[DamagePhoto]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM damage_photos WHERE id = ?",
                (photo_id,)
            ).fetchone()
        return self._row_to_photo(row) if row else None

    def create_damage_photo(self, photo: DamagePhotoCreate) -> DamagePhoto:
        data = photo.model_dump(mode="json")
        now = datetime.now(timezone.utc)

        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO damage_photos (
                        claim_id, filename, original_name, mime_type, size,
                        damage_type, severity, ai_analysis, uploaded_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        data["claim_id"],
                        data["filename"],
                        data["original_name"],
                        data["mime_type"],
                        data["size"],
                        data["damage_type"],
                        data["severity"],
                        json.dumps(data["ai_analysis"]) if data["ai_analysis"] else None,
                        now.isoformat(timespec="microseconds"),
                    ),
                )
                row = conn.execute(
                    "SELECT * FROM damage_photos WHERE id = ?",
                    (cursor.lastrowid,)
                ).fetchone()
        except sqlite3.IntegrityError as e:
            raise ClaimNotFoundError(photo.claim_id) from e

        return self._row_to_photo(row)

    def delete_damage_photo(self, photo_id: int) -> bool:
        with self._get_connection() as conn:
            result = conn.execute("DELETE FROM damage_photos WHERE id = ?", (photo_id,))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Cost breakdowns
    # ------------------------------------------------------------------

    def get_cost_breakdown(self, claim_id: int) -> Optional[CostBreakdown]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM cost_breakdowns WHERE claim_id = ? ORDER BY id LIMIT 1",
                (claim_id,)
            ).fetchone()
        return self._row_to_breakdown(row) if row else None

    def create_cost_breakdown(self, breakdown: CostBreakdownCreate) -> CostBreakdown:
        data = breakdown.model_dump()

        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO cost_breakdowns (
                        claim_id, bodywork_cost, paint_cost, parts_cost,
                        labor_cost, total_cost, confidence_level
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        data["claim_id"],
                        data["bodywork_cost"],
                        data["paint_cost"],
                        data["parts_cost"],
                        data["labor_cost"],
                        data["total_cost"],
                        data["confidence_level"],
                    ),
                )
                row = conn.execute(
                    "SELECT * FROM cost_breakdowns WHERE id = ?",
                    (cursor.lastrowid,)
                ).fetchone()
        except sqlite3.IntegrityError as e:
            raise ClaimNotFoundError(breakdown.claim_id) from e

        return self._row_to_breakdown(row)

    def update_cost_breakdown(self, claim_id: int, updates: dict) -> Optional[CostBreakdown]:
        updates = filter_updates(updates, COST_BREAKDOWN_UPDATABLE_FIELDS)

        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM cost_breakdowns WHERE claim_id = ? ORDER BY id LIMIT 1",
                (claim_id,)
            ).fetchone()
            if row is None:
                return None
            if not updates:
                return self._row_to_breakdown(row)

            merged = CostBreakdown.model_validate({**dict(row), **updates})
            values = merged.model_dump(include=set(updates))

            assignments = ", ".join(f"{column} = ?" for column in values)
            conn.execute(
                f"UPDATE cost_breakdowns SET {assignments} WHERE id = ?",
                [*values.values(), row["id"]],
            )
            row = conn.execute(
                "SELECT * FROM cost_breakdowns WHERE id = ?",
                (row["id"],)
            ).fetchone()

        return self._row_to_breakdown(row)

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    def _row_to_claim(self, row: sqlite3.Row) -> Claim:
        """Convert a database row to Claim."""
        return Claim.model_validate(dict(row))

    def _row_to_photo(self, row: sqlite3.Row) -> DamagePhoto:
        """Convert a database row to DamagePhoto."""
        data = dict(row)
        data["ai_analysis"] = json.loads(data["ai_analysis"]) if data["ai_analysis"] else None
        return DamagePhoto.model_validate(data)

    def _row_to_breakdown(self, row: sqlite3.Row) -> CostBreakdown:
        """Convert a database row to CostBreakdown."""
        return CostBreakdown.model_validate(dict(row))


# =============================================================================
# Convenience Functions
# =============================================================================

@lru_cache
def get_claim_store() -> ClaimStorage:
    """Get the configured claim store (singleton)."""
    settings = get_settings()
    backend = settings.storage_backend.lower()

    if backend == "memory":
        logger.info("Using in-memory claim storage")
        return MemoryClaimStore()
    if backend == "sqlite":
        store = SQLiteClaimStore(settings.database_path)
        logger.info(f"Using SQLite claim storage: {store.db_path.resolve()}")
        return store

    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")
